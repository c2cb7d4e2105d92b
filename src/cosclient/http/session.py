import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

USER_AGENT = 'cosclient (python-requests)'


def create_https_session(pool_size: int = 10) -> requests.Session:
    # Nothing is retried automatically; callers decide whether to try again.
    retries = Retry(
        total=0,
        connect=0,
        read=0,
        redirect=False,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries, pool_connections=pool_size, pool_maxsize=pool_size)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": USER_AGENT})
    return session
