"""Bearer token lifecycle for the object storage client.

The token is fetched lazily on first use and refreshed when it is about to
expire. Refreshes are serialized by a lock; callers that arrive while a
refresh is in flight wait for it and reuse its result.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cosclient.errors import AuthExchangeFailed
from cosclient.logging_config import get_logger

APIKEY_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"

logger = get_logger(__name__)


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)
    access_token: Optional[str] = Field(None, description="Bearer token to send on requests.")
    expiration: Optional[int] = Field(None, description="Expiry as seconds since the epoch.")
    token_type: Optional[str] = Field(None)
    error_message: Optional[str] = Field(None, alias="errorMessage", description="Set when the exchange was rejected.")


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_at: float

    def is_fresh(self, now: float, lookahead: float) -> bool:
        return bool(self.token) and now + lookahead < self.expires_at


_EMPTY_TOKEN = AccessToken(token="", expires_at=0.0)


class TokenManager:
    def __init__(
        self,
        api_key: str,
        iam_endpoint: str,
        session: requests.Session,
        refresh_lookahead: float = 300.0,
        timeout: float = 30.0,
        verify: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api_key = api_key
        self._iam_endpoint = iam_endpoint
        self._session = session
        self._lookahead = refresh_lookahead
        self._timeout = timeout
        self._verify = verify
        self._clock = clock
        self._lock = threading.Lock()
        self._current = _EMPTY_TOKEN

    @property
    def token(self) -> str:
        return self._current.token

    @property
    def expires_at(self) -> float:
        return self._current.expires_at

    def ensure_valid_token(self) -> str:
        """Return a token that will not expire within the lookahead window.

        Raises:
            AuthExchangeFailed: If a refresh was needed and the exchange failed.
                The previous token, if any, is kept.
        """
        current = self._current
        if current.is_fresh(self._clock(), self._lookahead):
            return current.token

        with self._lock:
            # Another caller may have refreshed while we waited for the lock.
            current = self._current
            if current.is_fresh(self._clock(), self._lookahead):
                return current.token
            self._current = self._exchange()
            return self._current.token

    def invalidate(self) -> None:
        with self._lock:
            self._current = _EMPTY_TOKEN

    def _exchange(self) -> AccessToken:
        logger.info("Refreshing access token: iam_endpoint=%s", self._iam_endpoint)
        form = {
            "apikey": self._api_key,
            "response_type": "cloud_iam",
            "grant_type": APIKEY_GRANT_TYPE,
        }
        try:
            response = self._session.post(
                self._iam_endpoint,
                data=form,
                headers={"Accept": "application/json", "Connection": "close"},
                timeout=self._timeout,
                verify=self._verify,
            )
        except requests.exceptions.RequestException as exc:
            raise AuthExchangeFailed(f"Error getting IAM token from {self._iam_endpoint}: {exc}") from exc

        try:
            payload = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthExchangeFailed(
                f"Error parsing IAM token response: status={response.status_code} body={response.text[:200]!r}"
            ) from exc

        if payload.error_message:
            raise AuthExchangeFailed(f"IAM token exchange rejected: {payload.error_message}")
        if response.status_code // 100 != 2:
            raise AuthExchangeFailed(f"IAM token exchange failed: status={response.status_code}")
        if not payload.access_token or payload.expiration is None:
            raise AuthExchangeFailed("IAM token response is missing access_token or expiration")

        logger.info("Access token refreshed: expires_at=%s", payload.expiration)
        return AccessToken(token=payload.access_token, expires_at=float(payload.expiration))
