from __future__ import annotations
import os
from dataclasses import dataclass

DEFAULT_IAM_ENDPOINT = "https://iam.cloud.ibm.com/identity/token"
DEFAULT_ENDPOINTS_URL = "https://control.cloud-object-storage.cloud.ibm.com/v2/endpoints"
DEFAULT_SERVICE_URL = "https://s3.us.cloud-object-storage.appdomain.cloud"
DEFAULT_CONFIG_API_URL = "https://config.cloud-object-storage.{test}cloud.ibm.com/v1/b"
MAX_DELETE_BATCH_SIZE = 1000


@dataclass(frozen=True)
class ClientConfig:
    api_key: str
    instance_id: str
    iam_endpoint: str = DEFAULT_IAM_ENDPOINT
    endpoints_url: str = DEFAULT_ENDPOINTS_URL
    default_service_url: str = DEFAULT_SERVICE_URL
    config_api_url: str = DEFAULT_CONFIG_API_URL
    refresh_lookahead_seconds: float = 300.0
    delete_batch_size: int = MAX_DELETE_BATCH_SIZE
    delete_workers: int = 10
    timeout_seconds: float = 30.0
    verify_tls: bool = True

    def __post_init__(self):
        if not self.api_key or not self.api_key.strip():
            raise ValueError("ClientConfig.api_key must be a non-empty string.")
        if not self.instance_id or not self.instance_id.strip():
            raise ValueError("ClientConfig.instance_id must be a non-empty string.")
        if not 1 <= self.delete_batch_size <= MAX_DELETE_BATCH_SIZE:
            raise ValueError(
                f"ClientConfig.delete_batch_size must be between 1 and {MAX_DELETE_BATCH_SIZE}, "
                f"got: {self.delete_batch_size}"
            )
        if self.delete_workers <= 0:
            raise ValueError(f"ClientConfig.delete_workers must be > 0, got: {self.delete_workers}")
        if self.refresh_lookahead_seconds < 0:
            raise ValueError("ClientConfig.refresh_lookahead_seconds must be >= 0.")
        if self.timeout_seconds <= 0:
            raise ValueError("ClientConfig.timeout_seconds must be > 0.")

    def __repr__(self) -> str:
        return (
            f"ClientConfig(instance_id={self.instance_id!r}, iam_endpoint={self.iam_endpoint!r}, "
            f"default_service_url={self.default_service_url!r}, delete_workers={self.delete_workers})"
        )


def require_env(var_name: str) -> str:
    value = os.getenv(var_name)
    if value is None or not value.strip():
        raise ValueError(f"Environment variable '{var_name}' is required but not set.")
    return value


def _env_number(var_name: str, default: float, cast=float):
    raw = os.getenv(var_name)
    if raw is None or not raw.strip():
        return cast(default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{var_name} must be a number, got: {raw!r}") from exc


def _env_bool(var_name: str, default: bool) -> bool:
    raw = os.getenv(var_name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_client_config() -> ClientConfig:
    return ClientConfig(
        api_key=require_env("COS_API_KEY"),
        instance_id=require_env("COS_INSTANCE_ID"),
        iam_endpoint=os.getenv("COS_IAM_ENDPOINT") or DEFAULT_IAM_ENDPOINT,
        endpoints_url=os.getenv("COS_ENDPOINTS_URL") or DEFAULT_ENDPOINTS_URL,
        default_service_url=(os.getenv("COS_SERVICE_URL") or DEFAULT_SERVICE_URL).rstrip("/"),
        refresh_lookahead_seconds=_env_number("COS_REFRESH_LOOKAHEAD_SECONDS", 300.0),
        delete_workers=_env_number("COS_DELETE_WORKERS", 10, cast=int),
        timeout_seconds=_env_number("COS_TIMEOUT_SECONDS", 30.0),
        verify_tls=_env_bool("COS_VERIFY_TLS", True),
    )
