"""Authenticated request execution against the object storage REST surface."""

from __future__ import annotations

from typing import Any, Mapping

import requests

from cosclient.auth.token_manager import TokenManager
from cosclient.errors import TransportError
from cosclient.logging_config import get_logger

INSTANCE_ID_HEADER = "ibm-service-instance-id"

logger = get_logger(__name__)


class HttpTransport:
    """Issues one authenticated request at a time.

    Every request carries the current bearer token. Instance-scoped requests
    additionally carry the service instance id header. ``Connection: close``
    keeps each call independent of the others.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        instance_id: str,
        session: requests.Session,
        timeout: float = 30.0,
        verify: bool = True,
    ) -> None:
        self._token_manager = token_manager
        self._instance_id = instance_id
        self._session = session
        self._timeout = timeout
        self._verify = verify

    def request(
        self,
        method: str,
        url: str,
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        instance_scoped: bool = False,
    ) -> bytes:
        token = self._token_manager.ensure_valid_token()

        request_headers = {
            "Authorization": f"Bearer {token}",
            "Connection": "close",
        }
        if instance_scoped:
            request_headers[INSTANCE_ID_HEADER] = self._instance_id
        if headers:
            request_headers.update(headers)

        logger.debug(
            "HTTP request: method=%s url=%s params=%s body_bytes=%s instance_scoped=%s",
            method, url, dict(params or {}), len(body or b""), instance_scoped,
        )
        try:
            response = self._session.request(
                method,
                url,
                data=body,
                headers=request_headers,
                params=params,
                timeout=self._timeout,
                verify=self._verify,
            )
        except requests.exceptions.RequestException as exc:
            logger.debug("HTTP request failed: method=%s url=%s error=%s", method, url, exc)
            raise TransportError(f"{method} {url}: {exc}", method=method, url=url) from exc

        content = response.content or b""
        if response.status_code // 100 != 2:
            message = f"{method} {url}: {response.status_code} {response.reason}"
            if content:
                message = f"{message}: {content.decode('utf-8', errors='replace')}"
            logger.debug("HTTP error response: method=%s url=%s status=%s", method, url, response.status_code)
            raise TransportError(
                message,
                method=method,
                url=url,
                status=response.status_code,
                reason=response.reason,
                body=content,
            )
        return content
