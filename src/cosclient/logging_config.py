from __future__ import annotations

import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Any


_RESERVED_RECORD_FIELDS = set(logging.makeLogRecord({}).__dict__.keys())
_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/=]+")
_SECRET_FIELDS = {"api_key", "apikey", "token", "access_token", "authorization"}


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def redact(text: str) -> str:
    return _BEARER_PATTERN.sub(r"\1***", text)


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_RECORD_FIELDS or key.startswith("_"):
            continue
        extras[key] = "***" if key.lower() in _SECRET_FIELDS else value
    return extras


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "message": redact(record.getMessage()),
        }

        extras = _extract_extra_fields(record)
        if extras:
            payload["context"] = extras

        if record.exc_info:
            payload["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(payload, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    def __init__(self, service: str) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S%z")
        message = (
            f"{timestamp} {record.levelname} {record.name} service={self.service} "
            f"thread={record.threadName} message={redact(record.getMessage())}"
        )

        extras = _extract_extra_fields(record)
        if extras:
            extra_bits = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
            message = f"{message} {extra_bits}"

        if record.exc_info:
            message = f"{message}\n{redact(self.formatException(record.exc_info))}"
        return message


def configure_logging(level: str | None = None, service: str = "cosclient") -> None:
    env_level = level or os.getenv("COS_LOG_LEVEL") or os.getenv("LOG_LEVEL", "INFO")
    resolved_level = getattr(logging, env_level.upper(), logging.INFO)
    use_json = _parse_bool(os.getenv("LOG_JSON"), default=not sys.stderr.isatty())

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter(service=service) if use_json else TextFormatter(service=service))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(resolved_level)
    # urllib3 logs every connection at DEBUG; keep it at WARNING unless asked for.
    if not _parse_bool(os.getenv("COS_LOG_HTTP"), default=False):
        logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def with_context(logger: logging.Logger, **context: Any) -> logging.LoggerAdapter:
    return logging.LoggerAdapter(logger, extra=context)
