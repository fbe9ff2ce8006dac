"""Structured logging with correlation IDs and PII redaction.

This module provides:
- Correlation ID tracking across async calls (one id per extraction session
  or analysis run)
- A structured logger that sanitizes keyword data before it is logged
- Environment-aware logging setup (JSON in production, readable elsewhere)
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from core.config import get_settings
from core.security_config import is_sensitive_key


# Context variable for correlation ID tracking across async calls
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

logger = logging.getLogger(__name__)


def get_correlation_id() -> str:
    """Get or create a correlation ID for request tracing."""
    correlation_id: str | None = _correlation_id_var.get()
    if correlation_id is None or correlation_id == "":
        new_id = str(uuid.uuid4())
        _correlation_id_var.set(new_id)
        return new_id
    return correlation_id


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id_var.set(correlation_id)


class StructuredLogger:
    """Structured logger that includes correlation IDs and sanitized data."""

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)

    def _log_with_context(
        self,
        level: int,
        message: str,
        extra_data: dict[str, Any] | None = None,
        exc_info: bool = False,
    ) -> None:
        """Log with correlation ID and structured data."""
        if not self.logger.isEnabledFor(level):
            return
        correlation_id = get_correlation_id()

        # Sanitize extra data to prevent PII leakage
        sanitized_data = self._sanitize_data(extra_data or {})

        log_data = {
            "correlation_id": correlation_id,
            **sanitized_data,
        }

        settings = get_settings()
        if settings.ENVIRONMENT == "production":
            # The JsonFormatter merges `extra` keys into the emitted object.
            self.logger.log(level, message, extra=log_data, exc_info=exc_info)
        else:
            # In development, use human-readable format
            details = " ".join(f"{k}={v!r}" for k, v in sanitized_data.items())
            text = f"[{correlation_id}] {message}"
            if details:
                text = f"{text} | {details}"
            self.logger.log(level, text, exc_info=exc_info)

    def _sanitize_data(self, data: dict[str, Any]) -> dict[str, Any]:
        """Remove or mask sensitive data from log entries."""
        if not isinstance(data, dict) or not data:
            return {}

        header_redaction = self._redact_header_like(data)
        if header_redaction is not None:
            return header_redaction

        sanitized: dict[str, Any] = {}
        for key, value in data.items():
            if is_sensitive_key(key):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = self._sanitize_value(value)

        return sanitized

    def _sanitize_value(self, value: Any) -> Any:
        """Sanitize a single value which may be a dict, list, or primitive."""
        if isinstance(value, dict):
            return self._sanitize_data(value)
        if isinstance(value, list):
            return [self._sanitize_value(item) for item in value]
        return value

    def _redact_header_like(self, data: dict[str, Any]) -> dict[str, Any] | None:
        """If `data` is a header-like dict, return a redacted version or None.

        A header-like dict has keys like `name`/`key` and `value`. If the name/key
        is considered sensitive, its value is redacted.
        """
        if not (
            ("name" in data and "value" in data) or ("key" in data and "value" in data)
        ):
            return None

        header_name = data.get("name") or data.get("key")
        if not isinstance(header_name, str) or not is_sensitive_key(header_name):
            return None

        redacted: dict[str, Any] = {}
        for sub_k, sub_v in data.items():
            if sub_k.lower() in {"value", "val", "v"}:
                redacted[sub_k] = "[REDACTED]"
            elif isinstance(sub_v, dict):
                redacted[sub_k] = self._sanitize_data(sub_v)
            else:
                redacted[sub_k] = "[REDACTED]" if is_sensitive_key(sub_k) else sub_v

        return redacted

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug level message."""
        self._log_with_context(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info level message."""
        self._log_with_context(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning level message."""
        self._log_with_context(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error level message."""
        self._log_with_context(logging.ERROR, message, kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log_with_context(logging.ERROR, message, kwargs, exc_info=True)


def setup_logging() -> None:
    """Configure application logging with proper JSON structure and idempotent setup."""
    settings = get_settings()

    log_level = logging.DEBUG if settings.ENVIRONMENT == "development" else logging.INFO
    root_logger = logging.getLogger()

    # Make setup idempotent - avoid duplicate handlers
    if root_logger.handlers:
        return

    formatter: logging.Formatter
    if settings.ENVIRONMENT == "production":
        formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    else:
        # Human-readable logging for development
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(log_level)

    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers in production
    if settings.ENVIRONMENT == "production":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("openai").setLevel(logging.WARNING)
