"""Retry classification and backoff for outbound scoring calls.

The policy is pure: it looks at an error and an attempt count and decides
whether another attempt is worthwhile and how long to wait before it. All
durations are milliseconds.
"""

from __future__ import annotations

import errno
import random
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any


DEFAULT_RETRYABLE_CODES: frozenset[str] = frozenset(
    {"ECONNRESET", "ETIMEDOUT", "ENOTFOUND", "EAI_AGAIN"}
)
TRANSIENT_MESSAGE_MARKERS: tuple[str, ...] = ("timeout", "network", "fetch failed")
RATE_LIMIT_MESSAGE_MARKERS: tuple[str, ...] = ("rate limit", "too many requests")


class ErrorClass(StrEnum):
    NON_RETRYABLE = "non_retryable"
    RETRYABLE = "retryable"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Immutable retry settings attached to a task.

    ``rate_limit_floor_ms`` is the minimum wait after a rate-limit class
    failure. ``timeout_seconds`` bounds each attempt; ``None`` disables it.
    """

    max_retries: int = 3
    initial_delay_ms: float = 100
    max_delay_ms: float = 5000
    backoff_multiplier: float = 2.0
    jitter_fraction: float = 0.25
    rate_limit_floor_ms: float = 1000
    retryable_codes: frozenset[str] = field(default=DEFAULT_RETRYABLE_CODES)
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.initial_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays cannot be negative")
        if not 0 <= self.jitter_fraction < 1:
            raise ValueError("jitter_fraction must be in [0, 1)")

    def with_overrides(self, **overrides: Any) -> RetryConfig:
        """Copy with the given fields replaced (per-task overrides)."""
        return replace(self, **overrides)


def error_status(error: BaseException) -> int | None:
    """HTTP-like status attached to an error, if any."""
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def error_code(error: BaseException) -> str | None:
    """Network error code (``ECONNRESET`` style) attached to an error, if any."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code.upper()
    if isinstance(error, OSError) and error.errno is not None:
        return errno.errorcode.get(error.errno)
    return None


def classify_error(error: BaseException, config: RetryConfig | None = None) -> ErrorClass:
    """Decide which retry class an error belongs to.

    Client errors other than 429 are final; server errors and 429 are
    transient. Timeouts and messages naming a transient condition are
    retried, a network code outside the allow-list is not, and anything
    unrecognised is treated as transient.
    """
    codes = config.retryable_codes if config else DEFAULT_RETRYABLE_CODES
    message = str(error).lower()

    status = error_status(error)
    if status is not None:
        if status == 429:
            return ErrorClass.RATE_LIMITED
        if 400 <= status < 500:
            return ErrorClass.NON_RETRYABLE
        if status >= 500:
            return ErrorClass.RETRYABLE

    if any(marker in message for marker in RATE_LIMIT_MESSAGE_MARKERS):
        return ErrorClass.RATE_LIMITED
    if isinstance(error, TimeoutError):
        return ErrorClass.RETRYABLE

    markers = (*TRANSIENT_MESSAGE_MARKERS, *(c.lower() for c in codes))
    if any(marker in message for marker in markers):
        return ErrorClass.RETRYABLE

    code = error_code(error)
    if code is not None:
        return ErrorClass.RETRYABLE if code in codes else ErrorClass.NON_RETRYABLE
    return ErrorClass.RETRYABLE


def is_retryable_error(error: BaseException) -> bool:
    """Reporting helper: False only for client errors other than 429."""
    status = error_status(error)
    return not (status is not None and 400 <= status < 500 and status != 429)


class RetryPolicy:
    """Retry-or-not decisions and exponential backoff with jitter."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def should_retry(
        self, error: BaseException, attempt_number: int, config: RetryConfig
    ) -> bool:
        """Whether another attempt should follow ``attempt_number`` failures."""
        if attempt_number >= config.max_retries:
            return False
        return classify_error(error, config) is not ErrorClass.NON_RETRYABLE

    def delay_for(
        self,
        attempt_number: int,
        config: RetryConfig,
        *,
        rate_limited: bool = False,
    ) -> float:
        """Milliseconds to wait before the attempt after ``attempt_number``.

        Rate-limited waits start from the floor and never drop below it;
        other waits are only capped by ``max_delay_ms``.
        """
        base = config.initial_delay_ms
        if rate_limited:
            base = max(base, config.rate_limit_floor_ms)
        jitter = self._rng.uniform(1 - config.jitter_fraction, 1 + config.jitter_fraction)
        delay = base * config.backoff_multiplier ** max(attempt_number - 1, 0) * jitter
        delay = min(config.max_delay_ms, delay)
        if rate_limited:
            delay = max(delay, config.rate_limit_floor_ms)
        return delay

    def delay_after(
        self, error: BaseException, attempt_number: int, config: RetryConfig
    ) -> float:
        """`delay_for` with the rate-limit floor chosen from the error."""
        rate_limited = classify_error(error, config) is ErrorClass.RATE_LIMITED
        return self.delay_for(attempt_number, config, rate_limited=rate_limited)
