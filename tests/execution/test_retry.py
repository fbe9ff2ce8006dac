"""Tests for retry classification and backoff delays."""

import errno
import random

import pytest

from core.exceptions import UpstreamServiceError
from services.execution.retry import (
    ErrorClass,
    RetryConfig,
    RetryPolicy,
    classify_error,
    error_code,
    is_retryable_error,
)


class TestClassifyError:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (400, ErrorClass.NON_RETRYABLE),
            (401, ErrorClass.NON_RETRYABLE),
            (404, ErrorClass.NON_RETRYABLE),
            (429, ErrorClass.RATE_LIMITED),
            (500, ErrorClass.RETRYABLE),
            (503, ErrorClass.RETRYABLE),
        ],
    )
    def test_by_status(self, status: int, expected: ErrorClass) -> None:
        assert classify_error(UpstreamServiceError("x", status_code=status)) is expected

    def test_status_wins_over_message(self) -> None:
        error = UpstreamServiceError("network unreachable", status_code=403)
        assert classify_error(error) is ErrorClass.NON_RETRYABLE

    def test_rate_limit_message(self) -> None:
        assert classify_error(RuntimeError("Too Many Requests")) is ErrorClass.RATE_LIMITED

    def test_timeout(self) -> None:
        assert classify_error(TimeoutError()) is ErrorClass.RETRYABLE

    @pytest.mark.parametrize(
        "message", ["request timeout", "Network error", "fetch failed", "read ECONNRESET"]
    )
    def test_transient_messages(self, message: str) -> None:
        assert classify_error(RuntimeError(message)) is ErrorClass.RETRYABLE

    def test_code_outside_allow_list_is_final(self) -> None:
        error = UpstreamServiceError("refused", code="ECONNREFUSED")
        assert classify_error(error) is ErrorClass.NON_RETRYABLE

    def test_custom_allow_list(self) -> None:
        config = RetryConfig(retryable_codes=frozenset({"ECONNREFUSED"}))
        error = UpstreamServiceError("refused", code="ECONNREFUSED")
        assert classify_error(error, config) is ErrorClass.RETRYABLE

    def test_os_error_code(self) -> None:
        error = OSError(errno.ECONNRESET, "reset")
        assert error_code(error) == "ECONNRESET"
        assert classify_error(error) is ErrorClass.RETRYABLE

    def test_unknown_errors_are_retried(self) -> None:
        assert classify_error(ValueError("weird")) is ErrorClass.RETRYABLE


def test_is_retryable_error_reporting() -> None:
    assert is_retryable_error(UpstreamServiceError("x", status_code=404)) is False
    assert is_retryable_error(UpstreamServiceError("x", status_code=429)) is True
    assert is_retryable_error(ValueError("x")) is True


class TestRetryConfig:
    def test_defaults(self) -> None:
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.initial_delay_ms == 100
        assert config.max_delay_ms == 5000
        assert config.backoff_multiplier == 2.0
        assert "ETIMEDOUT" in config.retryable_codes

    @pytest.mark.parametrize(
        "overrides",
        [{"max_retries": 0}, {"initial_delay_ms": -1}, {"jitter_fraction": 1.0}],
    )
    def test_rejects_invalid_values(self, overrides: dict) -> None:
        with pytest.raises(ValueError):
            RetryConfig(**overrides)

    def test_with_overrides_copies(self) -> None:
        base = RetryConfig()
        custom = base.with_overrides(max_retries=5)
        assert custom.max_retries == 5
        assert base.max_retries == 3


class TestRetryPolicy:
    def test_should_retry_respects_budget(self) -> None:
        policy = RetryPolicy()
        config = RetryConfig(max_retries=3)
        error = UpstreamServiceError("boom", status_code=500)

        assert policy.should_retry(error, 1, config) is True
        assert policy.should_retry(error, 2, config) is True
        assert policy.should_retry(error, 3, config) is False

    def test_should_not_retry_client_errors(self) -> None:
        policy = RetryPolicy()
        error = UpstreamServiceError("missing", status_code=404)
        assert policy.should_retry(error, 1, RetryConfig()) is False

    def test_delay_without_jitter_is_exponential(self) -> None:
        policy = RetryPolicy()
        config = RetryConfig(jitter_fraction=0)

        assert [policy.delay_for(n, config) for n in (1, 2, 3)] == [100, 200, 400]

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy()
        config = RetryConfig(jitter_fraction=0, max_delay_ms=250)
        assert policy.delay_for(5, config) == 250

    def test_jitter_stays_within_bounds(self) -> None:
        policy = RetryPolicy(rng=random.Random(7))
        config = RetryConfig(jitter_fraction=0.25)
        for _ in range(200):
            assert 75 <= policy.delay_for(1, config) <= 125
            assert 150 <= policy.delay_for(2, config) <= 250

    def test_rate_limited_delay_never_below_floor(self) -> None:
        policy = RetryPolicy(rng=random.Random(3))
        config = RetryConfig(rate_limit_floor_ms=1000, max_delay_ms=500)
        for attempt in (1, 2, 3):
            assert policy.delay_for(attempt, config, rate_limited=True) >= 1000

    def test_delay_after_picks_floor_from_error(self) -> None:
        policy = RetryPolicy()
        config = RetryConfig(jitter_fraction=0, rate_limit_floor_ms=1000)

        limited = UpstreamServiceError("slow down", status_code=429)
        broken = UpstreamServiceError("boom", status_code=502)

        assert policy.delay_after(limited, 1, config) == 1000
        assert policy.delay_after(broken, 1, config) == 100
