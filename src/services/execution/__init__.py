"""Bounded-concurrency task execution with retries."""

from .executor import (
    BatchProgress,
    BatchResult,
    ExecutorStatus,
    RateLimitedExecutor,
    TaskResult,
    call_maybe_async,
)
from .retry import ErrorClass, RetryConfig, RetryPolicy, classify_error, is_retryable_error


__all__ = [
    "BatchProgress",
    "BatchResult",
    "ErrorClass",
    "ExecutorStatus",
    "RateLimitedExecutor",
    "RetryConfig",
    "RetryPolicy",
    "TaskResult",
    "call_maybe_async",
    "classify_error",
    "is_retryable_error",
]
