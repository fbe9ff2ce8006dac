"""Domain errors shared by the execution and analysis layers."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass


class UpstreamServiceError(DomainError):
    """Failure reported by an external service (model provider, reference data API).

    Carries an HTTP-like ``status_code`` and/or a network ``code`` (``ECONNRESET``
    and friends) so the retry policy can classify it.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class TaskFailedError(DomainError):
    """A task submitted to the executor failed for good.

    The last underlying error is chained as ``__cause__``.
    ``retryable`` reports whether the error class is transient;
    ``exhausted`` is True when a transient failure ran out of attempts.
    """

    def __init__(
        self, message: str, attempts: int, retryable: bool, exhausted: bool = False
    ) -> None:
        super().__init__(message)
        self.message = message
        self.attempts = attempts
        self.retryable = retryable
        self.exhausted = exhausted


class TaskCancelledError(DomainError):
    """A queued task was dropped before it started."""

    pass
