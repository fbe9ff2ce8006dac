"""Queue-backed task runner with a concurrency ceiling and request pacing.

Tasks are zero-argument coroutine factories. The executor keeps a FIFO
queue of pending attempts and a dispatch loop that starts attempts while
fewer than ``max_concurrent`` are running, spacing consecutive starts by at
least ``min_delay_ms``. A failed attempt that the retry policy accepts gives
up its slot, waits out the backoff and then re-enters the queue at the front
so it runs ahead of tasks that have not started yet.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from core.exceptions import TaskCancelledError, TaskFailedError
from core.structured_logging import StructuredLogger
from services.execution.retry import (
    ErrorClass,
    RetryConfig,
    RetryPolicy,
    classify_error,
    is_retryable_error,
)


logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)

T = TypeVar("T")
TaskFactory = Callable[[], Awaitable[T]]


async def call_maybe_async(callback: Callable[..., Any], *args: Any) -> Any:
    """Invoke a sync or async callback and return its result."""
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass(slots=True)
class TaskResult(Generic[T]):  # noqa: UP046
    """Outcome of one submitted task, produced exactly once."""

    success: bool
    attempts: int
    value: T | None = None
    error: BaseException | None = None
    retryable: bool = False
    exhausted: bool = False

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


@dataclass(frozen=True, slots=True)
class BatchProgress:
    completed: int
    total: int
    percentage: int
    failed_count: int


@dataclass(slots=True)
class BatchResult:
    """Index-aligned results of `RateLimitedExecutor.submit_many`."""

    results: list[TaskResult[Any]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def retryable_error_count(self) -> int:
        return sum(1 for r in self.results if not r.success and r.retryable)


@dataclass(frozen=True, slots=True)
class ExecutorStatus:
    queue_length: int
    active_tasks: int
    max_concurrent: int


@dataclass(slots=True)
class _QueuedAttempt:
    factory: TaskFactory[Any]
    config: RetryConfig
    future: asyncio.Future[tuple[Any, int]]
    attempts: int = 0
    label: str | None = None


class RateLimitedExecutor:
    """Run tasks with bounded concurrency, pacing and retries.

    Queue, active count and last-dispatch time are only touched by the
    dispatch loop under ``_dispatch_lock`` or by attempt completion on the
    same event loop.
    """

    def __init__(
        self,
        max_concurrent: int = 10,
        min_delay_ms: float = 0,
        retry_config: RetryConfig | None = None,
        policy: RetryPolicy | None = None,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_delay_ms < 0:
            raise ValueError("min_delay_ms cannot be negative")
        self.max_concurrent = max_concurrent
        self.min_delay_ms = min_delay_ms
        self.retry_config = retry_config or RetryConfig()
        self.policy = policy or RetryPolicy()

        self._queue: deque[_QueuedAttempt] = deque()
        self._active = 0
        self._peak_active = 0
        self._last_dispatch = -math.inf
        self._dispatch_lock = asyncio.Lock()
        self._background: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_settings(cls, settings: Any) -> RateLimitedExecutor:
        """Build an executor from `core.config.Settings`."""
        return cls(
            max_concurrent=settings.EXECUTOR_MAX_CONCURRENT,
            min_delay_ms=settings.EXECUTOR_MIN_DELAY_MS,
            retry_config=settings.default_retry_config(),
        )

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def peak_active(self) -> int:
        """Highest number of simultaneously running attempts observed."""
        return self._peak_active

    def get_status(self) -> ExecutorStatus:
        return ExecutorStatus(
            queue_length=len(self._queue),
            active_tasks=self._active,
            max_concurrent=self.max_concurrent,
        )

    def clear(self) -> int:
        """Drop every task that has not started; each fails with TaskCancelledError."""
        dropped = 0
        while self._queue:
            item = self._queue.popleft()
            if not item.future.done():
                item.future.set_exception(
                    TaskCancelledError("Task dropped from the executor queue")
                )
            dropped += 1
        if dropped:
            logger.info("Cleared %d queued task(s)", dropped)
        return dropped

    async def execute(
        self,
        task: TaskFactory[T],
        config: RetryConfig | None = None,
        *,
        label: str | None = None,
    ) -> T:
        """Run a task to completion and return its value.

        Raises:
            TaskFailedError: after a non-retryable failure or once retries are
                exhausted; the last underlying error is its ``__cause__``.
            TaskCancelledError: when the task was dropped by `clear`.
        """
        value, _ = await self._enqueue_new(task, config, label)
        return value

    async def submit(
        self,
        task: TaskFactory[T],
        config: RetryConfig | None = None,
        *,
        label: str | None = None,
    ) -> TaskResult[T]:
        """Run a task and capture its outcome instead of raising."""
        try:
            value, attempts = await self._enqueue_new(task, config, label)
        except TaskFailedError as exc:
            cause = exc.__cause__ or exc
            return TaskResult(
                success=False,
                attempts=exc.attempts,
                error=cause,
                retryable=exc.retryable,
                exhausted=exc.exhausted,
            )
        except TaskCancelledError as exc:
            return TaskResult(success=False, attempts=0, error=exc, retryable=False)
        return TaskResult(success=True, attempts=attempts, value=value)

    async def submit_many(
        self,
        tasks: Sequence[TaskFactory[Any]],
        configs: Sequence[RetryConfig | None] | None = None,
        on_progress: Callable[[BatchProgress], Any] | None = None,
    ) -> BatchResult:
        """Run every task; resolve once all have settled.

        Results are index-aligned with ``tasks``. Individual failures are
        captured in their `TaskResult`; the batch itself does not raise.
        """
        total = len(tasks)
        completed = 0
        failed = 0

        async def run_one(index: int, task: TaskFactory[Any]) -> TaskResult[Any]:
            nonlocal completed, failed
            config = configs[index] if configs and index < len(configs) else None
            result = await self.submit(task, config)
            completed += 1
            if not result.success:
                failed += 1
            if on_progress is not None:
                await call_maybe_async(
                    on_progress,
                    BatchProgress(
                        completed=completed,
                        total=total,
                        percentage=round(completed / total * 100),
                        failed_count=failed,
                    ),
                )
            return result

        results = await asyncio.gather(
            *(run_one(index, task) for index, task in enumerate(tasks))
        )
        return BatchResult(results=list(results))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _enqueue_new(
        self,
        task: TaskFactory[Any],
        config: RetryConfig | None,
        label: str | None,
    ) -> asyncio.Future[tuple[Any, int]]:
        future: asyncio.Future[tuple[Any, int]] = (
            asyncio.get_running_loop().create_future()
        )
        item = _QueuedAttempt(
            factory=task,
            config=config or self.retry_config,
            future=future,
            label=label,
        )
        self._queue.append(item)
        self._kick()
        return future

    def _kick(self) -> None:
        self._spawn(self._process_queue())

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _process_queue(self) -> None:
        loop = asyncio.get_running_loop()
        async with self._dispatch_lock:
            while self._queue and self._active < self.max_concurrent:
                wait_s = self.min_delay_ms / 1000 - (loop.time() - self._last_dispatch)
                if wait_s > 0:
                    await asyncio.sleep(wait_s)
                    # Queue may have been cleared or a slot taken meanwhile.
                    continue

                item = self._queue.popleft()
                if item.future.done():
                    continue
                self._active += 1
                self._peak_active = max(self._peak_active, self._active)
                self._last_dispatch = loop.time()
                self._spawn(self._run_attempt(item))

    async def _run_attempt(self, item: _QueuedAttempt) -> None:
        item.attempts += 1
        timeout = item.config.timeout_seconds
        try:
            if timeout is not None:
                value = await asyncio.wait_for(item.factory(), timeout)
            else:
                value = await item.factory()
        except asyncio.CancelledError:
            self._release()
            if not item.future.done():
                item.future.cancel()
            raise
        except Exception as exc:
            self._release()
            await self._handle_failure(item, exc)
            return

        self._release()
        if not item.future.done():
            item.future.set_result((value, item.attempts))

    def _release(self) -> None:
        self._active -= 1
        self._kick()

    async def _handle_failure(self, item: _QueuedAttempt, exc: Exception) -> None:
        if item.future.done():
            return
        if self.policy.should_retry(exc, item.attempts, item.config):
            delay_ms = self.policy.delay_after(exc, item.attempts, item.config)
            structured_logger.warning(
                "Task attempt failed; retrying",
                task=item.label,
                attempt=item.attempts,
                delay_ms=round(delay_ms, 1),
                error_type=type(exc).__name__,
            )
            await asyncio.sleep(delay_ms / 1000)
            if item.future.done():
                return
            self._queue.appendleft(item)
            self._kick()
            return

        structured_logger.warning(
            "Task failed",
            task=item.label,
            attempts=item.attempts,
            error_type=type(exc).__name__,
        )
        error = TaskFailedError(
            str(exc) or type(exc).__name__,
            attempts=item.attempts,
            retryable=is_retryable_error(exc),
            exhausted=classify_error(exc, item.config) is not ErrorClass.NON_RETRYABLE,
        )
        error.__cause__ = exc
        item.future.set_exception(error)
