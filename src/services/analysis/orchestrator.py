"""Fan-out of dimension scoring tasks with first-success gating.

Every dimension is submitted to the shared executor at once. Results are
stored as they settle, in whatever order that happens; a dimension that
fails for good is kept as a zero-score degraded record so the aggregate
always carries one key per dimension. The first successful dimension
triggers the caller's one-shot callback, which is where the durable
analysis record gets created.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from core.structured_logging import StructuredLogger
from schemas.analysis import (
    AnalysisAggregate,
    DegradedDimension,
    DimensionProgress,
    DimensionRecord,
    DimensionScore,
)
from services.ai.exceptions import AnalysisFailedError, ScoreSchemaViolation
from services.execution.executor import RateLimitedExecutor, call_maybe_async
from services.execution.retry import RetryConfig


logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)

ProgressCallback = Callable[[DimensionProgress], Any]


@dataclass(frozen=True, slots=True)
class DimensionTask:
    """One independent scoring task.

    ``factory`` produces a fresh coroutine for every attempt; ``progress_range``
    is the (start, end) pair reported when the task starts and settles.
    """

    name: str
    progress_range: tuple[int, int]
    factory: Callable[[], Awaitable[DimensionScore]]
    retry_config: RetryConfig | None = None

    def __post_init__(self) -> None:
        start, end = self.progress_range
        if not 0 <= start <= end <= 100:
            raise ValueError(f"Invalid progress range for {self.name}: {self.progress_range}")


class DimensionOrchestrator:
    """Run dimension tasks concurrently through a `RateLimitedExecutor`."""

    def __init__(self, executor: RateLimitedExecutor):
        self.executor = executor

    async def run(
        self,
        tasks: Sequence[DimensionTask],
        on_first_success: Callable[[], Any],
        on_progress: ProgressCallback | None = None,
    ) -> AnalysisAggregate:
        """Resolve once every task has settled.

        ``on_first_success`` fires exactly once, after the earliest success
        and never after a failure. Both callbacks may be sync or async.
        An error from either callback is raised only after every task has
        settled, so no scoring task outlives the call.
        """
        names = [task.name for task in tasks]
        if len(set(names)) != len(names):
            raise ValueError("Dimension names must be unique")

        aggregate = AnalysisAggregate()
        first_success_fired = False
        callback_error: Exception | None = None

        for task in tasks:
            await self._emit(
                on_progress,
                DimensionProgress(
                    dimension=task.name,
                    status="started",
                    progress=task.progress_range[0],
                ),
            )

        async def run_one(task: DimensionTask) -> None:
            nonlocal first_success_fired, callback_error
            result = await self.executor.submit(
                task.factory, task.retry_config, label=task.name
            )

            record: DimensionRecord
            if result.success and isinstance(result.value, DimensionScore):
                record = result.value
                aggregate.dimensions[task.name] = record
                if not first_success_fired:
                    # Set before awaiting so a racing success cannot fire twice.
                    first_success_fired = True
                    structured_logger.info(
                        "First dimension succeeded", dimension=task.name
                    )
                    try:
                        await call_maybe_async(on_first_success)
                    except Exception as exc:
                        # Raised from run only once every sibling has settled.
                        callback_error = exc
                        structured_logger.error(
                            "First-success callback failed",
                            dimension=task.name,
                            error_type=type(exc).__name__,
                        )
            else:
                if result.success:
                    message = str(
                        ScoreSchemaViolation(
                            f"scorer returned {type(result.value).__name__}"
                        )
                    )
                else:
                    message = result.error_message or "Dimension scoring failed"
                record = DegradedDimension(error=message)
                aggregate.dimensions[task.name] = record
                structured_logger.warning(
                    "Dimension degraded",
                    dimension=task.name,
                    attempts=result.attempts,
                    error_type=type(result.error).__name__ if result.error else None,
                )

            await self._emit(
                on_progress,
                DimensionProgress(
                    dimension=task.name,
                    status="completed",
                    progress=task.progress_range[1],
                    result=record,
                ),
            )

        outcomes = await asyncio.gather(
            *(run_one(task) for task in tasks), return_exceptions=True
        )
        if callback_error is not None:
            raise callback_error
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        # Preserve the caller's dimension order regardless of settle order.
        aggregate.dimensions = {
            name: aggregate.dimensions[name] for name in names
        }
        logger.info(
            "Dimension run settled: %d succeeded, %d degraded",
            len(aggregate.successful()),
            len(aggregate.failed()),
        )
        return aggregate

    @staticmethod
    async def _emit(
        on_progress: ProgressCallback | None, event: DimensionProgress
    ) -> None:
        if on_progress is not None:
            await call_maybe_async(on_progress, event)


def require_success(aggregate: AnalysisAggregate) -> AnalysisAggregate:
    """Caller-side policy: an analysis where no dimension succeeded has failed."""
    if not aggregate.has_success:
        failed = ", ".join(aggregate.failed()) or "none"
        raise AnalysisFailedError(f"No analysis dimension succeeded (failed: {failed})")
    return aggregate
