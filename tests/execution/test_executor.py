"""Tests for the rate-limited executor."""

import asyncio
import random

import pytest

from core.config import Settings
from core.exceptions import TaskCancelledError, TaskFailedError, UpstreamServiceError
from services.execution.executor import BatchProgress, RateLimitedExecutor
from services.execution.retry import RetryConfig, RetryPolicy


FAST_RETRY = RetryConfig(
    initial_delay_ms=10,
    rate_limit_floor_ms=10,
    jitter_fraction=0.25,
    backoff_multiplier=2.0,
)


class RecordingPolicy(RetryPolicy):
    """Retry policy that remembers every backoff it hands out."""

    def __init__(self) -> None:
        super().__init__()
        self.delays: list[float] = []

    def delay_after(self, error, attempt_number, config):
        delay = super().delay_after(error, attempt_number, config)
        self.delays.append(delay)
        return delay


def _flaky(failures: list[BaseException], value: str = "ok"):
    """Factory that raises the given errors in turn, then returns ``value``."""
    calls = {"count": 0}

    async def task() -> str:
        calls["count"] += 1
        if failures:
            raise failures.pop(0)
        return value

    return task, calls


class TestExecute:
    @pytest.mark.asyncio
    async def test_returns_value(self) -> None:
        executor = RateLimitedExecutor()

        async def task() -> int:
            return 42

        assert await executor.execute(task) == 42
        assert executor.active_count == 0

    @pytest.mark.asyncio
    async def test_client_error_fails_after_one_attempt(self) -> None:
        policy = RecordingPolicy()
        executor = RateLimitedExecutor(policy=policy)
        task, calls = _flaky([UpstreamServiceError("missing", status_code=404)] * 5)

        with pytest.raises(TaskFailedError) as exc_info:
            await executor.execute(task, FAST_RETRY)

        assert exc_info.value.attempts == 1
        assert exc_info.value.retryable is False
        assert exc_info.value.exhausted is False
        assert isinstance(exc_info.value.__cause__, UpstreamServiceError)
        assert calls["count"] == 1
        assert policy.delays == []

    @pytest.mark.asyncio
    async def test_rate_limited_twice_then_succeeds(self) -> None:
        policy = RecordingPolicy()
        executor = RateLimitedExecutor(policy=policy)
        task, calls = _flaky(
            [
                UpstreamServiceError("slow down", status_code=429),
                UpstreamServiceError("slow down", status_code=429),
            ]
        )

        result = await executor.submit(task, FAST_RETRY)

        assert result.success is True
        assert result.value == "ok"
        assert result.attempts == 3
        assert calls["count"] == 3
        assert len(policy.delays) == 2
        assert policy.delays[0] < policy.delays[1]

    @pytest.mark.asyncio
    async def test_retries_exhausted(self) -> None:
        executor = RateLimitedExecutor()
        task, calls = _flaky([UpstreamServiceError("boom", status_code=500)] * 5)

        result = await executor.submit(task, FAST_RETRY.with_overrides(max_retries=2))

        assert result.success is False
        assert result.attempts == 2
        assert result.retryable is True
        assert result.exhausted is True
        assert result.error_message == "boom"
        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_attempt_deadline(self) -> None:
        executor = RateLimitedExecutor()

        async def stuck() -> None:
            await asyncio.sleep(10)

        result = await executor.submit(
            stuck, FAST_RETRY.with_overrides(max_retries=2, timeout_seconds=0.02)
        )

        assert result.success is False
        assert result.attempts == 2
        assert isinstance(result.error, TimeoutError)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_active_tasks_never_exceed_limit(self) -> None:
        limit = 3
        executor = RateLimitedExecutor(max_concurrent=limit)
        rng = random.Random(11)
        running = 0
        samples: list[int] = []

        def make_task(duration: float, fail: bool):
            async def task() -> float:
                nonlocal running
                running += 1
                samples.append(running)
                samples.append(executor.active_count)
                try:
                    await asyncio.sleep(duration)
                    if fail:
                        raise UpstreamServiceError("boom", status_code=503)
                    return duration
                finally:
                    running -= 1
                    samples.append(running)

            return task

        tasks = [
            make_task(rng.uniform(0.001, 0.02), fail=rng.random() < 0.2)
            for _ in range(25)
        ]
        batch = await executor.submit_many(tasks, configs=[FAST_RETRY] * len(tasks))

        assert len(batch.results) == 25
        assert max(samples) <= limit
        assert executor.peak_active <= limit
        assert executor.active_count == 0

    @pytest.mark.asyncio
    async def test_two_waves_of_work(self) -> None:
        executor = RateLimitedExecutor(max_concurrent=2)

        async def work() -> str:
            await asyncio.sleep(0.1)
            return "done"

        loop = asyncio.get_running_loop()
        started = loop.time()
        batch = await executor.submit_many([work] * 4)
        elapsed = loop.time() - started

        assert batch.success_count == 4
        assert 0.2 <= elapsed < 0.3

    @pytest.mark.asyncio
    async def test_min_delay_spaces_dispatches(self) -> None:
        executor = RateLimitedExecutor(max_concurrent=5, min_delay_ms=30)
        loop = asyncio.get_running_loop()
        starts: list[float] = []

        async def work() -> None:
            starts.append(loop.time())

        await executor.submit_many([work] * 3)

        gaps = [b - a for a, b in zip(starts, starts[1:], strict=False)]
        assert all(gap >= 0.025 for gap in gaps)

    @pytest.mark.asyncio
    async def test_retry_runs_ahead_of_fresh_tasks(self) -> None:
        executor = RateLimitedExecutor(max_concurrent=1)
        order: list[str] = []
        a_calls = 0

        async def a() -> str:
            nonlocal a_calls
            a_calls += 1
            order.append(f"a{a_calls}")
            if a_calls == 1:
                raise UpstreamServiceError("upstream", status_code=500)
            return "a"

        def plain(name: str):
            async def task() -> str:
                order.append(name)
                await asyncio.sleep(0.03)
                return name

            return task

        config = RetryConfig(initial_delay_ms=5, jitter_fraction=0)
        results = await asyncio.gather(
            executor.submit(a, config),
            executor.submit(plain("b"), config),
            executor.submit(plain("c"), config),
            executor.submit(plain("d"), config),
        )

        assert all(result.success for result in results)
        assert order == ["a1", "b", "a2", "c", "d"]


class TestBatch:
    @pytest.mark.asyncio
    async def test_results_are_index_aligned_with_progress(self) -> None:
        executor = RateLimitedExecutor(max_concurrent=2)
        progress: list[BatchProgress] = []

        async def ok() -> str:
            await asyncio.sleep(0.01)
            return "a"

        async def missing() -> str:
            raise UpstreamServiceError("missing", status_code=404)

        async def limited() -> str:
            raise UpstreamServiceError("slow down", status_code=429)

        batch = await executor.submit_many(
            [ok, missing, limited],
            configs=[None, None, FAST_RETRY.with_overrides(max_retries=1)],
            on_progress=progress.append,
        )

        assert [r.success for r in batch.results] == [True, False, False]
        assert batch.success_count == 1
        assert batch.error_count == 2
        assert batch.retryable_error_count == 1
        assert [p.completed for p in progress] == [1, 2, 3]
        assert progress[-1].percentage == 100
        assert progress[-1].failed_count == 2

    @pytest.mark.asyncio
    async def test_async_progress_callback(self) -> None:
        executor = RateLimitedExecutor()
        seen: list[int] = []

        async def on_progress(event: BatchProgress) -> None:
            seen.append(event.percentage)

        async def ok() -> int:
            return 1

        await executor.submit_many([ok, ok], on_progress=on_progress)
        assert seen == [50, 100]


class TestQueueControl:
    @pytest.mark.asyncio
    async def test_clear_drops_pending_tasks(self) -> None:
        executor = RateLimitedExecutor(max_concurrent=1)
        release = asyncio.Event()

        async def blocker() -> str:
            await release.wait()
            return "first"

        async def queued() -> str:
            return "never"

        first = asyncio.create_task(executor.execute(blocker))
        second = asyncio.create_task(executor.submit(queued))
        third = asyncio.create_task(executor.execute(queued))
        await asyncio.sleep(0.01)

        status = executor.get_status()
        assert status.active_tasks == 1
        assert status.queue_length == 2
        assert status.max_concurrent == 1

        assert executor.clear() == 2
        release.set()

        assert await first == "first"
        dropped = await second
        assert dropped.success is False
        assert isinstance(dropped.error, TaskCancelledError)
        with pytest.raises(TaskCancelledError):
            await third
        assert executor.get_status().queue_length == 0

    def test_invalid_construction(self) -> None:
        with pytest.raises(ValueError):
            RateLimitedExecutor(max_concurrent=0)
        with pytest.raises(ValueError):
            RateLimitedExecutor(min_delay_ms=-1)

    def test_from_settings(self) -> None:
        settings = Settings(
            EXECUTOR_MAX_CONCURRENT=4,
            EXECUTOR_MIN_DELAY_MS=50,
            RETRY_MAX_RETRIES=5,
            TASK_TIMEOUT_SECONDS=30,
        )
        executor = RateLimitedExecutor.from_settings(settings)

        assert executor.max_concurrent == 4
        assert executor.min_delay_ms == 50
        assert executor.retry_config.max_retries == 5
        assert executor.retry_config.timeout_seconds == 30
