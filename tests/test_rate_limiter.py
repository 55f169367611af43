"""
Tests for the rate-limited retry queue.

Coverage:
  Pacing:    start-to-start spacing, slow operations, first task immediate
  Ordering:  FIFO, retry jumps ahead of later submissions once cooled down
  Retries:   bounded attempts, terminal error verbatim, per-task override
  Lifecycle: single-flight drain loop, re-entrant submission, join, abandonment,
             cancellation raised by an operation vs. cancellation of the drain
"""
import asyncio
import time

import pytest

from job_queue.rate_limiter import QueueTask, RateLimitedRetryQueue, TaskState


def flaky(failures: int, result="ok", log: list = None, name: str = ""):
    """Operation that raises `failures` times, then returns `result`."""
    calls = {"n": 0}

    async def op():
        calls["n"] += 1
        if log is not None:
            log.append(name)
        if calls["n"] <= failures:
            raise RuntimeError(f"attempt {calls['n']} failed")
        return result

    op.calls = calls
    return op


# ══════════════════════════════════════════════════════════════
#  CONSTRUCTION
# ══════════════════════════════════════════════════════════════

class TestConstruction:
    def test_min_interval_from_rate(self):
        q = RateLimitedRetryQueue(requests_per_second=2)
        assert q.min_interval == 0.5
        assert q.max_retries == 3
        assert q.retry_delay == 5.0

    @pytest.mark.parametrize("kwargs", [
        {"requests_per_second": 0},
        {"requests_per_second": -1},
        {"max_retries": -1},
        {"retry_delay": -0.5},
    ])
    def test_rejects_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            RateLimitedRetryQueue(**kwargs)

    def test_idle_on_creation(self):
        q = RateLimitedRetryQueue()
        assert q.queue_length == 0
        assert not q.is_processing
        assert q.pending_retries == 0


# ══════════════════════════════════════════════════════════════
#  PACING
# ══════════════════════════════════════════════════════════════

class TestPacing:
    @pytest.mark.asyncio
    async def test_start_to_start_gap_at_least_min_interval(self, fake_clock):
        q = RateLimitedRetryQueue(requests_per_second=4, clock=fake_clock, sleep=fake_clock.sleep)
        starts = []

        async def op():
            starts.append(fake_clock())
            return len(starts)

        results = await asyncio.gather(*(q.submit(op) for _ in range(6)))

        assert results == [1, 2, 3, 4, 5, 6]
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(g >= q.min_interval - 1e-9 for g in gaps)
        assert starts[0] == 0.0

    @pytest.mark.asyncio
    async def test_gap_measured_from_start_not_finish(self, fake_clock):
        q = RateLimitedRetryQueue(requests_per_second=4, clock=fake_clock, sleep=fake_clock.sleep)
        starts = []

        async def slow_op():
            starts.append(fake_clock())
            fake_clock.advance(0.125)    # the call itself takes 125ms

        await asyncio.gather(q.submit(slow_op), q.submit(slow_op))

        assert starts == [0.0, 0.25]
        assert fake_clock.sleeps == [0.125]

    @pytest.mark.asyncio
    async def test_no_wait_when_interval_already_elapsed(self, fake_clock):
        q = RateLimitedRetryQueue(requests_per_second=1, clock=fake_clock, sleep=fake_clock.sleep)

        async def op():
            return fake_clock()

        assert await q.submit(op) == 0.0
        fake_clock.advance(5.0)
        assert await q.submit(op) == 5.0
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_three_tasks_at_one_per_second(self):
        q = RateLimitedRetryQueue(requests_per_second=1, max_retries=3, retry_delay=0.1)
        order, starts = [], []

        def make(name):
            async def op():
                order.append(name)
                starts.append(time.monotonic())
                return name
            return op

        begin = time.monotonic()
        results = await asyncio.gather(q.submit(make("a")), q.submit(make("b")), q.submit(make("c")))
        elapsed = time.monotonic() - begin

        assert results == ["a", "b", "c"]
        assert order == ["a", "b", "c"]
        assert elapsed >= 2.0
        assert all(b - a >= 1.0 for a, b in zip(starts, starts[1:]))


# ══════════════════════════════════════════════════════════════
#  ORDERING
# ══════════════════════════════════════════════════════════════

class TestOrdering:
    @pytest.mark.asyncio
    async def test_fifo_without_failures(self, fake_clock):
        q = RateLimitedRetryQueue(requests_per_second=10, clock=fake_clock, sleep=fake_clock.sleep)
        log = []
        await asyncio.gather(*(q.submit(flaky(0, log=log, name=n)) for n in ("t1", "t2", "t3")))
        assert log == ["t1", "t2", "t3"]

    @pytest.mark.asyncio
    async def test_retry_runs_before_later_submission_once_cooled_down(self):
        # 100ms pacing, 20ms cooldown: t1's retry is back at the front before t2's slot
        q = RateLimitedRetryQueue(requests_per_second=10, max_retries=3, retry_delay=0.02)
        log = []
        results = await asyncio.gather(
            q.submit(flaky(1, result="t1", log=log, name="t1")),
            q.submit(flaky(0, result="t2", log=log, name="t2")),
        )
        assert results == ["t1", "t2"]
        assert log == ["t1", "t1", "t2"]

    @pytest.mark.asyncio
    async def test_retry_waits_for_cooldown(self):
        # cooldown longer than the pacing gap: t2 goes first while t1 is invisible
        q = RateLimitedRetryQueue(requests_per_second=20, max_retries=3, retry_delay=0.2)
        log = []
        await asyncio.gather(
            q.submit(flaky(1, log=log, name="t1")),
            q.submit(flaky(0, log=log, name="t2")),
        )
        assert log == ["t1", "t2", "t1"]


# ══════════════════════════════════════════════════════════════
#  RETRIES
# ══════════════════════════════════════════════════════════════

class TestRetries:
    @pytest.mark.asyncio
    async def test_always_failing_task_attempted_limit_plus_one(self):
        q = RateLimitedRetryQueue(requests_per_second=100, max_retries=3, retry_delay=0.01)
        op = flaky(99)
        future = q.enqueue(op)
        fired = []
        future.add_done_callback(fired.append)

        with pytest.raises(RuntimeError, match="attempt 4 failed"):
            await future
        await q.join()

        assert op.calls["n"] == 4
        assert len(fired) == 1

    @pytest.mark.asyncio
    async def test_recovers_after_fewer_failures_than_limit(self):
        q = RateLimitedRetryQueue(requests_per_second=2, max_retries=2, retry_delay=0.05)
        op = flaky(2, result="delivered")
        future = q.enqueue(op)
        fired = []
        future.add_done_callback(fired.append)

        begin = time.monotonic()
        assert await future == "delivered"
        elapsed = time.monotonic() - begin
        await q.join()

        assert op.calls["n"] == 3
        assert elapsed >= 2 * 0.05
        assert len(fired) == 1
        assert not future.cancelled() and future.exception() is None

    @pytest.mark.asyncio
    async def test_per_submission_retry_limit_override(self):
        q = RateLimitedRetryQueue(requests_per_second=100, max_retries=3, retry_delay=0.01)
        op = flaky(99)
        with pytest.raises(RuntimeError, match="attempt 1 failed"):
            await q.submit(op, retry_limit=0)
        assert op.calls["n"] == 1

    @pytest.mark.asyncio
    async def test_terminal_error_is_the_original_exception(self):
        q = RateLimitedRetryQueue(requests_per_second=100, max_retries=1, retry_delay=0.01)
        boom = ValueError("provider said no")

        async def op():
            raise boom

        with pytest.raises(ValueError) as exc_info:
            await q.submit(op)
        assert exc_info.value is boom

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self):
        q = RateLimitedRetryQueue(requests_per_second=100, max_retries=1, retry_delay=0.01)
        results = await asyncio.gather(
            q.submit(flaky(99)),
            q.submit(flaky(0, result="fine")),
            return_exceptions=True,
        )
        assert isinstance(results[0], RuntimeError)
        assert results[1] == "fine"

    @pytest.mark.asyncio
    async def test_cancelled_error_from_operation_settles_task(self):
        q = RateLimitedRetryQueue(requests_per_second=100, max_retries=1, retry_delay=0.01)
        calls = {"n": 0}

        async def cancelled_op():
            calls["n"] += 1
            raise asyncio.CancelledError()

        first = q.enqueue(cancelled_op)
        second = q.enqueue(flaky(0, result="after"))

        assert await second == "after"
        await q.join()

        assert first.done() and not first.cancelled()
        assert isinstance(first.exception(), asyncio.CancelledError)
        assert calls["n"] == 2
        assert q.queue_length == 0
        assert not q.is_processing

    @pytest.mark.asyncio
    async def test_negative_retry_limit_rejected(self):
        q = RateLimitedRetryQueue()
        with pytest.raises(ValueError):
            q.enqueue(flaky(0), retry_limit=-5)
        assert q.queue_length == 0


# ══════════════════════════════════════════════════════════════
#  LIFECYCLE
# ══════════════════════════════════════════════════════════════

class TestLifecycle:
    @pytest.mark.asyncio
    async def test_executions_never_overlap(self):
        q = RateLimitedRetryQueue(requests_per_second=200, max_retries=1, retry_delay=0.01)
        state = {"active": 0, "max_active": 0}

        async def op():
            state["active"] += 1
            state["max_active"] = max(state["max_active"], state["active"])
            await asyncio.sleep(0.005)
            state["active"] -= 1

        await asyncio.gather(*(q.submit(op) for _ in range(8)))
        assert state["max_active"] == 1

    @pytest.mark.asyncio
    async def test_reentrant_submission_extends_running_drain(self, fake_clock):
        q = RateLimitedRetryQueue(requests_per_second=10, clock=fake_clock, sleep=fake_clock.sleep)
        drain_tasks = []
        inner_futures = []

        async def inner():
            drain_tasks.append(q._drain_task)
            return "inner"

        async def outer():
            drain_tasks.append(q._drain_task)
            inner_futures.append(q.enqueue(inner))
            return "outer"

        assert await q.submit(outer) == "outer"
        assert await inner_futures[0] == "inner"
        assert len(drain_tasks) == 2
        assert drain_tasks[0] is drain_tasks[1]

    @pytest.mark.asyncio
    async def test_state_flags_during_and_after_drain(self, fake_clock):
        q = RateLimitedRetryQueue(requests_per_second=10, clock=fake_clock, sleep=fake_clock.sleep)
        futures = [q.enqueue(flaky(0)) for _ in range(3)]

        assert q.queue_length == 3
        assert q.is_processing

        await asyncio.gather(*futures)
        await q.join()
        assert q.queue_length == 0
        assert not q.is_processing

    @pytest.mark.asyncio
    async def test_new_drain_after_idle(self, fake_clock):
        q = RateLimitedRetryQueue(requests_per_second=10, clock=fake_clock, sleep=fake_clock.sleep)
        await q.submit(flaky(0))
        await q.join()
        first = q._drain_task

        await q.submit(flaky(0))
        assert q._drain_task is not first

    @pytest.mark.asyncio
    async def test_join_waits_for_pending_retries(self):
        q = RateLimitedRetryQueue(requests_per_second=100, max_retries=2, retry_delay=0.02)
        op = flaky(1)
        future = q.enqueue(op)
        await asyncio.sleep(0.005)
        assert q.pending_retries == 1

        await q.join()
        assert future.done() and future.result() == "ok"
        assert q.pending_retries == 0

    @pytest.mark.asyncio
    async def test_abandoned_task_still_runs(self):
        q = RateLimitedRetryQueue(requests_per_second=100)
        op = flaky(0)
        future = q.enqueue(op)
        future.cancel()

        await q.join()
        assert op.calls["n"] == 1

    @pytest.mark.asyncio
    async def test_cancelling_drain_settles_running_task(self):
        q = RateLimitedRetryQueue(requests_per_second=100)
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(10)

        future = q.enqueue(slow)
        await started.wait()
        q._drain_task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await q._drain_task
        assert isinstance(future.exception(), asyncio.CancelledError)
        assert not q.is_processing


class TestQueueTask:
    @pytest.mark.asyncio
    async def test_state_transitions(self):
        loop = asyncio.get_running_loop()
        task = QueueTask(operation=flaky(0), future=loop.create_future())
        assert task.state == TaskState.PENDING
        assert task.attempts == 1
        assert task.task_id.startswith("task_")

        task.resolve("done")
        assert task.state == TaskState.COMPLETED
        assert task.future.result() == "done"

    @pytest.mark.asyncio
    async def test_reject_sets_terminal_state(self):
        loop = asyncio.get_running_loop()
        task = QueueTask(operation=flaky(0), future=loop.create_future())
        task.reject(RuntimeError("gone"))
        assert task.state == TaskState.FAILED_TERMINAL
        with pytest.raises(RuntimeError):
            task.future.result()
