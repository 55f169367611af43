"""
Rate-Limited Retry Queue — Paces outbound sends through a single provider quota.

Every email send goes through one queue instance so that the provider never
sees more than `requests_per_second` calls:

  submit() ──▶ deque ──▶ drain loop ──▶ operation()
                 ▲            │
                 │  front     │ failure, retries left
                 └── cooldown ◀┘

- Executions are serialized and spaced at least `min_interval` apart,
  measured from the start of one execution to the start of the next.
- A failed task waits out `retry_delay` in the background, then jumps to the
  front of the queue.
- After `max_retries` failed retries the caller receives the last error.

Everything runs on the event loop; no locks are needed as long as shared
state is never read and written across an await without re-checking it.
"""
from __future__ import annotations

import asyncio
import time
import uuid
import structlog
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = structlog.get_logger()

Operation = Callable[[], Awaitable[Any]]


# ──────────────────────────────────────────────────────────────
#  Task Model
# ──────────────────────────────────────────────────────────────

class TaskState(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED_RETRYABLE = "failed_retryable"
    FAILED_TERMINAL = "failed_terminal"


@dataclass
class QueueTask:
    """A unit of queued work."""
    operation: Operation
    future: asyncio.Future
    max_retries: int = 3
    retry_count: int = 0
    label: str = ""                     # notification type, for logs only
    state: TaskState = TaskState.PENDING
    task_id: str = field(default_factory=lambda: f"task_{uuid.uuid4().hex[:12]}")

    @property
    def attempts(self) -> int:
        return self.retry_count + 1

    def resolve(self, result: Any):
        self.state = TaskState.COMPLETED
        if not self.future.done():
            self.future.set_result(result)

    def reject(self, error: BaseException):
        self.state = TaskState.FAILED_TERMINAL
        if not self.future.done():
            self.future.set_exception(error)


# ──────────────────────────────────────────────────────────────
#  Queue
# ──────────────────────────────────────────────────────────────

class RateLimitedRetryQueue:
    """
    Process-local queue that runs one operation at a time at a fixed cadence.

    Usage:
        queue = RateLimitedRetryQueue(requests_per_second=1, max_retries=3, retry_delay=5.0)
        result = await queue.submit(lambda: client.send(request))
        future = queue.enqueue(lambda: client.send(request), retry_limit=0)

    `clock` and `sleep` are injectable so tests can drive a virtual clock.
    """

    def __init__(
        self,
        requests_per_second: float = 1.0,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        name: str = "email",
    ):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if retry_delay < 0:
            raise ValueError("retry_delay must not be negative")

        self.name = name
        self.min_interval = 1.0 / requests_per_second
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._clock = clock
        self._sleep = sleep

        self._queue: deque[QueueTask] = deque()
        self._processing = False
        self._last_request_time: Optional[float] = None
        self._drain_task: Optional[asyncio.Task] = None
        self._retry_timers: set[asyncio.Task] = set()

    # ── Submission ────────────────────────────────────────────

    def enqueue(self, operation: Operation, retry_limit: int = None, label: str = "") -> asyncio.Future:
        """Queue `operation` and return the future of its eventual result."""
        if retry_limit is not None and retry_limit < 0:
            raise ValueError("retry_limit must not be negative")
        loop = asyncio.get_running_loop()
        task = QueueTask(
            operation=operation,
            future=loop.create_future(),
            max_retries=self.max_retries if retry_limit is None else retry_limit,
            label=label,
        )
        self._queue.append(task)
        logger.debug("task_enqueued",
                     queue=self.name,
                     task_id=task.task_id,
                     label=label,
                     queue_length=len(self._queue))
        self._ensure_draining()
        return task.future

    async def submit(self, operation: Operation, retry_limit: int = None, label: str = "") -> Any:
        """Queue `operation` and wait for its result or its terminal error."""
        return await self.enqueue(operation, retry_limit=retry_limit, label=label)

    # ── Introspection ─────────────────────────────────────────

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def pending_retries(self) -> int:
        return len(self._retry_timers)

    async def join(self):
        """Wait until nothing is queued, draining or cooling down."""
        while self._processing or self._queue or self._retry_timers:
            if self._queue and not self._processing:
                self._ensure_draining()
            waiting = list(self._retry_timers)
            if self._drain_task is not None:
                waiting.append(self._drain_task)
            if waiting:
                await asyncio.wait(waiting)
            else:
                await asyncio.sleep(0)

    # ── Drain loop ────────────────────────────────────────────

    def _ensure_draining(self):
        if self._processing:
            return
        self._processing = True
        self._drain_task = asyncio.create_task(self._drain())

    def _time_until_next_slot(self) -> float:
        if self._last_request_time is None:
            return 0.0
        elapsed = self._clock() - self._last_request_time
        return self.min_interval - elapsed

    async def _drain(self):
        try:
            while self._queue:
                wait = self._time_until_next_slot()
                while wait > 0:
                    await self._sleep(wait)
                    wait = self._time_until_next_slot()

                task = self._queue.popleft()
                self._last_request_time = self._clock()
                await self._execute(task)
        finally:
            self._processing = False
            if self._queue and not asyncio.current_task().cancelling():
                self._ensure_draining()

    async def _execute(self, task: QueueTask):
        task.state = TaskState.EXECUTING
        try:
            result = await task.operation()
        except asyncio.CancelledError as e:
            # the drain itself is being cancelled: settle the task and stop
            if asyncio.current_task().cancelling():
                task.reject(e)
                raise
            self._handle_failure(task, e)
            return
        except Exception as e:
            self._handle_failure(task, e)
            return
        except BaseException as e:
            task.reject(e)
            raise

        task.resolve(result)
        logger.debug("task_completed",
                     queue=self.name,
                     task_id=task.task_id,
                     label=task.label,
                     attempts=task.attempts)

    def _handle_failure(self, task: QueueTask, error: BaseException):
        if task.retry_count < task.max_retries:
            task.retry_count += 1
            task.state = TaskState.FAILED_RETRYABLE
            logger.warning("task_retry_scheduled",
                           queue=self.name,
                           task_id=task.task_id,
                           label=task.label,
                           attempt=task.retry_count,
                           max_retries=task.max_retries,
                           delay=self.retry_delay,
                           error=str(error) or repr(error))
            timer = asyncio.create_task(self._requeue_after_delay(task))
            self._retry_timers.add(timer)
            timer.add_done_callback(self._retry_timers.discard)
        else:
            logger.error("task_failed",
                         queue=self.name,
                         task_id=task.task_id,
                         label=task.label,
                         attempts=task.attempts,
                         error=str(error) or repr(error))
            task.reject(error)

    async def _requeue_after_delay(self, task: QueueTask):
        await self._sleep(self.retry_delay)
        task.state = TaskState.PENDING
        self._queue.appendleft(task)
        self._ensure_draining()
