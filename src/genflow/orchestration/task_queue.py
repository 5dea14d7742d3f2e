"""Bounded-concurrency task queue for genflow.

Callers submit zero-argument coroutine functions; at most
``max_concurrency`` of them run at once and the rest wait in FIFO
order. A freed slot immediately starts the next waiting task.

The queue never transforms outcomes: each submission resolves or
raises with exactly what its task produced.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Set, TypeVar

import structlog

log = structlog.get_logger()

T = TypeVar("T")


@dataclass
class QueuedTask:
    """A submitted task waiting for a slot.

    Attributes:
        task: Zero-argument coroutine function to run.
        sequence: Submission order within the queue.
        future: Future resolved with the task's outcome.
    """

    task: Callable[[], Awaitable[Any]]
    sequence: int
    future: asyncio.Future


class TaskQueue:
    """FIFO queue with a ceiling on in-flight tasks.

    Admission happens synchronously on the event loop thread, so the
    check-and-increment of the active counter cannot interleave with
    another admission.
    """

    def __init__(self, max_concurrency: int, name: str = "standard") -> None:
        """Initialize the queue.

        Args:
            max_concurrency: Maximum number of tasks running at once.
            name: Label used in logs.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._max_concurrency = max_concurrency
        self._name = name
        self._pending: Deque[QueuedTask] = deque()
        self._running: Set[asyncio.Task] = set()
        self._active = 0
        self._sequence_counter = 0

        # Metrics
        self._total_submitted = 0
        self._total_succeeded = 0
        self._total_failed = 0

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Submit a task and wait for its outcome.

        Args:
            task: Zero-argument coroutine function.

        Returns:
            Whatever the task returns.

        Raises:
            Exception: Whatever the task raises.
        """
        loop = asyncio.get_running_loop()
        queued = QueuedTask(task=task, sequence=self._sequence_counter, future=loop.create_future())
        self._sequence_counter += 1
        self._total_submitted += 1

        self._pending.append(queued)
        log.debug(
            "task_queued",
            queue=self._name,
            sequence=queued.sequence,
            pending=len(self._pending),
            active=self._active,
        )
        self._schedule()

        return await queued.future

    def _schedule(self) -> None:
        """Start waiting tasks while there are free slots."""
        while self._active < self._max_concurrency and self._pending:
            queued = self._pending.popleft()
            self._active += 1
            runner = asyncio.get_running_loop().create_task(self._execute(queued))
            self._running.add(runner)
            runner.add_done_callback(self._running.discard)

    async def _execute(self, queued: QueuedTask) -> None:
        log.debug("task_started", queue=self._name, sequence=queued.sequence, active=self._active)
        try:
            result = await queued.task()
        except asyncio.CancelledError:
            queued.future.cancel()
            raise
        except Exception as e:
            self._total_failed += 1
            if not queued.future.done():
                queued.future.set_exception(e)
            log.debug("task_failed", queue=self._name, sequence=queued.sequence, error=str(e))
        except BaseException as e:
            self._total_failed += 1
            if not queued.future.done():
                queued.future.set_exception(e)
            raise
        else:
            self._total_succeeded += 1
            if not queued.future.done():
                queued.future.set_result(result)
            log.debug("task_finished", queue=self._name, sequence=queued.sequence)
        finally:
            self._active -= 1
            self._schedule()

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def active_count(self) -> int:
        """Tasks currently running."""
        return self._active

    @property
    def pending_count(self) -> int:
        """Tasks waiting for a slot."""
        return len(self._pending)

    @property
    def total_submitted(self) -> int:
        return self._total_submitted

    @property
    def total_succeeded(self) -> int:
        return self._total_succeeded

    @property
    def total_failed(self) -> int:
        return self._total_failed

    async def drain(self) -> None:
        """Wait until no task is pending or running."""
        while self._pending or self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
            await asyncio.sleep(0)
