"""FIFO admission gate for outbound calls to the generation provider.

Work submitted to an :class:`AdmissionGate` starts in submission order and
never more than ``limit`` operations run at once. The gate does not retry,
time out or bound its queue: a rate-limit failure raised by an operation is
handed back to the submitter untouched, and the waiting list grows with
demand.

Usage::

    gate = AdmissionGate(limit=1)
    result = await gate.submit(lambda: client.post_json(...))
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Optional, Set, TypeVar

logger = logging.getLogger("picoart.throttle")

T = TypeVar("T")


@dataclass
class QueuedTask:
    position: int
    operation: Callable[[], Awaitable[Any]]
    result: asyncio.Future = field(repr=False)


@dataclass(frozen=True)
class GateStats:
    limit: int
    in_flight: int
    waiting: int
    submitted: int
    completed: int
    failed: int

    def to_dict(self) -> dict[str, int]:
        return {
            "limit": self.limit,
            "in_flight": self.in_flight,
            "waiting": self.waiting,
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
        }


class AdmissionGate:
    def __init__(self, limit: int = 1) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self._limit = limit
        self._waiting: Deque[QueuedTask] = deque()
        self._in_flight = 0
        self._runners: Set[asyncio.Task] = set()
        self._positions = itertools.count()
        self._submitted = 0
        self._completed = 0
        self._failed = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return len(self._waiting)

    def stats(self) -> GateStats:
        return GateStats(
            limit=self._limit,
            in_flight=self._in_flight,
            waiting=len(self._waiting),
            submitted=self._submitted,
            completed=self._completed,
            failed=self._failed,
        )

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Queue ``operation`` and return its own result or exception.

        The returned awaitable is shielded: a caller that goes away (for
        example a disconnected HTTP client) does not cancel work that has
        already been queued.
        """
        loop = asyncio.get_running_loop()
        task = QueuedTask(position=next(self._positions), operation=operation, result=loop.create_future())
        task.result.add_done_callback(_mark_retrieved)
        self._waiting.append(task)
        self._submitted += 1
        logger.debug("Queued task #%d (waiting=%d, in_flight=%d)", task.position, len(self._waiting), self._in_flight)
        self._dispatch()
        return await asyncio.shield(task.result)

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait until nothing is queued or running. Returns False on timeout."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._runners or self._waiting:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logger.warning("Gate drain timed out (waiting=%d, in_flight=%d)", len(self._waiting), self._in_flight)
                return False
            if not self._runners:
                await asyncio.sleep(0)
                continue
            await asyncio.wait(set(self._runners), timeout=remaining)
        return True

    def _dispatch(self) -> None:
        while self._waiting and self._in_flight < self._limit:
            task = self._waiting.popleft()
            self._in_flight += 1
            runner = asyncio.get_running_loop().create_task(self._run(task))
            self._runners.add(runner)
            runner.add_done_callback(self._runners.discard)

    async def _run(self, task: QueuedTask) -> None:
        logger.debug("Starting task #%d", task.position)
        try:
            value = await task.operation()
        except asyncio.CancelledError:
            if not task.result.done():
                task.result.cancel()
            self._failed += 1
            raise
        except Exception as exc:
            self._failed += 1
            logger.debug("Task #%d failed: %s", task.position, exc)
            if not task.result.done():
                task.result.set_exception(exc)
        else:
            self._completed += 1
            if not task.result.done():
                task.result.set_result(value)
        finally:
            self._in_flight -= 1
            self._dispatch()


def _mark_retrieved(future: asyncio.Future) -> None:
    # The submitter may have gone away; fetch the exception so the loop does not report it as unretrieved.
    if not future.cancelled():
        future.exception()
