"""
Tests for AdmissionGate.

Covers FIFO start order, concurrency capping, isolation of failing tasks and
settlement of every submitted task.
"""

import asyncio

import pytest

from picoart.utils.errors import UpstreamRateLimited
from picoart.utils.throttle import AdmissionGate


class TestAdmissionGate:
    """Ordering and concurrency guarantees of the admission gate."""

    @pytest.mark.asyncio
    async def test_immediate_dispatch_when_idle(self):
        """An idle gate runs the operation right away and returns its value."""
        gate = AdmissionGate()

        async def operation():
            return 42

        assert await gate.submit(operation) == 42
        assert gate.in_flight == 0
        assert gate.waiting == 0

    @pytest.mark.asyncio
    async def test_fifo_order_with_limit_one(self):
        """A, B, C submitted in order: each starts only after the previous one ends."""
        gate = AdmissionGate(limit=1)
        events = []

        def make(name, delay):
            async def operation():
                events.append(f"start:{name}")
                await asyncio.sleep(delay)
                events.append(f"end:{name}")
                return name
            return operation

        results = await asyncio.gather(
            gate.submit(make("A", 0.03)),
            gate.submit(make("B", 0.01)),
            gate.submit(make("C", 0.0)),
        )

        assert results == ["A", "B", "C"]
        assert events == ["start:A", "end:A", "start:B", "end:B", "start:C", "end:C"]

    @pytest.mark.asyncio
    async def test_failure_does_not_block_next_task(self):
        """
        Isolation: task A raising must not stop task B.

        B's result is independent of A's failure and A's exception reaches its own caller.
        """
        gate = AdmissionGate(limit=1)

        async def failing():
            await asyncio.sleep(0.01)
            raise UpstreamRateLimited(15, "slow down")

        async def succeeding():
            return "ok"

        first = asyncio.ensure_future(gate.submit(failing))
        second = asyncio.ensure_future(gate.submit(succeeding))

        with pytest.raises(UpstreamRateLimited) as exc_info:
            await first
        assert exc_info.value.retry_after == 15
        assert await second == "ok"

        stats = gate.stats()
        assert stats.failed == 1
        assert stats.completed == 1

    @pytest.mark.asyncio
    async def test_exception_is_propagated_unchanged(self):
        """The gate hands back the very exception object the operation raised."""
        gate = AdmissionGate()
        error = ValueError("boom")

        async def operation():
            raise error

        with pytest.raises(ValueError) as exc_info:
            await gate.submit(operation)
        assert exc_info.value is error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 2, 3])
    async def test_at_most_k_concurrent(self, limit):
        """With limit K, never more than K operations run at the same time."""
        gate = AdmissionGate(limit=limit)
        running = 0
        peak = 0

        async def operation(i):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.005 * (i % 3))
            running -= 1
            return i

        results = await asyncio.gather(*(gate.submit(lambda i=i: operation(i)) for i in range(20)))

        assert results == list(range(20))
        assert peak == limit

    @pytest.mark.asyncio
    async def test_start_order_is_submission_order_with_higher_limit(self):
        """Even with limit > 1 operations start in FIFO order."""
        gate = AdmissionGate(limit=3)
        started = []

        async def operation(i):
            started.append(i)
            await asyncio.sleep(0.001 * (10 - i))
            return i

        await asyncio.gather(*(gate.submit(lambda i=i: operation(i)) for i in range(10)))

        assert started == list(range(10))

    @pytest.mark.asyncio
    async def test_every_task_settles(self):
        """Settlement completeness: mixed success and failure, nothing left pending."""
        gate = AdmissionGate(limit=2)

        async def operation(i):
            await asyncio.sleep(0)
            if i % 2:
                raise RuntimeError(f"task {i}")
            return i

        outcomes = await asyncio.wait_for(
            asyncio.gather(*(gate.submit(lambda i=i: operation(i)) for i in range(10)), return_exceptions=True),
            timeout=2,
        )

        assert [o for o in outcomes if not isinstance(o, Exception)] == [0, 2, 4, 6, 8]
        assert sum(isinstance(o, RuntimeError) for o in outcomes) == 5
        stats = gate.stats()
        assert stats.submitted == 10
        assert stats.completed + stats.failed == 10
        assert stats.in_flight == 0 and stats.waiting == 0

    @pytest.mark.asyncio
    async def test_queued_tasks_are_counted_as_waiting(self):
        """While one task holds the only slot, later ones wait in the queue."""
        gate = AdmissionGate(limit=1)
        release = asyncio.Event()

        async def blocker():
            await release.wait()
            return "done"

        async def quick():
            return "quick"

        first = asyncio.ensure_future(gate.submit(blocker))
        second = asyncio.ensure_future(gate.submit(quick))
        await asyncio.sleep(0)

        assert gate.in_flight == 1
        assert gate.waiting == 1

        release.set()
        assert await first == "done"
        assert await second == "quick"

    @pytest.mark.asyncio
    async def test_caller_cancellation_does_not_cancel_admitted_work(self):
        """A caller that goes away leaves its operation running to completion."""
        gate = AdmissionGate(limit=1)
        finished = asyncio.Event()

        async def operation():
            await asyncio.sleep(0.01)
            finished.set()
            return "late"

        caller = asyncio.ensure_future(gate.submit(operation))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await asyncio.wait_for(finished.wait(), timeout=1)
        assert await gate.drain(timeout=1)
        assert gate.stats().completed == 1

    @pytest.mark.asyncio
    async def test_drain_waits_for_queue(self):
        """drain() returns True once queued and running work has finished."""
        gate = AdmissionGate(limit=1)
        done = []

        async def operation(i):
            await asyncio.sleep(0.005)
            done.append(i)

        callers = [asyncio.ensure_future(gate.submit(lambda i=i: operation(i))) for i in range(3)]
        await asyncio.sleep(0)

        assert await gate.drain(timeout=1) is True
        assert done == [0, 1, 2]
        await asyncio.gather(*callers)

    @pytest.mark.asyncio
    async def test_drain_timeout(self):
        """drain() gives up after the timeout while work is still running."""
        gate = AdmissionGate(limit=1)
        release = asyncio.Event()

        async def blocker():
            await release.wait()

        caller = asyncio.ensure_future(gate.submit(blocker))
        await asyncio.sleep(0)

        assert await gate.drain(timeout=0.01) is False

        release.set()
        await caller

    def test_invalid_limit(self):
        """A limit below 1 is rejected."""
        with pytest.raises(ValueError):
            AdmissionGate(limit=0)
