"""
Tests for the waiter queue
"""

import asyncio

import pytest

from redispool.pooling.queue import WaiterQueue


@pytest.fixture
def queue():
    return WaiterQueue()


def _push(queue, priority, loop):
    waiter = queue.new_waiter(priority, loop.create_future())
    queue.push(waiter)
    return waiter


class TestWaiterQueue:

    @pytest.mark.asyncio
    async def test_orders_by_priority_then_arrival(self, queue):
        loop = asyncio.get_running_loop()
        a = _push(queue, 0, loop)
        b = _push(queue, 5, loop)
        c = _push(queue, 5, loop)
        d = _push(queue, 10, loop)

        assert list(queue) == [d, b, c, a]
        assert [queue.pop() for _ in range(4)] == [d, b, c, a]
        assert queue.pop() is None
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_settled_waiters_are_skipped(self, queue):
        loop = asyncio.get_running_loop()
        first = _push(queue, 0, loop)
        second = _push(queue, 0, loop)

        first.future.cancel()
        await asyncio.sleep(0)

        assert len(queue) == 1
        assert queue.pop() is second
        assert not queue

    @pytest.mark.asyncio
    async def test_settled_waiters_behind_live_head_are_compacted(self, queue):
        loop = asyncio.get_running_loop()
        head = _push(queue, 10, loop)
        behind = [_push(queue, 0, loop) for _ in range(4)]

        for waiter in behind:
            waiter.future.cancel()
        await asyncio.sleep(0)

        assert len(queue) == 1
        assert queue._heap == [head]
        assert list(queue) == [head]

    @pytest.mark.asyncio
    async def test_discard_is_idempotent(self, queue):
        loop = asyncio.get_running_loop()
        waiter = _push(queue, 0, loop)

        queue.discard(waiter)
        queue.discard(waiter)
        waiter.future.cancel()
        await asyncio.sleep(0)

        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_requeued_waiter_keeps_position(self, queue):
        loop = asyncio.get_running_loop()
        early = _push(queue, 1, loop)
        late = _push(queue, 1, loop)

        assert queue.pop() is early
        queue.push(early)

        assert queue.pop() is early
        assert queue.pop() is late

    @pytest.mark.asyncio
    async def test_resolve_cancels_timer(self, queue):
        loop = asyncio.get_running_loop()
        waiter = _push(queue, 0, loop)
        fired = []
        waiter.timeout_handle = loop.call_later(0.01, fired.append, True)

        waiter.resolve("conn")
        await asyncio.sleep(0.02)

        assert fired == []
        assert waiter.future.result() == "conn"
        assert len(queue) == 0
