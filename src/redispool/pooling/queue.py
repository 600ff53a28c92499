"""
Waiter queue

Pending acquire calls ordered by priority (higher first), then arrival.
Settled waiters are dropped lazily when they reach the head.
"""

import asyncio
import heapq
import itertools
from typing import Any, Iterator, List, Optional, Tuple


class Waiter:
    """One caller blocked in acquire()"""

    __slots__ = (
        "priority", "sequence", "future",
        "timeout_handle", "queued", "has_create", "borrow_attempts",
    )

    def __init__(self, priority: int, sequence: int, future: asyncio.Future):
        self.priority = priority
        self.sequence = sequence
        self.future = future
        self.timeout_handle: Optional[asyncio.TimerHandle] = None
        self.queued = False
        # A create issued on behalf of this waiter is in flight
        self.has_create = False
        self.borrow_attempts = 0

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (-self.priority, self.sequence)

    @property
    def pending(self) -> bool:
        return not self.future.done()

    def __lt__(self, other: "Waiter") -> bool:
        return self.sort_key < other.sort_key

    def resolve(self, resource: Any) -> None:
        self.cancel_timer()
        self.future.set_result(resource)

    def reject(self, error: BaseException) -> None:
        self.cancel_timer()
        self.future.set_exception(error)

    def cancel_timer(self) -> None:
        if self.timeout_handle is not None:
            self.timeout_handle.cancel()
            self.timeout_handle = None


class WaiterQueue:
    """Priority queue of waiters with O(log n) push/pop"""

    def __init__(self):
        self._heap: List[Waiter] = []
        self._counter = itertools.count()
        self._live = 0

    def new_waiter(self, priority: int, future: asyncio.Future) -> Waiter:
        return Waiter(priority, next(self._counter), future)

    def push(self, waiter: Waiter) -> None:
        """Queue a waiter; re-pushing keeps its original position"""
        heapq.heappush(self._heap, waiter)
        waiter.queued = True
        self._live += 1
        waiter.future.add_done_callback(lambda _: self.discard(waiter))

    def discard(self, waiter: Waiter) -> None:
        """Forget a waiter that settled while queued"""
        if waiter.queued:
            waiter.queued = False
            self._live -= 1
            if len(self._heap) - self._live > self._live:
                self._compact()

    def _compact(self) -> None:
        """Rebuild the heap from live waiters once dead entries outnumber them"""
        self._heap = [w for w in self._heap if w.queued and w.pending]
        heapq.heapify(self._heap)

    def pop(self) -> Optional[Waiter]:
        self._drop_settled()
        if not self._heap:
            return None
        waiter = heapq.heappop(self._heap)
        self.discard(waiter)
        return waiter

    def _drop_settled(self) -> None:
        while self._heap:
            head = self._heap[0]
            if head.queued and head.pending:
                return
            heapq.heappop(self._heap)
            self.discard(head)

    def __iter__(self) -> Iterator[Waiter]:
        """Live waiters in service order"""
        return iter(sorted(w for w in self._heap if w.queued and w.pending))

    def __len__(self) -> int:
        return self._live

    def __bool__(self) -> bool:
        return self._live > 0
