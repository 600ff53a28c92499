"""
Per-resource bookkeeping
"""

import time
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ResourceState(str, Enum):
    """Lifecycle states of a pooled resource"""
    IDLE = "idle"
    BORROWED = "borrowed"
    VALIDATING = "validating"
    DESTROYING = "destroying"
    DESTROYED = "destroyed"


class PooledResource(Generic[T]):
    """Wraps one resource with its state and timestamps (monotonic seconds)"""

    __slots__ = ("resource", "state", "last_idle_at", "borrow_count")

    def __init__(self, resource: T):
        self.resource = resource
        self.state = ResourceState.IDLE
        self.last_idle_at = time.monotonic()
        self.borrow_count = 0

    @property
    def key(self) -> int:
        return id(self.resource)

    def mark_idle(self) -> None:
        self.state = ResourceState.IDLE
        self.last_idle_at = time.monotonic()

    def mark_borrowed(self) -> None:
        self.state = ResourceState.BORROWED
        self.borrow_count += 1

    def idle_time(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.monotonic()) - self.last_idle_at

    def __repr__(self) -> str:
        return f"<PooledResource {self.resource!r} state={self.state.value} borrows={self.borrow_count}>"
