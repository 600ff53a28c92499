"""
Pool lifecycle events

Pools report lifecycle changes to an optional emitter callable. The
emitter may be a plain function or a coroutine function.
"""

import asyncio
import inspect
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PoolEventType(str, Enum):
    """All event types emitted by a pool"""

    # Resource Events
    RESOURCE_CREATED = "resource:created"
    RESOURCE_CREATE_FAILED = "resource:create_failed"
    RESOURCE_DESTROYED = "resource:destroyed"
    RESOURCE_DESTROY_FAILED = "resource:destroy_failed"
    RESOURCE_EVICTED = "resource:evicted"
    RESOURCE_VALIDATION_FAILED = "resource:validation_failed"

    # Waiter Events
    WAITER_TIMEOUT = "waiter:timeout"

    # Pool Events
    POOL_DRAINED = "pool:drained"
    POOL_CLEARED = "pool:cleared"

    # Circuit Events
    CIRCUIT_OPENED = "circuit:opened"
    CIRCUIT_CLOSED = "circuit:closed"


class PoolEvent(BaseModel):
    """Event envelope"""

    event_type: PoolEventType
    data: Dict[str, Any] = Field(default_factory=dict)
    source: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class EventEmitter:
    """Delivers PoolEvents to a user callback without ever raising into the pool"""

    def __init__(self, source: str, callback: Optional[Callable[[PoolEvent], Any]] = None):
        self.source = source
        self.callback = callback
        self._tasks: Set[asyncio.Task] = set()

    def emit(self, event_type: PoolEventType, data: Optional[Dict[str, Any]] = None) -> None:
        if self.callback is None:
            return
        event = PoolEvent(event_type=event_type, data=data or {}, source=self.source)
        try:
            result = self.callback(event)
        except Exception as e:
            logger.error(f"Event handler for {event_type.value} failed: {e}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Event handler failed: {task.exception()}")

    async def flush(self) -> None:
        """Wait for in-flight async handlers"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
