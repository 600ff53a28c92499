"""
Generic resource pool

Bounded lifecycle management for expensive, reusable resources such as
network clients. The pool keeps idle and borrowed sets, queues callers by
priority when it is at capacity, creates and destroys resources through a
factory, tops itself up to `min_size`, evicts resources that sit idle too
long, and drains/clears on shutdown.

All bookkeeping runs on the event loop thread without awaiting, so a
released resource is handed to the next waiter before any other
acquire/release call can observe it. The only suspension points are the
factory calls and the caller's wait for a resource.
"""

import asyncio
import inspect
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, Dict, Generic, List, Optional, Set, TypeVar, Union

from ..core.config import PoolOptions
from ..core.errors import (
    AcquireTimeoutError,
    CircuitOpenError,
    FactoryCreateError,
    FactoryDestroyError,
    InvalidResourceError,
    PoolDrainingError,
    PoolExhaustedError,
    PoolShutdownError,
    ResourceValidationError,
)
from ..core.events import EventEmitter, PoolEvent, PoolEventType
from ..core.logger import PoolLogger, StdlibLogger
from .circuit_breaker import CircuitBreaker, CircuitState
from .factory import ResourceFactory
from .queue import Waiter, WaiterQueue
from .resource import PooledResource, ResourceState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Pool(Generic[T]):
    """
    Pool of resources produced by a ResourceFactory

    Invariant: available + borrowed + validating + pending_creates <= max_size.
    Each resource is in exactly one of idle, borrowed, validating or
    destroying; destroyed resources are forgotten.
    """

    def __init__(
        self,
        factory: ResourceFactory[T],
        options: Union[PoolOptions, Dict[str, Any], None] = None,
        *,
        name: str = "pool",
        logger: Optional[PoolLogger] = None,
        event_emitter: Optional[Callable[[PoolEvent], Any]] = None,
    ):
        if options is None:
            options = PoolOptions()
        elif isinstance(options, dict):
            options = PoolOptions.model_validate(options)

        self.name = name
        self.options = options
        self.logger: PoolLogger = logger or StdlibLogger(logging.getLogger(__name__))
        self._factory = factory
        self._events = EventEmitter(f"pool:{name}", event_emitter)

        # Resource sets
        self._idle: Deque[PooledResource[T]] = deque()
        self._borrowed: Dict[int, PooledResource[T]] = {}
        self._validating: Dict[int, PooledResource[T]] = {}
        self._pending_creates = 0

        # Waiters
        self._waiters = WaiterQueue()
        self._ready_futures: List[asyncio.Future] = []
        self._drain_future: Optional[asyncio.Future] = None

        # Background work
        self._create_tasks: Set[asyncio.Task] = set()
        self._validate_tasks: Set[asyncio.Task] = set()
        self._destroy_tasks: Set[asyncio.Task] = set()
        self._evictor_task: Optional[asyncio.Task] = None
        self._retry_handle: Optional[asyncio.TimerHandle] = None

        # State
        self._started = False
        self._draining = False
        self._closed = False

        self._breaker: Optional[CircuitBreaker] = None
        if options.circuit_failure_threshold is not None:
            self._breaker = CircuitBreaker(
                failure_threshold=options.circuit_failure_threshold,
                recovery_timeout=options.circuit_recovery_timeout,
                success_threshold=options.circuit_success_threshold,
                on_state_change=self._on_circuit_change,
            )

        # Metrics
        self.metrics = {
            "resources_created": 0,
            "resources_destroyed": 0,
            "create_failures": 0,
            "destroy_failures": 0,
            "validation_failures": 0,
            "resources_evicted": 0,
            "acquired": 0,
            "released": 0,
            "acquire_timeouts": 0,
        }

        if options.autostart:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.debug(f"Pool {name} created outside an event loop; starting on first acquire")
            else:
                self.start()

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Resources counted against max_size, including creates in flight"""
        return len(self._idle) + len(self._borrowed) + len(self._validating) + self._pending_creates

    @property
    def available(self) -> int:
        return len(self._idle)

    @property
    def borrowed(self) -> int:
        return len(self._borrowed)

    @property
    def pending(self) -> int:
        """Callers waiting for a resource"""
        return len(self._waiters)

    @property
    def pending_creates(self) -> int:
        return self._pending_creates

    @property
    def spare_capacity(self) -> int:
        return self.options.max_size - self.size

    @property
    def min_size(self) -> int:
        return self.options.min_size

    @property
    def max_size(self) -> int:
        return self.options.max_size

    @property
    def draining(self) -> bool:
        return self._draining

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def circuit_state(self) -> Optional[CircuitState]:
        return self._breaker.state if self._breaker else None

    def is_borrowed(self, resource: T) -> bool:
        pooled = self._borrowed.get(id(resource))
        return pooled is not None and pooled.resource is resource

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin topping up to min_size and schedule the eviction sweep"""
        if self._closed:
            raise PoolShutdownError(context={"pool": self.name})
        if self._started:
            return
        self._started = True
        self._ensure_minimum()
        self._schedule_evictor()
        logger.debug(f"Pool {self.name} started (min={self.min_size}, max={self.max_size})")

    async def ready(self) -> None:
        """Wait until min_size resources exist"""
        if not self._started:
            self.start()
        if self._min_reached() or self._draining:
            return
        future = asyncio.get_running_loop().create_future()
        self._ready_futures.append(future)
        await future

    async def acquire(self, priority: int = 0, timeout: Optional[float] = None) -> T:
        """
        Borrow a resource

        Args:
            priority: Higher values are served first; equal priorities are FIFO
            timeout: Maximum wait in seconds, defaults to options.acquire_timeout

        Raises:
            PoolShutdownError, PoolDrainingError, PoolExhaustedError,
            AcquireTimeoutError, FactoryCreateError, ResourceValidationError
        """
        if self._closed:
            raise PoolShutdownError(context={"pool": self.name})
        if self._draining:
            raise PoolDrainingError(context={"pool": self.name})
        if not self._started:
            self.start()

        # Only callers that would actually have to queue count against max_waiting
        max_waiting = self.options.max_waiting
        if (max_waiting is not None and not self._idle and self.spare_capacity <= 0
                and len(self._waiters) >= max_waiting):
            raise PoolExhaustedError(context={"pool": self.name, "max_waiting": max_waiting})

        loop = asyncio.get_running_loop()
        waiter = self._waiters.new_waiter(priority, loop.create_future())
        self._waiters.push(waiter)

        if timeout is None:
            timeout = self.options.acquire_timeout
        if timeout is not None:
            waiter.timeout_handle = loop.call_later(timeout, self._expire_waiter, waiter, timeout)

        self._dispatch()

        try:
            return await waiter.future
        except asyncio.CancelledError:
            waiter.cancel_timer()
            future = waiter.future
            if future.done() and not future.cancelled() and future.exception() is None:
                # Handed a resource just as the caller went away
                self._reclaim(future.result())
            self._check_drained()
            raise

    async def release(self, resource: T) -> None:
        """Return a borrowed resource"""
        pooled = self._take_borrowed(resource)
        self.metrics["released"] += 1
        self._make_available(pooled)
        self._dispatch()
        self._check_drained()

    async def destroy(self, resource: T) -> None:
        """Surrender a borrowed resource so it is destroyed instead of reused"""
        pooled = self._take_borrowed(resource)
        task = self._destroy_pooled(pooled, reason="requested")
        self._dispatch()
        self._check_drained()
        await asyncio.shield(task)

    async def drain(self) -> None:
        """Stop accepting acquire calls and wait for every borrowed resource to return"""
        if self._closed:
            raise PoolShutdownError(context={"pool": self.name})

        if not self._draining:
            self._draining = True
            self._stop_background()
            self._resolve_ready()
            self.logger.info(f"Draining pool {self.name}.", self._summary())

        if self._drain_future is None:
            self._drain_future = asyncio.get_running_loop().create_future()
        self._check_drained()
        await asyncio.shield(self._drain_future)

    async def clear(self) -> None:
        """
        Destroy every idle resource and shut the pool down

        Resources still borrowed are destroyed when they are released.
        Queued waiters are rejected with PoolShutdownError.
        """
        if self._closed:
            return

        self._closed = True
        self._draining = True
        self._stop_background()

        while self._waiters:
            waiter = self._waiters.pop()
            if waiter is None:
                break
            waiter.reject(PoolShutdownError(context={"pool": self.name}))

        # Resources still being created or validated land in the destroy path
        in_flight = list(self._create_tasks) + list(self._validate_tasks)
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)

        while self._idle:
            self._destroy_pooled(self._idle.popleft(), reason="clear")

        if self._destroy_tasks:
            await asyncio.gather(*list(self._destroy_tasks), return_exceptions=True)
        await self._events.flush()

        self._resolve_ready()
        if self._drain_future is not None and not self._drain_future.done():
            self._drain_future.set_result(None)

        self.logger.info(f"Cleared pool {self.name}.", self._summary())
        self._events.emit(PoolEventType.POOL_CLEARED, self._summary())

    async def use(self, fn: Callable[[T], Union[Any, Awaitable[Any]]], priority: int = 0) -> Any:
        """Run fn with a borrowed resource and give it back afterwards"""
        async with self.connection(priority) as resource:
            result = fn(resource)
            if inspect.isawaitable(result):
                result = await result
            return result

    @asynccontextmanager
    async def connection(self, priority: int = 0, timeout: Optional[float] = None) -> AsyncIterator[T]:
        """Borrow a resource for the duration of a block; errors destroy it"""
        resource = await self.acquire(priority, timeout)
        failed = False
        try:
            yield resource
        except Exception:
            failed = True
            raise
        finally:
            if self.is_borrowed(resource):
                if failed:
                    await self.destroy(resource)
                else:
                    await self.release(resource)

    def evict(self) -> int:
        """Destroy idle resources past idle_timeout, oldest first, never going below min_size"""
        idle_timeout = self.options.idle_timeout
        if idle_timeout is None or self._closed:
            return 0

        now = time.monotonic()
        evicted = 0
        for examined, pooled in enumerate(list(self._idle)):
            if examined >= self.options.evictions_per_run:
                break
            if self._live_count() <= self.min_size:
                break
            idle_for = pooled.idle_time(now)
            if idle_for > idle_timeout:
                self._idle.remove(pooled)
                self.metrics["resources_evicted"] += 1
                self.logger.debug(f"Evicting resource idle for {idle_for:.1f}s from pool {self.name}.")
                self._events.emit(PoolEventType.RESOURCE_EVICTED, {"idle_seconds": idle_for})
                self._destroy_pooled(pooled, reason="idle")
                evicted += 1

        if evicted:
            self._dispatch()
        return evicted

    def get_stats(self) -> Dict[str, Any]:
        """Get pool statistics"""
        return {
            "name": self.name,
            "size": self.size,
            "available": self.available,
            "borrowed": self.borrowed,
            "validating": len(self._validating),
            "pending": self.pending,
            "pending_creates": self._pending_creates,
            "spare_capacity": self.spare_capacity,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "draining": self._draining,
            "closed": self._closed,
            "circuit": self._breaker.get_stats() if self._breaker else None,
            **self.metrics,
        }

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _dispatch(self) -> None:
        """Serve waiters from idle, create for unmet demand, top up to min_size"""
        if not self._started:
            return

        while self._idle and self._waiters:
            waiter = self._waiters.pop()
            if waiter is None:
                break
            pooled = self._take_idle()
            if self.options.test_on_borrow:
                self._validate_for(pooled, waiter)
            else:
                self._hand_over(pooled, waiter)

        self._create_for_waiters()
        self._ensure_minimum()

    def _create_for_waiters(self) -> None:
        shortfall = len(self._waiters) - self._pending_creates
        if shortfall <= 0 or self.spare_capacity <= 0:
            return

        for waiter in self._waiters:
            if shortfall <= 0 or self.spare_capacity <= 0:
                break
            if waiter.has_create:
                continue
            if not self._create_allowed():
                if self._breaker.state != CircuitState.OPEN:
                    # Half-open: wait for the trial create
                    break
                self._waiters.discard(waiter)
                waiter.reject(CircuitOpenError(
                    context={"pool": self.name, "retry_after": round(self._breaker.retry_after(), 3)}
                ))
                continue
            self._create_resource(waiter)
            shortfall -= 1

    def _ensure_minimum(self) -> None:
        if self._draining or self._closed or not self._started:
            return
        if self._retry_handle is not None:
            return

        for _ in range(self.min_size - self.size):
            if not self._create_allowed():
                if self._breaker.state == CircuitState.OPEN:
                    self._schedule_retry(self._breaker.retry_after())
                # Half-open: the trial create re-dispatches when it settles
                break
            self._create_resource(None)

    def _create_allowed(self) -> bool:
        return self._breaker is None or self._breaker.allow_request()

    def _schedule_retry(self, delay: float) -> None:
        if self._retry_handle is not None or self._draining or self._closed:
            return
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(delay, self._retry_min_fill)

    def _retry_min_fill(self) -> None:
        self._retry_handle = None
        self._dispatch()

    def _schedule_evictor(self) -> None:
        if self.options.eviction_interval > 0 and self._evictor_task is None:
            self._evictor_task = asyncio.ensure_future(self._run_evictor())

    async def _run_evictor(self) -> None:
        while not self._draining:
            await asyncio.sleep(self.options.eviction_interval)
            self.evict()

    def _stop_background(self) -> None:
        if self._evictor_task is not None:
            self._evictor_task.cancel()
            self._evictor_task = None
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _expire_waiter(self, waiter: Waiter, timeout: float) -> None:
        waiter.timeout_handle = None
        if not waiter.pending:
            return
        self._waiters.discard(waiter)
        self.metrics["acquire_timeouts"] += 1
        waiter.reject(AcquireTimeoutError(
            context={"pool": self.name, "timeout": timeout, "priority": waiter.priority}
        ))
        self._events.emit(PoolEventType.WAITER_TIMEOUT, {"timeout": timeout, "priority": waiter.priority})
        self._check_drained()

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _take_idle(self) -> PooledResource[T]:
        return self._idle.popleft() if self.options.fifo else self._idle.pop()

    def _take_borrowed(self, resource: T) -> PooledResource[T]:
        pooled = self._borrowed.get(id(resource))
        if pooled is None or pooled.resource is not resource:
            raise InvalidResourceError(context={"pool": self.name, "resource": repr(resource)})
        del self._borrowed[pooled.key]
        return pooled

    def _hand_over(self, pooled: PooledResource[T], waiter: Waiter) -> None:
        pooled.mark_borrowed()
        self._borrowed[pooled.key] = pooled
        self.metrics["acquired"] += 1
        waiter.resolve(pooled.resource)

    def _make_available(self, pooled: PooledResource[T]) -> None:
        if self._closed:
            self._destroy_pooled(pooled, reason="shutdown")
        else:
            pooled.mark_idle()
            self._idle.append(pooled)

    def _reclaim(self, resource: T) -> None:
        if self.is_borrowed(resource):
            self._make_available(self._take_borrowed(resource))
            self._dispatch()

    def _live_count(self) -> int:
        return len(self._idle) + len(self._borrowed) + len(self._validating)

    def _min_reached(self) -> bool:
        return self._live_count() >= self.min_size

    def _check_ready(self) -> None:
        if self._min_reached():
            self._resolve_ready()

    def _resolve_ready(self) -> None:
        futures, self._ready_futures = self._ready_futures, []
        for future in futures:
            if not future.done():
                future.set_result(None)

    def _check_drained(self) -> None:
        if not self._draining or self._drain_future is None or self._drain_future.done():
            return
        if self._waiters or self._borrowed or self._validating:
            return
        self._drain_future.set_result(None)
        self.logger.info(f"Pool {self.name} drained.", self._summary())
        self._events.emit(PoolEventType.POOL_DRAINED, self._summary())

    def _summary(self) -> Dict[str, int]:
        return {"available": self.available, "borrowed": self.borrowed, "pending": self.pending}

    def _track(self, tasks: Set[asyncio.Task], coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        tasks.add(task)
        task.add_done_callback(tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Factory calls
    # ------------------------------------------------------------------

    def _create_resource(self, waiter: Optional[Waiter]) -> None:
        self._pending_creates += 1
        if waiter is not None:
            waiter.has_create = True
        self._track(self._create_tasks, self._run_create(waiter))

    async def _run_create(self, waiter: Optional[Waiter]) -> None:
        resource = None
        error: Optional[Exception] = None
        try:
            resource = await self._factory.create()
        except Exception as e:
            error = e
        finally:
            self._pending_creates -= 1
            if waiter is not None:
                waiter.has_create = False

        if error is not None:
            self._on_create_failed(error, waiter)
        else:
            self._on_created(resource)

        self._dispatch()
        self._check_ready()
        self._check_drained()

    def _on_created(self, resource: T) -> None:
        if self._breaker:
            self._breaker.record_success()
        self.metrics["resources_created"] += 1
        pooled = PooledResource(resource)
        self._make_available(pooled)
        self.logger.debug(f"Created resource for pool {self.name}.")
        self._events.emit(PoolEventType.RESOURCE_CREATED, {"size": self.size})

    def _on_create_failed(self, error: Exception, waiter: Optional[Waiter]) -> None:
        if self._breaker:
            self._breaker.record_failure()
        self.metrics["create_failures"] += 1

        wrapped = FactoryCreateError(context={"pool": self.name}, cause=error)
        wrapped.__cause__ = error
        self.logger.error(f"Failed to create resource for pool {self.name}.", error)
        self._events.emit(PoolEventType.RESOURCE_CREATE_FAILED, {
            "error": str(error),
            "background": waiter is None,
        })

        if waiter is None:
            self._schedule_retry(self.options.min_fill_retry_delay)
        elif waiter.pending:
            self._waiters.discard(waiter)
            waiter.reject(wrapped)

    def _validate_for(self, pooled: PooledResource[T], waiter: Waiter) -> None:
        pooled.state = ResourceState.VALIDATING
        self._validating[pooled.key] = pooled
        self._track(self._validate_tasks, self._run_validate(pooled, waiter))

    async def _run_validate(self, pooled: PooledResource[T], waiter: Waiter) -> None:
        valid = False
        try:
            valid = await self._factory.validate(pooled.resource)
        except Exception as e:
            self.logger.warn(f"Validation raised in pool {self.name}; treating resource as invalid.", e)
        finally:
            self._validating.pop(pooled.key, None)

        if valid:
            if waiter.pending and not self._closed:
                self._hand_over(pooled, waiter)
            else:
                if waiter.pending:
                    waiter.reject(PoolShutdownError(context={"pool": self.name}))
                self._make_available(pooled)
        else:
            self.metrics["validation_failures"] += 1
            self.logger.warn(f"Resource failed validation in pool {self.name}.")
            self._events.emit(PoolEventType.RESOURCE_VALIDATION_FAILED, {"borrow_count": pooled.borrow_count})
            self._destroy_pooled(pooled, reason="validation")

            waiter.borrow_attempts += 1
            if waiter.pending:
                if self._closed:
                    waiter.reject(PoolShutdownError(context={"pool": self.name}))
                elif waiter.borrow_attempts >= self.options.max_borrow_attempts:
                    waiter.reject(ResourceValidationError(
                        context={"pool": self.name, "attempts": waiter.borrow_attempts}
                    ))
                else:
                    self._waiters.push(waiter)

        self._dispatch()
        self._check_drained()

    def _destroy_pooled(self, pooled: PooledResource[T], reason: str) -> asyncio.Task:
        pooled.state = ResourceState.DESTROYING
        return self._track(self._destroy_tasks, self._run_destroy(pooled, reason))

    async def _run_destroy(self, pooled: PooledResource[T], reason: str) -> None:
        try:
            destroy_timeout = self.options.destroy_timeout
            if destroy_timeout is not None:
                await asyncio.wait_for(self._factory.destroy(pooled.resource), destroy_timeout)
            else:
                await self._factory.destroy(pooled.resource)
        except Exception as e:
            self.metrics["destroy_failures"] += 1
            error = FactoryDestroyError(context={"pool": self.name, "reason": reason}, cause=e)
            self.logger.warn(f"Failed to destroy resource in pool {self.name}.", error)
            self._events.emit(PoolEventType.RESOURCE_DESTROY_FAILED, {"reason": reason, "error": str(e)})
        else:
            self.logger.debug(f"Destroyed resource in pool {self.name} ({reason}).")
            self._events.emit(PoolEventType.RESOURCE_DESTROYED, {"reason": reason})
        finally:
            pooled.state = ResourceState.DESTROYED
            self.metrics["resources_destroyed"] += 1

    def _on_circuit_change(self, state: CircuitState, data: Dict[str, Any]) -> None:
        if state == CircuitState.OPEN:
            self.logger.warn(f"Resource creation suspended for pool {self.name}.", data)
            self._events.emit(PoolEventType.CIRCUIT_OPENED, data)
        elif state == CircuitState.CLOSED:
            self.logger.info(f"Resource creation resumed for pool {self.name}.")
            self._events.emit(PoolEventType.CIRCUIT_CLOSED, data)

    def __repr__(self) -> str:
        return (
            f"<Pool {self.name} available={self.available} borrowed={self.borrowed} "
            f"pending={self.pending} creating={self._pending_creates}>"
        )
