"""
redispool Pooling System

Generic bounded resource pooling with asynchronous creation and
destruction, priority-ordered waiters, idle eviction and graceful
drain/shutdown.

Key Components:
- Pool: The pool engine (acquire/release/destroy/drain/clear)
- ResourceFactory: Protocol for creating, destroying and validating resources
- CallableFactory: Factory assembled from plain callables
- WaiterQueue: Priority-then-FIFO queue of pending acquire calls
- CircuitBreaker: Suspends creation while the backend keeps failing
"""

from .pool import Pool
from .factory import ResourceFactory, CallableFactory
from .queue import Waiter, WaiterQueue
from .resource import PooledResource, ResourceState
from .circuit_breaker import CircuitBreaker, CircuitState

__all__ = [
    # Main Components
    'Pool',
    'ResourceFactory',
    'CallableFactory',

    # State and Utilities
    'Waiter',
    'WaiterQueue',
    'PooledResource',
    'ResourceState',
    'CircuitBreaker',
    'CircuitState',
]
