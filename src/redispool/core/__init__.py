"""
Core building blocks: errors, configuration, logging and events
"""

from .errors import (
    ErrorCode,
    PoolError,
    FactoryCreateError,
    CircuitOpenError,
    FactoryDestroyError,
    InvalidResourceError,
    AcquireTimeoutError,
    PoolDrainingError,
    PoolShutdownError,
    PoolExhaustedError,
    ResourceValidationError,
    ConfigurationError,
)
from .config import PoolOptions, RedisPoolOptions, RedisClusterPoolOptions, NodeAddress, load_options
from .logger import PoolLogger, StdlibLogger, setup_logging
from .events import PoolEvent, PoolEventType

__all__ = [
    'ErrorCode',
    'PoolError',
    'FactoryCreateError',
    'CircuitOpenError',
    'FactoryDestroyError',
    'InvalidResourceError',
    'AcquireTimeoutError',
    'PoolDrainingError',
    'PoolShutdownError',
    'PoolExhaustedError',
    'ResourceValidationError',
    'ConfigurationError',
    'PoolOptions',
    'RedisPoolOptions',
    'RedisClusterPoolOptions',
    'NodeAddress',
    'load_options',
    'PoolLogger',
    'StdlibLogger',
    'setup_logging',
    'PoolEvent',
    'PoolEventType',
]
