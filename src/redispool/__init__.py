"""redispool - bounded asyncio pools of Redis and Redis Cluster connections"""

__version__ = "0.1.0"

from redis.asyncio import Redis
from redis.asyncio.cluster import RedisCluster

from redispool.core import (
    PoolError,
    FactoryCreateError,
    CircuitOpenError,
    InvalidResourceError,
    AcquireTimeoutError,
    PoolDrainingError,
    PoolShutdownError,
    PoolExhaustedError,
    ResourceValidationError,
    ConfigurationError,
    PoolOptions,
    RedisPoolOptions,
    RedisClusterPoolOptions,
    PoolLogger,
    PoolEvent,
    PoolEventType,
)
from redispool.pooling import Pool, ResourceFactory, CallableFactory
from redispool.clients import RedisPool, RedisClusterPool

__all__ = [
    "Redis",
    "RedisCluster",
    "Pool",
    "ResourceFactory",
    "CallableFactory",
    "RedisPool",
    "RedisClusterPool",
    "PoolOptions",
    "RedisPoolOptions",
    "RedisClusterPoolOptions",
    "PoolLogger",
    "PoolEvent",
    "PoolEventType",
    "PoolError",
    "FactoryCreateError",
    "CircuitOpenError",
    "InvalidResourceError",
    "AcquireTimeoutError",
    "PoolDrainingError",
    "PoolShutdownError",
    "PoolExhaustedError",
    "ResourceValidationError",
    "ConfigurationError",
]
