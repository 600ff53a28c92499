"""
Redis facades over the generic pool
"""

from .factories import RedisFactory, RedisClusterFactory
from .redis_pool import RedisPool
from .cluster_pool import RedisClusterPool

__all__ = [
    'RedisFactory',
    'RedisClusterFactory',
    'RedisPool',
    'RedisClusterPool',
]
