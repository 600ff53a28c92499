"""
Pool of Redis Cluster clients
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union

from pydantic import ValidationError
from redis.asyncio.cluster import RedisCluster

from ..core.config import RedisClusterPoolOptions, merge_facade_options
from ..core.errors import ConfigurationError
from ..core.events import PoolEvent
from ..core.logger import PoolLogger, StdlibLogger
from ..pooling.pool import Pool
from .factories import RedisClusterFactory


class RedisClusterPool:
    """
    A pool of Redis Cluster clients

    Each pooled resource is a full cluster client with its own slot map,
    so `startup_nodes` only needs to name a few reachable members.
    """

    defaults: Dict[str, Any] = {
        "pool": {"min_size": 2, "max_size": 10},
    }

    def __init__(
        self,
        options: Union[RedisClusterPoolOptions, Dict[str, Any], None] = None,
        *,
        logger: Optional[PoolLogger] = None,
        event_emitter: Optional[Callable[[PoolEvent], Any]] = None,
    ):
        if not isinstance(options, RedisClusterPoolOptions):
            try:
                options = RedisClusterPoolOptions.model_validate(merge_facade_options(self.defaults, options))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid redis cluster pool options: {e}", cause=e) from e

        self.options = options
        self.logger: PoolLogger = logger or StdlibLogger(logging.getLogger(__name__))
        self.factory = RedisClusterFactory(
            self.logger,
            startup_nodes=options.startup_nodes,
            redis_options=options.redis_options,
            ready_check=options.ready_check,
        )
        self.pool: Pool[RedisCluster] = Pool(
            self.factory,
            options.pool,
            name="redis-cluster",
            logger=self.logger,
            event_emitter=event_emitter,
        )

    async def get_connection(self, priority: int = 0) -> RedisCluster:
        """Get a cluster client from the pool"""
        return await self.pool.acquire(priority)

    acquire = get_connection

    async def release(self, client: RedisCluster) -> None:
        """Release a cluster client"""
        await self.pool.release(client)

    async def disconnect(self, client: RedisCluster) -> None:
        """Close a cluster client"""
        await self.pool.destroy(client)

    destroy = disconnect

    @asynccontextmanager
    async def connection(self, priority: int = 0) -> AsyncIterator[RedisCluster]:
        """Borrow a cluster client for the duration of a block"""
        async with self.pool.connection(priority) as client:
            yield client

    async def end(self) -> None:
        """Close all cluster clients"""
        await self.pool.drain()
        await self.pool.clear()
        self.logger.info("Disconnected all Redis connections.")

    def get_stats(self) -> Dict[str, Any]:
        return self.pool.get_stats()
