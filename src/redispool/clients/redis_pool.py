"""
Pool of single-node Redis connections
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union

from pydantic import ValidationError
from redis.asyncio import Redis

from ..core.config import RedisPoolOptions, merge_facade_options
from ..core.errors import ConfigurationError
from ..core.events import PoolEvent
from ..core.logger import PoolLogger, StdlibLogger
from ..pooling.pool import Pool
from .factories import RedisFactory


class RedisPool:
    """
    A pool of redis connections

    Example:
        pool = RedisPool({
            "redis": {"host": "127.0.0.1", "port": 6379, "password": "secret"},
            "pool": {"min_size": 2, "max_size": 10},
        })

        client = await pool.get_connection()
        try:
            await client.set("test", "test redis")
            print(await client.get("test"))
        finally:
            await pool.release(client)

        await pool.end()
    """

    defaults: Dict[str, Any] = {
        "pool": {"min_size": 2, "max_size": 10},
    }

    def __init__(
        self,
        options: Union[RedisPoolOptions, Dict[str, Any], None] = None,
        *,
        logger: Optional[PoolLogger] = None,
        event_emitter: Optional[Callable[[PoolEvent], Any]] = None,
    ):
        if not isinstance(options, RedisPoolOptions):
            try:
                options = RedisPoolOptions.model_validate(merge_facade_options(self.defaults, options))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid redis pool options: {e}", cause=e) from e

        self.options = options
        self.logger: PoolLogger = logger or StdlibLogger(logging.getLogger(__name__))
        self.factory = RedisFactory(
            self.logger,
            redis_options=options.redis,
            url=options.url,
            ready_check=options.ready_check,
        )
        self.pool: Pool[Redis] = Pool(
            self.factory,
            options.pool,
            name="redis",
            logger=self.logger,
            event_emitter=event_emitter,
        )

    async def get_connection(self, priority: int = 0) -> Redis:
        """Get a connection from the pool"""
        return await self.pool.acquire(priority)

    acquire = get_connection

    async def release(self, client: Redis) -> None:
        """Release a redis connection"""
        await self.pool.release(client)

    async def disconnect(self, client: Redis) -> None:
        """Close a redis connection"""
        await self.pool.destroy(client)

    destroy = disconnect

    @asynccontextmanager
    async def connection(self, priority: int = 0) -> AsyncIterator[Redis]:
        """Borrow a connection for the duration of a block"""
        async with self.pool.connection(priority) as client:
            yield client

    async def end(self) -> None:
        """Close all connections"""
        await self.pool.drain()
        await self.pool.clear()
        self.logger.info("Disconnected all Redis connections.")

    def get_stats(self) -> Dict[str, Any]:
        return self.pool.get_stats()
