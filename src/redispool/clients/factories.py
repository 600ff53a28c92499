"""
Redis client factories

Build redis.asyncio clients for the pool, wait until they can serve
commands, and close them when the pool is done with them.
"""

from typing import Any, Dict, List, Optional

from redis.asyncio import Redis
from redis.asyncio.cluster import ClusterNode, RedisCluster
from redis.exceptions import BusyLoadingError, ConnectionError, RedisError, TimeoutError

from ..core.config import NodeAddress
from ..core.logger import PoolLogger


async def _wait_until_loaded(client: Any) -> None:
    """Fail if the server is still loading its dataset"""
    info = await client.info("persistence")
    if str(info.get("loading", 0)) == "1":
        raise BusyLoadingError("Redis is loading the dataset in memory")


async def _close_after_failure(client: Any, logger: PoolLogger) -> None:
    try:
        await client.aclose()
    except RedisError as e:
        logger.debug("Error while closing a failed redis connection.", e)


async def _validate(client: Any) -> bool:
    try:
        return bool(await client.ping())
    except (ConnectionError, TimeoutError):
        return False


class RedisFactory:
    """Creates single-node clients"""

    def __init__(
        self,
        logger: PoolLogger,
        redis_options: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
        ready_check: bool = True,
    ):
        self.logger = logger
        self.redis_options = dict(redis_options or {})
        self.url = url
        self.ready_check = ready_check

    def _build(self) -> Redis:
        if self.url:
            return Redis.from_url(self.url, **self.redis_options)
        return Redis(**self.redis_options)

    async def create(self) -> Redis:
        client = self._build()
        try:
            await client.ping()
            if self.ready_check:
                await _wait_until_loaded(client)
        except Exception as e:
            self.logger.error("Create redis connection error.", e)
            await _close_after_failure(client, self.logger)
            raise

        if self.ready_check:
            self.logger.info("Redis server is ready.")
        else:
            self.logger.info("The connection is established to the Redis server.")
        return client

    async def destroy(self, client: Redis) -> None:
        await client.aclose()
        self.logger.info("No more reconnections will be made.")

    async def validate(self, client: Redis) -> bool:
        return await _validate(client)


class RedisClusterFactory:
    """Creates cluster clients; topology discovery happens in create()"""

    def __init__(
        self,
        logger: PoolLogger,
        startup_nodes: List[NodeAddress],
        redis_options: Optional[Dict[str, Any]] = None,
        ready_check: bool = True,
    ):
        self.logger = logger
        self.startup_nodes = list(startup_nodes)
        self.redis_options = dict(redis_options or {})
        self.ready_check = ready_check

    def _build(self) -> RedisCluster:
        nodes = [ClusterNode(node.host, node.port) for node in self.startup_nodes]
        return RedisCluster(startup_nodes=nodes, **self.redis_options)

    async def create(self) -> RedisCluster:
        cluster = self._build()
        try:
            await cluster.initialize()
            if self.ready_check:
                await cluster.ping()
        except Exception as e:
            self.logger.error("Create redis connection error.", e)
            await _close_after_failure(cluster, self.logger)
            raise

        if self.ready_check:
            self.logger.info("Redis server is ready.")
        else:
            self.logger.info("The connection is established to the Redis server.")
        return cluster

    async def destroy(self, cluster: RedisCluster) -> None:
        await cluster.aclose()
        self.logger.info("No more reconnections will be made.")

    async def validate(self, cluster: RedisCluster) -> bool:
        return await _validate(cluster)
