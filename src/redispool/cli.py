#!/usr/bin/env python3
"""
redispool CLI

Smoke-test a Redis or Redis Cluster deployment through the pool:
borrow several connections at once, ping each, print pool statistics.
"""

import asyncio
import json
import sys
from typing import Any, Dict, Optional, Tuple

import click
from redis.exceptions import RedisError

from redispool.clients import RedisClusterPool, RedisPool
from redispool.core.config import load_options, merge_options
from redispool.core.errors import PoolError
from redispool.core.logger import setup_logging


def _build_options(
    config_path: Optional[str],
    url: Optional[str],
    host: str,
    port: int,
    nodes: Tuple[str, ...],
    min_size: Optional[int],
    max_size: Optional[int],
    cluster: bool,
) -> Dict[str, Any]:
    options: Dict[str, Any] = load_options(config_path) if config_path else {}

    pool_overrides: Dict[str, Any] = {}
    if min_size is not None:
        pool_overrides["min_size"] = min_size
    if max_size is not None:
        pool_overrides["max_size"] = max_size

    overrides: Dict[str, Any] = {"pool": pool_overrides}
    if cluster:
        if nodes:
            overrides["startup_nodes"] = list(nodes)
        elif "startup_nodes" not in options:
            overrides["startup_nodes"] = [f"{host}:{port}"]
    elif url:
        overrides["url"] = url
    elif "url" not in options:
        overrides["redis"] = {"host": host, "port": port}

    return merge_options(options, overrides)


async def _check(pool: Any, connections: int) -> Dict[str, Any]:
    async def borrow_and_ping(index: int) -> bool:
        async with pool.connection(priority=index) as client:
            return bool(await client.ping())

    try:
        results = await asyncio.gather(*(borrow_and_ping(i) for i in range(connections)))
        stats = pool.get_stats()
    finally:
        await pool.end()

    return {"pings": sum(1 for ok in results if ok), "connections": connections, "stats": stats}


@click.group()
@click.option('--log-level', default='WARNING', show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
def cli(log_level: str):
    """redispool - pooled Redis connections"""
    setup_logging(log_level)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='YAML file with pool options')
@click.option('--url', help='Redis URL (single node)')
@click.option('--host', default='127.0.0.1', show_default=True)
@click.option('--port', default=6379, show_default=True, type=int)
@click.option('--cluster', is_flag=True, help='Connect to a Redis Cluster')
@click.option('--node', 'nodes', multiple=True, help='Cluster startup node host:port (repeatable)')
@click.option('--min', 'min_size', type=int, help='Minimum pool size')
@click.option('--max', 'max_size', type=int, help='Maximum pool size')
@click.option('--connections', '-n', default=4, show_default=True, type=click.IntRange(min=1),
              help='Connections to borrow concurrently')
def check(config_path, url, host, port, cluster, nodes, min_size, max_size, connections):
    """Borrow connections concurrently, ping them and print pool stats"""
    options = _build_options(config_path, url, host, port, nodes, min_size, max_size, cluster)

    async def run() -> Dict[str, Any]:
        pool = RedisClusterPool(options) if cluster else RedisPool(options)
        return await _check(pool, connections)

    try:
        report = asyncio.run(run())
    except (PoolError, RedisError) as e:
        click.echo(f"✗ {e}", err=True)
        hint = getattr(e, "resolution_hint", None)
        if hint:
            click.echo(f"  hint: {hint}", err=True)
        sys.exit(1)

    click.echo(json.dumps(report, indent=2, default=str))
    if report["pings"] != connections:
        sys.exit(1)


def main():
    cli()


if __name__ == '__main__':
    main()
