"""
Configuration management for redispool

Pool and facade options as pydantic models, with environment-variable
overrides and YAML option files.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PoolOptions(BaseModel):
    """Options for one pool engine. Durations are in seconds."""

    model_config = ConfigDict(extra="forbid")

    min_size: int = Field(default=0, ge=0)
    max_size: int = Field(default=10, ge=1)

    acquire_timeout: Optional[float] = Field(default=None, gt=0)
    destroy_timeout: Optional[float] = Field(default=None, gt=0)

    # Idle eviction
    idle_timeout: Optional[float] = Field(default=None, gt=0)
    eviction_interval: float = Field(default=0, ge=0)
    evictions_per_run: int = Field(default=3, ge=1)

    # Borrowing
    test_on_borrow: bool = False
    max_borrow_attempts: int = Field(default=3, ge=1)
    fifo: bool = True
    max_waiting: Optional[int] = Field(default=None, ge=0)

    autostart: bool = True
    min_fill_retry_delay: float = Field(default=1.0, ge=0)

    # Create circuit breaker; a threshold of None disables it
    circuit_failure_threshold: Optional[int] = Field(default=5, ge=1)
    circuit_recovery_timeout: float = Field(default=30.0, ge=0)
    circuit_success_threshold: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PoolOptions":
        if self.min_size > self.max_size:
            raise ValueError(
                f"min_size ({self.min_size}) must not exceed max_size ({self.max_size})"
            )
        return self

    @classmethod
    def from_env(cls, prefix: str = "REDISPOOL_", **overrides: Any) -> "PoolOptions":
        """Build options from environment variables such as REDISPOOL_MAX_SIZE"""
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        return cls.model_validate(values)


class NodeAddress(BaseModel):
    """One cluster startup node"""

    host: str = "127.0.0.1"
    port: int = Field(default=6379, gt=0, lt=65536)

    @classmethod
    def parse(cls, value: Union[str, Dict[str, Any], "NodeAddress"]) -> "NodeAddress":
        """Accept 'host:port', a mapping or an existing address"""
        if isinstance(value, NodeAddress):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        host, _, port = str(value).rpartition(":")
        if not host:
            return cls(host=str(value))
        return cls(host=host, port=int(port))


def _facade_pool_defaults() -> PoolOptions:
    return PoolOptions(min_size=2, max_size=10)


class RedisPoolOptions(BaseModel):
    """Options for the single-node Redis facade"""

    redis: Dict[str, Any] = Field(default_factory=dict)
    url: Optional[str] = None
    pool: PoolOptions = Field(default_factory=_facade_pool_defaults)
    ready_check: bool = True


class RedisClusterPoolOptions(BaseModel):
    """Options for the Redis Cluster facade"""

    startup_nodes: List[NodeAddress]
    redis_options: Dict[str, Any] = Field(default_factory=dict)
    pool: PoolOptions = Field(default_factory=_facade_pool_defaults)
    ready_check: bool = True

    @field_validator("startup_nodes", mode="before")
    @classmethod
    def _parse_nodes(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [NodeAddress.parse(node) for node in value]
        return value

    @field_validator("startup_nodes")
    @classmethod
    def _require_nodes(cls, value: List[NodeAddress]) -> List[NodeAddress]:
        if not value:
            raise ValueError("at least one startup node is required")
        return value


def merge_options(defaults: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge user options over defaults, one level deep for nested mappings"""
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def merge_facade_options(defaults: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge facade options over defaults

    A user pool that only sets max_size keeps the default min_size
    unless it would exceed that max_size, in which case min_size is
    lowered to it.
    """
    merged = merge_options(defaults, overrides)
    user_pool = (overrides or {}).get("pool")
    pool = merged.get("pool")
    if not isinstance(user_pool, dict) or not isinstance(pool, dict):
        return merged

    max_size = user_pool.get("max_size")
    default_min = pool.get("min_size")
    if ("min_size" not in user_pool and isinstance(max_size, int)
            and isinstance(default_min, int) and default_min > max_size):
        pool["min_size"] = max_size
    return merged


def load_options(path: Union[str, Path]) -> Dict[str, Any]:
    """Load an options mapping from a YAML file"""
    config_file = Path(path)
    with open(config_file, "r") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_file} must contain a mapping at the top level")
    return data
