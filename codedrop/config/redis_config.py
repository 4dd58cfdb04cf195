"""
Redis Configuration

Connection and locking settings for the Redis share store, plus the
process-wide connection manager the app factory builds once.
"""

import os
from typing import Optional

from redis.connection import parse_url

from codedrop.infrastructure.redis_repository import RedisConnectionManager, RedisRepository


class RedisConfig:
    """
    Redis settings read from the environment when instantiated.

    REDIS_URL, when set, wins over REDIS_HOST/PORT/DB/PASSWORD. Share
    records are namespaced under REDIS_SHARE_PREFIX so they never mix with
    the Celery broker's keys when both use one database.
    """

    def __init__(self):
        url = os.getenv("REDIS_URL")
        params = parse_url(url) if url else {}

        self.host = params.get("host") or os.getenv("REDIS_HOST", "localhost")
        self.port = int(params.get("port") or os.getenv("REDIS_PORT", 6379))
        self.db = int(params.get("db") or os.getenv("REDIS_DB", 0))
        self.password = params.get("password") or os.getenv("REDIS_PASSWORD") or None
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", 20))

        self.share_prefix = os.getenv("REDIS_SHARE_PREFIX", "codedrop")
        # A retirement holds the per-code lock for one read and one write
        self.lock_timeout = int(os.getenv("REDIS_LOCK_TIMEOUT", 10))
        self.lock_wait = int(os.getenv("REDIS_LOCK_WAIT", 5))

        if self.lock_wait <= 0 or self.lock_timeout <= 0:
            raise ValueError("REDIS_LOCK_TIMEOUT and REDIS_LOCK_WAIT must be positive")


_redis_manager: Optional[RedisConnectionManager] = None
_redis_config: Optional[RedisConfig] = None


def init_redis(config: Optional[RedisConfig] = None) -> RedisConnectionManager:
    """
    Build the process-wide connection manager.

    Connections are opened lazily, so this succeeds without a server.
    """
    global _redis_manager, _redis_config

    _redis_config = config or RedisConfig()
    _redis_manager = RedisConnectionManager(
        host=_redis_config.host,
        port=_redis_config.port,
        db=_redis_config.db,
        max_connections=_redis_config.max_connections,
        password=_redis_config.password,
    )
    return _redis_manager


def get_redis_config() -> RedisConfig:
    if _redis_config is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_config


def get_share_redis_repository() -> RedisRepository:
    """RedisRepository scoped to the share key prefix."""
    if _redis_manager is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return RedisRepository(_redis_manager.client, _redis_config.share_prefix)


def redis_health_check() -> bool:
    return _redis_manager is not None and _redis_manager.health_check()
