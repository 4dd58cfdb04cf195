"""
Redis Repository Base Class

Provides JSON key operations and distributed locking on top of redis-py.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockError

logger = logging.getLogger(__name__)


class RedisRepository:
    """Base Redis repository with JSON helpers and distributed locking."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        """Create a prefixed key for Redis storage."""
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    def set_json(self, key: str, data: Dict[str, Any], only_if_absent: bool = False) -> bool:
        """
        Set JSON data.

        Args:
            key: Redis key
            data: Dictionary to store as JSON
            only_if_absent: Only write when the key does not exist yet (SET NX)

        Returns:
            True if the value was written, False otherwise

        Raises:
            redis.RedisError: If Redis cannot be reached
        """
        redis_key = self._make_key(key)
        json_data = json.dumps(data)
        return bool(self.redis.set(redis_key, json_data, nx=only_if_absent))

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get JSON data from Redis.

        Args:
            key: Redis key

        Returns:
            Dictionary if found, None if the key does not exist

        Raises:
            redis.RedisError: If Redis cannot be reached
            ValueError: If the stored value is not valid JSON
        """
        data = self.redis.get(self._make_key(key))
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)

    def delete(self, key: str) -> bool:
        """
        Delete a key from Redis.

        Returns:
            True if key was deleted, False if it did not exist
        """
        return self.redis.delete(self._make_key(key)) > 0

    def exists(self, key: str) -> bool:
        """
        Check if a key exists in Redis.

        Returns:
            True if key exists, False otherwise (including connection errors)
        """
        try:
            return self.redis.exists(self._make_key(key)) > 0
        except RedisConnectionError as e:
            logger.error(f"Error checking existence of key {key}: {e}")
            return False

    def get_keys_by_pattern(self, pattern: str) -> List[str]:
        """
        Get all keys matching a pattern.

        Args:
            pattern: Redis key pattern (supports wildcards)

        Returns:
            List of matching keys (without prefix)
        """
        redis_pattern = self._make_key(pattern)
        prefix_len = len(self.key_prefix) + 1 if self.key_prefix else 0
        keys = []
        for key in self.redis.scan_iter(match=redis_pattern):
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            keys.append(key[prefix_len:])
        return keys

    @contextmanager
    def distributed_lock(self, lock_name: str, timeout: int = 10, blocking_timeout: int = 5):
        """
        Distributed lock context manager using Redis.

        Args:
            lock_name: Name of the lock
            timeout: Lock timeout in seconds
            blocking_timeout: How long to wait for lock acquisition

        Yields:
            Lock object if acquired successfully

        Raises:
            LockError: If lock cannot be acquired
        """
        lock_key = self._make_key(f"lock:{lock_name}")
        lock = self.redis.lock(lock_key, timeout=timeout, blocking_timeout=blocking_timeout)

        if not lock.acquire(blocking=True, blocking_timeout=blocking_timeout):
            raise LockError(f"Could not acquire lock: {lock_name}")
        try:
            yield lock
        finally:
            try:
                lock.release()
            except LockError:
                # Lock may have expired, which is fine
                pass


class RedisConnectionManager:
    """Manages Redis connection with connection pooling."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 max_connections: int = 20, password: Optional[str] = None,
                 decode_responses: bool = False):
        self.connection_pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            password=password,
            max_connections=max_connections,
            decode_responses=decode_responses,
            retry_on_timeout=True,
            socket_keepalive=True,
            socket_keepalive_options={},
        )
        self._client = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance with connection pooling."""
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.connection_pool)
        return self._client

    def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            return self.client.ping()
        except RedisConnectionError:
            return False

    def close(self):
        """Close the connection pool."""
        if self.connection_pool:
            self.connection_pool.disconnect()
