"""
Redis Share Repository Implementation

Redis-based implementation of ShareRepository for deployments where the
API and background workers run in separate processes or hosts.
Each record is one JSON value under ``share:<code>``; read-modify-write
runs under a per-code distributed lock.
"""

import logging
from typing import List, Optional

from redis.exceptions import LockError, RedisError

from codedrop.domain.errors import StoreCorruptError, StoreError, StoreWriteError
from codedrop.domain.sharing.entities import ShareRecord
from codedrop.domain.sharing.repositories import (
    RecordMutator,
    RecordUpdate,
    ShareRepository,
)

logger = logging.getLogger(__name__)


class RedisShareRepository(ShareRepository):
    """
    Redis-based implementation of ShareRepository.

    Records carry no Redis TTL: expiry is evaluated at read time and
    expired records are removed by the cleanup task, so callers can still
    tell an expired code from an unknown one.
    """

    def __init__(self, redis_repository, lock_timeout: int = 10, blocking_timeout: int = 5):
        """
        Initialize with Redis repository.

        Args:
            redis_repository: RedisRepository instance from infrastructure layer
            lock_timeout: Seconds before a held per-code lock expires
            blocking_timeout: Seconds to wait for a per-code lock
        """
        self.redis_repo = redis_repository
        self.share_prefix = "share"
        self.lock_timeout = lock_timeout
        self.blocking_timeout = blocking_timeout

    def _key(self, code: str) -> str:
        return f"{self.share_prefix}:{code}"

    def initialize(self) -> None:
        try:
            self.redis_repo.redis.ping()
        except RedisError as e:
            raise StoreError(f"Redis share store unavailable: {e}", e)
        logger.info("Redis share store ready")

    def add(self, record: ShareRecord) -> bool:
        try:
            return self.redis_repo.set_json(
                self._key(record.code), record.to_dict(), only_if_absent=True
            )
        except RedisError as e:
            raise StoreWriteError(f"Failed to store share {record.code[:6]}...: {e}", e)

    def get(self, code: str) -> Optional[ShareRecord]:
        try:
            data = self.redis_repo.get_json(self._key(code))
        except RedisError as e:
            raise StoreError(f"Failed to read share {code[:6]}...: {e}", e)
        except ValueError as e:
            raise StoreCorruptError(f"Share {code[:6]}... is not valid JSON", e)

        if data is None:
            return None

        try:
            return ShareRecord.from_dict(data, code=code)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreCorruptError(f"Share {code[:6]}... is malformed", e)

    def update(self, code: str, mutator: RecordMutator) -> RecordUpdate:
        try:
            with self.redis_repo.distributed_lock(
                self._key(code),
                timeout=self.lock_timeout,
                blocking_timeout=self.blocking_timeout,
            ):
                before = self.get(code)
                if before is None:
                    return RecordUpdate(None, None)

                after = mutator(before)
                if after is None:
                    self.redis_repo.delete(self._key(code))
                elif not self.redis_repo.set_json(self._key(code), after.to_dict()):
                    raise StoreWriteError(f"Redis refused write for share {code[:6]}...")
                return RecordUpdate(before, after)
        except LockError as e:
            raise StoreWriteError(f"Could not lock share {code[:6]}...: {e}", e)
        except RedisError as e:
            raise StoreWriteError(f"Failed to update share {code[:6]}...: {e}", e)

    def delete(self, code: str) -> Optional[ShareRecord]:
        update = self.update(code, lambda record: None)
        return update.before

    def list_all(self) -> List[ShareRecord]:
        try:
            keys = self.redis_repo.get_keys_by_pattern(f"{self.share_prefix}:*")
        except RedisError as e:
            raise StoreError(f"Failed to list shares: {e}", e)

        records = []
        for key in keys:
            code = key[len(self.share_prefix) + 1:]
            record = self.get(code)
            if record is not None:
                records.append(record)
        return records
