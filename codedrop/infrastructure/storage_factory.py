"""
Storage Factory

Builds the concrete payload store, share record store and threat classifier
from configuration. The application layer only ever sees the domain
interfaces.
"""

import logging
from typing import Optional

from codedrop.domain.file_storage.storage_repository import IFileStorageRepository
from codedrop.domain.sharing.repositories import ShareRepository
from codedrop.domain.sharing.threat import IThreatClassifier, ThreatPolicy
from codedrop.infrastructure.http_threat_classifier import HttpThreatClassifier
from codedrop.infrastructure.json_share_repository import JsonShareRepository
from codedrop.infrastructure.local_file_storage_repository import LocalFileStorageRepository
from codedrop.infrastructure.redis_repository import RedisRepository
from codedrop.infrastructure.redis_share_repository import RedisShareRepository

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory for the storage-related infrastructure adapters."""

    @staticmethod
    def create_storage(upload_dir: str) -> IFileStorageRepository:
        """
        Create local filesystem payload storage.

        Raises:
            RuntimeError: If the storage directory cannot be prepared
        """
        try:
            storage = LocalFileStorageRepository(upload_dir)
        except OSError as e:
            raise RuntimeError(f"Failed to initialize local storage: {e}") from e
        logger.info(f"Storage factory: using local filesystem storage at {upload_dir}")
        return storage

    @staticmethod
    def create_share_repository(
        backend: str,
        db_path: str,
        redis_repository: Optional[RedisRepository] = None,
        lock_timeout: int = 10,
        lock_wait: int = 5,
    ) -> ShareRepository:
        """
        Create the share record store for the configured backend.

        Args:
            backend: 'json' or 'redis'
            db_path: Registry file for the json backend
            redis_repository: Redis helper for the redis backend
            lock_timeout: Seconds a per-code Redis lock may be held
            lock_wait: Seconds to wait for a per-code Redis lock

        Raises:
            ValueError: If the backend is unknown or Redis was not supplied
        """
        if backend == "json":
            logger.info(f"Storage factory: using JSON share registry at {db_path}")
            return JsonShareRepository(db_path)

        if backend == "redis":
            if redis_repository is None:
                raise ValueError("Redis share store requires a Redis repository")
            logger.info("Storage factory: using Redis share registry")
            return RedisShareRepository(
                redis_repository, lock_timeout=lock_timeout, blocking_timeout=lock_wait
            )

        raise ValueError(f"Unknown share store backend: {backend}")

    @staticmethod
    def create_threat_classifier(
        policy: ThreatPolicy,
        url: Optional[str],
        token: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ) -> Optional[IThreatClassifier]:
        """Create the HTTP classifier, or None when screening is off."""
        if policy is ThreatPolicy.OFF:
            return None
        logger.info(f"Storage factory: threat screening '{policy.value}' via {url}")
        return HttpThreatClassifier(url, bearer_token=token, timeout_seconds=timeout_seconds)
