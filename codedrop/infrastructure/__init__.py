"""Infrastructure layer: stores, payload storage and external services."""

from .http_threat_classifier import HttpThreatClassifier
from .json_share_repository import JsonShareRepository
from .local_file_storage_repository import LocalFileStorageRepository
from .redis_repository import RedisConnectionManager, RedisRepository
from .redis_share_repository import RedisShareRepository
from .storage_factory import StorageFactory

__all__ = [
    "HttpThreatClassifier",
    "JsonShareRepository",
    "LocalFileStorageRepository",
    "RedisConnectionManager",
    "RedisRepository",
    "RedisShareRepository",
    "StorageFactory",
]
