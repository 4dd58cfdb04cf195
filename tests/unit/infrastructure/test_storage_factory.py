"""
Unit tests for StorageFactory.
"""

from unittest.mock import Mock

import pytest

from codedrop.domain.sharing import ThreatPolicy
from codedrop.infrastructure.http_threat_classifier import HttpThreatClassifier
from codedrop.infrastructure.json_share_repository import JsonShareRepository
from codedrop.infrastructure.local_file_storage_repository import LocalFileStorageRepository
from codedrop.infrastructure.redis_share_repository import RedisShareRepository
from codedrop.infrastructure.storage_factory import StorageFactory


def test_create_storage(tmp_path):
    storage = StorageFactory.create_storage(str(tmp_path / "uploads"))

    assert isinstance(storage, LocalFileStorageRepository)
    assert (tmp_path / "uploads").is_dir()


def test_json_backend(tmp_path):
    repo = StorageFactory.create_share_repository("json", str(tmp_path / "codes.json"))

    assert isinstance(repo, JsonShareRepository)


def test_redis_backend():
    repo = StorageFactory.create_share_repository("redis", "unused", redis_repository=Mock())

    assert isinstance(repo, RedisShareRepository)


def test_redis_backend_requires_repository():
    with pytest.raises(ValueError):
        StorageFactory.create_share_repository("redis", "unused")


def test_unknown_backend():
    with pytest.raises(ValueError):
        StorageFactory.create_share_repository("sqlite", "unused")


def test_no_classifier_when_screening_off():
    assert StorageFactory.create_threat_classifier(ThreatPolicy.OFF, None) is None


def test_http_classifier_when_screening_on():
    classifier = StorageFactory.create_threat_classifier(
        ThreatPolicy.WARN, "https://scanner.test/scan", "token", 5
    )

    assert isinstance(classifier, HttpThreatClassifier)
    classifier.close()
