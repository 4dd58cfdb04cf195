"""
Unit tests for JsonShareRepository.

Covers initialization from durable state, atomic writes, corruption
handling at boot and mid-run, and the insert/update/delete contract.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from codedrop.domain.errors import StoreCorruptError, StoreWriteError
from codedrop.domain.sharing import ShareRecord
from codedrop.infrastructure.json_share_repository import JsonShareRepository


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "codes.json"


@pytest.fixture
def repo(db_path):
    repository = JsonShareRepository(str(db_path))
    repository.initialize()
    return repository


def make_record(code="abc", **overrides):
    fields = {
        "code": code,
        "stored_name": f"{code}/file.txt",
        "created_at": datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return ShareRecord(**fields)


class TestInitialize:
    def test_creates_missing_registry(self, db_path):
        JsonShareRepository(str(db_path)).initialize()

        assert json.loads(db_path.read_text()) == {}

    def test_loads_existing_registry(self, db_path):
        db_path.parent.mkdir(parents=True)
        db_path.write_text(json.dumps({"abc": make_record().to_dict()}))

        repo = JsonShareRepository(str(db_path))
        repo.initialize()

        assert repo.get("abc").stored_name == "abc/file.txt"

    def test_corrupt_registry_is_moved_aside(self, db_path):
        db_path.parent.mkdir(parents=True)
        db_path.write_text("{not json")

        repo = JsonShareRepository(str(db_path))
        repo.initialize()

        backups = list(db_path.parent.glob("codes.json.corrupt-*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "{not json"
        assert repo.list_all() == []

    def test_non_object_registry_is_moved_aside(self, db_path):
        db_path.parent.mkdir(parents=True)
        db_path.write_text("[]")

        repo = JsonShareRepository(str(db_path))
        repo.initialize()

        assert list(db_path.parent.glob("codes.json.corrupt-*"))
        assert repo.list_all() == []


class TestReadWrite:
    def test_round_trip_through_disk(self, repo, db_path):
        record = make_record(
            password_secret="pbkdf2:sha256$abc",
            password_scheme="hashed",
            expires_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
            max_downloads=3,
            download_count=1,
        )
        repo.add(record)

        reloaded = JsonShareRepository(str(db_path))
        reloaded.initialize()

        assert reloaded.get("abc") == record

    def test_layout_is_object_keyed_by_code(self, repo, db_path):
        repo.add(make_record("one"))
        repo.add(make_record("two"))

        data = json.loads(db_path.read_text())

        assert set(data) == {"one", "two"}
        assert data["one"]["stored_name"] == "one/file.txt"
        assert data["one"]["download_count"] == 0

    def test_add_is_insert_if_absent(self, repo):
        assert repo.add(make_record()) is True
        assert repo.add(make_record(stored_name="other")) is False
        assert repo.get("abc").stored_name == "abc/file.txt"

    def test_update_replaces_record(self, repo):
        repo.add(make_record())

        update = repo.update("abc", lambda r: r.with_download_counted())

        assert update.found and not update.removed
        assert repo.get("abc").download_count == 1

    def test_update_returning_none_removes(self, repo):
        repo.add(make_record())

        update = repo.update("abc", lambda r: None)

        assert update.removed
        assert repo.get("abc") is None

    def test_update_missing_code_skips_mutator(self, repo):
        calls = []

        update = repo.update("nope", lambda r: calls.append(r))

        assert not update.found
        assert calls == []

    def test_delete(self, repo):
        repo.add(make_record())

        assert repo.delete("abc").code == "abc"
        assert repo.delete("abc") is None

    def test_exists(self, repo):
        repo.add(make_record())

        assert repo.exists("abc")
        assert not repo.exists("ABC")


class TestAtomicWrites:
    def test_no_temporary_files_left_behind(self, repo, db_path):
        for i in range(5):
            repo.add(make_record(f"code{i}"))

        leftovers = [p.name for p in db_path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_failed_write_leaves_previous_state(self, repo, db_path):
        repo.add(make_record("keep"))
        before = db_path.read_text()

        with patch("codedrop.infrastructure.json_share_repository.os.replace",
                   side_effect=OSError("disk full")):
            with pytest.raises(StoreWriteError):
                repo.add(make_record("lost"))

        assert db_path.read_text() == before
        assert repo.get("lost") is None
        assert [p for p in db_path.parent.iterdir() if p.name.endswith(".tmp")] == []

    def test_temp_file_failure_is_a_write_error(self, repo, db_path):
        repo.add(make_record("keep"))

        with patch("codedrop.infrastructure.json_share_repository.tempfile.mkstemp",
                   side_effect=OSError("no space left on device")):
            with pytest.raises(StoreWriteError):
                repo.add(make_record("lost"))

        assert repo.get("keep") is not None
        assert repo.get("lost") is None


class TestMidRunCorruption:
    def test_reads_raise_instead_of_resetting(self, repo, db_path):
        repo.add(make_record())
        db_path.write_text("garbage")

        with pytest.raises(StoreCorruptError):
            repo.get("abc")
        with pytest.raises(StoreCorruptError):
            repo.update("abc", lambda r: r)

        assert db_path.read_text() == "garbage"

    def test_missing_file_mid_run_raises(self, repo, db_path):
        os.unlink(db_path)

        with pytest.raises(StoreCorruptError):
            repo.list_all()

    def test_malformed_record_raises(self, repo, db_path):
        db_path.write_text(json.dumps({"abc": {"download_count": 1}}))

        with pytest.raises(StoreCorruptError):
            repo.get("abc")


def test_expiry_survives_reload(repo, db_path):
    expires = datetime.now(timezone.utc) + timedelta(days=1)
    repo.add(make_record(expires_at=expires))

    reloaded = JsonShareRepository(str(db_path))
    reloaded.initialize()

    assert reloaded.get("abc").expires_at == expires
