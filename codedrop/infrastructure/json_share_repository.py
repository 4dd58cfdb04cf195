"""
JSON Share Repository Implementation

Single-file implementation of ShareRepository. The whole registry lives in
one JSON object keyed by code. Every mutation is a read-modify-write of the
file inside a critical section that spans threads (threading.Lock) and
processes (flock on a sidecar lock file). Writes go to a temporary file in
the same directory which is fsynced and then renamed over the registry, so
an interrupted write never leaves the registry unparseable.
"""

import fcntl
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from codedrop.domain.errors import StoreCorruptError, StoreWriteError
from codedrop.domain.sharing.entities import ShareRecord
from codedrop.domain.sharing.repositories import (
    RecordMutator,
    RecordUpdate,
    ShareRepository,
)

logger = logging.getLogger(__name__)


class JsonShareRepository(ShareRepository):
    """
    File-backed implementation of ShareRepository.

    Thread Safety:
        All mutations are serialized globally. Readers parse the last fully
        renamed file and never see a torn record.

    Attributes:
        db_path: Path of the JSON registry file
        lock_path: Path of the sidecar lock file
    """

    def __init__(self, db_path: str = "/tmp/codedrop/codes.json"):
        self.db_path = Path(db_path)
        self.lock_path = self.db_path.with_name(self.db_path.name + ".lock")
        self._lock = threading.Lock()
        self._initialized = False

    # ShareRepository interface methods

    def initialize(self) -> None:
        """
        Load the registry from disk, creating it if missing.

        A registry that cannot be parsed at this point is moved aside to
        ``<name>.corrupt-<timestamp>`` and replaced by an empty one.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._exclusive():
            if not self.db_path.exists():
                self._write({})
                logger.info(f"Created empty share registry at {self.db_path}")
            else:
                try:
                    records = self._read()
                    logger.info(f"Loaded {len(records)} share(s) from {self.db_path}")
                except StoreCorruptError as e:
                    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
                    backup = self.db_path.with_name(f"{self.db_path.name}.corrupt-{stamp}")
                    os.replace(self.db_path, backup)
                    self._write({})
                    logger.error(
                        f"Share registry {self.db_path} was unreadable ({e}); "
                        f"moved it to {backup} and started empty"
                    )

        self._initialized = True

    def add(self, record: ShareRecord) -> bool:
        with self._exclusive():
            records = self._read()
            if record.code in records:
                return False
            records[record.code] = record
            self._write(records)
            return True

    def get(self, code: str) -> Optional[ShareRecord]:
        return self._read().get(code)

    def update(self, code: str, mutator: RecordMutator) -> RecordUpdate:
        with self._exclusive():
            records = self._read()
            before = records.get(code)
            if before is None:
                return RecordUpdate(None, None)

            after = mutator(before)
            if after is None:
                del records[code]
            else:
                records[code] = after
            self._write(records)
            return RecordUpdate(before, after)

    def delete(self, code: str) -> Optional[ShareRecord]:
        with self._exclusive():
            records = self._read()
            removed = records.pop(code, None)
            if removed is not None:
                self._write(records)
            return removed

    def list_all(self) -> List[ShareRecord]:
        return list(self._read().values())

    # Internals

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the registry lock across threads and processes."""
        with self._lock:
            with open(self.lock_path, "a+") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read(self) -> Dict[str, ShareRecord]:
        try:
            with open(self.db_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError as e:
            raise StoreCorruptError(f"Share registry {self.db_path} is missing", e)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StoreCorruptError(f"Share registry {self.db_path} is not valid JSON", e)
        except OSError as e:
            raise StoreCorruptError(f"Share registry {self.db_path} is unreadable", e)

        if not isinstance(raw, dict):
            raise StoreCorruptError(f"Share registry {self.db_path} is not a JSON object")

        try:
            return {
                code: ShareRecord.from_dict(data, code=code)
                for code, data in raw.items()
            }
        except (KeyError, TypeError, ValueError) as e:
            raise StoreCorruptError(f"Share registry {self.db_path} has a malformed record", e)

    def _write(self, records: Dict[str, ShareRecord]) -> None:
        payload = {code: record.to_dict() for code, record in records.items()}
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.db_path.name}.", suffix=".tmp", dir=self.db_path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.db_path)
            self._fsync_directory()
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
            raise StoreWriteError(f"Failed to write share registry {self.db_path}: {e}", e)

    def _fsync_directory(self) -> None:
        dir_fd = os.open(self.db_path.parent, os.O_RDONLY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
