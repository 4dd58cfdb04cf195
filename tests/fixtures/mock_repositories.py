"""
Mock Repository Implementations

In-memory implementations of the repository interfaces for unit testing.
Provide realistic behavior with inspection helpers for test assertions.
"""

import io
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, List, Optional

from codedrop.domain.errors import ClassifierUnavailableError
from codedrop.domain.file_storage.storage_repository import IFileStorageRepository
from codedrop.domain.sharing.entities import ShareRecord
from codedrop.domain.sharing.repositories import (
    RecordMutator,
    RecordUpdate,
    ShareRepository,
)
from codedrop.domain.sharing.threat import IThreatClassifier, ThreatReport, ThreatVerdict


class InMemoryShareRepository(ShareRepository):
    """
    In-memory ShareRepository.

    Records are stored serialized so callers never share mutable state
    with the store, mirroring the real backends.
    """

    def __init__(self):
        self._storage: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.initialized = False
        self.update_calls = 0

    def initialize(self) -> None:
        self.initialized = True

    def add(self, record: ShareRecord) -> bool:
        with self._lock:
            if record.code in self._storage:
                return False
            self._storage[record.code] = record.to_dict()
            return True

    def get(self, code: str) -> Optional[ShareRecord]:
        data = self._storage.get(code)
        return ShareRecord.from_dict(data) if data is not None else None

    def update(self, code: str, mutator: RecordMutator) -> RecordUpdate:
        with self._lock:
            self.update_calls += 1
            data = self._storage.get(code)
            if data is None:
                return RecordUpdate(None, None)
            before = ShareRecord.from_dict(data)
            after = mutator(ShareRecord.from_dict(data))
            if after is None:
                del self._storage[code]
            else:
                self._storage[code] = after.to_dict()
            return RecordUpdate(before, after)

    def delete(self, code: str) -> Optional[ShareRecord]:
        with self._lock:
            data = self._storage.pop(code, None)
        return ShareRecord.from_dict(data) if data is not None else None

    def list_all(self) -> List[ShareRecord]:
        return [ShareRecord.from_dict(data) for data in list(self._storage.values())]

    # Inspection helpers

    def count(self) -> int:
        return len(self._storage)


class InMemoryFileStorageRepository(IFileStorageRepository):
    """In-memory payload storage with deletion tracking."""

    def __init__(self):
        self._files: Dict[str, bytes] = {}
        self._mtimes: Dict[str, datetime] = {}
        self.deleted: List[str] = []
        self._lock = threading.Lock()

    def put(self, file_path: str, content: bytes, modified: Optional[datetime] = None) -> str:
        """Store bytes directly. Returns the path for convenience."""
        self._files[file_path] = content
        self._mtimes[file_path] = modified or datetime.now(timezone.utc)
        return file_path

    def allocate_path(self, filename: str) -> str:
        return f"{uuid.uuid4().hex}/{filename}"

    def save(self, file_path: str, content: BinaryIO) -> bool:
        self.put(file_path, content.read())
        return True

    def get(self, file_path: str) -> Optional[BinaryIO]:
        content = self._files.get(file_path)
        return io.BytesIO(content) if content is not None else None

    def delete(self, file_path: str) -> bool:
        with self._lock:
            if self._files.pop(file_path, None) is not None:
                self.deleted.append(file_path)
            self._mtimes.pop(file_path, None)
        return True

    def exists(self, file_path: str) -> bool:
        return file_path in self._files

    def get_size(self, file_path: str) -> Optional[int]:
        content = self._files.get(file_path)
        return len(content) if content is not None else None

    def list_files(self) -> List[str]:
        return list(self._files)

    def get_modified_time(self, file_path: str) -> Optional[datetime]:
        return self._mtimes.get(file_path)


class ScriptedThreatClassifier(IThreatClassifier):
    """
    Classifier returning canned verdicts.

    Files whose name contains a key of ``malicious`` are reported malicious
    with that key's detail. ``unavailable=True`` makes every call fail.
    """

    def __init__(self, malicious: Optional[Dict[str, str]] = None, unavailable: bool = False):
        self.malicious = malicious or {}
        self.unavailable = unavailable
        self.calls: List[str] = []

    def classify(self, file_name: str, content: BinaryIO) -> ThreatReport:
        self.calls.append(file_name)
        content.read()
        if self.unavailable:
            raise ClassifierUnavailableError("scanner offline")
        for marker, detail in self.malicious.items():
            if marker in file_name:
                return ThreatReport(ThreatVerdict.MALICIOUS, detail)
        return ThreatReport(ThreatVerdict.CLEAN)
