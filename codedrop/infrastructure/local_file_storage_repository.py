"""
Local File Storage Repository Implementation

Concrete implementation of IFileStorageRepository for the local filesystem.
Uploaded payloads live under a base directory, one sub-directory per upload.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional

from codedrop.domain.file_storage.storage_repository import IFileStorageRepository

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a client-supplied filename for safe storage.

    Args:
        filename: Original filename

    Returns:
        Filename containing only safe characters, never empty
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    safe_chars = "".join(c for c in name if c.isalnum() or c in " .-_()").strip()
    safe_chars = safe_chars.lstrip(".")

    if not safe_chars:
        safe_chars = "upload"

    return safe_chars


class LocalFileStorageRepository(IFileStorageRepository):
    """
    Local filesystem implementation of IFileStorageRepository.

    Thread Safety:
        Safe for concurrent reads. Each upload is written under its own
        randomly named directory, so concurrent writes never collide.

    Attributes:
        base_path: Base directory for file storage operations
    """

    def __init__(self, base_path: str = "/tmp/codedrop/uploads"):
        """
        Initialize the local file storage repository.

        Args:
            base_path: Base directory for file storage
        """
        self.base_path = Path(base_path).resolve()
        self._ensure_base_directory()

    def _ensure_base_directory(self) -> None:
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise PermissionError(
                f"Insufficient permissions to create storage directory: {self.base_path}"
            ) from e
        except OSError as e:
            raise OSError(f"Failed to create storage directory: {self.base_path}") from e

    def _resolve(self, file_path: str) -> Path:
        """
        Map a relative path to an absolute one inside base_path.

        Raises:
            ValueError: If the path is empty or escapes the storage root
        """
        if not file_path or not file_path.strip():
            raise ValueError("file_path cannot be empty")

        full_path = (self.base_path / file_path).resolve()
        if full_path == self.base_path or self.base_path not in full_path.parents:
            raise ValueError(f"file_path escapes storage root: {file_path}")
        return full_path

    # IFileStorageRepository interface methods

    def allocate_path(self, filename: str) -> str:
        """
        Choose a fresh relative path for an uploaded file.

        Args:
            filename: Client-supplied filename

        Returns:
            Relative path of the form '<random hex>/<sanitized filename>'
        """
        return f"{uuid.uuid4().hex}/{sanitize_filename(filename)}"

    def save(self, file_path: str, content: BinaryIO) -> bool:
        full_path = self._resolve(file_path)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "wb") as f:
                while True:
                    chunk = content.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
            return True
        except PermissionError:
            raise
        except OSError as e:
            raise IOError(f"Failed to save file: {e}") from e

    def get(self, file_path: str) -> Optional[BinaryIO]:
        try:
            full_path = self._resolve(file_path)
            if not full_path.is_file():
                return None
            return open(full_path, "rb")
        except (OSError, ValueError):
            return None

    def delete(self, file_path: str) -> bool:
        try:
            full_path = self._resolve(file_path)
        except ValueError:
            return True  # Idempotent - invalid path treated as success

        try:
            if full_path.is_file():
                full_path.unlink()
        except FileNotFoundError:
            pass
        except PermissionError:
            raise
        except OSError as e:
            raise IOError(f"Failed to delete file: {e}") from e

        # Clean up the now empty upload directory
        parent = full_path.parent
        if parent != self.base_path:
            try:
                if parent.exists() and not any(parent.iterdir()):
                    parent.rmdir()
            except OSError:
                pass  # Best effort

        return True

    def exists(self, file_path: str) -> bool:
        try:
            return self._resolve(file_path).is_file()
        except (OSError, ValueError):
            return False

    def get_size(self, file_path: str) -> Optional[int]:
        try:
            full_path = self._resolve(file_path)
            if full_path.is_file():
                return full_path.stat().st_size
            return None
        except (OSError, ValueError):
            return None

    def list_files(self) -> List[str]:
        return [
            path.relative_to(self.base_path).as_posix()
            for path in self.base_path.rglob("*")
            if path.is_file()
        ]

    def get_modified_time(self, file_path: str) -> Optional[datetime]:
        try:
            full_path = self._resolve(file_path)
            if not full_path.is_file():
                return None
            return datetime.fromtimestamp(full_path.stat().st_mtime, tz=timezone.utc)
        except (OSError, ValueError):
            return None
