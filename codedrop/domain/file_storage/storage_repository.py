"""
File Storage Repository Interface

Abstract interface for payload storage operations.
Share records reference payloads by relative path; the payloads themselves
are owned by an implementation of this interface, keeping the sharing
domain independent of where bytes actually live.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import BinaryIO, List, Optional


class IFileStorageRepository(ABC):
    """
    Unified interface for payload storage operations.

    Contract Guarantees:
    - File paths are relative to the storage root
    - get() returns None for non-existent files (no exceptions)
    - delete() succeeds even if the file doesn't exist (idempotent)
    - exists() never raises for invalid paths

    Thread Safety:
    - Implementations should be thread-safe for concurrent operations
    """

    @abstractmethod
    def allocate_path(self, filename: str) -> str:
        """
        Choose an unused relative path for a new upload.

        Args:
            filename: Client-supplied filename, possibly unsafe

        Returns:
            Relative path whose base name is derived from filename
        """
        pass  # pragma: no cover

    @abstractmethod
    def save(self, file_path: str, content: BinaryIO) -> bool:
        """
        Save file content to storage.

        Parent directories are created automatically. Existing files are
        overwritten.

        Args:
            file_path: Relative path for the file (e.g., '3f2a9c/report.pdf')
            content: Binary file content as a file-like object

        Returns:
            True if the file was successfully saved

        Raises:
            ValueError: If file_path is empty or escapes the storage root
            IOError: If there are I/O errors during the operation
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, file_path: str) -> Optional[BinaryIO]:
        """
        Open a stored file for streaming.

        The caller is responsible for closing the returned stream.

        Args:
            file_path: Relative path to the file

        Returns:
            Open binary stream if found, None if the file doesn't exist
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, file_path: str) -> bool:
        """
        Delete a file from storage.

        Idempotent: deleting a non-existent file returns True.

        Args:
            file_path: Relative path to the file

        Returns:
            True if the file was deleted or didn't exist

        Raises:
            IOError: If there are I/O errors during the operation
        """
        pass  # pragma: no cover

    @abstractmethod
    def exists(self, file_path: str) -> bool:
        """
        Check if a file exists at the specified path.

        Args:
            file_path: Relative path to check

        Returns:
            True if the file exists, False otherwise (including invalid paths)
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_size(self, file_path: str) -> Optional[int]:
        """
        Get the size of a file in bytes.

        Args:
            file_path: Relative path to the file

        Returns:
            File size in bytes, None if the file doesn't exist
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_files(self) -> List[str]:
        """
        List every stored file.

        Returns:
            Relative paths of all stored files
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_modified_time(self, file_path: str) -> Optional[datetime]:
        """
        Get the last modification time of a file.

        Args:
            file_path: Relative path to the file

        Returns:
            Aware UTC datetime, None if the file doesn't exist
        """
        pass  # pragma: no cover
