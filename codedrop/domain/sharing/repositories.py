"""
Sharing Repositories

Repository interface for share record persistence.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from .entities import ShareRecord

# Receives the current record, returns the record to persist or None to remove it
RecordMutator = Callable[[ShareRecord], Optional[ShareRecord]]


@dataclass(frozen=True)
class RecordUpdate:
    """
    Result of an atomic read-modify-write on one code.

    Attributes:
        before: Record as loaded inside the critical section, None if absent
        after: Record as persisted, None if it was removed (or absent)
    """

    before: Optional[ShareRecord]
    after: Optional[ShareRecord]

    @property
    def found(self) -> bool:
        return self.before is not None

    @property
    def removed(self) -> bool:
        return self.before is not None and self.after is None


class ShareRepository(ABC):
    """
    Abstract repository interface for share record persistence.

    Contract Guarantees:
    - Reads never observe a partially written record
    - add() and update() are atomic with respect to other mutations of the same code
    - Write failures raise StoreWriteError; a method that returns has persisted its change
    - Unreadable persisted state raises StoreCorruptError after initialization
    """

    @abstractmethod
    def initialize(self) -> None:
        """
        Load or create the durable state.

        Called once at process start before any other method.
        """
        pass  # pragma: no cover

    @abstractmethod
    def add(self, record: ShareRecord) -> bool:
        """
        Insert a record if its code is unused.

        Args:
            record: ShareRecord to insert

        Returns:
            True if inserted, False if the code already exists
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, code: str) -> Optional[ShareRecord]:
        """
        Retrieve a record by code.

        Args:
            code: Share code

        Returns:
            ShareRecord if found, None otherwise
        """
        pass  # pragma: no cover

    @abstractmethod
    def update(self, code: str, mutator: RecordMutator) -> RecordUpdate:
        """
        Atomically load, mutate and persist the record for a code.

        The mutator runs under exclusive access to the code and is not
        called when the record does not exist.

        Args:
            code: Share code
            mutator: Callable returning the new record, or None to remove it

        Returns:
            RecordUpdate describing the state before and after
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, code: str) -> Optional[ShareRecord]:
        """
        Remove a record.

        Args:
            code: Share code

        Returns:
            The removed record, or None if it did not exist
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_all(self) -> List[ShareRecord]:
        """
        Return every stored record.

        Returns:
            List of ShareRecord instances in no particular order
        """
        pass  # pragma: no cover

    def exists(self, code: str) -> bool:
        """Check if a record exists for a code."""
        return self.get(code) is not None
