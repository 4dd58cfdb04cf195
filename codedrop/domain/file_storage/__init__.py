"""
File Storage Domain

Contract for the payload storage that share records point at.
"""

from .storage_repository import IFileStorageRepository

__all__ = [
    "IFileStorageRepository",
]
