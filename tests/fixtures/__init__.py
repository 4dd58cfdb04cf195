"""
Test fixtures package.

Provides in-memory repository implementations and a scriptable classifier.
"""

from .mock_repositories import (
    InMemoryFileStorageRepository,
    InMemoryShareRepository,
    ScriptedThreatClassifier,
)

__all__ = [
    "InMemoryFileStorageRepository",
    "InMemoryShareRepository",
    "ScriptedThreatClassifier",
]
