"""
Application Services Layer

Orchestrates domain services and coordinates use cases.
"""

from .dependency_container import DependencyContainer, DependencyNotFoundError
from .share_service import DownloadTicket, ShareCreationResult, ShareService
from .transfer_tracker import TransferTracker

__all__ = [
    "DependencyContainer",
    "DependencyNotFoundError",
    "DownloadTicket",
    "ShareCreationResult",
    "ShareService",
    "TransferTracker",
]
