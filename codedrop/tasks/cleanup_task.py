"""
Cleanup Task

Celery beat task that removes inactive shares and orphaned payloads.
"""

import logging

from flask import current_app

from celery_app import celery_app
from codedrop.application.share_service import ShareService

logger = logging.getLogger(__name__)


def run_cleanup(container) -> dict:
    """
    Run one cleanup pass using the services registered on a container.

    Args:
        container: DependencyContainer built by the app factory, or None

    Returns:
        dict: Cleanup statistics with counts and errors
    """
    if container is None:
        error_msg = "Cleanup skipped: services not initialized"
        logger.error(error_msg)
        return {
            "expired_shares_removed": 0,
            "orphaned_payloads_removed": 0,
            "errors": [error_msg],
        }

    stats = container.resolve(ShareService).cleanup()

    logger.info(
        f"Cleanup completed - Shares: {stats['expired_shares_removed']}, "
        f"Orphaned: {stats['orphaned_payloads_removed']}, "
        f"Errors: {len(stats['errors'])}"
    )
    if stats["errors"]:
        logger.warning(f"Cleanup errors: {stats['errors']}")

    return stats


@celery_app.task(bind=True, name="tasks.cleanup_expired_shares")
def cleanup_expired_shares(self):
    """
    Periodic cleanup task, scheduled every 5 minutes by Celery beat.

    Removes expired shares, shares at their download limit and shares whose
    payload is gone, then removes payloads no share refers to.

    Returns:
        dict: Cleanup statistics with counts and errors
    """
    logger.info("Starting cleanup task")
    return run_cleanup(getattr(current_app, "container", None))
