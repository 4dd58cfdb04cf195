"""
Celery Application Instance

Creates the Celery app instance for use by workers and beat scheduler.
Uses the app factory so tasks resolve the same services as the API.
"""

import logging
import os

from app_factory import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

flask_app = create_app()

celery_app = flask_app.celery

# Task modules are imported by the worker once celery_app exists, which
# avoids the tasks -> celery_app -> tasks import cycle.
celery_app.conf.imports = ("codedrop.tasks.cleanup_task",)
