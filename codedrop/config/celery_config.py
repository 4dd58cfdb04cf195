"""
Celery Configuration

Settings for the cleanup worker and beat scheduler, and the factory that
binds tasks to the Flask app context.
"""

import os
from typing import Any, Dict, Optional

from celery import Celery
from kombu import Queue

CLEANUP_TASK = "tasks.cleanup_expired_shares"
CLEANUP_QUEUE = "cleanup_queue"


class CeleryConfig:
    """
    Celery settings read from the environment when instantiated.

    Cleanup is the only task. Its statistics are logged, so results are
    not stored.
    """

    def __init__(self):
        self.broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
        self.cleanup_interval = float(os.getenv("CLEANUP_INTERVAL_SECONDS", 300))
        self.soft_time_limit = int(os.getenv("CELERY_TASK_SOFT_TIME_LIMIT", 240))
        self.time_limit = int(os.getenv("CELERY_TASK_TIME_LIMIT", 300))
        self.concurrency = int(os.getenv("CELERY_WORKER_CONCURRENCY", 1))

        if self.cleanup_interval <= 0:
            raise ValueError("CLEANUP_INTERVAL_SECONDS must be positive")
        if self.soft_time_limit >= self.time_limit:
            raise ValueError(
                "CELERY_TASK_SOFT_TIME_LIMIT must be lower than CELERY_TASK_TIME_LIMIT"
            )

    def as_settings(self) -> Dict[str, Any]:
        """Celery ``conf`` keys for this configuration."""
        return {
            "broker_url": self.broker_url,
            "task_serializer": "json",
            "accept_content": ["json"],
            "timezone": "UTC",
            "enable_utc": True,
            "task_ignore_result": True,
            "task_acks_late": True,
            "worker_prefetch_multiplier": 1,
            "worker_concurrency": self.concurrency,
            "task_default_queue": "default",
            "task_queues": (
                Queue("default", routing_key="default"),
                Queue(CLEANUP_QUEUE, routing_key="cleanup"),
            ),
            "task_routes": {CLEANUP_TASK: {"queue": CLEANUP_QUEUE}},
            "task_soft_time_limit": self.soft_time_limit,
            "task_time_limit": self.time_limit,
            "beat_schedule": {
                "cleanup-expired-shares": {
                    "task": CLEANUP_TASK,
                    "schedule": self.cleanup_interval,
                    # A pass nobody picked up before the next one is redundant
                    "options": {"expires": self.cleanup_interval},
                },
            },
        }


def make_celery(app, config: Optional[CeleryConfig] = None) -> Celery:
    """
    Create a Celery app whose tasks run inside the Flask app context.

    Args:
        app: Flask application instance
        config: Celery settings, read from the environment if None
    """
    config = config or CeleryConfig()

    celery = Celery(app.import_name)
    celery.conf.update(config.as_settings())

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery
