"""
Application Factory

Creates and configures the Flask application with all dependencies.
The factory takes its configuration as arguments so tests can point the
stores at temporary directories.
"""

import logging
import os
from datetime import timedelta
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from codedrop.application.dependency_container import DependencyContainer
from codedrop.application.share_service import ShareService
from codedrop.config.celery_config import make_celery
from codedrop.config.redis_config import (
    get_redis_config,
    get_share_redis_repository,
    init_redis,
    redis_health_check,
)
from codedrop.config.share_config import ShareConfig
from codedrop.domain.file_storage.storage_repository import IFileStorageRepository
from codedrop.domain.sharing import (
    PasswordHasher,
    ShareRegistry,
    ShareRepository,
    ThreatScreen,
)
from codedrop.infrastructure.storage_factory import StorageFactory

logger = logging.getLogger(__name__)


class AppConfig:
    """Application configuration."""

    def __init__(self):
        self.api_version = os.getenv("API_VERSION", "v1")
        self.flask_env = os.getenv("FLASK_ENV", "development")
        self.is_production = self.flask_env == "production"
        self.cors_origins = os.getenv("CORS_ORIGINS", "*")


def create_app(
    config: Optional[AppConfig] = None,
    share_config: Optional[ShareConfig] = None,
) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Application configuration, uses default if None
        share_config: Share service configuration, uses default if None

    Returns:
        Configured Flask application
    """
    if config is None:
        config = AppConfig()
    if share_config is None:
        share_config = ShareConfig()

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = share_config.max_content_length

    CORS(
        app,
        resources={
            r"/*": {
                "origins": config.cors_origins,
                "methods": ["GET", "HEAD", "POST", "DELETE", "OPTIONS"],
                "allow_headers": ["Content-Type", "Authorization"],
                "expose_headers": ["Content-Disposition", "Content-Length"],
                "max_age": 3600,
            }
        },
    )

    _initialize_infrastructure(app)
    _initialize_services(app, share_config)
    _register_blueprints(app, config)
    _register_health_endpoint(app, share_config)

    return app


def _initialize_infrastructure(app: Flask) -> None:
    """
    Initialize Redis and Celery.

    Neither opens a connection here, so the API starts without Redis when
    the JSON store is used.
    """
    try:
        init_redis()
        app.celery = make_celery(app)
        logger.info("Redis and Celery initialized")
    except Exception as e:
        logger.warning(f"Could not initialize infrastructure: {e}")
        app.celery = None


def _initialize_services(app: Flask, share_config: ShareConfig) -> None:
    """
    Build every service and register it on a DependencyContainer.

    The API layer and Celery tasks resolve services from ``app.container``.
    If the share store cannot be initialized the container is left unset
    and the API answers 503.

    Args:
        app: Flask application
        share_config: Share service configuration
    """
    try:
        container = DependencyContainer()

        # Infrastructure adapters
        storage_repository = StorageFactory.create_storage(share_config.upload_dir)
        if share_config.store_backend == "redis":
            redis_config = get_redis_config()
            share_repository = StorageFactory.create_share_repository(
                "redis",
                share_config.db_path,
                get_share_redis_repository(),
                lock_timeout=redis_config.lock_timeout,
                lock_wait=redis_config.lock_wait,
            )
        else:
            share_repository = StorageFactory.create_share_repository(
                share_config.store_backend, share_config.db_path
            )
        share_repository.initialize()

        classifier = StorageFactory.create_threat_classifier(
            share_config.threat_policy,
            share_config.threat_scan_url,
            share_config.threat_scan_token,
            share_config.threat_scan_timeout,
        )

        container.register_singleton(IFileStorageRepository, storage_repository)
        container.register_singleton(ShareRepository, share_repository)

        # Domain services
        registry = ShareRegistry(
            share_repository,
            storage_repository,
            password_hasher=PasswordHasher(share_config.password_scheme),
        )
        threat_screen = ThreatScreen(
            classifier,
            storage_repository,
            policy=share_config.threat_policy,
            fallback=share_config.threat_fallback,
        )
        container.register_singleton(ShareRegistry, registry)
        container.register_singleton(ThreatScreen, threat_screen)

        # Application services
        share_service = ShareService(
            registry,
            storage_repository,
            threat_screen,
            orphan_max_age=timedelta(seconds=share_config.orphan_max_age_seconds),
        )
        container.register_singleton(ShareService, share_service)

        app.container = container
        logger.info(
            f"Application services initialized: {container.registration_count} services, "
            f"store={share_config.store_backend}, "
            f"threat_scan={share_config.threat_policy.value}"
        )

    except Exception as e:
        logger.error(f"Could not initialize services: {e}", exc_info=True)
        app.container = None


def _register_blueprints(app: Flask, config: AppConfig) -> None:
    from codedrop.api.v1 import api_v1_bp

    app.register_blueprint(api_v1_bp)
    logger.info(
        f"API {config.api_version} registered at /api/{config.api_version} "
        f"with Swagger UI at /api/{config.api_version}/docs"
    )


def _get_health_status(app: Flask, share_config: ShareConfig) -> tuple[dict, int]:
    """
    Get health status of all system components.

    The share store and payload storage are required. Redis is only
    required when it backs the share store; Celery only runs cleanup.

    Returns:
        Tuple of (health_status_dict, http_status_code)
    """
    health_status = {
        "status": "ok",
        "message": "backend ready",
        "share_store": share_config.store_backend,
        "services": "unknown",
        "redis": "unknown",
        "celery": "unknown",
    }

    if getattr(app, "container", None) is not None:
        health_status["services"] = "initialized"
    else:
        health_status["services"] = "unavailable"
        health_status["status"] = "degraded"

    try:
        if redis_health_check():
            health_status["redis"] = "connected"
        else:
            health_status["redis"] = "disconnected"
            if share_config.store_backend == "redis":
                health_status["status"] = "degraded"
    except Exception as e:
        health_status["redis"] = f"error: {str(e)}"
        if share_config.store_backend == "redis":
            health_status["status"] = "degraded"

    if getattr(app, "celery", None) is not None:
        health_status["celery"] = "available"
    else:
        health_status["celery"] = "unavailable"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


def _register_health_endpoint(app: Flask, share_config: ShareConfig) -> None:
    @app.route("/health", methods=["GET"])
    def health():
        """Overall health of the application and its dependencies."""
        health_status, status_code = _get_health_status(app, share_config)
        return jsonify(health_status), status_code
