"""
main.py

Flask entry point for the CodeDrop file sharing API.

Dependencies:
  - Python packages: Flask, flask-restx, flask-cors, redis, celery, httpx
  - Infrastructure: Redis server (Celery broker; share store when SHARE_STORE=redis)

Notes:
  - API v1 endpoints available at /api/v1/ with Swagger docs at /api/v1/docs
  - Run `celery -A celery_app.celery_app worker --beat` for periodic cleanup
"""

import logging
import os

from app_factory import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    # threaded: concurrent downloads of one code must race through the store lock
    app.run(host=host, port=port, debug=debug, threaded=True)
