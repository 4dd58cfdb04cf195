"""
API v1 - CodeDrop REST API

Versioned endpoints with OpenAPI/Swagger documentation.
"""

import os

from flask import Blueprint
from flask_restx import Api

API_VERSION = os.getenv("API_VERSION", "v1")

api_v1_bp = Blueprint("api_v1", __name__, url_prefix=f"/api/{API_VERSION}")

api = Api(
    api_v1_bp,
    version="1.0",
    title="CodeDrop API",
    description="Share files by code with optional expiry, password and download limits",
    doc="/docs",  # Swagger UI at /api/v1/docs
    license="MIT",
)

# Imported after api exists; the namespaces module pulls models from it
from .namespaces import share_ns  # noqa: E402

api.add_namespace(share_ns, path="/shares")
