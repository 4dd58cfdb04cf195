"""
API Models for request parsing, response validation and Swagger documentation
"""

from flask_restx import fields
from werkzeug.datastructures import FileStorage

from codedrop.api.v1 import api
from codedrop.domain.sharing.value_objects import EXPIRY_UNITS

# =============================================================================
# Request Parsers
# =============================================================================

upload_parser = api.parser()
upload_parser.add_argument(
    "files",
    location="files",
    type=FileStorage,
    action="append",
    help="One or more files; each gets its own code",
)
upload_parser.add_argument(
    "expires_in", location="form", type=str, help="Lifetime amount, empty for no expiry"
)
upload_parser.add_argument(
    "expires_unit",
    location="form",
    type=str,
    help=f"Lifetime unit: {', '.join(EXPIRY_UNITS)} (default minutes)",
)
upload_parser.add_argument(
    "password", location="form", type=str, help="Password required to download"
)
upload_parser.add_argument(
    "max_downloads", location="form", type=str, help="Positive download limit"
)
upload_parser.add_argument(
    "display_name", location="form", type=str, help="Filename shown to downloaders"
)

access_parser = api.parser()
access_parser.add_argument(
    "password", location="args", type=str, help="Share password, if one is set"
)

# =============================================================================
# Response Models
# =============================================================================

share_model = api.model(
    "Share",
    {
        "code": fields.String(description="Access code", example="Zq3k9xVb0mT1rP4sL8wYhA"),
        "file_name": fields.String(description="Name presented to downloaders"),
        "expires_at": fields.String(
            description="Expiry time (ISO 8601, UTC)", allow_null=True
        ),
        "max_downloads": fields.Integer(description="Download limit", allow_null=True),
        "password_protected": fields.Boolean(description="Whether a password is set"),
        "flagged": fields.Boolean(
            description="Whether downloads require confirming a malware warning"
        ),
    },
)

rejected_file_model = api.model(
    "RejectedFile",
    {
        "file_name": fields.String(description="Uploaded filename"),
        "error": fields.String(description="Error category"),
        "detail": fields.String(description="Reason", allow_null=True),
    },
)

share_creation_response = api.model(
    "ShareCreationResponse",
    {
        "codes": fields.List(fields.String, description="One code per accepted file"),
        "shares": fields.List(fields.Nested(share_model)),
        "rejected": fields.List(fields.Nested(rejected_file_model)),
    },
)

share_status_response = api.inherit(
    "ShareStatus",
    share_model,
    {
        "verdict": fields.String(description="Access gate verdict", example="allow"),
        "status": fields.String(description="Lifecycle status", example="active"),
        "download_count": fields.Integer(description="Completed downloads"),
        "remaining_downloads": fields.Integer(
            description="Downloads left", allow_null=True
        ),
        "size": fields.Integer(description="Payload size in bytes", allow_null=True),
        "created_at": fields.String(description="Creation time (ISO 8601, UTC)"),
    },
)

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Error category", example="share_not_found"),
        "title": fields.String(description="Short error title"),
        "message": fields.String(description="User-facing error message"),
        "action": fields.String(description="Suggested action"),
    },
)

confirmation_response = api.inherit(
    "ConfirmationRequired",
    error_response,
    {
        "warning": fields.String(description="Malware warning to show the user"),
        "confirm_url": fields.String(description="URL that downloads after confirmation"),
    },
)
