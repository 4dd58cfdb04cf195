"""
API Namespaces - Organized endpoint groups
"""

import unicodedata
from typing import Optional
from urllib.parse import quote

from flask import Response, current_app, request
from flask_restx import Namespace, Resource
from werkzeug.exceptions import RequestEntityTooLarge

from codedrop.api.v1 import api
from codedrop.api.v1.models import (
    access_parser,
    confirmation_response,
    error_response,
    share_creation_response,
    share_status_response,
    upload_parser,
)
from codedrop.application.share_service import DownloadTicket, ShareService
from codedrop.domain.errors import (
    ErrorCategory,
    InvalidPolicyError,
    StoreError,
    create_error_response,
)
from codedrop.domain.sharing import AccessDecision, AccessVerdict, SharePolicy

# Gate verdict -> (error category, HTTP status)
DENIAL_RESPONSES = {
    AccessVerdict.NOT_FOUND: (ErrorCategory.SHARE_NOT_FOUND, 404),
    AccessVerdict.GONE: (ErrorCategory.FILE_GONE, 404),
    AccessVerdict.EXPIRED: (ErrorCategory.SHARE_EXPIRED, 410),
    AccessVerdict.FORBIDDEN: (ErrorCategory.WRONG_PASSWORD, 403),
    AccessVerdict.LIMIT_REACHED: (ErrorCategory.DOWNLOAD_LIMIT_REACHED, 429),
    AccessVerdict.REQUIRES_CONFIRMATION: (ErrorCategory.CONFIRMATION_REQUIRED, 409),
}


def _share_service() -> Optional[ShareService]:
    container = getattr(current_app, "container", None)
    if container is None:
        return None
    return container.resolve(ShareService)


def _service_unavailable():
    return create_error_response(
        ErrorCategory.SYSTEM_ERROR, "Share service not initialized", status_code=503
    )


def _store_failure(e: StoreError, action: str):
    current_app.logger.error(f"Share store failure while {action}: {e}", exc_info=True)
    return create_error_response(ErrorCategory.STORE_ERROR, str(e), status_code=503)


def _denial_response(code: str, decision: AccessDecision):
    category, status_code = DENIAL_RESPONSES[decision.verdict]
    context = None
    if decision.verdict is AccessVerdict.REQUIRES_CONFIRMATION:
        context = {
            "warning": decision.message,
            "confirm_url": api.url_for(ShareConfirm, code=code),
        }
    return create_error_response(
        category, f"Share {code[:6]}... {decision.verdict.value}", context, status_code
    )


def _content_disposition(response: Response, download_name: str) -> None:
    download_name = "".join(
        c for c in download_name if unicodedata.category(c) != "Cc"
    ) or "download"
    try:
        download_name.encode("ascii")
        value = {"filename": download_name}
    except UnicodeEncodeError:
        simple = unicodedata.normalize("NFKD", download_name)
        simple = simple.encode("ascii", "ignore").decode("ascii")
        quoted = quote(download_name, safe="!#$&+-.^_`|~")
        value = {"filename": simple, "filename*": f"UTF-8''{quoted}"}
    response.headers.set("Content-Disposition", "attachment", **value)


def _stream_response(code: str, ticket: DownloadTicket):
    if not ticket.allowed:
        return _denial_response(code, ticket.decision)

    try:
        response = Response(
            ticket.transfer,
            mimetype="application/octet-stream",
            direct_passthrough=True,
        )
        _content_disposition(response, ticket.decision.download_name)
        if ticket.size is not None:
            response.content_length = ticket.size
        response.headers["Cache-Control"] = "no-store"
    except Exception:
        # Nothing was sent, so closing does not count a download
        ticket.transfer.close()
        raise
    return response


def _open_download(code: str, confirmed: bool):
    service = _share_service()
    if service is None:
        return _service_unavailable()

    password = access_parser.parse_args().get("password")

    try:
        ticket = service.open_download(code, password, confirmed=confirmed)
    except StoreError as e:
        return _store_failure(e, f"resolving share {code[:6]}...")
    except Exception as e:
        current_app.logger.exception(f"Error serving share {code[:6]}...: {str(e)}")
        return create_error_response(
            ErrorCategory.SYSTEM_ERROR, f"Internal server error: {str(e)}", status_code=500
        )

    return _stream_response(code, ticket)


# =============================================================================
# Share Namespace - Upload, download and lifecycle of shared files
# =============================================================================

share_ns = Namespace("shares", description="File sharing by code")


@share_ns.route("/")
class ShareList(Resource):
    """Create shares"""

    @share_ns.doc("create_shares")
    @share_ns.expect(upload_parser)
    @share_ns.response(201, "Shares created", share_creation_response)
    @share_ns.response(400, "Bad Request", error_response)
    @share_ns.response(413, "File Too Large", error_response)
    @share_ns.response(422, "Every file was rejected", share_creation_response)
    @share_ns.response(503, "Service Unavailable", error_response)
    def post(self):
        """
        Upload files and issue one access code per file

        The expiry, password, download limit and display name apply to every
        file in the request.
        """
        service = _share_service()
        if service is None:
            return _service_unavailable()

        try:
            args = upload_parser.parse_args()
        except RequestEntityTooLarge as e:
            return create_error_response(ErrorCategory.FILE_TOO_LARGE, str(e), status_code=413)

        uploads = [
            (upload.filename, upload.stream)
            for upload in (args.get("files") or [])
            if upload is not None and upload.filename
        ]
        if not uploads:
            return create_error_response(
                ErrorCategory.INVALID_REQUEST,
                "No files in multipart field 'files'",
                status_code=400,
            )

        try:
            policy = SharePolicy.from_form(
                expires_in=args.get("expires_in"),
                expires_unit=args.get("expires_unit"),
                password=args.get("password"),
                max_downloads=args.get("max_downloads"),
                display_name=args.get("display_name"),
            )
        except InvalidPolicyError as e:
            return create_error_response(
                ErrorCategory.INVALID_REQUEST, str(e), {"detail": str(e)}, status_code=400
            )

        try:
            result = service.create_shares(uploads, policy)
        except InvalidPolicyError as e:
            return create_error_response(
                ErrorCategory.INVALID_REQUEST, str(e), {"detail": str(e)}, status_code=400
            )
        except StoreError as e:
            return _store_failure(e, "creating shares")
        except Exception as e:
            current_app.logger.exception(f"Unexpected error creating shares: {str(e)}")
            return create_error_response(
                ErrorCategory.SYSTEM_ERROR,
                f"Failed to create shares: {str(e)}",
                status_code=500,
            )

        body = {"codes": result.codes, "shares": result.shares, "rejected": result.rejected}
        current_app.logger.info(
            f"[API_V1] Created {len(result.shares)} share(s), rejected {len(result.rejected)}"
        )
        return body, (201 if result.shares else 422)


@share_ns.route("/<string:code>")
@share_ns.param("code", "The share code")
class Share(Resource):
    """Download, probe or delete one share"""

    @share_ns.doc("download_share")
    @share_ns.expect(access_parser)
    @share_ns.response(200, "File content")
    @share_ns.response(403, "Wrong Password", error_response)
    @share_ns.response(404, "Share Not Found or File Gone", error_response)
    @share_ns.response(409, "Confirmation Required", confirmation_response)
    @share_ns.response(410, "Share Expired", error_response)
    @share_ns.response(429, "Download Limit Reached", error_response)
    @share_ns.response(503, "Service Unavailable", error_response)
    def get(self, code):
        """
        Download the shared file

        The download counts once the transfer has started, even if the
        client disconnects before the end. The share and its file are
        removed when the download limit is reached.
        """
        return _open_download(code, confirmed=False)

    @share_ns.doc("probe_share")
    @share_ns.expect(access_parser)
    @share_ns.response(200, "Share can be downloaded")
    def head(self, code):
        """
        Check whether a share can be downloaded

        Same status codes as GET, no body, never counts as a download.
        """
        service = _share_service()
        if service is None:
            return "", 503

        password = access_parser.parse_args().get("password")
        try:
            decision = service.probe(code, password)
        except StoreError as e:
            current_app.logger.error(f"Share store failure probing {code[:6]}...: {e}")
            return "", 503

        if decision.allowed:
            return "", 200
        _, status_code = DENIAL_RESPONSES[decision.verdict]
        return "", status_code

    @share_ns.doc("delete_share")
    @share_ns.response(204, "Share deleted")
    @share_ns.response(404, "Share Not Found", error_response)
    def delete(self, code):
        """Delete a share and its file"""
        service = _share_service()
        if service is None:
            return _service_unavailable()

        try:
            deleted = service.delete_share(code)
        except StoreError as e:
            return _store_failure(e, f"deleting share {code[:6]}...")

        if not deleted:
            return create_error_response(
                ErrorCategory.SHARE_NOT_FOUND,
                f"Share {code[:6]}... not found",
                status_code=404,
            )
        return "", 204


@share_ns.route("/<string:code>/status")
@share_ns.param("code", "The share code")
class ShareStatusResource(Resource):
    """Describe a share"""

    @share_ns.doc("get_share_status")
    @share_ns.expect(access_parser)
    @share_ns.response(200, "Share can be downloaded", share_status_response)
    @share_ns.response(403, "Wrong Password", error_response)
    @share_ns.response(404, "Share Not Found or File Gone", error_response)
    @share_ns.response(409, "Confirmation Required", confirmation_response)
    @share_ns.response(410, "Share Expired", error_response)
    @share_ns.response(429, "Download Limit Reached", error_response)
    def get(self, code):
        """
        Get share details without downloading

        Details are only returned when the share could be downloaded with
        the supplied password.
        """
        service = _share_service()
        if service is None:
            return _service_unavailable()

        password = access_parser.parse_args().get("password")
        try:
            decision, details = service.describe_share(code, password)
        except StoreError as e:
            return _store_failure(e, f"describing share {code[:6]}...")

        if details is None:
            return _denial_response(code, decision)

        details["verdict"] = decision.verdict.value
        return details, 200


@share_ns.route("/<string:code>/confirm")
@share_ns.param("code", "The share code")
class ShareConfirm(Resource):
    """Download a flagged share after confirming the warning"""

    @share_ns.doc("confirm_share_download")
    @share_ns.expect(access_parser)
    @share_ns.response(200, "File content")
    @share_ns.response(403, "Wrong Password", error_response)
    @share_ns.response(404, "Share Not Found or File Gone", error_response)
    @share_ns.response(410, "Share Expired", error_response)
    @share_ns.response(429, "Download Limit Reached", error_response)
    def get(self, code):
        """
        Download a share the malware scanner flagged

        All other checks still apply.
        """
        return _open_download(code, confirmed=True)
