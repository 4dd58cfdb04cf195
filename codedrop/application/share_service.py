"""
Share Service

Application service orchestrating the share workflows: upload, screen and
register; resolve, gate and stream; confirm; probe; delete; and periodic
cleanup. The HTTP layer and the Celery task talk only to this service.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Tuple

from codedrop.domain.errors import (
    ClassifierUnavailableError,
    ErrorCategory,
    InvalidPolicyError,
    RejectedPayloadError,
    StoreError,
)
from codedrop.domain.file_storage.storage_repository import IFileStorageRepository
from codedrop.domain.sharing import (
    AccessDecision,
    AccessVerdict,
    ScreeningResult,
    SharePolicy,
    ShareRecord,
    ShareRegistry,
    ThreatScreen,
)

from .transfer_tracker import TransferTracker

logger = logging.getLogger(__name__)


@dataclass
class ShareCreationResult:
    """Outcome of one upload request."""

    shares: List[Dict[str, Any]] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def codes(self) -> List[str]:
        return [share["code"] for share in self.shares]


@dataclass
class DownloadTicket:
    """
    Result of resolving a download request.

    When the gate allows the download, ``transfer`` is an open tracker that
    must be handed to the response or closed by the caller.
    """

    decision: AccessDecision
    transfer: Optional[TransferTracker] = None
    size: Optional[int] = None

    @property
    def allowed(self) -> bool:
        return self.transfer is not None


class ShareService:
    """Use cases for sharing files by code."""

    def __init__(
        self,
        registry: ShareRegistry,
        storage_repository: IFileStorageRepository,
        threat_screen: ThreatScreen,
        orphan_max_age: timedelta = timedelta(hours=1),
    ):
        """
        Initialize ShareService.

        Args:
            registry: Share registry domain service
            storage_repository: Payload storage
            threat_screen: Upload-time threat screening
            orphan_max_age: Age after which unreferenced payloads are removed
        """
        self.registry = registry
        self.storage = storage_repository
        self.threat_screen = threat_screen
        self.orphan_max_age = orphan_max_age

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def create_shares(
        self, uploads: Iterable[Tuple[str, BinaryIO]], policy: SharePolicy
    ) -> ShareCreationResult:
        """
        Store each uploaded file and issue one code per file.

        Every file is saved, then screened, then registered. A file that
        fails at any step is reported in ``rejected`` and its payload is
        removed; the other files are unaffected.

        Args:
            uploads: Pairs of (client filename, binary stream)
            policy: Policy applied to every created share

        Returns:
            ShareCreationResult with the created shares and rejected files

        Raises:
            InvalidPolicyError: If the policy cannot be resolved; no payload is kept
        """
        result = ShareCreationResult()
        accepted: List[str] = []
        original_names: Dict[str, str] = {}
        screenings: Dict[str, ScreeningResult] = {}

        for file_name, stream in uploads:
            stored_name = self.storage.allocate_path(file_name)
            try:
                self.storage.save(stored_name, stream)
            except (IOError, OSError, ValueError) as e:
                logger.error(f"Failed to store upload {file_name}: {e}", exc_info=True)
                self._discard(stored_name)
                result.rejected.append(
                    self._rejection(file_name, ErrorCategory.SYSTEM_ERROR, str(e))
                )
                continue

            try:
                screenings[stored_name] = self.threat_screen.screen(stored_name)
            except RejectedPayloadError as e:
                result.rejected.append(
                    self._rejection(file_name, ErrorCategory.PAYLOAD_REJECTED, e.detail)
                )
                continue
            except ClassifierUnavailableError as e:
                result.rejected.append(
                    self._rejection(file_name, ErrorCategory.CLASSIFIER_UNAVAILABLE, str(e))
                )
                continue

            accepted.append(stored_name)
            original_names[stored_name] = file_name

        if not accepted:
            return result

        try:
            batch = self.registry.create_batch(accepted, policy, screenings)
        except InvalidPolicyError:
            for stored_name in accepted:
                self._discard(stored_name)
            raise

        for record in batch.records:
            result.shares.append(self._describe(record))

        for stored_name, error in batch.failures.items():
            self._discard(stored_name)
            category = (
                ErrorCategory.STORE_ERROR
                if isinstance(error, StoreError)
                else ErrorCategory.SYSTEM_ERROR
            )
            result.rejected.append(
                self._rejection(original_names[stored_name], category, str(error))
            )

        logger.info(
            f"Upload processed: {len(result.shares)} share(s) created, "
            f"{len(result.rejected)} file(s) rejected"
        )
        return result

    @staticmethod
    def _describe(record: ShareRecord) -> Dict[str, Any]:
        return {
            "code": record.code,
            "file_name": record.download_name,
            "expires_at": record.expires_at.isoformat() if record.expires_at else None,
            "max_downloads": record.max_downloads,
            "password_protected": record.has_password,
            "flagged": record.threat_flagged,
        }

    @staticmethod
    def _rejection(
        file_name: str, category: ErrorCategory, detail: Optional[str]
    ) -> Dict[str, Any]:
        return {"file_name": file_name, "error": category.value, "detail": detail}

    def _discard(self, stored_name: str) -> None:
        try:
            self.storage.delete(stored_name)
        except (IOError, OSError) as e:
            logger.error(f"Failed to discard payload {stored_name}: {e}")

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def open_download(
        self,
        code: str,
        supplied_password: Optional[str] = None,
        confirmed: bool = False,
    ) -> DownloadTicket:
        """
        Run the access gate and, on allow, open the payload for streaming.

        The returned tracker applies the retirement protocol when it is
        closed after the transfer began.

        Args:
            code: Share code
            supplied_password: Password sent by the caller
            confirmed: Whether the caller came through the confirmation step

        Returns:
            DownloadTicket carrying the gate decision and, on allow, the tracker
        """
        decision = self.registry.evaluate(code, supplied_password, confirmed)
        if not decision.allowed:
            return DownloadTicket(decision)

        record = decision.record
        stream = self.storage.get(record.stored_name)
        if stream is None:
            # Payload vanished between the gate and the open
            logger.warning(f"Share {code[:6]}... payload disappeared before streaming")
            return DownloadTicket(AccessDecision(AccessVerdict.GONE, record))

        logger.info(f"Streaming share {code[:6]}... as {record.download_name}")
        transfer = TransferTracker(
            stream, lambda: self.registry.apply_download_success(code)
        )
        return DownloadTicket(
            decision, transfer=transfer, size=self.storage.get_size(record.stored_name)
        )

    def confirm_download(
        self, code: str, supplied_password: Optional[str] = None
    ) -> DownloadTicket:
        """Download a flagged share after the user confirmed the warning."""
        return self.open_download(code, supplied_password, confirmed=True)

    def probe(self, code: str, supplied_password: Optional[str] = None) -> AccessDecision:
        """Evaluate the gate without opening the payload or counting anything."""
        return self.registry.evaluate(code, supplied_password)

    def describe_share(
        self, code: str, supplied_password: Optional[str] = None
    ) -> Tuple[AccessDecision, Optional[Dict[str, Any]]]:
        """
        Evaluate the gate and, when it allows, describe the share.

        Details are only returned to callers who would be allowed to
        download, so a wrong password reveals nothing.
        """
        decision = self.probe(code, supplied_password)
        if not decision.allowed:
            return decision, None

        record = decision.record
        details = self._describe(record)
        details.update(
            {
                "status": self.registry.status_of(record).value,
                "download_count": record.download_count,
                "remaining_downloads": record.remaining_downloads(),
                "size": self.storage.get_size(record.stored_name),
                "created_at": record.created_at.isoformat(),
            }
        )
        return decision, details

    # ------------------------------------------------------------------
    # Deletion and cleanup
    # ------------------------------------------------------------------

    def delete_share(self, code: str) -> bool:
        """
        Delete a share and its payload.

        Returns:
            True if the share existed
        """
        return self.registry.delete(code)

    def cleanup(self) -> Dict[str, Any]:
        """
        Remove inactive shares and payloads no share refers to.

        Returns:
            Cleanup statistics
        """
        stats: Dict[str, Any] = {
            "expired_shares_removed": 0,
            "orphaned_payloads_removed": 0,
            "errors": [],
        }

        try:
            stats["expired_shares_removed"] = self.registry.purge_expired()
        except StoreError as e:
            error_msg = f"Error purging expired shares: {e}"
            stats["errors"].append(error_msg)
            logger.error(error_msg, exc_info=True)
            # Without a readable registry every payload would look orphaned
            return stats

        try:
            stats["orphaned_payloads_removed"] = self._remove_orphaned_payloads()
        except (StoreError, OSError) as e:
            error_msg = f"Error removing orphaned payloads: {e}"
            stats["errors"].append(error_msg)
            logger.error(error_msg, exc_info=True)

        return stats

    def _remove_orphaned_payloads(self) -> int:
        referenced = {record.stored_name for record in self.registry.list_records()}
        cutoff = self.registry.clock() - self.orphan_max_age
        count = 0

        for stored_name in self.storage.list_files():
            if stored_name in referenced:
                continue
            modified = self.storage.get_modified_time(stored_name)
            if modified is None or modified > cutoff:
                continue
            if self.storage.delete(stored_name):
                count += 1
                logger.info(f"Removed orphaned payload: {stored_name}")

        return count
