"""
Sharing Services

Domain service owning share code issuance, access evaluation and the
post-download retirement protocol.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from codedrop.domain.errors import CodeGenerationError, InvalidPolicyError
from codedrop.domain.file_storage.storage_repository import IFileStorageRepository

from .access_gate import AccessContext, AccessDecision, AccessGate
from .entities import ShareRecord, utcnow
from .passwords import PasswordHasher
from .repositories import ShareRepository
from .threat import ScreeningResult
from .value_objects import AccessVerdict, SharePolicy, ShareStatus, ShareCode

logger = logging.getLogger(__name__)


class RetirementOutcome(Enum):
    NOOP = "noop"
    COUNTED = "counted"
    RETIRED = "retired"


@dataclass(frozen=True)
class RetirementResult:
    """
    Result of applying one successful download to a share.

    Attributes:
        outcome: NOOP if the record was already gone, COUNTED if the counter
            advanced, RETIRED if the limit was reached and the share removed
        record: The record after counting, None for NOOP
    """

    outcome: RetirementOutcome
    record: Optional[ShareRecord] = None


@dataclass
class BatchCreateResult:
    """Records created for a batch, plus per-payload failures."""

    records: List[ShareRecord] = field(default_factory=list)
    failures: Dict[str, Exception] = field(default_factory=dict)

    @property
    def codes(self) -> List[str]:
        return [record.code for record in self.records]


@dataclass(frozen=True)
class _ResolvedPolicy:
    expires_at: Optional[datetime]
    password_secret: Optional[str]
    password_scheme: Optional[str]
    max_downloads: Optional[int]
    display_name: Optional[str]


class ShareRegistry:
    """
    Domain service for the lifecycle of share records.

    Coordinates code generation, persistence, gate evaluation and
    retirement. All mutations of a single code go through the repository's
    atomic update, so concurrent downloads cannot lose or double-apply
    counter increments.
    """

    MAX_CODE_ATTEMPTS = 5

    def __init__(
        self,
        share_repository: ShareRepository,
        storage_repository: IFileStorageRepository,
        password_hasher: Optional[PasswordHasher] = None,
        gate: Optional[AccessGate] = None,
        clock: Callable[[], datetime] = utcnow,
        code_factory: Callable[[], ShareCode] = ShareCode.generate,
    ):
        """
        Initialize ShareRegistry.

        Args:
            share_repository: Persistence for share records
            storage_repository: Storage holding the referenced payloads
            password_hasher: Produces stored secrets for new shares
            gate: Access gate, a fresh AccessGate by default
            clock: Source of the current time
            code_factory: Source of new candidate codes
        """
        self.share_repo = share_repository
        self.storage = storage_repository
        self.password_hasher = password_hasher or PasswordHasher()
        self.gate = gate or AccessGate()
        self.clock = clock
        self.code_factory = code_factory

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(
        self,
        stored_name: str,
        policy: SharePolicy,
        screening: Optional[ScreeningResult] = None,
    ) -> ShareRecord:
        """
        Create a share for one stored payload.

        Args:
            stored_name: Relative path of the payload in storage
            policy: Access policy for the share
            screening: Threat screening result for the payload

        Returns:
            The persisted ShareRecord

        Raises:
            CodeGenerationError: If no unused code could be generated
            StoreWriteError: If the record could not be persisted
        """
        return self._create(stored_name, self._resolve_policy(policy), screening)

    def create_batch(
        self,
        stored_names: Iterable[str],
        policy: SharePolicy,
        screenings: Optional[Dict[str, ScreeningResult]] = None,
    ) -> BatchCreateResult:
        """
        Create one independent share per payload, all with the same policy.

        The policy is resolved once, so every record gets the same expiry
        timestamp and secret. A failure for one payload is recorded in the
        result and does not stop the others.
        """
        resolved = self._resolve_policy(policy)
        screenings = screenings or {}
        result = BatchCreateResult()

        for stored_name in stored_names:
            try:
                record = self._create(stored_name, resolved, screenings.get(stored_name))
                result.records.append(record)
            except Exception as e:
                logger.error(f"Failed to create share for {stored_name}: {e}", exc_info=True)
                result.failures[stored_name] = e

        return result

    def _resolve_policy(self, policy: SharePolicy) -> _ResolvedPolicy:
        expires_at = None
        if policy.expires_in is not None:
            try:
                expires_at = self.clock() + policy.expires_in
            except OverflowError as e:
                raise InvalidPolicyError("expires_in puts the expiry out of range", e)

        secret, scheme = self.password_hasher.make_secret(policy.password)
        return _ResolvedPolicy(
            expires_at=expires_at,
            password_secret=secret,
            password_scheme=scheme,
            max_downloads=policy.max_downloads,
            display_name=policy.display_name,
        )

    def _create(
        self,
        stored_name: str,
        policy: _ResolvedPolicy,
        screening: Optional[ScreeningResult],
    ) -> ShareRecord:
        screening = screening or ScreeningResult()

        for attempt in range(1, self.MAX_CODE_ATTEMPTS + 1):
            record = ShareRecord(
                code=str(self.code_factory()),
                stored_name=stored_name,
                display_name=policy.display_name,
                password_secret=policy.password_secret,
                password_scheme=policy.password_scheme,
                expires_at=policy.expires_at,
                max_downloads=policy.max_downloads,
                download_count=0,
                created_at=self.clock(),
                threat_flagged=screening.flagged,
                threat_detail=screening.detail,
            )
            if self.share_repo.add(record):
                logger.info(
                    f"Share created: code={record.code[:6]}..., payload={stored_name}, "
                    f"expires_at={record.expires_at}, max_downloads={record.max_downloads}, "
                    f"password={'yes' if record.has_password else 'no'}, "
                    f"flagged={record.threat_flagged}"
                )
                return record
            logger.warning(f"Share code collision on attempt {attempt}, regenerating")

        raise CodeGenerationError(
            f"Could not generate an unused code after {self.MAX_CODE_ATTEMPTS} attempts"
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, code: str) -> Optional[ShareRecord]:
        """
        Load the current persisted state for a code.

        Returns:
            ShareRecord if found, None otherwise
        """
        return self.share_repo.get(code)

    def list_records(self) -> List[ShareRecord]:
        return self.share_repo.list_all()

    def status_of(self, record: ShareRecord) -> ShareStatus:
        """Derive the current status of a record, checking payload presence."""
        return record.status(self.clock(), self.storage.exists(record.stored_name))

    def evaluate(
        self,
        code: str,
        supplied_password: Optional[str] = None,
        confirmed: bool = False,
    ) -> AccessDecision:
        """
        Run the access gate for a code against its current state.

        Args:
            code: Share code
            supplied_password: Password sent by the caller
            confirmed: Whether the caller passed the threat confirmation step

        Returns:
            AccessDecision for this request
        """
        record = self.share_repo.get(code)
        payload_present = record is not None and self.storage.exists(record.stored_name)
        decision = self.gate.evaluate(
            record,
            AccessContext(
                now=self.clock(),
                supplied_password=supplied_password,
                payload_present=payload_present,
                confirmed=confirmed,
            ),
        )

        if decision.verdict is AccessVerdict.GONE:
            logger.warning(
                f"Share {code[:6]}... refers to missing payload {record.stored_name}"
            )
        elif not decision.allowed:
            logger.info(f"Share {code[:6]}... denied: {decision.verdict.value}")

        return decision

    # ------------------------------------------------------------------
    # Retirement
    # ------------------------------------------------------------------

    def apply_download_success(self, code: str) -> RetirementResult:
        """
        Apply one completed transfer to a share.

        Under exclusive access to the code: reload the record, stop if it is
        gone, increment the counter, and remove the record when the limit is
        reached. The payload is deleted only by the call that removed the
        record, after the removal was persisted.

        Returns:
            RetirementResult describing what happened

        Raises:
            StoreWriteError: If the new state could not be persisted
        """

        def count_download(record: ShareRecord) -> Optional[ShareRecord]:
            if record.is_limit_reached():
                return None
            counted = record.with_download_counted()
            if counted.is_limit_reached():
                return None
            return counted

        update = self.share_repo.update(code, count_download)

        if not update.found:
            logger.info(f"Share {code[:6]}... already retired, nothing to count")
            return RetirementResult(RetirementOutcome.NOOP)

        if update.removed:
            retired = update.before
            if not retired.is_limit_reached():
                retired = retired.with_download_counted()
            self._delete_payload(retired.stored_name)
            logger.info(
                f"Share {code[:6]}... retired after {retired.download_count} download(s)"
            )
            return RetirementResult(RetirementOutcome.RETIRED, retired)

        logger.info(
            f"Share {code[:6]}... download counted "
            f"({update.after.download_count}/{update.after.max_downloads or 'unlimited'})"
        )
        return RetirementResult(RetirementOutcome.COUNTED, update.after)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete(self, code: str) -> bool:
        """
        Remove a share and its payload.

        Returns:
            True if a record was removed, False if none existed
        """
        removed = self.share_repo.delete(code)
        if removed is None:
            return False

        self._delete_payload(removed.stored_name)
        logger.info(f"Share {code[:6]}... deleted")
        return True

    def purge_expired(self) -> int:
        """
        Remove every share that can no longer be downloaded.

        Expired shares, shares at their limit and shares whose payload is
        gone are removed together with their payloads. Each removal is
        re-checked under the code's lock so a concurrent download cannot be
        lost.

        Returns:
            Number of shares removed
        """
        removed_count = 0

        for candidate in self.share_repo.list_all():
            if self.status_of(candidate) is ShareStatus.ACTIVE:
                continue

            def remove_if_inactive(record: ShareRecord) -> Optional[ShareRecord]:
                if self.status_of(record) is ShareStatus.ACTIVE:
                    return record
                return None

            try:
                update = self.share_repo.update(candidate.code, remove_if_inactive)
            except Exception as e:
                logger.error(
                    f"Error purging share {candidate.code[:6]}...: {e}", exc_info=True
                )
                continue

            if update.removed:
                self._delete_payload(update.before.stored_name)
                removed_count += 1

        if removed_count:
            logger.info(f"Purged {removed_count} inactive share(s)")
        return removed_count

    def _delete_payload(self, stored_name: str) -> bool:
        try:
            return self.storage.delete(stored_name)
        except (IOError, OSError) as e:
            logger.error(f"Error deleting payload {stored_name}: {e}")
            return False
