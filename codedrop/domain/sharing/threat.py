"""
Threat Classification

Interface to an external malware classifier and the upload-time screening
policy built on top of it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Optional

from codedrop.domain.errors import ClassifierUnavailableError, RejectedPayloadError
from codedrop.domain.file_storage.storage_repository import IFileStorageRepository

logger = logging.getLogger(__name__)


class ThreatVerdict(Enum):
    CLEAN = "clean"
    MALICIOUS = "malicious"


class ThreatPolicy(Enum):
    """What to do with a payload the classifier calls malicious."""

    OFF = "off"
    BLOCK = "block"
    WARN = "warn"


class ThreatFallback(Enum):
    """What to do when the classifier cannot produce a verdict."""

    REJECT = "reject"
    CONFIRM = "confirm"
    ALLOW = "allow"


@dataclass(frozen=True)
class ThreatReport:
    verdict: ThreatVerdict
    detail: Optional[str] = None

    @property
    def is_malicious(self) -> bool:
        return self.verdict is ThreatVerdict.MALICIOUS


@dataclass(frozen=True)
class ScreeningResult:
    """
    Outcome of screening one payload that may be shared.

    Attributes:
        flagged: Whether the share must go through the confirmation step
        detail: Human-readable reason shown with the warning
    """

    flagged: bool = False
    detail: Optional[str] = None


class IThreatClassifier(ABC):
    """Abstract interface for an external malware classifier."""

    @abstractmethod
    def classify(self, file_name: str, content: BinaryIO) -> ThreatReport:
        """
        Classify a payload.

        Args:
            file_name: Name of the payload, for the classifier's reporting
            content: Binary stream positioned at the start of the payload

        Returns:
            ThreatReport with the verdict

        Raises:
            ClassifierUnavailableError: If no verdict could be obtained
        """
        pass  # pragma: no cover


class ThreatScreen:
    """
    Domain service applying the configured threat policy to uploaded payloads.

    Block policy removes malicious payloads before any record exists.
    Warn policy lets the record be created but flags it for confirmation.
    Classifier failures follow the configured fallback and are never
    treated as clean unless the fallback is ALLOW.
    """

    def __init__(
        self,
        classifier: Optional[IThreatClassifier],
        storage_repository: IFileStorageRepository,
        policy: ThreatPolicy = ThreatPolicy.OFF,
        fallback: ThreatFallback = ThreatFallback.REJECT,
    ):
        if policy is not ThreatPolicy.OFF and classifier is None:
            raise ValueError(f"Threat policy {policy.value} requires a classifier")
        self.classifier = classifier
        self.storage = storage_repository
        self.policy = policy
        self.fallback = fallback

    @property
    def enabled(self) -> bool:
        return self.policy is not ThreatPolicy.OFF

    def screen(self, stored_name: str) -> ScreeningResult:
        """
        Screen a stored payload before a share is created for it.

        Args:
            stored_name: Relative path of the payload in storage

        Returns:
            ScreeningResult describing whether the share must be flagged

        Raises:
            RejectedPayloadError: Block policy and malicious verdict
            ClassifierUnavailableError: Classifier failed and fallback is REJECT
        """
        if not self.enabled:
            return ScreeningResult()

        try:
            report = self._classify(stored_name)
        except ClassifierUnavailableError as e:
            return self._apply_fallback(stored_name, e)

        if not report.is_malicious:
            return ScreeningResult()

        if self.policy is ThreatPolicy.BLOCK:
            logger.warning(
                f"Blocked malicious payload {stored_name}: {report.detail or 'no detail'}"
            )
            self.storage.delete(stored_name)
            raise RejectedPayloadError(
                f"Payload {stored_name} was classified as malicious", detail=report.detail
            )

        logger.warning(
            f"Flagged malicious payload {stored_name} for confirmation: "
            f"{report.detail or 'no detail'}"
        )
        return ScreeningResult(flagged=True, detail=report.detail)

    def _classify(self, stored_name: str) -> ThreatReport:
        content = self.storage.get(stored_name)
        if content is None:
            raise ClassifierUnavailableError(f"Payload {stored_name} is not in storage")
        try:
            return self.classifier.classify(stored_name.rsplit("/", 1)[-1], content)
        finally:
            content.close()

    def _apply_fallback(
        self, stored_name: str, error: ClassifierUnavailableError
    ) -> ScreeningResult:
        if self.fallback is ThreatFallback.ALLOW:
            logger.warning(
                f"Classifier unavailable for {stored_name}, sharing unscanned: {error}"
            )
            return ScreeningResult()

        if self.fallback is ThreatFallback.CONFIRM:
            logger.warning(
                f"Classifier unavailable for {stored_name}, requiring confirmation: {error}"
            )
            return ScreeningResult(flagged=True, detail="The file could not be scanned.")

        logger.error(f"Classifier unavailable for {stored_name}, rejecting upload: {error}")
        self.storage.delete(stored_name)
        raise error
