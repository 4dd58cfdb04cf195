"""
Access Gate

Pure, ordered evaluation of whether a share may be downloaded.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .entities import ShareRecord
from .passwords import PasswordHasher
from .value_objects import AccessVerdict

DEFAULT_THREAT_WARNING = (
    "This file was flagged as potentially malicious by the malware scanner. "
    "Confirm to download it anyway."
)


@dataclass(frozen=True)
class AccessContext:
    """
    Everything the gate needs besides the record itself.

    Attributes:
        now: Evaluation time
        supplied_password: Password sent by the caller, None when absent
        payload_present: Whether the storage still holds the payload
        confirmed: Whether the caller came through the confirmation step
    """

    now: datetime
    supplied_password: Optional[str] = None
    payload_present: bool = True
    confirmed: bool = False


@dataclass(frozen=True)
class AccessDecision:
    """Verdict of the access gate for one request."""

    verdict: AccessVerdict
    record: Optional[ShareRecord] = None
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.verdict is AccessVerdict.ALLOW

    @property
    def download_name(self) -> Optional[str]:
        return self.record.download_name if self.record else None


class AccessGate:
    """
    Evaluates the ordered access checks for a share record.

    The first failing check wins:
    1. record exists             -> NOT_FOUND
    2. payload still stored      -> GONE
    3. not past expiry           -> EXPIRED
    4. password matches          -> FORBIDDEN
    5. below download limit      -> LIMIT_REACHED
    6. not flagged, or confirmed -> REQUIRES_CONFIRMATION
    7.                           -> ALLOW

    The gate has no state and performs no I/O; callers evaluate it fresh
    for every request.
    """

    def evaluate(
        self, record: Optional[ShareRecord], context: AccessContext
    ) -> AccessDecision:
        """
        Evaluate the gate.

        Args:
            record: Loaded record, None if the code is unknown
            context: Request context

        Returns:
            AccessDecision carrying the verdict and, when loaded, the record
        """
        if record is None:
            return AccessDecision(AccessVerdict.NOT_FOUND)

        if not context.payload_present:
            return AccessDecision(AccessVerdict.GONE, record)

        if record.is_expired(context.now):
            return AccessDecision(AccessVerdict.EXPIRED, record)

        if record.has_password and not PasswordHasher.verify(
            record.password_secret, record.password_scheme, context.supplied_password
        ):
            return AccessDecision(AccessVerdict.FORBIDDEN, record)

        if record.is_limit_reached():
            return AccessDecision(AccessVerdict.LIMIT_REACHED, record)

        if record.threat_flagged and not context.confirmed:
            warning = DEFAULT_THREAT_WARNING
            if record.threat_detail:
                warning = f"{warning} Scanner result: {record.threat_detail}"
            return AccessDecision(AccessVerdict.REQUIRES_CONFIRMATION, record, warning)

        return AccessDecision(AccessVerdict.ALLOW, record)
