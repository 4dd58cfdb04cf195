"""
Sharing Domain

Share records, the ordered access gate, the retirement protocol and
upload-time threat screening.
"""

from .access_gate import AccessContext, AccessDecision, AccessGate
from .entities import ShareRecord
from .passwords import PasswordHasher
from .repositories import RecordUpdate, ShareRepository
from .services import (
    BatchCreateResult,
    RetirementOutcome,
    RetirementResult,
    ShareRegistry,
)
from .threat import (
    IThreatClassifier,
    ScreeningResult,
    ThreatFallback,
    ThreatPolicy,
    ThreatReport,
    ThreatScreen,
    ThreatVerdict,
)
from .value_objects import (
    AccessVerdict,
    PasswordScheme,
    ShareCode,
    SharePolicy,
    ShareStatus,
)

__all__ = [
    "AccessContext",
    "AccessDecision",
    "AccessGate",
    "AccessVerdict",
    "BatchCreateResult",
    "IThreatClassifier",
    "PasswordHasher",
    "PasswordScheme",
    "RecordUpdate",
    "RetirementOutcome",
    "RetirementResult",
    "ScreeningResult",
    "ShareCode",
    "SharePolicy",
    "ShareRecord",
    "ShareRegistry",
    "ShareRepository",
    "ShareStatus",
    "ThreatFallback",
    "ThreatPolicy",
    "ThreatReport",
    "ThreatScreen",
    "ThreatVerdict",
]
