"""
Sharing Value Objects

Immutable value objects for share codes, policies and access verdicts.
"""

import secrets
import string
import unicodedata
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional

from codedrop.domain.errors import InvalidPolicyError

# 16 random bytes -> 22 URL-safe characters, 128 bits of entropy
CODE_ENTROPY_BYTES = 16

CODE_ALPHABET = frozenset(string.ascii_letters + string.digits + "-_")

# Longest lifetime a share may request; keeps expiry timestamps representable
MAX_LIFETIME = timedelta(days=365 * 100)


class ShareStatus(Enum):
    """Lifecycle status of a share record. Derived, never persisted."""

    ACTIVE = "active"
    EXPIRED = "expired"
    LIMIT_REACHED = "limit_reached"
    DELETED = "deleted"


class AccessVerdict(Enum):
    """
    Outcome of the access gate.

    Declaration order mirrors the order in which the gate checks run.
    """

    NOT_FOUND = "not_found"
    GONE = "gone"
    EXPIRED = "expired"
    FORBIDDEN = "forbidden"
    LIMIT_REACHED = "limit_reached"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    ALLOW = "allow"


class PasswordScheme(Enum):
    """How a share's password secret is stored and compared."""

    HASHED = "hashed"
    PLAINTEXT = "plaintext"


class InvalidShareCodeError(ValueError):
    """Raised when a string cannot be a share code."""
    pass


@dataclass(frozen=True)
class ShareCode:
    """
    Value object representing a share access code.

    Codes are opaque, case-sensitive and URL-safe.
    """

    value: str

    def __post_init__(self):
        if not self._is_valid():
            raise InvalidShareCodeError(f"Invalid share code: {self.value!r}")

    def _is_valid(self) -> bool:
        if not self.value or not isinstance(self.value, str):
            return False
        if len(self.value) > 128:
            return False
        return all(c in CODE_ALPHABET for c in self.value)

    @classmethod
    def generate(cls) -> "ShareCode":
        """
        Generate a new cryptographically secure share code.

        Returns:
            New ShareCode with 128 bits of randomness
        """
        return cls(secrets.token_urlsafe(CODE_ENTROPY_BYTES))

    def __str__(self) -> str:
        return self.value


# Duration units accepted when a policy is given as "N units"
EXPIRY_UNITS: Dict[str, timedelta] = {
    "minutes": timedelta(minutes=1),
    "hours": timedelta(hours=1),
    "days": timedelta(days=1),
    "weeks": timedelta(weeks=1),
    "months": timedelta(days=30),
    "years": timedelta(days=365),
}


@dataclass(frozen=True)
class SharePolicy:
    """
    Access policy requested for a share at upload time.

    One policy may be applied to a whole batch of payloads.

    Attributes:
        expires_in: Lifetime relative to creation, None for no expiry
        password: Shared secret, None or "" for no password
        max_downloads: Positive download ceiling, None for unlimited
        display_name: Name presented to downloaders instead of the stored name
    """

    expires_in: Optional[timedelta] = None
    password: Optional[str] = None
    max_downloads: Optional[int] = None
    display_name: Optional[str] = None

    def __post_init__(self):
        if self.max_downloads is not None:
            if isinstance(self.max_downloads, bool) or not isinstance(
                self.max_downloads, int
            ):
                raise InvalidPolicyError("max_downloads must be an integer")
            if self.max_downloads <= 0:
                raise InvalidPolicyError("max_downloads must be greater than zero")

        if self.expires_in is not None:
            if not isinstance(self.expires_in, timedelta):
                raise InvalidPolicyError("expires_in must be a duration")
            if abs(self.expires_in) > MAX_LIFETIME:
                raise InvalidPolicyError(
                    f"expires_in must not exceed {MAX_LIFETIME.days} days"
                )

        # The display name ends up in the Content-Disposition header
        if self.display_name is not None and any(
            unicodedata.category(c) == "Cc" for c in self.display_name
        ):
            raise InvalidPolicyError("display_name must not contain control characters")

        # Empty strings mean "not set"
        if self.password == "":
            object.__setattr__(self, "password", None)
        if self.display_name is not None and not self.display_name.strip():
            object.__setattr__(self, "display_name", None)

    @classmethod
    def from_form(
        cls,
        expires_in: Optional[str] = None,
        expires_unit: Optional[str] = None,
        password: Optional[str] = None,
        max_downloads: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> "SharePolicy":
        """
        Build a policy from raw form values.

        Unknown expiry units fall back to minutes.

        Raises:
            InvalidPolicyError: If a numeric field cannot be parsed
        """
        lifetime = None
        if expires_in not in (None, ""):
            try:
                amount = int(expires_in)
            except (TypeError, ValueError) as e:
                raise InvalidPolicyError(f"expires_in must be an integer: {expires_in!r}", e)
            unit = EXPIRY_UNITS.get((expires_unit or "").strip().lower(), EXPIRY_UNITS["minutes"])
            try:
                lifetime = unit * amount
            except OverflowError as e:
                raise InvalidPolicyError(f"expires_in is out of range: {expires_in!r}", e)

        limit = None
        if max_downloads not in (None, ""):
            try:
                limit = int(max_downloads)
            except (TypeError, ValueError) as e:
                raise InvalidPolicyError(
                    f"max_downloads must be an integer: {max_downloads!r}", e
                )

        return cls(
            expires_in=lifetime,
            password=password,
            max_downloads=limit,
            display_name=display_name.strip() if display_name else None,
        )
