"""
Sharing Entities

Domain entity for a shared file record and its serialized form.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, Dict, Optional

from .value_objects import ShareStatus


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class ShareRecord:
    """
    Entity representing one issued share code and its access policy.

    The record references the payload by its stored name; the payload
    itself belongs to the file storage repository.
    """

    code: str
    stored_name: str
    display_name: Optional[str] = None
    password_secret: Optional[str] = None
    password_scheme: Optional[str] = None
    expires_at: Optional[datetime] = None
    max_downloads: Optional[int] = None
    download_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    threat_flagged: bool = False
    threat_detail: Optional[str] = None

    @property
    def download_name(self) -> str:
        """Filename presented to the downloader."""
        return self.display_name or PurePosixPath(self.stored_name).name

    @property
    def has_password(self) -> bool:
        return self.password_secret is not None

    def is_expired(self, now: datetime) -> bool:
        """True once the current time is past the expiry timestamp."""
        return self.expires_at is not None and now > self.expires_at

    def is_limit_reached(self) -> bool:
        return (
            self.max_downloads is not None
            and self.download_count >= self.max_downloads
        )

    def remaining_downloads(self) -> Optional[int]:
        if self.max_downloads is None:
            return None
        return max(0, self.max_downloads - self.download_count)

    def status(self, now: datetime, payload_present: bool = True) -> ShareStatus:
        """
        Derive the lifecycle status of this record.

        A record whose payload is missing is treated as deleted
        regardless of its other fields.
        """
        if not payload_present:
            return ShareStatus.DELETED
        if self.is_expired(now):
            return ShareStatus.EXPIRED
        if self.is_limit_reached():
            return ShareStatus.LIMIT_REACHED
        return ShareStatus.ACTIVE

    def with_download_counted(self) -> "ShareRecord":
        """Return a copy with the download counter advanced by one."""
        return replace(self, download_count=self.download_count + 1)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "stored_name": self.stored_name,
            "display_name": self.display_name,
            "password_secret": self.password_secret,
            "password_scheme": self.password_scheme,
            "expires_at": _format_timestamp(self.expires_at),
            "max_downloads": self.max_downloads,
            "download_count": self.download_count,
            "created_at": _format_timestamp(self.created_at),
            "threat_flagged": self.threat_flagged,
            "threat_detail": self.threat_detail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], code: Optional[str] = None) -> "ShareRecord":
        """
        Create ShareRecord from dictionary.

        Unknown keys are ignored and absent optional keys default to an
        unset policy, so older and newer layouts both load.

        Args:
            data: Serialized record
            code: Code to use when the mapping key carries it instead of the body
        """
        created_at = _parse_timestamp(data.get("created_at")) or utcnow()
        return cls(
            code=data.get("code") or code,
            stored_name=data["stored_name"],
            display_name=data.get("display_name"),
            password_secret=data.get("password_secret"),
            password_scheme=data.get("password_scheme"),
            expires_at=_parse_timestamp(data.get("expires_at")),
            max_downloads=data.get("max_downloads"),
            download_count=int(data.get("download_count") or 0),
            created_at=created_at,
            threat_flagged=bool(data.get("threat_flagged", False)),
            threat_detail=data.get("threat_detail"),
        )
