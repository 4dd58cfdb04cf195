"""
Share Configuration

Settings for the share registry, payload storage and threat screening.
"""

import os
from typing import Optional

from codedrop.domain.sharing.threat import ThreatFallback, ThreatPolicy
from codedrop.domain.sharing.value_objects import PasswordScheme

STORE_BACKENDS = ("json", "redis")


def _enum_from_env(enum_type, name: str, default):
    raw = os.getenv(name, default.value).strip().lower()
    try:
        return enum_type(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValueError(f"{name} must be one of: {allowed} (got {raw!r})")


class ShareConfig:
    """
    Share service configuration settings.

    Raises:
        ValueError: If an enumerated setting has an unknown value
    """

    def __init__(self):
        self.store_backend = os.getenv("SHARE_STORE", "json").strip().lower()
        if self.store_backend not in STORE_BACKENDS:
            raise ValueError(
                f"SHARE_STORE must be one of: {', '.join(STORE_BACKENDS)} "
                f"(got {self.store_backend!r})"
            )

        self.db_path = os.getenv("SHARE_DB_PATH", "/tmp/codedrop/codes.json")
        self.upload_dir = os.getenv("UPLOAD_DIR", "/tmp/codedrop/uploads")
        self.password_scheme = _enum_from_env(
            PasswordScheme, "SHARE_PASSWORD_SCHEME", PasswordScheme.HASHED
        )

        # Threat screening
        self.threat_policy = _enum_from_env(ThreatPolicy, "THREAT_SCAN_MODE", ThreatPolicy.OFF)
        self.threat_fallback = _enum_from_env(
            ThreatFallback, "THREAT_SCAN_FALLBACK", ThreatFallback.REJECT
        )
        self.threat_scan_url: Optional[str] = os.getenv("THREAT_SCAN_URL") or None
        self.threat_scan_token: Optional[str] = os.getenv("THREAT_SCAN_TOKEN") or None
        self.threat_scan_timeout = float(os.getenv("THREAT_SCAN_TIMEOUT", 30))

        if self.threat_policy is not ThreatPolicy.OFF and not self.threat_scan_url:
            raise ValueError(
                f"THREAT_SCAN_MODE={self.threat_policy.value} requires THREAT_SCAN_URL"
            )

        # Uploads
        self.max_upload_mb = int(os.getenv("MAX_UPLOAD_MB", 512))

        # Payloads not referenced by any record are removed after this age
        self.orphan_max_age_seconds = int(os.getenv("ORPHAN_MAX_AGE_SECONDS", 3600))

    @property
    def max_content_length(self) -> int:
        return self.max_upload_mb * 1024 * 1024
