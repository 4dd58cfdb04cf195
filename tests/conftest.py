"""
Shared pytest fixtures and configuration for the CodeDrop test suite.

This module provides:
- Hypothesis configuration for property-based testing
- Default store locations for modules that build the app at import time
- Shared fixtures for share records, policies and in-memory repositories
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# celery_app builds a Flask app on import; keep it out of the real /tmp/codedrop
_SESSION_DIR = tempfile.mkdtemp(prefix="codedrop-tests-")
os.environ.setdefault("SHARE_DB_PATH", os.path.join(_SESSION_DIR, "codes.json"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_SESSION_DIR, "uploads"))

from hypothesis import HealthCheck, Phase, settings  # noqa: E402

from codedrop.domain.sharing import (  # noqa: E402
    AccessGate,
    PasswordHasher,
    PasswordScheme,
    ShareRecord,
    ShareRegistry,
)
from tests.fixtures.mock_repositories import (  # noqa: E402
    InMemoryFileStorageRepository,
    InMemoryShareRepository,
)

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


# =============================================================================
# Time Fixtures
# =============================================================================

class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now) -> FrozenClock:
    return FrozenClock(fixed_now)


# =============================================================================
# Repository and Service Fixtures
# =============================================================================

@pytest.fixture
def share_repository() -> InMemoryShareRepository:
    repo = InMemoryShareRepository()
    repo.initialize()
    return repo


@pytest.fixture
def storage() -> InMemoryFileStorageRepository:
    return InMemoryFileStorageRepository()


@pytest.fixture
def registry(share_repository, storage, clock) -> ShareRegistry:
    """ShareRegistry over in-memory stores with plaintext secrets (fast)."""
    return ShareRegistry(
        share_repository,
        storage,
        password_hasher=PasswordHasher(PasswordScheme.PLAINTEXT),
        gate=AccessGate(),
        clock=clock,
    )


@pytest.fixture
def stored_payload(storage) -> str:
    """Relative path of a payload already present in storage."""
    return storage.put("a1b2c3/report.pdf", b"%PDF-1.4 test payload")


@pytest.fixture
def sample_record(stored_payload, fixed_now) -> ShareRecord:
    return ShareRecord(
        code="Zq3k9xVb0mT1rP4sL8wYhA",
        stored_name=stored_payload,
        created_at=fixed_now,
    )


# =============================================================================
# Pytest Configuration Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
    config.addinivalue_line(
        "markers", "contract: Contract tests (verify interface compliance)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/contracts/* -> @pytest.mark.contract
    - tests/property/* -> @pytest.mark.property
    """
    for item in items:
        test_path = str(item.fspath)

        if "/unit/" in test_path or "\\unit\\" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path or "\\integration\\" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/contracts/" in test_path or "\\contracts\\" in test_path:
            item.add_marker(pytest.mark.contract)
        elif "/property/" in test_path or "\\property\\" in test_path:
            item.add_marker(pytest.mark.property)
