"""
Unit tests for DependencyContainer.
"""

import pytest

from codedrop.application.dependency_container import (
    DependencyContainer,
    DependencyNotFoundError,
)


class DummyService:
    def __init__(self, value="default"):
        self.value = value


@pytest.fixture
def container():
    return DependencyContainer()


def test_singleton_is_shared(container):
    service = DummyService("test")
    container.register_singleton(DummyService, service)

    assert container.resolve(DummyService) is service
    assert container.resolve(DummyService) is service
    assert container.registration_count == 1


def test_transient_builds_each_time(container):
    container.register_transient(DummyService, DummyService)

    assert container.resolve(DummyService) is not container.resolve(DummyService)


def test_override_wins_and_can_be_cleared(container):
    real = DummyService("real")
    fake = DummyService("fake")
    container.register_singleton(DummyService, real)

    container.override(DummyService, fake)
    assert container.resolve(DummyService) is fake

    container.clear_overrides()
    assert container.resolve(DummyService) is real


def test_transient_factory_may_resolve_other_services(container):
    container.register_singleton(str, "config")
    container.register_transient(DummyService, lambda: DummyService(container.resolve(str)))

    assert container.resolve(DummyService).value == "config"


def test_unregistered_type(container):
    assert not container.is_registered(DummyService)
    with pytest.raises(DependencyNotFoundError):
        container.resolve(DummyService)
