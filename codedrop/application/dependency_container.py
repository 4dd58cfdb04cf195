"""
Dependency Injection Container

Holds the service instances wired up by the app factory so the API layer
and background tasks resolve them by type.
"""

import logging
import threading
from typing import Any, Callable, Dict, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DependencyNotFoundError(Exception):
    """Raised when attempting to resolve an unregistered dependency."""
    pass


class DependencyContainer:
    """
    Registry of singletons and factories keyed by type.

    Overrides win over both kinds of registration; tests use them to swap
    in a service built around fakes without rebuilding the app.
    Thread-safe for concurrent access.
    """

    def __init__(self):
        self._singletons: Dict[Type, Any] = {}
        self._transients: Dict[Type, Callable[[], Any]] = {}
        self._overrides: Dict[Type, Any] = {}
        self._lock = threading.Lock()

    def register_singleton(self, interface: Type[T], implementation: T) -> None:
        """
        Register one instance to be returned for every resolution.

        Example:
            container.register_singleton(ShareRegistry, registry)
        """
        with self._lock:
            self._singletons[interface] = implementation
            logger.debug(f"Registered singleton: {interface.__name__}")

    def register_transient(self, interface: Type[T], factory: Callable[[], T]) -> None:
        """Register a factory called on every resolution."""
        with self._lock:
            self._transients[interface] = factory
            logger.debug(f"Registered transient: {interface.__name__}")

    def resolve(self, interface: Type[T]) -> T:
        """
        Resolve a registered service.

        Raises:
            DependencyNotFoundError: If the interface is not registered
        """
        with self._lock:
            if interface in self._overrides:
                return self._overrides[interface]
            if interface in self._singletons:
                return self._singletons[interface]
            factory = self._transients.get(interface)

        if factory is None:
            raise DependencyNotFoundError(
                f"No registration found for type: {interface.__name__}"
            )
        # Called outside the lock so the factory may resolve other services
        return factory()

    def override(self, interface: Type[T], implementation: T) -> None:
        with self._lock:
            self._overrides[interface] = implementation
            logger.debug(f"Overridden: {interface.__name__}")

    def clear_overrides(self) -> None:
        with self._lock:
            self._overrides.clear()

    def is_registered(self, interface: Type) -> bool:
        with self._lock:
            return (
                interface in self._singletons
                or interface in self._transients
                or interface in self._overrides
            )

    @property
    def registration_count(self) -> int:
        with self._lock:
            return len(self._singletons) + len(self._transients)
