"""
Dependency Injection Configuration

Wires the store, claim coordinator, publisher, scanner and timer together at
startup and exposes them to FastAPI routes. Tests swap implementations with
`app.dependency_overrides` or by registering their own instances.
"""
import logging
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import CustomSettings
from app.services.claim_coordinator import ClaimCoordinator
from app.services.event_publisher import EventDispatcher, PrePlaybackEventPublisher
from app.services.preplay_scan_service import PrePlaybackScanner
from app.services.schedule_store import ScheduleStore
from app.services.scheduler_service import PlaybackScheduler


logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceLocator:
    """
    Type-keyed registry of singleton services.

    Provides a centralized place to access configured services throughout the application.
    """

    def __init__(self):
        self._singletons: dict[type, Any] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        self._singletons[service_type] = instance
        logger.debug(f"Registered singleton: {service_type.__name__}")

    def get(self, service_type: type[T]) -> T:
        """
        Get a registered service instance.

        Raises:
            KeyError: If service type is not registered
        """
        if service_type in self._singletons:
            return self._singletons[service_type]
        raise KeyError(f"Service {service_type.__name__} not registered in container")

    def reset(self) -> None:
        """Reset all registered services (mainly for testing)."""
        self._singletons = {}
        logger.debug("Service locator reset")


# Global service locator instance
_service_locator: ServiceLocator | None = None


def get_service_locator() -> ServiceLocator:
    global _service_locator
    if _service_locator is None:
        _service_locator = ServiceLocator()
    return _service_locator


def reset_service_locator() -> None:
    """
    Reset the service locator (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _service_locator
    _service_locator = None


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    config: CustomSettings,
) -> ServiceLocator:
    """
    Create and register every service the application needs.

    Args:
        session_factory: Session factory returned by init_db()
        config: Validated application settings

    Returns:
        The populated global ServiceLocator
    """
    locator = get_service_locator()

    store = ScheduleStore(session_factory)
    publisher = PrePlaybackEventPublisher(
        config.notification_url,
        config.notification_exchange,
        config.notification_routing_key,
        timeout=config.notification_timeout_sec,
    )
    scanner = PrePlaybackScanner(
        store,
        ClaimCoordinator(store),
        EventDispatcher(publisher),
        lookahead_start_min=config.lookahead_start_min,
        lookahead_width_min=config.lookahead_width_min,
        max_concurrency=config.scan_max_concurrency,
    )
    scheduler = PlaybackScheduler(
        scanner,
        period_ms=config.scan_period_ms,
        max_overlap=config.scan_max_overlap,
        misfire_grace_sec=config.scan_misfire_grace_sec,
    )

    locator.register_singleton(ScheduleStore, store)
    locator.register_singleton(PrePlaybackEventPublisher, publisher)
    locator.register_singleton(PrePlaybackScanner, scanner)
    locator.register_singleton(PlaybackScheduler, scheduler)
    return locator


def get_schedule_store() -> ScheduleStore:
    """FastAPI dependency for the schedule store"""
    return get_service_locator().get(ScheduleStore)


def get_event_publisher() -> PrePlaybackEventPublisher:
    """FastAPI dependency for the event publisher"""
    return get_service_locator().get(PrePlaybackEventPublisher)


def get_scanner() -> PrePlaybackScanner:
    """FastAPI dependency for the pre-playback scanner"""
    return get_service_locator().get(PrePlaybackScanner)


def get_playback_scheduler() -> PlaybackScheduler:
    """FastAPI dependency for the scan timer"""
    return get_service_locator().get(PlaybackScheduler)
