"""
Service wiring.

Builds the zone index, stores, notification sink, task queue and the domain
services once per process. Routers reach them through get_container(), which
tests replace with app.dependency_overrides.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from common.ports import AlertStore, ConsentStore, LocationStore, ResponderDirectory, UserStore
from common.schemas import ResponderRef
from common.storage import (
    DEFAULT_RESPONDERS,
    InMemoryAlertStore,
    InMemoryConsentStore,
    InMemoryLocationStore,
    InMemoryResponderDirectory,
    InMemoryUserStore,
)
from libs.audit_logger import AuditTrail
from libs.config import Config, config
from libs.task_queue import BackgroundTaskQueue
from services.consent.service import ConsentService
from services.location.service import LocationService
from services.notification.inbox import NotificationInbox
from services.notification.sink import DefaultNotificationSink
from services.safety_scoring.scorer import SafetyScorer
from services.sos.coordinator import AlertCoordinator
from services.zones.zone_index import ZoneIndex, load_geofences_from_file

logger = logging.getLogger(__name__)


class ServiceContainer:
    def __init__(
        self,
        *,
        zone_index: ZoneIndex,
        user_store: UserStore,
        alert_store: AlertStore,
        location_store: LocationStore,
        consent_store: ConsentStore,
        responders: ResponderDirectory,
        inbox: Optional[NotificationInbox] = None,
        sink: Optional[DefaultNotificationSink] = None,
        task_queue: Optional[BackgroundTaskQueue] = None,
        audit: Optional[AuditTrail] = None,
        settings: Config = config,
    ):
        self.zone_index = zone_index
        self.user_store = user_store
        self.alert_store = alert_store
        self.location_store = location_store
        self.consent_store = consent_store
        self.responders = responders
        self.inbox = inbox or NotificationInbox()
        self.sink = sink or DefaultNotificationSink(self.inbox)
        self.task_queue = task_queue or BackgroundTaskQueue(
            "sos-coordination", workers=settings.TASK_QUEUE_WORKERS
        )
        self.audit = audit or AuditTrail()
        recent_window = timedelta(hours=settings.RECENT_WINDOW_HOURS)

        self.scorer = SafetyScorer(
            zone_index,
            timezone=settings.SAFETY_TIMEZONE,
            inactivity_threshold=timedelta(minutes=settings.INACTIVITY_THRESHOLD_MINUTES),
            recent_alert_cap=settings.RECENT_ALERT_CAP,
        )
        self.coordinator = AlertCoordinator(
            self.scorer,
            alert_store,
            user_store,
            location_store,
            self.sink,
            responders,
            self.task_queue,
            audit=self.audit,
            roles=settings.responder_roles(),
            notification_timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
            max_retries=settings.NOTIFICATION_MAX_RETRIES,
            retry_base_delay=settings.NOTIFICATION_RETRY_BASE_DELAY,
            sms_enabled=settings.NOTIFICATION_SMS_ENABLED,
            recent_window=recent_window,
        )
        self.location_service = LocationService(
            location_store,
            alert_store,
            zone_index,
            self.scorer,
            self.sink,
            recent_window=recent_window,
        )
        self.consent_service = ConsentService(consent_store, audit=self.audit)

    async def shutdown(self) -> None:
        await self.task_queue.stop()


def _load_zone_index(settings: Config) -> ZoneIndex:
    if not settings.ZONES_CONFIG_PATH:
        logger.info("ZONES_CONFIG_PATH not set; starting with no zones")
        return ZoneIndex()
    zones = load_geofences_from_file(settings.ZONES_CONFIG_PATH)
    return ZoneIndex(zones)


def build_container(settings: Config = config) -> ServiceContainer:
    """Wire everything for the configured STORAGE_BACKEND (memory | postgres)."""
    zone_index = _load_zone_index(settings)
    responders = InMemoryResponderDirectory(
        [ResponderRef.model_validate(r) for r in DEFAULT_RESPONDERS],
        radius_m=settings.RESPONDER_SEARCH_RADIUS_M,
    )

    if settings.STORAGE_BACKEND == "postgres":
        from libs.db import get_session_factory
        from services.consent.repository import SqlConsentStore
        from services.location.repository import SqlLocationStore
        from services.sos.repository import SqlAlertStore
        from services.user_management.repository import SqlUserStore

        session_factory = get_session_factory()
        logger.info("Using PostgreSQL storage backend")
        return ServiceContainer(
            zone_index=zone_index,
            user_store=SqlUserStore(session_factory),
            alert_store=SqlAlertStore(session_factory),
            location_store=SqlLocationStore(session_factory),
            consent_store=SqlConsentStore(session_factory),
            responders=responders,
            audit=AuditTrail(session_factory),
            settings=settings,
        )

    if settings.STORAGE_BACKEND != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")

    logger.info("Using in-memory storage backend")
    return ServiceContainer(
        zone_index=zone_index,
        user_store=InMemoryUserStore(),
        alert_store=InMemoryAlertStore(),
        location_store=InMemoryLocationStore(),
        consent_store=InMemoryConsentStore(),
        responders=responders,
        settings=settings,
    )


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get or create the process-wide container (FastAPI dependency)."""
    global _container
    if _container is None:
        _container = build_container()
    return _container


async def shutdown_container() -> None:
    global _container
    if _container is not None:
        await _container.shutdown()
    _container = None


@asynccontextmanager
async def lifespan(app):
    """Stop the background workers when the app shuts down."""
    yield
    await shutdown_container()
