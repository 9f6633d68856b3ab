"""
Location tracking: record pings, offline batches, history and the
per-user safety score.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from prometheus_client import CollectorRegistry, Counter
from pydantic import BaseModel

from common.constants import LOCATION_HISTORY_LIMIT
from common.errors import NotFound, ValidationError
from common.ports import AlertStore, LocationStore, NotificationSink
from common.schemas import LocationSample, SafetyAssessment, ZoneMatch, as_utc, utcnow
from common.types import LocationSource, RiskLevel, Severity, ZoneType
from libs.geo import Coordinate
from services.notification.templates import render
from services.safety_scoring.scorer import SafetyScorer
from services.zones.zone_index import ZoneIndex

logger = logging.getLogger(__name__)

SCORED_SEVERITIES = {Severity.HIGH, Severity.CRITICAL}

# ========= Metrics =========

registry = CollectorRegistry()

LOCATION_SAMPLES = Counter(
    "location_samples_total",
    "Location samples recorded, by source",
    ["source"],
    registry=registry,
)

RISK_ZONE_ENTRIES = Counter(
    "location_risk_zone_entries_total",
    "Samples that fell inside a non-safe zone, by zone type",
    ["zone_type"],
    registry=registry,
)


class PingResult(BaseModel):
    sample: LocationSample
    zone: Optional[ZoneMatch] = None
    assessment: SafetyAssessment


class LocationService:
    def __init__(
        self,
        location_store: LocationStore,
        alert_store: AlertStore,
        zone_index: ZoneIndex,
        scorer: SafetyScorer,
        sink: NotificationSink,
        *,
        recent_window: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.location_store = location_store
        self.alert_store = alert_store
        self.zone_index = zone_index
        self.scorer = scorer
        self.sink = sink
        self.recent_window = recent_window
        self.clock = clock

    async def _recent_alert_count(self, user_id: str, since: datetime) -> int:
        alerts = await self.alert_store.list_for_user(user_id, since=since)
        return sum(1 for a in alerts if a.severity in SCORED_SEVERITIES)

    async def _warn_risk_zone(self, user_id: str, zone: ZoneMatch) -> None:
        variables = {"zone": zone.zone_name, "risk": zone.risk_level.value}
        try:
            await self.sink.push_to_user(
                user_id,
                render("risk_zone", "title", variables),
                render("risk_zone", "push", variables),
                {"type": "risk_zone", "zone_id": zone.zone_id, "priority": "high"},
            )
        except Exception as e:
            logger.error("Risk zone push to %s failed: %r", user_id, e)

    async def record_ping(
        self,
        user_id: str,
        coordinate: Coordinate,
        timestamp: Optional[datetime] = None,
        accuracy: Optional[float] = None,
        speed: Optional[float] = None,
        source: LocationSource = LocationSource.PING,
        notify: bool = True,
    ) -> PingResult:
        """
        Store one sample, classify it and score it.

        Entering a high risk or restricted zone logs a warning and pushes a
        risk-zone notification to the user (unless notify is False).
        """
        if not user_id:
            raise ValidationError("user_id is required")

        sample = LocationSample(
            user_id=user_id,
            coordinate=coordinate,
            timestamp=as_utc(timestamp) if timestamp else self.clock(),
            accuracy=accuracy,
            speed=speed,
            source=source,
        )
        await self.location_store.add(sample)
        LOCATION_SAMPLES.labels(source=sample.source.value).inc()

        zone = self.zone_index.classify(coordinate)
        if zone is not None and zone.zone_type != ZoneType.SAFE:
            RISK_ZONE_ENTRIES.labels(zone_type=zone.zone_type.value).inc()
            logger.warning(
                "User %s entered %s zone: %s", user_id, zone.zone_type.value, zone.zone_name
            )
            if notify and (
                zone.risk_level == RiskLevel.HIGH or zone.zone_type == ZoneType.RESTRICTED
            ):
                await self._warn_risk_zone(user_id, zone)

        since = sample.timestamp - self.recent_window
        assessment = self.scorer.assess(
            coordinate,
            sample.timestamp,
            recent_alert_count=await self._recent_alert_count(user_id, since),
            history=await self.location_store.recent_samples(user_id, since),
            source=source,
        )
        return PingResult(sample=sample, zone=zone, assessment=assessment)

    async def record_batch(self, user_id: str, samples: Sequence[dict]) -> List[PingResult]:
        """
        Offline sync: store buffered samples oldest first.

        Each item carries coordinate, timestamp and the optional ping fields.
        No push notifications are sent for replayed samples.
        """
        if not samples:
            raise ValidationError("batch must contain at least one sample")
        ordered = sorted(samples, key=lambda s: as_utc(s["timestamp"]))
        results = []
        for item in ordered:
            results.append(
                await self.record_ping(
                    user_id,
                    item["coordinate"],
                    timestamp=item["timestamp"],
                    accuracy=item.get("accuracy"),
                    speed=item.get("speed"),
                    source=item.get("source", LocationSource.PING),
                    notify=False,
                )
            )
        logger.info("Synced %d offline samples for user %s", len(results), user_id)
        return results

    async def history(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = LOCATION_HISTORY_LIMIT,
    ) -> List[LocationSample]:
        if limit < 1:
            raise ValidationError("limit must be >= 1")
        return await self.location_store.history(
            user_id,
            start=as_utc(start) if start else None,
            end=as_utc(end) if end else None,
            limit=min(limit, LOCATION_HISTORY_LIMIT),
        )

    async def user_safety_score(self, user_id: str) -> SafetyAssessment:
        """Score the user's latest position in the recent window at the current time."""
        now = self.clock()
        since = now - self.recent_window
        samples = await self.location_store.recent_samples(user_id, since)
        if not samples:
            raise NotFound(f"No recent location for user '{user_id}'")

        return self.scorer.assess(
            samples[-1].coordinate,
            now,
            recent_alert_count=await self._recent_alert_count(user_id, since),
            history=samples,
        )
