"""
Alert Coordinator - SOS alert lifecycle and the post-alert coordination workflow.

Lifecycle: ACTIVE -> RESOLVED | CANCELLED | FALSE_ALARM. Terminal states are
absorbing; the first transition wins and every later one raises
InvalidTransition.

create_sos() returns as soon as the alert is persisted. The coordination
workflow (assessment, contact notifications, responder lookup, confirmation
push, final write) runs on the background task queue; each step is
best-effort and a failed step never undoes the steps before it.
"""

import asyncio
import logging
import uuid
import weakref
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Sequence

from prometheus_client import CollectorRegistry, Counter
from pydantic import BaseModel, Field

from common.constants import ALERT_SUMMARY_RECENT, DEFAULT_HISTORY_PAGE_SIZE
from common.errors import DependencyFailure, InvalidTransition, NotFound, ValidationError
from common.ports import (
    AlertStore,
    LocationStore,
    NotificationSink,
    ResponderDirectory,
    UserStore,
)
from common.schemas import (
    Alert,
    DeliveryResult,
    ResponderEntry,
    SafetyAssessment,
    utcnow,
)
from common.types import (
    TERMINAL_ALERT_STATUSES,
    AlertStatus,
    AlertType,
    DeliveryChannel,
    DeliveryStatus,
    LocationSource,
    ResponderRole,
    Severity,
)
from libs.audit_logger import AuditTrail
from libs.geo import Coordinate, distance_meters
from libs.retry import retry_with_timeout
from libs.task_queue import BackgroundTaskQueue
from services.notification.templates import maps_link, render
from services.safety_scoring.scorer import SafetyScorer

logger = logging.getLogger(__name__)

# ========= Metrics =========

registry = CollectorRegistry()

SOS_ALERTS_CREATED = Counter(
    "sos_alerts_created_total",
    "Total SOS alerts persisted",
    registry=registry,
)

STATUS_TRANSITIONS = Counter(
    "sos_alert_status_transitions_total",
    "Alert status transitions, by target status",
    ["status"],
    registry=registry,
)

COORDINATION_STEP_FAILURES = Counter(
    "sos_coordination_step_failures_total",
    "Coordination workflow steps that failed",
    ["step"],
    registry=registry,
)

NOTIFICATIONS_TOTAL = Counter(
    "sos_notifications_total",
    "Notification deliveries attempted by the coordinator",
    ["channel", "outcome"],
    registry=registry,
)


class CoordinationReport(BaseModel):
    """Outcome of one coordination run, step by step."""

    alert_id: str
    assessment: Optional[SafetyAssessment] = None
    deliveries: List[DeliveryResult] = Field(default_factory=list)
    responders_added: int = 0
    confirmation: Optional[DeliveryResult] = None
    persisted: bool = False
    failed_steps: List[str] = Field(default_factory=list)
    # Set when the alert was already closed and notifications were not sent
    skipped_reason: Optional[str] = None


class AlertSummary(BaseModel):
    total: int
    active: int
    resolved: int
    recent: List[Alert]


class AlertCoordinator:
    def __init__(
        self,
        scorer: SafetyScorer,
        alert_store: AlertStore,
        user_store: UserStore,
        location_store: LocationStore,
        sink: NotificationSink,
        responders: ResponderDirectory,
        task_queue: BackgroundTaskQueue,
        *,
        audit: Optional[AuditTrail] = None,
        roles: Sequence[ResponderRole] = (ResponderRole.POLICE, ResponderRole.AMBULANCE),
        notification_timeout: float = 10.0,
        max_retries: int = 2,
        retry_base_delay: float = 0.5,
        sms_enabled: bool = False,
        recent_window: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.scorer = scorer
        self.alert_store = alert_store
        self.user_store = user_store
        self.location_store = location_store
        self.sink = sink
        self.responders = responders
        self.task_queue = task_queue
        self.audit = audit
        self.roles = tuple(roles)
        self.notification_timeout = notification_timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.sms_enabled = sms_enabled
        self.recent_window = recent_window
        self.clock = clock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, alert_id: str) -> asyncio.Lock:
        lock = self._locks.get(alert_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[alert_id] = lock
        return lock

    async def _audit(self, message: str, user_id: Optional[str], alert_id: str) -> None:
        if self.audit is not None:
            await self.audit.record(
                event_type="emergency", message=message, user_id=user_id, event_id=alert_id
            )

    # ========= Lifecycle =========

    async def create_sos(
        self,
        user_id: str,
        coordinate: Coordinate,
        accuracy: Optional[float] = None,
        message: Optional[str] = None,
        media: Optional[Sequence[str]] = None,
    ) -> Alert:
        """
        Persist a new active/critical SOS alert and queue its coordination.

        Returns once the alert is stored; notification fan-out happens later
        on the task queue and its failures never reach the caller.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        if accuracy is not None and accuracy < 0:
            raise ValidationError("accuracy must be >= 0")

        now = self.clock()
        alert = Alert(
            id=f"alert_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            type=AlertType.SOS,
            status=AlertStatus.ACTIVE,
            severity=Severity.CRITICAL,
            coordinate=coordinate,
            accuracy=accuracy,
            message=message,
            timestamp=now,
            media=list(media or []),
            updated_at=now,
        )
        saved = await self.alert_store.save(alert)
        SOS_ALERTS_CREATED.inc()
        logger.warning(
            "SOS alert %s created for user %s at (%.5f, %.5f)",
            saved.id,
            user_id,
            coordinate.latitude,
            coordinate.longitude,
        )
        await self._audit(f"SOS alert created: {saved.id}", user_id, saved.id)

        alert_id = saved.id
        self.task_queue.submit(
            f"sos-coordination:{alert_id}", lambda: self.run_coordination(alert_id)
        )
        return saved

    async def get_alert(self, alert_id: str) -> Alert:
        alert = await self.alert_store.get(alert_id)
        if alert is None:
            raise NotFound(f"Alert '{alert_id}' not found")
        return alert

    async def update_status(
        self,
        alert_id: str,
        new_status: AlertStatus,
        resolver_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Alert:
        new_status = AlertStatus(new_status)
        if new_status not in TERMINAL_ALERT_STATUSES:
            raise InvalidTransition(f"Cannot move alert '{alert_id}' to {new_status.value}")

        async with self._lock_for(alert_id):
            alert = await self.get_alert(alert_id)
            if alert.status in TERMINAL_ALERT_STATUSES:
                raise InvalidTransition(
                    f"Alert '{alert_id}' is already {alert.status.value}"
                )

            now = self.clock()
            changes = {"status": new_status, "updated_at": now, "resolution_notes": notes}
            if new_status == AlertStatus.RESOLVED:
                changes["resolved_at"] = now
                changes["resolved_by"] = resolver_id
            updated = await self.alert_store.update(
                alert.model_copy(update=changes), expected_status=AlertStatus.ACTIVE
            )

        STATUS_TRANSITIONS.labels(status=new_status.value).inc()
        logger.info("Alert %s moved to %s by %s", alert_id, new_status.value, resolver_id)
        await self._audit(
            f"Alert {alert_id} status changed to {new_status.value}",
            resolver_id or alert.user_id,
            alert_id,
        )
        return updated

    async def acknowledge_responder(
        self, alert_id: str, responder_id: str, at_time: Optional[datetime] = None
    ) -> Alert:
        """Mark a responder entry acknowledged; repeats keep the first acknowledgement."""
        at_time = at_time or self.clock()

        async with self._lock_for(alert_id):
            alert = await self.get_alert(alert_id)
            entry = next((r for r in alert.responders if r.responder_id == responder_id), None)
            if entry is None:
                raise NotFound(
                    f"Responder '{responder_id}' is not assigned to alert '{alert_id}'"
                )
            if entry.acknowledged:
                return alert

            acknowledged = entry.model_copy(
                update={
                    "acknowledged": True,
                    "acknowledged_at": at_time,
                    "response_time_sec": at_time.timestamp() - alert.timestamp.timestamp(),
                }
            )
            responders = [
                acknowledged if r.responder_id == responder_id else r for r in alert.responders
            ]
            updated = await self.alert_store.update(
                alert.model_copy(update={"responders": responders, "updated_at": self.clock()}),
                expected_status=alert.status,
            )

        logger.info(
            "Responder %s acknowledged alert %s after %.1fs",
            responder_id,
            alert_id,
            acknowledged.response_time_sec,
        )
        await self._audit(
            f"Responder {responder_id} acknowledged alert {alert_id}", alert.user_id, alert_id
        )
        return updated

    # ========= Queries =========

    async def alert_summary(self, user_id: str) -> AlertSummary:
        alerts = await self.alert_store.list_for_user(user_id)
        return AlertSummary(
            total=len(alerts),
            active=sum(1 for a in alerts if a.status == AlertStatus.ACTIVE),
            resolved=sum(1 for a in alerts if a.status == AlertStatus.RESOLVED),
            recent=alerts[:ALERT_SUMMARY_RECENT],
        )

    async def alert_history(
        self, user_id: str, limit: int = DEFAULT_HISTORY_PAGE_SIZE, page: int = 1
    ) -> List[Alert]:
        if limit < 1 or page < 1:
            raise ValidationError("limit and page must be >= 1")
        return await self.alert_store.list_for_user(
            user_id, limit=limit, offset=(page - 1) * limit
        )

    # ========= Coordination workflow =========

    async def run_coordination(self, alert_id: str) -> CoordinationReport:
        alert = await self.get_alert(alert_id)
        report = CoordinationReport(alert_id=alert_id)

        report.assessment = await self._step(report, "assessment", self._assess(alert))

        entries: List[ResponderEntry] = []
        if alert.status in TERMINAL_ALERT_STATUSES:
            report.skipped_reason = f"alert already {alert.status.value}"
            logger.info(
                "SOS %s already %s before coordination; no notifications sent",
                alert_id,
                alert.status.value,
            )
        else:
            deliveries = await self._step(
                report, "notify_contacts", self._notify_contacts(alert)
            )
            report.deliveries = deliveries or []

            entries = await self._step(report, "responders", self._find_responders(alert))
            entries = entries or []

            report.confirmation = await self._step(
                report, "confirmation", self._confirm(alert)
            )

        added = await self._step(
            report, "persist", self._persist(alert_id, entries, report.assessment)
        )
        if added is not None:
            report.persisted = True
            report.responders_added = added

        failed = sum(1 for d in report.deliveries if d.status == DeliveryStatus.FAILED)
        logger.info(
            "SOS %s coordination done: %d/%d contact deliveries ok, %d responders, "
            "failed steps: %s",
            alert_id,
            len(report.deliveries) - failed,
            len(report.deliveries),
            report.responders_added,
            ", ".join(report.failed_steps) or "none",
        )
        return report

    async def _step(self, report: CoordinationReport, step: str, work: Awaitable):
        try:
            return await work
        except Exception as exc:
            report.failed_steps.append(step)
            COORDINATION_STEP_FAILURES.labels(step=step).inc()
            logger.error("SOS %s: step '%s' failed: %r", report.alert_id, step, exc)
            return None

    async def _assess(self, alert: Alert) -> SafetyAssessment:
        since = alert.timestamp - self.recent_window
        recent = await self.alert_store.list_for_user(alert.user_id, since=since)
        recent_count = sum(1 for a in recent if a.id != alert.id)
        history = await self.location_store.recent_samples(alert.user_id, since)
        return self.scorer.assess(
            alert.coordinate,
            alert.timestamp,
            recent_alert_count=recent_count,
            history=history,
            source=LocationSource.SOS,
        )

    async def _user_name(self, user_id: str) -> str:
        try:
            user = await self.user_store.get_user(user_id)
        except NotFound:
            return user_id
        return user.name

    async def _notify_contacts(self, alert: Alert) -> List[DeliveryResult]:
        name = await self._user_name(alert.user_id)
        contacts = await self.user_store.get_emergency_contacts(alert.user_id)
        variables = {
            "name": name,
            "time": alert.timestamp.isoformat(),
            "link": maps_link(alert.coordinate.latitude, alert.coordinate.longitude),
            "message": alert.message or "-",
        }
        subject = render("sos", "subject", variables)
        email_body = render("sos", "email", variables)
        sms_body = render("sos", "sms", variables)

        sends = []
        for contact in contacts:
            if contact.email:
                sends.append(
                    self._deliver(
                        DeliveryChannel.EMAIL,
                        contact.email,
                        lambda address=contact.email: self.sink.send_email(
                            address, subject, email_body
                        ),
                    )
                )
            if self.sms_enabled and contact.phone:
                sends.append(
                    self._deliver(
                        DeliveryChannel.SMS,
                        contact.phone,
                        lambda phone=contact.phone: self.sink.send_sms(phone, sms_body),
                    )
                )
        if not sends:
            logger.warning(
                "SOS %s: user %s has no reachable emergency contacts", alert.id, alert.user_id
            )
            return []
        return list(await asyncio.gather(*sends))

    async def _find_responders(self, alert: Alert) -> List[ResponderEntry]:
        refs = await self.responders.nearby(alert.coordinate, self.roles)
        return [
            ResponderEntry(
                responder_id=ref.responder_id,
                role=ref.role,
                name=ref.name,
                distance_m=round(distance_meters(alert.coordinate, ref.coordinate), 1),
            )
            for ref in refs
        ]

    async def _confirm(self, alert: Alert) -> DeliveryResult:
        result = await self._deliver(
            DeliveryChannel.PUSH,
            alert.user_id,
            lambda: self.sink.push_to_user(
                alert.user_id,
                render("sos_confirmation", "title", {}),
                render("sos_confirmation", "push", {}),
                {"alert_id": alert.id, "type": "sos_confirmation", "priority": "high"},
            ),
        )
        if result.status == DeliveryStatus.FAILED:
            raise DependencyFailure(f"Confirmation push failed: {result.error}")
        return result

    async def _persist(
        self,
        alert_id: str,
        entries: List[ResponderEntry],
        assessment: Optional[SafetyAssessment],
    ) -> int:
        """Write responders and assessment onto the latest stored alert."""
        async with self._lock_for(alert_id):
            current = await self.get_alert(alert_id)
            changes = {"updated_at": self.clock()}
            if assessment is not None:
                changes["assessment"] = assessment

            added: List[ResponderEntry] = []
            if current.status not in TERMINAL_ALERT_STATUSES:
                known = {r.responder_id for r in current.responders}
                added = [e for e in entries if e.responder_id not in known]
                changes["responders"] = current.responders + added
            elif entries:
                logger.info(
                    "Alert %s already %s; not attaching responders",
                    alert_id,
                    current.status.value,
                )

            await self.alert_store.update(
                current.model_copy(update=changes), expected_status=current.status
            )
        return len(added)

    async def _deliver(
        self,
        channel: DeliveryChannel,
        recipient: str,
        send: Callable[[], Awaitable[DeliveryResult]],
    ) -> DeliveryResult:
        """One recipient: bounded timeout, retries, never raises."""

        async def attempt() -> DeliveryResult:
            result = await send()
            if result.status == DeliveryStatus.FAILED:
                raise DependencyFailure(result.error or f"{channel.value} delivery failed")
            return result

        try:
            result = await retry_with_timeout(
                attempt,
                timeout=self.notification_timeout,
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                label=f"{channel.value} to {recipient}",
            )
        except Exception as exc:
            logger.error("Giving up on %s to %s: %r", channel.value, recipient, exc)
            result = DeliveryResult(
                channel=channel,
                recipient=recipient,
                status=DeliveryStatus.FAILED,
                error=repr(exc),
            )
        NOTIFICATIONS_TOTAL.labels(channel=channel.value, outcome=result.status.value).inc()
        return result
