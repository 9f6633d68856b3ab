"""
Safety Scorer - multi-factor 0-100 safety score for a location and time.

Penalties (subtracted from 100, result clamped to [0, 100]):
- zone risk: high -25, medium -15
- night (local hour < 6 or > 20): -15
- recent alerts: -10 per alert, capped
- inactivity gaps in the location history: -10/-6/-3 by zone risk
- SOS trigger: -30

The score maps onto one five-level band:
>= 80 very_low, >= 60 low, >= 40 medium, >= 20 high, else very_high.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

from common.constants import (
    BASE_SAFETY_SCORE,
    DEFAULT_INACTIVITY_THRESHOLD_MINUTES,
    DEFAULT_RECENT_ALERT_CAP,
    INACTIVITY_PENALTIES,
    NIGHT_END_AFTER,
    NIGHT_PENALTY,
    NIGHT_START_BEFORE,
    RECENT_ALERT_PENALTY,
    RECOMMENDATIONS,
    RISK_BAND_THRESHOLDS,
    SOS_PENALTY,
    ZONE_FACTORS,
    ZONE_PENALTIES,
)
from common.errors import ValidationError
from common.schemas import LocationSample, SafetyAssessment
from common.types import FactorTag, LocationSource, RiskBand, RiskLevel
from libs.geo import Coordinate
from services.zones.zone_index import ZoneIndex

_UTC = ZoneInfo("UTC")
_BANDS = (RiskBand.VERY_LOW, RiskBand.LOW, RiskBand.MEDIUM, RiskBand.HIGH)


def risk_band_for_score(score: int) -> RiskBand:
    for threshold, band in zip(RISK_BAND_THRESHOLDS, _BANDS):
        if score >= threshold:
            return band
    return RiskBand.VERY_HIGH


class SafetyScorer:
    """
    Stateless scorer; the ZoneIndex is the only collaborator.

    Safe to share between requests and to call concurrently.
    """

    def __init__(
        self,
        zone_index: ZoneIndex,
        *,
        timezone: str = "UTC",
        inactivity_threshold: timedelta = timedelta(minutes=DEFAULT_INACTIVITY_THRESHOLD_MINUTES),
        recent_alert_cap: int = DEFAULT_RECENT_ALERT_CAP,
    ):
        if recent_alert_cap < 0:
            raise ValidationError("recent_alert_cap must be >= 0")
        self.zone_index = zone_index
        self.tz = ZoneInfo(timezone)
        self.inactivity_threshold = inactivity_threshold
        self.recent_alert_cap = recent_alert_cap

    def local_hour(self, timestamp: datetime) -> int:
        """Naive timestamps are already local; aware ones are converted."""
        if timestamp.tzinfo is None:
            return timestamp.hour
        return timestamp.astimezone(self.tz).hour

    def instant(self, timestamp: datetime) -> datetime:
        """UTC instant; naive timestamps are taken as local time."""
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=self.tz)
        return timestamp.astimezone(_UTC)

    def is_night(self, timestamp: datetime) -> bool:
        hour = self.local_hour(timestamp)
        return hour < NIGHT_START_BEFORE or hour > NIGHT_END_AFTER

    def _zone_risk(self, coordinate: Coordinate) -> Optional[RiskLevel]:
        match = self.zone_index.classify(coordinate)
        return match.risk_level if match else None

    def inactivity_penalty(self, history: Sequence[LocationSample]) -> int:
        if len(history) < 2:
            return 0
        samples = sorted(history, key=lambda s: self.instant(s.timestamp))
        penalty = 0
        for previous, current in zip(samples, samples[1:]):
            gap = self.instant(current.timestamp) - self.instant(previous.timestamp)
            if gap > self.inactivity_threshold:
                penalty += INACTIVITY_PENALTIES[self._zone_risk(current.coordinate)]
        return penalty

    def assess(
        self,
        coordinate: Coordinate,
        timestamp: datetime,
        recent_alert_count: int = 0,
        history: Optional[Sequence[LocationSample]] = None,
        source: LocationSource = LocationSource.PING,
    ) -> SafetyAssessment:
        """
        Score one location/time.

        Args:
            coordinate: Point being assessed
            timestamp: When the user was there
            recent_alert_count: Alerts raised by the user in the recent window
            history: Recent samples used for the inactivity penalty
            source: SOS triggers carry an extra penalty

        Returns:
            SafetyAssessment with score, band, factors and recommendations
        """
        if recent_alert_count < 0:
            raise ValidationError("recent_alert_count must be >= 0")

        score = BASE_SAFETY_SCORE
        factors: List[FactorTag] = []

        match = self.zone_index.classify(coordinate)
        if match is not None:
            score -= ZONE_PENALTIES[match.risk_level]
            factor = ZONE_FACTORS.get(match.risk_level)
            if factor:
                factors.append(factor)

        if self.is_night(timestamp):
            score -= NIGHT_PENALTY
            factors.append(FactorTag.NIGHT_TIME)

        if recent_alert_count > 0:
            score -= RECENT_ALERT_PENALTY * min(recent_alert_count, self.recent_alert_cap)
            factors.append(FactorTag.RECENT_ALERTS)

        if history:
            penalty = self.inactivity_penalty(history)
            if penalty:
                score -= penalty
                factors.append(FactorTag.INACTIVITY)

        if source == LocationSource.SOS:
            score -= SOS_PENALTY
            factors.append(FactorTag.SOS_ALERT)

        score = max(0, min(BASE_SAFETY_SCORE, score))

        return SafetyAssessment(
            score=score,
            risk_level=risk_band_for_score(score),
            factors=factors,
            zone_id=match.zone_id if match else None,
            recommendations=[RECOMMENDATIONS[f] for f in factors],
            assessed_at=timestamp,
        )
