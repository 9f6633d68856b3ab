"""
Zone Index - classifies points against the configured geofences.

The active zone set is an immutable tuple that is swapped wholesale on every
write, so readers never need a lock and always see a complete set.
"""

import json
import logging
import threading
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from common.errors import InvalidGeometry, NotFound, ValidationError
from common.schemas import Geofence, ZoneMatch
from common.types import ZoneKind
from libs.geo import Coordinate, point_in_circle, point_in_polygon, validate_polygon

logger = logging.getLogger(__name__)


def validate_geofence(zone: Geofence) -> None:
    """
    Check the geometry invariants of a geofence.

    Raises:
        InvalidGeometry: Polygon with < 3 vertices, circle without center or
            with a non-positive radius
    """
    if zone.kind == ZoneKind.POLYGON:
        try:
            validate_polygon(zone.vertices)
        except InvalidGeometry as exc:
            raise InvalidGeometry(
                f"Zone '{zone.id}': {exc.message}", details={"zone_id": zone.id}
            ) from exc
        return

    if zone.center is None:
        raise InvalidGeometry(
            f"Zone '{zone.id}': circle zone needs a center", details={"zone_id": zone.id}
        )
    if zone.radius_meters is None or zone.radius_meters <= 0:
        raise InvalidGeometry(
            f"Zone '{zone.id}': circle radius must be > 0",
            details={"zone_id": zone.id, "radius_meters": zone.radius_meters},
        )


def _contains(zone: Geofence, point: Coordinate) -> bool:
    if zone.kind == ZoneKind.POLYGON:
        return point_in_polygon(point, zone.vertices)
    return point_in_circle(point, zone.center, zone.radius_meters)


class ZoneIndex:
    """
    Holds the geofence set and answers "which zone contains this point".

    Classification is first-match-wins in insertion order. Overlapping zones
    are resolved by order, not by size or distance, so admins should list
    the more specific zones first.
    """

    def __init__(self, zones: Optional[Iterable[Geofence]] = None):
        self._zones: Tuple[Geofence, ...] = ()
        self._write_lock = threading.Lock()
        if zones is not None:
            self.load_zones(zones)

    def classify(self, point: Coordinate) -> Optional[ZoneMatch]:
        zones = self._zones
        for zone in zones:
            if _contains(zone, point):
                return ZoneMatch(
                    zone_id=zone.id,
                    zone_name=zone.name,
                    risk_level=zone.risk_level,
                    zone_type=zone.zone_type,
                    kind=zone.kind,
                )
        return None

    def load_zones(self, zones: Iterable[Geofence]) -> None:
        """
        Replace the active zone set.

        Every zone is validated before the swap; on error the previous set
        stays active.

        Raises:
            InvalidGeometry: If any zone violates its geometry invariant
            ValidationError: If two zones share an id
        """
        new_zones = tuple(zones)
        for zone in new_zones:
            validate_geofence(zone)
        duplicates = sorted(i for i, n in Counter(z.id for z in new_zones).items() if n > 1)
        if duplicates:
            raise ValidationError(
                f"Duplicate zone ids: {', '.join(duplicates)}", details={"zone_ids": duplicates}
            )
        with self._write_lock:
            self._zones = new_zones
        logger.info("Loaded %d zones", len(new_zones))

    def zones(self) -> List[Geofence]:
        return list(self._zones)

    def get(self, zone_id: str) -> Geofence:
        for zone in self._zones:
            if zone.id == zone_id:
                return zone
        raise NotFound(f"Zone '{zone_id}' not found")

    def upsert_zone(self, zone: Geofence) -> None:
        """Replace the zone with the same id in place, or append it."""
        validate_geofence(zone)
        with self._write_lock:
            current = list(self._zones)
            for i, existing in enumerate(current):
                if existing.id == zone.id:
                    current[i] = zone
                    break
            else:
                current.append(zone)
            self._zones = tuple(current)

    def remove_zone(self, zone_id: str) -> None:
        with self._write_lock:
            remaining = tuple(z for z in self._zones if z.id != zone_id)
            if len(remaining) == len(self._zones):
                raise NotFound(f"Zone '{zone_id}' not found")
            self._zones = remaining

    def __len__(self) -> int:
        return len(self._zones)


def load_geofences_from_file(path: str) -> List[Geofence]:
    """Read a JSON list of geofences (e.g. the file at ZONES_CONFIG_PATH)."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("zones", [])
    return [Geofence.model_validate(item) for item in raw]
