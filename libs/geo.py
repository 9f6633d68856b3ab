"""
Geographic primitives: coordinates, Haversine distance and containment tests.

Polygons are treated as planar shapes over (longitude, latitude), which is
accurate enough for city-sized geofences and matches how zones are drawn on
a web map.
"""

import math
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field

from common.errors import InvalidGeometry

EARTH_RADIUS_M = 6_371_000.0


class Coordinate(BaseModel):
    """Immutable WGS84 point."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two points using the Haversine formula.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in meters
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def validate_polygon(vertices: Sequence[Coordinate]) -> None:
    if len(vertices) < 3:
        raise InvalidGeometry(
            f"Polygon needs at least 3 vertices, got {len(vertices)}",
            details={"vertex_count": len(vertices)},
        )


def point_in_polygon(point: Coordinate, vertices: Sequence[Coordinate]) -> bool:
    """
    Even-odd ray casting test.

    A horizontal ray is cast from the point and edge crossings are counted.
    Points lying exactly on an edge get whatever the crossing test yields;
    callers should not rely on boundary behavior.

    Raises:
        InvalidGeometry: If fewer than 3 vertices are given
    """
    validate_polygon(vertices)

    x = point.longitude
    y = point.latitude
    inside = False

    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i].longitude, vertices[i].latitude
        xj, yj = vertices[j].longitude, vertices[j].latitude
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i

    return inside


def point_in_circle(point: Coordinate, center: Coordinate, radius_meters: float) -> bool:
    return distance_meters(point, center) <= radius_meters
