# pytest services/zones/tests/test_zone_index.py -q

import json

import pytest

from common.errors import InvalidGeometry, NotFound, ValidationError
from common.schemas import Geofence
from common.types import RiskLevel, ZoneKind, ZoneType
from libs.geo import Coordinate
from services.zones.zone_index import ZoneIndex, load_geofences_from_file, validate_geofence

pytestmark = pytest.mark.unit


def _circle(zone_id, lat, lon, radius, risk=RiskLevel.HIGH, **kwargs):
    return Geofence(
        id=zone_id,
        name=zone_id.title(),
        kind=ZoneKind.CIRCLE,
        center=Coordinate(latitude=lat, longitude=lon),
        radius_meters=radius,
        risk_level=risk,
        **kwargs,
    )


def _square(zone_id, risk=RiskLevel.MEDIUM):
    return Geofence(
        id=zone_id,
        name=zone_id.title(),
        kind=ZoneKind.POLYGON,
        vertices=[
            Coordinate(latitude=0, longitude=0),
            Coordinate(latitude=0, longitude=1),
            Coordinate(latitude=1, longitude=1),
            Coordinate(latitude=1, longitude=0),
        ],
        risk_level=risk,
    )


# ----------------------------
# validate_geofence
# ----------------------------
def test_polygon_with_two_vertices_is_invalid():
    zone = Geofence(
        id="bad",
        name="Bad",
        kind=ZoneKind.POLYGON,
        vertices=[Coordinate(latitude=0, longitude=0), Coordinate(latitude=1, longitude=1)],
        risk_level=RiskLevel.LOW,
    )
    with pytest.raises(InvalidGeometry) as exc_info:
        validate_geofence(zone)
    assert exc_info.value.details == {"zone_id": "bad"}


@pytest.mark.parametrize("radius", [0, -5, None])
def test_circle_needs_positive_radius(radius):
    zone = Geofence(
        id="c",
        name="C",
        kind=ZoneKind.CIRCLE,
        center=Coordinate(latitude=0, longitude=0),
        radius_meters=radius,
        risk_level=RiskLevel.LOW,
    )
    with pytest.raises(InvalidGeometry):
        validate_geofence(zone)


def test_circle_needs_center():
    zone = Geofence(id="c", name="C", kind=ZoneKind.CIRCLE, radius_meters=10, risk_level="low")
    with pytest.raises(InvalidGeometry):
        validate_geofence(zone)


# ----------------------------
# classify
# ----------------------------
def test_classify_returns_none_outside_every_zone(zone_index, points):
    assert zone_index.classify(points.safe) is None


def test_classify_polygon_and_circle(zone_index, points):
    high = zone_index.classify(points.high_risk)
    assert high.zone_id == "paharganj"
    assert high.risk_level == RiskLevel.HIGH
    assert high.kind == ZoneKind.POLYGON

    medium = zone_index.classify(points.medium_risk)
    assert medium.zone_id == "red-fort"
    assert medium.risk_level == RiskLevel.MEDIUM

    restricted = zone_index.classify(points.restricted)
    assert restricted.zone_type == ZoneType.RESTRICTED


def test_first_match_wins_in_insertion_order():
    inner = _circle("inner", 0.5, 0.5, 1000, risk=RiskLevel.HIGH)
    outer = _square("outer", risk=RiskLevel.LOW)
    point = Coordinate(latitude=0.5, longitude=0.5)

    assert ZoneIndex([inner, outer]).classify(point).zone_id == "inner"
    assert ZoneIndex([outer, inner]).classify(point).zone_id == "outer"


def test_empty_index_classifies_nothing():
    assert ZoneIndex().classify(Coordinate(latitude=0, longitude=0)) is None
    assert len(ZoneIndex()) == 0


# ----------------------------
# load_zones / upsert / remove
# ----------------------------
def test_invalid_zone_keeps_previous_set(zone_index):
    before = zone_index.zones()
    bad = _circle("bad", 0, 0, 0)

    with pytest.raises(InvalidGeometry):
        zone_index.load_zones([_square("fine"), bad])

    assert zone_index.zones() == before


def test_duplicate_zone_ids_are_rejected(zone_index):
    before = zone_index.zones()

    with pytest.raises(ValidationError) as exc_info:
        zone_index.load_zones([_square("dup"), _circle("dup", 0.5, 0.5, 100), _square("ok")])

    assert exc_info.value.details == {"zone_ids": ["dup"]}
    assert zone_index.zones() == before


def test_load_zones_replaces_set(zone_index):
    zone_index.load_zones([_square("only")])
    assert [z.id for z in zone_index.zones()] == ["only"]


def test_upsert_replaces_in_place_and_appends(zone_index):
    zone_index.upsert_zone(_circle("red-fort", 28.6562, 77.2410, 200, risk=RiskLevel.LOW))
    zone_index.upsert_zone(_square("new"))

    ids = [z.id for z in zone_index.zones()]
    assert ids == ["paharganj", "red-fort", "cantonment", "new"]
    assert zone_index.get("red-fort").risk_level == RiskLevel.LOW


def test_upsert_invalid_zone_is_rejected(zone_index):
    with pytest.raises(InvalidGeometry):
        zone_index.upsert_zone(_circle("red-fort", 0, 0, -1))
    assert zone_index.get("red-fort").radius_meters == 800


def test_remove_zone(zone_index, points):
    zone_index.remove_zone("paharganj")
    assert zone_index.classify(points.high_risk) is None
    with pytest.raises(NotFound):
        zone_index.remove_zone("paharganj")


def test_get_unknown_zone():
    with pytest.raises(NotFound):
        ZoneIndex().get("nope")


def test_zones_returns_a_copy(zone_index):
    zones = zone_index.zones()
    zones.clear()
    assert len(zone_index) == 3


# ----------------------------
# load_geofences_from_file
# ----------------------------
def test_load_geofences_from_list_file(tmp_path):
    path = tmp_path / "zones.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": "z1",
                    "name": "Zone 1",
                    "kind": "circle",
                    "center": {"latitude": 1, "longitude": 2},
                    "radius_meters": 100,
                    "risk_level": "high",
                }
            ]
        ),
        encoding="utf-8",
    )
    zones = load_geofences_from_file(str(path))
    assert len(zones) == 1
    assert zones[0].zone_type == ZoneType.RISKY


def test_load_geofences_from_wrapped_file(tmp_path):
    path = tmp_path / "zones.json"
    path.write_text(json.dumps({"zones": []}), encoding="utf-8")
    assert load_geofences_from_file(str(path)) == []
