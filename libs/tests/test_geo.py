# pytest libs/tests/test_geo.py -q

import math

import pytest
from pydantic import ValidationError as PydanticValidationError

from common.errors import InvalidGeometry, ValidationError
from libs.geo import (
    Coordinate,
    distance_meters,
    point_in_circle,
    point_in_polygon,
    validate_polygon,
)

pytestmark = pytest.mark.unit

DELHI = Coordinate(latitude=28.6139, longitude=77.2090)
MUMBAI = Coordinate(latitude=19.0760, longitude=72.8777)

UNIT_SQUARE = [
    Coordinate(latitude=0, longitude=0),
    Coordinate(latitude=0, longitude=1),
    Coordinate(latitude=1, longitude=1),
    Coordinate(latitude=1, longitude=0),
]


# ----------------------------
# Coordinate
# ----------------------------
@pytest.mark.parametrize(
    "lat, lon",
    [(90.1, 0), (-90.1, 0), (0, 180.5), (0, -181)],
)
def test_coordinate_rejects_out_of_range(lat, lon):
    with pytest.raises(PydanticValidationError):
        Coordinate(latitude=lat, longitude=lon)


def test_coordinate_accepts_bounds():
    c = Coordinate(latitude=-90, longitude=180)
    assert c.latitude == -90
    assert c.longitude == 180


def test_coordinate_is_immutable():
    with pytest.raises(PydanticValidationError):
        DELHI.latitude = 10


# ----------------------------
# distance_meters
# ----------------------------
def test_distance_to_self_is_zero():
    assert distance_meters(DELHI, DELHI) == 0


def test_distance_is_symmetric():
    assert math.isclose(distance_meters(DELHI, MUMBAI), distance_meters(MUMBAI, DELHI))


def test_distance_delhi_mumbai():
    km = distance_meters(DELHI, MUMBAI) / 1000
    assert 1140 <= km <= 1160


def test_distance_one_degree_latitude():
    a = Coordinate(latitude=0, longitude=0)
    b = Coordinate(latitude=1, longitude=0)
    assert distance_meters(a, b) == pytest.approx(111_195, rel=1e-3)


def test_distance_antipodal_points():
    a = Coordinate(latitude=0, longitude=0)
    b = Coordinate(latitude=0, longitude=180)
    assert distance_meters(a, b) == pytest.approx(math.pi * 6_371_000, rel=1e-9)


# ----------------------------
# point_in_polygon
# ----------------------------
def test_point_inside_unit_square():
    assert point_in_polygon(Coordinate(latitude=0.5, longitude=0.5), UNIT_SQUARE) is True


def test_point_outside_unit_square():
    assert point_in_polygon(Coordinate(latitude=1.5, longitude=0.5), UNIT_SQUARE) is False
    assert point_in_polygon(Coordinate(latitude=0.5, longitude=-0.5), UNIT_SQUARE) is False


def test_point_in_concave_polygon_notch():
    # "U" shape: the notch between the arms is outside
    u_shape = [
        Coordinate(latitude=0, longitude=0),
        Coordinate(latitude=0, longitude=3),
        Coordinate(latitude=3, longitude=3),
        Coordinate(latitude=3, longitude=2),
        Coordinate(latitude=1, longitude=2),
        Coordinate(latitude=1, longitude=1),
        Coordinate(latitude=3, longitude=1),
        Coordinate(latitude=3, longitude=0),
    ]
    assert point_in_polygon(Coordinate(latitude=2, longitude=1.5), u_shape) is False
    assert point_in_polygon(Coordinate(latitude=2, longitude=0.5), u_shape) is True
    assert point_in_polygon(Coordinate(latitude=0.5, longitude=1.5), u_shape) is True


def test_polygon_needs_three_vertices():
    with pytest.raises(InvalidGeometry) as exc_info:
        point_in_polygon(Coordinate(latitude=0, longitude=0), UNIT_SQUARE[:2])
    assert exc_info.value.details == {"vertex_count": 2}


def test_invalid_geometry_is_a_validation_error():
    with pytest.raises(ValidationError):
        validate_polygon([])


# ----------------------------
# point_in_circle
# ----------------------------
def test_point_in_circle_1000m():
    center = Coordinate(latitude=0, longitude=0)
    # 0.0045 deg of latitude ~ 500 m, 0.0135 deg ~ 1500 m
    near = Coordinate(latitude=0.0045, longitude=0)
    far = Coordinate(latitude=0.0135, longitude=0)

    assert point_in_circle(near, center, 1000) is True
    assert point_in_circle(far, center, 1000) is False


def test_circle_center_is_inside():
    assert point_in_circle(DELHI, DELHI, 1) is True
