"""
Tests for geodistance utilities.
"""

import math

import pytest

from fieldwatch.geo import Coordinate, EARTH_RADIUS_METERS, check_geofence, haversine_distance

SYDNEY = Coordinate(-33.8688, 151.2093)
MELBOURNE = Coordinate(-37.8136, 144.9631)


class TestHaversineDistance:
    """Tests for haversine_distance."""

    @pytest.mark.parametrize("point", [
        Coordinate(0.0, 0.0),
        SYDNEY,
        Coordinate(89.9, -179.9),
    ])
    def test_identical_points_are_zero(self, point):
        assert haversine_distance(point, point) == 0.0

    def test_symmetric(self):
        assert haversine_distance(SYDNEY, MELBOURNE) == haversine_distance(MELBOURNE, SYDNEY)

    def test_one_degree_of_latitude(self):
        expected = 2 * math.pi * EARTH_RADIUS_METERS / 360
        distance = haversine_distance(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0))
        assert distance == pytest.approx(expected, rel=1e-9)

    def test_sydney_to_melbourne(self):
        # Roughly 713 km great-circle
        assert haversine_distance(SYDNEY, MELBOURNE) == pytest.approx(713_400, rel=0.01)


class TestCheckGeofence:
    """Tests for check_geofence."""

    def test_inside_radius(self):
        site = Coordinate(-33.8688, 151.2093)
        position = Coordinate(-33.8690, 151.2093)
        result = check_geofence(position, site, radius_meters=100)
        assert result.within
        assert result.distance_meters == pytest.approx(22.2, abs=0.5)

    def test_outside_radius(self):
        result = check_geofence(SYDNEY, MELBOURNE, radius_meters=100)
        assert not result.within
        assert result.distance_meters > 700_000

    def test_site_without_coordinates_is_inside(self):
        result = check_geofence(SYDNEY, None, radius_meters=50)
        assert result.within
        assert result.distance_meters == 0.0
        assert result.radius_meters == 50
