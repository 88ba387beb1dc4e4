"""Tests for SkyGuard geodesy helpers.

pytest tests/test_geo.py -v
"""

import numpy as np
import pytest
import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from skyguard.skyguard_entities import Position
from skyguard.skyguard_geo import (
    dead_reckon, distance_km, haversine_km, heading_delta, offset_position,
    planar_distance_km, planar_offset_km, within_bounds,
)


class TestDistances:

    def test_haversine_one_degree_latitude(self):
        assert haversine_km(50.0, 10.0, 51.0, 10.0) == pytest.approx(111.19, abs=0.05)

    def test_zero_distance(self):
        p = Position(41.3, 69.3)
        assert distance_km(p, p) == 0.0
        assert planar_distance_km(p, p) == 0.0

    def test_planar_close_to_haversine(self):
        a, b = Position(50.0, 10.0), Position(51.2, 11.5)
        assert planar_distance_km(a, b) == pytest.approx(distance_km(a, b), rel=0.01)

    def test_offset_inverse(self):
        origin = Position(50.0, 10.0, 0.0)
        target = Position(50.3, 10.4, 7000.0)
        back = offset_position(origin, planar_offset_km(origin, target))
        assert back.lat == pytest.approx(target.lat)
        assert back.lng == pytest.approx(target.lng)
        assert back.altitude == pytest.approx(target.altitude)

    def test_up_component_in_km(self):
        enu = planar_offset_km(Position(50.0, 10.0, 0.0), Position(50.0, 10.0, 5000.0))
        assert np.allclose(enu, [0.0, 0.0, 5.0])


class TestDeadReckoning:

    def test_north(self):
        p = dead_reckon(Position(50.0, 10.0, 1000.0), 0.0, 3600.0, 111.0)
        assert p.lat == pytest.approx(51.0)
        assert p.lng == pytest.approx(10.0)
        assert p.altitude == 1000.0

    def test_east_scaled_by_latitude(self):
        p = dead_reckon(Position(60.0, 10.0), 90.0, 3600.0, 111.0)
        assert p.lng - 10.0 == pytest.approx(2.0, rel=1e-6)

    def test_zero_time(self):
        start = Position(50.0, 10.0)
        assert dead_reckon(start, 123.0, 900.0, 0.0) == start


class TestHeadingAndBounds:

    @pytest.mark.parametrize("a, b, expected", [
        (0.0, 0.0, 0.0), (10.0, 350.0, 20.0), (350.0, 10.0, 20.0),
        (0.0, 180.0, 180.0), (90.0, 300.0, 150.0), (720.0, 5.0, 5.0),
    ])
    def test_heading_delta(self, a, b, expected):
        assert heading_delta(a, b) == pytest.approx(expected)

    def test_within_bounds(self):
        assert within_bounds(Position(50.0, 10.0), (47.0, 55.0), (6.0, 15.0))
        assert not within_bounds(Position(56.0, 10.0), (47.0, 55.0), (6.0, 15.0))
        assert within_bounds(Position(47.0, 6.0), (47.0, 55.0), (6.0, 15.0))
