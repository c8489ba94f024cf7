"""
Unit tests for navigation helpers.

Tests unit conversion, wind triangle, dead reckoning and great-circle
distance/bearing.
"""

import math
import random
import pytest
import numpy as np

from src.navigation.units import (
    deg_to_rad, rad_to_deg, knots_to_mps, mps_to_knots, nm_to_meters
)
from src.navigation.wind import apparent_wind, normalize_true_wind_angle
from src.navigation.dead_reckoning import DeadReckoningEstimator
from src.navigation.geodesy import haversine_distance, initial_bearing


class TestUnits:
    """Tests for unit conversion."""

    def test_deg_to_rad(self):
        assert deg_to_rad(180.0) == pytest.approx(math.pi)
        assert deg_to_rad(-90.0) == pytest.approx(-math.pi / 2)

    def test_rad_to_deg_inverse(self):
        assert rad_to_deg(deg_to_rad(123.4)) == pytest.approx(123.4)

    def test_knots_to_mps(self):
        assert knots_to_mps(10.0) == pytest.approx(5.1444)
        assert mps_to_knots(knots_to_mps(7.5)) == pytest.approx(7.5)

    def test_nm_to_meters(self):
        assert nm_to_meters(1.0) == 1852.0
        assert nm_to_meters(0.0) == 0.0


class TestTrueWindAngle:
    """Tests for TWA folding from TWD and heading."""

    def test_fold_across_north(self):
        """TWD 350, HDG 10 should give -20 degrees."""
        twa = normalize_true_wind_angle(350.0, 10.0)
        assert twa == pytest.approx(-0.349, abs=1e-3)
        assert rad_to_deg(twa) == pytest.approx(-20.0)

    def test_fold_negative_difference(self):
        """TWD 10, HDG 350 should give +20 degrees."""
        assert rad_to_deg(normalize_true_wind_angle(10.0, 350.0)) == pytest.approx(20.0)

    def test_head_to_wind(self):
        assert normalize_true_wind_angle(270.0, 270.0) == pytest.approx(0.0)

    def test_dead_downwind_is_plus_pi(self):
        """A 180 degree difference belongs to +pi, not -pi."""
        assert normalize_true_wind_angle(180.0, 0.0) == pytest.approx(math.pi)
        assert normalize_true_wind_angle(0.0, 180.0) == pytest.approx(math.pi)

    def test_range(self):
        for twd in range(0, 360, 7):
            for hdg in range(0, 360, 11):
                twa = normalize_true_wind_angle(float(twd), float(hdg))
                assert -math.pi < twa <= math.pi


class TestApparentWind:
    """Tests for the wind triangle."""

    def test_stationary_boat(self):
        """With no boat speed, apparent wind equals true wind."""
        aw = apparent_wind(tws=10.0, twa=deg_to_rad(60.0), sog=0.0)
        assert aw.speed == pytest.approx(10.0)
        assert aw.angle == pytest.approx(deg_to_rad(60.0))

    def test_head_to_wind_adds_speed(self):
        aw = apparent_wind(tws=10.0, twa=0.0, sog=5.0)
        assert aw.speed == pytest.approx(15.0)
        assert aw.angle == pytest.approx(0.0)

    def test_beam_reach(self):
        aw = apparent_wind(tws=10.0, twa=math.pi / 2, sog=10.0)
        assert aw.speed == pytest.approx(math.sqrt(200.0))
        assert aw.angle == pytest.approx(math.pi / 4)

    def test_port_side_is_negative(self):
        aw = apparent_wind(tws=10.0, twa=-math.pi / 2, sog=5.0)
        assert aw.angle < 0

    def test_downwind_faster_than_wind_uses_atan2(self):
        """Boat faster than wind running downwind: AWA comes from ahead."""
        aw = apparent_wind(tws=5.0, twa=math.pi * 0.9, sog=10.0)
        assert abs(aw.angle) < math.pi / 2

    def test_degenerate_denominator(self):
        """SOG + TWS cos(TWA) = 0 gives a beam apparent wind."""
        aw = apparent_wind(tws=10.0, twa=deg_to_rad(120.0), sog=5.0)
        assert aw.angle == pytest.approx(math.pi / 2)

    def test_running_dead_downwind(self):
        aw = apparent_wind(tws=10.0, twa=math.pi, sog=4.0)
        assert aw.speed == pytest.approx(6.0)
        assert abs(aw.angle) == pytest.approx(math.pi)

    def test_triangle_inequality(self):
        rng = random.Random(42)
        for _ in range(500):
            tws = rng.uniform(0.0, 30.0)
            sog = rng.uniform(0.0, 15.0)
            twa = rng.uniform(-math.pi, math.pi)
            aw = apparent_wind(tws, twa, sog)
            assert aw.speed >= abs(sog - tws) - 1e-9
            assert aw.speed <= sog + tws + 1e-9


class TestDeadReckoning:
    """Tests for constant-velocity extrapolation."""

    def test_zero_speed_keeps_position(self):
        estimator = DeadReckoningEstimator()
        for elapsed in (0.0, 1.0, 3600.0, 86400.0):
            result = estimator.extrapolate(47.5, -3.25, 0.0, 1.0, 500.0,
                                           timestamp=1000.0, now=1000.0 + elapsed)
            assert result.latitude == 47.5
            assert result.longitude == -3.25
            assert result.trip_log == 500.0

    def test_due_east_at_equator(self):
        """1 knot due east for one hour covers one arcminute of longitude."""
        estimator = DeadReckoningEstimator()
        result = estimator.extrapolate(0.0, 0.0, 1852.0 / 3600.0, math.pi / 2, 0.0,
                                       timestamp=0.0, now=3600.0)
        assert result.longitude == pytest.approx(1.0 / 60.0, abs=1e-6)
        assert result.latitude == pytest.approx(0.0, abs=1e-9)
        assert result.trip_log == pytest.approx(1852.0)

    def test_due_north(self):
        estimator = DeadReckoningEstimator()
        result = estimator.extrapolate(45.0, 5.0, 1852.0 / 60.0, 0.0, 0.0,
                                       timestamp=0.0, now=3600.0)
        # 60 nm north is one degree
        assert result.latitude == pytest.approx(46.0)
        assert result.longitude == pytest.approx(5.0)

    def test_longitude_correction(self):
        """Eastward displacement in degrees grows with latitude."""
        estimator = DeadReckoningEstimator()
        equator = estimator.extrapolate(0.0, 0.0, 5.0, math.pi / 2, 0.0, 0.0, now=600.0)
        north = estimator.extrapolate(60.0, 0.0, 5.0, math.pi / 2, 0.0, 0.0, now=600.0)
        assert north.longitude == pytest.approx(2 * equator.longitude)

    def test_trip_log_monotonic(self):
        estimator = DeadReckoningEstimator()
        logs = [estimator.extrapolate(10.0, 10.0, 3.0, 2.0, 100.0, 0.0, now=t).trip_log
                for t in range(0, 300, 10)]
        assert logs == sorted(logs)

    def test_future_fix_not_extrapolated_backwards(self):
        estimator = DeadReckoningEstimator()
        result = estimator.extrapolate(10.0, 10.0, 3.0, 2.0, 100.0, timestamp=50.0, now=10.0)
        assert result.trip_log == 100.0
        assert result.latitude == 10.0

    def test_pole_guard(self):
        estimator = DeadReckoningEstimator()
        result = estimator.extrapolate(90.0, 0.0, 5.0, math.pi / 2, 0.0, 0.0, now=60.0)
        assert math.isfinite(result.longitude)

    def test_uses_clock_when_now_omitted(self):
        estimator = DeadReckoningEstimator(clock=lambda: 60.0)
        result = estimator.extrapolate(0.0, 0.0, 2.0, 0.0, 0.0, timestamp=0.0)
        assert result.trip_log == pytest.approx(120.0)


class TestGeodesy:
    """Tests for haversine distance and bearing."""

    def test_one_degree_of_longitude_at_equator(self):
        assert float(haversine_distance(0.0, 0.0, 0.0, 1.0)) == pytest.approx(111195.0, abs=50.0)

    def test_zero_distance(self):
        assert float(haversine_distance(47.0, -3.0, 47.0, -3.0)) == 0.0

    def test_symmetric(self):
        d1 = float(haversine_distance(47.0, -3.0, 46.0, -5.0))
        d2 = float(haversine_distance(46.0, -5.0, 47.0, -3.0))
        assert d1 == pytest.approx(d2)

    def test_bearing_north(self):
        assert float(initial_bearing(0.0, 0.0, 1.0, 0.0)) == pytest.approx(0.0, abs=1e-9)

    def test_bearing_scalar_is_float(self):
        assert type(initial_bearing(0.0, 0.0, 1.0, 0.0)) is float

    def test_bearing_array_stays_array(self):
        bearings = initial_bearing(np.zeros(2), np.zeros(2), np.ones(2), np.zeros(2))
        assert isinstance(bearings, np.ndarray)
        assert bearings.shape == (2,)

    def test_bearing_east_and_west(self):
        assert float(initial_bearing(0.0, 0.0, 0.0, 1.0)) == pytest.approx(math.pi / 2)
        assert float(initial_bearing(0.0, 0.0, 0.0, -1.0)) == pytest.approx(3 * math.pi / 2)

    def test_bearing_range(self):
        rng = random.Random(7)
        for _ in range(200):
            b = float(initial_bearing(rng.uniform(-60, 60), rng.uniform(-180, 180),
                                      rng.uniform(-60, 60), rng.uniform(-180, 180)))
            assert 0.0 <= b < 2 * math.pi

    def test_vectorized(self):
        lat1 = np.array([0.0, 10.0])
        lon1 = np.array([0.0, 20.0])
        lat2 = np.array([0.0, 10.0])
        lon2 = np.array([1.0, 20.0])
        distances = haversine_distance(lat1, lon1, lat2, lon2)
        assert distances.shape == (2,)
        assert distances[0] == pytest.approx(111195.0, abs=50.0)
        assert distances[1] == 0.0
