"""Unit tests for geographic calculations.

Pure function tests - no mocks needed, fast execution.
"""

import math
from datetime import datetime, timezone

import pytest

from src.core.earthquake import AlertEvent
from src.core.geo import (
    EARTH_RADIUS_KM,
    calculate_distance,
    distance_to_event,
    is_within_radius,
)


@pytest.fixture
def sample_event():
    """Create a sample event near Manila."""
    return AlertEvent(
        external_id="test",
        magnitude=5.0,
        location="Test Location",
        latitude=14.60,
        longitude=120.98,
        depth_km=10.0,
        occurred_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestCalculateDistance:
    """Tests for calculate_distance() Haversine implementation."""

    def test_same_point_returns_zero(self):
        """Distance from point to itself should be zero."""
        distance = calculate_distance(37.7749, -122.4194, 37.7749, -122.4194)
        assert distance == pytest.approx(0.0, abs=0.001)

    def test_known_distance_sf_to_la(self):
        """SF to LA should be approximately 559 km."""
        distance = calculate_distance(37.7749, -122.4194, 34.0522, -118.2437)
        assert distance == pytest.approx(559, rel=0.02)

    def test_known_distance_manila_to_tokyo(self):
        """Manila to Tokyo should be approximately 3000 km."""
        distance = calculate_distance(14.5995, 120.9842, 35.6762, 139.6503)
        assert distance == pytest.approx(3000, rel=0.03)

    def test_one_degree_of_latitude(self):
        """One degree along a meridian is R * pi / 180."""
        distance = calculate_distance(0.0, 0.0, 1.0, 0.0)
        assert distance == pytest.approx(EARTH_RADIUS_KM * math.pi / 180, rel=1e-9)

    def test_symmetric(self):
        """Distance A->B equals B->A."""
        d1 = calculate_distance(14.6, 120.98, -33.87, 151.21)
        d2 = calculate_distance(-33.87, 151.21, 14.6, 120.98)
        assert d1 == pytest.approx(d2)

    def test_crosses_antimeridian(self):
        """Points either side of 180 degrees are close together."""
        distance = calculate_distance(0.0, 179.5, 0.0, -179.5)
        assert distance == pytest.approx(111.2, rel=0.01)

    def test_antipodal_points(self):
        """Antipodes are half the circumference apart."""
        distance = calculate_distance(0.0, 0.0, 0.0, 180.0)
        assert distance == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)


class TestDistanceToEvent:
    """Tests for distance_to_event()."""

    def test_zero_at_epicenter(self, sample_event):
        assert distance_to_event(sample_event, 14.60, 120.98) == pytest.approx(0.0, abs=1e-9)

    def test_uses_event_lat_lon(self, sample_event):
        expected = calculate_distance(14.0, 121.0, 14.60, 120.98)
        assert distance_to_event(sample_event, 14.0, 121.0) == pytest.approx(expected)


class TestIsWithinRadius:
    """Tests for is_within_radius()."""

    def test_inside(self):
        assert is_within_radius(499.0, 500) is True

    def test_exact_boundary_is_inclusive(self):
        assert is_within_radius(500.0, 500) is True

    def test_float_noise_at_boundary_is_inclusive(self):
        assert is_within_radius(500.0000000001, 500) is True

    def test_one_metre_beyond_is_outside(self):
        assert is_within_radius(500.001, 500) is False
