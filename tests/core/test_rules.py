"""Unit tests for preference matching.

Pure function tests - no mocks needed.
"""

import math
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from src.core.earthquake import AlertEvent
from src.core.geo import EARTH_RADIUS_KM
from src.core.preferences import UserPreference
from src.core.rules import (
    CHANNEL_EMAIL,
    CHANNEL_PUSH,
    AlertDecision,
    enabled_channels,
    evaluate_preference,
    make_alert_decisions,
    matches,
    matches_location_rule,
    matches_magnitude_rule,
)


HOME_LAT = 14.60
HOME_LNG = 120.98


def _lat_offset_for(distance_km: float) -> float:
    """Degrees of latitude spanning distance_km along a meridian."""
    return math.degrees(distance_km / EARTH_RADIUS_KM)


def _event(magnitude=5.0, latitude=HOME_LAT, longitude=HOME_LNG, external_id="eq1"):
    return AlertEvent(
        external_id=external_id,
        magnitude=magnitude,
        location="Test Location",
        latitude=latitude,
        longitude=longitude,
        depth_km=10.0,
        occurred_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def located_pref():
    """Preference with a home location and 500 km radius."""
    return UserPreference(
        user_id="user-1",
        location_name="Manila",
        location_lat=HOME_LAT,
        location_lng=HOME_LNG,
        min_magnitude=5.0,
        alert_radius_km=500,
    )


@pytest.fixture
def global_pref():
    """Preference with no location (matches anywhere)."""
    return UserPreference(user_id="user-2", min_magnitude=5.0)


class TestMatchesMagnitudeRule:
    """Tests for matches_magnitude_rule()."""

    def test_below_minimum(self, global_pref):
        assert matches_magnitude_rule(_event(magnitude=4.9), global_pref) is False

    def test_at_minimum_is_inclusive(self, global_pref):
        assert matches_magnitude_rule(_event(magnitude=5.0), global_pref) is True

    def test_above_minimum(self, global_pref):
        assert matches_magnitude_rule(_event(magnitude=7.2), global_pref) is True


class TestMatchesLocationRule:
    """Tests for matches_location_rule()."""

    def test_no_location_matches_everywhere(self, global_pref):
        far_away = _event(latitude=-45.0, longitude=-70.0)
        assert matches_location_rule(far_away, global_pref) is True

    def test_partial_location_means_no_geo_filter(self):
        pref = UserPreference(user_id="u", location_lat=HOME_LAT)
        assert matches_location_rule(_event(latitude=-45.0), pref) is True

    def test_inside_radius(self, located_pref):
        nearby = _event(latitude=HOME_LAT + _lat_offset_for(100))
        assert matches_location_rule(nearby, located_pref) is True

    def test_outside_radius(self, located_pref):
        far = _event(latitude=HOME_LAT + _lat_offset_for(800))
        assert matches_location_rule(far, located_pref) is False


class TestMatches:
    """Tests for matches() - the full alert rule."""

    def test_magnitude_below_minimum_never_matches(self, located_pref):
        """M4.9 against min 5.0 is false even at the user's location."""
        assert matches(_event(magnitude=4.9), located_pref) is False

    def test_magnitude_below_minimum_without_location(self, global_pref):
        assert matches(_event(magnitude=4.9), global_pref) is False

    def test_at_minimum_without_location_matches(self, global_pref):
        """M5.0 against min 5.0 with no location set is true."""
        assert matches(_event(magnitude=5.0), global_pref) is True

    def test_exactly_at_radius_matches(self, located_pref):
        """Points exactly alert_radius_km apart are inside (inclusive)."""
        boundary = _event(latitude=HOME_LAT + _lat_offset_for(500))
        assert matches(boundary, located_pref) is True

    def test_one_metre_beyond_radius_does_not_match(self, located_pref):
        beyond = _event(latitude=HOME_LAT + _lat_offset_for(500.001))
        assert matches(beyond, located_pref) is False

    def test_boundary_along_longitude(self, located_pref):
        """Boundary holds east-west too (distance measured by haversine)."""
        pref = replace(located_pref, location_lat=0.0, location_lng=0.0)
        boundary = _event(latitude=0.0, longitude=_lat_offset_for(500))
        beyond = _event(latitude=0.0, longitude=_lat_offset_for(500.001))

        assert matches(boundary, pref) is True
        assert matches(beyond, pref) is False

    def test_deterministic(self, located_pref):
        event = _event(latitude=HOME_LAT + _lat_offset_for(250))
        assert all(matches(event, located_pref) for _ in range(10))


class TestEnabledChannels:
    """Tests for enabled_channels()."""

    def test_push_only_by_default(self):
        assert enabled_channels(UserPreference(user_id="u")) == (CHANNEL_PUSH,)

    def test_both(self):
        pref = UserPreference(user_id="u", push_enabled=True, email_enabled=True)
        assert enabled_channels(pref) == (CHANNEL_PUSH, CHANNEL_EMAIL)

    def test_none(self):
        pref = UserPreference(user_id="u", push_enabled=False, email_enabled=False)
        assert enabled_channels(pref) == ()


class TestEvaluatePreference:
    """Tests for evaluate_preference()."""

    def test_returns_decision_with_distance(self, located_pref):
        event = _event(latitude=HOME_LAT + _lat_offset_for(100))

        decision = evaluate_preference(event, located_pref)

        assert isinstance(decision, AlertDecision)
        assert decision.user_id == "user-1"
        assert decision.channels == (CHANNEL_PUSH,)
        assert decision.distance_km == pytest.approx(100, rel=1e-6)

    def test_no_distance_without_location(self, global_pref):
        decision = evaluate_preference(_event(), global_pref)
        assert decision.distance_km is None

    def test_no_decision_when_channels_disabled(self, global_pref):
        muted = replace(global_pref, push_enabled=False, email_enabled=False)
        assert evaluate_preference(_event(magnitude=8.0), muted) is None

    def test_no_decision_when_not_matching(self, global_pref):
        assert evaluate_preference(_event(magnitude=3.0), global_pref) is None

    def test_custom_matcher(self, global_pref):
        """The matcher is pluggable."""
        decision = evaluate_preference(
            _event(magnitude=1.0),
            global_pref,
            matcher=lambda event, pref: True,
        )
        assert decision is not None

    def test_record_id(self, global_pref):
        decision = evaluate_preference(_event(external_id="us123"), global_pref)
        assert decision.record_id == "user-2_us123"


class TestMakeAlertDecisions:
    """Tests for make_alert_decisions()."""

    def test_event_major_order(self, located_pref, global_pref):
        events = [_event(external_id="a"), _event(external_id="b")]

        decisions = make_alert_decisions(events, [located_pref, global_pref])

        assert [(d.event.external_id, d.user_id) for d in decisions] == [
            ("a", "user-1"),
            ("a", "user-2"),
            ("b", "user-1"),
            ("b", "user-2"),
        ]

    def test_filters_non_matching(self, located_pref, global_pref):
        far = _event(latitude=-45.0, longitude=-70.0)

        decisions = make_alert_decisions([far], [located_pref, global_pref])

        assert [d.user_id for d in decisions] == ["user-2"]

    def test_empty_inputs(self, global_pref):
        assert make_alert_decisions([], [global_pref]) == []
        assert make_alert_decisions([_event()], []) == []
