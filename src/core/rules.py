"""Preference matching - Pure functions.

This module decides whether an earthquake should surface as an alert for
a user, based on that user's stored preference. All functions are pure
with no side effects.
"""

from dataclasses import dataclass
from typing import Callable, Iterable

from src.core.earthquake import AlertEvent
from src.core.geo import distance_to_event, is_within_radius
from src.core.preferences import UserPreference


CHANNEL_PUSH = "push"
CHANNEL_EMAIL = "email"

Matcher = Callable[[AlertEvent, UserPreference], bool]


def matches_magnitude_rule(event: AlertEvent, pref: UserPreference) -> bool:
    """Check if event magnitude reaches the user's minimum.

    Pure function.
    """
    return event.magnitude >= pref.min_magnitude


def matches_location_rule(event: AlertEvent, pref: UserPreference) -> bool:
    """Check if event is within the user's alert radius.

    Pure function.

    Returns True if:
    - No location set on the preference (matches all locations), OR
    - Epicenter is within alert_radius_km of the user's location (inclusive)
    """
    if not pref.has_location:
        return True

    distance = distance_to_event(event, pref.location_lat, pref.location_lng)
    return is_within_radius(distance, pref.alert_radius_km)


def matches(event: AlertEvent, pref: UserPreference) -> bool:
    """Decide whether an event qualifies as an alert for a user.

    Pure function.

    Args:
        event: Earthquake to evaluate
        pref: The user's preference

    Returns:
        True if magnitude and location rules both pass
    """
    return matches_magnitude_rule(event, pref) and matches_location_rule(event, pref)


def enabled_channels(pref: UserPreference) -> tuple[str, ...]:
    """Delivery channels switched on for a user.

    Pure function.
    """
    channels = []
    if pref.push_enabled:
        channels.append(CHANNEL_PUSH)
    if pref.email_enabled:
        channels.append(CHANNEL_EMAIL)
    return tuple(channels)


@dataclass(frozen=True)
class AlertDecision:
    """A positive alert decision for one user and one event.

    Attributes:
        event: The earthquake that matched
        preference: The preference it matched against
        channels: Channels the user has enabled
        distance_km: Distance to the user's location (None without location)
    """
    event: AlertEvent
    preference: UserPreference
    channels: tuple[str, ...]
    distance_km: float | None = None

    @property
    def user_id(self) -> str:
        return self.preference.user_id

    @property
    def record_id(self) -> str:
        """Stable storage key: one decision per user per event."""
        return f"{self.preference.user_id}_{self.event.external_id}"


def evaluate_preference(
    event: AlertEvent,
    pref: UserPreference,
    matcher: Matcher = matches,
) -> AlertDecision | None:
    """Evaluate one event against one preference.

    Pure function (as long as the matcher is).

    Returns:
        AlertDecision if the user should be alerted, else None
    """
    channels = enabled_channels(pref)
    if not channels:
        return None

    if not matcher(event, pref):
        return None

    distance = None
    if pref.has_location:
        distance = distance_to_event(event, pref.location_lat, pref.location_lng)

    return AlertDecision(
        event=event,
        preference=pref,
        channels=channels,
        distance_km=distance,
    )


def make_alert_decisions(
    events: Iterable[AlertEvent],
    preferences: list[UserPreference],
    matcher: Matcher = matches,
) -> list[AlertDecision]:
    """Make alert decisions for every event/preference pair.

    Pure function.

    Args:
        events: Newly stored earthquakes
        preferences: Candidate user preferences
        matcher: Decision function, `matches` by default

    Returns:
        Decisions for pairs that should produce an alert, event-major order
    """
    decisions = []

    for event in events:
        for pref in preferences:
            decision = evaluate_preference(event, pref, matcher)
            if decision is not None:
                decisions.append(decision)

    return decisions
