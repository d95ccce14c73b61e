"""Payload formatting - Pure functions.

This module formats earthquake events and alert decisions into the JSON
shapes served by the API, pushed over the realtime channel and stored as
per-user alert rows. All functions are pure with no side effects.
"""

from datetime import datetime
from typing import Any

from src.core.earthquake import SEVERITY_THRESHOLDS, AlertEvent, event_to_record
from src.core.preferences import UserPreference, preference_to_record
from src.core.rules import AlertDecision


REALTIME_MESSAGE_TYPE = "earthquake_alert"


def format_alert_title(event: AlertEvent) -> str:
    """Short toast-style title for a new event.

    Pure function.
    """
    return f"New earthquake detected: M{event.magnitude:.1f}"


def format_earthquake_summary(event: AlertEvent) -> str:
    """Format a one-line summary of an event.

    Pure function.

    Args:
        event: Event to summarize

    Returns:
        One-line summary string
    """
    time_str = event.occurred_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    return (
        f"M{event.magnitude:.1f} - {event.location} "
        f"at {time_str} (depth: {event.depth_km:.1f}km)"
    )


def format_event_payload(event: AlertEvent) -> dict[str, Any]:
    """Format an event as a JSON-serializable dict.

    Pure function.
    """
    payload = event_to_record(event)
    payload["occurred_at"] = event.occurred_at.isoformat()
    payload["severity"] = event.severity
    return payload


def format_severity_counts(events: list[AlertEvent]) -> dict[str, int]:
    """Count events per severity label, every label present.

    Pure function.
    """
    counts = {label: 0 for _, label in SEVERITY_THRESHOLDS}
    counts["minor"] = 0
    for event in events:
        counts[event.severity] += 1
    return counts


def format_realtime_message(event: AlertEvent) -> dict[str, Any]:
    """Format the message pushed to realtime subscribers.

    Pure function.
    """
    return {
        "type": REALTIME_MESSAGE_TYPE,
        "title": format_alert_title(event),
        "description": event.location,
        "data": format_event_payload(event),
    }


def format_preference_payload(pref: UserPreference) -> dict[str, Any]:
    """Format a preference as a JSON-serializable dict."""
    return preference_to_record(pref)


def format_user_alert(decision: AlertDecision, created_at: datetime) -> dict[str, Any]:
    """Format an alert decision as a stored alert row.

    Pure function.

    Args:
        decision: Positive alert decision
        created_at: When the decision was recorded

    Returns:
        Dict suitable for storage
    """
    event = decision.event
    distance = decision.distance_km
    return {
        "user_id": decision.user_id,
        "external_id": event.external_id,
        "magnitude": event.magnitude,
        "location": event.location,
        "occurred_at": event.occurred_at,
        "severity": event.severity,
        "distance_km": round(distance, 1) if distance is not None else None,
        "channels": list(decision.channels),
        "created_at": created_at,
    }
