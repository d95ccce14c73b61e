"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Feed parsing into alert events
- Geo/distance calculations
- Preference matching and alert decisions
- Payload formatting
- Deduplication helpers

All functions here are deterministic and have no I/O.
"""

from src.core.earthquake import AlertEvent, FeedBatch, parse_feature_collection
from src.core.errors import (
    DuplicateEventError,
    FeedMalformed,
    FeedUnavailable,
    StoreError,
)
from src.core.geo import calculate_distance, is_within_radius
from src.core.preferences import UserPreference
from src.core.rules import AlertDecision, make_alert_decisions, matches
from src.core.formatter import format_event_payload, format_realtime_message
from src.core.dedup import unique_in_order

__all__ = [
    # Events
    "AlertEvent",
    "FeedBatch",
    "parse_feature_collection",
    # Errors
    "DuplicateEventError",
    "FeedMalformed",
    "FeedUnavailable",
    "StoreError",
    # Geo
    "calculate_distance",
    "is_within_radius",
    # Preferences and rules
    "UserPreference",
    "AlertDecision",
    "make_alert_decisions",
    "matches",
    # Formatter
    "format_event_payload",
    "format_realtime_message",
    # Dedup
    "unique_in_order",
]
