"""Deduplication logic - Pure functions.

This module handles in-memory deduplication of feed records. Storage-level
uniqueness is enforced by the Event Store (create-only inserts); the
helpers here only avoid redundant store round-trips.
"""

from src.core.earthquake import AlertEvent


def unique_in_order(events: list[AlertEvent]) -> list[AlertEvent]:
    """Drop repeated external IDs within one batch, keeping the first.

    Pure function.

    Args:
        events: Events in feed order

    Returns:
        Events with each external_id at most once, order preserved
    """
    seen: set[str] = set()
    result = []

    for event in events:
        if event.external_id in seen:
            continue
        seen.add(event.external_id)
        result.append(event)

    return result
