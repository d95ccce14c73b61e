"""Earthquake event model and feed parsing - Pure functions.

This module handles parsing USGS GeoJSON data into typed AlertEvent objects
and converting events to and from their stored record form.
All functions are pure with no side effects.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, NamedTuple

from src.core.errors import FeedMalformed


# Magnitude thresholds for dashboard severity, highest first
SEVERITY_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (7.0, "critical"),
    (6.0, "severe"),
    (5.0, "moderate"),
)


@dataclass(frozen=True)
class AlertEvent:
    """Immutable earthquake alert record.

    Attributes:
        external_id: Unique USGS event ID (dedup key)
        magnitude: Earthquake magnitude
        location: Human-readable place description
        latitude: Epicenter latitude (WGS84)
        longitude: Epicenter longitude (WGS84)
        depth_km: Depth in kilometers
        occurred_at: Event timestamp (UTC)
        significance: USGS significance score
        alert_level: PAGER alert level (green/yellow/orange/red) (optional)
        felt_reports: Number of "felt" reports
        tsunami_warning: Whether a tsunami flag was issued
        source_url: USGS event detail URL
    """
    external_id: str
    magnitude: float
    location: str
    latitude: float
    longitude: float
    depth_km: float
    occurred_at: datetime
    significance: int = 0
    alert_level: str | None = None
    felt_reports: int = 0
    tsunami_warning: bool = False
    source_url: str = ""

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)

    @property
    def severity(self) -> str:
        """Dashboard severity bucket for this event's magnitude."""
        return classify_magnitude(self.magnitude)


def classify_magnitude(magnitude: float) -> str:
    """Map a magnitude to critical/severe/moderate/minor.

    Pure function.
    """
    for threshold, label in SEVERITY_THRESHOLDS:
        if magnitude >= threshold:
            return label
    return "minor"


def parse_feature(feature: dict[str, Any]) -> AlertEvent | None:
    """Parse a single GeoJSON feature into an AlertEvent.

    Pure function: takes raw dict, returns typed AlertEvent or None if the
    feature lacks an id, magnitude, time or full coordinates.

    Coordinates are [longitude, latitude, depth_km], in that order.

    Args:
        feature: GeoJSON feature dict from the USGS feed

    Returns:
        AlertEvent or None if parsing fails
    """
    try:
        external_id = feature.get("id")
        if not external_id:
            return None

        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or []

        if len(coords) < 3:
            return None

        # USGS uses milliseconds since epoch
        time_ms = props.get("time")
        if time_ms is None:
            return None

        magnitude = props.get("mag")
        if magnitude is None:
            return None

        return AlertEvent(
            external_id=str(external_id),
            magnitude=float(magnitude),
            location=props.get("place") or "Unknown location",
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth_km=float(coords[2]),
            occurred_at=datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc),
            significance=int(props.get("sig") or 0),
            alert_level=props.get("alert"),
            felt_reports=int(props.get("felt") or 0),
            tsunami_warning=props.get("tsunami") == 1,
            source_url=props.get("url") or "",
        )
    except (AttributeError, TypeError, ValueError, OverflowError):
        return None


def get_features(geojson: Any) -> list[dict[str, Any]]:
    """Return the feature list of a FeatureCollection.

    Pure function.

    Raises:
        FeedMalformed: If the payload is not FeatureCollection-shaped
    """
    if not isinstance(geojson, dict):
        raise FeedMalformed("Feed payload is not a JSON object")

    features = geojson.get("features")
    if not isinstance(features, list):
        raise FeedMalformed("Feed payload has no 'features' list")

    if not all(isinstance(f, dict) for f in features):
        raise FeedMalformed("Feed features must be JSON objects")

    return features


class FeedBatch(NamedTuple):
    """Parsed feed: events in feed order plus the features that were skipped."""
    events: list[AlertEvent]
    skipped: int

    @property
    def feature_count(self) -> int:
        """Every feature the feed contained, parsed or not."""
        return len(self.events) + self.skipped


def parse_feature_collection(geojson: Any) -> FeedBatch:
    """Parse a USGS FeatureCollection into AlertEvents.

    Pure function. Feed order is preserved; unparseable features are
    skipped and counted.

    Args:
        geojson: Decoded FeatureCollection

    Returns:
        FeedBatch of (events in feed order, number of skipped features)

    Raises:
        FeedMalformed: If the payload is not FeatureCollection-shaped
    """
    events = []
    skipped = 0

    for feature in get_features(geojson):
        event = parse_feature(feature)
        if event is None:
            skipped += 1
        else:
            events.append(event)

    return FeedBatch(events, skipped)


def event_to_record(event: AlertEvent) -> dict[str, Any]:
    """Convert an AlertEvent into its stored/wire dict form.

    Pure function. The timestamp stays a datetime; callers that need JSON
    serialize it themselves.
    """
    return {
        "external_id": event.external_id,
        "magnitude": event.magnitude,
        "location": event.location,
        "latitude": event.latitude,
        "longitude": event.longitude,
        "depth_km": event.depth_km,
        "occurred_at": event.occurred_at,
        "significance": event.significance,
        "alert_level": event.alert_level,
        "felt_reports": event.felt_reports,
        "tsunami_warning": event.tsunami_warning,
        "source_url": event.source_url,
    }


def _coerce_datetime(value: Any) -> datetime:
    """Accept a datetime or ISO-8601 string; always return UTC-aware."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"Not a timestamp: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def event_from_record(record: dict[str, Any]) -> AlertEvent:
    """Rebuild an AlertEvent from its stored dict form.

    Pure function.

    Raises:
        KeyError: If a required field is missing
        ValueError: If the timestamp cannot be read
    """
    return AlertEvent(
        external_id=record["external_id"],
        magnitude=float(record["magnitude"]),
        location=record.get("location") or "Unknown location",
        latitude=float(record["latitude"]),
        longitude=float(record["longitude"]),
        depth_km=float(record["depth_km"]),
        occurred_at=_coerce_datetime(record["occurred_at"]),
        significance=int(record.get("significance") or 0),
        alert_level=record.get("alert_level"),
        felt_reports=int(record.get("felt_reports") or 0),
        tsunami_warning=bool(record.get("tsunami_warning", False)),
        source_url=record.get("source_url") or "",
    )
