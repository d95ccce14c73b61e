"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field


# USGS summary feed: M2.5+ earthquakes from the past day
DEFAULT_FEED_URL = (
    "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/2.5_day.geojson"
)

REALTIME_SOURCES = ("local", "firestore")


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        feed_url: Upstream GeoJSON feed URL
        feed_timeout_seconds: Timeout for the feed request
        firestore_project: GCP project ID (None for default)
        firestore_database: Firestore database name (None for default)
        events_collection: Collection holding alert events
        preferences_collection: Collection holding user preferences
        alerts_collection: Collection holding per-user alert rows
        guides_collection: Collection holding safety guides
        recent_events_limit: Default number of events for range queries
        max_events_limit: Upper bound for range queries
        dispatch_alerts: Evaluate preferences for newly stored events
        subscriber_buffer_size: Per-subscriber realtime buffer
        realtime_source: 'local' (in-process inserts) or 'firestore' (watch)
    """
    feed_url: str = DEFAULT_FEED_URL
    feed_timeout_seconds: int = 30
    firestore_project: str | None = None
    firestore_database: str | None = None
    events_collection: str = "earthquake_alerts"
    preferences_collection: str = "user_preferences"
    alerts_collection: str = "user_alerts"
    guides_collection: str = "safety_guides"
    recent_events_limit: int = 20
    max_events_limit: int = 100
    dispatch_alerts: bool = True
    subscriber_buffer_size: int = 100
    realtime_source: str = "local"


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if not config.feed_url.startswith(("http://", "https://")):
        errors.append(ValidationError(
            field="feed_url",
            message=f"Feed URL must be http(s), got {config.feed_url!r}",
        ))
    elif config.feed_url.startswith("http://"):
        errors.append(ValidationError(
            field="feed_url",
            message="Feed URL is not HTTPS",
            severity="warning",
        ))

    if config.feed_timeout_seconds <= 0:
        errors.append(ValidationError(
            field="feed_timeout_seconds",
            message=f"Timeout must be positive, got {config.feed_timeout_seconds}",
        ))

    if config.recent_events_limit <= 0:
        errors.append(ValidationError(
            field="recent_events_limit",
            message=f"Limit must be positive, got {config.recent_events_limit}",
        ))

    if config.max_events_limit < config.recent_events_limit:
        errors.append(ValidationError(
            field="max_events_limit",
            message=(
                f"max_events_limit ({config.max_events_limit}) < "
                f"recent_events_limit ({config.recent_events_limit})"
            ),
        ))

    if config.subscriber_buffer_size <= 0:
        errors.append(ValidationError(
            field="subscriber_buffer_size",
            message=f"Buffer size must be positive, got {config.subscriber_buffer_size}",
        ))

    if config.realtime_source not in REALTIME_SOURCES:
        errors.append(ValidationError(
            field="realtime_source",
            message=(
                f"Unknown realtime source {config.realtime_source!r}, "
                f"expected one of {', '.join(REALTIME_SOURCES)}"
            ),
        ))

    collections = [
        config.events_collection,
        config.preferences_collection,
        config.alerts_collection,
        config.guides_collection,
    ]
    if len(set(collections)) != len(collections):
        errors.append(ValidationError(
            field="collections",
            message="Collection names must be distinct",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
