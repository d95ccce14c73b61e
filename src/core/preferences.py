"""User notification preferences - Pure data and validation.

Persistence of preferences lives in the shell (preference_store).
This module only defines the model, its record mapping and validation.
"""

from dataclasses import dataclass
from typing import Any

from src.core.errors import PreferenceValidationError


DEFAULT_MIN_MAGNITUDE = 4.0
DEFAULT_ALERT_RADIUS_KM = 500


@dataclass(frozen=True)
class UserPreference:
    """One user's alerting thresholds.

    Attributes:
        user_id: Owning account ID (one preference per user)
        location_name: Free-text label for the location (optional)
        location_lat: Latitude of the user's location (optional)
        location_lng: Longitude of the user's location (optional)
        min_magnitude: Minimum magnitude to alert on (inclusive)
        alert_radius_km: Alert when the epicenter is within this radius
        push_enabled: Deliver matching alerts as push notifications
        email_enabled: Deliver matching alerts by email
    """
    user_id: str
    location_name: str | None = None
    location_lat: float | None = None
    location_lng: float | None = None
    min_magnitude: float = DEFAULT_MIN_MAGNITUDE
    alert_radius_km: int = DEFAULT_ALERT_RADIUS_KM
    push_enabled: bool = True
    email_enabled: bool = False

    @property
    def has_location(self) -> bool:
        """True when both coordinates are set (geo-filtering applies)."""
        return self.location_lat is not None and self.location_lng is not None


def default_preference(user_id: str) -> UserPreference:
    """Preference created for a user on first access."""
    return UserPreference(user_id=user_id)


def validate_preference(pref: UserPreference) -> list[str]:
    """Validate a preference.

    Pure function.

    Returns:
        List of validation messages (empty if valid)
    """
    errors = []

    if not pref.user_id:
        errors.append("user_id is required")

    if (pref.location_lat is None) != (pref.location_lng is None):
        errors.append("location_lat and location_lng must be set together")

    if pref.location_lat is not None and not -90 <= pref.location_lat <= 90:
        errors.append(f"Latitude {pref.location_lat} out of range [-90, 90]")

    if pref.location_lng is not None and not -180 <= pref.location_lng <= 180:
        errors.append(f"Longitude {pref.location_lng} out of range [-180, 180]")

    if pref.min_magnitude < 0:
        errors.append(f"min_magnitude must be non-negative, got {pref.min_magnitude}")

    if pref.alert_radius_km <= 0:
        errors.append(f"alert_radius_km must be positive, got {pref.alert_radius_km}")

    return errors


def ensure_valid(pref: UserPreference) -> UserPreference:
    """Return pref unchanged or raise PreferenceValidationError."""
    errors = validate_preference(pref)
    if errors:
        raise PreferenceValidationError(errors)
    return pref


def preference_to_record(pref: UserPreference) -> dict[str, Any]:
    """Convert a preference into its stored/wire dict form."""
    return {
        "user_id": pref.user_id,
        "location_name": pref.location_name,
        "location_lat": pref.location_lat,
        "location_lng": pref.location_lng,
        "min_magnitude": pref.min_magnitude,
        "alert_radius_km": pref.alert_radius_km,
        "push_enabled": pref.push_enabled,
        "email_enabled": pref.email_enabled,
    }


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def preference_from_record(user_id: str, record: dict[str, Any]) -> UserPreference:
    """Rebuild a preference from a stored dict, filling defaults.

    Pure function.
    """
    return UserPreference(
        user_id=record.get("user_id") or user_id,
        location_name=record.get("location_name") or None,
        location_lat=_optional_float(record.get("location_lat")),
        location_lng=_optional_float(record.get("location_lng")),
        min_magnitude=float(record.get("min_magnitude", DEFAULT_MIN_MAGNITUDE)),
        alert_radius_km=int(record.get("alert_radius_km", DEFAULT_ALERT_RADIUS_KM)),
        push_enabled=bool(record.get("push_enabled", True)),
        email_enabled=bool(record.get("email_enabled", False)),
    )
