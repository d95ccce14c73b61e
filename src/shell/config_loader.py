"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config) are defined in src/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from src.core.config import Config, DEFAULT_FEED_URL, validate_config


logger = logging.getLogger(__name__)


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _resolve_value(value: Any) -> Any:
    """Resolve a ${ENV_VAR} placeholder from the environment.

    Non-strings and plain strings are returned unchanged. An unset
    variable leaves the placeholder in place.
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _parse_bool(value: Any, default: bool) -> bool:
    """Parse YAML/env booleans ('true', 'false', 1, 0...)."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _log_validation(config: Config) -> None:
    """Log validation problems without failing the load."""
    result = validate_config(config)
    for error in result.critical_errors:
        logger.error("Config error in %s: %s", error.field, error.message)
    for warning in result.warnings:
        logger.warning("Config warning in %s: %s", warning.field, warning.message)


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    data = {key: _resolve_value(value) for key, value in data.items()}
    defaults = Config()

    return Config(
        feed_url=data.get("feed_url", defaults.feed_url),
        feed_timeout_seconds=int(data.get("feed_timeout_seconds", defaults.feed_timeout_seconds)),
        firestore_project=data.get("firestore_project"),
        firestore_database=data.get("firestore_database"),
        events_collection=data.get("events_collection", defaults.events_collection),
        preferences_collection=data.get("preferences_collection", defaults.preferences_collection),
        alerts_collection=data.get("alerts_collection", defaults.alerts_collection),
        guides_collection=data.get("guides_collection", defaults.guides_collection),
        recent_events_limit=int(data.get("recent_events_limit", defaults.recent_events_limit)),
        max_events_limit=int(data.get("max_events_limit", defaults.max_events_limit)),
        dispatch_alerts=_parse_bool(data.get("dispatch_alerts"), defaults.dispatch_alerts),
        subscriber_buffer_size=int(
            data.get("subscriber_buffer_size", defaults.subscriber_buffer_size)
        ),
        realtime_source=data.get("realtime_source", defaults.realtime_source),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)
    _log_validation(config)

    logger.info(
        "Loaded config: feed=%s, events=%s, dispatch=%s",
        config.feed_url,
        config.events_collection,
        config.dispatch_alerts,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        FEED_URL: Upstream GeoJSON feed
        FEED_TIMEOUT_SECONDS: Feed request timeout
        FIRESTORE_PROJECT: GCP project for Firestore
        FIRESTORE_DATABASE: Firestore database name
        EVENTS_COLLECTION: Collection for alert events
        DISPATCH_ALERTS: Evaluate user preferences on insert (true/false)
        REALTIME_SOURCE: 'local' or 'firestore'

    Returns:
        Config object from environment
    """
    defaults = Config()

    config = Config(
        feed_url=os.environ.get("FEED_URL", DEFAULT_FEED_URL),
        feed_timeout_seconds=int(
            os.environ.get("FEED_TIMEOUT_SECONDS", defaults.feed_timeout_seconds)
        ),
        firestore_project=os.environ.get("FIRESTORE_PROJECT"),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        events_collection=os.environ.get("EVENTS_COLLECTION", defaults.events_collection),
        dispatch_alerts=_parse_bool(os.environ.get("DISPATCH_ALERTS"), defaults.dispatch_alerts),
        realtime_source=os.environ.get("REALTIME_SOURCE", defaults.realtime_source),
    )
    _log_validation(config)

    return config


def get_config() -> Config:
    """Load configuration from file or environment.

    CONFIG_PATH wins; otherwise FEED_URL or FIRESTORE_* in the environment
    selects env-based config; otherwise the default file path is tried.
    """
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif any(
        os.environ.get(name)
        for name in ("FEED_URL", "FIRESTORE_PROJECT", "FIRESTORE_DATABASE")
    ):
        return load_config_from_env()
    else:
        return load_config()
