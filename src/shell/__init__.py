"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- USGS feed client (HTTP)
- Firestore stores (events, preferences, alerts, guides)
- Realtime change notifier
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from src.shell.feed_client import FeedClient
from src.shell.firestore_client import FirestoreClient
from src.shell.event_store import EventStore
from src.shell.preference_store import PreferenceStore
from src.shell.alert_store import AlertStore
from src.shell.change_notifier import ChangeNotifier
from src.shell.config_loader import load_config, Config

__all__ = [
    "FeedClient",
    "FirestoreClient",
    "EventStore",
    "PreferenceStore",
    "AlertStore",
    "ChangeNotifier",
    "load_config",
    "Config",
]
