"""Event Store - Imperative Shell.

Append-only Firestore collection of alert events, keyed by the upstream
external ID. Inserts use Firestore's create-only write, so the store itself
rejects a second document for the same event even when two ingestion
cycles race past the existence check.
The event fields are never changed; only the dispatch marker is updated
once alert dispatch for the event has completed.

Document structure (document ID = external_id):
{
    "external_id": "us7000abcd",
    "magnitude": 5.1,
    "location": "10 km SW of ...",
    "latitude": 14.6,
    "longitude": 120.98,
    "depth_km": 10.0,
    "occurred_at": <timestamp>,
    "significance": 400,
    "alert_level": "green",
    "felt_reports": 12,
    "tsunami_warning": false,
    "source_url": "https://earthquake.usgs.gov/...",
    "ingested_at": <timestamp>,
    "dispatch_pending": true,
    "dispatched_at": <timestamp>  (set once alert dispatch completes)
}
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from src.core.earthquake import AlertEvent, event_from_record, event_to_record
from src.core.errors import DuplicateEventError
from src.shell.change_notifier import ChangeNotifier
from src.shell.firestore_client import FirestoreClient, store_errors


logger = logging.getLogger(__name__)


# Default collection name for alert events
DEFAULT_COLLECTION = "earthquake_alerts"

# Default page size for recent-event queries
DEFAULT_RECENT_LIMIT = 20

# Max events retried for alert dispatch per cycle
DEFAULT_PENDING_LIMIT = 100


class EventStore:
    """Durable, unique-by-external-ID storage for alert events.

    This is part of the imperative shell - it handles database I/O.
    """

    def __init__(
        self,
        firestore_client: FirestoreClient,
        collection: str = DEFAULT_COLLECTION,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        """Initialize event store.

        Args:
            firestore_client: Shared Firestore connection
            collection: Collection name
            notifier: Receives every successfully inserted event
        """
        self.firestore_client = firestore_client
        self.collection_name = collection
        self.notifier = notifier

    def _collection(self) -> Any:
        return self.firestore_client.collection(self.collection_name)

    def exists(self, external_id: str) -> bool:
        """Check whether an event is already stored.

        This method performs database I/O.

        Raises:
            StoreError: If Firestore cannot be read
        """
        with store_errors(f"check event {external_id}"):
            return self._collection().document(external_id).get().exists

    def get(self, external_id: str) -> AlertEvent | None:
        """Fetch one event by external ID.

        Raises:
            StoreError: If Firestore cannot be read
        """
        with store_errors(f"read event {external_id}"):
            doc = self._collection().document(external_id).get()

        if not doc.exists:
            return None
        return event_from_record(doc.to_dict())

    def insert(self, event: AlertEvent, dispatch_pending: bool = False) -> AlertEvent:
        """Insert a new event; never overwrites.

        This method performs database I/O. On success the event is handed
        to the notifier.

        Args:
            event: Event to store
            dispatch_pending: Flag the event for alert dispatch until
                mark_dispatched() is called

        Returns:
            The stored event

        Raises:
            DuplicateEventError: If the external ID is already stored
            StoreError: For any other Firestore failure
        """
        record = event_to_record(event)
        record["ingested_at"] = datetime.now(timezone.utc)
        record["dispatch_pending"] = dispatch_pending

        with store_errors(f"insert event {event.external_id}"):
            try:
                self._collection().document(event.external_id).create(record)
            except gcp_exceptions.AlreadyExists as e:
                raise DuplicateEventError(event.external_id) from e

        logger.info(
            "Stored M%.1f %s (%s)",
            event.magnitude,
            event.location,
            event.external_id,
        )

        if self.notifier is not None:
            self.notifier.publish(event)

        return event

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[AlertEvent]:
        """Most recent events by occurrence time, newest first.

        Raises:
            StoreError: If Firestore cannot be queried
        """
        query = (
            self._collection()
            .order_by("occurred_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )

        with store_errors("list recent events"):
            docs = list(query.stream())

        return [event_from_record(doc.to_dict()) for doc in docs]

    def list_pending_dispatch(self, limit: int = DEFAULT_PENDING_LIMIT) -> list[AlertEvent]:
        """Stored events whose alert dispatch has not completed.

        Raises:
            StoreError: If Firestore cannot be queried
        """
        query = (
            self._collection()
            .where(filter=FieldFilter("dispatch_pending", "==", True))
            .limit(limit)
        )

        with store_errors("list events pending dispatch"):
            docs = list(query.stream())

        return [event_from_record(doc.to_dict()) for doc in docs]

    def mark_dispatched(self, external_id: str) -> None:
        """Record that alert dispatch for an event completed.

        Raises:
            StoreError: If Firestore cannot be written
        """
        with store_errors(f"mark event {external_id} dispatched"):
            self._collection().document(external_id).update({
                "dispatch_pending": False,
                "dispatched_at": datetime.now(timezone.utc),
            })

    def watch_inserts(self, callback: Callable[[AlertEvent], None]) -> Any:
        """Call `callback` for each document added after subscribing.

        Uses a Firestore snapshot listener. The listener's first snapshot
        contains every existing document and is skipped.

        Args:
            callback: Receives each newly added event

        Returns:
            The Firestore watch handle (call .unsubscribe() to stop)
        """
        state = {"initial": True}

        def on_snapshot(_docs: Any, changes: Any, _read_time: Any) -> None:
            if state["initial"]:
                state["initial"] = False
                return

            for change in changes:
                if change.type.name != "ADDED":
                    continue
                try:
                    event = event_from_record(change.document.to_dict())
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(
                        "Ignoring unreadable event document %s: %s",
                        change.document.id,
                        e,
                    )
                    continue
                callback(event)

        logger.info("Watching %s for inserts", self.collection_name)
        return self._collection().on_snapshot(on_snapshot)
