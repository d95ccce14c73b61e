"""Orchestrator - Wires Functional Core and Imperative Shell.

This module runs one ingestion cycle: fetch the feed, skip events that
are already stored, insert the rest (which notifies realtime subscribers)
and record per-user alert decisions for each newly stored event.
"""

import logging
from dataclasses import dataclass

from src.core.config import Config
from src.core.dedup import unique_in_order
from src.core.earthquake import AlertEvent
from src.core.errors import DuplicateEventError
from src.core.formatter import format_earthquake_summary
from src.core.preferences import UserPreference
from src.core.rules import Matcher, make_alert_decisions, matches
from src.shell.alert_store import AlertStore
from src.shell.change_notifier import ChangeNotifier
from src.shell.event_store import EventStore
from src.shell.feed_client import FeedClient
from src.shell.firestore_client import FirestoreClient, FirestoreConfig
from src.shell.preference_store import PreferenceStore


logger = logging.getLogger(__name__)


SUCCESS_MESSAGE = "Earthquake data updated successfully"


@dataclass
class CycleResult:
    """Result of one ingestion cycle.

    Attributes:
        processed: Features in the feed, unparseable ones included
        inserted: Records newly stored this cycle
        duplicates: Records skipped because they were already stored
        alerts_recorded: Per-user alert rows written this cycle
    """
    processed: int
    inserted: int = 0
    duplicates: int = 0
    alerts_recorded: int = 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the cycle."""
        return (
            f"Processed {self.processed} earthquakes, "
            f"{self.inserted} new, "
            f"{self.duplicates} already stored, "
            f"{self.alerts_recorded} user alerts"
        )

    def to_response(self) -> dict:
        """Trigger endpoint success body."""
        return {
            "success": True,
            "processed": self.processed,
            "inserted": self.inserted,
            "message": SUCCESS_MESSAGE,
        }


class Orchestrator:
    """Coordinates earthquake ingestion and alert dispatch.

    This class wires together:
    - Feed client (fetches the USGS feed)
    - Event store (dedup check, create-only insert, realtime notify)
    - Preference store + matcher (who should be alerted)
    - Alert store (records per-user alert rows)

    It holds no scheduling state; every call to run_cycle() is independent.
    """

    def __init__(
        self,
        config: Config,
        feed_client: FeedClient | None = None,
        event_store: EventStore | None = None,
        preference_store: PreferenceStore | None = None,
        alert_store: AlertStore | None = None,
        notifier: ChangeNotifier | None = None,
        matcher: Matcher = matches,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            feed_client: Feed client (created if not provided)
            event_store: Event store (created if not provided)
            preference_store: Preference store (created if not provided)
            alert_store: Alert store (created if not provided)
            notifier: Realtime notifier attached to a created event store
            matcher: Alert decision function
        """
        self.config = config
        self.matcher = matcher
        self.feed_client = feed_client or FeedClient(
            feed_url=config.feed_url,
            timeout=config.feed_timeout_seconds,
        )

        firestore_client = None
        if event_store is None or preference_store is None or alert_store is None:
            firestore_client = FirestoreClient(
                FirestoreConfig(
                    project_id=config.firestore_project,
                    database=config.firestore_database,
                )
            )

        self.event_store = event_store or EventStore(
            firestore_client,
            collection=config.events_collection,
            notifier=notifier,
        )
        self.preference_store = preference_store or PreferenceStore(
            firestore_client,
            collection=config.preferences_collection,
        )
        self.alert_store = alert_store or AlertStore(
            firestore_client,
            collection=config.alerts_collection,
        )

        self._preferences: list[UserPreference] | None = None

    def _alertable_preferences(self) -> list[UserPreference]:
        """Preferences for this cycle, loaded on first use."""
        if self._preferences is None:
            self._preferences = self.preference_store.list_alertable()
        return self._preferences

    def _store_event(self, event: AlertEvent) -> bool:
        """Insert an event unless already stored.

        Returns:
            True if this call stored the event

        Raises:
            StoreError: For storage failures other than a duplicate
        """
        if self.event_store.exists(event.external_id):
            return False

        try:
            self.event_store.insert(event, dispatch_pending=self.config.dispatch_alerts)
        except DuplicateEventError:
            # Another cycle stored it between the check and the insert
            logger.info("Event %s stored concurrently, skipping", event.external_id)
            return False

        return True

    def _dispatch(self, event: AlertEvent) -> int:
        """Record alert decisions for one stored event, then mark it dispatched.

        Safe to repeat: alert rows are create-only.

        Returns:
            Number of alert rows written
        """
        decisions = make_alert_decisions(
            [event],
            self._alertable_preferences(),
            matcher=self.matcher,
        )

        recorded = 0
        for decision in decisions:
            if self.alert_store.record(decision):
                recorded += 1

        self.event_store.mark_dispatched(event.external_id)
        return recorded

    def _retry_pending_dispatch(self) -> int:
        """Dispatch events stored earlier whose dispatch did not complete.

        Returns:
            Number of alert rows written
        """
        pending = self.event_store.list_pending_dispatch()
        if not pending:
            return 0

        logger.info("Retrying alert dispatch for %d stored events", len(pending))
        return sum(self._dispatch(event) for event in pending)

    def run_cycle(self) -> CycleResult:
        """Run a complete ingestion cycle.

        This is the main entry point that:
        1. Fetches the feed
        2. Skips events that are already stored
        3. Inserts new events (notifying realtime subscribers)
        4. Records user alerts for each new event
        5. Retries dispatch for stored events an earlier cycle left pending

        Events are handled one at a time in feed order. An insert that
        succeeded stays stored even if a later step fails; its dispatch is
        retried on a later cycle.

        Returns:
            CycleResult with counts

        Raises:
            FeedUnavailable: If the feed cannot be fetched
            FeedMalformed: If the feed payload is unusable
            StoreError: If storage fails for a reason other than a duplicate
        """
        self._preferences = None

        batch = self.feed_client.fetch_batch()
        result = CycleResult(processed=batch.feature_count)

        for event in unique_in_order(batch.events):
            if not self._store_event(event):
                result.duplicates += 1
                continue

            result.inserted += 1
            logger.info("New earthquake: %s", format_earthquake_summary(event))

            if self.config.dispatch_alerts:
                result.alerts_recorded += self._dispatch(event)

        if self.config.dispatch_alerts:
            result.alerts_recorded += self._retry_pending_dispatch()

        logger.info("Completed: %s", result.summary)
        return result
