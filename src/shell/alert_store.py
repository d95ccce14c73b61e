"""Alert Store - Imperative Shell.

Stores per-user alert decisions produced by the preference matcher.
Document ID is "{user_id}_{external_id}" and writes are create-only,
so each user is alerted about an event at most once.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from src.core.formatter import format_user_alert
from src.core.rules import AlertDecision
from src.shell.firestore_client import FirestoreClient, store_errors


logger = logging.getLogger(__name__)


DEFAULT_COLLECTION = "user_alerts"


class AlertStore:
    """Persistence for per-user alert rows.

    This is part of the imperative shell - it handles database I/O.
    """

    def __init__(
        self,
        firestore_client: FirestoreClient,
        collection: str = DEFAULT_COLLECTION,
    ) -> None:
        self.firestore_client = firestore_client
        self.collection_name = collection

    def _collection(self) -> Any:
        return self.firestore_client.collection(self.collection_name)

    def record(self, decision: AlertDecision) -> bool:
        """Store an alert decision once.

        Returns:
            True if newly stored, False if it was already present

        Raises:
            StoreError: For Firestore failures other than a conflict
        """
        row = format_user_alert(decision, created_at=datetime.now(timezone.utc))

        with store_errors(f"record alert {decision.record_id}"):
            try:
                self._collection().document(decision.record_id).create(row)
            except gcp_exceptions.AlreadyExists:
                logger.info("Alert %s already recorded", decision.record_id)
                return False

        logger.info(
            "Alert for %s: M%.1f %s via %s",
            decision.user_id,
            decision.event.magnitude,
            decision.event.location,
            ", ".join(decision.channels),
        )
        return True

    def list_for_user(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        """A user's recorded alerts, newest first.

        Raises:
            StoreError: If Firestore cannot be queried
        """
        query = (
            self._collection()
            .where(filter=FieldFilter("user_id", "==", user_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )

        with store_errors(f"list alerts for {user_id}"):
            return [doc.to_dict() for doc in query.stream()]
