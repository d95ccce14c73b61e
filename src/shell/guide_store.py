"""Safety Guide Store - Imperative Shell.

Read-only access to the static safety guide collection.
"""

from dataclasses import dataclass
from typing import Any

from src.shell.firestore_client import FirestoreClient, store_errors


DEFAULT_COLLECTION = "safety_guides"


@dataclass(frozen=True)
class SafetyGuide:
    """Static earthquake safety reference content."""
    guide_id: str
    title: str
    category: str
    content: str
    icon: str = "shield-alert"
    priority: int = 0


def _guide_from_record(guide_id: str, record: dict[str, Any]) -> SafetyGuide:
    return SafetyGuide(
        guide_id=guide_id,
        title=record.get("title", ""),
        category=record.get("category", ""),
        content=record.get("content", ""),
        icon=record.get("icon") or "shield-alert",
        priority=int(record.get("priority", 0)),
    )


class GuideStore:
    """Lists safety guides ordered by priority."""

    def __init__(
        self,
        firestore_client: FirestoreClient,
        collection: str = DEFAULT_COLLECTION,
    ) -> None:
        self.firestore_client = firestore_client
        self.collection_name = collection

    def list_guides(self) -> list[SafetyGuide]:
        """All guides, lowest priority number first.

        Raises:
            StoreError: If Firestore cannot be queried
        """
        query = self.firestore_client.collection(self.collection_name).order_by("priority")

        with store_errors("list safety guides"):
            return [_guide_from_record(doc.id, doc.to_dict() or {}) for doc in query.stream()]
