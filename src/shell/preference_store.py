"""Preference Store - Imperative Shell.

One Firestore document per user (document ID = user_id), so the
one-preference-per-user invariant is held by the key itself.
"""

import logging
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from src.core.preferences import (
    UserPreference,
    default_preference,
    ensure_valid,
    preference_from_record,
    preference_to_record,
)
from src.shell.firestore_client import FirestoreClient, store_errors


logger = logging.getLogger(__name__)


DEFAULT_COLLECTION = "user_preferences"


class PreferenceStore:
    """Read/write access to user preferences.

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

    def get(self, user_id: str) -> UserPreference | None:
        """Fetch a user's preference, or None if never saved.

        Raises:
            StoreError: If Firestore cannot be read
        """
        with store_errors(f"read preferences for {user_id}"):
            doc = self._collection().document(user_id).get()

        if not doc.exists:
            return None
        return preference_from_record(user_id, doc.to_dict() or {})

    def get_or_create(self, user_id: str) -> UserPreference:
        """Fetch a user's preference, creating the default on first access.

        A concurrent first access may create the document first; that
        document is then read back instead.

        Raises:
            StoreError: If Firestore cannot be read or written
        """
        existing = self.get(user_id)
        if existing is not None:
            return existing

        pref = default_preference(user_id)

        with store_errors(f"create preferences for {user_id}"):
            try:
                self._collection().document(user_id).create(preference_to_record(pref))
            except gcp_exceptions.AlreadyExists:
                logger.info("Preferences for %s created concurrently", user_id)
                return self.get(user_id) or pref

        logger.info("Created default preferences for %s", user_id)
        return pref

    def upsert(self, pref: UserPreference) -> UserPreference:
        """Insert or fully replace a user's preference.

        Raises:
            PreferenceValidationError: If the preference is invalid
            StoreError: If Firestore cannot be written
        """
        ensure_valid(pref)

        with store_errors(f"save preferences for {pref.user_id}"):
            self._collection().document(pref.user_id).set(preference_to_record(pref))

        logger.info("Saved preferences for %s", pref.user_id)
        return pref

    def list_alertable(self) -> list[UserPreference]:
        """Preferences with at least one delivery channel enabled.

        Firestore has no OR across fields here, so both channel queries
        are run and merged by user.

        Raises:
            StoreError: If Firestore cannot be queried
        """
        found: dict[str, UserPreference] = {}

        with store_errors("list alertable preferences"):
            for flag in ("push_enabled", "email_enabled"):
                query = self._collection().where(filter=FieldFilter(flag, "==", True))
                for doc in query.stream():
                    found[doc.id] = preference_from_record(doc.id, doc.to_dict() or {})

        logger.info("Loaded %d alertable preferences", len(found))
        return list(found.values())
