"""Tests for the preference store with a mocked Firestore client."""

from unittest.mock import MagicMock, Mock

import pytest
from google.api_core import exceptions as gcp_exceptions

from src.core.errors import PreferenceValidationError, StoreError
from src.core.preferences import UserPreference
from src.shell.firestore_client import FirestoreClient
from src.shell.preference_store import PreferenceStore


@pytest.fixture
def sdk():
    return MagicMock()


@pytest.fixture
def collection(sdk):
    return sdk.collection.return_value


@pytest.fixture
def store(sdk):
    return PreferenceStore(FirestoreClient(client=sdk), collection="prefs")


def _doc(doc_id, record, exists=True):
    doc = Mock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = record
    return doc


class TestGet:
    """Tests for PreferenceStore.get()."""

    def test_returns_stored_preference(self, store, collection):
        collection.document.return_value.get.return_value = _doc(
            "user-1",
            {"location_lat": 14.6, "location_lng": 120.98, "min_magnitude": 5.5},
        )

        pref = store.get("user-1")

        collection.document.assert_called_with("user-1")
        assert pref.user_id == "user-1"
        assert pref.min_magnitude == 5.5
        assert pref.alert_radius_km == 500

    def test_missing_returns_none(self, store, collection):
        collection.document.return_value.get.return_value = _doc("user-1", None, exists=False)
        assert store.get("user-1") is None


class TestGetOrCreate:
    """Tests for PreferenceStore.get_or_create()."""

    def test_existing_is_not_rewritten(self, store, collection):
        collection.document.return_value.get.return_value = _doc("user-1", {"min_magnitude": 3.0})

        pref = store.get_or_create("user-1")

        assert pref.min_magnitude == 3.0
        collection.document.return_value.create.assert_not_called()

    def test_creates_defaults_on_first_access(self, store, collection):
        collection.document.return_value.get.return_value = _doc("user-1", None, exists=False)

        pref = store.get_or_create("user-1")

        assert pref == UserPreference(user_id="user-1")
        record = collection.document.return_value.create.call_args[0][0]
        assert record["min_magnitude"] == 4.0
        assert record["push_enabled"] is True

    def test_concurrent_create_reads_winner(self, store, collection):
        document = collection.document.return_value
        document.get.side_effect = [
            _doc("user-1", None, exists=False),
            _doc("user-1", {"min_magnitude": 6.0}),
        ]
        document.create.side_effect = gcp_exceptions.AlreadyExists("exists")

        pref = store.get_or_create("user-1")

        assert pref.min_magnitude == 6.0


class TestUpsert:
    """Tests for PreferenceStore.upsert()."""

    def test_writes_full_document(self, store, collection):
        pref = UserPreference(
            user_id="user-1",
            location_name="Manila",
            location_lat=14.6,
            location_lng=120.98,
            min_magnitude=5.0,
            alert_radius_km=200,
        )

        assert store.upsert(pref) == pref

        record = collection.document.return_value.set.call_args[0][0]
        assert record["location_name"] == "Manila"
        assert record["alert_radius_km"] == 200

    def test_invalid_is_rejected_before_write(self, store, collection):
        with pytest.raises(PreferenceValidationError):
            store.upsert(UserPreference(user_id="user-1", location_lat=14.6))

        collection.document.return_value.set.assert_not_called()

    def test_store_failure(self, store, collection):
        collection.document.return_value.set.side_effect = gcp_exceptions.ServiceUnavailable("down")

        with pytest.raises(StoreError):
            store.upsert(UserPreference(user_id="user-1"))


class TestListAlertable:
    """Tests for PreferenceStore.list_alertable()."""

    def test_merges_channel_queries_by_user(self, store, collection):
        push_query = Mock()
        push_query.stream.return_value = [
            _doc("a", {"push_enabled": True, "email_enabled": True}),
            _doc("b", {"push_enabled": True}),
        ]
        email_query = Mock()
        email_query.stream.return_value = [
            _doc("a", {"push_enabled": True, "email_enabled": True}),
            _doc("c", {"push_enabled": False, "email_enabled": True}),
        ]
        collection.where.side_effect = [push_query, email_query]

        prefs = store.list_alertable()

        assert sorted(p.user_id for p in prefs) == ["a", "b", "c"]
        assert collection.where.call_count == 2

    def test_wraps_errors(self, store, collection):
        collection.where.return_value.stream.side_effect = gcp_exceptions.ServiceUnavailable("down")

        with pytest.raises(StoreError):
            store.list_alertable()
