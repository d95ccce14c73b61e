"""Tests for the alert and safety guide stores with a mocked Firestore client."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import pytest
from google.api_core import exceptions as gcp_exceptions

from src.core.earthquake import AlertEvent
from src.core.errors import StoreError
from src.core.preferences import UserPreference
from src.core.rules import AlertDecision
from src.shell.alert_store import AlertStore
from src.shell.firestore_client import FirestoreClient
from src.shell.guide_store import GuideStore, SafetyGuide


@pytest.fixture
def sdk():
    return MagicMock()


@pytest.fixture
def collection(sdk):
    return sdk.collection.return_value


@pytest.fixture
def decision():
    event = AlertEvent(
        external_id="us7000abcd",
        magnitude=6.1,
        location="Manila",
        latitude=14.6,
        longitude=120.98,
        depth_km=10.0,
        occurred_at=datetime(2023, 12, 19, 16, 0, tzinfo=timezone.utc),
    )
    return AlertDecision(
        event=event,
        preference=UserPreference(user_id="user-1"),
        channels=("push",),
        distance_km=42.0,
    )


class TestAlertStoreRecord:
    """Tests for AlertStore.record()."""

    def test_creates_row_keyed_by_user_and_event(self, sdk, collection, decision):
        store = AlertStore(FirestoreClient(client=sdk))

        assert store.record(decision) is True

        sdk.collection.assert_called_with("user_alerts")
        collection.document.assert_called_with("user-1_us7000abcd")
        row = collection.document.return_value.create.call_args[0][0]
        assert row["user_id"] == "user-1"
        assert row["channels"] == ["push"]

    def test_already_recorded(self, sdk, collection, decision):
        collection.document.return_value.create.side_effect = gcp_exceptions.AlreadyExists("x")
        store = AlertStore(FirestoreClient(client=sdk))

        assert store.record(decision) is False

    def test_other_failures_raise(self, sdk, collection, decision):
        collection.document.return_value.create.side_effect = gcp_exceptions.InternalServerError("x")
        store = AlertStore(FirestoreClient(client=sdk))

        with pytest.raises(StoreError):
            store.record(decision)


class TestAlertStoreListForUser:
    """Tests for AlertStore.list_for_user()."""

    def test_returns_rows(self, sdk, collection):
        query = collection.where.return_value.order_by.return_value.limit.return_value
        doc = Mock()
        doc.to_dict.return_value = {"user_id": "user-1", "external_id": "eq1"}
        query.stream.return_value = [doc]

        rows = AlertStore(FirestoreClient(client=sdk)).list_for_user("user-1", limit=5)

        assert rows == [{"user_id": "user-1", "external_id": "eq1"}]
        collection.where.return_value.order_by.return_value.limit.assert_called_once_with(5)


class TestGuideStore:
    """Tests for GuideStore.list_guides()."""

    def test_lists_in_priority_order(self, sdk, collection):
        first = Mock(id="before")
        first.to_dict.return_value = {
            "title": "Before an earthquake",
            "category": "before",
            "content": "Secure heavy furniture.",
            "priority": 1,
        }
        second = Mock(id="during")
        second.to_dict.return_value = {
            "title": "During an earthquake",
            "category": "during",
            "content": "Drop, cover, and hold on.",
            "icon": "alert-triangle",
            "priority": 2,
        }
        collection.order_by.return_value.stream.return_value = [first, second]

        guides = GuideStore(FirestoreClient(client=sdk)).list_guides()

        collection.order_by.assert_called_once_with("priority")
        assert guides[0] == SafetyGuide(
            guide_id="before",
            title="Before an earthquake",
            category="before",
            content="Secure heavy furniture.",
            priority=1,
        )
        assert guides[1].icon == "alert-triangle"

    def test_wraps_errors(self, sdk, collection):
        collection.order_by.return_value.stream.side_effect = gcp_exceptions.ServiceUnavailable("x")

        with pytest.raises(StoreError):
            GuideStore(FirestoreClient(client=sdk)).list_guides()
