"""Firestore Client - Imperative Shell.

Shared, lazily-initialized Firestore connection used by the event,
preference, alert and guide stores. Uses Google Cloud Firestore.

All I/O is contained here and in the stores; business logic is in core.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from src.core.errors import StoreError


logger = logging.getLogger(__name__)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """
    project_id: str | None = None
    database: str | None = None


class FirestoreClient:
    """Holder for a single Firestore connection.

    This is part of the imperative shell - it handles database I/O.
    """

    def __init__(
        self,
        config: FirestoreConfig | None = None,
        client: firestore.Client | None = None,
    ) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
            client: Pre-built client (created lazily if not provided)
        """
        self.config = config or FirestoreConfig()
        self._client = client

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def collection(self, name: str) -> Any:
        """Get a collection reference."""
        return self.client.collection(name)


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Translate Firestore API failures into StoreError.

    Args:
        action: Short description used in the error message
    """
    try:
        yield
    except gcp_exceptions.GoogleAPIError as e:
        logger.error("Firestore failed to %s: %s", action, e)
        raise StoreError(f"Failed to {action}: {e}") from e
