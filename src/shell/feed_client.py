"""USGS Feed Client - Imperative Shell.

This module handles HTTP communication with the USGS GeoJSON summary feed.
All I/O is contained here; parsing lives in the core module.
"""

import logging

import requests

from src.core.config import DEFAULT_FEED_URL
from src.core.earthquake import AlertEvent, FeedBatch, parse_feature_collection
from src.core.errors import FeedMalformed, FeedUnavailable


logger = logging.getLogger(__name__)


# Default timeout for feed requests (seconds)
DEFAULT_TIMEOUT = 30


class FeedClient:
    """Client for fetching the latest earthquakes from the USGS feed.

    This is part of the imperative shell - it handles HTTP I/O.
    One GET per call; no retries or backoff.
    """

    def __init__(
        self,
        feed_url: str = DEFAULT_FEED_URL,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize feed client.

        Args:
            feed_url: GeoJSON FeatureCollection URL
            timeout: Request timeout in seconds
        """
        self.feed_url = feed_url
        self.timeout = timeout

    def fetch_geojson(self) -> dict:
        """Fetch the raw feed payload.

        This method performs HTTP I/O.

        Returns:
            Decoded JSON payload

        Raises:
            FeedUnavailable: If the request fails or status is not 2xx
            FeedMalformed: If the body is not JSON
        """
        logger.info("Fetching earthquakes from %s", self.feed_url)

        try:
            response = requests.get(self.feed_url, timeout=self.timeout)
        except requests.Timeout as e:
            raise FeedUnavailable(f"USGS feed timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise FeedUnavailable(f"USGS feed request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise FeedUnavailable(f"USGS API error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise FeedMalformed(f"USGS feed returned invalid JSON: {e}") from e

    def fetch_batch(self) -> FeedBatch:
        """Fetch and parse the feed, keeping the raw feature count.

        Raises:
            FeedUnavailable: If the feed cannot be reached
            FeedMalformed: If the payload is not a FeatureCollection
        """
        batch = parse_feature_collection(self.fetch_geojson())

        if batch.skipped:
            logger.warning("Skipped %d unparseable features", batch.skipped)

        logger.info(
            "Fetched %d earthquakes from USGS (%d features)",
            len(batch.events),
            batch.feature_count,
        )

        return batch

    def fetch_latest_events(self) -> list[AlertEvent]:
        """Fetch and parse the latest events, in feed order.

        Raises:
            FeedUnavailable: If the feed cannot be reached
            FeedMalformed: If the payload is not a FeatureCollection
        """
        return self.fetch_batch().events
