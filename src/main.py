"""Cloud Function Entry Point.

This module provides the entry point for Google Cloud Functions.
It's a thin wrapper that loads configuration and invokes the orchestrator.
"""

import logging
import os
import json
from typing import Any

import functions_framework
from flask import Request

from src.core.errors import FeedError, StoreError
from src.orchestrator import Orchestrator
from src.shell.config_loader import get_config


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

JSON_HEADERS = {**CORS_HEADERS, "Content-Type": "application/json"}


def run_ingestion(orchestrator: Orchestrator | None = None) -> tuple[dict[str, Any], int]:
    """Run one cycle and build the trigger response.

    Args:
        orchestrator: Pre-built orchestrator (created from config if None)

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    logger.info("Starting earthquake ingestion cycle")

    try:
        if orchestrator is None:
            orchestrator = Orchestrator(get_config())
        result = orchestrator.run_cycle()
        return result.to_response(), 200

    except (FeedError, StoreError) as e:
        logger.error("Error in fetch-earthquakes cycle: %s", e)
        return {"error": str(e)}, 500

    except Exception as e:
        logger.exception("Unexpected error in fetch-earthquakes cycle")
        return {"error": str(e) or "An error occurred"}, 500


@functions_framework.http
def fetch_earthquakes(request: Request) -> tuple[Any, int, dict[str, str]]:
    """HTTP Cloud Function entry point.

    Triggered by Cloud Scheduler or direct HTTP requests (any method).
    Runs one ingestion cycle.

    Args:
        request: Flask request object (only the method is used)

    Returns:
        Tuple of (body, HTTP status code, headers)
    """
    if request.method == "OPTIONS":
        return "", 204, CORS_HEADERS

    response, status = run_ingestion()
    return response, status, JSON_HEADERS


@functions_framework.cloud_event
def fetch_earthquakes_pubsub(cloud_event: Any) -> None:
    """Pub/Sub Cloud Function entry point.

    Alternative trigger for Cloud Scheduler via Pub/Sub. Failures are
    re-raised so the platform can retry the delivery.

    Args:
        cloud_event: CloudEvent from Pub/Sub
    """
    logger.info("Starting earthquake ingestion cycle (Pub/Sub trigger)")

    try:
        orchestrator = Orchestrator(get_config())
        result = orchestrator.run_cycle()
        logger.info("Completed: %s", result.summary)

    except Exception:
        logger.exception("Unexpected error in earthquake ingestion")
        raise


# For local testing
if __name__ == "__main__":
    print("Running earthquake ingestion locally...")

    response, status = run_ingestion()
    print(f"\nResponse ({status}):")
    print(json.dumps(response, indent=2))
