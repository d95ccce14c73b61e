"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the src package.
"""

from src.main import (
    fetch_earthquakes,
    fetch_earthquakes_pubsub,
)

__all__ = [
    "fetch_earthquakes",
    "fetch_earthquakes_pubsub",
]
