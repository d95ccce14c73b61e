"""Error types shared by the core and the shell.

Pure data: the core raises these, the shell raises or translates them,
and the entry points decide how they are reported.
"""


class QuakeAlertError(Exception):
    """Base class for all application errors."""


class FeedError(QuakeAlertError):
    """The upstream seismic feed could not be used."""


class FeedUnavailable(FeedError):
    """The feed request failed or returned a non-success status."""


class FeedMalformed(FeedError):
    """The feed payload is not a GeoJSON FeatureCollection."""


class StoreError(QuakeAlertError):
    """A storage operation failed (connectivity, permission, ...)."""


class DuplicateEventError(StoreError):
    """An event with the same external ID is already stored.

    Raised by create-only inserts. Callers treat it as benign.
    """

    def __init__(self, external_id: str) -> None:
        super().__init__(f"Event already stored: {external_id}")
        self.external_id = external_id


class PreferenceValidationError(QuakeAlertError):
    """A user preference failed validation.

    Attributes:
        messages: Human-readable validation failures
    """

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = messages
