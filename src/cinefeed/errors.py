"""Exception hierarchy for the feed pipeline.

Every failure is raised with the narrowest type that describes it so the run
coordinator can isolate it: a single screening, a single source, or a single
bucket's previous document. Only ``ConfigurationError`` and ``FeedStoreError``
abort a whole run.
"""


class CinefeedError(Exception):
    """Base class for all pipeline errors."""


class FetchError(CinefeedError):
    """An HTTP retrieval failed after any retries were exhausted."""

    def __init__(
        self,
        url: str,
        reason: str,
        *,
        transient: bool = False,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.reason = reason
        self.transient = transient
        self.status_code = status_code
        super().__init__(f"{reason} ({url})")


class AdapterError(CinefeedError):
    """A source adapter could not produce screenings."""

    def __init__(self, source_id: str, message: str) -> None:
        self.source_id = source_id
        self.message = message
        super().__init__(f"{source_id}: {message}")


class StructureChanged(AdapterError):
    """The listing container or payload shape could not be located at all."""


class FieldExtractionError(AdapterError):
    """A single screening lacked a field the adapter requires."""


class NormalizationError(CinefeedError):
    """A screening is missing a required field after extraction."""


class BuildError(CinefeedError):
    """A previously published document could not be read."""


class ConfigurationError(CinefeedError):
    """The routing table or source registry is inconsistent."""


class FeedStoreError(CinefeedError):
    """The feed output directory is not usable."""
