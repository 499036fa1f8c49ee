"""Custom exception hierarchy for stackdigger.

All application exceptions inherit from :class:`StackDiggerError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "nts", "1001tracklists", "spotify") caused the failure.

The hierarchy is split by how far an error is allowed to travel:

    StackDiggerError  (base -- catch-all for any stackdigger error)
    +-- SourceUnavailableError   (one adapter call failed -- absorbed per item)
    +-- EnrichmentError          (one enricher call failed -- absorbed per track)
    +-- InvalidSeedsError        (fatal -- no usable seeds supplied)
    +-- NoNewContentError        (fatal -- everything was already shown)
    +-- StackBuildTimeoutError   (fatal -- the whole build ran out of time)
    +-- ExposureStoreError       (persistence failure)
    +-- ConfigurationError       (startup / missing config)

Per-item errors never leave the stage that raised them; only the fatal
conditions reach the caller.  Each class carries the HTTP status the API
layer maps it to.
"""


class StackDiggerError(Exception):
    """Base exception for all stackdigger errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[nts] NTS API returned 503``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Per-item errors (absorbed inside a fan-out stage)
# ---------------------------------------------------------------------------

class SourceUnavailableError(StackDiggerError):
    """Raised when a single source adapter call fails or times out.

    The Aggregator and TrackCollector catch this and treat the affected
    seed or container as contributing nothing.
    """

    status_code = 502

    def __init__(
        self,
        message: str = "Content source is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EnrichmentError(StackDiggerError):
    """Raised when a canonical-identifier lookup fails for one track."""

    status_code = 502

    def __init__(
        self,
        message: str = "Track enrichment failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Fatal build errors
# ---------------------------------------------------------------------------

class InvalidSeedsError(StackDiggerError):
    """Raised when a build is requested without any usable seed."""

    status_code = 400

    def __init__(
        self,
        message: str = "Provide at least one track, genre, or DJ to build a stack from",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoNewContentError(StackDiggerError):
    """Raised when every candidate has already been surfaced.

    ``reason`` is ``"no_new_containers"`` when every seed yielded only
    already-seen episodes/sets, and ``"no_new_tracks"`` when containers
    were found but no track survived deduplication and referenced-filtering.
    """

    status_code = 404

    NO_NEW_CONTAINERS = "no_new_containers"
    NO_NEW_TRACKS = "no_new_tracks"

    def __init__(
        self,
        message: str = "Everything you asked for has already been shown",
        provider_name: str | None = None,
        reason: str = NO_NEW_CONTAINERS,
    ) -> None:
        self._reason = reason
        super().__init__(message=message, provider_name=provider_name)

    @property
    def reason(self) -> str:
        return self._reason


class StackBuildTimeoutError(StackDiggerError):
    """Raised when a whole stack build exceeds its time budget.

    Nothing is persisted when this is raised.
    """

    status_code = 504

    def __init__(
        self,
        message: str = "Stack build timed out",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------

class ExposureStoreError(StackDiggerError):
    """Raised when the exposure store cannot be read or written."""

    def __init__(
        self,
        message: str = "Exposure store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(StackDiggerError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
