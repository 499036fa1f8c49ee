"""Utility modules for stackdigger.

- **errors** -- Exception hierarchy rooted at StackDiggerError; each class
  carries the HTTP status the API maps it to.
- **concurrency** -- Semaphore-bounded fan-out and per-call timeouts for
  the build stages.
- **logging** -- structlog setup with a console renderer in development and
  JSON in production.
- **text_normalizer** -- Track-key normalization, DJ slugs, and fuzzy
  candidate scoring for enrichment.
"""

# -- Domain exception hierarchy --------------------------------------------
from stackdigger.utils.errors import (
    ConfigurationError,
    EnrichmentError,
    ExposureStoreError,
    InvalidSeedsError,
    NoNewContentError,
    SourceUnavailableError,
    StackBuildTimeoutError,
    StackDiggerError,
)

# -- Async concurrency helpers ---------------------------------------------
from stackdigger.utils.concurrency import throttled_gather, with_timeout

# -- Structured logging setup ----------------------------------------------
from stackdigger.utils.logging import configure_logging, get_logger

# -- Text normalization ----------------------------------------------------
from stackdigger.utils.text_normalizer import match_score, normalize_track_key

__all__ = [
    "ConfigurationError",
    "EnrichmentError",
    "ExposureStoreError",
    "InvalidSeedsError",
    "NoNewContentError",
    "SourceUnavailableError",
    "StackBuildTimeoutError",
    "StackDiggerError",
    "configure_logging",
    "get_logger",
    "match_score",
    "normalize_track_key",
    "throttled_gather",
    "with_timeout",
]
