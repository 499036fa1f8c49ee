"""Public interface definitions for every external collaborator.

Business logic in ``stackdigger.services`` and ``stackdigger.pipeline`` only
depends on these abstract base classes; concrete adapters live in
``stackdigger.providers`` and are wired up in ``stackdigger.main``.

    Interface          ->  Concrete implementations
    ---------------------------------------------------------------
    ISourceAdapter     ->  NTSProvider, TracklistsProvider
    IEnricher          ->  SpotifyEnricher, NullEnricher
    IExposureStore     ->  SQLiteExposureStore, MemoryExposureStore
    ICacheProvider     ->  MemoryCacheProvider
"""

from stackdigger.interfaces.cache_provider import ICacheProvider
from stackdigger.interfaces.enricher import IEnricher
from stackdigger.interfaces.exposure_store import IExposureStore
from stackdigger.interfaces.source_adapter import ISourceAdapter

__all__ = [
    "ICacheProvider",
    "IEnricher",
    "IExposureStore",
    "ISourceAdapter",
]
