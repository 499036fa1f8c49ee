"""Content-source adapter implementations.

    NTSProvider         -- NTS Radio JSON API; TrackSeed and GenreSeed.
    TracklistsProvider  -- 1001Tracklists HTML scraping; SetSeed, one set per seed.
"""

from stackdigger.providers.source.nts_provider import NTSProvider
from stackdigger.providers.source.tracklists_provider import TracklistsProvider

__all__ = ["NTSProvider", "TracklistsProvider"]
