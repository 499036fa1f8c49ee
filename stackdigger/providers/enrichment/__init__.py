"""Canonical-identifier enricher implementations."""

from stackdigger.providers.enrichment.spotify_provider import NullEnricher, SpotifyEnricher

__all__ = ["NullEnricher", "SpotifyEnricher"]
