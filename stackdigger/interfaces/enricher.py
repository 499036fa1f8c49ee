"""Abstract base class for canonical-identifier enrichers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from stackdigger.models.content import EnrichmentMatch


class IEnricher(ABC):
    """Contract for catalog lookups that attach a canonical id to a track."""

    @abstractmethod
    async def lookup(self, artist: str, title: str) -> EnrichmentMatch | None:
        """Find the catalog entry for *artist* / *title*.

        Returns
        -------
        EnrichmentMatch or None
            ``None`` when no confident match exists.  A miss is a normal
            outcome, not an error.

        Raises
        ------
        stackdigger.utils.errors.EnrichmentError
            If the catalog call itself fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"spotify"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
