"""Abstract base class for content-source adapters.

A source adapter turns a seed into candidate containers (radio episodes or
DJ sets) and expands a container into its tracklist.  The Aggregator and
TrackCollector only ever talk to this interface, so HTTP, JSON APIs and HTML
scraping stay inside the concrete providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from stackdigger.models.content import Container, RawTrack
from stackdigger.models.seeds import GenreSeed, SeedKind, SetSeed, TrackSeed


class ISourceAdapter(ABC):
    """Contract for services that find and expand containers of tracks."""

    #: Upper bound on containers the Aggregator should take per seed from
    #: this adapter.  ``None`` means "use the caller's max_per_seed".
    max_containers_per_seed: int | None = None

    #: True when the adapter spaces its own requests (a scraper delay, say).
    #: Callers then skip their per-call timeout, since time spent queued
    #: behind earlier requests is not a slow upstream; the HTTP client's own
    #: timeout still bounds each request.
    paces_requests: bool = False

    @property
    @abstractmethod
    def supported_kinds(self) -> frozenset[SeedKind]:
        """Seed kinds this adapter can search."""

    @abstractmethod
    async def search(self, seed: TrackSeed | GenreSeed | SetSeed) -> list[Container]:
        """Return candidate containers for *seed*, in the source's natural order.

        Parameters
        ----------
        seed:
            A seed whose ``kind`` is in :attr:`supported_kinds`.

        Returns
        -------
        list[Container]
            Zero or more containers.  Sorting and seen-filtering happen in
            the Aggregator, not here.

        Raises
        ------
        stackdigger.utils.errors.SourceUnavailableError
            If the upstream call fails.
        """

    @abstractmethod
    async def expand(self, container: Container) -> list[RawTrack]:
        """Return the tracklist of *container* in play order.

        Raises
        ------
        stackdigger.utils.errors.SourceUnavailableError
            If the upstream call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"nts"`` or ``"1001tracklists"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the adapter is configured and enabled."""
