"""Shared pytest fixtures for the stackdigger test suite."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from stackdigger.interfaces.enricher import IEnricher
from stackdigger.interfaces.source_adapter import ISourceAdapter
from stackdigger.models.content import Container, EnrichmentMatch, RawTrack, SourceKind, Track
from stackdigger.models.seeds import GenreSeed, SeedKind, SetSeed, TrackSeed
from stackdigger.models.stack import Stack
from stackdigger.pipeline.stack_builder import StackBuilder
from stackdigger.providers.exposure.memory_store import MemoryExposureStore
from stackdigger.services.aggregator import Aggregator
from stackdigger.services.enrichment import EnrichmentPipeline
from stackdigger.services.stack_assembler import StackAssembler
from stackdigger.services.stack_service import StackService
from stackdigger.services.track_collector import TrackCollector
from stackdigger.utils.errors import EnrichmentError, SourceUnavailableError

_BASE_DATE = datetime(2024, 6, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeSourceAdapter(ISourceAdapter):
    """In-memory source adapter; tests register containers and tracklists."""

    def __init__(
        self,
        kinds: frozenset[SeedKind],
        name: str = "fake",
        max_containers: int | None = None,
        available: bool = True,
    ) -> None:
        self._kinds = kinds
        self._name = name
        self._available = available
        self.max_containers_per_seed = max_containers
        self._containers: dict[Any, list[Container]] = {}
        self._tracks: dict[str, list[RawTrack]] = {}
        self.failing_seeds: set[Any] = set()
        self.failing_containers: set[str] = set()
        self.search_calls: list[Any] = []
        self.expand_calls: list[str] = []

    def register(
        self,
        seed: TrackSeed | GenreSeed | SetSeed,
        containers: list[Container],
        tracks: dict[str, list[RawTrack]] | None = None,
    ) -> None:
        self._containers[seed] = list(containers)
        self._tracks.update(tracks or {})

    def set_tracks(self, container_id: str, tracks: list[RawTrack]) -> None:
        self._tracks[container_id] = list(tracks)

    @property
    def supported_kinds(self) -> frozenset[SeedKind]:
        return self._kinds

    async def search(self, seed: TrackSeed | GenreSeed | SetSeed) -> list[Container]:
        self.search_calls.append(seed)
        if seed in self.failing_seeds:
            raise SourceUnavailableError(message="search failed", provider_name=self._name)
        return list(self._containers.get(seed, []))

    async def expand(self, container: Container) -> list[RawTrack]:
        self.expand_calls.append(container.id)
        if container.id in self.failing_containers:
            raise SourceUnavailableError(message="expand failed", provider_name=self._name)
        return list(self._tracks.get(container.id, []))

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._available


class FakeEnricher(IEnricher):
    """Looks matches up in a dict keyed by lowercase (artist, title)."""

    def __init__(self, matches: dict[tuple[str, str], str] | None = None) -> None:
        self.matches: dict[tuple[str, str], str] = dict(matches or {})
        self.failing: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []

    async def lookup(self, artist: str, title: str) -> EnrichmentMatch | None:
        key = (artist.lower(), title.lower())
        self.calls.append(key)
        if key in self.failing:
            raise EnrichmentError(message="lookup failed", provider_name="fake")
        canonical_id = self.matches.get(key)
        if canonical_id is None:
            return None
        return EnrichmentMatch(
            canonical_id=canonical_id,
            playback_url=f"https://open.spotify.com/embed/track/{canonical_id}",
        )

    def get_provider_name(self) -> str:
        return "fake_enricher"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_container() -> Callable[..., Container]:
    """Factory: ``make_container(id, seed, days_old=0, source=NTS)``.

    ``days_old=None`` produces an undated container.
    """

    def _make(
        container_id: str,
        seed: TrackSeed | GenreSeed | SetSeed,
        days_old: int | None = 0,
        source: SourceKind = SourceKind.NTS,
        title: str | None = None,
    ) -> Container:
        published_at = None if days_old is None else _BASE_DATE - timedelta(days=days_old)
        return Container(
            id=container_id,
            title=title or f"Episode {container_id}",
            source=source,
            source_seed=seed,
            published_at=published_at,
        )

    return _make


@pytest.fixture
def make_raw_tracks() -> Callable[[str, int], list[RawTrack]]:
    """Factory: ``make_raw_tracks("ep1", 5)`` -> five distinct raw tracks."""

    def _make(prefix: str, count: int) -> list[RawTrack]:
        return [
            RawTrack(artist=f"Artist {prefix}-{i}", title=f"Title {prefix}-{i}")
            for i in range(count)
        ]

    return _make


@pytest.fixture
def make_stack() -> Callable[..., Stack]:
    """Factory: ``make_stack(id, [(artist, title, canonical_id|None), ...])``."""

    def _make(
        stack_id: str,
        tracks: list[tuple[str, str, str | None]],
        seed: TrackSeed | GenreSeed | SetSeed | None = None,
    ) -> Stack:
        provenance = seed or TrackSeed(artist="Seed Artist")
        container = Container(
            id=f"/episodes/{stack_id}",
            title=f"Episode for {stack_id}",
            source=SourceKind.NTS,
            source_seed=provenance,
        )
        return Stack(
            id=stack_id,
            created_at=_BASE_DATE,
            name=f"Stack {stack_id}",
            summary="",
            sources=[provenance],
            tracks=[
                Track(
                    container_id=container.id,
                    artist=artist,
                    title=title,
                    local_uid=f"{container.id}-{i}",
                    provenance=provenance,
                    canonical_id=canonical_id,
                )
                for i, (artist, title, canonical_id) in enumerate(tracks)
            ],
            containers_used=[container],
        )

    return _make


# ---------------------------------------------------------------------------
# Wired components
# ---------------------------------------------------------------------------


@pytest.fixture
def radio_source() -> FakeSourceAdapter:
    """Stands in for the radio-episode source (track and genre seeds)."""
    return FakeSourceAdapter(frozenset({SeedKind.TRACK, SeedKind.GENRE}), name="fake_radio")


@pytest.fixture
def set_source() -> FakeSourceAdapter:
    """Stands in for the DJ-set source; one container per seed."""
    return FakeSourceAdapter(frozenset({SeedKind.SET}), name="fake_sets", max_containers=1)


@pytest.fixture
def fake_enricher() -> FakeEnricher:
    return FakeEnricher()


@pytest.fixture
def memory_store() -> MemoryExposureStore:
    return MemoryExposureStore(history_limit=50)


@pytest.fixture
def stack_builder(
    radio_source: FakeSourceAdapter,
    set_source: FakeSourceAdapter,
    fake_enricher: FakeEnricher,
) -> StackBuilder:
    adapters = [radio_source, set_source]
    return StackBuilder(
        aggregator=Aggregator(adapters, concurrency=4, source_timeout=5.0),
        track_collector=TrackCollector(adapters, concurrency=4, source_timeout=5.0),
        enrichment=EnrichmentPipeline(fake_enricher, concurrency=4),
        assembler=StackAssembler(),
        build_timeout=10.0,
    )


@pytest.fixture
def stack_service(stack_builder: StackBuilder, memory_store: MemoryExposureStore) -> StackService:
    return StackService(builder=stack_builder, store=memory_store)


@pytest.fixture
def fake_source_cls() -> type[FakeSourceAdapter]:
    """The fake adapter class itself, for tests that need extra instances or subclasses."""
    return FakeSourceAdapter
