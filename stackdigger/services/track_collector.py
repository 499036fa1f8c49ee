"""Container expansion, provenance tagging and track-level deduplication.

Second fan-out stage of a build.  Each container is expanded through the
adapter registered for its seed's kind; a failing container contributes no
tracks.  Raw tracks become :class:`Track` records stamped with the
container's identity and the seed that led to it.

Deduplication and referenced-filtering both work on a track's exposure keys
(canonical id when known, plus the normalized artist/title pair), so a match
on either identity counts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

import structlog

from stackdigger.interfaces.source_adapter import ISourceAdapter
from stackdigger.models.content import Container, RawTrack, Track
from stackdigger.models.seeds import SeedKind
from stackdigger.services.aggregator import build_dispatch_table, call_timeout
from stackdigger.utils.concurrency import throttled_gather, with_timeout
from stackdigger.utils.errors import SourceUnavailableError
from stackdigger.utils.logging import get_logger


def to_tracks(container: Container, raw_tracks: list[RawTrack]) -> list[Track]:
    """Turn one container's raw tracklist into provenance-tagged tracks."""
    return [
        Track(
            container_id=container.id,
            container_title=container.title,
            artist=raw.artist,
            title=raw.title,
            local_uid=f"{container.id}-{index}",
            provenance=container.source_seed,
            published_at=container.published_at,
            source_uid=raw.source_uid,
            canonical_id=raw.canonical_id,
        )
        for index, raw in enumerate(raw_tracks)
    ]


def dedupe_tracks(
    tracks: Iterable[Track],
    referenced_tracks: set[str] | frozenset[str] = frozenset(),
) -> list[Track]:
    """Keep the first occurrence of each track and drop referenced ones.

    A track is a duplicate when any of its exposure keys was already
    emitted, and is dropped when any of them is in *referenced_tracks*.
    Order of the survivors is preserved.
    """
    emitted: set[str] = set()
    unique: list[Track] = []
    for track in tracks:
        keys = track.exposure_keys
        if any(key in emitted for key in keys):
            continue
        emitted.update(keys)
        if any(key in referenced_tracks for key in keys):
            continue
        unique.append(track)
    return unique


class TrackCollector:
    """Expands containers concurrently and returns deduplicated tracks."""

    def __init__(
        self,
        adapters: Iterable[ISourceAdapter] | Mapping[SeedKind, ISourceAdapter],
        concurrency: int = 8,
        source_timeout: float | None = 20.0,
    ) -> None:
        if isinstance(adapters, Mapping):
            self._dispatch = dict(adapters)
        else:
            self._dispatch = build_dispatch_table(adapters)
        self._concurrency = max(concurrency, 1)
        self._source_timeout = source_timeout
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def collect(
        self,
        containers: list[Container],
        referenced_tracks: set[str] | frozenset[str] = frozenset(),
    ) -> list[Track]:
        """Expand *containers* and return their tracks in container order.

        Parameters
        ----------
        containers:
            Containers in Aggregator order.  Earlier containers win ties.
        referenced_tracks:
            Keys of tracks already surfaced by a stack in history.

        Returns
        -------
        list[Track]
            Deduplicated, unreferenced tracks ordered by container, then
            by position within the container.
        """
        semaphore = asyncio.Semaphore(self._concurrency)
        results = await throttled_gather(
            [self._expand(container) for container in containers],
            semaphore=semaphore,
        )

        collected: list[Track] = []
        for container, result in zip(containers, results):
            if isinstance(result, BaseException):
                self._logger.warning(
                    "container_expand_failed",
                    container_id=container.id,
                    error=str(result) or type(result).__name__,
                )
                continue
            collected.extend(to_tracks(container, result))

        unique = dedupe_tracks(collected, referenced_tracks)
        self._logger.info(
            "tracks_collected",
            containers=len(containers),
            raw_tracks=len(collected),
            unique_tracks=len(unique),
        )
        return unique

    async def _expand(self, container: Container) -> list[RawTrack]:
        adapter = self._dispatch.get(SeedKind(container.source_seed.kind))
        if adapter is None:
            raise SourceUnavailableError(
                message=f"No source registered for container {container.id}",
            )
        timeout = call_timeout(adapter, self._source_timeout)
        try:
            return await with_timeout(adapter.expand(container), timeout)
        except asyncio.TimeoutError as exc:
            raise SourceUnavailableError(
                message=f"Tracklist timed out after {self._source_timeout}s",
                provider_name=adapter.get_provider_name(),
            ) from exc
