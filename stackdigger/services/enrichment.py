"""Canonical-identifier enrichment for collected tracks.

Looks every track up through the injected :class:`IEnricher`, concurrently
and with bounded parallelism.  A miss or a failed lookup leaves the track
as it was; there are no retries.  Output has the same length and order as
the input.
"""

from __future__ import annotations

import asyncio

import structlog

from stackdigger.interfaces.enricher import IEnricher
from stackdigger.models.content import EnrichmentMatch, Track
from stackdigger.utils.concurrency import throttled_gather
from stackdigger.utils.logging import get_logger


class EnrichmentPipeline:
    """Attaches ``canonical_id`` / ``playback_url`` where the enricher finds one."""

    def __init__(self, enricher: IEnricher, concurrency: int = 10) -> None:
        self._enricher = enricher
        self._concurrency = max(concurrency, 1)
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def enricher(self) -> IEnricher:
        return self._enricher

    async def enrich(self, tracks: list[Track]) -> list[Track]:
        if not tracks or not self._enricher.is_available():
            return list(tracks)

        pending = [i for i, t in enumerate(tracks) if not t.is_enriched]
        semaphore = asyncio.Semaphore(self._concurrency)
        results = await throttled_gather(
            [self._enricher.lookup(tracks[i].artist, tracks[i].title) for i in pending],
            semaphore=semaphore,
        )

        enriched = list(tracks)
        matched = failed = 0
        for index, result in zip(pending, results):
            if isinstance(result, BaseException):
                failed += 1
                self._logger.warning(
                    "enrichment_lookup_failed",
                    artist=tracks[index].artist,
                    title=tracks[index].title,
                    error=str(result) or type(result).__name__,
                )
                continue
            if result is None:
                continue
            matched += 1
            enriched[index] = apply_match(tracks[index], result)

        self._logger.info(
            "enrichment_complete",
            provider=self._enricher.get_provider_name(),
            tracks=len(tracks),
            looked_up=len(pending),
            matched=matched,
            failed=failed,
        )
        return enriched


def apply_match(track: Track, match: EnrichmentMatch) -> Track:
    return track.model_copy(
        update={"canonical_id": match.canonical_id, "playback_url": match.playback_url}
    )
