"""Request-scoped orchestration of one stack build.

Runs the four build stages in a fixed sequence against an exposure
*snapshot* supplied by the caller:

    1. Aggregator         seeds      -> unseen containers
    2. TrackCollector     containers -> deduplicated, unreferenced tracks
    3. EnrichmentPipeline tracks     -> tracks with canonical ids
    4. StackAssembler     tracks     -> Stack + ExposureMutation

ARCHITECTURE NOTE:
    The builder never touches the exposure store.  It reads nothing but the
    two sets it is handed and returns the stack together with the mutation
    that committing it implies.  Persisting that mutation is the caller's
    job (see :class:`stackdigger.services.stack_service.StackService`), which
    is what makes the stateless ``POST /stacks/build`` surface possible and
    what guarantees that a failed or timed-out build writes nothing.

    Per-item failures (one seed, one container, one track) are absorbed
    inside the stages.  Only three conditions leave this module:
    ``InvalidSeedsError``, ``NoNewContentError`` and
    ``StackBuildTimeoutError``.
"""

from __future__ import annotations

import asyncio

import structlog

from stackdigger.models.seeds import GenreSeed, SetSeed, TrackSeed, describe_seed
from stackdigger.models.stack import StackBuildResult
from stackdigger.services.aggregator import Aggregator
from stackdigger.services.enrichment import EnrichmentPipeline
from stackdigger.services.stack_assembler import StackAssembler
from stackdigger.services.track_collector import TrackCollector, dedupe_tracks
from stackdigger.utils.concurrency import with_timeout
from stackdigger.utils.errors import (
    InvalidSeedsError,
    NoNewContentError,
    StackBuildTimeoutError,
)
from stackdigger.utils.logging import get_logger


class StackBuilder:
    """Turns seeds plus an exposure snapshot into a stack and its mutation.

    All stage services are injected at construction time so tests can swap
    in fakes for any of them.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        track_collector: TrackCollector,
        enrichment: EnrichmentPipeline,
        assembler: StackAssembler,
        build_timeout: float | None = 120.0,
        default_max_per_seed: int = 5,
    ) -> None:
        self._aggregator = aggregator
        self._track_collector = track_collector
        self._enrichment = enrichment
        self._assembler = assembler
        self._build_timeout = build_timeout
        self._default_max_per_seed = default_max_per_seed
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @staticmethod
    def validate_seeds(
        seeds: list[TrackSeed | GenreSeed | SetSeed] | None,
    ) -> list[TrackSeed | GenreSeed | SetSeed]:
        """Return the usable seeds, dropping TrackSeeds with no artist and no title.

        Raises :class:`InvalidSeedsError` when nothing usable is left.
        """
        usable = [s for s in seeds or [] if not (isinstance(s, TrackSeed) and s.is_blank)]
        if not usable:
            raise InvalidSeedsError()
        return usable

    async def build(
        self,
        seeds: list[TrackSeed | GenreSeed | SetSeed],
        seen_containers: set[str] | frozenset[str] = frozenset(),
        referenced_tracks: set[str] | frozenset[str] = frozenset(),
        max_per_seed: int | None = None,
    ) -> StackBuildResult:
        """Build a stack from *seeds* without persisting anything.

        Parameters
        ----------
        seeds:
            User-supplied seeds, in priority order.
        seen_containers:
            Container ids already surfaced.
        referenced_tracks:
            Track keys held by stacks currently in history.
        max_per_seed:
            Containers taken per seed; defaults to the configured value.

        Returns
        -------
        StackBuildResult
            The new stack and the exposure mutation to commit with it.

        Raises
        ------
        InvalidSeedsError
            If *seeds* is empty or holds only blank TrackSeeds.  Raised
            before any upstream call.
        NoNewContentError
            If no unseen container or no unreferenced track was found.
        StackBuildTimeoutError
            If the whole build exceeds its time budget.
        """
        seeds = self.validate_seeds(seeds)
        limit = self._default_max_per_seed if max_per_seed is None else max_per_seed

        self._logger.info(
            "stack_build_started",
            seeds=[describe_seed(s) for s in seeds],
            seen_containers=len(seen_containers),
            referenced_tracks=len(referenced_tracks),
        )
        try:
            result = await with_timeout(
                self._run(seeds, frozenset(seen_containers), frozenset(referenced_tracks), limit),
                self._build_timeout,
            )
        except asyncio.TimeoutError as exc:
            self._logger.error("stack_build_timeout", timeout=self._build_timeout)
            raise StackBuildTimeoutError(
                message=f"Stack build did not finish within {self._build_timeout}s"
            ) from exc

        self._logger.info(
            "stack_build_complete",
            stack_id=result.stack.id,
            tracks=len(result.stack.tracks),
            containers=len(result.stack.containers_used),
        )
        return result

    async def _run(
        self,
        seeds: list[TrackSeed | GenreSeed | SetSeed],
        seen_containers: frozenset[str],
        referenced_tracks: frozenset[str],
        max_per_seed: int,
    ) -> StackBuildResult:
        containers = await self._aggregator.resolve(seeds, seen_containers, max_per_seed)
        if not containers:
            raise NoNewContentError(
                message="Every episode or set for these seeds has already been shown",
                reason=NoNewContentError.NO_NEW_CONTAINERS,
            )

        tracks = await self._track_collector.collect(containers, referenced_tracks)
        if tracks:
            tracks = await self._enrichment.enrich(tracks)
            # A canonical id found just now can match a key committed by an
            # earlier stack.
            tracks = dedupe_tracks(tracks, referenced_tracks)
        if not tracks:
            raise NoNewContentError(
                message="Every track from the new episodes or sets has already been shown",
                reason=NoNewContentError.NO_NEW_TRACKS,
            )

        stack = self._assembler.assemble(seeds, tracks, containers)
        return StackBuildResult(stack=stack, mutation=self._assembler.mutation_for(stack))
