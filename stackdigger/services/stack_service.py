"""Store-backed stack operations used by the API and the CLI.

Wraps :class:`StackBuilder` with the exposure store: take a snapshot, build,
commit the mutation in one write.  Also fronts deletion (through the
ReclaimEngine), history queries and the exposure maintenance operations.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from stackdigger.interfaces.exposure_store import IExposureStore
from stackdigger.models.seeds import GenreSeed, SetSeed, TrackSeed
from stackdigger.models.stack import ExposureStats, Stack, StackBuildResult
from stackdigger.pipeline.stack_builder import StackBuilder
from stackdigger.services.reclaim import ReclaimEngine
from stackdigger.utils.logging import get_logger


class StackService:
    """Builds, commits, lists and deletes stacks against one exposure store."""

    def __init__(
        self,
        builder: StackBuilder,
        store: IExposureStore,
        reclaim: ReclaimEngine | None = None,
    ) -> None:
        self._builder = builder
        self._store = store
        self._reclaim = reclaim or ReclaimEngine()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def store(self) -> IExposureStore:
        return self._store

    async def create_stack(
        self,
        seeds: list[TrackSeed | GenreSeed | SetSeed],
        max_per_seed: int | None = None,
    ) -> StackBuildResult:
        """Build a stack from the store's current exposure state and commit it.

        Seeds are validated before the store is read, so a request with no usable
        seed never touches it.  Nothing is written unless the build succeeds.
        """
        seeds = StackBuilder.validate_seeds(seeds)

        seen = await self._store.get_seen_containers()
        referenced = await self._store.get_referenced_tracks()
        result = await self._builder.build(seeds, seen, referenced, max_per_seed)

        await self._store.commit_stack(
            result.stack,
            result.mutation.newly_seen_containers,
            result.mutation.newly_referenced_tracks,
        )
        return result

    async def build_stateless(
        self,
        seeds: list[TrackSeed | GenreSeed | SetSeed],
        seen_containers: Iterable[str] = (),
        referenced_tracks: Iterable[str] = (),
        max_per_seed: int | None = None,
    ) -> StackBuildResult:
        """Build against caller-supplied exposure sets; the store is not used."""
        return await self._builder.build(
            seeds, frozenset(seen_containers), frozenset(referenced_tracks), max_per_seed
        )

    async def delete_stack(self, stack_id: str) -> bool:
        return await self._reclaim.delete(stack_id, self._store)

    async def list_stacks(self) -> list[Stack]:
        return await self._store.get_stack_history()

    async def get_stack(self, stack_id: str) -> Stack | None:
        return await self._store.get_stack(stack_id)

    async def get_stats(self) -> ExposureStats:
        return await self._store.get_stats()

    async def mark_seen(self, container_ids: Iterable[str]) -> int:
        ids = [cid for cid in dict.fromkeys(container_ids) if cid]
        if ids:
            await self._store.mark_containers_seen(ids)
        return len(ids)

    async def clear(self) -> None:
        await self._store.clear_all()
        self._logger.warning("exposure_reset")
