"""In-memory exposure store.

Holds the three exposure sets in process memory.  Used by tests, by the
stateless ``/stacks/build`` surface, and for throwaway sessions.  Writes are
serialized by an ``asyncio.Lock`` and applied by swapping in fully computed
new state, so readers see either the old or the new state, never a mix.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog

from stackdigger.interfaces.exposure_store import IExposureStore
from stackdigger.models.stack import ExposureStats, Stack
from stackdigger.services.reclaim import ReclaimEngine
from stackdigger.utils.errors import ExposureStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_HISTORY_LIMIT = 50


class MemoryExposureStore(IExposureStore):
    """Exposure state kept in plain Python sets and a list."""

    def __init__(
        self,
        history_limit: int = _DEFAULT_HISTORY_LIMIT,
        seen_containers: Iterable[str] = (),
        referenced_tracks: Iterable[str] = (),
    ) -> None:
        self._history_limit = history_limit
        self._seen: frozenset[str] = frozenset(seen_containers)
        self._referenced: frozenset[str] = frozenset(referenced_tracks)
        self._history: tuple[Stack, ...] = ()
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        return None

    async def get_seen_containers(self) -> set[str]:
        return set(self._seen)

    async def get_referenced_tracks(self) -> set[str]:
        return set(self._referenced)

    async def get_stack_history(self) -> list[Stack]:
        return list(self._history)

    async def get_stack(self, stack_id: str) -> Stack | None:
        return next((s for s in self._history if s.id == stack_id), None)

    async def commit_stack(
        self,
        stack: Stack,
        newly_seen_containers: Iterable[str],
        newly_referenced_tracks: Iterable[str],
    ) -> None:
        async with self._write_lock:
            if any(s.id == stack.id for s in self._history):
                raise ExposureStoreError(
                    message=f"Stack {stack.id} already exists",
                    provider_name=self.get_provider_name(),
                )
            history = [stack, *self._history]
            seen = self._seen | set(newly_seen_containers)
            referenced = set(self._referenced) | set(newly_referenced_tracks)

            eviction = ReclaimEngine.plan_eviction(history, referenced, self._history_limit)
            if eviction is not None:
                history = eviction.history
                referenced = eviction.referenced_tracks
                logger.info("stack_history_evicted", stack_ids=eviction.removed_stack_ids)

            self._history, self._seen, self._referenced = (
                tuple(history), frozenset(seen), frozenset(referenced)
            )
        logger.info("stack_committed", stack_id=stack.id, tracks=len(stack.tracks))

    async def delete_stack(self, stack_id: str) -> bool:
        async with self._write_lock:
            plan = ReclaimEngine.plan(list(self._history), set(self._referenced), [stack_id])
            if plan is None:
                return False
            self._history, self._referenced = tuple(plan.history), frozenset(plan.referenced_tracks)
        logger.info("stack_deleted", stack_id=stack_id, released=len(plan.released_keys))
        return True

    async def mark_containers_seen(self, container_ids: Iterable[str]) -> None:
        async with self._write_lock:
            self._seen = self._seen | set(container_ids)

    async def get_stats(self) -> ExposureStats:
        return ExposureStats(
            seen_containers=len(self._seen),
            referenced_tracks=len(self._referenced),
            stacks_created=len(self._history),
        )

    async def clear_all(self) -> None:
        async with self._write_lock:
            self._seen, self._referenced, self._history = frozenset(), frozenset(), ()
        logger.info("exposure_cleared", store=self.get_provider_name())

    def get_provider_name(self) -> str:
        return "memory_exposure"
