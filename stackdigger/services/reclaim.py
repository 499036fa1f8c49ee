"""Mark-and-sweep reclaim of referenced track keys.

When a stack leaves history (explicit deletion, or eviction once history is
full) its tracks may become "free" again.  Instead of keeping per-key
reference counts, the referenced set is recomputed against what the
remaining history actually contains:

    deleted_keys   = exposure keys of the stacks being removed
    remaining_keys = exposure keys of every other stack in history
    referenced'    = { k in referenced : k not in deleted_keys or k in remaining_keys }

Counts can drift after a crash or a hand-edited database; a sweep cannot,
so after every reclaim a key is referenced iff some remaining stack holds it
(keys never associated with any stack are left alone).

Planning is pure.  Stores call :meth:`ReclaimEngine.plan` inside their own
write transaction/lock and persist the resulting history and referenced set
together.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from stackdigger.interfaces.exposure_store import IExposureStore
from stackdigger.models.stack import Stack
from stackdigger.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class ReclaimPlan:
    """The state a store must persist after removing stacks.

    Attributes
    ----------
    history:
        Remaining stacks, newest first.
    referenced_tracks:
        The recomputed referenced-key set.
    removed_stack_ids:
        Ids actually removed (targets not found in history are skipped).
    released_keys:
        Keys dropped from the referenced set.
    """

    history: list[Stack]
    referenced_tracks: set[str]
    removed_stack_ids: list[str] = field(default_factory=list)
    released_keys: set[str] = field(default_factory=set)


class ReclaimEngine:
    """Computes and applies stack deletion with mark-and-sweep semantics."""

    @staticmethod
    def plan(
        history: list[Stack],
        referenced_tracks: set[str],
        stack_ids: Iterable[str],
    ) -> ReclaimPlan | None:
        """Plan the removal of *stack_ids* from *history*.

        Returns ``None`` when none of the ids is in history (no-op).
        """
        targets = set(stack_ids)
        removed = [s for s in history if s.id in targets]
        if not removed:
            return None
        remaining = [s for s in history if s.id not in targets]

        deleted_keys: set[str] = set()
        for stack in removed:
            deleted_keys |= stack.exposure_keys()

        remaining_keys: set[str] = set()
        for stack in remaining:
            remaining_keys |= stack.exposure_keys()

        new_referenced = {
            key for key in referenced_tracks
            if key not in deleted_keys or key in remaining_keys
        }
        released = referenced_tracks - new_referenced

        return ReclaimPlan(
            history=remaining,
            referenced_tracks=new_referenced,
            removed_stack_ids=[s.id for s in removed],
            released_keys=released,
        )

    @classmethod
    def plan_eviction(
        cls,
        history: list[Stack],
        referenced_tracks: set[str],
        limit: int,
    ) -> ReclaimPlan | None:
        """Plan eviction of the oldest stacks beyond *limit* (history is newest first)."""
        if limit <= 0 or len(history) <= limit:
            return None
        return cls.plan(history, referenced_tracks, [s.id for s in history[limit:]])

    async def delete(self, stack_id: str, store: IExposureStore) -> bool:
        """Delete *stack_id* through *store*.

        The store runs :meth:`plan` under its write lock so the history and
        referenced-set changes land together.
        """
        deleted = await store.delete_stack(stack_id)
        _logger.info("stack_reclaim", stack_id=stack_id, deleted=deleted)
        return deleted
