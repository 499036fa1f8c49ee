"""Abstract base class for exposure-state stores.

The exposure store is the only shared mutable resource in stackdigger.  It
remembers three things:

    seen_containers    -- episode/set ids already surfaced (never re-surfaced)
    referenced_tracks  -- track keys appearing in some stack in history
    stack_history      -- committed stacks, newest first, bounded

Builds read a snapshot at the start and write once at the end via
:meth:`commit_stack`.  Deletion goes through :meth:`delete_stack`, which
applies the mark-and-sweep reclaim of
:class:`stackdigger.services.reclaim.ReclaimEngine`.  Implementations must
serialize writes and make each write atomic: no reader may observe history
updated without the matching referenced-set update, or vice versa.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from stackdigger.models.stack import ExposureStats, Stack


class IExposureStore(ABC):
    """Contract for durable (or in-memory) exposure state."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backing storage (create tables, directories)."""

    @abstractmethod
    async def get_seen_containers(self) -> set[str]:
        """Return every container id marked seen."""

    @abstractmethod
    async def get_referenced_tracks(self) -> set[str]:
        """Return every referenced track key."""

    @abstractmethod
    async def get_stack_history(self) -> list[Stack]:
        """Return committed stacks, newest first."""

    @abstractmethod
    async def get_stack(self, stack_id: str) -> Stack | None:
        """Return one stack from history, or ``None``."""

    @abstractmethod
    async def commit_stack(
        self,
        stack: Stack,
        newly_seen_containers: Iterable[str],
        newly_referenced_tracks: Iterable[str],
    ) -> None:
        """Atomically prepend *stack* to history and union the two sets.

        When history grows beyond its limit, the oldest stacks are evicted
        and their track keys reclaimed by the same mark-and-sweep used for
        deletion.
        """

    @abstractmethod
    async def delete_stack(self, stack_id: str) -> bool:
        """Delete a stack and reclaim its track keys.

        Returns ``False`` (and changes nothing) if the stack is not in history.
        """

    @abstractmethod
    async def mark_containers_seen(self, container_ids: Iterable[str]) -> None:
        """Mark containers seen outside a build (e.g. the user opened one)."""

    @abstractmethod
    async def get_stats(self) -> ExposureStats:
        """Return the size of each part of the state."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Reset all three parts of the state."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"sqlite_exposure"``."""
