"""Seed-to-container resolution across all registered source adapters.

The Aggregator is the first fan-out stage of a stack build.  Every seed is
dispatched to the one adapter registered for its ``kind`` and searched
concurrently; each seed's result list is then ordered newest first, cut
down to unseen containers and truncated, and finally the per-seed lists are
merged in seed order with cross-seed duplicates removed.

A seed whose adapter fails, times out, or does not exist contributes zero
containers; the batch itself never fails.  An empty result is a normal
return value and is turned into ``NoNewContentError`` by the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

import structlog

from stackdigger.interfaces.source_adapter import ISourceAdapter
from stackdigger.models.content import Container
from stackdigger.models.seeds import GenreSeed, SeedKind, SetSeed, TrackSeed, describe_seed
from stackdigger.utils.concurrency import throttled_gather, with_timeout
from stackdigger.utils.errors import ConfigurationError, SourceUnavailableError
from stackdigger.utils.logging import get_logger

_DEFAULT_MAX_PER_SEED = 5


def build_dispatch_table(adapters: Iterable[ISourceAdapter]) -> dict[SeedKind, ISourceAdapter]:
    """Map every seed kind to the single available adapter serving it.

    Unavailable adapters are skipped.  Two available adapters claiming the
    same kind is a wiring mistake and raises :class:`ConfigurationError`.
    """
    table: dict[SeedKind, ISourceAdapter] = {}
    for adapter in adapters:
        if not adapter.is_available():
            continue
        for kind in adapter.supported_kinds:
            if kind in table:
                raise ConfigurationError(
                    message=(
                        f"Seed kind '{kind.value}' is served by both "
                        f"{table[kind].get_provider_name()} and {adapter.get_provider_name()}"
                    ),
                )
            table[kind] = adapter
    return table


def call_timeout(adapter: ISourceAdapter, source_timeout: float | None) -> float | None:
    """Per-call timeout for *adapter*; ``None`` for adapters that pace themselves."""
    return None if adapter.paces_requests else source_timeout


def newest_first(containers: list[Container]) -> list[Container]:
    """Sort by ``published_at`` descending; undated containers sort last.

    The sort is stable, so containers with equal dates keep the adapter's
    natural order.
    """
    return sorted(
        containers,
        key=lambda c: c.published_at.timestamp() if c.published_at else float("-inf"),
        reverse=True,
    )


class Aggregator:
    """Resolves seeds into a deduplicated, ordered list of unseen containers."""

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

    @property
    def dispatch_table(self) -> dict[SeedKind, ISourceAdapter]:
        return dict(self._dispatch)

    async def resolve(
        self,
        seeds: list[TrackSeed | GenreSeed | SetSeed],
        seen_containers: set[str] | frozenset[str],
        max_per_seed: int = _DEFAULT_MAX_PER_SEED,
    ) -> list[Container]:
        """Return unseen containers for *seeds*, in seed order.

        Parameters
        ----------
        seeds:
            Seeds in the order the user supplied them.
        seen_containers:
            Container ids already surfaced; these are never returned.
        max_per_seed:
            Upper bound on containers taken from each seed.  Adapters may
            impose a lower bound of their own.

        Returns
        -------
        list[Container]
            Possibly empty.  Duplicates across seeds are removed, keeping
            the first occurrence.
        """
        semaphore = asyncio.Semaphore(self._concurrency)
        results = await throttled_gather(
            [self._resolve_seed(seed, seen_containers, max_per_seed) for seed in seeds],
            semaphore=semaphore,
        )

        merged: list[Container] = []
        emitted: set[str] = set()
        for seed, result in zip(seeds, results):
            if isinstance(result, BaseException):
                self._logger.warning(
                    "aggregator_seed_failed",
                    seed=describe_seed(seed),
                    error=str(result) or type(result).__name__,
                )
                continue
            for container in result:
                if container.id in emitted:
                    continue
                emitted.add(container.id)
                merged.append(container)

        self._logger.info("aggregator_resolved", seeds=len(seeds), containers=len(merged))
        return merged

    async def _resolve_seed(
        self,
        seed: TrackSeed | GenreSeed | SetSeed,
        seen_containers: set[str] | frozenset[str],
        max_per_seed: int,
    ) -> list[Container]:
        adapter = self._dispatch.get(SeedKind(seed.kind))
        if adapter is None:
            raise SourceUnavailableError(
                message=f"No source registered for '{seed.kind}' seeds",
            )

        timeout = call_timeout(adapter, self._source_timeout)
        try:
            candidates = await with_timeout(adapter.search(seed), timeout)
        except asyncio.TimeoutError as exc:
            raise SourceUnavailableError(
                message=f"Search timed out after {self._source_timeout}s",
                provider_name=adapter.get_provider_name(),
            ) from exc

        limit = max_per_seed
        if adapter.max_containers_per_seed is not None:
            limit = min(limit, adapter.max_containers_per_seed)

        unseen = [c for c in newest_first(candidates) if c.id not in seen_containers]
        selected = unseen[: max(limit, 0)]
        self._logger.debug(
            "aggregator_seed_resolved",
            seed=describe_seed(seed),
            provider=adapter.get_provider_name(),
            candidates=len(candidates),
            unseen=len(unseen),
            selected=len(selected),
        )
        return selected
