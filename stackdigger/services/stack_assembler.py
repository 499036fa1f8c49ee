"""Stack assembly: naming, summary text, final ordering and the exposure mutation.

The assembler is the last, purely synchronous step of a build.  It takes the
enriched tracks and the containers they came from, collapses any tracks that
became duplicates once canonical ids were attached, and derives the stack's
display name and summary from the seeds.

Naming follows a fixed heuristic over the seed set.  Artist-like names come
from track seeds and set seeds with a non-empty artist; genre names come
from genre seeds.

    artists + genres   "Bonobo + House", "Bonobo & More + House",
                       "Bonobo + House Mix", "Bonobo + House & More"
    artists only       "Bonobo Mix", "Bonobo + Floating Points",
                       "Bonobo & 2 More"
    genres only        "House Stack", "House + Techno", "House Mix"
    neither            "Music Stack"
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone

import structlog

from stackdigger.models.content import Container, SourceKind, Track
from stackdigger.models.seeds import GenreSeed, SetSeed, TrackSeed, seed_artist, seed_genre
from stackdigger.models.stack import ExposureMutation, Stack
from stackdigger.utils.logging import get_logger

_FEATURED_NAMES = 2


def generate_stack_id() -> str:
    """Millisecond timestamp plus a random suffix; unique under rapid calls."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def _split_names(seeds: list[TrackSeed | GenreSeed | SetSeed]) -> tuple[list[str], list[str]]:
    artists = [name for name in (seed_artist(s) for s in seeds) if name]
    genres = [name for name in (seed_genre(s) for s in seeds) if name]
    return artists, genres


def generate_stack_name(seeds: list[TrackSeed | GenreSeed | SetSeed]) -> str:
    artists, genres = _split_names(seeds)

    if artists and genres:
        artist, genre = artists[0], genres[0]
        if len(artists) == 1 and len(genres) == 1:
            return f"{artist} + {genre}"
        if len(genres) == 1:
            return f"{artist} & More + {genre}"
        if len(artists) == 1:
            return f"{artist} + {genre} Mix"
        return f"{artist} + {genre} & More"

    if artists:
        if len(artists) == 1:
            return f"{artists[0]} Mix"
        if len(artists) == 2:
            return f"{artists[0]} + {artists[1]}"
        return f"{artists[0]} & {len(artists) - 1} More"

    if genres:
        if len(genres) == 1:
            return f"{genres[0]} Stack"
        if len(genres) == 2:
            return f"{genres[0]} + {genres[1]}"
        return f"{genres[0]} Mix"

    return "Music Stack"


def _featured(names: list[str]) -> str:
    text = ", ".join(names[:_FEATURED_NAMES])
    if len(names) > _FEATURED_NAMES:
        text += f" +{len(names) - _FEATURED_NAMES} more"
    return text


def _container_counts(containers: list[Container]) -> str:
    counts: dict[SourceKind, int] = {}
    for container in containers:
        counts[container.source] = counts.get(container.source, 0) + 1
    if not counts:
        counts[SourceKind.NTS] = 0

    parts = []
    for source, count in counts.items():
        noun = source.noun if count == 1 else f"{source.noun}s"
        parts.append(f"{count} {source.value} {noun}")
    return " and ".join(parts)


def build_summary(
    seeds: list[TrackSeed | GenreSeed | SetSeed],
    track_count: int,
    containers: list[Container],
) -> str:
    """E.g. ``"15 curated tracks from 3 NTS episodes featuring Bonobo"``."""
    artists, genres = _split_names(seeds)
    groups = [_featured(names) for names in (artists, genres) if names]

    summary = f"{track_count} curated tracks from {_container_counts(containers)}"
    if groups:
        summary += f" featuring {' and '.join(groups)}"
    return summary


class StackAssembler:
    """Builds immutable :class:`Stack` objects and their exposure mutations."""

    def __init__(self) -> None:
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def assemble(
        self,
        seeds: list[TrackSeed | GenreSeed | SetSeed],
        enriched_tracks: list[Track],
        containers_used: list[Container],
    ) -> Stack:
        # Enrichment can give two different artist/title spellings the same
        # canonical id; the first one in build order is kept.
        tracks: list[Track] = []
        keys: set[str] = set()
        for track in enriched_tracks:
            if track.track_key in keys:
                continue
            keys.add(track.track_key)
            tracks.append(track)

        stack = Stack(
            id=generate_stack_id(),
            created_at=datetime.now(tz=timezone.utc),  # noqa: UP017
            name=generate_stack_name(seeds),
            summary=build_summary(seeds, len(tracks), containers_used),
            sources=list(seeds),
            tracks=tracks,
            containers_used=list(containers_used),
        )
        self._logger.info(
            "stack_assembled",
            stack_id=stack.id,
            name=stack.name,
            tracks=len(tracks),
            collapsed=len(enriched_tracks) - len(tracks),
        )
        return stack

    @staticmethod
    def mutation_for(stack: Stack) -> ExposureMutation:
        """The exposure-store additions that committing *stack* implies."""
        return ExposureMutation(
            newly_seen_containers=list(dict.fromkeys(c.id for c in stack.containers_used)),
            newly_referenced_tracks=sorted(stack.exposure_keys()),
        )
