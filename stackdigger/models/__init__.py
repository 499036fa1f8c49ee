"""Pydantic v2 domain models for stackdigger.

- **seeds** -- TrackSeed / GenreSeed / SetSeed and the ``Seed`` tagged union.
- **content** -- Container, RawTrack, Track, EnrichmentMatch, SourceKind.
- **stack** -- Stack, StackStats, ExposureMutation, ExposureStats.
"""

from stackdigger.models.content import (
    Container,
    EnrichmentMatch,
    RawTrack,
    SourceKind,
    Track,
)
from stackdigger.models.seeds import GenreSeed, Seed, SeedKind, SetSeed, TrackSeed
from stackdigger.models.stack import (
    ExposureMutation,
    ExposureStats,
    Stack,
    StackBuildResult,
    StackStats,
)

__all__ = [
    "Container",
    "EnrichmentMatch",
    "ExposureMutation",
    "ExposureStats",
    "GenreSeed",
    "RawTrack",
    "Seed",
    "SeedKind",
    "SetSeed",
    "SourceKind",
    "Stack",
    "StackBuildResult",
    "StackStats",
    "Track",
    "TrackSeed",
]
