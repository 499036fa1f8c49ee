"""Stack models -- the persisted result of a build and the exposure mutations.

A :class:`Stack` is created once per successful build, is immutable
thereafter, and is destroyed only by explicit deletion (or by falling off
the end of the bounded history).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from stackdigger.models.content import Container, Track
from stackdigger.models.seeds import Seed


class StackStats(BaseModel):
    """Derived counts shown next to a stack."""

    model_config = ConfigDict(frozen=True)

    total_tracks: int
    containers_used: int
    canonical_matched: int


class Stack(BaseModel):
    """An ordered, deduplicated set of enriched tracks built from seeds."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    name: str
    summary: str
    sources: list[Seed] = Field(default_factory=list)
    tracks: list[Track] = Field(default_factory=list)
    containers_used: list[Container] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def stats(self) -> StackStats:
        return StackStats(
            total_tracks=len(self.tracks),
            containers_used=len(self.containers_used),
            canonical_matched=sum(1 for t in self.tracks if t.canonical_id),
        )

    def exposure_keys(self) -> set[str]:
        """Union of every track's exposure keys."""
        keys: set[str] = set()
        for track in self.tracks:
            keys.update(track.exposure_keys)
        return keys


class ExposureMutation(BaseModel):
    """What committing a stack adds to the exposure store."""

    model_config = ConfigDict(frozen=True)

    newly_seen_containers: list[str] = Field(default_factory=list)
    newly_referenced_tracks: list[str] = Field(default_factory=list)


class ExposureStats(BaseModel):
    """Size of each part of the exposure state."""

    seen_containers: int = 0
    referenced_tracks: int = 0
    stacks_created: int = 0


class StackBuildResult(BaseModel):
    """A built stack together with the exposure mutation it implies."""

    model_config = ConfigDict(frozen=True)

    stack: Stack
    mutation: ExposureMutation
