"""Content models -- containers (episodes / DJ sets) and the tracks inside them.

Defines Pydantic v2 models for everything a source adapter returns and the
track records that flow through the build stages.  All models are frozen;
stages produce new instances via ``model_copy(update={...})``.

Key relationships:
    - A Container is produced by exactly one Seed (``source_seed``)
    - A Container expands into RawTrack records (adapter output)
    - The TrackCollector turns RawTracks into Tracks, stamping container
      identity and the seed's provenance
    - The EnrichmentPipeline fills ``canonical_id`` / ``playback_url``
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from stackdigger.models.seeds import Seed
from stackdigger.utils.text_normalizer import normalize_track_key


class SourceKind(str, Enum):  # noqa: UP042
    """Where a container came from.

    The value doubles as the display label in stack summaries; ``noun``
    is what one container of that source is called.
    """

    NTS = "NTS"
    TRACKLISTS_1001 = "1001Tracklists"

    @property
    def noun(self) -> str:
        return "episode" if self is SourceKind.NTS else "set"


class Container(BaseModel):
    """An NTS episode or a 1001Tracklists DJ set.

    Created per build and never persisted; only ``id`` is recorded in the
    exposure store's seen-set.
    """

    model_config = ConfigDict(frozen=True)

    id: str                                 # Episode path or tracklist URL
    title: str
    source: SourceKind
    source_seed: Seed
    published_at: datetime | None = None    # None sorts as oldest
    venue: str | None = None                # NTS location or set venue
    url: str | None = None                  # Public page for the container
    genres: list[str] = Field(default_factory=list)


class RawTrack(BaseModel):
    """One tracklist line as returned by ``ISourceAdapter.expand``."""

    model_config = ConfigDict(frozen=True)

    artist: str
    title: str
    source_uid: str | None = None       # NTS track uid / 1001TL data-trackid
    canonical_id: str | None = None     # Set only if the source already knows it


class EnrichmentMatch(BaseModel):
    """A confident catalog match for one track."""

    model_config = ConfigDict(frozen=True)

    canonical_id: str
    playback_url: str
    uri: str | None = None
    matched_artist: str | None = None
    matched_title: str | None = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class Track(BaseModel):
    """A track surfaced in a stack.

    Identity within a build is :attr:`track_key`: the canonical id when one
    is known, else the normalized artist/title pair.
    """

    model_config = ConfigDict(frozen=True)

    container_id: str
    container_title: str = ""
    artist: str
    title: str
    local_uid: str                      # f"{container_id}-{index}"
    provenance: Seed
    published_at: datetime | None = None
    source_uid: str | None = None
    canonical_id: str | None = None
    playback_url: str | None = None

    @property
    def normalized_key(self) -> str:
        return normalize_track_key(self.artist, self.title)

    @property
    def track_key(self) -> str:
        return self.canonical_id or self.normalized_key

    @property
    def exposure_keys(self) -> tuple[str, ...]:
        """Every key this track is recognised by in the exposure store.

        The normalized pair is always included so a track committed with a
        canonical id is still filtered in a later build, before that build
        has enriched it.
        """
        if self.canonical_id:
            return (self.canonical_id, self.normalized_key)
        return (self.normalized_key,)

    @property
    def is_enriched(self) -> bool:
        return self.canonical_id is not None
