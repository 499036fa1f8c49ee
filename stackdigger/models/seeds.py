"""Seed models -- the user-supplied queries a stack is built from.

A seed is a tagged union discriminated by ``kind``:

    TrackSeed  -> radio episodes that played a given artist/title
    GenreSeed  -> radio episodes tagged with a genre
    SetSeed    -> DJ sets (tracklists) played by a given artist

Each kind is served by exactly one source adapter; the Aggregator looks the
adapter up by ``kind`` in a dispatch table rather than comparing strings.
All seeds are frozen (and therefore hashable) so they can be carried as
provenance on every container and track they produce.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class SeedKind(str, Enum):  # noqa: UP042
    """Discriminator values for :data:`Seed`."""

    TRACK = "track"
    GENRE = "genre"
    SET = "set"


class TrackSeed(BaseModel):
    """Search radio episodes for a track.  Either field may be blank.

    A seed with both fields blank still parses, so a request made only of
    blank seeds is reported as having no usable seeds rather than as a
    schema error.  The builder drops blank seeds before searching.

    An artist-only seed (``title=""``) finds every episode that played the
    artist, which is how "give me more Bonobo" is expressed.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["track"] = "track"
    artist: str = ""
    title: str = ""

    @property
    def is_blank(self) -> bool:
        """True when neither artist nor title carries any text."""
        return not self.artist.strip() and not self.title.strip()

    @property
    def query(self) -> str:
        """Search string in the order NTS ranks best: title first, then artist."""
        return " ".join(part.strip() for part in (self.title, self.artist) if part.strip())


class GenreSeed(BaseModel):
    """Search radio episodes by genre identifier (e.g. ``"electronica-downtempo"``)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["genre"] = "genre"
    genre_id: str = Field(min_length=1)
    name: str | None = None             # Display name used in stack naming

    @property
    def display_name(self) -> str:
        return self.name or self.genre_id


class SetSeed(BaseModel):
    """Search DJ-set tracklists played by *artist*."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["set"] = "set"
    artist: str = Field(min_length=1)


Seed = Annotated[Union[TrackSeed, GenreSeed, SetSeed], Field(discriminator="kind")]


def seed_artist(seed: TrackSeed | GenreSeed | SetSeed) -> str | None:
    """Return the artist-like name a seed contributes to naming, if any."""
    if isinstance(seed, (TrackSeed, SetSeed)):
        artist = seed.artist.strip()
        return artist or None
    return None


def seed_genre(seed: TrackSeed | GenreSeed | SetSeed) -> str | None:
    """Return the genre name a seed contributes to naming, if any."""
    if isinstance(seed, GenreSeed):
        return seed.display_name
    return None


def describe_seed(seed: TrackSeed | GenreSeed | SetSeed) -> str:
    """Short human-readable label used in log lines and CLI output."""
    if isinstance(seed, TrackSeed):
        return f"track:{seed.artist} - {seed.title}".rstrip(" -")
    if isinstance(seed, GenreSeed):
        return f"genre:{seed.genre_id}"
    return f"set:{seed.artist}"
