"""Text normalization utilities for artist names and track identities.

Two concerns live here:

1. **Track identity** -- the normalized ``artist|title`` pair used as the
   fallback TrackKey when no canonical identifier is known.  Two tracklists
   that spell "Bonobo - Kerala" and "bonobo  -  KERALA" must collapse to one
   key, so case and whitespace are folded.

2. **Fuzzy matching** -- rapidfuzz scoring used by the enricher to decide
   whether a catalog search result is a confident match for a scraped
   "Artist - Title" line, and DJ-slug generation for tracklist sites.
"""

import re

from rapidfuzz import fuzz

_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str) -> str:
    """Lowercase *value*, trim it, and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", value.strip()).lower()


def normalize_track_key(artist: str, title: str) -> str:
    """Return the case- and whitespace-insensitive identity of a track.

    Args:
        artist: Raw artist string as printed in a tracklist.
        title: Raw title string as printed in a tracklist.

    Returns:
        ``"<artist>|<title>"`` with both halves normalized.
    """
    return f"{normalize_text(artist)}|{normalize_text(title)}"


def normalize_artist_name(name: str) -> str:
    """Normalize an artist name for display-insensitive comparison.

    Strips a leading "DJ " prefix and collapses whitespace so that
    "DJ Koze", "dj  koze" and "Koze" compare equal.
    """
    normalized = re.sub(r"^[Dd][Jj]\s+", "", name.strip())
    return normalize_text(normalized)


def dj_slug(name: str) -> str:
    """Convert a DJ name into the slug used by 1001Tracklists DJ pages.

    "Nicolas Jaar" -> "nicolasjaar".
    """
    return _WHITESPACE.sub("", name.strip().lower())


def match_score(
    query_artist: str,
    query_title: str,
    candidate_artist: str,
    candidate_title: str,
) -> float:
    """Score how well a catalog candidate matches a scraped track (0.0--1.0).

    Titles are compared with ``token_set_ratio`` so remix/edit suffixes
    ("Kerala (Original Mix)") don't sink an otherwise exact match.  Artists
    use ``token_sort_ratio`` to tolerate "A & B" vs "B, A" ordering.  The
    title carries more weight because artist credits are the field
    tracklists most often abbreviate.
    """
    title_score = fuzz.token_set_ratio(normalize_text(query_title), normalize_text(candidate_title))
    if not query_artist.strip():
        return title_score / 100.0
    artist_score = fuzz.token_sort_ratio(
        normalize_artist_name(query_artist), normalize_artist_name(candidate_artist)
    )
    return (0.6 * title_score + 0.4 * artist_score) / 100.0
