"""NTS Radio source adapter implementing ISourceAdapter.

Uses the public JSON API behind nts.live (no key required):

    track search   GET /search?q=...&version=2&offset=N&limit=60&types[]=track
    genre search   GET /search/episodes?offset=0&limit=60&genres[]=<id>
    tracklist      GET <episode_path>/tracklist

The track search is capped at 60 results per request, so it is paginated up
to ``_MAX_TRACK_RESULTS`` results.  Every result of a track search is one
*play* of the track, so the same episode can appear several times; results
are collapsed to one container per episode path here.
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime, timezone
from typing import Any

import httpx

from stackdigger.interfaces.cache_provider import ICacheProvider
from stackdigger.interfaces.source_adapter import ISourceAdapter
from stackdigger.models.content import Container, RawTrack, SourceKind
from stackdigger.models.seeds import GenreSeed, SeedKind, SetSeed, TrackSeed
from stackdigger.utils.errors import SourceUnavailableError
from stackdigger.utils.logging import get_logger

_DEFAULT_BASE_URL = "https://www.nts.live/api/v2"
_PUBLIC_BASE = "https://www.nts.live"
_PAGE_SIZE = 60
_MAX_TRACK_RESULTS = 100
_USER_AGENT = "stackdigger/0.1.0"


def parse_nts_date(value: Any) -> datetime | None:
    """Parse an NTS ``local_date`` ("2024-03-01" or ISO-8601) into an aware datetime."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)  # noqa: UP017
    return parsed


def _genre_names(raw: Any) -> list[str]:
    names: list[str] = []
    for genre in raw or []:
        if isinstance(genre, dict):
            name = genre.get("value") or genre.get("name") or genre.get("id")
            if name:
                names.append(str(name))
        elif genre:
            names.append(str(genre))
    return names


class NTSProvider(ISourceAdapter):
    """Radio-episode source backed by the NTS JSON API.

    Serves :class:`TrackSeed` (episodes that played a track) and
    :class:`GenreSeed` (episodes tagged with a genre).
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: ICacheProvider | None = None,
        base_url: str = _DEFAULT_BASE_URL,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._logger = get_logger(__name__)

    @property
    def supported_kinds(self) -> frozenset[SeedKind]:
        return frozenset({SeedKind.TRACK, SeedKind.GENRE})

    async def _fetch_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        cache_key = f"nts:{path}:{sorted((params or {}).items())}"
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            response = await self._http.get(
                url,
                params=params,
                headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(
                message=f"NTS request failed: {exc}", provider_name="nts"
            ) from exc

        if response.status_code != 200:
            raise SourceUnavailableError(
                message=f"NTS API returned {response.status_code} for {path}",
                provider_name="nts",
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise SourceUnavailableError(
                message=f"NTS returned invalid JSON for {path}", provider_name="nts"
            ) from exc
        if not isinstance(data, dict):
            raise SourceUnavailableError(
                message=f"Unexpected NTS payload for {path}", provider_name="nts"
            )

        if self._cache is not None:
            await self._cache.set(cache_key, data)
        return data

    # -- ISourceAdapter implementation -----------------------------------------

    async def search(self, seed: TrackSeed | GenreSeed | SetSeed) -> list[Container]:
        if isinstance(seed, TrackSeed):
            return await self._search_track(seed)
        if isinstance(seed, GenreSeed):
            return await self._search_genre(seed)
        raise SourceUnavailableError(
            message=f"NTS cannot search seed kind {seed.kind!r}", provider_name="nts"
        )

    async def _search_track(self, seed: TrackSeed) -> list[Container]:
        query = seed.query

        def _params(offset: int) -> dict[str, Any]:
            return {
                "q": query,
                "version": 2,
                "offset": offset,
                "limit": _PAGE_SIZE,
                "types[]": "track",
            }

        first = await self._fetch_json("/search", _params(0))
        results: list[dict[str, Any]] = list(first.get("results") or [])

        total = (
            first.get("metadata", {}).get("resultset", {}).get("count", len(results))
        )
        total_pages = math.ceil(total / _PAGE_SIZE) if total else 0
        pages_to_fetch = min(total_pages, math.ceil(_MAX_TRACK_RESULTS / _PAGE_SIZE))
        if total_pages > pages_to_fetch:
            self._logger.info("nts_search_truncated", query=query, total=total)

        extra_pages = await asyncio.gather(
            *(self._fetch_json("/search", _params(page * _PAGE_SIZE)) for page in range(1, pages_to_fetch)),
            return_exceptions=True,
        )
        for page in extra_pages:
            if isinstance(page, BaseException):
                # The first page already gives usable results; a missing
                # later page only narrows the candidate pool.
                self._logger.warning("nts_search_page_failed", query=query, error=str(page))
                continue
            results.extend(page.get("results") or [])

        containers: list[Container] = []
        seen_paths: set[str] = set()
        for item in results[:_MAX_TRACK_RESULTS]:
            article = item.get("article") or {}
            path = article.get("path")
            if not path or path in seen_paths:
                continue
            seen_paths.add(path)
            containers.append(
                Container(
                    id=path,
                    title=article.get("title") or path,
                    source=SourceKind.NTS,
                    source_seed=seed,
                    published_at=parse_nts_date(item.get("local_date")),
                    venue=item.get("location") or None,
                    url=f"{_PUBLIC_BASE}{path}",
                    genres=_genre_names(item.get("genres")),
                )
            )

        self._logger.info("nts_track_search_complete", query=query, episodes=len(containers))
        return containers

    async def _search_genre(self, seed: GenreSeed) -> list[Container]:
        data = await self._fetch_json(
            "/search/episodes",
            {"offset": 0, "limit": _PAGE_SIZE, "genres[]": seed.genre_id},
        )

        containers: list[Container] = []
        seen_paths: set[str] = set()
        for episode in data.get("results") or []:
            path = (episode.get("article") or {}).get("path")
            if not path or path in seen_paths:
                continue
            seen_paths.add(path)
            containers.append(
                Container(
                    id=path,
                    title=episode.get("title") or path,
                    source=SourceKind.NTS,
                    source_seed=seed,
                    published_at=parse_nts_date(episode.get("local_date")),
                    venue=episode.get("location") or None,
                    url=f"{_PUBLIC_BASE}{path}",
                    genres=_genre_names(episode.get("genres")),
                )
            )

        self._logger.info("nts_genre_search_complete", genre=seed.genre_id, episodes=len(containers))
        return containers

    async def expand(self, container: Container) -> list[RawTrack]:
        data = await self._fetch_json(f"{container.id}/tracklist")
        tracks: list[RawTrack] = []
        for item in data.get("results") or []:
            artist = (item.get("artist") or "").strip()
            title = (item.get("title") or "").strip()
            if not artist and not title:
                continue
            tracks.append(
                RawTrack(artist=artist, title=title, source_uid=item.get("uid") or None)
            )
        self._logger.debug("nts_tracklist_fetched", episode=container.id, tracks=len(tracks))
        return tracks

    def get_provider_name(self) -> str:
        return "nts"

    def is_available(self) -> bool:
        return True
