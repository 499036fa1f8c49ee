"""1001Tracklists source adapter implementing ISourceAdapter.

Scrapes the public HTML pages (no API exists):

    DJ page    /dj/<slug>/index.html      -> list of sets (``.bItm .bTitle a``)
    set page   /tracklist/<id>/<name>.html -> tracks (``.tlpTog.tlpItem``)

Scraping is slow and the site bans aggressive clients, so requests are
spaced ``request_delay`` seconds apart, user agents rotate, and the adapter
advertises ``max_containers_per_seed = 1``: one DJ seed expands at most one
set per build.  Because calls queue behind that delay, the adapter sets
``paces_requests`` and callers leave the per-request limit to the HTTP
client's timeout.
"""

from __future__ import annotations

import asyncio
import random
import re
import time
from datetime import datetime, timezone
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from stackdigger.interfaces.cache_provider import ICacheProvider
from stackdigger.interfaces.source_adapter import ISourceAdapter
from stackdigger.models.content import Container, RawTrack, SourceKind
from stackdigger.models.seeds import GenreSeed, SeedKind, SetSeed, TrackSeed
from stackdigger.utils.errors import SourceUnavailableError
from stackdigger.utils.logging import get_logger
from stackdigger.utils.text_normalizer import dj_slug

_DEFAULT_BASE_URL = "https://www.1001tracklists.com"
_DEFAULT_DELAY = 3.0

_USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
# Unidentified tracks are listed as "ID - ID", "ID - Something", "Someone - ID".
_UNKNOWN_TRACK_RE = re.compile(r"^ID\s+-|-\s+ID$")


def parse_set_title(title: str) -> tuple[datetime | None, str | None]:
    """Extract (date, venue) from a set title like "DJ @ Venue, City 2024-06-28"."""
    published_at: datetime | None = None
    match = _DATE_RE.search(title)
    if match:
        try:
            published_at = datetime.strptime(match.group(1), "%Y-%m-%d").replace(
                tzinfo=timezone.utc  # noqa: UP017
            )
        except ValueError:
            published_at = None

    venue: str | None = None
    if " @ " in title:
        venue = _DATE_RE.sub("", title.split(" @ ", 1)[1]).strip(" ,") or None
    return published_at, venue


def parse_track_line(text: str) -> tuple[str, str] | None:
    """Split an "Artist - Title" line; ``None`` for unidentified or malformed lines."""
    text = " ".join(text.split())
    if text == "ID - ID" or _UNKNOWN_TRACK_RE.search(text):
        return None
    artist, sep, title = text.partition(" - ")
    artist, title = artist.strip(), title.strip()
    if not sep or not artist or not title:
        return None
    return artist, title


class TracklistsProvider(ISourceAdapter):
    """DJ-set source backed by scraped 1001Tracklists pages.

    Serves :class:`SetSeed` only.
    """

    max_containers_per_seed = 1
    paces_requests = True

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: ICacheProvider | None = None,
        base_url: str = _DEFAULT_BASE_URL,
        request_delay: float = _DEFAULT_DELAY,
        enabled: bool = True,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._request_delay = request_delay
        self._enabled = enabled
        self._last_request_time: float = 0.0
        self._throttle_lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @property
    def supported_kinds(self) -> frozenset[SeedKind]:
        return frozenset({SeedKind.SET})

    async def _throttle(self) -> None:
        async with self._throttle_lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if self._last_request_time > 0 and elapsed < self._request_delay:
                wait = self._request_delay - elapsed
                self._logger.debug("tracklists_throttled", wait_seconds=round(wait, 2))
                await asyncio.sleep(wait)
            self._last_request_time = time.monotonic()

    async def _fetch_page(self, url: str) -> BeautifulSoup:
        cache_key = f"1001tl:{url}"
        html: str | None = None
        if self._cache is not None:
            html = await self._cache.get(cache_key)

        if html is None:
            await self._throttle()
            headers = {"User-Agent": random.choice(_USER_AGENTS)}
            try:
                response = await self._http.get(url, headers=headers, follow_redirects=True)
            except httpx.HTTPError as exc:
                raise SourceUnavailableError(
                    message=f"1001Tracklists request failed: {exc}",
                    provider_name="1001tracklists",
                ) from exc
            if response.status_code != 200:
                raise SourceUnavailableError(
                    message=f"1001Tracklists returned {response.status_code} for {url}",
                    provider_name="1001tracklists",
                )
            html = response.text
            if self._cache is not None:
                await self._cache.set(cache_key, html)

        return BeautifulSoup(html, "html.parser")

    # -- ISourceAdapter implementation -----------------------------------------

    async def search(self, seed: TrackSeed | GenreSeed | SetSeed) -> list[Container]:
        if not isinstance(seed, SetSeed):
            raise SourceUnavailableError(
                message=f"1001Tracklists cannot search seed kind {seed.kind!r}",
                provider_name="1001tracklists",
            )

        url = f"{self._base_url}/dj/{dj_slug(seed.artist)}/index.html"
        soup = await self._fetch_page(url)

        containers: list[Container] = []
        seen_urls: set[str] = set()
        for link in soup.select(".bItm .bTitle a"):
            href = link.get("href")
            title = link.get_text(strip=True)
            if not href or not title:
                continue
            set_url = urljoin(f"{self._base_url}/", href)
            if set_url in seen_urls:
                continue
            seen_urls.add(set_url)
            published_at, venue = parse_set_title(title)
            containers.append(
                Container(
                    id=set_url,
                    title=title,
                    source=SourceKind.TRACKLISTS_1001,
                    source_seed=seed,
                    published_at=published_at,
                    venue=venue,
                    url=set_url,
                )
            )

        self._logger.info("tracklists_search_complete", artist=seed.artist, sets=len(containers))
        return containers

    async def expand(self, container: Container) -> list[RawTrack]:
        soup = await self._fetch_page(container.id)

        tracks: list[RawTrack] = []
        for item in soup.select(".tlpTog.tlpItem"):
            value = item.select_one(".bCont.tl .trackValue")
            if value is None:
                continue
            parsed = parse_track_line(value.get_text(" ", strip=True))
            if parsed is None:
                continue
            artist, title = parsed
            tracks.append(
                RawTrack(artist=artist, title=title, source_uid=item.get("data-trackid") or None)
            )

        self._logger.info("tracklists_set_fetched", url=container.id, tracks=len(tracks))
        return tracks

    def get_provider_name(self) -> str:
        return "1001tracklists"

    def is_available(self) -> bool:
        return self._enabled
