"""Spotify enricher implementing IEnricher.

Authenticates with the client-credentials flow (token cached until shortly
before expiry) and searches ``/v1/search?type=track``.  Scraped tracklist
lines are noisy ("Kerala (Original Mix)", "Bonobo & Jacob Lusk"), so the top
few candidates are scored with rapidfuzz and the best one is accepted only if
it clears ``min_confidence``; otherwise the lookup is a miss.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from stackdigger.interfaces.enricher import IEnricher
from stackdigger.models.content import EnrichmentMatch
from stackdigger.utils.errors import EnrichmentError
from stackdigger.utils.logging import get_logger
from stackdigger.utils.text_normalizer import match_score

_DEFAULT_API_BASE = "https://api.spotify.com/v1"
_DEFAULT_TOKEN_URL = "https://accounts.spotify.com/api/token"
_EMBED_BASE = "https://open.spotify.com/embed/track"
_CANDIDATES = 5
# Refresh the token this many seconds before Spotify says it expires.
_TOKEN_EXPIRY_MARGIN = 60.0


class SpotifyEnricher(IEnricher):
    """Canonical-id lookups against the Spotify Web API catalog."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        min_confidence: float = 0.6,
        api_base: str = _DEFAULT_API_BASE,
        token_url: str = _DEFAULT_TOKEN_URL,
    ) -> None:
        self._http = http_client
        self._client_id = client_id
        self._client_secret = client_secret
        self._min_confidence = min_confidence
        self._api_base = api_base.rstrip("/")
        self._token_url = token_url
        self._token: str | None = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    async def _get_token(self) -> str:
        # Many lookups run concurrently; only one of them refreshes the token.
        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            try:
                response = await self._http.post(
                    self._token_url,
                    data={"grant_type": "client_credentials"},
                    auth=(self._client_id, self._client_secret),
                )
            except httpx.HTTPError as exc:
                raise EnrichmentError(
                    message=f"Spotify token request failed: {exc}", provider_name="spotify"
                ) from exc
            if response.status_code != 200:
                raise EnrichmentError(
                    message=f"Spotify token endpoint returned {response.status_code}",
                    provider_name="spotify",
                )

            payload = response.json()
            self._token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 3600))
            self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN, 0.0)
            self._logger.debug("spotify_token_refreshed", expires_in=expires_in)
            return self._token

    async def lookup(self, artist: str, title: str) -> EnrichmentMatch | None:
        query = " ".join(part for part in (artist.strip(), title.strip()) if part)
        if not query:
            return None

        token = await self._get_token()
        try:
            response = await self._http.get(
                f"{self._api_base}/search",
                params={"q": query, "type": "track", "limit": _CANDIDATES},
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise EnrichmentError(
                message=f"Spotify search failed: {exc}", provider_name="spotify"
            ) from exc

        if response.status_code == 401:
            # Token revoked early; drop it so the next lookup re-authenticates.
            self._token = None
        if response.status_code != 200:
            raise EnrichmentError(
                message=f"Spotify search returned {response.status_code}",
                provider_name="spotify",
            )

        items: list[dict[str, Any]] = (response.json().get("tracks") or {}).get("items") or []
        return self._best_match(artist, title, items)

    def _best_match(
        self, artist: str, title: str, items: list[dict[str, Any]]
    ) -> EnrichmentMatch | None:
        best: EnrichmentMatch | None = None
        for item in items:
            track_id = item.get("id")
            if not track_id:
                continue
            candidate_artists = ", ".join(a.get("name", "") for a in item.get("artists") or [])
            candidate_title = item.get("name", "")
            score = match_score(artist, title, candidate_artists, candidate_title)
            if best is not None and score <= best.confidence:
                continue
            best = EnrichmentMatch(
                canonical_id=track_id,
                playback_url=f"{_EMBED_BASE}/{track_id}",
                uri=item.get("uri"),
                matched_artist=candidate_artists or None,
                matched_title=candidate_title or None,
                confidence=round(min(max(score, 0.0), 1.0), 4),
            )

        if best is None or best.confidence < self._min_confidence:
            self._logger.debug(
                "spotify_no_confident_match",
                artist=artist,
                title=title,
                best=best.confidence if best else None,
            )
            return None
        return best

    def get_provider_name(self) -> str:
        return "spotify"

    def is_available(self) -> bool:
        return bool(self._client_id and self._client_secret)


class NullEnricher(IEnricher):
    """Enricher used when no catalog credentials are configured; always misses."""

    async def lookup(self, artist: str, title: str) -> EnrichmentMatch | None:
        return None

    def get_provider_name(self) -> str:
        return "none"

    def is_available(self) -> bool:
        return False
