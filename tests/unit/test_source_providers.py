"""Unit tests for the NTS, 1001Tracklists and Spotify provider adapters."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from stackdigger.models.content import Container, SourceKind
from stackdigger.models.seeds import GenreSeed, SeedKind, SetSeed, TrackSeed
from stackdigger.providers.cache.memory_cache import MemoryCacheProvider
from stackdigger.providers.enrichment.spotify_provider import NullEnricher, SpotifyEnricher
from stackdigger.providers.source.nts_provider import NTSProvider, parse_nts_date
from stackdigger.providers.source.tracklists_provider import (
    TracklistsProvider,
    parse_set_title,
    parse_track_line,
)
from stackdigger.services.aggregator import Aggregator
from stackdigger.utils.errors import EnrichmentError, SourceUnavailableError


def _response(status_code: int = 200, json_data=None, text: str = "") -> MagicMock:  # noqa: ANN001
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    return response


def _client(*responses: MagicMock) -> AsyncMock:
    client = AsyncMock()
    client.get = AsyncMock(side_effect=list(responses))
    return client


# ======================================================================
# NTS
# ======================================================================


class TestNTSProvider:
    def test_supported_kinds(self) -> None:
        provider = NTSProvider(http_client=AsyncMock())
        assert provider.supported_kinds == frozenset({SeedKind.TRACK, SeedKind.GENRE})
        assert provider.get_provider_name() == "nts"
        assert provider.max_containers_per_seed is None

    def test_parse_nts_date(self) -> None:
        assert parse_nts_date("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert parse_nts_date("2024-03-01T10:00:00Z").hour == 10
        assert parse_nts_date("not a date") is None
        assert parse_nts_date(None) is None

    @pytest.mark.asyncio
    async def test_track_search_collapses_plays_per_episode(self) -> None:
        payload = {
            "metadata": {"resultset": {"count": 3}},
            "results": [
                {
                    "article": {"path": "/shows/a/episodes/a-1", "title": "A 1"},
                    "local_date": "2024-03-01",
                    "genres": [{"id": "house", "value": "House"}],
                },
                {"article": {"path": "/shows/a/episodes/a-1", "title": "A 1"}, "local_date": "2024-03-01"},
                {"article": {"path": "/shows/b/episodes/b-1", "title": "B 1"}, "local_date": None},
            ],
        }
        client = _client(_response(json_data=payload))
        seed = TrackSeed(artist="Bonobo", title="Kerala")

        containers = await NTSProvider(http_client=client).search(seed)

        assert [c.id for c in containers] == ["/shows/a/episodes/a-1", "/shows/b/episodes/b-1"]
        assert containers[0].genres == ["House"]
        assert containers[0].url == "https://www.nts.live/shows/a/episodes/a-1"
        assert containers[1].published_at is None
        assert all(c.source_seed == seed for c in containers)
        params = client.get.call_args.kwargs["params"]
        assert params["q"] == "Kerala Bonobo"
        assert params["types[]"] == "track"

    @pytest.mark.asyncio
    async def test_track_search_paginates_up_to_cap(self) -> None:
        first = {
            "metadata": {"resultset": {"count": 500}},
            "results": [{"article": {"path": f"/ep/{i}"}} for i in range(60)],
        }
        second = {"results": [{"article": {"path": f"/ep/{i}"}} for i in range(60, 120)]}
        client = _client(_response(json_data=first), _response(json_data=second))

        containers = await NTSProvider(http_client=client).search(TrackSeed(artist="x"))

        assert client.get.await_count == 2
        assert len(containers) == 100

    @pytest.mark.asyncio
    async def test_genre_search(self) -> None:
        payload = {
            "results": [
                {"article": {"path": "/ep/g1"}, "title": "Deep Hour", "local_date": "2024-01-02", "location": "LDN"},
            ]
        }
        client = _client(_response(json_data=payload))

        containers = await NTSProvider(http_client=client).search(GenreSeed(genre_id="house"))

        assert containers[0].title == "Deep Hour"
        assert containers[0].venue == "LDN"
        assert client.get.call_args.kwargs["params"]["genres[]"] == "house"

    @pytest.mark.asyncio
    async def test_expand_skips_blank_entries(self) -> None:
        payload = {
            "results": [
                {"artist": "Bonobo", "title": "Kerala", "uid": "u1"},
                {"artist": " ", "title": ""},
                {"artist": "", "title": "Untitled"},
            ]
        }
        client = _client(_response(json_data=payload))
        container = Container(
            id="/ep/1", title="Ep", source=SourceKind.NTS, source_seed=TrackSeed(artist="x")
        )

        tracks = await NTSProvider(http_client=client).expand(container)

        assert [(t.artist, t.title) for t in tracks] == [("Bonobo", "Kerala"), ("", "Untitled")]
        assert tracks[0].source_uid == "u1"
        assert client.get.call_args.args[0] == "https://www.nts.live/api/v2/ep/1/tracklist"

    @pytest.mark.asyncio
    async def test_http_error_becomes_source_unavailable(self) -> None:
        client = AsyncMock()
        client.get = AsyncMock(side_effect=httpx.ConnectError("boom"))
        with pytest.raises(SourceUnavailableError):
            await NTSProvider(http_client=client).search(GenreSeed(genre_id="house"))

    @pytest.mark.asyncio
    async def test_non_200_becomes_source_unavailable(self) -> None:
        client = _client(_response(status_code=503))
        with pytest.raises(SourceUnavailableError):
            await NTSProvider(http_client=client).search(GenreSeed(genre_id="house"))

    @pytest.mark.asyncio
    async def test_set_seed_is_rejected(self) -> None:
        with pytest.raises(SourceUnavailableError):
            await NTSProvider(http_client=AsyncMock()).search(SetSeed(artist="Ben UFO"))

    @pytest.mark.asyncio
    async def test_responses_are_cached(self) -> None:
        client = _client(_response(json_data={"results": []}))
        provider = NTSProvider(http_client=client, cache=MemoryCacheProvider())

        await provider.search(GenreSeed(genre_id="house"))
        await provider.search(GenreSeed(genre_id="house"))

        assert client.get.await_count == 1


# ======================================================================
# 1001Tracklists
# ======================================================================

_DJ_PAGE = """
<html><body>
  <div class="bItm"><div class="bTitle">
    <a href="/tracklist/abc/ben-ufo-at-fabric.html">Ben UFO @ fabric, London 2024-06-28</a>
  </div></div>
  <div class="bItm"><div class="bTitle">
    <a href="/tracklist/def/ben-ufo-rinse.html">Ben UFO - Rinse FM 2023-01-10</a>
  </div></div>
  <div class="bItm"><div class="bTitle"><a href="/tracklist/abc/ben-ufo-at-fabric.html">dup</a></div></div>
</body></html>
"""

_SET_PAGE = """
<html><body>
  <div class="tlpTog tlpItem" data-trackid="t1">
    <div class="bCont tl"><span class="trackValue">Joy Orbison - Hyph Mngo</span></div>
  </div>
  <div class="tlpTog tlpItem"><div class="bCont tl"><span class="trackValue">ID - ID</span></div></div>
  <div class="tlpTog tlpItem"><div class="bCont tl"><span class="trackValue">Pangaea - ID</span></div></div>
  <div class="tlpTog tlpItem" data-trackid="t4">
    <div class="bCont tl"><span class="trackValue">Objekt - Ganzfeld</span></div>
  </div>
</body></html>
"""


class TestTracklistsProvider:
    def test_advertises_one_container_per_seed(self) -> None:
        provider = TracklistsProvider(http_client=AsyncMock(), request_delay=0)
        assert provider.max_containers_per_seed == 1
        assert provider.supported_kinds == frozenset({SeedKind.SET})
        assert provider.paces_requests is True

    def test_disabled_provider_is_unavailable(self) -> None:
        assert TracklistsProvider(http_client=AsyncMock(), enabled=False).is_available() is False

    def test_parse_set_title(self) -> None:
        published_at, venue = parse_set_title("Ben UFO @ fabric, London 2024-06-28")
        assert published_at == datetime(2024, 6, 28, tzinfo=timezone.utc)
        assert venue == "fabric, London"
        assert parse_set_title("Untitled Mix") == (None, None)

    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("Joy Orbison - Hyph Mngo", ("Joy Orbison", "Hyph Mngo")),
            ("ID - ID", None),
            ("ID - Something", None),
            ("Someone - ID", None),
            ("No separator here", None),
        ],
    )
    def test_parse_track_line(self, line, expected) -> None:
        assert parse_track_line(line) == expected

    @pytest.mark.asyncio
    async def test_search_parses_dj_page(self) -> None:
        client = _client(_response(text=_DJ_PAGE))
        seed = SetSeed(artist="Ben UFO")

        containers = await TracklistsProvider(http_client=client, request_delay=0).search(seed)

        assert [c.id for c in containers] == [
            "https://www.1001tracklists.com/tracklist/abc/ben-ufo-at-fabric.html",
            "https://www.1001tracklists.com/tracklist/def/ben-ufo-rinse.html",
        ]
        assert containers[0].source == SourceKind.TRACKLISTS_1001
        assert containers[0].venue == "fabric, London"
        assert client.get.call_args.args[0] == "https://www.1001tracklists.com/dj/benufo/index.html"

    @pytest.mark.asyncio
    async def test_expand_drops_unidentified_tracks(self) -> None:
        client = _client(_response(text=_SET_PAGE))
        container = Container(
            id="https://www.1001tracklists.com/tracklist/abc/x.html",
            title="x",
            source=SourceKind.TRACKLISTS_1001,
            source_seed=SetSeed(artist="Ben UFO"),
        )

        tracks = await TracklistsProvider(http_client=client, request_delay=0).expand(container)

        assert [(t.artist, t.title, t.source_uid) for t in tracks] == [
            ("Joy Orbison", "Hyph Mngo", "t1"),
            ("Objekt", "Ganzfeld", "t4"),
        ]

    @pytest.mark.asyncio
    async def test_blocked_request_becomes_source_unavailable(self) -> None:
        client = _client(_response(status_code=403))
        with pytest.raises(SourceUnavailableError):
            await TracklistsProvider(http_client=client, request_delay=0).search(
                SetSeed(artist="Ben UFO")
            )

    @pytest.mark.asyncio
    async def test_track_seed_is_rejected(self) -> None:
        with pytest.raises(SourceUnavailableError):
            await TracklistsProvider(http_client=AsyncMock()).search(TrackSeed(artist="x"))

    @pytest.mark.asyncio
    async def test_queued_request_is_not_cut_off_by_source_timeout(self) -> None:
        other_page = (
            '<div class="bItm"><div class="bTitle">'
            '<a href="/tracklist/ghi/objekt-at-berghain.html">Objekt @ Berghain 2024-05-01</a>'
            "</div></div>"
        )
        client = _client(_response(text=_DJ_PAGE), _response(text=other_page))
        provider = TracklistsProvider(http_client=client, request_delay=0.2)
        aggregator = Aggregator([provider], source_timeout=0.05)

        containers = await aggregator.resolve(
            [SetSeed(artist="Ben UFO"), SetSeed(artist="Objekt")], set()
        )

        assert client.get.await_count == 2
        assert [c.source_seed.artist for c in containers] == ["Ben UFO", "Objekt"]


# ======================================================================
# Spotify
# ======================================================================


def _spotify_client(search_response: MagicMock) -> AsyncMock:
    client = AsyncMock()
    client.post = AsyncMock(
        return_value=_response(json_data={"access_token": "tok", "expires_in": 3600})
    )
    client.get = AsyncMock(return_value=search_response)
    return client


def _items(*candidates: tuple[str, str, str]) -> dict:
    return {
        "tracks": {
            "items": [
                {"id": tid, "name": title, "uri": f"spotify:track:{tid}", "artists": [{"name": artist}]}
                for tid, artist, title in candidates
            ]
        }
    }


class TestSpotifyEnricher:
    def test_availability_depends_on_credentials(self) -> None:
        assert SpotifyEnricher(AsyncMock(), "id", "secret").is_available() is True
        assert SpotifyEnricher(AsyncMock(), "", "").is_available() is False
        assert NullEnricher().is_available() is False

    @pytest.mark.asyncio
    async def test_picks_best_scoring_candidate(self) -> None:
        client = _spotify_client(
            _response(
                json_data=_items(
                    ("wrong", "Metallica", "Enter Sandman"),
                    ("right", "Bonobo", "Kerala"),
                )
            )
        )

        match = await SpotifyEnricher(client, "id", "secret").lookup("Bonobo", "Kerala")

        assert match is not None
        assert match.canonical_id == "right"
        assert match.playback_url == "https://open.spotify.com/embed/track/right"
        assert match.confidence == 1.0

    @pytest.mark.asyncio
    async def test_low_confidence_is_a_miss(self) -> None:
        client = _spotify_client(_response(json_data=_items(("x", "Metallica", "Enter Sandman"))))
        assert await SpotifyEnricher(client, "id", "secret").lookup("Bonobo", "Kerala") is None

    @pytest.mark.asyncio
    async def test_token_is_reused(self) -> None:
        client = _spotify_client(_response(json_data=_items()))
        enricher = SpotifyEnricher(client, "id", "secret")

        await enricher.lookup("a", "b")
        await enricher.lookup("c", "d")

        assert client.post.await_count == 1

    @pytest.mark.asyncio
    async def test_401_drops_token_and_raises(self) -> None:
        client = _spotify_client(_response(status_code=401))
        enricher = SpotifyEnricher(client, "id", "secret")

        with pytest.raises(EnrichmentError):
            await enricher.lookup("a", "b")
        with pytest.raises(EnrichmentError):
            await enricher.lookup("a", "b")

        assert client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_query_skips_network(self) -> None:
        client = _spotify_client(_response(json_data=_items()))
        assert await SpotifyEnricher(client, "id", "secret").lookup(" ", "") is None
        client.post.assert_not_awaited()
