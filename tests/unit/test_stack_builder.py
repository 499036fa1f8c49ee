"""Unit tests for StackBuilder, the request-scoped build orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from stackdigger.models.content import RawTrack, SourceKind
from stackdigger.models.seeds import GenreSeed, SetSeed, TrackSeed
from stackdigger.pipeline.stack_builder import StackBuilder
from stackdigger.services.aggregator import Aggregator
from stackdigger.services.enrichment import EnrichmentPipeline
from stackdigger.services.stack_assembler import StackAssembler
from stackdigger.services.track_collector import TrackCollector
from stackdigger.utils.errors import InvalidSeedsError, NoNewContentError, StackBuildTimeoutError

SEED = TrackSeed(artist="X", title="Y")


@pytest.fixture
def episodes(radio_source, make_container, make_raw_tracks):
    """Registers eight NTS episodes E1 (newest) .. E8 for SEED, ten tracks each."""
    containers = [make_container(f"E{i}", SEED, days_old=i) for i in range(1, 9)]
    radio_source.register(SEED, containers)
    for container in containers:
        radio_source.set_tracks(container.id, make_raw_tracks(container.id, 10))
    return containers


class TestBuild:
    @pytest.mark.asyncio
    async def test_fresh_build_uses_newest_episodes(self, stack_builder, episodes) -> None:
        result = await stack_builder.build([SEED], max_per_seed=5)

        assert [c.id for c in result.stack.containers_used] == ["E1", "E2", "E3", "E4", "E5"]
        assert len(result.stack.tracks) == 50
        assert result.mutation.newly_seen_containers == ["E1", "E2", "E3", "E4", "E5"]
        assert len(result.mutation.newly_referenced_tracks) == 50
        assert result.stack.name == "X Mix"

    @pytest.mark.asyncio
    async def test_second_build_skips_seen_episodes(self, stack_builder, episodes) -> None:
        first = await stack_builder.build([SEED], max_per_seed=5)

        second = await stack_builder.build(
            [SEED],
            seen_containers=set(first.mutation.newly_seen_containers),
            referenced_tracks=set(first.mutation.newly_referenced_tracks),
            max_per_seed=5,
        )

        assert [c.id for c in second.stack.containers_used] == ["E6", "E7", "E8"]
        assert not set(second.mutation.newly_referenced_tracks) & set(
            first.mutation.newly_referenced_tracks
        )

    @pytest.mark.asyncio
    async def test_everything_seen_raises_no_new_containers(self, stack_builder, episodes) -> None:
        with pytest.raises(NoNewContentError) as excinfo:
            await stack_builder.build([SEED], seen_containers={c.id for c in episodes})
        assert excinfo.value.reason == NoNewContentError.NO_NEW_CONTAINERS

    @pytest.mark.asyncio
    async def test_all_tracks_referenced_raises_no_new_tracks(
        self, stack_builder, radio_source, make_container
    ) -> None:
        seed = GenreSeed(genre_id="house")
        radio_source.register(seed, [make_container("h1", seed)])
        radio_source.set_tracks("h1", [RawTrack(artist="Old", title="Tune")])

        with pytest.raises(NoNewContentError) as excinfo:
            await stack_builder.build([seed], referenced_tracks={"old|tune"})
        assert excinfo.value.reason == NoNewContentError.NO_NEW_TRACKS

    @pytest.mark.asyncio
    async def test_empty_seeds_rejected_before_any_upstream_call(
        self, stack_builder, radio_source
    ) -> None:
        with pytest.raises(InvalidSeedsError):
            await stack_builder.build([])
        assert radio_source.search_calls == []

    @pytest.mark.asyncio
    async def test_only_blank_track_seeds_rejected_before_any_upstream_call(
        self, stack_builder, radio_source
    ) -> None:
        with pytest.raises(InvalidSeedsError):
            await stack_builder.build([TrackSeed(artist=" ", title=""), TrackSeed()])
        assert radio_source.search_calls == []

    @pytest.mark.asyncio
    async def test_blank_track_seeds_are_dropped_from_a_mixed_request(
        self, stack_builder, radio_source, episodes
    ) -> None:
        result = await stack_builder.build([TrackSeed(artist="  "), SEED], max_per_seed=2)

        assert radio_source.search_calls == [SEED]
        assert result.stack.sources == [SEED]
        assert [c.id for c in result.stack.containers_used] == ["E1", "E2"]

    @pytest.mark.asyncio
    async def test_enriched_track_matching_referenced_key_is_dropped(
        self, stack_builder, radio_source, fake_enricher, make_container
    ) -> None:
        seed = TrackSeed(artist="Bonobo")
        radio_source.register(seed, [make_container("c1", seed)])
        radio_source.set_tracks(
            "c1",
            [RawTrack(artist="Bonobo", title="Kerala (Edit)"), RawTrack(artist="New", title="One")],
        )
        fake_enricher.matches[("bonobo", "kerala (edit)")] = "sp:kerala"

        result = await stack_builder.build([seed], referenced_tracks={"sp:kerala"})

        assert [t.artist for t in result.stack.tracks] == ["New"]

    @pytest.mark.asyncio
    async def test_mixed_sources_and_failing_seed(
        self, stack_builder, radio_source, set_source, make_container, make_raw_tracks
    ) -> None:
        dj = SetSeed(artist="Ben UFO")
        broken = GenreSeed(genre_id="broken")
        radio_source.register(SEED, [make_container("E1", SEED)])
        radio_source.set_tracks("E1", make_raw_tracks("E1", 2))
        radio_source.failing_seeds.add(broken)
        set_source.register(
            dj,
            [
                make_container("set-new", dj, days_old=1, source=SourceKind.TRACKLISTS_1001),
                make_container("set-old", dj, days_old=9, source=SourceKind.TRACKLISTS_1001),
            ],
        )
        set_source.set_tracks("set-new", make_raw_tracks("set-new", 3))

        result = await stack_builder.build([SEED, broken, dj])

        assert [c.id for c in result.stack.containers_used] == ["E1", "set-new"]
        assert len(result.stack.tracks) == 5
        assert "1 NTS episode and 1 1001Tracklists set" in result.stack.summary
        assert result.stack.stats.canonical_matched == 0

    @pytest.mark.asyncio
    async def test_timeout_raises_and_returns_nothing(
        self, radio_source, fake_enricher, make_container, fake_source_cls
    ) -> None:
        class _Hanging(fake_source_cls):
            async def expand(self, container):  # noqa: ANN001, ANN201
                await asyncio.sleep(5)
                return []

        source = _Hanging(radio_source.supported_kinds)
        source.register(SEED, [make_container("E1", SEED)])
        builder = StackBuilder(
            aggregator=Aggregator([source]),
            track_collector=TrackCollector([source]),
            enrichment=EnrichmentPipeline(fake_enricher),
            assembler=StackAssembler(),
            build_timeout=0.05,
        )

        with pytest.raises(StackBuildTimeoutError):
            await builder.build([SEED])

    @pytest.mark.asyncio
    async def test_default_max_per_seed_applies(
        self, radio_source, fake_enricher, episodes
    ) -> None:
        builder = StackBuilder(
            aggregator=Aggregator([radio_source]),
            track_collector=TrackCollector([radio_source]),
            enrichment=EnrichmentPipeline(fake_enricher),
            assembler=StackAssembler(),
            default_max_per_seed=2,
        )

        result = await builder.build([SEED])

        assert [c.id for c in result.stack.containers_used] == ["E1", "E2"]
