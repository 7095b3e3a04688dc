import pytest

from agents.video_scout import VideoDiscoveryStage, approved_ids, dedupe_candidates
from errors import SchemaMismatch, TransientFetchFailure, UpstreamQuotaExceeded
from models.log import LogType
from models.video import VideoCandidate, VideoEvaluation
from observability.orchestrator_log import OrchestratorLog
from tests.fakes import FakeClient, FakeSearcher


def _approve(*ids: str) -> list[VideoEvaluation]:
    return [VideoEvaluation(external_id=vid, is_relevant=True) for vid in ids]


def _stage(config, client, searcher, olog=None) -> VideoDiscoveryStage:
    return VideoDiscoveryStage(client, searcher, config, olog or OrchestratorLog())


class TestDedup:
    def test_keeps_first_occurrence(self):
        candidates = [
            VideoCandidate(external_id="v1", found_by_keyword="Alpha"),
            VideoCandidate(external_id="v2", found_by_keyword="Alpha"),
            VideoCandidate(external_id="v1", found_by_keyword="Beta"),
        ]
        unique = dedupe_candidates(candidates)
        assert [c.external_id for c in unique] == ["v1", "v2"]
        assert unique[0].found_by_keyword == "Alpha"

    @pytest.mark.asyncio
    async def test_earliest_keyword_wins_attribution(self, config):
        client = FakeClient(keywords=["Alpha", "Beta"], evaluations=_approve("v1", "v2", "v3"))
        searcher = FakeSearcher({"Alpha": ["v1", "v2"], "Beta": ["v2", "v3"]})

        result = await _stage(config, client, searcher).run("X happened")

        ids = [c.external_id for c in result.candidates]
        assert ids == ["v1", "v2", "v3"]
        assert len(set(ids)) == len(ids)
        assert result.candidates[1].found_by_keyword == "Alpha"


class TestSearchLoop:
    @pytest.mark.asyncio
    async def test_searches_sequentially_in_keyword_order(self, config):
        client = FakeClient(keywords=["Alpha", "Beta", "Gamma"])
        searcher = FakeSearcher()

        await _stage(config, client, searcher).run("X happened")

        assert searcher.calls == ["Alpha", "Beta", "Gamma"]

    @pytest.mark.asyncio
    async def test_quota_error_is_fatal(self, config):
        client = FakeClient(keywords=["Alpha", "Beta"])
        searcher = FakeSearcher(errors={"Alpha": UpstreamQuotaExceeded("quotaExceeded: daily limit")})

        with pytest.raises(UpstreamQuotaExceeded) as exc_info:
            await _stage(config, client, searcher).run("X happened")

        assert "daily limit" in exc_info.value.message
        assert searcher.calls == ["Alpha"]

    @pytest.mark.asyncio
    async def test_other_search_errors_are_skipped(self, config):
        client = FakeClient(keywords=["Alpha", "Beta"], evaluations=_approve("v2"))
        searcher = FakeSearcher({"Beta": ["v2"]}, errors={"Alpha": TransientFetchFailure("HTTP 500")})

        result = await _stage(config, client, searcher).run("X happened")

        assert [c.external_id for c in result.candidates] == ["v2"]
        assert any("failed" in line for line in result.debug)


class TestFilter:
    @pytest.mark.asyncio
    async def test_zero_candidates_skips_filter(self, config):
        client = FakeClient(keywords=["Alpha"])

        result = await _stage(config, client, FakeSearcher()).run("X happened")

        assert result.candidates == []
        assert result.queries == ["Alpha"]
        # Only the keyword call happened
        assert [kind for kind, _ in client.calls] == ["structured"]

    @pytest.mark.asyncio
    async def test_subset_coverage_selects_covered_and_approved(self, config):
        evaluations = [
            VideoEvaluation(external_id="v1", is_relevant=True),
            VideoEvaluation(external_id="v3", is_relevant=False),
        ]
        client = FakeClient(keywords=["Alpha"], evaluations=evaluations)
        searcher = FakeSearcher({"Alpha": ["v1", "v2", "v3"]})

        result = await _stage(config, client, searcher).run("X happened")

        assert [c.external_id for c in result.candidates] == ["v1"]

    def test_unknown_ids_ignored_and_first_verdict_wins(self):
        candidates = [VideoCandidate(external_id="v1"), VideoCandidate(external_id="v2")]
        evaluations = [
            VideoEvaluation(external_id="v1", is_relevant=False),
            VideoEvaluation(external_id="v1", is_relevant=True),
            VideoEvaluation(external_id="ghost", is_relevant=True),
            VideoEvaluation(external_id="v2", is_relevant=True),
        ]
        approved, unknown = approved_ids(candidates, evaluations)
        assert approved == {"v2"}
        assert unknown == ["ghost"]

    @pytest.mark.asyncio
    async def test_description_is_truncated_in_filter_prompt(self, config):
        long_desc = "d" * 400
        client = FakeClient(keywords=["Alpha"], evaluations=_approve("v1"))

        class LongSearcher(FakeSearcher):
            async def search(self, keyword):
                return [VideoCandidate(external_id="v1", title="t", description=long_desc, found_by_keyword=keyword)]

        await _stage(config, client, LongSearcher()).run("X happened")

        filter_prompt = client.calls[-1][1]
        assert "d" * 150 in filter_prompt
        assert "d" * 151 not in filter_prompt

    @pytest.mark.asyncio
    async def test_schema_mismatch_propagates(self, config):
        client = FakeClient(keywords=["Alpha"])
        client.structured_error = SchemaMismatch("bad json", stage="video_discovery")

        with pytest.raises(SchemaMismatch):
            await _stage(config, client, FakeSearcher()).run("X happened")

    @pytest.mark.asyncio
    async def test_verdicts_logged_as_ai_decisions(self, config):
        olog = OrchestratorLog()
        client = FakeClient(
            keywords=["Alpha"],
            evaluations=[VideoEvaluation(external_id="v1", is_relevant=True, reason="shows the event")],
        )
        await _stage(config, client, FakeSearcher({"Alpha": ["v1"]}), olog).run("X happened")

        decisions = [e for e in olog.entries if e.type == LogType.AI_DECISION and e.step == "video_filter"]
        assert len(decisions) == 1
        assert decisions[0].data.decision == "approve"


class TestCap:
    @pytest.mark.asyncio
    async def test_output_never_exceeds_five(self, config):
        ids = [f"v{i}" for i in range(9)]
        client = FakeClient(keywords=["Alpha", "Beta"], evaluations=_approve(*ids))
        searcher = FakeSearcher({"Alpha": ids[:5], "Beta": ids[5:]})

        result = await _stage(config, client, searcher).run("X happened")

        assert [c.external_id for c in result.candidates] == ids[:5]

    @pytest.mark.asyncio
    async def test_cap_holds_even_if_configured_higher(self, config):
        config.max_videos = 50
        ids = [f"v{i}" for i in range(8)]
        client = FakeClient(keywords=["Alpha"], evaluations=_approve(*ids))

        result = await _stage(config, client, FakeSearcher({"Alpha": ids})).run("X happened")

        assert len(result.candidates) == 5
