import pytest

from entrypoints import deep_verification, news_discovery, synthesize_and_persist, video_discovery
from errors import StageFailure, UpstreamQuotaExceeded
from models.news import Source
from models.video import VideoEvaluation
from tests.fakes import FakeClient, FakeSearcher


class TestNewsDiscovery:
    @pytest.mark.asyncio
    async def test_returns_camel_case_payload(self, config):
        client = FakeClient(summary="X happened", sources=[Source(title="A", url="http://a")])

        result = await news_discovery({"topic": "Example Event"}, config=config, client=client)

        assert result == {"newsSummary": "X happened", "sources": [{"title": "A", "url": "http://a"}]}

    @pytest.mark.asyncio
    async def test_missing_key_is_config_error(self, config):
        config.gemini_api_key = ""

        result = await news_discovery({"topic": "Example Event"}, config=config, client=FakeClient())

        assert result["stage"] == "config"
        assert "GEMINI_API_KEY" in result["error"]

    @pytest.mark.asyncio
    async def test_failure_carries_available_models(self, config):
        client = FakeClient()
        client.search_error = StageFailure("upstream rejected")

        result = await news_discovery({"topic": "Example Event"}, config=config, client=client)

        assert result["error"] == "upstream rejected"
        assert result["stage"] == "news_discovery"
        assert result["availableModels"] == ["models/gemini-2.0-flash"]


class TestDeepVerification:
    @pytest.mark.asyncio
    async def test_no_sources_returns_fallback(self, config):
        result = await deep_verification({"newsSummary": "X happened", "sources": []}, config=config, client=FakeClient())

        assert result == {"deepAnalysis": "Could not scrape deep content. Relying on summary."}

    @pytest.mark.asyncio
    async def test_accepts_source_objects(self, config):
        payload = {"newsSummary": "X happened", "sources": [{"title": "A", "url": "#"}]}

        result = await deep_verification(payload, config=config, client=FakeClient())

        assert "deepAnalysis" in result


class TestVideoDiscovery:
    @pytest.mark.asyncio
    async def test_returns_candidates_queries_and_debug(self, config):
        client = FakeClient(
            keywords=["Alpha"],
            evaluations=[VideoEvaluation(external_id="v1", is_relevant=True, reason="on topic")],
        )

        result = await video_discovery(
            {"newsSummary": "X happened"}, config=config, client=client, searcher=FakeSearcher({"Alpha": ["v1"]}),
        )

        assert result["queries"] == ["Alpha"]
        assert [c["id"] for c in result["candidates"]] == ["v1"]
        assert result["candidates"][0]["foundByKeyword"] == "Alpha"
        assert result["debug"]

    @pytest.mark.asyncio
    async def test_quota_error_includes_stack(self, config):
        searcher = FakeSearcher(errors={"Alpha": UpstreamQuotaExceeded("The request cannot be completed")})

        result = await video_discovery(
            {"newsSummary": "X happened"}, config=config, client=FakeClient(keywords=["Alpha"]), searcher=searcher,
        )

        assert result["error"] == "The request cannot be completed"
        assert result["stage"] == "video_discovery"
        assert "UpstreamQuotaExceeded" in result["stack"]

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_payload_with_stack(self, config):
        client = FakeClient(keywords=["Alpha"])
        client.structured_error = RuntimeError("client exploded")

        result = await video_discovery(
            {"newsSummary": "X happened"}, config=config, client=client, searcher=FakeSearcher(),
        )

        assert result["error"] == "client exploded"
        assert result["stage"] == "video_discovery"
        assert "RuntimeError" in result["stack"]

    @pytest.mark.asyncio
    async def test_missing_summary_is_invalid_input(self, config):
        result = await video_discovery({}, config=config, client=FakeClient(), searcher=FakeSearcher())

        assert result["error"].startswith("Invalid input")
        assert "stack" in result


class TestSynthesizeAndPersist:
    @pytest.mark.asyncio
    async def test_creates_report(self, config, store):
        client = FakeClient(texts=["# Report\nBody", "1. Idea"])
        payload = {
            "newsSummary": "X happened",
            "deepAnalysis": "",
            "sources": [{"title": "A", "url": "http://a"}],
            "videos": [{"id": "v1", "title": "Clip", "channel": "Chan", "transcript": "words"}],
            "queries": ["Alpha"],
            "topic": "Example Event",
            "isPublic": True,
            "userId": "u1",
        }

        result = await synthesize_and_persist(payload, config=config, client=client, store=store)

        report = store.get_report(result["id"])
        assert result["summary"] == report.summary
        assert "http://a" in report.summary
        assert report.ideas == "1. Idea"
        assert report.is_public is True
        assert report.video_count == 1
        assert store.get_logs(result["id"])[-1].step == "persistence"

    @pytest.mark.asyncio
    async def test_unknown_report_id_is_persistence_error(self, config, store):
        client = FakeClient(texts=["# Report", "1. Idea"])
        payload = {"newsSummary": "X happened", "topic": "Example Event", "reportId": "missing"}

        result = await synthesize_and_persist(payload, config=config, client=client, store=store)

        assert result["stage"] == "persistence"
        assert store.stats()["total"] == 0
