import asyncio

import pytest
from pydantic_ai.messages import BuiltinToolReturnPart, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.models.function import FunctionModel
from pydantic_ai.models.test import TestModel as ScriptedModel

from agents.llm import GenerationClient, _parse_local_model, extract_sources
from errors import SchemaMismatch, StageFailure
from models.video import VideoEvaluation


class TestParseLocalModel:
    def test_local_model(self):
        assert _parse_local_model("openai:qwen@http://127.0.0.1:8080/v1") == ("qwen", "http://127.0.0.1:8080/v1")

    def test_hosted_model(self):
        assert _parse_local_model("google-gla:gemini-2.0-flash") is None
        assert _parse_local_model("openai:gpt-4o") is None


class TestExtractSources:
    def test_citations_in_order(self):
        messages = [
            ModelRequest(parts=[UserPromptPart(content="news")]),
            ModelResponse(parts=[
                BuiltinToolReturnPart(
                    tool_name="web_search",
                    content=[
                        {"uri": "http://a", "title": "A"},
                        {"url": "http://b"},
                        {"title": "no url"},
                    ],
                    tool_call_id="call-1",
                ),
                TextPart(content="X happened"),
            ]),
        ]

        sources = extract_sources(messages)

        assert [(s.title, s.url) for s in sources] == [("A", "http://a"), ("Source", "http://b")]

    def test_no_grounding_metadata(self):
        assert extract_sources([ModelResponse(parts=[TextPart(content="X happened")])]) == []


class TestGenerationClient:
    @pytest.mark.asyncio
    async def test_generate_text_tracks_usage(self, config):
        client = GenerationClient(config, model=ScriptedModel(custom_output_text="# Report"))

        result = await client.generate_text("write", stage="synthesis")

        assert result == "# Report"
        assert client.input_tokens > 0
        assert client.output_tokens > 0

    @pytest.mark.asyncio
    async def test_structured_output(self, config):
        model = ScriptedModel(custom_output_args={"response": [{"id": "v1", "isRelevant": True, "reason": "on topic"}]})
        client = GenerationClient(config, model=model)

        result = await client.generate_structured("judge", list[VideoEvaluation], stage="video_filter")

        assert result == [VideoEvaluation(external_id="v1", is_relevant=True, reason="on topic")]

    @pytest.mark.asyncio
    async def test_unparseable_structured_output_is_schema_mismatch(self, config):
        def plain_text(messages, info):
            return ModelResponse(parts=[TextPart(content="not json at all")])

        client = GenerationClient(config, model=FunctionModel(plain_text))

        with pytest.raises(SchemaMismatch) as exc_info:
            await client.generate_structured("judge", list[VideoEvaluation], stage="video_filter")
        assert exc_info.value.stage == "video_filter"

    @pytest.mark.asyncio
    async def test_provider_error_is_stage_failure(self, config):
        def broken(messages, info):
            raise RuntimeError("500 Internal Server Error")

        client = GenerationClient(config, model=FunctionModel(broken))

        with pytest.raises(StageFailure, match="500 Internal Server Error"):
            await client.generate_text("write", stage="synthesis")

    @pytest.mark.asyncio
    async def test_timeout_is_stage_failure(self, config):
        async def slow(messages, info):
            await asyncio.sleep(1)
            return ModelResponse(parts=[TextPart(content="late")])

        config.generation_timeout = 0.01
        client = GenerationClient(config, model=FunctionModel(slow))

        with pytest.raises(StageFailure, match="timed out"):
            await client.generate_text("write", stage="synthesis")


class TestListModels:
    @pytest.mark.asyncio
    async def test_lists_model_names(self, config, monkeypatch):
        async def fake_get_json(url, params=None, timeout=10.0):
            return 200, {"models": [{"name": "models/gemini-2.0-flash"}, {"displayName": "unnamed"}]}

        monkeypatch.setattr("agents.llm.get_json", fake_get_json)

        assert await GenerationClient(config).list_available_models() == ["models/gemini-2.0-flash"]

    @pytest.mark.asyncio
    async def test_failure_yields_empty_list(self, config, monkeypatch):
        async def failing(url, params=None, timeout=10.0):
            raise OSError("network down")

        monkeypatch.setattr("agents.llm.get_json", failing)

        assert await GenerationClient(config).list_available_models() == []
