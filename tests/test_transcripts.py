import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from youtube_transcript_api import NoTranscriptFound

from errors import TransientFetchFailure
from models.video import VideoCandidate
from tools.transcripts import TRANSCRIPT_UNAVAILABLE, TranscriptAggregationStage, TranscriptFetcher
from tests.fakes import FakeTranscripts


def _candidates(*ids: str) -> list[VideoCandidate]:
    return [VideoCandidate(external_id=vid, title=f"{vid} title", channel="c") for vid in ids]


def _transcript(*lines: str):
    transcript = MagicMock()
    transcript.fetch.return_value = [SimpleNamespace(text=line) for line in lines]
    return transcript


class TestAggregation:
    @pytest.mark.asyncio
    async def test_failures_get_placeholder_and_order_is_kept(self):
        source = FakeTranscripts({"v2": "hello world"})
        stage = TranscriptAggregationStage(source)

        videos = await stage.run(_candidates("v1", "v2", "v3"))

        assert [v.external_id for v in videos] == ["v1", "v2", "v3"]
        assert [v.transcript for v in videos] == [TRANSCRIPT_UNAVAILABLE, "hello world", TRANSCRIPT_UNAVAILABLE]
        assert videos[0].title == "v1 title"

    @pytest.mark.asyncio
    async def test_empty_input(self):
        assert await TranscriptAggregationStage(FakeTranscripts()).run([]) == []

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_placeholdered(self):
        class Exploding:
            async def fetch(self, video_id):
                raise RuntimeError("boom")

        videos = await TranscriptAggregationStage(Exploding()).run(_candidates("v1"))
        assert videos[0].transcript == TRANSCRIPT_UNAVAILABLE


class TestFetcher:
    @pytest.mark.asyncio
    async def test_joins_snippets_in_preferred_language(self):
        fetcher = TranscriptFetcher(["en"])
        transcripts = MagicMock()
        transcripts.find_transcript.return_value = _transcript("Hello", " world ", "")
        fetcher._api = MagicMock()
        fetcher._api.list.return_value = transcripts

        assert await fetcher.fetch("v1") == "Hello world"
        transcripts.find_transcript.assert_called_once_with(["en"])

    @pytest.mark.asyncio
    async def test_falls_back_to_any_available_transcript(self):
        fetcher = TranscriptFetcher(["en"])
        transcripts = MagicMock()
        transcripts.find_transcript.side_effect = NoTranscriptFound("v1", ["en"], "")
        transcripts.__iter__.return_value = iter([_transcript("Bonjour")])
        fetcher._api = MagicMock()
        fetcher._api.list.return_value = transcripts

        assert await fetcher.fetch("v1") == "Bonjour"

    @pytest.mark.asyncio
    async def test_provider_error_becomes_transient_failure(self):
        fetcher = TranscriptFetcher(["en"])
        fetcher._api = MagicMock()
        fetcher._api.list.side_effect = RuntimeError("captions disabled")

        with pytest.raises(TransientFetchFailure):
            await fetcher.fetch("v1")

    @pytest.mark.asyncio
    async def test_timeout_becomes_transient_failure(self, monkeypatch):
        fetcher = TranscriptFetcher(["en"], timeout=0.01)

        async def slow_to_thread(func, *args):
            await asyncio.sleep(1)

        monkeypatch.setattr("tools.transcripts.asyncio.to_thread", slow_to_thread)

        with pytest.raises(TransientFetchFailure, match="timed out"):
            await fetcher.fetch("v1")
