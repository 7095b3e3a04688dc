"""Transcript fetching and aggregation for approved videos.

TranscriptFetcher wraps youtube-transcript-api, which is synchronous, in a
worker thread bounded by a timeout. TranscriptAggregationStage resolves a
transcript for every approved candidate and never fails as a whole: any
failure for a video yields TRANSCRIPT_UNAVAILABLE instead.
"""

import asyncio
import logging
from typing import Protocol

from youtube_transcript_api import NoTranscriptFound, YouTubeTranscriptApi

from errors import TransientFetchFailure
from models.video import Video, VideoCandidate
from observability.orchestrator_log import OrchestratorLog
from observability.quality import grade_transcripts

logger = logging.getLogger(__name__)

TRANSCRIPT_UNAVAILABLE = "(Transcript unavailable - no captions)"

STEP = "transcripts"


class TranscriptSource(Protocol):
    async def fetch(self, video_id: str) -> str: ...


class TranscriptFetcher:
    """Best-effort caption text for a YouTube video.

    Prefers the configured languages and falls back to the first transcript
    the video offers (manual or generated).
    """

    def __init__(self, languages: list[str] | None = None, timeout: float = 10.0):
        self.languages = languages or ["en"]
        self.timeout = timeout
        self._api = YouTubeTranscriptApi()

    def _fetch_sync(self, video_id: str) -> str:
        transcripts = self._api.list(video_id)
        try:
            transcript = transcripts.find_transcript(self.languages)
        except NoTranscriptFound:
            transcript = next(iter(transcripts), None)
            if transcript is None:
                raise
        fetched = transcript.fetch()
        return " ".join(snippet.text.strip() for snippet in fetched if snippet.text.strip())

    async def fetch(self, video_id: str) -> str:
        """Fetch transcript text.

        Raises:
            TransientFetchFailure: No captions, provider error or timeout
        """
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._fetch_sync, video_id),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransientFetchFailure(f"Transcript fetch timed out for {video_id}") from e
        except Exception as e:
            raise TransientFetchFailure(f"Transcript unavailable for {video_id}: {type(e).__name__}") from e
        if not text:
            raise TransientFetchFailure(f"Transcript empty for {video_id}")
        return text


class TranscriptAggregationStage:
    """Attach transcripts to approved candidates.

    Example:
        >>> stage = TranscriptAggregationStage(TranscriptFetcher(["en"]), olog)
        >>> videos = await stage.run(candidates)
    """

    def __init__(
        self,
        source: TranscriptSource,
        olog: OrchestratorLog | None = None,
        max_concurrent: int = 5,
    ):
        self.source = source
        self.olog = olog or OrchestratorLog()
        self.max_concurrent = max_concurrent

    async def _resolve(self, candidate: VideoCandidate, semaphore: asyncio.Semaphore) -> Video:
        async with semaphore:
            try:
                transcript = await self.source.fetch(candidate.external_id)
                logger.debug("Transcript fetched | id=%s chars=%d", candidate.external_id, len(transcript))
            except Exception as e:
                logger.info("Transcript placeholder | id=%s reason=%s", candidate.external_id, e)
                transcript = TRANSCRIPT_UNAVAILABLE
        return Video(**candidate.model_dump(), transcript=transcript)

    async def run(self, candidates: list[VideoCandidate]) -> list[Video]:
        """Resolve transcripts; output order matches input order."""
        if not candidates:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)
        videos = list(await asyncio.gather(*(self._resolve(c, semaphore) for c in candidates)))

        found = sum(1 for v in videos if v.transcript != TRANSCRIPT_UNAVAILABLE)
        self.olog.graded(
            STEP,
            f"Transcripts resolved for {found}/{len(videos)} videos",
            grade_transcripts([v.transcript for v in videos], TRANSCRIPT_UNAVAILABLE),
        )
        return videos
