"""Video discovery stage: news summary -> approved video candidates.

Four phases:
    1. KEYWORDS: filter model proposes broad single-word search terms
    2. SEARCH: one search per keyword, strictly sequential, then a stable
       first-seen dedup on video id
    3. FILTER: filter model judges every candidate's relevance (skipped
       when there are no candidates)
    4. SELECT: approved candidates in dedup order, capped at max_videos

Only a quota/forbidden answer from the search provider is fatal. Other
per-keyword search errors are logged and skipped. The relevance verdicts
are matched tolerantly: candidates without a verdict are rejected, verdicts
for unknown ids are ignored, and the first verdict for a repeated id wins.
"""

import logging
from typing import Protocol

from agents.llm import GenerationClient
from config import Config, MAX_VIDEOS_LIMIT
from errors import UpstreamQuotaExceeded
from models.video import VideoCandidate, VideoDiscoveryResult, VideoEvaluation
from observability.orchestrator_log import OrchestratorLog
from observability.quality import grade_keywords, grade_search

logger = logging.getLogger(__name__)

STEP = "video_discovery"
FILTER_STEP = "video_filter"

KEYWORD_SYSTEM_PROMPT = """You generate video search keywords for a news story.

Rules:
- Each keyword is ONE broad word
- Use proper nouns: places, people, organizations
- No abstract concepts (e.g. "crisis", "conflict", "politics", "news")"""

FILTER_SYSTEM_PROMPT = """You are a strict video evidence filter for a news report.

For each video, decide if it shows or discusses the specific news event.
Return isRelevant=false for gaming, vlogs, music, generic explainers,
unrelated content, or old footage. Return exactly one verdict per video id."""


class VideoSearcher(Protocol):
    async def search(self, keyword: str) -> list[VideoCandidate]: ...


def build_keyword_prompt(news_summary: str, count: int) -> str:
    return (
        f"NEWS:\n{news_summary}\n\n"
        f"Generate exactly {count} broad, single-word search keywords "
        "(proper nouns: places, people, organizations) to find videos about this news."
    )


def build_filter_prompt(news_summary: str, candidates: list[VideoCandidate], preview_chars: int) -> str:
    lines = [
        f"ID: {c.external_id} | TITLE: {c.title} | DESC: {c.description[:preview_chars]}"
        for c in candidates
    ]
    return (
        f"NEWS STORY:\n{news_summary}\n\n"
        "VIDEOS:\n" + "\n".join(lines) + "\n\n"
        "Is each video relevant evidence for this specific news story?"
    )


def dedupe_candidates(candidates: list[VideoCandidate]) -> list[VideoCandidate]:
    """Drop repeated video ids, keeping the first occurrence."""
    seen: dict[str, VideoCandidate] = {}
    for candidate in candidates:
        seen.setdefault(candidate.external_id, candidate)
    return list(seen.values())


def approved_ids(
    candidates: list[VideoCandidate],
    evaluations: list[VideoEvaluation],
) -> tuple[set[str], list[str]]:
    """Match verdicts to candidates.

    Returns:
        (ids approved, verdict ids that matched no candidate)
    """
    candidate_ids = {c.external_id for c in candidates}
    verdicts: dict[str, bool] = {}
    unknown: list[str] = []
    for evaluation in evaluations:
        if evaluation.external_id not in candidate_ids:
            unknown.append(evaluation.external_id)
            continue
        verdicts.setdefault(evaluation.external_id, evaluation.is_relevant)
    return {vid for vid, relevant in verdicts.items() if relevant}, unknown


class VideoDiscoveryStage:
    """Find, deduplicate and filter video evidence for a news summary.

    Example:
        >>> stage = VideoDiscoveryStage(client, YouTubeSearch(key), config, olog)
        >>> result = await stage.run(news.news_summary)
        >>> len(result.candidates) <= config.max_videos
        True
    """

    def __init__(
        self,
        client: GenerationClient,
        searcher: VideoSearcher,
        config: Config,
        olog: OrchestratorLog | None = None,
    ):
        self.client = client
        self.searcher = searcher
        self.config = config
        self.olog = olog or OrchestratorLog()
        self.candidates_found = 0

    async def generate_keywords(self, news_summary: str) -> list[str]:
        """Phase 1: ask the filter model for search keywords."""
        raw = await self.client.generate_structured(
            build_keyword_prompt(news_summary, self.config.keyword_count),
            list[str],
            system_prompt=KEYWORD_SYSTEM_PROMPT,
            stage=STEP,
        )
        keywords = [k.strip() for k in raw if k and k.strip()]
        grade = grade_keywords(keywords, self.config.keyword_count)
        self.olog.ai_decision(
            STEP,
            f"Generated keywords: {keywords}",
            decision=", ".join(keywords),
            quality=grade.quality.value,
            metrics=grade.metrics,
        )
        return keywords

    async def search_all(self, keywords: list[str], debug: list[str]) -> list[VideoCandidate]:
        """Phase 2: sequential search per keyword, then dedup.

        Raises:
            UpstreamQuotaExceeded: Provider quota exhausted or key forbidden
        """
        found: list[VideoCandidate] = []
        for keyword in keywords:
            try:
                results = await self.searcher.search(keyword)
            except UpstreamQuotaExceeded as e:
                debug.append(f"Search '{keyword}': quota exceeded ({e.message})")
                self.olog.error(STEP, f"Video search quota exceeded: {e.message}")
                raise
            except Exception as e:
                debug.append(f"Search '{keyword}': failed ({e})")
                self.olog.warning(STEP, f"Search for '{keyword}' failed, skipping")
                logger.warning("Keyword search failed | keyword=%s error=%s", keyword, e)
                continue
            debug.append(f"Search '{keyword}': {len(results)} results")
            found.extend(results)

        unique = dedupe_candidates(found)
        debug.append(f"Deduplicated {len(found)} results to {len(unique)} candidates")
        self.olog.graded(
            STEP,
            f"Found {len(unique)} unique candidates from {len(keywords)} searches",
            grade_search(len(found), len(unique)),
        )
        return unique

    async def filter_candidates(
        self,
        news_summary: str,
        candidates: list[VideoCandidate],
        debug: list[str],
    ) -> set[str]:
        """Phase 3: AI relevance filter. Returns approved ids."""
        evaluations = await self.client.generate_structured(
            build_filter_prompt(news_summary, candidates, self.config.description_preview_chars),
            list[VideoEvaluation],
            system_prompt=FILTER_SYSTEM_PROMPT,
            stage=STEP,
        )
        approved, unknown = approved_ids(candidates, evaluations)

        for evaluation in evaluations:
            verdict = "approve" if evaluation.is_relevant else "reject"
            self.olog.ai_decision(
                FILTER_STEP,
                f"{verdict.title()} {evaluation.external_id}: {evaluation.reason or 'no reason given'}",
                decision=verdict,
            )
        if unknown:
            debug.append(f"Ignored verdicts for unknown ids: {unknown}")
            self.olog.warning(FILTER_STEP, f"Filter returned {len(unknown)} unknown ids")
        if len(evaluations) != len(candidates):
            debug.append(f"Filter returned {len(evaluations)} verdicts for {len(candidates)} candidates")

        debug.append(f"Filter approved {len(approved)}/{len(candidates)}")
        return approved

    async def run(self, news_summary: str) -> VideoDiscoveryResult:
        """Run all four phases.

        Raises:
            UpstreamQuotaExceeded: Search quota exhausted (fatal)
            SchemaMismatch: Keyword or verdict output could not be parsed
            StageFailure: Any other generation failure
        """
        debug: list[str] = []
        self.candidates_found = 0

        keywords = await self.generate_keywords(news_summary)
        debug.append(f"Keywords: {keywords}")

        candidates = await self.search_all(keywords, debug)
        self.candidates_found = len(candidates)
        if not candidates:
            debug.append("No candidates found; skipping filter")
            self.olog.warning(STEP, "No video candidates found")
            return VideoDiscoveryResult(candidates=[], queries=keywords, debug=debug)

        approved = await self.filter_candidates(news_summary, candidates, debug)
        limit = min(self.config.max_videos, MAX_VIDEOS_LIMIT)
        selected = [c for c in candidates if c.external_id in approved][:limit]
        debug.append(f"Selected {len(selected)} videos")

        self.olog.success(STEP, f"Selected {len(selected)} of {len(candidates)} candidates")
        logger.info(
            "Video discovery done | keywords=%d candidates=%d approved=%d selected=%d",
            len(keywords), len(candidates), len(approved), len(selected),
        )
        return VideoDiscoveryResult(candidates=selected, queries=keywords, debug=debug)
