"""Research pipeline orchestration.

A single in-process orchestrator owns the PipelineContext for one run and
calls the stages as ordered steps:

Pipeline Flow:
    1. NEWS: grounded search for the topic (fatal on failure)
    2. DEEP: scrape top sources and extract missed facts (non-fatal; an
       error leaves the deep analysis empty)
    3. VIDEOS: keywords, sequential search, dedup, AI filter, cap (fatal on
       quota exhaustion or unparseable model output)
    4. TRANSCRIPTS: captions per approved video (never fails)
    5. SYNTHESIS: final report, then content ideas (fatal on failure)
    6. PERSIST: create or update the report (fatal on failure)

Nothing is written to the report store before step 6 unless the caller
asked for a generating placeholder, in which case the orchestrator log
streams live under the placeholder id.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from agents.llm import GenerationClient
from agents.news import NewsDiscoveryStage
from agents.synthesizer import Synthesis, SynthesisStage
from agents.verifier import DeepVerificationStage, PageFetcher
from agents.video_scout import VideoDiscoveryStage, VideoSearcher
from config import Config
from database import ReportStore
from errors import ConfigurationError, PipelineError
from models.news import Source
from models.request import ResearchRequest
from models.video import Video
from observability.logging import clear_context, set_report_context, set_run_context
from observability.orchestrator_log import OrchestratorLog
from observability.tracing import setup_tracing, trace_operation
from persistence import ReportPersistence
from tools.fetch import fetch_page
from tools.transcripts import (
    TRANSCRIPT_UNAVAILABLE,
    TranscriptAggregationStage,
    TranscriptFetcher,
    TranscriptSource,
)
from tools.youtube import YouTubeSearch

logger = logging.getLogger(__name__)

STEP = "orchestrator"


@dataclass
class PipelineContext:
    """Mutable accumulator threaded through the stages of one run."""

    topic: str
    news_summary: str = ""
    sources: list[Source] = field(default_factory=list)
    deep_analysis: str = ""
    videos: list[Video] = field(default_factory=list)
    search_queries: list[str] = field(default_factory=list)


@dataclass
class RunStats:
    """Counters from a single pipeline run.

    Attributes:
        sources: Citations returned by news discovery
        pages_scraped: Source pages long enough to feed deep analysis
        candidates: Unique video candidates after dedup
        approved: Videos kept after filter and cap
        transcripts: Approved videos with a real transcript
        input_tokens: Model input tokens across all calls
        output_tokens: Model output tokens across all calls
        duration: Run time in seconds
    """

    sources: int = 0
    pages_scraped: int = 0
    candidates: int = 0
    approved: int = 0
    transcripts: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


@dataclass
class RunResult:
    """What a completed run hands back to the caller."""

    report_id: str
    context: PipelineContext
    synthesis: Synthesis
    stats: RunStats
    debug: list[str] = field(default_factory=list)


class ResearchPipeline:
    """Runs the full research pipeline for one request at a time.

    External capabilities are injectable so tests can substitute fakes;
    by default they are built from the configuration.

    Example:
        >>> with ReportStore(config.db_path) as store:
        ...     pipeline = ResearchPipeline(config, store)
        ...     result = await pipeline.run(ResearchRequest(topic="Example Event"))
        ...     print(result.report_id)
    """

    def __init__(
        self,
        config: Config,
        store: ReportStore,
        client: GenerationClient | None = None,
        searcher: VideoSearcher | None = None,
        transcripts: TranscriptSource | None = None,
        fetcher: PageFetcher = fetch_page,
    ):
        self.config = config
        self.store = store
        self.client = client or GenerationClient(config)
        self.searcher = searcher or YouTubeSearch(
            config.youtube_api_key,
            max_results=config.results_per_keyword,
            max_age_days=config.video_max_age_days,
            timeout=config.request_timeout,
        )
        self.transcripts = transcripts or TranscriptFetcher(
            config.transcript_languages, timeout=config.request_timeout,
        )
        self.fetcher = fetcher
        self.persistence = ReportPersistence(store)

        if config.enable_logfire:
            setup_tracing(enabled=True, service_name="sentinel", token=config.logfire_token)

    async def run(
        self,
        request: ResearchRequest,
        placeholder: bool = False,
        skip_deep: bool = False,
    ) -> RunResult:
        """Execute one complete run.

        Args:
            request: The research request
            placeholder: Pre-create a generating report (ignored when the
                request already names a report id)
            skip_deep: Skip deep verification

        Returns:
            RunResult with the persisted report id

        Raises:
            ConfigurationError: Credentials missing; nothing was attempted
            PipelineError: A stage-fatal error; remaining stages did not run
        """
        if missing := self.config.missing_credentials():
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id, request.report_id)
        start = time.time()
        stats = RunStats()
        tokens_before = (self.client.input_tokens, self.client.output_tokens)

        topic = request.resolve_topic(self.config.region_keywords)
        ctx = PipelineContext(topic=topic)
        olog = OrchestratorLog(self.store, report_id=request.report_id)
        report_id = request.report_id

        try:
            if placeholder and not report_id:
                report_id = await self.persistence.create_placeholder(request, topic)
                olog.bind(report_id)
                set_report_context(report_id)

            olog.info(STEP, f"Research started for '{topic}' ({request.report_type.value})")
            logger.info("Pipeline started | topic=%s type=%s report_id=%s", topic, request.report_type.value, report_id or "-")

            # 1. News discovery
            with trace_operation("news_discovery", {"topic": topic}) as attrs:
                news = await NewsDiscoveryStage(self.client, olog).run(topic)
                ctx.news_summary = news.news_summary
                ctx.sources = news.sources
                stats.sources = attrs["sources"] = len(news.sources)

            # 2. Deep verification (optional enrichment)
            if skip_deep:
                olog.info("deep_verification", "Deep verification skipped")
            else:
                with trace_operation("deep_verification") as attrs:
                    verifier = DeepVerificationStage(self.client, self.config, olog, fetcher=self.fetcher)
                    try:
                        ctx.deep_analysis = await verifier.run(ctx.news_summary, news.source_urls())
                    except Exception as e:
                        olog.warning("deep_verification", f"Deep verification failed, continuing without it: {e}")
                        logger.warning("Deep verification failed | type=%s error=%s", type(e).__name__, e)
                        ctx.deep_analysis = ""
                    stats.pages_scraped = attrs["pages"] = verifier.pages_used

            # 3. Video discovery
            with trace_operation("video_discovery") as attrs:
                scout = VideoDiscoveryStage(self.client, self.searcher, self.config, olog)
                discovery = await scout.run(ctx.news_summary)
                ctx.search_queries = discovery.queries
                stats.candidates = scout.candidates_found
                stats.approved = attrs["approved"] = len(discovery.candidates)

            # 4. Transcripts
            with trace_operation("transcripts", {"videos": len(discovery.candidates)}):
                stage = TranscriptAggregationStage(self.transcripts, olog, self.config.max_workers)
                ctx.videos = await stage.run(discovery.candidates)
                stats.transcripts = sum(1 for v in ctx.videos if v.transcript != TRANSCRIPT_UNAVAILABLE)

            # 5. Synthesis
            with trace_operation("synthesis"):
                synthesis = await SynthesisStage(self.client, olog).run(
                    topic, ctx.news_summary, ctx.deep_analysis, ctx.videos, ctx.search_queries, ctx.sources,
                )

            # 6. Persistence
            with trace_operation("persistence") as attrs:
                content = ReportPersistence.build_content(
                    synthesis.final_report, synthesis.ideas, ctx.sources, ctx.videos, ctx.search_queries,
                )
                report_id = await self.persistence.save(
                    content,
                    topic=topic,
                    report_type=request.report_type,
                    report_id=report_id,
                    is_public=request.is_public,
                    user_id=request.user_id,
                )
                attrs["report_id"] = report_id

        except asyncio.CancelledError:
            olog.warning(STEP, "Run cancelled")
            logger.info("Pipeline run cancelled | topic=%s", topic)
            clear_context()
            raise
        except PipelineError as e:
            olog.error(e.stage or STEP, f"Run aborted: {e.message}")
            logger.error("Pipeline aborted | stage=%s type=%s error=%s", e.stage or "-", type(e).__name__, e.message)
            clear_context()
            raise

        if olog.report_id is None:
            olog.bind(report_id)
            set_report_context(report_id)

        stats.input_tokens = self.client.input_tokens - tokens_before[0]
        stats.output_tokens = self.client.output_tokens - tokens_before[1]
        stats.duration = time.time() - start
        olog.success(STEP, f"Report saved with {len(ctx.videos)} videos", metrics=stats.to_dict())
        logger.info(
            "Pipeline done | report_id=%s duration=%.1fs sources=%d videos=%d tokens=%d/%d",
            report_id, stats.duration, stats.sources, len(ctx.videos), stats.input_tokens, stats.output_tokens,
        )
        clear_context()
        return RunResult(
            report_id=report_id,
            context=ctx,
            synthesis=synthesis,
            stats=stats,
            debug=discovery.debug,
        )
