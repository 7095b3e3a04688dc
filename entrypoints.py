"""JSON entry points for callers that drive the stages one at a time.

Each function accepts a JSON object (as a dict) and returns a JSON object.
Errors never raise: they come back as ``{"error": ..., "stage": ...}`` plus
any diagnostics (the model list for news discovery, a stack trace for video
discovery). Inputs are validated against typed records first.

    news_discovery          {topic} -> {newsSummary, sources}
    deep_verification       {newsSummary, sources} -> {deepAnalysis}
    video_discovery         {newsSummary} -> {candidates, queries, debug}
    synthesize_and_persist  {newsSummary, deepAnalysis, sources, videos,
                             queries, topic, reportId?, isPublic?, userId?}
                            -> {id, summary}
"""

import logging
import traceback
from typing import Any

from pydantic import Field, ValidationError, field_validator

from agents.llm import GenerationClient
from agents.news import NewsDiscoveryStage
from agents.synthesizer import SynthesisStage
from agents.verifier import DeepVerificationStage
from agents.video_scout import VideoDiscoveryStage, VideoSearcher
from config import Config
from database import ReportStore
from errors import ConfigurationError, PipelineError
from models.base import CamelModel
from models.news import Source
from models.request import ResearchRequest
from models.video import Video
from observability.orchestrator_log import OrchestratorLog
from persistence import ReportPersistence
from tools.youtube import YouTubeSearch

logger = logging.getLogger(__name__)


class NewsInput(CamelModel):
    topic: str = ""


class DeepInput(CamelModel):
    news_summary: str = ""
    sources: list[str] = Field(default_factory=list)

    @field_validator("sources", mode="before")
    @classmethod
    def _urls(cls, value: Any) -> Any:
        # Accept plain URLs or {title, url} objects
        if isinstance(value, list):
            return [v.get("url", "") if isinstance(v, dict) else v for v in value]
        return value


class VideoInput(CamelModel):
    news_summary: str


class SynthesisInput(CamelModel):
    news_summary: str
    deep_analysis: str = ""
    sources: list[Source] = Field(default_factory=list)
    videos: list[Video] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)
    topic: str = ""
    regions: dict[str, bool] = Field(default_factory=dict)
    report_id: str | None = None
    is_public: bool = False
    user_id: str = ""


def _require(config: Config, *names: str) -> None:
    missing = [name for name in names if name in config.missing_credentials()]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")


def _invalid(e: ValidationError, stage: str) -> dict[str, Any]:
    return {"error": f"Invalid input: {e.errors(include_url=False)}", "stage": stage}


async def news_discovery(
    payload: dict[str, Any],
    config: Config | None = None,
    client: GenerationClient | None = None,
) -> dict[str, Any]:
    """{topic} -> {newsSummary, sources[]} or {error, availableModels}."""
    config = config or Config.load()
    try:
        data = NewsInput.model_validate(payload)
        _require(config, "GEMINI_API_KEY")
        result = await NewsDiscoveryStage(client or GenerationClient(config)).run(data.topic)
        return result.to_json_dict()
    except ValidationError as e:
        return _invalid(e, "news_discovery")
    except PipelineError as e:
        logger.error("News discovery failed | error=%s", e.message)
        return e.to_payload()


async def deep_verification(
    payload: dict[str, Any],
    config: Config | None = None,
    client: GenerationClient | None = None,
) -> dict[str, Any]:
    """{newsSummary, sources[]} -> {deepAnalysis} or {error}."""
    config = config or Config.load()
    try:
        data = DeepInput.model_validate(payload)
        _require(config, "GEMINI_API_KEY")
        stage = DeepVerificationStage(client or GenerationClient(config), config)
        return {"deepAnalysis": await stage.run(data.news_summary, data.sources)}
    except ValidationError as e:
        return _invalid(e, "deep_verification")
    except PipelineError as e:
        logger.error("Deep verification failed | error=%s", e.message)
        return e.to_payload()


async def video_discovery(
    payload: dict[str, Any],
    config: Config | None = None,
    client: GenerationClient | None = None,
    searcher: VideoSearcher | None = None,
) -> dict[str, Any]:
    """{newsSummary} -> {candidates[], queries[], debug[]} or {error, stack}."""
    config = config or Config.load()
    try:
        data = VideoInput.model_validate(payload)
        _require(config, "GEMINI_API_KEY", "YOUTUBE_API_KEY")
        searcher = searcher or YouTubeSearch(
            config.youtube_api_key,
            max_results=config.results_per_keyword,
            max_age_days=config.video_max_age_days,
            timeout=config.request_timeout,
        )
        stage = VideoDiscoveryStage(client or GenerationClient(config), searcher, config)
        return (await stage.run(data.news_summary)).to_json_dict()
    except ValidationError as e:
        return {**_invalid(e, "video_discovery"), "stack": traceback.format_exc()}
    except PipelineError as e:
        logger.error("Video discovery failed | type=%s error=%s", type(e).__name__, e.message)
        return {**e.to_payload(), "stack": traceback.format_exc()}
    except Exception as e:
        logger.error("Video discovery crashed | type=%s error=%s", type(e).__name__, e, exc_info=True)
        return {"error": str(e) or type(e).__name__, "stage": "video_discovery", "stack": traceback.format_exc()}


async def synthesize_and_persist(
    payload: dict[str, Any],
    config: Config | None = None,
    client: GenerationClient | None = None,
    store: ReportStore | None = None,
) -> dict[str, Any]:
    """Synthesize the report and persist it: -> {id, summary} or {error}."""
    config = config or Config.load()
    owns_store = store is None
    store = store or ReportStore(config.db_path)
    try:
        data = SynthesisInput.model_validate(payload)
        _require(config, "GEMINI_API_KEY")
        request = ResearchRequest(
            topic=data.topic,
            regions=data.regions,
            report_id=data.report_id,
            is_public=data.is_public,
            user_id=data.user_id,
        )
        topic = request.resolve_topic(config.region_keywords)
        olog = OrchestratorLog(store, report_id=data.report_id)

        synthesis = await SynthesisStage(client or GenerationClient(config), olog).run(
            topic, data.news_summary, data.deep_analysis, data.videos, data.queries, data.sources,
        )
        content = ReportPersistence.build_content(
            synthesis.final_report, synthesis.ideas, data.sources, data.videos, data.queries,
        )
        report_id = await ReportPersistence(store).save(
            content,
            topic=topic,
            report_type=request.report_type,
            report_id=data.report_id,
            is_public=data.is_public,
            user_id=data.user_id,
        )
        if olog.report_id is None:
            olog.bind(report_id)
        olog.success("persistence", "Report saved")
        return {"id": report_id, "summary": synthesis.final_report}
    except ValidationError as e:
        return _invalid(e, "synthesis")
    except PipelineError as e:
        logger.error("Synthesis/persist failed | stage=%s error=%s", e.stage or "-", e.message)
        return e.to_payload()
    finally:
        if owns_store:
            store.close()
