"""News discovery stage: topic -> grounded news summary + citations.

A single grounded search call. Missing citation metadata yields an empty
source list, not an error. A failing call is fatal for the run; before the
error propagates, the stage attaches the list of models visible to the
configured key (diagnostic only, never replaces the original error).
"""

import logging

from agents.llm import GenerationClient
from errors import PipelineError, StageFailure
from models.news import NewsResult
from observability.orchestrator_log import OrchestratorLog

logger = logging.getLogger(__name__)

STEP = "news_discovery"

NEWS_SYSTEM_PROMPT = """You are a news intelligence researcher. Use web search to find \
the most recent, credible reporting and summarize it factually.

- Prefer established outlets and primary sources
- Report what happened, who is involved, where and when
- Distinguish confirmed facts from claims
- Do not speculate beyond the sources"""


def build_news_prompt(topic: str) -> str:
    return (
        f"Find the latest credible news from the last 24 hours about: {topic}.\n"
        "Summarize the key events in a few concise paragraphs."
    )


class NewsDiscoveryStage:
    """Turns a topic into a news summary with source citations.

    Example:
        >>> stage = NewsDiscoveryStage(client, olog)
        >>> result = await stage.run("Example Event")
        >>> result.news_summary, result.source_urls()
    """

    def __init__(self, client: GenerationClient, olog: OrchestratorLog | None = None):
        self.client = client
        self.olog = olog or OrchestratorLog()

    async def run(self, topic: str) -> NewsResult:
        """Run grounded search for a topic.

        Raises:
            StageFailure: Empty topic, or the search capability failed
            PipelineError: Any typed error from the client, with an
                ``availableModels`` diagnostic attached
        """
        topic = topic.strip()
        if not topic:
            raise StageFailure("Topic is required", stage=STEP)

        self.olog.info(STEP, f"Searching latest news for '{topic}'")
        try:
            summary, sources = await self.client.grounded_search(
                build_news_prompt(topic), system_prompt=NEWS_SYSTEM_PROMPT, stage=STEP,
            )
        except PipelineError as e:
            e.stage = STEP
            e.diagnostics["availableModels"] = await self.client.list_available_models()
            self.olog.error(STEP, f"News search failed: {e.message}")
            raise

        if not sources:
            self.olog.warning(STEP, "Search returned no citation metadata")
        result = NewsResult(news_summary=summary, sources=sources)
        self.olog.success(STEP, f"News summary ready with {len(sources)} sources")
        logger.info("News discovery done | topic=%s sources=%d chars=%d", topic, len(sources), len(summary))
        return result
