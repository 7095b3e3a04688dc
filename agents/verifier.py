"""Deep verification stage: cross-check the summary against source pages.

Scrapes the first few cited pages concurrently, keeps only extracts long
enough to be real article text, and asks the generation model for facts
the summary missed and any discrepancies. When no page is usable the
stage returns DEEP_FALLBACK without calling the model.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from agents.llm import GenerationClient
from config import Config
from observability.orchestrator_log import OrchestratorLog
from observability.quality import grade_scrape
from tools.fetch import PageContent, fetch_page

logger = logging.getLogger(__name__)

STEP = "deep_verification"

DEEP_FALLBACK = "Could not scrape deep content. Relying on summary."

VERIFIER_SYSTEM_PROMPT = """You are an investigative fact-checker. You compare a news \
summary against the full text of its sources.

Output markdown with:
- New facts, figures, names and quotes present in the sources but absent from the summary
- Discrepancies between the summary and the sources, with the source URL
- Anything the sources report as unconfirmed

Do not repeat what the summary already says."""

PageFetcher = Callable[..., Awaitable[PageContent]]


def build_verifier_prompt(news_summary: str, pages: list[PageContent]) -> str:
    blocks = "\n\n".join(f"SOURCE: {page.url}\nCONTENT:\n{page.content}\n---" for page in pages)
    return (
        f"ORIGINAL SUMMARY:\n{news_summary}\n\n"
        f"FULL SOURCE TEXT:\n{blocks}\n\n"
        "Extract the facts missing from the summary and flag discrepancies."
    )


class DeepVerificationStage:
    """Scrape top sources and extract findings absent from the summary.

    Attributes:
        pages_used: Number of pages that passed the length threshold on the
            last run (for run metrics)
    """

    def __init__(
        self,
        client: GenerationClient,
        config: Config,
        olog: OrchestratorLog | None = None,
        fetcher: PageFetcher = fetch_page,
    ):
        self.client = client
        self.config = config
        self.olog = olog or OrchestratorLog()
        self.fetcher = fetcher
        self.pages_used = 0

    async def _fetch(self, url: str) -> PageContent:
        try:
            return await self.fetcher(
                url,
                timeout=self.config.scrape_timeout,
                max_length=self.config.scrape_max_chars,
            )
        except Exception as e:
            return PageContent(url=url, content="", success=False, error=str(e))

    async def scrape(self, urls: list[str]) -> list[PageContent]:
        """Fetch the first sources and return usable pages in source order."""
        selected = [u for u in urls if u and u != "#"][: self.config.deep_source_limit]
        pages = await asyncio.gather(*(self._fetch(url) for url in selected))

        usable = []
        for page in pages:
            if not page.success:
                logger.debug("Scrape failed | url=%s error=%s", page.url, page.error)
                self.olog.info(STEP, f"Could not scrape {page.url}: {page.error}")
            elif len(page.content) <= self.config.scrape_min_chars:
                self.olog.info(STEP, f"Discarded {page.url}: only {len(page.content)} chars")
            else:
                usable.append(page)
        if selected:
            self.olog.graded(
                STEP,
                f"Scraped {len(usable)}/{len(selected)} sources with usable content",
                grade_scrape(len(selected), len(usable)),
            )
        return usable

    async def run(self, news_summary: str, source_urls: list[str]) -> str:
        """Return a markdown deep analysis, or DEEP_FALLBACK if nothing was usable.

        Raises:
            PipelineError: The analysis generation call failed
        """
        self.pages_used = 0
        pages = await self.scrape(source_urls)
        if not pages:
            self.olog.warning(STEP, "No usable source content; relying on summary")
            return DEEP_FALLBACK

        self.pages_used = len(pages)
        self.olog.info(STEP, f"Analyzing {len(pages)} scraped sources")
        analysis = await self.client.generate_text(
            build_verifier_prompt(news_summary, pages),
            system_prompt=VERIFIER_SYSTEM_PROMPT,
            stage=STEP,
        )
        self.olog.success(STEP, "Deep analysis complete")
        logger.info("Deep verification done | pages=%d chars=%d", len(pages), len(analysis))
        return analysis
