"""Synthesis stage: all gathered evidence -> final report + content ideas.

Two dependent generation calls: the report first, then ideas derived from
the finished report text. The report follows a fixed section skeleton; if
the SOURCES section does not link a cited URL, the missing links are added
to it (or a SOURCES section is appended) so every source is enumerated.
"""

import logging
import re
from dataclasses import dataclass

from agents.llm import GenerationClient
from models.news import Source
from models.video import Video
from observability.orchestrator_log import OrchestratorLog

logger = logging.getLogger(__name__)

STEP = "synthesis"

NO_DEEP_ANALYSIS = "No deep analysis available."
NO_VIDEOS = "No video evidence found."

# Transcripts are clipped in the prompt, not in the stored report
TRANSCRIPT_PROMPT_CHARS = 4000

REPORT_SKELETON = """# [TITLE]

## 🔍 THE OFFICIAL NARRATIVE
(What mainstream reporting says happened)

## 🕵️‍♂️ DEEP DIVE INSIGHTS
(Facts from the full source text that the summary missed, and discrepancies)

## 👁️ ON THE GROUND
(What the video evidence shows, citing video titles and channels)

## 📱 SOCIAL PULSE
(How people are reacting, based on the video evidence)

## 🧠 AGENT'S ANALYSIS
(Your assessment: what is confirmed, what is disputed, what to watch)

## 🔗 SOURCES
(List every source below as a markdown link)"""

SYNTHESIS_SYSTEM_PROMPT = """You are an intelligence analyst writing a news intelligence \
report. Be factual and specific, attribute claims, and separate evidence from analysis. \
Write in markdown and follow the requested structure exactly."""

IDEAS_SYSTEM_PROMPT = """You are a short-form video strategist for a news channel."""


@dataclass
class Synthesis:
    """Output of the synthesis stage."""

    final_report: str
    ideas: str


def _format_videos(videos: list[Video]) -> str:
    if not videos:
        return NO_VIDEOS
    blocks = []
    for i, video in enumerate(videos, 1):
        transcript = video.transcript[:TRANSCRIPT_PROMPT_CHARS]
        blocks.append(f"VIDEO {i}: {video.title} (Channel: {video.channel})\nTRANSCRIPT: {transcript}")
    return "\n\n".join(blocks)


def _format_sources(sources: list[Source]) -> str:
    if not sources:
        return "(no sources cited)"
    return "\n".join(f"- [{s.title}]({s.url})" for s in sources)


def build_report_prompt(
    topic: str,
    news_summary: str,
    deep_analysis: str,
    videos: list[Video],
    queries: list[str],
    sources: list[Source],
) -> str:
    return f"""TOPIC: {topic}

NEWS SUMMARY:
{news_summary}

DEEP ANALYSIS:
{deep_analysis or NO_DEEP_ANALYSIS}

VIDEO SEARCH QUERIES: {", ".join(queries) if queries else "(none)"}

VIDEO EVIDENCE:
{_format_videos(videos)}

SOURCES:
{_format_sources(sources)}

Write the report using exactly this structure:

{REPORT_SKELETON}"""


def build_ideas_prompt(report: str) -> str:
    return (
        f"Based on this report:\n{report}\n\n"
        "Generate 3 viral Instagram Reel ideas. For each give a hook, "
        "the key visual and a one-line script."
    )


_HEADING = re.compile(r"^#{1,6}\s.*$", re.MULTILINE)
_LINK_TARGET = re.compile(r"\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_BARE_ITEM = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+<?(\S+?)>?\s*$", re.MULTILINE)
_EMPTY_MARKER = re.compile(r"^\s*[-*]?\s*\((?:none|no sources cited)\)\s*$", re.IGNORECASE)


def _sources_section(report: str) -> tuple[int, int] | None:
    """Return (start, end) offsets of the SOURCES section body, or None."""
    for match in _HEADING.finditer(report):
        if not re.search(r"\bSOURCES\b", match.group(0).upper()):
            continue
        start = match.end()
        following = _HEADING.search(report, start)
        return start, following.start() if following else len(report)
    return None


def listed_urls(section: str) -> set[str]:
    """Exact link targets in a section: markdown links and bare URL list items."""
    urls = set(_LINK_TARGET.findall(section))
    urls.update(url for url in _BARE_ITEM.findall(section) if "://" in url)
    return urls


def ensure_sources_section(report: str, sources: list[Source]) -> str:
    """Make the SOURCES section link every citation URL.

    Only links inside the SOURCES section count; a URL mentioned elsewhere in
    the report is still added. Missing links are inserted at the end of the
    existing section, or a new section is appended.
    """
    bounds = _sources_section(report)
    listed = listed_urls(report[bounds[0]:bounds[1]]) if bounds else set()

    missing: list[Source] = []
    for source in sources:
        if not source.url or source.url == "#" or source.url in listed:
            continue
        listed.add(source.url)
        missing.append(source)
    lines = [f"- [{s.title}]({s.url})" for s in missing]

    if bounds is None:
        return report.rstrip() + "\n\n## 🔗 SOURCES\n" + ("\n".join(lines) or "(no sources cited)") + "\n"
    if not missing:
        return report

    start, end = bounds
    body = [line for line in report[start:end].strip("\n").splitlines() if not _EMPTY_MARKER.match(line)]
    section = "\n".join([line for line in body if line.strip()] + lines)
    tail = report[end:]
    return report[:start] + "\n" + section + "\n" + ("\n" + tail if tail else "")


class SynthesisStage:
    """Combine stage outputs into the final report and content ideas.

    Example:
        >>> stage = SynthesisStage(client, olog)
        >>> synthesis = await stage.run(topic, summary, deep, videos, queries, sources)
        >>> synthesis.final_report, synthesis.ideas
    """

    def __init__(self, client: GenerationClient, olog: OrchestratorLog | None = None):
        self.client = client
        self.olog = olog or OrchestratorLog()

    async def run(
        self,
        topic: str,
        news_summary: str,
        deep_analysis: str,
        videos: list[Video],
        queries: list[str],
        sources: list[Source],
    ) -> Synthesis:
        """Generate the report, then ideas from it.

        Raises:
            PipelineError: Either generation call failed
        """
        self.olog.info(STEP, f"Writing report from {len(sources)} sources and {len(videos)} videos")
        report = await self.client.generate_text(
            build_report_prompt(topic, news_summary, deep_analysis, videos, queries, sources),
            system_prompt=SYNTHESIS_SYSTEM_PROMPT,
            stage=STEP,
        )
        final_report = ensure_sources_section(report, sources)
        if final_report != report:
            self.olog.info(STEP, "Appended sources missing from the generated report")

        ideas = await self.client.generate_text(
            build_ideas_prompt(final_report),
            system_prompt=IDEAS_SYSTEM_PROMPT,
            stage=STEP,
        )
        self.olog.success(STEP, "Report and content ideas generated")
        logger.info("Synthesis done | report_chars=%d ideas_chars=%d", len(final_report), len(ideas))
        return Synthesis(final_report=final_report, ideas=ideas)
