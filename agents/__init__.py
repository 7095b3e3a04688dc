"""PydanticAI-backed stages of the Sentinel research pipeline.

GenerationClient:
    Grounded search, text and structured generation over PydanticAI agents.

NewsDiscoveryStage:
    Topic -> news summary with citations (Gemini + Google Search grounding).

DeepVerificationStage:
    Scrapes top sources and extracts facts the summary missed.

VideoDiscoveryStage:
    Keywords -> sequential video search -> dedup -> AI relevance filter.

SynthesisStage:
    Final markdown report plus short-form content ideas.

Example:
    >>> from agents import GenerationClient, NewsDiscoveryStage
    >>> client = GenerationClient(config)
    >>> news = await NewsDiscoveryStage(client).run("Example Event")
"""

from agents.llm import GenerationClient
from agents.news import NewsDiscoveryStage
from agents.verifier import DeepVerificationStage, DEEP_FALLBACK
from agents.video_scout import VideoDiscoveryStage
from agents.synthesizer import SynthesisStage, Synthesis

__all__ = [
    "GenerationClient",
    "NewsDiscoveryStage",
    "DeepVerificationStage",
    "DEEP_FALLBACK",
    "VideoDiscoveryStage",
    "SynthesisStage",
    "Synthesis",
]
