"""External capability clients for the Sentinel pipeline.

fetch_page:
    Fetch a URL and extract its main readable text.
    Handles SSL fallback and strips navigation/ads/scripts.

YouTubeSearch:
    Keyword search against the YouTube Data API v3.
    Raises UpstreamQuotaExceeded on 403, TransientFetchFailure otherwise.

TranscriptFetcher / TranscriptAggregationStage:
    Caption text per video, with a placeholder when unavailable.

Example:
    >>> from tools import fetch_page
    >>> page = await fetch_page("https://example.com/article")
    >>> page.success, len(page.content)
"""

from tools.utils import create_ssl_context, get_json, USER_AGENT
from tools.fetch import fetch_page, extract_main_text, PageContent
from tools.youtube import YouTubeSearch
from tools.transcripts import (
    TRANSCRIPT_UNAVAILABLE,
    TranscriptAggregationStage,
    TranscriptFetcher,
)

__all__ = [
    "fetch_page",
    "extract_main_text",
    "PageContent",
    "YouTubeSearch",
    "TranscriptFetcher",
    "TranscriptAggregationStage",
    "TRANSCRIPT_UNAVAILABLE",
    "create_ssl_context",
    "get_json",
    "USER_AGENT",
]
