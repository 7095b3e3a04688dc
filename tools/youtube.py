"""YouTube Data API v3 search client.

One call per keyword. A 403 from the provider (quota exhausted or key
forbidden) is raised as UpstreamQuotaExceeded so the video discovery stage
can abort the run; every other failure is a TransientFetchFailure that the
stage skips.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import aiohttp

from errors import TransientFetchFailure, UpstreamQuotaExceeded
from models.video import VideoCandidate
from tools.utils import get_json

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"


def _error_message(data) -> str:
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return str(data["error"].get("message", "")) or "Unknown error"
    return "Unknown error"


def _error_code(status: int, data) -> int:
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        code = data["error"].get("code")
        if isinstance(code, int):
            return code
    return status


class YouTubeSearch:
    """Keyword search against the YouTube Data API.

    Example:
        >>> search = YouTubeSearch(api_key, max_results=3, max_age_days=30)
        >>> candidates = await search.search("flood")
    """

    def __init__(
        self,
        api_key: str,
        max_results: int = 3,
        max_age_days: int = 30,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.max_results = max_results
        self.max_age_days = max_age_days
        self.timeout = timeout

    def _params(self, keyword: str) -> dict[str, str]:
        params = {
            "part": "snippet",
            "q": keyword,
            "maxResults": str(self.max_results),
            "type": "video",
            "order": "date",
            "key": self.api_key,
        }
        if self.max_age_days > 0:
            after = datetime.now(timezone.utc) - timedelta(days=self.max_age_days)
            params["publishedAfter"] = after.strftime("%Y-%m-%dT%H:%M:%SZ")
        return params

    async def search(self, keyword: str) -> list[VideoCandidate]:
        """Search videos for one keyword, newest first.

        Raises:
            UpstreamQuotaExceeded: Provider answered 403
            TransientFetchFailure: Any other failure for this keyword
        """
        try:
            status, data = await get_json(SEARCH_URL, params=self._params(keyword), timeout=self.timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchFailure(f"Video search failed for '{keyword}': {e}") from e

        code = _error_code(status, data)
        if code == 403:
            raise UpstreamQuotaExceeded(_error_message(data))
        if status != 200 or not isinstance(data, dict) or "error" in data:
            raise TransientFetchFailure(
                f"Video search failed for '{keyword}': HTTP {code} {_error_message(data)}"
            )

        candidates = []
        for item in data.get("items", []):
            video_id = (item.get("id") or {}).get("videoId")
            if not video_id:
                continue
            snippet = item.get("snippet") or {}
            candidates.append(VideoCandidate(
                external_id=video_id,
                title=snippet.get("title", ""),
                channel=snippet.get("channelTitle", ""),
                description=snippet.get("description", ""),
                found_by_keyword=keyword,
            ))

        logger.debug("Video search | keyword=%s results=%d", keyword, len(candidates))
        return candidates
