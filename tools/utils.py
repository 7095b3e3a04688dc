"""Shared HTTP helpers for the tools package.

Holds the browser User-Agent, the certifi-backed SSL context and a small
JSON GET helper used by the video search and model-listing calls.
"""

import ssl
from typing import Any

import aiohttp
import certifi

# Browser-like User-Agent to avoid being blocked by some servers
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with optional certificate verification.

    Args:
        verify: If True, verify certificates using the certifi bundle.
                If False, disable verification (for problematic servers).
    """
    if verify:
        return ssl.create_default_context(cafile=certifi.where())
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


async def get_json(
    url: str,
    params: dict[str, Any] | None = None,
    timeout: float = 10.0,
) -> tuple[int, Any]:
    """GET a JSON API endpoint.

    Returns:
        (HTTP status, decoded body). The body is None when the response is
        not valid JSON; error bodies are returned, not raised.

    Raises:
        aiohttp.ClientError: On connection failures
        asyncio.TimeoutError: When the request exceeds the timeout
    """
    async with aiohttp.ClientSession() as session:
        async with session.get(
            url,
            params=params,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            ssl=create_ssl_context(True),
        ) as resp:
            try:
                data = await resp.json(content_type=None)
            except ValueError:
                data = None
            return resp.status, data
