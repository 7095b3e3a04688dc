"""Page fetching tool for deep verification.

Fetches source pages cited by the news discovery stage and extracts their
main readable text, stripping page chrome (navigation, footers, sidebars,
ad containers) as well as scripts and styles.

Features:
    - SSL fallback for problematic certificates
    - Chrome-stripping HTML-to-text conversion
    - Content truncation for large pages
    - Never raises: failures come back as PageContent(success=False)
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from html.parser import HTMLParser
from io import StringIO

import aiohttp

from tools.utils import create_ssl_context, USER_AGENT

logger = logging.getLogger(__name__)


class _MainTextExtractor(HTMLParser):
    """Extract readable text from HTML, skipping non-content regions.

    Content inside SKIP_TAGS, or inside any element whose class list
    contains an ad marker, is dropped.

    Usage:
        >>> parser = _MainTextExtractor()
        >>> parser.feed("<p>Hello <nav>menu</nav> world</p>")
        >>> parser.get_text()
        'Hello  world'
    """

    SKIP_TAGS = frozenset({
        "script", "style", "head", "meta", "link", "noscript", "iframe", "svg",
        "nav", "footer", "header", "aside",
    })
    AD_CLASSES = frozenset({"ads", "advertisement", "ad-container", "ad-slot"})
    # Elements with no end tag; never push these on the stack
    VOID_TAGS = frozenset({
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "meta", "link", "param", "source", "track", "wbr",
    })

    def __init__(self):
        super().__init__()
        self._buffer = StringIO()
        self._stack: list[tuple[str, bool]] = []  # (tag, skipping)
        self._skip_depth = 0

    def _is_ad(self, attrs) -> bool:
        for name, value in attrs:
            if name == "class" and value:
                if self.AD_CLASSES.intersection(value.lower().split()):
                    return True
        return False

    def handle_starttag(self, tag, attrs):
        if tag in self.VOID_TAGS:
            return
        skipping = tag in self.SKIP_TAGS or self._is_ad(attrs)
        self._stack.append((tag, skipping))
        if skipping:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in self.VOID_TAGS:
            return
        # Pop up to the matching open tag; tolerates unclosed children
        for i in range(len(self._stack) - 1, -1, -1):
            if self._stack[i][0] == tag:
                for _, skipping in self._stack[i:]:
                    if skipping:
                        self._skip_depth -= 1
                del self._stack[i:]
                return

    def handle_data(self, data):
        if self._skip_depth == 0:
            self._buffer.write(data)

    def get_text(self) -> str:
        return self._buffer.getvalue()


def extract_main_text(html: str) -> str:
    """Extract readable main text from HTML with whitespace collapsed."""
    parser = _MainTextExtractor()
    try:
        parser.feed(html)
        parser.close()
        text = parser.get_text()
    except Exception:
        # Fallback: strip tags with regex
        text = re.sub(r"<[^>]+>", " ", html)

    return re.sub(r"\s+", " ", text).strip()


@dataclass
class PageContent:
    """Fetched page text."""

    url: str
    content: str
    success: bool
    error: str | None = None


async def fetch_page(
    url: str,
    timeout: float = 8.0,
    max_length: int = 15000,
) -> PageContent:
    """Fetch a page and extract its main text.

    Args:
        url: Page URL
        timeout: Total request timeout in seconds
        max_length: Keep at most this many characters of extracted text

    Returns:
        PageContent with extracted text or the error
    """
    logger.debug("Fetching page: %s", url)

    async def fetch_with_ssl(session: aiohttp.ClientSession, verify: bool) -> str:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers={"User-Agent": USER_AGENT},
            ssl=create_ssl_context(verify),
        ) as resp:
            if resp.status != 200:
                raise aiohttp.ClientResponseError(
                    resp.request_info, resp.history, status=resp.status
                )
            return await resp.text(errors="replace")

    try:
        async with aiohttp.ClientSession() as session:
            try:
                html_content = await fetch_with_ssl(session, verify=True)
            except aiohttp.ClientSSLError:
                logger.debug("SSL error, retrying without verification: %s", url)
                html_content = await fetch_with_ssl(session, verify=False)

        content = extract_main_text(html_content)[:max_length]
        return PageContent(url=url, content=content, success=True)

    except aiohttp.ClientResponseError as e:
        return PageContent(url=url, content="", success=False, error=f"HTTP {e.status}")
    except asyncio.TimeoutError:
        return PageContent(url=url, content="", success=False, error=f"Timed out after {timeout}s")
    except Exception as e:
        logger.warning("Fetch error for %s: %s", url, e)
        return PageContent(url=url, content="", success=False, error=str(e))
