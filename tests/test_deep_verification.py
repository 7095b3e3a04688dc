import pytest

from agents.verifier import DEEP_FALLBACK, DeepVerificationStage
from tools.fetch import PageContent, extract_main_text
from tests.fakes import FakeClient


def _fetcher(pages: dict[str, str], seen: list[str] | None = None):
    async def fetch(url, timeout=8.0, max_length=15000):
        if seen is not None:
            seen.append(url)
        if url not in pages:
            return PageContent(url=url, content="", success=False, error="HTTP 404")
        return PageContent(url=url, content=pages[url][:max_length], success=True)
    return fetch


class TestScrapeThreshold:
    @pytest.mark.asyncio
    async def test_all_short_pages_yield_fallback(self, config):
        client = FakeClient()
        fetcher = _fetcher({"http://a": "x" * 499, "http://b": "y" * 500})
        stage = DeepVerificationStage(client, config, fetcher=fetcher)

        result = await stage.run("X happened", ["http://a", "http://b"])

        assert result == DEEP_FALLBACK
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_short_pages_excluded_from_prompt(self, config):
        client = FakeClient(texts=["- New fact"])
        fetcher = _fetcher({"http://a": "short text", "http://b": "long " * 200})
        stage = DeepVerificationStage(client, config, fetcher=fetcher)

        result = await stage.run("X happened", ["http://a", "http://b"])

        assert result == "- New fact"
        prompt = client.calls[0][1]
        assert "SOURCE: http://b" in prompt
        assert "SOURCE: http://a" not in prompt
        assert stage.pages_used == 1

    @pytest.mark.asyncio
    async def test_failed_fetches_do_not_abort(self, config):
        async def exploding(url, timeout=8.0, max_length=15000):
            raise RuntimeError("connection reset")

        stage = DeepVerificationStage(FakeClient(), config, fetcher=exploding)

        assert await stage.run("X happened", ["http://a"]) == DEEP_FALLBACK

    @pytest.mark.asyncio
    async def test_only_first_three_sources_scraped(self, config):
        seen: list[str] = []
        urls = [f"http://s{i}" for i in range(5)]
        stage = DeepVerificationStage(FakeClient(), config, fetcher=_fetcher({}, seen))

        await stage.run("X happened", urls)

        assert sorted(seen) == urls[:3]

    @pytest.mark.asyncio
    async def test_no_sources_yields_fallback(self, config):
        stage = DeepVerificationStage(FakeClient(), config, fetcher=_fetcher({}))
        assert await stage.run("X happened", []) == DEEP_FALLBACK


class TestExtractMainText:
    def test_strips_chrome_and_scripts(self):
        html = """
        <html><head><title>t</title><style>body{}</style></head>
        <body>
          <header>Site header</header>
          <nav><a>Home</a></nav>
          <article>
            <p>Main story text.</p>
            <img src="x.png">
            <p>More text.</p>
          </article>
          <div class="sidebar ads">Buy now</div>
          <aside>Related</aside>
          <script>var x = 1;</script>
          <footer>Copyright</footer>
        </body></html>
        """
        text = extract_main_text(html)
        assert text == "Main story text. More text."

    def test_unclosed_tags_do_not_swallow_content(self):
        html = "<div><nav><ul><li>menu</nav><p>Body</p></div>"
        assert extract_main_text(html) == "Body"
