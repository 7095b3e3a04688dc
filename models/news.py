"""News discovery models: citations and the grounded news summary."""

from pydantic import Field

from models.base import CamelModel


class Source(CamelModel):
    """A cited news source returned by grounded search.

    Sources keep citation order and are not deduplicated; the search
    provider may return overlapping chunks that point at the same URL.
    """

    title: str = Field(default="Source", description="Page title of the citation")
    url: str = Field(default="#", description="Citation URL")


class NewsResult(CamelModel):
    """Output of the news discovery stage."""

    news_summary: str = Field(description="Generated summary of the latest news")
    sources: list[Source] = Field(default_factory=list, description="Citations in order")

    def source_urls(self) -> list[str]:
        """Return citation URLs in citation order."""
        return [source.url for source in self.sources]
