"""Video evidence models used by the discovery and transcript stages.

Model Hierarchy:
    VideoCandidate: A search result not yet judged for relevance
    VideoEvaluation: One relevance verdict from the AI filter
    Video: An approved candidate with its transcript attached (persisted)
    VideoDiscoveryResult: Output of the video discovery stage
"""

from pydantic import Field

from models.base import CamelModel


class VideoCandidate(CamelModel):
    """A video search result.

    Attributes:
        external_id: Platform video id (unique per platform), JSON key "id"
        title: Video title
        channel: Channel display name
        description: Snippet description from the search API
        found_by_keyword: The search keyword that first surfaced this video
    """

    external_id: str = Field(alias="id", description="Platform video id")
    title: str = Field(default="", description="Video title")
    channel: str = Field(default="", description="Channel name")
    description: str = Field(default="", description="Search snippet description")
    found_by_keyword: str = Field(default="", description="Keyword that found this video")

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.external_id}"

    def __str__(self) -> str:
        return f"VideoCandidate({self.external_id}, '{self.title[:50]}')"


class VideoEvaluation(CamelModel):
    """Relevance verdict for one candidate, as produced by the filter model."""

    external_id: str = Field(alias="id", description="Id of the evaluated video")
    is_relevant: bool = Field(description="True only if the video covers the specific news event")
    reason: str | None = Field(default=None, description="Short justification")


class Video(VideoCandidate):
    """An approved candidate with its transcript, persisted inside the report."""

    transcript: str = Field(default="", description="Transcript text or placeholder")


class VideoDiscoveryResult(CamelModel):
    """Output of the video discovery stage.

    Attributes:
        candidates: Approved candidates in dedup order (transcripts not attached)
        queries: Keywords used for the search
        debug: Ordered human-readable trace lines
    """

    candidates: list[VideoCandidate] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)
    debug: list[str] = Field(default_factory=list)
