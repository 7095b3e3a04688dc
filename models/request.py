"""Research request model: the immutable input to one pipeline run."""

from pydantic import ConfigDict, Field

from config import DEFAULT_REGION_KEYWORDS, DEFAULT_TOPIC
from models.base import CamelModel
from models.report import ReportType


class ResearchRequest(CamelModel):
    """Input to a pipeline run.

    A request either names a topic explicitly ("manual" report) or leaves it
    empty, in which case the topic is built from the enabled region flags
    ("weekly" report).

    Attributes:
        topic: Explicit research topic (may be empty)
        regions: Region flags, e.g. {"pakistan": True, "worldwide": False}
        report_id: Existing report to update instead of creating a new one
        is_public: Visibility of a newly created report
        user_id: Owner of a newly created report

    Example:
        >>> req = ResearchRequest(topic="", regions={"pakistan": True})
        >>> req.resolve_topic()
        'Pakistan'
        >>> req.report_type
        <ReportType.WEEKLY: 'weekly'>
    """

    model_config = ConfigDict(frozen=True)

    topic: str = Field(default="", description="Explicit research topic")
    regions: dict[str, bool] = Field(default_factory=dict, description="Region flags")
    report_id: str | None = Field(default=None, description="Existing report id to update")
    is_public: bool = Field(default=False, description="Visibility of a new report")
    user_id: str = Field(default="", description="Owning user id")

    @property
    def report_type(self) -> ReportType:
        """MANUAL when a topic was supplied, WEEKLY when it was defaulted."""
        return ReportType.MANUAL if self.topic.strip() else ReportType.WEEKLY

    def resolve_topic(self, region_keywords: dict[str, str] | None = None) -> str:
        """Return the topic to research.

        Args:
            region_keywords: Mapping of region flag -> search phrase

        Returns:
            The explicit topic, else the enabled regions joined with " and ",
            else the global default topic.
        """
        if self.topic.strip():
            return self.topic.strip()
        keywords = region_keywords if region_keywords is not None else DEFAULT_REGION_KEYWORDS
        phrases = [keywords[name] for name, enabled in self.regions.items() if enabled and name in keywords]
        return " and ".join(phrases) if phrases else DEFAULT_TOPIC
