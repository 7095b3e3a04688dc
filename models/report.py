"""Persisted report models.

Model Hierarchy:
    ReportContent: Fields the pipeline is authoritative for (written on
        create and on every update)
    Report: The full stored record, adding identity, ownership and
        visibility fields that only the create path sets

Status Lifecycle:
    generating -> completed. A report is created directly as completed,
    unless a caller pre-creates a generating placeholder. The store never
    moves a completed report back to generating.
"""

from datetime import datetime
from enum import Enum

from pydantic import Field

from models.base import CamelModel
from models.news import Source
from models.video import Video


class ReportStatus(str, Enum):
    """Report lifecycle state."""

    GENERATING = "generating"
    COMPLETED = "completed"


class ReportType(str, Enum):
    """How the report topic was chosen."""

    MANUAL = "manual"  # Topic supplied explicitly
    WEEKLY = "weekly"  # Topic defaulted from region flags


class ReportContent(CamelModel):
    """Content fields written by the persistence stage.

    Attributes:
        summary: Final markdown report
        ideas: Short-form content ideas derived from the report
        status: Lifecycle state
        video_count: Number of videos included (<= max videos)
        sources: News citations
        videos: Videos with transcripts
        queries: Video search keywords
    """

    summary: str = ""
    ideas: str = ""
    status: ReportStatus = ReportStatus.COMPLETED
    video_count: int = 0
    sources: list[Source] = Field(default_factory=list)
    videos: list[Video] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)


class Report(ReportContent):
    """A stored report record.

    Attributes:
        id: Store-assigned identifier
        topic: Research topic
        date: Report date (set at creation)
        type: manual or weekly
        is_public: Visibility flag (create-only)
        user_id: Owner (create-only)
        created_at: Creation time (create-only)
    """

    id: str = ""
    topic: str = ""
    date: datetime
    type: ReportType = ReportType.MANUAL
    is_public: bool = False
    user_id: str = ""
    created_at: datetime

    def __str__(self) -> str:
        return f"Report({self.id}, {self.status.value}, '{self.topic[:40]}')"
