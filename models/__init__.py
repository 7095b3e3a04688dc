"""Pydantic models for the Sentinel research pipeline.

This package contains the data contracts passed between pipeline stages:

ResearchRequest:
    Immutable input to a run (topic, region flags, optional report id).

Source, NewsResult:
    Output of news discovery (summary + citations).

VideoCandidate, VideoEvaluation, Video, VideoDiscoveryResult:
    Video evidence at each step of discovery, filtering and transcripts.

Report, ReportContent, ReportStatus, ReportType:
    The persisted report and its lifecycle.

OrchestratorLogEntry, LogType, LogData:
    The per-report audit trail.

Example:
    >>> from models import ResearchRequest, Source
    >>> request = ResearchRequest(topic="Example Event")
    >>> request.report_type.value
    'manual'
"""

from models.news import NewsResult, Source
from models.video import Video, VideoCandidate, VideoDiscoveryResult, VideoEvaluation
from models.report import Report, ReportContent, ReportStatus, ReportType
from models.log import LogData, LogType, OrchestratorLogEntry
from models.request import ResearchRequest

__all__ = [
    "ResearchRequest",
    "Source",
    "NewsResult",
    "VideoCandidate",
    "VideoEvaluation",
    "Video",
    "VideoDiscoveryResult",
    "Report",
    "ReportContent",
    "ReportStatus",
    "ReportType",
    "LogType",
    "LogData",
    "OrchestratorLogEntry",
]
