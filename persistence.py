"""Report persistence: the pipeline's only durable side effect.

Create-or-update against the ReportStore:
    - No report id: create a completed report (type manual/weekly, date and
      created_at now) and return the new id
    - Report id given: overwrite content fields only; user_id, is_public,
      created_at and type stay as first written

An update is a single conditional UPDATE: the store refuses to move a
completed report back to generating, so concurrent runs (in this process
or another one sharing the database) cannot regress a finished report.
"""

import logging
import sqlite3
from datetime import datetime, timezone

from config import MAX_VIDEOS_LIMIT
from database import ReportNotFound, ReportStore, StatusRegression
from errors import PersistenceFailure
from models.news import Source
from models.report import Report, ReportContent, ReportStatus, ReportType
from models.request import ResearchRequest
from models.video import Video

logger = logging.getLogger(__name__)


class ReportPersistence:
    """Create-or-update reports against a ReportStore.

    Example:
        >>> persistence = ReportPersistence(store)
        >>> report_id = await persistence.save(content, topic="X", report_type=ReportType.MANUAL)
        >>> await persistence.save(new_content, topic="X", report_type=ReportType.MANUAL, report_id=report_id)
    """

    def __init__(self, store: ReportStore):
        self.store = store

    @staticmethod
    def build_content(
        summary: str,
        ideas: str,
        sources: list[Source],
        videos: list[Video],
        queries: list[str],
        status: ReportStatus = ReportStatus.COMPLETED,
    ) -> ReportContent:
        """Project stage outputs into the stored content fields."""
        videos = list(videos)[:MAX_VIDEOS_LIMIT]
        return ReportContent(
            summary=summary,
            ideas=ideas,
            status=status,
            video_count=len(videos),
            sources=list(sources),
            videos=videos,
            queries=list(queries),
        )

    async def save(
        self,
        content: ReportContent,
        topic: str,
        report_type: ReportType,
        report_id: str | None = None,
        is_public: bool = False,
        user_id: str = "",
    ) -> str:
        """Create a report, or update an existing one's content.

        Returns:
            The report id (new on create, unchanged on update)

        Raises:
            PersistenceFailure: Write failed or the update did not apply
        """
        if report_id:
            try:
                self.store.update_report(report_id, content)
            except (ReportNotFound, StatusRegression) as e:
                raise PersistenceFailure(f"Update did not apply: {e}") from e
            except sqlite3.Error as e:
                raise PersistenceFailure(f"Report update failed: {e}") from e
            logger.info("Report updated | id=%s status=%s videos=%d", report_id, content.status.value, content.video_count)
            return report_id

        now = datetime.now(timezone.utc)
        report = Report(
            **content.model_dump(),
            topic=topic,
            date=now,
            type=report_type,
            is_public=is_public,
            user_id=user_id,
            created_at=now,
        )
        try:
            new_id = self.store.create_report(report)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Report create failed, no report id was produced: {e}") from e
        logger.info("Report created | id=%s type=%s videos=%d", new_id, report_type.value, content.video_count)
        return new_id

    async def create_placeholder(self, request: ResearchRequest, topic: str) -> str:
        """Pre-create a generating report so logs can stream under its id."""
        content = ReportContent(status=ReportStatus.GENERATING)
        return await self.save(
            content,
            topic=topic,
            report_type=request.report_type,
            is_public=request.is_public,
            user_id=request.user_id,
        )
