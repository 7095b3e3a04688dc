"""Report store for the Sentinel research pipeline.

This module provides SQLite-based storage for generated reports and their
orchestrator logs. It implements the create-or-update contract used by the
persistence stage and the read paths used by the CLI.

Database Schema:
    reports table:
        - id (TEXT, PK): Store-assigned report id
        - topic (TEXT): Research topic
        - date (INTEGER): Report date (Unix epoch)
        - summary (TEXT): Final markdown report
        - ideas (TEXT): Content ideas
        - status (TEXT): 'generating' or 'completed'
        - video_count (INTEGER): Number of persisted videos
        - sources (TEXT): JSON array of {title, url}
        - videos (TEXT): JSON array of videos with transcripts
        - queries (TEXT): JSON array of search keywords
        - type (TEXT): 'manual' or 'weekly'
        - is_public (INTEGER): 0/1 visibility flag
        - user_id (TEXT): Owning user
        - created_at (INTEGER): Creation time (Unix epoch)
        - updated_at (INTEGER): Last write (Unix epoch)

    orchestrator_logs table:
        - seq (INTEGER, PK): Insertion order
        - report_id (TEXT): Owning report
        - timestamp (INTEGER): Entry time in milliseconds
        - step, message, type (TEXT)
        - data (TEXT): JSON payload or NULL

Features:
    - WAL mode for concurrent read/write access
    - Conditional update that never regresses status to 'generating'
    - Logs always returned sorted by timestamp
    - Context manager support for auto-cleanup
"""

import json
import logging
import sqlite3
import time
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from models.log import LogData, LogType, OrchestratorLogEntry
from models.news import Source
from models.report import Report, ReportContent, ReportStatus, ReportType
from models.video import Video

logger = logging.getLogger(__name__)


class ReportNotFound(LookupError):
    """Raised when updating a report id that does not exist."""


class StatusRegression(ValueError):
    """Raised when an update would move a completed report back to generating."""


def _to_epoch(value: datetime) -> int:
    return int(value.timestamp())


def _from_epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, timezone.utc)


def _dump_list(items: list[Any]) -> str:
    return json.dumps([item.to_json_dict() for item in items], ensure_ascii=False)


class ReportStore:
    """SQLite store for reports and their orchestrator logs.

    Example:
        >>> with ReportStore("reports.db") as store:
        ...     report_id = store.create_report(report)
        ...     store.update_report(report_id, content)
        ...     entries = store.get_logs(report_id)
    """

    SCHEMA = """
    -- One row per report
    CREATE TABLE IF NOT EXISTS reports (
        id TEXT PRIMARY KEY,
        topic TEXT NOT NULL,
        date INTEGER NOT NULL,
        summary TEXT NOT NULL DEFAULT '',
        ideas TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL,
        video_count INTEGER NOT NULL DEFAULT 0,
        sources TEXT NOT NULL DEFAULT '[]',
        videos TEXT NOT NULL DEFAULT '[]',
        queries TEXT NOT NULL DEFAULT '[]',
        type TEXT NOT NULL,
        is_public INTEGER NOT NULL DEFAULT 0,
        user_id TEXT NOT NULL DEFAULT '',
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    );

    -- Index for recent-report listing
    CREATE INDEX IF NOT EXISTS idx_reports_created ON reports(created_at);

    -- Append-only orchestrator log, keyed by report id
    CREATE TABLE IF NOT EXISTS orchestrator_logs (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        report_id TEXT NOT NULL,
        timestamp INTEGER NOT NULL,
        step TEXT NOT NULL,
        message TEXT NOT NULL,
        type TEXT NOT NULL,
        data TEXT
    );

    -- Index for per-report log reads in display order
    CREATE INDEX IF NOT EXISTS idx_logs_report_ts ON orchestrator_logs(report_id, timestamp);
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str):
        """Open (and create if needed) the store.

        Args:
            path: Path to SQLite database file, or ":memory:"
        """
        self.path = Path(path)
        self.conn = sqlite3.connect(str(path))
        self.conn.row_factory = sqlite3.Row

        if str(path) != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.executescript(self.SCHEMA)
        self.conn.commit()
        logger.debug("Report store initialized | path=%s", path)

    # === Reports ===

    def create_report(self, report: Report) -> str:
        """Insert a new report and return its id.

        An id is generated when the report does not carry one.

        Raises:
            sqlite3.IntegrityError: If the id already exists
        """
        report_id = report.id or uuid.uuid4().hex[:20]
        now = int(time.time())
        self.conn.execute(
            """
            INSERT INTO reports
            (id, topic, date, summary, ideas, status, video_count, sources, videos,
             queries, type, is_public, user_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                report_id,
                report.topic,
                _to_epoch(report.date),
                report.summary,
                report.ideas,
                report.status.value,
                report.video_count,
                _dump_list(report.sources),
                _dump_list(report.videos),
                json.dumps(report.queries, ensure_ascii=False),
                report.type.value,
                int(report.is_public),
                report.user_id,
                _to_epoch(report.created_at),
                now,
            ),
        )
        self.conn.commit()
        logger.debug("Report created | id=%s status=%s", report_id, report.status.value)
        return report_id

    def update_report(self, report_id: str, content: ReportContent) -> None:
        """Overwrite the content fields of an existing report.

        Ownership and visibility fields (user_id, is_public, created_at,
        type) are never touched. The write is conditional: a completed
        report cannot be moved back to generating.

        Raises:
            ReportNotFound: If no report has this id
            StatusRegression: If the update would regress the status
        """
        cursor = self.conn.execute(
            """
            UPDATE reports
            SET summary = ?, ideas = ?, status = ?, video_count = ?,
                sources = ?, videos = ?, queries = ?, updated_at = ?
            WHERE id = ?
              AND NOT (status = ? AND ? = ?)
            """,
            (
                content.summary,
                content.ideas,
                content.status.value,
                content.video_count,
                _dump_list(content.sources),
                _dump_list(content.videos),
                json.dumps(content.queries, ensure_ascii=False),
                int(time.time()),
                report_id,
                ReportStatus.COMPLETED.value,
                content.status.value,
                ReportStatus.GENERATING.value,
            ),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            if self.get_report(report_id) is None:
                raise ReportNotFound(f"Report {report_id} does not exist")
            raise StatusRegression(f"Report {report_id} is completed; refusing to set status generating")
        logger.debug("Report updated | id=%s status=%s", report_id, content.status.value)

    def get_report(self, report_id: str) -> Report | None:
        """Get a report by id, or None if not found."""
        cursor = self.conn.execute("SELECT * FROM reports WHERE id = ?", (report_id,))
        row = cursor.fetchone()
        return self._row_to_report(row) if row else None

    def delete_report(self, report_id: str) -> bool:
        """Delete a report and its logs (external user action only).

        Returns:
            True if a report was deleted
        """
        self.conn.execute("DELETE FROM orchestrator_logs WHERE report_id = ?", (report_id,))
        cursor = self.conn.execute("DELETE FROM reports WHERE id = ?", (report_id,))
        self.conn.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Report deleted | id=%s", report_id)
        return deleted

    def recent(self, hours: int = 24) -> list[Report]:
        """Get reports created in the last N hours, newest first."""
        cutoff = int((datetime.now() - timedelta(hours=hours)).timestamp())
        cursor = self.conn.execute(
            "SELECT * FROM reports WHERE created_at >= ? ORDER BY created_at DESC",
            (cutoff,),
        )
        return [self._row_to_report(row) for row in cursor.fetchall()]

    def stats(self) -> dict[str, int]:
        """Get store statistics.

        Returns:
            Dictionary with total, completed, generating and log entry counts
        """
        cursor = self.conn.execute(
            """
            SELECT COUNT(*) AS total,
                   SUM(status = 'completed') AS completed,
                   SUM(status = 'generating') AS generating
            FROM reports
            """
        )
        row = cursor.fetchone()
        log_row = self.conn.execute("SELECT COUNT(*) AS entries FROM orchestrator_logs").fetchone()
        return {
            "total": row["total"] or 0,
            "completed": row["completed"] or 0,
            "generating": row["generating"] or 0,
            "log_entries": log_row["entries"] or 0,
        }

    @staticmethod
    def _row_to_report(row: sqlite3.Row) -> Report:
        return Report(
            id=row["id"],
            topic=row["topic"],
            date=_from_epoch(row["date"]),
            summary=row["summary"],
            ideas=row["ideas"],
            status=ReportStatus(row["status"]),
            video_count=row["video_count"],
            sources=[Source.model_validate(s) for s in json.loads(row["sources"])],
            videos=[Video.model_validate(v) for v in json.loads(row["videos"])],
            queries=json.loads(row["queries"]),
            type=ReportType(row["type"]),
            is_public=bool(row["is_public"]),
            user_id=row["user_id"],
            created_at=_from_epoch(row["created_at"]),
        )

    # === Orchestrator logs ===

    def append_logs(self, report_id: str, entries: list[OrchestratorLogEntry]) -> None:
        """Append log entries for a report."""
        self.conn.executemany(
            """
            INSERT INTO orchestrator_logs (report_id, timestamp, step, message, type, data)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    report_id,
                    entry.timestamp,
                    entry.step,
                    entry.message,
                    entry.type.value,
                    json.dumps(entry.data.to_json_dict(), ensure_ascii=False) if entry.data else None,
                )
                for entry in entries
            ],
        )
        self.conn.commit()

    def get_logs(self, report_id: str) -> list[OrchestratorLogEntry]:
        """Get all log entries for a report, sorted by timestamp ascending."""
        cursor = self.conn.execute(
            """
            SELECT timestamp, step, message, type, data
            FROM orchestrator_logs
            WHERE report_id = ?
            ORDER BY timestamp ASC, seq ASC
            """,
            (report_id,),
        )
        return [
            OrchestratorLogEntry(
                timestamp=row["timestamp"],
                step=row["step"],
                message=row["message"],
                type=LogType(row["type"]),
                data=LogData.model_validate(json.loads(row["data"])) if row["data"] else None,
            )
            for row in cursor.fetchall()
        ]

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def __enter__(self) -> "ReportStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
