"""Per-report orchestrator log.

The orchestrator log is the user-facing audit trail of a run: one entry per
notable step, persisted under the report id so a UI can replay how the
report was produced. It is separate from process logging, but every entry
is mirrored to the Python logger as well.

Entries created before the report id is known (the usual case, since the
report is persisted last) are buffered and flushed by bind(). Writes after
binding go straight to the store. A failing store never fails the run.

Example:
    >>> olog = OrchestratorLog(store)
    >>> olog.info("news_discovery", "Found 4 sources")
    >>> olog.ai_decision("video_filter", "Approved abc", decision="approve")
    >>> olog.graded("deep_verification", "Scraped sources", grade_scrape(3, 2))
    >>> olog.bind(report_id)  # flushes buffered entries
"""

import logging
import sqlite3
import threading
import time
from typing import Any, Protocol

from models.log import LogData, LogType, OrchestratorLogEntry
from observability.quality import StepEvaluation, StepQuality

logger = logging.getLogger(__name__)

_LEVELS = {
    LogType.WARNING: logging.WARNING,
    LogType.ERROR: logging.ERROR,
}


class LogSink(Protocol):
    """Anything that can persist log entries for a report (ReportStore)."""

    def append_logs(self, report_id: str, entries: list[OrchestratorLogEntry]) -> None: ...


class OrchestratorLog:
    """Append-only, timestamp-ordered log bound to one report.

    Timestamps are milliseconds since epoch and strictly increasing for a
    given writer, so sorting by timestamp always reproduces write order.

    Attributes:
        report_id: Bound report id, or None while buffering
    """

    def __init__(self, sink: LogSink | None = None, report_id: str | None = None):
        self._sink = sink
        self.report_id = report_id
        self._entries: list[OrchestratorLogEntry] = []
        self._pending: list[OrchestratorLogEntry] = []
        self._last_ts = 0
        self._lock = threading.Lock()

    def _next_timestamp(self) -> int:
        now = int(time.time() * 1000)
        self._last_ts = max(now, self._last_ts + 1)
        return self._last_ts

    def log(
        self,
        step: str,
        message: str,
        type: LogType = LogType.INFO,
        data: LogData | None = None,
    ) -> OrchestratorLogEntry:
        """Append an entry and persist it (or buffer it until bind())."""
        with self._lock:
            entry = OrchestratorLogEntry(
                timestamp=self._next_timestamp(),
                step=step,
                message=message,
                type=type,
                data=data,
            )
            self._entries.append(entry)
            if self.report_id is None:
                self._pending.append(entry)
                to_write: list[OrchestratorLogEntry] = []
            else:
                to_write = [entry]

        logger.log(_LEVELS.get(type, logging.INFO), "[%s] %s", step, message)
        if to_write:
            self._write(to_write)
        return entry

    def info(self, step: str, message: str, **data: Any) -> OrchestratorLogEntry:
        return self.log(step, message, LogType.INFO, LogData(**data) if data else None)

    def success(self, step: str, message: str, **data: Any) -> OrchestratorLogEntry:
        return self.log(step, message, LogType.SUCCESS, LogData(**data) if data else None)

    def warning(self, step: str, message: str, **data: Any) -> OrchestratorLogEntry:
        return self.log(step, message, LogType.WARNING, LogData(**data) if data else None)

    def error(self, step: str, message: str, **data: Any) -> OrchestratorLogEntry:
        return self.log(step, message, LogType.ERROR, LogData(**data) if data else None)

    def ai_decision(self, step: str, message: str, **data: Any) -> OrchestratorLogEntry:
        return self.log(step, message, LogType.AI_DECISION, LogData(**data) if data else None)

    def graded(self, step: str, message: str, evaluation: StepEvaluation) -> OrchestratorLogEntry:
        """Log a step result with its quality grade. Empty steps are warnings."""
        if evaluation.issue:
            message = f"{message} ({evaluation.issue})"
        type = LogType.WARNING if evaluation.quality == StepQuality.EMPTY else LogType.INFO
        data = LogData(quality=evaluation.quality.value, metrics=evaluation.metrics)
        return self.log(step, message, type, data)

    def bind(self, report_id: str) -> None:
        """Attach the log to a report and flush buffered entries."""
        with self._lock:
            self.report_id = report_id
            pending, self._pending = self._pending, []
        if pending:
            self._write(pending)

    def _write(self, entries: list[OrchestratorLogEntry]) -> None:
        if self._sink is None or self.report_id is None:
            return
        try:
            self._sink.append_logs(self.report_id, entries)
        except sqlite3.Error as e:
            logger.error(
                "Orchestrator log write failed | report_id=%s entries=%d error=%s",
                self.report_id, len(entries), e,
            )

    @property
    def entries(self) -> list[OrchestratorLogEntry]:
        """All entries written so far, sorted by timestamp ascending."""
        with self._lock:
            return sorted(self._entries, key=lambda e: e.timestamp)

    @property
    def pending(self) -> int:
        """Number of entries buffered and not yet persisted."""
        return len(self._pending)
