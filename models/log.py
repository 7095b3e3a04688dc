"""Orchestrator log entry models.

Entries form an append-only audit trail per report. Consumers always sort
by timestamp ascending, regardless of the order entries were written in.
"""

from enum import Enum
from typing import Any

from pydantic import Field

from models.base import CamelModel


class LogType(str, Enum):
    """Kind of orchestrator log entry."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    AI_DECISION = "ai_decision"  # An AI-driven choice was made


class LogData(CamelModel):
    """Structured payload attached to an entry.

    Attributes:
        decision: AI verdict or choice (keywords, approve/reject)
        quality: Step grade, "good", "partial" or "empty"
        metrics: Counts behind the grade, or run totals on the final entry
        retry_count, max_retries, modified_input: Reserved in the stored log
            schema for step retries; the pipeline never retries, so they are
            only ever read back, not written
    """

    decision: str | None = None
    quality: str | None = None
    retry_count: int | None = None
    max_retries: int | None = None
    modified_input: dict[str, Any] | None = None
    metrics: dict[str, Any] | None = None

    def to_json_dict(self) -> dict:
        """Dump non-empty fields only."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OrchestratorLogEntry(CamelModel):
    """A single orchestrator log entry.

    Attributes:
        timestamp: Milliseconds since epoch, strictly increasing per writer
        step: Stage name that emitted the entry
        message: Human-readable message
        type: Entry kind
        data: Optional structured payload
    """

    timestamp: int
    step: str
    message: str
    type: LogType = LogType.INFO
    data: LogData | None = None

    def to_json_dict(self) -> dict:
        payload = self.model_dump(mode="json", by_alias=True, exclude={"data"})
        if self.data is not None:
            payload["data"] = self.data.to_json_dict()
        return payload
