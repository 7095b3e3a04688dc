"""Observability infrastructure: logging, tracing and the orchestrator log.

setup_logging:
    Console + rotating file logging with run/report context.

setup_tracing / trace_operation:
    Optional Logfire tracing with PydanticAI instrumentation.

OrchestratorLog:
    Per-report, timestamp-ordered audit trail persisted with the report.

grade_*:
    Count-based good/partial/empty grades attached to step log entries.

Enable tracing via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional
"""

from observability.logging import setup_logging, set_run_context, set_report_context, clear_context
from observability.orchestrator_log import OrchestratorLog
from observability.quality import StepEvaluation, StepQuality, grade_keywords, grade_scrape, grade_search, grade_transcripts
from observability.tracing import setup_tracing, trace_operation, TracingContext

__all__ = [
    "setup_logging",
    "set_run_context",
    "set_report_context",
    "clear_context",
    "OrchestratorLog",
    "StepEvaluation",
    "StepQuality",
    "grade_keywords",
    "grade_search",
    "grade_scrape",
    "grade_transcripts",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
