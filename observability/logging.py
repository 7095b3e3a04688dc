"""Logging utilities with structured output and run/report context.

This module configures the process-wide Python logging used by every
pipeline stage (distinct from the per-report orchestrator log, which is
persisted to the report store):
    - JSON structured logging for log aggregation systems
    - Run ID and report ID propagation across all log messages
    - Rotating file output with console fallback

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context(run_id="abc123", report_id="r42")
    >>> logger.info("Video search started")  # Includes run_id and report_id
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

# Context variables copied into every record by ContextFilter
run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")
report_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("report_id", default="-")

_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "run_id", "report_id", "message",
})


def set_run_context(run_id: str, report_id: str | None = None) -> None:
    """Set the current run (and optionally report) for log correlation."""
    run_id_var.set(run_id)
    if report_id:
        report_id_var.set(report_id)


def set_report_context(report_id: str) -> None:
    """Attach a report id once the store has assigned one."""
    report_id_var.set(report_id)


def clear_context() -> None:
    """Reset all logging context variables."""
    run_id_var.set("-")
    report_id_var.set("-")


class ContextFilter(logging.Filter):
    """Inject run_id and report_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        record.report_id = report_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...",
         "run_id": "...", "report_id": "...", ...extra}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }

        report_id = getattr(record, "report_id", "-")
        if report_id != "-":
            log_data["report_id"] = report_id

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed via logger.x(..., extra={...})
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Text formatter: TIMESTAMP [LEVEL] [run_id/report_id] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s/%(report_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Configure console and rotating file logging.

    Falls back to console-only logging if the log directory is not
    writable.

    Args:
        config: Application configuration with logging settings
        verbose: Force DEBUG level on the console

    Returns:
        True if file logging is enabled, False if console-only
    """
    console_level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    context_filter = ContextFilter()

    if config.log_format == "json":
        console_fmt: logging.Formatter = JsonFormatter()
        file_fmt: logging.Formatter = JsonFormatter()
    else:
        console_fmt = TextFormatter(include_date=False)
        file_fmt = TextFormatter(include_date=True)

    # Console goes to stderr so JSON command output on stdout stays clean
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(console_fmt)
    console.addFilter(context_filter)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(console)

    file_logging_enabled = False
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        marker = config.log_dir / ".write_test"
        marker.touch()
        marker.unlink()

        log_file = config.log_dir / "sentinel.log"
        if config.log_max_bytes > 0:
            file_handler: logging.Handler = RotatingFileHandler(
                log_file,
                maxBytes=config.log_max_bytes,
                backupCount=config.log_backup_count,
                encoding="utf-8",
            )
        else:
            file_handler = TimedRotatingFileHandler(
                log_file,
                when="midnight",
                interval=1,
                backupCount=config.log_backup_count,
                encoding="utf-8",
            )

        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_fmt)
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)
        file_logging_enabled = True

    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )

    # Reduce noise from third-party libraries
    for lib in ("aiohttp", "urllib3", "httpx", "httpcore", "asyncio", "google_genai", "openai"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return file_logging_enabled
