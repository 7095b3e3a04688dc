#!/usr/bin/env python3
"""Sentinel: news intelligence reports powered by PydanticAI agents.

This CLI runs the research pipeline (grounded news search, deep source
verification, video evidence discovery, transcript aggregation, synthesis)
and browses the reports it has persisted.

Commands:
    run         Execute the full pipeline for a topic or region set
    news        Entry point: {topic} -> {newsSummary, sources}
    deep        Entry point: {newsSummary, sources} -> {deepAnalysis}
    videos      Entry point: {newsSummary} -> {candidates, queries, debug}
    report      Entry point: synthesize + persist -> {id, summary}
    show        Print a stored report
    logs        Print a report's orchestrator log (timestamp order)
    recent      List reports created recently
    status      Show configuration and store statistics
    delete      Delete a report and its log

Examples:
    python main.py run --topic "Example Event"
    python main.py run --region pakistan --region palestine --placeholder
    echo '{"topic": "Example Event"}' | python main.py news
    python main.py logs 3f9a2c...
    python main.py recent --hours 48

Environment:
    GEMINI_API_KEY, YOUTUBE_API_KEY: Required for pipeline commands
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys

from config import Config
from database import ReportStore
from observability.logging import setup_logging

logger = logging.getLogger(__name__)


def _read_payload(args: argparse.Namespace) -> dict:
    """Read the JSON input object from --input or stdin."""
    if args.input:
        with open(args.input, encoding="utf-8") as f:
            raw = f.read()
    else:
        raw = sys.stdin.read()
    payload = json.loads(raw) if raw.strip() else {}
    if not isinstance(payload, dict):
        raise ValueError("Input must be a JSON object")
    return payload


def _emit(result: dict) -> int:
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 1 if "error" in result else 0


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Execute the full research pipeline.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from errors import PipelineError
    from models.request import ResearchRequest
    from pipeline import ResearchPipeline

    request = ResearchRequest(
        topic=args.topic or "",
        regions={region: True for region in args.region or []},
        report_id=args.report_id,
        is_public=args.public,
        user_id=args.user_id or "",
    )

    with ReportStore(config.db_path) as store:
        pipeline = ResearchPipeline(config, store)
        try:
            result = asyncio.run(pipeline.run(request, placeholder=args.placeholder, skip_deep=args.skip_deep))
        except KeyboardInterrupt:
            logger.info("Stopped by user (Ctrl+C)")
            return 130
        except PipelineError as e:
            logger.error("Pipeline failed | stage=%s error=%s", e.stage or "-", e.message)
            print(json.dumps(e.to_payload(), indent=2, ensure_ascii=False), file=sys.stderr)
            return 1

    return _emit({
        "id": result.report_id,
        "topic": result.context.topic,
        "stats": result.stats.to_dict(),
    })


def cmd_news(args: argparse.Namespace, config: Config) -> int:
    from entrypoints import news_discovery
    return _emit(asyncio.run(news_discovery(_read_payload(args), config)))


def cmd_deep(args: argparse.Namespace, config: Config) -> int:
    from entrypoints import deep_verification
    return _emit(asyncio.run(deep_verification(_read_payload(args), config)))


def cmd_videos(args: argparse.Namespace, config: Config) -> int:
    from entrypoints import video_discovery
    return _emit(asyncio.run(video_discovery(_read_payload(args), config)))


def cmd_report(args: argparse.Namespace, config: Config) -> int:
    from entrypoints import synthesize_and_persist
    return _emit(asyncio.run(synthesize_and_persist(_read_payload(args), config)))


def cmd_show(args: argparse.Namespace, config: Config) -> int:
    """Print a stored report (markdown, or JSON with --json)."""
    with ReportStore(config.db_path) as store:
        report = store.get_report(args.report_id)

    if report is None:
        print(f"Report not found: {args.report_id}", file=sys.stderr)
        return 1

    if args.json:
        return _emit(report.to_json_dict())

    print(f"# {report.topic} ({report.type.value}, {report.status.value})")
    print(f"Date: {report.date.strftime('%Y-%m-%d %H:%M')} | Videos: {report.video_count}\n")
    print(report.summary or "(no content yet)")
    if report.ideas:
        print("\n---\n## Content Ideas\n")
        print(report.ideas)
    return 0


def cmd_logs(args: argparse.Namespace, config: Config) -> int:
    """Print a report's orchestrator log in timestamp order."""
    with ReportStore(config.db_path) as store:
        entries = store.get_logs(args.report_id)

    if args.json:
        print(json.dumps([e.to_json_dict() for e in entries], indent=2, ensure_ascii=False))
        return 0

    if not entries:
        print(f"No log entries for report {args.report_id}.")
        return 0

    for entry in entries:
        line = f"{entry.timestamp} [{entry.type.value:>11}] {entry.step}: {entry.message}"
        if entry.data is not None:
            line += f" {json.dumps(entry.data.to_json_dict(), ensure_ascii=False)}"
        print(line)
    return 0


def cmd_recent(args: argparse.Namespace, config: Config) -> int:
    """Display reports created in the last N hours."""
    with ReportStore(config.db_path) as store:
        reports = store.recent(hours=args.hours)

    if not reports:
        print(f"No reports in the last {args.hours} hours.")
        return 0

    print(f"\n=== Reports (last {args.hours} hours) ===\n")
    for report in reports:
        print(f"📰 {report.topic}")
        print(f"   Id: {report.id}")
        print(f"   Created: {report.created_at.strftime('%Y-%m-%d %H:%M')}")
        print(f"   Status: {report.status.value} | Type: {report.type.value} | Videos: {report.video_count}")
        print()
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and store statistics."""
    with ReportStore(config.db_path) as store:
        db_stats = store.stats()

    status = {
        "config": {
            "search_model": config.search_model,
            "generation_model": config.generation_model,
            "filter_model": config.filter_model,
            "max_videos": config.max_videos,
            "keyword_count": config.keyword_count,
            "video_max_age_days": config.video_max_age_days,
            "missing_credentials": config.missing_credentials(),
            "enable_logfire": config.enable_logfire,
        },
        "database": {
            "path": str(config.db_path),
            **db_stats,
        },
    }
    print(json.dumps(status, indent=2))
    return 0


def cmd_delete(args: argparse.Namespace, config: Config) -> int:
    """Delete a report and its orchestrator log."""
    with ReportStore(config.db_path) as store:
        deleted = store.delete_report(args.report_id)
    if not deleted:
        print(f"Report not found: {args.report_id}", file=sys.stderr)
        return 1
    print(f"Deleted report {args.report_id}")
    return 0


def main() -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Sentinel - news intelligence reports with PydanticAI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run the full research pipeline")
    run_parser.add_argument("--topic", help="Explicit topic (report type 'manual')")
    run_parser.add_argument(
        "--region",
        action="append",
        choices=["pakistan", "palestine", "worldwide"],
        help="Region flag used when no topic is given (repeatable, report type 'weekly')",
    )
    run_parser.add_argument("--report-id", help="Update this existing report instead of creating one")
    run_parser.add_argument("--public", action="store_true", help="Make a new report public")
    run_parser.add_argument("--user-id", help="Owner of a new report")
    run_parser.add_argument(
        "--placeholder",
        action="store_true",
        help="Pre-create a 'generating' report so the log streams live",
    )
    run_parser.add_argument("--skip-deep", action="store_true", help="Skip deep source verification")

    # JSON entry points
    for name, help_text in (
        ("news", "News discovery: {topic}"),
        ("deep", "Deep verification: {newsSummary, sources}"),
        ("videos", "Video discovery: {newsSummary}"),
        ("report", "Synthesize + persist: {newsSummary, deepAnalysis, sources, videos, queries, topic, ...}"),
    ):
        entry_parser = subparsers.add_parser(name, help=help_text)
        entry_parser.add_argument("--input", help="JSON input file (default: stdin)")

    # Browsing commands
    show_parser = subparsers.add_parser("show", help="Show a stored report")
    show_parser.add_argument("report_id")
    show_parser.add_argument("--json", action="store_true", help="Print the raw JSON record")

    logs_parser = subparsers.add_parser("logs", help="Show a report's orchestrator log")
    logs_parser.add_argument("report_id")
    logs_parser.add_argument("--json", action="store_true", help="Print entries as JSON")

    recent_parser = subparsers.add_parser("recent", help="Show recent reports")
    recent_parser.add_argument(
        "--hours",
        type=int,
        default=24,
        help="Look back this many hours (default: 24)",
    )

    subparsers.add_parser("status", help="Show configuration and statistics")

    delete_parser = subparsers.add_parser("delete", help="Delete a report")
    delete_parser.add_argument("report_id")

    args = parser.parse_args()

    config = Config.load()
    setup_logging(config, verbose=args.verbose)

    # Only a full run validates everything up front; entry points report
    # missing credentials as JSON error payloads
    if args.command == "run":
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    commands = {
        "run": cmd_run,
        "news": cmd_news,
        "deep": cmd_deep,
        "videos": cmd_videos,
        "report": cmd_report,
        "show": cmd_show,
        "logs": cmd_logs,
        "recent": cmd_recent,
        "status": cmd_status,
        "delete": cmd_delete,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logger.error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
