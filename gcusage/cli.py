"""Command-line entry point: ``gcusage`` reports and ``gcusage trim``."""

import argparse
import logging
import sys
from pathlib import Path

import orjson
from rich.console import Console
from rich.logging import RichHandler

from gcusage import __version__, config
from gcusage.errors import GcusageError
from gcusage.models import PERIODS
from gcusage.report import render_report, report_json_rows, run_report
from gcusage.timeutil import parse_time_spec
from gcusage.trim import trim_log_file

logger = logging.getLogger("gcusage")

console = Console(soft_wrap=True)
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Send gcusage log records to stderr through rich."""
    level = logging.DEBUG if verbose else config.LOG_LEVEL
    root = logging.getLogger("gcusage")
    root.setLevel(level)
    if not root.handlers:
        handler = RichHandler(console=err_console, show_time=False, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gcusage",
        description="Summarize Gemini CLI token usage from ~/.gemini/telemetry.log.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  gcusage\n"
               "  gcusage --period week --since 2024-03-04\n"
               "  gcusage --period session --type input\n"
               "  gcusage --since 7d --json\n"
               "  gcusage trim\n",
    )
    parser.add_argument("--since", help="Start time: today, yesterday, 3d, 12h, YYYY-MM-DD or ISO timestamp")
    parser.add_argument("--until", help="End time, same formats as --since")
    # No default here so an explicit --period can be told apart from the fallback
    parser.add_argument("--period", choices=PERIODS, help="Aggregation period (default: day)")
    parser.add_argument("--model", help="Only count this model")
    parser.add_argument("--type", dest="token_type", help="Only count this token type")
    parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    parser.add_argument("--log-file", type=Path, help=f"Telemetry log to read (default: {config.TELEMETRY_LOG})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug details to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")
    trim = sub.add_parser("trim", help="Shrink the telemetry log to token usage data only")
    trim.add_argument("--log-file", dest="trim_log_file", type=Path, help="Telemetry log to trim")
    return parser


def cmd_report(args: argparse.Namespace) -> int:
    since_ms = parse_time_spec(args.since, "since")
    until_ms = parse_time_spec(args.until, "until")
    if since_ms is not None and until_ms is not None and since_ms > until_ms:
        err_console.print("[red]--since cannot be later than --until[/red]")
        return 1

    report = run_report(
        args.period or "day",
        args.period is not None,
        since_ms,
        until_ms,
        model=args.model,
        type_=args.token_type,
        log_path=args.log_file,
    )
    if args.json:
        sys.stdout.write(orjson.dumps(report_json_rows(report), option=orjson.OPT_INDENT_2).decode())
        sys.stdout.write("\n")
        return 0 if report.source_found else 1
    if not report.source_found:
        return 1

    render_report(report, console)
    return 0


def cmd_trim(args: argparse.Namespace) -> int:
    kept = trim_log_file(args.trim_log_file or args.log_file)
    console.print(f"Trimmed telemetry log: kept {kept} token usage data point(s)")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.command == "trim":
            return cmd_trim(args)
        return cmd_report(args)
    except GcusageError as exc:
        err_console.print(str(exc), style="red", markup=False)
        return 1
    except OSError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
