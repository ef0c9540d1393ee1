"""Build usage reports and print them as rich tables or JSON."""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from gcusage import config
from gcusage.aggregate import aggregate_sessions_to_day, build_session_summaries, to_session_totals
from gcusage.logs import find_log_files, parse_log_file
from gcusage.models import DailyTotals, MetricPoint, Period, SessionTotals, TimeRange, TokenTotals
from gcusage.ranges import resolve_range
from gcusage.timeutil import to_date_key

logger = logging.getLogger("gcusage")

REPORT_TITLE = "Gemini CLI Usage Report"
RANGE_SEP = " ~ "


@dataclass
class UsageReport:
    period: Period
    rows: list[DailyTotals] | list[SessionTotals] = field(default_factory=list)
    range: TimeRange = field(default_factory=TimeRange)
    source_found: bool = True


def _matches(p: MetricPoint, model: str | None, type_: str | None) -> bool:
    if model and p.model != model:
        return False
    if type_ and p.type != type_:
        return False
    return True


def run_report(
    period: Period,
    period_provided: bool,
    since_ms: int | None,
    until_ms: int | None,
    model: str | None = None,
    type_: str | None = None,
    log_path: Path | None = None,
    now: datetime | None = None,
) -> UsageReport:
    """Load the telemetry log and aggregate it for *period*.

    Sessions are kept when their start time falls inside the resolved window.
    A missing log yields an empty report with ``source_found`` unset.
    """
    files = find_log_files(log_path)
    if not files:
        logger.error("No telemetry log found: %s", log_path or config.TELEMETRY_LOG)
        return UsageReport(period=period, source_found=False)

    points: list[MetricPoint] = []
    for path in files:
        points.extend(parse_log_file(path, start_seq=len(points)))

    window = resolve_range(period, period_provided, since_ms, until_ms, now=now)
    selected = [p for p in points if _matches(p, model, type_)]
    summaries = [s for s in build_session_summaries(selected) if window.contains(s.session_start_ms)]
    logger.debug("%d point(s), %d session(s) in range", len(selected), len(summaries))

    if period == "session":
        rows = [to_session_totals(s) for s in summaries]
    else:
        rows = aggregate_sessions_to_day(summaries)
    return UsageReport(period=period, rows=rows, range=window)


# --- JSON ---

def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def report_json_rows(report: UsageReport) -> list[dict]:
    """Rows as plain dicts with integer token counts, for --json output."""
    output = []
    for row in report.rows:
        item: dict = {"date": row.date}
        if isinstance(row, SessionTotals):
            item["session"] = row.session_id
        item["models"] = list(row.models)
        item.update({
            "input": _round_half_up(row.tokens.input),
            "output": _round_half_up(row.tokens.output),
            "thought": _round_half_up(row.tokens.thought),
            "cache": _round_half_up(row.tokens.cache),
            "tool": _round_half_up(row.tokens.tool),
        })
        output.append(item)
    return output


# --- Formatting ---

def fmt_number(n: float) -> str:
    """Format a token count with thousands separators."""
    return f"{_round_half_up(n):,}"


def fmt_compact(n: float) -> str:
    """Format a token count with k/M/B suffix."""
    if abs(n) >= 1e9:
        return f"{n / 1e9:.2f}B"
    if abs(n) >= 1e6:
        return f"{n / 1e6:.2f}M"
    if abs(n) >= 1e3:
        return f"{n / 1e3:.2f}k"
    return fmt_number(n)


def range_text(report: UsageReport) -> str:
    """Date span shown in the title: the window, else the dates present."""
    window = report.range
    if window.since_ms is not None and window.until_ms is not None:
        start, end = to_date_key(window.since_ms), to_date_key(window.until_ms)
    else:
        dates = sorted(row.date for row in report.rows)
        if not dates:
            return ""
        start, end = dates[0], dates[-1]
    return start if start == end else f"{start}{RANGE_SEP}{end}"


def _add_token_columns(table: Table) -> None:
    table.add_column("Input", justify="right", style="cyan", no_wrap=True)
    table.add_column("Output", justify="right", style="cyan", no_wrap=True)
    table.add_column("Thought", justify="right", style="magenta", no_wrap=True)
    table.add_column("Cache", justify="right", style="blue", no_wrap=True)
    table.add_column("Tool", justify="right", style="blue", no_wrap=True)
    table.add_column("Total Tokens", justify="right", style="bold", no_wrap=True)


def _token_row(tokens: TokenTotals, fmt=fmt_number) -> list[str]:
    return [
        fmt(tokens.input),
        fmt(tokens.output),
        fmt(tokens.thought),
        fmt(tokens.cache),
        fmt(tokens.tool),
        fmt(tokens.total),
    ]


def render_report(report: UsageReport, console: Console) -> None:
    """Print the report as a table; an empty report prints a notice."""
    if not report.rows:
        console.print("No matching data")
        return

    text = range_text(report)
    title = f"{REPORT_TITLE} - {text}" if text else REPORT_TITLE
    by_session = report.period == "session"

    table = Table(title=title, title_style="bold", box=box.ROUNDED, expand=False, show_lines=True)
    table.add_column("Date", style="white", no_wrap=True)
    if by_session:
        table.add_column("Session", style="dim", no_wrap=True)
    table.add_column("Models", style="green", no_wrap=True)
    _add_token_columns(table)

    totals = TokenTotals()
    for row in report.rows:
        lead = [row.date, row.session_id] if by_session else [row.date]
        table.add_row(*lead, "\n".join(row.models), *_token_row(row.tokens))
        totals += row.tokens

    table.add_section()
    table.add_row(
        Text("TOTAL", style="bold"),
        *([""] if by_session else []),
        "",
        *_token_row(totals, fmt=fmt_compact),
        style="bold yellow",
    )

    console.print()
    console.print(table)
    console.print()
