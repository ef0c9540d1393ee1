"""Local-calendar helpers and parsing of --since/--until values.

Timestamps travel through the pipeline as integer epoch milliseconds. Calendar
questions (which day, where a week starts) are always answered in local time.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal

from gcusage.errors import InvalidTimeSpecError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

# Timestamps a local datetime can represent with a day of slack at both ends
MAX_MS = 253_402_214_399_999
MIN_MS = -62_135_510_400_000

_RELATIVE_RE = re.compile(r"^(\d+)([dh])$")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_ms(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds. Naive values are local time."""
    return (dt.astimezone() - EPOCH) // _ONE_MS


def from_ms(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to a naive local datetime."""
    return (EPOCH + timedelta(milliseconds=timestamp_ms)).astimezone().replace(tzinfo=None)


def start_of_day(dt: datetime | date) -> datetime:
    day = dt.date() if isinstance(dt, datetime) else dt
    return datetime.combine(day, time.min)


def end_of_day(dt: datetime | date) -> datetime:
    day = dt.date() if isinstance(dt, datetime) else dt
    return datetime.combine(day, time(23, 59, 59, 999_000))


def start_of_week_monday(dt: datetime) -> datetime:
    return start_of_day(dt.date() - timedelta(days=dt.weekday()))


def to_date_key(timestamp_ms: int) -> str:
    """Local calendar date of *timestamp_ms* as YYYY-MM-DD."""
    return from_ms(timestamp_ms).strftime("%Y-%m-%d")


def parse_time_spec(
    value: str | None,
    kind: Literal["since", "until"],
    now: datetime | None = None,
) -> int | None:
    """Parse a --since/--until argument into epoch milliseconds.

    Accepts ``today``, ``yesterday``, relative offsets such as ``3d`` or
    ``12h``, a calendar date ``YYYY-MM-DD`` (expanded to the start or end of
    that day depending on *kind*) and ISO-8601 timestamps. Empty input yields
    None.
    """
    if value is None:
        return None
    raw = value.strip().lower()
    if not raw:
        return None

    now = now or datetime.now()
    bound = start_of_day if kind == "since" else end_of_day

    if raw == "today":
        return to_ms(bound(now))
    if raw == "yesterday":
        return to_ms(bound(now - timedelta(days=1)))

    if m := _RELATIVE_RE.match(raw):
        amount = int(m.group(1))
        # elapsed time, not wall-clock time, across DST changes
        hours = amount * 24 if m.group(2) == "d" else amount
        return to_ms(now) - hours * 3_600_000

    if _DATE_ONLY_RE.match(raw):
        try:
            return to_ms(bound(date.fromisoformat(raw)))
        except ValueError:
            raise InvalidTimeSpecError(value) from None

    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise InvalidTimeSpecError(value) from None
    return to_ms(parsed)
