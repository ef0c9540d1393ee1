"""Resolve the reporting window from --period, --since and --until."""

import calendar
from datetime import datetime, timedelta

from gcusage import config
from gcusage.models import Period, TimeRange
from gcusage.timeutil import end_of_day, from_ms, start_of_day, start_of_week_monday, to_ms


def apply_until_clamp(window: TimeRange, until_ms: int | None) -> TimeRange:
    """Narrow *window* to an explicit *until*; never widen it."""
    if until_ms is None:
        return window
    if window.until_ms is None or until_ms < window.until_ms:
        return TimeRange(window.since_ms, until_ms)
    return window


def _full_days(first: datetime, last: datetime) -> TimeRange:
    return TimeRange(to_ms(start_of_day(first)), to_ms(end_of_day(last)))


def resolve_range(
    period: Period,
    period_provided: bool,
    since_ms: int | None,
    until_ms: int | None,
    now: datetime | None = None,
) -> TimeRange:
    """Return the effective window for a report.

    Rules, first match wins:

    - ``session``: today, clamped by *until_ms*.
    - no explicit period and no bounds: the trailing six days including today.
    - ``day``: today when no bound is given, otherwise the bounds as given.
    - ``week``: seven days from *since_ms*, or the Monday-to-Sunday week
      containing *now*; clamped by *until_ms*.
    - ``month``: the calendar month of *since_ms* (or *now*), clamped by
      *until_ms*.
    """
    now = now or datetime.now()

    if period == "session":
        return apply_until_clamp(_full_days(now, now), until_ms)

    if not period_provided and since_ms is None and until_ms is None:
        first = now - timedelta(days=config.DEFAULT_WINDOW_DAYS - 1)
        return _full_days(first, now)

    if period == "day":
        if since_ms is None and until_ms is None:
            return _full_days(now, now)
        return TimeRange(since_ms, until_ms)

    if period == "week":
        first = from_ms(since_ms) if since_ms is not None else start_of_week_monday(now)
        return apply_until_clamp(_full_days(first, first + timedelta(days=6)), until_ms)

    if period == "month":
        anchor = from_ms(since_ms) if since_ms is not None else now
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        window = _full_days(anchor.replace(day=1), anchor.replace(day=last_day))
        return apply_until_clamp(window, until_ms)

    return TimeRange(since_ms, until_ms)
