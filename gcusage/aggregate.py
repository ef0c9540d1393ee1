"""Reduce canonical points to per-session and per-day token totals."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from gcusage.models import DailyTotals, MetricPoint, SessionSummary, SessionTotals, TokenTotals
from gcusage.timeutil import to_date_key


@dataclass
class _SessionState:
    start_ms: int
    models: list[str] = field(default_factory=list)
    # (model, type) -> latest point
    latest: dict[tuple[str, str], MetricPoint] = field(default_factory=dict)


def _add_models(target: list[str], models: Iterable[str]) -> None:
    for model in models:
        if model not in target:
            target.append(model)


def build_session_summaries(points: Iterable[MetricPoint]) -> list[SessionSummary]:
    """Summarize each session, counting only the last value per (model, type).

    Token counters are re-emitted with cumulative values on every export, so
    the latest emission per (model, type) is the session's total for it.
    Points are visited in ``(timestamp_ms, seq)`` order; on a full tie the one
    later in *points* wins. Points without a session id are dropped.

    Summaries are sorted by start time, then session id.
    """
    sessions: dict[str, _SessionState] = {}

    for p in sorted(points, key=lambda p: (p.timestamp_ms, p.seq)):
        if not p.session_id:
            continue
        state = sessions.get(p.session_id)
        if state is None:
            # Visiting in time order, so the first point is the earliest
            state = sessions[p.session_id] = _SessionState(start_ms=p.timestamp_ms)
        if p.model not in state.models:
            state.models.append(p.model)
        state.latest[(p.model, p.type)] = p

    summaries = []
    for session_id, state in sessions.items():
        tokens = TokenTotals()
        for p in state.latest.values():
            tokens.add(p.type, p.value)
        summaries.append(SessionSummary(
            session_id=session_id,
            session_start_ms=state.start_ms,
            models=state.models,
            tokens=tokens,
        ))

    summaries.sort(key=lambda s: (s.session_start_ms, s.session_id))
    return summaries


def to_session_totals(summary: SessionSummary) -> SessionTotals:
    return SessionTotals(
        date=to_date_key(summary.session_start_ms),
        session_id=summary.session_id,
        models=list(summary.models),
        tokens=TokenTotals(**vars(summary.tokens)),
    )


def aggregate_sessions_to_day(summaries: Iterable[SessionSummary]) -> list[DailyTotals]:
    """Roll sessions up into the local calendar day each session started on."""
    days: dict[str, DailyTotals] = {}

    for s in summaries:
        day = to_date_key(s.session_start_ms)
        row = days.get(day)
        if row is None:
            row = days[day] = DailyTotals(date=day)
        _add_models(row.models, s.models)
        row.tokens += s.tokens

    return [days[day] for day in sorted(days)]
