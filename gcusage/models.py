"""Records shared by the extraction, aggregation and report stages."""

from dataclasses import dataclass, field
from typing import Literal

Period = Literal["day", "week", "month", "session"]
PERIODS: tuple[str, ...] = ("day", "week", "month", "session")

TOKEN_TYPES: tuple[str, ...] = ("input", "output", "thought", "cache", "tool")


@dataclass(frozen=True)
class MetricPoint:
    timestamp_ms: int
    model: str
    type: str
    session_id: str | None
    value: float
    seq: int = 0  # arrival index in document order


@dataclass
class TokenTotals:
    input: float = 0
    output: float = 0
    thought: float = 0
    cache: float = 0
    tool: float = 0

    @property
    def total(self) -> float:
        return self.input + self.output + self.thought + self.cache + self.tool

    def add(self, token_type: str, value: float) -> None:
        """Add *value* to the bucket named *token_type*; other types are ignored."""
        if token_type in TOKEN_TYPES:
            setattr(self, token_type, getattr(self, token_type) + value)

    def __iadd__(self, other: "TokenTotals") -> "TokenTotals":
        self.input += other.input
        self.output += other.output
        self.thought += other.thought
        self.cache += other.cache
        self.tool += other.tool
        return self


@dataclass
class SessionSummary:
    session_id: str
    session_start_ms: int
    models: list[str] = field(default_factory=list)
    tokens: TokenTotals = field(default_factory=TokenTotals)


@dataclass
class DailyTotals:
    date: str
    models: list[str] = field(default_factory=list)
    tokens: TokenTotals = field(default_factory=TokenTotals)


@dataclass
class SessionTotals:
    date: str
    session_id: str
    models: list[str] = field(default_factory=list)
    tokens: TokenTotals = field(default_factory=TokenTotals)


@dataclass(frozen=True)
class TimeRange:
    since_ms: int | None = None
    until_ms: int | None = None

    def contains(self, timestamp_ms: int) -> bool:
        if self.since_ms is not None and timestamp_ms < self.since_ms:
            return False
        if self.until_ms is not None and timestamp_ms > self.until_ms:
            return False
        return True
