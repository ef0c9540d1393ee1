"""Find token-usage data points in exported metric batches and normalize them.

The exporter has changed shape across Gemini CLI releases: metric blocks may
sit at any depth, carry their name at ``name`` or ``descriptor.name``, encode
time as ``[seconds, nanos]`` pairs or as scalars in ns/us/ms, and encode
attributes either as OTLP ``{key, value}`` lists or as plain mappings. Every
reader here is defensive and returns None instead of raising.
"""

import math
from typing import Any

from gcusage import config
from gcusage.models import MetricPoint
from gcusage.timeutil import MAX_MS, MIN_MS

_SCALAR_TIME_FIELDS = ("timeUnixNano", "endTimeUnixNano", "timeUnix", "time")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


def _to_number(value: Any) -> int | float | None:
    """Coerce a JSON number or numeric string; None when it is neither."""
    if _is_number(value):
        return value
    if not isinstance(value, str):
        return None
    token = value.strip()
    try:
        return int(token)
    except ValueError:
        pass
    try:
        num = float(token)
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def _is_token_usage_block(node: dict) -> bool:
    if node.get("name") == config.METRIC_NAME:
        return True
    descriptor = node.get("descriptor")
    return isinstance(descriptor, dict) and descriptor.get("name") == config.METRIC_NAME


def iter_token_usage_data_points(root: Any) -> list[dict]:
    """Collect the raw data points of every token-usage block under *root*.

    Walks with an explicit stack so arbitrarily deep input cannot exhaust the
    interpreter's recursion limit. Children are pushed in reverse, so points
    come out in document order.
    """
    found: list[dict] = []
    stack: list[Any] = [root]

    while stack:
        node = stack.pop()
        if isinstance(node, list):
            stack.extend(reversed(node))
            continue
        if not isinstance(node, dict):
            continue

        if _is_token_usage_block(node):
            data_points = node.get("dataPoints")
            if isinstance(data_points, list):
                found.extend(dp for dp in data_points if isinstance(dp, dict))

        # Blocks can nest anywhere, matched or not
        stack.extend(reversed(list(node.values())))

    return found


def read_number_value(dp: dict) -> int | float | None:
    """Resolve the measured value: asInt, asDouble, value, then asInt as text."""
    as_int = dp.get("asInt")
    for candidate in (as_int, dp.get("asDouble"), dp.get("value")):
        if _is_number(candidate):
            return candidate
    if isinstance(as_int, str):
        return _to_number(as_int)
    return None


def _pair_to_ms(pair: Any) -> int | None:
    if not isinstance(pair, list) or len(pair) < 2:
        return None
    sec, nsec = _to_number(pair[0]), _to_number(pair[1])
    if sec is None or nsec is None or not MIN_MS <= sec * 1000 <= MAX_MS:
        return None
    return math.floor(sec * 1000) + math.floor(nsec // 1_000_000)


def _scalar_to_ms(num: int | float) -> int:
    # Exporter versions disagree on units; guess from magnitude
    if num > 1e15:
        return math.floor(num // 1_000_000)
    if num > 1e12:
        return math.floor(num // 1_000)
    return math.floor(num)


def _first_scalar_time(dp: dict) -> Any:
    for name in _SCALAR_TIME_FIELDS:
        value = dp.get(name)
        if isinstance(value, str) or _is_number(value):
            return value
    return None


def read_timestamp_ms(dp: dict) -> int | None:
    """Resolve the point's time as epoch milliseconds, or None."""
    timestamp_ms = _pair_to_ms(dp.get("endTime"))
    if timestamp_ms is None:
        timestamp_ms = _pair_to_ms(dp.get("startTime"))

    if timestamp_ms is None:
        candidate = _first_scalar_time(dp)
        if candidate is None:
            return None
        num = _to_number(candidate)
        if num is None:
            return None
        timestamp_ms = _scalar_to_ms(num)

    if not MIN_MS <= timestamp_ms <= MAX_MS:
        return None
    return timestamp_ms


def read_attribute_value(value: Any) -> str | None:
    """Stringify a plain attribute value or an OTLP typed wrapper."""
    if isinstance(value, str):
        return value
    if _is_number(value):
        return str(value)
    if not isinstance(value, dict):
        return None

    if isinstance(value.get("stringValue"), str):
        return value["stringValue"]
    for key in ("intValue", "doubleValue"):
        inner = value.get(key)
        if isinstance(inner, str) or _is_number(inner):
            return str(inner)
    return None


def read_attributes(attrs: Any) -> dict[str, str]:
    """Flatten ``[{key, value}, ...]`` or a plain mapping to ``{key: str}``."""
    result: dict[str, str] = {}
    if isinstance(attrs, list):
        for item in attrs:
            if not isinstance(item, dict):
                continue
            key = item.get("key")
            if not isinstance(key, str) or not key:
                continue
            value = read_attribute_value(item.get("value"))
            if value is not None:
                result[key] = value
    elif isinstance(attrs, dict):
        for key, raw in attrs.items():
            value = read_attribute_value(raw)
            if value is not None:
                result[key] = value
    return result


def read_session_id(attrs: dict[str, str]) -> str | None:
    return attrs.get("session.id") or attrs.get("session_id") or None


def build_point(dp: Any, seq: int = 0) -> MetricPoint | None:
    """Normalize one raw data point; None when value or time is missing."""
    if not isinstance(dp, dict):
        return None

    value = read_number_value(dp)
    if value is None:
        return None
    timestamp_ms = read_timestamp_ms(dp)
    if timestamp_ms is None:
        return None

    attrs = read_attributes(dp.get("attributes"))
    return MetricPoint(
        timestamp_ms=timestamp_ms,
        model=attrs.get("model") or config.UNKNOWN,
        type=attrs.get("type") or config.UNKNOWN,
        session_id=read_session_id(attrs),
        value=value,
        seq=seq,
    )


def extract_metric_points(root: Any, start_seq: int = 0) -> list[MetricPoint]:
    """Extract and normalize every usable token-usage point under *root*.

    Points are numbered from *start_seq* in extraction order; the number breaks
    ties between points recorded at the same millisecond.
    """
    points: list[MetricPoint] = []
    for dp in iter_token_usage_data_points(root):
        point = build_point(dp, seq=start_seq + len(points))
        if point is not None:
            points.append(point)
    return points
