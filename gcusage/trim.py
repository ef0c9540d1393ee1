"""Compact the telemetry log down to the data points reports actually use.

Reports only need the latest point per (session, model, type), while the log
keeps every periodic export plus every other metric family, so it grows
without bound. Trimming rewrites it as a single token-usage block.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any

import orjson

from gcusage import config
from gcusage.errors import LogNotFoundError
from gcusage.logs import iter_log_documents
from gcusage.metrics import iter_token_usage_data_points, read_attributes, read_session_id, read_timestamp_ms

logger = logging.getLogger("gcusage.trim")


def compact_log_text(text: str) -> dict[str, Any]:
    """Return a token-usage block holding the latest raw point per key.

    Points keep every original field so the result can be read back by the
    report pipeline. Points without a usable time are dropped; points without
    a session are kept under a placeholder session key.
    """
    latest: dict[tuple[str, str, str], tuple[int, dict]] = {}

    for doc in iter_log_documents(text):
        for dp in iter_token_usage_data_points(doc):
            timestamp_ms = read_timestamp_ms(dp)
            if timestamp_ms is None:
                continue
            attrs = read_attributes(dp.get("attributes"))
            key = (
                read_session_id(attrs) or config.NO_SESSION,
                attrs.get("model") or config.UNKNOWN,
                attrs.get("type") or config.UNKNOWN,
            )
            prev = latest.get(key)
            if prev is None or timestamp_ms >= prev[0]:
                latest[key] = (timestamp_ms, dp)

    return {
        "descriptor": {"name": config.METRIC_NAME},
        "dataPoints": [dp for _, dp in latest.values()],
    }


def dump_compacted(compacted: dict[str, Any]) -> bytes:
    """Serialize a compacted block, keeping strings orjson cannot encode."""
    try:
        return orjson.dumps(compacted)
    except orjson.JSONEncodeError:
        # lone surrogates and integers beyond 64 bits
        return json.dumps(compacted, ensure_ascii=True, separators=(",", ":")).encode("ascii")


def trim_log_file(path: Path | None = None) -> int:
    """Rewrite the telemetry log in compacted form; return points kept.

    The log is copied aside first and the copy removed once the new content
    is written. A failure in between leaves the backup in place.
    """
    log_path = path or config.TELEMETRY_LOG
    if not log_path.is_file():
        raise LogNotFoundError(log_path)

    backup_path = log_path.with_name(log_path.name + config.BACKUP_SUFFIX)
    shutil.copyfile(log_path, backup_path)

    text = log_path.read_text(encoding="utf-8", errors="replace")
    compacted = compact_log_text(text)
    log_path.write_bytes(dump_compacted(compacted))
    backup_path.unlink()

    kept = len(compacted["dataPoints"])
    logger.info("Trimmed %s to %d data point(s)", log_path, kept)
    return kept
