"""Locate the telemetry log and turn its contents into metric points."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import orjson

from gcusage import config
from gcusage.metrics import extract_metric_points
from gcusage.models import MetricPoint
from gcusage.segment import split_json_objects

logger = logging.getLogger("gcusage.logs")


def find_log_files(path: Path | None = None) -> list[Path]:
    """Return the telemetry log as a one-element list, or [] when absent."""
    log_path = path or config.TELEMETRY_LOG
    if log_path.is_file():
        return [log_path]
    return []


def iter_log_documents(text: str) -> Iterator[Any]:
    """Yield each JSON document in *text*, skipping spans that fail to parse.

    orjson rejects lone surrogate escapes such as a truncated emoji, which
    the exporter can write; those spans are parsed again with json.
    """
    skipped = 0
    for segment in split_json_objects(text):
        try:
            doc = orjson.loads(segment)
        except orjson.JSONDecodeError:
            try:
                doc = json.loads(segment)
            except json.JSONDecodeError:
                skipped += 1
                continue
        yield doc
    if skipped:
        logger.debug("Skipped %d malformed JSON segment(s)", skipped)


def parse_log_text(text: str, start_seq: int = 0) -> list[MetricPoint]:
    points: list[MetricPoint] = []
    for doc in iter_log_documents(text):
        points.extend(extract_metric_points(doc, start_seq=start_seq + len(points)))
    return points


def parse_log_file(path: Path, start_seq: int = 0) -> list[MetricPoint]:
    """Read *path* and extract its token-usage points.

    Content problems never raise; I/O errors such as PermissionError do.
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    points = parse_log_text(text, start_seq=start_seq)
    logger.debug("Read %d token usage point(s) from %s", len(points), path)
    return points
