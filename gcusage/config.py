"""gcusage configuration."""
import logging
import os
from pathlib import Path


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    if not value:
        return default
    return Path(value).expanduser()


def _env_level(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


# Metric family written by the Gemini CLI OTLP file exporter
METRIC_NAME = "gemini_cli.token.usage"

GEMINI_DIR = _env_path("GCUSAGE_GEMINI_DIR", Path.home() / ".gemini")
TELEMETRY_LOG = _env_path("GCUSAGE_TELEMETRY_LOG", GEMINI_DIR / "telemetry.log")
BACKUP_SUFFIX = ".bak"

# Attribute fallbacks
UNKNOWN = "unknown"
NO_SESSION = "no-session"

# Trailing window used when neither --period nor a bound is given
DEFAULT_WINDOW_DAYS = 6

LOG_LEVEL = _env_level("GCUSAGE_LOG_LEVEL", logging.WARNING)
