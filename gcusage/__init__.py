"""Summarize Gemini CLI token usage from the local telemetry log."""

__version__ = "0.3.0"
