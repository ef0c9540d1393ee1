"""Errors surfaced to the command-line layer."""


class GcusageError(Exception):
    """Base class for errors the CLI reports and exits on."""


class LogNotFoundError(GcusageError):
    def __init__(self, path) -> None:
        super().__init__(f"No telemetry log found: {path}")
        self.path = path


class InvalidTimeSpecError(GcusageError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Cannot parse time argument: {value!r}")
        self.value = value
