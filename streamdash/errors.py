from __future__ import annotations


class StreamdashError(Exception):
    """Base class for dashboard errors."""


class SourceError(StreamdashError):
    """A single CSV source could not be read or parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class DataUnavailableError(StreamdashError):
    """No source (primary or sample) produced a usable record set."""


class DashboardNotReadyError(StreamdashError):
    pass


class UnknownViewError(StreamdashError, KeyError):
    pass
