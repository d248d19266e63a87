"""Errors raised by the timetable ingestion pipeline.

Every error names the pipeline ``stage`` it came from so the admin route can
report which step failed. ``SourceUnavailable`` and ``DownloadFailed`` are
the transient ones; the fetch helpers retry them before giving up.
"""


class TimetableError(Exception):
    """Base exception for the timetable pipeline."""

    stage = "timetable"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"stage": self.stage, "message": self.message or self.__class__.__name__}


class TimetableConfigError(TimetableError):
    """Page URL or download-button prefix is not configured."""

    stage = "config"


class SourceUnavailable(TimetableError):
    """The timetable page could not be fetched (timeout, non-2xx, network)."""

    stage = "resolve"


class LinkNotFound(TimetableError):
    """The page has no anchor under the configured container id prefix."""

    stage = "resolve"


class DownloadFailed(TimetableError):
    """The spreadsheet download or the local write failed."""

    stage = "download"


class WorkbookUnreadable(TimetableError):
    """The downloaded file is missing, corrupt, or has too few day sheets."""

    stage = "parse"


class UnknownTimeSlot(TimetableError):
    """A period label is not in the 12-to-24-hour table."""

    stage = "parse"

    def __init__(self, label):
        super().__init__(f"unknown period label: {label!r}")
        self.label = label


class UpdateInProgress(TimetableError):
    """Another timetable update is already running."""

    stage = "lock"
