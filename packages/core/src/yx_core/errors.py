"""Error types raised by yx_core.

Every error carries a human-readable message; the CLI prints ``str(error)``
verbatim, so messages name the offending flag or value where one exists.
"""

from __future__ import annotations


class YxError(Exception):
    """Base class for all yx errors."""


class ApiError(YxError):
    """A Yunxiao API call failed (transport, HTTP status or business error)."""

    def __init__(self, message: str, status: int | None = None, html: bool = False):
        super().__init__(message)
        self.status = status
        self.html = html


class RangeResolutionError(YxError):
    """No usable from/to patchset pair could be determined."""


class PatchResolutionError(YxError):
    """Commit SHAs for a patchset range are unknown, so no patch can be fetched."""


class AttemptsExhaustedError(YxError):
    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error
