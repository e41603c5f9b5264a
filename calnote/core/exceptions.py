"""Exception hierarchy for calnote.

Fetch and decode failures are fatal for a single sync cycle and propagate to
the caller. Defects in individual calendar components never surface here; the
parser drops those components and logs a warning instead.
"""

from typing import Optional


class CalNoteError(Exception):
    """Base exception for all calnote errors."""


class ICSFetchError(CalNoteError):
    """Calendar feed could not be retrieved.

    Raised when:
    - The URL is not an http(s) URL with a hostname
    - The server answered with a non-2xx status code
    - The connection failed or timed out
    - The response body was empty
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ICSDecodeError(CalNoteError):
    """Calendar feed text could not be decoded at all.

    The resolver is never invoked for a feed that raised this error.
    """


class RRuleExpansionError(CalNoteError):
    """A recurrence rule could not be parsed or expanded."""


class SettingsError(CalNoteError):
    """Plugin settings could not be written to disk."""
