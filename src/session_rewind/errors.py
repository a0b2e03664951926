"""Exception types raised by session-rewind.

Plain disk failures are left as the built-in OSError.
"""


class SessionRewindError(Exception):
    """Base class for all session-rewind errors."""


class NotFoundError(SessionRewindError):
    """A record, collaborator or configuration value is missing."""


class ParseError(SessionRewindError):
    """A persisted record is not well-formed or lacks required fields."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid session file {path}: {reason}")


class SecurityViolation(SessionRewindError):
    """A path escaped the directory it was confined to."""


class PartialFailure(SessionRewindError):
    """One half of a two-step operation failed and the other was skipped."""
