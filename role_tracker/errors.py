"""Fatal error types raised during a tracking run.

Every failure that should abort the run is a :class:`TrackerError`.  The
entry point in :mod:`role_tracker.main` is the only place that turns one of
these into a process exit code, so the rest of the package stays importable
and testable without terminating the interpreter.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for errors that abort a tracking run."""

    exit_code = 2


class ConfigError(TrackerError):
    """Invalid command line arguments or environment."""


class AuthError(TrackerError):
    """Login or two-factor verification was rejected."""


class UpstreamError(TrackerError):
    """An upstream API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is None:
            return message
        return f"{message} (status {self.status_code})"


class MembershipError(TrackerError):
    """The logged in user is not a member of a tracked group."""


class SnapshotError(TrackerError):
    """The snapshot could not be written."""


class Interrupted(TrackerError):
    """A stop was requested before the run completed."""


__all__ = [
    "AuthError",
    "ConfigError",
    "Interrupted",
    "MembershipError",
    "SnapshotError",
    "TrackerError",
    "UpstreamError",
]
