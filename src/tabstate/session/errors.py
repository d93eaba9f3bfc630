"""Errors raised by session-level operations."""


class SessionError(Exception):
    """Base exception for session manager operations."""


class OperationCancelled(SessionError):
    """Raised when the user declines to resolve unsaved changes."""
