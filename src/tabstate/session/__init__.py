"""Session capture, restore and management."""

from .capture import capture, select_active_index
from .errors import OperationCancelled, SessionError
from .manager import SessionContext, SessionManager
from .restore import RestoreFailure, RestoreReport, clear_workspace, restore, validate_snapshot

__all__ = [
    "capture",
    "select_active_index",
    "restore",
    "validate_snapshot",
    "clear_workspace",
    "RestoreFailure",
    "RestoreReport",
    "SessionContext",
    "SessionManager",
    "SessionError",
    "OperationCancelled",
]
