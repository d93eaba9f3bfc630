"""Session storage errors."""


class StateError(Exception):
    """Base exception for session store operations."""


class SessionNotFoundError(StateError):
    """Raised when no session is stored under the requested name."""


class InvalidSnapshotError(StateError):
    """Raised when a stored or supplied snapshot is structurally malformed."""


class StorageIOError(StateError):
    """Raised when reading or writing the backing store fails."""


class InvalidSessionNameError(StateError):
    """Raised when a session name cannot be used as a storage key."""
