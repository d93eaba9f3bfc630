"""Session persistence for tabstate."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, unquote

from pydantic import ValidationError

from .errors import (
    InvalidSessionNameError,
    InvalidSnapshotError,
    SessionNotFoundError,
    StateError,
    StorageIOError,
)
from .models import (
    CURRENT_VERSION,
    NEVER,
    DocumentRecord,
    GroupRecord,
    MetadataIndex,
    SessionMetadata,
    Snapshot,
)
from .upgrades import upgrade_payload

LOGGER = logging.getLogger(__name__)

SNAPSHOT_DIRNAME = "snapshots"
INDEX_FILENAME = "sessions.json"
LAST_LOADED_FILENAME = ".last_loaded"
MAX_FILENAME_BYTES = 255


class SessionStore:
    """Manage named snapshots, their metadata index and the last-loaded pointer.

    Layout beneath ``root``::

        snapshots/<escaped name>.json   one snapshot per session
        sessions.json                   metadata index
        .last_loaded                    plain-text name of the last restore

    Snapshots are always written before the index, so a crash in between can
    only leave a snapshot without an index entry, never the reverse that
    ``list`` could not tolerate.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the store.

        Args:
            root: Directory that holds every artifact of the store.
        """
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        """Return the directory backing this store."""
        return self._root

    def initialize(self) -> Path:
        """Create the storage directories if needed and return the root.

        Raises:
            StorageIOError: If the directories cannot be created.
        """
        try:
            (self._root / SNAPSHOT_DIRNAME).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Unable to create session directory {self._root}: {exc}") from exc
        return self._root

    def snapshot_path(self, name: str) -> Path:
        """Return the file that stores the snapshot for ``name``.

        Raises:
            InvalidSessionNameError: If ``name`` is blank, or too long to
                store once escaped.
        """
        if not name or not name.strip():
            raise InvalidSessionNameError("Session names must contain at least one character.")
        filename = f"{quote(name, safe='')}.json"
        if len(filename.encode("utf-8")) > MAX_FILENAME_BYTES:
            raise InvalidSessionNameError(
                f"Session name is too long to store ({len(filename)} bytes once escaped, "
                f"limit {MAX_FILENAME_BYTES})."
            )
        return self._root / SNAPSHOT_DIRNAME / filename

    def exists(self, name: str) -> bool:
        """Return whether a snapshot is stored under ``name``."""
        return self.snapshot_path(name).is_file()

    def save(self, name: str, snapshot: Snapshot) -> Path:
        """Persist ``snapshot`` under ``name`` and refresh its index entry.

        Args:
            name: Session name chosen by the user.
            snapshot: Snapshot to serialize.

        Returns:
            Path: File the snapshot was written to.

        Raises:
            InvalidSessionNameError: If ``name`` is not usable.
            StorageIOError: If either file cannot be written.
        """
        path = self.snapshot_path(name)
        self.initialize()
        _atomic_write(path, json.dumps(snapshot.to_payload(), indent=2))

        index = self.load_index()
        index.upsert(name, snapshot.created_at)
        self._write_index(index)
        LOGGER.info("Saved session %r to %s", name, path)
        return path

    def load(self, name: str) -> Snapshot:
        """Load the snapshot stored under ``name``.

        Older payloads are upgraded to the current key layout; ``version`` keeps
        the stored value.

        Raises:
            SessionNotFoundError: If no snapshot is stored under ``name``.
            InvalidSnapshotError: If the stored data cannot be parsed.
            StorageIOError: If the file cannot be read.
        """
        path = self.snapshot_path(name)
        if not path.is_file():
            raise SessionNotFoundError(f"Session not found: {name}")

        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageIOError(f"Unable to read session {name!r}: {exc}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidSnapshotError(f"Failed to parse session {name!r}: {exc}") from exc

        return parse_snapshot(data, source=name)

    def delete(self, name: str) -> None:
        """Remove the snapshot for ``name`` and its index entry.

        Raises:
            SessionNotFoundError: If no snapshot is stored under ``name``.
            StorageIOError: If the snapshot cannot be removed.
        """
        path = self.snapshot_path(name)
        if not path.is_file():
            raise SessionNotFoundError(f"Session not found: {name}")
        try:
            path.unlink()
        except OSError as exc:
            raise StorageIOError(f"Unable to delete session {name!r}: {exc}") from exc

        index = self.load_index()
        if index.remove(name):
            self._write_index(index)
        LOGGER.info("Deleted session %r", name)

    def list(self) -> list[SessionMetadata]:
        """Return stored sessions sorted by last modification, newest first.

        Index entries whose snapshot file is missing are skipped. When the index
        is absent or unreadable the snapshot directory is scanned instead.
        """
        entries = [entry for entry in self.load_index().sessions if self.exists(entry.name)]
        return sorted(entries, key=lambda entry: entry.last_modified, reverse=True)

    def get_most_recent(self) -> Optional[str]:
        """Return the name of the most recently modified session, if any."""
        sessions = self.list()
        return sessions[0].name if sessions else None

    def load_index(self) -> MetadataIndex:
        """Read the metadata index.

        A missing or corrupt index is rebuilt in memory from the snapshot files,
        using their modification times.
        """
        path = self._index_path()
        if path.exists():
            try:
                return MetadataIndex.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as exc:
                LOGGER.warning("Rebuilding unreadable session index %s: %s", path, exc)
        return MetadataIndex(sessions=self._scan_snapshots())

    def read_last_loaded(self) -> Optional[str]:
        """Return the name recorded by the last successful restore, if any."""
        path = self._root / LAST_LOADED_FILENAME
        try:
            name = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageIOError(f"Unable to read {path}: {exc}") from exc
        return name or None

    def write_last_loaded(self, name: str) -> None:
        """Record ``name`` as the last restored session."""
        self.initialize()
        _atomic_write(self._root / LAST_LOADED_FILENAME, name)

    def clear_last_loaded(self) -> None:
        """Forget the last restored session."""
        try:
            (self._root / LAST_LOADED_FILENAME).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Unable to clear last loaded session: {exc}") from exc

    # Internal helpers -------------------------------------------------

    def _index_path(self) -> Path:
        return self._root / INDEX_FILENAME

    def _write_index(self, index: MetadataIndex) -> None:
        payload = index.model_dump(mode="json", by_alias=True)
        _atomic_write(self._index_path(), json.dumps(payload, indent=2))

    def _scan_snapshots(self) -> list[SessionMetadata]:
        directory = self._root / SNAPSHOT_DIRNAME
        if not directory.is_dir():
            return []
        entries = []
        for path in directory.glob("*.json"):
            try:
                mtime = int(path.stat().st_mtime)
            except OSError:
                continue
            entries.append(SessionMetadata(name=unquote(path.stem), last_modified=mtime))
        return entries


def parse_snapshot(data: Any, *, source: str = "snapshot") -> Snapshot:
    """Validate a decoded payload into a ``Snapshot``.

    Raises:
        InvalidSnapshotError: If the payload is structurally malformed.
    """
    try:
        return Snapshot.model_validate(upgrade_payload(data))
    except ValidationError as exc:
        raise InvalidSnapshotError(f"Invalid session data in {source!r}: {exc}") from exc


def _atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` through a temporary file and rename."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(prefix=".tabstate-", suffix=".tmp", dir=path.parent)
    except OSError as exc:
        raise StorageIOError(f"Unable to write {path}: {exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(temp_path, path)
    except OSError as exc:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise StorageIOError(f"Unable to write {path}: {exc}") from exc


__all__ = [
    "SessionStore",
    "parse_snapshot",
    "SNAPSHOT_DIRNAME",
    "INDEX_FILENAME",
    "LAST_LOADED_FILENAME",
    "MAX_FILENAME_BYTES",
    "CURRENT_VERSION",
    "NEVER",
    "Snapshot",
    "GroupRecord",
    "DocumentRecord",
    "SessionMetadata",
    "MetadataIndex",
    "StateError",
    "SessionNotFoundError",
    "InvalidSnapshotError",
    "StorageIOError",
    "InvalidSessionNameError",
]
