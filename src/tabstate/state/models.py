"""Persisted session models.

Field names follow the Python API; aliases match the on-disk JSON keys so a
snapshot serializes as::

    {"version": 3, "timestamp": 1700000000, "active_group_index": 1,
     "groups": [{"index": 1, "working_directory": "/a", "timestamp": 0,
                 "active_document_index": 1,
                 "documents": [{"path": "x.txt", "line": 5, "column": 2,
                                "timestamp": 0}]}]}
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

CURRENT_VERSION = 3
NEVER = 0


def _coerce_cursor(value: Any) -> Any:
    if value is None:
        return 1
    if isinstance(value, int) and value < 1:
        return 1
    return value


def _coerce_recency(value: Any) -> Any:
    return NEVER if value is None else value


class SnapshotModel(BaseModel):
    """Shared configuration for immutable snapshot records."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class DocumentRecord(SnapshotModel):
    """One open file within a group.

    ``path`` is relative to the owning group's working directory when the file
    lives beneath it, absolute otherwise.
    """

    path: str = Field(min_length=1)
    cursor_line: int = Field(default=1, alias="line")
    cursor_column: int = Field(default=1, alias="column")
    last_active_at: int = Field(default=NEVER, alias="timestamp")

    @field_validator("cursor_line", "cursor_column", mode="before")
    @classmethod
    def _default_cursor(cls, value: Any) -> Any:
        return _coerce_cursor(value)

    @field_validator("last_active_at", mode="before")
    @classmethod
    def _default_recency(cls, value: Any) -> Any:
        return _coerce_recency(value)


class GroupRecord(SnapshotModel):
    """One workspace group with its working directory and ordered documents."""

    index: int = 0
    working_directory: str = Field(min_length=1)
    documents: Tuple[DocumentRecord, ...] = ()
    last_active_at: int = Field(default=NEVER, alias="timestamp")
    active_document_index: Optional[int] = None

    @field_validator("last_active_at", mode="before")
    @classmethod
    def _default_recency(cls, value: Any) -> Any:
        return _coerce_recency(value)

    @field_validator("documents", mode="before")
    @classmethod
    def _default_documents(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def focused_document_index(self) -> Optional[int]:
        """Return the 1-based document to focus, or None for an empty group."""
        if not self.documents:
            return None
        index = self.active_document_index
        if index is not None and 1 <= index <= len(self.documents):
            return index
        return 1


class Snapshot(SnapshotModel):
    """Immutable, versioned record of one captured session."""

    version: int = CURRENT_VERSION
    created_at: int = Field(default=NEVER, alias="timestamp")
    groups: Tuple[GroupRecord, ...]
    active_group_index: Optional[int] = None

    @property
    def focused_group_index(self) -> int:
        """Return the 1-based group to focus, falling back to the first."""
        index = self.active_group_index
        if index is not None and 1 <= index <= len(self.groups):
            return index
        return 1

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready representation written by the store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SessionMetadata(BaseModel):
    """Name and modification time of a stored session."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    last_modified: int = Field(default=NEVER, alias="timestamp")


class MetadataIndex(BaseModel):
    """Persisted list of session metadata mirroring the snapshot files."""

    sessions: List[SessionMetadata] = Field(default_factory=list)

    def get(self, name: str) -> Optional[SessionMetadata]:
        """Return the entry for ``name`` if present."""
        for entry in self.sessions:
            if entry.name == name:
                return entry
        return None

    def upsert(self, name: str, last_modified: int) -> None:
        """Insert or refresh the entry for ``name``."""
        entry = self.get(name)
        if entry is None:
            self.sessions.append(SessionMetadata(name=name, last_modified=last_modified))
        else:
            entry.last_modified = last_modified

    def remove(self, name: str) -> bool:
        """Drop the entry for ``name``; return whether one existed."""
        before = len(self.sessions)
        self.sessions = [entry for entry in self.sessions if entry.name != name]
        return len(self.sessions) != before


__all__ = [
    "CURRENT_VERSION",
    "NEVER",
    "DocumentRecord",
    "GroupRecord",
    "Snapshot",
    "SessionMetadata",
    "MetadataIndex",
]
