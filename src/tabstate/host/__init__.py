"""Interfaces to the editor host and the other collaborators tabstate drives.

The session core never talks to an editor directly. A host adapter implements
``EditorHost`` (and optionally the tooling, prompt and picker protocols) by
translating each call into the editor's own primitives, and forwards native
focus events to ``SessionManager``'s event methods.

Group ids and document handles are opaque integers chosen by the host. They
are only meaningful while the host reports them as valid; none of them survive
a restore.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, runtime_checkable

from tabstate.state.models import SessionMetadata

LOGGER = logging.getLogger(__name__)

ORDINARY_KIND = "ordinary"


@dataclass(frozen=True, slots=True)
class Viewport:
    """A visible pane inside a group.

    Attributes:
        viewport_id: Host identifier of the pane.
        document: Handle of the document displayed in the pane.
        line: 1-based cursor line.
        column: 1-based cursor column.
    """

    viewport_id: int
    document: int
    line: int = 1
    column: int = 1


@runtime_checkable
class EditorHost(Protocol):
    """Group and document primitives offered by the editor."""

    # Groups -----------------------------------------------------------

    def list_groups(self) -> list[int]:
        """Return every open group id in display order."""
        ...

    def current_group(self) -> int:
        """Return the focused group id."""
        ...

    def is_group_valid(self, group_id: int) -> bool:
        """Return whether ``group_id`` still refers to an open group."""
        ...

    def switch_group(self, group_id: int) -> None:
        """Focus ``group_id``."""
        ...

    def create_group(self) -> int:
        """Open a new group after the last one, focus it and return its id."""
        ...

    def close_group(self, group_id: int) -> None:
        """Close ``group_id``; the host refuses to close its last group."""
        ...

    def get_working_directory(self, group_id: int) -> str:
        """Return the absolute working directory of ``group_id``."""
        ...

    def set_working_directory(self, group_id: int, path: str) -> None:
        """Change the working directory of ``group_id``.

        Raises:
            OSError: If ``path`` cannot be used as a directory.
        """
        ...

    def list_viewports(self, group_id: int) -> list[Viewport]:
        """Return the panes of ``group_id`` with their document and cursor."""
        ...

    def set_cursor(self, line: int, column: int) -> None:
        """Move the cursor of the focused pane."""
        ...

    # Documents --------------------------------------------------------

    def list_documents(self) -> list[int]:
        """Return every open document handle in insertion order."""
        ...

    def current_document(self) -> Optional[int]:
        """Return the document shown in the focused pane."""
        ...

    def is_document_valid(self, handle: int) -> bool:
        """Return whether ``handle`` still refers to an open document."""
        ...

    def document_path(self, handle: int) -> str:
        """Return the backing file path of ``handle``, or an empty string."""
        ...

    def document_kind(self, handle: int) -> str:
        """Return ``"ordinary"`` for file documents, another label otherwise."""
        ...

    def is_modified(self, handle: int) -> bool:
        """Return whether ``handle`` has unsaved changes."""
        ...

    def open_document(self, path: str, *, display: bool) -> int:
        """Open ``path`` and return its handle.

        With ``display`` False the document is loaded without being shown.

        Raises:
            OSError: If the document cannot be loaded.
        """
        ...

    def display_document(self, handle: int) -> None:
        """Show ``handle`` in the focused pane."""
        ...

    def delete_document(self, handle: int, *, force: bool) -> None:
        """Close ``handle``; ``force`` discards unsaved changes."""
        ...

    def is_listed(self, handle: int) -> bool:
        """Return whether ``handle`` appears in the document list."""
        ...

    def set_listed(self, handle: int, listed: bool) -> None:
        """Show or hide ``handle`` in the document list."""
        ...


@runtime_checkable
class ToolingLifecycle(Protocol):
    """Start and stop auxiliary language tooling around session changes."""

    def stop_all(self) -> None:
        ...

    def stop_for_groups(self, group_ids: Sequence[int]) -> None:
        ...

    def restart_for_groups(self, group_ids: Sequence[int]) -> None:
        ...


@runtime_checkable
class UnsavedChangesResolver(Protocol):
    """Ask the user what to do with modified documents."""

    def resolve(self, documents: Sequence["RealDocument"]) -> bool:
        """Save or discard each document; return False when the user cancels."""
        ...


@runtime_checkable
class SessionPicker(Protocol):
    """Interactive prompts used when an operation is invoked without a name."""

    def select(self, sessions: Sequence[SessionMetadata], *, prompt: str) -> Optional[str]:
        """Return the chosen session name, or None if the user dismissed the picker."""
        ...

    def prompt_name(self, *, prompt: str, default: str = "") -> Optional[str]:
        """Return a session name typed by the user, or None."""
        ...


@dataclass(frozen=True, slots=True)
class RealDocument:
    """A document backed by a readable file.

    Attributes:
        handle: Host document handle.
        path: Absolute path of the backing file.
        is_modified: Whether the document has unsaved changes.
    """

    handle: int
    path: str
    is_modified: bool


class NullTooling:
    """Tooling lifecycle for hosts without language servers."""

    def stop_all(self) -> None:
        LOGGER.debug("No tooling to stop.")

    def stop_for_groups(self, group_ids: Sequence[int]) -> None:
        LOGGER.debug("No tooling to stop for groups %s.", list(group_ids))

    def restart_for_groups(self, group_ids: Sequence[int]) -> None:
        LOGGER.debug("No tooling to restart for groups %s.", list(group_ids))


class DiscardChanges:
    """Resolver that lets every destructive operation proceed."""

    def resolve(self, documents: Sequence[RealDocument]) -> bool:
        if documents:
            LOGGER.info("Discarding unsaved changes in %d document(s).", len(documents))
        return True


__all__ = [
    "ORDINARY_KIND",
    "Viewport",
    "EditorHost",
    "ToolingLifecycle",
    "UnsavedChangesResolver",
    "SessionPicker",
    "RealDocument",
    "NullTooling",
    "DiscardChanges",
]
