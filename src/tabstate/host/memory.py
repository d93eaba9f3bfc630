"""In-process editor host.

``InMemoryHost`` keeps groups, panes and documents in plain Python structures
and follows the conventions of a modal terminal editor: a new group starts
with one pane showing an empty unnamed document, deleting a displayed
document swaps an empty one into its panes, and the last group cannot be
closed. It is used by the test-suite and by embedders that want to drive the
session core without a real editor.
"""

from __future__ import annotations

import itertools
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from . import ORDINARY_KIND, Viewport


@dataclass
class _Document:
    path: str
    kind: str = ORDINARY_KIND
    modified: bool = False
    listed: bool = True


@dataclass
class _Pane:
    pane_id: int
    document: int
    line: int = 1
    column: int = 1


@dataclass
class _Group:
    cwd: str
    panes: list[_Pane] = field(default_factory=list)
    focused: int = 0


class InMemoryHost:
    """Editor host backed by dictionaries; implements ``EditorHost``."""

    def __init__(self, cwd: str | os.PathLike[str] | None = None) -> None:
        self._ids = itertools.count(1)
        self._documents: dict[int, _Document] = {}
        self._groups: dict[int, _Group] = {}
        first = self._new_group(os.path.abspath(cwd or os.getcwd()))
        self._current = first

    # Groups -----------------------------------------------------------

    def list_groups(self) -> list[int]:
        return list(self._groups)

    def current_group(self) -> int:
        return self._current

    def is_group_valid(self, group_id: int) -> bool:
        return group_id in self._groups

    def switch_group(self, group_id: int) -> None:
        self._require_group(group_id)
        self._current = group_id

    def create_group(self) -> int:
        group_id = self._new_group(self._groups[self._current].cwd)
        self._current = group_id
        return group_id

    def close_group(self, group_id: int) -> None:
        self._require_group(group_id)
        if len(self._groups) == 1:
            raise RuntimeError("Cannot close the last group.")
        order = self.list_groups()
        position = order.index(group_id)
        del self._groups[group_id]
        if self._current == group_id:
            remaining = self.list_groups()
            self._current = remaining[max(0, position - 1)]

    def get_working_directory(self, group_id: int) -> str:
        return self._require_group(group_id).cwd

    def set_working_directory(self, group_id: int, path: str) -> None:
        group = self._require_group(group_id)
        if not Path(path).is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")
        group.cwd = os.path.abspath(path)

    def list_viewports(self, group_id: int) -> list[Viewport]:
        group = self._require_group(group_id)
        return [
            Viewport(pane.pane_id, pane.document, pane.line, pane.column) for pane in group.panes
        ]

    def set_cursor(self, line: int, column: int) -> None:
        pane = self._focused_pane()
        pane.line = max(1, line)
        pane.column = max(1, column)

    # Documents --------------------------------------------------------

    def list_documents(self) -> list[int]:
        return list(self._documents)

    def current_document(self) -> Optional[int]:
        return self._focused_pane().document

    def is_document_valid(self, handle: int) -> bool:
        return handle in self._documents

    def document_path(self, handle: int) -> str:
        return self._require_document(handle).path

    def document_kind(self, handle: int) -> str:
        return self._require_document(handle).kind

    def is_modified(self, handle: int) -> bool:
        return self._require_document(handle).modified

    def open_document(self, path: str, *, display: bool) -> int:
        absolute = os.path.abspath(os.path.join(self._groups[self._current].cwd, path))
        handle = self._find_document(absolute)
        if handle is None:
            if not os.path.isfile(absolute):
                raise FileNotFoundError(f"No such file: {absolute}")
            handle = next(self._ids)
            self._documents[handle] = _Document(path=absolute)
        if display:
            self.display_document(handle)
        return handle

    def display_document(self, handle: int) -> None:
        self._require_document(handle)
        pane = self._focused_pane()
        if pane.document != handle:
            pane.document = handle
            pane.line = 1
            pane.column = 1

    def delete_document(self, handle: int, *, force: bool) -> None:
        document = self._require_document(handle)
        if document.modified and not force:
            raise RuntimeError(f"Document {handle} has unsaved changes.")
        del self._documents[handle]
        for group in self._groups.values():
            for pane in group.panes:
                if pane.document == handle:
                    pane.document = self._new_document("")
                    pane.line = 1
                    pane.column = 1

    def is_listed(self, handle: int) -> bool:
        return self._require_document(handle).listed

    def set_listed(self, handle: int, listed: bool) -> None:
        self._require_document(handle).listed = listed

    # Helpers for driving the host directly ----------------------------

    def edit(self, path: str | os.PathLike[str], *, line: int = 1, column: int = 1) -> int:
        """Open ``path`` in the focused pane and place the cursor."""
        handle = self.open_document(os.fspath(path), display=True)
        self.set_cursor(line, column)
        return handle

    def split(self, handle: Optional[int] = None) -> int:
        """Add a pane to the focused group, focus it and return its id."""
        group = self._groups[self._current]
        document = handle if handle is not None else self._focused_pane().document
        pane = _Pane(pane_id=next(self._ids), document=document)
        group.panes.append(pane)
        group.focused = len(group.panes) - 1
        return pane.pane_id

    def focus_viewport(self, pane_id: int) -> None:
        group = self._groups[self._current]
        for position, pane in enumerate(group.panes):
            if pane.pane_id == pane_id:
                group.focused = position
                return
        raise KeyError(f"Unknown viewport {pane_id}")

    def current_viewport(self) -> int:
        return self._focused_pane().pane_id

    def add_special(self, kind: str, name: str = "") -> int:
        """Create a non-file document such as a terminal or quickfix list."""
        handle = next(self._ids)
        self._documents[handle] = _Document(path=name, kind=kind)
        return handle

    def mark_modified(self, handle: int, modified: bool = True) -> None:
        self._require_document(handle).modified = modified

    # Internal helpers -------------------------------------------------

    def _new_group(self, cwd: str) -> int:
        group_id = next(self._ids)
        pane = _Pane(pane_id=next(self._ids), document=self._new_document(""))
        self._groups[group_id] = _Group(cwd=cwd, panes=[pane])
        return group_id

    def _new_document(self, path: str) -> int:
        handle = next(self._ids)
        self._documents[handle] = _Document(path=path)
        return handle

    def _find_document(self, path: str) -> Optional[int]:
        for handle, document in self._documents.items():
            if document.path == path:
                return handle
        return None

    def _focused_pane(self) -> _Pane:
        group = self._groups[self._current]
        return group.panes[group.focused]

    def _require_group(self, group_id: int) -> _Group:
        try:
            return self._groups[group_id]
        except KeyError:
            raise KeyError(f"Unknown group {group_id}") from None

    def _require_document(self, handle: int) -> _Document:
        try:
            return self._documents[handle]
        except KeyError:
            raise KeyError(f"Unknown document {handle}") from None


__all__ = ["InMemoryHost"]
