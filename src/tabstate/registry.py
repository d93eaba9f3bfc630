"""Classify the host's open documents."""

from __future__ import annotations

import os

from tabstate.host import ORDINARY_KIND, EditorHost, RealDocument


class DocumentRegistry:
    """Read-only view over the host's documents.

    A document is *real* when it has a backing path, its kind is ordinary and
    the path is currently readable on disk. Terminals, quickfix lists, scratch
    and unnamed buffers are not.
    """

    def __init__(self, host: EditorHost) -> None:
        self._host = host

    def is_file_document(self, handle: int) -> bool:
        """Return whether ``handle`` is an ordinary document with a path."""
        host = self._host
        if not host.is_document_valid(handle):
            return False
        return bool(host.document_path(handle)) and host.document_kind(handle) == ORDINARY_KIND

    def is_real(self, handle: int) -> bool:
        """Return whether ``handle`` is an ordinary document backed by a readable file."""
        if not self.is_file_document(handle):
            return False
        path = self._host.document_path(handle)
        return os.path.isfile(path) and os.access(path, os.R_OK)

    def list_real_documents(self) -> list[RealDocument]:
        """Return real documents in the host's insertion order."""
        return [
            self._describe(handle)
            for handle in self._host.list_documents()
            if self.is_real(handle)
        ]

    def list_modified(self) -> list[RealDocument]:
        """Return file documents with unsaved changes.

        Readability is not required here: a modified document whose file was
        never written still needs a save-or-discard decision.
        """
        return [
            self._describe(handle)
            for handle in self._host.list_documents()
            if self.is_file_document(handle) and self._host.is_modified(handle)
        ]

    def is_open_in_group(self, handle: int, group_id: int) -> bool:
        """Return whether ``handle`` is displayed in any viewport of ``group_id``."""
        host = self._host
        if not host.is_group_valid(group_id) or not host.is_document_valid(handle):
            return False
        return any(viewport.document == handle for viewport in host.list_viewports(group_id))

    def _describe(self, handle: int) -> RealDocument:
        return RealDocument(
            handle=handle,
            path=self._host.document_path(handle),
            is_modified=self._host.is_modified(handle),
        )


__all__ = ["DocumentRegistry"]
