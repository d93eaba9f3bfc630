"""Document-to-group association and per-group listing.

The host keeps one global document list. ``AssociationEngine`` remembers
which groups each document belongs to and flips the host's *listed* flag so
that, after ``apply_listing_filter(g)``, only the documents of ``g`` are
enumerable. It also records when each group and document was last focused;
capture uses those instants to decide what gets focus on restore.

Every operation tolerates stale handles: a group or document that the host no
longer reports as valid is skipped silently.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from tabstate.host import EditorHost
from tabstate.paths import is_within
from tabstate.registry import DocumentRegistry

LOGGER = logging.getLogger(__name__)


@dataclass
class AssociationState:
    """Live association maps; rebuilt after every restore or new session.

    Attributes:
        document_groups: Document handle to the ids of the groups it belongs to.
        group_timestamps: Group id to the instant it was last entered or left.
        document_timestamps: Document handle to the instant it was last entered.
    """

    document_groups: dict[int, set[int]] = field(default_factory=dict)
    group_timestamps: dict[int, float] = field(default_factory=dict)
    document_timestamps: dict[int, float] = field(default_factory=dict)

    def clear(self) -> None:
        self.document_groups.clear()
        self.group_timestamps.clear()
        self.document_timestamps.clear()


class AssociationEngine:
    """Maintain ``AssociationState`` against a live host."""

    def __init__(
        self,
        host: EditorHost,
        registry: DocumentRegistry,
        state: Optional[AssociationState] = None,
        *,
        clock: Callable[[], float] = time.time,
        filter_enabled: bool = True,
    ) -> None:
        self._host = host
        self._registry = registry
        self._state = state if state is not None else AssociationState()
        self._clock = clock
        self._filter_enabled = filter_enabled

    @property
    def state(self) -> AssociationState:
        return self._state

    def document_belongs_to_group(self, handle: int, group_id: int) -> bool:
        """Return whether ``handle`` is a member of ``group_id``.

        A real document belongs to a group when one of the group's viewports
        displays it, or when its path is the group's working directory or lies
        beneath it. Nested working directories therefore share documents.
        """
        if not self._host.is_group_valid(group_id) or not self._registry.is_real(handle):
            return False
        if self._registry.is_open_in_group(handle, group_id):
            return True
        path = self._host.document_path(handle)
        return is_within(path, self._host.get_working_directory(group_id))

    def track(self, handle: int, group_id: Optional[int] = None) -> None:
        """Add ``group_id`` (default: focused group) to the membership of ``handle``."""
        if group_id is None:
            group_id = self._host.current_group()
        if not self.document_belongs_to_group(handle, group_id):
            return
        groups = self._state.document_groups.setdefault(handle, set())
        if group_id not in groups:
            groups.add(group_id)
            LOGGER.debug("Document %s joined group %s", handle, group_id)
        self._state.document_timestamps[handle] = self._clock()

    def adopt(self, handle: int, group_id: int) -> None:
        """Make ``handle`` a member of ``group_id`` without checking the rule.

        Restore uses this to reinstate persisted membership for documents that
        are neither displayed nor under the group's working directory.
        """
        if not self._host.is_group_valid(group_id) or not self._registry.is_real(handle):
            return
        self._state.document_groups.setdefault(handle, set()).add(group_id)

    def is_member(self, handle: int, group_id: int) -> bool:
        """Return whether ``handle`` is tracked in, or currently belongs to, ``group_id``."""
        if group_id in self._state.document_groups.get(handle, ()):
            return self._registry.is_real(handle)
        return self.document_belongs_to_group(handle, group_id)

    def apply_listing_filter(self, group_id: Optional[int] = None) -> None:
        """List exactly the tracked documents that belong to ``group_id``."""
        if not self._filter_enabled:
            return
        if group_id is None:
            group_id = self._host.current_group()
        for handle, groups in list(self._state.document_groups.items()):
            if not self._host.is_document_valid(handle):
                self._forget_document(handle)
                continue
            self._host.set_listed(handle, group_id in groups)

    def untrack_group(self, group_id: int) -> None:
        """Drop ``group_id`` from every membership set and forget its timestamp."""
        for groups in self._state.document_groups.values():
            groups.discard(group_id)
        self._state.group_timestamps.pop(group_id, None)

    def prune_closed_groups(self) -> list[int]:
        """Untrack every group the host no longer reports; return their ids."""
        open_groups = set(self._host.list_groups())
        known = set(self._state.group_timestamps)
        for groups in self._state.document_groups.values():
            known |= groups
        closed = sorted(known - open_groups)
        for group_id in closed:
            self.untrack_group(group_id)
        if closed:
            LOGGER.debug("Pruned closed groups %s", closed)
        return closed

    def rebuild(self) -> None:
        """Recompute every membership from scratch for the open groups and documents."""
        self._state.clear()
        documents = self._host.list_documents()
        for group_id in self._host.list_groups():
            for handle in documents:
                self.track(handle, group_id)
        LOGGER.debug(
            "Rebuilt association state for %d document(s)", len(self._state.document_groups)
        )

    def touch_current(self) -> None:
        """Stamp the focused group and document with the current instant."""
        now = self._clock()
        group_id = self._host.current_group()
        if self._host.is_group_valid(group_id):
            self._state.group_timestamps[group_id] = now
        handle = self._host.current_document()
        if handle is not None and self._host.is_document_valid(handle):
            self._state.document_timestamps[handle] = now

    def stamp_group(self, group_id: int) -> None:
        """Record that ``group_id`` was just entered or left."""
        if self._host.is_group_valid(group_id):
            self._state.group_timestamps[group_id] = self._clock()

    def seed_recency(
        self,
        *,
        documents: Mapping[int, float],
        groups: Mapping[int, float],
    ) -> None:
        """Replace the recorded focus instants for the given documents and groups.

        Restore calls this after ``rebuild()`` so that recency recorded in a
        snapshot, rather than the order of rebuilding, decides focus on the
        next capture.
        """
        for handle, instant in documents.items():
            if self._host.is_document_valid(handle):
                self._state.document_timestamps[handle] = instant
        for group_id, instant in groups.items():
            if self._host.is_group_valid(group_id):
                self._state.group_timestamps[group_id] = instant

    def groups_of(self, handle: int) -> frozenset[int]:
        """Return the groups ``handle`` currently belongs to."""
        return frozenset(self._state.document_groups.get(handle, ()))

    def documents_in_group(self, group_id: int) -> list[int]:
        """Return the live documents that belong to ``group_id``."""
        return [
            handle
            for handle, groups in self._state.document_groups.items()
            if group_id in groups and self._host.is_document_valid(handle)
        ]

    def group_timestamp(self, group_id: int) -> Optional[float]:
        return self._state.group_timestamps.get(group_id)

    def document_timestamp(self, handle: int) -> Optional[float]:
        return self._state.document_timestamps.get(handle)

    def _forget_document(self, handle: int) -> None:
        self._state.document_groups.pop(handle, None)
        self._state.document_timestamps.pop(handle, None)


__all__ = ["AssociationState", "AssociationEngine"]
