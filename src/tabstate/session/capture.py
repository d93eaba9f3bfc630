"""Capture the live workspace into a ``Snapshot``."""

from __future__ import annotations

import time
from typing import Callable, Optional, Sequence

from tabstate.association import AssociationEngine
from tabstate.host import EditorHost
from tabstate.paths import portable_path
from tabstate.registry import DocumentRegistry
from tabstate.state.models import CURRENT_VERSION, NEVER, DocumentRecord, GroupRecord, Snapshot


def select_active_index(timestamps: Sequence[float]) -> Optional[int]:
    """Return the 1-based position of the greatest timestamp.

    Ties resolve to the lowest position; an empty sequence yields None.
    """
    best: Optional[int] = None
    for position, value in enumerate(timestamps):
        if best is None or value > timestamps[best]:
            best = position
    return None if best is None else best + 1


def capture(
    host: EditorHost,
    registry: DocumentRegistry,
    engine: AssociationEngine,
    *,
    clock: Callable[[], float] = time.time,
) -> Snapshot:
    """Record every group, its working directory and its documents.

    Documents keep the host's insertion order; recency is stored alongside
    and only used to pick which group and document get focus on restore.
    Focus selection compares the engine's unrounded instants, while the
    records carry whole seconds.

    The host's focus is never changed: working directories and cursors are
    read per group through the host interface.
    """
    engine.touch_current()
    documents = registry.list_real_documents()

    groups: list[GroupRecord] = []
    group_recency: list[float] = []
    for position, group_id in enumerate(host.list_groups(), start=1):
        cwd = host.get_working_directory(group_id)
        cursors: dict[int, tuple[int, int]] = {}
        for viewport in host.list_viewports(group_id):
            cursors.setdefault(viewport.document, (viewport.line, viewport.column))

        records: list[DocumentRecord] = []
        recency: list[float] = []
        seen: set[int] = set()
        for document in documents:
            if document.handle in seen or not engine.is_member(document.handle, group_id):
                continue
            seen.add(document.handle)
            line, column = cursors.get(document.handle, (1, 1))
            instant = _instant(engine.document_timestamp(document.handle))
            records.append(
                DocumentRecord(
                    path=portable_path(document.path, cwd),
                    cursor_line=line,
                    cursor_column=column,
                    last_active_at=int(instant),
                )
            )
            recency.append(instant)

        group_instant = _instant(engine.group_timestamp(group_id))
        groups.append(
            GroupRecord(
                index=position,
                working_directory=cwd,
                documents=tuple(records),
                last_active_at=int(group_instant),
                active_document_index=select_active_index(recency),
            )
        )
        group_recency.append(group_instant)

    return Snapshot(
        version=CURRENT_VERSION,
        created_at=int(clock()),
        groups=tuple(groups),
        active_group_index=select_active_index(group_recency),
    )


def _instant(value: Optional[float]) -> float:
    return float(NEVER) if value is None else value


__all__ = ["capture", "select_active_index"]
