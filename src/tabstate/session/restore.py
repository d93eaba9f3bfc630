"""Rebuild a workspace from a ``Snapshot``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from tabstate.association import AssociationEngine
from tabstate.host import ORDINARY_KIND, EditorHost
from tabstate.paths import resolve_path
from tabstate.scheduling import Deferrer, run_immediately
from tabstate.state.errors import InvalidSnapshotError
from tabstate.state.models import NEVER, GroupRecord, Snapshot

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RestoreFailure:
    """A non-fatal problem met while restoring one group.

    Attributes:
        group_index: 1-based position of the group in the snapshot.
        path: Document path or working directory that could not be used.
        reason: Human-readable cause.
    """

    group_index: int
    path: str
    reason: str


@dataclass(slots=True)
class RestoreReport:
    """Outcome of a restore; failures are warnings, not errors.

    Attributes:
        group_ids: Host ids of the restored groups, in snapshot order.
        active_group: Host id of the group that received focus.
        failures: Documents or directories that could not be restored.
    """

    group_ids: list[int] = field(default_factory=list)
    active_group: Optional[int] = None
    failures: list[RestoreFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


def validate_snapshot(snapshot: Snapshot) -> None:
    """Reject snapshots that cannot be restored.

    Raises:
        InvalidSnapshotError: If there are no groups or a group lacks a directory.
    """
    if not snapshot.groups:
        raise InvalidSnapshotError("Snapshot contains no groups.")
    for position, group in enumerate(snapshot.groups, start=1):
        if not group.working_directory or not group.working_directory.strip():
            raise InvalidSnapshotError(f"Group {position} has no working directory.")


def clear_workspace(host: EditorHost) -> int:
    """Close all groups but the focused one and force-delete every document.

    Returns:
        int: Id of the retained placeholder group.
    """
    placeholder = host.current_group()
    for group_id in host.list_groups():
        if group_id != placeholder:
            host.close_group(group_id)
    for handle in host.list_documents():
        if host.is_document_valid(handle):
            host.delete_document(handle, force=True)
    return placeholder


def restore(
    snapshot: Snapshot,
    host: EditorHost,
    engine: AssociationEngine,
    *,
    defer: Deferrer = run_immediately,
) -> RestoreReport:
    """Replace the host's workspace with the one described by ``snapshot``.

    Unsaved changes are discarded; callers resolve them beforehand. Documents
    that fail to load are reported and skipped. The listing filter for the
    focused group is deferred to the host's next tick, after association
    state has been rebuilt.

    Raises:
        InvalidSnapshotError: If ``snapshot`` cannot be restored at all.
    """
    validate_snapshot(snapshot)
    report = RestoreReport()
    placeholder = clear_workspace(host)

    loaded: list[tuple[int, GroupRecord, list[Optional[int]], Optional[int]]] = []
    for position, record in enumerate(snapshot.groups, start=1):
        group_id = placeholder if position == 1 else host.create_group()
        report.group_ids.append(group_id)
        _enter_directory(host, group_id, position, record, report)
        handles, focused = _load_documents(host, group_id, position, record, report)
        loaded.append((group_id, record, handles, focused))

    engine.rebuild()
    for group_id, _, handles, _ in loaded:
        for handle in handles:
            if handle is not None:
                engine.adopt(handle, group_id)
    engine.seed_recency(**_recorded_recency(loaded))

    target = report.group_ids[snapshot.focused_group_index - 1]
    host.switch_group(target)
    report.active_group = target
    defer(lambda: engine.apply_listing_filter(target))

    for failure in report.failures:
        LOGGER.warning(
            "Group %d: could not restore %s (%s)", failure.group_index, failure.path, failure.reason
        )
    return report


def _enter_directory(
    host: EditorHost,
    group_id: int,
    position: int,
    record: GroupRecord,
    report: RestoreReport,
) -> None:
    try:
        host.set_working_directory(group_id, record.working_directory)
    except OSError as exc:
        report.failures.append(RestoreFailure(position, record.working_directory, str(exc)))


def _load_documents(
    host: EditorHost,
    group_id: int,
    position: int,
    record: GroupRecord,
    report: RestoreReport,
) -> tuple[list[Optional[int]], Optional[int]]:
    """Open the documents of ``record`` hidden and display the focused one.

    Returns:
        The handle opened for each recorded document, ``None`` where opening
        failed, and the handle that was displayed.
    """
    incidental = [
        viewport.document
        for viewport in host.list_viewports(group_id)
        if _is_placeholder_document(host, viewport.document)
    ]

    handles: list[Optional[int]] = []
    for document in record.documents:
        path = resolve_path(document.path, record.working_directory)
        try:
            handle = host.open_document(path, display=False)
        except OSError as exc:
            report.failures.append(RestoreFailure(position, path, str(exc)))
            handles.append(None)
            continue
        host.set_listed(handle, False)
        handles.append(handle)

    loaded = [handle for handle in handles if handle is not None]
    focus = record.focused_document_index
    if focus is None or not loaded:
        return handles, None

    focused_handle = handles[focus - 1]
    if focused_handle is None:
        focused_handle = loaded[0]
    cursor = record.documents[handles.index(focused_handle)]
    host.display_document(focused_handle)
    host.set_cursor(cursor.cursor_line, cursor.cursor_column)

    displayed = {
        viewport.document for gid in host.list_groups() for viewport in host.list_viewports(gid)
    }
    for handle in incidental:
        if host.is_document_valid(handle) and handle not in displayed:
            host.delete_document(handle, force=True)
    return handles, focused_handle


def _recorded_recency(
    loaded: list[tuple[int, GroupRecord, list[Optional[int]], Optional[int]]],
) -> dict[str, dict[int, float]]:
    documents: dict[int, float] = {}
    groups: dict[int, float] = {}
    for group_id, record, handles, focused in loaded:
        groups[group_id] = float(record.last_active_at)
        newest = NEVER
        for document, handle in zip(record.documents, handles):
            newest = max(newest, document.last_active_at)
            if handle is not None:
                documents[handle] = max(documents.get(handle, NEVER), document.last_active_at)
        # Whole-second instants can tie; the displayed document must stay the newest.
        if focused is not None and documents[focused] <= newest:
            documents[focused] = newest + 0.5
    return {"documents": documents, "groups": groups}


def _is_placeholder_document(host: EditorHost, handle: int) -> bool:
    return (
        host.is_document_valid(handle)
        and not host.document_path(handle)
        and host.document_kind(handle) == ORDINARY_KIND
        and not host.is_modified(handle)
    )


__all__ = [
    "RestoreFailure",
    "RestoreReport",
    "validate_snapshot",
    "clear_workspace",
    "restore",
]
