"""Upgrade older snapshot payloads to the current key layout.

Version 1 records stored groups under ``tabs`` with a ``cwd`` and no
documents; version 2 added ``buffers`` whose cursor column was ``col``;
version 3 added recency timestamps. Missing pieces are filled with the
defaults the models already apply, so only renamed keys need mapping here.
The stored ``version`` is left untouched so callers can still inspect it.
"""

from __future__ import annotations

from typing import Any, Mapping

from .errors import InvalidSnapshotError


def upgrade_payload(data: Any) -> dict[str, Any]:
    """Return a copy of ``data`` using the current snapshot keys.

    Raises:
        InvalidSnapshotError: If ``data`` or one of its groups is not a mapping.
    """
    if not isinstance(data, Mapping):
        raise InvalidSnapshotError("Snapshot payload must be a JSON object.")

    payload = dict(data)
    payload.setdefault("version", 1)
    if "groups" not in payload and "tabs" in payload:
        payload["groups"] = payload.pop("tabs")

    groups = payload.get("groups")
    if isinstance(groups, list):
        payload["groups"] = [
            _upgrade_group(group, position) for position, group in enumerate(groups, start=1)
        ]
    return payload


def _upgrade_group(group: Any, position: int) -> dict[str, Any]:
    if not isinstance(group, Mapping):
        raise InvalidSnapshotError(f"Group {position} must be a JSON object.")

    upgraded = dict(group)
    upgraded.setdefault("index", position)
    if "working_directory" not in upgraded and "cwd" in upgraded:
        upgraded["working_directory"] = upgraded.pop("cwd")
    if "documents" not in upgraded:
        upgraded["documents"] = upgraded.pop("buffers", None) or []

    documents = upgraded["documents"]
    if isinstance(documents, list):
        upgraded["documents"] = [_upgrade_document(doc) for doc in documents]
    return upgraded


def _upgrade_document(document: Any) -> Any:
    if not isinstance(document, Mapping):
        return document
    upgraded = dict(document)
    if "column" not in upgraded and "col" in upgraded:
        upgraded["column"] = upgraded.pop("col")
    return upgraded


__all__ = ["upgrade_payload"]
