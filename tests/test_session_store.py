"""Session store tests."""

from __future__ import annotations

import json
import os

import pytest

from tabstate.state import (
    INDEX_FILENAME,
    LAST_LOADED_FILENAME,
    MAX_FILENAME_BYTES,
    SNAPSHOT_DIRNAME,
    DocumentRecord,
    GroupRecord,
    InvalidSessionNameError,
    InvalidSnapshotError,
    SessionNotFoundError,
    SessionStore,
    Snapshot,
    StateError,
)


def _snapshot(created_at: int = 100, directory: str = "/work") -> Snapshot:
    """Return a one-group snapshot with two documents.

    Args:
        created_at: Capture time stored on the snapshot.
        directory: Working directory of the only group.

    Returns:
        Snapshot: Sample snapshot.
    """
    return Snapshot(
        created_at=created_at,
        active_group_index=1,
        groups=(
            GroupRecord(
                index=1,
                working_directory=directory,
                documents=(
                    DocumentRecord(path="x.txt", cursor_line=5, cursor_column=2),
                    DocumentRecord(path="/elsewhere/y.txt", last_active_at=7),
                ),
                active_document_index=2,
            ),
        ),
    )


def test_save_and_load_round_trip(store: SessionStore) -> None:
    snapshot = _snapshot()

    path = store.save("s1", snapshot)

    assert path == store.root / SNAPSHOT_DIRNAME / "s1.json"
    assert store.load("s1").model_dump() == snapshot.model_dump()
    assert store.exists("s1")


def test_snapshot_file_uses_documented_keys(store: SessionStore) -> None:
    store.save("s1", _snapshot())

    payload = json.loads((store.root / SNAPSHOT_DIRNAME / "s1.json").read_text(encoding="utf-8"))

    assert payload["version"] == 3
    assert payload["timestamp"] == 100
    group = payload["groups"][0]
    assert group["working_directory"] == "/work"
    assert group["documents"][0] == {"path": "x.txt", "line": 5, "column": 2, "timestamp": 0}

    index = json.loads((store.root / INDEX_FILENAME).read_text(encoding="utf-8"))
    assert index == {"sessions": [{"name": "s1", "timestamp": 100}]}


def test_list_sorts_newest_first(store: SessionStore) -> None:
    store.save("old", _snapshot(created_at=10))
    store.save("new", _snapshot(created_at=30))
    store.save("mid", _snapshot(created_at=20))

    assert [entry.name for entry in store.list()] == ["new", "mid", "old"]
    assert store.get_most_recent() == "new"


def test_resaving_updates_index_entry(store: SessionStore) -> None:
    store.save("a", _snapshot(created_at=10))
    store.save("b", _snapshot(created_at=20))
    store.save("a", _snapshot(created_at=30))

    entries = store.list()
    assert [(entry.name, entry.last_modified) for entry in entries] == [("a", 30), ("b", 20)]


def test_empty_store_lists_nothing(store: SessionStore) -> None:
    assert store.list() == []
    assert store.get_most_recent() is None
    assert store.read_last_loaded() is None


def test_load_missing_session_raises(store: SessionStore) -> None:
    with pytest.raises(SessionNotFoundError):
        store.load("absent")


def test_load_rejects_malformed_snapshots(store: SessionStore) -> None:
    store.initialize()
    snapshots = store.root / SNAPSHOT_DIRNAME
    (snapshots / "broken.json").write_text("{not json", encoding="utf-8")
    (snapshots / "nodir.json").write_text(
        json.dumps({"version": 3, "groups": [{"documents": []}]}), encoding="utf-8"
    )
    (snapshots / "list.json").write_text("[1, 2]", encoding="utf-8")

    for name in ("broken", "nodir", "list"):
        with pytest.raises(InvalidSnapshotError):
            store.load(name)


def test_delete_removes_snapshot_and_index_entry(store: SessionStore) -> None:
    store.save("keep", _snapshot(created_at=1))
    store.save("drop", _snapshot(created_at=2))

    store.delete("drop")

    assert not store.exists("drop")
    assert [entry.name for entry in store.list()] == ["keep"]
    with pytest.raises(SessionNotFoundError):
        store.delete("drop")


def test_list_skips_entries_without_snapshot(store: SessionStore) -> None:
    store.save("one", _snapshot(created_at=1))
    store.save("two", _snapshot(created_at=2))

    store.snapshot_path("two").unlink()

    assert [entry.name for entry in store.list()] == ["one"]


def test_corrupt_index_is_rebuilt_from_snapshots(
    store: SessionStore, caplog: pytest.LogCaptureFixture
) -> None:
    store.save("one", _snapshot(created_at=1))
    store.save("two", _snapshot(created_at=2))
    (store.root / INDEX_FILENAME).write_text("garbage", encoding="utf-8")

    with caplog.at_level("WARNING"):
        names = {entry.name for entry in store.list()}

    assert names == {"one", "two"}
    assert "unreadable session index" in caplog.text

    store.save("three", _snapshot(created_at=3))
    assert {entry.name for entry in store.list()} == {"one", "two", "three"}


def test_missing_index_falls_back_to_scanning(store: SessionStore) -> None:
    store.save("legacy", _snapshot(created_at=1))
    snapshot_file = store.snapshot_path("legacy")
    os.utime(snapshot_file, (5_000, 5_000))
    (store.root / INDEX_FILENAME).unlink()

    entries = store.list()

    assert [(entry.name, entry.last_modified) for entry in entries] == [("legacy", 5_000)]


def test_names_are_escaped_for_the_filesystem(store: SessionStore) -> None:
    name = "feature/login: wip"
    store.save(name, _snapshot())

    path = store.snapshot_path(name)
    assert path.parent == store.root / SNAPSHOT_DIRNAME
    assert "/" not in path.name
    assert store.load(name).model_dump() == _snapshot().model_dump()

    (store.root / INDEX_FILENAME).unlink()
    assert [entry.name for entry in store.list()] == [name]


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_names_are_rejected(store: SessionStore, name: str) -> None:
    with pytest.raises(InvalidSessionNameError):
        store.save(name, _snapshot())
    assert issubclass(InvalidSessionNameError, StateError)


def test_overlong_names_are_rejected_before_touching_disk(store: SessionStore) -> None:
    name = "n" * 300

    with pytest.raises(InvalidSessionNameError):
        store.save(name, _snapshot())
    with pytest.raises(InvalidSessionNameError):
        store.load(name)
    with pytest.raises(InvalidSessionNameError):
        store.exists(name)
    assert store.list() == []


def test_escaping_counts_towards_the_name_limit(store: SessionStore) -> None:
    longest = "n" * (MAX_FILENAME_BYTES - len(".json"))
    store.save(longest, _snapshot())

    assert store.exists(longest)
    with pytest.raises(InvalidSessionNameError):
        store.save("/" * 100, _snapshot())


def test_last_loaded_pointer(store: SessionStore) -> None:
    store.write_last_loaded("s1")

    assert (store.root / LAST_LOADED_FILENAME).read_text(encoding="utf-8") == "s1"
    assert store.read_last_loaded() == "s1"

    store.clear_last_loaded()
    assert store.read_last_loaded() is None
    store.clear_last_loaded()


def test_legacy_payloads_are_upgraded(store: SessionStore) -> None:
    store.initialize()
    legacy = {
        "version": 2,
        "tabs": [
            {
                "cwd": "/work",
                "buffers": [{"path": "x.txt", "line": 4, "col": 3}, {"path": "y.txt"}],
            },
            {"cwd": "/other"},
        ],
    }
    store.snapshot_path("old").write_text(json.dumps(legacy), encoding="utf-8")

    snapshot = store.load("old")

    assert snapshot.version == 2
    assert snapshot.created_at == 0
    first, second = snapshot.groups
    assert (first.index, first.working_directory) == (1, "/work")
    assert [(doc.path, doc.cursor_line, doc.cursor_column) for doc in first.documents] == [
        ("x.txt", 4, 3),
        ("y.txt", 1, 1),
    ]
    assert first.focused_document_index == 1
    assert (second.index, second.documents) == (2, ())
    assert snapshot.focused_group_index == 1


def test_atomic_writes_leave_no_temporary_files(store: SessionStore) -> None:
    for created_at in range(3):
        store.save("s1", _snapshot(created_at=created_at))
    store.write_last_loaded("s1")

    leftovers = [path.name for path in store.root.rglob("*.tmp")]
    assert leftovers == []
