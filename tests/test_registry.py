"""Document registry tests."""

from __future__ import annotations

from pathlib import Path

from tabstate.host.memory import InMemoryHost
from tabstate.registry import DocumentRegistry


def test_real_documents_exclude_special_and_unnamed(host: InMemoryHost, project: Path) -> None:
    registry = DocumentRegistry(host)
    unnamed = host.current_document()
    terminal = host.add_special("terminal", "term://bash")
    quickfix = host.add_special("quickfix")
    first = host.edit(project / "a" / "x.txt")

    assert unnamed is not None
    assert not registry.is_real(unnamed)
    assert not registry.is_real(terminal)
    assert not registry.is_real(quickfix)
    assert registry.is_real(first)
    assert [doc.handle for doc in registry.list_real_documents()] == [first]


def test_real_documents_keep_insertion_order(host: InMemoryHost, project: Path) -> None:
    registry = DocumentRegistry(host)
    second = host.edit(project / "a" / "y.txt")
    first = host.edit(project / "a" / "x.txt")
    host.edit(project / "a" / "y.txt")

    assert [doc.handle for doc in registry.list_real_documents()] == [second, first]


def test_deleted_file_is_no_longer_real(host: InMemoryHost, project: Path) -> None:
    registry = DocumentRegistry(host)
    handle = host.edit(project / "b" / "w.txt")

    (project / "b" / "w.txt").unlink()

    assert registry.is_file_document(handle)
    assert not registry.is_real(handle)
    assert registry.list_real_documents() == []


def test_list_modified_reports_unsaved_documents(host: InMemoryHost, project: Path) -> None:
    registry = DocumentRegistry(host)
    clean = host.edit(project / "a" / "x.txt")
    dirty = host.edit(project / "a" / "y.txt")
    host.mark_modified(dirty)

    modified = registry.list_modified()

    assert [doc.handle for doc in modified] == [dirty]
    assert modified[0].is_modified
    assert clean not in {doc.handle for doc in modified}


def test_is_open_in_group_tracks_viewports(host: InMemoryHost, project: Path) -> None:
    registry = DocumentRegistry(host)
    first_group = host.current_group()
    handle = host.edit(project / "a" / "x.txt")
    second_group = host.create_group()

    assert registry.is_open_in_group(handle, first_group)
    assert not registry.is_open_in_group(handle, second_group)
    assert not registry.is_open_in_group(handle, 9_999)
    assert not registry.is_open_in_group(9_999, first_group)
