"""Shared fixtures for the tabstate test-suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tabstate.host.memory import InMemoryHost
from tabstate.state import SessionStore


class TickingClock:
    """Deterministic clock that advances by ``step`` on every read."""

    def __init__(self, start: float = 1_000.0, step: float = 1.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a small tree of files under ``tmp_path/project``.

    Layout::

        project/a/x.txt
        project/a/y.txt
        project/a/sub/z.txt
        project/b/w.txt
        project/outside.txt
    """
    root = tmp_path / "project"
    for relative in ("a/x.txt", "a/y.txt", "a/sub/z.txt", "b/w.txt", "outside.txt"):
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{relative}\n" * 10, encoding="utf-8")
    return root


@pytest.fixture
def host(project: Path) -> InMemoryHost:
    return InMemoryHost(cwd=project / "a")


@pytest.fixture
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "sessions")
