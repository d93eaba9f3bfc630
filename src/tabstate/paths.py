"""Path containment helpers shared by capture and association."""

from __future__ import annotations

import os


def is_within(path: str, directory: str) -> bool:
    """Return whether ``path`` equals ``directory`` or is nested beneath it.

    Both arguments are expected to be absolute; they are normalized but not
    resolved, so symlinks are compared textually.
    """
    if not path or not directory:
        return False
    path = os.path.normpath(path)
    directory = os.path.normpath(directory)
    if path == directory:
        return True
    prefix = directory if directory.endswith(os.sep) else directory + os.sep
    return path.startswith(prefix)


def portable_path(path: str, directory: str) -> str:
    """Return ``path`` relative to ``directory`` when nested, else unchanged."""
    if is_within(path, directory):
        relative = os.path.relpath(path, directory)
        if relative != os.curdir:
            return relative
    return path


def resolve_path(path: str, directory: str) -> str:
    """Return ``path`` made absolute against ``directory``."""
    if os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(directory, path))


__all__ = ["is_within", "portable_path", "resolve_path"]
