"""Deferred execution on the host's own thread.

Some updates must wait until the host has finished its current transition
(for example a document deletion still being processed). The core expresses
that through a ``Deferrer``: a callable that accepts a zero-argument task and
runs it later, in submission order, on the host thread. Host adapters pass a
function backed by their event loop; tests use ``DeferredQueue`` and drain it
explicitly, or ``run_immediately`` when ordering is irrelevant.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable

LOGGER = logging.getLogger(__name__)

Task = Callable[[], None]
Deferrer = Callable[[Task], None]


def run_immediately(task: Task) -> None:
    """Deferrer that runs ``task`` synchronously."""
    task()


class DeferredQueue:
    """FIFO of tasks to run on the next host tick.

    ``defer`` may be called from any thread (the autosave timer does);
    ``run_pending`` must be called from the host thread.
    """

    def __init__(self) -> None:
        self._tasks: deque[Task] = deque()
        self._lock = threading.Lock()

    def __call__(self, task: Task) -> None:
        self.defer(task)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def defer(self, task: Task) -> None:
        with self._lock:
            self._tasks.append(task)

    def run_pending(self) -> int:
        """Run the tasks queued so far and return how many ran.

        Tasks deferred while draining wait for the next call, matching a host
        event loop where each tick only sees work scheduled before it began.
        """
        with self._lock:
            batch = list(self._tasks)
            self._tasks.clear()
        for task in batch:
            LOGGER.debug("Running deferred task %r", task)
            task()
        return len(batch)


__all__ = ["Task", "Deferrer", "run_immediately", "DeferredQueue"]
