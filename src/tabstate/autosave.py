"""Periodic background persistence of the current session."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from tabstate.config import AutosaveSettings
from tabstate.scheduling import Deferrer, run_immediately
from tabstate.session import SessionManager

LOGGER = logging.getLogger(__name__)

AUTOSAVE_SESSION = "_autosave"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True, slots=True)
class AutosaveStatus:
    """Snapshot of the autosave service for display.

    Attributes:
        enabled: Whether autosave is configured on.
        paused: Whether triggers are currently ignored.
        running: Whether the background timer thread is alive.
        session: Name the next autosave will write to.
        last_save: Wall-clock time of the last successful save.
        interval_minutes: Timer period in minutes.
    """

    enabled: bool
    paused: bool
    running: bool
    session: str
    last_save: Optional[datetime]
    interval_minutes: float


class AutosaveService:
    """Save the current session on a timer, debounced against the last save.

    The timer runs on a daemon thread but never touches the host itself: each
    tick is handed to the host thread through ``defer``. Triggers that arrive
    within ``debounce_ms`` of the last successful save are dropped. Pausing
    leaves the timer running so resuming needs no re-arming.
    """

    def __init__(
        self,
        manager: SessionManager,
        settings: AutosaveSettings,
        *,
        defer: Deferrer = run_immediately,
        clock_ms: Callable[[], float] = _monotonic_ms,
        fallback_name: str = AUTOSAVE_SESSION,
    ) -> None:
        self._manager = manager
        self._settings = settings
        self._defer = defer
        self._clock_ms = clock_ms
        self._fallback_name = fallback_name
        self._paused = False
        self._last_save_ms: Optional[float] = None
        self._last_save_at: Optional[datetime] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def session_name(self) -> str:
        """Name the next autosave writes to."""
        return self._manager.current_session or self._fallback_name

    def trigger(self) -> bool:
        """Save unless paused or inside the debounce window.

        Returns:
            bool: True when a save was written.
        """
        if self._paused:
            return False
        now = self._clock_ms()
        if self._last_save_ms is not None and now - self._last_save_ms < self._settings.debounce_ms:
            LOGGER.debug("Autosave skipped; last save was %.0f ms ago", now - self._last_save_ms)
            return False
        return self._save(now)

    def save_on_exit(self) -> bool:
        """Save once while the host is exiting, ignoring the debounce window."""
        if not self._settings.enabled or not self._settings.on_exit or self._paused:
            return False
        return self._save(self._clock_ms())

    def pause(self) -> None:
        self._paused = True
        LOGGER.info("Autosave paused")

    def resume(self) -> None:
        self._paused = False
        LOGGER.info("Autosave resumed")

    def start(self) -> bool:
        """Start the timer thread.

        Returns:
            bool: False when autosave is disabled or has no interval.

        Raises:
            RuntimeError: If the timer is already running.
        """
        if not self._settings.enabled or self._settings.interval_ms <= 0:
            return False
        if self.running:
            raise RuntimeError("AutosaveService is already running.")

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run_timer,
            args=(self._stop_event, self._settings.interval_ms / 1000),
            name="tabstate-autosave",
            daemon=True,
        )
        self._thread.start()
        return True

    def stop(self) -> None:
        """Stop the timer thread if it is running."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def status(self) -> AutosaveStatus:
        return AutosaveStatus(
            enabled=self._settings.enabled,
            paused=self._paused,
            running=self.running,
            session=self.session_name,
            last_save=self._last_save_at,
            interval_minutes=self._settings.interval_ms / 60_000,
        )

    def _run_timer(self, stop_event: threading.Event, interval: float) -> None:
        while not stop_event.wait(interval):
            self._defer(self._tick)

    def _tick(self) -> None:
        self.trigger()

    def _save(self, now: float) -> bool:
        name = self.session_name
        try:
            self._manager.store.save(name, self._manager.capture())
        except Exception:  # noqa: BLE001
            LOGGER.warning("Autosave of session %r failed", name, exc_info=True)
            return False
        self._last_save_ms = now
        self._last_save_at = datetime.now(timezone.utc)
        LOGGER.debug("Autosaved session %r", name)
        return True


__all__ = ["AUTOSAVE_SESSION", "AutosaveStatus", "AutosaveService"]
