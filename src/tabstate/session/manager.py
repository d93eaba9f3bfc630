"""High-level session operations bound to one editor host."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from tabstate.association import AssociationEngine, AssociationState
from tabstate.config import TabstateConfig
from tabstate.host import (
    DiscardChanges,
    EditorHost,
    NullTooling,
    SessionPicker,
    ToolingLifecycle,
    UnsavedChangesResolver,
)
from tabstate.registry import DocumentRegistry
from tabstate.scheduling import Deferrer, run_immediately
from tabstate.state import SessionStore
from tabstate.state.errors import SessionNotFoundError
from tabstate.state.models import SessionMetadata, Snapshot

from .capture import capture
from .errors import OperationCancelled
from .restore import RestoreReport, clear_workspace, restore, validate_snapshot

LOGGER = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Mutable state owned by one manager.

    Attributes:
        current_session: Name of the session last saved or loaded, if any.
        association: Live document-to-group association maps.
    """

    current_session: Optional[str] = None
    association: AssociationState = field(default_factory=AssociationState)


class SessionManager:
    """Save, load, create and delete sessions for a single host.

    The manager also exposes the event interface a host adapter calls when
    focus changes: ``group_entered``, ``group_left``, ``group_closed`` and
    ``document_entered``.
    """

    def __init__(
        self,
        host: EditorHost,
        store: SessionStore,
        config: Optional[TabstateConfig] = None,
        *,
        tooling: Optional[ToolingLifecycle] = None,
        resolver: Optional[UnsavedChangesResolver] = None,
        picker: Optional[SessionPicker] = None,
        defer: Deferrer = run_immediately,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the manager.

        Args:
            host: Editor host the sessions are captured from and restored into.
            store: Persistent session store.
            config: Behaviour switches; defaults apply when omitted.
            tooling: Language-server lifecycle collaborator.
            resolver: Unsaved-changes prompt; defaults to discarding changes.
            picker: Interactive prompts for operations invoked without a name.
            defer: Schedules work for the host's next tick.
            clock: Wall-clock source for recency and capture timestamps.
        """
        self._host = host
        self._store = store
        self._config = config or TabstateConfig()
        self._tooling = tooling or NullTooling()
        self._resolver = resolver or DiscardChanges()
        self._picker = picker
        self._defer = defer
        self._clock = clock
        self.context = SessionContext()
        self._registry = DocumentRegistry(host)
        self._engine = AssociationEngine(
            host,
            self._registry,
            self.context.association,
            clock=clock,
            filter_enabled=self._config.filter_by_tab,
        )

    @property
    def host(self) -> EditorHost:
        return self._host

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def config(self) -> TabstateConfig:
        return self._config

    @property
    def engine(self) -> AssociationEngine:
        return self._engine

    @property
    def registry(self) -> DocumentRegistry:
        return self._registry

    @property
    def current_session(self) -> Optional[str]:
        return self.context.current_session

    # Session operations -----------------------------------------------

    def capture(self) -> Snapshot:
        """Capture the current workspace without persisting it."""
        return capture(self._host, self._registry, self._engine, clock=self._clock)

    def save(self, name: Optional[str] = None) -> str:
        """Capture the workspace and store it.

        Args:
            name: Session name; defaults to the current session, then to a prompt.

        Returns:
            str: Name the session was saved under.

        Raises:
            OperationCancelled: If no name was given and the prompt was dismissed.
            StateError: If the store rejects the name or cannot be written.
        """
        name = name or self.context.current_session or self._prompt_name()
        if not name:
            raise OperationCancelled("No session name given.")
        self._store.save(name, self.capture())
        self.context.current_session = name
        LOGGER.info("Session saved: %s", name)
        return name

    def load(self, name: Optional[str] = None) -> Optional[RestoreReport]:
        """Replace the workspace with a stored session.

        Args:
            name: Session to load; a picker is shown when omitted.

        Returns:
            RestoreReport | None: Restore outcome, or None if nothing was picked.

        Raises:
            SessionNotFoundError: If ``name`` is not stored.
            InvalidSnapshotError: If the stored snapshot is malformed.
            OperationCancelled: If the user cancels an unsaved-changes prompt.
        """
        name = name or self._pick("Load session")
        if not name:
            return None

        snapshot = self._store.load(name)
        validate_snapshot(snapshot)
        self._confirm_discard()
        if self._config.stop_lsp_on_load:
            self._stop_all_tooling()

        report = restore(snapshot, self._host, self._engine, defer=self._defer)
        self.context.current_session = name
        self._store.write_last_loaded(name)

        if self._config.stop_lsp_on_load and report.active_group is not None:
            active = report.active_group
            self._defer(lambda: self._restart_tooling([active]))
        LOGGER.info("Session loaded: %s", name)
        return report

    def new_session(self, working_directory: Optional[str] = None) -> int:
        """Clear the workspace down to one empty group.

        Args:
            working_directory: Optional directory for the remaining group.

        Returns:
            int: Host id of the remaining group.

        Raises:
            OperationCancelled: If the user cancels an unsaved-changes prompt.
        """
        self._confirm_discard()
        if self._config.stop_lsp_on_load:
            self._stop_all_tooling()

        group_id = clear_workspace(self._host)
        if working_directory:
            try:
                self._host.set_working_directory(group_id, working_directory)
            except OSError as exc:
                LOGGER.warning("Could not change directory to %s: %s", working_directory, exc)

        self._engine.rebuild()
        self._defer(lambda: self._engine.apply_listing_filter(group_id))
        self.context.current_session = None
        LOGGER.info("Started a new session")
        return group_id

    def delete(self, name: Optional[str] = None) -> Optional[str]:
        """Delete a stored session.

        The current-session and last-loaded pointers are cleared when they name
        the deleted session.

        Returns:
            str | None: Deleted name, or None if nothing was picked.

        Raises:
            SessionNotFoundError: If ``name`` is not stored.
        """
        name = name or self._pick("Delete session")
        if not name:
            return None

        self._store.delete(name)
        if self.context.current_session == name:
            self.context.current_session = None
        if self._store.read_last_loaded() == name:
            self._store.clear_last_loaded()
        return name

    def list(self) -> list[SessionMetadata]:
        """Return stored sessions, newest first."""
        return self._store.list()

    def autoload(self) -> Optional[RestoreReport]:
        """Restore the last loaded (else most recent) session when configured to."""
        if not self._config.autoload_last_session:
            return None

        candidates: list[str] = []
        for name in (self._store.read_last_loaded(), self._store.get_most_recent()):
            if name and name not in candidates:
                candidates.append(name)

        for name in candidates:
            try:
                return self.load(name)
            except SessionNotFoundError:
                LOGGER.warning("Session %r is no longer stored; skipping autoload.", name)
        return None

    # Host events ------------------------------------------------------

    def group_entered(self, group_id: int) -> None:
        """Handle focus moving into ``group_id``."""
        self._engine.stamp_group(group_id)
        self._defer(lambda: self._engine.apply_listing_filter(group_id))
        if self._config.stop_lsp_on_group_leave:
            self._defer(lambda: self._restart_tooling([group_id]))

    def group_left(self, group_id: int) -> None:
        """Handle focus leaving ``group_id``."""
        self._engine.stamp_group(group_id)
        if self._config.stop_lsp_on_group_leave:
            self._stop_tooling([group_id])

    def group_closed(self, group_id: Optional[int] = None) -> None:
        """Forget a closed group; without an id, prune every group the host dropped."""
        if group_id is None:
            self._engine.prune_closed_groups()
        else:
            self._engine.untrack_group(group_id)

    def document_entered(self, handle: int) -> None:
        """Handle focus moving to document ``handle`` in the current group."""
        self._engine.track(handle)

    # Internal helpers -------------------------------------------------

    def _confirm_discard(self) -> None:
        modified = self._registry.list_modified()
        if modified and not self._resolver.resolve(modified):
            raise OperationCancelled("Operation cancelled")

    def _stop_all_tooling(self) -> None:
        try:
            self._tooling.stop_all()
        except Exception:  # noqa: BLE001
            LOGGER.warning("Stopping language tooling failed", exc_info=True)

    def _stop_tooling(self, group_ids: Sequence[int]) -> None:
        try:
            self._tooling.stop_for_groups(group_ids)
        except Exception:  # noqa: BLE001
            LOGGER.warning(
                "Stopping language tooling for groups %s failed", group_ids, exc_info=True
            )

    def _restart_tooling(self, group_ids: Sequence[int]) -> None:
        try:
            self._tooling.restart_for_groups(group_ids)
        except Exception:  # noqa: BLE001
            LOGGER.warning(
                "Restarting language tooling for groups %s failed", group_ids, exc_info=True
            )

    def _pick(self, prompt: str) -> Optional[str]:
        if self._picker is None:
            return None
        return self._picker.select(self._store.list(), prompt=prompt)

    def _prompt_name(self) -> Optional[str]:
        if self._picker is None:
            return None
        return self._picker.prompt_name(prompt="Save session as: ")


__all__ = ["SessionContext", "SessionManager"]
