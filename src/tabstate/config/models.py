"""Configuration models describing tabstate settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SESSION_DIR = Path("~/.tabstate/sessions")


class TabstateBaseModel(BaseModel):
    """Shared configuration for tabstate Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class AutosaveSettings(TabstateBaseModel):
    """Periodic persistence options.

    Attributes:
        enabled: Whether the autosave timer runs at all.
        on_exit: Whether to save once when the editor announces it is exiting.
        interval_ms: Milliseconds between timer ticks; zero disables the timer.
        debounce_ms: Minimum milliseconds between two successful saves.
    """

    enabled: bool = True
    on_exit: bool = True
    interval_ms: int = Field(default=300_000, ge=0)
    debounce_ms: int = Field(default=30_000, ge=0)


class StorageSettings(TabstateBaseModel):
    """Location of persisted sessions.

    Attributes:
        session_dir: Directory holding snapshots and the metadata index.
    """

    session_dir: Optional[str] = None

    def resolve_session_dir(self) -> Path:
        """Return the configured session directory with ``~`` expanded."""
        if self.session_dir:
            return Path(self.session_dir).expanduser()
        return DEFAULT_SESSION_DIR.expanduser()


class LoggingSettings(TabstateBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class CLIOptions(TabstateBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        list_limit: Maximum sessions shown by ``tabstate list``; zero shows all.
    """

    quiet_default: bool = False
    list_limit: int = Field(default=0, ge=0)


class TabstateConfig(TabstateBaseModel):
    """Top-level configuration struct for tabstate.

    Attributes:
        stop_lsp_on_load: Stop every language server before a session load.
        autoload_last_session: Restore the last loaded session at startup.
        filter_by_tab: Restrict the listed documents to the active group.
        stop_lsp_on_group_leave: Stop a group's language servers on leave and
            restart them on enter.
        autosave: Periodic persistence settings.
        storage: Session storage location.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    stop_lsp_on_load: bool = True
    autoload_last_session: bool = False
    filter_by_tab: bool = True
    stop_lsp_on_group_leave: bool = False
    autosave: AutosaveSettings = Field(default_factory=AutosaveSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DEFAULT_SESSION_DIR",
    "TabstateBaseModel",
    "AutosaveSettings",
    "StorageSettings",
    "LoggingSettings",
    "CLIOptions",
    "TabstateConfig",
]
