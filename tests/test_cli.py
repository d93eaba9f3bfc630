"""CLI tests for the session commands."""

import json
import os
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

import tabstate
from tabstate.cli import cli
from tabstate.state import DocumentRecord, GroupRecord, SessionStore, Snapshot


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _snapshot(created_at: int) -> Snapshot:
    return Snapshot(
        created_at=created_at,
        active_group_index=2,
        groups=(
            GroupRecord(
                index=1,
                working_directory="/work/api",
                documents=(DocumentRecord(path="main.py", cursor_line=12, cursor_column=3),),
            ),
            GroupRecord(index=2, working_directory="/work/web"),
        ),
    )


@pytest.fixture
def sessions(tmp_path: Path) -> SessionStore:
    store = SessionStore(tmp_path / "sessions")
    store.save("alpha", _snapshot(1_700_000_000))
    store.save("beta", _snapshot(1_700_000_500))
    store.write_last_loaded("alpha")
    return store


def _invoke(tmp_path: Path, store: SessionStore, *args: str, **kwargs: Any):
    runner = CliRunner()
    return runner.invoke(
        cli, ["--session-dir", str(store.root), *args], env=_env_with_home(tmp_path), **kwargs
    )


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Inspect and manage saved editor sessions" in result.output
    for command in ("list", "show", "delete", "last", "config"):
        assert command in result.output


def test_version_option_reports_package_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert tabstate.__version__ in result.output


def test_list_renders_table(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "list")

    assert result.exit_code == 0
    assert "alpha" in result.output
    assert "beta" in result.output
    assert result.output.index("beta") < result.output.index("alpha")


def test_list_json_payload(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "list", "--json", "--limit", "1")

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload == {
        "sessions": [{"name": "beta", "timestamp": 1_700_000_500}],
        "last_loaded": "alpha",
    }


def test_list_empty_store(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "empty")

    result = _invoke(tmp_path, store, "list")
    quiet = _invoke(tmp_path, store, "list", "--quiet")

    assert result.exit_code == 0
    assert "No sessions found" in result.output
    assert quiet.exit_code == 0
    assert quiet.output == ""


def test_show_lists_groups_and_documents(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "show", "alpha")

    assert result.exit_code == 0
    assert "/work/api" in result.output
    assert "/work/web" in result.output
    assert "main.py" in result.output


def test_show_json_matches_stored_payload(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "show", "beta", "--json")

    assert result.exit_code == 0
    assert json.loads(result.output) == sessions.load("beta").to_payload()


def test_show_missing_session(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "show", "gamma")
    json_result = _invoke(tmp_path, sessions, "show", "gamma", "--json")

    assert result.exit_code != 0
    assert "Session not found: gamma" in result.output
    assert json_result.exit_code == 1
    assert json.loads(json_result.output)["error"]["code"] == "load_failed"


def test_delete_requires_confirmation(tmp_path: Path, sessions: SessionStore) -> None:
    declined = _invoke(tmp_path, sessions, "delete", "beta", input="n\n")

    assert declined.exit_code == 0
    assert "cancelled" in declined.output
    assert sessions.exists("beta")

    confirmed = _invoke(tmp_path, sessions, "delete", "beta", input="y\n")

    assert confirmed.exit_code == 0
    assert not sessions.exists("beta")


def test_delete_last_loaded_clears_pointer(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "delete", "alpha", "--yes")

    assert result.exit_code == 0
    assert "Session deleted: alpha" in result.output
    assert sessions.read_last_loaded() is None


def test_delete_missing_session_fails(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "delete", "gamma", "--yes")

    assert result.exit_code != 0
    assert "Session not found" in result.output


def test_delete_json_reports_deleted_session(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "delete", "beta", "--yes", "--json")

    assert result.exit_code == 0
    assert json.loads(result.output) == {"deleted": "beta"}
    assert not sessions.exists("beta")


def test_delete_json_errors(tmp_path: Path, sessions: SessionStore) -> None:
    unconfirmed = _invoke(tmp_path, sessions, "delete", "beta", "--json")
    missing = _invoke(tmp_path, sessions, "delete", "gamma", "--yes", "--json")

    assert unconfirmed.exit_code == 1
    assert json.loads(unconfirmed.output)["error"]["code"] == "confirmation_required"
    assert sessions.exists("beta")
    assert missing.exit_code == 1
    assert json.loads(missing.output)["error"]["code"] == "delete_failed"


def test_delete_quiet_suppresses_confirmation_message(
    tmp_path: Path, sessions: SessionStore
) -> None:
    result = _invoke(tmp_path, sessions, "delete", "beta", "--yes", "--quiet")

    assert result.exit_code == 0
    assert result.output == ""
    assert not sessions.exists("beta")


def test_last_json(tmp_path: Path, sessions: SessionStore) -> None:
    result = _invoke(tmp_path, sessions, "last", "--json")
    empty = _invoke(tmp_path, SessionStore(tmp_path / "empty"), "last", "--json")

    assert result.exit_code == 0
    assert json.loads(result.output) == {"name": "alpha"}
    assert empty.exit_code == 1
    assert json.loads(empty.output)["error"]["code"] == "no_sessions"


def test_last_prefers_last_loaded_then_most_recent(
    tmp_path: Path, sessions: SessionStore
) -> None:
    assert _invoke(tmp_path, sessions, "last").output.strip() == "alpha"

    sessions.clear_last_loaded()
    assert _invoke(tmp_path, sessions, "last").output.strip() == "beta"


def test_last_without_sessions_fails(tmp_path: Path) -> None:
    result = _invoke(tmp_path, SessionStore(tmp_path / "empty"), "last")

    assert result.exit_code != 0
    assert "No sessions have been saved yet" in result.output


def test_session_dir_defaults_to_configuration(tmp_path: Path, sessions: SessionStore) -> None:
    env = _env_with_home(tmp_path)
    env["TABSTATE__STORAGE__SESSION_DIR"] = str(sessions.root)

    result = CliRunner().invoke(cli, ["list", "--json"], env=env)

    assert result.exit_code == 0
    names = [entry["name"] for entry in json.loads(result.output)["sessions"]]
    assert names == ["beta", "alpha"]
