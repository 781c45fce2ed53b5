import logging
import os
import subprocess
import sys
from pathlib import Path

import pytest

from trackerlink.desktop import launcher
from trackerlink.sync.config import SyncSettings


def test_parse_args_defaults_leave_settings_untouched() -> None:
    args = launcher.parse_args([])
    settings = SyncSettings(port=8100)

    assert launcher.settings_from_args(args, settings) == settings


def test_settings_from_args_overrides_given_values() -> None:
    args = launcher.parse_args(
        ["--port", "9001", "--strategy", "single", "--relay-url", "ws://relay/rooms", "--state-file", "room.json"]
    )

    settings = launcher.settings_from_args(args, SyncSettings())

    assert settings.port == 9001
    assert settings.reconnect_strategy == "single"
    assert settings.relay_url == "ws://relay/rooms"
    assert settings.state_file == "room.json"
    assert settings.host == "127.0.0.1"


def test_parse_args_rejects_unknown_strategy() -> None:
    with pytest.raises(SystemExit):
        launcher.parse_args(["--strategy", "forever"])


def test_startup_fragment_accepts_bare_id_and_fragment() -> None:
    assert launcher.startup_fragment("abc-123") == "#v1:abc-123"
    assert launcher.startup_fragment("#v1:abc-123") == "#v1:abc-123"
    assert launcher.startup_fragment("v1:abc-123") == "#v1:abc-123"
    assert launcher.startup_fragment("  ") is None


def test_configure_logging_falls_back_to_info(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    launcher.configure_logging("chatty")

    assert calls[0]["level"] == logging.INFO
    assert calls[0]["format"] == launcher.LOG_FORMAT


def test_main_runs_uvicorn_with_settings(monkeypatch) -> None:
    uvicorn = pytest.importorskip("uvicorn")
    pytest.importorskip("fastapi")
    monkeypatch.delenv("TRACKERLINK_STATE_FILE", raising=False)
    monkeypatch.delenv("TRACKERLINK_RECONNECT_STRATEGY", raising=False)
    monkeypatch.setattr(launcher, "configure_logging", lambda level: None)
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    exit_code = launcher.main(["--room", "abc-123", "--port", "8123", "--log-level", "warning"])

    assert exit_code == 0
    app, kwargs = calls[0]
    assert kwargs == {"host": "127.0.0.1", "port": 8123, "log_level": "warning"}
    assert app.state.session.room_id is None


def test_main_reports_invalid_strategy(monkeypatch, capsys) -> None:
    pytest.importorskip("uvicorn")
    pytest.importorskip("fastapi")
    monkeypatch.setenv("TRACKERLINK_RECONNECT_STRATEGY", "forever")
    monkeypatch.delenv("TRACKERLINK_STATE_FILE", raising=False)
    monkeypatch.setattr(launcher, "configure_logging", lambda level: None)

    assert launcher.main([]) == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_main_reports_invalid_strategy_in_fresh_interpreter() -> None:
    pytest.importorskip("uvicorn")
    pytest.importorskip("fastapi")
    root = Path(__file__).resolve().parents[3]
    env = dict(os.environ, TRACKERLINK_RECONNECT_STRATEGY="forever", PYTHONPATH=str(root))
    env.pop("TRACKERLINK_STATE_FILE", None)

    result = subprocess.run(
        [sys.executable, "-c", "from trackerlink.desktop.launcher import main; raise SystemExit(main([]))"],
        cwd=root,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert result.returncode == 1
    assert "Invalid configuration: Unknown reconnect strategy: 'forever'" in result.stderr
    assert "Traceback" not in result.stderr


def test_default_app_is_built_on_first_access(monkeypatch) -> None:
    pytest.importorskip("fastapi")
    from trackerlink.sync import api

    monkeypatch.setenv("TRACKERLINK_RECONNECT_STRATEGY", "forever")
    monkeypatch.setattr(api, "_default_app", None)

    with pytest.raises(ValueError):
        api.app
