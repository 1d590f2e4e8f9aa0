"""Tests for settings loading and the qticket command line"""

import json
from datetime import datetime, timezone

import pytest

from qticket.cli import build_parser, main
from qticket.utils.config import config_manager
from qticket.utils.exceptions import ConfigError


@pytest.fixture(autouse=True)
def fresh_settings():
    config_manager.reset()
    yield
    config_manager.reset()


def _write_settings(path, data_dir):
    path.write_text(
        "server:\n"
        f"  data_dir: {data_dir}\n"
        "  port: ${QTICKET_TEST_PORT:3100}\n"
        "logging:\n"
        "  format: console\n"
        "  file_path: null\n",
        encoding="utf-8",
    )
    return path


def test_missing_file_uses_defaults(tmp_path):
    settings = config_manager.load_settings(tmp_path / "absent.yaml")
    assert settings.server.port == 3000
    assert settings.session.max_age_hours == 8
    assert settings.cleanup.interval_hours == 24


def test_env_substitution(tmp_path, monkeypatch):
    path = _write_settings(tmp_path / "settings.yaml", tmp_path)
    assert config_manager.load_settings(path).server.port == 3100

    monkeypatch.setenv("QTICKET_TEST_PORT", "8080")
    assert config_manager.load_settings(path).server.port == 8080


def test_invalid_settings(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("session:\n  max_age_hours: -1\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        config_manager.load_settings(path)

    path.write_text("server: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        config_manager.load_settings(path)


def test_parser_subcommands():
    parser = build_parser()
    args = parser.parse_args(["distributor", "--queue", "Clinic-A", "--local-dir", "/tmp/q"])
    assert (args.cmd, args.queue, args.local_dir, args.remote) == ("distributor", "Clinic-A", "/tmp/q", None)

    args = parser.parse_args(["display", "--queue", "Clinic-A", "--number", "7"])
    assert args.number == 7

    with pytest.raises(SystemExit):
        parser.parse_args([])


def test_cleanup_command(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("qticket.cli._configure_logging", lambda settings: None)
    now = datetime.now(timezone.utc).isoformat()
    (tmp_path / "queue-auth.json").write_text(
        json.dumps(
            {
                "queues": {
                    "Stale": {"created": "2020-01-01T00:00:00Z", "lastAccessed": "2020-01-01T00:00:00Z"},
                    "Fresh": {"created": now, "lastAccessed": now},
                },
                "lastUpdated": now,
            }
        ),
        encoding="utf-8",
    )
    config = _write_settings(tmp_path / "settings.yaml", tmp_path)

    assert main(["--config", str(config), "cleanup"]) == 0
    out = capsys.readouterr().out
    assert "Checked 2 queue(s), removed 1" in out
    assert "Stale" in out
    assert list(json.loads((tmp_path / "queue-auth.json").read_text())["queues"]) == ["Fresh"]


def test_command_errors_return_nonzero(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("qticket.cli._configure_logging", lambda settings: None)
    (tmp_path / "queue-auth.json").write_text("{broken", encoding="utf-8")
    config = _write_settings(tmp_path / "settings.yaml", tmp_path)

    assert main(["--config", str(config), "cleanup"]) == 1
    assert "Error:" in capsys.readouterr().err
