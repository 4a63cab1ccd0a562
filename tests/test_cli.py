"""
CLI Test Suite

Coverage:
  veilbook config   : resolved configuration output
  veilbook simulate : end-to-end batch reveal
"""

import json
import os
import sys

import pytest
from click.testing import CliRunner

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from veilbook.cli import cli
from veilbook.constants import ENGINE_VERSION


OWNER = "0x" + "a1" * 20

# ERROR level keeps log records out of the captured output
QUIET_TOML = """
[logging]
level = "ERROR"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("VEILBOOK_CONFIG", "VEILBOOK_OWNER", "VEILBOOK_ENGINE_ADDRESS",
                 "VEILBOOK_COOLDOWN", "VEILBOOK_ORACLE_KEY", "VEILBOOK_BIT_WIDTH",
                 "VEILBOOK_LOG_LEVEL", "VEILBOOK_LOG_FILE_OUTPUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "veilbook.toml"
    path.write_text(QUIET_TOML)
    return str(path)


class TestConfigCommand:

    def test_prints_json(self, config_path):
        result = CliRunner().invoke(cli, ["config", "--config", config_path])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["logging"]["level"] == "ERROR"
        assert data["oracle"]["key_configured"] is False

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[engine]\ncooldown = -3\n')
        result = CliRunner().invoke(cli, ["config", "--config", str(path)])
        assert result.exit_code != 0
        assert "cooldown" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert ENGINE_VERSION in result.output


class TestSimulateCommand:

    def test_default_simulation(self, config_path):
        result = CliRunner().invoke(cli, ["simulate", "--config", config_path])
        assert result.exit_code == 0, result.output
        assert "Batch #1" in result.output
        assert "Ask volume:    100" in result.output
        assert "Bid volume:    40" in result.output

    def test_json_output(self, config_path):
        result = CliRunner().invoke(cli, [
            "simulate", "--config", config_path,
            "--ask", "10", "--ask", "15", "--bid", "7", "--json",
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["batchId"] == 1
        assert data["orders"] == 3
        assert data["context"]["processed"] is True
        assert data["event"]["askVolume"] == 25
        assert data["event"]["bidVolume"] == 7

    def test_single_side(self, config_path):
        result = CliRunner().invoke(cli, ["simulate", "--config", config_path, "--ask", "5", "--json"])
        assert result.exit_code == 0, result.output
        event = json.loads(result.output)["event"]
        assert (event["askVolume"], event["bidVolume"]) == (5, 0)

    def test_configured_owner(self, tmp_path):
        path = tmp_path / "owner.toml"
        path.write_text(f'[engine]\nowner = "{OWNER}"\n' + QUIET_TOML)
        result = CliRunner().invoke(cli, ["simulate", "--config", str(path), "--json"])
        assert result.exit_code == 0, result.output

    def test_orders_expired_before_request(self, config_path):
        result = CliRunner().invoke(cli, [
            "simulate", "--config", config_path, "--expire-after", "0",
        ])
        assert result.exit_code != 0
        assert "OrderNotFoundError" in result.output


class TestConfigErrors:

    def test_bad_integer_env_is_reported(self, config_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_COOLDOWN", "soon")
        result = CliRunner().invoke(cli, ["simulate", "--config", config_path])
        assert result.exit_code == 1
        assert "VEILBOOK_COOLDOWN" in result.output
        assert not isinstance(result.exception, ValueError)

    def test_bad_integer_env_in_config_command(self, config_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_COOLDOWN", "1.5")
        result = CliRunner().invoke(cli, ["config", "--config", config_path])
        assert result.exit_code == 1
        assert "must be an integer" in result.output


class TestLogFile:

    def test_configured_log_file_is_used(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.log"
        path = tmp_path / "logging.toml"
        path.write_text(
            "[logging]\n"
            'level = "ERROR"\n'
            "file_output = true\n"
            f'file_path = "{log_file.as_posix()}"\n'
        )
        result = CliRunner().invoke(cli, ["simulate", "--config", str(path), "--json"])
        assert result.exit_code == 0, result.output
        assert log_file.exists()
