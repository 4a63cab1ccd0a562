"""
Configuration Loader Test Suite

Coverage:
  VeilbookConfig : TOML parsing, defaults, env overrides, validation,
                   diagnostics serialization, path resolution
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from veilbook.config import VeilbookConfig, load_config
from veilbook.crypto.reference import ReferenceBackend
from veilbook.engine import BatchEngine
from veilbook.exceptions import ConfigurationError
from veilbook.oracle import LocalDecryptionOracle


OWNER = "0x" + "a1" * 20
ENGINE_ADDR = "0x" + "e5" * 20

ENV_VARS = (
    "VEILBOOK_CONFIG",
    "VEILBOOK_OWNER",
    "VEILBOOK_ENGINE_ADDRESS",
    "VEILBOOK_COOLDOWN",
    "VEILBOOK_ORACLE_KEY",
    "VEILBOOK_BIT_WIDTH",
    "VEILBOOK_LOG_LEVEL",
    "VEILBOOK_LOG_FILE_OUTPUT",
)

SAMPLE_TOML = f"""
[engine]
owner = "{OWNER}"
address = "{ENGINE_ADDR}"
cooldown = 30

[oracle]
type = "local"
bit_width = 32

[logging]
level = "DEBUG"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path, text=SAMPLE_TOML):
    path = tmp_path / "veilbook.toml"
    path.write_text(text)
    return str(path)


class TestConfigLoading:

    def test_defaults(self):
        cfg = VeilbookConfig()
        assert cfg.engine.owner == ""
        assert cfg.engine.cooldown == 0
        assert cfg.oracle.type == "local"
        assert cfg.oracle.key is None
        assert cfg.oracle.bit_width == 64
        assert cfg.logging.level == "INFO"
        assert cfg.validate() is True

    def test_from_file(self, tmp_path):
        cfg = VeilbookConfig.from_file(write_config(tmp_path))
        assert cfg.engine.owner == OWNER
        assert cfg.engine.address == ENGINE_ADDR
        assert cfg.engine.cooldown == 30
        assert cfg.oracle.bit_width == 32
        assert cfg.logging.level == "DEBUG"
        cfg.validate()

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = VeilbookConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.engine.owner == ""
        assert cfg.oracle.bit_width == 64

    def test_invalid_toml(self, tmp_path):
        path = write_config(tmp_path, "[engine\nowner = ")
        with pytest.raises(ConfigurationError):
            VeilbookConfig.from_file(path)

    def test_non_integer_env_raises_configuration_error(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_BIT_WIDTH", "wide")
        with pytest.raises(ConfigurationError, match="VEILBOOK_BIT_WIDTH"):
            VeilbookConfig.from_file(write_config(tmp_path))

    def test_partial_sections(self, tmp_path):
        cfg = VeilbookConfig.from_file(write_config(tmp_path, "[engine]\ncooldown = 5\n"))
        assert cfg.engine.cooldown == 5
        assert cfg.logging.level == "INFO"


class TestEnvOverrides:

    def test_engine_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_OWNER", ENGINE_ADDR)
        monkeypatch.setenv("VEILBOOK_COOLDOWN", "90")
        cfg = VeilbookConfig.from_file(write_config(tmp_path))
        assert cfg.engine.owner == ENGINE_ADDR
        assert cfg.engine.cooldown == 90

    def test_oracle_key_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_ORACLE_KEY", "00ff" * 8)
        cfg = VeilbookConfig.from_file(write_config(tmp_path))
        assert cfg.oracle.key == bytes.fromhex("00ff" * 8)

    def test_logging_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("VEILBOOK_LOG_FILE_OUTPUT", "true")
        cfg = VeilbookConfig.from_file(write_config(tmp_path))
        assert cfg.logging.level == "ERROR"
        assert cfg.logging.file_output is True

    def test_load_config_env_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_CONFIG", write_config(tmp_path))
        assert load_config().engine.cooldown == 30

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VEILBOOK_CONFIG", str(tmp_path / "absent.toml"))
        assert load_config(write_config(tmp_path)).engine.cooldown == 30


class TestValidation:

    @pytest.mark.parametrize("text", [
        '[engine]\nowner = "0x1234"\n',
        '[engine]\naddress = "nope"\n',
        '[engine]\ncooldown = -1\n',
        '[oracle]\ntype = "remote"\n',
        '[oracle]\nkey_hex = "zz"\n',
        '[oracle]\nbit_width = 0\n',
        '[logging]\nlevel = "LOUD"\n',
    ])
    def test_invalid_values(self, tmp_path, text):
        cfg = VeilbookConfig.from_file(write_config(tmp_path, text))
        with pytest.raises(ConfigurationError):
            cfg.validate()

    def test_to_dict_hides_key(self, monkeypatch):
        monkeypatch.setenv("VEILBOOK_ORACLE_KEY", "ab" * 16)
        cfg = VeilbookConfig()
        cfg.apply_env()
        data = cfg.to_dict()
        assert data["oracle"]["key_configured"] is True
        assert "ab" * 16 not in str(data)


class TestEngineFromConfig:

    def test_build_engine(self, tmp_path):
        cfg = VeilbookConfig.from_file(write_config(tmp_path))
        backend = ReferenceBackend(bit_width=cfg.oracle.bit_width)
        engine = BatchEngine.from_config(
            cfg.engine, backend, LocalDecryptionOracle(backend, key=b"k"),
        )
        assert engine.owner.lower() == OWNER
        assert engine.address.lower() == ENGINE_ADDR
        assert engine.cooldown == 30

    def test_owner_required(self):
        backend = ReferenceBackend()
        with pytest.raises(ConfigurationError):
            BatchEngine.from_config(
                VeilbookConfig().engine, backend, LocalDecryptionOracle(backend, key=b"k"),
            )
