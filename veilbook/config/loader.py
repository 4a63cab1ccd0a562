"""
Veilbook TOML Configuration Loader

Loads veilbook.toml with environment variable overrides
(dataclass + from_dict + from_file + apply_env per section).

Environment variable mapping:
    [engine] owner        → VEILBOOK_OWNER
    [engine] address      → VEILBOOK_ENGINE_ADDRESS
    [engine] cooldown     → VEILBOOK_COOLDOWN
    [oracle] key_hex      → VEILBOOK_ORACLE_KEY
    [oracle] bit_width    → VEILBOOK_BIT_WIDTH
    [logging] level       → VEILBOOK_LOG_LEVEL
    [logging] file_output → VEILBOOK_LOG_FILE_OUTPUT

Oracle keys SHOULD come from the environment, not from TOML.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from eth_utils import is_address

from ..constants import DEFAULT_COOLDOWN_SECONDS
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


# -- Engine -------------------------------------------------------------

@dataclass
class EngineSectionConfig:
    """[engine] section."""
    owner: str = ""
    address: str = ""
    cooldown: int = DEFAULT_COOLDOWN_SECONDS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineSectionConfig":
        return cls(
            owner=data.get("owner", ""),
            address=data.get("address", ""),
            cooldown=data.get("cooldown", DEFAULT_COOLDOWN_SECONDS),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("VEILBOOK_OWNER"):
            self.owner = v
        if v := os.environ.get("VEILBOOK_ENGINE_ADDRESS"):
            self.address = v
        if v := os.environ.get("VEILBOOK_COOLDOWN"):
            self.cooldown = _env_int("VEILBOOK_COOLDOWN", v)

    def validate(self) -> None:
        if self.owner and not is_address(self.owner):
            raise ConfigurationError(f"engine.owner is not a valid address: {self.owner}")
        if self.address and not is_address(self.address):
            raise ConfigurationError(f"engine.address is not a valid address: {self.address}")
        if self.cooldown < 0:
            raise ConfigurationError("engine.cooldown must be >= 0")


# -- Oracle -------------------------------------------------------------

@dataclass
class OracleConfig:
    """[oracle] section."""
    type: str = "local"
    key_hex: str = ""
    bit_width: int = 64

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleConfig":
        return cls(
            type=data.get("type", "local"),
            key_hex=data.get("key_hex", ""),
            bit_width=data.get("bit_width", 64),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("VEILBOOK_ORACLE_KEY"):
            self.key_hex = v
        if v := os.environ.get("VEILBOOK_BIT_WIDTH"):
            self.bit_width = _env_int("VEILBOOK_BIT_WIDTH", v)

    @property
    def key(self) -> Optional[bytes]:
        return bytes.fromhex(self.key_hex) if self.key_hex else None

    def validate(self) -> None:
        if self.type != "local":
            raise ConfigurationError("Only the 'local' oracle type is supported")
        if self.key_hex:
            try:
                bytes.fromhex(self.key_hex)
            except ValueError:
                raise ConfigurationError("oracle.key_hex must be hex") from None
        if not 1 <= self.bit_width <= 256:
            raise ConfigurationError("oracle.bit_width must be 1-256")


# -- Logging ------------------------------------------------------------

@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False
    file_path: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=data.get("level", "INFO"),
            file_output=data.get("file_output", False),
            file_path=data.get("file_path", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("VEILBOOK_LOG_LEVEL"):
            self.level = v
        if v := os.environ.get("VEILBOOK_LOG_FILE_OUTPUT"):
            self.file_output = v.lower() in ("1", "true", "yes")

    def validate(self) -> None:
        if self.level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}")


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class VeilbookConfig:
    """
    Unified configuration.

    Loads every section of veilbook.toml and applies environment variable
    overrides.
    """
    engine: EngineSectionConfig = field(default_factory=EngineSectionConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VeilbookConfig":
        """Create VeilbookConfig from a parsed TOML dict."""
        return cls(
            engine=EngineSectionConfig.from_dict(data.get("engine", {})),
            oracle=OracleConfig.from_dict(data.get("oracle", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "VeilbookConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.engine.apply_env()
        self.oracle.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.engine.validate()
        self.oracle.validate()
        self.logging.validate()
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics). The oracle key is never included."""
        return {
            "engine": {
                "owner": self.engine.owner,
                "address": self.engine.address,
                "cooldown": self.engine.cooldown,
            },
            "oracle": {
                "type": self.oracle.type,
                "key_configured": bool(self.oracle.key_hex),
                "bit_width": self.oracle.bit_width,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "file_path": self.logging.file_path,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> VeilbookConfig:
    """
    Load configuration.

    Resolution order:
        1. Explicit *path* argument
        2. VEILBOOK_CONFIG env var
        3. ./veilbook.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("VEILBOOK_CONFIG", "veilbook.toml")

    return VeilbookConfig.from_file(path)
