"""
Veilbook Configuration

Loads veilbook.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    VeilbookConfig,
    EngineSectionConfig,
    OracleConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "VeilbookConfig",
    "EngineSectionConfig",
    "OracleConfig",
    "LoggingConfig",
    "load_config",
]
