"""Config module exports."""

from btf2json.config.loader import load_config
from btf2json.config.models import (
    Btf2JsonConfig,
    ExportConfig,
    ExportOptions,
    LoggingConfig,
    LogOutputConfig,
)

__all__ = [
    "load_config",
    "Btf2JsonConfig",
    "ExportConfig",
    "ExportOptions",
    "LoggingConfig",
    "LogOutputConfig",
]
