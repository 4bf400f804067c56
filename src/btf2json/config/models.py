"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (BTF2JSON__SECTION__KEY)
3. Explicit config file (--config)
4. Local YAML (./btf2json.yaml)
5. Global YAML (~/.config/btf2json/config.yaml)
6. Built-in defaults (this file)

Environment Variable Format:
    BTF2JSON__<SECTION>__<KEY>=<VALUE>

Examples:
    BTF2JSON__LOGGING__LEVEL=DEBUG
    BTF2JSON__EXPORT__AS_MAP=true
    BTF2JSON__EXPORT__INDENT=2
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        BTF2JSON__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every converted type.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ExportConfig(BaseModel):
    """Export defaults. Command line flags take precedence.

    Env vars:
        BTF2JSON__EXPORT__DEREFERENCE: Skip qualifiers and typedefs in references
        BTF2JSON__EXPORT__AS_MAP: Export struct/union/enum children as maps
        BTF2JSON__EXPORT__INDENT: JSON indentation (compact when unset)
    """

    dereference: bool = Field(
        default=False,
        description="Resolve type references through const/volatile/restrict/typedef.",
    )
    as_map: bool = Field(
        default=False,
        description="Export members and enum values keyed by name instead of as lists.",
    )
    indent: int | None = Field(
        default=None,
        description="JSON indentation. None writes compact output.",
    )

    @field_validator("indent")
    @classmethod
    def validate_indent(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError(f"Indent must be >= 0, got {v}")
        return v


class Btf2JsonConfig(BaseModel):
    """Root configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)


class ExportOptions(BaseModel):
    """Immutable per-run options threaded through conversion and traversal."""

    model_config = ConfigDict(frozen=True)

    dereference: bool = False
    as_map: bool = False

    @classmethod
    def from_config(
        cls,
        config: ExportConfig,
        *,
        dereference: bool | None = None,
        as_map: bool | None = None,
    ) -> "ExportOptions":
        """Build options from config defaults, with explicit overrides winning."""
        return cls(
            dereference=config.dereference if dereference is None else dereference,
            as_map=config.as_map if as_map is None else as_map,
        )
