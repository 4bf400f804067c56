"""Core module exports."""

from btf2json.core.errors import (
    Btf2JsonError,
    BtfFormatError,
    BtfIOError,
    ConfigError,
    ErrorCode,
    InternalError,
    ResolutionError,
    UnknownCategoryError,
    UnsizedTypeError,
)
from btf2json.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from btf2json.core.progress import pluralize, spinner, status

__all__ = [
    # Errors
    "Btf2JsonError",
    "BtfFormatError",
    "BtfIOError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "ResolutionError",
    "UnknownCategoryError",
    "UnsizedTypeError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Progress
    "pluralize",
    "spinner",
    "status",
]
