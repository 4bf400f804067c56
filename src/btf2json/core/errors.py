"""btf2json error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: BTF decoding
- 4xxx: Type resolution and export
- 5xxx: File I/O
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # BTF decoding (3xxx)
    BTF_BAD_MAGIC = 3001
    BTF_BAD_HEADER = 3002
    BTF_TRUNCATED = 3003
    BTF_MISSING_SECTION = 3004
    BTF_UNKNOWN_KIND = 3005
    BTF_BAD_REFERENCE = 3006

    # Resolution (40xx)
    RESOLUTION_NOT_FOUND = 4001
    RESOLUTION_AMBIGUOUS = 4002
    RESOLUTION_UNRESOLVABLE = 4003

    # Category (41xx)
    CATEGORY_BAD_TOKEN = 4101
    CATEGORY_UNKNOWN_KIND = 4102

    # Sizing (42xx)
    UNSIZED_TYPE = 4201

    # I/O (5xxx)
    IO_READ_FAILED = 5001
    IO_WRITE_FAILED = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(eq=False)
class Btf2JsonError(Exception):
    """Base error with structured context.

    Not frozen: ``contextlib`` sets ``__traceback__`` on errors that leave a
    generator context manager such as ``spinner``.
    """

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'RESOLUTION_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(Btf2JsonError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class BtfFormatError(Btf2JsonError):
    """The input could not be decoded as BTF."""

    @classmethod
    def bad_magic(cls, magic: int) -> "BtfFormatError":
        return cls(
            code=ErrorCode.BTF_BAD_MAGIC,
            message=f"Not an ELF file or raw BTF blob (magic {magic:#06x})",
            details={"magic": magic},
        )

    @classmethod
    def bad_header(cls, reason: str, **details: Any) -> "BtfFormatError":
        return cls(
            code=ErrorCode.BTF_BAD_HEADER,
            message=f"Invalid BTF header: {reason}",
            details=details,
        )

    @classmethod
    def truncated(cls, what: str, offset: int) -> "BtfFormatError":
        return cls(
            code=ErrorCode.BTF_TRUNCATED,
            message=f"Truncated {what} at offset {offset}",
            details={"what": what, "offset": offset},
        )

    @classmethod
    def missing_section(cls, name: str) -> "BtfFormatError":
        return cls(
            code=ErrorCode.BTF_MISSING_SECTION,
            message=f"ELF file has no {name} section",
            details={"section": name},
        )

    @classmethod
    def unknown_kind(cls, kind: int, type_id: int) -> "BtfFormatError":
        return cls(
            code=ErrorCode.BTF_UNKNOWN_KIND,
            message=f"Unknown BTF kind {kind} for type {type_id}",
            details={"kind": kind, "type_id": type_id},
        )

    @classmethod
    def bad_reference(cls, type_id: int, target: int) -> "BtfFormatError":
        return cls(
            code=ErrorCode.BTF_BAD_REFERENCE,
            message=f"Type {type_id} references missing type {target}",
            details={"type_id": type_id, "target": target},
        )


class ResolutionError(Btf2JsonError):
    """A root, name or type reference could not be resolved in the store."""

    @classmethod
    def not_found(cls, name: str, kind: str | None = None) -> "ResolutionError":
        what = f"{kind}:{name}" if kind else name
        return cls(
            code=ErrorCode.RESOLUTION_NOT_FOUND,
            message=f"No type named '{what}'",
            details={"name": name, "kind": kind},
        )

    @classmethod
    def ambiguous(cls, name: str, kind: str | None, type_ids: list[int]) -> "ResolutionError":
        what = f"{kind}:{name}" if kind else name
        return cls(
            code=ErrorCode.RESOLUTION_AMBIGUOUS,
            message=f"Multiple types match '{what}': {type_ids}",
            details={"name": name, "kind": kind, "type_ids": type_ids},
        )

    @classmethod
    def unresolvable(cls, reason: str, **details: Any) -> "ResolutionError":
        return cls(
            code=ErrorCode.RESOLUTION_UNRESOLVABLE,
            message=f"Cannot resolve type: {reason}",
            details=details,
        )


class UnknownCategoryError(Btf2JsonError):
    """A category token or node kind is not one of the exportable categories."""

    @classmethod
    def bad_token(cls, token: str, known: list[str]) -> "UnknownCategoryError":
        return cls(
            code=ErrorCode.CATEGORY_BAD_TOKEN,
            message=f"Unknown category '{token}', must be one of {', '.join(known)}",
            details={"token": token, "known": known},
        )

    @classmethod
    def unknown_kind(cls, kind: str, type_id: int | None = None) -> "UnknownCategoryError":
        return cls(
            code=ErrorCode.CATEGORY_UNKNOWN_KIND,
            message=f"Unknown type {kind} (id {type_id})",
            details={"kind": kind, "type_id": type_id},
        )


class UnsizedTypeError(Btf2JsonError):
    """The size of a type cannot be computed."""

    @classmethod
    def of(cls, kind: str, reason: str = "unsized type") -> "UnsizedTypeError":
        return cls(
            code=ErrorCode.UNSIZED_TYPE,
            message=f"{reason}: {kind}",
            details={"kind": kind},
        )


class BtfIOError(Btf2JsonError):
    """Reading the input or writing the output failed."""

    @classmethod
    def read_failed(cls, path: str, reason: str) -> "BtfIOError":
        return cls(
            code=ErrorCode.IO_READ_FAILED,
            message=f"Failed to read {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "BtfIOError":
        return cls(
            code=ErrorCode.IO_WRITE_FAILED,
            message=f"Failed to write {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(Btf2JsonError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
