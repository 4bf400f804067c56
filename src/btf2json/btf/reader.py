"""Decode BTF blobs (raw or embedded in ELF) into a TypeStore.

Decoding runs in two phases: every record is parsed and its node instantiated
first, then references are linked by ID. Forward references and cycles in the
type section therefore need no special handling.
"""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from btf2json.btf import elf
from btf2json.btf.store import TypeStore
from btf2json.btf.types import (
    Array,
    Const,
    Datasec,
    DeclTag,
    Enum,
    EnumValue,
    Float,
    Func,
    FuncParam,
    FuncProto,
    Fwd,
    FwdKind,
    Int,
    Kind,
    Member,
    Pointer,
    Restrict,
    Struct,
    Type,
    Typedef,
    TypeTag,
    Union,
    Var,
    VarSecinfo,
    Void,
    Volatile,
)
from btf2json.core.errors import BtfFormatError, BtfIOError
from btf2json.core.logging import get_logger

log = get_logger("btf.reader")

BTF_MAGIC = 0xEB9F
BTF_VERSION = 1

_HEADER_FMT = "HBBIIIII"
_HEADER_SIZE = struct.calcsize("<" + _HEADER_FMT)


@dataclass
class _Record:
    """One undecoded type record: the common header plus trailing words."""

    type_id: int
    kind: Kind
    name: str
    vlen: int
    kind_flag: bool
    size_or_type: int
    extra: list[tuple[Any, ...]] = field(default_factory=list)


class _Cursor:
    def __init__(self, data: bytes, order: str) -> None:
        self.data = data
        self.order = order
        self.pos = 0

    def take(self, fmt: str, what: str) -> tuple[int, ...]:
        fmt = self.order + fmt
        try:
            values = struct.unpack_from(fmt, self.data, self.pos)
        except struct.error:
            raise BtfFormatError.truncated(what, self.pos) from None
        self.pos += struct.calcsize(fmt)
        return values

    def at_end(self) -> bool:
        return self.pos >= len(self.data)


def raw_byte_order(data: bytes) -> str | None:
    """Return the struct byte-order prefix of a raw BTF blob, or None."""
    if len(data) < 2:
        return None
    if int.from_bytes(data[:2], "little") == BTF_MAGIC:
        return "<"
    if int.from_bytes(data[:2], "big") == BTF_MAGIC:
        return ">"
    return None


def _strings(section: bytes) -> Callable[[int], str]:
    def lookup(offset: int) -> str:
        if offset >= len(section) and offset != 0:
            raise BtfFormatError.truncated("string table", offset)
        end = section.find(b"\0", offset)
        return section[offset : end if end >= 0 else None].decode("utf-8", "replace")

    return lookup


# Trailing data per kind: struct format, and whether it repeats vlen times.
_TRAILING: dict[Kind, tuple[str, bool]] = {
    Kind.INT: ("I", False),
    Kind.ARRAY: ("III", False),
    Kind.STRUCT: ("III", True),
    Kind.UNION: ("III", True),
    Kind.ENUM: ("Ii", True),
    Kind.ENUM64: ("III", True),
    Kind.FUNC_PROTO: ("II", True),
    Kind.VAR: ("I", False),
    Kind.DATASEC: ("III", True),
    Kind.DECL_TAG: ("i", False),
}


def _read_records(types: bytes, strings: bytes, order: str) -> list[_Record]:
    name_of = _strings(strings)
    cursor = _Cursor(types, order)
    records: list[_Record] = []
    type_id = 1
    while not cursor.at_end():
        name_off, info, size_or_type = cursor.take("III", f"type {type_id}")
        raw_kind = (info >> 24) & 0x1F
        try:
            kind = Kind(raw_kind)
        except ValueError:
            raise BtfFormatError.unknown_kind(raw_kind, type_id) from None
        record = _Record(
            type_id=type_id,
            kind=kind,
            name=name_of(name_off),
            vlen=info & 0xFFFF,
            kind_flag=bool(info >> 31),
            size_or_type=size_or_type,
        )
        if kind in _TRAILING:
            fmt, per_vlen = _TRAILING[kind]
            count = record.vlen if per_vlen else 1
            for _ in range(count):
                entry = cursor.take(fmt, f"{kind.name} data of type {type_id}")
                # Member, enum and param entries start with a name offset
                if kind in (Kind.STRUCT, Kind.UNION, Kind.ENUM, Kind.ENUM64, Kind.FUNC_PROTO):
                    entry = (name_of(entry[0]), *entry[1:])
                record.extra.append(entry)
        records.append(record)
        type_id += 1
    return records


def _instantiate(record: _Record) -> Type:
    match record.kind:
        case Kind.UNKN:
            return Void()
        case Kind.INT:
            (word,) = record.extra[0]
            return Int(
                name=record.name,
                size=record.size_or_type,
                encoding=(word >> 24) & 0x0F,
                offset=(word >> 16) & 0xFF,
                bits=word & 0xFF,
            )
        case Kind.PTR:
            return Pointer()
        case Kind.ARRAY:
            return Array(nelems=record.extra[0][2])
        case Kind.STRUCT:
            return Struct(name=record.name, size=record.size_or_type)
        case Kind.UNION:
            return Union(name=record.name, size=record.size_or_type)
        case Kind.ENUM:
            signed = record.kind_flag
            values = [
                EnumValue(name=name, value=value if signed else value & 0xFFFFFFFF)
                for name, value in record.extra
            ]
            return Enum(name=record.name, size=record.size_or_type, signed=signed, values=values)
        case Kind.ENUM64:
            signed = record.kind_flag
            values = []
            for name, lo, hi in record.extra:
                value = (hi << 32) | lo
                if signed and value >= 1 << 63:
                    value -= 1 << 64
                values.append(EnumValue(name=name, value=value))
            return Enum(name=record.name, size=record.size_or_type, signed=signed, values=values)
        case Kind.FWD:
            kind = FwdKind.UNION if record.kind_flag else FwdKind.STRUCT
            return Fwd(name=record.name, kind=kind)
        case Kind.TYPEDEF:
            return Typedef(name=record.name)
        case Kind.VOLATILE:
            return Volatile()
        case Kind.CONST:
            return Const()
        case Kind.RESTRICT:
            return Restrict()
        case Kind.FUNC:
            # vlen carries the linkage for functions
            return Func(name=record.name, linkage=record.vlen)
        case Kind.FUNC_PROTO:
            return FuncProto()
        case Kind.VAR:
            return Var(name=record.name, linkage=record.extra[0][0])
        case Kind.DATASEC:
            return Datasec(name=record.name, size=record.size_or_type)
        case Kind.FLOAT:
            return Float(name=record.name, size=record.size_or_type)
        case Kind.DECL_TAG:
            return DeclTag(value=record.name, index=record.extra[0][0])
        case Kind.TYPE_TAG:
            return TypeTag(value=record.name)
    raise BtfFormatError.unknown_kind(int(record.kind), record.type_id)


def _link(record: _Record, node: Type, types: list[Type]) -> None:
    def ref(target: int) -> Type:
        if target >= len(types):
            raise BtfFormatError.bad_reference(record.type_id, target)
        return types[target]

    match node:
        case Pointer():
            node.target = ref(record.size_or_type)
        case Array():
            elem, index, _ = record.extra[0]
            node.type = ref(elem)
            node.index = ref(index)
        case Struct() | Union():
            for name, member_type, offset in record.extra:
                bitfield_size = 0
                if record.kind_flag:
                    bitfield_size = offset >> 24
                    offset &= 0xFFFFFF
                node.members.append(
                    Member(
                        name=name,
                        type=ref(member_type),
                        offset=offset,
                        bitfield_size=bitfield_size,
                    )
                )
        case Typedef() | Volatile() | Const() | Restrict() | Func() | Var() | DeclTag() | TypeTag():
            node.type = ref(record.size_or_type)
        case FuncProto():
            node.return_type = ref(record.size_or_type)
            node.params = [FuncParam(name=name, type=ref(param)) for name, param in record.extra]
        case Datasec():
            node.vars = [
                VarSecinfo(type=ref(var_type), offset=offset, size=size)
                for var_type, offset, size in record.extra
            ]


def parse_btf(data: bytes) -> TypeStore:
    """Decode a raw BTF blob."""
    order = raw_byte_order(data)
    if order is None:
        raise BtfFormatError.bad_magic(int.from_bytes(data[:2], "little"))
    if len(data) < _HEADER_SIZE:
        raise BtfFormatError.truncated("BTF header", 0)

    _, version, _flags, hdr_len, type_off, type_len, str_off, str_len = struct.unpack_from(
        order + _HEADER_FMT, data
    )
    if version != BTF_VERSION:
        raise BtfFormatError.bad_header(f"unsupported version {version}", version=version)
    if hdr_len < _HEADER_SIZE or hdr_len > len(data):
        raise BtfFormatError.bad_header(f"header length {hdr_len} out of range", hdr_len=hdr_len)

    body = data[hdr_len:]
    if type_off + type_len > len(body) or str_off + str_len > len(body):
        raise BtfFormatError.bad_header(
            "type or string section exceeds blob",
            type_off=type_off,
            type_len=type_len,
            str_off=str_off,
            str_len=str_len,
        )

    records = _read_records(
        body[type_off : type_off + type_len], body[str_off : str_off + str_len], order
    )
    types: list[Type] = [Void()]
    types.extend(_instantiate(record) for record in records)
    for record, node in zip(records, types[1:], strict=True):
        _link(record, node, types)

    log.debug("btf_decoded", types=len(types), byte_order=order)
    return TypeStore(types)


def load_store_from_bytes(data: bytes) -> TypeStore:
    """Decode BTF from an ELF image (.BTF section) or a raw BTF blob."""
    if elf.is_elf(data):
        return parse_btf(elf.section_data(data, elf.BTF_SECTION))
    return parse_btf(data)


def load_store(path: Path) -> TypeStore:
    """Read ``path`` and decode its BTF.

    Raises:
        BtfIOError: If the file cannot be read.
        BtfFormatError: If it holds no decodable BTF.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise BtfIOError.read_failed(str(path), e.strerror or str(e)) from e
    log.debug("input_read", path=str(path), size=len(data))
    return load_store_from_bytes(data)
