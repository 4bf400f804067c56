"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides builders for hand-assembled BTF blobs and ELF wrappers.
"""

from __future__ import annotations

import logging
import struct
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog

# Insert local src directory at the beginning of sys.path
# This ensures that the local btf2json package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of btf2json modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("btf2json"):
        del sys.modules[module_name]


def _reset_logging() -> None:
    from btf2json.core.logging import clear_run_id

    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
    logging.getLogger().setLevel(logging.WARNING)
    clear_run_id()


@pytest.fixture(autouse=True)
def isolated_logging() -> Iterator[None]:
    """Start each test with quiet, unconfigured logging and undo what it configured.

    Unconfigured structlog prints to stdout; only warnings and above get through.
    """
    _reset_logging()
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))
    yield
    _reset_logging()


class BtfBuilder:
    """Assemble a raw BTF blob type by type.

    Every ``add_*`` method returns the ID of the type it appended. Use
    ``next_id`` to reference a type that has not been added yet.
    """

    def __init__(self, order: str = "<") -> None:
        self.order = order
        self._strings = bytearray(b"\0")
        self._types = bytearray()
        self._count = 0

    @property
    def next_id(self) -> int:
        return self._count + 1

    def _str(self, s: str) -> int:
        if not s:
            return 0
        offset = len(self._strings)
        self._strings += s.encode() + b"\0"
        return offset

    def _pack(self, fmt: str, *values: int) -> bytes:
        return struct.pack(self.order + fmt, *values)

    def add_raw(
        self,
        kind: int,
        name: str = "",
        *,
        vlen: int = 0,
        kind_flag: bool = False,
        size_or_type: int = 0,
        extra: bytes = b"",
    ) -> int:
        info = (kind << 24) | vlen | (int(kind_flag) << 31)
        self._types += self._pack("III", self._str(name), info, size_or_type) + extra
        self._count += 1
        return self._count

    def add_int(self, name: str, size: int, encoding: int = 0) -> int:
        return self.add_raw(
            1, name, size_or_type=size, extra=self._pack("I", (encoding << 24) | size * 8)
        )

    def add_pointer(self, target: int) -> int:
        return self.add_raw(2, size_or_type=target)

    def add_array(self, elem: int, index: int, nelems: int) -> int:
        return self.add_raw(3, extra=self._pack("III", elem, index, nelems))

    def _aggregate(
        self,
        kind: int,
        name: str,
        size: int,
        members: list[tuple[str, int, int]],
        kind_flag: bool,
    ) -> int:
        extra = b"".join(self._pack("III", self._str(n), t, off) for n, t, off in members)
        return self.add_raw(
            kind, name, vlen=len(members), kind_flag=kind_flag, size_or_type=size, extra=extra
        )

    def add_struct(
        self, name: str, size: int, members: list[tuple[str, int, int]], *, kind_flag: bool = False
    ) -> int:
        """Members are (name, type id, bit offset) triples."""
        return self._aggregate(4, name, size, members, kind_flag)

    def add_union(
        self, name: str, size: int, members: list[tuple[str, int, int]], *, kind_flag: bool = False
    ) -> int:
        return self._aggregate(5, name, size, members, kind_flag)

    def add_enum(
        self, name: str, size: int, values: list[tuple[str, int]], *, signed: bool = False
    ) -> int:
        extra = b"".join(self._pack("Ii", self._str(n), v) for n, v in values)
        return self.add_raw(
            6, name, vlen=len(values), kind_flag=signed, size_or_type=size, extra=extra
        )

    def add_enum64(
        self, name: str, size: int, values: list[tuple[str, int]], *, signed: bool = False
    ) -> int:
        extra = b"".join(
            self._pack("III", self._str(n), v & 0xFFFFFFFF, (v >> 32) & 0xFFFFFFFF)
            for n, v in values
        )
        return self.add_raw(
            19, name, vlen=len(values), kind_flag=signed, size_or_type=size, extra=extra
        )

    def add_fwd(self, name: str, *, union: bool = False) -> int:
        return self.add_raw(7, name, kind_flag=union)

    def add_typedef(self, name: str, target: int) -> int:
        return self.add_raw(8, name, size_or_type=target)

    def add_volatile(self, target: int) -> int:
        return self.add_raw(9, size_or_type=target)

    def add_const(self, target: int) -> int:
        return self.add_raw(10, size_or_type=target)

    def add_restrict(self, target: int) -> int:
        return self.add_raw(11, size_or_type=target)

    def add_func(self, name: str, proto: int, linkage: int = 1) -> int:
        return self.add_raw(12, name, vlen=linkage, size_or_type=proto)

    def add_func_proto(self, ret: int, params: list[tuple[str, int]]) -> int:
        extra = b"".join(self._pack("II", self._str(n), t) for n, t in params)
        return self.add_raw(13, vlen=len(params), size_or_type=ret, extra=extra)

    def add_var(self, name: str, target: int, linkage: int = 1) -> int:
        return self.add_raw(14, name, size_or_type=target, extra=self._pack("I", linkage))

    def add_datasec(self, name: str, size: int, entries: list[tuple[int, int, int]]) -> int:
        extra = b"".join(self._pack("III", t, off, sz) for t, off, sz in entries)
        return self.add_raw(15, name, vlen=len(entries), size_or_type=size, extra=extra)

    def add_float(self, name: str, size: int) -> int:
        return self.add_raw(16, name, size_or_type=size)

    def add_decl_tag(self, value: str, target: int, component: int = -1) -> int:
        return self.add_raw(17, value, size_or_type=target, extra=self._pack("i", component))

    def add_type_tag(self, value: str, target: int) -> int:
        return self.add_raw(18, value, size_or_type=target)

    def build(self, *, version: int = 1) -> bytes:
        header = self._pack(
            "HBBIIIII",
            0xEB9F,
            version,
            0,
            24,
            0,
            len(self._types),
            len(self._types),
            len(self._strings),
        )
        return header + bytes(self._types) + bytes(self._strings)


def wrap_elf(
    payload: bytes, *, order: str = "<", bits: int = 64, section_name: str = ".BTF"
) -> bytes:
    """Embed ``payload`` as a section of a minimal ELF relocatable object."""
    shstrtab = b"\0" + section_name.encode() + b"\0.shstrtab\0"
    name_payload = 1
    name_shstrtab = len(section_name) + 2

    header_fmt = "HHIQQQIHHHHHH" if bits == 64 else "HHIIIIIHHHHHH"
    section_fmt = order + ("IIQQQQIIQQ" if bits == 64 else "IIIIIIIIII")
    ehsize = 16 + struct.calcsize(order + header_fmt)
    shentsize = struct.calcsize(section_fmt)

    payload_off = ehsize
    shstrtab_off = payload_off + len(payload)
    shoff = shstrtab_off + len(shstrtab)

    ident = b"\x7fELF" + bytes([2 if bits == 64 else 1, 1 if order == "<" else 2, 1]) + b"\0" * 9
    header = struct.pack(
        order + header_fmt, 1, 247, 1, 0, 0, shoff, 0, ehsize, 0, 0, shentsize, 3, 2
    )
    sections = (
        struct.pack(section_fmt, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0)
        + struct.pack(section_fmt, name_payload, 1, 0, 0, payload_off, len(payload), 0, 0, 1, 0)
        + struct.pack(
            section_fmt, name_shstrtab, 3, 0, 0, shstrtab_off, len(shstrtab), 0, 0, 1, 0
        )
    )
    return ident + header + payload + shstrtab + sections


@pytest.fixture
def btf_builder() -> Callable[..., BtfBuilder]:
    """Factory for BtfBuilder instances."""
    return BtfBuilder


@pytest.fixture
def elf_wrapper() -> Callable[..., bytes]:
    return wrap_elf


@pytest.fixture
def foo_blob() -> bytes:
    """void, int "int" (4 bytes, signed), struct Foo { int v1; } of size 6."""
    b = BtfBuilder()
    int_id = b.add_int("int", 4, encoding=1)
    b.add_struct("Foo", 6, [("v1", int_id, 0)])
    return b.build()
