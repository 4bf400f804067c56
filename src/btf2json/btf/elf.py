"""Minimal ELF section lookup, enough to pull the .BTF section out of an object."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from btf2json.core.errors import BtfFormatError

ELF_MAGIC = b"\x7fELF"
BTF_SECTION = ".BTF"

_ELFCLASS32 = 1
_ELFCLASS64 = 2
_ELFDATA2LSB = 1
_ELFDATA2MSB = 2

_SHT_NOBITS = 8
_SHN_XINDEX = 0xFFFF

# (header fields after e_ident, section header) per ELF class
_LAYOUTS = {
    _ELFCLASS32: ("HHIIIIIHHHHHH", "IIIIIIIIII"),
    _ELFCLASS64: ("HHIQQQIHHHHHH", "IIQQQQIIQQ"),
}


@dataclass(frozen=True, slots=True)
class Section:
    name: str
    type: int
    offset: int
    size: int


def is_elf(data: bytes) -> bool:
    return data[:4] == ELF_MAGIC


def _unpack(fmt: str, data: bytes, offset: int, what: str) -> tuple[int, ...]:
    try:
        return struct.unpack_from(fmt, data, offset)
    except struct.error:
        raise BtfFormatError.truncated(what, offset) from None


def read_sections(data: bytes) -> list[Section]:
    """Parse the section header table of an ELF image."""
    if not is_elf(data):
        raise BtfFormatError.bad_magic(int.from_bytes(data[:2], "little"))
    if len(data) < 16:
        raise BtfFormatError.truncated("ELF identification", 0)

    elf_class, elf_data = data[4], data[5]
    if elf_class not in _LAYOUTS or elf_data not in (_ELFDATA2LSB, _ELFDATA2MSB):
        raise BtfFormatError.bad_header(
            "unsupported ELF class or data encoding", elf_class=elf_class, elf_data=elf_data
        )
    order = "<" if elf_data == _ELFDATA2LSB else ">"
    header_fmt, section_fmt = (order + f for f in _LAYOUTS[elf_class])

    header = _unpack(header_fmt, data, 16, "ELF header")
    shoff, shentsize, shnum, shstrndx = header[5], header[10], header[11], header[12]
    if shoff == 0:
        return []

    def section_at(index: int) -> tuple[int, ...]:
        return _unpack(section_fmt, data, shoff + index * shentsize, "ELF section header")

    if shnum == 0 or shstrndx == _SHN_XINDEX:
        first = section_at(0)
        shnum = shnum or first[5]
        if shstrndx == _SHN_XINDEX:
            shstrndx = first[6]

    raw = [section_at(i) for i in range(shnum)]
    if shstrndx >= len(raw):
        raise BtfFormatError.bad_header("section name table index out of range", index=shstrndx)
    strtab_offset, strtab_size = raw[shstrndx][4], raw[shstrndx][5]
    strtab = data[strtab_offset : strtab_offset + strtab_size]

    sections = []
    for sh_name, sh_type, _flags, _addr, sh_offset, sh_size, *_ in raw:
        end = strtab.find(b"\0", sh_name)
        name = strtab[sh_name : end if end >= 0 else None].decode("utf-8", "replace")
        sections.append(Section(name=name, type=sh_type, offset=sh_offset, size=sh_size))
    return sections


def section_data(data: bytes, name: str = BTF_SECTION) -> bytes:
    """Return the contents of section ``name``.

    Raises:
        BtfFormatError: If the section is absent or lies outside the file.
    """
    for section in read_sections(data):
        if section.name != name or section.type == _SHT_NOBITS:
            continue
        end = section.offset + section.size
        if end > len(data):
            raise BtfFormatError.truncated(f"{name} section", section.offset)
        return data[section.offset : end]
    raise BtfFormatError.missing_section(name)
