"""BTF decoding and the read-only type store."""

from btf2json.btf.reader import load_store, load_store_from_bytes, parse_btf
from btf2json.btf.store import TypeStore
from btf2json.btf.types import Kind, Type, sizeof, underlying_type

__all__ = [
    "Kind",
    "Type",
    "TypeStore",
    "load_store",
    "load_store_from_bytes",
    "parse_btf",
    "sizeof",
    "underlying_type",
]
