"""In-memory BTF type nodes.

Nodes reference each other by live object reference, so the graph can contain
cycles (a struct holding a pointer to itself). Classes use ``eq=False`` so that
nodes hash and compare by identity; the store maps each node object to its ID.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from btf2json.core.errors import ResolutionError, UnsizedTypeError

# Upper bound on typedef/qualifier/array chains, matching the kernel's limit.
MAX_TYPE_DEPTH = 32

POINTER_SIZE = 8


class Kind(IntEnum):
    """BTF_KIND_* values as encoded in the type section."""

    UNKN = 0
    INT = 1
    PTR = 2
    ARRAY = 3
    STRUCT = 4
    UNION = 5
    ENUM = 6
    FWD = 7
    TYPEDEF = 8
    VOLATILE = 9
    CONST = 10
    RESTRICT = 11
    FUNC = 12
    FUNC_PROTO = 13
    VAR = 14
    DATASEC = 15
    FLOAT = 16
    DECL_TAG = 17
    TYPE_TAG = 18
    ENUM64 = 19


class IntEncoding(IntEnum):
    UNSIGNED = 0
    SIGNED = 1
    CHAR = 2
    BOOL = 4


def encoding_name(raw: int) -> str:
    """Render an int encoding the way BTF dumpers print it."""
    try:
        return IntEncoding(raw).name.lower()
    except ValueError:
        return f"IntEncoding({raw})"


class FwdKind(IntEnum):
    STRUCT = 0
    UNION = 1


class Linkage(IntEnum):
    STATIC = 0
    GLOBAL = 1
    EXTERN = 2


def linkage_name(raw: int) -> str:
    try:
        return Linkage(raw).name.lower()
    except ValueError:
        return f"Linkage({raw})"


@dataclass(eq=False)
class Type:
    """Base class of every BTF node."""

    @property
    def name(self) -> str:
        return ""

    @property
    def kind_name(self) -> str:
        return type(self).__name__


@dataclass(eq=False)
class Void(Type):
    pass


@dataclass(eq=False)
class Int(Type):
    name: str = ""
    size: int = 0
    encoding: int = IntEncoding.UNSIGNED
    offset: int = 0
    bits: int = 0


@dataclass(eq=False)
class Pointer(Type):
    target: Type | None = None


@dataclass(eq=False)
class Array(Type):
    index: Type | None = None
    type: Type | None = None
    nelems: int = 0


@dataclass(eq=False)
class Member:
    name: str
    type: Type | None
    offset: int = 0  # bits
    bitfield_size: int = 0  # bits

    @property
    def offset_bytes(self) -> int:
        return self.offset // 8


@dataclass(eq=False)
class Struct(Type):
    name: str = ""
    size: int = 0
    members: list[Member] = field(default_factory=list)


@dataclass(eq=False)
class Union(Type):
    name: str = ""
    size: int = 0
    members: list[Member] = field(default_factory=list)


@dataclass(eq=False)
class EnumValue:
    name: str
    value: int


@dataclass(eq=False)
class Enum(Type):
    name: str = ""
    size: int = 0
    signed: bool = False
    values: list[EnumValue] = field(default_factory=list)


@dataclass(eq=False)
class Fwd(Type):
    name: str = ""
    kind: FwdKind = FwdKind.STRUCT


@dataclass(eq=False)
class Typedef(Type):
    name: str = ""
    type: Type | None = None


@dataclass(eq=False)
class Volatile(Type):
    type: Type | None = None


@dataclass(eq=False)
class Const(Type):
    type: Type | None = None


@dataclass(eq=False)
class Restrict(Type):
    type: Type | None = None


@dataclass(eq=False)
class Func(Type):
    name: str = ""
    type: Type | None = None
    linkage: int = Linkage.STATIC


@dataclass(eq=False)
class FuncParam:
    name: str
    type: Type | None


@dataclass(eq=False)
class FuncProto(Type):
    return_type: Type | None = None
    params: list[FuncParam] = field(default_factory=list)


@dataclass(eq=False)
class Var(Type):
    name: str = ""
    type: Type | None = None
    linkage: int = Linkage.STATIC


@dataclass(eq=False)
class VarSecinfo:
    type: Type | None
    offset: int = 0
    size: int = 0


@dataclass(eq=False)
class Datasec(Type):
    name: str = ""
    size: int = 0
    vars: list[VarSecinfo] = field(default_factory=list)


@dataclass(eq=False)
class Float(Type):
    name: str = ""
    size: int = 0


@dataclass(eq=False)
class DeclTag(Type):
    value: str = ""
    type: Type | None = None
    index: int = -1

    @property
    def name(self) -> str:
        return self.value


@dataclass(eq=False)
class TypeTag(Type):
    value: str = ""
    type: Type | None = None

    @property
    def name(self) -> str:
        return self.value


# Named node classes declare ``name`` as a dataclass field, which overrides the
# base property for instances.

WRAPPER_TYPES: tuple[type[Type], ...] = (Typedef, Volatile, Const, Restrict, TypeTag)
"""Categories stripped by underlying_type()."""

_SIZED_TYPES: tuple[type[Type], ...] = (Int, Struct, Union, Enum, Datasec, Float)


def underlying_type(node: Type) -> Type:
    """Skip typedefs and qualifiers until a non-wrapper node is reached.

    Raises:
        ResolutionError: If a wrapper has no target or the chain is too deep.
    """
    current = node
    # MAX_TYPE_DEPTH wrappers plus the node they wrap.
    for _ in range(MAX_TYPE_DEPTH + 1):
        if not isinstance(current, WRAPPER_TYPES):
            return current
        inner = current.type
        if inner is None:
            raise ResolutionError.unresolvable(
                f"{current.kind_name} '{current.name}' has no target type",
                kind=current.kind_name,
            )
        current = inner
    raise ResolutionError.unresolvable(
        f"exceeded type depth {MAX_TYPE_DEPTH} resolving {node.kind_name} '{node.name}'",
        kind=node.kind_name,
    )


def sizeof(node: Type) -> int:
    """Return the size of ``node`` in bytes.

    Raises:
        UnsizedTypeError: For void, functions, forward declarations and other
            types without a size, or if the chain is too deep.
    """
    count = 1
    current: Type | None = node
    for _ in range(MAX_TYPE_DEPTH):
        match current:
            case Array(type=elem, nelems=nelems):
                count *= nelems
                current = elem
                continue
            case Pointer():
                return count * POINTER_SIZE
            case Typedef() | Volatile() | Const() | Restrict() | TypeTag():
                current = current.type
                continue
            case _ if isinstance(current, _SIZED_TYPES):
                return count * current.size  # type: ignore[union-attr]
            case None:
                raise UnsizedTypeError.of("None", "dangling reference")
            case _:
                raise UnsizedTypeError.of(current.kind_name)
    raise UnsizedTypeError.of(node.kind_name, f"exceeded type depth {MAX_TYPE_DEPTH}")
