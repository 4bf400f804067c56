"""Convert BTF store nodes into exported nodes."""

from __future__ import annotations

from typing import TypeVar

from btf2json.btf import types as btf
from btf2json.btf.store import TypeStore
from btf2json.btf.types import encoding_name, linkage_name, sizeof, underlying_type
from btf2json.config.models import ExportOptions
from btf2json.core.errors import ResolutionError, UnknownCategoryError, UnsizedTypeError
from btf2json.core.logging import get_logger
from btf2json.export import nodes

log = get_logger("export.converter")

_T = TypeVar("_T", nodes.StructMember, nodes.EnumValue)


def resolve_id(store: TypeStore, node: btf.Type | None, options: ExportOptions) -> int:
    """Map a type reference to the ID written into the export.

    With ``options.dereference`` the reference is first followed through
    typedefs and qualifiers to the underlying type.

    Raises:
        ResolutionError: If the reference is dangling or not owned by ``store``.
    """
    if node is None:
        raise ResolutionError.unresolvable("dangling type reference")
    if options.dereference:
        node = underlying_type(node)
    return store.type_id(node)


def _member_size(node: btf.Type | None) -> int:
    if node is None:
        return 0
    try:
        return sizeof(node)
    except UnsizedTypeError:
        return 0


class NodeConverter:
    """Converts one store node at a time under fixed export options.

    ``converted`` counts invocations of :meth:`convert`.
    """

    def __init__(self, store: TypeStore, options: ExportOptions) -> None:
        self._store = store
        self._options = options
        self.converted = 0

    @property
    def options(self) -> ExportOptions:
        return self._options

    def _id(self, node: btf.Type | None) -> int:
        return resolve_id(self._store, node, self._options)

    def convert(self, node: btf.Type) -> nodes.ExportedNode:
        """Produce the exported form of ``node``.

        Raises:
            ResolutionError: If a referenced type cannot be resolved.
            UnknownCategoryError: If ``node`` is not an exportable category.
        """
        self.converted += 1
        log.debug(
            "convert",
            type_id=self._store.type_id(node),
            kind=node.kind_name,
            name=node.name,
        )

        match node:
            case btf.Void():
                return nodes.VoidNode()
            case btf.Int():
                return nodes.IntNode(
                    name=node.name, size=node.size, encoding=encoding_name(node.encoding)
                )
            case btf.Pointer():
                return nodes.PointerNode(target_type=self._id(node.target))
            case btf.Array():
                return nodes.ArrayNode(
                    index_type=self._id(node.index),
                    elem_type=self._id(node.type),
                    count=node.nelems,
                )
            case btf.Struct():
                return nodes.StructNode(
                    size=node.size, name=node.name, **self._members(node.name, node.members)
                )
            case btf.Union():
                return nodes.UnionNode(
                    size=node.size, name=node.name, **self._members(node.name, node.members)
                )
            case btf.Enum():
                return nodes.EnumNode(
                    name=node.name, size=node.size, signed=node.signed, **self._values(node)
                )
            case btf.Fwd():
                return nodes.FwdNode(name=node.name, kind=node.kind.name.lower())
            case btf.Typedef():
                return nodes.TypedefNode(name=node.name, type=self._id(node.type))
            case btf.Volatile():
                return nodes.VolatileNode(type=self._id(node.type))
            case btf.Const():
                return nodes.ConstNode(type=self._id(node.type))
            case btf.Restrict():
                return nodes.RestrictNode(type=self._id(node.type))
            case btf.Func():
                return nodes.FuncNode(
                    name=node.name, type=self._id(node.type), linkage=linkage_name(node.linkage)
                )
            case btf.FuncProto():
                return nodes.FuncProtoNode(
                    return_type=self._id(node.return_type),
                    params=[
                        nodes.FuncParam(name=param.name, type=self._id(param.type))
                        for param in node.params
                    ],
                )
            case btf.Var():
                return nodes.VarNode(
                    name=node.name, type=self._id(node.type), linkage=linkage_name(node.linkage)
                )
            case btf.Datasec():
                return nodes.DatasecNode(
                    name=node.name,
                    size=node.size,
                    vars=[
                        nodes.VarSecinfo(type=self._id(var.type), offset=var.offset, size=var.size)
                        for var in node.vars
                    ],
                )
            case btf.Float():
                return nodes.FloatNode(name=node.name, size=node.size)
            case _:
                raise UnknownCategoryError.unknown_kind(
                    node.kind_name, self._store.type_id(node)
                )

    def _members(self, owner: str, members: list[btf.Member]) -> dict[str, object]:
        exported = [
            nodes.StructMember(
                name=member.name,
                type=self._id(member.type),
                offset=member.offset_bytes,
                bit_field_size=member.bitfield_size,
                size=_member_size(member.type),
            )
            for member in members
        ]
        if not self._options.as_map:
            return {"members": exported}
        return {"members_map": self._keyed(owner, exported)}

    def _values(self, node: btf.Enum) -> dict[str, object]:
        exported = [nodes.EnumValue(name=value.name, value=value.value) for value in node.values]
        if not self._options.as_map:
            return {"values": exported}
        return {"values_map": self._keyed(node.name, exported)}

    @staticmethod
    def _keyed(owner: str, items: list[_T]) -> dict[str, _T]:
        # Last write wins on duplicate names.
        keyed: dict[str, _T] = {}
        for item in items:
            if item.name in keyed:
                log.warning("duplicate_key", owner=owner, key=item.name)
            keyed[item.name] = item
        return keyed
