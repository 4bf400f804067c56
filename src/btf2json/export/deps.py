"""Structural dependencies of exported nodes."""

from __future__ import annotations

from btf2json.core.errors import UnknownCategoryError
from btf2json.export import nodes


def dependencies(node: nodes.ExportedNode) -> list[int]:
    """Return the IDs ``node`` references, in export order.

    The result may hold duplicates and the node's own ID; callers deduplicate.
    Array dependencies cover both the index and the element type.
    """
    match node:
        case (
            nodes.VoidNode()
            | nodes.IntNode()
            | nodes.EnumNode()
            | nodes.FwdNode()
            | nodes.FloatNode()
        ):
            return []
        case nodes.PointerNode():
            return [node.target_type]
        case (
            nodes.TypedefNode()
            | nodes.VolatileNode()
            | nodes.ConstNode()
            | nodes.RestrictNode()
            | nodes.VarNode()
            | nodes.FuncNode()
        ):
            return [node.type]
        case nodes.ArrayNode():
            return [node.index_type, node.elem_type]
        case nodes.StructNode() | nodes.UnionNode():
            return [member.type for member in node.member_list()]
        case nodes.FuncProtoNode():
            return [node.return_type, *(param.type for param in node.params)]
        case nodes.DatasecNode():
            return [var.type for var in node.vars]
    raise UnknownCategoryError.unknown_kind(type(node).__name__)
