"""Exported node models, one per BTF category.

Exported nodes carry only primitive values. A reference to another type is
always its numeric ID, never a nested node, so cyclic type graphs serialize as
flat ID-linked records. ``type_name`` is the discriminant.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class _Exported(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_json_obj(self) -> dict[str, Any]:
        """Plain dict in the on-disk shape (aliases applied, absent shape omitted)."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if "type_name" in data:
            # discriminant first
            return {"type_name": data.pop("type_name"), **data}
        return data


class StructMember(_Exported):
    name: str
    type: int
    offset: int
    bit_field_size: int
    size: int


class EnumValue(_Exported):
    name: str
    value: int


class FuncParam(_Exported):
    name: str
    type: int


class VarSecinfo(_Exported):
    type: int
    offset: int
    size: int


class VoidNode(_Exported):
    type_name: Literal["void"] = "void"


class IntNode(_Exported):
    type_name: Literal["int"] = "int"
    name: str
    size: int
    encoding: str


class PointerNode(_Exported):
    type_name: Literal["pointer"] = "pointer"
    target_type: int


class ArrayNode(_Exported):
    type_name: Literal["array"] = "array"
    index_type: int
    elem_type: int
    count: int


class _Aggregate(_Exported):
    size: int
    name: str
    members_map: dict[str, StructMember] | None = None
    members: list[StructMember] | None = None

    @model_validator(mode="after")
    def _one_shape(self) -> _Aggregate:
        if (self.members is None) == (self.members_map is None):
            raise ValueError("exactly one of members or members_map must be set")
        return self

    def member_list(self) -> list[StructMember]:
        """Members in export order, whichever shape holds them."""
        if self.members is not None:
            return list(self.members)
        return list(self.members_map.values())  # type: ignore[union-attr]


class StructNode(_Aggregate):
    type_name: Literal["struct"] = "struct"


class UnionNode(_Aggregate):
    type_name: Literal["union"] = "union"


class EnumNode(_Exported):
    type_name: Literal["enum"] = "enum"
    name: str
    size: int
    signed: bool
    values_map: dict[str, EnumValue] | None = None
    values: list[EnumValue] | None = None

    @model_validator(mode="after")
    def _one_shape(self) -> EnumNode:
        if (self.values is None) == (self.values_map is None):
            raise ValueError("exactly one of values or values_map must be set")
        return self


class FwdNode(_Exported):
    type_name: Literal["fwd"] = "fwd"
    name: str
    kind: str


class TypedefNode(_Exported):
    type_name: Literal["typedef"] = "typedef"
    name: str
    type: int


class VolatileNode(_Exported):
    type_name: Literal["volatile"] = "volatile"
    type: int


class ConstNode(_Exported):
    type_name: Literal["const"] = "const"
    type: int


class RestrictNode(_Exported):
    type_name: Literal["restrict"] = "restrict"
    type: int


class FuncNode(_Exported):
    type_name: Literal["func"] = "func"
    name: str
    type: int
    linkage: str


class FuncProtoNode(_Exported):
    type_name: Literal["funcproto"] = "funcproto"
    return_type: int = Field(alias="return")
    params: list[FuncParam]


class VarNode(_Exported):
    type_name: Literal["var"] = "var"
    name: str
    type: int
    linkage: str


class DatasecNode(_Exported):
    type_name: Literal["datasec"] = "datasec"
    name: str
    size: int
    vars: list[VarSecinfo]


class FloatNode(_Exported):
    type_name: Literal["float"] = "float"
    name: str
    size: int


ExportedNode = Annotated[
    VoidNode
    | IntNode
    | PointerNode
    | ArrayNode
    | StructNode
    | UnionNode
    | EnumNode
    | FwdNode
    | TypedefNode
    | VolatileNode
    | ConstNode
    | RestrictNode
    | FuncNode
    | FuncProtoNode
    | VarNode
    | DatasecNode
    | FloatNode,
    Field(discriminator="type_name"),
]

_node_adapter: TypeAdapter[ExportedNode] = TypeAdapter(ExportedNode)


def parse_node(data: dict[str, Any]) -> ExportedNode:
    """Validate one exported JSON object back into its model."""
    return _node_adapter.validate_python(data)
