"""Resolve user-supplied root names to type IDs.

A target is either a bare name (``task_struct``), matched against every
category, or ``category:name`` (``struct:task_struct``), matched against one.
"""

from __future__ import annotations

from dataclasses import dataclass

from btf2json.btf import types as btf
from btf2json.btf.store import TypeStore
from btf2json.core.errors import UnknownCategoryError
from btf2json.core.logging import get_logger

log = get_logger("export.targets")

CATEGORY_TOKENS: dict[str, type[btf.Type]] = {
    "void": btf.Void,
    "int": btf.Int,
    "pointer": btf.Pointer,
    "array": btf.Array,
    "struct": btf.Struct,
    "union": btf.Union,
    "enum": btf.Enum,
    "fwd": btf.Fwd,
    "typedef": btf.Typedef,
    "volatile": btf.Volatile,
    "const": btf.Const,
    "restrict": btf.Restrict,
    "func": btf.Func,
    "funcproto": btf.FuncProto,
    "var": btf.Var,
    "datasec": btf.Datasec,
    "float": btf.Float,
}


@dataclass(frozen=True, slots=True)
class TargetSpec:
    name: str
    category: str | None = None

    def __str__(self) -> str:
        return f"{self.category}:{self.name}" if self.category else self.name


def parse_target(spec: str) -> TargetSpec:
    """Split ``category:name`` (or a bare name) into a TargetSpec."""
    spec = spec.strip()
    category, sep, name = spec.partition(":")
    if not sep:
        return TargetSpec(name=spec)
    return TargetSpec(name=name.strip(), category=category.strip().lower())


def parse_targets(specs: str) -> list[TargetSpec]:
    """Parse a comma-separated target list, dropping empty entries."""
    return [parse_target(part) for part in specs.split(",") if part.strip()]


def category_class(token: str) -> type[btf.Type]:
    try:
        return CATEGORY_TOKENS[token.strip().lower()]
    except KeyError:
        raise UnknownCategoryError.bad_token(token, list(CATEGORY_TOKENS)) from None


def resolve_target(store: TypeStore, target: TargetSpec) -> int:
    """Return the store ID of the node ``target`` names.

    The node's own ID is returned; dereferencing never applies to roots.

    Raises:
        UnknownCategoryError: If the category token is not recognised.
        ResolutionError: If no node (or more than one, for ``category:name``) matches.
    """
    if target.category is None:
        node = store.any_type_by_name(target.name)
    else:
        node = store.type_by_name(target.name, category_class(target.category))
    type_id = store.type_id(node)
    log.debug("target_resolved", target=str(target), type_id=type_id)
    return type_id


def resolve_targets(store: TypeStore, targets: list[TargetSpec]) -> list[int]:
    return [resolve_target(store, target) for target in targets]
