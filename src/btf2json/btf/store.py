"""Read-only type store addressable by ID and by name."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator, Sequence

from btf2json.btf.types import DeclTag, Type, TypeTag, Void
from btf2json.core.errors import InternalError, ResolutionError

# Tag names are annotation values, not type names.
_UNNAMED_KINDS = (DeclTag, TypeTag)


class TypeStore:
    """Dense ID-indexed collection of BTF nodes.

    ID 0 is always ``Void``. The remaining IDs follow declaration order, so
    iteration order is stable across runs over the same input.
    """

    def __init__(self, types: Sequence[Type]) -> None:
        if not types or not isinstance(types[0], Void):
            types = [Void(), *types]
        self._types: list[Type] = list(types)
        self._ids: dict[Type, int] = {}
        self._by_name: dict[str, list[int]] = defaultdict(list)
        for type_id, node in enumerate(self._types):
            if node in self._ids:
                raise InternalError.unexpected(
                    "node listed twice in type store",
                    kind=node.kind_name,
                    type_ids=[self._ids[node], type_id],
                )
            self._ids[node] = type_id
            if node.name and not isinstance(node, _UNNAMED_KINDS):
                self._by_name[node.name].append(type_id)

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_id: object) -> bool:
        return isinstance(type_id, int) and 0 <= type_id < len(self._types)

    def __iter__(self) -> Iterator[tuple[int, Type]]:
        return self.iterate()

    def iterate(self) -> Iterator[tuple[int, Type]]:
        """Yield ``(id, node)`` pairs in ID order, starting with Void."""
        yield from enumerate(self._types)

    def type_by_id(self, type_id: int) -> Type:
        if type_id not in self:
            raise ResolutionError.unresolvable(f"no type with id {type_id}", type_id=type_id)
        return self._types[type_id]

    def type_id(self, node: Type) -> int:
        try:
            return self._ids[node]
        except KeyError:
            raise ResolutionError.unresolvable(
                f"{node.kind_name} '{node.name}' is not part of this store",
                kind=node.kind_name,
            ) from None

    def any_type_by_name(self, name: str) -> Type:
        """Return the single node of any category named ``name``."""
        ids = self._by_name.get(name)
        if not ids:
            raise ResolutionError.not_found(name)
        if len(ids) > 1:
            raise ResolutionError.ambiguous(name, None, ids)
        return self._types[ids[0]]

    def type_by_name(self, name: str, cls: type[Type]) -> Type:
        """Return the single node of category ``cls`` named ``name``."""
        ids = [i for i in self._by_name.get(name, ()) if type(self._types[i]) is cls]
        kind = cls.__name__.lower()
        if not ids:
            raise ResolutionError.not_found(name, kind)
        if len(ids) > 1:
            raise ResolutionError.ambiguous(name, kind, ids)
        return self._types[ids[0]]
