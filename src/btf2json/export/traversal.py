"""Full-dump and closure traversal over a TypeStore."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from btf2json.btf.store import TypeStore
from btf2json.config.models import ExportOptions
from btf2json.core.logging import get_logger
from btf2json.export.converter import NodeConverter
from btf2json.export.deps import dependencies
from btf2json.export.nodes import ExportedNode

log = get_logger("export.traversal")


class TypeWalker:
    """Drives the converter over a store.

    ``dump_all`` converts every node in store order. ``walk`` converts the
    transitive closure of a set of roots breadth-first; cycles end at the
    visited check, never at a depth limit. A conversion error aborts either
    mode.
    """

    def __init__(self, store: TypeStore, options: ExportOptions) -> None:
        self._store = store
        self.converter = NodeConverter(store, options)

    def dump_all(self) -> list[ExportedNode]:
        result = [self.converter.convert(node) for _, node in self._store.iterate()]
        log.info("dump_complete", types=len(result))
        return result

    def walk(self, roots: Iterable[int]) -> dict[int, ExportedNode]:
        result: dict[int, ExportedNode] = {}
        queue = deque(roots)
        log.debug("walk_start", roots=list(queue))
        while queue:
            type_id = queue.popleft()
            if type_id in result:
                continue
            exported = self.converter.convert(self._store.type_by_id(type_id))
            result[type_id] = exported
            queue.extend(dep for dep in dependencies(exported) if dep not in result)
        log.info("walk_complete", types=len(result))
        return result
