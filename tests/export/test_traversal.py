"""Tests for export/traversal.py."""

from __future__ import annotations

import pytest

from btf2json.btf import types as btf
from btf2json.btf.reader import parse_btf
from btf2json.btf.store import TypeStore
from btf2json.config.models import ExportOptions
from btf2json.core.errors import ResolutionError, UnknownCategoryError
from btf2json.export import nodes
from btf2json.export.deps import dependencies
from btf2json.export.traversal import TypeWalker
from btf2json.export.writer import to_json_obj

PLAIN = ExportOptions()
DEREF = ExportOptions(dereference=True)


def _fixpoint(walker: TypeWalker, store: TypeStore, roots: list[int]) -> set[int]:
    """Reachable IDs computed without the walker's queue."""
    reached = set(roots)
    while True:
        grown = set(reached)
        for type_id in reached:
            grown.update(dependencies(walker.converter.convert(store.type_by_id(type_id))))
        if grown == reached:
            return reached
        reached = grown


@pytest.fixture
def linked_list() -> TypeStore:
    """struct node { int v; struct node *next; const struct node *prev; } plus noise."""
    int_t = btf.Int(name="int", size=4, encoding=btf.IntEncoding.SIGNED)
    node = btf.Struct(name="node", size=24)
    ptr = btf.Pointer(target=node)
    const = btf.Const(type=node)
    const_ptr = btf.Pointer(target=const)
    node.members = [
        btf.Member(name="v", type=int_t, offset=0),
        btf.Member(name="next", type=ptr, offset=64),
        btf.Member(name="prev", type=const_ptr, offset=128),
    ]
    noise = btf.Float(name="double", size=8)
    return TypeStore([btf.Void(), int_t, node, ptr, const, const_ptr, noise])


class TestDumpAll:
    def test_every_node_in_store_order(self, foo_blob: bytes) -> None:
        store = parse_btf(foo_blob)
        result = TypeWalker(store, PLAIN).dump_all()

        assert [n.type_name for n in result] == ["void", "int", "struct"]
        assert to_json_obj(result)[2] == {
            "type_name": "struct",
            "size": 6,
            "name": "Foo",
            "members": [{"name": "v1", "type": 1, "offset": 0, "bit_field_size": 0, "size": 4}],
        }

    def test_order_is_stable(self, linked_list: TypeStore) -> None:
        first = to_json_obj(TypeWalker(linked_list, PLAIN).dump_all())
        second = to_json_obj(TypeWalker(linked_list, PLAIN).dump_all())
        assert first == second

    def test_conversion_error_aborts(self) -> None:
        store = TypeStore([btf.Void(), btf.DeclTag(value="tag", type=btf.Void())])
        with pytest.raises(UnknownCategoryError, match="DeclTag"):
            TypeWalker(store, PLAIN).dump_all()


class TestWalk:
    def test_struct_root_pulls_in_member_types(self, foo_blob: bytes) -> None:
        """Given struct Foo { int v1; },
        When walking from struct:Foo,
        Then the result holds exactly Foo and int, keyed by ID, without void."""
        store = parse_btf(foo_blob)

        result = TypeWalker(store, PLAIN).walk([2])

        assert list(result) == [2, 1]
        assert to_json_obj(result) == {
            "2": {
                "type_name": "struct",
                "size": 6,
                "name": "Foo",
                "members": [
                    {"name": "v1", "type": 1, "offset": 0, "bit_field_size": 0, "size": 4}
                ],
            },
            "1": {"type_name": "int", "name": "int", "size": 4, "encoding": "signed"},
        }

    def test_cycle_terminates(self, linked_list: TypeStore) -> None:
        result = TypeWalker(linked_list, PLAIN).walk([2])
        assert set(result) == {1, 2, 3, 4, 5}

    def test_closure_matches_fixpoint(self, linked_list: TypeStore) -> None:
        walker = TypeWalker(linked_list, PLAIN)
        result = walker.walk([5])
        expected = _fixpoint(TypeWalker(linked_list, PLAIN), linked_list, [5])
        assert set(result) == expected

    def test_every_reference_is_present(self, linked_list: TypeStore) -> None:
        result = TypeWalker(linked_list, PLAIN).walk([3])
        for exported in result.values():
            assert set(dependencies(exported)) <= set(result)

    def test_each_node_converted_once(self, linked_list: TypeStore) -> None:
        walker = TypeWalker(linked_list, PLAIN)
        result = walker.walk([2, 3, 2, 5])
        assert walker.converter.converted == len(result)

    def test_dereference_skips_qualifiers(self, linked_list: TypeStore) -> None:
        result = TypeWalker(linked_list, DEREF).walk([2])
        assert 4 not in result
        assert result[5] == nodes.PointerNode(target_type=2)

    def test_root_itself_is_exported_when_dereferencing(self, linked_list: TypeStore) -> None:
        result = TypeWalker(linked_list, DEREF).walk([4])
        assert result[4] == nodes.ConstNode(type=2)

    def test_void_reached_through_references(self) -> None:
        void = btf.Void()
        ptr = btf.Pointer(target=void)
        result = TypeWalker(TypeStore([void, ptr]), PLAIN).walk([1])
        assert list(result) == [1, 0]

    def test_empty_roots(self, linked_list: TypeStore) -> None:
        assert TypeWalker(linked_list, PLAIN).walk([]) == {}

    def test_failure_aborts_walk(self) -> None:
        stranger = btf.Int(name="long", size=8)
        store = TypeStore([btf.Void(), btf.Pointer(target=stranger)])
        with pytest.raises(ResolutionError):
            TypeWalker(store, PLAIN).walk([1])
