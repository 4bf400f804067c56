"""Tests for btf/types.py helpers."""

from __future__ import annotations

import pytest

from btf2json.btf import types as btf
from btf2json.core.errors import ErrorCode, ResolutionError, UnsizedTypeError


class TestRenderings:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(0, "unsigned"), (1, "signed"), (2, "char"), (4, "bool"), (3, "IntEncoding(3)")],
    )
    def test_encoding_name(self, raw: int, expected: str) -> None:
        assert btf.encoding_name(raw) == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(0, "static"), (1, "global"), (2, "extern"), (7, "Linkage(7)")],
    )
    def test_linkage_name(self, raw: int, expected: str) -> None:
        assert btf.linkage_name(raw) == expected

    def test_unnamed_kinds_have_empty_name(self) -> None:
        assert btf.Pointer().name == ""
        assert btf.Void().name == ""
        assert btf.Const().kind_name == "Const"


class TestUnderlyingType:
    def test_non_wrapper_is_returned_as_is(self) -> None:
        i = btf.Int(name="int", size=4)
        assert btf.underlying_type(i) is i

    def test_strips_qualifier_and_typedef_chain(self) -> None:
        i = btf.Int(name="int", size=4)
        chain = btf.Typedef(name="t", type=btf.Const(type=btf.Volatile(type=btf.Restrict(type=i))))
        assert btf.underlying_type(chain) is i

    def test_strips_type_tags(self) -> None:
        i = btf.Int(name="int", size=4)
        assert btf.underlying_type(btf.TypeTag(value="user", type=i)) is i

    def test_pointer_stops_the_chain(self) -> None:
        ptr = btf.Pointer(target=btf.Int(name="int", size=4))
        assert btf.underlying_type(btf.Const(type=ptr)) is ptr

    def test_wrapper_cycle_fails(self) -> None:
        a = btf.Typedef(name="a")
        b = btf.Typedef(name="b", type=a)
        a.type = b
        with pytest.raises(ResolutionError) as exc_info:
            btf.underlying_type(a)
        assert exc_info.value.code == ErrorCode.RESOLUTION_UNRESOLVABLE

    def test_dangling_wrapper_fails(self) -> None:
        with pytest.raises(ResolutionError):
            btf.underlying_type(btf.Const())

    def test_chain_at_max_depth_resolves(self) -> None:
        i = btf.Int(name="int", size=4)
        assert btf.underlying_type(_const_chain(i, btf.MAX_TYPE_DEPTH)) is i

    def test_chain_past_max_depth_fails(self) -> None:
        i = btf.Int(name="int", size=4)
        with pytest.raises(ResolutionError) as exc_info:
            btf.underlying_type(_const_chain(i, btf.MAX_TYPE_DEPTH + 1))
        assert exc_info.value.code == ErrorCode.RESOLUTION_UNRESOLVABLE


class TestSizeof:
    @pytest.mark.parametrize(
        "node",
        [
            btf.Int(name="int", size=4),
            btf.Struct(name="s", size=4),
            btf.Union(name="u", size=4),
            btf.Enum(name="e", size=4),
            btf.Float(name="f", size=4),
            btf.Datasec(name=".data", size=4),
        ],
    )
    def test_sized_types(self, node: btf.Type) -> None:
        assert btf.sizeof(node) == 4

    def test_pointer_is_eight_bytes(self) -> None:
        assert btf.sizeof(btf.Pointer(target=btf.Void())) == 8

    def test_array_multiplies(self) -> None:
        inner = btf.Array(type=btf.Int(name="short", size=2), nelems=3)
        outer = btf.Array(type=inner, nelems=4)
        assert btf.sizeof(outer) == 24

    def test_follows_typedef_and_qualifiers(self) -> None:
        node = btf.Typedef(name="u64", type=btf.Const(type=btf.Int(name="ull", size=8)))
        assert btf.sizeof(node) == 8

    @pytest.mark.parametrize(
        "node",
        [btf.Void(), btf.Fwd(name="later"), btf.Func(name="f"), btf.FuncProto()],
    )
    def test_unsized_types_fail(self, node: btf.Type) -> None:
        with pytest.raises(UnsizedTypeError):
            btf.sizeof(node)

    def test_dangling_reference_is_unsized(self) -> None:
        with pytest.raises(UnsizedTypeError):
            btf.sizeof(btf.Typedef(name="t"))


def _const_chain(base: btf.Type, depth: int) -> btf.Type:
    node = base
    for _ in range(depth):
        node = btf.Const(type=node)
    return node
