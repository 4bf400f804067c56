"""Type-graph conversion, traversal and JSON export."""

from btf2json.export.converter import NodeConverter, resolve_id
from btf2json.export.deps import dependencies
from btf2json.export.nodes import ExportedNode, parse_node
from btf2json.export.targets import (
    TargetSpec,
    parse_target,
    parse_targets,
    resolve_target,
    resolve_targets,
)
from btf2json.export.traversal import TypeWalker
from btf2json.export.writer import default_output_path, render, write_export

__all__ = [
    "ExportedNode",
    "NodeConverter",
    "TargetSpec",
    "TypeWalker",
    "default_output_path",
    "dependencies",
    "parse_node",
    "parse_target",
    "parse_targets",
    "render",
    "resolve_id",
    "resolve_target",
    "resolve_targets",
    "write_export",
]
