"""Serialize traversal results to JSON."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from btf2json.core.errors import BtfIOError
from btf2json.core.logging import get_logger
from btf2json.export.nodes import ExportedNode

log = get_logger("export.writer")

ExportResult = Sequence[ExportedNode] | Mapping[int, ExportedNode]


def default_output_path(input_path: Path) -> Path:
    """``vmlinux`` -> ``vmlinux.json``; the suffix is appended, not replaced."""
    return input_path.with_name(input_path.name + ".json")


def to_json_obj(result: ExportResult) -> list[dict[str, Any]] | dict[str, dict[str, Any]]:
    """Full dumps become arrays; closures become objects keyed by decimal ID."""
    if isinstance(result, Mapping):
        return {str(type_id): node.to_json_obj() for type_id, node in result.items()}
    return [node.to_json_obj() for node in result]


def render(result: ExportResult, indent: int | None = None) -> str:
    return json.dumps(to_json_obj(result), indent=indent, ensure_ascii=False)


def write_export(result: ExportResult, path: Path, *, indent: int | None = None) -> None:
    """Write ``result`` to ``path``.

    Raises:
        BtfIOError: If the file cannot be written.
    """
    text = render(result, indent)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise BtfIOError.write_failed(str(path), e.strerror or str(e)) from e
    log.info("export_written", path=str(path), types=len(result), chars=len(text))
