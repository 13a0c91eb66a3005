# wiring_gen/io.py
from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Any

import yaml

from .constants import MODEL_PART_FILES, NON_UI_SECTION, PLACES_SECTION, UI_SECTION
from .model import AffordanceGraph, build_graph
from .model_view import (
    declared_components,
    declared_places,
    declared_slices,
    non_ui_rows,
    ui_rows,
)
from .slices import SliceAssignment
from .table_parser import parse_tables, rows_from_markdown

MARKDOWN_SUFFIXES: tuple[str, ...] = (".md", ".markdown")


def _sanitize_yaml_for_pyyaml(raw: str) -> tuple[str, list[tuple[int, str, str]]]:
    """Return (sanitized_yaml, changes).

    Each change is (line_number_1_based, original_line, new_line).
    """
    changes: list[tuple[int, str, str]] = []
    out_lines: list[str] = []

    for i, line in enumerate(raw.splitlines(), start=1):
        match = re.match(
            r"^(\s*(?:-\s*)?(?:Affordance|affordance|label|name|description|title|Wires Out|Returns To|wires_out|returns_to):\s*)(.+)$",
            line,
        )
        if not match:
            out_lines.append(line)
            continue

        prefix, value = match.group(1), match.group(2)

        # Already quoted or a block scalar.
        if value.startswith(("'", '"', "|", ">")):
            out_lines.append(line)
            continue

        # PyYAML rejects plain scalars containing ":" followed by whitespace or EOL
        # (e.g., "Wires Out: → N4: fetch"). Preserve any trailing inline comment.
        body, comment = value, ""
        m = re.match(r"^(.*?)(\s+#.*)$", value)
        if m:
            body, comment = m.group(1), m.group(2)

        if re.search(r":(?=\s|$)", body):
            escaped = body.replace("\\", "\\\\").replace('"', '\\"')
            new_line = f'{prefix}"{escaped}"{comment}'
            out_lines.append(new_line)
            if new_line != line:
                changes.append((i, line, new_line))
        else:
            out_lines.append(line)

    sanitized = "\n".join(out_lines) + ("\n" if raw.endswith("\n") else "")
    return sanitized, changes


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError:
        sanitized, changes = _sanitize_yaml_for_pyyaml(raw)
        try:
            data = yaml.safe_load(sanitized)
        except yaml.YAMLError as e2:
            raise ValueError(f"Failed to parse YAML {path}: {e2}") from e2

        # Warn with specifics (cap to avoid spam)
        if changes:
            print(
                f"warning: parsed {path} after sanitizing {len(changes)} line(s); "
                "consider quoting values containing ':' followed by whitespace",
                file=sys.stderr,
            )
            for (ln, old, new) in changes[:10]:
                print(f"warning: {path}:{ln}: {old}", file=sys.stderr)
                print(f"warning: {path}:{ln}: {new}", file=sys.stderr)
            if len(changes) > 10:
                print(f"warning: (and {len(changes) - 10} more)", file=sys.stderr)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise TypeError(
            f"Top-level YAML must be a mapping in {path}, got {type(data).__name__}"
        )

    return data


def _deep_merge_model(
    dst: dict[str, Any], src: dict[str, Any], *, src_path: Path
) -> None:
    """Deep-merge `src` into `dst` with deterministic, safe semantics.

    Merge rules:
      - missing key -> copy
      - list + list -> concatenate (preserve file order)
      - dict + dict -> recursive merge
      - scalar conflicts -> error (unless equal)
    """
    for key, value in src.items():
        if key not in dst:
            dst[key] = value
            continue

        existing = dst[key]
        if isinstance(existing, list) and isinstance(value, list):
            dst[key] = existing + value
            continue

        if isinstance(existing, dict) and isinstance(value, dict):
            _deep_merge_model(existing, value, src_path=src_path)
            continue

        if existing == value:
            continue

        raise ValueError(
            f"Model merge conflict on key {key!r} from {src_path}: "
            f"existing type={type(existing).__name__}, new type={type(value).__name__}"
        )


def _load_markdown_model(path: Path) -> dict[str, Any]:
    tables = rows_from_markdown(path.read_text(encoding="utf-8"))
    model: dict[str, Any] = {
        UI_SECTION: tables.ui_rows,
        NON_UI_SECTION: tables.non_ui_rows,
    }
    if tables.places:
        model[PLACES_SECTION] = tables.places
    return model


def load_model(path: Path) -> dict[str, Any]:
    """Load an affordance model (split directory, YAML file or markdown tables)."""
    if not path.exists():
        raise FileNotFoundError(str(path))

    # Convenience: if a split-part file was provided, assume its parent directory
    # is the model root.
    if path.is_file() and path.name in set(MODEL_PART_FILES):
        path = path.parent

    if path.is_dir():
        model_dir = path
        merged: dict[str, Any] = {}

        # Deterministic merge order for the split model.
        for filename in MODEL_PART_FILES:
            part_path = model_dir / filename
            if not part_path.exists():
                continue
            part = _load_yaml_mapping(part_path)
            _deep_merge_model(merged, part, src_path=part_path)

        # slices/*.yaml (each typically contains `slices: [...]`).
        slices_dir = model_dir / "slices"
        if slices_dir.exists() and slices_dir.is_dir():
            for slice_path in sorted(slices_dir.glob("*.yaml")):
                _deep_merge_model(merged, _load_yaml_mapping(slice_path), src_path=slice_path)

        return merged

    if path.suffix.lower() in MARKDOWN_SUFFIXES:
        return _load_markdown_model(path)

    return _load_yaml_mapping(path)


def graph_from_model(model: dict[str, Any]) -> tuple[AffordanceGraph, SliceAssignment]:
    """Parse, resolve and freeze. Parse errors abort before any graph exists."""
    parsed = parse_tables(ui_rows(model), non_ui_rows(model))
    graph = build_graph(
        parsed,
        places=declared_places(model),
        components=declared_components(model),
    )
    return graph, declared_slices(model)
