# wiring_gen/model_view.py
from __future__ import annotations

from typing import Any

from .constants import (
    COMPONENTS_SECTION,
    NON_UI_SECTION,
    PLACES_SECTION,
    SLICES_SECTION,
    UI_SECTION,
)
from .mermaid_fmt import MERMAID_ID_RE
from .model import ComponentDecl, PlaceDecl
from .slices import Slice, SliceAssignment
from .table_parser import rows_from_markdown


def as_str_list(value: Any, *, path: str) -> list[str]:
    """Accept a list of strings or one comma-separated string."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    raise TypeError(f"Expected list of ids at {path}, got: {type(value).__name__}")


def _section_items(model: dict[str, Any], section: str) -> list[dict[str, Any]]:
    items = model.get(section, []) or []
    if not isinstance(items, list):
        raise TypeError(f"model.{section} must be a list")
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise TypeError(
                f"model.{section}[{i}] must be a mapping, got {type(item).__name__}"
            )
    return items


def affordance_rows(model: dict[str, Any], section: str) -> list[dict[str, Any]]:
    """Rows for one affordance table: a list of mappings or a markdown table string."""
    value = model.get(section)
    if isinstance(value, str):
        tables = rows_from_markdown(value)
        return [*tables.ui_rows, *tables.non_ui_rows]
    return _section_items(model, section)


def _require_id(item: dict[str, Any], *, path: str) -> str:
    value = item.get("id")
    if not isinstance(value, str) or not value:
        raise TypeError(f"Expected non-empty string at {path}.id, got: {value!r}")
    if not MERMAID_ID_RE.match(value):
        raise ValueError(
            f"{path}.id {value!r} is not Mermaid-safe (use [A-Za-z0-9_] and cannot "
            "start with a digit)"
        )
    return value


def declared_places(model: dict[str, Any]) -> list[PlaceDecl]:
    out: list[PlaceDecl] = []
    for i, item in enumerate(_section_items(model, PLACES_SECTION)):
        path = f"model.{PLACES_SECTION}[{i}]"
        place_id = _require_id(item, path=path)
        out.append(
            PlaceDecl(
                id=place_id,
                name=str(item.get("name") or place_id),
                entry=tuple(as_str_list(item.get("entry"), path=f"{path}.entry")),
            )
        )
    return out


def declared_components(model: dict[str, Any]) -> list[ComponentDecl]:
    out: list[ComponentDecl] = []
    for i, item in enumerate(_section_items(model, COMPONENTS_SECTION)):
        path = f"model.{COMPONENTS_SECTION}[{i}]"
        comp_id = _require_id(item, path=path)
        place = item.get("place")
        out.append(
            ComponentDecl(
                id=comp_id,
                name=str(item.get("name") or comp_id),
                place=str(place) if place else None,
            )
        )
    return out


def declared_slices(model: dict[str, Any]) -> SliceAssignment:
    slices: list[Slice] = []
    for i, item in enumerate(_section_items(model, SLICES_SECTION)):
        path = f"model.{SLICES_SECTION}[{i}]"
        slice_id = _require_id(item, path=path)
        slices.append(
            Slice(
                id=slice_id,
                name=str(item.get("name") or ""),
                node_ids=frozenset(as_str_list(item.get("nodes"), path=f"{path}.nodes")),
                edge_ids=frozenset(as_str_list(item.get("edges"), path=f"{path}.edges")),
            )
        )
    return SliceAssignment(tuple(slices))


def ui_rows(model: dict[str, Any]) -> list[dict[str, Any]]:
    return affordance_rows(model, UI_SECTION)


def non_ui_rows(model: dict[str, Any]) -> list[dict[str, Any]]:
    return affordance_rows(model, NON_UI_SECTION)
