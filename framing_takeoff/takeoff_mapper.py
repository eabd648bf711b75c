"""Mapping of extraction results into takeoff calculator input.

The wall, floor and roof calculators each take a list of rows plus a
settings block. Rows are built from the extracted segments and specs;
spec overrides pre-populate settings only where the calculator's own
setting is still unset.
"""
import re
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from .models import ExtractionResult


DEFAULT_STUD_SIZE = "2x4"
DEFAULT_STUD_SPACING = 16
DEFAULT_WALL_HEIGHT = 8.0
DEFAULT_HEADER_SIZE = "2x8"
UNKNOWN_WALL_TYPE = "UNKNOWN"


def apply_settings_overrides(
    overrides: Dict[str, Any],
    existing_settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Keep only the overrides whose calculator setting is unset.

    Args:
        overrides: Setting name -> extracted value (None values are dropped)
        existing_settings: The calculator's current settings

    Returns:
        Overrides to apply
    """
    existing = existing_settings or {}
    return {
        key: value for key, value in overrides.items()
        if value is not None and existing.get(key) in (None, "")
    }


def _is_exterior_type(wall_type: str) -> bool:
    return bool(re.search(r"^[AB]$|EXT", wall_type, re.IGNORECASE))


def build_wall_import_data(
    result: ExtractionResult,
    existing_settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Group wall segments by wall type for the wall calculator.

    Segments without a wall type go to "UNKNOWN". Stud size and spacing come
    from the wall-type schedule, then the exterior/interior spec overrides,
    then 2x4 at 16".

    Args:
        result: Extraction result
        existing_settings: Wall calculator settings already chosen by the user

    Returns:
        {"walls": [...], "settings_overrides": {...}}
    """
    specs = result.spec_overrides
    type_map = {wt.type: wt for wt in result.wall_types}

    groups: "OrderedDict[str, float]" = OrderedDict()
    for seg in result.wall_segments:
        key = seg.wall_type or UNKNOWN_WALL_TYPE
        groups[key] = groups.get(key, 0.0) + (seg.length or 0.0)

    walls = []
    for type_key, total_length in groups.items():
        wt = type_map.get(type_key)
        exterior = wt.exterior if wt is not None else _is_exterior_type(type_key)

        if exterior:
            spec_size, spec_spacing = specs.exterior_wall_stud_size, specs.exterior_wall_spacing
        else:
            spec_size, spec_spacing = specs.interior_wall_stud_size, specs.interior_wall_spacing

        walls.append({
            "name": f"Type {type_key}",
            "wall_type": type_key,
            "type": "Exterior" if exterior else "Interior",
            "length": round(total_length, 1),
            "height": (wt.height if wt is not None else None) or DEFAULT_WALL_HEIGHT,
            "openings": sum(1 for o in result.openings if o.wall_type == type_key),
            "stud_size": (wt.stud_size if wt is not None else None) or spec_size or DEFAULT_STUD_SIZE,
            "spacing": (wt.spacing if wt is not None else None) or spec_spacing or DEFAULT_STUD_SPACING,
        })

    settings = apply_settings_overrides({
        "stud_size": specs.exterior_wall_stud_size,
        "stud_spacing": specs.exterior_wall_spacing,
    }, existing_settings)

    return {"walls": walls, "settings_overrides": settings}


def build_opening_detail(result: ExtractionResult) -> List[Dict[str, Any]]:
    """Opening rows for display, with framing defaults filled in."""
    return [
        {
            "mark": o.mark,
            "category": o.category,
            "width": o.width,
            "height": o.height,
            "quantity": o.quantity or 1,
            "header_size": o.header_size or DEFAULT_HEADER_SIZE,
            "header_count": o.header_count or 2,
            "trimmer_studs": o.trimmer_studs or 2,
            "king_studs": o.king_studs or 2,
            "cripple_studs": o.cripple_studs or 2,
            "wall_type": o.wall_type,
        }
        for o in result.openings
    ]


def build_floor_import_data(
    result: ExtractionResult,
    existing_settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Floor areas and joist setting overrides for the floor calculator."""
    areas = [
        {"name": fs.area or "Floor", "span": fs.span or 0, "width": fs.width or 0}
        for fs in result.floor_specs
    ]
    settings = apply_settings_overrides({
        "joist_size": result.spec_overrides.floor_joist_size,
        "joist_spacing": result.spec_overrides.floor_joist_spacing,
    }, existing_settings)
    return {"areas": areas, "settings_overrides": settings}


def build_roof_import_data(
    result: ExtractionResult,
    existing_settings: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Roof sections and rafter/pitch setting overrides for the roof calculator."""
    sections = [
        {"name": rs.section or "Roof", "ridge_length": rs.ridge_length or 0, "span": rs.span or 0}
        for rs in result.roof_specs
    ]
    specs = result.spec_overrides
    settings = apply_settings_overrides({
        "rafter_size": specs.rafter_size,
        "rafter_spacing": specs.rafter_spacing,
        "pitch": specs.roof_pitch,
    }, existing_settings)
    return {"sections": sections, "settings_overrides": settings}


_SUMMARY_FIELDS = [
    ("wall_types", "wall types"),
    ("wall_segments", "wall segments"),
    ("openings", "openings"),
    ("floor_specs", "floor areas"),
    ("roof_specs", "roof sections"),
    ("structural_members", "structural members"),
    ("steel_members", "steel members"),
    ("hardware", "hardware items"),
]


def build_extraction_summary(result: ExtractionResult) -> Dict[str, Any]:
    """
    Build a human-readable extraction summary.

    Returns:
        Dict with "items" (e.g. "3 wall types"), total wall LF, total
        opening count, page count and warning count
    """
    items = []
    for field_name, label in _SUMMARY_FIELDS:
        count = len(getattr(result, field_name))
        if count:
            items.append(f"{count} {label}")

    spec_count = result.spec_overrides.set_count()
    if spec_count:
        items.append(f"{spec_count} spec overrides")

    return {
        "items": items,
        "total_wall_lf": sum(seg.length or 0 for seg in result.wall_segments),
        "total_openings": sum(o.quantity or 1 for o in result.openings),
        "page_count": len(result.page_classifications),
        "warning_count": len(result.warnings),
    }
