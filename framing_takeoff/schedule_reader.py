"""Schedule reading for wall-type and door/window schedules.

This module turns detected tables into structured framing specifications.
Column headers are mapped to semantic fields with a fuzzy header map
(regex first, then a keyword fallback built from the field name), so that
"STUD", "FRAMING" and "STUD SIZE" all land on the same field.
"""
import re
from typing import Dict, List, Optional, Tuple

from .models import Opening, Table, WallTypeSpec
from .parsers import normalize_text, parse_single_dimension


# =============================================================================
# COLUMN HEADER MAPS
# =============================================================================

WALL_COLUMN_MAP: Dict[str, re.Pattern] = {
    "type": re.compile(r"^(type|mark|id|wall[\s_-]*type|wall[\s_-]*id)$", re.IGNORECASE),
    "stud_size": re.compile(r"^(stud|studs|framing|size|stud[\s_-]*size|frame[\s_-]*size)$", re.IGNORECASE),
    "spacing": re.compile(r"^(spac|spacing|o\.?c\.?|layout|stud[\s_-]*spac(ing)?)$", re.IGNORECASE),
    "height": re.compile(r"^(height|ht|wall[\s_-]*ht|wall[\s_-]*height)$", re.IGNORECASE),
    "sheathing": re.compile(r"^(sheath|sheathing|ext\.?\s*finish|osb|ply|exterior)$", re.IGNORECASE),
    "insulation": re.compile(r"^(insul|insulation|r[\s_-]*val(ue)?|cavity)$", re.IGNORECASE),
    "interior": re.compile(r"^(int\.?\s*finish|interior|gypsum|drywall)$", re.IGNORECASE),
    "notes": re.compile(r"^(note|notes|remark|remarks|comment|comments|description)$", re.IGNORECASE),
}

OPENING_COLUMN_MAP: Dict[str, re.Pattern] = {
    "mark": re.compile(r"^(mark|id|tag|no\.?|number)$", re.IGNORECASE),
    "width": re.compile(r"^(width|w|size|nominal)$", re.IGNORECASE),
    "height": re.compile(r"^(height|h|ht)$", re.IGNORECASE),
    "type": re.compile(r"^(type|style|frame|material|description)$", re.IGNORECASE),
    "quantity": re.compile(r"^(qty|quan|quantity|count|#|number)$", re.IGNORECASE),
    "header_size": re.compile(r"^(header|hdr|lintel)$", re.IGNORECASE),
    "rough_width": re.compile(r"^(r\.?o\.?\s*w(idth)?|rough[\s_-]*w(idth)?)$", re.IGNORECASE),
    "rough_height": re.compile(r"^(r\.?o\.?\s*h(eight|t)?|rough[\s_-]*h(eight)?)$", re.IGNORECASE),
    "fire": re.compile(r"^(fire|rating|label)$", re.IGNORECASE),
    "glazing": re.compile(r"^(glaz|glazing|glass|lite)$", re.IGNORECASE),
    "notes": re.compile(r"^(note|notes|remark|remarks|comment|comments)$", re.IGNORECASE),
}

# Header size by rough opening width in inches; wider openings need an LVL
HEADER_SIZE_TABLE: List[Tuple[float, str]] = [
    (36, "2x6"),
    (48, "2x8"),
    (72, "2x10"),
    (96, "2x12"),
]
LARGE_OPENING_HEADER = "LVL"

DEFAULT_STUD_SIZE = "2x4"
DEFAULT_SPACING = 16
DEFAULT_WALL_HEIGHT = 8.0
DEFAULT_OPENING_WIDTH = 3.0
DEFAULT_DOOR_HEIGHT = 6.67
DEFAULT_WINDOW_HEIGHT = 4.0
DEFAULT_WINDOW_SILL = 3.0

STANDARD_SPACINGS = (12, 16, 24)


def map_columns(header_row: List[str], column_map: Dict[str, re.Pattern]) -> Dict[str, int]:
    """
    Map header cells to semantic field names.

    Each header cell is tested against every field regex; when none match,
    the field name split into words (``stud_size`` -> ``stud size``) is
    looked for inside the cell. A field keeps the first column mapped to it.
    Unmapped columns are ignored.

    Args:
        header_row: Header cell strings
        column_map: Field name -> header regex

    Returns:
        Field name -> column index
    """
    mapping: Dict[str, int] = {}
    for idx, raw in enumerate(header_row):
        cell = normalize_text(raw).strip()
        if not cell:
            continue

        field = next((name for name, regex in column_map.items() if regex.match(cell)), None)
        if field is None:
            lowered = cell.lower()
            field = next((name for name in column_map if name.replace("_", " ") in lowered), None)

        if field is not None and field not in mapping:
            mapping[field] = idx
    return mapping


def _cell(row: List[str], mapping: Dict[str, int], field: str) -> str:
    idx = mapping.get(field)
    if idx is None or idx >= len(row):
        return ""
    return (row[idx] or "").strip()


# =============================================================================
# CELL COERCION
# =============================================================================

def parse_dimension_cell(value: str) -> Optional[float]:
    """Parse a cell to decimal feet, falling back to a bare number in (0, 500)."""
    if not value:
        return None
    feet = parse_single_dimension(value)
    if feet is not None:
        return feet
    m = re.match(r"\s*(\d+(?:\.\d+)?)", value)
    if m:
        number = float(m.group(1))
        if 0 < number < 500:
            return number
    return None


def parse_spacing_cell(value: str) -> Optional[int]:
    """Parse an on-center spacing in inches ("16\" OC", "16 O.C.", or a bare 12/16/24)."""
    if not value:
        return None
    value = normalize_text(value)
    m = re.search(r"(\d+)\s*\"?\s*O\.?\s?C\.?", value, re.IGNORECASE)
    if m:
        return int(m.group(1))
    m = re.match(r"\s*(\d+)", value)
    if m and int(m.group(1)) in STANDARD_SPACINGS:
        return int(m.group(1))
    return None


def parse_stud_size(value: str) -> Optional[str]:
    """Parse a nominal stud size such as 2x6 (also 2 x 6, 2X6)."""
    if not value:
        return None
    m = re.search(r"([2-6])\s*x\s*(\d{1,2})", normalize_text(value), re.IGNORECASE)
    return f"{m.group(1)}x{m.group(2)}" if m else None


def derive_header_size(opening_width_inches: float) -> str:
    """Header size from opening width: <=36" 2x6, <=48" 2x8, <=72" 2x10, <=96" 2x12, else LVL."""
    for max_width, size in HEADER_SIZE_TABLE:
        if opening_width_inches <= max_width:
            return size
    return LARGE_OPENING_HEADER


_HEADER_CALLOUT = re.compile(r"(?:\((\d)\)|(\d)\s*[-\s])?\s*(\d+\s*x\s*\d+|LVL[\w .x/-]*)", re.IGNORECASE)
_NOTES_HEADER_CALLOUT = re.compile(r"(?:HDR|HEADER)\b\W*(?:\((\d)\)|(\d)\s*[-\s])?\s*(\d+\s*x\s*\d+|LVL)", re.IGNORECASE)


def parse_header_callout(value: str, pattern: re.Pattern = _HEADER_CALLOUT) -> Tuple[Optional[str], Optional[int]]:
    """Parse "(2) 2x10", "2-2x10", "2 2x10", "2x10" or "LVL" into (size, ply count)."""
    if not value:
        return None, None
    m = pattern.search(normalize_text(value))
    if not m:
        return None, None
    count = m.group(1) or m.group(2)
    size = re.sub(r"\s*x\s*", "x", m.group(3).strip(), flags=re.IGNORECASE)
    if size.upper().startswith("LVL"):
        size = size.upper()
    else:
        size = size.lower()
    return size, int(count) if count else None


# =============================================================================
# WALL SCHEDULE
# =============================================================================

def parse_wall_schedule(table: Table, warnings: Optional[List[str]] = None) -> List[WallTypeSpec]:
    """
    Parse a wall schedule table.

    Rows without a wall type are skipped. Missing stud size, spacing and
    height fall back to 2x4, 16" and 8'; each substitution is appended to
    ``warnings`` when a list is given.

    Args:
        table: Detected table (row 0 is the header)
        warnings: Optional list collecting default-substitution notes

    Returns:
        List of WallTypeSpec
    """
    if table is None or len(table.cells) < 2:
        return []

    mapping = map_columns(table.header_row, WALL_COLUMN_MAP)
    if "type" not in mapping:
        return []

    wall_types = []
    for row in table.cells[1:]:
        type_val = _cell(row, mapping, "type")
        if not type_val:
            continue

        wall_type = type_val.upper()
        stud_size = parse_stud_size(_cell(row, mapping, "stud_size"))
        spacing = parse_spacing_cell(_cell(row, mapping, "spacing"))
        height = parse_dimension_cell(_cell(row, mapping, "height"))
        sheathing_raw = _cell(row, mapping, "sheathing")
        insulation = _cell(row, mapping, "insulation")

        _note_default(warnings, stud_size, f"Wall type {wall_type}: stud size not found, using {DEFAULT_STUD_SIZE}")
        _note_default(warnings, spacing, f"Wall type {wall_type}: stud spacing not found, using {DEFAULT_SPACING}\" OC")
        _note_default(warnings, height, f"Wall type {wall_type}: height not found, using {DEFAULT_WALL_HEIGHT:g}'")

        exterior = bool(re.search(r"EXT|^A$|^B$", wall_type)) or bool(sheathing_raw)

        wall_types.append(WallTypeSpec(
            type=wall_type,
            stud_size=stud_size or DEFAULT_STUD_SIZE,
            spacing=spacing or DEFAULT_SPACING,
            height=height or DEFAULT_WALL_HEIGHT,
            sheathing_type=_sheathing_type(sheathing_raw),
            sheathing_thickness=_sheathing_thickness(sheathing_raw),
            insulation=insulation or None,
            exterior=exterior,
            notes=_cell(row, mapping, "notes"),
        ))

    return wall_types


def _sheathing_type(raw: str) -> Optional[str]:
    if re.search(r"osb", raw, re.IGNORECASE):
        return "OSB"
    if re.search(r"ply", raw, re.IGNORECASE):
        return "Plywood"
    return raw or None


def _sheathing_thickness(raw: str) -> Optional[str]:
    m = re.search(r"(\d+/\d+|\d+(?:\.\d+)?)\s*\"?", normalize_text(raw))
    return m.group(1) if m else None


def _note_default(warnings: Optional[List[str]], parsed, message: str) -> None:
    if warnings is not None and not parsed:
        warnings.append(message)


def is_wall_schedule_header(header_row: List[str]) -> bool:
    header = " ".join(header_row).lower()
    return "type" in header and bool(re.search(r"stud|height|spacing|framing", header))


def find_wall_schedule_in_tables(tables: List[Table], warnings: Optional[List[str]] = None) -> List[WallTypeSpec]:
    """Parse every table on a page whose header looks like a wall schedule."""
    results = []
    for table in tables:
        if is_wall_schedule_header(table.header_row):
            results.extend(parse_wall_schedule(table, warnings))
    return results


# =============================================================================
# DOOR / WINDOW SCHEDULE
# =============================================================================

def _infer_category(mark: str, type_text: str, default: str) -> str:
    explicit = type_text.lower()
    if "window" in explicit:
        return "window"
    if "door" in explicit:
        return "door"
    if mark[:1].upper() == "W":
        return "window"
    if mark[:1].upper() == "D":
        return "door"
    return default


def _split_pair(raw: str) -> Tuple[Optional[float], Optional[float]]:
    parts = re.split(r"\s*x\s*", normalize_text(raw), maxsplit=1, flags=re.IGNORECASE)
    if len(parts) != 2:
        return None, None
    return parse_dimension_cell(parts[0]), parse_dimension_cell(parts[1])


def parse_door_window_schedule(
    table: Table,
    category: str = "door",
    warnings: Optional[List[str]] = None
) -> List[Opening]:
    """
    Parse a door or window schedule table.

    Rows without a mark are skipped. The category comes from the type
    column when it names door/window, else from the mark's first letter
    (D / W), else ``category``. The header size comes from the row's header
    column or a HDR callout in the notes; otherwise it is derived from the
    opening width.

    Args:
        table: Detected table (row 0 is the header)
        category: Default category for marks without a D/W prefix
        warnings: Optional list collecting default-substitution notes

    Returns:
        List of Opening
    """
    if table is None or len(table.cells) < 2:
        return []

    mapping = map_columns(table.header_row, OPENING_COLUMN_MAP)
    if "mark" not in mapping:
        return []

    openings = []
    for row in table.cells[1:]:
        mark = _cell(row, mapping, "mark")
        if not mark:
            continue

        type_text = _cell(row, mapping, "type")
        notes = _cell(row, mapping, "notes")
        kind = _infer_category(mark, type_text, category)

        width_raw = _cell(row, mapping, "width") or _cell(row, mapping, "rough_width")
        height_raw = _cell(row, mapping, "height") or _cell(row, mapping, "rough_height")

        width = height = None
        if re.search(r"\d\s*[\"']?\s*x\s*\d", normalize_text(width_raw), re.IGNORECASE):
            width, paired_height = _split_pair(width_raw)
            height = parse_dimension_cell(height_raw) or paired_height
        else:
            width = parse_dimension_cell(width_raw)
            height = parse_dimension_cell(height_raw)

        quantity_match = re.match(r"\s*(\d+)", _cell(row, mapping, "quantity"))
        quantity = int(quantity_match.group(1)) if quantity_match else 0

        header_size, header_count = parse_header_callout(_cell(row, mapping, "header_size"))
        if header_size is None:
            header_size, header_count = parse_header_callout(notes, _NOTES_HEADER_CALLOUT)

        default_height = DEFAULT_WINDOW_HEIGHT if kind == "window" else DEFAULT_DOOR_HEIGHT
        _note_default(warnings, width, f"Opening {mark}: width not found, using {DEFAULT_OPENING_WIDTH:g}'")
        _note_default(warnings, height, f"Opening {mark}: height not found, using {default_height:g}'")
        _note_default(warnings, quantity, f"Opening {mark}: quantity not found, using 1")

        width = width or DEFAULT_OPENING_WIDTH
        if header_size is None:
            header_size = derive_header_size(width * 12)

        openings.append(Opening(
            mark=mark,
            category=kind,
            width=width,
            height=height or default_height,
            quantity=quantity or 1,
            header_size=header_size,
            header_count=header_count or 2,
            trimmer_studs=2,
            king_studs=2,
            cripple_studs=4 if kind == "window" else 2,
            sill_height=DEFAULT_WINDOW_SILL if kind == "window" else 0.0,
            wall_type=None,
            type=type_text,
            notes=notes,
        ))

    return openings


def is_opening_schedule_header(header_row: List[str]) -> bool:
    header = " ".join(header_row).lower()
    return bool(re.search(r"mark|tag|\bid\b|\bno\b", header)) and bool(re.search(r"size|width|height|type", header))


def find_door_window_schedule_in_tables(
    tables: List[Table],
    raw_text: str = "",
    warnings: Optional[List[str]] = None
) -> List[Opening]:
    """Parse every opening-schedule table on a page.

    The page text decides the default category: "window schedule" without
    "door schedule" makes it window, otherwise door.
    """
    is_door_page = re.search(r"door\s*schedule", raw_text or "", re.IGNORECASE)
    is_window_page = re.search(r"window\s*schedule", raw_text or "", re.IGNORECASE)
    default_category = "window" if is_window_page and not is_door_page else "door"

    results = []
    for table in tables:
        if is_opening_schedule_header(table.header_row):
            results.extend(parse_door_window_schedule(table, default_category, warnings))
    return results
