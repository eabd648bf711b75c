"""General notes parser.

Pulls framing specification overrides, hardware callouts and steel member
references out of text-heavy "General Notes" / "Structural Notes" pages.
"""
import re
from dataclasses import dataclass
from typing import Callable

from .models import HardwareItem, PartialResult, SteelMember
from .parsers import normalize_text


# "shall be", "=", ":" or nothing between a subject and its value
_SHALL = r"\s*(?:shall\s+be\s+|(?:=|:)\s*)?"
_AT = r"(?:at\s+|@\s*)?"
_OC = r"\s*\"\s*o\.?c\.?"


@dataclass(frozen=True)
class NotePattern:
    name: str
    pattern: re.Pattern
    apply: Callable[[re.Match, PartialResult], None]


def _overrides(**keys: Callable[[re.Match], object]) -> Callable[[re.Match, PartialResult], None]:
    def apply(m: re.Match, partial: PartialResult) -> None:
        partial.spec_overrides.update({key: fn(m) for key, fn in keys.items()})
    return apply


def _hardware(hw_type: str, location: str = "") -> Callable[[re.Match, PartialResult], None]:
    def apply(m: re.Match, partial: PartialResult) -> None:
        partial.hardware.append(HardwareItem(type=hw_type, model=m.group(1).upper(), location=location))
    return apply


def _steel(member_type: str) -> Callable[[re.Match, PartialResult], None]:
    def apply(m: re.Match, partial: PartialResult) -> None:
        partial.steel_members.append(SteelMember(
            type=member_type, shape=m.group(1).upper(), location="Per notes"
        ))
    return apply


_ROOF_BEFORE = re.compile(r"roof\s*$", re.IGNORECASE)


def _unless_roof(apply: Callable[[re.Match, PartialResult], None]) -> Callable[[re.Match, PartialResult], None]:
    """Skip matches directly preceded by "roof" (any amount of whitespace)."""
    def guarded(m: re.Match, partial: PartialResult) -> None:
        if not _ROOF_BEFORE.search(m.string, 0, m.start()):
            apply(m, partial)
    return guarded


def _lower(group: int) -> Callable[[re.Match], str]:
    return lambda m: m.group(group).lower()


def _int(group: int) -> Callable[[re.Match], int]:
    return lambda m: int(m.group(group))


def _text(group: int) -> Callable[[re.Match], str]:
    return lambda m: m.group(group)


def _blocking(m: re.Match) -> str:
    where = f'{m.group(2)}" OC' if m.group(2) else "mid-height"
    return f"{m.group(1)} at {where}"


NOTE_PATTERNS = [
    NotePattern(
        "exterior studs",
        re.compile(r"(?:all\s+)?(?:exterior|ext\.?)\s+walls?" + _SHALL + r"(2x\d+)\s+(?:studs?\s+)?" + _AT + r"(\d+)" + _OC,
                   re.IGNORECASE),
        _overrides(exterior_wall_stud_size=_lower(1), exterior_wall_spacing=_int(2)),
    ),
    NotePattern(
        "interior studs",
        re.compile(r"(?:all\s+)?(?:interior|int\.?)\s+walls?" + _SHALL + r"(2x\d+)\s+(?:studs?\s+)?" + _AT + r"(\d+)" + _OC,
                   re.IGNORECASE),
        _overrides(interior_wall_stud_size=_lower(1), interior_wall_spacing=_int(2)),
    ),
    # Unqualified stud callouts count as exterior
    NotePattern(
        "studs",
        re.compile(r"studs?" + _SHALL + r"(2x\d+)\s+" + _AT + r"(\d+)" + _OC, re.IGNORECASE),
        _overrides(exterior_wall_stud_size=_lower(1), exterior_wall_spacing=_int(2)),
    ),
    NotePattern(
        "floor joists",
        re.compile(r"floor\s+joists?" + _SHALL + r"(2x\d+|TJI|I-?joist)\s+" + _AT + r"(\d+)" + _OC, re.IGNORECASE),
        _overrides(floor_joist_size=_lower(1), floor_joist_spacing=_int(2)),
    ),
    NotePattern(
        "rafters",
        re.compile(r"(?:rafters?|roof\s+framing)" + _SHALL + r"(2x\d+)\s+" + _AT + r"(\d+)" + _OC, re.IGNORECASE),
        _overrides(rafter_size=_lower(1), rafter_spacing=_int(2)),
    ),
    NotePattern(
        "roof pitch",
        re.compile(r"roof\s+(?:pitch|slope)" + _SHALL + r"(\d+)\s*[/:]\s*12", re.IGNORECASE),
        _overrides(roof_pitch=lambda m: f"{m.group(1)}/12"),
    ),
    NotePattern(
        "wall sheathing",
        re.compile(r"(?:wall\s+)?sheathing" + _SHALL + r"(\d+/?\d*)\s*\"?\s*(OSB|plywood|CDX|structural)",
                   re.IGNORECASE),
        _unless_roof(_overrides(wall_sheathing_type=_text(2), wall_sheathing_thickness=_text(1))),
    ),
    NotePattern(
        "roof sheathing",
        re.compile(r"roof\s+(?:sheathing|decking)" + _SHALL + r"(\d+/?\d*)\s*\"?\s*(OSB|plywood|CDX)", re.IGNORECASE),
        _overrides(roof_sheathing_type=_text(2), roof_sheathing_thickness=_text(1)),
    ),
    NotePattern(
        "subfloor",
        re.compile(r"sub\s*floor(?:ing)?" + _SHALL + r"(\d+/?\d*)\s*\"?\s*(plywood|OSB|tongue)", re.IGNORECASE),
        _overrides(subfloor_type=_text(2), subfloor_thickness=_text(1)),
    ),
    NotePattern(
        "blocking",
        re.compile(r"blocking" + _SHALL + r"(2x\d+|solid)\s+(?:at\s+)?(?:mid[\s-]?height|(\d+)" + _OC + r")",
                   re.IGNORECASE),
        _overrides(blocking_spec=_blocking),
    ),
    NotePattern(
        "hold-downs",
        re.compile(r"hold[\s-]?downs?" + _SHALL + r"(?:simpson\s+)?(HDU\d+\w*|PAHD\d+\w*|HD[A-Z]*\d+\w*)", re.IGNORECASE),
        _hardware("holdDown", "Per plan"),
    ),
    NotePattern(
        "hurricane ties",
        re.compile(r"(?:hurricane|rafter)\s+ties?" + _SHALL + r"(?:simpson\s+)?(H\d+[\w.]*)", re.IGNORECASE),
        _hardware("hurricaneTie", "Every rafter"),
    ),
    NotePattern(
        "joist hangers",
        re.compile(r"joist\s+hangers?" + _SHALL + r"(?:simpson\s+)?(LUS\d+\w*|HUS\d+\w*|U\d+\w*)", re.IGNORECASE),
        _hardware("hanger"),
    ),
    NotePattern(
        "steel shapes",
        re.compile(r"(W\d+x\d+|HSS\d+x\d+x[\d/.]+|C\d+x[\d.]+|L\d+x\d+x[\d/.]+)\s+(?:beam|column|brace|header)",
                   re.IGNORECASE),
        _steel("beam"),
    ),
    NotePattern(
        "tube steel columns",
        re.compile(r"(?:tube\s+steel|steel\s+(?:column|post))\s*[=:]?\s*(HSS[\d.x/]+|\d+\"?\s*(?:sq|square)\s*tube)",
                   re.IGNORECASE),
        _steel("column"),
    ),
]

SEISMIC_PATTERN = re.compile(r"seismic\s*design\s*category", re.IGNORECASE)
SEISMIC_WARNING = (
    "Seismic design category noted but no specific hold-down hardware identified "
    "- verify shear wall schedule"
)


def parse_general_notes(raw_text: str) -> PartialResult:
    """
    Extract spec overrides, hardware and steel members from notes text.

    Every pattern is applied to every match in the text; a later match of a
    spec override replaces an earlier one. When a seismic design category is
    mentioned and no hold-down was found, a warning is added.

    Args:
        raw_text: Page text

    Returns:
        PartialResult to merge
    """
    text = normalize_text(raw_text)
    partial = PartialResult()

    for note in NOTE_PATTERNS:
        for m in note.pattern.finditer(text):
            note.apply(m, partial)

    if SEISMIC_PATTERN.search(text) and not any(hw.type == "holdDown" for hw in partial.hardware):
        partial.warnings.append(SEISMIC_WARNING)

    return partial
