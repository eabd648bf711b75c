"""Stateless field parsers for construction plan text.

Key functions:
- parse_dimensions(): Dimension callouts (12'-6 1/2", 12.5', 36" x 80", 12 FT)
- parse_framing_references(): Lumber, engineered wood, hardware and spacing callouts
- parse_rooms(): Room and space names
- parse_scales(): Drawing scale notations (1/4" = 1'-0", 1" = 20', SCALE 1:50, NTS)
- parse_project_info(): Title block label/value pairs
"""
import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .models import Dimension, PlanScale


MAX_DIMENSION_FEET = 500.0


# =============================================================================
# TEXT NORMALIZATION
# =============================================================================

_TYPOGRAPHIC_MAP = str.maketrans({
    "′": "'",   # prime
    "’": "'",   # right single quote
    "‘": "'",   # left single quote
    "´": "'",   # acute accent
    "″": '"',   # double prime
    "“": '"',   # left double quote
    "”": '"',   # right double quote
    "‐": "-",   # hyphen
    "‑": "-",   # non-breaking hyphen
    "‒": "-",   # figure dash
    "–": "-",   # en dash
    "—": "-",   # em dash
    "−": "-",   # minus sign
    "×": "x",   # multiplication sign
    " ": " ",   # no-break space
})


def normalize_text(text: str) -> str:
    """Replace typographic primes, quotes and dashes with ASCII equivalents."""
    return (text or "").translate(_TYPOGRAPHIC_MAP)


# =============================================================================
# DIMENSIONS
# =============================================================================

def _fraction(numerator: str, denominator: str) -> Optional[float]:
    # A zero denominator is a garbled callout, not a dimension
    den = int(denominator)
    return int(numerator) / den if den else None


def _ft_in_frac(m: re.Match) -> Optional[float]:
    frac = _fraction(m.group(3), m.group(4))
    if frac is None:
        return None
    inches = int(m.group(2)) + frac
    return int(m.group(1)) + inches / 12 if inches < 12 else None


def _ft_frac(m: re.Match) -> Optional[float]:
    frac = _fraction(m.group(2), m.group(3))
    return int(m.group(1)) + frac / 12 if frac is not None else None


def _ft_in(m: re.Match) -> Optional[float]:
    inches = float(m.group(2))
    return int(m.group(1)) + inches / 12 if inches < 12 else None


def _dec_ft(m: re.Match) -> Optional[float]:
    return float(m.group(1))


def _in_frac(m: re.Match) -> Optional[float]:
    frac = _fraction(m.group(2), m.group(3))
    return (int(m.group(1)) + frac) / 12 if frac is not None else None


def _inches(m: re.Match) -> Optional[float]:
    inches = float(m.group(1))
    return inches / 12 if inches >= 12 else None


def _spelled(m: re.Match) -> Optional[float]:
    feet = float(m.group(1))
    if m.group(2):
        feet += float(m.group(2)) / 12
    return feet


# Ordered most to least specific. Each entry: (kind, regex, feet converter).
# Converters return None to reject a syntactically matching callout.
DIMENSION_PATTERNS: List[Tuple[str, re.Pattern, Callable[[re.Match], Optional[float]]]] = [
    ("ft-in-frac", re.compile(r"(\d+)\s*'\s*-?\s*(\d+)\s*[-\s]\s*(\d+)/(\d+)\s*\"?"), _ft_in_frac),
    ("ft-frac", re.compile(r"(\d+)\s*'\s*-?\s*(\d+)/(\d+)\s*\""), _ft_frac),
    ("ft-in", re.compile(r"(\d+)\s*'\s*-?\s*(\d+(?:\.\d+)?)\s*\""), _ft_in),
    ("ft-in-open", re.compile(r"(\d+)\s*'\s*-\s*(\d+(?:\.\d+)?)(?![\d./\"'])"), _ft_in),
    ("dec-ft", re.compile(r"(?<![\d.])(\d+\.\d+)\s*'"), _dec_ft),
    ("ft", re.compile(r"(?<![\d.])(\d+)\s*'(?!\s*-?\s*\d)"), _dec_ft),
    ("in-frac", re.compile(r"(?<![\d'/.\-])(\d+)\s+(\d+)/(\d+)\s*\""), _in_frac),
    ("in", re.compile(r"(?<![\d'/.\-])(\d+(?:\.\d+)?)\s*\""), _inches),
    ("spelled", re.compile(
        r"(?<![\d.])(\d+(?:\.\d+)?)\s*(?:FT|FEET|FOOT)\b\.?(?:\s*(\d+(?:\.\d+)?)\s*(?:IN|INCH|INCHES)\b\.?)?",
        re.IGNORECASE,
    ), _spelled),
]

_PAIR_PART = r"\d+\s*'\s*-?\s*\d+(?:\s*[-\s]\s*\d+/\d+)?\s*\"?|\d+(?:\.\d+)?\s*'|\d+(?:\s+\d+/\d+)?\s*\""
PAIR_PATTERN = re.compile(r"(" + _PAIR_PART + r")\s*x\s*(" + _PAIR_PART + r")", re.IGNORECASE)


def _in_range(feet: Optional[float]) -> bool:
    return feet is not None and 0 < feet < MAX_DIMENSION_FEET


def _overlaps_without_containing(span: Tuple[int, int], taken: List[Tuple[int, int]]) -> bool:
    start, end = span
    for t_start, t_end in taken:
        if t_start < end and start < t_end:
            if not (start <= t_start and t_end <= end):
                return True
    return False


def parse_single_dimension(text: str) -> Optional[float]:
    """Return the feet value of the first single dimension in ``text``."""
    dims = [d for d in parse_dimensions(text) if d.kind != "pair"]
    return dims[0].feet if dims else None


def parse_dimensions(text: str) -> List[Dimension]:
    """
    Parse dimension callouts from plan text.

    Patterns run from most to least specific. A looser pattern's match is
    skipped when it overlaps a span already claimed by an earlier match
    (unless it fully contains it, which is how W x H pairs claim their two
    sides). Values are deduplicated by their rounded feet value and only
    kept inside (0, 500) feet.

    Args:
        text: Free text

    Returns:
        Dimensions in text order
    """
    text = normalize_text(text)
    taken: List[Tuple[int, int]] = []
    seen = set()
    found: List[Tuple[int, int, Dimension]] = []

    for order, (kind, regex, convert) in enumerate(DIMENSION_PATTERNS):
        for m in regex.finditer(text):
            span = m.span()
            if _overlaps_without_containing(span, taken):
                continue
            feet = convert(m)
            if feet is None:
                continue
            taken.append(span)
            key = f"{feet:.4f}"
            if key in seen or not _in_range(feet):
                continue
            seen.add(key)
            found.append((span[0], order, Dimension(raw=m.group(0).strip(), feet=feet, kind=kind)))

    pair_order = len(DIMENSION_PATTERNS)
    for m in PAIR_PATTERN.finditer(text):
        span = m.span()
        if _overlaps_without_containing(span, taken):
            continue
        width = parse_single_dimension(m.group(1))
        height = parse_single_dimension(m.group(2))
        if not (_in_range(width) and _in_range(height)):
            continue
        taken.append(span)
        key = f"{width:.4f}x{height:.4f}"
        if key in seen:
            continue
        seen.add(key)
        found.append((span[0], pair_order, Dimension(
            raw=m.group(0).strip(), feet=width, kind="pair", height_feet=height
        )))

    found.sort(key=lambda entry: (entry[0], entry[1]))
    return [dim for _, _, dim in found]


# =============================================================================
# FRAMING REFERENCES AND ROOMS
# =============================================================================

FRAMING_REFERENCE_PATTERNS: Dict[str, re.Pattern] = {
    "lumber": re.compile(r"(?<![\w.])(?:\(\d\)\s*|\d-)?[2-6]\s?x\s?\d{1,2}(?![\d/])", re.IGNORECASE),
    "engineered": re.compile(
        r"\b(?:LVL|LSL|PSL|GLB|glulam|TJI(?:[\s-]?\d{2,3})?|I-?joists?)\b", re.IGNORECASE
    ),
    "members": re.compile(
        r"\b(?:trusse?s?|rafters?|joists?|studs?|top\s+plates?|sill\s+plates?|plates?|headers?|"
        r"beams?|posts?|blocking|bridging|ridge\s+board|rim\s+board|ledger|cripples?|"
        r"trimmers?|king\s+studs?|purlins?|collar\s+ties?)\b",
        re.IGNORECASE,
    ),
    "sheathing": re.compile(r"\b(?:sheathing|OSB|plywood|CDX|subfloor|zip\s+system)\b", re.IGNORECASE),
    "hardware": re.compile(
        r"\b(?:simpson|strong-?tie|hurricane\s+ties?|hangers?|hold[\s-]?downs?|straps?|"
        r"anchor\s+bolts?|HDU\d+\w*|HD\d+\w*|PAHD\d+\w*|LUS\d+\w*|HUS\d+\w*|H\d+(?:\.\d+)?A?|"
        r"MST\d+\w*|CS\d{2}\w*|ABU\d+\w*)\b",
        re.IGNORECASE,
    ),
    "spacing": re.compile(r"\b(?:12|16|19\.2|24)\s*\"?\s*O\.?\s?C\.?", re.IGNORECASE),
}

ROOM_PATTERN = re.compile(
    r"\b(?:bedroom|bathroom|bath|powder\s+room|kitchen|living\s*room|dining(?:\s+room)?|"
    r"garage|closet|walk-in\s+closet|hallway|hall|foyer|entry|laundry|utility|storage|"
    r"office|den|family\s*room|great\s*room|master(?:\s+suite)?|bonus(?:\s+room)?|loft|"
    r"porch|deck|patio|mudroom|pantry|nook|study|media\s+room|lobby|reception|"
    r"conference(?:\s+room)?|break\s+room|restroom|corridor|vestibule|mechanical|"
    r"electrical|janitor|stair(?:s|well)?|elevator|workroom|copy\s+room|server\s+room|"
    r"waiting(?:\s+room)?|exam(?:\s+room)?|classroom)\b",
    re.IGNORECASE,
)


def _sorted_unique(values: Iterable[str]) -> List[str]:
    return sorted(set(values), key=lambda v: (v.lower(), v))


def parse_framing_references(text: str) -> List[str]:
    """
    Extract framing references from plan text.

    Every pattern family is run independently; the union of literal
    matches is returned deduplicated and sorted.
    """
    text = normalize_text(text)
    found = set()
    for regex in FRAMING_REFERENCE_PATTERNS.values():
        for m in regex.finditer(text):
            found.add(m.group(0).strip())
    return _sorted_unique(found)


def parse_rooms(text: str) -> List[str]:
    """Extract room and space names (case preserved, deduplicated, sorted)."""
    text = normalize_text(text)
    return _sorted_unique(m.group(0).strip() for m in ROOM_PATTERN.finditer(text))


# =============================================================================
# SCALE
# =============================================================================

_ARCH_SCALE = re.compile(r"(\d+\s+\d+/\d+|\d+/\d+|\d+)\s*\"\s*=\s*1\s*'\s*-?\s*0?\s*\"?")
_ENG_SCALE = re.compile(r"(?<![\d/])1\s*\"\s*=\s*(\d+(?:\.\d+)?)\s*'(?!\s*-?\s*\d)")
_RATIO_SCALE = re.compile(r"SCALE\s*:?\s*1\s*[:/]\s*(\d+)\b(?!\s*\")", re.IGNORECASE)
_NTS_SCALE = re.compile(r"\bNTS\b|\bN\.T\.S\.|\bNOT\s+TO\s+SCALE\b", re.IGNORECASE)


def _fraction_value(raw: str) -> Optional[float]:
    total = 0.0
    for part in raw.split():
        if "/" in part:
            frac = _fraction(*part.split("/"))
            if frac is None:
                return None
            total += frac
        else:
            total += int(part)
    return total


def parse_scales(text: str) -> List[PlanScale]:
    """
    Find drawing scale notations.

    ``ratio`` is real length per unit of drawing length: 1/4" = 1'-0"
    gives 48, 1" = 20' gives 240, SCALE 1:50 gives 50, NTS gives None.
    """
    text = normalize_text(text)
    found: List[Tuple[int, PlanScale]] = []

    for m in _ARCH_SCALE.finditer(text):
        inches = _fraction_value(m.group(1))
        if inches:
            found.append((m.start(), PlanScale(raw=m.group(0).strip(), ratio=12 / inches, kind="architectural")))

    for m in _ENG_SCALE.finditer(text):
        feet = float(m.group(1))
        if feet > 0:
            found.append((m.start(), PlanScale(raw=m.group(0).strip(), ratio=feet * 12, kind="engineering")))

    for m in _RATIO_SCALE.finditer(text):
        ratio = float(m.group(1))
        if ratio > 0:
            found.append((m.start(), PlanScale(raw=m.group(0).strip(), ratio=ratio, kind="ratio")))

    for m in _NTS_SCALE.finditer(text):
        found.append((m.start(), PlanScale(raw=m.group(0).strip(), ratio=None, kind="nts")))

    scales = []
    seen = set()
    for _, scale in sorted(found, key=lambda entry: entry[0]):
        key = (scale.kind, scale.ratio)
        if key not in seen:
            seen.add(key)
            scales.append(scale)
    return scales


def detect_scale(text: str) -> Optional[PlanScale]:
    """Return the first measurable scale in ``text`` (NTS is skipped)."""
    for scale in parse_scales(text):
        if scale.ratio is not None:
            return scale
    return None


# =============================================================================
# TITLE BLOCK
# =============================================================================

PROJECT_INFO_LABELS = {
    "name": re.compile(r"^\s*PROJECT(?:\s+NAME)?\s*[:#]\s*(.+)$", re.IGNORECASE),
    "address": re.compile(r"^\s*(?:SITE\s+|PROJECT\s+)?ADDRESS\s*[:#]\s*(.+)$", re.IGNORECASE),
    "architect": re.compile(r"^\s*(?:ARCHITECT|DESIGNER|DESIGNED\s+BY)\s*[:#]\s*(.+)$", re.IGNORECASE),
    "date": re.compile(r"^\s*(?:ISSUE\s+)?DATE\s*[:#]\s*(.+)$", re.IGNORECASE),
}


def parse_project_info(lines: Iterable[str]) -> Dict[str, str]:
    """
    Extract project name, address, architect and date from title block lines.

    The value runs to the end of the line or the first column break.
    The first hit for each label wins.
    """
    info: Dict[str, str] = {}
    for line in lines:
        for key, regex in PROJECT_INFO_LABELS.items():
            if key in info:
                continue
            m = regex.match(line)
            if m:
                value = m.group(1).split("\t")[0].strip()
                if value:
                    info[key] = value
    return info
