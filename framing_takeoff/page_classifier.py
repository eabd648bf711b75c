"""Page classification by weighted heuristic rules.

Each drawing page is scored against ten page types. Scoring is a table of
rules evaluated uniformly:

- TextRule: a regex searched in the lower-cased page text
- SignalRule: a predicate over precomputed page features (counts, tables)
- HeaderRule: a predicate applied to every detected table header, scored per table

The winner is the highest score; confidence is the winner's share of all
positive scores. Pages whose best score stays below the threshold are
UNKNOWN.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .models import PageClassification, PageType, SpatialPage, Table
from .parsers import parse_dimensions, parse_rooms


DEFAULT_THRESHOLD = 15.0

SCORED_TYPES = [t for t in PageType if t is not PageType.UNKNOWN]


@dataclass
class PageFeatures:
    """Precomputed inputs to the classifier."""
    text: str
    table_count: int = 0
    dimension_count: int = 0
    room_count: int = 0
    table_headers: List[str] = field(default_factory=list)

    @property
    def text_length(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class TextRule:
    page_type: PageType
    pattern: str
    weight: float

    def score(self, features: PageFeatures) -> float:
        return self.weight if re.search(self.pattern, features.text, re.IGNORECASE) else 0.0


@dataclass(frozen=True)
class SignalRule:
    page_type: PageType
    predicate: Callable[[PageFeatures], bool]
    weight: float
    description: str = ""

    def score(self, features: PageFeatures) -> float:
        return self.weight if self.predicate(features) else 0.0


@dataclass(frozen=True)
class HeaderRule:
    page_type: PageType
    predicate: Callable[[str], bool]
    weight: float
    description: str = ""

    def score(self, features: PageFeatures) -> float:
        return self.weight * sum(1 for header in features.table_headers if self.predicate(header))


def _has(pattern: str) -> Callable[[str], bool]:
    regex = re.compile(pattern)
    return lambda s: bool(regex.search(s))


def _wall_schedule_header(header: str) -> bool:
    return "type" in header and bool(re.search(r"stud|height|spacing|framing", header))


# =============================================================================
# RULE TABLE
# =============================================================================

CLASSIFICATION_RULES = [
    # --- TITLE SHEET ---
    TextRule(PageType.TITLE_SHEET, r"sheet\s*index|cover\s*sheet|project\s*(?:info|data)|table\s*of\s*contents", 50),
    TextRule(PageType.TITLE_SHEET, r"code\s*compliance|jurisdiction|permit|zoning", 20),
    TextRule(PageType.TITLE_SHEET, r"architect|engineer|owner|contractor|drawn\s*by", 15),
    SignalRule(PageType.TITLE_SHEET, lambda f: f.dimension_count < 3 and f.text_length > 200, 10,
               "long text with few dimensions"),

    # --- SITE PLAN ---
    TextRule(PageType.SITE_PLAN, r"site\s*plan|grading\s*plan", 50),
    TextRule(PageType.SITE_PLAN, r"setback|easement|property\s*line|lot\s*line|topograph", 25),
    TextRule(PageType.SITE_PLAN, r"parking|driveway|sidewalk|curb", 10),

    # --- FLOOR PLAN ---
    TextRule(PageType.FLOOR_PLAN,
             r"floor\s*plan|first\s*floor|second\s*floor|main\s*level|ground\s*floor|upper\s*level|lower\s*level", 40),
    SignalRule(PageType.FLOOR_PLAN, lambda f: f.room_count > 2, 25, "more than two room names"),
    SignalRule(PageType.FLOOR_PLAN, lambda f: f.dimension_count > 8, 15, "more than eight dimensions"),
    TextRule(PageType.FLOOR_PLAN, r"\b[a-z]\d{3}\b|\brm[\s-]?\d+", 10),

    # --- ELEVATION ---
    TextRule(PageType.ELEVATION, r"(?:north|south|east|west|front|rear|left|right)\s*elevation", 50),
    TextRule(PageType.ELEVATION, r"exterior\s*elevation|building\s*elevation", 40),
    TextRule(PageType.ELEVATION, r"finish\s*grade|roof\s*line|eave|fascia|soffit", 15),

    # --- SECTION / DETAIL ---
    TextRule(PageType.SECTION_DETAIL, r"(?:wall|building|typical)\s*section|section\s*detail|detail\s*\d", 40),
    TextRule(PageType.SECTION_DETAIL, r"typ(?:ical)?\s*(?:wall|floor|roof)\s*(?:section|detail|assembly)", 35),
    TextRule(PageType.SECTION_DETAIL, r"2x\d+.*@|plate|header|joist|rafter|rim\s*board", 15),
    TextRule(PageType.SECTION_DETAIL, r"insulation|vapor\s*barrier|sheathing|drywall|gypsum", 10),

    # --- WALL SCHEDULE ---
    TextRule(PageType.WALL_SCHEDULE, r"wall\s*schedule|wall\s*type\s*schedule", 55),
    SignalRule(PageType.WALL_SCHEDULE,
               lambda f: f.table_count > 0 and bool(re.search(r"type.*stud|stud.*spacing|framing.*height", f.text)),
               35, "tables with stud/type vocabulary"),
    HeaderRule(PageType.WALL_SCHEDULE, _wall_schedule_header, 30, "table header with type + stud/height/spacing"),

    # --- DOOR / WINDOW SCHEDULE ---
    TextRule(PageType.DOOR_WINDOW_SCHEDULE, r"door\s*schedule|window\s*schedule", 55),
    SignalRule(PageType.DOOR_WINDOW_SCHEDULE,
               lambda f: f.table_count > 0 and bool(re.search(r"\b[dw]\d{1,3}\b", f.text)),
               25, "tables with door/window marks"),
    HeaderRule(PageType.DOOR_WINDOW_SCHEDULE, _has(r"mark|size|type|qty|width|height|frame"), 20,
               "table header with opening vocabulary"),
    TextRule(PageType.DOOR_WINDOW_SCHEDULE, r"header|rough\s*opening|\br\.?o\.?\b|frame\s*type|glazing", 10),

    # --- STRUCTURAL PLAN ---
    TextRule(PageType.STRUCTURAL_PLAN, r"structural\s*(?:plan|framing|layout)|framing\s*plan|foundation\s*plan", 45),
    TextRule(PageType.STRUCTURAL_PLAN, r"beam\s*schedule|column\s*schedule|lintel\s*schedule", 35),
    TextRule(PageType.STRUCTURAL_PLAN, r"\blvl\b|glulam|\bpsf\b|point\s*load|\bw\d+x\d+|\bhss\d", 20),
    TextRule(PageType.STRUCTURAL_PLAN, r"footing|pier|foundation|stem\s*wall", 10),

    # --- ROOF PLAN ---
    TextRule(PageType.ROOF_PLAN, r"roof\s*(?:plan|framing)", 50),
    TextRule(PageType.ROOF_PLAN, r"ridge|\bhip\b|valley|rafter\s*layout|eave|overhang", 20),
    TextRule(PageType.ROOF_PLAN, r"pitch|slope|truss\s*layout|truss\s*plan", 15),

    # --- GENERAL NOTES ---
    TextRule(PageType.GENERAL_NOTES, r"general\s*notes|structural\s*notes|framing\s*notes|construction\s*notes", 55),
    TextRule(PageType.GENERAL_NOTES, r"specification|all\s+(?:exterior|interior)\s+walls?\s+shall", 20),
    SignalRule(PageType.GENERAL_NOTES,
               lambda f: f.text_length > 2000 and f.dimension_count < 8 and f.table_count == 0,
               15, "long text, few dimensions, no tables"),
]


# =============================================================================
# CLASSIFICATION
# =============================================================================

def score_page(features: PageFeatures, rules: Optional[List] = None) -> Dict[PageType, float]:
    """Evaluate every rule and return the score per page type."""
    scores = {page_type: 0.0 for page_type in SCORED_TYPES}
    for rule in (rules if rules is not None else CLASSIFICATION_RULES):
        scores[rule.page_type] += rule.score(features)
    return scores


def classify_page(
    raw_text: str,
    tables: List[Table],
    dimension_count: int,
    room_count: int,
    threshold: float = DEFAULT_THRESHOLD,
    rules: Optional[List] = None
) -> PageClassification:
    """
    Classify a page from its text and precomputed counts.

    Args:
        raw_text: Reconstructed page text
        tables: Tables detected on the page
        dimension_count: Number of dimensions parsed from the page
        room_count: Number of room names parsed from the page
        threshold: Minimum winning score for a non-UNKNOWN type
        rules: Rule table override (defaults to CLASSIFICATION_RULES)

    Returns:
        PageClassification with type, confidence in [0, 1] and all scores
    """
    features = PageFeatures(
        text=(raw_text or "").lower(),
        table_count=len(tables),
        dimension_count=dimension_count,
        room_count=room_count,
        table_headers=[" ".join(t.header_row).lower() for t in tables],
    )
    scores = score_page(features, rules)

    # Ties resolve to the earlier type in PageType order
    best_type = max(SCORED_TYPES, key=lambda t: scores[t])
    best_score = scores[best_type]
    total_positive = sum(s for s in scores.values() if s > 0)
    confidence = best_score / total_positive if total_positive > 0 else 0.0

    return PageClassification(
        type=best_type if best_score >= threshold else PageType.UNKNOWN,
        confidence=min(confidence, 1.0),
        scores=scores,
    )


def classify_spatial_page(page: SpatialPage, threshold: float = DEFAULT_THRESHOLD) -> PageClassification:
    """Classify a SpatialPage, computing the dimension and room counts."""
    return classify_page(
        page.raw_text,
        page.tables,
        len(parse_dimensions(page.raw_text)),
        len(parse_rooms(page.raw_text)),
        threshold=threshold,
    )
