"""Data models for the Framing Takeoff extractor."""
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class PageType(Enum):
    """Classification of construction drawing pages."""
    TITLE_SHEET = "TITLE_SHEET"
    SITE_PLAN = "SITE_PLAN"
    FLOOR_PLAN = "FLOOR_PLAN"
    ELEVATION = "ELEVATION"
    SECTION_DETAIL = "SECTION_DETAIL"
    WALL_SCHEDULE = "WALL_SCHEDULE"
    DOOR_WINDOW_SCHEDULE = "DOOR_WINDOW_SCHEDULE"
    STRUCTURAL_PLAN = "STRUCTURAL_PLAN"
    ROOF_PLAN = "ROOF_PLAN"
    GENERAL_NOTES = "GENERAL_NOTES"
    UNKNOWN = "UNKNOWN"


# =============================================================================
# SPATIAL TEXT
# =============================================================================

@dataclass(frozen=True)
class TextItem:
    """A positioned text fragment from the page-rendering layer."""
    text: str
    x: float
    y: float
    width: float
    height: float
    font_size: float
    font_name: str = ""


@dataclass
class Line:
    """A reconstructed horizontal text line (items sorted by x)."""
    y: float
    font_size: float
    items: List[TextItem] = field(default_factory=list)
    text: str = ""

    @property
    def font_name(self) -> str:
        return self.items[0].font_name if self.items else ""


@dataclass
class ColumnBounds:
    x_min: float
    x_max: float


@dataclass
class Table:
    """A run of column-aligned lines. Row 0 is the header row."""
    start_line_index: int
    end_line_index: int
    column_bounds: List[ColumnBounds] = field(default_factory=list)
    cells: List[List[str]] = field(default_factory=list)
    header_row: List[str] = field(default_factory=list)


@dataclass
class TextBlock:
    text: str
    font_size: float
    y: float
    kind: str  # heading, body


@dataclass
class SpatialPage:
    """Spatial text data for one page."""
    lines: List[Line] = field(default_factory=list)
    tables: List[Table] = field(default_factory=list)
    raw_text: str = ""
    text_blocks: List[TextBlock] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0


@dataclass
class PageContent:
    """Raw per-page input as delivered by a document provider.

    Items use the rendering layer's shape:
    ``{"text", "transform": [a, b, c, d, x, y], "width", "height"?, "fontName"?}``
    """
    page_number: int
    items: List[Dict[str, Any]] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0


@dataclass
class PageClassification:
    type: PageType
    confidence: float
    scores: Dict[PageType, float] = field(default_factory=dict)
    page: Optional[int] = None


# =============================================================================
# PARSED FIELDS
# =============================================================================

@dataclass
class Dimension:
    """A dimension callout converted to decimal feet."""
    raw: str
    feet: float
    kind: str  # ft-in-frac, ft-frac, ft-in, ft-in-open, dec-ft, ft, in-frac, in, spelled, pair
    height_feet: Optional[float] = None  # second value of a W x H pair
    page: Optional[int] = None


@dataclass
class PlanScale:
    """A drawing scale notation. ``ratio`` is real units per drawing unit."""
    raw: str
    ratio: Optional[float]
    kind: str  # architectural, engineering, ratio, nts
    page: Optional[int] = None


@dataclass
class WallTypeSpec:
    type: str
    stud_size: str = "2x4"
    spacing: int = 16
    height: float = 8.0
    sheathing_type: Optional[str] = None
    sheathing_thickness: Optional[str] = None
    insulation: Optional[str] = None
    exterior: bool = False
    notes: str = ""


@dataclass
class WallSegment:
    wall_type: Optional[str]
    length: float
    room: str = ""
    page: Optional[int] = None


@dataclass
class Opening:
    """A door or window from a schedule or plan."""
    mark: str
    category: str  # door, window
    width: float = 3.0
    height: float = 6.67
    quantity: int = 1
    header_size: Optional[str] = None
    header_count: int = 2
    trimmer_studs: int = 2
    king_studs: int = 2
    cripple_studs: int = 2
    sill_height: float = 0.0
    wall_type: Optional[str] = None
    type: str = ""
    notes: str = ""


@dataclass
class FloorSpec:
    area: str = "Floor"
    joist_size: Optional[str] = None
    spacing: Optional[int] = None
    span: Optional[float] = None
    width: Optional[float] = None


@dataclass
class RoofSpec:
    section: str = "Roof"
    rafter_size: str = "2x8"
    spacing: int = 24
    pitch: str = "6/12"
    ridge_length: float = 0.0
    span: float = 0.0


@dataclass
class StructuralMember:
    type: str
    size: str = ""
    span: Optional[float] = None
    location: str = ""


@dataclass
class SteelMember:
    type: str
    shape: str = ""
    span: Optional[float] = None
    height: Optional[float] = None
    location: str = ""


@dataclass
class HardwareItem:
    type: str  # holdDown, hurricaneTie, hanger, strap, anchor ...
    model: str = ""
    quantity: Optional[int] = None
    size: Optional[str] = None
    location: str = ""


@dataclass
class SpecOverrides:
    """Framing specification overrides. ``None`` means "not set"."""
    exterior_wall_stud_size: Optional[str] = None
    exterior_wall_spacing: Optional[int] = None
    interior_wall_stud_size: Optional[str] = None
    interior_wall_spacing: Optional[int] = None
    floor_joist_size: Optional[str] = None
    floor_joist_spacing: Optional[int] = None
    rafter_size: Optional[str] = None
    rafter_spacing: Optional[int] = None
    roof_pitch: Optional[str] = None
    wall_sheathing_type: Optional[str] = None
    wall_sheathing_thickness: Optional[str] = None
    roof_sheathing_type: Optional[str] = None
    roof_sheathing_thickness: Optional[str] = None
    subfloor_type: Optional[str] = None
    subfloor_thickness: Optional[str] = None
    blocking_spec: Optional[str] = None

    def update(self, values: Dict[str, Any]) -> None:
        """Apply non-null values; unknown keys are rejected."""
        for key, value in values.items():
            if key not in self.__dataclass_fields__:
                raise KeyError(f"Unknown spec override: {key}")
            if value is not None:
                setattr(self, key, value)

    def set_count(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name) is not None)


@dataclass
class ProjectInfo:
    name: str = ""
    address: str = ""
    architect: str = ""
    date: str = ""


# =============================================================================
# RESULTS
# =============================================================================

LIST_FIELDS = (
    "wall_types",
    "wall_segments",
    "openings",
    "floor_specs",
    "roof_specs",
    "structural_members",
    "steel_members",
    "hardware",
    "warnings",
)


@dataclass
class PartialResult:
    """Output of one parser (or one AI page) before merging."""
    wall_types: List[WallTypeSpec] = field(default_factory=list)
    wall_segments: List[WallSegment] = field(default_factory=list)
    openings: List[Opening] = field(default_factory=list)
    floor_specs: List[FloorSpec] = field(default_factory=list)
    roof_specs: List[RoofSpec] = field(default_factory=list)
    structural_members: List[StructuralMember] = field(default_factory=list)
    steel_members: List[SteelMember] = field(default_factory=list)
    hardware: List[HardwareItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    spec_overrides: Dict[str, Any] = field(default_factory=dict)
    project_info: Dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (
            any(getattr(self, name) for name in LIST_FIELDS)
            or any(v is not None for v in self.spec_overrides.values())
            or any(self.project_info.values())
        )


@dataclass
class ExtractionResult:
    """Everything extracted from one document scan.

    Grows monotonically while the scan runs: list fields are only appended
    to and spec overrides are only ever replaced by another non-null value.
    """
    project_info: ProjectInfo = field(default_factory=ProjectInfo)
    wall_types: List[WallTypeSpec] = field(default_factory=list)
    wall_segments: List[WallSegment] = field(default_factory=list)
    openings: List[Opening] = field(default_factory=list)
    floor_specs: List[FloorSpec] = field(default_factory=list)
    roof_specs: List[RoofSpec] = field(default_factory=list)
    structural_members: List[StructuralMember] = field(default_factory=list)
    steel_members: List[SteelMember] = field(default_factory=list)
    hardware: List[HardwareItem] = field(default_factory=list)
    spec_overrides: SpecOverrides = field(default_factory=SpecOverrides)

    # Raw echoes of the generic parsers
    raw_dimensions: List[Dimension] = field(default_factory=list)
    raw_framing_refs: List[str] = field(default_factory=list)
    raw_rooms: List[str] = field(default_factory=list)
    raw_scales: List[PlanScale] = field(default_factory=list)

    page_classifications: List[PageClassification] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    complete: bool = True
    error: Optional[str] = None

    def merge(self, partial: PartialResult) -> 'ExtractionResult':
        """Fold a partial result into this one.

        Lists are concatenated without deduplication. Spec overrides and
        project info are overwritten only by non-empty incoming values.
        """
        for name in LIST_FIELDS:
            incoming = getattr(partial, name)
            if incoming:
                getattr(self, name).extend(incoming)

        self.spec_overrides.update(partial.spec_overrides)

        for key, value in partial.project_info.items():
            if value and hasattr(self.project_info, key):
                setattr(self.project_info, key, value)

        return self

    def add_references(self, refs: List[str]) -> None:
        self.raw_framing_refs = sorted(set(self.raw_framing_refs) | set(refs), key=_ref_sort_key)

    def add_rooms(self, rooms: List[str]) -> None:
        self.raw_rooms = sorted(set(self.raw_rooms) | set(rooms), key=_ref_sort_key)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable representation."""
        data = asdict(self)
        data["page_classifications"] = [
            {
                "page": c.page,
                "type": c.type.value,
                "confidence": round(c.confidence, 4),
                "scores": {t.value: s for t, s in c.scores.items()},
            }
            for c in self.page_classifications
        ]
        return data


def _ref_sort_key(value: str):
    return (value.lower(), value)
