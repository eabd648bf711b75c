# Framing Takeoff
# Structured framing data extraction from construction plan PDFs

"""
Framing Takeoff - Plan Set Extraction for Framing Estimates

This package reads construction plan PDFs and produces structured framing
takeoff data: dimensions, lumber and hardware references, room names,
wall-type and door/window schedules, and framing specification overrides.

Architecture:
- pdf_extractor: Positioned text (pdfplumber) and page rasters (PyMuPDF)
- spatial_text: Line reconstruction and table detection from positioned text
- page_classifier: Weighted rule table scoring ten page types
- parsers: Dimension, framing reference, room, scale and title block parsers
- schedule_reader: Wall and door/window schedule parsing
- notes_parser: General notes spec overrides, hardware and steel callouts
- ai_extractor: Optional Claude vision pass for plan/section/elevation pages
- main: Page-by-page orchestration and result merging
- takeoff_mapper: Wall/floor/roof calculator input
- output_generator: Text report, JSON and CSV export

Usage:
    from framing_takeoff import TakeoffScanner, ScanConfig, run_full_pipeline

    # Full pipeline with report files
    scanner = run_full_pipeline("plans.pdf", "output/")

    # Manual control
    scanner = TakeoffScanner(ScanConfig(verbose=False))
    result = scanner.scan_pdf("plans.pdf")
    print(result.spec_overrides)
"""

from .models import (
    PageType,
    TextItem,
    Line,
    Table,
    SpatialPage,
    PageContent,
    PageClassification,
    Dimension,
    PlanScale,
    WallTypeSpec,
    WallSegment,
    Opening,
    FloorSpec,
    RoofSpec,
    StructuralMember,
    SteelMember,
    HardwareItem,
    SpecOverrides,
    ProjectInfo,
    PartialResult,
    ExtractionResult,
)

from .config import ScanConfig

from .spatial_text import (
    normalize_item,
    group_into_lines,
    build_line_text,
    detect_tables,
    extract_spatial_text,
)

from .page_classifier import (
    CLASSIFICATION_RULES,
    classify_page,
    classify_spatial_page,
)

from .parsers import (
    normalize_text,
    parse_dimensions,
    parse_framing_references,
    parse_rooms,
    parse_scales,
    detect_scale,
    parse_project_info,
)

from .schedule_reader import (
    map_columns,
    parse_wall_schedule,
    parse_door_window_schedule,
    find_wall_schedule_in_tables,
    find_door_window_schedule_in_tables,
    derive_header_size,
)

from .notes_parser import parse_general_notes

from .pdf_extractor import (
    DocumentError,
    PdfDocument,
    get_pdf_page_count,
)

from .ai_extractor import (
    AIExtractionError,
    VisionClient,
    AI_PAGE_TYPES,
    map_ai_result,
)

from .main import (
    TakeoffScanner,
    ScanCancelled,
    ListDocument,
    run_full_pipeline,
)

from .takeoff_mapper import (
    build_wall_import_data,
    build_opening_detail,
    build_floor_import_data,
    build_roof_import_data,
    build_extraction_summary,
)

from .output_generator import (
    generate_extraction_report,
    export_to_csv,
    export_to_json,
)

__version__ = "1.0.0"
__all__ = [
    # Main classes
    "TakeoffScanner",
    "ScanCancelled",
    "ListDocument",
    "ScanConfig",
    "run_full_pipeline",
    # Models
    "PageType",
    "TextItem",
    "Line",
    "Table",
    "SpatialPage",
    "PageContent",
    "PageClassification",
    "Dimension",
    "PlanScale",
    "WallTypeSpec",
    "WallSegment",
    "Opening",
    "FloorSpec",
    "RoofSpec",
    "StructuralMember",
    "SteelMember",
    "HardwareItem",
    "SpecOverrides",
    "ProjectInfo",
    "PartialResult",
    "ExtractionResult",
    # Spatial text
    "normalize_item",
    "group_into_lines",
    "build_line_text",
    "detect_tables",
    "extract_spatial_text",
    # Classification
    "CLASSIFICATION_RULES",
    "classify_page",
    "classify_spatial_page",
    # Parsers
    "normalize_text",
    "parse_dimensions",
    "parse_framing_references",
    "parse_rooms",
    "parse_scales",
    "detect_scale",
    "parse_project_info",
    # Schedules and notes
    "map_columns",
    "parse_wall_schedule",
    "parse_door_window_schedule",
    "find_wall_schedule_in_tables",
    "find_door_window_schedule_in_tables",
    "derive_header_size",
    "parse_general_notes",
    # PDF access
    "DocumentError",
    "PdfDocument",
    "get_pdf_page_count",
    # AI vision
    "AIExtractionError",
    "VisionClient",
    "AI_PAGE_TYPES",
    "map_ai_result",
    # Takeoff mapping
    "build_wall_import_data",
    "build_opening_detail",
    "build_floor_import_data",
    "build_roof_import_data",
    "build_extraction_summary",
    # Output
    "generate_extraction_report",
    "export_to_csv",
    "export_to_json",
]
