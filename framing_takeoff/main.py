"""Main orchestration for the Framing Takeoff extractor.

This module runs the complete pipeline over a plan set:
1. Per page: spatial text reconstruction, table detection, classification
2. Per page: dimension / reference / room / scale parsing
3. Per page: schedule, notes or title block parsing by page type, then merge
4. Optional AI vision pass over plan, section and elevation pages
5. Output generation (text report, JSON, CSV)

Pages are processed strictly in document order, one at a time. After each
page the scanner hands control back to the caller (``iter_scan`` yields,
``yield_fn`` is called) so an interactive host stays responsive. Every scan
takes a new generation number; a scan that finds a newer generation before
its next page stops with ScanCancelled and never touches the newer result.
"""
import os
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from .ai_extractor import VisionClient, map_ai_result
from .config import ScanConfig
from .models import (
    ExtractionResult, PageClassification, PageContent, PageType, PartialResult, SpatialPage,
)
from .notes_parser import parse_general_notes
from .output_generator import export_to_csv, export_to_json, generate_extraction_report
from .page_classifier import classify_page
from .parsers import parse_dimensions, parse_framing_references, parse_project_info, parse_rooms, parse_scales
from .pdf_extractor import DocumentError, PdfDocument
from .schedule_reader import find_door_window_schedule_in_tables, find_wall_schedule_in_tables
from .spatial_text import extract_spatial_text


ProgressCallback = Callable[[str, int, int, str], None]


class ScanCancelled(Exception):
    """A newer scan (or cancel()) superseded this one."""


@dataclass
class PageProgress:
    """Yielded by ``iter_scan`` after each page is merged."""
    page: int
    total: int
    classification: PageClassification


class ListDocument:
    """Document provider over pre-extracted PageContent objects (no rendering)."""

    def __init__(self, pages: List[PageContent]):
        self._pages = {p.page_number: p for p in pages}
        self._order = sorted(self._pages)

    @property
    def page_count(self) -> int:
        return len(self._order)

    def get_page_content(self, page_number: int) -> PageContent:
        if not 1 <= page_number <= len(self._order):
            raise DocumentError(f"Page {page_number} out of range (1-{len(self._order)})", page_number)
        return self._pages[self._order[page_number - 1]]

    def render_page_png(self, page_number: int, dpi: int = 150) -> bytes:
        raise DocumentError("Pre-extracted pages cannot be rendered", page_number)


class TakeoffScanner:
    """Runs the framing takeoff pipeline over a document."""

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        vision_client=None,
        progress_callback: Optional[ProgressCallback] = None,
        yield_fn: Optional[Callable[[], None]] = None
    ):
        """
        Initialize the scanner.

        Args:
            config: Scan configuration (defaults to ScanConfig())
            vision_client: Object with ``extract(image_png, page_type, supplementary_text)``;
                           built from config on first AI use when omitted
            progress_callback: Called with (phase, current, total, message)
            yield_fn: Called after every page to let the host run
        """
        self.config = config or ScanConfig()
        self.vision_client = vision_client
        self.progress_callback = progress_callback
        self.yield_fn = yield_fn

        self.result = ExtractionResult()
        self._generation = 0

    # =========================================================================
    # PROGRESS
    # =========================================================================

    def _report(self, phase: str, current: int, total: int, message: str) -> None:
        if self.config.verbose:
            print(message)
        if self.progress_callback is not None:
            self.progress_callback(phase, current, total, message)

    def _warn(self, result: ExtractionResult, message: str) -> None:
        result.warnings.append(message)
        if self.config.verbose:
            print(f"    Warning: {message}")

    # =========================================================================
    # GENERATION GUARD
    # =========================================================================

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self) -> None:
        """Invalidate the scan in progress; it stops before its next page."""
        self._generation += 1

    def _check_generation(self, generation: int) -> None:
        if generation != self._generation:
            raise ScanCancelled(f"Scan {generation} superseded by {self._generation}")

    # =========================================================================
    # PAGE PROCESSING
    # =========================================================================

    def process_page(self, content: PageContent, result: ExtractionResult) -> PageClassification:
        """
        Run the text pipeline on one page and merge into ``result``.

        Args:
            content: Positioned text of the page
            result: Result being built by the current scan

        Returns:
            The page's classification
        """
        page_number = content.page_number
        spatial = extract_spatial_text(
            content.items,
            content.width,
            content.height,
            table_tolerance=self.config.table_tolerance,
            min_table_rows=self.config.min_table_rows,
        )
        text = spatial.raw_text

        dims = parse_dimensions(text)
        rooms = parse_rooms(text)
        scales = parse_scales(text)
        for dim in dims:
            dim.page = page_number
        for scale in scales:
            scale.page = page_number

        classification = classify_page(
            text, spatial.tables, len(dims), len(rooms), threshold=self.config.classification_threshold
        )
        classification.page = page_number

        result.page_classifications.append(classification)
        result.raw_dimensions.extend(dims)
        result.raw_scales.extend(scales)
        result.add_references(parse_framing_references(text))
        result.add_rooms(rooms)

        result.merge(self.parse_page_type(spatial, classification.type))
        return classification

    def parse_page_type(self, spatial: SpatialPage, page_type: PageType) -> PartialResult:
        """Run the specialized parser for a page type (nothing for the others)."""
        warnings = [] if self.config.record_default_warnings else None

        if page_type == PageType.WALL_SCHEDULE:
            partial = PartialResult(wall_types=find_wall_schedule_in_tables(spatial.tables, warnings))
        elif page_type == PageType.DOOR_WINDOW_SCHEDULE:
            partial = PartialResult(
                openings=find_door_window_schedule_in_tables(spatial.tables, spatial.raw_text, warnings)
            )
        elif page_type == PageType.GENERAL_NOTES:
            partial = parse_general_notes(spatial.raw_text)
        elif page_type == PageType.TITLE_SHEET:
            partial = PartialResult(project_info=parse_project_info(line.text for line in spatial.lines))
        else:
            return PartialResult()

        if warnings:
            partial.warnings.extend(warnings)
        return partial

    # =========================================================================
    # SCANNING
    # =========================================================================

    def iter_scan(self, document) -> Iterator[PageProgress]:
        """
        Scan a document page by page, yielding after each page.

        Starting a scan replaces ``self.result`` with a fresh result and
        invalidates any scan still in progress.

        Args:
            document: Provider with ``page_count`` and ``get_page_content(n)``

        Yields:
            PageProgress after each page is merged

        Raises:
            DocumentError: The document failed to deliver a page; ``err.result``
                           holds the partial result, marked incomplete
            ScanCancelled: A newer scan started before this one finished
        """
        self._generation += 1
        generation = self._generation
        result = ExtractionResult()
        self.result = result

        total = document.page_count
        try:
            for page_number in range(1, total + 1):
                self._check_generation(generation)
                self._report("extract", page_number, total, f"  Extracting page {page_number}/{total}...")

                content = document.get_page_content(page_number)
                classification = self.process_page(content, result)

                if self.config.verbose:
                    print(f"    {classification.type.value} ({classification.confidence:.0%})")

                if self.yield_fn is not None:
                    self.yield_fn()
                yield PageProgress(page=content.page_number, total=total, classification=classification)

        except DocumentError as e:
            result.complete = False
            result.error = str(e)
            e.result = result
            raise

        self._check_generation(generation)
        self._report(
            "done", total, total,
            f"  Done - {total} pages, {len(result.raw_dimensions)} dims, {len(result.wall_types)} wall types"
        )

    def scan_document(self, document) -> ExtractionResult:
        """Scan every page of ``document`` and return the result."""
        for _ in self.iter_scan(document):
            pass
        return self.result

    def scan_pages(self, pages: List[PageContent]) -> ExtractionResult:
        """Scan pre-extracted pages."""
        return self.scan_document(ListDocument(pages))

    def scan_pdf(self, pdf_path: str) -> ExtractionResult:
        """
        Scan a PDF file, running the AI pass afterwards when enabled.

        Args:
            pdf_path: Path to the plan set PDF

        Returns:
            ExtractionResult
        """
        with PdfDocument(pdf_path) as document:
            result = self.scan_document(document)
            if self.config.enable_ai:
                self.run_ai_augmentation(document)
        return result

    # =========================================================================
    # AI AUGMENTATION
    # =========================================================================

    def ai_pages(self) -> List[PageClassification]:
        """Classified pages of the current result that go to the vision service."""
        return [c for c in self.result.page_classifications if self.config.is_ai_page(c.type)]

    def run_ai_augmentation(self, document) -> ExtractionResult:
        """
        Send flagged pages to the vision service and merge what comes back.

        Runs after the text pass, one page at a time. A failure on a page is
        recorded as a warning and the remaining pages still run.

        Args:
            document: Provider with ``render_page_png(n, dpi)``

        Returns:
            The (same) current ExtractionResult
        """
        generation = self._generation
        result = self.result
        pages = self.ai_pages()
        if not pages:
            return result

        if self.vision_client is None:
            try:
                self.vision_client = VisionClient(self.config)
            except (ImportError, ValueError) as e:
                self._warn(result, f"AI skipped: {e}")
                return result

        for idx, cls in enumerate(pages, 1):
            self._check_generation(generation)
            self._report(
                "ai", idx, len(pages),
                f"  AI extracting page {cls.page} ({cls.type.value.replace('_', ' ')}) - {idx}/{len(pages)}..."
            )

            supplementary = ", ".join(d.raw for d in result.raw_dimensions if d.page == cls.page)
            try:
                image = document.render_page_png(cls.page, dpi=self.config.ai_render_dpi)
                ai_result = self.vision_client.extract(image, cls.type, supplementary)
                result.merge(map_ai_result(ai_result, cls.type, cls.page))
            except Exception as e:
                self._warn(result, f"AI failed page {cls.page} ({cls.type.value}): {e}")

            if self.yield_fn is not None:
                self.yield_fn()

        self._report(
            "done", len(pages), len(pages),
            f"  AI done - {len(result.wall_segments)} walls, {len(result.structural_members)} members, "
            f"{len(result.steel_members)} steel"
        )
        return result

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def generate_output(self, output_dir: str, format: str = "text") -> str:
        """
        Write the current result to ``output_dir``.

        Args:
            output_dir: Destination directory
            format: "text", "json" or "csv"

        Returns:
            Path to the written file
        """
        os.makedirs(output_dir, exist_ok=True)

        if format == "text":
            output = generate_extraction_report(self.result)
            output_path = os.path.join(output_dir, "extraction_report.txt")
            with open(output_path, 'w') as f:
                f.write(output)
            if self.config.verbose:
                print(output)
            return output_path

        elif format == "json":
            output_path = os.path.join(output_dir, "extraction.json")
            export_to_json(self.result, output_path)
        elif format == "csv":
            output_path = os.path.join(output_dir, "extraction.csv")
            export_to_csv(self.result, output_path)
        else:
            raise ValueError(f"Unknown format: {format}")

        if self.config.verbose:
            print(f"    Exported to {output_path}")
        return output_path


def run_full_pipeline(
    pdf_path: str,
    output_dir: str = None,
    config: Optional[ScanConfig] = None
) -> TakeoffScanner:
    """
    Run the complete extraction pipeline on a PDF.

    Args:
        pdf_path: Path to the plan set PDF
        output_dir: Directory for output files
        config: Scan configuration

    Returns:
        TakeoffScanner holding the result
    """
    config = config or ScanConfig()
    output_dir = output_dir or "./takeoff_output"
    steps = 3 if config.enable_ai else 2

    print("=" * 70)
    print("FRAMING TAKEOFF - PLAN EXTRACTION")
    print("=" * 70)

    scanner = TakeoffScanner(config)

    with PdfDocument(pdf_path) as document:
        print(f"\n[1/{steps}] Scanning PDF: {pdf_path} ({document.page_count} pages)")
        scanner.scan_document(document)

        if config.enable_ai:
            print(f"\n[2/{steps}] AI vision pass ({len(scanner.ai_pages())} pages)...")
            scanner.run_ai_augmentation(document)

    print(f"\n[{steps}/{steps}] Generating Output...")
    scanner.generate_output(output_dir, "text")
    scanner.generate_output(output_dir, "json")
    scanner.generate_output(output_dir, "csv")

    print(f"\nPipeline complete! Output saved to: {output_dir}")
    return scanner
