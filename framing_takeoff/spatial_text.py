"""Spatial text reconstruction from positioned text fragments.

The rendering layer hands over disconnected text fragments carrying only a
position, a width and a font. This module rebuilds reading order from them:

- normalize_item(): Convert a raw fragment into a TextItem
- group_into_lines(): Cluster items into horizontal lines (top of page first)
- build_line_text(): Serialize a line, inserting TAB at column gaps
- detect_tables(): Find runs of lines with consistent column alignment
- extract_spatial_text(): Run all of the above for one page
"""
import math
from typing import Any, Dict, Iterable, List, Optional

from .models import ColumnBounds, Line, SpatialPage, Table, TextBlock, TextItem


COLUMN_BREAK = "\t"

# Gap thresholds, in multiples of the previous item's average character width
COLUMN_GAP_CHARS = 2.5
WORD_GAP_CHARS = 0.3

# Line grouping tolerance, as a fraction of the line's font size
LINE_Y_TOLERANCE = 0.4
MIN_LINE_Y_TOLERANCE = 2.0

DEFAULT_FONT_SIZE = 10.0
HEADING_FONT_RATIO = 1.2


# =============================================================================
# ITEM NORMALIZATION
# =============================================================================

def normalize_item(item: Dict[str, Any]) -> TextItem:
    """
    Normalize one raw text fragment into a TextItem.

    The fragment's transform is ``[a, b, c, d, x, y]``; ``x`` and ``y`` give
    the position and ``|a|`` (or ``|d|``) the font size.

    Args:
        item: Raw fragment with 'text' (or 'str'), 'transform', 'width',
              and optional 'height' and 'fontName'

    Returns:
        TextItem
    """
    transform = item.get("transform") or [0, 0, 0, 0, 0, 0]
    font_size = abs(transform[0]) or abs(transform[3]) or DEFAULT_FONT_SIZE
    text = item.get("text")
    if text is None:
        text = item.get("str", "")

    return TextItem(
        text=text,
        x=float(transform[4]),
        y=float(transform[5]),
        width=float(item.get("width") or 0),
        height=float(item.get("height") or font_size),
        font_size=float(font_size),
        font_name=item.get("fontName") or "",
    )


def normalize_items(items: Iterable[Dict[str, Any]]) -> List[TextItem]:
    """Normalize fragments, dropping whitespace-only ones."""
    return [normalize_item(item) for item in items if (item.get("text") or item.get("str") or "").strip()]


# =============================================================================
# LINE RECONSTRUCTION
# =============================================================================

def group_into_lines(items: List[TextItem]) -> List[Line]:
    """
    Group items into horizontal lines.

    Items are walked in (y descending, x ascending) order. An item joins the
    current line when its y is within max(font_size * 0.4, 2) of the line's
    y, otherwise it starts a new line.

    Args:
        items: Normalized items for one page

    Returns:
        Lines ordered top of page first, each with items sorted by x
    """
    if not items:
        return []

    ordered = sorted(items, key=lambda i: (-i.y, i.x))

    lines = []
    current = Line(y=ordered[0].y, font_size=ordered[0].font_size, items=[ordered[0]])

    for item in ordered[1:]:
        tolerance = max(current.font_size * LINE_Y_TOLERANCE, MIN_LINE_Y_TOLERANCE)
        if abs(item.y - current.y) <= tolerance:
            current.items.append(item)
        else:
            lines.append(_finalize_line(current))
            current = Line(y=item.y, font_size=item.font_size, items=[item])

    lines.append(_finalize_line(current))
    return lines


def _finalize_line(line: Line) -> Line:
    line.items.sort(key=lambda i: i.x)
    line.text = build_line_text(line.items)
    return line


def build_line_text(items: List[TextItem]) -> str:
    """
    Serialize a line's items into one string.

    A TAB is inserted where the horizontal gap exceeds 2.5 average character
    widths of the previous item, a space where it exceeds 0.3, and nothing
    otherwise (sub-word fragments).
    """
    if not items:
        return ""

    parts = [items[0].text]
    for prev, curr in zip(items, items[1:]):
        gap = curr.x - (prev.x + prev.width)
        if prev.text:
            avg_char_width = prev.width / len(prev.text)
        else:
            avg_char_width = prev.font_size * 0.5

        if gap > avg_char_width * COLUMN_GAP_CHARS:
            parts.append(COLUMN_BREAK)
        elif gap > avg_char_width * WORD_GAP_CHARS:
            parts.append(" ")
        parts.append(curr.text)

    return "".join(parts)


# =============================================================================
# TABLE DETECTION
# =============================================================================

def column_buckets(line: Line, tolerance: float = 6.0) -> List[float]:
    """Return the sorted, deduplicated x-start buckets of a line's items."""
    buckets = {math.floor(item.x / tolerance + 0.5) * tolerance for item in line.items}
    return sorted(buckets)


def detect_tables(lines: List[Line], tolerance: float = 6.0, min_rows: int = 3) -> List[Table]:
    """
    Detect tabular regions from column alignment.

    Consecutive lines with at least two column buckets, whose bucket count
    stays within one of the run's reference set, form a run. The reference
    set grows to the widest line seen. Runs of ``min_rows`` lines or more
    become tables.

    Args:
        lines: Lines ordered top of page first
        tolerance: Bucket width in page units
        min_rows: Minimum run length

    Returns:
        List of Table objects, in page order
    """
    if len(lines) < min_rows:
        return []

    tables = []
    run_start: Optional[int] = None
    run_cols: Optional[List[float]] = None

    for i, line in enumerate(lines):
        cols = column_buckets(line, tolerance)

        if len(cols) < 2:
            if run_start is not None and i - run_start >= min_rows:
                tables.append(build_table(lines, run_start, i - 1, run_cols, tolerance))
            run_start = None
            run_cols = None
            continue

        if run_cols is None:
            run_start = i
            run_cols = cols
        elif abs(len(cols) - len(run_cols)) <= 1:
            if len(cols) > len(run_cols):
                run_cols = cols
        else:
            if i - run_start >= min_rows:
                tables.append(build_table(lines, run_start, i - 1, run_cols, tolerance))
            run_start = i
            run_cols = cols

    if run_start is not None and len(lines) - run_start >= min_rows:
        tables.append(build_table(lines, run_start, len(lines) - 1, run_cols, tolerance))

    return tables


def build_table(
    lines: List[Line],
    start_idx: int,
    end_idx: int,
    buckets: List[float],
    tolerance: float = 6.0
) -> Table:
    """
    Build a Table from a line range and its column buckets.

    Each bucket opens a column that extends to the next bucket; the last
    column is unbounded. A cell holds every item of the row whose x falls
    in ``[x_min, x_max)``.
    """
    bounds = []
    for idx, bucket in enumerate(buckets):
        x_max = buckets[idx + 1] - tolerance if idx < len(buckets) - 1 else math.inf
        bounds.append(ColumnBounds(x_min=bucket - tolerance, x_max=x_max))

    cells = []
    for line in lines[start_idx:end_idx + 1]:
        row = []
        for col in bounds:
            words = [item.text for item in line.items if col.x_min <= item.x < col.x_max]
            row.append(" ".join(words).strip())
        cells.append(row)

    return Table(
        start_line_index=start_idx,
        end_line_index=end_idx,
        column_bounds=bounds,
        cells=cells,
        header_row=list(cells[0]) if cells else [],
    )


# =============================================================================
# TEXT BLOCKS
# =============================================================================

def extract_text_blocks(lines: List[Line]) -> List[TextBlock]:
    """Tag each line as heading (font > 1.2x median line font) or body."""
    if not lines:
        return []

    sizes = sorted(line.font_size for line in lines)
    median = sizes[len(sizes) // 2]

    return [
        TextBlock(
            text=line.text,
            font_size=line.font_size,
            y=line.y,
            kind="heading" if line.font_size > median * HEADING_FONT_RATIO else "body",
        )
        for line in lines
    ]


# =============================================================================
# PAGE ENTRY POINT
# =============================================================================

def extract_spatial_text(
    items: Iterable[Dict[str, Any]],
    width: float = 0.0,
    height: float = 0.0,
    table_tolerance: float = 6.0,
    min_table_rows: int = 3
) -> SpatialPage:
    """
    Extract spatial text data for one page.

    Args:
        items: Raw text fragments from the rendering layer
        width: Page width in page units
        height: Page height in page units
        table_tolerance: Column bucket width for table detection
        min_table_rows: Minimum rows for a detected table

    Returns:
        SpatialPage with lines, tables, text blocks and the flat raw text
    """
    lines = group_into_lines(normalize_items(items))

    return SpatialPage(
        lines=lines,
        tables=detect_tables(lines, table_tolerance, min_table_rows),
        raw_text=" ".join(line.text for line in lines),
        text_blocks=extract_text_blocks(lines),
        width=width,
        height=height,
    )
