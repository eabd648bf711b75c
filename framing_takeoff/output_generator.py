"""Generate formatted extraction output.

Supports multiple output formats:
- Text: Human-readable extraction report for review
- CSV: Wall types and openings, spreadsheet-compatible
- JSON: Full extraction result plus summary, machine-readable
"""
import csv
import json
from datetime import datetime
from typing import List

from .models import ExtractionResult
from .takeoff_mapper import build_extraction_summary


def generate_extraction_report(result: ExtractionResult) -> str:
    """
    Generate a formatted text report of an extraction result.

    Args:
        result: Extraction result

    Returns:
        Formatted string of the report
    """
    project_name = result.project_info.name or "Untitled Project"

    lines = []
    lines.append("=" * 70)
    lines.append(f"FRAMING EXTRACTION: {project_name}")
    lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    if not result.complete:
        lines.append(f"INCOMPLETE SCAN: {result.error}")
    lines.append("=" * 70)

    def add_section(title: str, rows: List[str], header: str = None):
        """Add a section with rows."""
        if not rows:
            return
        lines.append(f"\n{title}")
        lines.append("-" * 50)
        if header:
            lines.append(header)
            lines.append("-" * 50)
        lines.extend(rows)

    add_section(
        "PAGES",
        [f"  {c.page:<6} {c.type.value:<24} {c.confidence:>6.0%}" for c in result.page_classifications],
        f"  {'Page':<6} {'Type':<24} {'Conf':>6}",
    )

    add_section(
        "WALL TYPES",
        [
            f"  {wt.type:<6} {wt.stud_size:<6} {wt.spacing:>4}\" {wt.height:>6.2f}' "
            f"{'EXT' if wt.exterior else 'INT':<4} {wt.sheathing_type or ''}"
            for wt in result.wall_types
        ],
        f"  {'Type':<6} {'Stud':<6} {'OC':>5} {'Height':>7} {'Loc':<4} Sheathing",
    )

    add_section(
        "OPENINGS",
        [
            f"  {o.mark:<6} {o.category:<7} {o.width:>6.2f}' x {o.height:>5.2f}' "
            f"{o.quantity:>4} {o.header_count}-{o.header_size or ''}"
            for o in result.openings
        ],
        f"  {'Mark':<6} {'Kind':<7} {'Size':>17} {'Qty':>4} Header",
    )

    overrides = [
        f"  {name:<28} {value}"
        for name, value in vars(result.spec_overrides).items()
        if value is not None
    ]
    add_section("SPEC OVERRIDES", overrides)

    add_section(
        "STRUCTURAL MEMBERS",
        [f"  {m.type:<10} {m.size:<20} {m.location}" for m in result.structural_members]
        + [f"  {s.type:<10} {s.shape:<20} {s.location}" for s in result.steel_members],
    )

    add_section(
        "HARDWARE",
        [f"  {h.type:<14} {h.model:<12} {h.location}" for h in result.hardware],
    )

    add_section(
        "RAW TEXT FINDINGS",
        [
            f"  Dimensions:        {len(result.raw_dimensions)}",
            f"  Framing refs:      {', '.join(result.raw_framing_refs[:20])}",
            f"  Rooms:             {', '.join(result.raw_rooms)}",
            f"  Scales:            {', '.join(sorted({s.raw for s in result.raw_scales}))}",
        ],
    )

    add_section("WARNINGS (review)", [f"  - {w}" for w in result.warnings])

    summary = build_extraction_summary(result)
    lines.append("\n" + "=" * 70)
    lines.append(f"SUMMARY: {', '.join(summary['items']) or 'nothing extracted'}")
    lines.append(f"Total wall LF: {summary['total_wall_lf']:,.1f}   Openings: {summary['total_openings']}")

    return "\n".join(lines)


def export_to_csv(result: ExtractionResult, output_path: str) -> None:
    """Export wall types and openings to a CSV file."""
    with open(output_path, 'w', newline='') as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(['Category', 'Mark', 'Size', 'Spacing', 'Height', 'Quantity', 'Header', 'Notes'])

        for wt in result.wall_types:
            writer.writerow([
                'WALL EXT' if wt.exterior else 'WALL INT',
                wt.type, wt.stud_size, wt.spacing, wt.height, '', '', wt.notes,
            ])

        for o in result.openings:
            writer.writerow([
                o.category.upper(), o.mark, f"{o.width:g}x{o.height:g}", '', o.height,
                o.quantity, f"{o.header_count}-{o.header_size or ''}", o.notes,
            ])


def export_to_json(result: ExtractionResult, output_path: str) -> None:
    """Export the full extraction result to a JSON file."""
    data = {
        "project": result.project_info.name,
        "generated": datetime.now().isoformat(),
        "summary": build_extraction_summary(result),
        "result": result.to_dict(),
    }

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=2)
