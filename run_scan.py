#!/usr/bin/env python3
"""
Framing Takeoff - Command-line scan

Scans a construction plan PDF and writes an extraction report, JSON and CSV.

Usage:
    python run_scan.py plans.pdf
    python run_scan.py plans.pdf --output results/ --ai
    python run_scan.py plans.pdf --config scan.yaml
"""
import argparse
import sys

from framing_takeoff import DocumentError, ScanConfig, run_full_pipeline


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract framing takeoff data from a construction plan PDF.",
    )
    parser.add_argument("pdf", help="Path to the plan set PDF")
    parser.add_argument(
        "-o", "--output", default="./takeoff_output",
        help="Directory for the report, JSON and CSV (default: ./takeoff_output)",
    )
    parser.add_argument(
        "--ai", action="store_true",
        help="Run the Claude vision pass on plan, section and elevation pages (needs ANTHROPIC_API_KEY)",
    )
    parser.add_argument(
        "-c", "--config",
        help="YAML or JSON scan configuration file",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true",
        help="Only print the final report",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()

    config = ScanConfig.from_file(args.config) if args.config else ScanConfig()
    if args.ai:
        config.enable_ai = True
    if args.quiet:
        config.verbose = False

    try:
        scanner = run_full_pipeline(args.pdf, args.output, config)
    except DocumentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if scanner.result.warnings:
        print(f"\n{len(scanner.result.warnings)} warning(s) need review - see extraction_report.txt")
    return 0


if __name__ == "__main__":
    sys.exit(main())
