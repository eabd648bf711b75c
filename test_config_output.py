"""Tests for configuration files and report/export output."""
import csv
import json

from framing_takeoff.config import ScanConfig
from framing_takeoff.models import (
    ExtractionResult, Opening, PageClassification, PageType, ProjectInfo, WallTypeSpec,
)
from framing_takeoff.output_generator import export_to_csv, export_to_json, generate_extraction_report


class TestScanConfig:
    def test_yaml_round_trip_drops_api_key(self, tmp_path):
        path = tmp_path / "scan.yaml"
        config = ScanConfig(enable_ai=True, api_key="sk-secret", table_tolerance=8.0, ai_page_types=["ELEVATION"])
        config.to_yaml(str(path))

        assert "sk-secret" not in path.read_text()
        loaded = ScanConfig.from_file(str(path))
        assert loaded.enable_ai is True
        assert loaded.table_tolerance == 8.0
        assert loaded.ai_page_types == ["ELEVATION"]
        assert loaded.api_key is None

    def test_json_round_trip(self, tmp_path):
        path = tmp_path / "scan.json"
        ScanConfig(min_table_rows=4, verbose=False).to_json(str(path))
        loaded = ScanConfig.from_file(str(path))
        assert (loaded.min_table_rows, loaded.verbose) == (4, False)

    def test_unknown_keys_ignored(self):
        config = ScanConfig.from_dict({"classification_threshold": 20, "colour": "blue"})
        assert config.classification_threshold == 20

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")
        assert ScanConfig().resolve_api_key() == "env-key"
        assert ScanConfig(api_key="explicit").resolve_api_key() == "explicit"

    def test_is_ai_page(self):
        config = ScanConfig()
        assert config.is_ai_page(PageType.FLOOR_PLAN)
        assert not config.is_ai_page(PageType.WALL_SCHEDULE)


def _result():
    result = ExtractionResult(project_info=ProjectInfo(name="Smith Residence"))
    result.page_classifications.append(PageClassification(PageType.WALL_SCHEDULE, 0.857, page=1))
    result.wall_types.append(WallTypeSpec(type="A", stud_size="2x6", spacing=16, height=9.0, exterior=True))
    result.openings.append(Opening(mark="W1", category="window", width=3.0, height=4.0, header_size="2x6"))
    result.spec_overrides.update({"roof_pitch": "6/12"})
    result.warnings.append("Wall type B: height not found, using 8'")
    return result


class TestReport:
    def test_sections(self):
        report = generate_extraction_report(_result())

        assert "FRAMING EXTRACTION: Smith Residence" in report
        for section in ("PAGES", "WALL TYPES", "OPENINGS", "SPEC OVERRIDES", "WARNINGS (review)"):
            assert f"\n{section}\n" in report
        assert "roof_pitch" in report
        assert "INCOMPLETE SCAN" not in report

    def test_empty_sections_omitted(self):
        report = generate_extraction_report(ExtractionResult())
        assert "Untitled Project" in report
        assert "\nWALL TYPES\n" not in report
        assert "SUMMARY: nothing extracted" in report

    def test_incomplete_scan_flagged(self):
        result = ExtractionResult(complete=False, error="Could not read page 4")
        assert "INCOMPLETE SCAN: Could not read page 4" in generate_extraction_report(result)


class TestExport:
    def test_csv(self, tmp_path):
        path = tmp_path / "out.csv"
        export_to_csv(_result(), str(path))

        with open(path, newline='') as f:
            rows = list(csv.reader(f))
        assert rows[0][:3] == ["Category", "Mark", "Size"]
        assert rows[1][:3] == ["WALL EXT", "A", "2x6"]
        assert rows[2][:3] == ["WINDOW", "W1", "3x4"]

    def test_json(self, tmp_path):
        path = tmp_path / "out.json"
        export_to_json(_result(), str(path))

        data = json.loads(path.read_text())
        assert data["project"] == "Smith Residence"
        assert data["summary"]["warning_count"] == 1
        assert data["result"]["spec_overrides"]["roof_pitch"] == "6/12"
        assert data["result"]["page_classifications"][0]["type"] == "WALL_SCHEDULE"
