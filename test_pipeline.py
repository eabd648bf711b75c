"""End-to-end tests for the page-by-page scanner and the AI pass."""
import pytest

from framing_takeoff.ai_extractor import AIExtractionError
from framing_takeoff.config import ScanConfig
from framing_takeoff.main import ListDocument, ScanCancelled, TakeoffScanner
from framing_takeoff.models import ExtractionResult, PageType, PartialResult
from framing_takeoff.pdf_extractor import DocumentError


@pytest.fixture
def three_pages(wall_schedule_page, notes_page, floor_plan_page):
    return [wall_schedule_page, notes_page, floor_plan_page]


class TestTextScan:
    def test_scan_pages(self, quiet_config, three_pages):
        result = TakeoffScanner(quiet_config).scan_pages(three_pages)

        assert [c.type for c in result.page_classifications] == [
            PageType.WALL_SCHEDULE, PageType.GENERAL_NOTES, PageType.FLOOR_PLAN,
        ]
        assert [c.page for c in result.page_classifications] == [1, 2, 3]
        assert result.complete is True
        assert result.error is None

        walls = {w.type: w for w in result.wall_types}
        assert set(walls) == {"A", "B"}
        assert (walls["A"].stud_size, walls["A"].spacing, walls["A"].height) == ("2x6", 16, 9.0)
        assert (walls["B"].stud_size, walls["B"].height) == ("2x4", 8.0)

        assert result.spec_overrides.floor_joist_size == "2x10"
        assert result.spec_overrides.floor_joist_spacing == 16
        assert {"KITCHEN", "BEDROOM", "BATH"} <= set(result.raw_rooms)

    def test_dimensions_tagged_with_page(self, quiet_config, three_pages):
        result = TakeoffScanner(quiet_config).scan_pages(three_pages)
        assert all(d.page in (1, 2, 3) for d in result.raw_dimensions)
        assert [d.raw for d in result.raw_dimensions if d.page == 3] == ["12'-6\""]

    def test_yields_after_every_page(self, quiet_config, three_pages, fake_document):
        calls = []
        progress = []
        scanner = TakeoffScanner(
            quiet_config,
            progress_callback=lambda *args: progress.append(args),
            yield_fn=lambda: calls.append(1),
        )

        steps = list(scanner.iter_scan(fake_document(three_pages)))

        assert [(s.page, s.total) for s in steps] == [(1, 3), (2, 3), (3, 3)]
        assert len(calls) == 3
        assert [p[0] for p in progress] == ["extract", "extract", "extract", "done"]
        assert progress[0][1:3] == (1, 3)

    def test_progress_reports_content_page_number(self, quiet_config, floor_plan_page, fake_document):
        steps = list(TakeoffScanner(quiet_config).iter_scan(fake_document([floor_plan_page])))

        assert [(s.page, s.total) for s in steps] == [(3, 1)]
        assert steps[0].page == steps[0].classification.page

    def test_zero_denominator_callout_does_not_abort_scan(self, quiet_config, make_page):
        pages = [make_page(1, ["FIRST FLOOR PLAN", "TRIM 3'-2 1/0\"", "SCALE: 1/0\" = 1'-0\""])]

        result = TakeoffScanner(quiet_config).scan_pages(pages)

        assert result.complete is True
        assert len(result.page_classifications) == 1
        assert all(s.ratio is None or s.ratio > 0 for s in result.raw_scales)

    def test_result_grows_between_yields(self, quiet_config, three_pages, fake_document):
        scanner = TakeoffScanner(quiet_config)
        counts = [len(scanner.result.page_classifications)
                  for _ in scanner.iter_scan(fake_document(three_pages))]
        assert counts == [1, 2, 3]

    def test_default_warnings_can_be_disabled(self, make_page):
        page = make_page(1, [
            "WALL SCHEDULE",
            ["TYPE", "STUD", "SPACING", "HEIGHT"],
            ["A", "2x6", "-", "-"],
            ["B", "2x4", "-", "-"],
        ])
        noisy = TakeoffScanner(ScanConfig(verbose=False)).scan_pages([page])
        quiet = TakeoffScanner(ScanConfig(verbose=False, record_default_warnings=False)).scan_pages([page])

        assert len(noisy.warnings) == 4
        assert quiet.warnings == []
        assert len(quiet.wall_types) == 2

    def test_title_sheet_project_info(self, quiet_config, make_page):
        page = make_page(1, [
            "PROJECT: Smith Residence",
            "ADDRESS: 12 Oak St",
            "ARCHITECT: J. Doe Design",
            "SHEET INDEX",
        ])
        scanner = TakeoffScanner(quiet_config)
        classification = scanner.process_page(page, scanner.result)

        assert classification.type == PageType.TITLE_SHEET
        assert scanner.result.project_info.name == "Smith Residence"
        assert scanner.result.project_info.architect == "J. Doe Design"


class TestMerge:
    def test_null_never_overwrites(self):
        result = ExtractionResult()
        result.merge(PartialResult(spec_overrides={"floor_joist_size": "2x10"}))
        result.merge(PartialResult(spec_overrides={"floor_joist_size": None}))
        assert result.spec_overrides.floor_joist_size == "2x10"

    def test_last_non_null_wins(self):
        result = ExtractionResult()
        result.merge(PartialResult(spec_overrides={"rafter_size": "2x8"}))
        result.merge(PartialResult(spec_overrides={"rafter_size": "2x12"}))
        assert result.spec_overrides.rafter_size == "2x12"

    def test_lists_only_grow(self):
        result = ExtractionResult()
        result.merge(PartialResult(warnings=["one"]))
        result.merge(PartialResult(warnings=["one"]))
        result.merge(PartialResult())
        assert result.warnings == ["one", "one"]

    def test_unknown_override_rejected(self):
        with pytest.raises(KeyError):
            ExtractionResult().merge(PartialResult(spec_overrides={"stud_color": "red"}))


class TestCancellation:
    def test_cancel_stops_before_next_page(self, quiet_config, three_pages, fake_document):
        scanner = TakeoffScanner(quiet_config)
        scan = scanner.iter_scan(fake_document(three_pages))

        next(scan)
        scanner.cancel()
        with pytest.raises(ScanCancelled):
            next(scan)
        assert len(scanner.result.page_classifications) == 1

    def test_new_scan_supersedes_old(self, quiet_config, three_pages, fake_document, notes_page):
        scanner = TakeoffScanner(quiet_config)
        old = scanner.iter_scan(fake_document(three_pages))
        next(old)
        old_result = scanner.result

        new_result = scanner.scan_document(fake_document([notes_page]))

        with pytest.raises(ScanCancelled):
            next(old)
        assert scanner.result is new_result
        assert new_result is not old_result
        assert len(new_result.page_classifications) == 1
        assert len(old_result.page_classifications) == 1


class TestDocumentErrors:
    def test_unreadable_page_marks_result_incomplete(self, quiet_config, three_pages, fake_document):
        scanner = TakeoffScanner(quiet_config)

        with pytest.raises(DocumentError) as excinfo:
            scanner.scan_document(fake_document(three_pages, fail_on=2))

        result = excinfo.value.result
        assert result is scanner.result
        assert result.complete is False
        assert "page 2" in result.error
        assert len(result.page_classifications) == 1
        assert {w.type for w in result.wall_types} == {"A", "B"}

    def test_list_document_out_of_range(self, notes_page):
        with pytest.raises(DocumentError):
            ListDocument([notes_page]).get_page_content(2)


class TestAIAugmentation:
    def test_floor_plan_page_augmented(self, quiet_config, floor_plan_page, fake_document, fake_vision):
        vision = fake_vision({
            PageType.FLOOR_PLAN: {
                "wallSegments": [
                    {"wallType": "A", "length": 24.5, "room": "KITCHEN"},
                    {"wallType": "B", "length": 0},
                ],
                "openings": [{"mark": "W1", "category": "window", "width": 3, "height": 4}],
            }
        })
        document = fake_document([floor_plan_page])
        scanner = TakeoffScanner(quiet_config, vision_client=vision)
        scanner.scan_document(document)
        result = scanner.run_ai_augmentation(document)

        assert vision.calls == [(PageType.FLOOR_PLAN, "12'-6\"")]
        assert document.rendered == [(3, 150)]
        assert [(s.wall_type, s.length, s.page) for s in result.wall_segments] == [("A", 24.5, 3)]
        assert result.openings[0].sill_height == 3.0
        assert result.warnings == []

    def test_failed_page_does_not_stop_the_pass(self, quiet_config, make_page, fake_document, fake_vision):
        pages = [
            make_page(1, ["FIRST FLOOR PLAN", "KITCHEN", "BEDROOM", "BATH"]),
            make_page(2, ["FRONT ELEVATION", "FASCIA"]),
        ]
        vision = fake_vision({
            PageType.FLOOR_PLAN: AIExtractionError("No JSON in AI response: sorry"),
            PageType.ELEVATION: {"pitches": [{"value": "8/12"}, {"value": "10/12"}]},
        })
        document = fake_document(pages)
        scanner = TakeoffScanner(quiet_config, vision_client=vision)
        scanner.scan_document(document)
        result = scanner.run_ai_augmentation(document)

        assert [c[0] for c in vision.calls] == [PageType.FLOOR_PLAN, PageType.ELEVATION]
        assert result.warnings == ["AI failed page 1 (FLOOR_PLAN): No JSON in AI response: sorry"]
        assert result.spec_overrides.roof_pitch == "10/12"

    def test_only_configured_page_types_sent(self, make_page, fake_document, fake_vision, notes_page):
        config = ScanConfig(verbose=False, ai_page_types=["ELEVATION"])
        pages = [make_page(1, ["FIRST FLOOR PLAN", "KITCHEN", "BEDROOM", "BATH"]), notes_page]
        vision = fake_vision({})
        document = fake_document(pages)
        scanner = TakeoffScanner(config, vision_client=vision)
        scanner.scan_document(document)
        scanner.run_ai_augmentation(document)

        assert scanner.ai_pages() == []
        assert vision.calls == []

    def test_render_failure_becomes_warning(self, quiet_config, floor_plan_page, fake_vision):
        vision = fake_vision({})
        scanner = TakeoffScanner(quiet_config, vision_client=vision)
        result = scanner.scan_pages([floor_plan_page])
        scanner.run_ai_augmentation(ListDocument([floor_plan_page]))

        assert vision.calls == []
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("AI failed page 3 (FLOOR_PLAN)")

    def test_missing_api_key_skips_pass(self, quiet_config, floor_plan_page, fake_document, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        document = fake_document([floor_plan_page])
        scanner = TakeoffScanner(quiet_config)
        scanner.scan_document(document)
        result = scanner.run_ai_augmentation(document)

        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("AI skipped:")
        assert document.rendered == []

    def test_cancel_stops_ai_pass(self, quiet_config, make_page, fake_document, fake_vision):
        pages = [
            make_page(1, ["FIRST FLOOR PLAN", "KITCHEN", "BEDROOM", "BATH"]),
            make_page(2, ["FRONT ELEVATION", "FASCIA"]),
        ]
        vision = fake_vision({})
        document = fake_document(pages)
        scanner = TakeoffScanner(quiet_config, vision_client=vision)
        scanner.scan_document(document)
        scanner.yield_fn = scanner.cancel

        with pytest.raises(ScanCancelled):
            scanner.run_ai_augmentation(document)
        assert len(vision.calls) == 1


def test_generate_output(tmp_path, quiet_config, three_pages):
    scanner = TakeoffScanner(quiet_config)
    scanner.scan_pages(three_pages)

    assert scanner.generate_output(str(tmp_path), "text").endswith("extraction_report.txt")
    assert (tmp_path / "extraction.json").exists() is False
    scanner.generate_output(str(tmp_path), "json")
    scanner.generate_output(str(tmp_path), "csv")
    assert (tmp_path / "extraction.json").exists()
    assert (tmp_path / "extraction.csv").exists()

    with pytest.raises(ValueError):
        scanner.generate_output(str(tmp_path), "xml")


def test_package_exports_resolve():
    import framing_takeoff

    missing = [name for name in framing_takeoff.__all__ if not hasattr(framing_takeoff, name)]
    assert missing == []
    assert "merge_into_result" not in framing_takeoff.__all__
