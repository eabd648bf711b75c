"""Tests for AI reply parsing, result mapping and image preparation."""
import io

import pytest
from PIL import Image

from framing_takeoff.ai_extractor import (
    AI_PAGE_TYPES,
    AIExtractionError,
    _extract_json,
    build_prompt,
    map_ai_result,
    map_section_detail_result,
    map_structural_plan_result,
    resize_image_if_needed,
)
from framing_takeoff.models import PageType


class TestExtractJson:
    def test_fenced_block(self):
        reply = "Here you go:\n```json\n{\"pitches\": [{\"value\": \"6/12\"}]}\n```\nDone."
        assert _extract_json(reply) == {"pitches": [{"value": "6/12"}]}

    def test_bare_object(self):
        assert _extract_json("Result: {\"members\": []} end") == {"members": []}

    def test_no_json(self):
        with pytest.raises(AIExtractionError):
            _extract_json("I could not read this page.")

    def test_malformed_json(self):
        with pytest.raises(AIExtractionError):
            _extract_json("{\"members\": [}")


class TestPrompts:
    def test_supplementary_text_appended(self):
        prompt = build_prompt(PageType.FLOOR_PLAN, "12'-6\", 10'-0\"")
        assert prompt.endswith("Additional text extracted from this page:\n12'-6\", 10'-0\"")

    def test_every_ai_type_has_prompt(self):
        assert set(AI_PAGE_TYPES) == {
            PageType.FLOOR_PLAN, PageType.SECTION_DETAIL, PageType.STRUCTURAL_PLAN,
            PageType.ROOF_PLAN, PageType.ELEVATION,
        }

    def test_unsupported_type(self):
        with pytest.raises(AIExtractionError):
            build_prompt(PageType.GENERAL_NOTES)


class TestResultMapping:
    def test_floor_plan(self):
        partial = map_ai_result({
            "wallSegments": [{"wallType": "A", "length": "18.5"}, {"wallType": "B", "length": None}],
            "openings": [{"mark": "D1", "category": "door"}, {"mark": "W1", "category": "window", "width": 4}],
        }, PageType.FLOOR_PLAN, 2)

        assert [(s.wall_type, s.length, s.page) for s in partial.wall_segments] == [("A", 18.5, 2)]
        door, window = partial.openings
        assert (door.width, door.height, door.sill_height) == (3.0, 6.67, 0.0)
        assert (window.width, window.sill_height) == (4.0, 3.0)

    def test_section_detail_overrides(self):
        partial = map_section_detail_result({
            "members": [
                {"type": "stud", "size": "2X6", "spacing": 16, "description": "ext wall"},
                {"type": "rafter", "size": "2x10", "spacing": "24"},
                {"type": "header", "size": "(2) 2x12"},
            ],
            "hardware": [{"type": "holdDown", "model": "HDU5"}],
        })

        assert partial.spec_overrides == {
            "exterior_wall_stud_size": "2x6", "exterior_wall_spacing": 16,
            "rafter_size": "2x10", "rafter_spacing": 24,
        }
        assert len(partial.structural_members) == 3
        assert partial.hardware[0].model == "HDU5"

    def test_structural_plan_splits_steel(self):
        partial = map_structural_plan_result({
            "beams": [{"size": "W8x31", "span": 20}, {"size": "(3) 1-3/4x11-7/8 LVL", "span": "16"}],
            "columns": [{"size": "HSS4x4x1/4", "height": 9}],
            "joists": [{"area": "Main", "size": "2x10", "spacing": 16, "span": 14}],
            "hardware": [{"type": "hanger", "model": "LUS210", "quantity": 12}],
        })

        assert [(s.type, s.shape) for s in partial.steel_members] == [("beam", "W8x31"), ("column", "HSS4x4x1/4")]
        assert partial.steel_members[1].height == 9.0
        assert [(m.type, m.span) for m in partial.structural_members] == [("beam", 16.0)]
        assert (partial.floor_specs[0].joist_size, partial.floor_specs[0].spacing) == ("2x10", 16)
        assert partial.hardware[0].quantity == 12

    def test_roof_plan_defaults(self):
        partial = map_ai_result({"sections": [{"name": "Garage"}]}, PageType.ROOF_PLAN)
        spec = partial.roof_specs[0]
        assert (spec.section, spec.rafter_size, spec.spacing, spec.pitch) == ("Garage", "2x8", 24, "6/12")

    def test_elevation_last_pitch_wins(self):
        partial = map_ai_result({"pitches": [{"value": "6/12"}, {"value": ""}, {"value": "8/12"}]},
                                PageType.ELEVATION)
        assert partial.spec_overrides == {"roof_pitch": "8/12"}

    def test_unsupported_or_malformed_input_is_empty(self):
        assert map_ai_result({"members": []}, PageType.WALL_SCHEDULE).is_empty()
        assert map_ai_result(["not", "a", "dict"], PageType.FLOOR_PLAN).is_empty()
        assert map_ai_result({"wallSegments": "nope"}, PageType.FLOOR_PLAN).is_empty()


def _png(width, height):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


class TestResize:
    def test_small_image_unchanged(self):
        data = _png(40, 20)
        assert resize_image_if_needed(data, max_dimension=100) is data

    def test_large_image_downscaled(self):
        resized = resize_image_if_needed(_png(400, 100), max_dimension=200)
        with Image.open(io.BytesIO(resized)) as img:
            assert img.size == (200, 50)

    def test_tall_image_downscaled(self):
        resized = resize_image_if_needed(_png(100, 400), max_dimension=200)
        with Image.open(io.BytesIO(resized)) as img:
            assert img.size == (50, 200)

    def test_resize_is_silent_by_default(self, capsys):
        resize_image_if_needed(_png(400, 100), max_dimension=200)
        assert capsys.readouterr().out == ""

    def test_resize_reported_when_verbose(self, capsys):
        resize_image_if_needed(_png(400, 100), max_dimension=200, verbose=True)
        assert "Resized image from 400x100 to 200x50" in capsys.readouterr().out
