"""Shared fixtures: synthetic positioned text and in-memory collaborators."""
import pytest

from framing_takeoff.config import ScanConfig
from framing_takeoff.models import PageContent
from framing_takeoff.pdf_extractor import DocumentError


COLUMN_XS = (50, 150, 250, 350, 450)
TOP_Y = 700.0
LINE_SPACING = 14.0


def item(text, x, y, font_size=10.0, char_width=None):
    """A raw fragment in the rendering layer's shape."""
    char_width = font_size * 0.5 if char_width is None else char_width
    return {
        "text": text,
        "transform": [font_size, 0, 0, font_size, x, y],
        "width": len(text) * char_width,
        "fontName": "Helvetica",
    }


def page(page_number, lines, font_size=10.0):
    """
    Build a PageContent from rows.

    A string row is one fragment at the left margin; a list row puts one
    fragment per cell at the fixed column positions.
    """
    items = []
    for idx, row in enumerate(lines):
        y = TOP_Y - idx * LINE_SPACING
        if isinstance(row, str):
            items.append(item(row, COLUMN_XS[0], y, font_size))
        else:
            for cell, x in zip(row, COLUMN_XS):
                if cell:
                    items.append(item(cell, x, y, font_size))
    return PageContent(page_number=page_number, items=items, width=612, height=792)


class FakeDocument:
    """Document provider over in-memory pages; ``fail_on`` makes one page unreadable."""

    def __init__(self, pages, fail_on=None):
        self.pages = pages
        self.fail_on = fail_on
        self.rendered = []

    @property
    def page_count(self):
        return len(self.pages)

    def get_page_content(self, page_number):
        if page_number == self.fail_on:
            raise DocumentError(f"Could not read page {page_number}: corrupt stream", page_number)
        return self.pages[page_number - 1]

    def render_page_png(self, page_number, dpi=150):
        self.rendered.append((page_number, dpi))
        return b"\x89PNG fake"


class FakeVisionClient:
    """Returns canned JSON per page type; an Exception value is raised instead."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def extract(self, image_png, page_type, supplementary_text=""):
        self.calls.append((page_type, supplementary_text))
        response = self.responses.get(page_type, {})
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def make_item():
    return item


@pytest.fixture
def make_page():
    return page


@pytest.fixture
def fake_document():
    return FakeDocument


@pytest.fixture
def fake_vision():
    return FakeVisionClient


@pytest.fixture
def quiet_config():
    return ScanConfig(verbose=False)


@pytest.fixture
def wall_schedule_page():
    return page(1, [
        "WALL SCHEDULE",
        ["TYPE", "STUD", "SPACING", "HEIGHT"],
        ["A", "2x6", "16\" OC", "9'-0\""],
        ["B", "2x4", "16\" OC", "8'-0\""],
    ])


@pytest.fixture
def notes_page():
    return page(2, [
        "GENERAL NOTES",
        "Floor Joists shall be 2x10 at 16\" O.C.",
    ])


@pytest.fixture
def floor_plan_page():
    return page(3, [
        "FIRST FLOOR PLAN",
        "KITCHEN",
        "BEDROOM",
        "BATH",
        "12'-6\"",
    ])
