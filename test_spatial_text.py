"""Tests for line reconstruction and table detection."""
from framing_takeoff.models import TextItem
from framing_takeoff.spatial_text import (
    COLUMN_BREAK,
    build_line_text,
    column_buckets,
    detect_tables,
    extract_spatial_text,
    group_into_lines,
    normalize_item,
    normalize_items,
)


def _text_item(text, x, width, font_size=10.0, y=100.0):
    return TextItem(text=text, x=x, y=y, width=width, height=font_size, font_size=font_size)


def _grid(make_item, rows, xs=(50, 150, 250), top=700, spacing=14):
    items = []
    for idx, row in enumerate(rows):
        for text, x in zip(row, xs):
            items.append(make_item(text, x, top - idx * spacing))
    return group_into_lines(normalize_items(items))


class TestNormalizeItem:
    def test_position_and_font_from_transform(self):
        item = normalize_item({"text": "2x6", "transform": [12, 0, 0, 12, 100, 200], "width": 18})
        assert (item.x, item.y) == (100.0, 200.0)
        assert item.font_size == 12.0
        assert item.height == 12.0

    def test_font_size_falls_back_to_d(self):
        item = normalize_item({"str": "STUD", "transform": [0, 0, 0, -9, 5, 6], "width": 20})
        assert item.text == "STUD"
        assert item.font_size == 9.0

    def test_blank_items_dropped(self, make_item):
        items = normalize_items([make_item("  ", 0, 0), make_item("A", 0, 0)])
        assert [i.text for i in items] == ["A"]


class TestLineReconstruction:
    def test_groups_by_y_tolerance_top_first(self, make_item):
        lines = group_into_lines(normalize_items([
            make_item("lower", 10, 680),
            make_item("B", 60, 699),
            make_item("A", 10, 700),
        ]))
        assert len(lines) == 2
        assert [i.text for i in lines[0].items] == ["A", "B"]
        assert lines[1].text == "lower"

    def test_items_sorted_by_x_within_line(self, make_item):
        lines = group_into_lines(normalize_items([
            make_item("third", 200, 500),
            make_item("first", 10, 501),
            make_item("second", 100, 499),
        ]))
        assert len(lines) == 1
        xs = [i.x for i in lines[0].items]
        assert xs == sorted(xs)

    def test_gap_separators(self):
        # avg char width of "AB" is 5: >12.5 column, >1.5 space, else joined
        items = [
            _text_item("AB", 0, 10),
            _text_item("C", 10.5, 5),
            _text_item("D", 18.0, 5),
            _text_item("E", 43.0, 5),
        ]
        assert build_line_text(items) == "ABC D" + COLUMN_BREAK + "E"

    def test_empty_line(self):
        assert build_line_text([]) == ""


class TestTableDetection:
    def test_four_aligned_lines_make_one_table(self, make_item):
        lines = _grid(make_item, [
            ["TYPE", "STUD", "HEIGHT"],
            ["A", "2x6", "9'"],
            ["B", "2x4", "8'"],
            ["C", "2x4", "8'"],
        ])
        tables = detect_tables(lines)

        assert len(tables) == 1
        table = tables[0]
        assert (table.start_line_index, table.end_line_index) == (0, 3)
        assert len(table.cells) == 4
        assert all(len(row) == len(table.column_bounds) == 3 for row in table.cells)
        assert table.header_row == ["TYPE", "STUD", "HEIGHT"]
        assert table.cells[1] == ["A", "2x6", "9'"]

    def test_two_lines_are_not_a_table(self, make_item):
        lines = _grid(make_item, [["TYPE", "STUD", "HEIGHT"], ["A", "2x6", "9'"]])
        assert detect_tables(lines) == []

    def test_single_column_line_breaks_run(self, make_item):
        rows = [["A", "B", "C"]] * 3
        items = []
        for idx, row in enumerate(rows):
            for text, x in zip(row, (50, 150, 250)):
                items.append(make_item(text, x, 700 - idx * 14))
        items.append(make_item("NOTES", 50, 700 - 3 * 14))
        for idx, row in enumerate(rows, start=4):
            for text, x in zip(row, (50, 150, 250)):
                items.append(make_item(text, x, 700 - idx * 14))

        tables = detect_tables(group_into_lines(normalize_items(items)))
        assert [(t.start_line_index, t.end_line_index) for t in tables] == [(0, 2), (4, 6)]

    def test_last_column_is_unbounded(self, make_item):
        lines = _grid(make_item, [["A", "B", "C"]] * 3)
        table = detect_tables(lines)[0]
        assert table.column_bounds[-1].x_max == float("inf")

    def test_column_buckets_round_to_tolerance(self, make_item):
        line = _grid(make_item, [["A", "B"]], xs=(50, 151))[0]
        assert column_buckets(line, 6.0) == [48.0, 150.0]


class TestExtractSpatialText:
    def test_raw_text_and_blocks(self, make_item):
        page = extract_spatial_text([
            make_item("FLOOR PLAN", 50, 700, font_size=20),
            make_item("KITCHEN", 50, 660),
            make_item("BATH", 50, 640),
        ], width=612, height=792)

        assert page.raw_text == "FLOOR PLAN KITCHEN BATH"
        assert [b.kind for b in page.text_blocks] == ["heading", "body", "body"]
        assert page.tables == []
        assert (page.width, page.height) == (612, 792)
