"""
Unit tests for Google Docs document structure parsing and the structural locators.

These tests verify:
- parse_document_tree node variants and tab selection
- flatten_document ordering and round-trip reconstruction
- find_enclosing_paragraph, including paragraphs inside table cells
- find_table_near_index tolerance window
- get_table_cell_range content ranges and bounds checking
- Tab helpers
"""
import pytest

from gdocs.docs_helpers import OffsetRange
from gdocs.docs_structure import (
    Paragraph,
    SectionBreak,
    Table,
    find_enclosing_paragraph,
    find_tab_by_id,
    find_table_near_index,
    flatten_document,
    get_all_tabs,
    get_body_for_tab,
    get_tab_text_length,
    get_table_cell_range,
    parse_document_tree,
)
from gdocs.errors import ErrorCode, OutOfBoundsError, TargetNotFoundError
from gdocs.observability import RecordingEventSink


class TestParseDocumentTree:
    """Tests for parse_document_tree."""

    def test_node_variants(self, doc_builder):
        builder = doc_builder()
        builder.paragraph("Title", named_style="TITLE")
        builder.table([["a", "b"]])
        builder.section_break()
        builder.paragraph("After")

        tree = parse_document_tree(builder.build(), generation=2)

        assert [type(node) for node in tree.content] == [SectionBreak, Paragraph, Table, SectionBreak, Paragraph]
        assert tree.document_id == "doc123"
        assert tree.title == "Test Doc"
        assert tree.revision_id == "rev-1"
        assert tree.generation == 2
        assert tree.content[1].named_style_type == "TITLE"
        assert tree.content[1].text == "Title\n"

    def test_table_dimensions(self, doc_builder):
        builder = doc_builder()
        builder.table([["a", "b", "c"], ["d", "e", "f"]])
        table = parse_document_tree(builder.build()).tables[0]
        assert table.row_count == 2
        assert table.column_count == 3
        assert table.cell(1, 2).text == "f\n"

    def test_unknown_elements_are_skipped(self, doc_builder):
        doc = doc_builder().build()
        doc["body"]["content"].append({"startIndex": 1, "endIndex": 2, "somethingNew": {}})
        tree = parse_document_tree(doc)
        assert len(tree.content) == 1

    def test_inline_objects_are_not_runs(self, doc_builder):
        builder = doc_builder()
        builder.paragraph(["Before ", None, " after"])
        paragraph = parse_document_tree(builder.build()).content[1]
        assert [run.text for run in paragraph.runs] == ["Before ", " after\n"]

    def test_empty_document(self):
        tree = parse_document_tree({"documentId": "empty"})
        assert tree.content == []
        assert tree.end_index == 1


class TestGetBodyForTab:
    """Tests for get_body_for_tab."""

    def test_legacy_body(self, doc_builder):
        doc = doc_builder().build()
        assert get_body_for_tab(doc) is doc["body"]

    def test_first_tab_by_default(self, doc_builder):
        doc = doc_builder().build_with_tabs(tab_id="t.first")
        assert get_body_for_tab(doc) is doc["tabs"][0]["documentTab"]["body"]

    def test_specific_child_tab(self, doc_builder):
        doc = doc_builder().build_with_tabs()
        child_body = {"content": []}
        doc["tabs"][0]["childTabs"] = [{
            "tabProperties": {"tabId": "t.child", "title": "Child", "index": 0, "parentTabId": "t.0"},
            "documentTab": {"body": child_body},
        }]
        assert get_body_for_tab(doc, "t.child") is child_body

    def test_unknown_tab_is_not_found(self, doc_builder):
        doc = doc_builder().build_with_tabs(tab_id="t.0")
        with pytest.raises(TargetNotFoundError) as exc_info:
            get_body_for_tab(doc, "t.missing")
        assert exc_info.value.code == ErrorCode.TAB_NOT_FOUND.value
        assert exc_info.value.error.context.expected == {"tab_id": ["t.0"]}

    def test_tab_id_on_legacy_document_is_not_found(self, doc_builder):
        with pytest.raises(TargetNotFoundError):
            get_body_for_tab(doc_builder().build(), "t.0")


class TestFlattenDocument:
    """Tests for flatten_document."""

    def test_round_trip_reconstruction(self, doc_builder):
        """Concatenated segments equal the document's run text in order."""
        builder = doc_builder()
        builder.paragraph("Intro")
        builder.table([["a1", "b1"], ["a2", "b2"]])
        builder.paragraph(["Mixed ", "runs"])
        tree = parse_document_tree(builder.build())

        segments = flatten_document(tree)

        assert "".join(seg.text for seg in segments) == "Intro\na1\nb1\na2\nb2\nMixed runs\n"
        assert [seg.start_index for seg in segments] == sorted(seg.start_index for seg in segments)

    def test_segments_never_overlap(self, doc_builder):
        builder = doc_builder()
        builder.paragraph("One")
        builder.table([["x", "y"]])
        builder.paragraph("Two")
        segments = flatten_document(parse_document_tree(builder.build()))
        for previous, current in zip(segments, segments[1:]):
            assert previous.end_index <= current.start_index

    def test_table_cells_leave_gaps(self, doc_builder):
        builder = doc_builder()
        builder.table([["A", "B"]])
        segments = flatten_document(parse_document_tree(builder.build()))
        assert segments[0].end_index < segments[1].start_index

    def test_runs_without_offsets_are_skipped(self, doc_builder):
        doc = doc_builder().build()
        doc["body"]["content"].append({
            "startIndex": 1,
            "endIndex": 3,
            "paragraph": {"elements": [{"textRun": {"content": "x\n"}}]},
        })
        assert flatten_document(parse_document_tree(doc)) == []


class TestFindEnclosingParagraph:
    """Tests for find_enclosing_paragraph."""

    def test_top_level_paragraph(self, doc_builder):
        builder = doc_builder()
        builder.paragraph("First")    # 1-7
        builder.paragraph("Second")   # 7-14
        tree = parse_document_tree(builder.build(), generation=5)

        found = find_enclosing_paragraph(tree, 9)

        assert found == OffsetRange(7, 14, 5)

    def test_end_index_is_exclusive(self, doc_builder):
        builder = doc_builder()
        builder.paragraph("First")
        builder.paragraph("Second")
        tree = parse_document_tree(builder.build())
        assert find_enclosing_paragraph(tree, 7).start_index == 7

    def test_paragraph_inside_table_cell(self, doc_builder):
        builder = doc_builder().pad_to(50)
        builder.table([["a", "b", "c"], ["d", "e", "Total"]])
        tree = parse_document_tree(builder.build())

        assert find_enclosing_paragraph(tree, 70) == OffsetRange(69, 75, 0)

    def test_table_structural_index_has_no_paragraph(self, doc_builder):
        builder = doc_builder().pad_to(50)
        builder.table([["a"]])
        tree = parse_document_tree(builder.build())
        assert find_enclosing_paragraph(tree, 50) is None

    def test_section_break_and_out_of_range(self, doc_builder):
        builder = doc_builder()
        builder.paragraph("Only")
        tree = parse_document_tree(builder.build())
        assert find_enclosing_paragraph(tree, 0) is None
        assert find_enclosing_paragraph(tree, 500) is None


class TestFindTableNearIndex:
    """Tests for find_table_near_index."""

    def _tree(self, doc_builder):
        builder = doc_builder().pad_to(20)
        builder.table([["a"]])         # 20
        builder.pad_to(100)
        builder.table([["b"]])         # 100
        return parse_document_tree(builder.build())

    def test_exact_start(self, doc_builder):
        assert find_table_near_index(self._tree(doc_builder), 100, tolerance=10).start_index == 100

    def test_within_tolerance(self, doc_builder):
        assert find_table_near_index(self._tree(doc_builder), 95, tolerance=10).start_index == 100
        assert find_table_near_index(self._tree(doc_builder), 104, tolerance=10).start_index == 100

    def test_closest_within_tolerance_wins(self, doc_builder):
        assert find_table_near_index(self._tree(doc_builder), 70, tolerance=50).start_index == 100
        assert find_table_near_index(self._tree(doc_builder), 55, tolerance=50).start_index == 20

    def test_falls_back_to_first_following_table(self, doc_builder):
        sink = RecordingEventSink()
        table = find_table_near_index(self._tree(doc_builder), 40, tolerance=5, sink=sink)
        assert table.start_index == 100
        assert sink.find("table_locator.matched")[0]["strategy"] == "following"

    def test_none_after_last_table(self, doc_builder):
        sink = RecordingEventSink()
        assert find_table_near_index(self._tree(doc_builder), 150, tolerance=5, sink=sink) is None
        assert sink.names() == ["table_locator.not_found"]

    def test_tolerance_from_environment(self, doc_builder, monkeypatch):
        tree = self._tree(doc_builder)
        monkeypatch.setenv("TABLE_ANCHOR_TOLERANCE", "0")
        # 97 is not exactly a table start, so the following table is used
        sink = RecordingEventSink()
        assert find_table_near_index(tree, 97, sink=sink).start_index == 100
        assert sink.find("table_locator.matched")[0]["strategy"] == "following"


class TestGetTableCellRange:
    """Tests for get_table_cell_range."""

    def _tree(self, doc_builder):
        builder = doc_builder().pad_to(50)
        builder.table([["a", "", "c"], ["d", "e", "Total"]])
        return parse_document_tree(builder.build(), generation=3)

    def test_stale_anchor_resolves_cell(self, doc_builder):
        """2x3 table at 50, anchor 48 -> cell (1, 2)."""
        cell = get_table_cell_range(self._tree(doc_builder), 48, 1, 2, tolerance=10)

        assert cell.table_start_index == 50
        assert (cell.row, cell.column) == (1, 2)
        assert cell.cell_start_index == 67
        assert cell.cell_end_index == 74
        assert cell.content_start_index == 68
        assert cell.content_end_index == 73
        assert cell.has_content is True
        assert cell.generation == 3

    def test_content_range_excludes_trailing_newline(self, doc_builder):
        cell = get_table_cell_range(self._tree(doc_builder), 50, 0, 0, tolerance=10)
        assert cell.content_range == OffsetRange(53, 54, 3)

    def test_empty_cell(self, doc_builder):
        cell = get_table_cell_range(self._tree(doc_builder), 50, 0, 1, tolerance=10)
        assert cell.has_content is False
        assert cell.content_start_index == cell.content_end_index == cell.cell_start_index + 1

    def test_row_out_of_bounds(self, doc_builder):
        with pytest.raises(OutOfBoundsError) as exc_info:
            get_table_cell_range(self._tree(doc_builder), 50, 5, 0, tolerance=10)
        assert exc_info.value.code == ErrorCode.CELL_OUT_OF_BOUNDS.value
        assert exc_info.value.error.context.table_dimensions == {"rows": 2, "columns": 3}

    def test_column_out_of_bounds(self, doc_builder):
        with pytest.raises(OutOfBoundsError):
            get_table_cell_range(self._tree(doc_builder), 50, 0, 3, tolerance=10)

    def test_negative_coordinates(self, doc_builder):
        with pytest.raises(OutOfBoundsError):
            get_table_cell_range(self._tree(doc_builder), 50, -1, 0, tolerance=10)

    def test_no_table(self, doc_builder):
        assert get_table_cell_range(self._tree(doc_builder), 200, 0, 0, tolerance=10) is None

    def test_to_dict(self, doc_builder):
        cell = get_table_cell_range(self._tree(doc_builder), 50, 0, 0, tolerance=10)
        data = cell.to_dict()
        assert data["table_start_index"] == 50
        assert "generation" not in data


class TestTabs:
    """Tests for tab helpers."""

    def _doc(self):
        return {
            "documentId": "doc123",
            "tabs": [
                {
                    "tabProperties": {"tabId": "t.0", "title": "Main", "index": 0},
                    "documentTab": {"body": {"content": [
                        {"startIndex": 1, "endIndex": 8, "paragraph": {"elements": [
                            {"startIndex": 1, "endIndex": 8, "textRun": {"content": "Hi 😀!\n"}},
                        ]}},
                    ]}},
                    "childTabs": [{
                        "tabProperties": {"tabId": "t.1", "title": "Notes", "index": 0, "parentTabId": "t.0"},
                        "documentTab": {"body": {"content": []}},
                    }],
                },
                {
                    "tabProperties": {"tabId": "t.2", "title": "Appendix", "index": 1},
                    "documentTab": {"body": {"content": []}},
                },
            ],
        }

    def test_find_nested_tab(self):
        assert find_tab_by_id(self._doc(), "t.1")["tabProperties"]["title"] == "Notes"
        assert find_tab_by_id(self._doc(), "t.9") is None

    def test_text_length_counts_utf16_units(self):
        main = self._doc()["tabs"][0]["documentTab"]
        assert get_tab_text_length(main) == 7
        assert get_tab_text_length(None) == 0

    def test_all_tabs_flattened_depth_first(self):
        tabs = get_all_tabs(self._doc())
        assert [tab["tab_id"] for tab in tabs] == ["t.0", "t.1", "t.2"]
        assert [tab["level"] for tab in tabs] == [0, 1, 0]
        assert tabs[1]["parent_tab_id"] == "t.0"
        assert tabs[0]["text_length"] == 7
