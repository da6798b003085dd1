"""
Unit tests for the text locator and request builders in docs_helpers.

These tests verify:
- UTF-16 offset arithmetic
- Occurrence counting, case folding and structural gap rejection
- No-op elision in the request builders
- tabId propagation
"""
import pytest

from gdocs.docs_helpers import (
    OffsetRange,
    SegmentMap,
    TextSegment,
    build_paragraph_style,
    build_text_style,
    create_bullet_list_request,
    create_delete_bullets_request,
    create_delete_range_request,
    create_format_text_request,
    create_insert_image_request,
    create_insert_table_request,
    create_insert_text_request,
    create_paragraph_style_request,
    find_all_text_ranges,
    find_text_range,
    utf16_len,
)
from gdocs.observability import RecordingEventSink


class TestUtf16Len:
    """Tests for utf16_len."""

    def test_ascii(self):
        assert utf16_len("Hello") == 5

    def test_bmp_characters_count_once(self):
        assert utf16_len("café •") == 6

    def test_astral_characters_count_twice(self):
        """Emoji outside the BMP take a surrogate pair."""
        assert utf16_len("a😀b") == 4

    def test_empty(self):
        assert utf16_len("") == 0


class TestOffsetRange:
    """Tests for OffsetRange."""

    def test_length_and_dict(self):
        offset_range = OffsetRange(5, 12, generation=3)
        assert offset_range.length == 7
        assert offset_range.to_dict() == {'start_index': 5, 'end_index': 12}

    def test_overlap_is_half_open(self):
        assert OffsetRange(1, 5).overlaps(OffsetRange(4, 8))
        assert not OffsetRange(1, 5).overlaps(OffsetRange(5, 8))


class TestSegmentMap:
    """Tests for the logical text to document offset map."""

    def test_segments_are_sorted_and_concatenated(self):
        segment_map = SegmentMap([TextSegment("world\n", 7, 13), TextSegment("Hello ", 1, 7)])
        assert segment_map.text == "Hello world\n"
        assert segment_map.starts == [0, 6]

    def test_document_offset_maps_through_segment(self):
        segment_map = SegmentMap([TextSegment("ab\n", 1, 4), TextSegment("cd\n", 10, 13)])
        assert segment_map.document_offset(0) == 1
        assert segment_map.document_offset(3) == 10
        assert segment_map.document_offset(4, inclusive_end=True) == 12

    def test_contiguity(self):
        segment_map = SegmentMap([TextSegment("ab", 1, 3), TextSegment("cd", 3, 5), TextSegment("ef", 9, 11)])
        assert segment_map.is_contiguous(0, 1)
        assert not segment_map.is_contiguous(1, 2)


class TestFindTextRange:
    """Tests for find_text_range."""

    def setup_method(self):
        self.segments = [TextSegment("Hello world. Hello again.\n", 1, 27)]

    def test_first_occurrence(self):
        assert find_text_range(self.segments, "Hello") == OffsetRange(1, 6)

    def test_second_occurrence(self):
        """Hello world. Hello again. -> second Hello at 14-19."""
        assert find_text_range(self.segments, "Hello", occurrence=2) == OffsetRange(14, 19)

    def test_occurrence_past_count_returns_none(self):
        assert find_text_range(self.segments, "Hello", occurrence=3) is None

    def test_occurrences_are_monotonic(self):
        starts = [find_text_range(self.segments, "l", occurrence=n).start_index for n in range(1, 6)]
        assert starts == sorted(starts)
        assert len(set(starts)) == 5

    def test_matches_do_not_overlap(self):
        segments = [TextSegment("aaaa\n", 1, 6)]
        assert find_text_range(segments, "aa", occurrence=1) == OffsetRange(1, 3)
        assert find_text_range(segments, "aa", occurrence=2) == OffsetRange(3, 5)
        assert find_text_range(segments, "aa", occurrence=3) is None

    def test_case_insensitive(self):
        assert find_text_range(self.segments, "hello", match_case=True) is None
        assert find_text_range(self.segments, "hello", match_case=False) == OffsetRange(1, 6)

    def test_generation_is_stamped(self):
        assert find_text_range(self.segments, "world", generation=4).generation == 4

    def test_match_across_contiguous_runs(self):
        """Runs split by a style change are still one stretch of text."""
        segments = [TextSegment("Hel", 1, 4), TextSegment("lo\n", 4, 7)]
        assert find_text_range(segments, "Hello") == OffsetRange(1, 6)

    def test_match_across_structural_gap_is_rejected(self):
        """Cell A1 ends with "foo", cell B1 starts with "bar": "foobar" is not a match."""
        segments = [TextSegment("foo", 5, 8), TextSegment("bar", 11, 14)]
        sink = RecordingEventSink()
        assert find_text_range(segments, "foobar", sink=sink) is None
        assert "text_locator.match_rejected" in sink.names()

    def test_rejected_match_does_not_consume_occurrence(self):
        segments = [TextSegment("ab", 1, 3), TextSegment("ab\n", 10, 13)]
        # "bab" spans the gap; "ab" at 10 is still occurrence 2
        assert find_text_range(segments, "ab", occurrence=2) == OffsetRange(10, 12)
        assert find_text_range(segments, "bab") is None

    def test_search_resumes_after_rejected_start(self):
        segments = [TextSegment("a", 1, 2), TextSegment("aa\n", 5, 8)]
        # "aa" at logical 0 crosses the gap; the one at logical 1 starts inside it
        assert find_text_range(segments, "aa") == OffsetRange(5, 7)

    def test_offsets_count_utf16_units(self):
        segments = [TextSegment("😀 smile\n", 1, 10)]
        assert find_text_range(segments, "smile") == OffsetRange(4, 9)

    def test_empty_needle_raises(self):
        with pytest.raises(ValueError):
            find_text_range(self.segments, "")

    def test_zero_occurrence_raises(self):
        with pytest.raises(ValueError):
            find_text_range(self.segments, "Hello", occurrence=0)

    def test_events(self):
        sink = RecordingEventSink()
        find_text_range(self.segments, "Hello", sink=sink)
        find_text_range(self.segments, "absent", sink=sink)
        assert sink.names() == ["text_locator.found", "text_locator.not_found"]
        assert sink.find("text_locator.not_found")[0]["matches"] == 0

    def test_no_segments(self):
        assert find_text_range([], "Hello") is None


class TestFindAllTextRanges:
    """Tests for find_all_text_ranges."""

    def test_all_matches_in_order(self):
        segments = [TextSegment("Hello world. Hello again.\n", 1, 27)]
        assert find_all_text_ranges(segments, "Hello") == [OffsetRange(1, 6), OffsetRange(14, 19)]

    def test_gap_matches_excluded(self):
        segments = [TextSegment("ab", 1, 3), TextSegment("ab", 10, 12)]
        assert len(find_all_text_ranges(segments, "ab")) == 2
        assert find_all_text_ranges(segments, "ba") == []


class TestStyleBuilders:
    """Tests for build_text_style and build_paragraph_style."""

    def test_text_style_fields(self):
        style, fields = build_text_style(bold=True, font_size=14, foreground_color="#FF0000")
        assert style['bold'] is True
        assert style['fontSize'] == {'magnitude': 14, 'unit': 'PT'}
        assert style['foregroundColor']['color']['rgbColor'] == {'red': 1.0, 'green': 0.0, 'blue': 0.0}
        assert fields == ['bold', 'fontSize', 'foregroundColor']

    def test_false_is_a_value(self):
        style, fields = build_text_style(bold=False)
        assert style == {'bold': False}
        assert fields == ['bold']

    def test_short_hex_and_named_colors(self):
        style, _ = build_text_style(background_color="#0F0", foreground_color="blue")
        assert style['backgroundColor']['color']['rgbColor']['green'] == 1.0
        assert style['foregroundColor']['color']['rgbColor']['blue'] == 1.0

    def test_invalid_color_raises(self):
        with pytest.raises(ValueError):
            build_text_style(foreground_color="#GGGGGG")

    def test_empty_link_removes_link(self):
        style, fields = build_text_style(link="")
        assert style['link'] is None
        assert fields == ['link']

    def test_paragraph_alignment_aliases(self):
        style, fields = build_paragraph_style(alignment="left")
        assert style['alignment'] == 'START'
        assert fields == ['alignment']

    def test_paragraph_spacing(self):
        style, fields = build_paragraph_style(space_above=12, named_style_type="HEADING_2")
        assert style['spaceAbove'] == {'magnitude': 12, 'unit': 'PT'}
        assert style['namedStyleType'] == 'HEADING_2'
        assert fields == ['spaceAbove', 'namedStyleType']


class TestRequestBuilders:
    """Tests for the create_*_request helpers."""

    def test_insert_text(self):
        request = create_insert_text_request(5, "Hi")
        assert request == {'insertText': {'location': {'index': 5}, 'text': 'Hi'}}

    def test_insert_empty_text_is_elided(self):
        assert create_insert_text_request(5, "") is None
        assert create_insert_text_request(5, None) is None

    def test_delete_range(self):
        request = create_delete_range_request(5, 9)
        assert request['deleteContentRange']['range'] == {'startIndex': 5, 'endIndex': 9}

    def test_empty_delete_is_elided(self):
        assert create_delete_range_request(5, 5) is None

    def test_format_text_without_fields_is_elided(self):
        assert create_format_text_request(1, 5) is None

    def test_format_text(self):
        request = create_format_text_request(1, 5, bold=True, italic=False)
        assert request['updateTextStyle']['fields'] == 'bold,italic'
        assert request['updateTextStyle']['range'] == {'startIndex': 1, 'endIndex': 5}

    def test_paragraph_style_without_fields_is_elided(self):
        assert create_paragraph_style_request(1, 5) is None

    def test_paragraph_style(self):
        request = create_paragraph_style_request(1, 5, alignment="CENTER")
        assert request['updateParagraphStyle']['paragraphStyle'] == {'alignment': 'CENTER'}
        assert request['updateParagraphStyle']['fields'] == 'alignment'

    def test_insert_table(self):
        request = create_insert_table_request(10, 2, 3)
        assert request == {'insertTable': {'location': {'index': 10}, 'rows': 2, 'columns': 3}}

    def test_insert_image_size_requires_both_dimensions(self):
        request = create_insert_image_request(3, "https://example.com/a.png", width=100)
        assert 'objectSize' not in request['insertInlineImage']

        request = create_insert_image_request(3, "https://example.com/a.png", width=100, height=50)
        assert request['insertInlineImage']['objectSize']['height'] == {'magnitude': 50, 'unit': 'PT'}

    def test_bullets(self):
        create = create_bullet_list_request(1, 20, "NUMBERED_DECIMAL_NESTED")
        assert create['createParagraphBullets']['bulletPreset'] == 'NUMBERED_DECIMAL_NESTED'
        delete = create_delete_bullets_request(1, 20)
        assert delete['deleteParagraphBullets']['range'] == {'startIndex': 1, 'endIndex': 20}

    @pytest.mark.parametrize("request_dict,path", [
        (create_insert_text_request(1, "x", tab_id="t.1"), ('insertText', 'location')),
        (create_delete_range_request(1, 3, tab_id="t.1"), ('deleteContentRange', 'range')),
        (create_format_text_request(1, 3, bold=True, tab_id="t.1"), ('updateTextStyle', 'range')),
        (create_insert_table_request(1, 1, 1, tab_id="t.1"), ('insertTable', 'location')),
        (create_bullet_list_request(1, 3, tab_id="t.1"), ('createParagraphBullets', 'range')),
    ])
    def test_tab_id_propagates(self, request_dict, path):
        kind, key = path
        assert request_dict[kind][key]['tabId'] == "t.1"
