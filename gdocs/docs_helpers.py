"""
Google Docs Helper Functions

This module provides the text locator and the request builders used by the
document editing managers. Every builder returns a Google Docs API request
dict, or None when the request would be a no-op.
"""
import bisect
import logging
import re
from dataclasses import dataclass
from typing import Dict, Any, Iterable, NamedTuple, Optional, Tuple, List

from gdocs.observability import EventSink, NULL_SINK

logger = logging.getLogger(__name__)


def utf16_len(text: str) -> int:
    """Length of text in UTF-16 code units, the unit Docs API indices count in."""
    return len(text.encode('utf-16-le')) // 2


class TextSegment(NamedTuple):
    """A run of searchable text and its absolute document offsets."""
    text: str
    start_index: int
    end_index: int


@dataclass(frozen=True)
class OffsetRange:
    """
    Half-open range of document offsets.

    generation records the snapshot the range was computed from, or None
    when the caller supplied the offsets directly.
    """
    start_index: int
    end_index: int
    generation: Optional[int] = None

    @property
    def length(self) -> int:
        return self.end_index - self.start_index

    def overlaps(self, other: "OffsetRange") -> bool:
        return self.start_index < other.end_index and other.start_index < self.end_index

    def to_dict(self) -> Dict[str, int]:
        return {'start_index': self.start_index, 'end_index': self.end_index}


def _api_range(start_index: int, end_index: int, tab_id: Optional[str] = None) -> Dict[str, Any]:
    api_range = {'startIndex': start_index, 'endIndex': end_index}
    if tab_id:
        api_range['tabId'] = tab_id
    return api_range


def _api_location(index: int, tab_id: Optional[str] = None) -> Dict[str, Any]:
    location = {'index': index}
    if tab_id:
        location['tabId'] = tab_id
    return location


# =============================================================================
# Text Locator
# =============================================================================

class SegmentMap:
    """Concatenated segment text with a prefix map back to document offsets."""

    def __init__(self, segments: Iterable[TextSegment]):
        self.segments = sorted(segments, key=lambda seg: seg.start_index)
        self.starts: List[int] = []
        position = 0
        for seg in self.segments:
            self.starts.append(position)
            position += len(seg.text)
        self.text = ''.join(seg.text for seg in self.segments)

    def segment_at(self, position: int) -> int:
        return bisect.bisect_right(self.starts, position) - 1

    def document_offset(self, position: int, inclusive_end: bool = False) -> int:
        k = self.segment_at(position)
        seg = self.segments[k]
        local = position - self.starts[k] + (1 if inclusive_end else 0)
        return seg.start_index + utf16_len(seg.text[:local])

    def is_contiguous(self, first: int, last: int) -> bool:
        for k in range(first, last):
            if self.segments[k].end_index != self.segments[k + 1].start_index:
                return False
        return True


def _iter_matches(
    segments: Iterable[TextSegment],
    needle: str,
    match_case: bool,
    sink: EventSink,
):
    if not needle:
        raise ValueError("Search text cannot be empty")

    logical = SegmentMap(segments)
    pattern = re.compile(re.escape(needle), 0 if match_case else re.IGNORECASE)
    position = 0
    while True:
        found = pattern.search(logical.text, position)
        if found is None:
            return
        match_start, match_end = found.start(), found.end()
        first_seg = logical.segment_at(match_start)
        last_seg = logical.segment_at(match_end - 1)
        if not logical.is_contiguous(first_seg, last_seg):
            sink.emit(
                "text_locator.match_rejected",
                needle=needle,
                logical_position=match_start,
                reason="structural gap",
            )
            position = match_start + 1
            continue
        yield (
            logical.document_offset(match_start),
            logical.document_offset(match_end - 1, inclusive_end=True),
        )
        position = match_end


def find_text_range(
    segments: Iterable[TextSegment],
    needle: str,
    occurrence: int = 1,
    match_case: bool = True,
    sink: Optional[EventSink] = None,
    generation: Optional[int] = None,
) -> Optional[OffsetRange]:
    """
    Locate the Nth non-overlapping occurrence of needle in the flattened text.

    Matches that straddle a structural gap (consecutive segments whose offsets
    are not contiguous) are rejected and do not count as an occurrence.

    Args:
        segments: Flattened text segments, see docs_structure.flatten_document
        needle: Text to search for
        occurrence: Which occurrence to return (1 = first)
        match_case: Whether to match case exactly
        sink: Event sink for diagnostics
        generation: Snapshot generation stamped onto the returned range

    Returns:
        OffsetRange of the match, or None if fewer matches exist

    Raises:
        ValueError: needle is empty or occurrence < 1
    """
    if occurrence < 1:
        raise ValueError(f"Occurrence must be >= 1, got {occurrence}")
    sink = sink or NULL_SINK

    count = 0
    for start, end in _iter_matches(segments, needle, match_case, sink):
        count += 1
        if count == occurrence:
            sink.emit("text_locator.found", needle=needle, occurrence=occurrence,
                      start_index=start, end_index=end)
            return OffsetRange(start, end, generation)

    sink.emit("text_locator.not_found", level=logging.INFO, needle=needle,
              occurrence=occurrence, matches=count)
    return None


def find_all_text_ranges(
    segments: Iterable[TextSegment],
    needle: str,
    match_case: bool = True,
    sink: Optional[EventSink] = None,
    generation: Optional[int] = None,
) -> List[OffsetRange]:
    """Every valid non-overlapping occurrence of needle, in document order."""
    return [
        OffsetRange(start, end, generation)
        for start, end in _iter_matches(segments, needle, match_case, sink or NULL_SINK)
    ]


# =============================================================================
# Style builders
# =============================================================================

PARAGRAPH_ALIGNMENTS = ['START', 'CENTER', 'END', 'JUSTIFIED']

NAMED_STYLE_TYPES = [
    'NORMAL_TEXT', 'TITLE', 'SUBTITLE',
    'HEADING_1', 'HEADING_2', 'HEADING_3', 'HEADING_4', 'HEADING_5', 'HEADING_6',
]

# Accepted aliases for alignment values.
_ALIGNMENT_ALIASES = {'LEFT': 'START', 'RIGHT': 'END', 'JUSTIFY': 'JUSTIFIED'}


def _parse_color(color_str: str) -> Dict[str, Any]:
    """
    Parse a color string (hex or named) to Google Docs API color format.

    Args:
        color_str: Color as hex (#FF0000, #F00) or CSS named color

    Returns:
        Dictionary with rgbColor format for Google Docs API
    """
    if color_str.startswith('#'):
        hex_color = color_str.lstrip('#')
        # #F00 -> #FF0000
        if len(hex_color) == 3:
            hex_color = ''.join(c*2 for c in hex_color)
        if len(hex_color) != 6 or not re.fullmatch(r'[0-9a-fA-F]{6}', hex_color):
            raise ValueError(f"Invalid hex color: {color_str}")
        r = int(hex_color[0:2], 16) / 255.0
        g = int(hex_color[2:4], 16) / 255.0
        b = int(hex_color[4:6], 16) / 255.0
        return {'color': {'rgbColor': {'red': r, 'green': g, 'blue': b}}}

    named_colors = {
        'red': (1.0, 0.0, 0.0),
        'green': (0.0, 1.0, 0.0),
        'blue': (0.0, 0.0, 1.0),
        'yellow': (1.0, 1.0, 0.0),
        'orange': (1.0, 0.65, 0.0),
        'purple': (0.5, 0.0, 0.5),
        'black': (0.0, 0.0, 0.0),
        'white': (1.0, 1.0, 1.0),
        'gray': (0.5, 0.5, 0.5),
        'grey': (0.5, 0.5, 0.5),
    }
    color_lower = color_str.lower()
    if color_lower in named_colors:
        r, g, b = named_colors[color_lower]
        return {'color': {'rgbColor': {'red': r, 'green': g, 'blue': b}}}

    raise ValueError(f"Unknown color format: {color_str}. Use hex (#FF0000) or named colors.")


def build_text_style(
    bold: bool = None,
    italic: bool = None,
    underline: bool = None,
    strikethrough: bool = None,
    font_size: float = None,
    font_family: str = None,
    link: str = None,
    foreground_color: str = None,
    background_color: str = None,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Build text style object for Google Docs API requests.

    Args:
        bold: Whether text should be bold
        italic: Whether text should be italic
        underline: Whether text should be underlined
        strikethrough: Whether text should have strikethrough
        font_size: Font size in points
        font_family: Font family name
        link: URL to create a hyperlink (use empty string "" to remove existing link)
        foreground_color: Text color as hex (#FF0000) or named color (red, blue, etc.)
        background_color: Background/highlight color as hex or named color

    Returns:
        Tuple of (text_style_dict, list_of_field_names)
    """
    text_style = {}
    fields = []

    if bold is not None:
        text_style['bold'] = bold
        fields.append('bold')

    if italic is not None:
        text_style['italic'] = italic
        fields.append('italic')

    if underline is not None:
        text_style['underline'] = underline
        fields.append('underline')

    if strikethrough is not None:
        text_style['strikethrough'] = strikethrough
        fields.append('strikethrough')

    if font_size is not None:
        text_style['fontSize'] = {'magnitude': font_size, 'unit': 'PT'}
        fields.append('fontSize')

    if font_family is not None:
        text_style['weightedFontFamily'] = {'fontFamily': font_family}
        fields.append('weightedFontFamily')

    if link is not None:
        if link == "":
            # Empty string removes the link
            text_style['link'] = None
        else:
            text_style['link'] = {'url': link}
        fields.append('link')

    if foreground_color is not None:
        text_style['foregroundColor'] = _parse_color(foreground_color)
        fields.append('foregroundColor')

    if background_color is not None:
        text_style['backgroundColor'] = _parse_color(background_color)
        fields.append('backgroundColor')

    return text_style, fields


def build_paragraph_style(
    alignment: str = None,
    indent_start: float = None,
    indent_end: float = None,
    space_above: float = None,
    space_below: float = None,
    named_style_type: str = None,
    keep_with_next: bool = None,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Build paragraph style object for Google Docs API requests.

    Indents and spacing are in points. Alignment accepts the API values
    plus LEFT/RIGHT/JUSTIFY.

    Returns:
        Tuple of (paragraph_style_dict, list_of_field_names)
    """
    paragraph_style = {}
    fields = []

    if alignment is not None:
        value = alignment.upper()
        paragraph_style['alignment'] = _ALIGNMENT_ALIASES.get(value, value)
        fields.append('alignment')

    if indent_start is not None:
        paragraph_style['indentStart'] = {'magnitude': indent_start, 'unit': 'PT'}
        fields.append('indentStart')

    if indent_end is not None:
        paragraph_style['indentEnd'] = {'magnitude': indent_end, 'unit': 'PT'}
        fields.append('indentEnd')

    if space_above is not None:
        paragraph_style['spaceAbove'] = {'magnitude': space_above, 'unit': 'PT'}
        fields.append('spaceAbove')

    if space_below is not None:
        paragraph_style['spaceBelow'] = {'magnitude': space_below, 'unit': 'PT'}
        fields.append('spaceBelow')

    if named_style_type is not None:
        paragraph_style['namedStyleType'] = named_style_type
        fields.append('namedStyleType')

    if keep_with_next is not None:
        paragraph_style['keepWithNext'] = keep_with_next
        fields.append('keepWithNext')

    return paragraph_style, fields


# =============================================================================
# Request builders
# =============================================================================

def create_insert_text_request(
    index: int,
    text: str,
    tab_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Create an insertText request for Google Docs API.

    Args:
        index: Position to insert text
        text: Text to insert
        tab_id: Optional tab to target

    Returns:
        Dictionary representing the insertText request, or None for empty text
    """
    if not text:
        return None
    return {
        'insertText': {
            'location': _api_location(index, tab_id),
            'text': text
        }
    }


def create_delete_range_request(
    start_index: int,
    end_index: int,
    tab_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Create a deleteContentRange request for Google Docs API.

    Returns None for an empty range.
    """
    if end_index <= start_index:
        return None
    return {
        'deleteContentRange': {
            'range': _api_range(start_index, end_index, tab_id)
        }
    }


def create_format_text_request(
    start_index: int,
    end_index: int,
    bold: bool = None,
    italic: bool = None,
    underline: bool = None,
    strikethrough: bool = None,
    font_size: float = None,
    font_family: str = None,
    link: str = None,
    foreground_color: str = None,
    background_color: str = None,
    tab_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Create an updateTextStyle request for Google Docs API.

    Args:
        start_index: Start position of text to format
        end_index: End position of text to format
        bold: Whether text should be bold
        italic: Whether text should be italic
        underline: Whether text should be underlined
        strikethrough: Whether text should have strikethrough
        font_size: Font size in points
        font_family: Font family name
        link: URL to create a hyperlink (use empty string "" to remove existing link)
        foreground_color: Text color as hex (#FF0000) or named color
        background_color: Background/highlight color as hex or named color
        tab_id: Optional tab to target

    Returns:
        Dictionary representing the updateTextStyle request, or None if no styles provided
    """
    text_style, fields = build_text_style(
        bold, italic, underline, strikethrough, font_size, font_family, link,
        foreground_color, background_color
    )

    if not fields:
        return None

    return {
        'updateTextStyle': {
            'range': _api_range(start_index, end_index, tab_id),
            'textStyle': text_style,
            'fields': ','.join(fields)
        }
    }


def create_paragraph_style_request(
    start_index: int,
    end_index: int,
    alignment: str = None,
    indent_start: float = None,
    indent_end: float = None,
    space_above: float = None,
    space_below: float = None,
    named_style_type: str = None,
    keep_with_next: bool = None,
    tab_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Create an updateParagraphStyle request for Google Docs API.

    Returns None if no style fields were provided.
    """
    paragraph_style, fields = build_paragraph_style(
        alignment, indent_start, indent_end, space_above, space_below,
        named_style_type, keep_with_next
    )

    if not fields:
        return None

    return {
        'updateParagraphStyle': {
            'range': _api_range(start_index, end_index, tab_id),
            'paragraphStyle': paragraph_style,
            'fields': ','.join(fields)
        }
    }


def create_insert_table_request(
    index: int,
    rows: int,
    columns: int,
    tab_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create an insertTable request for Google Docs API.

    The API inserts a newline at index first, so the table itself starts
    at index + 1.
    """
    return {
        'insertTable': {
            'location': _api_location(index, tab_id),
            'rows': rows,
            'columns': columns
        }
    }


def create_insert_image_request(
    index: int,
    image_uri: str,
    width: float = None,
    height: float = None,
    tab_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create an insertInlineImage request for Google Docs API.

    Args:
        index: Position to insert image
        image_uri: Public URL of the image
        width: Image width in points
        height: Image height in points
        tab_id: Optional tab to target

    Returns:
        Dictionary representing the insertInlineImage request. objectSize is
        only set when both width and height are given.
    """
    request = {
        'insertInlineImage': {
            'location': _api_location(index, tab_id),
            'uri': image_uri
        }
    }

    if width is not None and height is not None:
        request['insertInlineImage']['objectSize'] = {
            'width': {'magnitude': width, 'unit': 'PT'},
            'height': {'magnitude': height, 'unit': 'PT'},
        }

    return request


def create_bullet_list_request(
    start_index: int,
    end_index: int,
    bullet_preset: str = "BULLET_DISC_CIRCLE_SQUARE",
    tab_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a createParagraphBullets request for Google Docs API.

    Args:
        start_index: Start of text range to convert to list
        end_index: End of text range to convert to list
        bullet_preset: API bullet glyph preset
        tab_id: Optional tab to target
    """
    return {
        'createParagraphBullets': {
            'range': _api_range(start_index, end_index, tab_id),
            'bulletPreset': bullet_preset
        }
    }


def create_delete_bullets_request(
    start_index: int,
    end_index: int,
    tab_id: Optional[str] = None
) -> Dict[str, Any]:
    """Create a deleteParagraphBullets request for Google Docs API."""
    return {
        'deleteParagraphBullets': {
            'range': _api_range(start_index, end_index, tab_id)
        }
    }
