"""
List marker detection for Google Docs paragraphs.

Finds paragraphs whose text starts with a typed list marker ("- ", "1. ",
"a) ", ...) so they can be converted into real Docs lists. Detection is pure:
it reads a DocumentTree and never touches the API.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Collection, List, Optional, Tuple

from gdocs.docs_helpers import OffsetRange, SegmentMap, utf16_len
from gdocs.docs_structure import DocumentTree, Paragraph
from gdocs.observability import EventSink, NULL_SINK

logger = logging.getLogger(__name__)


class BulletStyle(str, Enum):
    """Bullet presets chosen for each kind of typed marker."""
    BULLET_DISC_CIRCLE_SQUARE = "BULLET_DISC_CIRCLE_SQUARE"
    NUMBERED_DECIMAL_NESTED = "NUMBERED_DECIMAL_NESTED"
    NUMBERED_UPPERALPHA_ALPHA_ROMAN = "NUMBERED_UPPERALPHA_ALPHA_ROMAN"


# Every preset createParagraphBullets accepts.
BULLET_PRESETS = [
    "BULLET_DISC_CIRCLE_SQUARE",
    "BULLET_DIAMONDX_ARROW3D_SQUARE",
    "BULLET_CHECKBOX",
    "BULLET_ARROW_DIAMOND_DISC",
    "BULLET_STAR_CIRCLE_SQUARE",
    "BULLET_ARROW3D_CIRCLE_SQUARE",
    "BULLET_LEFTTRIANGLE_DIAMOND_DISC",
    "BULLET_DIAMONDX_HOLLOWDIAMOND_SQUARE",
    "BULLET_DIAMOND_CIRCLE_SQUARE",
    "NUMBERED_DECIMAL_ALPHA_ROMAN",
    "NUMBERED_DECIMAL_ALPHA_ROMAN_PARENS",
    "NUMBERED_DECIMAL_NESTED",
    "NUMBERED_UPPERALPHA_ALPHA_ROMAN",
    "NUMBERED_UPPERROMAN_UPPERALPHA_DECIMAL",
    "NUMBERED_ZERODECIMAL_ALPHA_ROMAN",
]

# Checked in order; the first match wins. Trailing whitespace is horizontal
# only so the paragraph's newline is never part of a marker.
_MARKER_PATTERNS: List[Tuple[re.Pattern, BulletStyle]] = [
    (re.compile(r"[-*•][^\S\r\n]+"), BulletStyle.BULLET_DISC_CIRCLE_SQUARE),
    (re.compile(r"\d+[.)][^\S\r\n]+"), BulletStyle.NUMBERED_DECIMAL_NESTED),
    (re.compile(r"[a-zA-Z][.)][^\S\r\n]+"), BulletStyle.NUMBERED_UPPERALPHA_ALPHA_ROMAN),
]

_LEADING_WHITESPACE = re.compile(r"^[^\S\r\n]*")


@dataclass(frozen=True)
class ListMatch:
    """A paragraph that starts with a typed list marker."""
    paragraph_range: OffsetRange
    marker_start_index: int
    marker_length: int
    bullet_style: BulletStyle
    text: str
    # Position among all paragraphs in document order; stable across bullet creation
    paragraph_ordinal: int = 0

    @property
    def marker_range(self) -> OffsetRange:
        return OffsetRange(
            self.marker_start_index,
            self.marker_start_index + self.marker_length,
            self.paragraph_range.generation,
        )


def _find_marker(text: str) -> Optional[Tuple[BulletStyle, int, str]]:
    leading = _LEADING_WHITESPACE.match(text).end()
    for pattern, style in _MARKER_PATTERNS:
        match = pattern.match(text, leading)
        if match:
            return style, leading, match.group(0)
    return None


def classify_list_marker(text: str) -> Optional[Tuple[BulletStyle, int]]:
    """
    Classify the typed list marker at the start of text.

    Leading horizontal whitespace is ignored.

    Returns:
        (bullet_style, marker_length) with the length in UTF-16 units including
        trailing whitespace, or None when the text has no marker
    """
    found = _find_marker(text)
    if found is None:
        return None
    style, _, marker = found
    return style, utf16_len(marker)


def _match_paragraph(paragraph: Paragraph, generation: int, ordinal: int) -> Optional[ListMatch]:
    segment_map = SegmentMap(paragraph.iter_segments())
    found = _find_marker(segment_map.text)
    if found is None:
        return None
    style, leading, marker = found
    marker_end = leading + len(marker)

    # A marker split by an inline object cannot be deleted as one range.
    if not segment_map.is_contiguous(segment_map.segment_at(leading), segment_map.segment_at(marker_end - 1)):
        return None

    return ListMatch(
        paragraph_range=OffsetRange(paragraph.start_index, paragraph.end_index, generation),
        marker_start_index=segment_map.document_offset(leading),
        marker_length=utf16_len(marker),
        bullet_style=style,
        text=segment_map.text,
        paragraph_ordinal=ordinal,
    )


def detect_list_paragraphs(
    tree: DocumentTree,
    range_filter: Optional[OffsetRange] = None,
    bulleted_only: bool = False,
    sink: Optional[EventSink] = None,
    paragraph_ordinals: Optional[Collection[int]] = None,
) -> List[ListMatch]:
    """
    Find every paragraph, including those inside table cells, that starts
    with a typed list marker.

    Args:
        tree: Document snapshot
        range_filter: Keep only paragraphs overlapping this range
        bulleted_only: Keep only paragraphs that already carry a bullet
        sink: Event sink for diagnostics
        paragraph_ordinals: Keep only paragraphs at these document-order
            positions (ListMatch.paragraph_ordinal from an earlier snapshot)

    Returns:
        Matches in document order
    """
    sink = sink or NULL_SINK
    matches = []
    for ordinal, paragraph in enumerate(tree.iter_paragraphs()):
        if paragraph_ordinals is not None and ordinal not in paragraph_ordinals:
            continue
        if range_filter is not None and not (
            paragraph.start_index < range_filter.end_index
            and range_filter.start_index < paragraph.end_index
        ):
            continue
        if bulleted_only and not paragraph.bullet:
            continue
        match = _match_paragraph(paragraph, tree.generation, ordinal)
        if match:
            matches.append(match)

    sink.emit("list_detector.detected", matches=len(matches), bulleted_only=bulleted_only)
    return sorted(matches, key=lambda m: m.paragraph_range.start_index)
