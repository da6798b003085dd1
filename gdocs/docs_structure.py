"""
Google Docs Document Structure Parsing and Navigation

This module parses the raw Google Docs API document into a tree of
structural nodes (paragraphs, tables, rows, cells, section breaks, tables of
contents) and provides the structural locators built on that tree: flattening
to text segments, finding the paragraph enclosing an offset, and resolving a
table cell coordinate to its offset ranges.

Every node carries half-open [start_index, end_index) offsets in UTF-16 code
units. Containers (tables, rows, cells) consume one index before their
content, so a cell's content starts at cell.start_index + 1.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from core.config import get_table_anchor_tolerance
from gdocs.docs_helpers import OffsetRange, TextSegment, utf16_len
from gdocs.errors import DocsErrorBuilder, OutOfBoundsError, TargetNotFoundError
from gdocs.observability import EventSink, NULL_SINK

logger = logging.getLogger(__name__)


@dataclass
class TextRun:
    text: str
    start_index: Optional[int]
    end_index: Optional[int]
    text_style: dict[str, Any] = field(default_factory=dict)


@dataclass
class StructuralNode:
    """Base node. Leaves without searchable text use these defaults."""

    start_index: int
    end_index: int

    def contains(self, index: int) -> bool:
        return self.start_index <= index < self.end_index

    def iter_segments(self) -> Iterator[TextSegment]:
        return iter(())

    def iter_paragraphs(self) -> Iterator["Paragraph"]:
        return iter(())

    def paragraph_range_at(self, index: int, generation: Optional[int] = None) -> Optional[OffsetRange]:
        return None


@dataclass
class Paragraph(StructuralNode):
    runs: list[TextRun] = field(default_factory=list)
    paragraph_style: dict[str, Any] = field(default_factory=dict)
    bullet: Optional[dict[str, Any]] = None

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @property
    def named_style_type(self) -> str:
        return self.paragraph_style.get("namedStyleType", "NORMAL_TEXT")

    def iter_segments(self) -> Iterator[TextSegment]:
        for run in self.runs:
            if run.text and run.start_index is not None and run.end_index is not None:
                yield TextSegment(run.text, run.start_index, run.end_index)

    def iter_paragraphs(self) -> Iterator["Paragraph"]:
        yield self

    def paragraph_range_at(self, index: int, generation: Optional[int] = None) -> Optional[OffsetRange]:
        if self.contains(index):
            return OffsetRange(self.start_index, self.end_index, generation)
        return None


@dataclass
class TableCell(StructuralNode):
    content: list[StructuralNode] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.iter_paragraphs())

    def iter_segments(self) -> Iterator[TextSegment]:
        for node in self.content:
            yield from node.iter_segments()

    def iter_paragraphs(self) -> Iterator[Paragraph]:
        for node in self.content:
            yield from node.iter_paragraphs()

    def paragraph_range_at(self, index: int, generation: Optional[int] = None) -> Optional[OffsetRange]:
        if not self.contains(index):
            return None
        for node in self.content:
            found = node.paragraph_range_at(index, generation)
            if found:
                return found
        return None


@dataclass
class TableRow(StructuralNode):
    cells: list[TableCell] = field(default_factory=list)

    def iter_segments(self) -> Iterator[TextSegment]:
        for cell in self.cells:
            yield from cell.iter_segments()

    def iter_paragraphs(self) -> Iterator[Paragraph]:
        for cell in self.cells:
            yield from cell.iter_paragraphs()

    def paragraph_range_at(self, index: int, generation: Optional[int] = None) -> Optional[OffsetRange]:
        if not self.contains(index):
            return None
        for cell in self.cells:
            found = cell.paragraph_range_at(index, generation)
            if found:
                return found
        return None


@dataclass
class Table(StructuralNode):
    rows: list[TableRow] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(row.cells) for row in self.rows), default=0)

    def cell(self, row: int, column: int) -> TableCell:
        return self.rows[row].cells[column]

    def iter_segments(self) -> Iterator[TextSegment]:
        for row in self.rows:
            yield from row.iter_segments()

    def iter_paragraphs(self) -> Iterator[Paragraph]:
        for row in self.rows:
            yield from row.iter_paragraphs()

    def paragraph_range_at(self, index: int, generation: Optional[int] = None) -> Optional[OffsetRange]:
        if not self.contains(index):
            return None
        for row in self.rows:
            found = row.paragraph_range_at(index, generation)
            if found:
                return found
        return None


@dataclass
class SectionBreak(StructuralNode):
    pass


@dataclass
class TableOfContents(StructuralNode):
    pass


@dataclass
class DocumentTree:
    """An immutable snapshot of one tab's body content."""

    document_id: str
    title: str = ""
    revision_id: Optional[str] = None
    tab_id: Optional[str] = None
    content: list[StructuralNode] = field(default_factory=list)
    generation: int = 0

    @property
    def end_index(self) -> int:
        return self.content[-1].end_index if self.content else 1

    @property
    def tables(self) -> list[Table]:
        return [node for node in self.content if isinstance(node, Table)]

    def iter_paragraphs(self) -> Iterator[Paragraph]:
        for node in self.content:
            yield from node.iter_paragraphs()


def get_body_for_tab(doc_data: dict[str, Any], tab_id: str = None) -> dict[str, Any]:
    """
    Get the body content for a specific tab in a document.

    For multi-tab documents fetched with includeTabsContent=True, this extracts
    the body content for the specified tab. If tab_id is None, returns the default
    tab's body (either root body for legacy format or first tab's body).

    Args:
        doc_data: Raw document data from Google Docs API (fetched with includeTabsContent=True)
        tab_id: Optional tab ID to get body for. If None, uses default/first tab.

    Returns:
        Body dictionary with 'content' array, or empty dict if the tab has no body

    Raises:
        TargetNotFoundError: If tab_id is given and names no tab in the document
    """
    tabs = doc_data.get("tabs", [])

    if tab_id is not None:
        tab = find_tab_by_id(doc_data, tab_id)
        if tab is None:
            available = [info["tab_id"] for info in get_all_tabs(doc_data)]
            logger.warning(f"Tab '{tab_id}' not found in document (available: {available})")
            raise TargetNotFoundError(
                DocsErrorBuilder.tab_not_found(tab_id, available), doc_data.get("documentId")
            )
        return tab.get("documentTab", {}).get("body", {})

    # First tab's body, else the legacy single-tab root body
    if tabs:
        return tabs[0].get("documentTab", {}).get("body", {})

    return doc_data.get("body", {})


def _parse_content(elements: list[dict[str, Any]]) -> list[StructuralNode]:
    nodes = []
    for element in elements:
        node = _parse_element(element)
        if node is not None:
            nodes.append(node)
    return nodes


def _parse_element(element: dict[str, Any]) -> Optional[StructuralNode]:
    start_index = element.get("startIndex", 0)
    end_index = element.get("endIndex", start_index)

    if "paragraph" in element:
        paragraph = element["paragraph"]
        runs = []
        for para_element in paragraph.get("elements", []):
            text_run = para_element.get("textRun")
            if text_run is None:
                continue
            runs.append(TextRun(
                text=text_run.get("content", ""),
                start_index=para_element.get("startIndex"),
                end_index=para_element.get("endIndex"),
                text_style=text_run.get("textStyle", {}),
            ))
        return Paragraph(
            start_index, end_index,
            runs=runs,
            paragraph_style=paragraph.get("paragraphStyle", {}),
            bullet=paragraph.get("bullet"),
        )

    if "table" in element:
        rows = []
        for row in element["table"].get("tableRows", []):
            cells = [
                TableCell(
                    cell.get("startIndex", 0),
                    cell.get("endIndex", 0),
                    content=_parse_content(cell.get("content", [])),
                )
                for cell in row.get("tableCells", [])
            ]
            rows.append(TableRow(row.get("startIndex", 0), row.get("endIndex", 0), cells=cells))
        return Table(start_index, end_index, rows=rows)

    if "sectionBreak" in element:
        return SectionBreak(start_index, end_index)

    if "tableOfContents" in element:
        return TableOfContents(start_index, end_index)

    logger.debug(f"Skipping unknown structural element at {start_index}: {list(element)}")
    return None


def parse_document_tree(
    doc_data: dict[str, Any], tab_id: str = None, generation: int = 0
) -> DocumentTree:
    """
    Parse the raw API document into a DocumentTree.

    Args:
        doc_data: Raw document data from Google Docs API
        tab_id: Optional tab ID for multi-tab documents. If None, uses the default/first tab.
        generation: Snapshot counter assigned by the session that fetched the document

    Returns:
        DocumentTree for the selected tab's body
    """
    body = get_body_for_tab(doc_data, tab_id)
    return DocumentTree(
        document_id=doc_data.get("documentId", ""),
        title=doc_data.get("title", ""),
        revision_id=doc_data.get("revisionId"),
        tab_id=tab_id,
        content=_parse_content(body.get("content", [])),
        generation=generation,
    )


def flatten_document(tree: DocumentTree) -> list[TextSegment]:
    """
    Flatten the tree into text segments ordered by start offset.

    Tables contribute their cells row by row, then column by column. Runs
    without offsets or text are skipped; anything between two segments is
    structural content with no searchable text.
    """
    segments = []
    for node in tree.content:
        segments.extend(node.iter_segments())
    return sorted(segments, key=lambda seg: seg.start_index)


def find_enclosing_paragraph(tree: DocumentTree, index: int) -> Optional[OffsetRange]:
    """
    Range of the paragraph containing index, descending into table cells.

    Returns None when index falls outside every paragraph, e.g. on a section
    break, a table of contents, or past the end of the body.
    """
    for node in tree.content:
        found = node.paragraph_range_at(index, tree.generation)
        if found:
            return found
    return None


def find_table_near_index(
    tree: DocumentTree,
    anchor: int,
    tolerance: Optional[int] = None,
    sink: Optional[EventSink] = None,
) -> Optional[Table]:
    """
    Find the top-level table an anchor index refers to.

    The anchor is usually a slightly stale table start. The table whose start
    is closest to the anchor within +/- tolerance wins; otherwise the first
    table starting at or after the anchor is used. This is an approximation:
    a large edit before the table can still move it out of the window.
    """
    sink = sink or NULL_SINK
    if tolerance is None:
        tolerance = get_table_anchor_tolerance()

    tables = tree.tables
    nearby = [t for t in tables if abs(t.start_index - anchor) <= tolerance]
    if nearby:
        table = min(nearby, key=lambda t: abs(t.start_index - anchor))
        sink.emit("table_locator.matched", anchor=anchor, table_start_index=table.start_index,
                  strategy="tolerance")
        return table

    for table in tables:
        if table.start_index >= anchor:
            sink.emit("table_locator.matched", anchor=anchor, table_start_index=table.start_index,
                      strategy="following")
            return table

    sink.emit("table_locator.not_found", level=logging.INFO, anchor=anchor,
              tolerance=tolerance, tables=len(tables))
    return None


@dataclass(frozen=True)
class TableCellRange:
    """Offsets of one table cell. content_end_index excludes the trailing newline."""

    table_start_index: int
    row: int
    column: int
    cell_start_index: int
    cell_end_index: int
    content_start_index: int
    content_end_index: int
    has_content: bool
    generation: Optional[int] = None

    @property
    def content_range(self) -> OffsetRange:
        return OffsetRange(self.content_start_index, self.content_end_index, self.generation)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_start_index": self.table_start_index,
            "row": self.row,
            "column": self.column,
            "cell_start_index": self.cell_start_index,
            "cell_end_index": self.cell_end_index,
            "content_start_index": self.content_start_index,
            "content_end_index": self.content_end_index,
            "has_content": self.has_content,
        }


def get_table_cell_range(
    tree: DocumentTree,
    anchor: int,
    row: int,
    column: int,
    tolerance: Optional[int] = None,
    sink: Optional[EventSink] = None,
) -> Optional[TableCellRange]:
    """
    Resolve (anchor, row, column) to the cell's offset ranges.

    Returns:
        TableCellRange, or None when no table is found near the anchor

    Raises:
        OutOfBoundsError: row or column is negative or beyond the table
    """
    table = find_table_near_index(tree, anchor, tolerance, sink)
    if table is None:
        return None

    columns_in_row = len(table.rows[row].cells) if 0 <= row < table.row_count else table.column_count
    if row < 0 or column < 0 or row >= table.row_count or column >= columns_in_row:
        raise OutOfBoundsError(
            DocsErrorBuilder.cell_out_of_bounds(row, column, table.row_count, table.column_count),
            tree.document_id,
        )

    cell = table.cell(row, column)
    if cell.content:
        content_start = cell.content[0].start_index
        content_end = cell.content[-1].end_index - 1
    else:
        content_start = cell.start_index + 1
        content_end = content_start

    return TableCellRange(
        table_start_index=table.start_index,
        row=row,
        column=column,
        cell_start_index=cell.start_index,
        cell_end_index=cell.end_index,
        content_start_index=content_start,
        content_end_index=max(content_start, content_end),
        has_content=bool(cell.text.strip()),
        generation=tree.generation,
    )


# =============================================================================
# Tabs
# =============================================================================

def find_tab_by_id(doc_data: dict[str, Any], tab_id: str) -> Optional[dict[str, Any]]:
    """Search tabs and child tabs for tab_id. Returns the raw tab dict or None."""

    def search(tabs):
        for tab in tabs:
            if tab.get("tabProperties", {}).get("tabId") == tab_id:
                return tab
            found = search(tab.get("childTabs", []))
            if found:
                return found
        return None

    return search(doc_data.get("tabs", []))


def get_tab_text_length(document_tab: Optional[dict[str, Any]]) -> int:
    """Total text length of a documentTab's body, in UTF-16 code units."""
    if not document_tab:
        return 0
    content = _parse_content(document_tab.get("body", {}).get("content", []))
    return sum(
        utf16_len(segment.text)
        for node in content
        for segment in node.iter_segments()
    )


def get_all_tabs(doc_data: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Flatten the tab hierarchy depth-first.

    Returns:
        One dict per tab with tab_id, title, index, level (0 for top-level),
        parent_tab_id and text_length
    """
    all_tabs = []

    def add_tab(tab, level):
        props = tab.get("tabProperties", {})
        all_tabs.append({
            "tab_id": props.get("tabId"),
            "title": props.get("title", ""),
            "index": props.get("index", 0),
            "level": level,
            "parent_tab_id": props.get("parentTabId"),
            "text_length": get_tab_text_length(tab.get("documentTab")),
        })
        for child in tab.get("childTabs", []):
            add_tab(child, level + 1)

    for tab in doc_data.get("tabs", []):
        add_tab(tab, 0)
    return all_tabs
