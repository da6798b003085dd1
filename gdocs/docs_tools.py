"""
Google Docs MCP Tools

This module provides MCP tools for locating content in Google Docs by text,
offset or table cell, and for structural edits: text, styles, lists, tables
and inline images.

Every tool returns a JSON string. Failures come back as a structured error
object ({"error": true, "code": ...}) so "nothing matched" is never confused
with an empty success.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from core.docs_service import require_docs_service
from core.server import server
from core.utils import handle_http_errors
from gdocs.docs_api import fetch_document
from gdocs.docs_lists import BulletStyle
from gdocs.docs_structure import get_all_tabs
from gdocs.managers import (
    ListOperationManager,
    TableOperationManager,
    TextOperationManager,
)

logger = logging.getLogger(__name__)


def _doc_link(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"


def _to_json(result: Dict[str, Any], document_id: str) -> str:
    payload = {"success": True, **result, "link": _doc_link(document_id)}
    return json.dumps(payload, indent=2)


def _compact(**values: Any) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@server.tool()
@handle_http_errors("locate_text", is_read_only=True, service_type="docs")
@require_docs_service("docs_read")
async def locate_text(
    service: Any,
    document_id: str,
    search_text: str,
    occurrence: int = 1,
    match_case: bool = True,
    tab_id: Optional[str] = None,
) -> str:
    """
    Finds the Nth occurrence of text and returns its document index range.

    Text that spans a table cell boundary or other structural element is not
    matched. Occurrences do not overlap ("aa" occurs twice in "aaaa").

    Args:
        document_id: The ID of the Google Doc
        search_text: Text to find
        occurrence: Which occurrence to return (1 = first)
        match_case: Whether to match case exactly
        tab_id: Optional tab to search

    Returns:
        str: JSON with start_index and end_index (end exclusive)
    """
    logger.info(
        f"[locate_text] Doc={document_id}, search='{search_text}', occurrence={occurrence}"
    )
    found = await TextOperationManager(service, tab_id).locate_text(
        document_id, search_text, occurrence, match_case
    )
    return _to_json({**found.to_dict(), "search_text": search_text, "occurrence": occurrence}, document_id)


@server.tool()
@handle_http_errors("locate_paragraph", is_read_only=True, service_type="docs")
@require_docs_service("docs_read")
async def locate_paragraph(
    service: Any,
    document_id: str,
    index: int,
    tab_id: Optional[str] = None,
) -> str:
    """
    Returns the index range of the paragraph containing an index, including
    paragraphs inside table cells.

    Args:
        document_id: The ID of the Google Doc
        index: Any index inside the paragraph
        tab_id: Optional tab to search
    """
    logger.info(f"[locate_paragraph] Doc={document_id}, index={index}")
    found = await TextOperationManager(service, tab_id).locate_paragraph(document_id, index)
    return _to_json(found.to_dict(), document_id)


@server.tool()
@handle_http_errors("locate_table_cell", is_read_only=True, service_type="docs")
@require_docs_service("docs_read")
async def locate_table_cell(
    service: Any,
    document_id: str,
    table_start_index: int,
    row: int,
    column: int,
    tab_id: Optional[str] = None,
) -> str:
    """
    Resolves a table cell coordinate to its index ranges.

    table_start_index may be slightly stale: the closest table within the
    configured tolerance is used, else the first table after it.

    Args:
        document_id: The ID of the Google Doc
        table_start_index: Approximate start index of the table
        row: 0-based row
        column: 0-based column
        tab_id: Optional tab to search

    Returns:
        str: JSON with cell and content ranges and whether the cell has text
    """
    logger.info(f"[locate_table_cell] Doc={document_id}, table={table_start_index}, cell=({row}, {column})")
    cell = await TableOperationManager(service, tab_id).locate_cell(document_id, table_start_index, row, column)
    return _to_json(cell.to_dict(), document_id)


@server.tool()
@handle_http_errors("list_doc_tabs", is_read_only=True, service_type="docs")
@require_docs_service("docs_read")
async def list_doc_tabs(
    service: Any,
    document_id: str,
) -> str:
    """
    Lists all tabs in a Google Doc, including nested child tabs.

    Args:
        document_id: The ID of the Google Doc

    Returns:
        str: A formatted list of tabs with their IDs, titles, hierarchy and
             text length. The tab_id values can be passed to other tools.
    """
    logger.info(f"[list_doc_tabs] Document ID: '{document_id}'")

    doc_data = await fetch_document(service, document_id)
    doc_title = doc_data.get("title", "Untitled Document")
    all_tabs = get_all_tabs(doc_data)

    if not all_tabs:
        return f"Document '{doc_title}' (ID: {document_id}) has no tabs (single-tab document without explicit tab structure)."

    out = [
        f"Document: '{doc_title}' (ID: {document_id})",
        f"Total tabs: {len(all_tabs)}",
        "",
        "Tabs:",
    ]
    for tab in all_tabs:
        indent = "  " * tab["level"]
        hierarchy_marker = "└─ " if tab["level"] > 0 else ""
        out.append(
            f"{indent}{hierarchy_marker}'{tab['title']}' (tab_id: {tab['tab_id']}) - {tab['text_length']} chars"
        )
    return "\n".join(out)


@server.tool()
@handle_http_errors("insert_doc_text", service_type="docs")
@require_docs_service("docs_write")
async def insert_doc_text(
    service: Any,
    document_id: str,
    index: int,
    text: str,
    tab_id: Optional[str] = None,
) -> str:
    """
    Inserts text at an index. Empty text is a no-op.

    Args:
        document_id: The ID of the Google Doc
        index: Insertion index (1 is the start of the body)
        text: Text to insert
        tab_id: Optional tab to edit
    """
    logger.info(f"[insert_doc_text] Doc={document_id}, index={index}, length={len(text or '')}")
    result = await TextOperationManager(service, tab_id).insert_text(document_id, index, text)
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("delete_doc_range", service_type="docs")
@require_docs_service("docs_write")
async def delete_doc_range(
    service: Any,
    document_id: str,
    start_index: int,
    end_index: int,
    tab_id: Optional[str] = None,
) -> str:
    """
    Deletes the content in [start_index, end_index).

    Args:
        document_id: The ID of the Google Doc
        start_index: First index to delete
        end_index: Index after the last deleted character
        tab_id: Optional tab to edit
    """
    logger.info(f"[delete_doc_range] Doc={document_id}, range={start_index}-{end_index}")
    result = await TextOperationManager(service, tab_id).delete_range(document_id, start_index, end_index)
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("format_doc_text", service_type="docs")
@require_docs_service("docs_write")
async def format_doc_text(
    service: Any,
    document_id: str,
    start_index: Optional[int] = None,
    end_index: Optional[int] = None,
    text_to_find: Optional[str] = None,
    occurrence: int = 1,
    match_case: bool = True,
    bold: Optional[bool] = None,
    italic: Optional[bool] = None,
    underline: Optional[bool] = None,
    strikethrough: Optional[bool] = None,
    font_size: Optional[float] = None,
    font_family: Optional[str] = None,
    link: Optional[str] = None,
    foreground_color: Optional[str] = None,
    background_color: Optional[str] = None,
    tab_id: Optional[str] = None,
) -> str:
    """
    Applies character formatting to a range, or to the Nth match of text_to_find.

    Args:
        document_id: The ID of the Google Doc
        start_index: Range start (used when text_to_find is not given)
        end_index: Range end, exclusive
        text_to_find: Text whose Nth occurrence should be formatted
        occurrence: Which occurrence of text_to_find (1 = first)
        match_case: Whether text_to_find matches case exactly
        bold, italic, underline, strikethrough: Toggle styles
        font_size: Size in points
        font_family: Font name, e.g. "Arial"
        link: URL to link to ("" removes an existing link)
        foreground_color: Text color as hex (#FF0000) or a named color
        background_color: Highlight color as hex or a named color
        tab_id: Optional tab to edit
    """
    text_style = _compact(
        bold=bold, italic=italic, underline=underline, strikethrough=strikethrough,
        font_size=font_size, font_family=font_family, link=link,
        foreground_color=foreground_color, background_color=background_color,
    )
    logger.info(f"[format_doc_text] Doc={document_id}, styles={sorted(text_style)}")
    result = await TextOperationManager(service, tab_id).apply_text_style(
        document_id, text_style, start_index, end_index, text_to_find, occurrence, match_case
    )
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("format_doc_paragraph", service_type="docs")
@require_docs_service("docs_write")
async def format_doc_paragraph(
    service: Any,
    document_id: str,
    start_index: Optional[int] = None,
    end_index: Optional[int] = None,
    text_to_find: Optional[str] = None,
    index_within: Optional[int] = None,
    occurrence: int = 1,
    match_case: bool = True,
    alignment: Optional[str] = None,
    indent_start: Optional[float] = None,
    indent_end: Optional[float] = None,
    space_above: Optional[float] = None,
    space_below: Optional[float] = None,
    named_style_type: Optional[str] = None,
    keep_with_next: Optional[bool] = None,
    tab_id: Optional[str] = None,
) -> str:
    """
    Applies paragraph formatting.

    The target is the paragraph containing text_to_find, else the paragraph
    containing index_within, else the explicit range.

    Args:
        document_id: The ID of the Google Doc
        start_index: Range start
        end_index: Range end, exclusive
        text_to_find: Text inside the target paragraph
        index_within: Any index inside the target paragraph
        occurrence: Which occurrence of text_to_find (1 = first)
        match_case: Whether text_to_find matches case exactly
        alignment: START, CENTER, END or JUSTIFIED (LEFT/RIGHT accepted)
        indent_start, indent_end: Indents in points
        space_above, space_below: Spacing in points
        named_style_type: NORMAL_TEXT, TITLE, SUBTITLE or HEADING_1..HEADING_6
        keep_with_next: Keep the paragraph on the same page as the next one
        tab_id: Optional tab to edit
    """
    paragraph_style = _compact(
        alignment=alignment, indent_start=indent_start, indent_end=indent_end,
        space_above=space_above, space_below=space_below,
        named_style_type=named_style_type, keep_with_next=keep_with_next,
    )
    logger.info(f"[format_doc_paragraph] Doc={document_id}, styles={sorted(paragraph_style)}")
    result = await TextOperationManager(service, tab_id).apply_paragraph_style(
        document_id, paragraph_style, start_index, end_index, text_to_find, index_within, occurrence,
        match_case,
    )
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("insert_doc_table", service_type="docs")
@require_docs_service("docs_write")
async def insert_doc_table(
    service: Any,
    document_id: str,
    index: int,
    rows: int,
    columns: int,
    tab_id: Optional[str] = None,
) -> str:
    """
    Inserts an empty table. The table starts at index + 1.

    Args:
        document_id: The ID of the Google Doc
        index: Insertion index
        rows: Number of rows (>= 1)
        columns: Number of columns (>= 1)
        tab_id: Optional tab to edit
    """
    logger.info(f"[insert_doc_table] Doc={document_id}, index={index}, size={rows}x{columns}")
    result = await TableOperationManager(service, tab_id).insert_table(document_id, index, rows, columns)
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("create_table_with_data", service_type="docs")
@require_docs_service("docs_write")
async def create_table_with_data(
    service: Any,
    document_id: str,
    index: int,
    headers: List[str],
    rows: List[List[str]],
    bold_headers: bool = True,
    bold_total_row: bool = True,
    tab_id: Optional[str] = None,
) -> str:
    """
    Creates a table filled with headers and rows.

    The table is inserted, the document re-read, every cell filled in one
    batch, then the header row and any row whose first cell contains "total"
    are bolded.

    Args:
        document_id: The ID of the Google Doc
        index: Insertion index
        headers: Header row values, e.g. ["Name", "Amount"]
        rows: Body rows, e.g. [["Apples", "3"], ["Total", "3"]]. Use "" for empty cells.
        bold_headers: Bold the header row
        bold_total_row: Bold rows whose first cell contains "total"
        tab_id: Optional tab to edit

    Returns:
        str: JSON with table_start_index, rows, columns and cells_written
    """
    logger.info(f"[create_table_with_data] Doc={document_id}, index={index}, rows={len(rows or [])}")
    result = await TableOperationManager(service, tab_id).populate_table(
        document_id, index, headers, rows, bold_headers, bold_total_row
    )
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("edit_table_cell", service_type="docs")
@require_docs_service("docs_write")
async def edit_table_cell(
    service: Any,
    document_id: str,
    table_start_index: int,
    row: int,
    column: int,
    text: Optional[str] = None,
    bold: Optional[bool] = None,
    italic: Optional[bool] = None,
    font_size: Optional[float] = None,
    foreground_color: Optional[str] = None,
    background_color: Optional[str] = None,
    alignment: Optional[str] = None,
    tab_id: Optional[str] = None,
) -> str:
    """
    Replaces a table cell's text and/or restyles it.

    Args:
        document_id: The ID of the Google Doc
        table_start_index: Approximate start index of the table
        row: 0-based row
        column: 0-based column
        text: New cell text (omit to keep the existing text)
        bold, italic: Toggle styles on the cell text
        font_size: Size in points
        foreground_color, background_color: Hex (#FF0000) or named colors
        alignment: Paragraph alignment for the cell
        tab_id: Optional tab to edit
    """
    text_style = _compact(
        bold=bold, italic=italic, font_size=font_size,
        foreground_color=foreground_color, background_color=background_color,
    )
    paragraph_style = _compact(alignment=alignment)
    logger.info(f"[edit_table_cell] Doc={document_id}, table={table_start_index}, cell=({row}, {column})")
    result = await TableOperationManager(service, tab_id).edit_cell(
        document_id, table_start_index, row, column, text, text_style, paragraph_style
    )
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("convert_text_to_lists", service_type="docs")
@require_docs_service("docs_write")
async def convert_text_to_lists(
    service: Any,
    document_id: str,
    start_index: Optional[int] = None,
    end_index: Optional[int] = None,
    tab_id: Optional[str] = None,
) -> str:
    """
    Converts paragraphs typed as lists ("- item", "1. item", "a) item") into
    real bulleted or numbered lists and removes the typed markers.

    Args:
        document_id: The ID of the Google Doc
        start_index: Optional start of the range to scan
        end_index: Optional end of the range to scan
        tab_id: Optional tab to edit

    Returns:
        str: JSON with the number of paragraphs converted (0 when none matched)
    """
    logger.info(f"[convert_text_to_lists] Doc={document_id}, range={start_index}-{end_index}")
    converted = await ListOperationManager(service, tab_id).convert_marked_paragraphs_to_lists(
        document_id, start_index, end_index
    )
    return _to_json({"paragraphs_converted": converted}, document_id)


@server.tool()
@handle_http_errors("apply_bullet_list", service_type="docs")
@require_docs_service("docs_write")
async def apply_bullet_list(
    service: Any,
    document_id: str,
    start_index: int,
    end_index: int,
    bullet_style: str = BulletStyle.BULLET_DISC_CIRCLE_SQUARE.value,
    tab_id: Optional[str] = None,
) -> str:
    """
    Turns every paragraph overlapping the range into a list item.

    Args:
        document_id: The ID of the Google Doc
        start_index: Range start
        end_index: Range end, exclusive
        bullet_style: Bullet preset, e.g. BULLET_DISC_CIRCLE_SQUARE or NUMBERED_DECIMAL_NESTED
        tab_id: Optional tab to edit
    """
    logger.info(f"[apply_bullet_list] Doc={document_id}, range={start_index}-{end_index}, style={bullet_style}")
    result = await ListOperationManager(service, tab_id).apply_bullet_list(
        document_id, start_index, end_index, bullet_style
    )
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("remove_bullet_list", service_type="docs")
@require_docs_service("docs_write")
async def remove_bullet_list(
    service: Any,
    document_id: str,
    start_index: int,
    end_index: int,
    tab_id: Optional[str] = None,
) -> str:
    """
    Removes list bullets from every paragraph overlapping the range.

    Args:
        document_id: The ID of the Google Doc
        start_index: Range start
        end_index: Range end, exclusive
        tab_id: Optional tab to edit
    """
    logger.info(f"[remove_bullet_list] Doc={document_id}, range={start_index}-{end_index}")
    result = await ListOperationManager(service, tab_id).remove_bullet_list(document_id, start_index, end_index)
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("insert_doc_image", service_type="docs")
@require_docs_service("docs_write")
async def insert_doc_image(
    service: Any,
    document_id: str,
    index: int,
    image_url: str,
    width: Optional[float] = None,
    height: Optional[float] = None,
    tab_id: Optional[str] = None,
) -> str:
    """
    Inserts an inline image from a public http(s) URL.

    Args:
        document_id: The ID of the Google Doc
        index: Insertion index
        image_url: Public image URL
        width: Width in points (applied only together with height)
        height: Height in points (applied only together with width)
        tab_id: Optional tab to edit
    """
    logger.info(f"[insert_doc_image] Doc={document_id}, index={index}, url={image_url}")
    result = await TextOperationManager(service, tab_id).insert_image(document_id, index, image_url, width, height)
    return _to_json(result, document_id)


@server.tool()
@handle_http_errors("find_paragraphs_by_style", is_read_only=True, service_type="docs")
@require_docs_service("docs_read")
async def find_paragraphs_by_style(
    service: Any,
    document_id: str,
    style_criteria: Dict[str, Any],
) -> str:
    """
    Finds paragraphs whose style matches the criteria. Not implemented yet;
    always returns a NOT_IMPLEMENTED error.
    """
    await TextOperationManager(service).find_paragraphs_matching_style(document_id, style_criteria)
    return _to_json({}, document_id)


@server.tool()
@handle_http_errors("add_doc_comment", service_type="docs")
@require_docs_service("docs_write")
async def add_doc_comment(
    service: Any,
    document_id: str,
    text: str,
    start_index: int,
    end_index: int,
) -> str:
    """
    Adds a comment anchored to a range. Not implemented yet; always returns
    a NOT_IMPLEMENTED error.
    """
    await TextOperationManager(service).add_comment(document_id, text, start_index, end_index)
    return _to_json({}, document_id)
