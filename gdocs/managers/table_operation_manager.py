"""
Table Operation Manager

This module creates, populates and edits tables. Populating a table is a
multi-phase operation because the API assigns cell offsets only after the
table exists:

1. insertTable at the requested index
2. re-fetch, locate the new table, insert every cell's text in one batch
   (descending offsets, so earlier cells keep their offsets)
3. re-fetch and bold the header row and any "total" rows
"""
import logging
from typing import Any, Dict, List, Optional

from core.config import get_table_anchor_tolerance
from gdocs.docs_helpers import (
    create_delete_range_request,
    create_format_text_request,
    create_insert_table_request,
    create_insert_text_request,
    create_paragraph_style_request,
    utf16_len,
)
from gdocs.docs_structure import (
    DocumentTree,
    Table,
    TableCell,
    TableCellRange,
    find_table_near_index,
    get_table_cell_range,
)
from gdocs.errors import DocsErrorBuilder, TargetNotFoundError
from gdocs.managers.batch_operation_manager import DocumentSession
from gdocs.managers.validation_manager import ValidationManager
from gdocs.observability import EventSink, default_sink

logger = logging.getLogger(__name__)


def _cell_insertion_index(cell: TableCell) -> int:
    """Where text typed into an empty cell lands: the start of its first paragraph."""
    if cell.content:
        return cell.content[0].start_index
    return cell.start_index + 1


class TableOperationManager:
    """
    High-level manager for Google Docs table operations.

    Handles table creation with data, cell lookup and cell editing. Table
    anchors may be slightly stale; lookups use the configured tolerance.
    """

    def __init__(
        self,
        service: Any,
        tab_id: Optional[str] = None,
        sink: Optional[EventSink] = None,
        tolerance: Optional[int] = None,
    ):
        """
        Args:
            service: Google Docs API service instance
            tab_id: Optional tab ID for multi-tab documents
            sink: Event sink for diagnostics
            tolerance: Anchor tolerance override (defaults to TABLE_ANCHOR_TOLERANCE)
        """
        self.service = service
        self.tab_id = tab_id
        self.sink = sink or default_sink()
        self.tolerance = tolerance
        self.validator = ValidationManager()

    def _session(self, document_id: str) -> DocumentSession:
        return DocumentSession(self.service, document_id, self.tab_id, self.sink)

    def _find_table(self, tree: DocumentTree, document_id: str, anchor: int) -> Table:
        table = find_table_near_index(tree, anchor, self.tolerance, self.sink)
        if table is None:
            raise TargetNotFoundError(
                DocsErrorBuilder.table_not_found(anchor, self._effective_tolerance()), document_id
            )
        return table

    def _effective_tolerance(self) -> int:
        if self.tolerance is not None:
            return self.tolerance
        return get_table_anchor_tolerance()

    def _resolve_cell(
        self, tree: DocumentTree, document_id: str, anchor: int, row: int, column: int
    ) -> TableCellRange:
        cell_range = get_table_cell_range(tree, anchor, row, column, self.tolerance, self.sink)
        if cell_range is None:
            raise TargetNotFoundError(
                DocsErrorBuilder.table_not_found(anchor, self._effective_tolerance()), document_id
            )
        return cell_range

    async def locate_cell(self, document_id: str, anchor: int, row: int, column: int) -> TableCellRange:
        """
        Resolve a (table anchor, row, column) coordinate to offsets.

        Raises:
            TargetNotFoundError: no table near the anchor
            OutOfBoundsError: row or column outside the table
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        session = self._session(document_id)
        tree = await session.fetch()
        cell_range = self._resolve_cell(tree, document_id, anchor, row, column)
        session.complete()
        return cell_range

    async def insert_table(self, document_id: str, index: int, rows: int, columns: int) -> Dict[str, Any]:
        """Insert an empty rows x columns table at index."""
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index(index), document_id)
        self.validator.raise_if_invalid(self.validator.validate_table_dimensions(rows, columns), document_id)

        session = self._session(document_id)
        await session.submit([create_insert_table_request(index, rows, columns, self.tab_id)])
        session.complete()
        return {'index': index, 'rows': rows, 'columns': columns}

    async def populate_table(
        self,
        document_id: str,
        insert_index: int,
        headers: List[str],
        rows: List[List[str]],
        bold_headers: bool = True,
        bold_total_row: bool = True,
    ) -> Dict[str, Any]:
        """
        Create a table at insert_index filled with headers and rows.

        Args:
            document_id: Document to update
            insert_index: Where to insert the table
            headers: Header row values (must be non-empty)
            rows: Body rows; a row may be shorter than headers
            bold_headers: Bold the header row
            bold_total_row: Bold rows whose first cell contains "total"

        Returns:
            {table_start_index, rows, columns, cells_written}
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index(insert_index, "insert_index"), document_id)
        self.validator.raise_if_invalid(self.validator.validate_table_data(headers, rows), document_id)

        all_rows = [headers] + list(rows)
        row_count, column_count = len(all_rows), len(headers)
        session = self._session(document_id)

        # Phase 1: create the empty table
        await session.submit([create_insert_table_request(insert_index, row_count, column_count, self.tab_id)])

        # Phase 2: fill cells. The API puts a newline at insert_index, so the
        # table starts one index later.
        tree = await session.fetch()
        table = self._find_table(tree, document_id, insert_index + 1)
        if table.row_count != row_count or table.column_count != column_count:
            logger.error(
                f"Table near {insert_index + 1} is {table.row_count}x{table.column_count}, "
                f"expected {row_count}x{column_count}"
            )
            raise TargetNotFoundError(
                DocsErrorBuilder.table_not_found(insert_index + 1, self._effective_tolerance()), document_id
            )
        table_start = table.start_index

        requests = []
        for r, values in enumerate(all_rows):
            for c, value in enumerate(values):
                requests.append(create_insert_text_request(
                    _cell_insertion_index(table.cell(r, c)), value, self.tab_id
                ))
        cells_written = sum(1 for request in requests if request is not None)
        await session.submit(requests, snapshot=tree)

        # Phase 3: bold header and total rows
        if cells_written and (bold_headers or bold_total_row):
            tree = await session.fetch()
            table = self._find_table(tree, document_id, table_start)
            await session.submit(
                self._bold_requests(table, bold_headers, bold_total_row),
                snapshot=tree,
            )
        session.complete()

        logger.info(f"Created {row_count}x{column_count} table at {table_start} in {document_id}")
        return {
            'table_start_index': table_start,
            'rows': row_count,
            'columns': column_count,
            'cells_written': cells_written,
        }

    def _bold_requests(self, table: Table, bold_headers: bool, bold_total_row: bool) -> List[Optional[Dict[str, Any]]]:
        requests = []
        for r, row in enumerate(table.rows):
            is_header = bold_headers and r == 0
            is_total = bold_total_row and r > 0 and bool(row.cells) and "total" in row.cells[0].text.lower()
            if not (is_header or is_total):
                continue
            for segment in row.iter_segments():
                if not segment.text.strip():
                    continue
                end_index = segment.end_index - 1 if segment.text.endswith("\n") else segment.end_index
                requests.append(create_format_text_request(
                    segment.start_index, end_index, bold=True, tab_id=self.tab_id
                ))
        return requests

    async def edit_cell(
        self,
        document_id: str,
        anchor: int,
        row: int,
        column: int,
        text: Optional[str] = None,
        text_style: Optional[Dict[str, Any]] = None,
        paragraph_style: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Replace a cell's text and/or restyle it.

        When text is given, existing content is deleted and the new text
        inserted in one batch; styles are applied after a re-fetch so they
        target the new text. Without text, styles apply to the existing
        content.
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_text_style(text_style), document_id)
        self.validator.raise_if_invalid(self.validator.validate_paragraph_style(paragraph_style), document_id)
        text_style = text_style or {}
        paragraph_style = paragraph_style or {}

        session = self._session(document_id)
        tree = await session.fetch()
        cell = self._resolve_cell(tree, document_id, anchor, row, column)
        replaced = False

        if text is not None:
            requests = []
            if cell.has_content:
                requests.append(create_delete_range_request(
                    cell.content_start_index, cell.content_end_index, self.tab_id
                ))
            requests.append(create_insert_text_request(cell.content_start_index, text, self.tab_id))
            await session.submit(requests, snapshot=tree, ranges=[cell])
            replaced = any(request is not None for request in requests)

            if not (text_style or paragraph_style):
                session.complete()
                return {'cell': cell.to_dict(), 'text_replaced': replaced, 'styles_applied': []}

            tree = await session.fetch()
            cell = self._resolve_cell(tree, document_id, cell.table_start_index, row, column)
            text_start = cell.content_start_index
            text_end = text_start + utf16_len(text)
        else:
            text_start, text_end = cell.content_start_index, cell.content_end_index

        style_requests = []
        if text_end > text_start:
            style_requests.append(create_format_text_request(
                text_start, text_end, tab_id=self.tab_id, **text_style
            ))
        style_requests.append(create_paragraph_style_request(
            cell.content_start_index, cell.content_end_index + 1, tab_id=self.tab_id, **paragraph_style
        ))
        await session.submit(style_requests, snapshot=tree, ranges=[cell])
        session.complete()

        applied = sorted(k for k, v in {**text_style, **paragraph_style}.items() if v is not None)
        return {'cell': cell.to_dict(), 'text_replaced': replaced, 'styles_applied': applied}
