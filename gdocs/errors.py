"""
Google Docs Error Handling

This module provides structured, actionable error messages for document
resolution and mutation operations, plus the exception hierarchy that carries
them. Errors are designed to be self-documenting so both humans and AI agents
can tell "nothing matched" apart from "the operation failed".
"""
import json
import logging
from enum import Enum
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for Google Docs operations."""

    # Document access errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Index errors
    INVALID_INDEX_RANGE = "INVALID_INDEX_RANGE"
    STALE_OFFSETS = "STALE_OFFSETS"
    OVERLAPPING_MUTATIONS = "OVERLAPPING_MUTATIONS"

    # Search errors
    EMPTY_SEARCH_TEXT = "EMPTY_SEARCH_TEXT"
    SEARCH_TEXT_NOT_FOUND = "SEARCH_TEXT_NOT_FOUND"
    INVALID_OCCURRENCE = "INVALID_OCCURRENCE"
    PARAGRAPH_NOT_FOUND = "PARAGRAPH_NOT_FOUND"
    TAB_NOT_FOUND = "TAB_NOT_FOUND"

    # Table errors
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    CELL_OUT_OF_BOUNDS = "CELL_OUT_OF_BOUNDS"
    INVALID_TABLE_DATA = "INVALID_TABLE_DATA"
    INVALID_TABLE_DIMENSIONS = "INVALID_TABLE_DIMENSIONS"

    # Formatting errors
    NO_STYLE_FIELDS = "NO_STYLE_FIELDS"
    INVALID_COLOR_FORMAT = "INVALID_COLOR_FORMAT"

    # Parameter errors
    INVALID_PARAM_VALUE = "INVALID_PARAM_VALUE"
    INVALID_IMAGE_URL = "INVALID_IMAGE_URL"

    # Operation errors
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    TRANSIENT_ERROR = "TRANSIENT_ERROR"
    API_ERROR = "API_ERROR"


@dataclass
class ErrorContext:
    """Additional context for error messages."""
    received: Optional[Dict[str, Any]] = None
    expected: Optional[Dict[str, Any]] = None
    document_id: Optional[str] = None
    table_dimensions: Optional[Dict[str, int]] = None
    possible_causes: Optional[List[str]] = None


@dataclass
class StructuredError:
    """
    Structured error response with actionable guidance.

    Attributes:
        error: Always True for error responses
        code: Machine-readable error code from ErrorCode enum
        message: Human-readable error description
        reason: Explanation of why this error occurred
        suggestion: Actionable advice on how to fix the issue
        context: Additional context like received values and document id
    """
    error: bool = True
    code: str = ""
    message: str = ""
    reason: str = ""
    suggestion: str = ""
    context: Optional[ErrorContext] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "error": self.error,
            "code": self.code,
            "message": self.message,
        }

        if self.reason:
            result["reason"] = self.reason
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.context:
            ctx = asdict(self.context)
            ctx = {k: v for k, v in ctx.items() if v is not None}
            if ctx:
                result["context"] = ctx

        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


class DocsErrorBuilder:
    """
    Builder for creating structured error messages.

    Usage:
        error = DocsErrorBuilder.search_text_not_found("Hello", occurrence=2)
    """

    @staticmethod
    def empty_search_text() -> StructuredError:
        """Error when search text is empty."""
        return StructuredError(
            code=ErrorCode.EMPTY_SEARCH_TEXT.value,
            message="Search text cannot be empty",
            reason="An empty string was provided as search text, which has no position in the document.",
            suggestion="Provide a non-empty search string to locate text in the document.",
        )

    @staticmethod
    def search_text_not_found(
        search_text: str,
        occurrence: int = 1,
        total_found: int = 0,
        match_case: bool = True
    ) -> StructuredError:
        """Error when the requested occurrence of the search text is absent."""
        if total_found:
            message = (
                f"Occurrence {occurrence} of '{search_text}' not found. "
                f"Document contains {total_found} occurrence(s)"
            )
            suggestion = f"Use an occurrence between 1 and {total_found}."
        else:
            message = f"Could not find '{search_text}' in the document"
            suggestion = "Check spelling and try a shorter, unique phrase."
            if match_case:
                suggestion += " Try match_case=False for case-insensitive search."

        return StructuredError(
            code=ErrorCode.SEARCH_TEXT_NOT_FOUND.value,
            message=message,
            reason="Matches that straddle table cells or other structural elements are not counted.",
            suggestion=suggestion,
            context=ErrorContext(
                received={"search": search_text, "occurrence": occurrence, "match_case": match_case}
            )
        )

    @staticmethod
    def invalid_occurrence(occurrence: Any) -> StructuredError:
        """Error when the occurrence number is not a positive integer."""
        return StructuredError(
            code=ErrorCode.INVALID_OCCURRENCE.value,
            message=f"Occurrence must be a positive integer, got {occurrence!r}",
            reason="Occurrences are 1-indexed: 1 is the first match.",
            suggestion="Use occurrence=1 for the first match, 2 for the second, and so on.",
            context=ErrorContext(received={"occurrence": occurrence}, expected={"occurrence": ">= 1"})
        )

    @staticmethod
    def paragraph_not_found(index: int) -> StructuredError:
        """Error when no paragraph encloses an index."""
        return StructuredError(
            code=ErrorCode.PARAGRAPH_NOT_FOUND.value,
            message=f"No paragraph contains index {index}",
            reason="The index is outside the document or inside a section break or table of contents.",
            suggestion="Use locate_text to find a valid index inside a paragraph.",
            context=ErrorContext(received={"index": index})
        )

    @staticmethod
    def tab_not_found(tab_id: str, available_tab_ids: Optional[List[str]] = None) -> StructuredError:
        """Error when a tab_id does not name a tab in the document."""
        return StructuredError(
            code=ErrorCode.TAB_NOT_FOUND.value,
            message=f"Tab '{tab_id}' not found in document",
            suggestion="Use list_doc_tabs to see the document's tab ids, or omit tab_id for the first tab.",
            context=ErrorContext(
                received={"tab_id": tab_id},
                expected={"tab_id": available_tab_ids or []},
            )
        )

    @staticmethod
    def document_not_found(document_id: str) -> StructuredError:
        """Error when a document cannot be found or accessed."""
        return StructuredError(
            code=ErrorCode.DOCUMENT_NOT_FOUND.value,
            message=f"Document with ID '{document_id}' not found or not accessible",
            reason="The document could not be found or you don't have permission to access it.",
            suggestion="Verify the document ID and ensure you have access permissions.",
            context=ErrorContext(
                document_id=document_id,
                possible_causes=[
                    "Document ID is incorrect",
                    "Document was deleted",
                    "You don't have permission to access this document",
                    "Document ID includes extra characters (quotes, spaces)"
                ]
            )
        )

    @staticmethod
    def permission_denied(document_id: str, detail: str = "") -> StructuredError:
        """Error when the authenticated user lacks access."""
        return StructuredError(
            code=ErrorCode.PERMISSION_DENIED.value,
            message=f"Permission denied for document '{document_id}'" + (f": {detail}" if detail else ""),
            reason="The operation requires edit permissions that the authenticated user doesn't have.",
            suggestion="Request edit access from the document owner or re-authorize with the documents scope.",
            context=ErrorContext(document_id=document_id)
        )

    @staticmethod
    def table_not_found(anchor_index: int, tolerance: int) -> StructuredError:
        """Error when no table is found near an anchor index."""
        return StructuredError(
            code=ErrorCode.TABLE_NOT_FOUND.value,
            message=f"No table found at or after index {anchor_index}",
            reason=(
                f"No table starts within {tolerance} positions of the anchor, "
                "and no table starts after it."
            ),
            suggestion="Re-read the document structure to get the table's current start index.",
            context=ErrorContext(received={"table_start_index": anchor_index})
        )

    @staticmethod
    def cell_out_of_bounds(
        row: int,
        column: int,
        rows: int,
        columns: int
    ) -> StructuredError:
        """Error when a cell coordinate exceeds the table dimensions."""
        return StructuredError(
            code=ErrorCode.CELL_OUT_OF_BOUNDS.value,
            message=f"Cell ({row}, {column}) is outside a {rows}x{columns} table",
            reason="Row and column indices are 0-based and must be smaller than the table dimensions.",
            suggestion=f"Use a row between 0 and {rows - 1} and a column between 0 and {max(columns - 1, 0)}.",
            context=ErrorContext(
                received={"row": row, "column": column},
                table_dimensions={"rows": rows, "columns": columns}
            )
        )

    @staticmethod
    def invalid_table_dimensions(rows: Any, columns: Any) -> StructuredError:
        """Error when a table would have no rows or columns."""
        return StructuredError(
            code=ErrorCode.INVALID_TABLE_DIMENSIONS.value,
            message=f"Table must have at least 1 row and 1 column, got {rows}x{columns}",
            reason="The Docs API cannot create an empty table.",
            suggestion="Provide rows >= 1 and columns >= 1 (or a non-empty headers list).",
            context=ErrorContext(received={"rows": rows, "columns": columns})
        )

    @staticmethod
    def invalid_table_data(issue: str) -> StructuredError:
        """Error when table data format is invalid."""
        return StructuredError(
            code=ErrorCode.INVALID_TABLE_DATA.value,
            message=f"Invalid table data: {issue}",
            reason="Headers must be a list of strings and rows a list of lists of strings.",
            suggestion="Use '' for empty cells, never None.",
            context=ErrorContext(received={"issue": issue})
        )

    @staticmethod
    def invalid_index_range(start_index: int, end_index: int) -> StructuredError:
        """Error when start_index >= end_index or indices are negative."""
        return StructuredError(
            code=ErrorCode.INVALID_INDEX_RANGE.value,
            message=f"Invalid range {start_index}-{end_index}",
            reason="A range needs 0 <= start_index < end_index.",
            suggestion="Swap the values or correct the range specification.",
            context=ErrorContext(
                received={"start_index": start_index, "end_index": end_index},
            )
        )

    @staticmethod
    def no_style_fields(style_kind: str) -> StructuredError:
        """Error when a style operation carries no fields to change."""
        return StructuredError(
            code=ErrorCode.NO_STYLE_FIELDS.value,
            message=f"No {style_kind} style options were provided",
            reason="Every style option was left unset, so there is nothing to apply.",
            suggestion="Set at least one option, e.g. bold=True or alignment='CENTER'.",
        )

    @staticmethod
    def invalid_param_value(
        param_name: str,
        received_value: Any,
        valid_values: List[str],
    ) -> StructuredError:
        """Error when a parameter has an invalid value."""
        return StructuredError(
            code=ErrorCode.INVALID_PARAM_VALUE.value,
            message=f"Invalid '{param_name}' value '{received_value}'",
            reason=f"The value '{received_value}' is not a valid option for '{param_name}'.",
            suggestion=f"Use one of: {', '.join(valid_values)}",
            context=ErrorContext(
                received={param_name: received_value},
                expected={param_name: valid_values}
            )
        )

    @staticmethod
    def invalid_color_format(color_value: str, param_name: str = "color") -> StructuredError:
        """Error when a color value has an invalid format."""
        return StructuredError(
            code=ErrorCode.INVALID_COLOR_FORMAT.value,
            message=f"Invalid color format for '{param_name}': '{color_value}'",
            reason="Colors must be specified as hex codes (#FF0000, #F00) or named colors.",
            suggestion="Use hex format (#RRGGBB or #RGB) or a named color such as red or blue.",
            context=ErrorContext(received={param_name: color_value})
        )

    @staticmethod
    def invalid_image_url(image_url: str) -> StructuredError:
        """Error when an image URL is malformed."""
        return StructuredError(
            code=ErrorCode.INVALID_IMAGE_URL.value,
            message=f"Invalid image URL format: {image_url}",
            reason="Inline images must be fetched by the Docs API from a public http(s) URL.",
            suggestion="Provide an absolute http:// or https:// URL that returns an image.",
            context=ErrorContext(received={"image_url": image_url})
        )

    @staticmethod
    def overlapping_mutations(first: Dict[str, int], second: Dict[str, int]) -> StructuredError:
        """Error when two shifting requests in one batch target overlapping ranges."""
        return StructuredError(
            code=ErrorCode.OVERLAPPING_MUTATIONS.value,
            message="Insert/delete requests in one batch target overlapping ranges",
            reason="Overlapping edits cannot be ordered so that each keeps its intended offsets.",
            suggestion="Split the edits into separate batches and re-read the document between them.",
            context=ErrorContext(received={"first": first, "second": second})
        )

    @staticmethod
    def stale_offsets(snapshot_generation: Optional[int], current_generation: int) -> StructuredError:
        """Error when offsets from an outdated snapshot are about to be written."""
        return StructuredError(
            code=ErrorCode.STALE_OFFSETS.value,
            message=(
                f"Offsets computed from snapshot {snapshot_generation} are stale "
                f"(current snapshot {current_generation})"
            ),
            reason="A batch was applied after these offsets were computed, so they may point at the wrong text.",
            suggestion="Re-fetch the document and recompute offsets before writing.",
        )

    @staticmethod
    def not_implemented(capability: str) -> StructuredError:
        """Error for declared capabilities that are not built yet."""
        return StructuredError(
            code=ErrorCode.NOT_IMPLEMENTED.value,
            message=f"{capability} is not implemented",
            reason="This capability is declared but has no implementation yet.",
            suggestion="Use a supported operation instead.",
        )

    @staticmethod
    def transient_error(document_id: str, detail: str) -> StructuredError:
        """Error for rate limits and server-side failures."""
        return StructuredError(
            code=ErrorCode.TRANSIENT_ERROR.value,
            message=f"Temporary Google Docs API failure for document '{document_id}': {detail}",
            reason="The API is rate limiting or temporarily unavailable.",
            suggestion=(
                "Re-read the document before retrying. Completed phases are kept, "
                "so retrying with old offsets can corrupt the document."
            ),
            context=ErrorContext(document_id=document_id)
        )

    @staticmethod
    def api_error(
        operation: str,
        error_message: str,
        document_id: Optional[str] = None
    ) -> StructuredError:
        """Error from Google API call."""
        return StructuredError(
            code=ErrorCode.API_ERROR.value,
            message=f"API error during {operation}: {error_message}",
            reason="The Google Docs API returned an error.",
            suggestion="Check the error message for details.",
            context=ErrorContext(document_id=document_id, received={"operation": operation})
        )


class DocsOperationError(Exception):
    """Base exception for resolution and mutation failures."""

    def __init__(self, error: StructuredError, document_id: Optional[str] = None):
        super().__init__(error.message)
        self.error = error
        self.document_id = document_id

    @property
    def code(self) -> str:
        return self.error.code

    def to_json(self) -> str:
        return self.error.to_json()


class DocumentNotFoundError(DocsOperationError):
    """The document does not exist or is not visible to the caller."""


class TargetNotFoundError(DocsOperationError):
    """A text occurrence, paragraph, table or cell could not be located."""


class OutOfBoundsError(DocsOperationError):
    """A row or column index exceeds the table dimensions."""


class InvalidRequestError(DocsOperationError):
    """Malformed input or a request rejected by the API as invalid."""


class PermissionDeniedError(DocsOperationError):
    """The caller lacks access to the document."""


class TransientDocsError(DocsOperationError):
    """Rate limiting or a server-side failure; the phase was aborted."""


class StaleOffsetError(DocsOperationError):
    """Offsets from an outdated snapshot were about to be written."""


class NotImplementedDocsError(DocsOperationError, NotImplementedError):
    """A declared capability that has not been built."""
