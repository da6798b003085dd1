"""
Validation Manager

This module provides centralized validation logic for Google Docs operations.
Validators return (is_valid, error) where error is a StructuredError, so the
same checks serve the managers (which raise) and the tools (which return
the error JSON).
"""
import logging
import re
from typing import Dict, Any, List, Tuple, Optional
from urllib.parse import urlparse

from gdocs.docs_helpers import NAMED_STYLE_TYPES, PARAGRAPH_ALIGNMENTS
from gdocs.docs_lists import BULLET_PRESETS
from gdocs.errors import (
    DocsErrorBuilder,
    InvalidRequestError,
    StructuredError,
)

logger = logging.getLogger(__name__)

ValidationResult = Tuple[bool, Optional[StructuredError]]

_VALID: ValidationResult = (True, None)

TEXT_STYLE_FIELDS = {
    'bold', 'italic', 'underline', 'strikethrough', 'font_size', 'font_family',
    'link', 'foreground_color', 'background_color',
}

PARAGRAPH_STYLE_FIELDS = {
    'alignment', 'indent_start', 'indent_end', 'space_above', 'space_below',
    'named_style_type', 'keep_with_next',
}


class ValidationManager:
    """
    Centralized validation manager for Google Docs operations.

    Provides consistent validation patterns and error messages across
    all document operations.
    """

    def __init__(self):
        """Initialize the validation manager."""
        self.validation_rules = self._setup_validation_rules()

    def _setup_validation_rules(self) -> Dict[str, Any]:
        """Setup validation rules and constraints."""
        return {
            'table_max_rows': 1000,
            'table_max_columns': 20,
            'document_id_pattern': r'^[a-zA-Z0-9-_]+$',
            'font_size_range': (1, 400),  # Google Docs font size limits
            'valid_bullet_presets': BULLET_PRESETS,
            'valid_alignments': PARAGRAPH_ALIGNMENTS + ['LEFT', 'RIGHT', 'JUSTIFY'],
            'valid_named_styles': NAMED_STYLE_TYPES,
        }

    def raise_if_invalid(self, result: ValidationResult, document_id: Optional[str] = None) -> None:
        """Raise InvalidRequestError when a validator rejected its input."""
        is_valid, error = result
        if not is_valid:
            logger.debug(f"Validation failed: {error.message}")
            raise InvalidRequestError(error, document_id)

    def validate_document_id(self, document_id: str) -> ValidationResult:
        """
        Validate Google Docs document ID format.

        Args:
            document_id: Document ID to validate
        """
        if not document_id or not isinstance(document_id, str):
            return False, DocsErrorBuilder.invalid_param_value(
                "document_id", document_id, ["non-empty document ID from the document URL"]
            )

        if not re.match(self.validation_rules['document_id_pattern'], document_id):
            return False, DocsErrorBuilder.invalid_param_value(
                "document_id", document_id, ["letters, digits, '-' and '_' only"]
            )

        return _VALID

    def validate_search_text(self, search_text: str) -> ValidationResult:
        if not search_text:
            return False, DocsErrorBuilder.empty_search_text()
        return _VALID

    def validate_occurrence(self, occurrence: Any) -> ValidationResult:
        if isinstance(occurrence, bool) or not isinstance(occurrence, int) or occurrence < 1:
            return False, DocsErrorBuilder.invalid_occurrence(occurrence)
        return _VALID

    def validate_index(self, index: Any, context: str = "index") -> ValidationResult:
        """
        Validate a single document index.

        Body content starts at index 1; index 0 is never editable.
        """
        if isinstance(index, bool) or not isinstance(index, int):
            return False, DocsErrorBuilder.invalid_param_value(context, index, ["integer >= 1"])

        if index < 1:
            return False, DocsErrorBuilder.invalid_param_value(context, index, ["integer >= 1"])

        return _VALID

    def validate_index_range(self, start_index: Any, end_index: Any) -> ValidationResult:
        """Validate a half-open [start_index, end_index) range."""
        for value in (start_index, end_index):
            if isinstance(value, bool) or not isinstance(value, int):
                return False, DocsErrorBuilder.invalid_index_range(start_index, end_index)

        if start_index < 0 or end_index <= start_index:
            return False, DocsErrorBuilder.invalid_index_range(start_index, end_index)

        return _VALID

    def validate_table_dimensions(self, rows: Any, columns: Any) -> ValidationResult:
        for value in (rows, columns):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                return False, DocsErrorBuilder.invalid_table_dimensions(rows, columns)

        if rows > self.validation_rules['table_max_rows']:
            return False, DocsErrorBuilder.invalid_table_data(
                f"Too many rows ({rows}). Maximum allowed: {self.validation_rules['table_max_rows']}"
            )

        if columns > self.validation_rules['table_max_columns']:
            return False, DocsErrorBuilder.invalid_table_data(
                f"Too many columns ({columns}). Maximum allowed: {self.validation_rules['table_max_columns']}"
            )

        return _VALID

    def validate_table_data(self, headers: List[str], rows: List[List[str]]) -> ValidationResult:
        """
        Validate header and body rows for a populated table.

        Body rows may be shorter than the header (missing cells stay empty)
        but never longer.
        """
        if not isinstance(headers, list) or not headers:
            return False, DocsErrorBuilder.invalid_table_dimensions(1 + len(rows or []), 0)

        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            return False, DocsErrorBuilder.invalid_table_data("rows must be a list of lists")

        is_valid, error = self.validate_table_dimensions(len(rows) + 1, len(headers))
        if not is_valid:
            return is_valid, error

        for row_idx, row in enumerate([headers] + rows):
            if len(row) > len(headers):
                return False, DocsErrorBuilder.invalid_table_data(
                    f"Row {row_idx} has {len(row)} cells but there are only {len(headers)} headers"
                )
            for col_idx, cell in enumerate(row):
                if cell is None:
                    return False, DocsErrorBuilder.invalid_table_data(
                        f"Cell ({row_idx},{col_idx}) is None"
                    )
                if not isinstance(cell, str):
                    return False, DocsErrorBuilder.invalid_table_data(
                        f"Cell ({row_idx},{col_idx}) is {type(cell).__name__}, not string. Value: {cell!r}"
                    )

        return _VALID

    def validate_text_style(self, text_style: Optional[Dict[str, Any]]) -> ValidationResult:
        """
        Validate text style options.

        An empty or all-None style is valid here; callers decide whether
        "nothing to apply" is an error.
        """
        text_style = text_style or {}
        unknown = sorted(set(text_style) - TEXT_STYLE_FIELDS)
        if unknown:
            return False, DocsErrorBuilder.invalid_param_value(
                "text_style", ", ".join(unknown), sorted(TEXT_STYLE_FIELDS)
            )

        font_size = text_style.get('font_size')
        if font_size is not None:
            min_size, max_size = self.validation_rules['font_size_range']
            if isinstance(font_size, bool) or not isinstance(font_size, (int, float)) \
                    or not min_size <= font_size <= max_size:
                return False, DocsErrorBuilder.invalid_param_value(
                    "font_size", font_size, [f"number between {min_size} and {max_size}"]
                )

        for name in ('foreground_color', 'background_color'):
            color = text_style.get(name)
            if color is not None:
                is_valid, error = self._validate_color_format(color, name)
                if not is_valid:
                    return is_valid, error

        return _VALID

    def _validate_color_format(self, color: Any, param_name: str = "color") -> ValidationResult:
        """
        Validate that a color string is in a valid format.

        Named colors must match _parse_color in docs_helpers.py.
        """
        named_colors = {'red', 'green', 'blue', 'yellow', 'orange', 'purple', 'black', 'white', 'gray', 'grey'}

        if not isinstance(color, str) or not color.strip():
            return False, DocsErrorBuilder.invalid_color_format(str(color), param_name)

        if color.lower() in named_colors:
            return _VALID

        if color.startswith('#'):
            hex_color = color.lstrip('#')
            if len(hex_color) in (3, 6) and all(c in '0123456789abcdefABCDEF' for c in hex_color):
                return _VALID

        return False, DocsErrorBuilder.invalid_color_format(color, param_name)

    def validate_paragraph_style(self, paragraph_style: Optional[Dict[str, Any]]) -> ValidationResult:
        """Validate paragraph style options. Empty styles are valid."""
        paragraph_style = paragraph_style or {}
        unknown = sorted(set(paragraph_style) - PARAGRAPH_STYLE_FIELDS)
        if unknown:
            return False, DocsErrorBuilder.invalid_param_value(
                "paragraph_style", ", ".join(unknown), sorted(PARAGRAPH_STYLE_FIELDS)
            )

        alignment = paragraph_style.get('alignment')
        if alignment is not None and (
            not isinstance(alignment, str) or alignment.upper() not in self.validation_rules['valid_alignments']
        ):
            return False, DocsErrorBuilder.invalid_param_value(
                "alignment", alignment, self.validation_rules['valid_alignments']
            )

        named_style = paragraph_style.get('named_style_type')
        if named_style is not None and named_style not in self.validation_rules['valid_named_styles']:
            return False, DocsErrorBuilder.invalid_param_value(
                "named_style_type", named_style, self.validation_rules['valid_named_styles']
            )

        for name in ('indent_start', 'indent_end', 'space_above', 'space_below'):
            value = paragraph_style.get(name)
            if value is not None and (
                isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0
            ):
                return False, DocsErrorBuilder.invalid_param_value(name, value, ["number of points >= 0"])

        return _VALID

    def validate_bullet_preset(self, preset: str) -> ValidationResult:
        if preset not in self.validation_rules['valid_bullet_presets']:
            return False, DocsErrorBuilder.invalid_param_value(
                "bullet_style", preset, self.validation_rules['valid_bullet_presets']
            )
        return _VALID

    def validate_image_url(self, image_url: str) -> ValidationResult:
        """Inline images must come from an absolute http(s) URL."""
        if not isinstance(image_url, str):
            return False, DocsErrorBuilder.invalid_image_url(str(image_url))
        parsed = urlparse(image_url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            return False, DocsErrorBuilder.invalid_image_url(image_url)
        return _VALID

    def validate_image_size(self, width: Any, height: Any) -> ValidationResult:
        for name, value in (('width', width), ('height', height)):
            if value is not None and (
                isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0
            ):
                return False, DocsErrorBuilder.invalid_param_value(name, value, ["positive number of points"])
        return _VALID
