"""
Text Operation Manager

Resolves text and paragraph targets against a fresh snapshot of the document
and applies single-phase edits: text insertion and deletion, text and
paragraph styling, and inline images.
"""
import logging
from typing import Any, Dict, Optional

from gdocs.docs_helpers import (
    OffsetRange,
    create_delete_range_request,
    create_format_text_request,
    create_insert_image_request,
    create_insert_text_request,
    create_paragraph_style_request,
    find_all_text_ranges,
    find_text_range,
    utf16_len,
)
from gdocs.docs_structure import DocumentTree, find_enclosing_paragraph, flatten_document
from gdocs.errors import (
    DocsErrorBuilder,
    InvalidRequestError,
    NotImplementedDocsError,
    TargetNotFoundError,
)
from gdocs.managers.batch_operation_manager import DocumentSession
from gdocs.managers.validation_manager import ValidationManager
from gdocs.observability import EventSink, default_sink

logger = logging.getLogger(__name__)


class TextOperationManager:
    """
    High-level manager for text location and single-batch edits.

    Every operation re-fetches the document; nothing is cached between calls.
    """

    def __init__(self, service: Any, tab_id: Optional[str] = None, sink: Optional[EventSink] = None):
        """
        Args:
            service: Google Docs API service instance
            tab_id: Optional tab ID for multi-tab documents
            sink: Event sink for diagnostics
        """
        self.service = service
        self.tab_id = tab_id
        self.sink = sink or default_sink()
        self.validator = ValidationManager()

    def _session(self, document_id: str) -> DocumentSession:
        return DocumentSession(self.service, document_id, self.tab_id, self.sink)

    def _locate(
        self,
        tree: DocumentTree,
        document_id: str,
        needle: str,
        occurrence: int,
        match_case: bool,
    ) -> OffsetRange:
        segments = flatten_document(tree)
        found = find_text_range(segments, needle, occurrence, match_case, self.sink, tree.generation)
        if found is None:
            total = len(find_all_text_ranges(segments, needle, match_case))
            raise TargetNotFoundError(
                DocsErrorBuilder.search_text_not_found(needle, occurrence, total, match_case),
                document_id,
            )
        return found

    def _validate_search(self, document_id: str, needle: str, occurrence: int) -> None:
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_search_text(needle), document_id)
        self.validator.raise_if_invalid(self.validator.validate_occurrence(occurrence), document_id)

    async def locate_text(
        self,
        document_id: str,
        needle: str,
        occurrence: int = 1,
        match_case: bool = True,
    ) -> OffsetRange:
        """
        Find the Nth occurrence of needle.

        Raises:
            TargetNotFoundError: fewer than occurrence matches exist
        """
        self._validate_search(document_id, needle, occurrence)
        session = self._session(document_id)
        tree = await session.fetch()
        found = self._locate(tree, document_id, needle, occurrence, match_case)
        session.complete()
        return found

    async def locate_paragraph(self, document_id: str, index: int) -> OffsetRange:
        """
        Range of the paragraph containing index, including paragraphs in table cells.

        Raises:
            TargetNotFoundError: index is not inside any paragraph
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index(index), document_id)
        session = self._session(document_id)
        tree = await session.fetch()
        found = find_enclosing_paragraph(tree, index)
        session.complete()
        if found is None:
            raise TargetNotFoundError(DocsErrorBuilder.paragraph_not_found(index), document_id)
        return found

    async def insert_text(self, document_id: str, index: int, text: str) -> Dict[str, Any]:
        """
        Insert text at index. Empty text makes no remote call.
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index(index), document_id)

        session = self._session(document_id)
        request = create_insert_text_request(index, text, self.tab_id)
        await session.submit([request])
        session.complete()
        return {
            'inserted': request is not None,
            'index': index,
            'length': utf16_len(text or ""),
        }

    async def delete_range(self, document_id: str, start_index: int, end_index: int) -> Dict[str, Any]:
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index_range(start_index, end_index), document_id)

        session = self._session(document_id)
        await session.submit([create_delete_range_request(start_index, end_index, self.tab_id)])
        session.complete()
        return {'deleted': end_index - start_index, 'start_index': start_index, 'end_index': end_index}

    async def _resolve_target_range(
        self,
        session: DocumentSession,
        document_id: str,
        start_index: Optional[int],
        end_index: Optional[int],
        text_to_find: Optional[str],
        occurrence: int,
        match_case: bool,
    ) -> OffsetRange:
        if text_to_find is not None:
            self._validate_search(document_id, text_to_find, occurrence)
            tree = await session.fetch()
            return self._locate(tree, document_id, text_to_find, occurrence, match_case)

        if start_index is None or end_index is None:
            raise InvalidRequestError(
                DocsErrorBuilder.invalid_param_value(
                    "target", "none", ["start_index and end_index", "text_to_find"]
                ),
                document_id,
            )
        self.validator.raise_if_invalid(self.validator.validate_index_range(start_index, end_index), document_id)
        return OffsetRange(start_index, end_index)

    async def apply_text_style(
        self,
        document_id: str,
        text_style: Dict[str, Any],
        start_index: Optional[int] = None,
        end_index: Optional[int] = None,
        text_to_find: Optional[str] = None,
        occurrence: int = 1,
        match_case: bool = True,
    ) -> Dict[str, Any]:
        """
        Apply character formatting to an explicit range or to the Nth match
        of text_to_find.

        Raises:
            InvalidRequestError: no style option is set, or no target given
            TargetNotFoundError: text_to_find has fewer than occurrence matches
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_text_style(text_style), document_id)

        # Probe with dummy offsets so an empty style fails before any fetch.
        if create_format_text_request(0, 1, **(text_style or {})) is None:
            raise InvalidRequestError(DocsErrorBuilder.no_style_fields("text"), document_id)

        session = self._session(document_id)
        target = await self._resolve_target_range(
            session, document_id, start_index, end_index, text_to_find, occurrence, match_case
        )
        request = create_format_text_request(
            target.start_index, target.end_index, tab_id=self.tab_id, **text_style
        )
        await session.submit([request], ranges=[target])
        session.complete()
        logger.info(f"Applied text style {sorted(text_style)} to {target.start_index}-{target.end_index}")
        return {'range': target.to_dict(), 'styles_applied': sorted(k for k, v in text_style.items() if v is not None)}

    async def apply_paragraph_style(
        self,
        document_id: str,
        paragraph_style: Dict[str, Any],
        start_index: Optional[int] = None,
        end_index: Optional[int] = None,
        text_to_find: Optional[str] = None,
        index_within: Optional[int] = None,
        occurrence: int = 1,
        match_case: bool = True,
    ) -> Dict[str, Any]:
        """
        Apply paragraph formatting.

        The target is, in order of precedence: the paragraph containing the
        Nth match of text_to_find, the paragraph containing index_within, or
        the explicit range.
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_paragraph_style(paragraph_style), document_id)

        if create_paragraph_style_request(0, 1, **(paragraph_style or {})) is None:
            raise InvalidRequestError(DocsErrorBuilder.no_style_fields("paragraph"), document_id)

        session = self._session(document_id)
        if text_to_find is not None or index_within is not None:
            if text_to_find is not None:
                self._validate_search(document_id, text_to_find, occurrence)
            else:
                self.validator.raise_if_invalid(self.validator.validate_index(index_within), document_id)
            tree = await session.fetch()
            anchor = index_within
            if text_to_find is not None:
                anchor = self._locate(tree, document_id, text_to_find, occurrence, match_case).start_index
            target = find_enclosing_paragraph(tree, anchor)
            if target is None:
                raise TargetNotFoundError(DocsErrorBuilder.paragraph_not_found(anchor), document_id)
        else:
            target = await self._resolve_target_range(
                session, document_id, start_index, end_index, None, occurrence, match_case
            )

        request = create_paragraph_style_request(
            target.start_index, target.end_index, tab_id=self.tab_id, **paragraph_style
        )
        await session.submit([request], ranges=[target])
        session.complete()
        return {
            'range': target.to_dict(),
            'styles_applied': sorted(k for k, v in paragraph_style.items() if v is not None),
        }

    async def insert_image(
        self,
        document_id: str,
        index: int,
        image_url: str,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Insert an inline image from a public URL. Size applies only when both dimensions are given."""
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index(index), document_id)
        self.validator.raise_if_invalid(self.validator.validate_image_url(image_url), document_id)
        self.validator.raise_if_invalid(self.validator.validate_image_size(width, height), document_id)

        session = self._session(document_id)
        response = await session.submit([
            create_insert_image_request(index, image_url, width, height, self.tab_id)
        ])
        session.complete()

        object_id = None
        replies = response.get('replies', [])
        if replies:
            object_id = replies[0].get('insertInlineImage', {}).get('objectId')
        return {'index': index, 'image_url': image_url, 'object_id': object_id}

    async def find_paragraphs_matching_style(self, document_id: str, style_criteria: Dict[str, Any]):
        raise NotImplementedDocsError(
            DocsErrorBuilder.not_implemented("Finding paragraphs by style criteria"), document_id
        )

    async def add_comment(self, document_id: str, text: str, start_index: int, end_index: int):
        # Anchored comments need the Drive comments API, which is not wired in.
        raise NotImplementedDocsError(
            DocsErrorBuilder.not_implemented("Adding anchored comments"), document_id
        )
