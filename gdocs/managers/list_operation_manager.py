"""
List Operation Manager

Turns paragraphs with typed markers ("- item", "1. item", "a) item") into
real Docs lists, and applies or removes bullets over a range.
"""
import logging
from typing import Any, Dict, Optional

from gdocs.docs_helpers import (
    OffsetRange,
    create_bullet_list_request,
    create_delete_bullets_request,
    create_delete_range_request,
)
from gdocs.docs_lists import BulletStyle, detect_list_paragraphs
from gdocs.errors import DocsErrorBuilder, StaleOffsetError
from gdocs.managers.batch_operation_manager import DocumentSession
from gdocs.managers.validation_manager import ValidationManager
from gdocs.observability import EventSink, default_sink

logger = logging.getLogger(__name__)


class ListOperationManager:
    """High-level manager for list conversion and bullet formatting."""

    def __init__(self, service: Any, tab_id: Optional[str] = None, sink: Optional[EventSink] = None):
        self.service = service
        self.tab_id = tab_id
        self.sink = sink or default_sink()
        self.validator = ValidationManager()

    def _range_filter(
        self, document_id: str, start_index: Optional[int], end_index: Optional[int]
    ) -> Optional[OffsetRange]:
        if start_index is None and end_index is None:
            return None
        self.validator.raise_if_invalid(self.validator.validate_index_range(start_index, end_index), document_id)
        return OffsetRange(start_index, end_index)

    async def convert_marked_paragraphs_to_lists(
        self,
        document_id: str,
        start_index: Optional[int] = None,
        end_index: Optional[int] = None,
    ) -> int:
        """
        Convert marker-prefixed paragraphs into bulleted or numbered lists.

        Two phases: bullets are created for every detected paragraph in one
        batch, then the document is re-fetched and the typed markers are
        deleted. Markers are re-detected on the new snapshot because bullet
        creation removes leading tabs and shifts offsets; only the paragraphs
        converted in the first phase are considered, matched by position.

        Args:
            document_id: Document to update
            start_index: Optional start of the range to scan
            end_index: Optional end of the range to scan

        Returns:
            Number of paragraphs converted
        """
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        range_filter = self._range_filter(document_id, start_index, end_index)

        session = DocumentSession(self.service, document_id, self.tab_id, self.sink)
        tree = await session.fetch()
        matches = detect_list_paragraphs(tree, range_filter, sink=self.sink)
        if not matches:
            logger.info(f"No typed list markers found in {document_id}")
            session.complete()
            return 0

        await session.submit(
            [
                create_bullet_list_request(
                    match.paragraph_range.start_index,
                    match.paragraph_range.end_index,
                    match.bullet_style.value,
                    self.tab_id,
                )
                for match in matches
            ],
            snapshot=tree,
        )

        # Offsets from the first snapshot are stale here; paragraphs are
        # re-selected by document-order position, which bullets do not change.
        first_generation = tree.generation
        paragraph_count = sum(1 for _ in tree.iter_paragraphs())
        tree = await session.fetch()
        if sum(1 for _ in tree.iter_paragraphs()) != paragraph_count:
            logger.warning(f"Paragraph count of {document_id} changed between list conversion phases")
            raise StaleOffsetError(
                DocsErrorBuilder.stale_offsets(first_generation, tree.generation), document_id
            )
        bulleted = detect_list_paragraphs(
            tree,
            bulleted_only=True,
            sink=self.sink,
            paragraph_ordinals={match.paragraph_ordinal for match in matches},
        )
        await session.submit(
            [
                create_delete_range_request(
                    match.marker_start_index,
                    match.marker_start_index + match.marker_length,
                    self.tab_id,
                )
                for match in bulleted
            ],
            snapshot=tree,
        )
        session.complete()

        logger.info(
            f"Converted {len(matches)} paragraphs to lists in {document_id}, removed {len(bulleted)} markers"
        )
        return len(matches)

    async def apply_bullet_list(
        self,
        document_id: str,
        start_index: int,
        end_index: int,
        bullet_style: str = BulletStyle.BULLET_DISC_CIRCLE_SQUARE.value,
    ) -> Dict[str, Any]:
        """Apply a bullet preset to every paragraph overlapping the range."""
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index_range(start_index, end_index), document_id)
        self.validator.raise_if_invalid(self.validator.validate_bullet_preset(bullet_style), document_id)

        session = DocumentSession(self.service, document_id, self.tab_id, self.sink)
        await session.submit([create_bullet_list_request(start_index, end_index, bullet_style, self.tab_id)])
        session.complete()
        return {'range': {'start_index': start_index, 'end_index': end_index}, 'bullet_style': bullet_style}

    async def remove_bullet_list(self, document_id: str, start_index: int, end_index: int) -> Dict[str, Any]:
        """Remove bullets from every paragraph overlapping the range."""
        self.validator.raise_if_invalid(self.validator.validate_document_id(document_id), document_id)
        self.validator.raise_if_invalid(self.validator.validate_index_range(start_index, end_index), document_id)

        session = DocumentSession(self.service, document_id, self.tab_id, self.sink)
        await session.submit([create_delete_bullets_request(start_index, end_index, self.tab_id)])
        session.complete()
        return {'range': {'start_index': start_index, 'end_index': end_index}}
