"""
Batch Operation Manager

This module sequences mutation requests and enforces the re-fetch barrier
between dependent phases of a multi-step edit.

Offsets in a request are only valid against the snapshot they were computed
from. Within one batchUpdate the API applies requests in order, so every
insert or delete shifts the offsets of everything after it. Sorting shifting
requests by descending start offset keeps each request's offsets valid at the
moment it is applied. Between batches the document must be re-fetched;
DocumentSession tracks snapshot generations and refuses offsets from an
outdated snapshot.

Features:
- Non-shifting requests (styles, bullet removal) first, in caller order
- Shifting requests (inserts, deletes, bullet creation) by descending offset
- Overlap detection for inserts and deletes in one batch
- No-op elision: None requests are dropped, empty batches make no call
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.config import get_max_batch_update_requests
from gdocs.docs_api import execute_batch_update, fetch_document
from gdocs.docs_helpers import OffsetRange
from gdocs.docs_structure import DocumentTree, parse_document_tree
from gdocs.errors import (
    DocsErrorBuilder,
    DocsOperationError,
    InvalidRequestError,
    StaleOffsetError,
)
from gdocs.observability import EventSink, default_sink

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    """The request types the engine emits, keyed by their API request name."""
    INSERT_TEXT = "insertText"
    DELETE_CONTENT_RANGE = "deleteContentRange"
    INSERT_TABLE = "insertTable"
    INSERT_INLINE_IMAGE = "insertInlineImage"
    UPDATE_TEXT_STYLE = "updateTextStyle"
    UPDATE_PARAGRAPH_STYLE = "updateParagraphStyle"
    CREATE_PARAGRAPH_BULLETS = "createParagraphBullets"
    DELETE_PARAGRAPH_BULLETS = "deleteParagraphBullets"

    @property
    def shifts_offsets(self) -> bool:
        return self in _SHIFTING_KINDS

    @property
    def is_insert(self) -> bool:
        return self in (MutationKind.INSERT_TEXT, MutationKind.INSERT_TABLE, MutationKind.INSERT_INLINE_IMAGE)

    @classmethod
    def of(cls, request: Dict[str, Any]) -> "MutationKind":
        """Classify a request dict. Raises InvalidRequestError for unknown types."""
        for key in request:
            try:
                return cls(key)
            except ValueError:
                continue
        raise InvalidRequestError(DocsErrorBuilder.invalid_param_value(
            "request", ", ".join(request) or "{}", [kind.value for kind in cls]
        ))


# Bullet creation strips leading tabs from each paragraph, so it shifts offsets too.
_SHIFTING_KINDS = frozenset({
    MutationKind.INSERT_TEXT,
    MutationKind.DELETE_CONTENT_RANGE,
    MutationKind.INSERT_TABLE,
    MutationKind.INSERT_INLINE_IMAGE,
    MutationKind.CREATE_PARAGRAPH_BULLETS,
})


def request_span(request: Dict[str, Any]) -> Tuple[int, int]:
    """(start, end) offsets a request targets. Inserts have start == end."""
    kind = MutationKind.of(request)
    body = request[kind.value]
    if 'location' in body:
        index = body['location']['index']
        return index, index
    api_range = body.get('range', {})
    return api_range.get('startIndex', 0), api_range.get('endIndex', 0)


def _check_overlaps(shifting: List[Tuple[MutationKind, int, int]]) -> None:
    deletes = [(start, end) for kind, start, end in shifting if kind == MutationKind.DELETE_CONTENT_RANGE]
    for i, (start, end) in enumerate(deletes):
        for other_start, other_end in deletes[i + 1:]:
            if start < other_end and other_start < end:
                raise InvalidRequestError(DocsErrorBuilder.overlapping_mutations(
                    {'start_index': start, 'end_index': end},
                    {'start_index': other_start, 'end_index': other_end},
                ))
    for kind, index, _ in shifting:
        if not kind.is_insert:
            continue
        for start, end in deletes:
            if start < index < end:
                raise InvalidRequestError(DocsErrorBuilder.overlapping_mutations(
                    {'index': index},
                    {'start_index': start, 'end_index': end},
                ))


def sequence_requests(
    requests: Sequence[Optional[Dict[str, Any]]],
    sink: Optional[EventSink] = None,
) -> List[Dict[str, Any]]:
    """
    Order a batch so every request's offsets hold when it is applied.

    Args:
        requests: Request dicts; None entries are elided no-ops
        sink: Event sink for diagnostics

    Returns:
        Non-shifting requests in their given order, then shifting requests by
        descending start offset (a delete before an insert at the same offset)

    Raises:
        InvalidRequestError: two deletes overlap, an insert falls strictly
            inside a deleted range, or a request type is unknown
    """
    non_shifting = []
    shifting = []
    elided = 0
    for position, request in enumerate(requests):
        if request is None:
            elided += 1
            continue
        kind = MutationKind.of(request)
        if kind.shifts_offsets:
            start, end = request_span(request)
            shifting.append((kind, start, end, position, request))
        else:
            non_shifting.append(request)

    _check_overlaps([(kind, start, end) for kind, start, end, _, _ in shifting])

    shifting.sort(key=lambda item: (
        -item[1],
        0 if item[0] == MutationKind.DELETE_CONTENT_RANGE else 1,
        item[3],
    ))

    ordered = non_shifting + [item[4] for item in shifting]
    if sink is not None:
        sink.emit("batch.sequenced", requests=len(ordered), elided=elided,
                  shifting=len(shifting))
    return ordered


class OperationPhase(str, Enum):
    """Where a DocumentSession is in its fetch/submit cycle."""
    PLANNING = "planning"
    SUBMITTED = "submitted"
    DONE = "done"
    FAILED = "failed"


class DocumentSession:
    """
    One logical operation against one document.

    The session alternates between PLANNING (offsets may be computed from the
    latest snapshot) and SUBMITTED (a batch was applied; every earlier offset
    is stale until the next fetch). Any transport error moves it to FAILED and
    the remaining phases are abandoned; batches already applied are kept.
    """

    def __init__(
        self,
        service: Any,
        document_id: str,
        tab_id: Optional[str] = None,
        sink: Optional[EventSink] = None,
        max_batch_requests: Optional[int] = None,
    ):
        self.service = service
        self.document_id = document_id
        self.tab_id = tab_id
        self.sink = sink or default_sink()
        self.max_batch_requests = (
            max_batch_requests if max_batch_requests is not None else get_max_batch_update_requests()
        )
        self.phase = OperationPhase.PLANNING
        self.generation = 0
        self.snapshot: Optional[DocumentTree] = None
        self.raw_document: Optional[Dict[str, Any]] = None
        self.batches_applied = 0

    def _fail(self, error: Exception) -> None:
        self.phase = OperationPhase.FAILED
        self.sink.emit("session.failed", level=logging.WARNING, document_id=self.document_id,
                       batches_applied=self.batches_applied, error=str(error))

    def _require_open(self) -> None:
        if self.phase in (OperationPhase.FAILED, OperationPhase.DONE):
            raise StaleOffsetError(
                DocsErrorBuilder.stale_offsets(self.generation, self.generation),
                self.document_id,
            )

    async def fetch(self) -> DocumentTree:
        """Fetch the document and start a new planning phase with a new generation."""
        self._require_open()
        try:
            raw = await fetch_document(self.service, self.document_id)
            snapshot = parse_document_tree(raw, self.tab_id, self.generation + 1)
        except DocsOperationError as error:
            self._fail(error)
            raise

        self.generation += 1
        self.raw_document = raw
        self.snapshot = snapshot
        if not self.snapshot.document_id:
            self.snapshot.document_id = self.document_id
        self.phase = OperationPhase.PLANNING
        self.sink.emit("session.fetched", document_id=self.document_id, generation=self.generation,
                       elements=len(self.snapshot.content))
        return self.snapshot

    def assert_fresh(self, *ranges: Any) -> None:
        """
        Raise StaleOffsetError if any range was computed from an older snapshot.

        Ranges with generation None were supplied by the caller and are not
        checked.
        """
        for offset_range in ranges:
            generation = getattr(offset_range, "generation", None)
            if generation is not None and generation != self.generation:
                raise StaleOffsetError(
                    DocsErrorBuilder.stale_offsets(generation, self.generation),
                    self.document_id,
                )

    async def submit(
        self,
        requests: Sequence[Optional[Dict[str, Any]]],
        snapshot: Optional[DocumentTree] = None,
        ranges: Sequence[OffsetRange] = (),
    ) -> Dict[str, Any]:
        """
        Sequence and apply one batch.

        Args:
            requests: Requests built from snapshot (None entries are dropped)
            snapshot: The tree the offsets were computed from, if any
            ranges: Extra ranges to check for staleness

        Returns:
            The batchUpdate response, or {} when the batch was empty
        """
        self._require_open()
        if self.phase == OperationPhase.SUBMITTED:
            # A previous batch shifted offsets and nothing was re-fetched.
            raise StaleOffsetError(
                DocsErrorBuilder.stale_offsets(self.generation - 1, self.generation),
                self.document_id,
            )
        if snapshot is not None:
            self.assert_fresh(snapshot)
        self.assert_fresh(*ranges)

        ordered = sequence_requests(requests, self.sink)
        if not ordered:
            self.sink.emit("batch.elided", document_id=self.document_id)
            return {}

        if len(ordered) > self.max_batch_requests:
            self.sink.emit("batch.oversized", level=logging.WARNING, document_id=self.document_id,
                           requests=len(ordered), limit=self.max_batch_requests)

        self.phase = OperationPhase.SUBMITTED
        try:
            response = await execute_batch_update(self.service, self.document_id, ordered)
        except DocsOperationError as error:
            self._fail(error)
            raise

        self.generation += 1
        self.batches_applied += 1
        self.sink.emit("batch.applied", level=logging.INFO, document_id=self.document_id,
                       requests=len(ordered), generation=self.generation)
        return response

    def complete(self) -> None:
        if self.phase != OperationPhase.FAILED:
            self.phase = OperationPhase.DONE
