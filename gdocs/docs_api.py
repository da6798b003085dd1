"""
Google Docs API collaborators.

The two calls the engine makes against the remote document: fetching the
document tree and applying a batch of mutation requests. HttpErrors are
translated into the DocsOperationError hierarchy with the document id attached.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from googleapiclient.errors import HttpError

from gdocs.errors import (
    DocsErrorBuilder,
    DocsOperationError,
    DocumentNotFoundError,
    InvalidRequestError,
    PermissionDeniedError,
    TransientDocsError,
)

logger = logging.getLogger(__name__)


def _error_detail(error: HttpError) -> str:
    return getattr(error, "reason", None) or str(error)


def translate_http_error(error: HttpError, document_id: str, operation: str) -> DocsOperationError:
    """Map an HttpError from the Docs API onto the engine's error taxonomy."""
    status = getattr(error.resp, "status", None)
    detail = _error_detail(error)

    if status == 404:
        return DocumentNotFoundError(DocsErrorBuilder.document_not_found(document_id), document_id)
    if status in (401, 403):
        return PermissionDeniedError(DocsErrorBuilder.permission_denied(document_id, detail), document_id)
    if status == 400:
        return InvalidRequestError(DocsErrorBuilder.api_error(operation, detail, document_id), document_id)
    if status == 429 or (status is not None and status >= 500):
        return TransientDocsError(DocsErrorBuilder.transient_error(document_id, detail), document_id)
    return DocsOperationError(DocsErrorBuilder.api_error(operation, detail, document_id), document_id)


async def fetch_document(
    service: Any,
    document_id: str,
    fields: Optional[str] = None
) -> Dict[str, Any]:
    """
    Fetch the raw document with every tab's content.

    Args:
        service: Google Docs API service
        document_id: Document to fetch
        fields: Optional field mask

    Returns:
        Raw document dict as returned by documents.get
    """
    params = {'documentId': document_id, 'includeTabsContent': True}
    if fields:
        params['fields'] = fields

    logger.debug(f"Fetching document {document_id}")
    try:
        return await asyncio.to_thread(
            service.documents().get(**params).execute
        )
    except HttpError as error:
        logger.error(f"Failed to fetch document {document_id}: {error}")
        raise translate_http_error(error, document_id, "fetch document") from error


async def execute_batch_update(
    service: Any,
    document_id: str,
    requests: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """
    Apply a batch of requests in one documents.batchUpdate call.

    The batch is atomic on the server: either every request applies or none.
    """
    logger.debug(f"Executing batch update with {len(requests)} requests on {document_id}")
    try:
        return await asyncio.to_thread(
            service.documents().batchUpdate(
                documentId=document_id,
                body={'requests': requests}
            ).execute
        )
    except HttpError as error:
        logger.error(f"Batch update failed for {document_id}: {error}")
        raise translate_http_error(error, document_id, "batch update") from error
