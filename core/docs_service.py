"""
Google Docs service construction and injection.

Tools declare a leading `service` parameter; require_docs_service builds an
authenticated Docs v1 client and passes it in, and hides the parameter from
the tool schema FastMCP publishes.
"""

import asyncio
import functools
import inspect
import logging
import os
from typing import Any, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from core.config import get_token_path

logger = logging.getLogger(__name__)

DOCS_SCOPES = {
    "docs_read": ["https://www.googleapis.com/auth/documents.readonly"],
    "docs_write": ["https://www.googleapis.com/auth/documents"],
}

_service_cache: dict = {}


class DocsAuthenticationError(Exception):
    """No usable credentials for the Docs API."""


def _load_credentials(scopes: list) -> Credentials:
    token_path = get_token_path()
    if not os.path.exists(token_path):
        raise DocsAuthenticationError(
            f"No authorized-user token found at '{token_path}'. "
            "Set GOOGLE_DOCS_TOKEN_PATH to a token file created with the documents scope."
        )

    credentials = Credentials.from_authorized_user_file(token_path, scopes)
    if not credentials.valid:
        if credentials.expired and credentials.refresh_token:
            logger.info("Refreshing expired Google credentials")
            credentials.refresh(Request())
            with open(token_path, "w") as f:
                f.write(credentials.to_json())
        else:
            raise DocsAuthenticationError(
                f"Credentials in '{token_path}' are invalid and cannot be refreshed."
            )
    return credentials


def get_docs_service(scope_group: str = "docs_write") -> Any:
    """Build (or reuse) a Docs v1 client authorized for scope_group."""
    if scope_group not in DOCS_SCOPES:
        raise ValueError(f"Unknown scope group '{scope_group}'. Use one of: {', '.join(DOCS_SCOPES)}")

    service = _service_cache.get(scope_group)
    if service is None:
        credentials = _load_credentials(DOCS_SCOPES[scope_group])
        service = build("docs", "v1", credentials=credentials, cache_discovery=False)
        _service_cache[scope_group] = service
        logger.debug(f"Built Docs service for scope group '{scope_group}'")
    return service


def clear_service_cache() -> None:
    _service_cache.clear()


def require_docs_service(scope_group: str = "docs_write", service: Optional[Any] = None):
    """
    Decorator that injects an authenticated Docs service as the first argument.

    Args:
        scope_group: "docs_read" or "docs_write"
        service: Optional prebuilt service, used instead of building one
    """

    def decorator(func):
        original_sig = inspect.signature(func)
        params = list(original_sig.parameters.values())
        if not params or params[0].name != "service":
            raise TypeError(f"{func.__name__} must declare 'service' as its first parameter")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            docs_service = service
            if docs_service is None:
                docs_service = await asyncio.to_thread(get_docs_service, scope_group)
            return await func(docs_service, *args, **kwargs)

        wrapper.__signature__ = original_sig.replace(parameters=params[1:])
        return wrapper

    return decorator
