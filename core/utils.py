import asyncio
import functools
import logging
import ssl

from googleapiclient.errors import HttpError

from core.docs_service import DocsAuthenticationError
from gdocs.docs_api import translate_http_error
from gdocs.errors import DocsOperationError

logger = logging.getLogger(__name__)


class TransientNetworkError(Exception):
    """Custom exception for transient network errors after retries."""

    pass


def handle_http_errors(
    tool_name: str, is_read_only: bool = False, service_type: str = "docs"
):
    """
    A decorator to handle Docs operation errors and transient SSL errors in a standardized way.

    It wraps a tool function and turns every DocsOperationError (and any
    HttpError that escaped the managers) into the structured JSON error
    string, so a caller can always tell "nothing matched" from "the call
    failed".

    If is_read_only is True, it will also catch ssl.SSLError and retry with
    exponential backoff. After exhausting retries, it raises a TransientNetworkError.
    Mutating tools are never retried: a retried batch would reuse offsets
    that the first attempt may already have shifted.

    Args:
        tool_name (str): The name of the tool being decorated (e.g., 'locate_text').
        is_read_only (bool): If True, the operation is considered safe to retry on
                             transient network errors. Defaults to False.
        service_type (str): The Google service type, used in log messages.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            max_retries = 3
            base_delay = 1

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except ssl.SSLError as e:
                    if is_read_only and attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            f"SSL error in {tool_name} on attempt {attempt + 1}: {e}. Retrying in {delay} seconds..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"SSL error in {tool_name} on final attempt: {e}. Raising exception."
                        )
                        raise TransientNetworkError(
                            f"A transient SSL error occurred in '{tool_name}' after {attempt + 1} attempts. "
                            "This is likely a temporary network or certificate issue. Please try again shortly."
                        ) from e
                except DocsOperationError as error:
                    logger.warning(
                        f"{service_type} operation {tool_name} failed with {error.code}: {error}"
                    )
                    return error.to_json()
                except HttpError as error:
                    document_id = kwargs.get("document_id", "unknown")
                    translated = translate_http_error(error, document_id, tool_name)
                    logger.error(f"API error in {tool_name}: {error}", exc_info=True)
                    return translated.to_json()
                except TransientNetworkError:
                    # Re-raise without wrapping to preserve the specific error type
                    raise
                except DocsAuthenticationError:
                    # Re-raise authentication errors without wrapping
                    raise
                except Exception as e:
                    message = f"An unexpected error occurred in {tool_name}: {e}"
                    logger.exception(message)
                    raise Exception(message) from e

        return wrapper

    return decorator
