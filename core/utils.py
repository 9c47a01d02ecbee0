import asyncio
import functools
import json
import logging
import ssl

from googleapiclient.errors import HttpError

from core.google_services import GoogleAuthenticationError
from gtemplates.errors import TemplateEngineError, format_error

logger = logging.getLogger(__name__)


class TransientNetworkError(Exception):
    """Custom exception for transient network errors after retries."""

    pass


def _create_not_found_error(document_id: str) -> str:
    """
    Create a structured error response for document not found (404) errors.

    Args:
        document_id: The document ID that was not found

    Returns:
        A JSON string with structured error details
    """
    error_response = {
        "error": True,
        "code": "DOCUMENT_NOT_FOUND",
        "message": f"Document '{document_id}' was not found",
        "reason": "The document ID may be incorrect or you may not have access to this document.",
        "suggestion": "Verify the document ID is correct. You can find the ID in the document's URL: docs.google.com/document/d/{document_id}/edit",
        "context": {
            "received": {"document_id": document_id},
            "possible_causes": [
                "Document ID is incorrect",
                "Document was deleted",
                "You don't have permission to access this document",
            ],
        },
    }
    return json.dumps(error_response, indent=2)


def handle_http_errors(tool_name: str, is_read_only: bool = False):
    """
    A decorator to handle Google API HttpErrors and transient SSL errors in a standardized way.

    Template engine errors are returned as structured JSON. HttpErrors are
    logged and re-raised with a user-friendly message; a 404 is returned as
    a structured not-found error.

    If is_read_only is True, it will also catch ssl.SSLError and retry with
    exponential backoff. After exhausting retries, it raises a TransientNetworkError.
    Mutating tools are never retried: a failed batch may have partially
    applied, and the document must be re-fetched first.

    Args:
        tool_name (str): The name of the tool being decorated (e.g., 'scan_template').
        is_read_only (bool): If True, the operation is considered safe to retry on
                             transient network errors. Defaults to False.
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
                            f"A transient SSL error occurred in '{tool_name}' after {attempt + 1} attempt(s). "
                            "This is likely a temporary network or certificate issue. Please try again shortly."
                        ) from e
                except TemplateEngineError as e:
                    logger.warning(f"Template error in {tool_name}: {e}")
                    return format_error(e.structured)
                except HttpError as error:
                    if error.resp.status == 404:
                        document_id = kwargs.get("document_id") or kwargs.get("template_id", "unknown")
                        logger.error(f"Document not found in {tool_name}: {error}", exc_info=True)
                        return _create_not_found_error(document_id)
                    if error.resp.status in [401, 403]:
                        message = (
                            f"API error in {tool_name}: {error}. "
                            f"The stored credentials may have expired or lack the Docs/Drive scopes."
                        )
                    else:
                        message = f"API error in {tool_name}: {error}"

                    logger.error(f"API error in {tool_name}: {error}", exc_info=True)
                    raise Exception(message) from error
                except TransientNetworkError:
                    raise
                except GoogleAuthenticationError:
                    raise
                except Exception as e:
                    message = f"An unexpected error occurred in {tool_name}: {e}"
                    logger.exception(message)
                    raise Exception(message) from e

        return wrapper

    return decorator
