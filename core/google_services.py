"""
Google API client construction.

Builds Docs v1 and Drive v3 clients from a stored authorized-user token.
Obtaining the token in the first place is handled outside this project.
"""
import logging
import os
from typing import Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from core.config import GOOGLE_TOKEN_FILE, SCOPES

logger = logging.getLogger(__name__)

_services: Optional[tuple] = None


class GoogleAuthenticationError(Exception):
    """Raised when no usable stored credentials are available."""

    pass


def load_credentials(token_file: str = GOOGLE_TOKEN_FILE) -> Credentials:
    """
    Load stored authorized-user credentials.

    Raises:
        GoogleAuthenticationError: If the token file is missing or unreadable
    """
    if not os.path.exists(token_file):
        raise GoogleAuthenticationError(
            f"No stored Google credentials at '{token_file}'. "
            "Set GOOGLE_TOKEN_FILE to an authorized-user token JSON file."
        )
    try:
        return Credentials.from_authorized_user_file(token_file, SCOPES)
    except (ValueError, OSError) as e:
        raise GoogleAuthenticationError(f"Could not load credentials from '{token_file}': {e}") from e


def get_google_services(token_file: str = GOOGLE_TOKEN_FILE):
    """
    Return (docs_service, drive_service), building them on first use.
    """
    global _services
    if _services is None:
        credentials = load_credentials(token_file)
        docs_service = build("docs", "v1", credentials=credentials, cache_discovery=False)
        drive_service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        _services = (docs_service, drive_service)
        logger.info(f"Built Google Docs/Drive clients from {token_file}")
    return _services
