"""
Runtime configuration.

Values come from environment variables; main.py loads a .env file next to
the project before this module is imported.
"""
import os

# Stored authorized-user token (JSON) used to build the Docs and Drive clients
GOOGLE_TOKEN_FILE = os.getenv("GOOGLE_TOKEN_FILE", os.path.expanduser("~/.docs_templates/token.json"))

TEMPLATE_PORT = int(os.getenv("TEMPLATE_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Rendering
ASSET_SECTION_MIN_PADDING = int(os.getenv("ASSET_SECTION_MIN_PADDING", "30"))
SECTION_TITLE_FONT_SIZE = int(os.getenv("SECTION_TITLE_FONT_SIZE", "14"))
SECTION_BODY_FONT_SIZE = int(os.getenv("SECTION_BODY_FONT_SIZE", "12"))

SCOPES = [
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/drive",
]

_VALID_TRANSPORTS = ("stdio", "streamable-http")
_transport_mode = os.getenv("TEMPLATE_TRANSPORT", "stdio")


def get_transport_mode() -> str:
    """Current MCP transport mode."""
    return _transport_mode


def set_transport_mode(mode: str) -> None:
    """Set the MCP transport mode ('stdio' or 'streamable-http')."""
    global _transport_mode
    if mode not in _VALID_TRANSPORTS:
        raise ValueError(f"Invalid transport '{mode}'. Use one of: {', '.join(_VALID_TRANSPORTS)}")
    _transport_mode = mode
