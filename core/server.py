import logging
from importlib import metadata

from fastapi.responses import JSONResponse
from starlette.requests import Request

from fastmcp import FastMCP

from core.config import get_transport_mode, set_transport_mode as _set_transport_mode

logger = logging.getLogger(__name__)

server = FastMCP(name="docs_templates")


def set_transport_mode(mode: str):
    """Sets the transport mode for the server."""
    _set_transport_mode(mode)
    logger.info(f"Transport: {mode}")


@server.custom_route("/health", methods=["GET"])
async def health_check(request: Request):
    try:
        version = metadata.version("docs-templates")
    except metadata.PackageNotFoundError:
        version = "dev"
    return JSONResponse(
        {
            "status": "healthy",
            "service": "docs-templates",
            "version": version,
            "transport": get_transport_mode(),
        }
    )
