import logging
from importlib import metadata

from starlette.requests import Request
from starlette.responses import JSONResponse

from fastmcp import FastMCP

from core.config import (
    get_log_level,
    get_transport_mode,
    set_transport_mode as _set_transport_mode,
)

logging.basicConfig(
    level=get_log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Suppress googleapiclient discovery cache warning
logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)

SERVICE_NAME = "gdocs-structure-mcp"

server = FastMCP(name="gdocs_structure")


def set_transport_mode(mode: str):
    """Sets the transport mode for the server."""
    _set_transport_mode(mode)
    logger.info(f"Transport: {mode}")


@server.custom_route("/health", methods=["GET"])
async def health_check(request: Request):
    try:
        version = metadata.version(SERVICE_NAME)
    except metadata.PackageNotFoundError:
        version = "dev"
    return JSONResponse(
        {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": version,
            "transport": get_transport_mode(),
        }
    )
