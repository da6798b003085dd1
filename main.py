import argparse
import logging
import sys

from core.config import get_server_port
from core.server import SERVICE_NAME, server, set_transport_mode

logger = logging.getLogger(__name__)


def main():
    """
    Main entry point for the Google Docs structure MCP server.
    Uses FastMCP's native streamable-http transport.
    """
    parser = argparse.ArgumentParser(description=f"{SERVICE_NAME} server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
        help="Transport mode: stdio (default) or streamable-http",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for streamable-http (defaults to WORKSPACE_MCP_PORT or 8000)",
    )
    args = parser.parse_args()

    # Side-effect import registers the tools on the server
    import gdocs.docs_tools  # noqa: F401

    set_transport_mode(args.transport)
    try:
        if args.transport == "streamable-http":
            port = args.port or get_server_port()
            logger.info(f"Starting {SERVICE_NAME} on port {port}")
            server.run(transport="streamable-http", host="0.0.0.0", port=port)
        else:
            server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)


if __name__ == "__main__":
    main()
