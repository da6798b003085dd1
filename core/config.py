"""
Shared configuration for the Docs editing server.

Values are read from the environment, with a .env file at the project root
loaded first. Getters read the environment on every call so tests can
override a value with monkeypatch.setenv.
"""

import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(dotenv_path=os.path.join(_PROJECT_ROOT, ".env"))

DEFAULT_TABLE_ANCHOR_TOLERANCE = 10
DEFAULT_MAX_BATCH_UPDATE_REQUESTS = 50

# Transport mode: "stdio" or "streamable-http"
_current_transport_mode = "stdio"


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default
    if value < 0:
        logger.warning(f"Ignoring negative {name}={value}, using {default}")
        return default
    return value


def get_table_anchor_tolerance() -> int:
    """How far (in indices) a table may sit from its anchor and still match."""
    return _int_from_env("TABLE_ANCHOR_TOLERANCE", DEFAULT_TABLE_ANCHOR_TOLERANCE)


def get_max_batch_update_requests() -> int:
    """Batch size above which a warning is emitted. Batches are never split."""
    return _int_from_env("MAX_BATCH_UPDATE_REQUESTS", DEFAULT_MAX_BATCH_UPDATE_REQUESTS)


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_token_path() -> str:
    """Path of the authorized-user token file used to build the Docs client."""
    return os.getenv(
        "GOOGLE_DOCS_TOKEN_PATH",
        os.path.join(_PROJECT_ROOT, ".credentials", "token.json"),
    )


def get_server_port() -> int:
    return _int_from_env("WORKSPACE_MCP_PORT", 8000)


def set_transport_mode(mode: str):
    """Set the current transport mode."""
    global _current_transport_mode
    _current_transport_mode = mode


def get_transport_mode() -> str:
    """Get the current transport mode."""
    return _current_transport_mode
