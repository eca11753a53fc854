"""Logging setup shared by the stdio server and the bridge CLI."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_ENV = "PULSAR_MCP_DEBUG"


def debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "").strip().lower() in ("1", "true", "yes", "on")


def configure_logging(debug: bool | None = None) -> None:
    """Send log records to stderr; stdout is reserved for protocol traffic."""
    if debug is None:
        debug = debug_enabled()
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
