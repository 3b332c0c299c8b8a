"""
Storefront API — logging setup and the per-request access log.

``configure_logging()`` installs the shared stdout handler once at startup.
``log_request()`` writes the single ``request_log {json}`` line the request
pipeline emits for every HTTP request, on the ``storefront.access`` logger
so it can be routed or silenced apart from application logs.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Optional


ACCESS_LOGGER = "storefront.access"
REQUEST_LOG_PREFIX = "request_log"

_CONFIGURED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger exactly once.

    ``level`` falls back to the ``LOG_LEVEL`` environment variable, then
    ``INFO``.  ``ACCESS_LOG=0`` silences the per-request lines.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    root = logging.getLogger()
    root.setLevel(resolved)

    # uvicorn / gunicorn may already have installed handlers
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(handler)

    # request_log lines replace uvicorn's own access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    if os.environ.get("ACCESS_LOG", "1").strip().lower() in {"0", "false", "no", "off"}:
        logging.getLogger(ACCESS_LOGGER).setLevel(logging.WARNING)

    _CONFIGURED = True


def format_request_log(fields: dict) -> str:
    """Render access-log fields as ``request_log {json}``."""
    payload = dict(fields)
    if isinstance(payload.get("duration_ms"), float):
        payload["duration_ms"] = round(payload["duration_ms"], 2)
    return f"{REQUEST_LOG_PREFIX} {json.dumps(payload, default=str)}"


def log_request(**fields: Any) -> None:
    logging.getLogger(ACCESS_LOGGER).info("%s", format_request_log(fields))
