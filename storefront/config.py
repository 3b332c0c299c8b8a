"""
Centralized configuration for the Storefront API.
All settings come from environment variables for 12-factor deployment.

A local ``.env`` file is honoured for development, but never under pytest
so the test-suite controls its own environment.
"""

import os
import secrets
import sys

from dotenv import load_dotenv


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> list:
    return [s.strip() for s in os.environ.get(name, default).split(",") if s.strip()]


if "pytest" not in sys.modules and _env_bool("STOREFRONT_ENABLE_DOTENV", True):
    load_dotenv()

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
AUTH_SECRET = os.environ.get("AUTH_SECRET", "") or secrets.token_hex(32)
TOKEN_EXPIRY_SECONDS = int(os.environ.get("TOKEN_EXPIRY_SECONDS", str(8 * 3600)))

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))
FORWARDED_ALLOW_IPS = os.environ.get("FORWARDED_ALLOW_IPS", "127.0.0.1")
API_PREFIX = os.environ.get("API_PREFIX", "/api").rstrip("/")
WELCOME_MESSAGE = os.environ.get("WELCOME_MESSAGE", "Welcome to the E-Commerce Backend!")

# ---------------------------------------------------------------------------
# CORS: every origin is allowed; the storefront and the POS terminals are
# served from different hosts.
# ---------------------------------------------------------------------------
CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")
