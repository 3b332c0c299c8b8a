"""
Bearer-token authentication for staff routes.

Flow:
  1. An employee posts credentials to /api/employee/login -> token issued
  2. The client sends ``Authorization: Bearer <token>`` on protected calls
  3. ``authenticate_user`` verifies the token and attaches an ``Identity``
     to ``request.state.identity`` before the role gate runs

Tokens are HMAC-signed JSON payloads (no external JWT dependency); the
signing secret and lifetime come from storefront.config.
"""

import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Optional, Protocol

from fastapi import HTTPException, Request

from storefront import config
from storefront.api.schemas import LoginRequest, LoginResponse
from storefront.domain.models import Identity

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


# ---------------------------------------------------------------------------
# HMAC-signed tokens
# ---------------------------------------------------------------------------

def _sign(payload_bytes: bytes) -> str:
    """Create HMAC-SHA256 signature."""
    return hmac.new(config.AUTH_SECRET.encode(), payload_bytes, hashlib.sha256).hexdigest()


def create_token(identity: Identity, expires_in: Optional[int] = None) -> str:
    """Create a signed token carrying the identity's claims."""
    lifetime = config.TOKEN_EXPIRY_SECONDS if expires_in is None else expires_in
    payload = identity.to_claims()
    payload["exp"] = int(time.time()) + lifetime
    payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()
    sig = _sign(payload_b64.encode())
    return f"{payload_b64}.{sig}"


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a signed token. Returns None when invalid or expired."""
    parts = token.split(".", 1)
    if len(parts) != 2:
        return None
    payload_b64, sig = parts
    expected_sig = _sign(payload_b64.encode())
    # compare_digest rejects non-ASCII str; headers arrive latin-1 decoded
    if not hmac.compare_digest(sig.encode("utf-8"), expected_sig.encode()):
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or exp < time.time():
        return None
    return payload


def identity_from_request(request: Request) -> Optional[Identity]:
    """Extract the caller's identity from the Authorization header."""
    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith(BEARER_PREFIX):
        return None
    claims = decode_token(auth_header[len(BEARER_PREFIX):].strip())
    if claims is None:
        return None
    return Identity.from_claims(claims)


# ---------------------------------------------------------------------------
# Pipeline step + handler dependency
# ---------------------------------------------------------------------------

def authenticate_user(request: Request) -> Identity:
    """Attach the verified identity to the request, or fail with 401."""
    identity = identity_from_request(request)
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    request.state.identity = identity
    return identity


def current_identity(request: Request) -> Identity:
    """FastAPI dependency: the identity attached by ``authenticate_user``."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return identity


# ---------------------------------------------------------------------------
# Employee login
# ---------------------------------------------------------------------------

class EmployeeDirectory(Protocol):
    """Credential store consulted by the login handler."""

    def verify(self, email: str, password: str) -> Optional[Identity]:
        ...


def make_login_handler(directory: Optional[EmployeeDirectory] = None):
    """Return the ``POST /employee/login`` endpoint bound to ``directory``."""

    async def login_employee(body: LoginRequest) -> LoginResponse:
        if directory is None:
            raise HTTPException(status_code=503, detail="Employee login is not configured.")
        identity = directory.verify(body.email, body.password)
        if identity is None:
            logger.warning("Failed employee login for %s", body.email)
            raise HTTPException(status_code=401, detail="Invalid credentials")
        logger.info("Employee logged in: %s (%s)", identity.subject, identity.role.value)
        return LoginResponse(
            token=create_token(identity),
            role=identity.role,
            expires_in=config.TOKEN_EXPIRY_SECONDS,
        )

    return login_employee
