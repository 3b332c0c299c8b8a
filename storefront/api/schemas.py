"""
Storefront API — request/response schemas (Pydantic).

Only the models owned by the gateway itself live here; the mounted
controllers define their own.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from storefront.domain.enums import Role


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=256)


class LoginResponse(BaseModel):
    token: str
    role: Role
    expires_in: int
