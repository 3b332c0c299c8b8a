"""
storefront.domain.models — Value types shared by the auth and routing layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from storefront.domain.enums import Role


@dataclass(frozen=True)
class Identity:
    """
    The authenticated caller, attached to ``request.state.identity`` by the
    authentication step.  Only the role is consulted by the role gate.
    """
    subject: str
    role: Role
    name: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: dict) -> Optional["Identity"]:
        """Build an Identity from verified token claims.

        Returns None when the subject is missing or the role is not a
        known ``Role``.
        """
        role = Role.parse(claims.get("role"))
        subject = claims.get("sub")
        if role is None or not subject:
            return None
        return cls(subject=str(subject), role=role, name=claims.get("name"))

    def to_claims(self) -> dict:
        return {"sub": self.subject, "role": self.role.value, "name": self.name}
