"""
storefront.domain.enums — Enumerations used across the gateway.

Keep this module import-clean (stdlib only).
"""

from enum import Enum


# ---------------------------------------------------------------------------
# Staff roles (carried in the bearer token)
# ---------------------------------------------------------------------------

class Role(str, Enum):
    """Closed set of privilege tags an employee identity can carry."""
    ADMIN     = "admin"
    ASSOCIATE = "associate"
    CASHIER   = "cashier"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Return the matching Role, or None for anything outside the set."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Route tiers
# ---------------------------------------------------------------------------

class Tier(str, Enum):
    PUBLIC    = "public"
    PROTECTED = "protected"
