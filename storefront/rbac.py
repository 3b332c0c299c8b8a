"""
Role-based access control for staff routes.

``has_role`` is a pure predicate with no request or I/O dependency.
``authorize_role`` wraps it into a gate that the access-control middleware
runs *after* authentication has attached an ``Identity`` to the request.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from fastapi import HTTPException

from storefront.domain.enums import Role
from storefront.domain.models import Identity

logger = logging.getLogger(__name__)

RoleGate = Callable[[Optional[Identity]], Identity]


def has_role(role, required: Iterable[Role]) -> bool:
    """Return True iff ``role`` is one of ``required``.

    Strings are accepted for ``role``; values outside the ``Role`` set are
    never members.
    """
    parsed = Role.parse(role)
    if parsed is None:
        return False
    return parsed in frozenset(required)


def authorize_role(roles: Iterable) -> RoleGate:
    """Build a gate admitting identities whose role is in ``roles``.

    The gate does not authenticate: a missing identity is rejected with
    401, an identity with any other role with 403.
    """
    required = frozenset(Role(r) for r in roles)
    if not required:
        raise ValueError("authorize_role needs at least one role")

    def gate(identity: Optional[Identity]) -> Identity:
        if identity is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        if not has_role(identity.role, required):
            logger.info(
                "Denied %s (role=%s); requires one of %s",
                identity.subject, identity.role.value,
                sorted(r.value for r in required),
            )
            raise HTTPException(status_code=403, detail="Access denied")
        return identity

    gate.roles = required
    return gate
