"""Tests for the role predicate and role gate."""

import pytest
from fastapi import HTTPException

from storefront.domain.enums import Role
from storefront.domain.models import Identity
from storefront.rbac import authorize_role, has_role


STAFF = {Role.ADMIN, Role.ASSOCIATE, Role.CASHIER}


@pytest.mark.parametrize("role", ["admin", "associate", "cashier", Role.CASHIER])
def test_has_role_accepts_members(role):
    assert has_role(role, STAFF) is True


def test_has_role_rejects_non_members():
    assert has_role(Role.CASHIER, {Role.ADMIN}) is False
    assert has_role("associate", {Role.ADMIN}) is False


@pytest.mark.parametrize("role", ["root", "", None, "ADMIN"])
def test_has_role_rejects_unknown_roles(role):
    assert has_role(role, STAFF) is False


def test_gate_returns_identity_when_allowed():
    gate = authorize_role(["admin", "cashier"])
    ident = Identity(subject="e1", role=Role.CASHIER)
    assert gate(ident) is ident


def test_gate_rejects_wrong_role_with_403():
    gate = authorize_role([Role.ADMIN])
    with pytest.raises(HTTPException) as exc:
        gate(Identity(subject="e2", role=Role.ASSOCIATE))
    assert exc.value.status_code == 403


def test_gate_does_not_authenticate():
    gate = authorize_role([Role.ADMIN])
    with pytest.raises(HTTPException) as exc:
        gate(None)
    assert exc.value.status_code == 401


def test_gate_requires_known_roles():
    with pytest.raises(ValueError):
        authorize_role(["superuser"])
    with pytest.raises(ValueError):
        authorize_role([])
