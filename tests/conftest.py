"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  • token_for(role)   — signed bearer token for a staff role
  • auth_header(role) — ready-made Authorization header dict
  • hits              — per-endpoint invocation counters for the stub controllers
  • groups            — RouteGroups wired to counting stub controllers
  • client            — TestClient over an app built from ``groups``
"""

import os
import sys
from collections import Counter

import pytest
from fastapi import Depends, HTTPException
from fastapi.testclient import TestClient

# Ensure the project root is on the path so all storefront imports resolve.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from storefront.api.routes import RouteGroups  # noqa: E402
from storefront.app import create_app  # noqa: E402
from storefront.auth import create_token, current_identity  # noqa: E402
from storefront.domain.enums import Role  # noqa: E402
from storefront.domain.models import Identity  # noqa: E402
from storefront.notifications import NotificationBridge, get_notifier  # noqa: E402


class RecordingChannel:
    """Event channel stub: every listener receives every emitted event."""

    def __init__(self, listeners: int = 1):
        self.listeners = [[] for _ in range(listeners)]
        self.emit_calls = 0

    def emit(self, name, payload):
        self.emit_calls += 1
        for inbox in self.listeners:
            inbox.append((name, payload))


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

@pytest.fixture
def token_for():
    def _factory(role, subject: str = "emp-1", expires_in=None) -> str:
        return create_token(Identity(subject=subject, role=Role(role)), expires_in=expires_in)
    return _factory


@pytest.fixture
def auth_header(token_for):
    def _factory(role, **kwargs) -> dict:
        return {"Authorization": f"Bearer {token_for(role, **kwargs)}"}
    return _factory


# ---------------------------------------------------------------------------
# Stub controllers
# ---------------------------------------------------------------------------

@pytest.fixture
def hits() -> Counter:
    return Counter()


@pytest.fixture
def groups(hits) -> RouteGroups:
    async def login_employee():
        hits["login"] += 1
        return {"token": "issued"}

    g = RouteGroups(login_employee=login_employee)

    @g.product.get("/items")
    async def list_products():
        hits["product"] += 1
        return [{"id": 1, "name": "Mug"}]

    @g.product.post("/items")
    async def create_product(body: dict):
        hits["product.create"] += 1
        return {"received": body}

    @g.product.get("/boom")
    async def explode():
        hits["boom"] += 1
        raise RuntimeError("database exploded with secret=hunter2")

    @g.product.get("/missing")
    async def missing_product():
        raise HTTPException(status_code=404, detail="Product not found")

    @g.order.post("/items")
    async def place_order(notifier: NotificationBridge = Depends(get_notifier)):
        hits["order"] += 1
        notifier.emit("order.created", {"id": 1})
        return {"id": 1}

    @g.employee.post("/login")
    async def shadowed_login():
        hits["employee.login"] += 1
        return {"shadowed": True}

    @g.employee.post("/{employee_id}/")
    async def update_employee(employee_id: str):
        hits["employee.update"] += 1
        return {"updated": employee_id}

    @g.employee.get("/profile")
    async def employee_profile(identity: Identity = Depends(current_identity)):
        hits["employee"] += 1
        return {"subject": identity.subject, "role": identity.role.value}

    @g.admin.get("/dashboard")
    async def admin_dashboard():
        hits["admin"] += 1
        return {"ok": True}

    return g


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel(listeners=2)


@pytest.fixture
def app(groups, channel):
    return create_app(groups=groups, channel=channel)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
