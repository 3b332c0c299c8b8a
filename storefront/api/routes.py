"""
Storefront API — route table and router registration.

This module is the single place where the controller routers are mounted
onto the FastAPI application.  Every group lives under ``/api/<name>`` and
is tagged with a tier:

  product, cart, customer, payment, order, qrcode   public
  employee                                          protected (admin, associate, cashier)
      POST /api/employee/login                      public exception
  admin                                             protected (admin)

Exact-path exceptions are declared on the rule they carve out of, and
``register_routes`` mounts them before the rule's router so an exception
route always wins over a same-path route inside the group.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple

from fastapi import APIRouter, FastAPI

from storefront import config
from storefront.auth import make_login_handler
from storefront.domain.enums import Role, Tier
from storefront.rbac import RoleGate, authorize_role

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({Role.ADMIN, Role.ASSOCIATE, Role.CASHIER})
ADMIN_ROLES = frozenset({Role.ADMIN})


def _normalize(path: str) -> str:
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PublicRoute:
    """An exact (method, path) served without identity inside a protected prefix.

    ``endpoint`` names the ``RouteGroups`` attribute holding the handler.
    """
    method: str
    path: str
    endpoint: str


@dataclass(frozen=True)
class RouteRule:
    group: str
    prefix: str
    tier: Tier
    roles: FrozenSet[Role] = frozenset()
    exceptions: Tuple[PublicRoute, ...] = ()

    def matches(self, path: str) -> bool:
        """Prefix match on a segment boundary (/api/admin, not /api/administrator)."""
        return path == self.prefix or path.startswith(self.prefix + "/")

    def exception_for(self, method: str, path: str) -> Optional[PublicRoute]:
        method = method.upper()
        for exc in self.exceptions:
            if exc.method == method and exc.path == path:
                return exc
        return None


class RouteTable:
    """Immutable, validated set of route rules with a pure tier lookup."""

    def __init__(self, rules: Iterable[RouteRule]):
        self.rules: Tuple[RouteRule, ...] = tuple(rules)
        self._validate()
        self._gates: Dict[str, RoleGate] = {
            rule.group: authorize_role(rule.roles)
            for rule in self.rules
            if rule.tier is Tier.PROTECTED
        }

    def _validate(self) -> None:
        seen = set()
        for rule in self.rules:
            if not rule.prefix.startswith("/") or rule.prefix != _normalize(rule.prefix):
                raise ValueError(f"Invalid prefix {rule.prefix!r}")
            if rule.group in seen:
                raise ValueError(f"Duplicate route group {rule.group!r}")
            seen.add(rule.group)
            if rule.tier is Tier.PROTECTED and not rule.roles:
                raise ValueError(f"Protected rule {rule.group!r} declares no roles")
            for exc in rule.exceptions:
                if exc.path == rule.prefix or not rule.matches(exc.path):
                    raise ValueError(
                        f"Exception {exc.method} {exc.path} is not under {rule.prefix}"
                    )
        for a in self.rules:
            for b in self.rules:
                if a is not b and b.matches(a.prefix):
                    raise ValueError(f"Prefix {a.prefix} overlaps {b.prefix}")

    def rule_for(self, path: str) -> Optional[RouteRule]:
        path = _normalize(path)
        for rule in self.rules:
            if rule.matches(path):
                return rule
        return None

    def resolve(self, method: str, path: str) -> Tuple[Tier, Optional[RouteRule]]:
        """Return the tier governing ``method path`` and the rule that owns it.

        Exceptions match the raw path: the router does not strip trailing
        slashes, so neither may the carve-out.
        """
        rule = self.rule_for(path)
        if rule is None:
            return Tier.PUBLIC, None
        if rule.exception_for(method, path) is not None:
            return Tier.PUBLIC, rule
        return rule.tier, rule

    def gate_for(self, rule: RouteRule) -> RoleGate:
        return self._gates[rule.group]


def default_route_table(api_prefix: Optional[str] = None) -> RouteTable:
    base = config.API_PREFIX if api_prefix is None else api_prefix.rstrip("/")

    def public(group: str) -> RouteRule:
        return RouteRule(group=group, prefix=f"{base}/{group}", tier=Tier.PUBLIC)

    return RouteTable([
        public("product"),
        public("cart"),
        public("customer"),
        public("payment"),
        public("order"),
        public("qrcode"),
        RouteRule(
            group="employee",
            prefix=f"{base}/employee",
            tier=Tier.PROTECTED,
            roles=STAFF_ROLES,
            exceptions=(PublicRoute("POST", f"{base}/employee/login", "login_employee"),),
        ),
        RouteRule(
            group="admin",
            prefix=f"{base}/admin",
            tier=Tier.PROTECTED,
            roles=ADMIN_ROLES,
        ),
    ])


# ---------------------------------------------------------------------------
# Controller routers
# ---------------------------------------------------------------------------

def _group(tag: str) -> APIRouter:
    return APIRouter(tags=[tag])


@dataclass
class RouteGroups:
    """The controller routers mounted by ``register_routes``.

    Routers are defined without a prefix; the route table supplies it.
    """
    product: APIRouter = field(default_factory=lambda: _group("product"))
    cart: APIRouter = field(default_factory=lambda: _group("cart"))
    customer: APIRouter = field(default_factory=lambda: _group("customer"))
    payment: APIRouter = field(default_factory=lambda: _group("payment"))
    order: APIRouter = field(default_factory=lambda: _group("order"))
    qrcode: APIRouter = field(default_factory=lambda: _group("qrcode"))
    employee: APIRouter = field(default_factory=lambda: _group("employee"))
    admin: APIRouter = field(default_factory=lambda: _group("admin"))
    login_employee: Callable = field(default_factory=make_login_handler)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def register_routes(app: FastAPI, groups: RouteGroups, table: RouteTable) -> None:
    """Mount every group in ``table`` onto ``app``.

    Call this once from ``create_app`` after the middleware is installed.
    """
    for rule in table.rules:
        for exc in rule.exceptions:
            app.add_api_route(
                exc.path,
                getattr(groups, exc.endpoint),
                methods=[exc.method],
                tags=[rule.group],
                name=exc.endpoint,
            )
        app.include_router(getattr(groups, rule.group), prefix=rule.prefix)
        logger.debug("Mounted %s at %s (%s)", rule.group, rule.prefix, rule.tier.value)

    logger.info(
        "Routes registered: %d groups, %d endpoints",
        len(table.rules), len(app.routes),
    )
