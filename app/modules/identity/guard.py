"""Role-based access decisions for back-office views."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from app.core.enums import AdminRoleEnum, RouteOutcomeEnum
from app.modules.identity.schemas import AdminSession

ADMIN_ROOT = "/admin"
LOGIN_VIEW = "/admin/login"
DASHBOARD_VIEW = "/admin/dashboard"
LANDING_VIEW = "/"
ACCESS_DENIED_NOTICE = "Access Denied: You do not have permission to view this page."

_ALL_ROLES = frozenset(AdminRoleEnum)
_MANAGEMENT_ROLES = frozenset({AdminRoleEnum.SUPERADMIN, AdminRoleEnum.MANAGER})
_SUPERADMIN_ONLY = frozenset({AdminRoleEnum.SUPERADMIN})

ADMIN_VIEW_ROLES: dict[str, frozenset[AdminRoleEnum]] = {
    "/admin/dashboard": _ALL_ROLES,
    "/admin/products": _ALL_ROLES,
    "/admin/products/new": _ALL_ROLES,
    "/admin/products/edit": _ALL_ROLES,
    "/admin/bulk-upload": _ALL_ROLES,
    "/admin/categories": _MANAGEMENT_ROLES,
    "/admin/tags": _MANAGEMENT_ROLES,
    "/admin/discounts": _MANAGEMENT_ROLES,
    "/admin/invoices": _MANAGEMENT_ROLES,
    "/admin/receipts": _MANAGEMENT_ROLES,
    "/admin/refresh-preview": _MANAGEMENT_ROLES,
    "/admin/bulk-delete": _MANAGEMENT_ROLES,
    "/admin/settings": _SUPERADMIN_ONLY,
    "/admin/users": _SUPERADMIN_ONLY,
    "/admin/audit-logs": _SUPERADMIN_ONLY,
}


@dataclass(frozen=True, slots=True)
class RouteDecision:
    """What to do with a request for a view."""

    outcome: RouteOutcomeEnum
    target: str
    notice: str | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome == RouteOutcomeEnum.RENDER

    @classmethod
    def render(cls, view: str) -> "RouteDecision":
        return cls(outcome=RouteOutcomeEnum.RENDER, target=view)

    @classmethod
    def redirect(cls, target: str) -> "RouteDecision":
        return cls(outcome=RouteOutcomeEnum.REDIRECT, target=target)

    @classmethod
    def deny(cls) -> "RouteDecision":
        return cls(outcome=RouteOutcomeEnum.DENIED, target=DASHBOARD_VIEW, notice=ACCESS_DENIED_NOTICE)


def guard_route(
    session: AdminSession | None,
    view: str,
    allowed_roles: Collection[AdminRoleEnum] | None = None,
) -> RouteDecision:
    """Decide whether ``session`` may see ``view``."""
    if session is None:
        return RouteDecision.redirect(LOGIN_VIEW)
    if allowed_roles is not None and session.role not in allowed_roles:
        return RouteDecision.deny()
    return RouteDecision.render(view)


def roles_for_view(view: str) -> frozenset[AdminRoleEnum] | None:
    """Return the whitelist for a view, matching parameterised paths by prefix."""
    normalized = "/" + view.strip("/")
    if normalized in ADMIN_VIEW_ROLES:
        return ADMIN_VIEW_ROLES[normalized]
    prefixes = [path for path in ADMIN_VIEW_ROLES if normalized.startswith(f"{path}/")]
    if not prefixes:
        return None
    return ADMIN_VIEW_ROLES[max(prefixes, key=len)]


def is_admin_view(view: str) -> bool:
    normalized = "/" + view.strip("/")
    return normalized == ADMIN_ROOT or normalized.startswith(f"{ADMIN_ROOT}/")


def check_view_access(session: AdminSession | None, view: str) -> RouteDecision:
    """Apply the back-office route table to ``view``.

    Storefront pages and the login page itself never need a session.
    """
    normalized = "/" + view.strip("/")
    if normalized == LOGIN_VIEW or not is_admin_view(normalized):
        return RouteDecision.render(normalized)
    return guard_route(session, normalized, roles_for_view(normalized))
