"""Core enums used across modules."""

from enum import StrEnum


class AdminRoleEnum(StrEnum):
    """Back-office roles."""

    SUPERADMIN = "superadmin"
    MANAGER = "manager"
    EDITOR = "editor"


class AuditActionEnum(StrEnum):
    """Admin-account lifecycle actions written to the audit trail."""

    ADMIN_LOGOUT = "ADMIN_LOGOUT"
    ADMIN_CREATED = "ADMIN_CREATED"
    ADMIN_UPDATED = "ADMIN_UPDATED"
    ADMIN_PASSWORD_RESET = "ADMIN_PASSWORD_RESET"
    ADMIN_DELETED = "ADMIN_DELETED"
    ADMIN_OWN_PASSWORD_CHANGED = "ADMIN_OWN_PASSWORD_CHANGED"
    ADMIN_OWN_PROFILE_UPDATED = "ADMIN_OWN_PROFILE_UPDATED"


class ActivitySignalEnum(StrEnum):
    """User activity that keeps an admin session alive."""

    POINTER_MOVE = "pointer_move"
    POINTER_DOWN = "pointer_down"
    KEY_PRESS = "key_press"
    SCROLL = "scroll"
    TOUCH_START = "touch_start"


class FailureKindEnum(StrEnum):
    """Why an admin operation was refused."""

    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class RouteOutcomeEnum(StrEnum):
    """Route guard verdicts."""

    RENDER = "render"
    REDIRECT = "redirect"
    DENIED = "denied"
