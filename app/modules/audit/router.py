"""Audit API router."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from app.core.enums import AdminRoleEnum
from app.modules.audit.schemas import AuditLogEntry, AuditLogFilters
from app.modules.audit.service import AuditLogService, get_audit_log_service
from app.modules.identity.schemas import AdminSession
from app.modules.identity.service import require_roles
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/audit", tags=["audit"])


def get_audit_log_filters(
    admin_username: str | None = Query(default=None, alias="adminUsername"),
    action: str | None = Query(default=None),
    entity_type: str | None = Query(default=None, alias="entityType"),
    date_from: date | None = Query(default=None, alias="dateFrom"),
    date_to: date | None = Query(default=None, alias="dateTo"),
) -> AuditLogFilters:
    """FastAPI dependency for audit log filters."""
    return AuditLogFilters(
        admin_username=admin_username,
        action=action,
        entity_type=entity_type,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/logs", response_model=Page[AuditLogEntry])
async def list_logs(
    filters: AuditLogFilters = Depends(get_audit_log_filters),
    pagination=Depends(get_pagination_params),
    service: AuditLogService = Depends(get_audit_log_service),
    current_user: AdminSession = Depends(require_roles(AdminRoleEnum.SUPERADMIN)),
) -> Page[AuditLogEntry]:
    """List audit logs, newest first."""
    items, total = await service.list_logs(current_user, filters, pagination.limit, pagination.offset)
    return build_page(items, total, pagination)
