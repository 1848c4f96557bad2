"""Audit business logic layer."""

from __future__ import annotations

from datetime import date

from fastapi import Request

from app.core.enums import AdminRoleEnum
from app.modules.audit.recorder import AuditTrailRecorder
from app.modules.audit.schemas import AuditLogEntry, AuditLogFilters
from app.modules.identity.schemas import AdminSession
from app.shared.exceptions import UnauthorizedException
from app.shared.utils import ensure_utc


def _matches(entry: AuditLogEntry, filters: AuditLogFilters) -> bool:
    if filters.admin_username:
        needle = filters.admin_username.strip().lower()
        if needle and needle not in entry.admin_username.lower():
            return False
    if filters.action and entry.action != filters.action:
        return False
    if filters.entity_type and entry.entity_type != filters.entity_type:
        return False

    entry_day: date = ensure_utc(entry.timestamp).date()
    if filters.date_from and entry_day < filters.date_from:
        return False
    if filters.date_to and entry_day > filters.date_to:
        return False
    return True


class AuditLogService:
    """Read side of the audit trail for the back-office audit view."""

    def __init__(self, recorder: AuditTrailRecorder) -> None:
        self.recorder = recorder

    async def list_logs(
        self,
        actor: AdminSession,
        filters: AuditLogFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[AuditLogEntry], int]:
        """List audit logs newest-first (superadmin only)."""
        if actor.role != AdminRoleEnum.SUPERADMIN:
            raise UnauthorizedException("Only superadmin can view audit logs")

        entries = [entry for entry in await self.recorder.list() if _matches(entry, filters)]
        return entries[offset : offset + limit], len(entries)


async def get_audit_log_service(request: Request) -> AuditLogService:
    """Dependency provider for audit log service."""
    return AuditLogService(request.app.state.audit_recorder)
