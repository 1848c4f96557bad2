"""Audit schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.core.enums import AdminRoleEnum


class AuditLogCreate(BaseModel):
    """Audit entry as supplied by the acting component."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    admin_user_id: str
    admin_username: str
    admin_role: AdminRoleEnum
    action: str
    entity_type: str | None = None
    entity_id_or_name: str | None = None
    details: dict[str, Any] | None = None


class AuditLogEntry(AuditLogCreate):
    """Immutable audit log entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    timestamp: datetime


class AuditLogFilters(BaseModel):
    """Audit log query filters."""

    admin_username: str | None = None
    action: str | None = None
    entity_type: str | None = None
    date_from: date | None = None
    date_to: date | None = None
