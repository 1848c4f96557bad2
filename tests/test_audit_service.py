from __future__ import annotations

from datetime import UTC, date, datetime
from types import SimpleNamespace

import pytest

from app.core.enums import AdminRoleEnum, AuditActionEnum
from app.modules.audit.schemas import AuditLogEntry, AuditLogFilters
from app.modules.audit.service import AuditLogService
from app.shared.exceptions import UnauthorizedException


def _entry(index: int, *, username: str, action: str, entity_type: str | None, day: int) -> AuditLogEntry:
    return AuditLogEntry(
        id=f"log_{index}",
        timestamp=datetime(2024, 3, day, 12, 0, tzinfo=UTC),
        admin_user_id=f"admin_{username}",
        admin_username=username,
        admin_role=AdminRoleEnum.SUPERADMIN,
        action=action,
        entity_type=entity_type,
    )


class FakeRecorder:
    def __init__(self, entries: list[AuditLogEntry]) -> None:
        self.entries = entries

    async def list(self) -> list[AuditLogEntry]:
        return list(self.entries)


ENTRIES = [
    _entry(4, username="cuth-tech", action=AuditActionEnum.ADMIN_DELETED, entity_type="AdminUser", day=4),
    _entry(3, username="Manager", action="PRODUCT_UPDATED", entity_type="Product", day=3),
    _entry(2, username="cuth-tech", action=AuditActionEnum.ADMIN_CREATED, entity_type="AdminUser", day=2),
    _entry(1, username="cuth-tech", action=AuditActionEnum.ADMIN_LOGOUT, entity_type=None, day=1),
]

SUPERADMIN = SimpleNamespace(role=AdminRoleEnum.SUPERADMIN)


@pytest.mark.asyncio
async def test_only_superadmin_can_list_logs() -> None:
    service = AuditLogService(FakeRecorder(ENTRIES))

    with pytest.raises(UnauthorizedException):
        await service.list_logs(SimpleNamespace(role=AdminRoleEnum.MANAGER), AuditLogFilters(), 20, 0)


@pytest.mark.asyncio
async def test_list_without_filters_pages_newest_first() -> None:
    service = AuditLogService(FakeRecorder(ENTRIES))

    items, total = await service.list_logs(SUPERADMIN, AuditLogFilters(), 2, 1)

    assert total == 4
    assert [item.id for item in items] == ["log_3", "log_2"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("filters", "expected"),
    [
        (AuditLogFilters(admin_username="MANA"), ["log_3"]),
        (AuditLogFilters(action=AuditActionEnum.ADMIN_CREATED), ["log_2"]),
        (AuditLogFilters(entity_type="AdminUser"), ["log_4", "log_2"]),
        (AuditLogFilters(date_from=date(2024, 3, 2), date_to=date(2024, 3, 3)), ["log_3", "log_2"]),
        (AuditLogFilters(admin_username="cuth", date_to=date(2024, 3, 1)), ["log_1"]),
    ],
)
async def test_filters(filters: AuditLogFilters, expected: list[str]) -> None:
    service = AuditLogService(FakeRecorder(ENTRIES))

    items, total = await service.list_logs(SUPERADMIN, filters, 20, 0)

    assert [item.id for item in items] == expected
    assert total == len(expected)
