from __future__ import annotations

import logging

import pytest

from app.core.enums import AdminRoleEnum, AuditActionEnum
from app.core.kv_store import InMemoryKeyValueStore
from app.modules.audit.recorder import AuditTrailRecorder
from app.modules.audit.schemas import AuditLogCreate


def _entry(action: str = AuditActionEnum.ADMIN_LOGOUT, username: str = "cuth-tech") -> AuditLogCreate:
    return AuditLogCreate(
        admin_user_id="admin_1",
        admin_username=username,
        admin_role=AdminRoleEnum.SUPERADMIN,
        action=action,
    )


class BrokenStore(InMemoryKeyValueStore):
    async def push_front(self, key: str, value: str, *, max_length: int) -> None:
        raise ConnectionError("store offline")

    async def get_list(self, key: str) -> list[str]:
        raise ConnectionError("store offline")


@pytest.mark.asyncio
async def test_record_stamps_id_and_timestamp() -> None:
    recorder = AuditTrailRecorder(InMemoryKeyValueStore())

    entry = await recorder.record(_entry())

    assert entry is not None
    assert entry.id.startswith("log_")
    assert entry.timestamp.tzinfo is not None
    assert await recorder.list() == [entry]


@pytest.mark.asyncio
async def test_entries_are_newest_first() -> None:
    recorder = AuditTrailRecorder(InMemoryKeyValueStore())

    await recorder.record(_entry(AuditActionEnum.ADMIN_CREATED))
    await recorder.record(_entry(AuditActionEnum.ADMIN_DELETED))

    actions = [entry.action for entry in await recorder.list()]
    assert actions == [AuditActionEnum.ADMIN_DELETED, AuditActionEnum.ADMIN_CREATED]


@pytest.mark.asyncio
async def test_trail_is_capped_at_five_hundred_entries() -> None:
    recorder = AuditTrailRecorder(InMemoryKeyValueStore())

    for index in range(505):
        await recorder.record(_entry(username=f"admin-{index}"))

    entries = await recorder.list()
    assert len(entries) == 500
    assert entries[0].admin_username == "admin-504"
    assert entries[-1].admin_username == "admin-5"


@pytest.mark.asyncio
async def test_entries_are_stored_with_camel_case_keys() -> None:
    store = InMemoryKeyValueStore()
    recorder = AuditTrailRecorder(store)

    await recorder.record(_entry())

    [raw] = await store.get_list("techAppAuditLogs")
    assert '"adminUsername":"cuth-tech"' in raw
    assert '"entityIdOrName":null' in raw


@pytest.mark.asyncio
async def test_record_never_raises_when_store_fails(caplog: pytest.LogCaptureFixture) -> None:
    recorder = AuditTrailRecorder(BrokenStore())

    with caplog.at_level(logging.ERROR):
        assert await recorder.record(_entry()) is None

    assert "Failed to write to audit log" in caplog.text
    assert await recorder.list() == []


@pytest.mark.asyncio
async def test_unreadable_entries_are_skipped() -> None:
    store = InMemoryKeyValueStore()
    recorder = AuditTrailRecorder(store)
    await recorder.record(_entry())
    await store.push_front("techAppAuditLogs", "{not json", max_length=500)

    entries = await recorder.list()

    assert len(entries) == 1
    assert entries[0].admin_username == "cuth-tech"
