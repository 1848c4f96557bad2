from __future__ import annotations

import pytest

from app.core.document_store import DocumentStoreError, InMemoryDocumentStore
from app.core.enums import AdminRoleEnum
from app.core.kv_store import InMemoryKeyValueStore
from app.core.security import verify_password
from app.modules.audit.recorder import AuditTrailRecorder
from app.modules.identity.directory import AdminDirectory
from app.modules.identity.service import AuthService
from app.modules.identity.session_store import SessionStore


def _legacy_record(**overrides) -> dict:
    record = {
        "id": "admin_legacy",
        "username": "legacy",
        "name": "Legacy Admin",
        "email": "legacy@example.com",
        "password": "Legacy@123",
        "role": "manager",
        "isActive": True,
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
    }
    record.update(overrides)
    return record


@pytest.mark.asyncio
async def test_empty_backend_is_seeded_with_three_default_accounts() -> None:
    store = InMemoryDocumentStore()
    directory = AdminDirectory(store)

    accounts = await directory.reload()

    assert directory.is_loaded
    assert [(account.username, account.role) for account in accounts] == [
        ("cuth-tech", AdminRoleEnum.SUPERADMIN),
        ("manager", AdminRoleEnum.MANAGER),
        ("editor", AdminRoleEnum.EDITOR),
    ]
    assert all(account.is_active for account in accounts)
    assert len({account.id for account in accounts}) == 3

    persisted = await store.load("adminUsers")
    assert len(persisted) == 3
    assert "password" not in persisted[0]
    assert verify_password("Silence@1", persisted[0]["passwordHash"])


@pytest.mark.asyncio
async def test_empty_list_document_is_also_seeded() -> None:
    store = InMemoryDocumentStore({"adminUsers": []})
    directory = AdminDirectory(store)

    assert len(await directory.reload()) == 3
    assert store.save_calls == 1


@pytest.mark.asyncio
async def test_existing_document_is_loaded_without_writing() -> None:
    store = InMemoryDocumentStore()
    await AdminDirectory(store).reload()
    store.save_calls = 0

    directory = AdminDirectory(store)
    await directory.reload()

    assert len(directory.accounts) == 3
    assert store.save_calls == 0


@pytest.mark.asyncio
async def test_plaintext_passwords_are_migrated_and_persisted_once() -> None:
    store = InMemoryDocumentStore({"adminUsers": [_legacy_record()]})
    directory = AdminDirectory(store)

    [account] = await directory.reload()

    assert verify_password("Legacy@123", account.password_hash)
    persisted = await store.load("adminUsers")
    assert "password" not in persisted[0]
    assert persisted[0]["passwordHash"] == account.password_hash
    assert store.save_calls == 1

    await AdminDirectory(store).reload()
    assert store.save_calls == 1


@pytest.mark.asyncio
async def test_malformed_document_raises() -> None:
    directory = AdminDirectory(InMemoryDocumentStore({"adminUsers": {"users": []}}))

    with pytest.raises(DocumentStoreError):
        await directory.reload()
    assert not directory.is_loaded


@pytest.mark.asyncio
async def test_invalid_account_record_raises() -> None:
    directory = AdminDirectory(InMemoryDocumentStore({"adminUsers": [_legacy_record(role="owner")]}))

    with pytest.raises(DocumentStoreError):
        await directory.reload()


@pytest.mark.asyncio
async def test_lookups_are_case_insensitive(directory: AdminDirectory) -> None:
    superadmin = directory.find_by_username("CUTH-Tech")

    assert superadmin is not None
    assert directory.username_taken("MANAGER")
    assert directory.email_taken("Editor@Example.com")
    assert not directory.email_taken("superadmin@example.com", exclude_id=superadmin.id)


class FailingSaveStore(InMemoryDocumentStore):
    fail = False

    async def save(self, name, document) -> None:
        if self.fail:
            raise DocumentStoreError("backend unavailable", status_code=503)
        await super().save(name, document)


@pytest.mark.asyncio
async def test_failed_replace_keeps_cached_accounts() -> None:
    store = FailingSaveStore()
    directory = AdminDirectory(store)
    await directory.reload()
    before = directory.accounts

    store.fail = True
    with pytest.raises(DocumentStoreError):
        await directory.replace(before[:1])

    assert directory.accounts == before


@pytest.mark.asyncio
async def test_record_without_credential_loads_but_cannot_log_in(
    kv_store: InMemoryKeyValueStore,
    recorder: AuditTrailRecorder,
) -> None:
    orphan = _legacy_record(id="admin_orphan", username="orphan", email="orphan@example.com")
    del orphan["password"]
    store = InMemoryDocumentStore({"adminUsers": [_legacy_record(), orphan]})
    directory = AdminDirectory(store)

    accounts = await directory.reload()

    assert [account.username for account in accounts] == ["legacy", "orphan"]
    assert directory.find_by_username("orphan").password_hash == ""
    assert await AuthService(directory, SessionStore(kv_store, "tab-1"), recorder).login("legacy", "Legacy@123")
    assert not await AuthService(directory, SessionStore(kv_store, "tab-2"), recorder).login("orphan", "")


@pytest.mark.asyncio
async def test_unloaded_directory_refuses_to_overwrite_backend() -> None:
    store = InMemoryDocumentStore()
    seeded = await AdminDirectory(store).reload()
    store.save_calls = 0

    with pytest.raises(DocumentStoreError):
        await AdminDirectory(store).replace(seeded[:1])

    assert len(await store.load("adminUsers")) == 3
    assert store.save_calls == 0
