"""Client-side cache of administrator accounts backed by the document store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from app.core.document_store import DocumentStore, DocumentStoreError
from app.core.enums import AdminRoleEnum
from app.core.security import hash_password
from app.modules.identity.schemas import AdminAccount
from app.shared.utils import new_id, utc_now

logger = logging.getLogger(__name__)

ADMIN_USERS_DOCUMENT = "adminUsers"

# Seeded only when the backend holds no admin users at all.
DEFAULT_ADMIN_ACCOUNTS: tuple[dict[str, Any], ...] = (
    {
        "username": "cuth-tech",
        "password": "Silence@1",
        "role": AdminRoleEnum.SUPERADMIN,
        "name": "CUTH TECH Admin",
        "email": "superadmin@example.com",
    },
    {
        "username": "manager",
        "password": "Manager@12",
        "role": AdminRoleEnum.MANAGER,
        "name": "Store Manager",
        "email": "manager@example.com",
    },
    {
        "username": "editor",
        "password": "Editor@123",
        "role": AdminRoleEnum.EDITOR,
        "name": "Content Editor",
        "email": "editor@example.com",
    },
)


def build_default_accounts() -> list[AdminAccount]:
    """Materialize the default accounts with fresh ids, timestamps and hashes."""
    now = utc_now()
    return [
        AdminAccount(
            id=new_id("admin"),
            username=seed["username"],
            name=seed["name"],
            email=seed["email"],
            password_hash=hash_password(seed["password"]),
            role=seed["role"],
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        for seed in DEFAULT_ADMIN_ACCOUNTS
    ]


def _migrate_plaintext_password(raw: dict[str, Any]) -> bool:
    """Replace a legacy plaintext ``password`` with ``passwordHash`` in place.

    A record with no credential at all gets an empty hash, which never verifies.
    """
    if "password" not in raw:
        if not raw.get("passwordHash") and not raw.get("password_hash"):
            raw["passwordHash"] = ""
        return False
    plaintext = raw.pop("password")
    if not raw.get("passwordHash") and not raw.get("password_hash"):
        raw["passwordHash"] = hash_password(str(plaintext))
    return True


class AdminDirectory:
    """Authoritative list of admin accounts, cached in memory.

    The backend document is the source of truth. Writes go through
    ``replace()``, which persists first and swaps the cache only once the
    store has accepted the new document. Callers that validate against the
    cache before writing must hold ``lock`` across validate and replace.
    """

    def __init__(self, store: DocumentStore, *, document_name: str = ADMIN_USERS_DOCUMENT) -> None:
        self.store = store
        self.document_name = document_name
        self.lock = asyncio.Lock()
        self._accounts: list[AdminAccount] = []
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def accounts(self) -> tuple[AdminAccount, ...]:
        return tuple(self._accounts)

    def get(self, user_id: str) -> AdminAccount | None:
        return next((account for account in self._accounts if account.id == user_id), None)

    def find_by_username(self, username: str) -> AdminAccount | None:
        needle = username.lower()
        return next(
            (account for account in self._accounts if account.username.lower() == needle),
            None,
        )

    def username_taken(self, username: str, *, exclude_id: str | None = None) -> bool:
        needle = username.lower()
        return any(
            account.username.lower() == needle and account.id != exclude_id
            for account in self._accounts
        )

    def email_taken(self, email: str, *, exclude_id: str | None = None) -> bool:
        needle = email.lower()
        return any(
            account.email.lower() == needle and account.id != exclude_id
            for account in self._accounts
        )

    async def reload(self) -> list[AdminAccount]:
        """Load accounts from the store, seeding defaults into an empty directory."""
        document = await self.store.load(self.document_name)

        if not document:
            accounts = build_default_accounts()
            await self._persist(accounts)
            logger.info("Seeded %d default admin accounts", len(accounts))
        else:
            if not isinstance(document, list):
                raise DocumentStoreError(f"Malformed document {self.document_name}: expected a list")
            accounts, migrated = self._parse(document)
            if migrated:
                await self._persist(accounts)
                logger.warning("Migrated %d plaintext admin credential(s) to hashes", migrated)

        self._accounts = accounts
        self._loaded = True
        return list(accounts)

    async def replace(self, accounts: Iterable[AdminAccount]) -> None:
        """Persist the whole directory, then refresh the cache."""
        if not self._loaded:
            raise DocumentStoreError(f"Admin directory {self.document_name} is not loaded")
        new_accounts = list(accounts)
        await self._persist(new_accounts)
        self._accounts = new_accounts

    async def _persist(self, accounts: list[AdminAccount]) -> None:
        document = [account.model_dump(mode="json", by_alias=True) for account in accounts]
        await self.store.save(self.document_name, document)

    def _parse(self, document: list[Any]) -> tuple[list[AdminAccount], int]:
        accounts: list[AdminAccount] = []
        migrated = 0
        for raw in document:
            if not isinstance(raw, dict):
                raise DocumentStoreError(f"Malformed admin account in {self.document_name}")
            raw = dict(raw)
            if _migrate_plaintext_password(raw):
                migrated += 1
            try:
                accounts.append(AdminAccount.model_validate(raw))
            except ValidationError as exc:
                raise DocumentStoreError(
                    f"Malformed admin account in {self.document_name}: {exc.error_count()} error(s)",
                ) from exc
        return accounts, migrated
