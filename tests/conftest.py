from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest")
os.environ.setdefault("KV_BACKEND", "memory")
os.environ.setdefault("DOCUMENT_STORE_BACKEND", "memory")
os.environ.setdefault("PASSWORD_BCRYPT_ROUNDS", "4")

from collections.abc import Callable  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from app.core.document_store import InMemoryDocumentStore  # noqa: E402
from app.core.kv_store import InMemoryKeyValueStore  # noqa: E402
from app.modules.audit.recorder import AuditTrailRecorder  # noqa: E402
from app.modules.identity.directory import AdminDirectory  # noqa: E402
from app.modules.identity.service import AuthService  # noqa: E402
from app.modules.identity.session_store import SessionStore  # noqa: E402

SUPERADMIN_CREDENTIALS = ("cuth-tech", "Silence@1")


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest_asyncio.fixture
async def directory(document_store: InMemoryDocumentStore) -> AdminDirectory:
    directory = AdminDirectory(document_store)
    await directory.reload()
    return directory


@pytest.fixture
def recorder(kv_store: InMemoryKeyValueStore) -> AuditTrailRecorder:
    return AuditTrailRecorder(kv_store)


@pytest.fixture
def make_service(
    directory: AdminDirectory,
    kv_store: InMemoryKeyValueStore,
    recorder: AuditTrailRecorder,
) -> Callable[[str], AuthService]:
    def _factory(session_id: str = "tab-1") -> AuthService:
        return AuthService(directory, SessionStore(kv_store, session_id), recorder)

    return _factory


@pytest_asyncio.fixture
async def superadmin_service(make_service: Callable[[str], AuthService]) -> AuthService:
    service = make_service("superadmin-tab")
    assert await service.login(*SUPERADMIN_CREDENTIALS)
    return service
