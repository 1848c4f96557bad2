"""Tab-scoped slot holding the logged-in admin snapshot."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from app.core.kv_store import KeyValueStore
from app.modules.identity.schemas import AdminSession

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY_PREFIX = "techAppLoggedInAdmin"


class SessionStore:
    """Session holder for a single session id."""

    def __init__(
        self,
        store: KeyValueStore,
        session_id: str,
        *,
        key_prefix: str = DEFAULT_SESSION_KEY_PREFIX,
    ) -> None:
        self.store = store
        self.session_id = session_id
        self.key = f"{key_prefix}:{session_id}"

    async def get(self) -> AdminSession | None:
        raw = await self.store.get(self.key)
        if raw is None:
            return None
        try:
            return AdminSession.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session slot %s", self.session_id)
            return None

    async def set(self, session: AdminSession) -> None:
        await self.store.set(self.key, session.model_dump_json(by_alias=True))

    async def clear(self) -> None:
        await self.store.delete(self.key)
