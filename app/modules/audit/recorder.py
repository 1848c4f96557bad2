"""Capped, newest-first audit trail of admin actions."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from app.core.kv_store import KeyValueStore
from app.modules.audit.schemas import AuditLogCreate, AuditLogEntry
from app.shared.utils import new_id, utc_now

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LOG_KEY = "techAppAuditLogs"
DEFAULT_MAX_ENTRIES = 500


class AuditTrailRecorder:
    """Append-only log shared by every admin session using the same store.

    New entries go to the front and the oldest fall off once ``max_entries``
    is reached. Recording never raises: a broken audit store must not block
    the action being recorded.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = DEFAULT_AUDIT_LOG_KEY,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self.store = store
        self.key = key
        self.max_entries = max_entries

    async def record(self, payload: AuditLogCreate) -> AuditLogEntry | None:
        """Stamp and store one entry. Returns None if it could not be written."""
        try:
            entry = AuditLogEntry(
                **payload.model_dump(),
                id=new_id("log"),
                timestamp=utc_now(),
            )
            await self.store.push_front(
                self.key,
                entry.model_dump_json(by_alias=True),
                max_length=self.max_entries,
            )
        except Exception:
            logger.exception("Failed to write to audit log: action=%s", payload.action)
            return None
        return entry

    async def list(self) -> list[AuditLogEntry]:
        """Return all retained entries, newest first."""
        try:
            raw_entries = await self.store.get_list(self.key)
        except Exception:
            logger.exception("Failed to read audit logs")
            return []

        entries: list[AuditLogEntry] = []
        for raw in raw_entries:
            try:
                entries.append(AuditLogEntry.model_validate_json(raw))
            except ValidationError:
                logger.warning("Skipping unreadable audit log entry")
        return entries
