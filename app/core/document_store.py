"""Whole-document persistence against the storefront backend data API."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Protocol

import httpx

from app.core.config import Settings

logger = logging.getLogger(__name__)

Document = list[Any] | dict[str, Any]


class DocumentStoreError(Exception):
    """Raised when a document cannot be loaded or saved."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DocumentStore(Protocol):
    """Named JSON documents, always loaded and saved as a whole."""

    async def load(self, name: str) -> Document | None:
        """Return the stored document or None when it does not exist."""

    async def save(self, name: str, document: Document) -> None:
        """Replace the stored document."""

    async def close(self) -> None:
        """Release backend connections."""


class InMemoryDocumentStore:
    """Document store kept in process memory (development and tests)."""

    def __init__(self, documents: dict[str, Document] | None = None) -> None:
        self._documents: dict[str, Document] = {
            name: copy.deepcopy(document) for name, document in (documents or {}).items()
        }
        self.save_calls = 0

    async def load(self, name: str) -> Document | None:
        document = self._documents.get(name)
        return copy.deepcopy(document) if document is not None else None

    async def save(self, name: str, document: Document) -> None:
        self.save_calls += 1
        self._documents[name] = copy.deepcopy(document)

    async def close(self) -> None:
        return None


class HttpDocumentStore:
    """Client for ``/api/data/{name}`` on the storefront backend."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
        )

    @staticmethod
    def _path(name: str) -> str:
        return f"/api/data/{name}"

    async def load(self, name: str) -> Document | None:
        try:
            response = await self._client.get(self._path(name))
        except httpx.HTTPError as exc:
            raise DocumentStoreError(f"Failed to fetch data for {name}: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise DocumentStoreError(
                f"Failed to fetch data for {name}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise DocumentStoreError(f"Malformed document {name}") from exc

    async def save(self, name: str, document: Document) -> None:
        try:
            response = await self._client.post(self._path(name), json=document)
        except httpx.HTTPError as exc:
            raise DocumentStoreError(f"Failed to save data for {name}: {exc}") from exc

        if response.status_code >= 400:
            raise DocumentStoreError(
                _error_message(response) or f"Failed to save data for {name}",
                status_code=response.status_code,
            )
        logger.debug("Saved document %s", name)

    async def close(self) -> None:
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message")
        return str(message) if message else None
    return None


def build_document_store(settings: Settings) -> DocumentStore:
    """Return document store for configured settings."""
    if settings.document_store_backend == "http":
        return HttpDocumentStore(
            settings.backend_url or "",
            timeout_seconds=settings.document_store_timeout_seconds,
        )
    return InMemoryDocumentStore()
