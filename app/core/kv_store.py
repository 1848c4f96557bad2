"""Key/value storage backends (in-memory and Redis) for session slots and the audit trail."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from app.core.config import Settings


class KeyValueStore(Protocol):
    """Common contract for key/value backends."""

    async def get(self, key: str) -> str | None:
        """Get stored value by key."""

    async def set(self, key: str, value: str) -> None:
        """Store value under key."""

    async def delete(self, key: str) -> None:
        """Delete stored value by key."""

    async def push_front(self, key: str, value: str, *, max_length: int) -> None:
        """Prepend value to the list under key and keep at most max_length items."""

    async def get_list(self, key: str) -> list[str]:
        """Return the list under key, front first."""

    async def clear(self) -> None:
        """Drop everything this store owns (used in tests)."""

    async def close(self) -> None:
        """Release backend connections."""


class InMemoryKeyValueStore:
    """Process-local store. Contents are lost on restart."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._lists: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._lists.pop(key, None)

    async def push_front(self, key: str, value: str, *, max_length: int) -> None:
        async with self._lock:
            items = self._lists.get(key, [])
            self._lists[key] = [value, *items][:max_length]

    async def get_list(self, key: str) -> list[str]:
        return list(self._lists.get(key, []))

    async def clear(self) -> None:
        async with self._lock:
            self._values.clear()
            self._lists.clear()

    async def close(self) -> None:
        return None


class RedisKeyValueStore:
    """Redis-backed store shared across app instances."""

    def __init__(
        self,
        *,
        redis_url: str | None = None,
        namespace: str,
        client: Any | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._namespace = namespace
        self._init_lock = asyncio.Lock()
        self._client: Any | None = client

    def _build_storage_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def _ensure_initialized(self) -> Any:
        if self._client is not None:
            return self._client

        async with self._init_lock:
            if self._client is None:
                from redis.asyncio import from_url

                self._client = from_url(
                    self._redis_url or "",
                    encoding="utf-8",
                    decode_responses=True,
                )
        return self._client

    async def get(self, key: str) -> str | None:
        client = await self._ensure_initialized()
        return await client.get(self._build_storage_key(key))

    async def set(self, key: str, value: str) -> None:
        client = await self._ensure_initialized()
        await client.set(self._build_storage_key(key), value)

    async def delete(self, key: str) -> None:
        client = await self._ensure_initialized()
        await client.delete(self._build_storage_key(key))

    async def push_front(self, key: str, value: str, *, max_length: int) -> None:
        client = await self._ensure_initialized()
        storage_key = self._build_storage_key(key)
        async with client.pipeline(transaction=True) as pipe:
            pipe.lpush(storage_key, value)
            pipe.ltrim(storage_key, 0, max_length - 1)
            await pipe.execute()

    async def get_list(self, key: str) -> list[str]:
        client = await self._ensure_initialized()
        return list(await client.lrange(self._build_storage_key(key), 0, -1))

    async def clear(self) -> None:
        """Delete keys for this namespace."""
        client = await self._ensure_initialized()
        pattern = f"{self._namespace}:*"
        cursor: int = 0
        while True:
            cursor, keys = await client.scan(cursor=cursor, match=pattern, count=100)
            if keys:
                await client.delete(*keys)
            if int(cursor) == 0:
                break

    async def ping(self) -> bool:
        client = await self._ensure_initialized()
        return bool(await client.ping())

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_kv_store(settings: Settings) -> KeyValueStore:
    """Return key/value backend for configured settings."""
    if settings.kv_backend == "redis":
        return RedisKeyValueStore(
            redis_url=settings.redis_url or "",
            namespace=settings.kv_redis_namespace,
        )
    return InMemoryKeyValueStore()
