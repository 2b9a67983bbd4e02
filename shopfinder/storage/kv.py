"""
TTL key-value persistence for flow state and provider caches.

The service only needs get / set-with-expiry / delete over tuple keys,
with single-key atomicity. ``KVStore`` is that contract; ``MemoryKVStore``
is the process-local implementation used by default and in tests.
Values must be JSON-serializable; they are stored encoded so callers
never share mutable objects with the store.

Usage:
    kv = MemoryKVStore()
    await kv.set(state_key(key), {"flow": "search"}, ttl=3600)
    value = await kv.get(state_key(key))
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Hashable, Optional, Protocol

from shopfinder.schemas.messaging_schema import ConversationKey

logger = logging.getLogger(__name__)

KVKey = tuple[Hashable, ...]

TOKEN_KEY: KVKey = ("google", "token")
ROWS_KEY: KVKey = ("sheet", "shops", "rows")


def state_key(key: ConversationKey) -> KVKey:
    return ("state", key.chat_id, key.user_id)


def search_key(key: ConversationKey) -> KVKey:
    return ("search", "results", key.chat_id, key.user_id)


def geocode_key(namespace: str, normalized_query: str) -> KVKey:
    return ("geocode", namespace, normalized_query)


class KVStore(Protocol):
    async def get(self, key: KVKey) -> Optional[Any]: ...

    async def set(self, key: KVKey, value: Any, ttl: float) -> None: ...

    async def delete(self, key: KVKey) -> None: ...


class MemoryKVStore:
    """In-process KV store with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._items: dict[KVKey, tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: KVKey) -> Optional[Any]:
        async with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            encoded, expires_at = item
            if expires_at <= self._clock():
                del self._items[key]
                logger.debug("KV entry expired: %s", key)
                return None
            return json.loads(encoded)

    async def set(self, key: KVKey, value: Any, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be > 0, got {ttl}")
        encoded = json.dumps(value)
        async with self._lock:
            self._items[key] = (encoded, self._clock() + ttl)

    async def delete(self, key: KVKey) -> None:
        async with self._lock:
            self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)
