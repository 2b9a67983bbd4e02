"""Persistence of the per-conversation flow state in the KV store."""

import logging
from typing import Optional, Union

from pydantic import ValidationError

from shopfinder.schemas.messaging_schema import ConversationKey
from shopfinder.schemas.state_schema import AddState, SearchState, flow_state_adapter
from shopfinder.storage.kv import KVStore, state_key

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class FlowStateStore:
    """At most one active flow per (conversation, participant); writes overwrite."""

    def __init__(self, kv: KVStore, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        self._kv = kv
        self._ttl = ttl

    async def get(self, key: ConversationKey) -> Optional[Union[AddState, SearchState]]:
        raw = await self._kv.get(state_key(key))
        if raw is None:
            return None
        try:
            return flow_state_adapter.validate_python(raw)
        except ValidationError:
            logger.warning("Discarding unreadable flow state for %s", key)
            await self._kv.delete(state_key(key))
            return None

    async def set(self, key: ConversationKey, state: Union[AddState, SearchState]) -> None:
        await self._kv.set(state_key(key), state.model_dump(mode="json"), self._ttl)

    async def clear(self, key: ConversationKey) -> None:
        await self._kv.delete(state_key(key))
