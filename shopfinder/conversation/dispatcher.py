"""
Event router: one inbound event in, replies out through the transport.

Each event is handled under a per-conversation lock, so the
read-modify-write of flow state for one (chat, user) pair is never
interleaved with another event for the same pair. External-service
failures are logged for operators and surfaced to the participant as a
generic error with the main menu; flow state is left where the failing
handler left it so the participant can retry.
"""

from typing import Optional, Protocol

from shopfinder.conversation import keyboards
from shopfinder.conversation.add_flow import AddShopFlow
from shopfinder.conversation.menu import MenuFlow
from shopfinder.conversation.search_flow import SearchFlow
from shopfinder.conversation.state_machine import InvalidTransitionError
from shopfinder.conversation.state_store import FlowStateStore
from shopfinder.logging_context import conversation_context, get_conversation_logger
from shopfinder.prompts import messages
from shopfinder.schemas.messaging_schema import EventKind, InboundEvent, Reply, ReplyKind
from shopfinder.schemas.state_schema import AddState, SearchState
from shopfinder.storage.locks import KeyedLocks
from shopfinder.tools.geocoding import GeocodingError
from shopfinder.tools.google_auth import TokenExchangeError
from shopfinder.tools.sheets import SheetsError

logger = get_conversation_logger(__name__)

EXTERNAL_ERRORS = (GeocodingError, TokenExchangeError, SheetsError)


class Transport(Protocol):
    async def deliver(self, event: InboundEvent, replies: list[Reply]) -> None: ...


class Dispatcher:
    """Routes events to the add or search flow based on persisted state."""

    def __init__(
        self,
        states: FlowStateStore,
        add_flow: AddShopFlow,
        search_flow: SearchFlow,
        menu: MenuFlow,
        transport: Transport,
        locks: Optional[KeyedLocks] = None,
    ) -> None:
        self._states = states
        self._add = add_flow
        self._search = search_flow
        self._menu = menu
        self._transport = transport
        self._locks = locks or KeyedLocks()

    async def handle(self, event: InboundEvent) -> list[Reply]:
        with conversation_context(event.key):
            async with self._locks.hold(event.key):
                try:
                    replies = await self._route(event)
                except InvalidTransitionError as exc:
                    logger.info("Stale or invalid action %r: %s", event.data or event.text, exc)
                    replies = [Reply(text=messages.NO_ACTION, kind=ReplyKind.NOTICE)]
                except EXTERNAL_ERRORS:
                    logger.exception(
                        "External service failure handling %s event", event.kind.value
                    )
                    replies = [self._menu.main_menu(messages.GENERIC_ERROR)]
                await self._transport.deliver(event, replies)
        return replies

    async def _route(self, event: InboundEvent) -> list[Reply]:
        if event.kind == EventKind.COMMAND:
            return self._on_command(event)
        if event.kind == EventKind.CALLBACK:
            return await self._on_callback(event)
        if event.kind == EventKind.LOCATION:
            return await self._on_location(event)
        return await self._on_text(event)

    def _on_command(self, event: InboundEvent) -> list[Reply]:
        command = event.text.split()[0].lower() if event.text.strip() else ""
        if command == "/start":
            return [self._menu.welcome()]
        if command == "/help":
            return [self._menu.help()]
        return [self._menu.main_menu(messages.FALLBACK)]

    async def _on_callback(self, event: InboundEvent) -> list[Reply]:
        data, key = event.data, event.key

        if data == keyboards.MENU_ADD:
            return await self._add.start(key)
        if data == keyboards.MENU_SEARCH:
            return await self._search.start(key)
        if data == keyboards.MENU_LAST:
            return await self._menu.last_added()
        if data == keyboards.MENU_HELP:
            return [self._menu.help(from_menu=True)]

        state = await self._states.get(key)
        if state is None and (
            data.startswith(keyboards.ADD_PREFIX) or data == keyboards.SEARCH_CANCEL
        ):
            logger.info("Flow button %r arrived with no flow state", data)
            return [self._menu.main_menu(messages.SESSION_EXPIRED)]

        replies: Optional[list[Reply]] = None
        if isinstance(state, AddState):
            replies = await self._add.handle_selection(key, state, data)
        elif isinstance(state, SearchState):
            replies = await self._search.handle_selection(key, data)
        if replies is not None:
            return replies

        # Paging and the results menu work without an active flow.
        if data.startswith("search:"):
            replies = await self._search.handle_selection(key, data)
            if replies is not None:
                return replies

        return [Reply(text=messages.NO_ACTION, kind=ReplyKind.NOTICE)]

    async def _on_location(self, event: InboundEvent) -> list[Reply]:
        state = await self._states.get(event.key)
        if isinstance(state, AddState):
            return [Reply(text=messages.USE_BUTTONS), self._add.prompt_for_step(state)]
        return await self._search.run_search_by_coords(event.key, event.lat, event.lng)

    async def _on_text(self, event: InboundEvent) -> list[Reply]:
        key, text = event.key, event.text
        state = await self._states.get(key)

        if state is None:
            replies = await self._search.try_inline_search(key, text)
            if replies is not None:
                return replies
        elif isinstance(state, AddState):
            return await self._add.handle_text(key, state, text)
        elif isinstance(state, SearchState):
            return await self._search.handle_text(key, state, text)

        return [self._menu.main_menu(messages.FALLBACK)]
