"""Main menu, help, and the "last added" listing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from shopfinder.conversation import keyboards
from shopfinder.logging_context import get_conversation_logger
from shopfinder.prompts import messages
from shopfinder.prompts.prompt_templates import build_last_added
from shopfinder.schemas.messaging_schema import Reply
from shopfinder.tools.google_auth import TokenExchangeError
from shopfinder.tools.sheets import SheetsError

if TYPE_CHECKING:
    from shopfinder.tools.sheets import SheetsClient

logger = get_conversation_logger(__name__)

LAST_ADDED_LIMIT = 10


class MenuFlow:
    def __init__(self, store: SheetsClient) -> None:
        self._store = store

    def main_menu(self, text: str = messages.MAIN_MENU) -> Reply:
        return Reply(text=text, buttons=keyboards.main_menu())

    def welcome(self) -> Reply:
        return self.main_menu(messages.WELCOME)

    def help(self, from_menu: bool = False) -> Reply:
        return self.main_menu(messages.HELP_MENU if from_menu else messages.HELP_COMMAND)

    async def last_added(self) -> list[Reply]:
        """The most recent records, newest first."""
        try:
            records = await self._store.read_all()
        except (SheetsError, TokenExchangeError):
            logger.exception("Last added: failed to read shops")
            return [self.main_menu(messages.SHEET_READ_ERROR)]

        if not records:
            return [self.main_menu(messages.NO_SHOPS_YET)]
        latest = list(reversed(records[-LAST_ADDED_LIMIT:]))
        return [self.main_menu(build_last_added(latest))]
