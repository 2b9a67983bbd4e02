"""
Telegram Bot API adapter.

Translates webhook updates into ``InboundEvent`` objects and delivers
``Reply`` objects back as messages, in-place keyboard edits, or
callback-query answers. Nothing outside this module knows about Telegram
payload shapes.
"""

import asyncio
import logging
from typing import Any, Optional

import requests

from shopfinder.schemas.messaging_schema import EventKind, InboundEvent, Reply, ReplyKind

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"


class TransportError(Exception):
    """The Bot API rejected a call or could not be reached."""


def parse_update(update: dict[str, Any]) -> Optional[InboundEvent]:
    """Map a Telegram update to an event; unsupported updates yield None."""
    callback = update.get("callback_query")
    if callback:
        message = callback.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        user_id = (callback.get("from") or {}).get("id")
        if chat_id is None or user_id is None or not callback.get("data"):
            return None
        return InboundEvent(
            kind=EventKind.CALLBACK,
            chat_id=chat_id,
            user_id=user_id,
            data=callback["data"],
            message_id=message.get("message_id"),
            callback_id=callback.get("id"),
        )

    message = update.get("message")
    if not message:
        return None
    chat_id = (message.get("chat") or {}).get("id")
    user_id = (message.get("from") or {}).get("id")
    if chat_id is None or user_id is None:
        return None

    location = message.get("location")
    if location and "latitude" in location and "longitude" in location:
        return InboundEvent(
            kind=EventKind.LOCATION,
            chat_id=chat_id,
            user_id=user_id,
            lat=location["latitude"],
            lng=location["longitude"],
            message_id=message.get("message_id"),
        )

    text = message.get("text")
    if text is None:
        return None
    if text.startswith("/"):
        # "/start@MyBot args" -> "/start args"
        command, _, rest = text.partition(" ")
        command = command.split("@", 1)[0]
        return InboundEvent(
            kind=EventKind.COMMAND,
            chat_id=chat_id,
            user_id=user_id,
            text=f"{command} {rest}".strip(),
            message_id=message.get("message_id"),
        )
    return InboundEvent(
        kind=EventKind.TEXT,
        chat_id=chat_id,
        user_id=user_id,
        text=text,
        message_id=message.get("message_id"),
    )


def reply_markup(reply: Reply) -> dict[str, Any]:
    return {
        "inline_keyboard": [
            [{"text": b.label, "callback_data": b.data} for b in row]
            for row in reply.buttons
        ]
    }


class TelegramTransport:
    """Delivers replies through the Bot API."""

    def __init__(
        self,
        bot_token: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        api_base: str = API_BASE,
    ) -> None:
        if not bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required to deliver replies")
        self._base = f"{api_base}/bot{bot_token}"
        self._session = session or requests.Session()
        self._timeout = timeout

    async def deliver(self, event: InboundEvent, replies: list[Reply]) -> None:
        answered = False
        for reply in replies:
            if reply.kind == ReplyKind.NOTICE and event.callback_id:
                await self._call(
                    "answerCallbackQuery",
                    {"callback_query_id": event.callback_id, "text": reply.text},
                )
                answered = True
            elif reply.kind == ReplyKind.EDIT_MARKUP and event.message_id is not None:
                try:
                    await self._call(
                        "editMessageReplyMarkup",
                        {
                            "chat_id": event.chat_id,
                            "message_id": event.message_id,
                            "reply_markup": reply_markup(reply),
                        },
                    )
                except TransportError as exc:
                    # Telegram rejects edits that do not change the markup.
                    logger.warning("Keyboard edit failed: %s", exc)
            else:
                await self.send_message(event.chat_id, reply)

        if event.callback_id and not answered:
            await self._call("answerCallbackQuery", {"callback_query_id": event.callback_id})

    async def send_message(self, chat_id: int, reply: Reply) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": reply.text}
        if reply.buttons:
            payload["reply_markup"] = reply_markup(reply)
        await self._call("sendMessage", payload)

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await asyncio.to_thread(
                self._session.post,
                f"{self._base}/{method}",
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} failed: {exc}") from exc
        if response.status_code != 200:
            raise TransportError(f"{method} error: {response.status_code} {response.text[:200]}")
        return response.json()
