"""Tests for Telegram update parsing and reply delivery."""

import pytest
import requests

from shopfinder.schemas.messaging_schema import Button, EventKind, Reply, ReplyKind
from shopfinder.transport.telegram import TelegramTransport, TransportError, parse_update
from tests.conftest import FakeResponse, FakeSession, tap_event, text_event

BASE = "https://api.telegram.org/bot123:abc"


def message_update(**message):
    return {
        "update_id": 1,
        "message": {"message_id": 10, "chat": {"id": 100}, "from": {"id": 7}, **message},
    }


def ok():
    return FakeResponse(200, {"ok": True, "result": {}})


class TestParseUpdate:
    def test_text_message(self):
        event = parse_update(message_update(text="Dallas, TX"))
        assert event.kind == EventKind.TEXT
        assert event.text == "Dallas, TX"
        assert (event.chat_id, event.user_id) == (100, 7)

    def test_command_strips_bot_suffix(self):
        event = parse_update(message_update(text="/start@ShopFinderBot"))
        assert event.kind == EventKind.COMMAND
        assert event.text == "/start"

    def test_location(self):
        event = parse_update(message_update(location={"latitude": 32.78, "longitude": -96.8}))
        assert event.kind == EventKind.LOCATION
        assert (event.lat, event.lng) == (32.78, -96.8)

    def test_callback_query(self):
        update = {
            "update_id": 2,
            "callback_query": {
                "id": "cb-9",
                "from": {"id": 7},
                "data": "menu:add",
                "message": {"message_id": 33, "chat": {"id": 100}},
            },
        }
        event = parse_update(update)
        assert event.kind == EventKind.CALLBACK
        assert event.data == "menu:add"
        assert event.callback_id == "cb-9"
        assert event.message_id == 33

    @pytest.mark.parametrize(
        "update",
        [
            {"update_id": 3},
            {"update_id": 4, "edited_message": {"text": "x"}},
            message_update(sticker={"file_id": "abc"}),
            {"update_id": 5, "message": {"text": "no chat"}},
        ],
    )
    def test_unsupported_updates_are_ignored(self, update):
        assert parse_update(update) is None


class TestDeliver:
    @pytest.mark.asyncio
    async def test_message_with_keyboard(self):
        session = FakeSession(ok())
        transport = TelegramTransport("123:abc", session=session)
        reply = Reply(text="Main menu:", buttons=[[Button(label="Add", data="menu:add")]])

        await transport.deliver(text_event("hi"), [reply])

        call = session.calls[0]
        assert call["url"] == f"{BASE}/sendMessage"
        assert call["json"] == {
            "chat_id": 100,
            "text": "Main menu:",
            "reply_markup": {"inline_keyboard": [[{"text": "Add", "callback_data": "menu:add"}]]},
        }

    @pytest.mark.asyncio
    async def test_callback_is_always_acknowledged(self):
        session = FakeSession(ok(), ok())
        transport = TelegramTransport("123:abc", session=session)

        await transport.deliver(tap_event("menu:help"), [Reply(text="Help")])

        assert session.calls[-1]["url"] == f"{BASE}/answerCallbackQuery"
        assert session.calls[-1]["json"] == {"callback_query_id": "cb-1"}

    @pytest.mark.asyncio
    async def test_notice_answers_callback_with_text(self):
        session = FakeSession(ok())
        transport = TelegramTransport("123:abc", session=session)

        await transport.deliver(
            tap_event("add:services_done"),
            [Reply(text="Select at least one service", kind=ReplyKind.NOTICE)],
        )

        assert len(session.calls) == 1
        assert session.calls[0]["json"]["text"] == "Select at least one service"

    @pytest.mark.asyncio
    async def test_edit_markup_targets_original_message(self):
        session = FakeSession(ok(), ok())
        transport = TelegramTransport("123:abc", session=session)
        reply = Reply(buttons=[[Button(label="x", data="y")]], kind=ReplyKind.EDIT_MARKUP)

        await transport.deliver(tap_event("add:toggle_service:Oil"), [reply])

        call = session.calls[0]
        assert call["url"] == f"{BASE}/editMessageReplyMarkup"
        assert call["json"]["message_id"] == 55

    @pytest.mark.asyncio
    async def test_failed_markup_edit_is_tolerated(self):
        session = FakeSession(FakeResponse(400, {"description": "message is not modified"}), ok())
        transport = TelegramTransport("123:abc", session=session)
        reply = Reply(buttons=[[Button(label="x", data="y")]], kind=ReplyKind.EDIT_MARKUP)

        await transport.deliver(tap_event("add:toggle_service:Oil"), [reply])
        assert session.calls[-1]["url"] == f"{BASE}/answerCallbackQuery"

    @pytest.mark.asyncio
    async def test_send_failure_raises(self):
        session = FakeSession(requests.ConnectionError("down"))
        transport = TelegramTransport("123:abc", session=session)
        with pytest.raises(TransportError):
            await transport.deliver(text_event("hi"), [Reply(text="x")])

    def test_token_required(self):
        with pytest.raises(ValueError):
            TelegramTransport("")
