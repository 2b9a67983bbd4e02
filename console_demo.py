"""
Console client: drives the real dispatcher from the terminal.

Replies are printed with numbered buttons instead of going to Telegram,
so the add and search flows can be walked through without a bot. The
sheet and geocoder are the configured ones, so the usual environment
variables must be set.

Input:
    #3            tap button 3 of the last keyboard
    @32.78,-96.8  share a location
    /start        send a command
    anything else is sent as text

Usage:
    python console_demo.py
"""

import asyncio
import sys
from typing import Optional

from shopfinder.config import ConfigError, load_config
from shopfinder.container import build_dispatcher
from shopfinder.schemas.messaging_schema import (
    Button,
    EventKind,
    InboundEvent,
    Reply,
    ReplyKind,
)

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CHAT_ID = 1
USER_ID = 1
MAX_INPUT_LENGTH = 500


class ConsoleTransport:
    """Prints replies and remembers the last keyboard for button taps."""

    def __init__(self) -> None:
        self.buttons: list[Button] = []

    async def deliver(self, event: InboundEvent, replies: list[Reply]) -> None:
        for reply in replies:
            if reply.kind == ReplyKind.NOTICE:
                print(f"{YELLOW}  ! {reply.text}{RESET}")
                continue
            if reply.kind == ReplyKind.MESSAGE:
                print(f"{GREEN}{BOLD}[bot]{RESET} {GREEN}{reply.text}{RESET}")
            if reply.buttons:
                self._show_keyboard(reply.buttons)

    def _show_keyboard(self, rows: list[list[Button]]) -> None:
        self.buttons = [button for row in rows for button in row]
        n = 1
        for row in rows:
            labels = []
            for button in row:
                labels.append(f"[{n}] {button.label}")
                n += 1
            print(f"{DIM}    {'   '.join(labels)}{RESET}")


def parse_input(text: str, transport: ConsoleTransport) -> Optional[InboundEvent]:
    """Turn one console line into an event, or None if it names no action."""
    if text.startswith("#"):
        try:
            button = transport.buttons[int(text[1:]) - 1]
        except (ValueError, IndexError):
            return None
        return InboundEvent(
            kind=EventKind.CALLBACK,
            chat_id=CHAT_ID,
            user_id=USER_ID,
            data=button.data,
            message_id=0,
        )
    if text.startswith("@"):
        try:
            lat, lng = (float(part) for part in text[1:].split(","))
        except ValueError:
            return None
        return InboundEvent(
            kind=EventKind.LOCATION, chat_id=CHAT_ID, user_id=USER_ID, lat=lat, lng=lng
        )
    kind = EventKind.COMMAND if text.startswith("/") else EventKind.TEXT
    return InboundEvent(kind=kind, chat_id=CHAT_ID, user_id=USER_ID, text=text)


async def run() -> None:
    config = load_config()
    transport = ConsoleTransport()
    dispatcher = build_dispatcher(config, transport)

    print()
    print(f"{BOLD}{'=' * 60}{RESET}")
    print(f"{BOLD}  SHOPFINDER - Console{RESET}")
    print(f"{BOLD}  Sheet tab: {config.sheets.tab}{RESET}")
    print(f"{BOLD}  Type 'quit' to exit{RESET}")
    print(f"{BOLD}{'=' * 60}{RESET}")
    print()

    await dispatcher.handle(
        InboundEvent(kind=EventKind.COMMAND, chat_id=CHAT_ID, user_id=USER_ID, text="/start")
    )

    while True:
        text = (await asyncio.to_thread(input, f"\n{BLUE}[you] {RESET}")).strip()
        if not text:
            continue
        if text.lower() in ("quit", "exit", "q"):
            print(f"\n{DIM}Session ended.{RESET}")
            return
        if len(text) > MAX_INPUT_LENGTH:
            print(f"{RED}Input too long.{RESET}")
            continue

        event = parse_input(text, transport)
        if event is None:
            print(f"{RED}No such button or location.{RESET}")
            continue
        await dispatcher.handle(event)


def main() -> None:
    try:
        asyncio.run(run())
    except ConfigError as exc:
        print(f"{RED}Configuration error: {exc}{RESET}")
        sys.exit(1)
    except (KeyboardInterrupt, EOFError):
        print(f"\n{DIM}Session ended.{RESET}")


if __name__ == "__main__":
    main()
