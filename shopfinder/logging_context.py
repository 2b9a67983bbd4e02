"""Per-participant logging context for the bot's event handlers.

Every inbound event belongs to one (chat, user) pair. The dispatcher binds
that pair for the duration of the event with ``conversation_context``, and
``ConversationIdFilter`` stamps it on each record as ``conversation_id``,
so one participant's add and search steps can be grepped out of a busy log.

Usage:
    from shopfinder.logging_context import conversation_context, get_conversation_logger

    logger = get_conversation_logger(__name__)
    with conversation_context(ConversationKey(12345, 678)):
        logger.info("Processing event")  # -> [12345:678] Processing event
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from shopfinder.schemas.messaging_schema import ConversationKey

NO_CONVERSATION = "-"

_conversation_id: ContextVar[str] = ContextVar("conversation_id", default=NO_CONVERSATION)


def format_conversation_id(key: ConversationKey) -> str:
    """``chat_id:user_id``, the form used in log lines and console output."""
    return f"{key.chat_id}:{key.user_id}"


def get_conversation_id() -> str:
    return _conversation_id.get()


@contextmanager
def conversation_context(key: ConversationKey) -> Iterator[str]:
    """Bind the participant for one event; the previous value is restored on exit."""
    token = _conversation_id.set(format_conversation_id(key))
    try:
        yield _conversation_id.get()
    finally:
        _conversation_id.reset(token)


class ConversationIdFilter(logging.Filter):
    """Injects conversation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.conversation_id = _conversation_id.get()  # type: ignore[attr-defined]
        return True


def get_conversation_logger(name: str) -> logging.Logger:
    """Return a logger with the ConversationIdFilter attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, ConversationIdFilter) for f in logger.filters):
        logger.addFilter(ConversationIdFilter())
    return logger
