"""Transport-neutral inbound events and outbound replies."""

from enum import Enum
from typing import NamedTuple, Optional

from pydantic import BaseModel, Field


class ConversationKey(NamedTuple):
    """Identity of one participant within one conversation."""

    chat_id: int
    user_id: int

    def __str__(self) -> str:
        return f"{self.chat_id}:{self.user_id}"


class EventKind(str, Enum):
    COMMAND = "command"
    TEXT = "text"
    CALLBACK = "callback"
    LOCATION = "location"


class ReplyKind(str, Enum):
    MESSAGE = "message"
    EDIT_MARKUP = "edit_markup"
    NOTICE = "notice"


class Button(BaseModel):
    label: str
    data: str


class Reply(BaseModel):
    """Outbound content: text plus an optional layout of button rows."""

    text: str = ""
    buttons: list[list[Button]] = Field(default_factory=list)
    kind: ReplyKind = ReplyKind.MESSAGE


class InboundEvent(BaseModel):
    """A message, button tap, or location share from a participant."""

    kind: EventKind
    chat_id: int
    user_id: int
    text: str = ""
    data: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    message_id: Optional[int] = None
    callback_id: Optional[str] = None

    @property
    def key(self) -> ConversationKey:
        return ConversationKey(self.chat_id, self.user_id)
