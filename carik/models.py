"""Typed message models: users, content variants and messages."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union
from uuid import uuid4


@dataclass(frozen=True)
class User:
    id: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_bot: bool = False

    def display_name(self) -> str:
        if self.username:
            return self.username
        if self.first_name:
            if self.last_name:
                return f"{self.first_name} {self.last_name}"
            return self.first_name
        return self.id

    def __str__(self) -> str:
        return self.display_name()


class MessageType(str, Enum):
    TEXT = "text"
    COMMAND = "command"
    CALLBACK = "callback"
    PHOTO = "photo"
    DOCUMENT = "document"
    AUDIO = "audio"
    VIDEO = "video"
    STICKER = "sticker"
    LOCATION = "location"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Content variants. Exactly one is attached to each Message.
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextContent:
    text: str

    @property
    def is_command(self) -> bool:
        return False


@dataclass(frozen=True)
class CommandContent:
    name: str
    args: tuple[str, ...] = ()

    @property
    def is_command(self) -> bool:
        return True


@dataclass(frozen=True)
class CallbackContent:
    data: str

    @property
    def is_command(self) -> bool:
        return False


@dataclass(frozen=True)
class EmptyContent:
    @property
    def is_command(self) -> bool:
        return False


Content = Union[TextContent, CommandContent, CallbackContent, EmptyContent]


def _new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class Message:
    """One inbound (or synthesized) event. Never mutated after creation."""

    chat_id: str
    content: Content
    sender: User | None = None
    message_type: MessageType = MessageType.TEXT
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    platform: str = "unknown"
    raw: dict[str, Any] | None = None

    @classmethod
    def from_text(cls, chat_id: str, text: str) -> Message:
        return cls(chat_id=chat_id, content=TextContent(text))

    @classmethod
    def from_command(cls, chat_id: str, name: str, args: list[str] | tuple[str, ...] = ()) -> Message:
        return cls(
            chat_id=chat_id,
            content=CommandContent(name, tuple(args)),
            message_type=MessageType.COMMAND,
        )

    @property
    def text(self) -> str | None:
        """Plain text of the message, or None for non-text content."""
        if isinstance(self.content, TextContent):
            return self.content.text
        return None

    @property
    def user_id(self) -> str | None:
        return self.sender.id if self.sender else None

    # Builders return modified copies
    def with_sender(self, user: User | None) -> Message:
        if user is None:
            return self
        return replace(self, sender=user)

    def with_platform(self, platform: str) -> Message:
        return replace(self, platform=platform)

    def with_raw(self, raw: dict[str, Any]) -> Message:
        return replace(self, raw=raw)
