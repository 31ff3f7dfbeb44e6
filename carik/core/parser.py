"""Turns raw inbound text into structured Message values."""

from __future__ import annotations

from carik.models import (
    CallbackContent,
    CommandContent,
    Message,
    MessageType,
    TextContent,
    User,
)


class MessageParser:
    """Stateless apart from the configured command prefix; safe to share across threads."""

    def __init__(self, prefix: str = "/") -> None:
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def is_command(self, text: str) -> bool:
        if text.startswith("/"):
            return True
        return bool(self._prefix) and text.startswith(self._prefix)

    def parse(self, chat_id: str, text: str, sender: User | None = None) -> Message:
        if self.is_command(text):
            return self._parse_command(chat_id, text, sender)
        return Message(
            chat_id=chat_id,
            content=TextContent(text),
            sender=sender,
            message_type=MessageType.TEXT,
        )

    def _parse_command(self, chat_id: str, text: str, sender: User | None) -> Message:
        # Strip exactly one prefix occurrence
        if text.startswith("/"):
            body = text[1:]
        else:
            body = text[len(self._prefix):]

        parts = body.split()
        name = parts[0] if parts else ""
        return Message(
            chat_id=chat_id,
            content=CommandContent(name, tuple(parts[1:])),
            sender=sender,
            message_type=MessageType.COMMAND,
        )

    def parse_callback(self, chat_id: str, data: str, user: User) -> Message:
        """Inline button press; the pressing user is always known."""
        return Message(
            chat_id=chat_id,
            content=CallbackContent(data),
            sender=user,
            message_type=MessageType.CALLBACK,
        )
