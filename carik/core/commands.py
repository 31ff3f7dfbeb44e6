"""Command registry, help text and the built-in commands."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Iterator

from carik.errors import CommandNotFound
from carik.models import CommandContent, Message
from carik.utils.logging import get_logger

log = get_logger(__name__)

CommandHandlerFn = Callable[[Message], str]


@dataclass
class Command:
    name: str
    description: str | None = None
    aliases: list[str] = field(default_factory=list)
    usage: str | None = None
    handler: CommandHandlerFn | None = None
    permissions: list[str] = field(default_factory=list)

    def matches(self, text: str) -> bool:
        """Case-insensitive match against the name and every alias."""
        needle = text.lower()
        if self.name.lower() == needle:
            return True
        return any(alias.lower() == needle for alias in self.aliases)


class CommandRegistry:
    """Name -> Command mapping. Re-registering a name replaces the entry."""

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}
        self._lock = threading.RLock()

    def register(self, command: Command) -> None:
        with self._lock:
            replaced = command.name in self._commands
            self._commands[command.name] = command
        log.debug("command_registered", name=command.name, replaced=replaced)

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._commands.pop(name, None) is not None

    def get(self, name: str) -> Command | None:
        with self._lock:
            return self._commands.get(name)

    def find(self, text: str) -> Command | None:
        # When two commands share an alias the first registered one wins
        with self._lock:
            for command in self._commands.values():
                if command.matches(text):
                    return command
        return None

    def all(self) -> list[Command]:
        with self._lock:
            return list(self._commands.values())

    def names(self) -> list[str]:
        with self._lock:
            return list(self._commands)

    def __len__(self) -> int:
        with self._lock:
            return len(self._commands)

    def __iter__(self) -> Iterator[Command]:
        return iter(self.all())

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._commands


class CommandService:
    """Owns the registry and renders help for it."""

    def __init__(self, prefix: str = "/", registry: CommandRegistry | None = None) -> None:
        self._prefix = prefix
        self.registry = registry if registry is not None else CommandRegistry()

    @property
    def prefix(self) -> str:
        return self._prefix

    def register(self, command: Command) -> None:
        self.registry.register(command)

    def register_defaults(self, bot_name: str = "carik-bot", version: str = "0.1.0") -> None:
        def _help(message: Message) -> str:
            content = message.content
            topic = None
            if isinstance(content, CommandContent) and content.args:
                topic = content.args[0]
            return self.get_help(topic)

        self.register(Command(
            name="help",
            description="Show help message",
            aliases=["h"],
            usage=f"{self._prefix}help [command]",
            handler=_help,
        ))
        self.register(Command(
            name="version",
            description="Show bot version",
            handler=lambda _message: f"{bot_name} v{version}",
        ))

    def resolve(self, name: str) -> Command:
        command = self.registry.find(name) if name else None
        if command is None:
            raise CommandNotFound(name)
        return command

    def _strip_prefix(self, name: str) -> str:
        if name.startswith("/"):
            return name[1:]
        if self._prefix and name.startswith(self._prefix):
            return name[len(self._prefix):]
        return name

    def get_help(self, name: str | None = None) -> str:
        prefix = self._prefix
        if name:
            name = self._strip_prefix(name)
            command = self.registry.find(name)
            if command is None:
                return f"Command {prefix}{name} not found"
            text = f"{prefix}{command.name} - {command.description or 'No description'}"
            if command.aliases:
                text += "\nAliases: " + ", ".join(command.aliases)
            if command.usage:
                text += f"\nUsage: {command.usage}"
            return text

        lines = ["Available commands:"]
        for command in self.registry.all():
            lines.append(f"  {prefix}{command.name} - {command.description or ''}")
        return "\n".join(lines)
