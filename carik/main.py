"""Carik entry point: wires the dispatcher to a console read loop."""

from __future__ import annotations

import sys
from typing import TextIO

import click

from carik.config import Settings, load_settings
from carik.core.dispatcher import MessageDispatcher
from carik.errors import BotError
from carik.models import User
from carik.utils.logging import get_logger, setup_logging

log = get_logger(__name__)

QUIT_COMMANDS = ("/quit", "/exit")


def run_console(
    dispatcher: MessageDispatcher,
    chat_id: str = "console",
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Feed stdin lines to the dispatcher until EOF or /quit. Returns lines processed."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    sender = User(id=chat_id, username=chat_id)
    processed = 0

    for raw in stdin:
        line = raw.rstrip("\n")
        if not line.strip():
            continue
        if line.strip().lower() in QUIT_COMMANDS:
            break
        processed += 1
        try:
            reply = dispatcher.process_text(chat_id, line, sender)
        except BotError:
            log.exception("console_dispatch_failed", chat_id=chat_id)
            continue
        if reply:
            print(f"[BOT] {reply}", file=stdout, flush=True)

    return processed


def build_dispatcher(settings: Settings) -> MessageDispatcher:
    dispatcher = MessageDispatcher.from_settings(settings)
    log.info(
        "dispatcher_ready",
        bot=settings.bot.name,
        prefix=settings.bot.prefix,
        middleware=settings.middleware,
        commands=dispatcher.commands.registry.names(),
    )
    return dispatcher


@click.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--chat-id", default="console", show_default=True, help="Chat id used for console messages")
def cli(config_path: str | None, log_level: str | None, chat_id: str) -> None:
    """Run Carik against stdin/stdout."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    dispatcher = build_dispatcher(settings)
    run_console(dispatcher, chat_id=chat_id)


if __name__ == "__main__":
    cli()
