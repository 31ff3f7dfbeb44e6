"""Message dispatcher: parser -> middleware chain -> command or default handler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, Union

from carik.core.commands import Command, CommandService
from carik.core.middleware import (
    Context,
    Middleware,
    MiddlewareChain,
    MiddlewareFn,
    build_middleware,
)
from carik.core.parser import MessageParser
from carik.errors import (
    Blocked,
    BotError,
    CommandError,
    CommandFailed,
    CommandNotFound,
    InternalError,
    MiddlewareInternalError,
    PermissionDenied,
    RateLimited,
)
from carik.models import CommandContent, Message, TextContent, User
from carik.utils.logging import get_logger

if TYPE_CHECKING:
    from carik.config import Settings

log = get_logger(__name__)

RATE_LIMITED_REPLY = "Rate limited. Please try again later."

TextHandler = Callable[[str], str]


def echo(text: str) -> str:
    return f"Echo: {text}"


class MessageDispatcher:
    """Routes each message through the middleware chain to its handler.

    Business-level rejections (blocked, rate limited, permission denied)
    come back as reply text. Internal middleware failures and handler
    errors are raised as BotError.
    """

    def __init__(
        self,
        prefix: str = "/",
        middleware: Iterable[Union[Middleware, MiddlewareFn]] = (),
        commands: CommandService | None = None,
        default_handler: TextHandler = echo,
    ) -> None:
        self._parser = MessageParser(prefix)
        self._chain = MiddlewareChain(middleware)
        self._commands = commands if commands is not None else CommandService(prefix)
        self._default_handler = default_handler

    @classmethod
    def from_settings(cls, settings: Settings) -> MessageDispatcher:
        commands = CommandService(settings.bot.prefix)
        commands.register_defaults(settings.bot.name, settings.bot.version)
        return cls(
            prefix=settings.bot.prefix,
            middleware=build_middleware(settings),
            commands=commands,
        )

    @property
    def parser(self) -> MessageParser:
        return self._parser

    @property
    def commands(self) -> CommandService:
        return self._commands

    @property
    def chain(self) -> MiddlewareChain:
        return self._chain

    def use(self, middleware: Union[Middleware, MiddlewareFn]) -> MessageDispatcher:
        self._chain.add(middleware)
        return self

    def register_command(self, command: Command) -> None:
        self._commands.register(command)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process_text(self, chat_id: str, text: str, sender: User | None = None) -> str:
        return self.process(self._parser.parse(chat_id, text, sender))

    def process_callback(self, chat_id: str, data: str, user: User) -> str:
        return self.process(self._parser.parse_callback(chat_id, data, user))

    def process(self, message: Message) -> str:
        ctx = Context(message)
        try:
            result = self._chain.run(ctx, self._handle)
            if not isinstance(result, Context):
                raise InternalError(
                    f"middleware returned {type(result).__name__}, expected Context"
                )
        except Blocked as exc:
            return exc.reason
        except RateLimited as exc:
            log.info("reply_rate_limited", chat_id=message.chat_id, retry_after=round(exc.retry_after, 3))
            return RATE_LIMITED_REPLY
        except PermissionDenied as exc:
            return f"Permission denied: {exc.reason}"
        except MiddlewareInternalError as exc:
            raise InternalError(exc.reason) from exc
        except BotError:
            raise
        except Exception as exc:
            log.exception("dispatch_error", chat_id=message.chat_id)
            raise InternalError(str(exc)) from exc

        response = result.get("response")
        return "" if response is None else str(response)

    # ------------------------------------------------------------------
    # Terminal handler
    # ------------------------------------------------------------------

    def _handle(self, ctx: Context) -> Context:
        content = ctx.message.content
        if isinstance(content, CommandContent):
            ctx.set("response", self._run_command(content, ctx.message))
        elif isinstance(content, TextContent):
            ctx.set("response", self._default_handler(content.text))
        # Callback and empty content produce no reply
        return ctx

    def _run_command(self, content: CommandContent, message: Message) -> str:
        try:
            command = self._commands.resolve(content.name)
        except CommandNotFound:
            log.info("command_not_found", name=content.name, chat_id=message.chat_id)
            return f"Unknown command: /{content.name}"
        if command.handler is None:
            return f"Command {command.name} not implemented"

        log.debug("command_executing", name=command.name, args=list(content.args))
        try:
            return command.handler(message)
        except CommandError as exc:
            log.warning("command_failed", name=command.name, error=str(exc))
            raise CommandFailed(exc) from exc
        except Exception as exc:
            log.exception("command_handler_error", name=command.name)
            raise InternalError(f"command {command.name} crashed: {exc}") from exc
