"""Middleware chain: each middleware can pass through, reject or short-circuit."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Sequence, Union

from carik.core.ratelimit import RateLimiter
from carik.errors import ConfigError, ContinuationReused, PermissionDenied, RateLimited
from carik.models import CallbackContent, CommandContent, Message, TextContent
from carik.utils.logging import get_logger

if TYPE_CHECKING:
    from carik.config import Settings

log = get_logger(__name__)

PREVIEW_LENGTH = 50


class Context:
    """Per-dispatch state. Created fresh for every message, never shared."""

    def __init__(self, message: Message) -> None:
        self.message = message
        self.chat_id = message.chat_id
        self.user_id = message.user_id
        self.data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def __repr__(self) -> str:
        return f"Context(chat_id={self.chat_id!r}, user_id={self.user_id!r}, keys={sorted(self.data)})"


Terminal = Callable[[Context], Context]


class Next:
    """Single-use handle on the rest of the chain.

    Calling it runs the remaining middleware in order, then the terminal
    handler. A second call raises ContinuationReused.
    """

    __slots__ = ("_middleware", "_index", "_terminal", "_used")

    def __init__(
        self,
        middleware: Sequence[Middleware],
        terminal: Terminal | None = None,
        index: int = 0,
    ) -> None:
        self._middleware = middleware
        self._index = index
        self._terminal = terminal
        self._used = False

    @property
    def used(self) -> bool:
        return self._used

    def __call__(self, ctx: Context) -> Context:
        if self._used:
            raise ContinuationReused("continuation already invoked for this context")
        self._used = True

        if self._index < len(self._middleware):
            current = self._middleware[self._index]
            rest = Next(self._middleware, self._terminal, self._index + 1)
            return current.process(ctx, rest)
        if self._terminal is not None:
            return self._terminal(ctx)
        return ctx


class Middleware(ABC):
    name = "middleware"

    @abstractmethod
    def process(self, ctx: Context, call_next: Next) -> Context:
        """Inspect or modify ctx, then return call_next(ctx), return early, or raise."""
        ...


MiddlewareFn = Callable[[Context, Next], Context]


class FunctionMiddleware(Middleware):
    """Adapts a plain ``(ctx, call_next) -> ctx`` function."""

    def __init__(self, fn: MiddlewareFn, name: str | None = None) -> None:
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "function")

    def process(self, ctx: Context, call_next: Next) -> Context:
        return self._fn(ctx, call_next)


def _coerce(mw: Union[Middleware, MiddlewareFn]) -> Middleware:
    if isinstance(mw, Middleware):
        return mw
    if callable(mw):
        return FunctionMiddleware(mw)
    raise TypeError(f"not a middleware: {mw!r}")


class MiddlewareChain:
    """Ordered, immutable-per-run list of middleware."""

    def __init__(self, middleware: Iterable[Union[Middleware, MiddlewareFn]] = ()) -> None:
        self._middleware: tuple[Middleware, ...] = tuple(_coerce(m) for m in middleware)

    def add(self, middleware: Union[Middleware, MiddlewareFn]) -> MiddlewareChain:
        # Rebinding keeps in-flight runs on their own snapshot
        self._middleware = (*self._middleware, _coerce(middleware))
        return self

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)

    def run(self, ctx: Context, terminal: Terminal | None = None) -> Context:
        return Next(self._middleware, terminal)(ctx)


# ---------------------------------------------------------------------------
# Concrete middleware
# ---------------------------------------------------------------------------

def _preview(message: Message) -> str:
    content = message.content
    if isinstance(content, TextContent):
        return content.text[:PREVIEW_LENGTH]
    if isinstance(content, CommandContent):
        return "[command]"
    if isinstance(content, CallbackContent):
        return "[callback]"
    return "[empty]"


class LoggingMiddleware(Middleware):
    name = "logging"

    def process(self, ctx: Context, call_next: Next) -> Context:
        chat_id = ctx.chat_id
        log.debug("message_received", chat_id=chat_id, preview=_preview(ctx.message))
        try:
            result = call_next(ctx)
        except Exception as exc:
            log.warning("message_failed", chat_id=chat_id, error=str(exc))
            raise
        log.debug("message_processed", chat_id=chat_id)
        return result


def actor_key(ctx: Context, policy: str = "user") -> str:
    """Identity a request is bucketed under for rate limiting and access checks."""
    if policy == "chat":
        return ctx.chat_id or ctx.user_id or ""
    return ctx.user_id or ctx.chat_id or ""


class RateLimitMiddleware(Middleware):
    name = "rate_limit"

    def __init__(
        self,
        max_requests: int,
        window: float,
        key_policy: str = "user",
        limiter: RateLimiter | None = None,
    ) -> None:
        if key_policy not in ("user", "chat"):
            raise ValueError(f"unknown key policy: {key_policy}")
        self._limiter = limiter if limiter is not None else RateLimiter(max_requests, window)
        self._key_policy = key_policy

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    def process(self, ctx: Context, call_next: Next) -> Context:
        decision = self._limiter.check(actor_key(ctx, self._key_policy))
        if not decision.allowed:
            raise RateLimited(decision.retry_after)
        return call_next(ctx)


class WhitelistMiddleware(Middleware):
    """Rejects actors not on the allow list while enabled."""

    name = "whitelist"

    def __init__(self, users: Iterable[str], enabled: bool = True) -> None:
        self._users = frozenset(users)
        self._enabled = enabled

    def is_allowed(self, actor: str) -> bool:
        if not self._enabled:
            return True
        return actor in self._users

    def process(self, ctx: Context, call_next: Next) -> Context:
        actor = actor_key(ctx)
        if not self.is_allowed(actor):
            log.info("whitelist_rejected", actor=actor, chat_id=ctx.chat_id)
            raise PermissionDenied(f"user {actor} is not whitelisted")
        return call_next(ctx)


def build_middleware(settings: Settings) -> list[Middleware]:
    """Instantiate the configured middleware, in configured order."""
    factories: dict[str, Callable[[], Middleware]] = {
        "logging": LoggingMiddleware,
        "rate_limit": lambda: RateLimitMiddleware(
            settings.rate_limit.max_requests,
            settings.rate_limit.window_seconds,
            key_policy=settings.rate_limit.key,
        ),
        "whitelist": lambda: WhitelistMiddleware(
            settings.whitelist.users, enabled=settings.whitelist.enabled
        ),
    }
    result: list[Middleware] = []
    for name in settings.middleware:
        factory = factories.get(name)
        if factory is None:
            raise ConfigError(f"Unknown middleware: {name}")
        result.append(factory())
    return result
