"""Core message processing modules for Carik."""

from carik.core.commands import Command, CommandRegistry, CommandService
from carik.core.dispatcher import MessageDispatcher
from carik.core.middleware import (
    Context,
    LoggingMiddleware,
    Middleware,
    MiddlewareChain,
    Next,
    RateLimitMiddleware,
    WhitelistMiddleware,
)
from carik.core.parser import MessageParser
from carik.core.ratelimit import RateLimiter

__all__ = [
    "Command",
    "CommandRegistry",
    "CommandService",
    "Context",
    "LoggingMiddleware",
    "MessageDispatcher",
    "MessageParser",
    "Middleware",
    "MiddlewareChain",
    "Next",
    "RateLimitMiddleware",
    "RateLimiter",
    "WhitelistMiddleware",
]
