"""Exception taxonomy for middleware, commands and the dispatcher."""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Middleware rejections
# ---------------------------------------------------------------------------

class MiddlewareError(Exception):
    """Raised by a middleware to reject the request it is processing."""


class Blocked(MiddlewareError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Blocked: {reason}")
        self.reason = reason


class RateLimited(MiddlewareError):
    def __init__(self, retry_after: float) -> None:
        super().__init__(f"Rate limited, retry after {retry_after:.1f}s")
        self.retry_after = retry_after


class PermissionDenied(MiddlewareError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Permission denied: {reason}")
        self.reason = reason


class MiddlewareInternalError(MiddlewareError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Internal error: {reason}")
        self.reason = reason


class ContinuationReused(RuntimeError):
    """A continuation was invoked more than once."""


# ---------------------------------------------------------------------------
# Command handler failures
# ---------------------------------------------------------------------------

class CommandError(Exception):
    """Raised by command handlers."""


class CommandNotFound(CommandError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Command not found: {name}")
        self.name = name


class InvalidArguments(CommandError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid arguments: {reason}")
        self.reason = reason


class ExecutionFailed(CommandError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Execution failed: {reason}")
        self.reason = reason


class CommandPermissionDenied(CommandError):
    def __init__(self) -> None:
        super().__init__("Permission denied")


# ---------------------------------------------------------------------------
# Outward-facing errors
# ---------------------------------------------------------------------------

class BotError(Exception):
    """Hard failure surfaced to the adapter."""


class ConfigError(BotError):
    pass


class InternalError(BotError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Internal error: {reason}")
        self.reason = reason


class CommandFailed(InternalError):
    """A command handler raised a CommandError."""

    def __init__(self, error: CommandError) -> None:
        super().__init__(str(error))
        self.error = error
