"""Domain exceptions for the Redis facade.

Driver exceptions raised by ``redis.asyncio`` are caught in the facade and
re-raised as one of these so that callers only ever handle this hierarchy.
"""

from __future__ import annotations

from typing import Any

from sweetwork_redis.rules import render_value

NO_FIELDS = "No fields to parse"


class SweetworkRedisError(Exception):
    """Base exception for every error raised by the facade.

    Attributes:
        command: The facade command that failed (e.g. ``"hset"``), if known.
    """

    def __init__(self, message: str, *, command: str | None = None, cause: Exception | None = None) -> None:
        self.command = command
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(SweetworkRedisError):
    """Raised when the facade asks for a field list or field name it cannot check.

    This is a programming error in the calling command, not bad caller input.
    """

    def __init__(self, message: str, *, command: str | None = None, field_name: str | None = None) -> None:
        self.field_name = field_name
        super().__init__(message, command=command)


class ValidationError(SweetworkRedisError):
    """Raised when a caller-supplied option does not match its shape rule."""

    def __init__(self, command: str, field_name: str, value: Any) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Missing/invalid {field_name}={render_value(value)} in option argument => {command}",
            command=command,
        )


class StoreError(SweetworkRedisError):
    """Raised when Redis answers a command with an error reply."""


class ConnectionFailedError(SweetworkRedisError):
    """Raised when the Redis connection fails or times out.

    Attributes:
        host: Host of the failed connection.
        port: Port of the failed connection.
    """

    def __init__(
        self,
        message: str,
        *,
        host: str,
        port: int,
        command: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.host = host
        self.port = port
        super().__init__(message, command=command, cause=cause)
