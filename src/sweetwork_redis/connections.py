"""Connection management — one lazily created Redis client per manager.

Most callers never build a :class:`ConnectionManager` themselves: the facade
binds to the process-wide shared manager returned by :func:`shared_connection`.
The first call fixes host, port and database; later calls reuse that
connection even when they ask for different parameters.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from sweetwork_redis.config import RedisSettings
from sweetwork_redis.exceptions import ConnectionFailedError

logger = logging.getLogger(__name__)

# Liveness marker per port: set after a successful round trip, cleared on error.
connected_ports: dict[int, bool] = {}


class ConnectionManager:
    """Owns the ``redis.asyncio.Redis`` client for one set of settings.

    The client is created on first access. Pass ``client`` to inject an
    already-built client (or a test double) instead.
    """

    def __init__(self, settings: RedisSettings | None = None, client: redis.Redis | None = None) -> None:
        self._settings = settings or RedisSettings()
        self._client = client

    @property
    def settings(self) -> RedisSettings:
        return self._settings

    @property
    def is_connected(self) -> bool:
        """True once a command has succeeded and no connection error has been seen since."""
        return connected_ports.get(self._settings.port, False)

    def get_client(self) -> redis.Redis:
        """Get or create the Redis client; no network traffic happens here."""
        if self._client is None:
            self._client = redis.Redis(
                host=self._settings.host,
                port=self._settings.port,
                db=self._settings.db,
                password=self._settings.password,
                decode_responses=True,
            )
            logger.info("Created Redis client for %s", self._settings.redacted_url)
        return self._client

    async def connect(self) -> redis.Redis:
        """Return the client after checking the server answers ``PING``.

        Raises:
            ConnectionFailedError: If the server cannot be reached.
        """
        client = self.get_client()
        try:
            await client.ping()
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise self.connection_failed(exc, command="ping") from exc
        self.mark_alive()
        return client

    def mark_alive(self) -> None:
        connected_ports[self._settings.port] = True

    def mark_down(self) -> None:
        connected_ports.pop(self._settings.port, None)

    def connection_failed(self, exc: Exception, command: str) -> ConnectionFailedError:
        """Clear the liveness marker and build the error to raise for *exc*."""
        self.mark_down()
        logger.error(
            "Redis connection error during %s on %s: %s", command, self._settings.redacted_url, type(exc).__name__
        )
        return ConnectionFailedError(
            f"Connection to {self._settings.host}:{self._settings.port} failed during {command}: {exc}",
            host=self._settings.host,
            port=self._settings.port,
            command=command,
            cause=exc,
        )

    async def quit(self) -> None:
        """Close the client; a later :meth:`get_client` builds a new one."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.mark_down()
        logger.info("Closed Redis connection to %s", self._settings.redacted_url)


_shared: ConnectionManager | None = None


def shared_connection(
    host: str | None = None,
    port: int | str | None = None,
    db: int | None = None,
) -> ConnectionManager:
    """Return the process-wide connection manager, creating it on first call.

    Arguments only take effect on the first call. Later calls that ask for a
    different host, port or database get the existing manager and a warning.
    """
    global _shared  # noqa: PLW0603
    if _shared is None:
        _shared = ConnectionManager(RedisSettings.from_args(host, port, db))
        return _shared

    current = _shared.settings
    requested = (host, port, db)
    actual = (current.host, current.port, current.db)
    if any(want is not None and str(want) != str(have) for want, have in zip(requested, actual)):
        logger.warning(
            "Shared Redis connection already bound to %s; ignoring host=%s port=%s db=%s",
            current.redacted_url,
            host,
            port,
            db,
        )
    return _shared


def release_shared_connection(manager: ConnectionManager) -> None:
    """Forget the shared manager if it is *manager*, so the next call creates a new one."""
    global _shared  # noqa: PLW0603
    if _shared is manager:
        _shared = None
