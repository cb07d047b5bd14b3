"""Async Redis facade: validate an options bag, then issue one command.

Example usage::

    client = SweetworkRedisClient("127.0.0.1", 6379, 1)
    await client.set({"key": "name", "value": "Batman"})
    await client.get({"key": "name"})  # 'Batman'
    await client.zadd({"key": "vr", "scomembers": [1459857600, "HTC-Vive"]})
    await client.quit()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from sweetwork_redis.connections import ConnectionManager, release_shared_connection, shared_connection
from sweetwork_redis.exceptions import ConfigurationError, StoreError, ValidationError
from sweetwork_redis.normalize import (
    COUNT_DEFAULTS,
    LIST_RANGE_DEFAULTS,
    RANGE_BY_SCORE_DEFAULTS,
    decode_score,
    join_mapping_values,
    join_sequence,
    unpack_pair,
    with_defaults,
    wrap_singular,
)
from sweetwork_redis.rules import parse_int
from sweetwork_redis.validation import validate_options

logger = logging.getLogger(__name__)

Options = Mapping[str, Any]
T = TypeVar("T")


class SortOrder(str, Enum):
    """Direction of a range-by-score query."""

    ASC = "asc"
    DESC = "desc"


class SweetworkRedisClient:
    """Option-bag facade over ``redis.asyncio``.

    Every command takes one mapping of named options, checks the options it
    needs (see :mod:`sweetwork_redis.rules`) and awaits exactly one Redis
    reply. Bad options raise :class:`~sweetwork_redis.exceptions.ValidationError`
    before Redis is contacted; error replies raise
    :class:`~sweetwork_redis.exceptions.StoreError`.

    Without an explicit ``connection`` the client binds to the process-wide
    shared connection. Only the first client's host/port/db are used; later
    clients share that connection whatever arguments they pass.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | str | None = None,
        db: int | None = None,
        *,
        connection: ConnectionManager | None = None,
    ) -> None:
        self._connection = connection or shared_connection(host, port, db)

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    def get_raw_client(self) -> redis.Redis:
        """Return the underlying ``redis.asyncio.Redis`` client."""
        return self._connection.get_client()

    async def quit(self) -> None:
        """Close the connection and release it so the next client reconnects."""
        await self._connection.quit()
        release_shared_connection(self._connection)

    async def _execute(self, command: str, call: Callable[[redis.Redis], Awaitable[T]]) -> T:
        """Run *call* against the client and translate driver failures."""
        client = self._connection.get_client()
        try:
            reply = await call(client)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise self._connection.connection_failed(exc, command) from exc
        except RedisError as exc:
            logger.error("Redis %s failed: %s", command, type(exc).__name__)
            raise StoreError(str(exc), command=command, cause=exc) from exc
        self._connection.mark_alive()
        return reply

    # ---------------------------------------------------------------------------
    # Strings
    # ---------------------------------------------------------------------------

    async def set(self, opt: Options) -> Any:
        """Set ``key`` to ``value``; an optional ``ex`` sets the expiry in seconds."""
        fields = ["key", "value", "ex"] if "ex" in opt else ["key", "value"]
        validate_options("set", opt, fields)
        ex = parse_int(opt["ex"]) if "ex" in opt else None
        return await self._execute("set", lambda client: client.set(opt["key"], opt["value"], ex=ex))

    async def setex(self, opt: Options) -> Any:
        """Set ``key`` to ``value`` expiring after ``ex`` seconds.

        Issued as ``SET ... EX`` since redis-py deprecates ``setex``.
        """
        validate_options("setex", opt, ["key", "value", "ex"])
        ex = parse_int(opt["ex"])
        return await self._execute("setex", lambda client: client.set(opt["key"], opt["value"], ex=ex))

    async def get(self, opt: Options) -> str | None:
        validate_options("get", opt, ["key"])
        return await self._execute("get", lambda client: client.get(opt["key"]))

    async def delete(self, opt: Options) -> int:
        """Delete ``key`` whatever its type. Returns the number of keys removed."""
        validate_options("del", opt, ["key"])
        return await self._execute("del", lambda client: client.delete(opt["key"]))

    # ---------------------------------------------------------------------------
    # Hashes
    # ---------------------------------------------------------------------------

    async def hset(self, opt: Options) -> int:
        """Set one hash field. A list ``value`` is stored comma-joined."""
        data = dict(opt)
        if "value" in data:
            data["value"] = join_sequence(data["value"])
        validate_options("hset", data, ["key", "field", "value"])
        return await self._execute("hset", lambda client: client.hset(data["key"], data["field"], data["value"]))

    async def hget(self, opt: Options) -> str | None:
        validate_options("hget", opt, ["key", "field"])
        return await self._execute("hget", lambda client: client.hget(opt["key"], opt["field"]))

    async def hlen(self, opt: Options) -> int:
        validate_options("hlen", opt, ["key"])
        return await self._execute("hlen", lambda client: client.hlen(opt["key"]))

    async def hgetall(self, opt: Options) -> dict[str, str] | None:
        """Return every field of the hash, or ``None`` when the key does not exist."""
        validate_options("hgetall", opt, ["key"])
        reply = await self._execute("hgetall", lambda client: client.hgetall(opt["key"]))
        return reply or None

    async def hmset(self, opt: Options) -> int:
        """Set several hash fields from the ``hash`` mapping.

        List values are stored comma-joined. Issued as a multi-field ``HSET``
        since ``HMSET`` is deprecated server-side. Returns the number of new
        fields.
        """
        validate_options("hmset", opt, ["key", "hash"])
        mapping = join_mapping_values(opt["hash"])
        return await self._execute("hmset", lambda client: client.hset(opt["key"], mapping=mapping))

    async def hmget(self, opt: Options) -> list[str | None]:
        """Return the values of ``fields`` (or of a single ``field``) in order."""
        data = wrap_singular(opt, "field", "fields")
        validate_options("hmget", data, ["key", "fields"])
        return await self._execute("hmget", lambda client: client.hmget(data["key"], data["fields"]))

    async def hexists(self, opt: Options) -> bool:
        validate_options("hexists", opt, ["key", "field"])
        return await self._execute("hexists", lambda client: client.hexists(opt["key"], opt["field"]))

    async def hdel(self, opt: Options) -> int:
        """Remove ``fields`` (or a single ``field``) from the hash."""
        data = wrap_singular(opt, "field", "fields")
        validate_options("hdel", data, ["key", "fields"])
        return await self._execute("hdel", lambda client: client.hdel(data["key"], *data["fields"]))

    async def hkeys(self, opt: Options) -> list[str]:
        validate_options("hkeys", opt, ["key"])
        return await self._execute("hkeys", lambda client: client.hkeys(opt["key"]))

    # ---------------------------------------------------------------------------
    # Sorted sets
    # ---------------------------------------------------------------------------

    async def zadd(self, opt: Options) -> int:
        """Add members from ``scomembers`` (``[score, member, score, member, ...]``).

        A single ``scomember`` pair may be given instead.
        """
        data = unpack_pair(opt, "scomember", "scomembers")
        validate_options("zadd", data, ["key", "scomembers"])
        pairs = data["scomembers"]
        if len(pairs) % 2:
            raise ValidationError("zadd", "scomembers", pairs)
        mapping = {member: score for score, member in zip(pairs[::2], pairs[1::2])}
        return await self._execute("zadd", lambda client: client.zadd(data["key"], mapping))

    async def zcount(self, opt: Options) -> int:
        data = with_defaults(opt, COUNT_DEFAULTS)
        validate_options("zcount", data, ["key", "min", "max"])
        return await self._execute("zcount", lambda client: client.zcount(data["key"], data["min"], data["max"]))

    async def zrangebyscore(self, opt: Options, order: SortOrder | str = SortOrder.ASC) -> list[str]:
        """Return members with a score between ``min`` and ``max``.

        Defaults to the whole set (``-inf`` to ``+inf``), ``offset`` 0 and
        ``limit`` 1000. With ``withscores`` (the default) the reply interleaves
        each member with its score as a string: ``[member, score, ...]``.

        Args:
            opt: Options bag.
            order: ``"asc"`` for ascending scores, ``"desc"`` for descending.

        Raises:
            ConfigurationError: If *order* is neither ascending nor descending.
        """
        try:
            direction = SortOrder(order)
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported order {order!r} => zrangebyscore", command="zrangebyscore") from exc

        data = with_defaults(opt, RANGE_BY_SCORE_DEFAULTS)
        validate_options("zrangebyscore", data, ["key", "min", "max", "offset", "limit"])
        withscores = bool(data["withscores"])

        def call(client: redis.Redis) -> Awaitable[list[Any]]:
            if direction == SortOrder.ASC:
                return client.zrangebyscore(
                    data["key"],
                    data["min"],
                    data["max"],
                    start=data["offset"],
                    num=data["limit"],
                    withscores=withscores,
                    score_cast_func=decode_score,
                )
            return client.zrevrangebyscore(
                data["key"],
                data["max"],
                data["min"],
                start=data["offset"],
                num=data["limit"],
                withscores=withscores,
                score_cast_func=decode_score,
            )

        reply = await self._execute("zrangebyscore", call)
        if not withscores:
            return list(reply)
        return [item for pair in reply for item in pair]

    async def zrevrangebyscore(self, opt: Options) -> list[str]:
        """Same as :meth:`zrangebyscore` with descending scores."""
        return await self.zrangebyscore(opt, SortOrder.DESC)

    async def zscore(self, opt: Options) -> float | None:
        validate_options("zscore", opt, ["key", "member"])
        return await self._execute("zscore", lambda client: client.zscore(opt["key"], opt["member"]))

    async def zrem(self, opt: Options) -> int:
        """Remove ``members`` (or a single ``member``) from the sorted set."""
        data = wrap_singular(opt, "member", "members")
        validate_options("zrem", data, ["key", "members"])
        return await self._execute("zrem", lambda client: client.zrem(data["key"], *data["members"]))

    # ---------------------------------------------------------------------------
    # Lists
    # ---------------------------------------------------------------------------

    async def lpush(self, opt: Options) -> int:
        """Push ``members`` onto the head of the list, one at a time, left to right."""
        validate_options("lpush", opt, ["key", "members"])
        return await self._execute("lpush", lambda client: client.lpush(opt["key"], *opt["members"]))

    async def rpush(self, opt: Options) -> int:
        validate_options("rpush", opt, ["key", "members"])
        return await self._execute("rpush", lambda client: client.rpush(opt["key"], *opt["members"]))

    async def lrem(self, opt: Options) -> int:
        """Remove ``count`` occurrences of ``member`` (0 removes all, negative counts from the tail)."""
        validate_options("lrem", opt, ["key", "count", "member"])
        return await self._execute("lrem", lambda client: client.lrem(opt["key"], opt["count"], opt["member"]))

    async def lindex(self, opt: Options) -> str | None:
        validate_options("lindex", opt, ["key", "index"])
        return await self._execute("lindex", lambda client: client.lindex(opt["key"], opt["index"]))

    async def lpop(self, opt: Options) -> str | None:
        validate_options("lpop", opt, ["key"])
        return await self._execute("lpop", lambda client: client.lpop(opt["key"]))

    async def rpop(self, opt: Options) -> str | None:
        validate_options("rpop", opt, ["key"])
        return await self._execute("rpop", lambda client: client.rpop(opt["key"]))

    async def rpoplpush(self, opt: Options) -> str | None:
        """Move the tail of ``source`` to the head of ``destination``."""
        validate_options("rpoplpush", opt, ["source", "destination"])
        return await self._execute(
            "rpoplpush", lambda client: client.rpoplpush(opt["source"], opt["destination"])
        )

    async def llen(self, opt: Options) -> int:
        validate_options("llen", opt, ["key"])
        return await self._execute("llen", lambda client: client.llen(opt["key"]))

    async def lrange(self, opt: Options) -> list[str]:
        """Return list elements from ``start`` to ``stop`` inclusive (default: the whole list)."""
        data = with_defaults(opt, LIST_RANGE_DEFAULTS)
        validate_options("lrange", data, ["key", "start", "stop"])
        return await self._execute("lrange", lambda client: client.lrange(data["key"], data["start"], data["stop"]))

    # ---------------------------------------------------------------------------
    # Sets
    # ---------------------------------------------------------------------------

    async def sadd(self, opt: Options) -> int:
        validate_options("sadd", opt, ["key", "members"])
        return await self._execute("sadd", lambda client: client.sadd(opt["key"], *opt["members"]))

    async def scard(self, opt: Options) -> int:
        validate_options("scard", opt, ["key"])
        return await self._execute("scard", lambda client: client.scard(opt["key"]))

    async def sismember(self, opt: Options) -> bool:
        validate_options("sismember", opt, ["key", "member"])
        return await self._execute("sismember", lambda client: client.sismember(opt["key"], opt["member"]))

    async def smembers(self, opt: Options) -> list[str]:
        """Return the members of the set as a list (empty when the key does not exist)."""
        validate_options("smembers", opt, ["key"])
        reply = await self._execute("smembers", lambda client: client.smembers(opt["key"]))
        return list(reply)

    async def srem(self, opt: Options) -> int:
        validate_options("srem", opt, ["key", "members"])
        return await self._execute("srem", lambda client: client.srem(opt["key"], *opt["members"]))
