"""Shared fixtures: an in-memory stand-in for ``redis.asyncio.Redis``."""

from __future__ import annotations

from typing import Any

import pytest
from redis.exceptions import DataError, ResponseError
from sweetwork_redis import connections
from sweetwork_redis.client import SweetworkRedisClient
from sweetwork_redis.config import RedisSettings
from sweetwork_redis.connections import ConnectionManager

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


def _encode(value: Any) -> str:
    """Mimic redis-py's encoder with ``decode_responses=True``."""
    if isinstance(value, bool):
        raise DataError("Invalid input of type: 'bool'. Convert to a bytes, string, int or float first.")
    if isinstance(value, (int, float, str)):
        return value if isinstance(value, str) else repr(value)
    raise DataError(f"Invalid input of type: '{type(value).__name__}'. Convert to a bytes, string, int or float first.")


def _format_score(score: float) -> str:
    return str(int(score)) if score.is_integer() else repr(score)


def _score_bound(bound: Any) -> tuple[float, bool]:
    """Parse a ZRANGEBYSCORE bound into (value, exclusive)."""
    text = _encode(bound)
    exclusive = text.startswith("(")
    if exclusive:
        text = text[1:]
    try:
        return float(text), exclusive
    except ValueError as exc:
        raise ResponseError("min or max is not a float") from exc


def _in_range(score: float, low: tuple[float, bool], high: tuple[float, bool]) -> bool:
    low_value, low_excl = low
    high_value, high_excl = high
    above = score > low_value if low_excl else score >= low_value
    below = score < high_value if high_excl else score <= high_value
    return above and below


class FakeRedis:
    """Minimal in-memory Redis that answers the way redis-py does over RESP2.

    ``now`` is a manual clock in seconds used for key expiry.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.closed = False
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}

    # -- bookkeeping -------------------------------------------------------

    def _lookup(self, name: str, kind: type) -> Any:
        deadline = self._expires.get(name)
        if deadline is not None and self.now >= deadline:
            self._data.pop(name, None)
            self._expires.pop(name, None)
        value = self._data.get(name)
        if value is not None and kind is not object and type(value) is not kind:
            raise ResponseError(WRONGTYPE)
        return value

    def _create(self, name: str, kind: type) -> Any:
        value = self._lookup(name, kind)
        if value is None:
            value = kind()
            self._data[name] = value
        return value

    def _drop_if_empty(self, name: str) -> None:
        if name in self._data and not self._data[name]:
            del self._data[name]
            self._expires.pop(name, None)

    # -- connection --------------------------------------------------------

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True

    # -- strings -----------------------------------------------------------

    async def set(self, name: str, value: Any, ex: int | None = None) -> bool:
        if ex is not None and not isinstance(ex, int):
            raise DataError("ex must be datetime.timedelta or int")
        if ex is not None and ex <= 0:
            raise ResponseError("invalid expire time in 'set' command")
        self._data[name] = _encode(value)
        self._expires.pop(name, None)
        if ex is not None:
            self._expires[name] = self.now + ex
        return True

    async def get(self, name: str) -> str | None:
        return self._lookup(name, str)

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            self._lookup(name, object)
            if self._data.pop(name, None) is not None:
                removed += 1
            self._expires.pop(name, None)
        return removed

    # -- hashes ------------------------------------------------------------

    async def hset(
        self, name: str, key: str | None = None, value: Any = None, mapping: dict[str, Any] | None = None
    ) -> int:
        items: dict[str, Any] = {}
        if key is not None:
            items[key] = value
        if mapping:
            items.update(mapping)
        if not items:
            raise DataError("'hset' with no key value pairs")
        encoded = {field: _encode(val) for field, val in items.items()}
        hash_ = self._create(name, dict)
        added = sum(1 for field in encoded if field not in hash_)
        hash_.update(encoded)
        return added

    async def hget(self, name: str, key: str) -> str | None:
        hash_ = self._lookup(name, dict) or {}
        return hash_.get(key)

    async def hlen(self, name: str) -> int:
        return len(self._lookup(name, dict) or {})

    async def hgetall(self, name: str) -> dict[str, str]:
        return dict(self._lookup(name, dict) or {})

    async def hmget(self, name: str, keys: list[str]) -> list[str | None]:
        if not keys:
            raise ResponseError("wrong number of arguments for 'hmget' command")
        hash_ = self._lookup(name, dict) or {}
        return [hash_.get(key) for key in keys]

    async def hexists(self, name: str, key: str) -> bool:
        return key in (self._lookup(name, dict) or {})

    async def hdel(self, name: str, *keys: str) -> int:
        if not keys:
            raise ResponseError("wrong number of arguments for 'hdel' command")
        hash_ = self._lookup(name, dict) or {}
        removed = sum(1 for key in keys if hash_.pop(key, None) is not None)
        self._drop_if_empty(name)
        return removed

    async def hkeys(self, name: str) -> list[str]:
        return list(self._lookup(name, dict) or {})

    # -- sorted sets -------------------------------------------------------

    async def zadd(self, name: str, mapping: dict[str, Any]) -> int:
        if not mapping:
            raise DataError("ZADD requires at least one element/score pair")
        scores: dict[str, float] = {}
        for member, score in mapping.items():
            try:
                scores[_encode(member)] = float(_encode(score))
            except ValueError as exc:
                raise ResponseError("value is not a valid float") from exc
        zset = self._create(name, _ZSet)
        added = sum(1 for member in scores if member not in zset)
        zset.update(scores)
        return added

    def _zrange(self, name: str, low: Any, high: Any) -> list[tuple[str, float]]:
        zset = self._lookup(name, _ZSet) or _ZSet()
        low_bound, high_bound = _score_bound(low), _score_bound(high)
        hits = [(member, score) for member, score in zset.items() if _in_range(score, low_bound, high_bound)]
        return sorted(hits, key=lambda pair: (pair[1], pair[0]))

    async def zcount(self, name: str, min: Any, max: Any) -> int:
        return len(self._zrange(name, min, max))

    def _window(
        self,
        hits: list[tuple[str, float]],
        start: Any,
        num: Any,
        withscores: bool,
        score_cast_func: Any,
    ) -> list[Any]:
        if start is not None:
            offset, count = int(start), int(num)
            hits = hits[offset:] if count < 0 else hits[offset : offset + count]
        if withscores:
            # redis-py casts the raw reply bytes, even with decode_responses=True
            return [(member, score_cast_func(_format_score(score).encode())) for member, score in hits]
        return [member for member, _ in hits]

    async def zrangebyscore(
        self,
        name: str,
        min: Any,
        max: Any,
        start: Any = None,
        num: Any = None,
        withscores: bool = False,
        score_cast_func: Any = float,
    ) -> list[Any]:
        return self._window(self._zrange(name, min, max), start, num, withscores, score_cast_func)

    async def zrevrangebyscore(
        self,
        name: str,
        max: Any,
        min: Any,
        start: Any = None,
        num: Any = None,
        withscores: bool = False,
        score_cast_func: Any = float,
    ) -> list[Any]:
        hits = list(reversed(self._zrange(name, min, max)))
        return self._window(hits, start, num, withscores, score_cast_func)

    async def zscore(self, name: str, value: str) -> float | None:
        return (self._lookup(name, _ZSet) or {}).get(value)

    async def zrem(self, name: str, *values: str) -> int:
        zset = self._lookup(name, _ZSet) or {}
        removed = sum(1 for value in values if zset.pop(value, None) is not None)
        self._drop_if_empty(name)
        return removed

    # -- lists -------------------------------------------------------------

    async def lpush(self, name: str, *values: Any) -> int:
        if not values:
            raise ResponseError("wrong number of arguments for 'lpush' command")
        items = self._create(name, list)
        for value in values:
            items.insert(0, _encode(value))
        return len(items)

    async def rpush(self, name: str, *values: Any) -> int:
        if not values:
            raise ResponseError("wrong number of arguments for 'rpush' command")
        items = self._create(name, list)
        items.extend(_encode(value) for value in values)
        return len(items)

    async def lrem(self, name: str, count: Any, value: Any) -> int:
        items = self._lookup(name, list) or []
        count, target = int(count), _encode(value)
        positions = [idx for idx, item in enumerate(items) if item == target]
        if count < 0:
            positions = list(reversed(positions))[: -count]
        elif count > 0:
            positions = positions[:count]
        for idx in sorted(positions, reverse=True):
            del items[idx]
        self._drop_if_empty(name)
        return len(positions)

    async def lindex(self, name: str, index: Any) -> str | None:
        items = self._lookup(name, list) or []
        idx = int(index)
        if -len(items) <= idx < len(items):
            return items[idx]
        return None

    async def lpop(self, name: str) -> str | None:
        items = self._lookup(name, list)
        if not items:
            return None
        value = items.pop(0)
        self._drop_if_empty(name)
        return value

    async def rpop(self, name: str) -> str | None:
        items = self._lookup(name, list)
        if not items:
            return None
        value = items.pop()
        self._drop_if_empty(name)
        return value

    async def rpoplpush(self, src: str, dst: str) -> str | None:
        value = await self.rpop(src)
        if value is not None:
            await self.lpush(dst, value)
        return value

    async def llen(self, name: str) -> int:
        return len(self._lookup(name, list) or [])

    async def lrange(self, name: str, start: Any, end: Any) -> list[str]:
        items = self._lookup(name, list) or []
        first, last = int(start), int(end)
        if first < 0:
            first = max(len(items) + first, 0)
        if last < 0:
            last = len(items) + last
        return items[first : last + 1]

    # -- sets --------------------------------------------------------------

    async def sadd(self, name: str, *values: Any) -> int:
        if not values:
            raise ResponseError("wrong number of arguments for 'sadd' command")
        members = self._create(name, set)
        encoded = {_encode(value) for value in values}
        added = len(encoded - members)
        members.update(encoded)
        return added

    async def scard(self, name: str) -> int:
        return len(self._lookup(name, set) or ())

    async def sismember(self, name: str, value: Any) -> bool:
        return _encode(value) in (self._lookup(name, set) or set())

    async def smembers(self, name: str) -> set[str]:
        return set(self._lookup(name, set) or ())

    async def srem(self, name: str, *values: Any) -> int:
        if not values:
            raise ResponseError("wrong number of arguments for 'srem' command")
        members = self._lookup(name, set) or set()
        encoded = {_encode(value) for value in values}
        removed = len(encoded & members)
        members.difference_update(encoded)
        self._drop_if_empty(name)
        return removed


class _ZSet(dict):
    """Sorted-set storage: member -> score."""


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def connection(fake_redis: FakeRedis) -> ConnectionManager:
    return ConnectionManager(RedisSettings(port=6390), client=fake_redis)


@pytest.fixture
def client(connection: ConnectionManager) -> SweetworkRedisClient:
    return SweetworkRedisClient(connection=connection)


@pytest.fixture(autouse=True)
def _reset_shared_connection():
    """Each test starts without a shared connection or liveness markers."""
    connections._shared = None
    connections.connected_ports.clear()
    yield
    connections._shared = None
    connections.connected_ports.clear()
