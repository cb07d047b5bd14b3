"""Sweetwork Redis — option-bag validation and async facade over redis-py."""

from sweetwork_redis.client import SortOrder, SweetworkRedisClient
from sweetwork_redis.config import RedisSettings, redact_url
from sweetwork_redis.connections import ConnectionManager, shared_connection
from sweetwork_redis.exceptions import (
    ConfigurationError,
    ConnectionFailedError,
    StoreError,
    SweetworkRedisError,
    ValidationError,
)
from sweetwork_redis.rules import FIELD_RULES, FieldRule, parse_int
from sweetwork_redis.validation import validate_options

__all__ = [
    "FIELD_RULES",
    "ConfigurationError",
    "ConnectionFailedError",
    "ConnectionManager",
    "FieldRule",
    "RedisSettings",
    "SortOrder",
    "StoreError",
    "SweetworkRedisClient",
    "SweetworkRedisError",
    "ValidationError",
    "parse_int",
    "redact_url",
    "shared_connection",
    "validate_options",
]
