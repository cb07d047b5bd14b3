"""Option validator shared by every facade command."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sweetwork_redis.exceptions import NO_FIELDS, ConfigurationError, ValidationError
from sweetwork_redis.rules import (
    FIELD_RULES,
    MISSING,
    RULE_CHECKS,
    FieldRule,
    interleaved_violation,
    render_value,
)


def validate_options(command: str, options: Mapping[str, Any], fields: list[str] | tuple[str, ...]) -> None:
    """Check that every name in *fields* is present in *options* with the right shape.

    Fields are checked in order and the first failure is raised.

    Args:
        command: Facade command name, used in error messages.
        options: The caller's options bag. It is never modified.
        fields: Option names the command requires.

    Raises:
        ConfigurationError: If *fields* is not a list/tuple or names an option
            outside the supported vocabulary.
        ValidationError: If an option is missing or has the wrong shape.
    """
    if not isinstance(fields, (list, tuple)):
        raise ConfigurationError(NO_FIELDS, command=command)

    for name in fields:
        value = options.get(name, MISSING)
        rule = FIELD_RULES.get(name)
        if rule is None:
            raise ConfigurationError(
                f"Option argument {name}={render_value(value)} not supported => {command}",
                command=command,
                field_name=name,
            )

        if not RULE_CHECKS[rule](value):
            raise ValidationError(command, name, value)

        if rule == FieldRule.INTERLEAVED_PAIRS:
            idx = interleaved_violation(value)
            if idx is not None:
                raise ValidationError(command, name, value[idx])
