"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import InvalidChoiceError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        raise MissingConfigurationError(missing)

    return values


def require_env_var(name: str) -> str:
    """Return a required environment variable by name."""

    return require_env_vars([name])[name]


def env_choice[TEnum: StrEnum](name: str, choices: type[TEnum], default: TEnum) -> TEnum:
    """Read an optional enum-valued variable, falling back to ``default`` when unset."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    normalized = raw.strip().lower().replace("-", "_")
    try:
        return choices(normalized)
    except ValueError:
        raise InvalidChoiceError(name, raw, (member.value for member in choices)) from None


_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def env_flag(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise InvalidChoiceError(name, raw, sorted(_TRUE | _FALSE))
