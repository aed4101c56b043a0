"""Helpers for reading configuration from environment variables."""

from __future__ import annotations

import os

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class MissingEnvironmentVariableError(LookupError):
    """Raised when a required environment variable is not set."""


def append_to_env_var(name: str, delimiter: str, *values: str) -> str:
    """Join the current value of ``name`` (if set) and ``values`` with ``delimiter``."""
    parts: list[str] = []
    current = os.environ.get(name)
    if current is not None:
        parts.append(current)
    parts.extend(values)
    return delimiter.join(parts)


def get_env_required(name: str) -> str:
    """Return the value of ``name``, raising if it is not set."""
    try:
        return os.environ[name]
    except KeyError:
        raise MissingEnvironmentVariableError(f"${name} must be set") from None


def get_env_with_default(name: str, default: str) -> str:
    """Return the value of ``name``, or ``default`` if it is not set."""
    return os.environ.get(name, default)


def resolve_bool(name: str) -> bool:
    """Return the boolean value of ``name``; unset or invalid values give False."""
    try:
        return resolve_bool_err(name)
    except ValueError:
        return False


def resolve_bool_err(name: str) -> bool:
    """Return the boolean value of ``name``; unset gives False, invalid values raise ValueError."""
    raw = os.environ.get(name)
    if raw is None:
        return False

    value = raw.strip()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False

    raise ValueError(
        f"invalid value '{raw}' for key '{name}': "
        "expected one of [1, t, T, TRUE, true, True, 0, f, F, FALSE, false, False]"
    )