"""TOML encoding of plain values and dataclasses, and TOML comparison."""

from __future__ import annotations

import dataclasses
import enum
import tomllib
from collections.abc import Mapping
from typing import Any

import tomli_w


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        result = {}
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            if item is None:
                continue
            if f.metadata.get("omitempty") and not item:
                continue
            result[f.metadata.get("toml", f.name)] = _plain(item)
        return result
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items() if v is not None}
    if isinstance(value, enum.Enum):
        return _plain(value.value)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def marshal(value: Any) -> str:
    """Encode a mapping or dataclass as a TOML document; ``None`` entries are omitted.

    Dataclass fields may carry ``metadata={"toml": "key"}`` to rename the key and
    ``metadata={"omitempty": True}`` to drop empty values.
    """
    document = _plain(value)
    if not isinstance(document, dict):
        raise TypeError(f"cannot encode {type(value).__name__} as a TOML document")
    return tomli_w.dumps(document)


def _as_text(value: Any, role: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    raise TypeError(f"{role} value must be bytes or str, received {type(value).__name__}")


def match_toml(expected: str | bytes, actual: str | bytes) -> bool:
    """Return True if both TOML documents decode to equal values."""
    expected_text = _as_text(expected, "expected")
    actual_text = _as_text(actual, "actual")
    return tomllib.loads(expected_text) == tomllib.loads(actual_text)