"""Entry points for buildpack helper applications."""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import TextIO

from buildpak.internal.exit_handler import ExitHandler

_SIMPLE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    '"': '\\"',
    "\\": "\\\\",
}


class ExecD(ABC):
    """A helper that computes environment variables for the launch process."""

    @abstractmethod
    def execute(self) -> Mapping[str, str] | None:
        """Return the environment variables to export, or None for none."""


def _quote_char(ch: str) -> str:
    if ch in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[ch]
    code = ord(ch)
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02x}"
    if ch.isprintable():
        return ch
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def _quote(value: str) -> str:
    """Double-quote ``value``, escaping control and non-printable characters."""
    return '"' + "".join(_quote_char(ch) for ch in value) + '"'


def execute(func: Callable[[], object], exit_handler: ExitHandler | None = None) -> None:
    """Run ``func``; if it raises, report the error through ``exit_handler``."""
    handler = exit_handler if exit_handler is not None else ExitHandler()
    try:
        func()
    except Exception as err:  # noqa: BLE001 - every failure is reported to the handler
        handler.error(err)


def _write_environment(writer: TextIO, environment: Mapping[str, str]) -> None:
    try:
        for key, value in environment.items():
            writer.write(f"{key}={_quote(value)}\n")
        writer.flush()
    except OSError as err:
        raise OSError(f"unable to write environment\n{err}") from err


def helpers(
    helpers: Mapping[str, ExecD],
    arguments: Sequence[str] | None = None,
    execd_writer: TextIO | None = None,
) -> None:
    """Dispatch to the helper named by ``arguments[0]`` and write its environment.

    ``arguments`` defaults to ``sys.argv``; ``execd_writer`` defaults to file descriptor 3.
    """
    args = list(sys.argv if arguments is None else arguments)
    if not args:
        raise ValueError("expected command name")

    command = os.path.basename(args[0])
    try:
        helper = helpers[command]
    except KeyError:
        raise LookupError(f"unsupported command {command}") from None

    environment = helper.execute()
    if not environment:
        return

    if execd_writer is not None:
        _write_environment(execd_writer, environment)
        return

    with os.fdopen(3, "w", encoding="utf-8", closefd=False) as writer:
        _write_environment(writer, environment)