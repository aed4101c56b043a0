"""Write TOML files, logging a summary of launch and store contents."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, TextIO

from buildpak.internal.toml_support import marshal

_CYAN = "\x1b[36m"
_RESET = "\x1b[0m"


@dataclass
class Process:
    """A process type contributed to the launch image."""

    type: str = ""
    command: str = ""
    arguments: list[str] = field(default_factory=list, metadata={"toml": "args"})
    direct: bool = False


@dataclass
class Label:
    """An image label."""

    key: str = ""
    value: str = ""


@dataclass
class Slice:
    """An application slice: a set of path globs."""

    paths: list[str] = field(default_factory=list)


@dataclass
class LaunchTOML:
    """Contents of a launch.toml file."""

    labels: list[Label] = field(default_factory=list)
    processes: list[Process] = field(default_factory=list)
    slices: list[Slice] = field(default_factory=list)


@dataclass
class Store:
    """Contents of a store.toml file."""

    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class TOMLWriter:
    """Writes values as TOML files; logs a summary to ``output`` when given."""

    output: TextIO | None = None

    def _header(self, message: str) -> None:
        if self.output is not None:
            self.output.write(f"  {message}\n")

    def _log_launch(self, launch: LaunchTOML) -> None:
        if launch.slices:
            self._header(f"{len(launch.slices)} application slices")

        if launch.labels:
            self._header("Image labels:")
            for label in launch.labels:
                self._header(f"  {label.key}")

        if launch.processes:
            self._header("Process types:")
            width = max(len(p.type) for p in launch.processes)
            for process in launch.processes:
                line = f"  {_CYAN}{process.type}{_RESET}: "
                line += " " * (width - len(process.type))
                line += process.command
                line += "".join(f" {a}" for a in process.arguments)
                if process.direct:
                    line += " (direct)"
                self._header(line)

    def write(self, path: str | os.PathLike, value: Any) -> None:
        """Create parent directories and write ``value`` to ``path`` as TOML."""
        if value is None:
            return

        if isinstance(value, LaunchTOML):
            value = replace(
                value,
                labels=sorted(value.labels, key=lambda l: l.key),
                processes=sorted(value.processes, key=lambda p: p.type),
            )
            self._log_launch(value)
        elif isinstance(value, Store) and value.metadata:
            self._header("Persistent metadata:")
            for name in sorted(value.metadata):
                self._header(f"  {name}")

        content = marshal(value)

        parent = os.path.dirname(os.fspath(path))
        if parent:
            os.makedirs(parent, mode=0o755, exist_ok=True)

        fd = os.open(path, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "w", encoding="utf-8") as out:
            out.write(content)