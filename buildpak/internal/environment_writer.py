"""Write environment variable maps as one file per key."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TextIO

_DIM = "\x1b[2m"
_RESET = "\x1b[0m"


@dataclass
class EnvironmentWriter:
    """Writes each environment entry to its own file; logs to ``output`` when given."""

    output: TextIO | None = None

    def _body(self, message: str) -> None:
        if self.output is not None:
            self.output.write(f"{_DIM}    {message}{_RESET}\n")

    def write(self, path: str | os.PathLike, environment: Mapping[str, str]) -> None:
        """Create ``path`` and write a file per key holding its value."""
        if not environment:
            return

        os.makedirs(path, mode=0o755, exist_ok=True)

        base = os.path.basename(os.fspath(path))
        for key in sorted(environment):
            self._body(f"Writing {base}/{key}")
            file = os.path.join(path, key)
            os.makedirs(os.path.dirname(file), mode=0o755, exist_ok=True)

            fd = os.open(file, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                out.write(environment[key])