"""Copy single entries (files or symlinks) into place."""

from __future__ import annotations

import os
import shutil
import stat
from dataclasses import dataclass

MODE_EXECUTABLE = 0o100


@dataclass(frozen=True)
class EntryWriter:
    """Writes a file or symlink from a source path to a destination path."""

    def write(self, source: str | os.PathLike, destination: str | os.PathLike) -> None:
        """Copy ``source`` to ``destination``, replicating symlinks and the executable bit."""
        parent = os.path.dirname(os.fspath(destination))
        if parent:
            os.makedirs(parent, mode=0o755, exist_ok=True)

        info = os.lstat(source)

        if stat.S_ISLNK(info.st_mode):
            os.symlink(os.readlink(source), destination)
            return

        perm = 0o755 if info.st_mode & MODE_EXECUTABLE else 0o644

        with open(source, "rb") as src:
            fd = os.open(destination, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, perm)
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(src, out)