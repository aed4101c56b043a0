"""File-system predicates and copy helpers."""

from __future__ import annotations

import os
import shutil
import stat
from typing import BinaryIO


def _stat_mode(path: str | os.PathLike, follow_symlinks: bool = True) -> int | None:
    try:
        return os.stat(path, follow_symlinks=follow_symlinks).st_mode
    except FileNotFoundError:
        return None


def exists(path: str | os.PathLike) -> bool:
    """Return True if ``path`` exists."""
    return _stat_mode(path) is not None


def file_exists(path: str | os.PathLike) -> bool:
    """Return True if ``path`` exists and is a regular file."""
    mode = _stat_mode(path)
    return mode is not None and stat.S_ISREG(mode)


def dir_exists(path: str | os.PathLike) -> bool:
    """Return True if ``path`` exists and is a directory."""
    mode = _stat_mode(path)
    return mode is not None and stat.S_ISDIR(mode)


def symlink_exists(path: str | os.PathLike) -> bool:
    """Return True if ``path`` exists and is a symbolic link."""
    mode = _stat_mode(path, follow_symlinks=False)
    return mode is not None and stat.S_ISLNK(mode)


def copy_file(source: BinaryIO, destination: str | os.PathLike) -> None:
    """Copy an open binary file to ``destination``, creating parents and keeping its mode."""
    mode = stat.S_IMODE(os.fstat(source.fileno()).st_mode)

    parent = os.path.dirname(os.fspath(destination))
    if parent:
        os.makedirs(parent, mode=0o755, exist_ok=True)

    fd = os.open(destination, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, mode)
    with os.fdopen(fd, "wb") as out:
        shutil.copyfileobj(source, out)


def copy_dir(source: str | os.PathLike, destination: str | os.PathLike) -> None:
    """Recursively copy ``source`` to ``destination``, keeping permissions."""
    with os.scandir(source) as it:
        entries = sorted(it, key=lambda e: e.name)

    mode = stat.S_IMODE(os.stat(source).st_mode)
    os.makedirs(destination, mode=mode, exist_ok=True)

    for entry in entries:
        source_entry = os.path.join(source, entry.name)
        destination_entry = os.path.join(destination, entry.name)
        if entry.is_dir(follow_symlinks=False):
            entry_mode = stat.S_IMODE(entry.stat(follow_symlinks=False).st_mode)
            os.mkdir(destination_entry, entry_mode)
            copy_dir(source_entry, destination_entry)
        else:
            with open(source_entry, "rb") as f:
                copy_file(f, destination_entry)