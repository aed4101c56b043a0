"""Listings and content hashes of directory trees."""

from __future__ import annotations

import hashlib
import os
import stat
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Iterator

_CHUNK_SIZE = 1 << 16


@dataclass(frozen=True)
class FileEntry:
    """Metadata about a file: its path, mode string and content hash."""

    path: str
    mode: str
    sha256: str = ""


def _mode_string(st_mode: int) -> str:
    """Render a mode in the ``drwxr-xr-x`` style, with ``L`` for symlinks."""
    flags = [
        ("d", stat.S_ISDIR(st_mode)),
        ("L", stat.S_ISLNK(st_mode)),
        ("D", stat.S_ISBLK(st_mode) or stat.S_ISCHR(st_mode)),
        ("p", stat.S_ISFIFO(st_mode)),
        ("S", stat.S_ISSOCK(st_mode)),
        ("u", bool(st_mode & stat.S_ISUID)),
        ("g", bool(st_mode & stat.S_ISGID)),
        ("c", stat.S_ISCHR(st_mode)),
        ("t", bool(st_mode & stat.S_ISVTX)),
    ]
    prefix = "".join(char for char, present in flags if present) or "-"
    perms = "".join(
        char if st_mode & (1 << (8 - i)) else "-" for i, char in enumerate("rwxrwxrwx")
    )
    return prefix + perms


def _walk(directory: str) -> Iterator[tuple[str, os.stat_result]]:
    for name in sorted(os.listdir(directory)):
        path = os.path.join(directory, name)
        info = os.lstat(path)
        if stat.S_ISDIR(info.st_mode):
            if name == ".git":
                continue
            yield path, info
            yield from _walk(path)
        else:
            yield path, info


def _is_symlink_to_dir(path: str, info: os.stat_result) -> bool:
    if not stat.S_ISLNK(info.st_mode):
        return False
    target = os.readlink(path)
    if not os.path.isabs(target):
        target = os.path.join(os.path.dirname(path), target)
    return stat.S_ISDIR(os.stat(target).st_mode)


def _hash_entry(entry: FileEntry) -> FileEntry:
    digest = hashlib.sha256()
    with open(entry.path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return replace(entry, sha256=digest.hexdigest())


def new_file_listing(*roots: str | os.PathLike) -> list[FileEntry]:
    """List every entry under ``roots``, sorted by path, hashing regular content."""
    listing: list[FileEntry] = []
    to_hash: list[FileEntry] = []

    for root in roots:
        try:
            resolved = os.path.realpath(root, strict=True)
        except FileNotFoundError:
            continue

        if not os.path.isdir(resolved):
            continue

        for path, info in _walk(resolved):
            entry = FileEntry(path=path, mode=_mode_string(info.st_mode))
            if stat.S_ISDIR(info.st_mode) or _is_symlink_to_dir(path, info):
                listing.append(entry)
            else:
                to_hash.append(entry)

    if to_hash:
        with ThreadPoolExecutor(max_workers=min(32, len(to_hash))) as pool:
            listing.extend(pool.map(_hash_entry, to_hash))

    listing.sort(key=lambda e: e.path)
    return listing


def new_file_listing_hash(*roots: str | os.PathLike) -> str:
    """Return a SHA-256 hex digest over the listing of ``roots``."""
    digest = hashlib.sha256()
    for entry in new_file_listing(*roots):
        digest.update(f"{entry.path}{entry.mode}{entry.sha256}\n".encode())
    return digest.hexdigest()