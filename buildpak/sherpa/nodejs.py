"""Node.js application helpers."""

from __future__ import annotations

import json
import os

_DEFAULT_MAIN = "server.js"


def nodejs_main_module(path: str | os.PathLike) -> str:
    """Return the ``main`` entry of ``<path>/package.json``, defaulting to ``server.js``."""
    file = os.path.join(path, "package.json")
    try:
        with open(file, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        return _DEFAULT_MAIN

    if raw is None:
        return _DEFAULT_MAIN
    if not isinstance(raw, dict):
        raise ValueError(f"unable to decode {file}: expected a JSON object")

    main = raw.get("main")
    return main if isinstance(main, str) else _DEFAULT_MAIN