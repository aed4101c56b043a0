"""Process exit handling with the conventional buildpack status codes."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TextIO

ERROR_STATUS_CODE = 1
FAIL_STATUS_CODE = 100
PASS_STATUS_CODE = 0


@dataclass
class ExitHandler:
    """Exits the process (via ``exit_func``) reporting errors to ``writer``."""

    exit_func: Callable[[int], object] = field(default=sys.exit)
    writer: TextIO | None = None

    def error(self, err: BaseException) -> None:
        """Report ``err`` and exit with the error status."""
        out = self.writer if self.writer is not None else sys.stderr
        print(err, file=out)
        self.exit_func(ERROR_STATUS_CODE)

    def fail(self) -> None:
        """Exit with the fail status."""
        self.exit_func(FAIL_STATUS_CODE)

    def pass_(self) -> None:
        """Exit with the pass status."""
        self.exit_func(PASS_STATUS_CODE)