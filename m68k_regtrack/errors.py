# m68k_regtrack/errors.py
"""
Exceptions raised at the edges of the analyzer.

The analysis itself never fails: unrecognised lines are no-ops and a
label without a return is simply not a subroutine.  Errors only arise
when getting source text in, which is what this hierarchy covers.

    RegtrackError (base)
    └── SourceReadError   - file missing, unreadable or not text
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class RegtrackError(Exception):
    """Base class for every error raised by m68k_regtrack."""


class SourceReadError(RegtrackError):
    """An assembly source file could not be read."""

    def __init__(self, path: Union[str, Path], reason: str, cause: Optional[BaseException] = None) -> None:
        self.path = Path(path)
        self.reason = reason
        self.cause = cause
        super().__init__(f"{self.path}: {reason}")
