"""
m68k_regtrack/tracker.py
════════════════════════

Accumulates register usage over the lines of one subroutine.

Three sets are gathered:

  touched   every register referenced, read or written
  modified  every register written by a destination operand or restore
  saved     every register named by a bulk save

Saves are order independent: a register saved anywhere in the span
counts as saved for the whole span, even after it was modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Set

from m68k_regtrack.classifier import Effect, classify_line
from m68k_regtrack.registers import Register

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisterUsage:
    """Frozen snapshot of one tracker run."""

    touched: FrozenSet[Register] = frozenset()
    modified: FrozenSet[Register] = frozenset()
    saved: FrozenSet[Register] = frozenset()

    def is_unsafe(self, reg: Register) -> bool:
        """Preserved, modified and never saved."""
        return reg.is_preserved and reg in self.modified and reg not in self.saved


@dataclass
class AnalyzerRunState:
    """Mutable accumulator owned by exactly one tracker run."""

    touched: Set[Register] = field(default_factory=set)
    modified: Set[Register] = field(default_factory=set)
    saved: Set[Register] = field(default_factory=set)

    def reset(self) -> None:
        self.touched.clear()
        self.modified.clear()
        self.saved.clear()

    def freeze(self) -> RegisterUsage:
        return RegisterUsage(
            touched=frozenset(self.touched),
            modified=frozenset(self.modified),
            saved=frozenset(self.saved),
        )


class RegisterStateTracker:
    """Walks a subroutine body and records register usage.

    A tracker may be reused; each :meth:`run` starts from cleared sets
    and returns an immutable :class:`RegisterUsage`.
    """

    def __init__(self) -> None:
        self._state = AnalyzerRunState()

    def run(self, lines: Iterable[str]) -> RegisterUsage:
        self._state.reset()
        for text in lines:
            self.feed(text)
        usage = self._state.freeze()
        _log.debug(
            "tracked touched=%d modified=%d saved=%d",
            len(usage.touched), len(usage.modified), len(usage.saved),
        )
        return usage

    def feed(self, text: str) -> None:
        """Account for one line."""
        insn = classify_line(text)
        if insn is None:
            return
        if insn.effect is Effect.SAVES_REGISTER_SET:
            self._state.saved.update(insn.saved)
            return
        self._state.touched.update(insn.referenced)
        self._state.touched.update(insn.written)
        self._state.modified.update(insn.written)


def track_registers(lines: Iterable[str]) -> RegisterUsage:
    """Run a fresh tracker over *lines*."""
    return RegisterStateTracker().run(lines)
