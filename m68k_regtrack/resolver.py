"""
m68k_regtrack/resolver.py
═════════════════════════

Turns the tracker's three register sets into one status per register.

Priority, first match wins:

  1. not touched                       → UNTOUCHED
  2. touched, scratch by convention    → SCRATCH
  3. touched, preserved, saved         → SAVED
  4. touched, preserved, modified      → UNSAFE
  5. touched, preserved, only read     → UNTOUCHED
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Optional, Tuple

from m68k_regtrack.registers import (
    ALL_REGISTERS,
    Register,
    RegisterFamily,
    RegisterStatus,
)
from m68k_regtrack.tracker import RegisterUsage, track_registers


def resolve_register(reg: Register, usage: RegisterUsage) -> RegisterStatus:
    if reg not in usage.touched:
        return RegisterStatus.UNTOUCHED
    if reg.is_scratch:
        return RegisterStatus.SCRATCH
    if reg in usage.saved:
        return RegisterStatus.SAVED
    if reg in usage.modified:
        return RegisterStatus.UNSAFE
    return RegisterStatus.UNTOUCHED


class RegisterAnalysisResult(Mapping):
    """
    Immutable, total mapping ``Register → RegisterStatus``.

    Always holds exactly the 15 tracked registers.  ``usage`` keeps the
    sets the statuses were derived from, which the unsafe-site locator
    needs.
    """

    __slots__ = ("_statuses", "usage")

    def __init__(self, statuses: Dict[Register, RegisterStatus], usage: RegisterUsage) -> None:
        missing = [r for r in ALL_REGISTERS if r not in statuses]
        if missing or len(statuses) != len(ALL_REGISTERS):
            raise ValueError(f"status map must cover all registers; missing {missing}")
        self._statuses = MappingProxyType({r: statuses[r] for r in ALL_REGISTERS})
        self.usage = usage

    def __getitem__(self, reg: Register) -> RegisterStatus:
        return self._statuses[reg]

    def __iter__(self) -> Iterator[Register]:
        return iter(self._statuses)

    def __len__(self) -> int:
        return len(self._statuses)

    def __repr__(self) -> str:
        body = ", ".join(f"{r}={s.value}" for r, s in self._statuses.items())
        return f"RegisterAnalysisResult({body})"

    def registers_with(
        self,
        status: RegisterStatus,
        family: Optional[RegisterFamily] = None,
    ) -> Tuple[Register, ...]:
        """Registers in *status*, optionally restricted to one family."""
        return tuple(
            r for r, s in self._statuses.items()
            if s is status and (family is None or r.family is family)
        )

    @property
    def unsafe(self) -> Tuple[Register, ...]:
        return self.registers_with(RegisterStatus.UNSAFE)

    @property
    def is_clean(self) -> bool:
        return not self.unsafe

    def to_dict(self) -> Dict[str, str]:
        return {r.value: s.value for r, s in self._statuses.items()}


def resolve_status(usage: RegisterUsage) -> RegisterAnalysisResult:
    """Compute the status of every tracked register."""
    return RegisterAnalysisResult(
        {reg: resolve_register(reg, usage) for reg in ALL_REGISTERS},
        usage,
    )


def analyze_subroutine(lines: Iterable[str]) -> RegisterAnalysisResult:
    """Status map for the body lines of one subroutine."""
    return resolve_status(track_registers(lines))
