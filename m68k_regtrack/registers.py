"""
m68k_regtrack/registers.py
══════════════════════════

The fixed register universe tracked by the analyzer.

Fifteen registers are modeled: the data family D0–D7 and the address
family A0–A6.  A7 (the stack pointer) and the program counter are never
tracked.  Each register carries two immutable attributes:

  • family: DATA or ADDRESS
  • convention: SCRATCH (caller-saved: D0, D1, A0, A1) or PRESERVED

The status categories produced by the resolver live here as well so
that every module agrees on one vocabulary.
"""

from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple


class RegisterFamily(enum.Enum):
    """Register file a register belongs to."""

    DATA = "D"
    ADDRESS = "A"

    @property
    def label(self) -> str:
        return "data" if self is RegisterFamily.DATA else "address"


class ConventionClass(enum.Enum):
    """Calling-convention class of a register."""

    SCRATCH = "scratch"
    PRESERVED = "preserved"


class RegisterStatus(enum.Enum):
    """
    Per-register verdict for one subroutine.

    UNTOUCHED: never referenced, or only read
    SCRATCH: caller-saved register referenced in the body
    SAVED: preserved register backed up by a bulk save
    UNSAFE: preserved register modified without a bulk save
    """

    UNTOUCHED = "untouched"
    SCRATCH = "scratch"
    SAVED = "saved"
    UNSAFE = "unsafe"


_SCRATCH_NAMES: FrozenSet[str] = frozenset({"D0", "D1", "A0", "A1"})


class Register(enum.Enum):
    """One of the 15 tracked registers, in canonical order."""

    D0 = "D0"
    D1 = "D1"
    D2 = "D2"
    D3 = "D3"
    D4 = "D4"
    D5 = "D5"
    D6 = "D6"
    D7 = "D7"
    A0 = "A0"
    A1 = "A1"
    A2 = "A2"
    A3 = "A3"
    A4 = "A4"
    A5 = "A5"
    A6 = "A6"

    @property
    def family(self) -> RegisterFamily:
        return RegisterFamily(self.value[0])

    @property
    def ordinal(self) -> int:
        return int(self.value[1])

    @property
    def convention(self) -> ConventionClass:
        if self.value in _SCRATCH_NAMES:
            return ConventionClass.SCRATCH
        return ConventionClass.PRESERVED

    @property
    def is_scratch(self) -> bool:
        return self.convention is ConventionClass.SCRATCH

    @property
    def is_preserved(self) -> bool:
        return self.convention is ConventionClass.PRESERVED

    @classmethod
    def from_token(cls, token: str) -> Optional[Register]:
        """
        Map a textual register token (``d2``, ``A4`` …) to a member.

        Returns ``None`` for tokens outside the tracked universe, which
        includes ``A7`` and anything that is not a register name.
        """
        return _BY_NAME.get(token.strip().upper())

    def __str__(self) -> str:
        return self.value


_BY_NAME: Dict[str, Register] = {r.value: r for r in Register}

#: All tracked registers in canonical order (D0..D7, A0..A6).
ALL_REGISTERS: Tuple[Register, ...] = tuple(Register)

SCRATCH_REGISTERS: FrozenSet[Register] = frozenset(
    r for r in Register if r.is_scratch
)
PRESERVED_REGISTERS: FrozenSet[Register] = frozenset(
    r for r in Register if r.is_preserved
)


def registers_of(family: RegisterFamily) -> Tuple[Register, ...]:
    """Registers of *family*, ordered by ordinal."""
    return tuple(r for r in Register if r.family is family)


def sort_registers(regs: Iterable[Register]) -> Tuple[Register, ...]:
    """Return *regs* in canonical order with duplicates removed."""
    present = set(regs)
    return tuple(r for r in Register if r in present)


__all__ = [
    "ALL_REGISTERS",
    "ConventionClass",
    "PRESERVED_REGISTERS",
    "Register",
    "RegisterFamily",
    "RegisterStatus",
    "SCRATCH_REGISTERS",
    "registers_of",
    "sort_registers",
]
