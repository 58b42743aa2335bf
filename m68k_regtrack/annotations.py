"""
Display text built from analysis results.

These helpers only format; they never analyse.  The annotation groups a
subroutine's registers by family (data, then address) and within a
family by status (Scratch, Saved, UNSAFE).  Untouched registers are not
listed.
"""

from __future__ import annotations

from typing import List, Tuple

from m68k_regtrack.registers import (
    RegisterFamily,
    RegisterStatus,
    PRESERVED_REGISTERS,
    registers_of,
)
from m68k_regtrack.grammar import format_register_list
from m68k_regtrack.resolver import RegisterAnalysisResult
from m68k_regtrack.unsafe_sites import UnsafeSite

NONE_USED = "M68K Registers: none used"

# (status, plain label, emoji label)
_STATUS_LABELS: Tuple[Tuple[RegisterStatus, str, str], ...] = (
    (RegisterStatus.SCRATCH, "Scratch", "🟡Scratch"),
    (RegisterStatus.SAVED, "Saved", "🟢Saved"),
    (RegisterStatus.UNSAFE, "UNSAFE", "🔴UNSAFE"),
)

_FAMILY_LABELS = {
    RegisterFamily.DATA: ("DATA", "🧮 DATA"),
    RegisterFamily.ADDRESS: ("ADDR", "📍 ADDR"),
}


def format_status_annotation(result: RegisterAnalysisResult, emoji: bool = True) -> List[str]:
    """One line per register family that has anything to report."""
    lines: List[str] = []
    for family in (RegisterFamily.DATA, RegisterFamily.ADDRESS):
        parts: List[str] = []
        for status, plain, fancy in _STATUS_LABELS:
            regs = result.registers_with(status, family)
            if regs:
                label = fancy if emoji else plain
                parts.append(f"{label}:{','.join(r.value for r in regs)}")
        if parts:
            heading = _FAMILY_LABELS[family][1 if emoji else 0]
            lines.append(f"{heading}: {' '.join(parts)}")
    return lines or [NONE_USED]


def save_restore_example(family: RegisterFamily) -> str:
    """The movem save/restore pattern for a family's preserved registers."""
    preserved = frozenset(r for r in registers_of(family) if r in PRESERVED_REGISTERS)
    reg_list = format_register_list(preserved)
    return (
        f"movem.l {reg_list},-(sp)  ; Save at function start\n"
        f"    ...\n"
        f"    movem.l (sp)+,{reg_list}  ; Restore before rts"
    )


def unsafe_site_message(site: UnsafeSite) -> str:
    """Headline for a diagnostic attached to an unsafe site."""
    return f"Register {site.register} modified without stack save"


UNSAFE_SITE_HINT = (
    "Please double-check if this is intentional. If not, preserved "
    "registers (d2-d7, a2-a6) should be saved before modification."
)
