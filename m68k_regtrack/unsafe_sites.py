"""Pinpoint the lines that modify a preserved register without a save."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from m68k_regtrack.classifier import Effect, classify_line
from m68k_regtrack.registers import Register, RegisterFamily
from m68k_regtrack.tracker import RegisterUsage


@dataclass(frozen=True, slots=True)
class UnsafeSite:
    line_index: int
    register: Register
    family: RegisterFamily


def locate_unsafe_sites(
    lines: Sequence[str],
    usage: RegisterUsage,
    offset: int = 0,
) -> List[UnsafeSite]:
    """
    Walk *lines* and report, per line, the first register written there
    that is modified, preserved and absent from the saved set.

    *usage* is the tracker output for the same lines.  Reported indices
    are ``offset + position in lines``.
    """
    sites: List[UnsafeSite] = []
    for index, text in enumerate(lines):
        insn = classify_line(text)
        if insn is None or insn.effect is Effect.SAVES_REGISTER_SET:
            continue
        for reg in insn.written:
            if usage.is_unsafe(reg):
                sites.append(UnsafeSite(offset + index, reg, reg.family))
                break
    return sites
