"""
m68k_regtrack/classifier.py
═══════════════════════════

Per-line instruction classification.

Given one source line the classifier decides whether it is a bulk
register save, a bulk register restore, or a generic instruction, and
for generic instructions which register(s) the destination operand
writes.

Rules, applied in order
───────────────────────
  1. ``movem.{l|w} <list>,-(SP)``  → SAVES_REGISTER_SET (never a write)
  2. ``movem.{l|w} (SP)+,<list>``  → WRITES_REGISTER_SET over the list
  3. mnemonic outside WRITING_MNEMONICS → READS_ONLY / NO_EFFECT
  4. destination = last top-level operand (sole operand for one-operand
     forms); register tokens outside parentheses are written
  5. a ``-(SP)`` / ``(SP)+`` destination writes nothing

An instruction outside the whitelist never counts as a modification,
even when its last operand is a register.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple

from m68k_regtrack.grammar import (
    MOVEM_SIZES,
    SourceLine,
    find_register_tokens,
    lex_line,
    parse_movem_operands,
)
from m68k_regtrack.registers import Register, sort_registers

WRITING_MNEMONICS: FrozenSet[str] = frozenset({
    "move", "movea", "lea",
    "add", "sub", "mulu", "muls", "divu", "divs",
    "and", "or", "eor", "not", "neg", "clr", "ext", "swap", "exg",
    "asl", "asr", "lsl", "lsr", "rol", "ror",
    "addq", "subq", "adda", "suba", "addi", "subi",
    "andi", "ori", "eori",
    "link", "unlk",
})

_STACK_ADJUST_RE = re.compile(
    r"-\(\s*(?:sp|a7)\s*\)|\(\s*(?:sp|a7)\s*\)\+",
    re.IGNORECASE,
)


class Effect(enum.Enum):
    """What a line does to the tracked registers."""

    NO_EFFECT = "no-effect"
    READS_ONLY = "reads-only"
    WRITES_REGISTER = "writes-register"
    WRITES_REGISTER_SET = "writes-register-set"
    SAVES_REGISTER_SET = "saves-register-set"


@dataclass(frozen=True, slots=True)
class LineInstruction:
    """Classification of one instruction line.  Recomputed on demand."""

    mnemonic: str
    size: Optional[str]
    operands: str
    effect: Effect
    referenced: Tuple[Register, ...] = ()
    written: Tuple[Register, ...] = ()
    saved: FrozenSet[Register] = frozenset()

    @property
    def register(self) -> Optional[Register]:
        """The single written register of a WRITES_REGISTER line."""
        if self.effect is Effect.WRITES_REGISTER:
            return self.written[0]
        return None

    @property
    def is_bulk_save(self) -> bool:
        return self.effect is Effect.SAVES_REGISTER_SET

    def writes(self, reg: Register) -> bool:
        return reg in self.written


# ── operand helpers ──────────────────────────────────────────────────

def split_operands(text: str) -> List[str]:
    """Split an operand field on commas that are not inside parentheses."""
    if not text.strip():
        return []
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")" and depth:
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return parts


def destination_operand(operands: Sequence[str]) -> Optional[str]:
    """Operand after the comma, or the sole operand."""
    if not operands:
        return None
    return operands[-1] or None


def outside_parentheses(operand: str) -> str:
    """*operand* with every parenthesised section blanked out."""
    out: List[str] = []
    depth = 0
    for ch in operand:
        if ch == "(":
            depth += 1
            out.append(" ")
        elif ch == ")" and depth:
            depth -= 1
            out.append(" ")
        else:
            out.append(" " if depth else ch)
    return "".join(out)


def is_stack_adjustment(operand: str) -> bool:
    return _STACK_ADJUST_RE.search(operand) is not None


def written_registers(destination: Optional[str]) -> Tuple[Register, ...]:
    """Registers a destination operand writes (addressing modes excluded)."""
    if not destination or is_stack_adjustment(destination):
        return ()
    return find_register_tokens(outside_parentheses(destination))


# ── classification ───────────────────────────────────────────────────

def classify(line: SourceLine) -> Optional[LineInstruction]:
    """Classify a lexed line; non-instruction lines yield ``None``."""
    if not line.is_instruction:
        return None

    mnemonic = line.mnemonic or ""
    referenced = find_register_tokens(line.operands)

    if mnemonic == "movem" and line.size in MOVEM_SIZES:
        movem = parse_movem_operands(line.operands)
        if movem is not None and movem.direction == "save":
            return LineInstruction(
                mnemonic, line.size, line.operands,
                Effect.SAVES_REGISTER_SET,
                referenced=referenced,
                saved=movem.registers,
            )
        if movem is not None:
            return LineInstruction(
                mnemonic, line.size, line.operands,
                Effect.WRITES_REGISTER_SET,
                referenced=referenced,
                written=sort_registers(movem.registers),
            )

    if mnemonic in WRITING_MNEMONICS:
        dest = destination_operand(split_operands(line.operands))
        written = written_registers(dest)
        if len(written) == 1:
            effect = Effect.WRITES_REGISTER
        elif written:
            effect = Effect.WRITES_REGISTER_SET
        else:
            effect = Effect.READS_ONLY if referenced else Effect.NO_EFFECT
        return LineInstruction(
            mnemonic, line.size, line.operands, effect,
            referenced=referenced,
            written=written,
        )

    return LineInstruction(
        mnemonic, line.size, line.operands,
        Effect.READS_ONLY if referenced else Effect.NO_EFFECT,
        referenced=referenced,
    )


def classify_line(text: str) -> Optional[LineInstruction]:
    """Lex and classify one raw source line."""
    return classify(lex_line(text))


def is_return(text: str) -> bool:
    return lex_line(text).is_return


def is_bulk_save(text: str) -> bool:
    insn = classify_line(text)
    return insn is not None and insn.effect is Effect.SAVES_REGISTER_SET


def is_bulk_restore(text: str) -> bool:
    insn = classify_line(text)
    return (
        insn is not None
        and insn.mnemonic == "movem"
        and insn.effect is Effect.WRITES_REGISTER_SET
    )
