"""
m68k_regtrack/grammar.py – line-oriented lexer for 68000 assembly source.

Assembly source has no formal grammar worth the name, so the analyzer
works one line at a time.  Every line is classified by a small
parsimonious PEG into one of five kinds:

    BLANK        empty after trimming
    COMMENT      first non-blank character is ``;``
    LABEL        ``identifier:`` and nothing else
    INSTRUCTION  ``[label: ] mnemonic[.size] [operands] [; comment]``
    UNKNOWN      anything the grammar rejects (treated as a no-op)

A second grammar covers the operand field of ``movem`` and the
``/``-separated register lists it carries.

Public API
----------
``lex_line(text) -> SourceLine``
    Classify one source line.  Pure and memoised.

``parse_movem_operands(text) -> Optional[MovemOperands]``
    Recognise ``<list>,-(SP)`` and ``(SP)+,<list>`` operand fields.

``parse_register_list(text) -> FrozenSet[Register]``
    Expand ``d2-d7/a2-a6`` style lists.

``find_register_tokens(text) -> Tuple[Register, ...]``
    Every tracked register token in *text*, in textual order.
"""

from __future__ import annotations

import enum
import functools
import logging
import re
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Optional, Tuple

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from m68k_regtrack.registers import Register, RegisterFamily, sort_registers

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
#  Grammars
# ═══════════════════════════════════════════════════════════════════════

LINE_GRAMMAR = Grammar(r'''
    line             = label_line / comment_line / blank_line / instruction_line

    label_line       = identifier ":" eol
    comment_line     = comment eol
    blank_line       = ~r"\s*\Z"
    instruction_line = inline_label? mnemonic size? operand_field? comment? eol

    inline_label     = identifier ":" ws
    mnemonic         = ~r"[A-Za-z_][A-Za-z0-9_]*"
    size             = ~r"\.[A-Za-z]+"
    operand_field    = ws operands
    operands         = ~r"[^;]*"
    comment          = ~r";.*"

    identifier       = ~r"[A-Za-z_][A-Za-z0-9_.]*"
    ws               = ~r"[ \t]+"
    eol              = ~r"\s*\Z"
''')

OPERAND_GRAMMAR = Grammar(r'''
    movem_operands   = save_operands / restore_operands

    save_operands    = reg_list ws? "," ws? predec_sp
    restore_operands = postinc_sp ws? "," ws? reg_list

    predec_sp        = "-(" ws? stack_pointer ws? ")"
    postinc_sp       = "(" ws? stack_pointer ws? ")+"
    stack_pointer    = ~r"sp|a7"i

    reg_list         = reg_entry (ws? "/" ws? reg_entry)*
    reg_entry        = reg_range / register
    reg_range        = register ws? "-" ws? register
    register         = ~r"[DdAa][0-7]\b"

    ws               = ~r"[ \t]+"
''')

#: Mnemonics that end a subroutine body.
RETURN_MNEMONICS: FrozenSet[str] = frozenset({"rts", "rte"})

#: ``movem`` sizes recognised as bulk save / restore.
MOVEM_SIZES: FrozenSet[str] = frozenset({"l", "w"})

# Whole-word register token; a leading ``$`` marks a hex literal.
_REGISTER_TOKEN_RE = re.compile(r"(?<![\w$])([DdAa][0-7])(?!\w)")


# ═══════════════════════════════════════════════════════════════════════
#  Line model
# ═══════════════════════════════════════════════════════════════════════

class LineKind(enum.Enum):
    BLANK = "blank"
    COMMENT = "comment"
    LABEL = "label"
    INSTRUCTION = "instruction"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class SourceLine:
    """One lexed source line.

    ``label`` holds the label name for LABEL lines and the inline label
    (``loop: dbra ...``) for INSTRUCTION lines that carry one.
    ``mnemonic`` is the lower-cased base mnemonic without size suffix.
    """

    kind: LineKind
    text: str
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    size: Optional[str] = None
    operands: str = ""

    @property
    def is_label(self) -> bool:
        return self.kind is LineKind.LABEL

    @property
    def is_instruction(self) -> bool:
        return self.kind is LineKind.INSTRUCTION

    @property
    def is_return(self) -> bool:
        # An inline label is the line's first token, so "foo: rts" is
        # not a return instruction.
        return (
            self.kind is LineKind.INSTRUCTION
            and self.label is None
            and self.mnemonic in RETURN_MNEMONICS
        )


@dataclass(frozen=True, slots=True)
class MovemOperands:
    """Operand field of a recognised bulk save or restore."""

    direction: str  # "save" or "restore"
    registers: FrozenSet[Register]


# ═══════════════════════════════════════════════════════════════════════
#  Visitors
# ═══════════════════════════════════════════════════════════════════════

class _GrammarVisitor(NodeVisitor):
    """Shared ``generic_visit``: composite nodes yield their children."""

    def generic_visit(self, node: Node, visited_children: List[Any]) -> Any:
        return visited_children


class LineVisitor(_GrammarVisitor):
    """Turns a ``LINE_GRAMMAR`` parse tree into a :class:`SourceLine`."""

    grammar = LINE_GRAMMAR

    def __init__(self, text: str) -> None:
        self._text = text

    def visit_line(self, node, visited_children):
        return visited_children[0]

    def visit_label_line(self, node, visited_children):
        name, _colon, _eol = visited_children
        return SourceLine(LineKind.LABEL, self._text, label=name)

    def visit_comment_line(self, node, visited_children):
        return SourceLine(LineKind.COMMENT, self._text)

    def visit_blank_line(self, node, visited_children):
        return SourceLine(LineKind.BLANK, self._text)

    def visit_instruction_line(self, node, visited_children):
        inline_label, mnemonic, size, operand_field, _comment, _eol = visited_children
        return SourceLine(
            LineKind.INSTRUCTION,
            self._text,
            label=inline_label[0] if inline_label else None,
            mnemonic=mnemonic,
            size=size[0] if size else None,
            operands=operand_field[0] if operand_field else "",
        )

    def visit_inline_label(self, node, visited_children):
        return visited_children[0]

    def visit_mnemonic(self, node, visited_children):
        return node.text.lower()

    def visit_size(self, node, visited_children):
        return node.text[1:].lower()

    def visit_operand_field(self, node, visited_children):
        return visited_children[1]

    def visit_operands(self, node, visited_children):
        return node.text.strip()

    def visit_identifier(self, node, visited_children):
        return node.text


class OperandVisitor(_GrammarVisitor):
    """Builds register sets from ``OPERAND_GRAMMAR`` parse trees."""

    grammar = OPERAND_GRAMMAR

    def visit_movem_operands(self, node, visited_children):
        return visited_children[0]

    def visit_save_operands(self, node, visited_children):
        return MovemOperands("save", visited_children[0])

    def visit_restore_operands(self, node, visited_children):
        return MovemOperands("restore", visited_children[-1])

    def visit_reg_list(self, node, visited_children):
        first, rest = visited_children
        regs = set(first)
        for _ws, _slash, _ws2, entry in rest:
            regs.update(entry)
        return frozenset(regs)

    def visit_reg_entry(self, node, visited_children):
        entry = visited_children[0]
        if isinstance(entry, str):
            reg = Register.from_token(entry)
            return (reg,) if reg is not None else ()
        return entry

    def visit_reg_range(self, node, visited_children):
        first, _ws, _dash, _ws2, last = visited_children
        return expand_range(first, last)

    def visit_register(self, node, visited_children):
        return node.text.upper()


# ═══════════════════════════════════════════════════════════════════════
#  Public helpers
# ═══════════════════════════════════════════════════════════════════════

@functools.lru_cache(maxsize=4096)
def lex_line(text: str) -> SourceLine:
    """Classify a single source line.  Never raises on malformed input."""
    stripped = text.strip()
    try:
        tree = LINE_GRAMMAR.parse(stripped)
    except ParseError:
        _log.debug("unrecognised line: %r", stripped)
        return SourceLine(LineKind.UNKNOWN, stripped)
    return LineVisitor(stripped).visit(tree)


def expand_range(first: str, last: str) -> Tuple[Register, ...]:
    """
    Expand a ``R1-R2`` range to the tracked registers it covers.

    Both ends must belong to the same family; the range is inclusive and
    may be written in either order.  ``A7`` may appear as a bound but is
    not itself part of the result.
    """
    first, last = first.upper(), last.upper()
    if first[0] != last[0]:
        _log.debug("ignoring cross-family register range %s-%s", first, last)
        return ()
    family = RegisterFamily(first[0])
    lo, hi = sorted((int(first[1]), int(last[1])))
    return tuple(
        r for r in Register
        if r.family is family and lo <= r.ordinal <= hi
    )


def parse_register_list(text: str) -> FrozenSet[Register]:
    """Expand a ``movem`` register list; an unparsable list is empty."""
    try:
        tree = OPERAND_GRAMMAR["reg_list"].parse(text.strip())
    except ParseError:
        _log.debug("unrecognised register list: %r", text)
        return frozenset()
    return OperandVisitor().visit(tree)


def parse_movem_operands(text: str) -> Optional[MovemOperands]:
    """Recognise the operand field of a bulk save or restore."""
    try:
        tree = OPERAND_GRAMMAR.parse(text.strip())
    except ParseError:
        return None
    return OperandVisitor().visit(tree)


def find_register_tokens(text: str) -> Tuple[Register, ...]:
    """Tracked registers named in *text*, in order of appearance."""
    found: List[Register] = []
    for match in _REGISTER_TOKEN_RE.finditer(text):
        reg = Register.from_token(match.group(1))
        if reg is not None:
            found.append(reg)
    return tuple(found)


def format_register_list(regs: FrozenSet[Register]) -> str:
    """Render registers as a compact ``d2-d4/a2`` style list."""
    parts: List[str] = []
    ordered = sort_registers(regs)
    i = 0
    while i < len(ordered):
        j = i
        while (
            j + 1 < len(ordered)
            and ordered[j + 1].family is ordered[i].family
            and ordered[j + 1].ordinal == ordered[j].ordinal + 1
        ):
            j += 1
        if j > i:
            parts.append(f"{ordered[i].value.lower()}-{ordered[j].value.lower()}")
        else:
            parts.append(ordered[i].value.lower())
        i = j + 1
    return "/".join(parts)


__all__ = [
    "LINE_GRAMMAR",
    "LineKind",
    "MovemOperands",
    "OPERAND_GRAMMAR",
    "RETURN_MNEMONICS",
    "SourceLine",
    "expand_range",
    "find_register_tokens",
    "format_register_list",
    "lex_line",
    "parse_movem_operands",
    "parse_register_list",
]
