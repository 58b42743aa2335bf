"""
m68k_regtrack/locator.py
════════════════════════

Subroutine-boundary discovery.

A label is a subroutine entry point only if a return instruction
(``rts`` / ``rte``) is reachable from it before the next label or the
end of input.  Discovery takes two passes over the file:

  1. Walk the lines, remembering the most recent label; a return line
     confirms the pending label.
  2. Walk again; for each confirmed label, scan forward to the next
     label (exclusive) or the first return (inclusive).

Each confirmed label re-scans its own body, so the cost is O(n·k) for k
confirmed labels.

With ``share_entry_labels`` every label seen since the previous return
is confirmed, and their spans run through the shared return.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set

from m68k_regtrack.config import DEFAULT_CONFIG, AnalyzerConfig
from m68k_regtrack.grammar import lex_line

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubroutineSpan:
    """A confirmed subroutine: its label line and the last body line."""

    label: str
    start_line: int
    end_line: int

    def body(self, lines: Sequence[str]) -> Sequence[str]:
        """The span's lines after the label, ``end_line`` included."""
        return lines[self.start_line + 1:self.end_line + 1]

    @property
    def body_start(self) -> int:
        return self.start_line + 1


def confirmed_labels(
    lines: Sequence[str],
    config: Optional[AnalyzerConfig] = None,
) -> Set[str]:
    """First pass: names of labels followed by a reachable return."""
    config = config or DEFAULT_CONFIG
    confirmed: Set[str] = set()
    pending: List[str] = []

    for text in lines:
        line = lex_line(text)
        if line.is_label:
            if config.share_entry_labels:
                pending.append(line.label)
            else:
                pending = [line.label]
        elif line.is_return and pending:
            confirmed.update(pending)
            if config.share_entry_labels:
                pending = []
    return confirmed


def _span_end(
    lines: Sequence[str],
    start: int,
    share_entry_labels: bool,
) -> int:
    end = start + 1
    while end < len(lines):
        line = lex_line(lines[end])
        if line.is_return:
            return end
        if line.is_label and not share_entry_labels:
            return end - 1
        end += 1
    return len(lines) - 1


def locate_subroutines(
    lines: Sequence[str],
    config: Optional[AnalyzerConfig] = None,
) -> List[SubroutineSpan]:
    """Return the confirmed subroutine spans of *lines*, in file order."""
    config = config or DEFAULT_CONFIG
    confirmed = confirmed_labels(lines, config)
    spans: List[SubroutineSpan] = []

    for index, text in enumerate(lines):
        line = lex_line(text)
        if not line.is_label or line.label not in confirmed:
            continue
        end = _span_end(lines, index, config.share_entry_labels)
        spans.append(SubroutineSpan(line.label, index, end))

    _log.debug("located %d subroutine(s) in %d line(s)", len(spans), len(lines))
    return spans
