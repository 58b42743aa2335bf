"""
m68k_regtrack/checker.py
════════════════════════

Turns analysis results into actionable diagnostics.

Architecture
────────────

  ┌──────────────────────────────────────────────┐
  │               RegisterChecker                │
  │                                              │
  │   FileAnalysis ──► unsafe sites              │
  │                        │                     │
  │   ┌────────────────────▼──────────────────┐  │
  │   │          SuppressionManager           │  │
  │   │  ; regtrack-suppress  │  global ids   │  │
  │   └────────────────────┬──────────────────┘  │
  │                        ▼                     │
  │          Diagnostic (JSON / gcc / text)      │
  └──────────────────────────────────────────────┘

One error id is produced: ``unsafeRegister``: a preserved register
(d2-d7, a2-a6) written inside a subroutine that never saves it.
"""

from __future__ import annotations

import enum
import json
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
)

from m68k_regtrack.analysis import FileAnalysis, SubroutineReport
from m68k_regtrack.annotations import (
    UNSAFE_SITE_HINT,
    save_restore_example,
    unsafe_site_message,
)
from m68k_regtrack.config import DEFAULT_CONFIG, AnalyzerConfig
from m68k_regtrack.unsafe_sites import UnsafeSite


# ═════════════════════════════════════════════════════════════════════════
#  PART 1: DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    How serious a finding is.

    Each carries:
      • level_name: the string used in text and JSON output
      • color: termcolor colour name
      • sarif_level: SARIF 2.1.0 ``level`` string
    """

    ERROR = ("error", "red", "error")
    WARNING = ("warning", "yellow", "warning")
    STYLE = ("style", "cyan", "note")
    INFORMATION = ("information", "white", "note")

    def __init__(self, level_name: str, color: str, sarif_level: str) -> None:
        self.level_name = level_name
        self.color = color
        self.sarif_level = sarif_level

    @classmethod
    def from_string(cls, s: str) -> Severity:
        """Parse a severity from its name (case-insensitive)."""
        s_low = s.strip().lower()
        for member in cls:
            if member.level_name == s_low:
                return member
        return cls.WARNING


@dataclass(frozen=True)
class SourceLocation:
    """A point in a source file; line and column are 1-based."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single finding.

    Attributes
    ----------
    error_id   : Unique identifier (``unsafeRegister``)
    message    : Human-readable headline
    severity   : Severity
    location   : Primary source location
    end_column : Exclusive end of the highlighted range on that line
    register   : Register name the finding is about
    subroutine : Label of the enclosing subroutine
    notes      : Explanatory notes
    helps      : Fix suggestions (the save/restore pattern)
    evidence   : Machine-readable context for downstream tooling
    """
    error_id: str
    message: str
    severity: Severity
    location: SourceLocation
    end_column: int = 0
    register: str = ""
    subroutine: str = ""
    notes: Tuple[str, ...] = ()
    helps: Tuple[str, ...] = ()
    evidence: Dict[str, Any] = field(default_factory=dict)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "endColumn": self.end_column,
            "severity": self.severity.level_name,
            "message": self.message,
            "errorId": self.error_id,
            "register": self.register,
            "subroutine": self.subroutine,
        }

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_json_dict())

    def to_gcc_format(self) -> str:
        """``file:line:col: severity: message [id]`` for editors that parse gcc output."""
        sev = self.severity.level_name
        return f"{self.location}: {sev}: {self.message} [{self.error_id}]"

    def one_line(self) -> str:
        """``[file:line]: (severity) message [id]``, as in the text report."""
        loc = self.location
        return (
            f"[{loc.file}:{loc.line}]: ({self.severity.level_name}) "
            f"{self.message} [{self.error_id}]"
        )


# ═════════════════════════════════════════════════════════════════════════
#  PART 2: SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

class SuppressionManager:
    """
    Manages diagnostic suppressions.

    Sources:
      1. Inline comments:  ``; regtrack-suppress [errorId ...]``
         trailing the offending line, or alone on the line before it.
         With *known_ids*, words that are not known ids are ignored
         and a comment naming none of them suppresses everything.
      2. Global suppressions (command-line or config)
    """

    def __init__(
        self,
        marker: str = DEFAULT_CONFIG.suppress_marker,
        known_ids: Optional[Iterable[str]] = None,
    ) -> None:
        self._marker_re = re.compile(
            r";.*?\b" + re.escape(marker) + r"\b(?P<ids>[\w\s,]*)"
        )
        # (file, line) → error ids suppressed there ("*" = all)
        self._inline: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        self._global: Set[str] = set()
        # words after the marker that are not known ids are prose
        self._known: Optional[FrozenSet[str]] = (
            frozenset(known_ids) if known_ids is not None else None
        )

    def load_inline_suppressions(self, file: str, lines: Iterable[str]) -> None:
        """
        Scan source lines for suppression comments (1-based lines).

        Replaces whatever was loaded earlier for *file*, so re-checking an
        edited file drops suppressions whose comments were removed.
        """
        for key in [k for k in self._inline if k[0] == file]:
            del self._inline[key]
        for lineno, text in enumerate(lines, 1):
            match = self._marker_re.search(text)
            if match is None:
                continue
            ids = {i for i in re.split(r"[\s,]+", match.group("ids")) if i}
            if self._known is not None:
                ids &= self._known
            # a comment-only line covers the line that follows it
            target = lineno + 1 if text.lstrip().startswith(";") else lineno
            self._inline[(file, target)].update(ids or {"*"})

    def add_global_suppression(self, error_id: str) -> None:
        """Silence *error_id* in every file."""
        self._global.add(error_id)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        eid = diag.error_id
        if eid in self._global or "*" in self._global:
            return True

        loc = diag.location
        suppressed_ids = self._inline.get((loc.file, loc.line), set())
        return eid in suppressed_ids or "*" in suppressed_ids

    def filter_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
        """Drop the suppressed entries of *diagnostics*."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3: CHECKER
# ═════════════════════════════════════════════════════════════════════════

class RegisterChecker:
    """Reports preserved registers modified without a bulk save."""

    name: ClassVar[str] = "register-preservation"
    description: ClassVar[str] = (
        "Preserved registers (d2-d7, a2-a6) must be saved before a "
        "subroutine modifies them."
    )
    UNSAFE_REGISTER: ClassVar[str] = "unsafeRegister"
    error_ids: ClassVar[FrozenSet[str]] = frozenset({UNSAFE_REGISTER})

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        suppressions: Optional[SuppressionManager] = None,
    ) -> None:
        self._config = config or DEFAULT_CONFIG
        self.suppressions = suppressions or SuppressionManager(
            self._config.suppress_marker, self.error_ids
        )
        self._severity = Severity.from_string(self._config.unsafe_severity)

    def check(self, analysis: FileAnalysis) -> List[Diagnostic]:
        """Diagnostics for every unsafe site in *analysis*, unsuppressed."""
        self.suppressions.load_inline_suppressions(analysis.path, analysis.lines)
        diagnostics = [
            self._diagnose(analysis, sub, site)
            for sub in analysis.subroutines
            for site in sub.unsafe_sites
        ]
        return self.suppressions.filter_diagnostics(diagnostics)

    def _diagnose(
        self,
        analysis: FileAnalysis,
        sub: SubroutineReport,
        site: UnsafeSite,
    ) -> Diagnostic:
        text = analysis.lines[site.line_index].rstrip("\r")
        column = len(text) - len(text.lstrip()) + 1
        return Diagnostic(
            error_id=self.UNSAFE_REGISTER,
            message=unsafe_site_message(site),
            severity=self._severity,
            location=SourceLocation(analysis.path, site.line_index + 1, column),
            end_column=len(text.rstrip()) + 1,
            register=site.register.value,
            subroutine=sub.label,
            notes=(
                f"in subroutine '{sub.label}' "
                f"(lines {sub.span.start_line + 1}-{sub.span.end_line + 1})",
                UNSAFE_SITE_HINT,
            ),
            helps=(save_restore_example(site.family),),
            evidence={
                "modified": sorted(r.value for r in sub.result.usage.modified),
                "saved": sorted(r.value for r in sub.result.usage.saved),
            },
        )
