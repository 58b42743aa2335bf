"""
m68k_regtrack - register preservation tracker for 68000 assembly
================================================================

Scans assembly source line by line, finds subroutines (labels followed
by a reachable ``rts`` / ``rte``) and reports for each of the 15
tracked registers (D0–D7, A0–A6) whether it is untouched, used as a
scratch register, properly saved with ``movem``, or modified without
being saved.

Core modules
------------
registers
    The register universe, families, convention classes, statuses.
grammar
    parsimonious line grammar: labels, instructions, comments, movem lists.
classifier
    Per-line classification: bulk save / restore / destination writes.
locator
    Subroutine-boundary discovery.
tracker
    Touched / modified / saved accumulation over one subroutine.
resolver
    Status map derivation.
unsafe_sites
    Line-level location of unsafe modifications.

Surface modules
---------------
analysis, annotations, checker, reporter, main

Quick start
-----------
>>> from m68k_regtrack import analyze_subroutine, Register, RegisterStatus
>>> result = analyze_subroutine(["movem.l d2-d3,-(sp)", "move.l d2,d0",
...                              "movem.l (sp)+,d2-d3", "rts"])
>>> result[Register.D0] is RegisterStatus.SCRATCH
True
"""

from __future__ import annotations

from typing import List

__version__ = "0.1.0"
__license__ = "MIT"

from m68k_regtrack.registers import (  # noqa: E402
    ALL_REGISTERS,
    ConventionClass,
    Register,
    RegisterFamily,
    RegisterStatus,
)
from m68k_regtrack.config import AnalyzerConfig  # noqa: E402
from m68k_regtrack.locator import SubroutineSpan, locate_subroutines  # noqa: E402
from m68k_regtrack.tracker import (  # noqa: E402
    AnalyzerRunState,
    RegisterStateTracker,
    RegisterUsage,
    track_registers,
)
from m68k_regtrack.resolver import (  # noqa: E402
    RegisterAnalysisResult,
    analyze_subroutine,
    resolve_status,
)
from m68k_regtrack.unsafe_sites import UnsafeSite, locate_unsafe_sites  # noqa: E402
from m68k_regtrack.analysis import (  # noqa: E402
    FileAnalysis,
    SubroutineReport,
    analyze_file,
    analyze_lines,
    analyze_text,
)

__all__: List[str] = [
    "ALL_REGISTERS",
    "AnalyzerConfig",
    "AnalyzerRunState",
    "ConventionClass",
    "FileAnalysis",
    "Register",
    "RegisterAnalysisResult",
    "RegisterFamily",
    "RegisterStateTracker",
    "RegisterStatus",
    "RegisterUsage",
    "SubroutineReport",
    "SubroutineSpan",
    "UnsafeSite",
    "__version__",
    "analyze_file",
    "analyze_lines",
    "analyze_subroutine",
    "analyze_text",
    "locate_subroutines",
    "locate_unsafe_sites",
    "resolve_status",
    "track_registers",
]
