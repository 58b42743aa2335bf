"""
m68k_regtrack/analysis.py
═════════════════════════

Whole-file façade over the analyzer components.

    lines ─► locate_subroutines ─► per-span body
                                     ├─► analyze_subroutine ─► status map
                                     └─► locate_unsafe_sites ─► sites

Usage::

    from m68k_regtrack.analysis import analyze_file

    report = analyze_file("player.s")
    for sub in report.subroutines:
        print(sub.label, sub.result.unsafe)

Every call builds fresh accumulators, so independent files (or repeated
analyses of the same file after an edit) never share state.  A caller
that re-analyses after an edit simply drops the older
:class:`FileAnalysis`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from m68k_regtrack.config import DEFAULT_CONFIG, AnalyzerConfig
from m68k_regtrack.errors import SourceReadError
from m68k_regtrack.locator import SubroutineSpan, locate_subroutines
from m68k_regtrack.resolver import RegisterAnalysisResult, analyze_subroutine
from m68k_regtrack.unsafe_sites import UnsafeSite, locate_unsafe_sites

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubroutineReport:
    """Analysis of one subroutine; site indices are whole-file lines."""

    span: SubroutineSpan
    result: RegisterAnalysisResult
    unsafe_sites: Sequence[UnsafeSite] = ()

    @property
    def label(self) -> str:
        return self.span.label

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.span.label,
            "start_line": self.span.start_line,
            "end_line": self.span.end_line,
            "registers": self.result.to_dict(),
            "unsafe_sites": [
                {
                    "line": site.line_index,
                    "register": site.register.value,
                    "family": site.family.label,
                }
                for site in self.unsafe_sites
            ],
        }


@dataclass(frozen=True)
class FileAnalysis:
    """Every subroutine found in one source file."""

    path: str
    lines: Sequence[str]
    subroutines: List[SubroutineReport] = field(default_factory=list)

    @property
    def unsafe_sites(self) -> List[UnsafeSite]:
        return [site for sub in self.subroutines for site in sub.unsafe_sites]

    @property
    def is_clean(self) -> bool:
        return all(sub.result.is_clean for sub in self.subroutines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.path,
            "subroutines": [sub.to_dict() for sub in self.subroutines],
        }


def analyze_span(lines: Sequence[str], span: SubroutineSpan) -> SubroutineReport:
    """Analyse one located span of *lines*."""
    body = span.body(lines)
    result = analyze_subroutine(body)
    sites = locate_unsafe_sites(body, result.usage, offset=span.body_start)
    return SubroutineReport(span, result, tuple(sites))


def analyze_lines(
    lines: Sequence[str],
    config: Optional[AnalyzerConfig] = None,
    path: str = "<input>",
) -> FileAnalysis:
    """Locate and analyse every subroutine in *lines*."""
    config = config or DEFAULT_CONFIG
    lines = list(lines)
    reports = [analyze_span(lines, span) for span in locate_subroutines(lines, config)]
    _log.info(
        "%s: %d subroutine(s), %d unsafe site(s)",
        path, len(reports), sum(len(r.unsafe_sites) for r in reports),
    )
    return FileAnalysis(path, lines, reports)


def split_source(text: str) -> List[str]:
    """Split source text into lines, keeping editor line numbering."""
    return text.split("\n")


def analyze_text(
    text: str,
    config: Optional[AnalyzerConfig] = None,
    path: str = "<input>",
) -> FileAnalysis:
    return analyze_lines(split_source(text), config, path)


def read_source(path: Union[str, Path]) -> str:
    """Read an assembly file as text; a BOM is dropped and undecodable bytes are replaced."""
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8-sig", errors="replace")
    except FileNotFoundError as exc:
        raise SourceReadError(p, "no such file", exc) from exc
    except IsADirectoryError as exc:
        raise SourceReadError(p, "is a directory", exc) from exc
    except OSError as exc:
        raise SourceReadError(p, exc.strerror or str(exc), exc) from exc


def analyze_file(
    path: Union[str, Path],
    config: Optional[AnalyzerConfig] = None,
) -> FileAnalysis:
    """Read and analyse an assembly source file."""
    _log.info("analysing %s", path)
    return analyze_text(read_source(path), config, str(path))
