"""
m68k_regtrack/reporter.py
═════════════════════════

Diagnostic output for the ``check`` command.

Renderers
─────────
  • terminal : coloured header, source excerpt with a ``^`` underline,
               notes and the save/restore suggestion
  • plain    : the classic one-liner plus notes, for pipes and log files

Either renderer can be paired with a SARIF 2.1.0 file, written when a
path is passed in or ``$REGTRACK_SARIF`` names one.

    with Reporter(colour=False) as rep:
        rep.add_source("demo.s", lines)
        for diag in diagnostics:
            rep.emit(diag)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO, Union

from termcolor import colored, cprint

from m68k_regtrack import __version__
from m68k_regtrack.checker import Diagnostic, Severity

_log = logging.getLogger(__name__)

SARIF_ENV_VAR = "REGTRACK_SARIF"


# ═════════════════════════════════════════════════════════════════════════
#  COUNTS
# ═════════════════════════════════════════════════════════════════════════

# (severity, singular, plural)
_SUMMARY_WORDS = (
    (Severity.ERROR, "error", "errors"),
    (Severity.WARNING, "warning", "warnings"),
    (Severity.STYLE, "style", "style"),
    (Severity.INFORMATION, "info", "info"),
)


class ReporterStats:
    """How many diagnostics of each severity were emitted."""

    def __init__(self) -> None:
        self._counts: Counter = Counter()

    def record(self, severity: Severity) -> None:
        self._counts[severity] += 1

    def count(self, severity: Severity) -> int:
        return self._counts[severity]

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def summary_line(self) -> str:
        if not self.total:
            return "no diagnostics emitted"
        parts: List[str] = []
        for severity, one, many in _SUMMARY_WORDS:
            n = self._counts[severity]
            if n:
                parts.append(f"{n} {one if n == 1 else many}")
        return f"{'; '.join(parts)} ({self.total} total)"


# ═════════════════════════════════════════════════════════════════════════
#  RENDERERS
# ═════════════════════════════════════════════════════════════════════════

def _bold(text: str, color: Optional[str] = None) -> str:
    return colored(text, color, attrs=["bold"])


class _TerminalRenderer:
    """Coloured multi-line rendering with the offending source line."""

    def __init__(self, stream: TextIO, sources: Dict[str, Sequence[str]]) -> None:
        self._stream = stream
        self._sources = sources

    def render(self, diag: Diagnostic) -> None:
        out = [
            f"{_bold(f'{diag.severity.level_name}[{diag.error_id}]', diag.severity.color)}"
            f": {_bold(diag.message)}",
            f"  {_bold('-->', 'blue')} {diag.location}",
        ]
        out.extend(self._excerpt(diag))
        out.extend(f"  = {_bold('note', 'cyan')}: {note}" for note in diag.notes)
        for suggestion in diag.helps:
            head, *tail = suggestion.splitlines()
            out.append(f"  = {_bold('help', 'green')}: {head}")
            out.extend(" " * 10 + line for line in tail)
        out.append(colored(diag.one_line(), attrs=["dark"]))
        self._stream.write("\n".join(out) + "\n\n")
        self._stream.flush()

    def _excerpt(self, diag: Diagnostic) -> List[str]:
        loc = diag.location
        source = self._sources.get(loc.file)
        if source is None or not 0 < loc.line <= len(source):
            return []
        text = source[loc.line - 1].rstrip("\r\n")
        width = len(str(loc.line)) + 1
        bar = _bold("|", "blue")
        indent = " " * max(loc.column - 1, 0)
        underline = "^" * max(diag.end_column - loc.column, 1)
        return [
            f" {_bold(str(loc.line).rjust(width), 'blue')} {bar} {text}",
            f" {' ' * (width + 1)} {bar} {indent}"
            f"{_bold(f'{underline} {diag.register} written here', diag.severity.color)}",
        ]


class _PlainRenderer:
    """One-liner per diagnostic, notes indented below it."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        print(diag.one_line(), file=self._stream)
        for note in diag.notes:
            print(f"  note: {note}", file=self._stream)
        self._stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  SARIF
# ═════════════════════════════════════════════════════════════════════════

def _sarif_region(diag: Diagnostic) -> Dict[str, int]:
    region = {"startLine": diag.location.line}
    if diag.location.column:
        region["startColumn"] = diag.location.column
    if diag.end_column:
        region["endColumn"] = diag.end_column
    return region


def _sarif_result(diag: Diagnostic) -> Dict[str, Any]:
    return {
        "ruleId": diag.error_id,
        "level": diag.severity.sarif_level,
        "message": {"text": diag.message},
        "locations": [{
            "physicalLocation": {
                "artifactLocation": {"uri": diag.location.file},
                "region": _sarif_region(diag),
            },
        }],
        "properties": {"register": diag.register, "subroutine": diag.subroutine},
    }


class SarifBuilder:
    """Collects diagnostics into one SARIF 2.1.0 run."""

    SCHEMA_URI = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(self) -> None:
        self._rules: Dict[str, Dict[str, Any]] = {}
        self._results: List[Dict[str, Any]] = []

    def add(self, diag: Diagnostic) -> None:
        self._rules.setdefault(diag.error_id, {
            "id": diag.error_id,
            "shortDescription": {"text": "preserved register modified without stack save"},
        })
        self._results.append(_sarif_result(diag))

    def to_json(self, tool_name: str, version: str) -> str:
        driver = {"name": tool_name, "version": version, "rules": list(self._rules.values())}
        document = {
            "$schema": self.SCHEMA_URI,
            "version": "2.1.0",
            "runs": [{"tool": {"driver": driver}, "results": self._results}],
        }
        return json.dumps(document, indent=2)

    def write(self, path: Union[str, Path], tool_name: str, version: str) -> None:
        Path(path).write_text(self.to_json(tool_name, version), encoding="utf-8")


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Sends diagnostics to a renderer and, optionally, a SARIF file.

    *colour* ``None`` picks the terminal renderer only when *stream* is a
    TTY.  Leaving the ``with`` block calls :meth:`finish`.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        colour: Optional[bool] = None,
        sarif_path: Optional[str] = None,
        tool_name: str = "m68k-regtrack",
        tool_version: str = __version__,
    ) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self.tool_name = tool_name
        self.tool_version = tool_version
        self.stats = ReporterStats()
        self.diagnostics: List[Diagnostic] = []
        self._sources: Dict[str, Sequence[str]] = {}

        if colour is None:
            colour = bool(getattr(self._stream, "isatty", lambda: False)())
        self._renderer: Union[_TerminalRenderer, _PlainRenderer]
        if colour:
            self._renderer = _TerminalRenderer(self._stream, self._sources)
        else:
            self._renderer = _PlainRenderer(self._stream)

        self._sarif_path = sarif_path or os.environ.get(SARIF_ENV_VAR) or None
        self._sarif = SarifBuilder() if self._sarif_path else None

    def __enter__(self) -> Reporter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.finish()

    @property
    def colour(self) -> bool:
        return isinstance(self._renderer, _TerminalRenderer)

    def add_source(self, file: str, lines: Sequence[str]) -> None:
        """Register the lines of *file* for source excerpts."""
        self._sources[file] = lines

    def emit(self, diag: Diagnostic) -> None:
        self.stats.record(diag.severity)
        self.diagnostics.append(diag)
        self._renderer.render(diag)
        if self._sarif is not None:
            self._sarif.add(diag)

    def finish(self) -> ReporterStats:
        """Print the summary and write the SARIF file, if any."""
        summary = self.stats.summary_line()
        if not self.colour:
            print(f"  {summary}", file=self._stream)
        else:
            if self.stats.count(Severity.ERROR):
                tint = "red"
            elif self.stats.total:
                tint = "yellow"
            else:
                tint = "green"
            cprint(f"  ╰─ {summary}", tint, attrs=["bold"], file=self._stream)

        if self._sarif is not None:
            try:
                self._sarif.write(self._sarif_path, self.tool_name, self.tool_version)
            except OSError as exc:
                _log.error("cannot write SARIF to %s: %s", self._sarif_path, exc)
        return self.stats


__all__ = [
    "Reporter",
    "ReporterStats",
    "SARIF_ENV_VAR",
    "SarifBuilder",
]
