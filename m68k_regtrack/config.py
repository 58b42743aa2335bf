"""Tuning knobs for the register analyzer and its diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

_SEVERITIES = ("error", "warning", "style", "information")


@dataclass(frozen=True)
class AnalyzerConfig:
    """
    Analyzer configuration.

    share_entry_labels
        When several labels precede a single return, credit every one of
        them as an entry point sharing the body.  Off by default: only
        the last label before the return is a subroutine.
    unsafe_severity
        Severity name attached to unsafe-register diagnostics.
    suppress_marker
        Comment text that silences a diagnostic on the same or the
        following line (``; regtrack-suppress``).
    """

    share_entry_labels: bool = False
    unsafe_severity: str = "warning"
    suppress_marker: str = "regtrack-suppress"

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.unsafe_severity not in _SEVERITIES:
            warnings.append(
                f"unsafe_severity must be one of {', '.join(_SEVERITIES)}; "
                f"got {self.unsafe_severity!r}"
            )
        if not self.suppress_marker.strip():
            warnings.append("suppress_marker must not be empty")
        return warnings


DEFAULT_CONFIG = AnalyzerConfig()
