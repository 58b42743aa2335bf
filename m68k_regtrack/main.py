#!/usr/bin/env python3
"""m68k_regtrack/main.py: CLI entry-point for the register tracker.

Usage examples
--------------
    # Check one or more files for unsaved preserved registers
    m68k-regtrack check player.s irq.s

    # Machine-readable output
    m68k-regtrack check player.s --format json
    m68k-regtrack check player.s --format sarif --output report.sarif

    # Show the per-subroutine register annotations
    m68k-regtrack annotate player.s

    # Show version and exit
    m68k-regtrack --version

Exit codes
----------
    0   Success (no unsafe register use).
    1   One or more unsafe-register diagnostics were emitted.
    2   Infrastructure failure (missing file or bad arguments).
  130   Interrupted.

``python -m m68k_regtrack`` goes through the companion
``m68k_regtrack/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from m68k_regtrack import __version__
from m68k_regtrack.analysis import FileAnalysis, analyze_file
from m68k_regtrack.annotations import format_status_annotation
from m68k_regtrack.checker import Diagnostic, RegisterChecker
from m68k_regtrack.config import AnalyzerConfig
from m68k_regtrack.errors import RegtrackError
from m68k_regtrack.reporter import Reporter, SarifBuilder

_log = logging.getLogger("m68k_regtrack")

# Process exit codes

EXIT_OK: int = 0
EXIT_UNSAFE: int = 1
EXIT_INFRA: int = 2
EXIT_INTERRUPTED: int = 130


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Route ``m68k_regtrack`` log records to stderr.

    *verbosity* is the number of ``-v`` flags: none shows warnings and
    errors, one adds progress messages, two or more add lexer detail.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("m68k_regtrack")
    root.setLevel(level)
    root.handlers[:] = [handler]


def _open_output(dest: Optional[str]) -> TextIO:
    """stdout for ``None`` or ``"-"``, else *dest* opened for writing."""
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _build_config(args: argparse.Namespace) -> AnalyzerConfig:
    config = AnalyzerConfig(
        share_entry_labels=args.share_entry_labels,
        unsafe_severity=getattr(args, "severity", "warning"),
    )
    for warning in config.validate():
        _log.warning("AnalyzerConfig: %s", warning)
    return config


def _analyze_all(paths: Sequence[str], config: AnalyzerConfig) -> Optional[List[FileAnalysis]]:
    """Analyse every path; ``None`` if any file could not be read."""
    analyses: List[FileAnalysis] = []
    for raw in paths:
        try:
            analyses.append(analyze_file(raw, config))
        except RegtrackError as exc:
            _log.error("%s", exc)
            return None
    return analyses


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_check(args: argparse.Namespace) -> int:
    """Report every line that modifies an unsaved preserved register."""
    config = _build_config(args)
    analyses = _analyze_all(args.files, config)
    if analyses is None:
        return EXIT_INFRA

    checker = RegisterChecker(config)
    for eid in args.suppress or ():
        checker.suppressions.add_global_suppression(eid)

    diagnostics: List[Diagnostic] = []
    for analysis in analyses:
        diagnostics.extend(checker.check(analysis))

    if args.format == "text":
        out = _open_output(args.output)
        colour = args.color if args.output in (None, "-") else False
        try:
            with Reporter(stream=out, colour=colour, tool_version=__version__) as rep:
                for analysis in analyses:
                    rep.add_source(analysis.path, analysis.lines)
                for diag in diagnostics:
                    rep.emit(diag)
        finally:
            if out is not sys.stdout:
                out.close()
        return EXIT_UNSAFE if diagnostics else EXIT_OK

    out = _open_output(args.output)
    try:
        if args.format == "json":
            out.write(json.dumps([d.to_json_dict() for d in diagnostics], indent=2) + "\n")
        elif args.format == "gcc":
            for diag in diagnostics:
                out.write(diag.to_gcc_format() + "\n")
        else:
            sarif = SarifBuilder()
            for diag in diagnostics:
                sarif.add(diag)
            out.write(sarif.to_json("m68k-regtrack", __version__) + "\n")
    finally:
        if out is not sys.stdout:
            out.close()

    return EXIT_UNSAFE if diagnostics else EXIT_OK


def cmd_annotate(args: argparse.Namespace) -> int:
    """Print the register annotation of every subroutine."""
    config = _build_config(args)
    analyses = _analyze_all(args.files, config)
    if analyses is None:
        return EXIT_INFRA

    out = _open_output(args.output)
    try:
        if args.format == "json":
            out.write(json.dumps([a.to_dict() for a in analyses], indent=2) + "\n")
        else:
            for analysis in analyses:
                for sub in analysis.subroutines:
                    out.write(f"{analysis.path}:{sub.span.start_line + 1}: {sub.label}\n")
                    for line in format_status_annotation(sub.result, emoji=args.emoji):
                        out.write(f"    {line}\n")
    finally:
        if out is not sys.stdout:
            out.close()

    unsafe = any(not a.is_clean for a in analyses)
    return EXIT_UNSAFE if unsafe else EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "files",
        nargs="+",
        metavar="FILE",
        help="68000 assembly source file(s).",
    )
    p.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )
    p.add_argument(
        "--share-entry-labels",
        action="store_true",
        help="Credit every label before a shared return as its own subroutine.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="m68k-regtrack",
        description="Track 68000 register preservation across subroutines.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v INFO, -vv DEBUG).",
    )

    subparsers = parser.add_subparsers(title="commands")

    # --- check -------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        help="Report preserved registers modified without a save.",
    )
    _add_common_args(p_check)
    p_check.add_argument(
        "-f", "--format",
        choices=["text", "gcc", "json", "sarif"],
        default="text",
        help="Diagnostic format (default: text).",
    )
    p_check.add_argument(
        "--severity",
        choices=["error", "warning", "style", "information"],
        default="warning",
        help="Severity of unsafe-register diagnostics (default: warning).",
    )
    p_check.add_argument(
        "--suppress",
        action="append",
        metavar="ID",
        help="Suppress an error id everywhere (repeatable).",
    )
    colour = p_check.add_mutually_exclusive_group()
    colour.add_argument("--color", dest="color", action="store_true", default=None,
                        help="Force coloured output.")
    colour.add_argument("--no-color", dest="color", action="store_false",
                        help="Disable coloured output.")
    p_check.set_defaults(func=cmd_check)

    # --- annotate ----------------------------------------------------------
    p_annotate = subparsers.add_parser(
        "annotate",
        help="Show the register status of every subroutine.",
    )
    _add_common_args(p_annotate)
    p_annotate.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )
    p_annotate.add_argument(
        "--no-emoji",
        dest="emoji",
        action="store_false",
        help="Plain-text status labels.",
    )
    p_annotate.set_defaults(func=cmd_annotate)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI.

    Parameters
    ----------
    argv:
        Arguments without the program name; defaults to ``sys.argv[1:]``.

    Returns
    -------
    int
        One of the ``EXIT_*`` codes listed in the module docstring.
    """
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("interrupted")
        return EXIT_INTERRUPTED
    except OSError as exc:
        _log.error("I/O failure: %s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
