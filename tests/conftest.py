# tests/conftest.py
"""
Shared assembly sources and fixtures for the m68k_regtrack tests.
"""

import textwrap

import pytest

from m68k_regtrack.analysis import split_source


def _src(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


# ---------------------------------------------------------------------------
# Sample sources
# ---------------------------------------------------------------------------

SCENARIO_A_LINES = [
    "movem.l d2-d3,-(sp)",
    "move.l d6,d0",
    "movem.l (sp)+,d2-d3",
    "rts",
]

CLEAN_SUBROUTINE = _src("""
    ; copy a block of longwords
    CopyBlock:
        movem.l d2-d3/a2,-(sp)
        move.l  d0,d2
        move.l  a0,a2
        move.l  (a2)+,d3
        move.l  d3,(a1)+
        movem.l (sp)+,d2-d3/a2
        rts
""")

UNSAFE_SUBROUTINE = _src("""
    Clobber:
        moveq   #0,d0
        move.l  d0,d2
        add.l   d2,d3
        lea     (a0),a4
        rts
""")

TWO_LABELS_ONE_RETURN = _src("""
    Alpha:
    Beta:
        move.l  d0,d5
        rts
""")

LABEL_WITHOUT_RETURN = _src("""
    Foo:
        move.l  d0,d1
        rts
    Bar:
        move.l  d2,d3
""")

MIXED_FILE = _src("""
    ; demo module
    Init:
        clr.l   d0
        rts

    Update:
        movem.l d4-d5,-(sp)
        move.l  (a0),d4
        add.l   d4,d5
        move.l  d5,d6
        movem.l (sp)+,d4-d5
        rts

    table:
        dc.l    0,1,2,3
""")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def write_source(tmp_path):
    """Write a source string to a temporary ``.s`` file and return its path."""
    def _write(text: str, name: str = "test.s"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def lines_of():
    return split_source
