# tests/test_analysis.py
"""
Tests for register tracking, status resolution and the file-level façade.
"""

import pytest

from m68k_regtrack.analysis import (
    FileAnalysis,
    analyze_file,
    analyze_lines,
    analyze_text,
    read_source,
)
from m68k_regtrack.config import AnalyzerConfig
from m68k_regtrack.errors import RegtrackError, SourceReadError
from m68k_regtrack.registers import ALL_REGISTERS, Register as R, RegisterStatus as S
from m68k_regtrack.resolver import (
    RegisterAnalysisResult,
    analyze_subroutine,
    resolve_register,
    resolve_status,
)
from m68k_regtrack.tracker import (
    AnalyzerRunState,
    RegisterStateTracker,
    RegisterUsage,
    track_registers,
)

from tests.conftest import (
    CLEAN_SUBROUTINE,
    LABEL_WITHOUT_RETURN,
    MIXED_FILE,
    SCENARIO_A_LINES,
    TWO_LABELS_ONE_RETURN,
    UNSAFE_SUBROUTINE,
)


def _non_untouched(result):
    return {r: s for r, s in result.items() if s is not S.UNTOUCHED}


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

class TestTracker:

    def test_sets(self):
        usage = track_registers([
            "movem.l d2,-(sp)",
            "move.l d0,d2",
            "move.l d3,(a2)",
        ])
        assert usage.saved == {R.D2}
        assert usage.modified == {R.D2}
        assert usage.touched == {R.D0, R.D2, R.D3, R.A2}

    def test_save_alone_touches_nothing(self):
        usage = track_registers(["movem.l d2-d7,-(sp)", "rts"])
        assert usage.touched == frozenset()
        assert usage.saved == {R.D2, R.D3, R.D4, R.D5, R.D6, R.D7}

    def test_restore_touches_and_modifies(self):
        usage = track_registers(["movem.l (sp)+,d4"])
        assert usage.touched == {R.D4}
        assert usage.modified == {R.D4}

    def test_runs_do_not_leak(self):
        tracker = RegisterStateTracker()
        first = tracker.run(["move.l d0,d5"])
        second = tracker.run(["nop"])
        assert first.modified == {R.D5}
        assert second == RegisterUsage()

    def test_feed_accumulates(self):
        tracker = RegisterStateTracker()
        tracker.feed("move.l d0,d2")
        tracker.feed("move.l d1,d3")
        assert tracker.run(["clr.l d4"]).modified == {R.D4}

    def test_run_state_freeze_and_reset(self):
        state = AnalyzerRunState()
        state.modified.add(R.D2)
        frozen = state.freeze()
        state.reset()
        assert frozen.modified == {R.D2}
        assert state.modified == set()

    def test_is_unsafe(self):
        usage = RegisterUsage(
            touched=frozenset({R.D0, R.D2, R.D3}),
            modified=frozenset({R.D0, R.D2, R.D3}),
            saved=frozenset({R.D3}),
        )
        assert usage.is_unsafe(R.D2)
        assert not usage.is_unsafe(R.D3)
        assert not usage.is_unsafe(R.D0)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class TestResolveRegister:

    def test_priority_order(self):
        usage = RegisterUsage(
            touched=frozenset({R.D0, R.D2, R.D3, R.D4}),
            modified=frozenset({R.D0, R.D2, R.D3}),
            saved=frozenset({R.D0, R.D2}),
        )
        assert resolve_register(R.D0, usage) is S.SCRATCH
        assert resolve_register(R.D2, usage) is S.SAVED
        assert resolve_register(R.D3, usage) is S.UNSAFE
        assert resolve_register(R.D4, usage) is S.UNTOUCHED
        assert resolve_register(R.D5, usage) is S.UNTOUCHED

    def test_saved_but_never_touched_is_untouched(self):
        usage = RegisterUsage(saved=frozenset({R.A5}))
        assert resolve_register(R.A5, usage) is S.UNTOUCHED


class TestAnalysisResult:

    def test_total_over_fifteen_registers(self):
        result = analyze_subroutine([])
        assert len(result) == 15
        assert list(result) == list(ALL_REGISTERS)
        assert set(result.values()) == {S.UNTOUCHED}

    def test_partial_map_rejected(self):
        with pytest.raises(ValueError):
            RegisterAnalysisResult({R.D0: S.SCRATCH}, RegisterUsage())

    def test_immutable(self):
        result = analyze_subroutine(["move.l d0,d2"])
        with pytest.raises(TypeError):
            result[R.D2] = S.SAVED

    def test_registers_with(self):
        result = analyze_subroutine(UNSAFE_SUBROUTINE.splitlines()[1:])
        assert result.unsafe == (R.D2, R.D3, R.A4)
        assert result.registers_with(S.UNSAFE, R.A4.family) == (R.A4,)
        assert not result.is_clean

    def test_to_dict(self):
        d = analyze_subroutine(["move.l d0,d2"]).to_dict()
        assert d["D0"] == "scratch"
        assert d["D2"] == "unsafe"
        assert len(d) == 15


# ---------------------------------------------------------------------------
# Worked scenarios
# ---------------------------------------------------------------------------

class TestScenarios:

    def test_read_only_preserved_register(self):
        result = analyze_subroutine(SCENARIO_A_LINES)
        assert _non_untouched(result) == {
            R.D0: S.SCRATCH,
            R.D2: S.SAVED,
            R.D3: S.SAVED,
        }
        assert result[R.D6] is S.UNTOUCHED

    def test_written_preserved_register_without_save(self):
        lines = list(SCENARIO_A_LINES)
        lines[1] = "move.l d0,d6"
        result = analyze_subroutine(lines)
        assert result[R.D6] is S.UNSAFE
        assert result[R.D2] is S.SAVED

    def test_empty_body(self):
        fa = analyze_text("Empty:\n    rts\n")
        (sub,) = fa.subroutines
        assert set(sub.result.values()) == {S.UNTOUCHED}

    def test_label_without_return_has_no_span(self):
        fa = analyze_text(LABEL_WITHOUT_RETURN)
        assert [s.label for s in fa.subroutines] == ["Foo"]

    def test_store_through_address_register(self):
        result = analyze_subroutine(["move.l a4,(a2)", "rts"])
        assert result[R.A4] is S.UNTOUCHED
        assert result[R.A2] is S.UNTOUCHED
        assert result.usage.touched == {R.A4, R.A2}
        assert result.usage.modified == frozenset()

    def test_modify_after_save(self):
        result = analyze_subroutine(["movem.l d4,-(sp)", "move.l d0,d4", "rts"])
        assert result[R.D4] is S.SAVED

    def test_address_register_in_indirect_mode_only(self):
        result = analyze_subroutine(["move.l (a4),d0", "move.l d0,8(a2)", "rts"])
        assert result[R.A4] is S.UNTOUCHED
        assert result[R.A2] is S.UNTOUCHED
        assert result[R.D0] is S.SCRATCH

    def test_clean_subroutine(self, lines_of):
        fa = analyze_lines(lines_of(CLEAN_SUBROUTINE))
        (sub,) = fa.subroutines
        assert _non_untouched(sub.result) == {
            R.D0: S.SCRATCH,
            R.D2: S.SAVED,
            R.D3: S.SAVED,
            R.A0: S.SCRATCH,
            R.A1: S.SCRATCH,
            R.A2: S.SAVED,
        }
        assert fa.is_clean


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

class TestProperties:

    BODIES = [
        SCENARIO_A_LINES,
        UNSAFE_SUBROUTINE.splitlines(),
        CLEAN_SUBROUTINE.splitlines(),
        ["movem.l (sp)+,d0-d7/a0-a6", "rts"],
    ]

    @pytest.mark.parametrize("body", BODIES)
    def test_scratch_registers_never_unsafe(self, body):
        result = analyze_subroutine(body)
        for reg in (R.D0, R.D1, R.A0, R.A1):
            assert result[reg] in (S.UNTOUCHED, S.SCRATCH)

    @pytest.mark.parametrize("body", BODIES)
    def test_idempotent(self, body):
        assert dict(analyze_subroutine(body)) == dict(analyze_subroutine(body))

    def test_save_position_does_not_matter(self):
        early = analyze_subroutine(["movem.l d3,-(sp)", "move.l d0,d3", "rts"])
        late = analyze_subroutine(["move.l d0,d3", "movem.l d3,-(sp)", "rts"])
        assert dict(early) == dict(late)

    def test_range_save_covers_every_register(self):
        body = ["movem.l d2-d7/a2-a6,-(sp)"]
        body += [f"clr.l {r.value.lower()}" for r in R if r.is_preserved]
        body += ["movem.l (sp)+,d2-d7/a2-a6", "rts"]
        result = analyze_subroutine(body)
        assert result.registers_with(S.SAVED) == tuple(r for r in R if r.is_preserved)

    def test_resolve_status_matches_analyze(self):
        body = UNSAFE_SUBROUTINE.splitlines()
        assert dict(resolve_status(track_registers(body))) == dict(analyze_subroutine(body))


# ---------------------------------------------------------------------------
# File façade
# ---------------------------------------------------------------------------

class TestFileAnalysis:

    def test_mixed_file(self):
        fa = analyze_text(MIXED_FILE, path="mixed.s")
        assert isinstance(fa, FileAnalysis)
        assert [s.label for s in fa.subroutines] == ["Init", "Update"]
        init, update = fa.subroutines
        assert init.result[R.D0] is S.SCRATCH
        assert init.unsafe_sites == ()
        assert update.result[R.D4] is S.SAVED
        assert update.result[R.D5] is S.SAVED
        assert update.result[R.D6] is S.UNSAFE
        assert update.result[R.A0] is S.SCRATCH
        assert [(s.line_index, s.register) for s in fa.unsafe_sites] == [(9, R.D6)]
        assert not fa.is_clean

    def test_share_entry_labels(self):
        fa = analyze_text(TWO_LABELS_ONE_RETURN, AnalyzerConfig(share_entry_labels=True))
        assert [s.label for s in fa.subroutines] == ["Alpha", "Beta"]
        for sub in fa.subroutines:
            assert sub.result[R.D5] is S.UNSAFE

    def test_to_dict(self):
        d = analyze_text(MIXED_FILE, path="mixed.s").to_dict()
        assert d["file"] == "mixed.s"
        update = d["subroutines"][1]
        assert update["label"] == "Update"
        assert update["start_line"] == 5
        assert update["registers"]["D6"] == "unsafe"
        assert update["unsafe_sites"] == [{"line": 9, "register": "D6", "family": "data"}]

    def test_analyze_file(self, write_source):
        path = write_source(UNSAFE_SUBROUTINE)
        fa = analyze_file(path)
        assert fa.path == str(path)
        assert fa.subroutines[0].result.unsafe == (R.D2, R.D3, R.A4)

    def test_crlf_source(self, write_source):
        path = write_source(CLEAN_SUBROUTINE.replace("\n", "\r\n"))
        assert analyze_file(path).is_clean

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceReadError) as excinfo:
            read_source(tmp_path / "nope.s")
        assert excinfo.value.reason == "no such file"
        assert isinstance(excinfo.value, RegtrackError)

    def test_directory(self, tmp_path):
        with pytest.raises(SourceReadError):
            analyze_file(tmp_path)

    def test_byte_order_mark_stripped(self, tmp_path):
        path = tmp_path / "bom.s"
        path.write_bytes(b"\xef\xbb\xbfFoo:\n    move.l d0,d2\n    rts\n")
        fa = analyze_file(path)
        assert [s.label for s in fa.subroutines] == ["Foo"]
        assert fa.subroutines[0].result[R.D2] is S.UNSAFE

    def test_undecodable_bytes_replaced(self, tmp_path):
        path = tmp_path / "latin.s"
        path.write_bytes(b"Foo:\n    move.l d0,d2 ; caf\xe9\n    rts\n")
        fa = analyze_file(path)
        assert fa.subroutines[0].result[R.D2] is S.UNSAFE
