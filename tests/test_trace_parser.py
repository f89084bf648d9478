"""
Tests for the Z3 trace log parser.

Test philosophy:
- Test the happy path (a realistic log builds the expected model)
- Test edge cases (re-instantiations, equalities, blocks, [eof])
- Test error cases (unknown lines, inconsistent blocks, versions)
- Test that lenient configuration skips instead of failing
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from qiprofiler.exceptions import ModelError, TraceError
from qiprofiler.trace import (
    LENIENT_CONFIG,
    Discovered,
    Equality,
    InstantiationKey,
    NewMatch,
    QuantifierCost,
    TermKind,
    TraceConfig,
    TraceParser,
    Trigger,
    parse_trace,
    parse_trace_file,
)

from helpers import SAMPLE_LOG


def parse_lines(text: str, config: TraceConfig | None = None):
    return parse_trace(textwrap.dedent(text).splitlines(), config)


@pytest.fixture
def sample_model():
    return parse_trace(SAMPLE_LOG.splitlines())


# =============================================================================
# Happy Path Tests
# =============================================================================


class TestParseSampleLog:
    """Test parsing of a small but complete trace."""

    def test_tool_version(self, sample_model) -> None:
        assert sample_model.tool_version == "Z3 4.8.17"

    def test_terms(self, sample_model) -> None:
        quant = sample_model.term("#4")
        assert quant.kind == TermKind.QUANT
        assert quant.name == "ax_f"
        assert quant.args == ("#3", "#2")

        assert sample_model.term("#2").kind == TermKind.APP
        assert sample_model.term("#2").args == ("#1",)
        assert sample_model.term("#1").kind == TermKind.VAR

    def test_instantiation_keys_in_log_order(self, sample_model) -> None:
        assert list(sample_model.instantiations()) == [
            InstantiationKey(0x1, 0),
            InstantiationKey(0x2, 0),
            InstantiationKey(0x1, 1),
            InstantiationKey(0x3, 0),
            InstantiationKey(0x4, 0),
            InstantiationKey(0x5, 0),
        ]

    def test_new_match_frame(self, sample_model) -> None:
        inst = sample_model.instantiation(InstantiationKey(0x1))

        assert inst.frame == NewMatch(
            quantifier="#4", pattern="#3", bound=("#10",), used=(Trigger("#11"),)
        )
        assert inst.is_new_match
        assert inst.quantifier == "#4"

    def test_instance_block(self, sample_model) -> None:
        inst = sample_model.instantiation(InstantiationKey(0x1))

        assert len(inst.instances) == 1
        assert inst.instances[0].proof == "#30"
        assert inst.instances[0].generation == 1
        assert inst.produced_terms == ("#12",)

    def test_instance_without_proof(self, sample_model) -> None:
        inst = sample_model.instantiation(InstantiationKey(0x2))

        assert inst.instances[0].proof is None
        assert inst.instances[0].generation == 2
        assert inst.produced_terms == ("#13",)

    def test_reinstantiation_gets_new_version(self, sample_model) -> None:
        inst = sample_model.instantiation(InstantiationKey(0x1, 1))

        assert inst.frame.used == (Trigger("#13"),)
        assert inst.produced_terms == ()
        assert len(inst.instances) == 1

    def test_equality_used_term(self, sample_model) -> None:
        inst = sample_model.instantiation(InstantiationKey(0x3))

        assert inst.frame.used == (Equality("#12", "#11"),)
        assert inst.instances == ()

    def test_discovered_frame(self, sample_model) -> None:
        inst = sample_model.instantiation(InstantiationKey(0x4))

        assert inst.frame == Discovered(method="theory-solving", quantifier="#7")
        assert not inst.is_new_match
        assert inst.produced_terms == ("#14",)

    def test_lines_after_eof_ignored(self) -> None:
        parser = TraceParser()
        for line in SAMPLE_LOG.splitlines():
            parser.process_line(line)

        assert parser.finished
        assert parser.skipped_lines == 0
        assert parser.line_count == len(SAMPLE_LOG.splitlines())

    def test_quant_costs(self, sample_model) -> None:
        assert sample_model.quant_costs() == [
            QuantifierCost(quantifier="ax_f", instantiations=3, cost=3),
            QuantifierCost(quantifier="ax_g", instantiations=3, cost=3),
        ]

    def test_model_is_read_only(self, sample_model) -> None:
        with pytest.raises(TypeError):
            sample_model.terms["#99"] = None  # type: ignore[index]


class TestTermLookup:
    """Test name resolution on the model."""

    def test_unknown_term(self, sample_model) -> None:
        with pytest.raises(ModelError) as exc_info:
            sample_model.term("#999")

        assert exc_info.value.reference == "#999"

    def test_unnamed_term(self, sample_model) -> None:
        with pytest.raises(ModelError, match="has no name"):
            sample_model.term_name("#1")

    def test_unknown_instantiation(self, sample_model) -> None:
        with pytest.raises(ModelError):
            sample_model.instantiation(InstantiationKey(0x77))

    def test_term_redefinition_newest_wins(self) -> None:
        model = parse_lines("""\
            [mk-quant] #4 old_name 1 #3 #2
            [pop] 1 1
            [mk-quant] #4 new_name 1 #3 #2
        """)

        assert model.term_name("#4") == "new_name"

    def test_namespaced_term_ids(self) -> None:
        model = parse_lines("""\
            [mk-app] datatype#3 cons datatype#1 #2
        """)

        assert model.term("datatype#3").args == ("datatype#1", "#2")


# =============================================================================
# Error Cases
# =============================================================================


class TestStrictParsing:
    """The default configuration fails on the first problem."""

    def test_unknown_tag(self) -> None:
        with pytest.raises(TraceError) as exc_info:
            parse_lines("""\
                [mk-app] #1 a
                [bogus] 1 2
            """)

        assert exc_info.value.source == "syntax"
        assert exc_info.value.line_number == 2
        assert "line 2" in exc_info.value.message

    def test_line_without_tag(self) -> None:
        with pytest.raises(TraceError, match="Expected a \\[tag\\]"):
            parse_lines("not a trace line")

    def test_bad_fingerprint(self) -> None:
        with pytest.raises(TraceError, match="fingerprint"):
            parse_lines("[new-match] 12 #4 #3 ; #1")

    def test_new_match_too_short(self) -> None:
        with pytest.raises(TraceError):
            parse_lines("[new-match] 0x1 #4")

    def test_unterminated_equality(self) -> None:
        with pytest.raises(TraceError, match="Unterminated equality"):
            parse_lines("[new-match] 0x1 #4 #3 ; (#1")

    def test_bad_number(self) -> None:
        with pytest.raises(TraceError) as exc_info:
            parse_lines("[mk-var] #1 x")

        assert exc_info.value.source == "syntax"

    def test_instance_of_unknown_fingerprint(self) -> None:
        with pytest.raises(TraceError) as exc_info:
            parse_lines("[instance] 0x9")

        assert exc_info.value.source == "consistency"

    def test_nested_instance(self) -> None:
        with pytest.raises(TraceError, match="inside the block"):
            parse_lines("""\
                [new-match] 0x1 #4 #3 ; #1
                [instance] 0x1
                [instance] 0x1
            """)

    def test_end_without_instance(self) -> None:
        with pytest.raises(TraceError):
            parse_lines("[end-of-instance]")

    def test_unterminated_block(self) -> None:
        with pytest.raises(TraceError, match="Log ended inside"):
            parse_lines("""\
                [new-match] 0x1 #4 #3 ; #1
                [instance] 0x1
                [attach-enode] #5 1
            """)

    def test_unsupported_version(self) -> None:
        with pytest.raises(TraceError) as exc_info:
            parse_lines("[tool-version] Z3 5.0.0")

        assert exc_info.value.source == "version"

    def test_unsupported_tool(self) -> None:
        with pytest.raises(TraceError, match="Unsupported tool"):
            parse_lines("[tool-version] cvc5 1.0")


class TestLenientParsing:
    """Lenient configurations skip what they are told to skip."""

    def test_invalid_lines_skipped(self) -> None:
        parser = TraceParser(TraceConfig(ignore_invalid_lines=True))
        for line in ["[bogus] 1", "garbage", "[mk-app] #1 a"]:
            parser.process_line(line)

        model = parser.build()

        assert parser.skipped_lines == 2
        assert model.term_name("#1") == "a"

    def test_invalid_lines_do_not_skip_consistency(self) -> None:
        with pytest.raises(TraceError):
            parse_lines("[instance] 0x9", TraceConfig(ignore_invalid_lines=True))

    def test_consistency_skipped(self) -> None:
        model = parse_lines(
            """\
            [instance] 0x9
            [end-of-instance]
            [mk-app] #1 a
            """,
            TraceConfig(skip_consistency_checks=True),
        )

        assert len(model.instantiations()) == 0
        assert model.term_name("#1") == "a"

    def test_unterminated_block_closed(self) -> None:
        model = parse_lines(
            """\
            [new-match] 0x1 #4 #3 ; #1
            [instance] 0x1
            [attach-enode] #5 1
            """,
            TraceConfig(skip_consistency_checks=True),
        )

        assert model.instantiation(InstantiationKey(0x1)).produced_terms == ("#5",)

    def test_skipped_nested_block_keeps_its_terms(self) -> None:
        model = parse_lines(
            """\
            [new-match] 0x1 #4 #3 ; #1
            [new-match] 0x2 #4 #3 ; #1
            [instance] 0x1
            [attach-enode] #5 1
            [instance] 0x2
            [attach-enode] #6 1
            [end-of-instance]
            [attach-enode] #7 1
            [end-of-instance]
            """,
            TraceConfig(skip_consistency_checks=True),
        )

        assert model.instantiation(InstantiationKey(0x1)).produced_terms == ("#5", "#7")
        assert model.instantiation(InstantiationKey(0x2)).produced_terms == ()

    def test_skipped_unknown_block_keeps_its_terms(self) -> None:
        model = parse_lines(
            """\
            [new-match] 0x1 #4 #3 ; #1
            [instance] 0x9
            [instance] 0x1
            [attach-enode] #5 1
            [end-of-instance]
            [end-of-instance]
            [instance] 0x1
            [attach-enode] #6 1
            [end-of-instance]
            """,
            TraceConfig(skip_consistency_checks=True),
        )

        assert model.instantiation(InstantiationKey(0x1)).produced_terms == ("#6",)

    def test_version_check_skipped(self) -> None:
        model = parse_lines("[tool-version] Z3 5.0.0", LENIENT_CONFIG)

        assert model.tool_version == "Z3 5.0.0"

    def test_progress_bar(self) -> None:
        config = TraceConfig(show_progress=True)

        model = parse_trace(SAMPLE_LOG.splitlines(), config, total_lines=37)

        assert len(model.instantiations()) == 6


# =============================================================================
# Files
# =============================================================================


class TestParseFile:
    """Test reading logs from disk."""

    def test_parse_file(self, tmp_path: Path) -> None:
        path = tmp_path / "z3.log"
        path.write_text(SAMPLE_LOG)

        model = parse_trace_file(path)

        assert len(model.instantiations()) == 6
        assert model.line_count == len(SAMPLE_LOG.splitlines())

    def test_parse_file_with_progress(self, tmp_path: Path) -> None:
        path = tmp_path / "z3.log"
        path.write_text(SAMPLE_LOG)

        model = parse_trace_file(str(path), TraceConfig(show_progress=True))

        assert len(model.instantiations()) == 6

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TraceError) as exc_info:
            parse_trace_file(tmp_path / "missing.log")

        assert exc_info.value.source == "file_read"

    def test_directory(self, tmp_path: Path) -> None:
        with pytest.raises(TraceError, match="not a file"):
            parse_trace_file(tmp_path)

    def test_file_too_large(self, tmp_path: Path) -> None:
        path = tmp_path / "z3.log"
        path.write_text(SAMPLE_LOG * 100)

        with pytest.raises(TraceError) as exc_info:
            parse_trace_file(path, TraceConfig(max_file_size_mb=0.001))

        assert exc_info.value.source == "resource_limit"

    def test_error_serialization(self, tmp_path: Path) -> None:
        path = tmp_path / "z3.log"
        path.write_text("[bogus]\n")

        with pytest.raises(TraceError) as exc_info:
            parse_trace_file(path)

        data = exc_info.value.to_dict()
        assert data["error_type"] == "TraceError"
        assert data["line_number"] == 1
        assert data["detail"] == "[bogus]"
