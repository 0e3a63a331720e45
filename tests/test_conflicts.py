"""Tests for conflict block extraction and composition."""

import pytest

from sops_diff_tool.core.conflicts import (
    build_conflict_block,
    compose,
    extract_sides,
    has_conflict_markers,
    is_marker_line,
    require_resolved,
    validate_resolved,
)
from sops_diff_tool.core.errors import (
    MalformedConflictError,
    NoConflictMarkersError,
    UnresolvedConflictError,
)

SIMPLE = "x\n<<<<<<< HEAD\na\n=======\nb\n>>>>>>> br\ny\n"

DIFF3 = (
    "top\n"
    "<<<<<<< HEAD\n"
    "ours\n"
    "||||||| merged common ancestors\n"
    "base\n"
    "=======\n"
    "theirs\n"
    ">>>>>>> feature\n"
    "bottom\n"
)


class TestExtractSides:
    """Tests for extract_sides."""

    def test_single_block(self):
        sides = extract_sides(SIMPLE)
        assert sides.ours == "x\na\ny"
        assert sides.theirs == "x\nb\ny"
        assert sides.base is None
        assert sides.block_count == 1

    def test_multiple_blocks(self):
        text = (
            "<<<<<<< HEAD\na1\n=======\nb1\n>>>>>>> br\n"
            "common\n"
            "<<<<<<< HEAD\na2\na3\n=======\n>>>>>>> br\n"
        )
        sides = extract_sides(text)
        assert sides.ours == "a1\ncommon\na2\na3"
        assert sides.theirs == "b1\ncommon"
        assert sides.block_count == 2

    def test_no_markers_in_output(self):
        sides = extract_sides(SIMPLE)
        assert validate_resolved(sides.ours)
        assert validate_resolved(sides.theirs)

    def test_diff3_base(self):
        sides = extract_sides(DIFF3)
        assert sides.ours == "top\nours\nbottom"
        assert sides.theirs == "top\ntheirs\nbottom"
        assert sides.base == "top\nbase\nbottom"

    def test_base_dropped_when_some_blocks_lack_it(self):
        text = DIFF3 + "<<<<<<< HEAD\nx\n=======\ny\n>>>>>>> feature\n"
        assert extract_sides(text).base is None

    def test_bare_markers_without_labels(self):
        sides = extract_sides("<<<<<<<\na\n=======\nb\n>>>>>>>\n")
        assert (sides.ours, sides.theirs) == ("a", "b")

    def test_separator_outside_block_is_common(self):
        sides = extract_sides("=======\n" + SIMPLE)
        assert sides.ours == "=======\nx\na\ny"
        assert sides.theirs == "=======\nx\nb\ny"

    def test_lookalike_lines_are_content(self):
        text = "<<<<<<<<< not a marker\n" + SIMPLE
        sides = extract_sides(text)
        assert sides.ours.startswith("<<<<<<<<< not a marker\n")

    def test_crlf_input(self):
        sides = extract_sides(SIMPLE.replace("\n", "\r\n"))
        assert sides.ours == "x\na\ny"

    def test_unicode_line_breaks_stay_inside_lines(self):
        text = "pre fix\n<<<<<<< HEAD\na\x0cb\n=======\nc\x1dd\n>>>>>>> br\n"
        sides = extract_sides(text)
        assert sides.ours == "pre fix\na\x0cb"
        assert sides.theirs == "pre fix\nc\x1dd"

    def test_no_markers(self):
        with pytest.raises(NoConflictMarkersError) as exc:
            extract_sides("a: 1\nb: 2\n", name="secrets.yaml")
        assert exc.value.path == "secrets.yaml"
        assert "does not contain conflict markers" in str(exc.value)

    @pytest.mark.parametrize("text,problem", [
        ("<<<<<<< HEAD\na\n<<<<<<< HEAD\nb\n=======\nc\n>>>>>>> br\n", "inside the block"),
        ("a\n>>>>>>> br\n", "outside a conflict block"),
        ("a\n||||||| base\n", "outside a conflict block"),
        ("<<<<<<< HEAD\na\n=======\nb\n=======\nc\n>>>>>>> br\n", "second separator"),
        ("<<<<<<< HEAD\na\n>>>>>>> br\n", "end marker before the separator"),
        ("<<<<<<< HEAD\na\n=======\n||||||| base\n>>>>>>> br\n", "base marker"),
        ("<<<<<<< HEAD\na\n=======\nb\n", "never closed"),
    ])
    def test_malformed_blocks_fail(self, text, problem):
        with pytest.raises(MalformedConflictError) as exc:
            extract_sides(text, name="broken.yaml")
        assert problem in str(exc.value)
        assert exc.value.path == "broken.yaml"

    def test_unclosed_block_reports_start_line(self):
        with pytest.raises(MalformedConflictError) as exc:
            extract_sides("a\nb\n<<<<<<< HEAD\nc\n")
        assert "line 3" in str(exc.value)


class TestComposeBlocks:
    """Tests for build_conflict_block and compose."""

    def test_compose_labels(self):
        block = compose("a: 1\n", "a: 2\n", "main", "incoming changes from feature")
        assert block == (
            "<<<<<<< HEAD (main branch)\n"
            "a: 1\n"
            "=======\n"
            "a: 2\n"
            ">>>>>>> OTHER (incoming changes from feature)\n"
        )

    def test_sections_are_newline_terminated(self):
        block = build_conflict_block("a", "b", "L", "R")
        assert block == "<<<<<<< L\na\n=======\nb\n>>>>>>> R\n"

    def test_base_section(self):
        block = build_conflict_block("a\n", "b\n", "LOCAL", "REMOTE", base="o\n")
        assert block == "<<<<<<< LOCAL\na\n||||||| BASE\no\n=======\nb\n>>>>>>> REMOTE\n"

    def test_compose_then_extract(self):
        block = compose("a: 1\nb: 2\n", "a: 1\nb: 3\n", "main", "incoming changes")
        sides = extract_sides(block)
        assert sides.ours == "a: 1\nb: 2"
        assert sides.theirs == "a: 1\nb: 3"

    def test_composed_block_is_unresolved(self):
        assert not validate_resolved(compose("a", "b", "main", "feature"))


class TestValidateResolved:
    """Tests for marker detection in edited content."""

    def test_leftover_start_marker(self):
        assert validate_resolved("a: 1\n<<<<<<< \nb: 2\n") is False

    def test_markers_removed(self):
        assert validate_resolved("a: 1\nb: 2\n") is True

    @pytest.mark.parametrize("line", [
        "<<<<<<< HEAD",
        "||||||| base",
        "=======",
        ">>>>>>> feature",
        "=======\r\n",
    ])
    def test_marker_lines(self, line):
        assert is_marker_line(line)

    @pytest.mark.parametrize("line", [
        "a: <<<<<<< HEAD",
        "========",
        "<<<<<<<HEAD",
        "",
    ])
    def test_non_marker_lines(self, line):
        assert not is_marker_line(line)

    def test_has_conflict_markers(self):
        assert has_conflict_markers(SIMPLE)
        assert not has_conflict_markers("a\n=======\nb\n")

    def test_require_resolved(self):
        require_resolved("a: 1\n")
        with pytest.raises(UnresolvedConflictError) as exc:
            require_resolved(SIMPLE, name="secrets.yaml")
        assert exc.value.stage == "merge"
        assert exc.value.path == "secrets.yaml"
