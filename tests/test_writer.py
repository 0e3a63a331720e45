"""Tests for canonical rendering and diff reports."""

import json

import pytest
import yaml

from sops_diff_tool.core.differ import diff_documents, flatten
from sops_diff_tool.core.errors import MalformedInputError
from sops_diff_tool.core.loader import parse_document, parse_env
from sops_diff_tool.core.secret_model import (
    Change,
    DiffOptions,
    DiffStatus,
    Format,
    SecretDocument,
)
from sops_diff_tool.core.writer import (
    NO_CHANGES_MESSAGE,
    SUMMARY_HEADER,
    format_change,
    format_summary,
    render_document,
    render_report,
    unified_diff,
)

DATA = {"zeta": 1, "alpha": {"b": [1, "two"], "a": None}, "flag": True}


class TestRenderDocument:
    """Tests for render_document."""

    def test_yaml_keys_sorted(self):
        text = render_document(DATA, Format.YAML)
        assert text.index("alpha:") < text.index("flag:") < text.index("zeta:")
        assert yaml.safe_load(text) == DATA

    def test_json_indented_and_sorted(self):
        text = render_document(DATA, Format.JSON)
        assert text.endswith("}\n")
        assert '\n  "alpha": {' in text
        assert json.loads(text) == DATA

    def test_json_keeps_unicode(self):
        assert "café" in render_document({"name": "café"}, Format.JSON)

    def test_env_sorted_lines(self):
        assert render_document({"B": "2", "A": "1"}, Format.ENV) == "A=1\nB=2\n"

    def test_env_canonical_scalars(self):
        assert render_document({"A": None, "B": False}, Format.ENV) == "A=null\nB=false\n"

    def test_env_quotes_values_that_would_change(self):
        text = render_document({"A": " padded ", "B": '"q"'}, Format.ENV)
        assert parse_env(text) == {"A": " padded ", "B": '"q"'}

    def test_env_rejects_non_mapping(self):
        with pytest.raises(MalformedInputError):
            render_document(["a"], Format.ENV)

    @pytest.mark.parametrize("fmt", list(Format))
    def test_rendering_is_idempotent(self, fmt):
        data = {"B": "2", "A": "x y", "C": "3"}
        first = render_document(data, fmt)
        reparsed = parse_document(first.encode("utf-8"), fmt)
        assert render_document(reparsed, fmt) == first

    @pytest.mark.parametrize("data,fmt", [
        (
            {
                "database": {"hosts": ["db1", {"port": 5432, "tls": True}], "password": None},
                "ratio": 0.5,
                "retries": -3,
                "flags": [False, None, 2.0, []],
                "quoted": {"number": "1", "boolean": "yes", "empty": ""},
                "unicode": "café",
            },
            Format.YAML,
        ),
        ({1: "one", 2: {"nested": [1, [2, 3]]}}, Format.YAML),
        (["root", {"list": [True, None]}], Format.YAML),
        (
            {
                "database": {"hosts": ["db1", {"port": 5432, "tls": True}], "password": None},
                "ratio": 0.5,
                "flags": [False, None, 2.0, {}],
                "unicode": "café",
            },
            Format.JSON,
        ),
    ])
    def test_render_then_parse_keeps_every_path(self, data, fmt):
        text = render_document(data, fmt)
        assert flatten(parse_document(text.encode("utf-8"), fmt)) == flatten(data)

    def test_equal_documents_render_equal(self):
        left = {"a": 1, "b": {"c": 2, "d": 3}}
        right = {"b": {"d": 3, "c": 2}, "a": 1}
        assert render_document(left, Format.YAML) == render_document(right, Format.YAML)


class TestUnifiedDiff:
    """Tests for unified_diff."""

    def test_headers_and_hunk(self):
        diff = unified_diff("a: 1\nb: 2\n", "a: 1\nb: 3\n", "x.yaml", "y.yaml")

        lines = diff.splitlines()
        assert lines[0] == "--- a/x.yaml"
        assert lines[1] == "+++ b/y.yaml"
        assert lines[2].startswith("@@")
        assert "-b: 2" in lines
        assert "+b: 3" in lines
        assert " a: 1" in lines

    def test_equal_texts_produce_nothing(self):
        assert unified_diff("a: 1\n", "a: 1\n", "x", "y") == ""

    def test_three_lines_of_context(self):
        left = "".join(f"K{i}=v\n" for i in range(1, 11))
        right = left.replace("K5=v", "K5=changed")

        lines = unified_diff(left, right, "l.env", "r.env").splitlines()

        assert " K2=v" in lines
        assert " K8=v" in lines
        assert " K1=v" not in lines
        assert " K9=v" not in lines

    def test_missing_trailing_newline(self):
        diff = unified_diff("a", "b", "x", "y")
        assert "-a\n+b\n" in diff


class TestReports:
    """Tests for summary and full reports."""

    def _result(self, left, right, summary=False, fmt=Format.YAML):
        return diff_documents(
            SecretDocument(name="HEAD:secrets.yaml", format=fmt, data=left),
            SecretDocument(name="secrets.yaml", format=fmt, data=right),
            DiffOptions(summary=summary),
        )

    def test_format_change(self):
        assert format_change(Change("db.password", DiffStatus.MODIFIED)) == "! db.password"
        assert format_change(Change("C", DiffStatus.ADDED)) == "+ C"
        assert format_change(Change("old", DiffStatus.REMOVED)) == "- old"

    def test_summary_report(self):
        result = self._result(
            {"database": {"user": "admin", "password": "old"}},
            {"database": {"user": "admin", "password": "new"}},
            summary=True,
        )
        assert render_report(result, summary=True) == SUMMARY_HEADER + "! database.password\n"

    def test_summary_never_contains_values(self):
        result = self._result(
            {"token": "s3cr3t-old", "gone": "removed-value"},
            {"token": "s3cr3t-new", "fresh": "added-value"},
            summary=True,
        )
        report = render_report(result, summary=True)
        for value in ("s3cr3t-old", "s3cr3t-new", "removed-value", "added-value"):
            assert value not in report
        assert "+ fresh" in report
        assert "- gone" in report
        assert "! token" in report

    def test_no_changes_message(self):
        assert format_summary([]) == NO_CHANGES_MESSAGE
        result = self._result({"a": 1}, {"a": 1}, summary=True)
        assert render_report(result, summary=True) == "No changes detected in keys\n"

    def test_full_report_is_unified_diff(self):
        result = self._result({"password": "old"}, {"password": "new"})
        report = render_report(result)

        assert report.startswith("--- a/secrets.yaml\n+++ b/secrets.yaml\n")
        assert "-password: old" in report
        assert "+password: new" in report

    def test_full_report_empty_without_changes(self):
        assert render_report(self._result({"a": 1}, {"a": 1})) == ""
