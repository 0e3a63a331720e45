"""Tests for the error hierarchy and supporting utilities."""

import logging
import subprocess

import pytest

from sops_diff_tool.core.errors import (
    DecryptionError,
    ExternalToolError,
    MalformedConflictError,
    MalformedInputError,
    NoConflictMarkersError,
    PlaintextDetectedError,
    SopsDiffError,
    UnresolvableFormatError,
    UnresolvedConflictError,
    VcsError,
)
from sops_diff_tool.utils.log_handler import ConsoleLogHandler, setup_logging
from sops_diff_tool.utils.tools import run_tool


class TestErrors:
    @pytest.mark.parametrize("cls", [
        UnresolvableFormatError,
        MalformedInputError,
        DecryptionError,
        PlaintextDetectedError,
        NoConflictMarkersError,
        MalformedConflictError,
        UnresolvedConflictError,
        VcsError,
        ExternalToolError,
    ])
    def test_hierarchy(self, cls):
        assert issubclass(cls, SopsDiffError)

    def test_describe_with_context(self):
        error = DecryptionError("could not decrypt data key", path="secrets.yaml", stage="decrypt")
        assert error.describe() == "decrypt failed for secrets.yaml: could not decrypt data key"

    def test_describe_without_context(self):
        assert SopsDiffError("plain message").describe() == "plain message"

    def test_path_is_stringified(self, tmp_path):
        error = SopsDiffError("x", path=tmp_path / "a.yaml")
        assert error.path == str(tmp_path / "a.yaml")


class TestSetupLogging:
    def test_single_handler(self):
        setup_logging(logging.DEBUG)
        setup_logging(logging.WARNING)

        root = logging.getLogger()
        handlers = [h for h in root.handlers if isinstance(h, ConsoleLogHandler)]
        assert len(handlers) == 1
        assert root.level == logging.WARNING

    def test_logs_to_stderr(self, capsys):
        setup_logging(logging.INFO)
        logging.getLogger("sops_diff_tool.test").info("hello")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "[INFO] sops_diff_tool.test: hello" in captured.err
        setup_logging()


class TestRunTool:
    def test_arguments(self, monkeypatch, tmp_path):
        seen = []
        monkeypatch.setattr(
            "sops_diff_tool.utils.tools.subprocess.run",
            lambda argv: seen.append(argv) or subprocess.CompletedProcess(argv, 0),
        )

        run_tool("code --wait --diff", tmp_path / "a", tmp_path / "b")

        assert seen == [["code", "--wait", "--diff", str(tmp_path / "a"), str(tmp_path / "b")]]

    def test_non_zero_exit(self, monkeypatch):
        monkeypatch.setattr(
            "sops_diff_tool.utils.tools.subprocess.run",
            lambda argv: subprocess.CompletedProcess(argv, 2),
        )
        with pytest.raises(ExternalToolError) as exc:
            run_tool("vimdiff")
        assert "status 2" in str(exc.value)

    def test_missing_tool(self, monkeypatch):
        def missing(argv):
            raise FileNotFoundError(2, "No such file or directory")

        monkeypatch.setattr("sops_diff_tool.utils.tools.subprocess.run", missing)
        with pytest.raises(ExternalToolError):
            run_tool("no-such-tool")

    def test_empty_command(self):
        with pytest.raises(ExternalToolError):
            run_tool("")
