"""
Canonical rendering of documents and diff reports.

Documents are rendered with sorted keys so that two semantically equal
documents always produce the same text, then compared line by line.
"""

import difflib
import json
import logging
from collections.abc import Mapping
from typing import Any

import yaml

from sops_diff_tool.core.differ import scalar_text
from sops_diff_tool.core.errors import MalformedInputError
from sops_diff_tool.core.secret_model import Change, DiffResult, Format
from sops_diff_tool.utils.colors import DIFF_SYMBOLS

logger = logging.getLogger(__name__)

DIFF_CONTEXT_LINES = 3

SUMMARY_HEADER = (
    "Summary of key changes:\n"
    "! = modified key, + = added key, - = removed key\n"
    "--------------------------------------\n"
)
NO_CHANGES_MESSAGE = "No changes detected in keys\n"


def _env_value(value: Any) -> str:
    """Quote an env value when parsing it back would otherwise alter it."""
    text = scalar_text(value)
    quoted = len(text) > 1 and text[0] in ("'", '"') and text[-1] == text[0]
    if text != text.strip() or quoted:
        return f'"{text}"'
    return text


def render_document(data: Any, fmt: Format) -> str:
    """
    Render a document as canonical text.

    Args:
        data: Parsed document
        fmt: Output format

    Returns:
        Text ending in a newline, keys sorted

    Raises:
        MalformedInputError: If the document cannot be expressed in fmt
    """
    if fmt is Format.ENV:
        if not isinstance(data, Mapping):
            raise MalformedInputError(
                f"env output needs a flat mapping, got {type(data).__name__}",
                stage="render",
            )
        return "".join(
            f"{key}={_env_value(data[key])}\n" for key in sorted(data)
        )

    try:
        if fmt is Format.JSON:
            return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
        return yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=True,
            allow_unicode=True,
        )
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise MalformedInputError(
            f"cannot render as {fmt.value}: {e}", stage="render"
        ) from e


def _split_lines(text: str) -> list[str]:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    return lines


def unified_diff(
    left_text: str,
    right_text: str,
    left_name: str,
    right_name: str,
    context: int = DIFF_CONTEXT_LINES,
) -> str:
    """
    Line-based unified diff with "--- a/<name>" / "+++ b/<name>" headers.

    Returns:
        The diff text, empty if the texts are equal
    """
    return "".join(difflib.unified_diff(
        _split_lines(left_text),
        _split_lines(right_text),
        fromfile=f"a/{left_name}",
        tofile=f"b/{right_name}",
        n=context,
    ))


def format_change(change: Change) -> str:
    """Summary line for a change: marker and path, never the value."""
    return f"{DIFF_SYMBOLS[change.status.value]} {change.path}"


def format_summary(changes: list[Change]) -> str:
    """Summary report listing changed keys, or a no-changes message."""
    if not changes:
        return NO_CHANGES_MESSAGE
    lines = [format_change(change) for change in sorted(changes, key=lambda c: c.path)]
    return SUMMARY_HEADER + "\n".join(lines) + "\n"


def render_full_diff(result: DiffResult) -> str:
    """Unified diff of both documents' canonical text."""
    left_text = render_document(result.left.data, result.left.format)
    right_text = render_document(result.right.data, result.right.format)
    return unified_diff(
        left_text,
        right_text,
        result.left.basename,
        result.right.basename,
    )


def render_report(result: DiffResult, summary: bool = False) -> str:
    """
    Render a diff result.

    Args:
        result: Result of diff_documents
        summary: Keys only (safe to publish) instead of a full value diff

    Returns:
        The report text
    """
    if summary:
        return format_summary(result.changes)
    return render_full_diff(result)
