"""
Key-level comparison of secret documents.

Documents are flattened into path -> scalar mappings ("db.hosts[0]") and
the two mappings are compared path by path.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from sops_diff_tool.core.errors import MalformedInputError
from sops_diff_tool.core.secret_model import (
    Change,
    DiffOptions,
    DiffResult,
    DiffStatus,
    DiffSummary,
    SecretDocument,
)

logger = logging.getLogger(__name__)


def scalar_text(value: Any) -> str:
    """Canonical text of a scalar, used for comparison and key names."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        # 1.0 and 1 are the same number in YAML and JSON
        return str(int(value))
    return str(value)


def _scalar_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    return type(value).__name__


def values_equal(left: Any, right: Any, type_sensitive: bool = False) -> bool:
    """
    Compare two scalars.

    By default two values are equal when their canonical text is equal, so
    false and "false" compare equal. With type_sensitive the kinds must match
    as well; ints and floats are compared numerically.
    """
    if not type_sensitive:
        return scalar_text(left) == scalar_text(right)
    kind = _scalar_kind(left)
    if kind != _scalar_kind(right):
        return False
    if kind == "number":
        return left == right
    return scalar_text(left) == scalar_text(right)


def flatten(document: Any, prefix: str = "") -> dict[str, Any]:
    """
    Flatten a nested document into a mapping of path to scalar.

    Mapping members extend the path with ".key" (just "key" at the root),
    sequence members with "[index]". Empty mappings and sequences contribute
    no entries. A scalar root is recorded under the prefix itself.

    Raises:
        MalformedInputError: If a container contains itself (YAML aliases
            can build such documents)
    """
    result: dict[str, Any] = {}
    _flatten_into(document, prefix, result, set())
    return result


def _flatten_into(value: Any, path: str, result: dict[str, Any], active: set[int]) -> None:
    if not isinstance(value, (Mapping, list, tuple)):
        result[path] = value
        return

    # Shared aliases are fine, only containers on the current path form a cycle
    if id(value) in active:
        raise MalformedInputError(
            f"document refers back to itself at {path or '<root>'}", stage="parse"
        )
    active.add(id(value))
    if isinstance(value, Mapping):
        for key, child in value.items():
            key_text = key if isinstance(key, str) else scalar_text(key)
            _flatten_into(child, f"{path}.{key_text}" if path else key_text, result, active)
    else:
        for index, child in enumerate(value):
            _flatten_into(child, f"{path}[{index}]", result, active)
    active.discard(id(value))


def compute_changes(
    left: Mapping[str, Any],
    right: Mapping[str, Any],
    type_sensitive: bool = False,
    include_values: bool = False,
) -> list[Change]:
    """
    Compare two flattened documents.

    Args:
        left: Flattened old document
        right: Flattened new document
        type_sensitive: Compare scalar types as well as text
        include_values: Carry old/new values on each Change

    Returns:
        Changes sorted by path; empty when nothing differs
    """
    changes = []

    # Removed or modified (in left)
    for path, left_value in left.items():
        if path not in right:
            changes.append(Change(
                path=path,
                status=DiffStatus.REMOVED,
                left_value=left_value if include_values else None,
            ))
        elif not values_equal(left_value, right[path], type_sensitive):
            changes.append(Change(
                path=path,
                status=DiffStatus.MODIFIED,
                left_value=left_value if include_values else None,
                right_value=right[path] if include_values else None,
            ))

    # Added (in right but not in left)
    for path, right_value in right.items():
        if path not in left:
            changes.append(Change(
                path=path,
                status=DiffStatus.ADDED,
                right_value=right_value if include_values else None,
            ))

    changes.sort(key=lambda change: change.path)
    return changes


def summarize(changes: list[Change]) -> DiffSummary:
    """Count changes per status."""
    summary = DiffSummary()
    for change in changes:
        if change.status is DiffStatus.ADDED:
            summary.added += 1
        elif change.status is DiffStatus.REMOVED:
            summary.removed += 1
        elif change.status is DiffStatus.MODIFIED:
            summary.modified += 1
    return summary


def _flatten_document(document: SecretDocument) -> dict[str, Any]:
    try:
        return flatten(document.data)
    except MalformedInputError as e:
        raise MalformedInputError(e.message, path=document.name, stage=e.stage) from e


def diff_documents(
    left: SecretDocument,
    right: SecretDocument,
    options: Optional[DiffOptions] = None,
) -> DiffResult:
    """
    Compare two secret documents key by key.

    Values are kept on the changes only outside summary mode.
    """
    options = options or DiffOptions()
    changes = compute_changes(
        _flatten_document(left),
        _flatten_document(right),
        type_sensitive=options.type_sensitive,
        include_values=not options.summary,
    )
    summary = summarize(changes)
    logger.debug(
        "Compared %s and %s: %d added, %d removed, %d modified",
        left.name, right.name, summary.added, summary.removed, summary.modified,
    )
    return DiffResult(left=left, right=right, changes=changes, summary=summary)
