"""Core logic for diff and conflict operations."""

from sops_diff_tool.core.secret_model import (
    Change,
    ConflictSides,
    DiffOptions,
    DiffResult,
    DiffStatus,
    DiffSummary,
    Format,
    SecretDocument,
)
from sops_diff_tool.core.loader import (
    SecretFileLoader,
    detect_format,
    load_secret_file,
    parse_document,
    parse_env,
    resolve_format,
)
from sops_diff_tool.core.differ import (
    compute_changes,
    diff_documents,
    flatten,
)
from sops_diff_tool.core.writer import (
    format_summary,
    render_document,
    render_report,
    unified_diff,
)
from sops_diff_tool.core.conflicts import (
    compose,
    extract_sides,
    require_resolved,
    validate_resolved,
)

__all__ = [
    "Change",
    "ConflictSides",
    "DiffOptions",
    "DiffResult",
    "DiffStatus",
    "DiffSummary",
    "Format",
    "SecretDocument",
    "SecretFileLoader",
    "detect_format",
    "load_secret_file",
    "parse_document",
    "parse_env",
    "resolve_format",
    "compute_changes",
    "diff_documents",
    "flatten",
    "format_summary",
    "render_document",
    "render_report",
    "unified_diff",
    "compose",
    "extract_sides",
    "require_resolved",
    "validate_resolved",
]
