"""
sops-diff-tool: Semantic diff and conflict resolution for SOPS-encrypted files.
"""

__version__ = "0.2.0"

from sops_diff_tool.core.secret_model import (
    Change,
    DiffOptions,
    DiffStatus,
    Format,
    SecretDocument,
)

__all__ = [
    "Change",
    "DiffOptions",
    "DiffStatus",
    "Format",
    "SecretDocument",
]
