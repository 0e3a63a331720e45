"""Utility functions and external collaborators."""

from sops_diff_tool.utils.colors import DiffColors, DIFF_SYMBOLS
from sops_diff_tool.utils.secure_files import (
    private_temp_dir,
    private_temp_file,
    shred_file,
    write_private,
)

__all__ = [
    "DiffColors",
    "DIFF_SYMBOLS",
    "private_temp_dir",
    "private_temp_file",
    "shred_file",
    "write_private",
]
