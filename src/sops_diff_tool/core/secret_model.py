"""
Data models for decrypted secret documents, diffs and conflicts.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class Format(Enum):
    """Structured document format."""
    YAML = "yaml"
    JSON = "json"
    ENV = "env"

    @property
    def sops_type(self) -> str:
        """Name sops uses for --input-type/--output-type."""
        if self is Format.ENV:
            return "dotenv"
        return self.value

    @property
    def extension(self) -> str:
        return f".{self.value}"


class DiffStatus(Enum):
    """Status of a key in diff comparison."""
    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class SecretDocument:
    """A parsed, decrypted secrets file."""
    name: str  # File path or "REV:path" reference it was read from
    format: Format
    data: Any  # Mapping, sequence or scalar
    plaintext: bool = False  # True if the source had no encryption envelope

    @property
    def basename(self) -> str:
        return Path(self.name.split(":", 1)[-1]).name

    def __repr__(self) -> str:
        return f"SecretDocument({self.name!r}, format={self.format.value})"


# === Diff related models ===

@dataclass(frozen=True)
class Change:
    """A single key-level difference between two documents."""
    path: str  # Flattened path like "database.hosts[0]"
    status: DiffStatus
    left_value: Optional[Any] = None  # Only populated for full comparisons
    right_value: Optional[Any] = None


@dataclass
class DiffSummary:
    """Summary statistics for a diff."""
    added: int = 0
    removed: int = 0
    modified: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.modified


@dataclass
class DiffResult:
    """Result of comparing two secret documents."""
    left: SecretDocument
    right: SecretDocument
    changes: list[Change] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


# === Conflict related models ===

@dataclass(frozen=True)
class ConflictSides:
    """The two variants of a conflicted text, markers stripped."""
    ours: str
    theirs: str
    base: Optional[str] = None  # Only present for diff3-style blocks
    block_count: int = 0


# === Configuration ===

@dataclass(frozen=True)
class DiffOptions:
    """
    Options threaded through every operation.

    Attributes:
        summary: Report changed keys only, never values
        format: Forced format, or None to infer from file extensions
        color: Colorize output when writing to a terminal
        diff_tool: External diff/merge tool command, or None
        git: Accept REV:path references and git diff-driver arguments
        error_on_plaintext: Abort instead of warning when an input is not encrypted
        type_sensitive: Compare scalar type as well as text
        output: File to write a conflict block to instead of stdout
    """
    summary: bool = False
    format: Optional[Format] = None
    color: bool = True
    diff_tool: Optional[str] = None
    git: bool = False
    error_on_plaintext: bool = False
    type_sensitive: bool = False
    output: Optional[Path] = None
