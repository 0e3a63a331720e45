"""
Exception hierarchy for sops-diff-tool.

Every error raised by the engine derives from SopsDiffError so the
application boundary can turn it into a single line of output.
"""

from pathlib import Path
from typing import Optional, Union


class SopsDiffError(Exception):
    """Base exception for all sops-diff-tool errors."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None
        self.stage = stage

    def describe(self) -> str:
        """One line of context: which file, which stage, then the cause."""
        parts = []
        if self.stage:
            parts.append(f"{self.stage} failed")
        if self.path:
            parts.append(f"for {self.path}")
        if not parts:
            return self.message
        return f"{' '.join(parts)}: {self.message}"


class UnresolvableFormatError(SopsDiffError):
    """Raised when the two inputs infer different formats and none is forced."""


class MalformedInputError(SopsDiffError):
    """Raised when content cannot be parsed under the resolved format."""


class DecryptionError(SopsDiffError):
    """Raised when the decryption service fails for a reason other than plaintext."""


class PlaintextDetectedError(SopsDiffError):
    """Raised when the input carries no encryption envelope."""


class NoConflictMarkersError(SopsDiffError):
    """Raised when conflict extraction is invoked on non-conflicted input."""


class MalformedConflictError(SopsDiffError):
    """Raised when conflict markers are nested, out of order or unterminated."""


class UnresolvedConflictError(SopsDiffError):
    """Raised when edited content still contains conflict markers."""


class VcsError(SopsDiffError):
    """Raised when a version control command fails."""


class ExternalToolError(SopsDiffError):
    """Raised when an external diff or merge tool cannot be run or fails."""
