"""
Version control access for Git.

Reads file content at a revision, names the branches taking part in a
merge, understands the argument list git passes to external diff drivers
and registers sops-diff as a merge driver.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from sops_diff_tool.core.errors import VcsError

logger = logging.getLogger(__name__)

GIT_NULL_SHA = "0" * 40

# git config entries registering sops-diff as merge driver and merge tool
MERGE_DRIVER_CONFIG = [
    ("merge.sops.name", "SOPS merge tool"),
    # git reads the merge result back from %A, %P only names the file
    ("merge.sops.driver", "sops-diff --name %P --merge %A %O %B %A"),
    ("merge.sops.recursive", "binary"),
    ("mergetool.sops.cmd", "sops-diff --diff-tool=$EDITOR --merge $LOCAL $BASE $REMOTE $MERGED"),
    ("mergetool.sops.trustExitCode", "true"),
]

GITATTRIBUTES_LINES = [
    "*.enc.yaml merge=sops",
    "*.enc.json merge=sops",
    "*.enc.env merge=sops",
]


class Repository(Protocol):
    """Read access to a version controlled workspace."""

    def read_at_revision(self, ref: str, path: str) -> bytes:
        ...

    def current_branch_name(self) -> str:
        ...

    def merging_branch_name(self) -> str:
        ...


class GitRepository:
    """Repository backed by the git command line."""

    def __init__(self, cwd: Optional[Path] = None, timeout: float = 30.0):
        """
        Args:
            cwd: Directory git commands run in (current directory by default)
            timeout: Seconds to wait for a single git command
        """
        self._cwd = cwd
        self._timeout = timeout

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                ["git", *args],
                capture_output=True,
                cwd=self._cwd,
                timeout=self._timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            raise VcsError(f"cannot run git {args[0]}: {e}", stage="git") from e

    def read_at_revision(self, ref: str, path: str) -> bytes:
        """
        Read a file as it exists at a revision (git show REV:path).

        Raises:
            VcsError: If git fails, e.g. unknown revision or path
        """
        object_name = f"{ref}:{path}"
        result = self._git("show", object_name)
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise VcsError(stderr or "git show failed", path=object_name, stage="git show")
        logger.debug("Read %d bytes from %s", len(result.stdout), object_name)
        return result.stdout

    def current_branch_name(self) -> str:
        """Name of the checked out branch, or "your branch" if unknown."""
        try:
            result = self._git("symbolic-ref", "--short", "HEAD")
        except VcsError:
            return "your branch"
        name = result.stdout.decode("utf-8", errors="replace").strip()
        if result.returncode != 0 or not name:
            return "your branch"
        return name

    def merging_branch_name(self) -> str:
        """Describe the branch being merged in, from MERGE_HEAD."""
        try:
            exists = self._git("rev-parse", "-q", "--verify", "MERGE_HEAD")
            if exists.returncode != 0:
                return "incoming changes"
            result = self._git("name-rev", "--name-only", "MERGE_HEAD")
        except VcsError:
            return "incoming changes"
        name = result.stdout.decode("utf-8", errors="replace").strip()
        if result.returncode != 0 or not name:
            return "incoming changes"
        return f"incoming changes from {name}"

    def configure_merge_driver(self) -> None:
        """Register sops-diff in the global git config."""
        for key, value in MERGE_DRIVER_CONFIG:
            result = self._git("config", "--global", key, value)
            if result.returncode != 0:
                stderr = result.stderr.decode("utf-8", errors="replace").strip()
                raise VcsError(
                    stderr or f"git config {key} failed", stage="git config"
                )
            logger.debug("Configured %s", key)


def split_revision_reference(arg: str) -> Optional[tuple[str, str]]:
    """
    Split "REV:path" into (rev, path).

    Returns:
        The pair, or None if arg is not a revision reference
    """
    if ":" not in arg:
        return None
    ref, path = arg.split(":", 1)
    if not ref or not path:
        return None
    # A drive letter like C:\secrets.yaml is a plain path
    if len(ref) == 1 and path[:1] in ("\\", "/"):
        return None
    return ref, path


def parse_git_diff_args(args: list[str]) -> Optional[tuple[str, str]]:
    """
    Pick the two files to compare from a git external diff invocation.

    Git calls diff drivers with:
        path old-file old-hex old-mode new-file new-hex new-mode

    The old blob is always a temp file. The new side is the working copy
    (path) unless new-hex names a real object, in which case git supplied
    a temp file for it as well.

    Returns:
        (old_file, new_file), or None if args do not look like a git invocation
    """
    if len(args) < 7:
        return None
    path, old_file, _old_hex, _old_mode, new_file, new_hex = args[:6]
    if new_hex != GIT_NULL_SHA:
        return old_file, new_file
    return old_file, path
