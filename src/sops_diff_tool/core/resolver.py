"""
Conflict resolution for encrypted files.

Two workflows:
1. A file left with conflict markers by git: both sides are decrypted and
   re-presented as one decrypted conflict block for a person to resolve.
2. A git merge driver: local, base and remote versions are decrypted,
   merged by an external tool, checked for leftover markers and encrypted
   back into the merged file.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from sops_diff_tool.core.conflicts import (
    build_conflict_block,
    compose,
    extract_sides,
    require_resolved,
)
from sops_diff_tool.core.errors import SopsDiffError
from sops_diff_tool.core.loader import SecretFileLoader, detect_format
from sops_diff_tool.core.secret_model import DiffOptions
from sops_diff_tool.utils.secure_files import private_temp_dir, write_private
from sops_diff_tool.utils.sops import Decryptor
from sops_diff_tool.utils.tools import run_tool
from sops_diff_tool.utils.vcs import Repository

logger = logging.getLogger(__name__)


def _decode(data: bytes, name: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SopsDiffError(f"not valid UTF-8: {e}", path=name, stage="decode") from e


def _write_output(path: Path, data: Union[bytes, str]) -> None:
    """Write a user-visible result file, reporting OS failures as SopsDiffError."""
    try:
        write_private(path, data)
    except OSError as e:
        raise SopsDiffError(e.strerror or str(e), path=path, stage="write") from e


class ConflictResolver:
    """Decrypts conflicted or diverging versions of an encrypted file."""

    def __init__(
        self,
        decryptor: Decryptor,
        repository: Repository,
        options: Optional[DiffOptions] = None,
    ):
        """
        Args:
            decryptor: Decryption and encryption capability
            repository: Source of branch names
            options: Diff options (format, plaintext policy, diff tool)
        """
        self._decryptor = decryptor
        self._repository = repository
        self._options = options or DiffOptions()
        self._loader = SecretFileLoader(decryptor, repository, self._options)

    def prepare_conflict(self, path: Path) -> str:
        """
        Build a decrypted conflict block from a conflicted encrypted file.

        Args:
            path: File containing git conflict markers

        Returns:
            Marked block labelled with the current and incoming branch names

        Raises:
            NoConflictMarkersError: If the file has no conflict
            DecryptionError: If either side cannot be decrypted
        """
        name = str(path)
        content = _decode(self._loader.read_source(name), name)
        sides = extract_sides(content, name=name)
        fmt = detect_format(name, self._options.format)

        ours, _ = self._loader.decrypt(f"{sides.ours}\n".encode("utf-8"), fmt, f"{name} (ours)")
        theirs, _ = self._loader.decrypt(f"{sides.theirs}\n".encode("utf-8"), fmt, f"{name} (theirs)")

        logger.info("Decrypted %d conflict block(s) in %s", sides.block_count, name)
        return compose(
            _decode(ours, name),
            _decode(theirs, name),
            self._repository.current_branch_name(),
            self._repository.merging_branch_name(),
        )

    def write_conflict_file(self, content: str, output: Path) -> None:
        """Write a decrypted conflict block with owner-only permissions."""
        _write_output(output, content)
        logger.info("Wrote decrypted conflict to %s", output)

    def merge(
        self,
        local: Path,
        base: Path,
        remote: Path,
        merged: Path,
        name: Optional[str] = None,
    ) -> None:
        """
        Merge three encrypted versions through a decrypted edit.

        The decrypted copies only exist in a private temporary directory for
        the duration of the call.

        Args:
            local: Current branch version
            base: Common ancestor version
            remote: Incoming version
            merged: Where the encrypted result is written
            name: Path used to infer the format (defaults to merged)

        Raises:
            UnresolvedConflictError: If markers remain after editing
            ExternalToolError: If the merge tool fails
        """
        label = name or str(merged)
        fmt = detect_format(label, self._options.format)

        decrypted = {}
        for role, path in (("LOCAL", local), ("BASE", base), ("REMOTE", remote)):
            raw = self._loader.read_source(str(path))
            content, _ = self._loader.decrypt(raw, fmt, f"{label} ({role.lower()})")
            decrypted[role] = content

        with private_temp_dir() as workdir:
            staged = {}
            for role, content in decrypted.items():
                staged[role] = workdir / f"{role}{fmt.extension}"
                write_private(staged[role], content)

            merged_path = workdir / f"MERGED{fmt.extension}"
            write_private(merged_path, build_conflict_block(
                _decode(decrypted["LOCAL"], label),
                _decode(decrypted["REMOTE"], label),
                start_label="LOCAL",
                end_label="REMOTE",
                base=_decode(decrypted["BASE"], label),
            ))

            if self._options.diff_tool:
                run_tool(self._options.diff_tool, staged["LOCAL"], staged["REMOTE"], merged_path)
            else:
                logger.warning("No diff tool specified, leaving conflict markers in place")

            result = merged_path.read_bytes()

        require_resolved(_decode(result, label), name=label)
        encrypted = self._decryptor.encrypt(result, fmt, label)
        _write_output(merged, encrypted)
        logger.info("Merged and encrypted %s", label)
