"""
Access to the sops binary for decrypting and encrypting documents.

The rest of the tool only depends on the Decryptor protocol, so tests can
substitute an in-memory implementation.
"""

import logging
import os
import subprocess
from typing import Optional, Protocol

from sops_diff_tool.core.errors import DecryptionError, PlaintextDetectedError
from sops_diff_tool.core.secret_model import Format
from sops_diff_tool.utils.secure_files import private_temp_file

logger = logging.getLogger(__name__)

# sops reports this when a document has no sops metadata block
PLAINTEXT_MARKER = "metadata not found"


class Decryptor(Protocol):
    """Decrypts and encrypts document bytes for a given format."""

    def decrypt(self, data: bytes, fmt: Format, name: str = "") -> bytes:
        ...

    def encrypt(self, data: bytes, fmt: Format, name: str = "") -> bytes:
        ...


class SopsCli:
    """Decryptor backed by the sops command line tool."""

    def __init__(self, binary: Optional[str] = None):
        """
        Args:
            binary: sops executable. Defaults to $SOPS_BINARY, then "sops".
        """
        self._binary = binary or os.environ.get("SOPS_BINARY") or "sops"

    @property
    def binary(self) -> str:
        return self._binary

    def decrypt(self, data: bytes, fmt: Format, name: str = "") -> bytes:
        """
        Decrypt a document.

        Raises:
            PlaintextDetectedError: The input has no sops metadata
            DecryptionError: Any other sops failure, with its stderr verbatim
        """
        return self._run("--decrypt", data, fmt, name)

    def encrypt(self, data: bytes, fmt: Format, name: str = "") -> bytes:
        """Encrypt a decrypted document using the creation rules sops finds."""
        return self._run("--encrypt", data, fmt, name)

    def _run(self, action: str, data: bytes, fmt: Format, name: str) -> bytes:
        stage = action.lstrip("-")
        with private_temp_file(data, suffix=fmt.extension) as staged:
            cmd = [
                self._binary,
                action,
                "--input-type", fmt.sops_type,
                "--output-type", fmt.sops_type,
                str(staged),
            ]
            logger.debug("Running sops %s (%s) for %s", stage, fmt.sops_type, name or staged)
            try:
                result = subprocess.run(cmd, capture_output=True)
            except (FileNotFoundError, OSError) as e:
                raise DecryptionError(
                    f"cannot run {self._binary}: {e}", path=name or None, stage=stage
                ) from e

        if result.returncode == 0:
            return result.stdout

        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        if action == "--decrypt" and PLAINTEXT_MARKER in stderr.lower():
            raise PlaintextDetectedError(
                "no sops metadata found", path=name or None, stage=stage
            )
        raise DecryptionError(
            stderr or f"sops exited with status {result.returncode}",
            path=name or None,
            stage=stage,
        )
