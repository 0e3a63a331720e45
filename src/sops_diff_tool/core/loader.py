"""
Secret file loader.

Reads a file (or a file at a git revision), decrypts it through a
Decryptor and parses the result into a SecretDocument.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from sops_diff_tool.core.errors import (
    DecryptionError,
    MalformedInputError,
    PlaintextDetectedError,
    SopsDiffError,
    UnresolvableFormatError,
)
from sops_diff_tool.core.secret_model import DiffOptions, Format, SecretDocument
from sops_diff_tool.utils.sops import Decryptor
from sops_diff_tool.utils.vcs import Repository, split_revision_reference

logger = logging.getLogger(__name__)

EXTENSION_FORMATS = {
    ".yaml": Format.YAML,
    ".yml": Format.YAML,
    ".json": Format.JSON,
    ".env": Format.ENV,
}

# Formats tried after dotenv when an env file will not decrypt
ENV_DECRYPT_FALLBACKS = (Format.YAML, Format.JSON)

# Line prefixes that belong to YAML/JSON documents, not KEY=VALUE files
FOREIGN_LINE_PREFIXES = ("#", "{", "[", "---", "sops:")


def detect_format(name: str, forced: Optional[Format] = None) -> Format:
    """
    Infer the format of a file from its extension.

    Args:
        name: File path or "REV:path" reference
        forced: Explicit format, returned unchanged if given

    Returns:
        The format, YAML when the extension is unknown
    """
    if forced is not None:
        return forced
    suffix = Path(name).suffix.lower()
    return EXTENSION_FORMATS.get(suffix, Format.YAML)


def resolve_format(
    left: str, right: str, forced: Optional[Format] = None
) -> Format:
    """
    Resolve the single format a comparison runs under.

    Raises:
        UnresolvableFormatError: If the inferred formats differ and none is forced
    """
    if forced is not None:
        return forced
    left_format = detect_format(left)
    right_format = detect_format(right)
    if left_format is not right_format:
        raise UnresolvableFormatError(
            f"files appear to be different formats: {left_format.value} and "
            f"{right_format.value} (use --format to force one)",
            stage="format detection",
        )
    return left_format


def parse_env(text: str) -> dict[str, str]:
    """
    Parse KEY=VALUE text into a flat mapping.

    Blank lines, comments and lines that look like YAML or JSON fragments are
    skipped, as are lines without a key. A single pair of matching quotes
    around a value is removed. Later keys win.
    """
    result: dict[str, str] = {}
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith(FOREIGN_LINE_PREFIXES) or ": |" in line:
            continue

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue

        value = value.strip()
        if len(value) > 1 and value[0] in ("'", '"') and value[-1] == value[0]:
            value = value[1:-1]

        result[key] = value
    return result


def parse_document(data: bytes, fmt: Format, name: str = "") -> Any:
    """
    Parse decrypted bytes into a document.

    An empty YAML document parses to an empty mapping.

    Raises:
        MalformedInputError: If data does not conform to the format
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedInputError(
            f"not valid UTF-8: {e}", path=name or None, stage="parse"
        ) from e

    if fmt is Format.ENV:
        return parse_env(text)

    if fmt is Format.JSON:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedInputError(
                f"invalid JSON: {e}", path=name or None, stage="parse"
            ) from e

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedInputError(
            f"invalid YAML: {e}", path=name or None, stage="parse"
        ) from e
    return {} if document is None else document


class SecretFileLoader:
    """Loads and decrypts secret files into SecretDocument models."""

    def __init__(
        self,
        decryptor: Decryptor,
        repository: Optional[Repository] = None,
        options: Optional[DiffOptions] = None,
    ):
        """
        Args:
            decryptor: Decryption capability
            repository: Version control capability for REV:path references
            options: Diff options (git support, plaintext strictness)
        """
        self._decryptor = decryptor
        self._repository = repository
        self._options = options or DiffOptions()

    def read_source(self, name: str) -> bytes:
        """Read raw bytes from a file path or, with git enabled, REV:path."""
        if self._options.git and self._repository is not None:
            reference = split_revision_reference(name)
            if reference is not None:
                ref, path = reference
                return self._repository.read_at_revision(ref, path)
        try:
            return Path(name).read_bytes()
        except OSError as e:
            raise SopsDiffError(
                e.strerror or str(e), path=name, stage="read"
            ) from e

    def decrypt(self, raw: bytes, fmt: Format, name: str) -> tuple[bytes, bool]:
        """
        Decrypt raw bytes.

        Returns:
            (decrypted bytes, True if the input was already plaintext)

        Raises:
            PlaintextDetectedError: Input is plaintext and strict mode is on
            DecryptionError: Decryption failed
        """
        try:
            return self._decryptor.decrypt(raw, fmt, name), False
        except PlaintextDetectedError:
            logger.debug("%s appears to be decrypted (no sops metadata found)", name)
            if self._options.error_on_plaintext:
                raise PlaintextDetectedError(
                    "file is not encrypted, aborting as --error-on-decrypted is enabled",
                    path=name,
                    stage="decrypt",
                )
            return raw, True
        except DecryptionError as e:
            if fmt is not Format.ENV:
                raise
            return self._decrypt_env_fallback(raw, name, e)

    def _decrypt_env_fallback(
        self, raw: bytes, name: str, error: DecryptionError
    ) -> tuple[bytes, bool]:
        """Retry an env file that sops wrapped as YAML or JSON."""
        for fallback in ENV_DECRYPT_FALLBACKS:
            logger.debug("Retrying decryption of %s as %s", name, fallback.value)
            try:
                return self._decryptor.decrypt(raw, fallback, name), False
            except (DecryptionError, PlaintextDetectedError):
                continue
        raise error

    def load(self, name: str, fmt: Format) -> SecretDocument:
        """
        Read, decrypt and parse one file.

        Args:
            name: File path or REV:path reference
            fmt: Resolved format

        Returns:
            SecretDocument with the parsed content
        """
        raw = self.read_source(name)
        decrypted, plaintext = self.decrypt(raw, fmt, name)
        data = parse_document(decrypted, fmt, name)
        logger.debug("Loaded %s as %s", name, fmt.value)
        return SecretDocument(name=name, format=fmt, data=data, plaintext=plaintext)

    def load_pair(self, left: str, right: str) -> tuple[SecretDocument, SecretDocument]:
        """Resolve the shared format and load both sides of a comparison."""
        fmt = resolve_format(left, right, self._options.format)
        return self.load(left, fmt), self.load(right, fmt)


def load_secret_file(
    name: str,
    decryptor: Decryptor,
    fmt: Optional[Format] = None,
    options: Optional[DiffOptions] = None,
) -> SecretDocument:
    """
    Convenience function to load a single secret file.

    Args:
        name: Path to the file
        decryptor: Decryption capability
        fmt: Format, inferred from the extension if omitted
        options: Diff options

    Returns:
        SecretDocument with the parsed content
    """
    loader = SecretFileLoader(decryptor, options=options)
    forced = fmt or (options.format if options else None)
    return loader.load(name, detect_format(name, forced))
