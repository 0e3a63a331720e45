"""Shared fixtures: in-memory stand-ins for sops and git."""

from typing import Optional

import pytest

from sops_diff_tool.core.errors import DecryptionError, PlaintextDetectedError, VcsError
from sops_diff_tool.core.secret_model import Format

ENVELOPE = b"ENC:"


class FakeDecryptor:
    """
    Decryptor treating b"ENC:" + plaintext as an encrypted document.

    Content without the prefix is reported as plaintext. Formats listed in
    failing_formats always fail to decrypt.
    """

    def __init__(self, failing_formats: Optional[set[Format]] = None):
        self.failing_formats = failing_formats or set()
        self.calls: list[tuple[str, Format, str]] = []

    def decrypt(self, data: bytes, fmt: Format, name: str = "") -> bytes:
        self.calls.append(("decrypt", fmt, name))
        if fmt in self.failing_formats:
            raise DecryptionError(f"cannot decrypt as {fmt.sops_type}", path=name, stage="decrypt")
        if not data.startswith(ENVELOPE):
            raise PlaintextDetectedError("no sops metadata found", path=name, stage="decrypt")
        return data[len(ENVELOPE):]

    def encrypt(self, data: bytes, fmt: Format, name: str = "") -> bytes:
        self.calls.append(("encrypt", fmt, name))
        return ENVELOPE + data


class FakeRepository:
    """Repository serving file content from a dict keyed by (ref, path)."""

    def __init__(
        self,
        revisions: Optional[dict[tuple[str, str], bytes]] = None,
        current: str = "main",
        merging: str = "incoming changes from feature",
    ):
        self.revisions = revisions or {}
        self.current = current
        self.merging = merging

    def read_at_revision(self, ref: str, path: str) -> bytes:
        try:
            return self.revisions[(ref, path)]
        except KeyError:
            raise VcsError("unknown revision", path=f"{ref}:{path}", stage="git show")

    def current_branch_name(self) -> str:
        return self.current

    def merging_branch_name(self) -> str:
        return self.merging


def encrypted(text: str) -> bytes:
    return ENVELOPE + text.encode("utf-8")


@pytest.fixture
def decryptor() -> FakeDecryptor:
    return FakeDecryptor()


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()
