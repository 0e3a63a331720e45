"""
Owner-only temporary files for staging secret material on disk.

Anything written here is overwritten and removed when the context exits,
whether the body returned normally or raised.
"""

import logging
import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)

PRIVATE_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0600
TEMP_PREFIX = "sops-diff-"


def write_private(path: Path, data: Union[bytes, str]) -> None:
    """
    Write data to path, creating or truncating it with owner-only permissions.

    Args:
        path: Destination file
        data: Content; str is encoded as UTF-8
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_FILE_MODE)
    try:
        # Existing files keep their mode on open, tighten it explicitly
        os.fchmod(fd, PRIVATE_FILE_MODE)
        os.write(fd, data)
    finally:
        os.close(fd)


def shred_file(path: Path) -> None:
    """Overwrite a file with zeros and remove it. Missing files are ignored."""
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return
    try:
        with open(path, "r+b") as handle:
            handle.write(b"\0" * size)
            handle.flush()
            os.fsync(handle.fileno())
    except OSError as e:
        logger.debug("Could not overwrite %s before removal: %s", path, e)
    path.unlink(missing_ok=True)


@contextmanager
def private_temp_file(
    data: Union[bytes, str] = b"",
    suffix: str = "",
    directory: Optional[Path] = None,
) -> Iterator[Path]:
    """
    Stage data in an owner-only temporary file.

    Args:
        data: Initial content
        suffix: File suffix, e.g. ".yaml" so external tools detect the format
        directory: Where to create the file (system temp dir by default)

    Yields:
        Path to the staged file
    """
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=suffix, dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        write_private(path, data)
        yield path
    finally:
        shred_file(path)


@contextmanager
def private_temp_dir() -> Iterator[Path]:
    """
    Create an owner-only temporary directory.

    Every regular file left inside is shredded before the directory is removed.
    """
    path = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
    try:
        yield path
    finally:
        for child in path.rglob("*"):
            if child.is_file():
                shred_file(child)
        shutil.rmtree(path, ignore_errors=True)
