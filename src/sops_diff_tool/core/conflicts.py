"""
Version control conflict blocks.

Splits a conflicted text into its "ours" and "theirs" variants, builds
marked blocks from decrypted content and checks that an edited result no
longer contains markers.

A block looks like:

    <<<<<<< HEAD
    ours lines
    ||||||| base            (optional, diff3 style)
    base lines
    =======
    theirs lines
    >>>>>>> branch

Lines outside any block are common to both variants.
"""

import logging
from enum import Enum
from typing import Optional

from sops_diff_tool.core.errors import (
    MalformedConflictError,
    NoConflictMarkersError,
    UnresolvedConflictError,
)
from sops_diff_tool.core.secret_model import ConflictSides

logger = logging.getLogger(__name__)

START_MARKER = "<<<<<<<"
BASE_MARKER = "|||||||"
SEPARATOR = "======="
END_MARKER = ">>>>>>>"


class _State(Enum):
    COMMON = "common"
    IN_OURS = "ours"
    IN_BASE = "base"
    IN_THEIRS = "theirs"


def _lines(text: str) -> list[str]:
    """Split on "\\n" only, so other Unicode line breaks stay inside values."""
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def _is_marker(line: str, marker: str) -> bool:
    """True for "<marker>" alone or followed by a space and a label."""
    return line == marker or line.startswith(marker + " ")


def is_marker_line(line: str) -> bool:
    """True if line is any conflict marker line."""
    line = line.rstrip("\r\n")
    return (
        line == SEPARATOR
        or _is_marker(line, START_MARKER)
        or _is_marker(line, BASE_MARKER)
        or _is_marker(line, END_MARKER)
    )


def has_conflict_markers(text: str) -> bool:
    """True if text contains at least one block start marker."""
    return any(_is_marker(line, START_MARKER) for line in _lines(text))


def extract_sides(text: str, name: Optional[str] = None) -> ConflictSides:
    """
    Split a conflicted text into its two variants.

    Common lines go to both variants, block lines to their side only and
    marker lines to neither. Variants are joined with "\\n" and carry no
    trailing newline.

    Args:
        text: Text containing conflict blocks
        name: File name used in error messages

    Returns:
        ConflictSides with ours and theirs text (and base for diff3 blocks)

    Raises:
        NoConflictMarkersError: If text contains no block
        MalformedConflictError: If markers are nested, out of order or unterminated
    """
    ours: list[str] = []
    theirs: list[str] = []
    base: list[str] = []
    state = _State.COMMON
    blocks = 0
    blocks_with_base = 0
    start_line = 0

    def malformed(line_no: int, problem: str) -> MalformedConflictError:
        return MalformedConflictError(
            f"line {line_no}: {problem}", path=name, stage="conflict extraction"
        )

    for line_no, line in enumerate(_lines(text), start=1):
        if _is_marker(line, START_MARKER):
            if state is not _State.COMMON:
                raise malformed(line_no, f"conflict start marker inside the block opened on line {start_line}")
            state = _State.IN_OURS
            start_line = line_no
            blocks += 1
            continue

        if state is _State.COMMON:
            if _is_marker(line, END_MARKER) or _is_marker(line, BASE_MARKER):
                raise malformed(line_no, "conflict marker outside a conflict block")
            ours.append(line)
            theirs.append(line)
            base.append(line)
            continue

        if _is_marker(line, BASE_MARKER):
            if state is not _State.IN_OURS:
                raise malformed(line_no, "base marker must follow the ours section")
            state = _State.IN_BASE
            blocks_with_base += 1
        elif line == SEPARATOR:
            if state is _State.IN_THEIRS:
                raise malformed(line_no, "second separator in one conflict block")
            state = _State.IN_THEIRS
        elif _is_marker(line, END_MARKER):
            if state is not _State.IN_THEIRS:
                raise malformed(line_no, "end marker before the separator")
            state = _State.COMMON
        elif state is _State.IN_OURS:
            ours.append(line)
        elif state is _State.IN_BASE:
            base.append(line)
        else:
            theirs.append(line)

    if blocks == 0:
        raise NoConflictMarkersError(
            "does not contain conflict markers", path=name, stage="conflict extraction"
        )
    if state is not _State.COMMON:
        raise malformed(start_line, "conflict block is never closed")

    logger.debug("Extracted %d conflict block(s)", blocks)
    return ConflictSides(
        ours="\n".join(ours),
        theirs="\n".join(theirs),
        base="\n".join(base) if blocks_with_base == blocks else None,
        block_count=blocks,
    )


def _terminated(section: str) -> str:
    if section and not section.endswith("\n"):
        return section + "\n"
    return section


def build_conflict_block(
    ours: str,
    theirs: str,
    start_label: str,
    end_label: str,
    base: Optional[str] = None,
    base_label: str = "BASE",
) -> str:
    """
    Wrap two variants (and optionally their base) in conflict markers.

    Each section is terminated with a newline so markers stay on their own lines.
    """
    parts = [f"{START_MARKER} {start_label}\n", _terminated(ours)]
    if base is not None:
        parts.extend([f"{BASE_MARKER} {base_label}\n", _terminated(base)])
    parts.extend([f"{SEPARATOR}\n", _terminated(theirs), f"{END_MARKER} {end_label}\n"])
    return "".join(parts)


def compose(
    ours: str,
    theirs: str,
    ours_label: str,
    theirs_label: str,
    base: Optional[str] = None,
) -> str:
    """
    Build a marked block of decrypted content for a person to edit.

    Args:
        ours: Decrypted current-branch content
        theirs: Decrypted incoming content
        ours_label: Current branch name
        theirs_label: Description of the incoming branch
        base: Decrypted common ancestor, added as a diff3 section if given

    Returns:
        "<<<<<<< HEAD (<ours_label> branch)" ... ">>>>>>> OTHER (<theirs_label>)"
    """
    return build_conflict_block(
        ours,
        theirs,
        start_label=f"HEAD ({ours_label} branch)",
        end_label=f"OTHER ({theirs_label})",
        base=base,
    )


def validate_resolved(text: str) -> bool:
    """True if no conflict marker line remains in text."""
    return not any(is_marker_line(line) for line in _lines(text))


def require_resolved(text: str, name: Optional[str] = None) -> None:
    """
    Gate edited content before it is re-encrypted.

    Raises:
        UnresolvedConflictError: If any marker line remains
    """
    if not validate_resolved(text):
        raise UnresolvedConflictError(
            "conflict markers still present in the merged file",
            path=name,
            stage="merge",
        )
