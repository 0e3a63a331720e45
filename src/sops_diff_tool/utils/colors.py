"""
Color definitions for diff and conflict highlighting.
"""

from rich.text import Text


class DiffColors:
    """rich styles for diff status highlighting."""

    ADDED = "green"
    REMOVED = "red"
    MODIFIED = "yellow"
    HUNK = "cyan"

    # Conflict blocks
    MARKER = "cyan"
    OURS = "red"
    THEIRS = "green"
    BASE = "dim"

    WARNING = "yellow"
    SUCCESS = "green"
    INFO = "cyan"

    @classmethod
    def get_style(cls, status: str) -> str:
        """Get style for a diff status."""
        return {
            "added": cls.ADDED,
            "removed": cls.REMOVED,
            "modified": cls.MODIFIED,
        }.get(status, "")


# Status symbols used in summary reports
DIFF_SYMBOLS = {
    "added": "+",
    "removed": "-",
    "modified": "!",
    "unchanged": " ",
}


def colorize_diff(diff: str) -> Text:
    """
    Highlight a unified diff. The plain text of the result equals the input.
    """
    text = Text()
    for line in diff.splitlines(keepends=True):
        if line.startswith("+") and not line.startswith("+++"):
            text.append(line, style=DiffColors.ADDED)
        elif line.startswith("-") and not line.startswith("---"):
            text.append(line, style=DiffColors.REMOVED)
        elif line.startswith("@@"):
            text.append(line, style=DiffColors.HUNK)
        else:
            text.append(line)
    return text


def colorize_summary(summary: str) -> Text:
    """Highlight summary lines after the header by their leading marker."""
    styles = {symbol: DiffColors.get_style(status) for status, symbol in DIFF_SYMBOLS.items()}
    text = Text()
    in_body = False
    for line in summary.splitlines(keepends=True):
        if not in_body:
            text.append(line)
            in_body = line.startswith("-----")
            continue
        text.append(line, style=styles.get(line[:1], ""))
    return text


def colorize_conflict(content: str) -> Text:
    """
    Highlight a conflict block: markers cyan, ours red, theirs green.
    """
    text = Text()
    section = None
    for line in content.splitlines(keepends=True):
        bare = line.rstrip("\r\n")
        if bare.startswith("<<<<<<< "):
            text.append(line, style=DiffColors.MARKER)
            section = DiffColors.OURS
        elif bare.startswith("||||||| ") and section is not None:
            text.append(line, style=DiffColors.MARKER)
            section = DiffColors.BASE
        elif bare == "=======" and section is not None:
            text.append(line, style=DiffColors.MARKER)
            section = DiffColors.THEIRS
        elif bare.startswith(">>>>>>> ") and section is not None:
            text.append(line, style=DiffColors.MARKER)
            section = None
        else:
            text.append(line, style=section or "")
    return text
