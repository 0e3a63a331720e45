"""
Application entry for each mode: diff, conflict, merge and git setup.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.text import Text

from sops_diff_tool.core.differ import diff_documents
from sops_diff_tool.core.errors import SopsDiffError
from sops_diff_tool.core.loader import SecretFileLoader
from sops_diff_tool.core.resolver import ConflictResolver
from sops_diff_tool.core.secret_model import DiffOptions, DiffResult, SecretDocument
from sops_diff_tool.core.writer import (
    format_summary,
    render_document,
    render_report,
)
from sops_diff_tool.utils.colors import (
    DiffColors,
    colorize_conflict,
    colorize_diff,
    colorize_summary,
)
from sops_diff_tool.utils.log_handler import setup_logging
from sops_diff_tool.utils.secure_files import private_temp_file
from sops_diff_tool.utils.sops import Decryptor, SopsCli
from sops_diff_tool.utils.tools import run_tool
from sops_diff_tool.utils.vcs import (
    GITATTRIBUTES_LINES,
    GitRepository,
    Repository,
    parse_git_diff_args,
)

logger = logging.getLogger(__name__)

MODES = ("diff", "conflict", "merge", "setup-git")


class Terminal:
    """stdout/stderr writer that only colors output going to a terminal."""

    def __init__(self, color: bool = True):
        self._color = color
        self._out = Console(highlight=False, soft_wrap=True, emoji=False, markup=False)
        self._err = Console(
            stderr=True, highlight=False, soft_wrap=True, emoji=False, markup=False
        )

    def write(self, text: str, colorizer: Optional[Callable[[str], Text]] = None) -> None:
        """Write report text verbatim, highlighted when color applies."""
        if self._color and colorizer is not None and self._out.is_terminal:
            self._out.print(colorizer(text), end="")
        else:
            self._out.file.write(text)

    def echo(self, message: str = "", style: Optional[str] = None) -> None:
        if self._color and style and self._out.is_terminal:
            self._out.print(Text(message, style=style))
        else:
            self._out.file.write(message + "\n")

    def warn(self, message: str) -> None:
        if self._color and self._err.is_terminal:
            self._err.print(Text(message, style=DiffColors.WARNING))
        else:
            self._err.file.write(message + "\n")

    def error(self, message: str) -> None:
        self._err.file.write(message + "\n")


def warn_plaintext(
    terminal: Terminal,
    left: SecretDocument,
    right: SecretDocument,
    summary: bool,
) -> None:
    """Warn about inputs that were not encrypted."""
    for doc in (left, right):
        if doc.plaintext:
            terminal.warn(
                f"WARNING: File '{doc.name}' appears to be decrypted (no SOPS metadata found)!"
            )
            terminal.warn("         Make sure you don't commit decrypted sensitive files.")

    if summary:
        return
    if left.plaintext and right.plaintext:
        terminal.warn("Both files appear to be already decrypted. Comparing as plain text.")
    elif left.plaintext or right.plaintext:
        terminal.warn("Note: Comparing encrypted and decrypted files may show structural differences")
        terminal.warn("in addition to actual content changes.")


def diff_with_external_tool(result: DiffResult, options: DiffOptions) -> None:
    """Hand decrypted content to an external diff tool via private temp files."""
    if options.summary:
        with private_temp_file(format_summary(result.changes), suffix=".txt") as report:
            run_tool(options.diff_tool, report)
        return

    suffix = result.left.format.extension
    left_text = render_document(result.left.data, result.left.format)
    right_text = render_document(result.right.data, result.right.format)
    with private_temp_file(left_text, suffix=suffix) as left_path:
        with private_temp_file(right_text, suffix=suffix) as right_path:
            run_tool(options.diff_tool, left_path, right_path)


def run_diff(
    files: list[str],
    options: DiffOptions,
    terminal: Terminal,
    decryptor: Decryptor,
    repository: Repository,
) -> None:
    """Compare two encrypted files and print the report."""
    if options.git:
        git_files = parse_git_diff_args(files)
        if git_files is not None:
            terminal.error(f"Git diff mode: comparing {git_files[0]} with {git_files[1]}")
            files = list(git_files)

    if len(files) != 2:
        raise SopsDiffError(f"accepts 2 arg(s), received {len(files)}", stage="diff")

    loader = SecretFileLoader(decryptor, repository, options)
    left, right = loader.load_pair(files[0], files[1])
    warn_plaintext(terminal, left, right, options.summary)

    result = diff_documents(left, right, options)

    if options.diff_tool:
        diff_with_external_tool(result, options)
        return

    report = render_report(result, summary=options.summary)
    terminal.write(report, colorize_summary if options.summary else colorize_diff)


def run_conflict(
    path: Path,
    options: DiffOptions,
    terminal: Terminal,
    decryptor: Decryptor,
    repository: Repository,
) -> None:
    """Show or write the decrypted form of a conflicted encrypted file."""
    resolver = ConflictResolver(decryptor, repository, options)
    content = resolver.prepare_conflict(path)

    if options.output:
        resolver.write_conflict_file(content, options.output)
        terminal.echo(f"✓ Created decrypted conflict file: {options.output}", DiffColors.SUCCESS)
        terminal.echo("Instructions:", DiffColors.WARNING)
        terminal.echo("1. Edit the decrypted file to resolve conflicts")
        terminal.echo("2. Once resolved, encrypt it using sops:")
        terminal.echo(f"   sops -e -i {options.output}")
        terminal.echo("3. Replace the original file with the encrypted version:")
        terminal.echo(f"   mv {options.output} {path}")
    else:
        terminal.write(content, colorize_conflict)

    terminal.echo()
    terminal.echo(
        "Note: The decrypted file contains sensitive information. "
        "Delete it when no longer needed.",
        DiffColors.WARNING,
    )


def run_merge(
    files: list[Path],
    options: DiffOptions,
    terminal: Terminal,
    decryptor: Decryptor,
    repository: Repository,
    name: Optional[str] = None,
) -> None:
    """Merge local/base/remote encrypted versions into the merged path."""
    local, base, remote, merged = files
    if not options.diff_tool:
        terminal.echo("No diff tool specified. Using default merge with conflict markers.")
    resolver = ConflictResolver(decryptor, repository, options)
    resolver.merge(local, base, remote, merged, name=name)
    terminal.echo("Successfully merged and encrypted the result.", DiffColors.SUCCESS)


def run_setup_git(terminal: Terminal, repository: GitRepository) -> None:
    """Register sops-diff as git merge driver and merge tool."""
    repository.configure_merge_driver()
    terminal.echo(
        "✓ Successfully configured Git to use sops-diff for encrypted files",
        DiffColors.SUCCESS,
    )
    terminal.echo("Next steps:", DiffColors.WARNING)
    terminal.echo("Add the following to your .gitattributes file:")
    for line in GITATTRIBUTES_LINES:
        terminal.echo(line)


def run_app(
    mode: str = "diff",
    files: Optional[list[str]] = None,
    options: Optional[DiffOptions] = None,
    name: Optional[str] = None,
    log_level: int = logging.WARNING,
    decryptor: Optional[Decryptor] = None,
    repository: Optional[GitRepository] = None,
) -> int:
    """
    Run one mode to completion.

    Args:
        mode: "diff", "conflict", "merge" or "setup-git"
        files: Positional file arguments for the mode
        options: Diff options
        name: Path used to infer the format in merge mode
        log_level: Root logging level
        decryptor: Decryption capability (sops binary by default)
        repository: Git access (current directory by default)

    Returns:
        Exit code (0 for success, 1 for any error)
    """
    setup_logging(level=log_level)
    options = options or DiffOptions()
    files = files or []
    terminal = Terminal(color=options.color)
    decryptor = decryptor or SopsCli()
    repository = repository or GitRepository()
    logger.debug("Starting sops-diff in %s mode", mode)

    try:
        if mode == "diff":
            run_diff(files, options, terminal, decryptor, repository)
        elif mode == "conflict":
            run_conflict(Path(files[0]), options, terminal, decryptor, repository)
        elif mode == "merge":
            run_merge(
                [Path(f) for f in files], options, terminal, decryptor, repository, name
            )
        elif mode == "setup-git":
            run_setup_git(terminal, repository)
        else:
            raise SopsDiffError(f"unknown mode: {mode}")
    except SopsDiffError as e:
        logger.debug("Aborted %s", mode, exc_info=True)
        terminal.error(f"Error: {e.describe()}")
        return 1

    return 0
