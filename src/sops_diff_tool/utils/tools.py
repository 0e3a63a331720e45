"""
Launching user-configured external diff and merge tools.
"""

import logging
import shlex
import subprocess
from pathlib import Path

from sops_diff_tool.core.errors import ExternalToolError

logger = logging.getLogger(__name__)


def run_tool(command: str, *paths: Path) -> None:
    """
    Run an interactive tool on files, attached to the current terminal.

    Args:
        command: Tool command line, e.g. "vimdiff" or "code --wait --diff"
        paths: Files appended as arguments

    Raises:
        ExternalToolError: If the tool cannot start or exits non-zero
    """
    argv = shlex.split(command) + [str(p) for p in paths]
    if not argv:
        raise ExternalToolError("no tool command given", stage="external tool")
    logger.debug("Running %s on %d file(s)", argv[0], len(paths))
    try:
        result = subprocess.run(argv)
    except (FileNotFoundError, OSError) as e:
        raise ExternalToolError(
            f"cannot run {argv[0]}: {e}", stage="external tool"
        ) from e
    if result.returncode != 0:
        raise ExternalToolError(
            f"{argv[0]} exited with status {result.returncode}", stage="external tool"
        )
