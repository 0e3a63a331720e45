"""
Entry point for sops-diff-tool.

Usage:
    sops-diff FILE1 FILE2                          # Full diff of decrypted content
    sops-diff --summary FILE1 FILE2                # Changed keys only
    sops-diff --git HEAD:secrets.enc.yaml secrets.enc.yaml
    sops-diff --conflict FILE [-o OUT]             # Decrypt a conflicted file
    sops-diff --merge LOCAL BASE REMOTE MERGED     # Git merge driver
    sops-diff --setup-git                          # Register the merge driver
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from sops_diff_tool import __version__
from sops_diff_tool.core.secret_model import DiffOptions, Format

FORMAT_CHOICES = ["auto"] + [fmt.value for fmt in Format]


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sops-diff",
        description="Compare two SOPS-encrypted files and resolve conflicts in them",
    )

    parser.add_argument(
        "files",
        nargs="*",
        help="Files to compare (REV:path accepted with --git)",
    )

    parser.add_argument(
        "--summary", "-s",
        action="store_true",
        help="Display only keys that have changed, without sensitive values",
    )

    parser.add_argument(
        "--format", "-f",
        choices=FORMAT_CHOICES,
        default="auto",
        help="Document format (default: from file extension)",
    )

    parser.add_argument(
        "--color", "-c",
        action=argparse.BooleanOptionalAction,
        default=not os.environ.get("NO_COLOR"),
        help="Use colored output when writing to a terminal",
    )

    parser.add_argument(
        "--diff-tool", "-d",
        default=os.environ.get("SOPS_DIFF_TOOL") or None,
        help="External diff tool (e.g. 'vimdiff')",
    )

    parser.add_argument(
        "--git", "-g",
        action="store_true",
        help="Enable Git revision references and git diff driver arguments",
    )

    parser.add_argument(
        "--error-on-decrypted",
        action="store_true",
        help="Fail if any input turns out not to be encrypted",
    )

    parser.add_argument(
        "--type-sensitive",
        action="store_true",
        help="Treat values of different types as changed (false vs \"false\")",
    )

    parser.add_argument(
        "--conflict", "-C",
        type=Path,
        metavar="FILE",
        help="Decrypt both sides of a file with git conflict markers",
    )

    parser.add_argument(
        "--merge", "-m",
        nargs=4,
        type=Path,
        metavar=("LOCAL", "BASE", "REMOTE", "MERGED"),
        help="Merge three encrypted versions into MERGED",
    )

    parser.add_argument(
        "--name",
        help="Path used to infer the format in merge mode (git passes %%P)",
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Write the decrypted conflict to this file instead of stdout",
    )

    parser.add_argument(
        "--setup-git",
        action="store_true",
        help="Configure git to use sops-diff as merge driver",
    )

    parser.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Log debug information to stderr",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def validate_files(paths: list[Path]) -> bool:
    """Validate that all files exist."""
    for path in paths:
        if not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return False
    return True


def build_options(args: argparse.Namespace) -> DiffOptions:
    return DiffOptions(
        summary=args.summary,
        format=None if args.format == "auto" else Format(args.format),
        color=args.color,
        diff_tool=args.diff_tool,
        git=args.git,
        error_on_plaintext=args.error_on_decrypted,
        type_sensitive=args.type_sensitive,
        output=args.output,
    )


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    # Determine mode
    if args.setup_git:
        mode = "setup-git"
        files: list[str] = []
    elif args.merge:
        mode = "merge"
        files = [str(p) for p in args.merge]
        if not validate_files(args.merge[:3]):
            return 1
    elif args.conflict:
        mode = "conflict"
        files = [str(args.conflict)]
        if not validate_files([args.conflict]):
            return 1
    else:
        mode = "diff"
        files = args.files
        if len(files) < 2:
            print("Error: two files are required to compare", file=sys.stderr)
            return 1
        if not args.git and not validate_files([Path(f) for f in files]):
            return 1

    from sops_diff_tool.app import run_app

    return run_app(
        mode=mode,
        files=files,
        options=build_options(args),
        name=args.name,
        log_level=logging.DEBUG if args.verbose else logging.WARNING,
    )


if __name__ == "__main__":
    sys.exit(main())
