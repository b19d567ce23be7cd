"""Read staged changes from a git repository."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import TYPE_CHECKING

from commit_cli.summarizer.models import Change, ChangeStatus, CommitCliError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    "A": ChangeStatus.added,
    "M": ChangeStatus.modified,
    "T": ChangeStatus.modified,
    "D": ChangeStatus.deleted,
    "R": ChangeStatus.renamed,
    "C": ChangeStatus.copied,
}


class GitError(CommitCliError):
    """Raised when git is missing or a git command fails."""


def _is_git_installed() -> bool:
    """Check if git is available in the path."""
    return shutil.which("git") is not None


def _run_git(args: list[str], cwd: Path | None = None) -> str:
    try:
        result = subprocess.run(
            ["git", *args],  # noqa: S607
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        msg = f"git {' '.join(args)} failed: {stderr or e}"
        raise GitError(msg) from e
    return result.stdout


def strip_diff_header(diff: str) -> str:
    """Drop git's per-file header, keeping hunks (or the binary-file notice)."""
    lines = diff.splitlines(keepends=True)
    for i, line in enumerate(lines):
        if line.startswith(("@@", "Binary files")):
            return "".join(lines[i:])
    return ""


def count_diff_lines(diff: str) -> tuple[int, int]:
    """Return ``(additions, deletions)`` for a diff body without file headers."""
    additions = deletions = 0
    for line in diff.splitlines():
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return additions, deletions


def parse_name_status(output: str) -> list[tuple[ChangeStatus, list[str]]]:
    """Parse ``git diff --name-status`` output into statuses and paths."""
    entries = []
    for line in output.splitlines():
        if not line.strip():
            continue
        code, *paths = line.split("\t")
        status = _STATUS_CODES.get(code[:1])
        if status is None or not paths:
            logger.debug("Skipping unsupported status line: %s", line)
            continue
        entries.append((status, paths))
    return entries


def get_staged_changes(cwd: Path | None = None) -> list[Change]:
    """Return the staged changes of the repository at ``cwd``, in git's order.

    Raises:
        GitError: If git is not installed or not run inside a repository.

    """
    if not _is_git_installed():
        msg = "git is not installed or not on PATH"
        raise GitError(msg)

    name_status = _run_git(["diff", "--cached", "--name-status", "-M"], cwd)
    changes = []
    for status, paths in parse_name_status(name_status):
        path = paths[-1]
        raw = _run_git(["diff", "--cached", "--no-color", "-M", "--", *paths], cwd)
        diff = strip_diff_header(raw)
        additions, deletions = count_diff_lines(diff)
        changes.append(
            Change(
                path=path,
                status=status,
                diff=diff,
                additions=additions,
                deletions=deletions,
            ),
        )

    logger.info("Found %d staged files", len(changes))
    return changes
