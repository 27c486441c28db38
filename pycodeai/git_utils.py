"""Git helpers for change-based analysis scopes."""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

from .exceptions import GitRepositoryError
from .utils import normalize_path

logger = logging.getLogger(__name__)


def _run_git(
    *args: str, cwd: Union[str, Path], check: bool = True
) -> subprocess.CompletedProcess[str]:
    """Run a git command in the given directory."""
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=check,
        capture_output=True,
        encoding="utf-8",
    )


def _parse_name_list(output: str) -> list[str]:
    """Parse NUL-separated git ``-z`` output into normalized paths.

    With ``-z`` git prints paths verbatim instead of C-quoting names that
    contain non-ASCII characters.
    """
    return [normalize_path(name) for name in output.split("\0") if name.strip()]


def is_git_repository(directory: Optional[Union[str, Path]] = None) -> bool:
    """Check whether a directory is inside a git working tree.

    Args:
        directory: Directory to check (defaults to the current directory)

    Returns:
        True if git reports a working tree, False otherwise (including when
        git is not installed)
    """
    cwd = directory or Path.cwd()
    try:
        result = _run_git("rev-parse", "--is-inside-work-tree", cwd=cwd, check=False)
    except (FileNotFoundError, NotADirectoryError):
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def get_changed_files(directory: Optional[Union[str, Path]] = None) -> list[str]:
    """List files changed in the working tree.

    Combines staged, unstaged and untracked files (respecting the
    repository's ignore rules), deduplicated in that order. Paths are
    relative to ``directory`` and use forward slashes.

    Args:
        directory: Directory to query (defaults to the current directory)

    Returns:
        List of changed file paths

    Raises:
        GitRepositoryError: If the directory is not a git repository or
            git cannot be run
    """
    cwd = directory or Path.cwd()
    commands = (
        ("diff", "--cached", "--name-only", "--relative", "-z"),
        ("diff", "--name-only", "--relative", "-z"),
        ("ls-files", "--others", "--exclude-standard", "-z"),
    )

    files: dict[str, None] = {}
    for command in commands:
        try:
            result = _run_git(*command, cwd=cwd)
        except FileNotFoundError as e:
            raise GitRepositoryError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise GitRepositoryError(
                "Failed to get changed files from git. Is this a git repository?"
                + (f" ({stderr})" if stderr else "")
            ) from e
        for path in _parse_name_list(result.stdout):
            files.setdefault(path, None)

    logger.debug(f"Found {len(files)} changed file(s) in git working tree")
    return list(files)
