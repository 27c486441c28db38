"""Gitignore-style ignore rules for project scans.

Rules are read from the ``.gitignore`` file in the project root and matched
against paths relative to that root using git's wildmatch semantics
(negation, directory-only patterns, anchoring and ``**``).
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional, Union

import pathspec

from ..utils import IGNORE_FILE_NAME, normalize_path

logger = logging.getLogger(__name__)


class IgnoreRules:
    """A compiled set of gitignore patterns.

    Examples:
        >>> rules = IgnoreRules(["*.log", "!keep.log", "secrets/"])
        >>> rules.ignores("debug.log")
        True
        >>> rules.ignores("keep.log")
        False
        >>> rules.ignores("secrets/key.txt")
        True
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self.patterns: list[str] = []
        self._spec = pathspec.GitIgnoreSpec.from_lines([])
        if patterns:
            self.add(patterns)

    def add(self, patterns: Union[str, Iterable[str]]) -> "IgnoreRules":
        """Add patterns (a gitignore file body or an iterable of lines)."""
        if isinstance(patterns, str):
            patterns = patterns.splitlines()
        for line in patterns:
            line = line.rstrip("\r\n")
            if line.strip() and not line.lstrip().startswith("#"):
                self.patterns.append(line)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)
        return self

    def ignores(self, relative_path: str) -> bool:
        """Check whether a path relative to the project root is ignored."""
        path = normalize_path(relative_path)
        while path.startswith("./"):
            path = path[2:]
        if not path or not self.patterns:
            return False
        return self._spec.match_file(path)

    def filter(self, relative_paths: Iterable[str]) -> list[str]:
        """Return the paths that are not ignored, preserving order."""
        return [p for p in relative_paths if not self.ignores(p)]

    def __len__(self) -> int:
        return len(self.patterns)


def load_ignore_rules(project_root: Union[str, Path]) -> IgnoreRules:
    """Load ignore rules from the project root.

    A missing ignore file yields an empty rule set. An unreadable one is
    logged and treated the same way.

    Args:
        project_root: Directory that contains the ignore file

    Returns:
        IgnoreRules instance (possibly empty)
    """
    ignore_path = Path(project_root) / IGNORE_FILE_NAME
    rules = IgnoreRules()

    if not ignore_path.is_file():
        logger.debug(f"No {IGNORE_FILE_NAME} found in {project_root}")
        return rules

    try:
        content = ignore_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning(f"Failed to read {ignore_path}: {e}")
        return rules

    rules.add(content)
    logger.debug(f"Loaded {len(rules)} ignore pattern(s) from {ignore_path}")
    return rules
