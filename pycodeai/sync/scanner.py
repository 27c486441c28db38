"""Directory scanning and manifest building for sync operations."""

import fnmatch
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..exceptions import FileAccessError, ScopeViolationError
from ..git_utils import get_changed_files
from ..utils import CONFIG_FILE_NAME, calculate_file_hash, normalize_path
from .classifier import is_excluded_path, is_supported_code_file
from .ignore import IgnoreRules, load_ignore_rules

logger = logging.getLogger(__name__)

Manifest = dict[str, str]
"""Mapping of project-relative posix path to content hash"""

NOISE_DIRECTORIES: frozenset[str] = frozenset(
    {"node_modules", ".git", "dist", "build", "coverage"}
)
"""Directories never entered during a manifest scan"""

NOISE_FILE_PATTERNS: tuple[str, ...] = (
    ".DS_Store",
    ".env",
    ".env.*",
    "*.log",
    CONFIG_FILE_NAME,
)
"""File name patterns never included in a manifest scan"""


@dataclass
class LocalFile:
    """Represents a local project file."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Path relative to the project root (forward slashes)"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    content_hash: Optional[str] = None
    """Content hash, filled in when the manifest is built"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Project root used for the relative path

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()
        return cls(
            path=file_path,
            relative_path=relative_path,
            size=stat.st_size,
            mtime=stat.st_mtime,
        )


@dataclass
class ManifestResult:
    """Result of a manifest build."""

    manifest: Manifest = field(default_factory=dict)
    """Relative path -> content hash, in scan order"""

    included_files: list[str] = field(default_factory=list)
    """Relative paths included in the manifest, in scan order"""


def _is_noise_file(name: str) -> bool:
    return any(fnmatch.fnmatch(name, pattern) for pattern in NOISE_FILE_PATTERNS)


class DirectoryScanner:
    """Walks a project subtree and collects eligible files.

    Paths are always reported relative to the project root, even when the
    scan starts in a subdirectory, so that manifests built from different
    scan roots remain comparable.

    Examples:
        >>> scanner = DirectoryScanner(Path("/work/project"))
        >>> files = scanner.scan_local(Path("/work/project/src"))
        >>> files[0].relative_path
        'src/index.js'
    """

    def __init__(
        self,
        project_root: Path,
        ignore_rules: Optional[IgnoreRules] = None,
        use_ignore_file: bool = True,
        apply_classifier: bool = True,
    ):
        """Initialize directory scanner.

        Args:
            project_root: Root of the project; relative paths start here
            ignore_rules: Pre-loaded ignore rules (loaded from the project
                root when omitted and use_ignore_file is True)
            use_ignore_file: Whether to honor the project's ignore file
            apply_classifier: Whether to keep only non-excluded files with
                supported extensions
        """
        self.project_root = Path(os.path.abspath(project_root))
        self.apply_classifier = apply_classifier
        if ignore_rules is not None:
            self.ignore_rules = ignore_rules
        elif use_ignore_file:
            self.ignore_rules = load_ignore_rules(self.project_root)
        else:
            self.ignore_rules = IgnoreRules()

    def should_ignore(self, path: Path, is_dir: bool = False) -> bool:
        """Check if a path should be skipped during the walk.

        Args:
            path: Absolute path to check
            is_dir: Whether the path is a directory

        Returns:
            True if the path should be skipped
        """
        name = path.name
        if is_dir and name in NOISE_DIRECTORIES:
            return True
        if not is_dir and _is_noise_file(name):
            return True

        relative_path = path.relative_to(self.project_root).as_posix()
        if self.ignore_rules.ignores(relative_path + "/" if is_dir else relative_path):
            logger.debug(f"Ignoring (from rules): {relative_path}")
            return True

        if self.apply_classifier:
            if is_excluded_path(relative_path):
                return True
            if not is_dir and not is_supported_code_file(relative_path):
                return True
        return False

    def scan_local(self, directory: Optional[Path] = None) -> list[LocalFile]:
        """Recursively scan a directory inside the project.

        Entries are visited in sorted order so that repeated scans of the
        same tree produce the same file order.

        Args:
            directory: Directory to scan (defaults to the project root)

        Returns:
            List of LocalFile objects

        Raises:
            ScopeViolationError: If the directory is outside the project root
            FileAccessError: If a directory or file cannot be read
        """
        if directory is None:
            directory = self.project_root
        directory = Path(os.path.abspath(directory))

        try:
            directory.relative_to(self.project_root)
        except ValueError as e:
            raise ScopeViolationError(str(directory), str(self.project_root)) from e

        if not directory.is_dir():
            raise FileAccessError(
                f"Directory does not exist: {directory}", str(directory)
            )

        files: list[LocalFile] = []
        self._scan(directory, files)
        return files

    def _scan(self, directory: Path, files: list[LocalFile]) -> None:
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise FileAccessError(
                f"Cannot read directory {directory}: {e}", str(directory)
            ) from e

        for item in entries:
            if item.is_symlink() and item.is_dir():
                logger.debug(f"Skipping symlinked directory: {item}")
                continue

            is_dir = item.is_dir()
            if self.should_ignore(item, is_dir=is_dir):
                continue

            if is_dir:
                self._scan(item, files)
            elif item.is_file():
                try:
                    files.append(LocalFile.from_path(item, self.project_root))
                except OSError as e:
                    raise FileAccessError(
                        f"Cannot access file {item}: {e}", str(item)
                    ) from e


def _hash_local_file(local_file: LocalFile) -> str:
    try:
        return calculate_file_hash(local_file.path)
    except OSError as e:
        raise FileAccessError(
            f"Cannot read file {local_file.relative_path}: {e}",
            local_file.relative_path,
        ) from e


def hash_files(local_files: list[LocalFile], max_workers: int = 1) -> Manifest:
    """Compute content hashes and return a manifest in input order.

    With ``max_workers > 1`` files are hashed in a thread pool; the
    manifest is still assembled in input order, so the result does not
    depend on completion order.

    Raises:
        FileAccessError: If any file cannot be read
    """
    if max_workers <= 1 or len(local_files) <= 1:
        for local_file in local_files:
            local_file.content_hash = _hash_local_file(local_file)
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(_hash_local_file, local_file): local_file
                for local_file in local_files
            }
            for future in as_completed(futures):
                futures[future].content_hash = future.result()

    return {f.relative_path: f.content_hash or "" for f in local_files}


def build_manifest(
    project_root: Union[str, Path],
    scan_root: Optional[Union[str, Path]] = None,
    ignore_rules: Optional[IgnoreRules] = None,
    max_workers: int = 1,
) -> ManifestResult:
    """Build a content-addressed manifest of a project subtree.

    Args:
        project_root: Root of the project
        scan_root: Subtree to scan, absolute or relative to the project root
            (defaults to the project root)
        ignore_rules: Pre-loaded ignore rules (read from the project root
            when omitted)
        max_workers: Number of threads used for hashing

    Returns:
        ManifestResult with the manifest and the ordered included files

    Raises:
        FileAccessError: If any file or directory cannot be read
        ScopeViolationError: If scan_root lies outside project_root
    """
    root = Path(os.path.abspath(project_root))
    if scan_root is None:
        scan_dir = root
    else:
        scan_dir = Path(os.path.normpath(root / scan_root))

    scanner = DirectoryScanner(root, ignore_rules=ignore_rules)
    local_files = scanner.scan_local(scan_dir)
    manifest = hash_files(local_files, max_workers=max_workers)

    logger.debug(f"Built manifest of {len(manifest)} file(s) under {scan_dir}")
    return ManifestResult(manifest=manifest, included_files=list(manifest))


def get_files_for_scope(
    paths: list[str],
    changed: bool = False,
    project_root: Optional[Union[str, Path]] = None,
    ignore_rules: Optional[IgnoreRules] = None,
    respect_ignore_rules: bool = True,
) -> list[str]:
    """Collect supported files from explicit paths or from the git change list.

    Seed paths may be files or directories; directories are walked
    recursively; symlinked directories are skipped, as in the manifest
    scan. Missing seeds are skipped. Paths are returned relative to the
    project root, deduplicated in first-seen order. A seed outside the
    project root is returned with its ``..`` prefix, without applying the
    deny-list, so that scope validation can reject it.

    Args:
        paths: Files or directories (relative to the project root or
            absolute); ignored when ``changed`` is True
        changed: Seed from files changed in the git working tree instead
        project_root: Root of the project (defaults to the current directory)
        ignore_rules: Pre-loaded ignore rules
        respect_ignore_rules: Whether the project's ignore file applies

    Returns:
        List of relative file paths

    Raises:
        GitRepositoryError: If ``changed`` is True outside a git repository
        FileAccessError: If a directory cannot be read
    """
    root = os.path.abspath(project_root or os.getcwd())

    if changed:
        seeds = get_changed_files(root)
    else:
        seeds = list(paths)

    if not respect_ignore_rules:
        rules = IgnoreRules()
    elif ignore_rules is not None:
        rules = ignore_rules
    else:
        rules = load_ignore_rules(root)

    files: dict[str, None] = {}

    def walk(current_path: str) -> None:
        absolute_path = os.path.normpath(os.path.join(root, current_path))
        relative_path = normalize_path(os.path.relpath(absolute_path, root))
        inside_root = relative_path != ".." and not relative_path.startswith("../")

        # Deny-list applies inside the root; outside paths must reach validation
        if inside_root and relative_path != "." and is_excluded_path(relative_path):
            return
        if not os.path.exists(absolute_path):
            logger.debug(f"Skipping missing path: {current_path}")
            return

        if os.path.islink(absolute_path) and os.path.isdir(absolute_path):
            logger.debug(f"Skipping symlinked directory: {current_path}")
            return

        if os.path.isdir(absolute_path):
            if (
                inside_root
                and relative_path != "."
                and rules.ignores(relative_path + "/")
            ):
                return
            try:
                entries = sorted(os.listdir(absolute_path))
            except OSError as e:
                raise FileAccessError(
                    f"Cannot read directory {absolute_path}: {e}", absolute_path
                ) from e
            for entry in entries:
                walk(os.path.join(absolute_path, entry))
        elif is_supported_code_file(absolute_path):
            if inside_root and rules.ignores(relative_path):
                return
            files.setdefault(relative_path, None)

    for seed in seeds:
        walk(seed)

    return list(files)
