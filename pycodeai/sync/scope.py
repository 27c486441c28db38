"""Analysis scope resolution and validation."""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

import click

from ..config import ProjectConfig
from ..exceptions import (
    OperationCancelledError,
    ScopeViolationError,
    UploadSizeLimitError,
)
from ..utils import DEFAULT_UPLOAD_LIMIT_MB, FILE_RUN_LIMIT
from .ignore import IgnoreRules
from .scanner import get_files_for_scope

logger = logging.getLogger(__name__)


class AnalysisScope(str, Enum):
    """Scope of an analysis run."""

    SELECTED_FILES = "SELECTED_FILES"
    """An explicit list of files"""

    ENTIRE_PROJECT = "ENTIRE_PROJECT"
    """Every file in the configured target directory"""

    GIT_DIFF = "GIT_DIFF"
    """Files changed in the git working tree"""


@dataclass(frozen=True)
class ScopeRequest:
    """What the user asked to analyze."""

    paths: tuple[str, ...] = ()
    """Explicit files or directories"""

    changed: bool = False
    """Only files changed in the git working tree"""

    @property
    def is_explicit(self) -> bool:
        """Whether the request names its own files."""
        return self.changed or bool(self.paths)

    @property
    def kind(self) -> AnalysisScope:
        """The kind of scope the user asked for."""
        if self.changed:
            return AnalysisScope.GIT_DIFF
        if self.paths:
            return AnalysisScope.SELECTED_FILES
        return AnalysisScope.ENTIRE_PROJECT


@dataclass
class ScopeResult:
    """Files selected for one invocation."""

    scope: AnalysisScope
    target_file_paths: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.target_file_paths


def confirm_file_limit(file_count: int, limit: int = FILE_RUN_LIMIT) -> bool:
    """Ask the user whether to continue with a large number of files."""
    click.secho(
        f"\nThis analysis will process {file_count} files, which is more than "
        f"the recommended limit of {limit}.",
        fg="yellow",
    )
    click.secho(
        "   This may result in a longer processing time and higher costs.",
        fg="yellow",
    )
    return click.confirm("Do you want to continue?", default=True)


def validate_paths_in_scope(
    target_file_paths: list[str],
    target_directory: str,
    project_root: Union[str, Path],
) -> None:
    """Ensure every file lies inside the configured target directory.

    Args:
        target_file_paths: Paths relative to the project root
        target_directory: Configured target directory
        project_root: Root of the project

    Raises:
        ScopeViolationError: For the first path outside the target directory
    """
    absolute_target = os.path.normpath(os.path.join(project_root, target_directory))

    for file_path in target_file_paths:
        absolute_file = os.path.normpath(os.path.join(project_root, file_path))
        try:
            relative = os.path.relpath(absolute_file, absolute_target)
        except ValueError:
            # Different drives on Windows
            raise ScopeViolationError(file_path, target_directory) from None
        escapes = relative == ".." or relative.startswith(".." + os.sep)
        if escapes or os.path.isabs(relative):
            raise ScopeViolationError(file_path, target_directory)


def determine_scope(
    request: ScopeRequest,
    project_config: ProjectConfig,
    project_root: Optional[Union[str, Path]] = None,
    confirm: Optional[Callable[[int], bool]] = confirm_file_limit,
    file_limit: int = FILE_RUN_LIMIT,
    ignore_rules: Optional[IgnoreRules] = None,
) -> ScopeResult:
    """Resolve and validate the files for an analysis run.

    Explicit paths or the ``changed`` flag select files directly; otherwise
    the configured target directory is used. Every resolved file must lie
    inside the target directory.

    Args:
        request: What the user asked to analyze
        project_config: Loaded project configuration
        project_root: Root of the project (defaults to the current directory)
        confirm: Called with the file count when it exceeds ``file_limit``;
            returning False cancels. Pass None to skip the prompt.
        file_limit: Soft limit on the number of files
        ignore_rules: Pre-loaded ignore rules

    Returns:
        ScopeResult with scope SELECTED_FILES (the file list may be empty)

    Raises:
        ScopeViolationError: If a file lies outside the target directory
        OperationCancelledError: If the user declines to continue
        GitRepositoryError: If ``changed`` is requested outside a git repo
    """
    root = os.path.abspath(project_root or os.getcwd())
    logger.debug(f"Resolving {request.kind.value} scope in {root}")

    if request.is_explicit:
        target_file_paths = get_files_for_scope(
            list(request.paths),
            changed=request.changed,
            project_root=root,
            ignore_rules=ignore_rules,
        )
    else:
        logger.info(
            'Defaulting to target directory from config: "%s"',
            project_config.target_directory,
        )
        target_file_paths = get_files_for_scope(
            [project_config.target_directory],
            project_root=root,
            ignore_rules=ignore_rules,
        )

    validate_paths_in_scope(target_file_paths, project_config.target_directory, root)

    result = ScopeResult(
        scope=AnalysisScope.SELECTED_FILES, target_file_paths=target_file_paths
    )
    if result.is_empty:
        logger.info("No matching files found to analyze in the specified scope")
        return result

    logger.info(f"Found {len(target_file_paths)} files to analyze")

    if len(target_file_paths) > file_limit and confirm is not None:
        if not confirm(len(target_file_paths)):
            raise OperationCancelledError("Analysis cancelled by user.")

    return result


def check_upload_size(
    file_paths: list[str],
    project_config: Optional[ProjectConfig] = None,
    project_root: Optional[Union[str, Path]] = None,
) -> int:
    """Enforce the project's upload size limit.

    Missing files are skipped.

    Args:
        file_paths: Paths relative to the project root
        project_config: Project configuration (for ``max_upload_size_mb``)
        project_root: Root of the project (defaults to the current directory)

    Returns:
        Total size of the files in bytes

    Raises:
        UploadSizeLimitError: If the total exceeds the limit
    """
    root = Path(project_root or os.getcwd())
    limit_mb = DEFAULT_UPLOAD_LIMIT_MB
    if project_config is not None and project_config.max_upload_size_mb:
        limit_mb = project_config.max_upload_size_mb

    total_bytes = 0
    for relative_path in file_paths:
        absolute_path = root / relative_path
        if absolute_path.is_file():
            total_bytes += absolute_path.stat().st_size

    total_mb = total_bytes / (1024 * 1024)
    if total_mb > limit_mb:
        raise UploadSizeLimitError(total_mb, limit_mb)

    logger.debug(f"Upload size check passed ({total_mb:.2f}MB of {limit_mb}MB)")
    return total_bytes
