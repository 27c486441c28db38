"""Core sync engine for keeping the remote project copy current."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..config import ProjectConfig, load_project_config, save_project_config
from ..output import OutputFormatter
from .archive import build_archive
from .comparator import FileDiff, calculate_file_diff
from .ignore import IgnoreRules
from .scanner import Manifest, ManifestResult, build_manifest
from .scope import check_upload_size

if TYPE_CHECKING:
    from ..api import CodeAIClient

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a sync run."""

    diff: FileDiff = field(default_factory=FileDiff)
    """Files that differed from the remote copy"""

    uploaded: bool = False
    """Whether a patch was uploaded"""

    archive_size: int = 0
    """Size of the uploaded patch archive in bytes"""

    dry_run: bool = False

    @property
    def up_to_date(self) -> bool:
        return not self.diff.has_changes

    def to_dict(self) -> dict:
        return {
            "up_to_date": self.up_to_date,
            "files_to_update": list(self.diff.files_to_update),
            "uploaded": self.uploaded,
            "archive_size": self.archive_size,
            "dry_run": self.dry_run,
        }


@dataclass
class CreateResult:
    """Outcome of an initial project upload."""

    project_config: ProjectConfig
    project_url: Optional[str]
    file_count: int
    archive_size: int
    config_path: Optional[Path] = None


class SyncEngine:
    """Orchestrates manifest building, diffing and patch upload.

    The engine never touches the network itself; all remote calls go
    through the client, which already carries the API key.
    """

    def __init__(
        self,
        client: "CodeAIClient",
        output: Optional[OutputFormatter] = None,
        project_root: Optional[Union[str, Path]] = None,
        max_workers: int = 1,
        ignore_rules: Optional[IgnoreRules] = None,
    ):
        """Initialize sync engine.

        Args:
            client: CodeAI API client
            output: Output formatter for displaying progress/status
            project_root: Root of the project (defaults to the current directory)
            max_workers: Number of threads used for hashing
            ignore_rules: Pre-loaded ignore rules (read from the project root
                when omitted)
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.project_root = Path(os.path.abspath(project_root or os.getcwd()))
        self.max_workers = max_workers
        self.ignore_rules = ignore_rules

    def _progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet or self.output.json_output,
        )

    def _target_directory(self, target_directory: Optional[str]) -> str:
        if target_directory is not None:
            return target_directory
        return load_project_config(self.project_root).target_directory

    def build_local_manifest(self, target_directory: str) -> ManifestResult:
        """Scan the target directory and hash every included file."""
        return build_manifest(
            self.project_root,
            target_directory,
            ignore_rules=self.ignore_rules,
            max_workers=self.max_workers,
        )

    def fetch_remote_manifest(self, project_id: str) -> Manifest:
        """Fetch the manifest the service holds for a project."""
        return self.client.get_project_manifest(project_id)

    def sync_if_needed(
        self, project_id: str, target_directory: Optional[str] = None
    ) -> SyncResult:
        """Upload local changes so the remote copy matches the local tree.

        The remote manifest is fetched while the local manifest is built.
        When nothing differs, no archive is built and nothing is uploaded.

        Args:
            project_id: Remote project to update
            target_directory: Directory to scan (read from the project
                config when omitted)

        Returns:
            SyncResult describing what was uploaded

        Raises:
            FileAccessError: If a local file cannot be read
            CodeAIAPIError: If the service rejects a request
        """
        target = self._target_directory(target_directory)

        with self._progress() as progress:
            progress.add_task("Checking for local file changes...", total=None)
            with ThreadPoolExecutor(max_workers=2) as executor:
                remote_future = executor.submit(self.fetch_remote_manifest, project_id)
                local_future = executor.submit(self.build_local_manifest, target)
                local = local_future.result()
                remote_manifest = remote_future.result()

        diff = calculate_file_diff(local.manifest, remote_manifest)
        result = SyncResult(diff=diff)

        if not diff.has_changes:
            self.output.success("Project is up-to-date.")
            return result

        self.output.warning(
            f"Found {len(diff.files_to_update)} local changes. "
            "Deploying updates before analysis..."
        )
        result.archive_size = self._upload_patch(project_id, diff)
        result.uploaded = True
        self.output.success("Project context updated successfully.")
        return result

    def deploy(
        self,
        project_id: str,
        target_directory: Optional[str] = None,
        dry_run: bool = False,
    ) -> SyncResult:
        """Deploy local changes step by step, reporting each stage.

        Args:
            project_id: Remote project to update
            target_directory: Directory to scan (read from the project
                config when omitted)
            dry_run: If True, only report what would be uploaded

        Returns:
            SyncResult describing what was (or would be) uploaded
        """
        target = self._target_directory(target_directory)

        with self._progress() as progress:
            progress.add_task("Fetching remote project state...", total=None)
            remote_manifest = self.fetch_remote_manifest(project_id)
        self.output.success("Remote state fetched.")

        with self._progress() as progress:
            progress.add_task(
                "Scanning local files and calculating hashes...", total=None
            )
            local = self.build_local_manifest(target)
        self.output.success(f"Found {len(local.manifest)} local files.")

        diff = calculate_file_diff(local.manifest, remote_manifest)
        result = SyncResult(diff=diff, dry_run=dry_run)

        if not diff.has_changes:
            self.output.success(
                "No file changes detected. Your project is already up to date!"
            )
            return result

        self.output.info(
            f"Found {len(diff.files_to_update)} new or modified files to deploy."
        )

        if dry_run:
            self.output.print_file_list("Files to upload:", diff.files_to_update)
            self.output.info("Dry run: No changes were uploaded")
            return result

        result.archive_size = self._upload_patch(project_id, diff)
        result.uploaded = True
        self.output.success("Project successfully deployed!")
        return result

    def _upload_patch(self, project_id: str, diff: FileDiff) -> int:
        with self._progress() as progress:
            progress.add_task("Compressing changed files...", total=None)
            patch = build_archive(self.project_root, diff.files_to_update)
        logger.debug(f"Compressed patch file ({len(patch) / 1024:.2f} KB)")

        with self._progress() as progress:
            progress.add_task("Uploading patch to the server...", total=None)
            self.client.update_project_files(
                project_id, patch, diff.manifest_for_update
            )
        return len(patch)

    def create_project(
        self,
        project_name: str,
        target_directory: str = ".",
        max_upload_size_mb: Optional[float] = None,
        save_config: bool = True,
    ) -> CreateResult:
        """Upload the whole target directory as a new remote project.

        Args:
            project_name: Name of the new project
            target_directory: Directory to upload, relative to the project root
            max_upload_size_mb: Upload size limit to enforce and record
            save_config: Whether to write the project config afterwards

        Returns:
            CreateResult with the saved project config

        Raises:
            FileAccessError: If the target directory or a file cannot be read
            UploadSizeLimitError: If the project is larger than the limit
            CodeAIAPIError: If the service rejects the upload
        """
        with self._progress() as progress:
            progress.add_task("Preparing project files...", total=None)
            local = self.build_local_manifest(target_directory)

        if not local.included_files:
            self.output.warning(
                f'No files to upload were found in "{target_directory}".'
            )

        limits = ProjectConfig(
            project_id="",
            target_directory=target_directory,
            max_upload_size_mb=max_upload_size_mb,
        )
        check_upload_size(local.included_files, limits, self.project_root)

        with self._progress() as progress:
            progress.add_task("Compressing project files...", total=None)
            archive = build_archive(self.project_root, local.included_files)

        with self._progress() as progress:
            progress.add_task(
                f"Uploading {len(local.included_files)} files...", total=None
            )
            response = self.client.create_project_with_files(
                project_name, archive, local.manifest
            )

        project_config = ProjectConfig(
            project_id=response["projectId"],
            target_directory=target_directory,
            max_upload_size_mb=max_upload_size_mb,
        )
        config_path = None
        if save_config:
            config_path = save_project_config(self.project_root, project_config)

        return CreateResult(
            project_config=project_config,
            project_url=response.get("projectUrl"),
            file_count=len(local.included_files),
            archive_size=len(archive),
            config_path=config_path,
        )
