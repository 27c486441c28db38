"""Manifest comparison logic for sync operations."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .scanner import Manifest

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be taken for a local file during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    SKIP = "skip"
    """Skip file (remote copy is current)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    relative_path: str
    """Relative path of the file"""

    local_hash: str
    """Content hash of the local file"""

    remote_hash: Optional[str]
    """Content hash recorded remotely (None if the file is new)"""


@dataclass
class FileDiff:
    """The minimal patch needed to bring the remote copy up to date."""

    files_to_update: list[str] = field(default_factory=list)
    """New or modified paths, in local manifest order"""

    manifest_for_update: Manifest = field(default_factory=dict)
    """Local manifest restricted to files_to_update"""

    @property
    def has_changes(self) -> bool:
        """Whether any file needs to be uploaded."""
        return bool(self.files_to_update)


class FileComparator:
    """Compares a local manifest with the remote manifest.

    Only additions and modifications are detected. Files that exist
    remotely but not locally are left alone.
    """

    def compare_files(
        self, local_manifest: Manifest, remote_manifest: Manifest
    ) -> list[SyncDecision]:
        """Determine the action for every local file.

        Args:
            local_manifest: Freshly built local manifest
            remote_manifest: Manifest reported by the service

        Returns:
            List of SyncDecision objects in local manifest order
        """
        decisions: list[SyncDecision] = []

        for path, local_hash in local_manifest.items():
            remote_hash = remote_manifest.get(path)
            decisions.append(self._compare_single_file(path, local_hash, remote_hash))

        remote_only = len(set(remote_manifest) - set(local_manifest))
        if remote_only:
            logger.debug(f"{remote_only} remote-only file(s) left untouched")

        return decisions

    def _compare_single_file(
        self, path: str, local_hash: str, remote_hash: Optional[str]
    ) -> SyncDecision:
        if remote_hash is None:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="New local file",
                relative_path=path,
                local_hash=local_hash,
                remote_hash=None,
            )
        if remote_hash != local_hash:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="Local file modified",
                relative_path=path,
                local_hash=local_hash,
                remote_hash=remote_hash,
            )
        return SyncDecision(
            action=SyncAction.SKIP,
            reason="Files are identical (same hash)",
            relative_path=path,
            local_hash=local_hash,
            remote_hash=remote_hash,
        )

    def diff(self, local_manifest: Manifest, remote_manifest: Manifest) -> FileDiff:
        """Compute the patch for a pair of manifests."""
        result = FileDiff()
        for decision in self.compare_files(local_manifest, remote_manifest):
            if decision.action == SyncAction.UPLOAD:
                result.files_to_update.append(decision.relative_path)
                result.manifest_for_update[decision.relative_path] = decision.local_hash
        return result


def calculate_file_diff(
    local_manifest: Manifest, remote_manifest: Manifest
) -> FileDiff:
    """Compute the new or modified files between two manifests.

    Examples:
        >>> calculate_file_diff({"a.py": "1", "b.py": "2"}, {"a.py": "1"})
        FileDiff(files_to_update=['b.py'], manifest_for_update={'b.py': '2'})
    """
    return FileComparator().diff(local_manifest, remote_manifest)
