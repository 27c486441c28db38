"""Sync engine for pycodeai - manifests, scopes, diffs and patch archives."""

from .archive import archive_paths, build_archive, list_archive_entries
from .classifier import is_eligible_file, is_excluded_path, is_supported_code_file
from .comparator import (
    FileComparator,
    FileDiff,
    SyncAction,
    SyncDecision,
    calculate_file_diff,
)
from .engine import CreateResult, SyncEngine, SyncResult
from .ignore import IgnoreRules, load_ignore_rules
from .scanner import (
    DirectoryScanner,
    LocalFile,
    Manifest,
    ManifestResult,
    build_manifest,
    get_files_for_scope,
)
from .scope import (
    AnalysisScope,
    ScopeRequest,
    ScopeResult,
    check_upload_size,
    determine_scope,
    validate_paths_in_scope,
)

__all__ = [
    "SyncEngine",
    "SyncResult",
    "CreateResult",
    "DirectoryScanner",
    "LocalFile",
    "Manifest",
    "ManifestResult",
    "build_manifest",
    "get_files_for_scope",
    "FileComparator",
    "FileDiff",
    "SyncAction",
    "SyncDecision",
    "calculate_file_diff",
    "IgnoreRules",
    "load_ignore_rules",
    "AnalysisScope",
    "ScopeRequest",
    "ScopeResult",
    "determine_scope",
    "validate_paths_in_scope",
    "check_upload_size",
    "build_archive",
    "archive_paths",
    "list_archive_entries",
    "is_excluded_path",
    "is_supported_code_file",
    "is_eligible_file",
]
