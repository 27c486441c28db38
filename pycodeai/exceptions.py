"""Exceptions raised by pycodeai."""

from typing import Optional


class CodeAIError(Exception):
    """Base exception for all pycodeai errors."""


# =============================================================================
# Configuration errors
# =============================================================================


class CodeAIConfigError(CodeAIError):
    """Raised when user or project configuration is missing or invalid."""


class ProjectNotInitializedError(CodeAIConfigError):
    """Raised when no project configuration file exists in the project root."""

    def __init__(self, config_path: str):
        self.config_path = config_path
        super().__init__(
            f"No {config_path} file found in the current directory. "
            "Please initialize your project first with 'codeai create'."
        )


class ProjectConfigError(CodeAIConfigError):
    """Raised when the project configuration file exists but is malformed."""


class ProjectAlreadyInitializedError(CodeAIConfigError):
    """Raised when creating a project in a directory that is already linked."""

    def __init__(self, project_id: Optional[str] = None):
        self.project_id = project_id
        message = "Project already initialized."
        if project_id:
            message += f" This directory is already linked to project ID: {project_id}."
        message += (
            " Use 'codeai run' to run a new analysis or 'codeai deploy' "
            "to deploy updated files."
        )
        super().__init__(message)


# =============================================================================
# Sync engine errors
# =============================================================================


class ScopeViolationError(CodeAIError):
    """Raised when a resolved file lies outside the configured target directory."""

    def __init__(self, file_path: str, target_directory: str):
        self.file_path = file_path
        self.target_directory = target_directory
        super().__init__(
            f'File path "{file_path}" is outside the project\'s configured '
            f'target directory ("{target_directory}").'
        )


class FileAccessError(CodeAIError):
    """Raised when a file or directory cannot be read during a scan or archive."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class UploadSizeLimitError(CodeAIError):
    """Raised when the total upload size exceeds the project limit."""

    def __init__(self, total_size_mb: float, limit_mb: float):
        self.total_size_mb = total_size_mb
        self.limit_mb = limit_mb
        super().__init__(
            f"Total size of files to upload ({total_size_mb:.2f}MB) exceeds "
            f"the project limit of {limit_mb}MB."
        )


class OperationCancelledError(CodeAIError):
    """Raised when the user declines a confirmation prompt."""


class GitRepositoryError(CodeAIError):
    """Raised when git information is requested outside a git repository."""


# =============================================================================
# API errors
# =============================================================================


class CodeAIAPIError(CodeAIError):
    """Base exception for errors returned by the analysis service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class CodeAIAuthenticationError(CodeAIAPIError):
    """Raised when the API key is missing, invalid or expired."""


class CodeAIPermissionError(CodeAIAPIError):
    """Raised when the user may not access the requested project."""


class CodeAINotFoundError(CodeAIAPIError):
    """Raised when the requested project or endpoint does not exist."""


class CodeAIRateLimitError(CodeAIAPIError):
    """Raised when the service rejects a request due to rate limiting."""


class CodeAIPayloadTooLargeError(CodeAIAPIError):
    """Raised when an uploaded archive exceeds the server-side limit."""


class CodeAINetworkError(CodeAIAPIError):
    """Raised on transport-level failures (DNS, connection, timeout)."""


class CodeAIInvalidResponseError(CodeAIAPIError):
    """Raised when the service returns a response that cannot be parsed."""
