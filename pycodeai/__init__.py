"""CodeAI CLI - sync local projects with the CodeAI analysis service."""

from .api import CodeAIClient
from .exceptions import (
    CodeAIAPIError,
    CodeAIAuthenticationError,
    CodeAIConfigError,
    CodeAIError,
    CodeAIInvalidResponseError,
    CodeAINetworkError,
    CodeAINotFoundError,
    CodeAIPayloadTooLargeError,
    CodeAIPermissionError,
    CodeAIRateLimitError,
    FileAccessError,
    GitRepositoryError,
    OperationCancelledError,
    ProjectAlreadyInitializedError,
    ProjectConfigError,
    ProjectNotInitializedError,
    ScopeViolationError,
    UploadSizeLimitError,
)
from .utils import calculate_content_hash, calculate_file_hash

__version__ = "0.1.0"

__all__ = [
    "CodeAIClient",
    "CodeAIError",
    "CodeAIAPIError",
    "CodeAIAuthenticationError",
    "CodeAIConfigError",
    "CodeAIInvalidResponseError",
    "CodeAINetworkError",
    "CodeAINotFoundError",
    "CodeAIPayloadTooLargeError",
    "CodeAIPermissionError",
    "CodeAIRateLimitError",
    "FileAccessError",
    "GitRepositoryError",
    "OperationCancelledError",
    "ProjectAlreadyInitializedError",
    "ProjectConfigError",
    "ProjectNotInitializedError",
    "ScopeViolationError",
    "UploadSizeLimitError",
    "calculate_content_hash",
    "calculate_file_hash",
]
