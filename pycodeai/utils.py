"""Utility functions for pycodeai."""

import hashlib
from pathlib import Path
from typing import Union

# =============================================================================
# Constants for project operations
# =============================================================================

# Name of the project configuration file stored in the project root
CONFIG_FILE_NAME: str = ".codeai.json"

# Name of the ignore file read from the project root
IGNORE_FILE_NAME: str = ".gitignore"

# Default maximum upload size for a project (MB)
DEFAULT_UPLOAD_LIMIT_MB: float = 10

# Soft limit for the number of files in a single analysis run
FILE_RUN_LIMIT: int = 200

# Block size used when hashing files
HASH_CHUNK_SIZE: int = 64 * 1024

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Path utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize path separators to forward slashes.

    Examples:
        >>> normalize_path("src\\\\app\\\\index.ts")
        'src/app/index.ts'
        >>> normalize_path("src/app.ts")
        'src/app.ts'
    """
    return path.replace("\\", "/")


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_content_hash(data: bytes) -> str:
    """Calculate the content hash used in project manifests.

    Args:
        data: Raw file content

    Returns:
        Hex-encoded SHA-1 digest

    Examples:
        >>> calculate_content_hash(b"A")
        '6dcd4ce23d88e2ee9568ba546c007c63d9131c1b'
    """
    return hashlib.sha1(data).hexdigest()


def calculate_file_hash(file_path: Union[str, Path]) -> str:
    """Calculate the content hash of a file without loading it at once.

    Produces the same digest as :func:`calculate_content_hash` on the
    file's bytes.

    Args:
        file_path: Path to the file

    Returns:
        Hex-encoded SHA-1 digest

    Raises:
        OSError: If the file cannot be read
    """
    sha = hashlib.sha1()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            sha.update(chunk)
    return sha.hexdigest()
