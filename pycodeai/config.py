"""Configuration handling for pycodeai.

Two kinds of configuration exist:

* user configuration (API key, service URLs), stored in
  ``~/.config/pycodeai/config`` and overridable via environment variables;
* project configuration (``.codeai.json``), stored in the root of every
  linked project.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import (
    ProjectAlreadyInitializedError,
    ProjectConfigError,
    ProjectNotInitializedError,
)
from .utils import CONFIG_FILE_NAME, DEFAULT_MAX_RETRIES

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.codeai.dev"
DEFAULT_WEB_URL = "https://app.codeai.dev"
DEFAULT_HTTP_TIMEOUT = 30.0


class Config:
    """User-level configuration backed by environment variables and a JSON file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ``CODEAI_CONFIG_DIR`` or ``~/.config/pycodeai``.
        """
        if config_dir is None:
            env_dir = os.environ.get("CODEAI_CONFIG_DIR")
            if env_dir:
                config_dir = Path(env_dir).expanduser()
            else:
                config_dir = Path.home() / ".config" / "pycodeai"
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the user configuration file."""
        return self.config_dir / "config"

    def _read(self) -> dict[str, Any]:
        config_path = self.get_config_path()
        if not config_path.exists():
            return {}
        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read config file {config_path}: {e}")
            return {}

    def _write(self, data: dict[str, Any]) -> None:
        config_path = self.get_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        config_path.chmod(0o600)

    @property
    def api_key(self) -> Optional[str]:
        """API key from ``CODEAI_API_KEY`` or the config file."""
        return os.environ.get("CODEAI_API_KEY") or self._read().get("apiKey")

    @property
    def api_url(self) -> str:
        """Base URL of the analysis service API."""
        return os.environ.get("CODEAI_API_URL", DEFAULT_API_URL).rstrip("/")

    @property
    def web_url(self) -> str:
        """Base URL of the web application (used for browser login)."""
        return os.environ.get("CODEAI_WEB_URL", DEFAULT_WEB_URL).rstrip("/")

    @property
    def http_timeout(self) -> float:
        """HTTP request timeout in seconds."""
        try:
            return float(os.environ.get("CODEAI_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
        except ValueError:
            return DEFAULT_HTTP_TIMEOUT

    @property
    def max_retries(self) -> int:
        """Maximum number of retries for transient HTTP failures."""
        try:
            return int(os.environ.get("CODEAI_MAX_RETRIES", DEFAULT_MAX_RETRIES))
        except ValueError:
            return DEFAULT_MAX_RETRIES

    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return bool(self.api_key)

    def save_api_key(self, api_key: str) -> None:
        """Persist the API key to the config file (mode 0600)."""
        data = self._read()
        data["apiKey"] = api_key
        self._write(data)
        logger.debug(f"Saved API key to {self.get_config_path()}")

    def remove_api_key(self) -> bool:
        """Remove the stored API key.

        Returns:
            True if a key was removed, False if none was stored
        """
        data = self._read()
        if "apiKey" not in data:
            return False
        del data["apiKey"]
        if data:
            self._write(data)
        else:
            self.get_config_path().unlink()
        return True


config = Config()


# =============================================================================
# Project configuration (.codeai.json)
# =============================================================================


@dataclass(frozen=True)
class ProjectConfig:
    """Configuration linking a local directory to a remote project."""

    project_id: str
    """Remote project identifier"""

    target_directory: str
    """Directory (relative to the project root) that is analyzed"""

    max_upload_size_mb: Optional[float] = None
    """Optional per-project upload limit in megabytes"""

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk JSON representation."""
        data: dict[str, Any] = {
            "projectId": self.project_id,
            "targetDirectory": self.target_directory,
        }
        if self.max_upload_size_mb is not None:
            data["maxUploadSizeMB"] = self.max_upload_size_mb
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectConfig":
        """Create a ProjectConfig from its JSON representation.

        Raises:
            ProjectConfigError: If required fields are missing or invalid
        """
        project_id = data.get("projectId")
        target_directory = data.get("targetDirectory")
        if not project_id or not target_directory:
            raise ProjectConfigError(
                f"projectId or targetDirectory not found in {CONFIG_FILE_NAME}"
            )
        max_upload = data.get("maxUploadSizeMB")
        if max_upload is not None and (
            isinstance(max_upload, bool) or not isinstance(max_upload, (int, float))
        ):
            raise ProjectConfigError(
                f"maxUploadSizeMB in {CONFIG_FILE_NAME} must be a number"
            )
        return cls(
            project_id=str(project_id),
            target_directory=str(target_directory),
            max_upload_size_mb=max_upload,
        )


def get_project_config_path(project_root: Union[str, Path]) -> Path:
    """Return the path of the project configuration file."""
    return Path(project_root) / CONFIG_FILE_NAME


def project_config_exists(project_root: Union[str, Path]) -> bool:
    """Check whether the project root contains a configuration file."""
    return get_project_config_path(project_root).is_file()


def load_project_config(project_root: Union[str, Path]) -> ProjectConfig:
    """Load the project configuration from the project root.

    Args:
        project_root: Directory containing ``.codeai.json``

    Returns:
        The parsed ProjectConfig

    Raises:
        ProjectNotInitializedError: If the file does not exist
        ProjectConfigError: If the file cannot be parsed or is incomplete
    """
    config_path = get_project_config_path(project_root)
    if not config_path.is_file():
        raise ProjectNotInitializedError(CONFIG_FILE_NAME)

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ProjectConfigError(
            f"Error reading or parsing {CONFIG_FILE_NAME}: {e}"
        ) from e

    if not isinstance(data, dict):
        raise ProjectConfigError(f"{CONFIG_FILE_NAME} must contain a JSON object")

    project_config = ProjectConfig.from_dict(data)
    logger.debug(
        "Loaded project config: project_id=%s target_directory=%s",
        project_config.project_id,
        project_config.target_directory,
    )
    return project_config


def save_project_config(
    project_root: Union[str, Path], project_config: ProjectConfig
) -> Path:
    """Write the project configuration file.

    Returns:
        Path of the written file
    """
    config_path = get_project_config_path(project_root)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(project_config.to_dict(), f, indent=2)
        f.write("\n")
    logger.debug(f"Saved project config to {config_path}")
    return config_path


def guard_against_existing_project(project_root: Union[str, Path]) -> None:
    """Refuse to create a project where one is already linked.

    Raises:
        ProjectAlreadyInitializedError: If a configuration file exists
        ProjectConfigError: If the existing file cannot be read
    """
    config_path = get_project_config_path(project_root)
    if not config_path.exists():
        return

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ProjectConfigError(
            f"An existing {CONFIG_FILE_NAME} file was found but could not be read: {e}"
        ) from e

    project_id = data.get("projectId") if isinstance(data, dict) else None
    raise ProjectAlreadyInitializedError(project_id)
