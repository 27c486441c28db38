"""API client for the CodeAI analysis service."""

from __future__ import annotations

import json
import logging
import random
import time
from typing import Any

import httpx

from .config import config
from .exceptions import (
    CodeAIAPIError,
    CodeAIAuthenticationError,
    CodeAIConfigError,
    CodeAIInvalidResponseError,
    CodeAINetworkError,
    CodeAINotFoundError,
    CodeAIPayloadTooLargeError,
    CodeAIPermissionError,
    CodeAIRateLimitError,
)
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY

logger = logging.getLogger(__name__)


class CodeAIClient:
    """Client for interacting with the CodeAI API.

    Every endpoint is a POST to ``<api_url>/<name>Function``. JSON endpoints
    wrap their payload in a ``data`` object; uploads are multipart forms.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        max_retries: int | None = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float | None = None,
        require_api_key: bool = True,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize CodeAI API client.

        Args:
            api_key: Optional API key (uses config if not provided)
            api_url: Optional API URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (uses config if not
                provided)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (uses config if not provided)
            require_api_key: Fail early when no API key is available. The
                login flow polls for a key and therefore runs without one.
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key or config.api_key
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = config.max_retries if max_retries is None else max_retries
        self.retry_delay = retry_delay
        self.timeout = config.http_timeout if timeout is None else timeout
        self._transport = transport

        if require_api_key and not self.api_key:
            raise CodeAIConfigError(
                "You must be logged in. Please run 'codeai login' or set the "
                "CODEAI_API_KEY environment variable."
            )

        self._client: httpx.Client | None = None

    def __enter__(self) -> CodeAIClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            headers = {}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.Client(
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Transient failures
        if isinstance(exception, (CodeAINetworkError, CodeAIRateLimitError)):
            return True

        if isinstance(exception, CodeAIAPIError) and exception.status_code:
            return 500 <= exception.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _extract_error_message(response: httpx.Response) -> str | None:
        """Pull a human-readable message out of an error response body."""
        if not response.content:
            return None
        try:
            error_data = response.json()
        except ValueError:
            return None
        if not isinstance(error_data, dict):
            return None
        error = error_data.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        msg = error or error_data.get("message") or error_data.get("detail")
        return str(msg) if msg else None

    def _handle_http_error(self, e: httpx.HTTPStatusError) -> CodeAIAPIError:
        """Map an HTTP error response to a pycodeai exception.

        Args:
            e: The HTTP error exception

        Returns:
            The exception to raise (or retry on)
        """
        status_code = e.response.status_code
        detail = self._extract_error_message(e.response)

        if status_code == 401:
            return CodeAIAuthenticationError(
                "Authentication failed. Please check your API key or run "
                "'codeai login'.",
                status_code,
            )
        if status_code == 403:
            return CodeAIPermissionError(
                "Access denied. You do not have permission to perform this action.",
                status_code,
            )
        if status_code == 404:
            return CodeAINotFoundError(
                detail or "Resource not found. Check the project ID in .codeai.json.",
                status_code,
            )
        if status_code == 413:
            return CodeAIPayloadTooLargeError(
                "The upload is too large for the server. Reduce the number of "
                "files or raise maxUploadSizeMB in .codeai.json.",
                status_code,
            )
        if status_code == 429:
            return CodeAIRateLimitError(
                "Rate limit exceeded - please try again later", status_code
            )

        error_msg = f"API request failed with status {status_code}"
        if detail:
            error_msg = f"{error_msg}: {detail}"
        return CodeAIAPIError(error_msg, status_code)

    def _retry_delay_for(
        self, error: Exception, response: httpx.Response | None, attempt: int
    ) -> float:
        if isinstance(error, CodeAIRateLimitError) and response is not None:
            retry_after = response.headers.get("Retry-After")
            if retry_after and retry_after.isdigit():
                return float(retry_after)
        return self._calculate_retry_delay(attempt)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            CodeAIAPIError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            response: httpx.Response | None = None
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                error: CodeAIAPIError = self._handle_http_error(e)
                if self._should_retry(error, attempt):
                    delay = self._retry_delay_for(error, response, attempt)
                    logger.debug(
                        f"{endpoint} failed with {e.response.status_code}, "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    continue
                raise error from e
            except httpx.RequestError as e:
                error = CodeAINetworkError(f"Network error: {e}")
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(f"{endpoint} network error, retrying in {delay:.1f}s")
                    time.sleep(delay)
                    continue
                raise error from e

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise CodeAIInvalidResponseError(
                    "Invalid JSON response from server", response.status_code
                ) from e

        raise CodeAIAPIError("Request failed after all retry attempts")

    # =========================
    # Project Operations
    # =========================

    def get_project_manifest(self, project_id: str) -> dict[str, str]:
        """Fetch the manifest the service holds for a project.

        Args:
            project_id: ID of the remote project

        Returns:
            Mapping of relative path to content hash (empty for a project
            without files)
        """
        result = self._request(
            "POST",
            "/getProjectManifestFunction",
            json={"data": {"projectId": project_id}},
        )
        manifest = result.get("manifest") if isinstance(result, dict) else None
        if manifest is None:
            return {}
        if not isinstance(manifest, dict):
            raise CodeAIInvalidResponseError("Manifest response is not an object")
        return {str(k): str(v) for k, v in manifest.items()}

    def update_project_files(
        self,
        project_id: str,
        patch_zip: bytes,
        updated_manifest: dict[str, str],
    ) -> dict[str, Any]:
        """Upload a patch archive for an existing project.

        Args:
            project_id: ID of the remote project
            patch_zip: ZIP archive holding the changed files
            updated_manifest: Hashes of the files in the archive

        Returns:
            Response data from the service
        """
        logger.debug(
            f"Uploading patch for {project_id}: {len(updated_manifest)} file(s), "
            f"{len(patch_zip)} bytes"
        )
        return self._request(
            "POST",
            "/updateProjectFilesFunction",
            files={"patchZip": ("patch.zip", patch_zip, "application/zip")},
            data={
                "updatedManifest": json.dumps(updated_manifest),
                "projectId": project_id,
            },
        )

    def create_project_with_files(
        self,
        project_name: str,
        project_zip: bytes,
        file_manifest: dict[str, str],
    ) -> dict[str, Any]:
        """Create a new remote project from a full archive.

        Args:
            project_name: Display name of the project
            project_zip: ZIP archive of every included file
            file_manifest: Hashes of the files in the archive

        Returns:
            Response data containing ``projectId`` (and usually ``projectUrl``)

        Raises:
            CodeAIInvalidResponseError: If no project ID is returned
        """
        result = self._request(
            "POST",
            "/createProjectWithFilesFunction",
            files={"projectZip": ("project.zip", project_zip, "application/zip")},
            data={
                "fileManifest": json.dumps(file_manifest),
                "projectName": project_name,
            },
        )
        if not isinstance(result, dict) or not result.get("projectId"):
            raise CodeAIInvalidResponseError("Server did not return a project ID")
        return result

    # =========================
    # Analysis Operations
    # =========================

    def trigger_analysis(
        self,
        project_id: str,
        task: str,
        language: str,
        scope: str,
        files_for_analysis: list[str],
    ) -> dict[str, Any]:
        """Start an analysis run for an existing project.

        Args:
            project_id: ID of the remote project
            task: Analysis task (e.g. REVIEW); sent upper-cased
            language: Language for the results (e.g. en); sent lower-cased
            scope: Analysis scope value
            files_for_analysis: Files to analyze

        Returns:
            Response data containing ``resultsUrl`` and ``analysisRunId``
        """
        return self._request(
            "POST",
            "/triggerAnalysisForCliFunction",
            json={
                "data": {
                    "projectId": project_id,
                    "task": task.upper(),
                    "parameters": {"language": language.lower()},
                    "scope": scope,
                    "filesForAnalysis": files_for_analysis,
                }
            },
        )

    # =========================
    # Authentication
    # =========================

    def get_cli_api_key(self, session_id: str) -> str | None:
        """Poll for the API key issued to a browser login session.

        Args:
            session_id: Session ID embedded in the login URL

        Returns:
            The API key, or None while the session is not yet confirmed
        """
        result = self._request(
            "POST",
            "/getCliApiKeyFunction",
            json={"data": {"sessionId": session_id}},
        )
        if not isinstance(result, dict):
            return None
        inner = result.get("result")
        if isinstance(inner, dict) and inner.get("apiKey"):
            return str(inner["apiKey"])
        return None
