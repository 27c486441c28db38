"""Unit tests for the CodeAI API client."""

import json
from unittest.mock import patch

import httpx
import pytest

from pycodeai.api import CodeAIClient
from pycodeai.exceptions import (
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

API_URL = "https://api.test"


class RecordingHandler:
    """MockTransport handler that replays responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if len(self.responses) > 1:
            response = self.responses.pop(0)
        else:
            response = self.responses[0]
        if isinstance(response, Exception):
            raise response
        # Fresh copy so the last response can be served repeatedly
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )


def make_client(handler, **kwargs):
    kwargs.setdefault("max_retries", 2)
    return CodeAIClient(
        api_key="test_key",
        api_url=API_URL,
        retry_delay=0,
        timeout=5,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestCodeAIClient:
    """Tests for CodeAIClient initialization."""

    def test_init_with_api_key(self):
        client = CodeAIClient(api_key="test_key", api_url="https://custom.api/")
        assert client.api_key == "test_key"
        assert client.api_url == "https://custom.api"

    def test_init_without_api_key_raises_error(self):
        with patch("pycodeai.api.config") as mock_config:
            mock_config.api_key = None
            with pytest.raises(CodeAIConfigError, match="codeai login"):
                CodeAIClient(api_key=None)

    def test_init_without_api_key_allowed_for_login(self):
        with patch("pycodeai.api.config") as mock_config:
            mock_config.api_key = None
            mock_config.api_url = API_URL
            mock_config.max_retries = 3
            mock_config.http_timeout = 30.0
            client = CodeAIClient(require_api_key=False)

        assert client.api_key is None
        assert "Authorization" not in client._get_client().headers
        client.close()

    def test_authorization_header(self):
        handler = RecordingHandler(httpx.Response(200, json={"manifest": {}}))
        with make_client(handler) as client:
            client.get_project_manifest("p1")

        assert handler.requests[0].headers["Authorization"] == "Bearer test_key"

    def test_close_is_idempotent(self):
        client = make_client(RecordingHandler(httpx.Response(200, json={})))
        client._get_client()
        client.close()
        client.close()
        assert client._client is None


class TestProjectEndpoints:
    """Tests for project manifest and upload endpoints."""

    def test_get_project_manifest(self):
        handler = RecordingHandler(
            httpx.Response(200, json={"manifest": {"src/a.ts": "h1"}})
        )
        with make_client(handler) as client:
            manifest = client.get_project_manifest("p1")

        assert manifest == {"src/a.ts": "h1"}
        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{API_URL}/getProjectManifestFunction"
        assert json.loads(request.content) == {"data": {"projectId": "p1"}}

    def test_get_project_manifest_without_manifest(self):
        handler = RecordingHandler(httpx.Response(200, json={}))
        with make_client(handler) as client:
            assert client.get_project_manifest("p1") == {}

    def test_get_project_manifest_invalid_shape(self):
        handler = RecordingHandler(httpx.Response(200, json={"manifest": ["x"]}))
        with make_client(handler) as client:
            with pytest.raises(CodeAIInvalidResponseError):
                client.get_project_manifest("p1")

    def test_update_project_files_multipart(self):
        handler = RecordingHandler(httpx.Response(200, json={"success": True}))
        with make_client(handler) as client:
            result = client.update_project_files(
                "p1", b"PK-zip-bytes", {"src/a.ts": "h1"}
            )

        assert result == {"success": True}
        request = handler.requests[0]
        assert str(request.url) == f"{API_URL}/updateProjectFilesFunction"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        body = request.content
        assert b'name="patchZip"; filename="patch.zip"' in body
        assert b"PK-zip-bytes" in body
        assert b'name="updatedManifest"' in body
        assert b'{"src/a.ts": "h1"}' in body
        assert b'name="projectId"' in body

    def test_create_project_with_files(self):
        handler = RecordingHandler(
            httpx.Response(200, json={"projectId": "new", "projectUrl": "https://x"})
        )
        with make_client(handler) as client:
            result = client.create_project_with_files("demo", b"zip", {"a.ts": "h"})

        assert result["projectId"] == "new"
        body = handler.requests[0].content
        assert b'name="projectZip"; filename="project.zip"' in body
        assert b'name="fileManifest"' in body
        assert b'name="projectName"' in body
        assert b"demo" in body

    def test_create_project_without_id_raises(self):
        handler = RecordingHandler(httpx.Response(200, json={"ok": True}))
        with make_client(handler) as client:
            with pytest.raises(CodeAIInvalidResponseError, match="project ID"):
                client.create_project_with_files("demo", b"zip", {})


class TestAnalysisEndpoints:
    """Tests for analysis and login endpoints."""

    def test_trigger_analysis_payload(self):
        handler = RecordingHandler(
            httpx.Response(
                200, json={"resultsUrl": "https://r", "analysisRunId": "run-1"}
            )
        )
        with make_client(handler) as client:
            result = client.trigger_analysis(
                "p1", "review", "EN", "SELECTED_FILES", ["src/a.ts"]
            )

        assert result["analysisRunId"] == "run-1"
        assert json.loads(handler.requests[0].content) == {
            "data": {
                "projectId": "p1",
                "task": "REVIEW",
                "parameters": {"language": "en"},
                "scope": "SELECTED_FILES",
                "filesForAnalysis": ["src/a.ts"],
            }
        }

    def test_get_cli_api_key(self):
        handler = RecordingHandler(
            httpx.Response(200, json={"result": {"apiKey": "issued"}})
        )
        with make_client(handler) as client:
            assert client.get_cli_api_key("session-1") == "issued"

        assert json.loads(handler.requests[0].content) == {
            "data": {"sessionId": "session-1"}
        }

    def test_get_cli_api_key_pending(self):
        handler = RecordingHandler(httpx.Response(200, json={"result": {}}))
        with make_client(handler) as client:
            assert client.get_cli_api_key("session-1") is None


class TestErrorHandling:
    """Tests for status mapping and retries."""

    @pytest.mark.parametrize(
        "status,error_class",
        [
            (401, CodeAIAuthenticationError),
            (403, CodeAIPermissionError),
            (404, CodeAINotFoundError),
            (413, CodeAIPayloadTooLargeError),
        ],
    )
    def test_client_errors_are_not_retried(self, status, error_class):
        handler = RecordingHandler(httpx.Response(status, json={}))
        with make_client(handler) as client:
            with pytest.raises(error_class) as exc_info:
                client.get_project_manifest("p1")

        assert exc_info.value.status_code == status
        assert len(handler.requests) == 1

    def test_server_error_retried_then_succeeds(self):
        handler = RecordingHandler(
            httpx.Response(503),
            httpx.Response(200, json={"manifest": {"a.ts": "h"}}),
        )
        with make_client(handler) as client:
            assert client.get_project_manifest("p1") == {"a.ts": "h"}

        assert len(handler.requests) == 2

    def test_server_error_exhausts_retries(self):
        handler = RecordingHandler(
            httpx.Response(500, json={"error": {"message": "boom"}})
        )
        with make_client(handler, max_retries=2) as client:
            with pytest.raises(CodeAIAPIError, match="500: boom") as exc_info:
                client.get_project_manifest("p1")

        assert exc_info.value.status_code == 500
        assert len(handler.requests) == 3

    def test_rate_limit_retried(self):
        handler = RecordingHandler(
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, json={"manifest": {}}),
        )
        with make_client(handler) as client:
            assert client.get_project_manifest("p1") == {}

        assert len(handler.requests) == 2

    def test_rate_limit_exhausted(self):
        handler = RecordingHandler(httpx.Response(429))
        with make_client(handler, max_retries=1) as client:
            with pytest.raises(CodeAIRateLimitError):
                client.get_project_manifest("p1")

        assert len(handler.requests) == 2

    def test_network_error_retried_then_raised(self):
        request = httpx.Request("POST", API_URL)
        handler = RecordingHandler(httpx.ConnectError("refused", request=request))
        with make_client(handler, max_retries=1) as client:
            with pytest.raises(CodeAINetworkError, match="refused"):
                client.get_project_manifest("p1")

        assert len(handler.requests) == 2

    def test_invalid_json_response(self):
        handler = RecordingHandler(httpx.Response(200, content=b"<html></html>"))
        with make_client(handler) as client:
            with pytest.raises(CodeAIInvalidResponseError):
                client.get_project_manifest("p1")

    def test_error_detail_from_message_field(self):
        handler = RecordingHandler(httpx.Response(400, json={"message": "bad input"}))
        with make_client(handler) as client:
            with pytest.raises(CodeAIAPIError, match="400: bad input"):
                client.trigger_analysis("p1", "REVIEW", "en", "SELECTED_FILES", [])

        assert len(handler.requests) == 1
