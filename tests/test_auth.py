"""Tests for authentication helpers."""

from unittest.mock import Mock, patch

import pytest

from pycodeai.api import CodeAIClient
from pycodeai.auth import build_login_url, logout, require_api_key, web_login
from pycodeai.exceptions import CodeAIAuthenticationError, CodeAINetworkError
from pycodeai.output import OutputFormatter


@pytest.fixture
def mock_config():
    with patch("pycodeai.auth.config") as cfg:
        cfg.web_url = "https://app.test"
        cfg.api_key = None
        yield cfg


@pytest.fixture
def mock_output():
    output = Mock(spec=OutputFormatter)
    output.quiet = True
    output.json_output = False
    return output


class TestWebLogin:
    """Tests for the browser login flow."""

    def test_build_login_url(self):
        assert (
            build_login_url("abc", "https://app.test/")
            == "https://app.test/cli-login?session=abc"
        )

    @patch("pycodeai.auth.click.launch", return_value=0)
    def test_polls_until_key_issued(self, mock_launch, mock_config, mock_output):
        client = Mock(spec=CodeAIClient)
        client.get_cli_api_key.side_effect = [
            None,
            CodeAINetworkError("flaky"),
            "issued-key",
        ]
        sleep = Mock()

        api_key = web_login(
            client, mock_output, session_id="session-1", sleep=sleep
        )

        assert api_key == "issued-key"
        mock_launch.assert_called_once_with(
            "https://app.test/cli-login?session=session-1"
        )
        client.get_cli_api_key.assert_called_with("session-1")
        assert client.get_cli_api_key.call_count == 3
        assert sleep.call_count == 2
        mock_config.save_api_key.assert_called_once_with("issued-key")

    @patch("pycodeai.auth.click.launch", return_value=0)
    def test_times_out(self, mock_launch, mock_config, mock_output):
        client = Mock(spec=CodeAIClient)
        client.get_cli_api_key.return_value = None
        sleep = Mock()

        with pytest.raises(CodeAIAuthenticationError, match="Login timed out."):
            web_login(
                client, mock_output, max_attempts=3, poll_interval=0.5, sleep=sleep
            )

        assert client.get_cli_api_key.call_count == 3
        sleep.assert_called_with(0.5)
        mock_config.save_api_key.assert_not_called()

    @patch("pycodeai.auth.click.launch")
    def test_browser_not_opened_when_disabled(
        self, mock_launch, mock_config, mock_output
    ):
        client = Mock(spec=CodeAIClient)
        client.get_cli_api_key.return_value = "key"

        web_login(client, mock_output, open_browser=False, sleep=Mock())

        mock_launch.assert_not_called()

    @patch("pycodeai.auth.click.launch", return_value=1)
    def test_browser_failure_warns(self, mock_launch, mock_config, mock_output):
        client = Mock(spec=CodeAIClient)
        client.get_cli_api_key.return_value = "key"

        web_login(client, mock_output, sleep=Mock())

        mock_output.warning.assert_called_once()

    def test_session_ids_are_unique(self, mock_config, mock_output):
        client = Mock(spec=CodeAIClient)
        client.get_cli_api_key.return_value = "key"

        web_login(client, mock_output, open_browser=False, sleep=Mock())
        web_login(client, mock_output, open_browser=False, sleep=Mock())

        first, second = (c.args[0] for c in client.get_cli_api_key.call_args_list)
        assert first != second


class TestLogout:
    def test_logout_removes_key(self, mock_config):
        mock_config.remove_api_key.return_value = True

        assert logout() is True
        mock_config.remove_api_key.assert_called_once_with()


class TestRequireApiKey:
    """Tests for require_api_key."""

    def test_option_wins(self, mock_config, mock_output):
        mock_config.api_key = "from-config"
        ctx = Mock(obj={"api_key": "from-option"})

        assert require_api_key(ctx, mock_output) == "from-option"

    def test_falls_back_to_config(self, mock_config, mock_output):
        mock_config.api_key = "from-config"
        ctx = Mock(obj={"api_key": None})

        assert require_api_key(ctx, mock_output) == "from-config"

    def test_missing_key_exits(self, mock_config, mock_output):
        ctx = Mock(obj={})

        require_api_key(ctx, mock_output)

        mock_output.error.assert_called_once()
        ctx.exit.assert_called_once_with(1)
