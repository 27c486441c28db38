"""Authentication helpers: browser login, logout and API key lookup."""

import logging
import time
import uuid
from typing import Any, Callable, Optional

import click

from .api import CodeAIClient
from .config import config
from .exceptions import CodeAIAPIError, CodeAIAuthenticationError
from .output import OutputFormatter

logger = logging.getLogger(__name__)

LOGIN_MAX_ATTEMPTS = 40
LOGIN_POLL_INTERVAL = 3.0


def build_login_url(session_id: str, web_url: Optional[str] = None) -> str:
    """Return the browser URL that confirms a CLI login session."""
    return f"{(web_url or config.web_url).rstrip('/')}/cli-login?session={session_id}"


def web_login(
    client: CodeAIClient,
    out: OutputFormatter,
    open_browser: bool = True,
    max_attempts: int = LOGIN_MAX_ATTEMPTS,
    poll_interval: float = LOGIN_POLL_INTERVAL,
    session_id: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Log in through the browser and store the issued API key.

    A fresh session ID is embedded in the login URL; the service is then
    polled until the user confirms the session in the browser.

    Args:
        client: Client used for polling (no API key required)
        out: Output formatter
        open_browser: Whether to open the login URL automatically
        max_attempts: Number of polls before giving up
        poll_interval: Seconds between polls
        session_id: Session ID to use (random when omitted)
        sleep: Sleep function used between polls

    Returns:
        The API key

    Raises:
        CodeAIAuthenticationError: If no key was issued in time
    """
    session_id = session_id or str(uuid.uuid4())
    login_url = build_login_url(session_id)

    out.print("To complete authentication, your browser will now open.")
    out.print("If it does not open automatically, please visit this URL:")
    out.info(login_url)

    if open_browser:
        # click.launch returns a non-zero code when no browser is available
        if click.launch(login_url) != 0:
            out.warning(
                "Could not automatically open the browser. "
                "Please copy the link above."
            )

    for attempt in range(max_attempts):
        try:
            api_key = client.get_cli_api_key(session_id)
        except CodeAIAPIError as e:
            logger.debug(f"Login poll {attempt + 1}/{max_attempts} failed: {e}")
            api_key = None

        if api_key:
            config.save_api_key(api_key)
            logger.debug(f"Login confirmed after {attempt + 1} poll(s)")
            return api_key

        sleep(poll_interval)

    raise CodeAIAuthenticationError("Login timed out.")


def logout() -> bool:
    """Remove the stored API key.

    Returns:
        True if a stored key was removed
    """
    return config.remove_api_key()


def require_api_key(ctx: Any, out: OutputFormatter) -> str:
    """Return the API key for a command or exit with an error.

    The ``--api-key`` option wins over the environment and the config file.
    """
    api_key: Optional[str] = ctx.obj.get("api_key") or config.api_key
    if not api_key:
        out.error("You must be logged in. Please run 'codeai login'.")
        ctx.exit(1)
    return api_key  # type: ignore[return-value]
