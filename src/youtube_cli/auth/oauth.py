"""
Interactive OAuth2 authorization for YouTube.

Runs the authorization-code grant with a short-lived HTTP listener on
localhost that captures Google's redirect. The listener is driven from the
calling thread and is always closed before authenticate() returns.
"""

import enum
import errno
import logging
import sys
import time
import webbrowser
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import typer
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from ..config import ConfigStore, DEFAULT_PORT
from ..errors import ConfigError, YouTubeCLIError
from .credentials import ClientCredentials, GoogleOAuthClient, TokenGrant, get_client_credentials
from .profiles import ProfileManager

LOGGER = logging.getLogger(__name__)

CALLBACK_PATH = "/oauth2callback"
LISTEN_HOST = "localhost"
AUTH_TIMEOUT = 5 * 60  # seconds
POLL_INTERVAL = 0.5

SUCCESS_PAGE = """
<html>
  <body style="font-family: Arial, sans-serif; text-align: center; padding: 50px;">
    <h1 style="color: #4CAF50;">&#10003; Authentication Successful!</h1>
    <p>You can close this window and return to the terminal.</p>
  </body>
</html>
"""
FAILURE_PAGE = """
<html>
  <body style="font-family: Arial, sans-serif; text-align: center; padding: 50px;">
    <h1 style="color: #F44336;">Authentication failed</h1>
    <p>{reason}</p>
  </body>
</html>
"""
HANDLED_PAGE = "<html><body>This authorization request was already handled.</body></html>"


class FlowState(enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    EXCHANGING = "exchanging"
    DONE = "done"
    FAILED = "failed"
    PORT_CONFLICT = "port_conflict"
    TIMEOUT = "timeout"


@dataclass
class ChannelLookup:
    """Result of the best-effort channel identity lookup."""

    channel_id: Optional[str] = None
    title: Optional[str] = None
    subscriber_count: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.channel_id is not None


def lookup_channel(access_token: str) -> ChannelLookup:
    """
    Fetch the authenticated user's channel.

    Never raises: the lookup is cosmetic and any failure is returned in
    ChannelLookup.error.
    """
    try:
        youtube = build(
            "youtube",
            "v3",
            credentials=Credentials(token=access_token),
            cache_discovery=False,
        )
        response = youtube.channels().list(part="snippet,statistics", mine=True).execute()
    except Exception as e:
        LOGGER.debug("Channel lookup failed: %s", e)
        return ChannelLookup(error=str(e))

    items = response.get("items") or []
    if not items:
        return ChannelLookup(error="No channel found for this account")

    channel = items[0]
    subscribers = channel.get("statistics", {}).get("subscriberCount")
    return ChannelLookup(
        channel_id=channel.get("id"),
        title=channel.get("snippet", {}).get("title"),
        subscriber_count=int(subscribers) if subscribers is not None else None,
    )


class _FlowOutcome:
    """Result of one authorization run; only the first resolve() counts."""

    def __init__(self):
        self.resolved = False
        self.result = False

    def resolve(self, result: bool) -> bool:
        if self.resolved:
            return False
        self.resolved = True
        self.result = result
        return True


class CallbackHandler(BaseHTTPRequestHandler):
    server_version = "youtube-cli/1.0"
    # Seconds to wait on a client that connects but never sends a request
    timeout = 10

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self.send_page(404, "<html><body>Not found</body></html>")
            return
        self.server.on_callback(self, parse_qs(parsed.query))

    def send_page(self, status: int, html: str) -> None:
        body = html.encode("utf-8")
        try:
            self.send_response(status)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        except ConnectionError as e:
            LOGGER.debug("Browser closed the connection early: %s", e)

    def log_message(self, format, *args):
        # silence default HTTP server log
        return


class CallbackServer(HTTPServer):
    def __init__(
        self,
        port: int,
        on_callback: Callable[[CallbackHandler, Dict[str, List[str]]], None],
    ):
        super().__init__((LISTEN_HOST, port), CallbackHandler)
        self.on_callback = on_callback
        self.error: Optional[BaseException] = None

    @property
    def port(self) -> int:
        return self.server_address[1]

    def handle_error(self, request, client_address):
        # Kept for the serving loop to re-raise instead of printing a traceback
        self.error = sys.exc_info()[1]


class AuthorizationFlow:
    """
    Authorization-code grant with a local redirect listener.

    Example:
        >>> store = ConfigStore.from_env()
        >>> flow = AuthorizationFlow(store, ProfileManager(store))
        >>> flow.authenticate(port=3000, profile_name="brand")
        True
    """

    def __init__(
        self,
        store: ConfigStore,
        profiles: ProfileManager,
        client_factory: Callable[[ClientCredentials, str], GoogleOAuthClient] = GoogleOAuthClient,
        channel_lookup: Callable[[str], ChannelLookup] = lookup_channel,
        browser_opener: Callable[[str], bool] = webbrowser.open,
        timeout: float = AUTH_TIMEOUT,
    ):
        self.store = store
        self.profiles = profiles
        self.client_factory = client_factory
        self.channel_lookup = channel_lookup
        self.browser_opener = browser_opener
        self.timeout = timeout
        self.state = FlowState.IDLE
        self._client: Optional[GoogleOAuthClient] = None
        self._outcome = _FlowOutcome()

    def resolve_port(self, port: Optional[int] = None) -> int:
        """
        Callback port: explicit argument, then the stored port, then 3000.

        Raises:
            ConfigError: If the stored port is not an integer
        """
        if port is not None:
            return port
        stored = (self.store.get("oauth") or {}).get("port")
        if not stored:
            return DEFAULT_PORT
        try:
            return int(stored)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid oauth.port in configuration: {stored!r}"
            ) from e

    def authenticate(
        self,
        port: Optional[int] = None,
        open_browser: bool = True,
        profile_name: Optional[str] = None,
    ) -> bool:
        """
        Run the browser authorization and store the resulting tokens.

        Args:
            port: Callback port (default: stored port, then 3000)
            open_browser: Open the authorization URL in the default browser
            profile_name: Profile that receives the tokens; created if new

        Returns:
            bool: True if tokens were obtained and stored
        """
        credentials = get_client_credentials(self.store)
        if credentials is None:
            typer.secho(
                "✗ OAuth credentials not found. Please run setup first.",
                fg=typer.colors.RED,
                err=True,
            )
            return False

        self.state = FlowState.IDLE
        self._outcome = _FlowOutcome()

        self.profiles.ensure_profiles_migrated()
        if profile_name:
            self.profiles.set_active_profile_name(profile_name)

        auth_port = self.resolve_port(port)

        try:
            server = CallbackServer(auth_port, self._on_callback)
        except OSError as e:
            self._on_bind_error(auth_port, e)
            return self._outcome.result

        try:
            self.state = FlowState.LISTENING
            deadline = time.monotonic() + self.timeout
            redirect_uri = f"http://localhost:{server.port}{CALLBACK_PATH}"
            LOGGER.debug("Listening for OAuth redirect on %s", redirect_uri)

            self._client = self.client_factory(credentials, redirect_uri)
            self._present_url(self._client.authorization_url(), open_browser)

            typer.echo("[youtube] Waiting for authentication...")
            while not self._outcome.resolved:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._on_timeout()
                    break
                server.timeout = min(remaining, POLL_INTERVAL)
                server.handle_request()
                if server.error is not None:
                    raise server.error
        finally:
            server.server_close()
            LOGGER.debug("OAuth callback listener closed")

        return self._outcome.result

    def _present_url(self, auth_url: str, open_browser: bool) -> None:
        typer.secho("\nPlease visit this URL to authenticate:", fg=typer.colors.CYAN)
        typer.echo(auth_url + "\n")

        if not open_browser:
            return
        try:
            opened = self.browser_opener(auth_url)
        except (webbrowser.Error, OSError) as e:
            LOGGER.debug("Could not open browser: %s", e)
            opened = False
        if opened:
            typer.echo("[youtube] Browser opened. Waiting for authentication...")
        else:
            typer.secho(
                "⚠  Could not open browser automatically. Please open the URL manually.",
                fg=typer.colors.YELLOW,
            )

    def _on_callback(
        self, handler: CallbackHandler, params: Dict[str, List[str]]
    ) -> None:
        if self._outcome.resolved:
            handler.send_page(410, HANDLED_PAGE)
            return

        code = (params.get("code") or [None])[0]
        if not code:
            error = (params.get("error") or [""])[0]
            handler.send_page(400, FAILURE_PAGE.format(reason="No authorization code received."))
            typer.secho("✗ Authentication failed: no code received", fg=typer.colors.RED, err=True)
            if error:
                typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)
                self._print_access_guidance(error)
            self._fail(FlowState.FAILED)
            return

        self.state = FlowState.EXCHANGING
        try:
            grant = self._client.exchange_code(code)
            if not grant.access_token or not grant.refresh_token:
                raise ValueError("Missing tokens in token response")
        except Exception as e:
            LOGGER.debug("Code exchange failed", exc_info=True)
            handler.send_page(500, FAILURE_PAGE.format(reason="Please try again."))
            typer.secho("✗ Authentication failed", fg=typer.colors.RED, err=True)
            typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
            self._print_access_guidance(str(e))
            self._fail(FlowState.FAILED)
            return

        try:
            self._store_grant(grant)
        except (OSError, YouTubeCLIError) as e:
            LOGGER.debug("Could not save tokens", exc_info=True)
            handler.send_page(500, FAILURE_PAGE.format(reason="Tokens could not be saved."))
            typer.secho("✗ Authentication failed: could not save tokens", fg=typer.colors.RED, err=True)
            typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
            self._fail(FlowState.FAILED)
            return

        handler.send_page(200, SUCCESS_PAGE)
        typer.secho("✓ Authentication successful!", fg=typer.colors.GREEN)

        self._show_channel(grant.access_token)
        self.state = FlowState.DONE
        self._outcome.resolve(True)

    def _store_grant(self, grant: TokenGrant) -> None:
        self.profiles.set_active_profile_tokens(
            {
                "access_token": grant.access_token,
                "refresh_token": grant.refresh_token,
                "expires_at": grant.expires_at_ms(),
            }
        )

    def _show_channel(self, access_token: str) -> None:
        lookup = self.channel_lookup(access_token)
        if not lookup.ok:
            LOGGER.debug("Skipping channel info: %s", lookup.error)
            return

        try:
            self.profiles.set_active_profile_tokens(
                {"channel_id": lookup.channel_id, "channel_title": lookup.title}
            )
        except (OSError, YouTubeCLIError) as e:
            LOGGER.debug("Could not cache channel info: %s", e)
            return
        typer.secho("\n✓ You are now authenticated as:", fg=typer.colors.GREEN)
        typer.echo(f"  Channel: {lookup.title}")
        if lookup.subscriber_count is not None:
            typer.echo(f"  Subscribers: {lookup.subscriber_count:,}")
        typer.echo(f"  Profile: {self.profiles.get_active_profile_name()}\n")

    def _on_bind_error(self, port: int, error: OSError) -> None:
        self.state = FlowState.PORT_CONFLICT
        self._outcome.resolve(False)
        typer.secho("✗ Failed to start authentication server", fg=typer.colors.RED, err=True)
        if error.errno == errno.EADDRINUSE:
            typer.secho(f"\nPort {port} is already in use.", fg=typer.colors.RED, err=True)
            typer.secho("Try a different port:", fg=typer.colors.YELLOW, err=True)
            typer.secho(f"  youtube-cli auth --port {port + 1}\n", fg=typer.colors.CYAN, err=True)
        else:
            typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)

    def _on_timeout(self) -> None:
        if self._fail(FlowState.TIMEOUT):
            typer.secho("✗ Authentication timeout", fg=typer.colors.RED, err=True)
            typer.secho("Run `youtube-cli auth` to try again.", fg=typer.colors.CYAN, err=True)

    def _fail(self, state: FlowState) -> bool:
        if not self._outcome.resolve(False):
            return False
        self.state = state
        return True

    @staticmethod
    def _print_access_guidance(message: str) -> None:
        if "access_denied" not in message and "blocked" not in message:
            return
        typer.secho('\n⚠  If you see "Access blocked" error:', fg=typer.colors.YELLOW, err=True)
        typer.secho(
            "   Make sure you added your Google email as a test user",
            fg=typer.colors.YELLOW,
            err=True,
        )
        typer.secho(
            "   Go to: https://console.cloud.google.com/apis/credentials/consent",
            fg=typer.colors.YELLOW,
            err=True,
        )
