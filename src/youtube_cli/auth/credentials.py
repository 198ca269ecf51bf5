"""
Google OAuth2 client credentials and token endpoint access.

GoogleOAuthClient is the only place that talks to Google's authorization
and token endpoints; everything else works with TokenGrant values.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from ..config import ConfigStore

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

# OAuth2 scopes required for managing videos, playlists and comments
SCOPES = [
    "https://www.googleapis.com/auth/youtube",
    "https://www.googleapis.com/auth/youtube.force-ssl",
    "https://www.googleapis.com/auth/youtube.upload",
]

DEFAULT_TOKEN_LIFETIME = 3600  # seconds


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ClientCredentials:
    """OAuth client registered in Google Cloud Console."""

    client_id: str
    client_secret: str

    def to_client_config(self) -> Dict[str, Any]:
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
            }
        }


def get_client_credentials(store: ConfigStore) -> Optional[ClientCredentials]:
    """Client id/secret from the store, or None if setup has not run."""
    oauth = store.get("oauth") or {}
    if not oauth.get("client_id") or not oauth.get("client_secret"):
        return None
    return ClientCredentials(oauth["client_id"], oauth["client_secret"])


@dataclass
class TokenGrant:
    """Tokens returned by the token endpoint."""

    access_token: Optional[str]
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_credentials(cls, creds: Credentials) -> "TokenGrant":
        return cls(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry=creds.expiry,
        )

    def expires_at_ms(self, now: Optional[int] = None) -> int:
        """
        Absolute expiry in epoch milliseconds.

        Uses the explicit expiry instant when the provider sent one,
        then expires_in, then a one hour default.
        """
        if self.expiry is not None:
            expiry = self.expiry
            # google-auth reports naive UTC datetimes
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
            return int(expiry.timestamp() * 1000)
        if now is None:
            now = now_ms()
        lifetime = self.expires_in if self.expires_in else DEFAULT_TOKEN_LIFETIME
        return now + lifetime * 1000


class GoogleOAuthClient:
    """
    Authorization-code and refresh-token grants against Google.

    Example:
        >>> client = GoogleOAuthClient(creds, "http://localhost:3000/oauth2callback")
        >>> url = client.authorization_url()
        >>> grant = client.exchange_code(code)
    """

    def __init__(
        self, credentials: ClientCredentials, redirect_uri: Optional[str] = None
    ):
        self.credentials = credentials
        self.redirect_uri = redirect_uri
        self._flow: Optional[Flow] = None

    @property
    def flow(self) -> Flow:
        if self._flow is None:
            self._flow = Flow.from_client_config(
                self.credentials.to_client_config(),
                scopes=SCOPES,
                redirect_uri=self.redirect_uri,
            )
        return self._flow

    def authorization_url(self) -> str:
        # offline + consent so Google issues a refresh token every time
        auth_url, _ = self.flow.authorization_url(
            access_type="offline", prompt="consent"
        )
        return auth_url

    def exchange_code(self, code: str) -> TokenGrant:
        self.flow.fetch_token(code=code)
        return TokenGrant.from_credentials(self.flow.credentials)

    def refresh(self, refresh_token: str) -> TokenGrant:
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.credentials.client_id,
            client_secret=self.credentials.client_secret,
        )
        creds.refresh(Request())
        return TokenGrant.from_credentials(creds)
