"""Pytest configuration and fixtures for youtube-cli tests."""

import threading
from typing import List, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import pytest
import requests

from youtube_cli.auth.credentials import TokenGrant
from youtube_cli.auth.profiles import ProfileManager
from youtube_cli.config import ConfigStore

CLIENT_ID = "1234567890-abcdefghijklmnop.apps.googleusercontent.com"
CLIENT_SECRET = "GOCSPX-abcdefghijklmnopqrstuvwx"


class FakeOAuthClient:
    """
    Stands in for GoogleOAuthClient; the instance doubles as its own factory.
    """

    def __init__(
        self,
        grant: Optional[TokenGrant] = None,
        error: Optional[Exception] = None,
        refresh_grant: Optional[TokenGrant] = None,
        refresh_error: Optional[Exception] = None,
    ):
        self.grant = grant
        self.error = error
        self.refresh_grant = refresh_grant
        self.refresh_error = refresh_error
        self.credentials = None
        self.redirect_uri = None
        self.exchanged_codes: List[str] = []
        self.refreshed_tokens: List[str] = []

    def __call__(self, credentials, redirect_uri=None):
        self.credentials = credentials
        self.redirect_uri = redirect_uri
        return self

    def authorization_url(self) -> str:
        params = {
            "client_id": self.credentials.client_id,
            "redirect_uri": self.redirect_uri,
            "access_type": "offline",
            "prompt": "consent",
        }
        return "https://accounts.example.com/o/oauth2/auth?" + urlencode(params)

    def exchange_code(self, code: str) -> TokenGrant:
        self.exchanged_codes.append(code)
        if self.error is not None:
            raise self.error
        return self.grant

    def refresh(self, refresh_token: str) -> TokenGrant:
        self.refreshed_tokens.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.refresh_grant


class RedirectingBrowser:
    """
    Plays the part of the user's browser: when asked to open the
    authorization URL it requests the given callback paths on the
    redirect URI from a helper thread, one after another.
    """

    def __init__(self, *queries: str, path: str = "/oauth2callback"):
        self.queries = queries
        self.path = path
        self.opened_urls: List[str] = []
        self.responses: List[requests.Response] = []
        self._thread: Optional[threading.Thread] = None

    def __call__(self, url: str) -> bool:
        self.opened_urls.append(url)
        redirect_uri = parse_qs(urlparse(url).query)["redirect_uri"][0]
        base = redirect_uri.rsplit("/", 1)[0]

        def visit():
            for query in self.queries:
                path, _, params = query.partition("?")
                target = f"{base}{path or self.path}"
                if params:
                    target += "?" + params
                self.responses.append(requests.get(target, timeout=10))

        self._thread = threading.Thread(target=visit, daemon=True)
        self._thread.start()
        return True

    def join(self) -> None:
        if self._thread is not None:
            self._thread.join(timeout=10)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    path = tmp_path / "config"
    monkeypatch.setenv("YOUTUBE_CLI_CONFIG_DIR", str(path))
    return path


@pytest.fixture
def store(config_dir) -> ConfigStore:
    return ConfigStore(config_dir)


@pytest.fixture
def configured_store(store) -> ConfigStore:
    store.set(
        "oauth",
        {
            "client_id": CLIENT_ID,
            "client_secret": CLIENT_SECRET,
            "redirect_uri": "http://localhost:3000/oauth2callback",
            "port": 3000,
        },
    )
    return store


@pytest.fixture
def profiles(configured_store) -> ProfileManager:
    return ProfileManager(configured_store)
