"""Access token expiry checks and refresh for the active profile."""

import logging
from typing import Callable, Optional

import typer
from google.auth.exceptions import GoogleAuthError

from ..config import ConfigStore
from .credentials import ClientCredentials, GoogleOAuthClient, get_client_credentials, now_ms
from .profiles import ProfileManager

LOGGER = logging.getLogger(__name__)

# Tokens this close to expiry are refreshed before use
EXPIRY_MARGIN_MS = 5 * 60 * 1000


class TokenLifecycle:
    """
    Keeps the active profile's access token usable.

    Example:
        >>> lifecycle = TokenLifecycle(store, ProfileManager(store))
        >>> token = lifecycle.ensure_valid_token()
    """

    def __init__(
        self,
        store: ConfigStore,
        profiles: ProfileManager,
        client_factory: Callable[[ClientCredentials], GoogleOAuthClient] = GoogleOAuthClient,
    ):
        self.store = store
        self.profiles = profiles
        self.client_factory = client_factory

    def is_token_expired(self) -> bool:
        expires_at = self.profiles.get_active_profile_tokens().get("expires_at")
        if not expires_at:
            return True
        return now_ms() >= expires_at - EXPIRY_MARGIN_MS

    def refresh_access_token(self) -> bool:
        """
        Exchange the stored refresh token for a new access token.

        Returns:
            bool: True if a new access token was stored. Missing credentials,
                  a missing refresh token and provider errors all give False.
        """
        credentials = get_client_credentials(self.store)
        refresh_token = self.profiles.get_active_profile_tokens().get("refresh_token")
        if credentials is None or not refresh_token:
            return False

        try:
            grant = self.client_factory(credentials).refresh(refresh_token)
        except (GoogleAuthError, OSError, ValueError) as e:
            LOGGER.debug("Token refresh failed: %s", e)
            return False

        if not grant.access_token:
            LOGGER.debug("Token refresh returned no access token")
            return False

        # Google does not always rotate the refresh token; keep the stored one
        self.profiles.set_active_profile_tokens(
            {
                "access_token": grant.access_token,
                "expires_at": grant.expires_at_ms(),
            }
        )
        LOGGER.debug(
            "Refreshed access token for profile '%s'",
            self.profiles.get_active_profile_name(),
        )
        return True

    def ensure_valid_token(self) -> Optional[str]:
        """
        Return a usable access token, refreshing it if needed.

        Returns:
            Optional[str]: The access token, or None when the user has to
                           run `youtube-cli auth` again.
        """
        self.profiles.ensure_profiles_migrated()

        if self.is_token_expired() and not self.refresh_access_token():
            typer.secho(
                "\n⚠  Token expired. Please re-authenticate:", fg=typer.colors.YELLOW, err=True
            )
            typer.secho("  youtube-cli auth\n", fg=typer.colors.CYAN, err=True)
            return None

        return self.profiles.get_active_profile_tokens().get("access_token")
