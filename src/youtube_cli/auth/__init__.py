"""
OAuth2 authentication for youtube-cli.

Example usage:
    >>> from youtube_cli.config import ConfigStore
    >>> from youtube_cli.auth import AuthorizationFlow, ProfileManager, TokenLifecycle
    >>>
    >>> store = ConfigStore.from_env()
    >>> profiles = ProfileManager(store)
    >>> token = TokenLifecycle(store, profiles).ensure_valid_token()
    >>> if token is None:
    ...     AuthorizationFlow(store, profiles).authenticate()
"""

from .credentials import (
    ClientCredentials,
    GoogleOAuthClient,
    TokenGrant,
    get_client_credentials,
)
from .oauth import AuthorizationFlow, ChannelLookup, FlowState, lookup_channel
from .profiles import ProfileManager
from .tokens import TokenLifecycle

__all__ = [
    # Credentials
    "ClientCredentials",
    "GoogleOAuthClient",
    "TokenGrant",
    "get_client_credentials",
    # Profiles
    "ProfileManager",
    # Tokens
    "TokenLifecycle",
    # Authorization
    "AuthorizationFlow",
    "ChannelLookup",
    "FlowState",
    "lookup_channel",
]
