"""
Auth profiles.

Each profile holds one token record (e.g. one per YouTube channel or brand
account). Older configuration files stored a single set of tokens inside the
"oauth" object; they are moved into a profile the first time token state is
touched.
"""

import logging
from typing import Any, Dict, List

from ..config import ConfigStore, DEFAULT_PROFILE
from ..errors import ProfileError

LOGGER = logging.getLogger(__name__)

LEGACY_TOKEN_FIELDS = ("refresh_token", "access_token", "expires_at")
CLEARED_FIELDS = (
    "refresh_token",
    "access_token",
    "expires_at",
    "channel_id",
    "channel_title",
)


class ProfileManager:
    """Reads and writes the token record of the active profile."""

    def __init__(self, store: ConfigStore):
        self.store = store

    def _profiles(self) -> Dict[str, Dict[str, Any]]:
        return self.store.get("authProfiles") or {}

    def get_active_profile_name(self) -> str:
        return self.store.get("activeProfile") or DEFAULT_PROFILE

    def set_active_profile_name(self, name: str) -> None:
        """Make `name` the active profile, creating an empty record if needed."""
        profiles = self._profiles()
        profiles.setdefault(name, {})
        self.store.set("activeProfile", name)
        self.store.set("authProfiles", profiles)

    def list_profiles(self) -> List[str]:
        return list(self._profiles())

    def remove_profile(self, name: str) -> None:
        """
        Delete a profile and its tokens.

        Raises:
            ProfileError: If the profile does not exist or is active
        """
        self.ensure_profiles_migrated()
        profiles = self._profiles()
        if name not in profiles:
            raise ProfileError(f"Profile not found: {name}")
        if name == self.get_active_profile_name():
            raise ProfileError(
                f"Cannot remove the active profile '{name}'. "
                "Switch to another profile first."
            )
        del profiles[name]
        self.store.set("authProfiles", profiles)

    def ensure_profiles_migrated(self) -> None:
        """
        Move tokens from the legacy "oauth" object into a profile.

        Safe to call before every token read or write; once profiles exist
        this only fills in a missing activeProfile.
        """
        profiles = self._profiles()

        if profiles:
            if not self.store.get("activeProfile"):
                self.store.set("activeProfile", next(iter(profiles)))
            return

        oauth = self.store.get("oauth") or {}
        if not (oauth.get("refresh_token") or oauth.get("access_token")):
            return

        name = self.get_active_profile_name()
        record = {
            field: oauth.pop(field)
            for field in LEGACY_TOKEN_FIELDS
            if field in oauth
        }
        LOGGER.debug("Migrating legacy tokens into profile '%s'", name)

        self.store.set("oauth", oauth)
        self.store.set("authProfiles", {name: record})
        self.store.set("activeProfile", name)

    def get_active_profile_tokens(self) -> Dict[str, Any]:
        self.ensure_profiles_migrated()
        return self._profiles().get(self.get_active_profile_name()) or {}

    def set_active_profile_tokens(self, patch: Dict[str, Any]) -> None:
        """Shallow-merge `patch` into the active profile's record."""
        self.ensure_profiles_migrated()
        profiles = self._profiles()
        name = self.get_active_profile_name()
        record = dict(profiles.get(name) or {})
        record.update(patch)
        profiles[name] = record
        self.store.set("authProfiles", profiles)

    def clear_active_profile_tokens(self) -> None:
        """Drop tokens and cached channel info; the profile itself is kept."""
        self.ensure_profiles_migrated()
        profiles = self._profiles()
        name = self.get_active_profile_name()
        record = dict(profiles.get(name) or {})
        for field in CLEARED_FIELDS:
            record.pop(field, None)
        profiles[name] = record
        self.store.set("authProfiles", profiles)
