"""
Configuration storage for youtube-cli.

Persists OAuth client credentials, auth profiles and output defaults in a
single JSON file. Every write hits disk immediately and the file is kept
readable by its owner only.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

CONFIG_DIR_ENV = "YOUTUBE_CLI_CONFIG_DIR"
CONFIG_FILENAME = "config.json"
DEFAULT_PROFILE = "default"
DEFAULT_PORT = 3000

DEFAULT_CONFIG: Dict[str, Any] = {
    "defaults": {
        "privacy": "private",
        "category": "22",
        "outputFormat": "table",
    },
    "version": "1.0.0",
}


def default_config_dir() -> Path:
    """Directory holding config.json, honouring YOUTUBE_CLI_CONFIG_DIR."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".youtube-cli"


class ConfigStore:
    """
    JSON-backed key/value store.

    Top-level keys used by the application:
        oauth          client_id, client_secret, port, redirect_uri
                       (older files also carry token fields here)
        authProfiles   profile name -> token record
        activeProfile  name of the profile in use
        defaults       privacy, category, outputFormat
        version        config schema version

    Example:
        >>> store = ConfigStore.from_env()
        >>> store.set("oauth", {"client_id": "...", "client_secret": "..."})
        >>> store.get("oauth")["client_id"]
    """

    def __init__(self, config_dir: Union[str, Path]):
        self.config_dir = Path(config_dir)
        self._data: Optional[Dict[str, Any]] = None

    @classmethod
    def from_env(cls) -> "ConfigStore":
        return cls(default_config_dir())

    @property
    def path(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data

        data = copy.deepcopy(DEFAULT_CONFIG)
        if self.path.exists():
            try:
                stored = json.loads(self.path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ConfigError(
                    f"Configuration file is not valid JSON: {self.path} ({e})"
                ) from e
            if not isinstance(stored, dict):
                raise ConfigError(
                    f"Configuration file must contain a JSON object: {self.path}"
                )
            defaults = dict(data["defaults"])
            defaults.update(stored.get("defaults") or {})
            data.update(stored)
            data["defaults"] = defaults

        self._data = data
        return data

    def _save(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        # Owner-only from creation; replaced in one step so readers never see a partial file
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._load(), f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except Exception:
            if tmp_path.exists():
                tmp_path.unlink()
            raise
        self._ensure_secure_permissions()

    def _ensure_secure_permissions(self) -> None:
        try:
            if self.path.exists():
                os.chmod(self.path, 0o600)
        except OSError as e:
            LOGGER.debug("Could not restrict permissions on %s: %s", self.path, e)

    def get(self, key: str) -> Any:
        """Return a deep copy of the value under `key`, or None if absent."""
        return copy.deepcopy(self._load().get(key))

    def set(self, key: str, value: Any) -> None:
        """Store `value` under `key` and write the file immediately."""
        self._load()[key] = copy.deepcopy(value)
        self._save()

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save()

    def get_nested(self, dotted_key: str) -> Any:
        node: Any = self._load()
        for part in dotted_key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    def set_nested(self, dotted_key: str, value: Any) -> None:
        """
        Set a value addressed by a dotted path, e.g. "defaults.privacy".

        Intermediate objects are created as needed.

        Raises:
            ConfigError: If an intermediate key holds a non-object value
        """
        parts = dotted_key.split(".")
        node = self._load()
        for part in parts[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"Cannot set '{dotted_key}': '{part}' is not an object"
                )
            node = child
        node[parts[-1]] = copy.deepcopy(value)
        self._save()

    def get_all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._load())

    def reset(self) -> None:
        """Remove every stored value, including credentials and tokens."""
        if self.path.exists():
            self.path.unlink()
        self._data = None

    def exists(self) -> bool:
        """True once setup has stored a client id."""
        oauth = self._load().get("oauth") or {}
        return bool(oauth.get("client_id"))

    def is_authenticated(self) -> bool:
        data = self._load()
        active = data.get("activeProfile") or DEFAULT_PROFILE
        profile = (data.get("authProfiles") or {}).get(active) or {}
        # Older files kept tokens directly under "oauth"
        oauth = data.get("oauth") or {}
        return bool(
            profile.get("access_token")
            or profile.get("refresh_token")
            or oauth.get("access_token")
            or oauth.get("refresh_token")
        )
