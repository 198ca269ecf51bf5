"""Exception types shared across youtube-cli."""


class YouTubeCLIError(Exception):
    """Base class for errors reported to the user by the CLI."""

    pass


class ConfigError(YouTubeCLIError):
    """Raised when the configuration file cannot be read or updated."""

    pass


class ProfileError(YouTubeCLIError):
    """Raised for invalid auth profile operations."""

    pass


class YouTubeAuthError(YouTubeCLIError):
    """Raised when no usable YouTube access token is available."""

    pass


class YouTubeAPIError(YouTubeCLIError):
    """Raised when a YouTube Data API operation fails."""

    pass
