"""
YouTube Data API access for youtube-cli.

Example usage:
    >>> from youtube_cli.config import ConfigStore
    >>> from youtube_cli.youtube import YouTubeClient
    >>>
    >>> client = YouTubeClient.from_store(ConfigStore.from_env())
    >>> response = client.upload_video(
    ...     "/path/to/video.mp4",
    ...     title="My Video",
    ...     privacy_status="unlisted"
    ... )

Videos are uploaded as 'private' unless another privacy status is given.
"""

from .client import YouTubeClient

__all__ = ["YouTubeClient"]
