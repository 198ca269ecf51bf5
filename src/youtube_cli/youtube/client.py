"""
YouTube Data API v3 client.

Wraps the discovery-based service with the operations exposed by the CLI:
channels, videos, uploads, thumbnails, playlists and comments.
"""

import logging
import mimetypes
import time
from typing import Any, Callable, Dict, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from ..auth.credentials import TOKEN_URI, get_client_credentials
from ..auth.profiles import ProfileManager
from ..auth.tokens import TokenLifecycle
from ..config import ConfigStore
from ..errors import YouTubeAPIError, YouTubeAuthError
from ..validation import validate_image_file, validate_video_file

LOGGER = logging.getLogger(__name__)

RETRIABLE_STATUS_CODES = [500, 502, 503, 504]
MAX_UPLOAD_RETRIES = 10


def _mimetype_for(path: str, default: str) -> str:
    guessed, _ = mimetypes.guess_type(path)
    return guessed or default


class YouTubeClient:
    """
    Operations on the authenticated user's YouTube channel.

    Example:
        >>> client = YouTubeClient.from_store(ConfigStore.from_env())
        >>> for channel in client.list_channels():
        ...     print(channel["snippet"]["title"])
    """

    def __init__(self, service: Any):
        self.youtube = service

    @classmethod
    def from_store(cls, store: ConfigStore) -> "YouTubeClient":
        """
        Build a client for the active profile.

        Raises:
            YouTubeAuthError: If no valid access token can be obtained
        """
        profiles = ProfileManager(store)
        token = TokenLifecycle(store, profiles).ensure_valid_token()
        if not token:
            raise YouTubeAuthError("Not authenticated. Run: youtube-cli auth")

        client_credentials = get_client_credentials(store)
        if client_credentials is None:
            raise YouTubeAuthError("OAuth credentials not found. Run: youtube-cli setup")

        creds = Credentials(
            token=token,
            refresh_token=profiles.get_active_profile_tokens().get("refresh_token"),
            token_uri=TOKEN_URI,
            client_id=client_credentials.client_id,
            client_secret=client_credentials.client_secret,
        )
        return cls(build("youtube", "v3", credentials=creds, cache_discovery=False))

    def _execute(self, request: Any, action: str) -> Dict[str, Any]:
        try:
            return request.execute()
        except HttpError as e:
            raise YouTubeAPIError(f"Failed to {action}: {e}") from e

    # Channels

    def list_channels(self) -> List[Dict[str, Any]]:
        response = self._execute(
            self.youtube.channels().list(
                part="snippet,statistics,contentDetails", mine=True
            ),
            "list channels",
        )
        return response.get("items", [])

    # Videos

    def list_videos(
        self, max_results: int = 10, status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        List the most recent videos of the user's first channel.

        Args:
            max_results: Maximum number of videos to return
            status: Only keep videos with this privacy status
        """
        channels = self.list_channels()
        if not channels:
            return []

        search = self._execute(
            self.youtube.search().list(
                part="id,snippet",
                channelId=channels[0]["id"],
                type="video",
                maxResults=max_results,
                order="date",
            ),
            "search videos",
        )
        video_ids = [
            item["id"]["videoId"]
            for item in search.get("items", [])
            if item.get("id", {}).get("videoId")
        ]
        if not video_ids:
            return []

        response = self._execute(
            self.youtube.videos().list(
                part="snippet,statistics,status,contentDetails", id=",".join(video_ids)
            ),
            "list videos",
        )
        videos = response.get("items", [])
        if status:
            videos = [v for v in videos if v.get("status", {}).get("privacyStatus") == status]
        return videos

    def get_video(self, video_id: str) -> Dict[str, Any]:
        response = self._execute(
            self.youtube.videos().list(
                part="snippet,statistics,status,contentDetails", id=video_id
            ),
            "get video",
        )
        items = response.get("items", [])
        if not items:
            raise YouTubeAPIError(f"Video not found: {video_id}")
        return items[0]

    def upload_video(
        self,
        video_path: str,
        title: str,
        description: str = "",
        tags: Optional[List[str]] = None,
        category_id: str = "22",
        privacy_status: str = "private",
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> Dict[str, Any]:
        """
        Upload a video with a resumable upload.

        Args:
            video_path: Path to the video file to upload
            title: Video title (max 100 characters)
            description: Video description (max 5000 characters)
            tags: List of tags for the video
            category_id: YouTube category ID (default: 22 - People & Blogs)
            privacy_status: 'private', 'public', or 'unlisted'
            progress_callback: Optional callback receiving percent complete

        Returns:
            dict: API response containing the video ID and metadata

        Raises:
            YouTubeAPIError: If the file is invalid or the upload fails
        """
        error = validate_video_file(video_path)
        if error:
            raise YouTubeAPIError(f"{error}: {video_path}")

        body = {
            "snippet": {
                "title": title[:100],  # YouTube limit
                "description": description[:5000],  # YouTube limit
                "tags": tags or [],
                "categoryId": category_id,
            },
            "status": {
                "privacyStatus": privacy_status,
            },
        }

        media = MediaFileUpload(
            video_path, mimetype=_mimetype_for(video_path, "video/mp4"), resumable=True
        )
        insert_request = self.youtube.videos().insert(
            part=",".join(body.keys()),
            body=body,
            media_body=media,
        )

        LOGGER.info("Starting upload: %s (%s)", title, video_path)
        response = None
        retry = 0
        while response is None:
            try:
                status, response = insert_request.next_chunk()
                if status and progress_callback:
                    progress_callback(int(status.progress() * 100))
            except HttpError as e:
                if e.resp.status not in RETRIABLE_STATUS_CODES:
                    raise YouTubeAPIError(f"Upload failed: {e}") from e
                retry += 1
                if retry > MAX_UPLOAD_RETRIES:
                    raise YouTubeAPIError(
                        f"Upload failed after {MAX_UPLOAD_RETRIES} retries: {e}"
                    ) from e
                LOGGER.warning(
                    "Server error, retrying (%d/%d)...", retry, MAX_UPLOAD_RETRIES
                )
                time.sleep(2**retry)  # Exponential backoff

        LOGGER.info("Upload complete. Video ID: %s", response.get("id"))
        return response

    def update_video(
        self,
        video_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        category_id: Optional[str] = None,
        privacy_status: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Update video metadata; fields left as None keep their current value."""
        video = self.get_video(video_id)
        snippet = video.get("snippet", {})
        status = video.get("status", {})

        body = {
            "id": video_id,
            "snippet": {
                "title": title or snippet.get("title"),
                "description": description if description is not None else snippet.get("description", ""),
                "tags": tags if tags is not None else snippet.get("tags", []),
                "categoryId": category_id or snippet.get("categoryId"),
            },
            "status": {
                "privacyStatus": privacy_status or status.get("privacyStatus"),
            },
        }
        return self._execute(
            self.youtube.videos().update(part="snippet,status", body=body),
            "update video",
        )

    def delete_video(self, video_id: str) -> None:
        self._execute(self.youtube.videos().delete(id=video_id), "delete video")

    def set_thumbnail(self, video_id: str, image_path: str) -> Dict[str, Any]:
        error = validate_image_file(image_path)
        if error:
            raise YouTubeAPIError(f"{error}: {image_path}")
        media = MediaFileUpload(image_path, mimetype=_mimetype_for(image_path, "image/png"))
        return self._execute(
            self.youtube.thumbnails().set(videoId=video_id, media_body=media),
            "set thumbnail",
        )

    # Playlists

    def list_playlists(self, max_results: int = 25) -> List[Dict[str, Any]]:
        response = self._execute(
            self.youtube.playlists().list(
                part="snippet,contentDetails,status", mine=True, maxResults=max_results
            ),
            "list playlists",
        )
        return response.get("items", [])

    def create_playlist(
        self, title: str, description: str = "", privacy_status: str = "private"
    ) -> Dict[str, Any]:
        body = {
            "snippet": {"title": title, "description": description},
            "status": {"privacyStatus": privacy_status},
        }
        return self._execute(
            self.youtube.playlists().insert(part="snippet,status", body=body),
            "create playlist",
        )

    def add_to_playlist(self, playlist_id: str, video_id: str) -> Dict[str, Any]:
        body = {
            "snippet": {
                "playlistId": playlist_id,
                "resourceId": {"kind": "youtube#video", "videoId": video_id},
            }
        }
        return self._execute(
            self.youtube.playlistItems().insert(part="snippet", body=body),
            "add video to playlist",
        )

    # Comments

    def list_comments(self, video_id: str, max_results: int = 20) -> List[Dict[str, Any]]:
        try:
            response = self.youtube.commentThreads().list(
                part="snippet",
                videoId=video_id,
                maxResults=max_results,
                textFormat="plainText",
            ).execute()
        except HttpError as e:
            if e.resp.status == 403:
                raise YouTubeAPIError("Comments are disabled for this video") from e
            raise YouTubeAPIError(f"Failed to list comments: {e}") from e
        return response.get("items", [])

    def post_comment(self, video_id: str, text: str) -> Dict[str, Any]:
        body = {
            "snippet": {
                "videoId": video_id,
                "topLevelComment": {"snippet": {"textOriginal": text}},
            }
        }
        return self._execute(
            self.youtube.commentThreads().insert(part="snippet", body=body),
            "post comment",
        )
