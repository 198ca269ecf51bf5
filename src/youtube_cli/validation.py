"""Input checks for setup values, files and YouTube identifiers."""

import os
import re
from pathlib import Path
from typing import Optional

VIDEO_EXTENSIONS = [".mp4", ".mov", ".avi", ".flv", ".wmv", ".webm", ".mkv", ".m4v"]
IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif"]
MAX_THUMBNAIL_SIZE = 2 * 1024 * 1024  # 2MB
PRIVACY_STATUSES = ["public", "private", "unlisted"]
OUTPUT_FORMATS = ["table", "json", "csv"]

_VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")


def validate_file(file_path: str) -> Optional[str]:
    """Return an error message, or None if `file_path` is a regular file."""
    if not os.path.exists(file_path):
        return "File does not exist"
    if not os.path.isfile(file_path):
        return "Path is not a file"
    return None


def validate_video_file(file_path: str) -> Optional[str]:
    error = validate_file(file_path)
    if error:
        return error
    if Path(file_path).suffix.lower() not in VIDEO_EXTENSIONS:
        return f"Invalid video format. Supported: {', '.join(VIDEO_EXTENSIONS)}"
    return None


def validate_image_file(file_path: str) -> Optional[str]:
    error = validate_file(file_path)
    if error:
        return error
    if Path(file_path).suffix.lower() not in IMAGE_EXTENSIONS:
        return f"Invalid image format. Supported: {', '.join(IMAGE_EXTENSIONS)}"
    if os.path.getsize(file_path) > MAX_THUMBNAIL_SIZE:
        return "Image size exceeds 2MB limit"
    return None


def validate_video_id(video_id: str) -> bool:
    # YouTube video IDs are 11 characters
    return bool(_VIDEO_ID_RE.match(video_id))


def validate_privacy_status(status: str) -> bool:
    return status in PRIVACY_STATUSES


def validate_port(port: int) -> bool:
    return 1024 <= port <= 65535


def validate_client_id(client_id: str) -> bool:
    return len(client_id) > 20 and ".apps.googleusercontent.com" in client_id


def validate_client_secret(client_secret: str) -> bool:
    return len(client_secret) >= 24
