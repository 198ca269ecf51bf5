"""Tests for the YouTube Data API client."""

from unittest.mock import MagicMock, Mock, patch

import pytest
from googleapiclient.errors import HttpError

from youtube_cli.errors import YouTubeAPIError, YouTubeAuthError
from youtube_cli.youtube.client import MAX_UPLOAD_RETRIES, YouTubeClient


def http_error(status, reason="error"):
    return HttpError(Mock(status=status, reason=reason), b"{}")


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(service):
    return YouTubeClient(service)


@pytest.fixture
def video_file(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00" * 128)
    return str(path)


class TestVideos:
    def test_list_videos_searches_first_channel(self, client, service):
        service.channels.return_value.list.return_value.execute.return_value = {
            "items": [{"id": "UC1"}]
        }
        service.search.return_value.list.return_value.execute.return_value = {
            "items": [{"id": {"videoId": "vid00000001"}}, {"id": {"videoId": "vid00000002"}}]
        }
        service.videos.return_value.list.return_value.execute.return_value = {
            "items": [
                {"id": "vid00000001", "status": {"privacyStatus": "public"}},
                {"id": "vid00000002", "status": {"privacyStatus": "private"}},
            ]
        }

        videos = client.list_videos(max_results=5, status="private")

        assert [v["id"] for v in videos] == ["vid00000002"]
        search_kwargs = service.search.return_value.list.call_args[1]
        assert search_kwargs["channelId"] == "UC1"
        assert search_kwargs["maxResults"] == 5
        assert service.videos.return_value.list.call_args[1]["id"] == "vid00000001,vid00000002"

    def test_list_videos_without_channel(self, client, service):
        service.channels.return_value.list.return_value.execute.return_value = {"items": []}

        assert client.list_videos() == []
        service.search.assert_not_called()

    def test_get_video_not_found(self, client, service):
        service.videos.return_value.list.return_value.execute.return_value = {"items": []}

        with pytest.raises(YouTubeAPIError, match="Video not found"):
            client.get_video("missing0000")

    def test_api_errors_are_wrapped(self, client, service):
        service.videos.return_value.delete.return_value.execute.side_effect = http_error(404)

        with pytest.raises(YouTubeAPIError, match="delete video"):
            client.delete_video("vid00000001")

    def test_update_keeps_unchanged_fields(self, client, service):
        service.videos.return_value.list.return_value.execute.return_value = {
            "items": [
                {
                    "id": "vid00000001",
                    "snippet": {
                        "title": "Old",
                        "description": "Old description",
                        "tags": ["a"],
                        "categoryId": "10",
                    },
                    "status": {"privacyStatus": "unlisted"},
                }
            ]
        }

        client.update_video("vid00000001", title="New", privacy_status="public")

        body = service.videos.return_value.update.call_args[1]["body"]
        assert body["snippet"] == {
            "title": "New",
            "description": "Old description",
            "tags": ["a"],
            "categoryId": "10",
        }
        assert body["status"] == {"privacyStatus": "public"}


class TestUpload:
    @pytest.fixture(autouse=True)
    def media(self):
        with patch("youtube_cli.youtube.client.MediaFileUpload") as media:
            yield media

    def test_upload_reports_progress(self, client, service, video_file):
        request = service.videos.return_value.insert.return_value
        status = Mock()
        status.progress.return_value = 0.5
        request.next_chunk.side_effect = [(status, None), (None, {"id": "vid00000001"})]
        progress = []

        response = client.upload_video(
            video_file, "x" * 150, tags=["t"], progress_callback=progress.append
        )

        assert response == {"id": "vid00000001"}
        assert progress == [50]
        body = service.videos.return_value.insert.call_args[1]["body"]
        assert len(body["snippet"]["title"]) == 100
        assert body["status"]["privacyStatus"] == "private"

    def test_retries_server_errors(self, client, service, video_file):
        request = service.videos.return_value.insert.return_value
        request.next_chunk.side_effect = [http_error(503), (None, {"id": "vid00000001"})]

        with patch("youtube_cli.youtube.client.time.sleep") as sleep:
            response = client.upload_video(video_file, "Title")

        assert response["id"] == "vid00000001"
        sleep.assert_called_once_with(2)

    def test_gives_up_after_max_retries(self, client, service, video_file):
        request = service.videos.return_value.insert.return_value
        request.next_chunk.side_effect = http_error(500)

        with patch("youtube_cli.youtube.client.time.sleep") as sleep:
            with pytest.raises(YouTubeAPIError, match="retries"):
                client.upload_video(video_file, "Title")

        assert sleep.call_count == MAX_UPLOAD_RETRIES

    def test_client_errors_are_not_retried(self, client, service, video_file):
        request = service.videos.return_value.insert.return_value
        request.next_chunk.side_effect = http_error(400)

        with patch("youtube_cli.youtube.client.time.sleep") as sleep:
            with pytest.raises(YouTubeAPIError, match="Upload failed"):
                client.upload_video(video_file, "Title")

        sleep.assert_not_called()

    def test_missing_file(self, client, service, tmp_path):
        with pytest.raises(YouTubeAPIError, match="File does not exist"):
            client.upload_video(str(tmp_path / "nope.mp4"), "Title")

        service.videos.return_value.insert.assert_not_called()

    def test_wrong_extension(self, client, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        with pytest.raises(YouTubeAPIError, match="Invalid video format"):
            client.upload_video(str(path), "Title")

    def test_thumbnail_size_limit(self, client, service, tmp_path):
        path = tmp_path / "thumb.png"
        path.write_bytes(b"\x00" * (2 * 1024 * 1024 + 1))

        with pytest.raises(YouTubeAPIError, match="2MB"):
            client.set_thumbnail("vid00000001", str(path))

        service.thumbnails.assert_not_called()


class TestPlaylistsAndComments:
    def test_add_to_playlist(self, client, service):
        client.add_to_playlist("PL1", "vid00000001")

        body = service.playlistItems.return_value.insert.call_args[1]["body"]
        assert body["snippet"]["playlistId"] == "PL1"
        assert body["snippet"]["resourceId"]["videoId"] == "vid00000001"

    def test_comments_disabled(self, client, service):
        service.commentThreads.return_value.list.return_value.execute.side_effect = http_error(403)

        with pytest.raises(YouTubeAPIError, match="disabled"):
            client.list_comments("vid00000001")

    def test_post_comment(self, client, service):
        client.post_comment("vid00000001", "Nice video")

        body = service.commentThreads.return_value.insert.call_args[1]["body"]
        assert body["snippet"]["topLevelComment"]["snippet"]["textOriginal"] == "Nice video"


class TestFromStore:
    def test_requires_authentication(self, configured_store):
        with pytest.raises(YouTubeAuthError):
            YouTubeClient.from_store(configured_store)

    def test_builds_service_with_refresh_token(self, configured_store, profiles):
        profiles.set_active_profile_tokens(
            {"access_token": "A1", "refresh_token": "R1", "expires_at": 2 ** 50}
        )

        with patch("youtube_cli.youtube.client.build") as build:
            client = YouTubeClient.from_store(configured_store)

        assert client.youtube is build.return_value
        creds = build.call_args[1]["credentials"]
        assert creds.token == "A1"
        assert creds.refresh_token == "R1"
