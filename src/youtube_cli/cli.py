import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from .auth import AuthorizationFlow, ProfileManager
from .config import ConfigStore, DEFAULT_PORT
from .errors import YouTubeCLIError
from .formatting import mask_secret, render, to_json
from .validation import (
    OUTPUT_FORMATS,
    PRIVACY_STATUSES,
    validate_client_id,
    validate_client_secret,
    validate_port,
    validate_privacy_status,
    validate_video_id,
)
from .youtube import YouTubeClient

app = typer.Typer(help="Command-line interface for YouTube Data API v3", no_args_is_help=True)
config_app = typer.Typer(help="View or edit configuration")
profiles_app = typer.Typer(help="Manage auth profiles (one per channel or brand account)")
app.add_typer(config_app, name="config")
app.add_typer(profiles_app, name="profiles")

CHANNEL_COLUMNS = [
    ("ID", "id"),
    ("Title", "snippet.title"),
    ("Subscribers", "statistics.subscriberCount"),
    ("Videos", "statistics.videoCount"),
]
VIDEO_COLUMNS = [
    ("ID", "id"),
    ("Title", "snippet.title"),
    ("Privacy", "status.privacyStatus"),
    ("Views", "statistics.viewCount"),
    ("Published", "snippet.publishedAt"),
]
PLAYLIST_COLUMNS = [
    ("ID", "id"),
    ("Title", "snippet.title"),
    ("Videos", "contentDetails.itemCount"),
    ("Privacy", "status.privacyStatus"),
]
STATS_COLUMNS = [
    ("ID", "id"),
    ("Title", "snippet.title"),
    ("Views", "statistics.viewCount"),
    ("Likes", "statistics.likeCount"),
    ("Comments", "statistics.commentCount"),
]
COMMENT_COLUMNS = [
    ("Author", "snippet.topLevelComment.snippet.authorDisplayName"),
    ("Comment", "snippet.topLevelComment.snippet.textDisplay"),
    ("Likes", "snippet.topLevelComment.snippet.likeCount"),
]

SETUP_INSTRUCTIONS = """
To get started:

1. Go to: https://console.cloud.google.com/
2. Create a new project (or select existing)
3. Enable the YouTube Data API v3:
   https://console.cloud.google.com/apis/library/youtube.googleapis.com
4. Go to Credentials -> Create Credentials -> OAuth 2.0 Client ID
5. Application Type: "Desktop app" or "Web application"
6. Add authorized redirect URI: http://localhost:3000/oauth2callback
7. Download the JSON or copy the Client ID and Client Secret
"""


def _error(message: str) -> None:
    typer.secho(f"✗ {message}", fg=typer.colors.RED, err=True)


def _load_store() -> ConfigStore:
    store = ConfigStore.from_env()
    try:
        store.get_all()
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    return store


def _require_setup(store: ConfigStore) -> None:
    if not store.exists():
        typer.secho("\n⚠  Configuration not found.\n", fg=typer.colors.YELLOW, err=True)
        typer.echo("Please run the setup wizard:", err=True)
        typer.secho("  youtube-cli setup\n", fg=typer.colors.CYAN, err=True)
        raise typer.Exit(1)


def _require_auth(store: ConfigStore) -> None:
    _require_setup(store)
    if not store.is_authenticated():
        typer.secho("\n⚠  Not authenticated.\n", fg=typer.colors.YELLOW, err=True)
        typer.echo("Please authenticate with YouTube:", err=True)
        typer.secho("  youtube-cli auth\n", fg=typer.colors.CYAN, err=True)
        raise typer.Exit(1)


def _client(store: ConfigStore) -> YouTubeClient:
    _require_auth(store)
    try:
        return YouTubeClient.from_store(store)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)


def _output_format(store: ConfigStore, output_format: Optional[str]) -> str:
    fmt = output_format or store.get_nested("defaults.outputFormat") or "table"
    if fmt not in OUTPUT_FORMATS:
        _error(f"Invalid output format '{fmt}'. Use one of: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(1)
    return fmt


def _check_privacy(privacy: Optional[str]) -> None:
    if privacy is not None and not validate_privacy_status(privacy):
        _error(f"Invalid privacy status '{privacy}'. Use one of: {', '.join(PRIVACY_STATUSES)}")
        raise typer.Exit(1)


def _check_video_id(video_id: str) -> None:
    if not validate_video_id(video_id):
        _error("Invalid video ID format")
        raise typer.Exit(1)


def _format_option():
    return typer.Option(
        None, "--format", "-f", help="Output format: table, json or csv (default from config)"
    )


def _prompt_valid(text, check, message, default=None, hide_input=False) -> str:
    while True:
        value = typer.prompt(text, default=default, hide_input=hide_input).strip()
        if value and check(value):
            return value
        _error(message)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )


# Setup & configuration


@app.command()
def setup(
    client_id: Optional[str] = typer.Option(None, help="OAuth Client ID"),
    client_secret: Optional[str] = typer.Option(None, help="OAuth Client Secret"),
    default_privacy: str = typer.Option(
        "private", help="Default privacy setting (public|private|unlisted)"
    ),
    port: int = typer.Option(DEFAULT_PORT, help="OAuth callback port"),
    non_interactive: bool = typer.Option(
        False, "--non-interactive", help="Run without prompts (requires --client-id and --client-secret)"
    ),
):
    """Interactive setup wizard (first-time configuration)"""
    store = _load_store()
    output_format = "table"

    if non_interactive:
        if not client_id or not client_secret:
            _error("--client-id and --client-secret are required with --non-interactive")
            raise typer.Exit(1)
    else:
        typer.secho("\nYouTube CLI Setup Wizard\n", fg=typer.colors.CYAN, bold=True)
        typer.secho(
            "⚠  You need to provide your own Google OAuth credentials.\n",
            fg=typer.colors.YELLOW,
        )
        if not typer.confirm(
            "Have you created a Google Cloud Project and OAuth credentials?", default=False
        ):
            typer.echo(SETUP_INSTRUCTIONS)
            typer.secho(
                "Run this command again when you have your credentials ready.\n",
                fg=typer.colors.CYAN,
            )
            return

        client_id = _prompt_valid(
            "Enter your Client ID",
            validate_client_id,
            "Invalid Client ID format (should end with .apps.googleusercontent.com)",
        )
        client_secret = _prompt_valid(
            "Enter your Client Secret",
            validate_client_secret,
            "Invalid Client Secret format (should be at least 24 characters)",
            hide_input=True,
        )
        default_privacy = _prompt_valid(
            "Default video privacy setting (private, unlisted, public)",
            validate_privacy_status,
            "Privacy must be one of: private, unlisted, public",
            default="private",
        )
        port = int(
            _prompt_valid(
                "OAuth callback port",
                lambda value: value.isdigit() and validate_port(int(value)),
                "Port must be between 1024 and 65535",
                default=str(DEFAULT_PORT),
            )
        )
        output_format = _prompt_valid(
            "Preferred output format (table, json, csv)",
            lambda value: value in OUTPUT_FORMATS,
            "Output format must be one of: table, json, csv",
            default="table",
        )

    if not validate_client_id(client_id):
        _error("Invalid Client ID format (should end with .apps.googleusercontent.com)")
        raise typer.Exit(1)
    if not validate_client_secret(client_secret):
        _error("Invalid Client Secret format (should be at least 24 characters)")
        raise typer.Exit(1)
    if not validate_port(port):
        _error("Port must be between 1024 and 65535")
        raise typer.Exit(1)
    _check_privacy(default_privacy)

    # Tokens from older configs live under "oauth"; move them before it is replaced
    ProfileManager(store).ensure_profiles_migrated()
    store.set(
        "oauth",
        {
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": f"http://localhost:{port}/oauth2callback",
            "port": port,
        },
    )
    store.set_nested("defaults.privacy", default_privacy)
    store.set_nested("defaults.category", "22")
    store.set_nested("defaults.outputFormat", output_format)
    store.set_nested("version", "1.0.0")

    typer.secho(f"\n✓ Configuration saved to: {store.path}", fg=typer.colors.GREEN)

    if non_interactive:
        return

    if typer.confirm("Would you like to authenticate now?", default=True):
        typer.echo()
        if AuthorizationFlow(store, ProfileManager(store)).authenticate(port=port):
            typer.secho("\nNext steps:", fg=typer.colors.CYAN)
            typer.echo("  • List your channels: youtube-cli channels")
            typer.echo('  • Upload a video: youtube-cli upload video.mp4 --title "My Video"')
            typer.echo("  • Get help: youtube-cli --help\n")
    else:
        typer.secho("\nRun this command when ready to authenticate:", fg=typer.colors.CYAN)
        typer.echo("  youtube-cli auth\n")


@config_app.command("show")
def config_show(
    reveal_secrets: bool = typer.Option(False, "--reveal-secrets", help="Show full credential values"),
):
    """Display current configuration"""
    store = _load_store()
    if not store.exists():
        typer.secho("No configuration found. Run: youtube-cli setup", fg=typer.colors.YELLOW)
        return

    cfg = store.get_all()
    oauth = cfg.get("oauth", {})
    client_id = oauth.get("client_id", "")
    client_secret = oauth.get("client_secret", "")

    typer.secho("\nConfiguration:\n", fg=typer.colors.CYAN, bold=True)
    typer.secho("OAuth:", bold=True)
    typer.echo(f"  Client ID: {client_id if reveal_secrets else mask_secret(client_id)}")
    typer.echo(
        f"  Client Secret: {client_secret if reveal_secrets else mask_secret(client_secret, 0)}"
    )
    typer.echo(f"  Port: {oauth.get('port', DEFAULT_PORT)}")
    typer.echo(f"  Authenticated: {'Yes' if store.is_authenticated() else 'No'}")
    typer.echo(f"  Active profile: {ProfileManager(store).get_active_profile_name()}")

    defaults = cfg.get("defaults") or {}
    typer.secho("\nDefaults:", bold=True)
    typer.echo(f"  Privacy: {defaults.get('privacy')}")
    typer.echo(f"  Category: {defaults.get('category')}")
    typer.echo(f"  Output Format: {defaults.get('outputFormat')}")

    typer.secho("\nConfig File: ", bold=True, nl=False)
    typer.echo(f"{store.path}\n")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Dotted key, e.g. defaults.privacy or oauth.port"),
    value: str = typer.Argument(..., help="New value (JSON literals such as 3001 or true are parsed)"),
):
    """Set a configuration value"""
    store = _load_store()
    if not store.exists():
        typer.secho("No configuration found. Run: youtube-cli setup", fg=typer.colors.YELLOW)
        return

    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value

    if key == "oauth.port" and (
        not isinstance(parsed, int) or isinstance(parsed, bool) or not validate_port(parsed)
    ):
        _error("Port must be an integer between 1024 and 65535")
        raise typer.Exit(1)

    try:
        store.set_nested(key, parsed)
    except YouTubeCLIError as e:
        _error(f"Failed to set config: {e}")
        raise typer.Exit(1)
    typer.secho(f"✓ Set {key} = {value}", fg=typer.colors.GREEN)


@app.command()
def reset(
    confirm: bool = typer.Option(False, "--confirm", help="Skip confirmation prompt"),
):
    """Remove all configuration and tokens"""
    store = ConfigStore.from_env()
    if not confirm and not typer.confirm(
        "Are you sure you want to delete all configuration?", default=False
    ):
        typer.echo("Cancelled.")
        return

    store.reset()
    typer.secho("✓ Configuration reset. Run setup to configure again.", fg=typer.colors.GREEN)


# Authentication


@app.command()
def auth(
    port: Optional[int] = typer.Option(None, "--port", help="Override OAuth callback port"),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Display URL instead of opening browser"
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Store tokens in this profile (created if new)"
    ),
):
    """Authenticate with YouTube using configured credentials"""
    store = _load_store()
    _require_setup(store)

    flow = AuthorizationFlow(store, ProfileManager(store))
    try:
        ok = flow.authenticate(port=port, open_browser=not no_browser, profile_name=profile)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    if not ok:
        raise typer.Exit(1)


@app.command()
def logout():
    """Remove stored tokens of the active profile (keeps config)"""
    store = _load_store()
    _require_setup(store)

    ProfileManager(store).clear_active_profile_tokens()
    typer.secho("✓ Logged out successfully", fg=typer.colors.GREEN)
    typer.secho("\nTo authenticate again:", fg=typer.colors.CYAN)
    typer.echo("  youtube-cli auth\n")


@profiles_app.command("list")
def profiles_list():
    """List auth profiles"""
    store = _load_store()
    profiles = ProfileManager(store)
    profiles.ensure_profiles_migrated()

    names = profiles.list_profiles()
    if not names:
        typer.echo("No profiles yet. Run: youtube-cli auth")
        return

    active = profiles.get_active_profile_name()
    records = store.get("authProfiles") or {}
    for name in names:
        record = records.get(name) or {}
        marker = "*" if name == active else " "
        signed_in = "signed in" if record.get("refresh_token") else "signed out"
        title = record.get("channel_title")
        suffix = f" ({title})" if title else ""
        typer.echo(f"{marker} {name}{suffix} [{signed_in}]")


@profiles_app.command("use")
def profiles_use(name: str = typer.Argument(..., help="Profile name")):
    """Switch the active profile"""
    store = _load_store()
    profiles = ProfileManager(store)
    profiles.ensure_profiles_migrated()
    profiles.set_active_profile_name(name)
    typer.secho(f"✓ Active profile: {name}", fg=typer.colors.GREEN)
    if not store.is_authenticated():
        typer.secho(f"Profile has no tokens yet. Run: youtube-cli auth --profile {name}", fg=typer.colors.YELLOW)


@profiles_app.command("remove")
def profiles_remove(name: str = typer.Argument(..., help="Profile name")):
    """Delete a profile and its tokens"""
    store = _load_store()
    try:
        ProfileManager(store).remove_profile(name)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.secho(f"✓ Removed profile: {name}", fg=typer.colors.GREEN)


# Channels & videos


@app.command()
def channels(output_format: Optional[str] = _format_option()):
    """List your YouTube channels"""
    store = _load_store()
    client = _client(store)
    fmt = _output_format(store, output_format)
    try:
        items = client.list_channels()
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.echo(render(items, CHANNEL_COLUMNS, fmt))


@app.command()
def videos(
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum number of videos"),
    status: Optional[str] = typer.Option(None, help="Filter by privacy status"),
    output_format: Optional[str] = _format_option(),
):
    """List your most recent videos"""
    store = _load_store()
    _check_privacy(status)
    client = _client(store)
    fmt = _output_format(store, output_format)
    try:
        items = client.list_videos(max_results=limit, status=status)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.echo(render(items, VIDEO_COLUMNS, fmt))


@app.command()
def upload(
    file: Path = typer.Argument(..., help="Video file to upload"),
    title: str = typer.Option(..., "--title", "-t", help="Video title"),
    description: str = typer.Option("", "--description", "-d", help="Video description"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
    privacy: Optional[str] = typer.Option(None, help="public, private or unlisted (default from config)"),
    category: Optional[str] = typer.Option(None, help="Category ID (default from config)"),
    thumbnail: Optional[Path] = typer.Option(
        None, "--thumbnail", help="Thumbnail image to set after the upload"
    ),
):
    """Upload a video"""
    store = _load_store()
    _check_privacy(privacy)
    client = _client(store)

    def show_progress(percent: int) -> None:
        typer.echo(f"[youtube] Uploading... {percent}%")

    try:
        response = client.upload_video(
            video_path=str(file),
            title=title,
            description=description,
            tags=tags,
            category_id=category or store.get_nested("defaults.category") or "22",
            privacy_status=privacy or store.get_nested("defaults.privacy") or "private",
            progress_callback=show_progress,
        )
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)

    video_id = response.get("id")
    typer.secho(f"✓ Upload complete! Video ID: {video_id}", fg=typer.colors.GREEN)
    typer.echo(f"  URL: https://youtu.be/{video_id}")

    if thumbnail is not None:
        # The video is already up; a thumbnail failure only warns
        try:
            client.set_thumbnail(video_id, str(thumbnail))
        except YouTubeCLIError as e:
            typer.secho("⚠  Failed to set thumbnail", fg=typer.colors.YELLOW, err=True)
            typer.secho(f"  {e}", fg=typer.colors.YELLOW, err=True)
        else:
            typer.secho("✓ Thumbnail set", fg=typer.colors.GREEN)


@app.command()
def update(
    video_id: str = typer.Argument(..., help="Video ID"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
    category: Optional[str] = typer.Option(None),
    privacy: Optional[str] = typer.Option(None),
):
    """Update video metadata"""
    store = _load_store()
    _check_video_id(video_id)
    _check_privacy(privacy)
    client = _client(store)
    try:
        client.update_video(
            video_id,
            title=title,
            description=description,
            tags=tags or None,
            category_id=category,
            privacy_status=privacy,
        )
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.secho(f"✓ Updated video {video_id}", fg=typer.colors.GREEN)


@app.command()
def delete(
    video_id: str = typer.Argument(..., help="Video ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Delete a video"""
    store = _load_store()
    _check_video_id(video_id)
    client = _client(store)
    if not yes and not typer.confirm(f"Delete video {video_id}? This cannot be undone", default=False):
        typer.echo("Cancelled.")
        return
    try:
        client.delete_video(video_id)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.secho(f"✓ Deleted video {video_id}", fg=typer.colors.GREEN)


@app.command()
def stats(
    video_id: str = typer.Argument(..., help="Video ID"),
    output_format: Optional[str] = _format_option(),
):
    """Show statistics for a video"""
    store = _load_store()
    _check_video_id(video_id)
    client = _client(store)
    fmt = _output_format(store, output_format)
    try:
        video = client.get_video(video_id)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)

    if fmt == "json":
        typer.echo(to_json(video))
        return
    if fmt == "csv":
        typer.echo(render([video], STATS_COLUMNS, fmt))
        return

    snippet = video.get("snippet", {})
    typer.secho(f"\n{snippet.get('title', '')}\n", fg=typer.colors.CYAN, bold=True)
    typer.echo(f"URL: https://youtube.com/watch?v={video_id}")
    typer.echo(f"Status: {video.get('status', {}).get('privacyStatus', '')}")
    typer.echo(f"Published: {snippet.get('publishedAt', '')}")

    statistics = video.get("statistics")
    if statistics:
        typer.secho("\nStatistics:", bold=True)
        for label, key in (("Views", "viewCount"), ("Likes", "likeCount"), ("Comments", "commentCount")):
            typer.echo(f"  {label}: {int(statistics.get(key) or 0):,}")

    duration = video.get("contentDetails", {}).get("duration")
    if duration:
        typer.echo(f"\nDuration: {duration}")
    typer.echo()


@app.command()
def thumbnail(
    video_id: str = typer.Argument(..., help="Video ID"),
    image: Path = typer.Argument(..., help="Image file (jpg, png or gif, max 2MB)"),
):
    """Set a custom thumbnail"""
    store = _load_store()
    _check_video_id(video_id)
    client = _client(store)
    try:
        client.set_thumbnail(video_id, str(image))
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.secho(f"✓ Thumbnail set for {video_id}", fg=typer.colors.GREEN)


# Playlists


@app.command()
def playlists(
    limit: int = typer.Option(25, "--limit", "-n"),
    output_format: Optional[str] = _format_option(),
):
    """List your playlists"""
    store = _load_store()
    client = _client(store)
    fmt = _output_format(store, output_format)
    try:
        items = client.list_playlists(max_results=limit)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.echo(render(items, PLAYLIST_COLUMNS, fmt))


@app.command("playlist-create")
def playlist_create(
    title: str = typer.Argument(..., help="Playlist title"),
    description: str = typer.Option("", "--description", "-d"),
    privacy: Optional[str] = typer.Option(None, help="public, private or unlisted"),
):
    """Create a playlist"""
    store = _load_store()
    _check_privacy(privacy)
    client = _client(store)
    try:
        playlist = client.create_playlist(
            title,
            description=description,
            privacy_status=privacy or store.get_nested("defaults.privacy") or "private",
        )
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.secho(f"✓ Created playlist {playlist.get('id')}", fg=typer.colors.GREEN)


@app.command("playlist-add")
def playlist_add(
    playlist_id: str = typer.Argument(..., help="Playlist ID"),
    video_id: str = typer.Argument(..., help="Video ID"),
):
    """Add a video to a playlist"""
    store = _load_store()
    client = _client(store)
    try:
        client.add_to_playlist(playlist_id, video_id)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.secho(f"✓ Added {video_id} to playlist {playlist_id}", fg=typer.colors.GREEN)


# Comments


@app.command()
def comments(
    video_id: str = typer.Argument(..., help="Video ID"),
    limit: int = typer.Option(20, "--limit", "-n"),
    output_format: Optional[str] = _format_option(),
):
    """List comments on a video"""
    store = _load_store()
    _check_video_id(video_id)
    client = _client(store)
    fmt = _output_format(store, output_format)
    try:
        items = client.list_comments(video_id, max_results=limit)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.echo(render(items, COMMENT_COLUMNS, fmt))


@app.command()
def comment(
    video_id: str = typer.Argument(..., help="Video ID"),
    text: str = typer.Argument(..., help="Comment text"),
):
    """Post a comment on a video"""
    store = _load_store()
    client = _client(store)
    try:
        client.post_comment(video_id, text)
    except YouTubeCLIError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.secho("✓ Comment posted", fg=typer.colors.GREEN)


def main():
    """Entry point for console script"""
    app()


if __name__ == "__main__":
    main()
