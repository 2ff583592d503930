import asyncio
import time

import questionary

from spotify_api.errors import NotAuthenticatedError, RefreshFailedError, SpotifyAPIError
from spotify_api.playlist_builder import build_playlist_from_artists
from utils.logger import log_error, log_info, log_success, log_warning

TIME_RANGES = {
    "Last 4 weeks": "short_term",
    "Last 6 months": "medium_term",
    "All time": "long_term",
}


def _ask_time_range() -> str:
    label = questionary.select("Over which period?", choices=list(TIME_RANGES), default="Last 4 weeks").ask()
    return TIME_RANGES.get(label or "", "short_term")


def _top_artists(client, time_range: str, limit: int = 20) -> list:
    payload = asyncio.run(client.get_users_top_items("artists", time_range=time_range, limit=limit))
    return [a for a in (payload.get("items") or []) if isinstance(a, dict) and a.get("id")]


def show_top_artists(client) -> None:
    artists = _top_artists(client, _ask_time_range())
    if not artists:
        log_info("No top artists found for this period.")
        return
    for i, artist in enumerate(artists, start=1):
        log_info(f"{i:>2}. {artist.get('name', '?')} ({artist['id']})")


def build_playlist_menu(client) -> None:
    artists = _top_artists(client, _ask_time_range())
    if not artists:
        log_info("No top artists found for this period.")
        return

    selected = questionary.checkbox(
        "Pick artists for the playlist:",
        choices=[questionary.Choice(title=a.get("name", a["id"]), value=a["id"]) for a in artists],
    ).ask()
    if not selected:
        log_warning("No artists selected.")
        return

    name = (questionary.text("Playlist name:", default="Breadcrumbs").ask() or "").strip()
    if not name:
        log_warning("Playlist name is required.")
        return

    result = asyncio.run(build_playlist_from_artists(client, name, selected))
    log_success(f"Created '{name}' with {result['track_count']} tracks. {result['url']}".rstrip())


def token_status(token_manager) -> None:
    status = token_manager.status()
    if not status["authenticated"]:
        log_info("No stored Spotify credentials.")
        return
    exp_str = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(status["expires_at"]))
    log_info(f"Logged in: YES | Expired: {'YES' if status['expired'] else 'NO'} | Expires at: {exp_str}")


def app_menu(config: dict, token_manager, client, navigator) -> None:
    """Main view once logged in."""

    choice = questionary.select(
        "🎧 App — What would you like to do?",
        choices=[
            "Show top artists",
            "Build playlist from top artists",
            "Token status",
            "Log out",
            "Back to start page",
        ],
    ).ask()

    try:
        if choice == "Show top artists":
            show_top_artists(client)

        elif choice == "Build playlist from top artists":
            build_playlist_menu(client)

        elif choice == "Token status":
            token_status(token_manager)

        elif choice == "Log out":
            token_manager.clear()
            log_info("Logged out.")
            navigator.show_view("landing")

        else:
            navigator.show_view("landing")

    except (NotAuthenticatedError, RefreshFailedError) as e:
        log_error(f"{e}")
        log_info("Please log in again.")
        navigator.show_view("landing")
    except SpotifyAPIError as e:
        log_error(f"Spotify request failed: {e}")
    except ValueError as e:
        log_error(f"{e}")
