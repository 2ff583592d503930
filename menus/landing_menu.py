import asyncio

import questionary

from menus.config_menu import config_menu
from spotify_api.auth import (
    RedirectState,
    check_spotify_credentials,
    spotify_app_setup_instructions,
)
from spotify_api.errors import TokenExchangeError
from utils.logger import log_error, log_info, log_success, log_warning


def _spotify_setup_help(config: dict) -> None:
    creds = check_spotify_credentials(config)
    log_info("\n" + "=" * 72)
    log_info("SPOTIFY WEB API SETUP")
    log_info("=" * 72)
    log_info(spotify_app_setup_instructions(redirect_uri=creds.get("redirect_uri")))
    log_info("Current config status:")
    log_info(f"- spotify_client_id: {'SET' if creds.get('client_id') else 'NOT SET'}")
    log_info(f"- spotify_client_secret: {'SET' if creds.get('has_client_secret') else 'NOT SET'}")
    log_info(f"- spotify_redirect_uri: {creds.get('redirect_uri') or ''}")
    log_info(f"- spotify_scopes: {', '.join(creds.get('scopes') or [])}")
    if not creds.get("ok"):
        log_warning(creds.get("message") or "Spotify credentials are incomplete.")
    else:
        log_info(creds.get("message") or "Spotify credentials look OK.")
    log_info("=" * 72 + "\n")


def _complete_login(auth) -> None:
    """Ask for the URL Spotify redirected to and run the redirect leg."""

    pasted = questionary.text("Paste the full redirect URL from your browser:").ask()
    pasted = (pasted or "").strip()
    if not pasted:
        log_warning("No redirect URL provided. Cancelling login.")
        return

    try:
        result = asyncio.run(auth.handle_redirect(pasted))
    except TokenExchangeError as e:
        log_error(f"Spotify login failed: {e}")
        log_info("Try logging in again.")
        return

    if result.state is RedirectState.LOGIN_FAILED:
        log_error(f"Login failed: {result.error}")
    elif result.state is RedirectState.AUTHENTICATED:
        log_success("Spotify login successful.")
    else:
        log_warning("That URL did not contain a Spotify response; back to the start page.")


def landing_menu(config: dict, auth, navigator) -> None:
    """Start page: log in, finish a login, or move on to the app."""

    choices = [
        "Log in with Spotify",
        "Paste redirect URL",
        "Spotify setup help",
        "Settings",
    ]
    if auth.token_manager.load() is not None:
        choices.append("Open app")
    choices.append("Exit")

    choice = questionary.select("🎵 Breadcrumbs — What would you like to do?", choices=choices).ask()

    if choice == "Log in with Spotify":
        creds = check_spotify_credentials(config)
        if not creds.get("ok"):
            log_warning(creds.get("message") or "Spotify credentials are incomplete.")
            _spotify_setup_help(config)
            return
        auth.begin_login()
        _complete_login(auth)

    elif choice == "Paste redirect URL":
        _complete_login(auth)

    elif choice == "Spotify setup help":
        _spotify_setup_help(config)

    elif choice == "Settings":
        config_menu(config)

    elif choice == "Open app":
        navigator.show_view("app")

    elif choice == "Exit" or choice is None:
        navigator.show_view("exit")
