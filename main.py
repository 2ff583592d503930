import json
import sys

from config import load_config, validate_config
from menus.app_menu import app_menu
from menus.landing_menu import landing_menu
from menus.navigator import CliNavigator
from spotify_api.auth import SpotifyAuth
from spotify_api.client import SpotifyClient
from spotify_api.token_manager import TokenManager
from utils.logger import log_error, log_info, log_warning, setup_logging


def main() -> int:
    setup_logging()

    try:
        config = load_config(create_if_missing=True)
    except json.JSONDecodeError as e:
        log_error(f"Config file contains invalid JSON: {e}")
        return 1
    except OSError as e:
        log_error(f"Error loading config: {e}")
        return 1

    setup_logging(config.get("log_level", "INFO"), config.get("log_file") or None)

    is_valid, errors = validate_config(config)
    if not is_valid:
        for err in errors:
            log_warning(err)
        log_info("Fill in config.json (see 'Spotify setup help') before logging in.")

    navigator = CliNavigator()
    token_manager = TokenManager(config)
    auth = SpotifyAuth(config, token_manager=token_manager, navigator=navigator)
    client = SpotifyClient(config, token_manager=token_manager)

    if token_manager.load() is not None:
        navigator.show_view("app")

    while navigator.current_view != "exit":
        if navigator.current_view == "app":
            app_menu(config, token_manager, client, navigator)
        else:
            landing_menu(config, auth, navigator)

    log_info("Exiting program...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
