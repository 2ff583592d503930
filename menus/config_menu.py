import questionary

from config import CONFIG_PATH, CONFIG_SCHEMA, update_config, validate_config
from utils.logger import log_error, log_info, log_success, log_warning

# Settings that can be changed from the menu, grouped for display.
CATEGORIES = {
    "Spotify app": ["spotify_client_id", "spotify_client_secret", "spotify_redirect_uri"],
    "Login": ["spotify_scopes", "spotify_show_dialog", "spotify_refresh_basic_auth"],
    "HTTP": ["spotify_request_timeout", "spotify_max_retries"],
    "Storage & logging": ["spotify_token_path", "log_level", "log_file"],
}

SECRET_KEYS = ("spotify_client_secret",)


def config_menu(config: dict, path: str = CONFIG_PATH) -> dict:
    """
    Display the settings menu and handle user selections.
    Returns the (updated in place) config dict.
    """
    while True:
        choice = questionary.select(
            "⚙️ Settings — What would you like to do?",
            choices=[
                "View current config",
                "Update a setting",
                "Validate configuration",
                "Back",
            ],
        ).ask()

        if choice == "View current config":
            view_config(config)

        elif choice == "Update a setting":
            update_setting_menu(config, path)

        elif choice == "Validate configuration":
            validate_config_menu(config)

        elif choice == "Back" or choice is None:
            break

    return config


def _display_value(key: str, value) -> str:
    if key in SECRET_KEYS:
        return "SET" if value else "NOT SET"
    if isinstance(value, bool):
        return "✓ Enabled" if value else "✗ Disabled"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def view_config(config: dict) -> None:
    """Log the current configuration grouped by category."""
    log_info("\n" + "=" * 50)
    log_info("📋 Current Configuration")
    log_info("=" * 50)

    for category, keys in CATEGORIES.items():
        log_info(f"\n{category}:")
        for key in keys:
            if key in config:
                log_info(f"  {key}: {_display_value(key, config[key])}")

    log_info("\n" + "=" * 50)


def _parse_value(key: str, raw: str):
    """Convert text input to the type CONFIG_SCHEMA expects for key."""
    expected = CONFIG_SCHEMA[key].get("type")
    raw = (raw or "").strip()

    if expected is list:
        return [part.strip() for part in raw.replace(",", " ").split() if part.strip()]
    if expected is int:
        return int(raw)
    if expected == (int, float):
        value = float(raw)
        return int(value) if value.is_integer() else value
    return raw


def update_setting_menu(config: dict, path: str = CONFIG_PATH) -> dict:
    """Menu to update a single setting, validated and written to the config file."""
    keys = [key for group in CATEGORIES.values() for key in group]
    key = questionary.select("Select setting to update:", choices=keys + ["Back"]).ask()
    if key in (None, "Back"):
        return config

    schema = CONFIG_SCHEMA[key]
    current_value = config.get(key)

    if schema.get("type") is bool:
        new_value = questionary.confirm(f"Enable {key}?", default=bool(current_value)).ask()
        if new_value is None:
            return config
    elif "choices" in schema:
        new_value = questionary.select(
            f"Select new value for {key}:",
            choices=schema["choices"],
            default=current_value if current_value in schema["choices"] else None,
        ).ask()
        if new_value is None:
            return config
    else:
        default = "" if key in SECRET_KEYS else _display_value(key, current_value or "")
        raw = questionary.text(f"Enter new value for {key}:", default=default).ask()
        if raw is None:
            return config
        try:
            new_value = _parse_value(key, raw)
        except ValueError:
            log_error("Invalid number format")
            return config

    success, message = update_config(key, new_value, path)

    if success:
        log_success(message)
        config[key] = new_value
    else:
        log_error(message)

    return config


def validate_config_menu(config: dict) -> None:
    is_valid, errors = validate_config(config)
    if is_valid:
        log_success("Configuration is valid.")
        return
    log_warning("Configuration has problems:")
    for err in errors:
        log_error(f"  - {err}")
