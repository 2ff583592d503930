import json
import os
from typing import Any, Dict, Optional

CONFIG_PATH = "config.json"

# Default configuration values
DEFAULT_CONFIG = {
    # Spotify app credentials
    # NOTE: prefer SPOTIFY_CLIENT_SECRET in the environment over storing it here.
    "spotify_client_id": "",
    "spotify_client_secret": "",
    "spotify_redirect_uri": "http://127.0.0.1:8888/redirect",
    "spotify_scopes": [
        "user-top-read",
        "playlist-modify-private",
        "playlist-modify-public",
    ],
    "spotify_show_dialog": True,
    "spotify_refresh_basic_auth": True,

    # Token storage + HTTP behavior
    "spotify_token_path": "data/spotify_tokens.json",
    "spotify_request_timeout": 30,
    "spotify_max_retries": 3,

    # Logging
    "log_level": "INFO",
    "log_file": "",
}

# Environment variables that override file values
ENV_OVERRIDES = {
    "SPOTIFY_CLIENT_ID": "spotify_client_id",
    "SPOTIFY_CLIENT_SECRET": "spotify_client_secret",
}

# Validation rules for config fields
CONFIG_SCHEMA = {
    "spotify_client_id": {"type": str, "required": True},
    "spotify_client_secret": {"type": str, "required": False},
    "spotify_redirect_uri": {"type": str, "required": True},
    "spotify_scopes": {"type": list, "required": False, "element_type": str},
    "spotify_show_dialog": {"type": bool, "required": False},
    "spotify_refresh_basic_auth": {"type": bool, "required": False},
    "spotify_token_path": {"type": str, "required": False},
    "spotify_request_timeout": {"type": (int, float), "required": False, "min": 1, "max": 300},
    "spotify_max_retries": {"type": int, "required": False, "min": 0, "max": 10},
    "log_level": {"type": str, "required": False, "choices": ["DEBUG", "INFO", "WARNING", "ERROR"]},
    "log_file": {"type": str, "required": False},
}


def apply_env_overrides(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Overlay non-empty SPOTIFY_* environment variables onto config."""
    environ = os.environ if environ is None else environ
    for env_key, config_key in ENV_OVERRIDES.items():
        value = (environ.get(env_key) or "").strip()
        if value:
            config[config_key] = value
    return config


def load_config(path: str = CONFIG_PATH, *, create_if_missing: bool = False) -> Dict[str, Any]:
    """Load configuration from file, applying defaults for missing fields."""
    if not os.path.exists(path):
        if not create_if_missing:
            raise FileNotFoundError(f"Config file {path} not found.")
        save_config(DEFAULT_CONFIG.copy(), path)

    with open(path, "r", encoding="utf-8") as f:
        config = json.load(f)

    # Apply defaults for missing fields
    for key, value in DEFAULT_CONFIG.items():
        if key not in config:
            config[key] = value

    return apply_env_overrides(config)


def save_config(config: Dict[str, Any], path: str = CONFIG_PATH) -> bool:
    """Save configuration to file."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except OSError as e:
        raise IOError(f"Failed to save config: {e}") from e


def validate_config(config: Dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate configuration against schema.
    Returns (is_valid, list_of_errors).
    """
    errors = []

    for key, rules in CONFIG_SCHEMA.items():
        # Check required fields
        if rules.get("required", False) and not config.get(key):
            errors.append(f"Missing required field: {key}")
            continue

        if key not in config:
            continue

        value = config[key]

        # Type check (bool is an int subclass; don't let it pass numeric fields)
        expected_type = rules.get("type")
        if expected_type and (
            not isinstance(value, expected_type)
            or (isinstance(value, bool) and expected_type is not bool)
        ):
            type_names = expected_type.__name__ if not isinstance(expected_type, tuple) else "/".join(t.__name__ for t in expected_type)
            errors.append(f"Field '{key}' must be {type_names}, got {type(value).__name__}")
            continue

        if isinstance(value, list) and "element_type" in rules:
            elem_type = rules["element_type"]
            bad_elems = [v for v in value if not isinstance(v, elem_type)]
            if bad_elems:
                errors.append(
                    f"Field '{key}' must be a list of {elem_type.__name__}, got invalid elements: {bad_elems}"
                )
                continue

        if "choices" in rules and value not in rules["choices"]:
            errors.append(f"Field '{key}' must be one of {rules['choices']}, got '{value}'")

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if "min" in rules and value < rules["min"]:
                errors.append(f"Field '{key}' must be >= {rules['min']}, got {value}")
            if "max" in rules and value > rules["max"]:
                errors.append(f"Field '{key}' must be <= {rules['max']}, got {value}")

    return len(errors) == 0, errors


def update_config(key: str, value: Any, path: str = CONFIG_PATH) -> tuple[bool, str]:
    """
    Update a single config field with validation.
    Returns (success, message).
    """
    if key not in CONFIG_SCHEMA:
        return False, f"Unknown config key: {key}"

    with open(path, "r", encoding="utf-8") as f:
        config = json.load(f)

    test_config = {**DEFAULT_CONFIG, **config, key: value}
    is_valid, errors = validate_config(test_config)
    bad = [e for e in errors if f"'{key}'" in e or e.endswith(f": {key}")]
    if bad:
        return False, f"Validation failed: {', '.join(bad)}"

    config[key] = value
    save_config(config, path)
    return True, f"Updated '{key}'"

