"""
Configuration loader for JSON files with environment overrides
"""
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from colorama import Fore, Style

from .logger import get_logger

log = get_logger(__name__)

ENV_PREFIX = "SAVESYNC_"

# Default configuration. Used to bootstrap config.json when it does not
# exist yet, and as the base every loaded configuration is merged over.
DEFAULT_CONFIG: Dict[str, Any] = {
    "s3_endpoint": "",
    "s3_region": "auto",
    "s3_bucket": "",
    "s3_force_path_style": False,
    "s3_use_tls": True,
    "s3_request_timeout": 60,
    "cloud_metadata_key": "games.json",
    "credential_dir": "",
    "image_dir": "",
    "credential_key": "default",
    "log_level": "info",
    "offline_mode": False,
}

_SENSITIVE_MARKERS = ('token', 'password', 'secret')


def get_app_data_dir() -> str:
    """Directory holding config.json and the credential store.

    ``SAVESYNC_APPDATA`` wins; otherwise ``~/.config/savesync``.
    """
    override = os.environ.get(f"{ENV_PREFIX}APPDATA", "").strip()
    if override:
        return override
    return str(Path.home() / ".config" / "savesync")


def parse_bool(value: Any, fallback: bool = False) -> bool:
    """Coerce a config or environment value to a boolean.

    Booleans pass through; strings accept ``1``/``true``/``yes`` and blank
    strings (or ``None``) give *fallback*.

    Example:
        >>> parse_bool("false", True)
        False
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback
    value = str(value).strip()
    if not value:
        return fallback
    return value == "1" or value.lower() in ("true", "yes")


def _parse_int(value: str, fallback: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


def apply_env_overrides(config: Dict[str, Any], environ=None) -> Dict[str, Any]:
    """Override configuration values from ``SAVESYNC_<KEY>`` variables.

    Values are coerced to the type of the default: booleans accept
    ``1``/``true``/``yes``, integers must be positive, strings are
    stripped. Blank variables are ignored.

    Args:
        config: Configuration dictionary (modified in place)
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        The same configuration dictionary
    """
    environ = os.environ if environ is None else environ

    for key, default in DEFAULT_CONFIG.items():
        raw = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if raw is None or not raw.strip():
            continue
        current = config.get(key, default)
        if isinstance(default, bool):
            config[key] = parse_bool(raw, current)
        elif isinstance(default, int):
            config[key] = _parse_int(raw, current)
        else:
            config[key] = raw.strip()

    return config


class ConfigLoader:
    """Handles loading and saving configuration files."""

    @staticmethod
    def get_config_path(filename="config.json"):
        """
        Get full path to configuration file.

        Args:
            filename: Configuration filename

        Returns:
            Full path to config file
        """
        return str(Path(get_app_data_dir()) / filename)

    @staticmethod
    def ensure_config_exists():
        """
        Ensure config.json exists, creating it with defaults if missing.

        Returns:
            Path to the config.json file
        """
        config_path = Path(ConfigLoader.get_config_path())

        if not config_path.exists():
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, 'w') as f:
                json.dump(DEFAULT_CONFIG, f, indent=2)
            log.info("Created default config.json at %s", config_path)

        return config_path

    @staticmethod
    def load_config_json(create=True):
        """
        Load config.json merged over the defaults, then apply environment
        overrides.

        Args:
            create: Create config.json with defaults if it does not exist

        Returns:
            Configuration dictionary
        """
        config = dict(DEFAULT_CONFIG)
        config_path = Path(ConfigLoader.get_config_path())
        if create:
            config_path = ConfigLoader.ensure_config_exists()

        if config_path.exists():
            try:
                with open(config_path, 'r') as f:
                    stored = json.load(f)
                if isinstance(stored, dict):
                    config.update(stored)
                else:
                    log.warning("Ignoring %s: top-level value is not an object", config_path)
            except (OSError, json.JSONDecodeError) as e:
                log.error("Error loading config.json: %s", e)

        if not config.get("credential_dir"):
            config["credential_dir"] = str(Path(get_app_data_dir()) / "credentials")
        if not config.get("image_dir"):
            config["image_dir"] = str(Path(get_app_data_dir()) / "images")

        return apply_env_overrides(config)


def mask_value(key: str, value: Any) -> Any:
    """Hide most of a value whose key looks sensitive."""
    if any(marker in key.lower() for marker in _SENSITIVE_MARKERS):
        if value and len(str(value)) > 4:
            return f"{str(value)[:4]}...{'*' * 8}"
    return value


def handle_config_update(config_json_string):
    """Handle config update command.

    Args:
        config_json_string: JSON string with config updates

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        config_updates = json.loads(config_json_string)
    except json.JSONDecodeError as e:
        print(f"{Fore.RED}[ERROR] Invalid JSON in --config argument: {e}{Style.RESET_ALL}")
        return 1

    if not isinstance(config_updates, dict):
        print(f"{Fore.RED}[ERROR] --config must be a JSON object (dictionary){Style.RESET_ALL}")
        return 1

    invalid_keys = [key for key in config_updates if key not in DEFAULT_CONFIG]
    if invalid_keys:
        print(f"{Fore.RED}[ERROR] Invalid configuration key(s): {', '.join(invalid_keys)}{Style.RESET_ALL}")
        print(f"\n{Fore.YELLOW}Valid keys in config.json:{Style.RESET_ALL}")
        for key in sorted(DEFAULT_CONFIG):
            print(f"  • {key}")
        return 1

    try:
        config_path = ConfigLoader.ensure_config_exists()
        with open(config_path, 'r') as f:
            current_config = json.load(f)
        current_config.update(config_updates)
        with open(config_path, 'w') as f:
            json.dump(current_config, f, indent=2)
    except (OSError, json.JSONDecodeError) as e:
        print(f"{Fore.RED}[ERROR] Failed to update configuration: {e}{Style.RESET_ALL}")
        return 1

    print(f"\n{Fore.GREEN}[SUCCESS] Configuration updated successfully{Style.RESET_ALL}")
    print(f"\n{Fore.CYAN}Updated values:{Style.RESET_ALL}")
    for key, value in config_updates.items():
        print(f"  {key}: {mask_value(key, value)}")

    print(f"\n{Fore.CYAN}Config file: {config_path}{Style.RESET_ALL}\n")
    return 0


def first_non_empty(*values: Optional[str]) -> str:
    """Return the first value that is not blank, stripped.

    Example:
        >>> first_non_empty("", "  ", " eu-west-1 ", "auto")
        'eu-west-1'
    """
    for value in values:
        trimmed = (value or "").strip()
        if trimmed:
            return trimmed
    return ""
