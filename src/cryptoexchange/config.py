import os
import sys
import tomllib
from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
from typing import Any, ClassVar, TypeVar

import keyring
from keyring.errors import KeyringError
from loguru import logger

from cryptoexchange.models import Credentials

# --- Constants ---
APP_NAME = "cryptoexchange"
# Use a platform-agnostic user config directory
if sys.platform == "win32":
    CONFIG_DIR = Path.home() / "AppData" / "Roaming" / APP_NAME
else:
    CONFIG_DIR = Path.home() / ".config" / APP_NAME

CONFIG_FILE = CONFIG_DIR / "config.toml"

# --- Keyring Service Name ---
KEYRING_SERVICE_NAME = f"{APP_NAME.lower()}-api-keys"

# Environment variables follow CRYPTO_<EXCHANGE>_KEY / CRYPTO_<EXCHANGE>_SECRET.
ENV_PREFIX = "CRYPTO"

# --- Dataclass Models for Settings ---
T = TypeVar("T")


@dataclass
class GeneralSettings:
    """Logging defaults used by `setup_logging`."""

    log_level_console: str = "INFO"
    log_level_file: str = "DEBUG"
    # Empty disables the file sink.
    log_directory: str = ""


@dataclass
class HTTPSettings:
    """Settings for the HTTP transport."""

    # Seconds before a request fails with TransportError.
    timeout_sec: float = 30.0


@dataclass
class CredentialSettings:
    """Where to look for API credentials besides constructor arguments."""

    # Note: Keys are never stored in the config file itself.
    use_keyring: bool = False


@dataclass
class ExchangeSettings:
    """Per-exchange rate limits and number formatting."""

    public_rate: float = 6
    trading_rate: float = 6
    precision: int = 8


@dataclass
class Settings:
    """Root container for all library settings."""

    general: GeneralSettings = field(default_factory=GeneralSettings)
    http: HTTPSettings = field(default_factory=HTTPSettings)
    credentials: CredentialSettings = field(default_factory=CredentialSettings)
    poloniex: ExchangeSettings = field(default_factory=ExchangeSettings)
    bitfinex: ExchangeSettings = field(
        default_factory=lambda: ExchangeSettings(trading_rate=90 / 60)
    )
    bitfinex_v2: ExchangeSettings = field(default_factory=ExchangeSettings)
    bittrex: ExchangeSettings = field(default_factory=ExchangeSettings)

    _instance: ClassVar["Settings | None"] = None

    @classmethod
    def get_instance(cls) -> "Settings":
        """Returns the singleton instance of the Settings object."""
        if cls._instance is None:
            cls._instance = load_config()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forgets the singleton so the next access reloads the config file."""
        cls._instance = None

    def exchange(self, venue: str) -> ExchangeSettings:
        """Returns the settings section for an exchange, or defaults if unknown."""
        section = getattr(self, venue, None)
        if isinstance(section, ExchangeSettings):
            return section
        return ExchangeSettings()


def _update_dataclass(dc_instance: T, data: dict[str, Any]) -> T:
    """Recursively updates a dataclass instance from a dictionary."""
    for f in field_names(dc_instance):
        if f in data:
            field_value = getattr(dc_instance, f)
            if is_dataclass(field_value):
                if isinstance(data[f], dict):
                    _update_dataclass(field_value, data[f])
                else:
                    logger.warning(f"Ignoring non-table value for config section '{f}'.")
            else:
                setattr(dc_instance, f, data[f])
    return dc_instance


def field_names(dc_instance: Any) -> list[str]:
    """Helper to get field names from a dataclass instance."""
    return [f.name for f in dc_instance.__dataclass_fields__.values()]


def load_config(path: Path = CONFIG_FILE) -> Settings:
    """Loads settings from a TOML file, merging them with defaults.

    A missing file is not an error: the library works with defaults alone.

    Args:
        path: The path to the configuration file.

    Returns:
        A populated Settings object.
    """
    settings_obj = Settings()

    if not path.exists():
        logger.debug(f"No configuration file at '{path}', using defaults.")
        return settings_obj

    logger.info(f"Loading configuration from '{path}'...")
    try:
        with path.open("rb") as f:
            user_config = tomllib.load(f)
        _update_dataclass(settings_obj, user_config)
        logger.success("Successfully loaded user configuration.")
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Error decoding TOML from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()
    except OSError as e:
        logger.error(f"Could not read configuration file '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()

    return settings_obj


# --- Credential Sources ---


def get_env_credentials(exchange_name: str) -> tuple[str | None, str | None]:
    """Reads CRYPTO_<EXCHANGE>_KEY and CRYPTO_<EXCHANGE>_SECRET from the environment."""
    prefix = f"{ENV_PREFIX}_{exchange_name.upper()}"
    return os.environ.get(f"{prefix}_KEY"), os.environ.get(f"{prefix}_SECRET")


def get_api_credentials(exchange_name: str) -> tuple[str | None, str | None]:
    """Retrieves API key and secret for a given exchange from the system keyring.

    Args:
        exchange_name: The lower-case name of the exchange (e.g., 'poloniex').

    Returns:
        A tuple containing (api_key, api_secret). Returns (None, None) if not found.
    """
    exchange_name = exchange_name.lower()
    try:
        api_key = keyring.get_password(KEYRING_SERVICE_NAME, f"{exchange_name}_key")
        api_secret = keyring.get_password(
            KEYRING_SERVICE_NAME, f"{exchange_name}_secret"
        )
        if api_key or api_secret:
            logger.debug(f"Retrieved credentials for '{exchange_name}' from keyring.")
        return api_key, api_secret
    except KeyringError as e:
        logger.error(f"Could not retrieve credentials from keyring: {e}")
        return None, None


def set_api_credentials(exchange_name: str, api_key: str, api_secret: str) -> None:
    """Stores API key and secret for an exchange in the system keyring.

    Args:
        exchange_name: The lower-case name of the exchange.
        api_key: The API key to store.
        api_secret: The API secret to store.

    Raises:
        KeyringError: If the keyring backend refuses the write.
    """
    exchange_name = exchange_name.lower()
    keyring.set_password(KEYRING_SERVICE_NAME, f"{exchange_name}_key", api_key)
    keyring.set_password(KEYRING_SERVICE_NAME, f"{exchange_name}_secret", api_secret)
    logger.info(f"Successfully stored credentials for '{exchange_name}' in keyring.")


def resolve_credentials(
    exchange_name: str,
    key: str | None = None,
    secret: str | None = None,
    use_keyring: bool = False,
) -> Credentials | None:
    """Picks the credentials a client will use for its whole lifetime.

    Explicit arguments win, then the environment, then (if enabled) the
    keyring. Each of key and secret falls back independently.

    Returns:
        The resolved Credentials, or None if either half is missing.
    """
    env_key, env_secret = get_env_credentials(exchange_name)
    key = key or env_key
    secret = secret or env_secret

    if use_keyring and not (key and secret):
        ring_key, ring_secret = get_api_credentials(exchange_name)
        key = key or ring_key
        secret = secret or ring_secret

    if key and secret:
        return Credentials(key=key, secret=secret)
    if key or secret:
        logger.warning(
            f"[{exchange_name}] Only one of key/secret is configured; "
            "private endpoints will be unavailable."
        )
    return None
