"""Configuration loading and validation."""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "flickr-sync.conf.json"

API_KEY_URL = "https://www.flickr.com/services/apps/create/noncommercial/"

# Environment variables that override credentials from the config file
ENV_OVERRIDES = {
    "api_key": "FLICKR_API_KEY",
    "api_secret": "FLICKR_API_SECRET",
    "oauth_token": "FLICKR_OAUTH_TOKEN",
    "oauth_token_secret": "FLICKR_OAUTH_TOKEN_SECRET",
}


class ConfigurationError(Exception):
    """Raised when the configuration is missing, malformed or unusable."""

    pass


def normalize_extension(extension: str) -> str:
    """Lower-case an extension and make sure it starts with a dot."""
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return extension


@dataclass(frozen=True)
class Config:
    """Sync settings, read-only once loaded."""

    api_key: str = ""
    api_secret: str = ""
    oauth_token: str = ""
    oauth_token_secret: str = ""
    photo_library_path: str = ""
    skip_dirs: frozenset[str] = frozenset({"@eaDir"})
    extensions: frozenset[str] = frozenset({".png", ".jpg", ".jpeg"})
    delete_dupes: bool = False
    log_level: str = "INFO"
    log_output: str | None = None
    upload_attempts: int = 5
    upload_interval: float = 30
    retrieve_attempts: int = 5
    retrieve_interval: float = 5

    def __post_init__(self) -> None:
        """Check value types, normalize collections and check numeric settings."""
        for name in (
            "api_key",
            "api_secret",
            "oauth_token",
            "oauth_token_secret",
            "photo_library_path",
            "log_level",
        ):
            if not isinstance(getattr(self, name), str):
                raise ConfigurationError(f"{name} must be a string")
        if self.log_output is not None and not isinstance(self.log_output, str):
            raise ConfigurationError("log_output must be a string")

        for name in ("skip_dirs", "extensions"):
            value = getattr(self, name)
            if not isinstance(value, (list, tuple, set, frozenset)) or not all(
                isinstance(item, str) for item in value
            ):
                raise ConfigurationError(f"{name} must be a list of strings")

        if not isinstance(self.delete_dupes, bool):
            raise ConfigurationError("delete_dupes must be true or false")

        for name in ("upload_attempts", "retrieve_attempts"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be a whole number")
            if value < 0:
                raise ConfigurationError(f"{name} cannot be negative")

        for name in ("upload_interval", "retrieve_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number")
            if value < 0:
                raise ConfigurationError(f"{name} cannot be negative")

        object.__setattr__(self, "skip_dirs", frozenset(self.skip_dirs))
        object.__setattr__(
            self,
            "extensions",
            frozenset(normalize_extension(e) for e in self.extensions if e.strip()),
        )

    @property
    def library_path(self) -> Path:
        """Get the photo library root as a Path."""
        return Path(self.photo_library_path).expanduser()

    @property
    def has_oauth_token(self) -> bool:
        return bool(self.oauth_token and self.oauth_token_secret)

    def validate(self, require_token: bool = True, require_library: bool = True) -> None:
        """Check that the settings are complete enough to run.

        Args:
            require_token: Require the OAuth access token pair
            require_library: Require an existing, readable photo library path

        Raises:
            ConfigurationError: If a required setting is missing or unusable
        """
        if not self.api_key or not self.api_secret:
            raise ConfigurationError(
                "api_key and api_secret are required. "
                f"Visit {API_KEY_URL} to apply for a non-commercial key."
            )

        if require_token and not self.has_oauth_token:
            raise ConfigurationError(
                "oauth_token and oauth_token_secret are required. "
                "Run 'flickr-sync authorize' to generate them."
            )

        if require_library:
            if not self.photo_library_path:
                raise ConfigurationError("photo_library_path is required")
            path = self.library_path
            if not path.exists():
                raise ConfigurationError(f"Path does not exist: {path}")
            if not path.is_dir() or not os.access(path, os.R_OK | os.X_OK):
                raise ConfigurationError(f"Cannot access path: {path}")


def load_config(path: Path) -> Config:
    """Load configuration from a JSON file.

    Keys missing from the file keep their defaults. Credentials can be
    overridden through FLICKR_* environment variables.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Loaded configuration (not yet validated)

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration in {path} must be a JSON object")

    known = {f.name for f in fields(Config)}
    unknown = sorted(set(raw) - known)
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

    values = {key: value for key, value in raw.items() if key in known}
    # An empty list falls back to the default rather than matching nothing
    for key in ("skip_dirs", "extensions"):
        if key in values and not values[key]:
            del values[key]

    for key, env_name in ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[key] = env_value

    try:
        config = Config(**values)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    logger.debug(f"Loaded configuration from {path}")
    return config


def save_oauth_token(path: Path, token: str, token_secret: str) -> None:
    """Store an access token pair in a JSON configuration file.

    Only the two token keys are rewritten; other settings, including ones
    supplied through the environment, are left as they are on disk.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8")) if path.exists() else {}
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    raw["oauth_token"] = token
    raw["oauth_token_secret"] = token_secret
    path.write_text(json.dumps(raw, indent=2) + "\n", encoding="utf-8")
    logger.info(f"OAuth token written to {path}")
