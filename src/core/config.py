"""Application configuration using pydantic-settings."""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.exceptions import ConfigurationException

CONFIG_DIR_NAME = "TracimPushNotification"
CONFIG_FILE_NAME = "config.json"

# Keys persisted in config.json; everything else comes from the environment.
FILE_KEYS = (
    "notification_config_folder",
    "socket_path",
    "master_socket_path",
    "gotify_url",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="tracim-push-bridge", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Rule sources
    notification_config_folder: Optional[str] = Field(
        default=None, alias="NOTIFICATION_CONFIG_FOLDER"
    )
    strict_templates: bool = Field(default=False, alias="STRICT_TEMPLATES")

    # Event channel
    socket_path: Optional[str] = Field(default=None, alias="SOCKET_PATH")
    master_socket_path: Optional[str] = Field(default=None, alias="MASTER_SOCKET_PATH")

    # Webhook
    gotify_url: Optional[str] = Field(default=None, alias="GOTIFY_URL")
    webhook_timeout: float = Field(default=10.0, alias="WEBHOOK_TIMEOUT")

    def require_runtime(self) -> None:
        """Check that every value needed to run the bridge is set.

        Raises:
            ConfigurationException: If any required value is missing
        """
        missing = [
            name
            for name in ("notification_config_folder", "socket_path", "gotify_url")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationException(
                f"Missing required configuration: {', '.join(missing)}",
                details={"missing": missing},
            )


def default_config_dir() -> Path:
    """Return the per-user configuration directory."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def ensure_default_config(config_dir: Optional[Path] = None) -> Path:
    """Create the config directory, config file and rules folder if absent.

    Args:
        config_dir: Base configuration directory (default: user config dir)

    Returns:
        Path to config.json
    """
    base = (config_dir or default_config_dir()) / CONFIG_DIR_NAME
    base.mkdir(parents=True, exist_ok=True)

    config_file = base / CONFIG_FILE_NAME
    if not config_file.exists():
        defaults = {
            "notification_config_folder": str(base / "notifications"),
            "socket_path": str(base / "tracim_push_notification.sock"),
            "master_socket_path": "",
            "gotify_url": "",
        }
        config_file.write_text(json.dumps(defaults, indent="\t"), encoding="utf-8")
        Path(defaults["notification_config_folder"]).mkdir(parents=True, exist_ok=True)

    return config_file


def read_config_file(config_file: Path) -> dict[str, Any]:
    """Read config.json values, dropping empty strings and unknown keys.

    Raises:
        ConfigurationException: If the file cannot be read or parsed
    """
    try:
        raw = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationException(
            f"Cannot read config file {config_file}: {e}",
            details={"path": str(config_file)},
        ) from e

    if not isinstance(raw, dict):
        raise ConfigurationException(
            f"Config file {config_file} must contain a JSON object",
            details={"path": str(config_file)},
        )

    return {key: raw[key] for key in FILE_KEYS if raw.get(key)}


def load_settings(config_dir: Optional[Path] = None) -> Settings:
    """Build settings from config.json, with environment variables taking precedence.

    Args:
        config_dir: Base configuration directory (default: user config dir)

    Returns:
        Settings instance
    """
    file_values = read_config_file(ensure_default_config(config_dir))
    env_settings = Settings()
    overrides = env_settings.model_dump(exclude_unset=True)
    return Settings.model_validate({**file_values, **overrides})


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
