"""Configuration management for Relay CLI."""

from pathlib import Path
from typing import Literal

import typer
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Value shipped in sample env files; treated the same as no endpoint at all.
PLACEHOLDER_ENDPOINT = "YOUR_FALLBACK_WEBHOOK_URL"


def get_config_dir() -> Path:
    """Get the per-user configuration directory (created on first use)."""
    config_dir = Path(typer.get_app_dir("relay-cli"))
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_env_file_path() -> Path:
    """Get the path to the env file."""
    return get_config_dir() / ".env"


class Config(BaseSettings):
    """Relay CLI configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=str(get_env_file_path()),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Webhook
    chat_api: str | None = Field(default=None, description="Conversation webhook URL")
    timeout: float = Field(default=60.0, gt=0.0, description="HTTP timeout in seconds")

    # Diagnostics
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="WARNING")

    @property
    def is_configured(self) -> bool:
        """Check if a real webhook endpoint is configured."""
        endpoint = (self.chat_api or "").strip()
        return bool(endpoint) and endpoint != PLACEHOLDER_ENDPOINT


# Global config instance
_config: Config | None = None


def get_config(reload: bool = False) -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None or reload:
        _config = Config(_env_file=get_env_file_path())
    return _config


def reload_config() -> Config:
    """Reload configuration from disk."""
    return get_config(reload=True)


def env_var_name(field_name: str) -> str:
    """Environment variable that sets a ``Config`` field."""
    if field_name not in Config.model_fields:
        raise ValueError(f"Unknown setting: {field_name}")
    return f"{Config.model_config['env_prefix']}{field_name}".upper()


def update_config(**kwargs) -> Config:
    """Write the given settings to the env file and reload.

    ``None`` values are skipped; other lines of the file are kept in order.
    """
    updates = {
        env_var_name(key): str(value) for key, value in kwargs.items() if value is not None
    }

    env_file = get_env_file_path()
    lines = []
    if env_file.exists():
        lines = [line for line in env_file.read_text(encoding="utf-8").splitlines() if line]

    for i, line in enumerate(lines):
        name = line.split("=", 1)[0]
        if name in updates:
            lines[i] = f"{name}={updates.pop(name)}"
    lines.extend(f"{name}={value}" for name, value in updates.items())

    env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return reload_config()
