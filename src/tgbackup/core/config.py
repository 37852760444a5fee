"""Configuration management for tgbackup (YAML-based)."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, field_validator

from .exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path("tgbackup.yaml")
DEFAULT_STATE_DIR = Path("~/.tgbackup")

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


class Settings(BaseModel):
    """Application settings loaded from a YAML file."""

    # Telegram credentials
    bot_token: str
    channel_id: str
    api_base_url: str = "https://api.telegram.org"

    # Local state
    state_dir: Path = DEFAULT_STATE_DIR
    log_dir: Optional[Path] = None

    # Upload pacing
    upload_delay_seconds: float = 3.0
    retry_attempts: int = 3
    retry_delay_seconds: float = 5.0
    request_timeout_seconds: float = 120.0

    # Logging
    log_level: str = "WARNING"

    @field_validator("state_dir", "log_dir", mode="before")
    @classmethod
    def _coerce_path(cls, v):
        if v is None:
            return v
        return Path(v).expanduser() if not isinstance(v, Path) else v.expanduser()

    @field_validator("channel_id", mode="before")
    @classmethod
    def _coerce_channel(cls, v):
        # YAML reads "-100123" as an int
        return str(v).strip() if v is not None else v

    @field_validator("retry_attempts")
    @classmethod
    def _check_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    def model_post_init(self, __context) -> None:
        """Validate configuration after loading."""
        if not self.bot_token.strip():
            raise ValueError("bot_token must not be empty")
        if not self.channel_id:
            raise ValueError("channel_id must not be empty")
        if self.log_dir is None:
            self.log_dir = self.state_dir / "logs"

    @property
    def sessions_dir(self) -> Path:
        return self.state_dir / "sessions"


def _interpolate_env_vars(text: str) -> str:
    """Replace ${VAR} patterns with environment variable values and expand ~."""
    expanded = os.path.expanduser(text)

    def replace_var(match):
        return os.environ.get(match.group(1), match.group(0))  # Keep original if not found

    return _ENV_VAR_RE.sub(replace_var, expanded)


def _interpolate_config(value: Any) -> Any:
    """Recursively interpolate environment variables in a config mapping."""
    if isinstance(value, dict):
        return {k: _interpolate_config(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_config(v) for v in value]
    if isinstance(value, str):
        return _interpolate_env_vars(value)
    return value


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load Settings from a YAML file, falling back to BOT_TOKEN / CHANNEL_ID env vars.

    A missing file is accepted when both environment variables are set.
    """
    p = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
    data: Dict[str, Any] = {}
    if p.exists():
        try:
            with open(p, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read config from {p}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {p}")
        # Allow top-level 'telegram' key or flat structure
        if isinstance(data.get("telegram"), dict):
            data = data["telegram"]
        data = _interpolate_config(data)

    if not data.get("bot_token") and os.environ.get("BOT_TOKEN"):
        data["bot_token"] = os.environ["BOT_TOKEN"]
    if not data.get("channel_id") and os.environ.get("CHANNEL_ID"):
        data["channel_id"] = os.environ["CHANNEL_ID"]

    if not data.get("bot_token"):
        raise ConfigurationError(f"bot_token is missing (set it in {p} or export BOT_TOKEN)")
    if not data.get("channel_id"):
        raise ConfigurationError(f"channel_id is missing (set it in {p} or export CHANNEL_ID)")

    try:
        return Settings(**data)
    except Exception as e:
        raise ConfigurationError(f"Invalid configuration in {p}: {e}") from e
