"""
Auth0 tenant configuration.

Sources, lowest precedence first:
- AUTH0_* environment variables (and the backend .env file)
- optional YAML file with an `auth0:` mapping, supporting ${VAR} and ${VAR:-default} expansion

The configuration is read again on every flow step and never cached, so edits
to the environment or the YAML file apply to the next request.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict

from auth0_bridge.core.settings import ENV_FILE, settings

LOG_PREFIX = "[Auth0Config]"

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "config" / "auth0.yaml"

_ENV_PATTERN = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


class Auth0EnvSettings(BaseSettings):
    """AUTH0_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="AUTH0_",
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    domain: str = ""
    client_id: str = ""
    client_secret: str = ""
    callback_url: str = ""
    logout_url: str = ""
    auto_create_users: bool = True
    sync_user_data: bool = True
    default_user_group_id: Optional[int] = None
    stateless_mode: bool = False


@dataclass(frozen=True)
class Auth0Config:
    """Snapshot of the tenant configuration for one flow step."""

    domain: str = ""
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    callback_url: str = ""
    logout_url: str = ""
    auto_create_users: bool = True
    sync_user_data: bool = True
    default_user_group_id: Optional[int] = None
    # Skips the session-bound state comparison; CSRF protection then rests on
    # the single-use authorization code alone.
    stateless_mode: bool = False

    def is_configured(self) -> bool:
        return bool(self.domain.strip() and self.client_id.strip() and self.client_secret.strip())


class Auth0ConfigLoader:
    """Builds an Auth0Config from the environment and the optional YAML overlay."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    def load(self) -> Auth0Config:
        overlay = self._read_overlay()
        env_settings = Auth0EnvSettings(**overlay)
        return Auth0Config(
            domain=env_settings.domain.strip(),
            client_id=env_settings.client_id.strip(),
            client_secret=env_settings.client_secret.strip(),
            callback_url=env_settings.callback_url.strip(),
            logout_url=env_settings.logout_url.strip(),
            auto_create_users=env_settings.auto_create_users,
            sync_user_data=env_settings.sync_user_data,
            default_user_group_id=env_settings.default_user_group_id,
            stateless_mode=env_settings.stateless_mode,
        )

    def _read_overlay(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {}

        with open(self.config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        section = raw.get("auth0") or {}
        if not isinstance(section, dict):
            logger.warning(f"{LOG_PREFIX} Ignoring malformed 'auth0' section in {self.config_path}")
            return {}

        overlay: Dict[str, Any] = {}
        for key, value in self._expand_env_vars(section).items():
            # Empty values leave the environment setting in place
            if value is None or value == "":
                continue
            overlay[key] = value
        return overlay

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively replace ${VAR} / ${VAR:-default} with env var values."""
        if isinstance(obj, str):
            return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1)) or (m.group(2) or ""), obj)
        elif isinstance(obj, dict):
            return {k: self._expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(i) for i in obj]
        return obj


def get_auth0_config() -> Auth0Config:
    """FastAPI dependency: a fresh configuration snapshot per request."""
    return Auth0ConfigLoader(settings.auth0_config_path).load()
