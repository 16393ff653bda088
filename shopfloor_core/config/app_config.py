# =============================================================================
# shopfloor_core/config/app_config.py
# Application configuration: .env, secrets.toml and persisted remote config
# =============================================================================
"""
Configuration loading.

Remote (Supabase) credentials are resolved in this order:

1. credentials saved from the settings screen (local store key
   ``remote_config``)
2. ``.streamlit/secrets.toml``::

       [supabase]
       url = "https://your-project.supabase.co"
       key = "your-anon-key"

3. ``SUPABASE_URL`` / ``SUPABASE_KEY`` environment variables (``.env`` is
   loaded first).
"""

from __future__ import annotations
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from shopfloor_core.logging import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_DB_PATH = PROJECT_ROOT / "local_data" / "shopfloor.db"
DEFAULT_SECRETS_PATH = PROJECT_ROOT / ".streamlit" / "secrets.toml"

# Placeholder values shipped in templates count as "not configured"
_PLACEHOLDER_KEYS = {"", "your-anon-key", "PASTE_YOUR_API_KEY_HERE"}


@dataclass(frozen=True)
class RemoteConfig:
    """Credentials for the remote document store."""
    url: str = ""
    key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.url) and self.key not in _PLACEHOLDER_KEYS

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "key": self.key}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> RemoteConfig:
        if not data:
            return cls()
        return cls(url=str(data.get("url") or ""), key=str(data.get("key") or ""))


@dataclass
class AppConfig:
    """Runtime settings for the persistence core."""
    db_path: Path = DEFAULT_DB_PATH
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    login_timeout: float = 1.0
    remote_poll_interval: float = 2.0
    pin_rounds: int = 12
    log_level: str = "INFO"


def load_secrets_toml(secrets_path: Path = DEFAULT_SECRETS_PATH) -> RemoteConfig:
    """Read the ``[supabase]`` table from a secrets.toml file."""
    if not secrets_path.exists():
        return RemoteConfig()

    try:
        with open(secrets_path, "rb") as f:
            secrets = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Could not read {secrets_path}: {e}")
        return RemoteConfig()

    return RemoteConfig.from_dict(secrets.get("supabase", {}))


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={os.getenv(name)!r}")
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={os.getenv(name)!r}")
        return default


def load_config(
    env_file: Optional[Path] = None,
    secrets_path: Path = DEFAULT_SECRETS_PATH,
    stored_remote: Optional[Dict[str, Any]] = None,
) -> AppConfig:
    """
    Build the application configuration.

    Args:
        env_file: .env file to load (default: project root .env)
        secrets_path: secrets.toml with a [supabase] table
        stored_remote: credentials previously saved to the local store

    Returns:
        AppConfig
    """
    load_dotenv(env_file or PROJECT_ROOT / ".env")

    remote = RemoteConfig.from_dict(stored_remote)
    if not remote.is_configured:
        remote = load_secrets_toml(secrets_path)
    if not remote.is_configured:
        remote = RemoteConfig(
            url=os.getenv("SUPABASE_URL", ""),
            key=os.getenv("SUPABASE_KEY", ""),
        )

    return AppConfig(
        db_path=Path(os.getenv("SHOPFLOOR_DB_PATH", str(DEFAULT_DB_PATH))),
        remote=remote,
        login_timeout=_env_float("SHOPFLOOR_LOGIN_TIMEOUT", 1.0),
        remote_poll_interval=_env_float("SHOPFLOOR_REMOTE_POLL_INTERVAL", 2.0),
        pin_rounds=_env_int("SHOPFLOOR_PIN_ROUNDS", 12),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
