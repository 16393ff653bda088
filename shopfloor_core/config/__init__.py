# =============================================================================
# shopfloor_core/config/__init__.py
# =============================================================================

from .app_config import (
    AppConfig,
    RemoteConfig,
    load_config,
    load_secrets_toml,
    DEFAULT_DB_PATH,
)

__all__ = [
    "AppConfig",
    "RemoteConfig",
    "load_config",
    "load_secrets_toml",
    "DEFAULT_DB_PATH",
]
