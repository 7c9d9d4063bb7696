"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float, env_int, optional_env_var
from .erp import (
    AuthMode,
    EnvironmentErpConfigProvider,
    ErpConfig,
    ErpConfigProvider,
    StaticErpConfigProvider,
    default_odoo_resilience,
    get_erp_config_provider,
)
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "AuthMode",
    "ConfigurationError",
    "DatabaseConfig",
    "EnvironmentErpConfigProvider",
    "ErpConfig",
    "ErpConfigProvider",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StaticErpConfigProvider",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "default_odoo_resilience",
    "env_bool",
    "env_float",
    "env_int",
    "get_database_config",
    "get_erp_config_provider",
    "get_storage_config",
    "get_sync_config",
    "optional_env_var",
]
