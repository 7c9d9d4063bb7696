"""Odoo connection configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import urlsplit

from .env import env_float, env_int, optional_env_var
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_ENV_PREFIX = "ODOO"
ODOO_TIMEOUT_SECONDS = 30.0
ODOO_CONNECT_RETRIES = 2
ODOO_CALLS_PER_SECOND = 10


class AuthMode(StrEnum):
    PASSWORD = "password"
    OAUTH_CLIENT_CREDENTIALS = "oauth_client_credentials"


def default_odoo_resilience(base_url: str | None = None) -> ResilienceConfig:
    """HTTP behaviour for Odoo, tunable through ``ERPBRIDGE_HTTP_*`` variables.

    A rate limit of 0 disables client-side throttling.
    """

    calls_per_second = env_int("ERPBRIDGE_HTTP_RATE_LIMIT", ODOO_CALLS_PER_SECOND)
    return ResilienceConfig(
        name="odoo",
        base_url=base_url,
        timeout_seconds=env_float("ERPBRIDGE_HTTP_TIMEOUT", ODOO_TIMEOUT_SECONDS),
        retry=RetryPolicy(total=env_int("ERPBRIDGE_HTTP_RETRIES", ODOO_CONNECT_RETRIES)),
        ratelimit=RateLimit(max_calls=calls_per_second) if calls_per_second else None,
        user_agent=f"erpbridge/{_package_version()}",
    )


def _package_version() -> str:
    # late import: the package root imports nothing from config
    from erpbridge import __version__  # noqa: PLC0415

    return __version__


@dataclass(frozen=True, slots=True)
class ErpConfig:
    """Connection settings for one remote ERP database."""

    base_url: str
    database: str
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    resilience: ResilienceConfig | None = None

    def __post_init__(self) -> None:
        parts = urlsplit(self.base_url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ConfigurationError(f"Invalid ERP base URL: {self.base_url!r}")
        if not self.database.strip():
            raise ConfigurationError("ERP database name must not be blank")
        if self.resilience is None:
            object.__setattr__(
                self, "resilience", default_odoo_resilience(self.base_url.rstrip("/"))
            )

    @property
    def auth_mode(self) -> AuthMode | None:
        if self.client_id and self.client_secret:
            return AuthMode.OAUTH_CLIENT_CREDENTIALS
        if self.username and self.password:
            return AuthMode.PASSWORD
        return None


@runtime_checkable
class ErpConfigProvider(Protocol):
    """Resolves the ERP configuration that belongs to a tenant."""

    def __call__(self, tenant_id: str) -> ErpConfig: ...


@dataclass(frozen=True, slots=True)
class StaticErpConfigProvider:
    configs: Mapping[str, ErpConfig]
    default: ErpConfig | None = None

    def __call__(self, tenant_id: str) -> ErpConfig:
        config = self.configs.get(tenant_id, self.default)
        if config is None:
            raise MissingConfigurationError(f"No ERP configuration for tenant {tenant_id!r}")
        return config


@dataclass(frozen=True, slots=True)
class EnvironmentErpConfigProvider:
    """Reads ``<PREFIX>_<TENANT>_<KEY>`` variables, falling back to ``<PREFIX>_<KEY>``."""

    prefix: str = DEFAULT_ENV_PREFIX

    def __call__(self, tenant_id: str) -> ErpConfig:
        base_url = self._lookup(tenant_id, "BASE_URL")
        database = self._lookup(tenant_id, "DB")
        missing = [
            name
            for name, value in (("BASE_URL", base_url), ("DB", database))
            if value is None
        ]
        if base_url is None or database is None:
            names = ", ".join(f"{self.prefix}_{name}" for name in missing)
            raise MissingConfigurationError(
                f"Missing configuration for tenant {tenant_id!r}: {names}"
            )
        return ErpConfig(
            base_url=base_url,
            database=database,
            username=self._lookup(tenant_id, "USERNAME"),
            password=self._lookup(tenant_id, "PASSWORD"),
            client_id=self._lookup(tenant_id, "CLIENT_ID"),
            client_secret=self._lookup(tenant_id, "CLIENT_SECRET"),
        )

    def _lookup(self, tenant_id: str, key: str) -> str | None:
        tenant_key = _env_token(tenant_id)
        if tenant_key:
            scoped = optional_env_var(f"{self.prefix}_{tenant_key}_{key}")
            if scoped is not None:
                return scoped
        return optional_env_var(f"{self.prefix}_{key}")


def _env_token(value: str) -> str:
    return "".join(char if char.isalnum() else "_" for char in value.strip()).upper()


def get_erp_config_provider() -> ErpConfigProvider:
    return EnvironmentErpConfigProvider()
