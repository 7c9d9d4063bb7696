from __future__ import annotations

import pytest

from erpbridge.config import (
    AuthMode,
    ConfigurationError,
    EnvironmentErpConfigProvider,
    ErpConfig,
    MissingConfigurationError,
    StaticErpConfigProvider,
    SyncConfig,
    default_odoo_resilience,
    env_int,
    get_sync_config,
    optional_env_var,
)

_ODOO_KEYS = ("BASE_URL", "DB", "USERNAME", "PASSWORD", "CLIENT_ID", "CLIENT_SECRET")


@pytest.fixture(autouse=True)
def clean_odoo_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ODOO_KEYS:
        monkeypatch.delenv(f"ODOO_{key}", raising=False)
        monkeypatch.delenv(f"ODOO_ACADEMY_1_{key}", raising=False)


def test_optional_env_var_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")
    assert optional_env_var("EXAMPLE_VAR") is None

    monkeypatch.setenv("EXAMPLE_VAR", "  value ")
    assert optional_env_var("EXAMPLE_VAR") == "value"


def test_env_int_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_INT", "many")

    with pytest.raises(ConfigurationError, match="EXAMPLE_INT"):
        env_int("EXAMPLE_INT", 3)


def test_tenant_scoped_values_win_over_shared_ones(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ODOO_BASE_URL", "https://shared.example.com")
    monkeypatch.setenv("ODOO_DB", "shared")
    monkeypatch.setenv("ODOO_ACADEMY_1_DB", "academy")
    monkeypatch.setenv("ODOO_USERNAME", "admin")
    monkeypatch.setenv("ODOO_PASSWORD", "secret")

    config = EnvironmentErpConfigProvider()("academy-1")

    assert config.base_url == "https://shared.example.com"
    assert config.database == "academy"
    assert config.auth_mode is AuthMode.PASSWORD


def test_missing_connection_values_are_named(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ODOO_BASE_URL", "https://erp.example.com")

    with pytest.raises(MissingConfigurationError) as exc:
        EnvironmentErpConfigProvider()("academy-1")

    assert "ODOO_DB" in str(exc.value)
    assert "ODOO_BASE_URL" not in str(exc.value)


def test_invalid_base_url_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Invalid ERP base URL"):
        ErpConfig(base_url="erp.example.com", database="academy")


def test_oauth_credentials_take_precedence() -> None:
    config = ErpConfig(
        base_url="https://erp.example.com",
        database="academy",
        username="admin",
        password="secret",
        client_id="client",
        client_secret="shh",
    )

    assert config.auth_mode is AuthMode.OAUTH_CLIENT_CREDENTIALS


def test_no_credentials_means_no_auth_mode() -> None:
    config = ErpConfig(base_url="https://erp.example.com", database="academy", username="admin")

    assert config.auth_mode is None


def test_secrets_stay_out_of_repr() -> None:
    config = ErpConfig(
        base_url="https://erp.example.com",
        database="academy",
        username="admin",
        password="hunter2",
    )

    assert "hunter2" not in repr(config)


def test_default_resilience_is_applied() -> None:
    config = ErpConfig(base_url="https://erp.example.com/", database="academy")

    assert config.resilience is not None
    assert config.resilience.name == "odoo"
    assert 500 not in config.resilience.retry.status_forcelist
    assert config.resilience.ratelimit is not None
    assert config.resilience.user_agent is not None
    assert config.resilience.user_agent.startswith("erpbridge/")


def test_http_settings_can_be_tuned_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ERPBRIDGE_HTTP_TIMEOUT", "5")
    monkeypatch.setenv("ERPBRIDGE_HTTP_RETRIES", "0")
    monkeypatch.setenv("ERPBRIDGE_HTTP_RATE_LIMIT", "0")

    resilience = default_odoo_resilience("https://erp.example.com")

    assert resilience.timeout_seconds == 5.0
    assert not resilience.retry.enabled
    assert resilience.ratelimit is None


def test_static_provider_falls_back_to_default() -> None:
    default = ErpConfig(base_url="https://erp.example.com", database="shared")
    special = ErpConfig(base_url="https://other.example.com", database="special")
    provider = StaticErpConfigProvider({"academy-2": special}, default=default)

    assert provider("academy-2") is special
    assert provider("academy-1") is default


def test_static_provider_without_default_raises() -> None:
    provider = StaticErpConfigProvider({})

    with pytest.raises(MissingConfigurationError, match="academy-1"):
        provider("academy-1")


def test_sync_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ERPBRIDGE_SYNC_CONCURRENCY", "4")
    monkeypatch.setenv("ERPBRIDGE_SYNC_RETRY_ATTEMPTS", "2")
    monkeypatch.setenv("ERPBRIDGE_SYNC_RETRY_BACKOFF", "0.25")

    config = get_sync_config()

    assert config == SyncConfig(
        batch_concurrency=4,
        batch_retry_attempts=2,
        batch_retry_backoff_seconds=0.25,
    )
    assert config.retry_delay(2) == 1.0


def test_sync_config_rejects_zero_concurrency() -> None:
    with pytest.raises(ConfigurationError):
        SyncConfig(batch_concurrency=0)
