"""Synchronization defaults for batch reconciliation."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_BATCH_CONCURRENCY = 1
DEFAULT_BATCH_RETRY_ATTEMPTS = 0
DEFAULT_BATCH_RETRY_BACKOFF_SECONDS = 1.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    batch_concurrency: int = DEFAULT_BATCH_CONCURRENCY
    # extra passes over failed items; 0 leaves them for manual re-invocation
    batch_retry_attempts: int = DEFAULT_BATCH_RETRY_ATTEMPTS
    batch_retry_backoff_seconds: float = DEFAULT_BATCH_RETRY_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        if self.batch_concurrency < 1:
            raise ConfigurationError("batch_concurrency must be at least 1")
        if self.batch_retry_attempts < 0:
            raise ConfigurationError("batch_retry_attempts must be non-negative")
        if self.batch_retry_backoff_seconds < 0:
            raise ConfigurationError("batch_retry_backoff_seconds must be non-negative")

    def retry_delay(self, attempt: int) -> float:
        return self.batch_retry_backoff_seconds * (2**attempt)


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        batch_concurrency=env_int("ERPBRIDGE_SYNC_CONCURRENCY", DEFAULT_BATCH_CONCURRENCY),
        batch_retry_attempts=env_int(
            "ERPBRIDGE_SYNC_RETRY_ATTEMPTS", DEFAULT_BATCH_RETRY_ATTEMPTS
        ),
        batch_retry_backoff_seconds=env_float(
            "ERPBRIDGE_SYNC_RETRY_BACKOFF", DEFAULT_BATCH_RETRY_BACKOFF_SECONDS
        ),
    )
