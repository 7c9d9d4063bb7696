"""Timeout, retry and rate-limit settings for the ERP HTTP client."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from .errors import ConfigurationError


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Retries applied underneath the JSON-RPC layer.

    Every JSON-RPC request is a POST and a replayed ``create`` duplicates the
    record, so the defaults only retry failures where the request never reached
    Odoo: refused connections and 503 from an unavailable upstream. A 502 may
    arrive after Odoo committed the write and is left to the caller, whose
    lookup-first ensure is safe to repeat.
    """

    total: int = 2
    backoff_factor: float = 0.5
    max_backoff_wait: float = 10.0
    respect_retry_after_header: bool = True
    status_forcelist: frozenset[int] = frozenset({503})
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.ConnectError,
        httpx.ConnectTimeout,
    )
    backoff_jitter: float = 1.0

    def __post_init__(self) -> None:
        if self.total < 0:
            raise ConfigurationError("retry total must be non-negative")

    @property
    def enabled(self) -> bool:
        return self.total > 0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_calls < 1 or self.per_seconds <= 0:
            raise ConfigurationError(
                f"Invalid rate limit: {self.max_calls} call(s) per {self.per_seconds}s"
            )


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    user_agent: str | None = None
