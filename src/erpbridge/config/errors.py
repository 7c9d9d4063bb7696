"""Errors raised while reading or validating settings."""

from __future__ import annotations

from erpbridge.domain.errors import ErpBridgeError


class ConfigurationError(ErpBridgeError):
    pass


class MissingConfigurationError(ConfigurationError):
    """A required setting is absent, or set to a blank value."""
