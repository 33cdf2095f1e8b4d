"""Exceptions for Vouch."""

from __future__ import annotations

__all__ = [
    "ConfigFileError",
    "ConfigurationError",
    "DefaultsError",
    "ListenAddressUnavailableError",
    "SecretGenerationError",
    "VouchError",
]


class VouchError(Exception):
    """Base class for all fatal startup errors."""


class ConfigurationError(VouchError):
    """The configuration is invalid.

    The message names the offending key but never includes secret values.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"configuration error: {message}")


class DefaultsError(ConfigurationError):
    """The packaged default configuration could not be read or parsed."""


class ConfigFileError(ConfigurationError):
    """The override configuration file could not be read or parsed."""


class SecretGenerationError(VouchError):
    """No cryptographically secure random data was available."""


class ListenAddressUnavailableError(VouchError):
    """The configured listen address is already in use."""

    def __init__(self, address: str, product: str) -> None:
        msg = f"{address} is not available (is {product} already running?)"
        super().__init__(msg)
        self.address = address
