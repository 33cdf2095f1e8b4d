"""Validation of the resolved configuration.

The checks run in a fixed order and stop at the first failure, so the error
reported is always the first problem in that order. Short secrets are only
warned about.
"""

from __future__ import annotations

import structlog
from pydantic import SecretStr
from structlog.stdlib import BoundLogger

from .config import Config, OAuthConfig
from .constants import (
    BRANDING,
    CALLBACK_PATH_MARKER,
    MIN_SECRET_LENGTH,
    REQUIRED_OPTIONS,
    ProviderType,
)
from .exceptions import ConfigurationError
from .sources import LayeredConfig

__all__ = [
    "check_callback_url",
    "validate_config",
]

_NO_CLIENT_SECRET = frozenset(
    {
        ProviderType.indieauth,
        ProviderType.homeassistant,
        ProviderType.adfs,
        ProviderType.oidc,
    }
)
"""Providers that may run without a client secret."""

_NO_AUTH_URL = frozenset({ProviderType.google})
"""Providers with a fixed authorization endpoint."""

_NO_USER_INFO_URL = frozenset(
    {
        ProviderType.google,
        ProviderType.indieauth,
        ProviderType.homeassistant,
        ProviderType.adfs,
    }
)
"""Providers that do not need a user information endpoint."""


def check_callback_url(url: str, domains: list[str]) -> None:
    """Check that a callback URL can receive the authentication cookie.

    Parameters
    ----------
    url
        Callback URL registered with the provider.
    domains
        Domains within which the cookie will be set.

    Raises
    ------
    ConfigurationError
        Raised if the URL is outside all domains or lacks ``/auth``.
    """
    if not any(domain in url for domain in domains):
        msg = (
            f"oauth.callback_url ({url}) must be within the configured"
            f" domain where the cookie will be set {domains}"
        )
        raise ConfigurationError(msg)
    if CALLBACK_PATH_MARKER not in url:
        msg = (
            f"oauth.callback_url ({url}) must contain"
            f" '{CALLBACK_PATH_MARKER}'"
        )
        raise ConfigurationError(msg)


def _warn_short_secret(
    secret: SecretStr | None, key: str, what: str, logger: BoundLogger
) -> None:
    length = len(secret.get_secret_value()) if secret else 0
    logger.debug(f"{key} is {length} characters long")
    if length < MIN_SECRET_LENGTH:
        logger.warning(
            f"Your {what} is too short! ({length} characters long). Please"
            f" consider deleting {key} to automatically generate a secret of"
            f" {MIN_SECRET_LENGTH} characters"
        )


def validate_config(
    config: Config,
    oauth: OAuthConfig,
    *,
    layered: LayeredConfig,
    root: str = BRANDING.lc_name,
    logger: BoundLogger | None = None,
) -> None:
    """Check the resolved configuration for consistency.

    Parameters
    ----------
    config
        Configuration snapshot with all defaults applied.
    oauth
        Provider configuration with provider defaults applied.
    layered
        Merged configuration tree, used to tell explicitly set keys from
        defaulted ones.
    root
        Root key the snapshot was parsed from.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Raises
    ------
    ConfigurationError
        Raised for the first failed check.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)

    try:
        provider = ProviderType(oauth.provider)
    except ValueError:
        msg = f"Unknown oauth provider: {oauth.provider}"
        raise ConfigurationError(msg) from None

    for option in REQUIRED_OPTIONS:
        if not layered.is_set(option):
            msg = f"required configuration option {option} is not set"
            raise ConfigurationError(msg)

    domains_key = f"{root}.domains"
    allow_all_key = f"{root}.allowAllUsers"
    if not layered.is_set(allow_all_key) and not layered.is_set(domains_key):
        msg = (
            f"either one of {domains_key} or {allow_all_key} needs to be set"
            " (but not both)"
        )
        raise ConfigurationError(msg)

    if not oauth.client_id:
        raise ConfigurationError("oauth.client_id not found")
    client_secret = oauth.client_secret
    if provider not in _NO_CLIENT_SECRET and (
        not client_secret or not client_secret.get_secret_value()
    ):
        raise ConfigurationError("oauth.client_secret not found")
    if provider not in _NO_AUTH_URL and not oauth.auth_url:
        raise ConfigurationError("oauth.auth_url not found")
    if provider not in _NO_USER_INFO_URL and not oauth.user_info_url:
        raise ConfigurationError("oauth.user_info_url not found")

    if not config.allow_all_users:
        for url in oauth.all_redirect_urls:
            check_callback_url(url, config.domains)

    _warn_short_secret(
        config.jwt.secret, f"{root}.jwt.secret", "secret", logger
    )
    _warn_short_secret(
        config.session.key, f"{root}.session.key", "session key", logger
    )

    if config.cookie.max_age < 0:
        msg = (
            "cookie maxAge cannot be lower than 0 (currently:"
            f" {config.cookie.max_age})"
        )
        raise ConfigurationError(msg)
    if config.jwt.max_age <= 0:
        msg = (
            "JWT maxAge cannot be zero or lower (currently:"
            f" {config.jwt.max_age})"
        )
        raise ConfigurationError(msg)
    if config.cookie.max_age > config.jwt.max_age:
        msg = (
            f"Cookie maxAge ({config.cookie.max_age}) cannot be larger than"
            f" the JWT maxAge ({config.jwt.max_age})"
        )
        raise ConfigurationError(msg)
