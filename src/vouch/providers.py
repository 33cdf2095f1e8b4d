"""Provider-specific defaults for the OAuth configuration.

Each supported provider type has a defaulting function that takes the parsed
`~vouch.config.OAuthConfig` and returns a completed copy together with the
`~vouch.config.OAuthClient` built from it. Exactly one function runs for a
given configuration. Provider types without dedicated handling (IndieAuth,
OpenID Connect, OpenStax, Home Assistant, and any unknown value, which the
validator rejects later) only get the generic client.

All defaulting functions are idempotent: running one on its own output
returns an equal result.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog
from structlog.stdlib import BoundLogger

from .config import OAuthClient, OAuthConfig
from .constants import (
    ADFS_RESOURCE_PARAM,
    BRANDING,
    GITHUB_AUTH_URL,
    GITHUB_DEFAULT_SCOPES,
    GITHUB_TOKEN_URL,
    GITHUB_USER_INFO_URL,
    GOOGLE_AUTH_URL,
    GOOGLE_DEFAULT_SCOPES,
    GOOGLE_DOMAIN_PARAM,
    GOOGLE_TOKEN_URL,
    GOOGLE_USER_INFO_URL,
    ProviderType,
)

ProviderDefaults = Callable[[OAuthConfig], tuple[OAuthConfig, OAuthClient]]
"""Type of a provider defaulting function."""

__all__ = [
    "PROVIDER_DEFAULTS",
    "ProviderDefaults",
    "apply_provider_defaults",
    "build_oauth_client",
    "set_defaults_adfs",
    "set_defaults_generic",
    "set_defaults_github",
    "set_defaults_google",
]


def build_oauth_client(
    oauth: OAuthConfig, auth_params: dict[str, str] | None = None
) -> OAuthClient:
    """Build the OAuth client verbatim from the provider configuration.

    Parameters
    ----------
    oauth
        Provider configuration, with any defaults already applied.
    auth_params
        Extra authorization parameters, if any.

    Returns
    -------
    OAuthClient
        The corresponding client.
    """
    return OAuthClient(
        client_id=oauth.client_id,
        client_secret=oauth.client_secret,
        auth_url=oauth.auth_url,
        token_url=oauth.token_url,
        redirect_url=oauth.redirect_url,
        scopes=oauth.scopes,
        auth_params=auth_params or {},
    )


def set_defaults_google(
    oauth: OAuthConfig,
) -> tuple[OAuthConfig, OAuthClient]:
    """Apply Google defaults.

    The user information URL is always the Google one, and the client uses
    the well-known Google endpoints regardless of configuration.
    """
    update: dict[str, object] = {"user_info_url": GOOGLE_USER_INFO_URL}
    if not oauth.scopes:
        update["scopes"] = list(GOOGLE_DEFAULT_SCOPES)
    oauth = oauth.model_copy(update=update)
    auth_params = {}
    if oauth.preferred_domain:
        auth_params[GOOGLE_DOMAIN_PARAM] = oauth.preferred_domain
    client = OAuthClient(
        client_id=oauth.client_id,
        client_secret=oauth.client_secret,
        auth_url=GOOGLE_AUTH_URL,
        token_url=GOOGLE_TOKEN_URL,
        redirect_url=oauth.redirect_url,
        scopes=oauth.scopes,
        auth_params=auth_params,
    )
    return oauth, client


def set_defaults_github(
    oauth: OAuthConfig,
) -> tuple[OAuthConfig, OAuthClient]:
    """Apply GitHub defaults to any endpoint or scope that is unset."""
    update: dict[str, object] = {}
    if not oauth.auth_url:
        update["auth_url"] = GITHUB_AUTH_URL
    if not oauth.token_url:
        update["token_url"] = GITHUB_TOKEN_URL
    if not oauth.user_info_url:
        update["user_info_url"] = GITHUB_USER_INFO_URL
    if not oauth.scopes:
        update["scopes"] = list(GITHUB_DEFAULT_SCOPES)
    oauth = oauth.model_copy(update=update)
    return oauth, build_oauth_client(oauth)


def set_defaults_adfs(oauth: OAuthConfig) -> tuple[OAuthConfig, OAuthClient]:
    """Apply ADFS defaults.

    ADFS only includes all claims if the redirect URL is also sent as the
    ``resource`` parameter.
    """
    auth_params = {ADFS_RESOURCE_PARAM: oauth.redirect_url}
    return oauth, build_oauth_client(oauth, auth_params)


def set_defaults_generic(
    oauth: OAuthConfig,
) -> tuple[OAuthConfig, OAuthClient]:
    """Build the client without changing the configuration."""
    return oauth, build_oauth_client(oauth)


PROVIDER_DEFAULTS: dict[ProviderType, ProviderDefaults] = {
    ProviderType.google: set_defaults_google,
    ProviderType.github: set_defaults_github,
    ProviderType.adfs: set_defaults_adfs,
}
"""Defaulting functions for providers that need more than the generic one."""


def apply_provider_defaults(
    oauth: OAuthConfig, logger: BoundLogger | None = None
) -> tuple[OAuthConfig, OAuthClient]:
    """Apply the defaults for the configured provider type.

    Parameters
    ----------
    oauth
        Provider configuration as parsed.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    tuple of OAuthConfig and OAuthClient
        The completed provider configuration and the client built from it.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)
    try:
        defaults = PROVIDER_DEFAULTS[ProviderType(oauth.provider)]
    except (KeyError, ValueError):
        defaults = set_defaults_generic
    oauth, client = defaults(oauth)
    logger.info(
        f"Configuring {oauth.provider} OAuth",
        provider=oauth.provider,
        auth_url=client.auth_url,
    )
    if client.auth_params:
        logger.info(
            "Setting extra OAuth authorization parameters",
            params=sorted(client.auth_params),
        )
    return oauth, client
