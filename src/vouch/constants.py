"""Constants for Vouch."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "ADFS_RESOURCE_PARAM",
    "BRANDING",
    "Branding",
    "CALLBACK_PATH_MARKER",
    "CONFIG_FILE_NAME",
    "DEFAULTS_RESOURCE",
    "GITHUB_AUTH_URL",
    "GITHUB_DEFAULT_SCOPES",
    "GITHUB_TOKEN_URL",
    "GITHUB_USER_INFO_URL",
    "GOOGLE_AUTH_URL",
    "GOOGLE_DEFAULT_SCOPES",
    "GOOGLE_DOMAIN_PARAM",
    "GOOGLE_TOKEN_URL",
    "GOOGLE_USER_INFO_URL",
    "HTTP_TIMEOUT",
    "MIN_SECRET_LENGTH",
    "OAUTH_ROOT",
    "REQUIRED_OPTIONS",
    "SECRET_BYTES",
    "SECRET_FILE",
    "ProviderType",
]


@dataclass(frozen=True)
class Branding:
    """Names used to namespace configuration keys and environment variables."""

    lc_name: str
    """Lower-case product name, the root key of the configuration tree."""

    uc_name: str
    """Upper-case product name, the prefix of environment variables."""

    cc_name: str
    """Camel-case product name, used in human-readable messages."""

    old_lc_name: str
    """Legacy root key of the configuration tree."""

    url: str
    """Documentation URL."""


BRANDING = Branding(
    lc_name="vouch",
    uc_name="VOUCH",
    cc_name="Vouch",
    old_lc_name="lasso",
    url="https://github.com/vouch/vouch-proxy",
)
"""Branding of this build."""


class ProviderType(str, Enum):
    """Supported upstream OAuth providers."""

    google = "google"
    github = "github"
    indieauth = "indieauth"
    adfs = "adfs"
    oidc = "oidc"
    homeassistant = "homeassistant"
    openstax = "openstax"


OAUTH_ROOT = "oauth"
"""Root key of the OAuth provider configuration."""

REQUIRED_OPTIONS = ("oauth.provider", "oauth.client_id")
"""Keys that must be explicitly set for a minimum viable configuration."""

CONFIG_FILE_NAME = "config.yml"
"""Name of the conventional override file in ``<root>/config``."""

DEFAULTS_RESOURCE = "data/defaults.yml"
"""Path of the default configuration document inside the package."""

SECRET_FILE = "config/secret"
"""Path, relative to the root directory, of the persisted JWT secret."""

SECRET_BYTES = 32
"""Number of random bytes in a generated secret."""

MIN_SECRET_LENGTH = 44
"""Minimum length of a secret.

A base64 string needs 44 characters to encode 32 bytes (6 bits per
character).
"""

CALLBACK_PATH_MARKER = "/auth"
"""String every callback URL must contain."""

HTTP_TIMEOUT = 20.0
"""Timeout (in seconds) for the health check request."""

ADFS_RESOURCE_PARAM = "resource"
"""Authorization parameter ADFS needs to include all claims."""

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
"""Google authorization endpoint."""

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
"""Google token endpoint."""

GOOGLE_USER_INFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
"""Google user information endpoint."""

GOOGLE_DEFAULT_SCOPES = ("email",)
"""Scopes requested from Google if none are configured.

See https://developers.google.com/identity/protocols/googlescopes.
"""

GOOGLE_DOMAIN_PARAM = "hd"
"""Authorization parameter carrying the preferred Google domain."""

GITHUB_AUTH_URL = "https://github.com/login/oauth/authorize"
"""GitHub authorization endpoint."""

GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
"""GitHub token endpoint."""

GITHUB_USER_INFO_URL = "https://api.github.com/user?access_token="
"""GitHub user information endpoint."""

GITHUB_DEFAULT_SCOPES = ("read:user",)
"""Scopes requested from GitHub if none are configured."""
