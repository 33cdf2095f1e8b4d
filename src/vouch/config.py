"""Configuration for Vouch.

Vouch is configured by a YAML file layered on top of a packaged default
document, with environment variables overriding both (see
`vouch.sources`). Keys are matched case-insensitively, so every key of the
merged tree is lower-case and the models below use lower-case aliases for
the camel-case names used in configuration files.

The models are frozen. Everything that fills in defaults after parsing
(secrets, provider endpoints) produces a modified copy instead of mutating
the parsed object.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from safir.logging import LogLevel, Profile, configure_logging

from .constants import BRANDING

__all__ = [
    "BootstrapSettings",
    "Config",
    "CookieConfig",
    "DatabaseConfig",
    "HeadersConfig",
    "JWTConfig",
    "OAuthClient",
    "OAuthConfig",
    "SessionConfig",
]

_MODEL_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class BootstrapSettings(BaseSettings):
    """Settings that locate the configuration itself.

    These are read only from the environment, before any configuration file
    has been found.
    """

    model_config = SettingsConfigDict(
        env_prefix=f"{BRANDING.uc_name}_",
        env_ignore_empty=True,
        extra="ignore",
    )

    root: Path | None = Field(
        None,
        title="Root directory",
        description=(
            "Directory containing ``config/config.yml`` and the persisted JWT"
            " secret. Defaults to the current working directory."
        ),
    )

    config: Path | None = Field(
        None,
        title="Configuration file",
        description=(
            "Path to the override configuration file. Takes precedence over"
            " the path given on the command line."
        ),
    )


class JWTConfig(BaseModel):
    """Configuration for issued JWTs."""

    model_config = _MODEL_CONFIG

    max_age: int = Field(
        240,
        title="JWT lifetime",
        description="Lifetime of issued JWTs in minutes",
        alias="maxage",
    )

    issuer: str = Field("Vouch", title="JWT issuer")

    secret: SecretStr | None = Field(
        None,
        title="JWT signing secret",
        description=(
            "If not set, a secret is read from or generated into"
            " ``config/secret`` under the root directory"
        ),
    )

    compress: bool = Field(True, title="Compress JWTs")


class CookieConfig(BaseModel):
    """Configuration for the authentication cookie."""

    model_config = _MODEL_CONFIG

    name: str = Field("VouchCookie", title="Cookie name")

    domain: str | None = Field(None, title="Cookie domain")

    secure: bool = Field(True, title="Secure flag")

    http_only: bool = Field(True, title="HttpOnly flag", alias="httponly")

    max_age: int = Field(
        0,
        title="Cookie lifetime",
        description=(
            "Lifetime of the cookie in minutes. Defaults to the JWT lifetime"
            " and may not exceed it."
        ),
        alias="maxage",
    )


class HeadersConfig(BaseModel):
    """Names of the headers set on authenticated responses."""

    model_config = _MODEL_CONFIG

    jwt: str = "X-Vouch-Token"
    user: str = "X-Vouch-User"
    querystring: str = "access_token"
    redirect: str = "X-Vouch-Requested-URI"
    success: str = "X-Vouch-Success"
    claimheader: str = "X-Vouch-IdP-Claims-"
    claims: list[str] = []
    accesstoken: str = "X-Vouch-IdP-AccessToken"
    idtoken: str = "X-Vouch-IdP-IdToken"


class DatabaseConfig(BaseModel):
    """Configuration for the session database."""

    model_config = _MODEL_CONFIG

    file: str = Field("data/vouch_bolt.db", title="Database file")


class SessionConfig(BaseModel):
    """Configuration for the session cookie."""

    model_config = _MODEL_CONFIG

    name: str = Field("VouchSession", title="Session cookie name")

    key: SecretStr | None = Field(
        None,
        title="Session signing key",
        description="If not set, a random key is generated at startup",
    )


class Config(BaseModel):
    """Configuration snapshot for Vouch.

    This is the contents of the ``vouch`` (or legacy ``lasso``) key of the
    merged configuration tree.
    """

    model_config = _MODEL_CONFIG

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Logging level",
        description="Python logging level, matched case-insensitively",
        alias="loglevel",
    )

    listen: str = Field("0.0.0.0", title="Listen address")

    port: int = Field(9090, title="Listen port")

    health_check: bool = Field(
        True, title="Enable health check route", alias="healthcheck"
    )

    domains: list[str] = Field(
        [],
        title="Cookie domains",
        description="Domains within which users are authorized",
    )

    whitelist: list[str] = Field(
        [],
        title="Whitelisted users",
        description="Identities allowed regardless of domain",
    )

    allow_all_users: bool = Field(
        False,
        title="Allow all users",
        description="Allow any user who authenticates with the provider",
        alias="allowallusers",
    )

    public_access: bool = Field(
        False, title="Allow public access", alias="publicaccess"
    )

    jwt: JWTConfig = Field(JWTConfig(), title="JWT configuration")

    cookie: CookieConfig = Field(CookieConfig(), title="Cookie configuration")

    headers: HeadersConfig = Field(HeadersConfig(), title="Header names")

    db: DatabaseConfig = Field(
        DatabaseConfig(), title="Database configuration"
    )

    session: SessionConfig = Field(
        SessionConfig(), title="Session configuration"
    )

    test_url: str = Field("", title="Test URL")

    test_urls: list[str] = Field([], title="Test URLs")

    testing: bool = Field(False, title="Enable testing mode")

    webapp: bool = Field(False, title="Enable web application mode")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    def configure_logging(self, log_level: LogLevel | None = None) -> None:
        """Configure logging based on the Vouch configuration.

        Parameters
        ----------
        log_level
            If given, overrides the configured log level.
        """
        profile = Profile.development if self.testing else Profile.production
        configure_logging(
            name=BRANDING.lc_name,
            profile=profile,
            log_level=log_level or self.log_level,
        )


class OAuthConfig(BaseModel):
    """Configuration of the upstream OAuth provider.

    ``provider`` is kept as a plain string rather than a
    `~vouch.constants.ProviderType` so that an unknown value survives parsing
    and can be reported by name.
    """

    model_config = _MODEL_CONFIG

    provider: str = Field("", title="Provider type")

    client_id: str = Field("", title="OAuth client ID")

    client_secret: SecretStr | None = Field(None, title="OAuth client secret")

    auth_url: str = Field("", title="Authorization endpoint")

    token_url: str = Field("", title="Token endpoint")

    redirect_url: str = Field(
        "",
        title="Callback URL",
        description="Where the provider sends the user after authentication",
        alias="callback_url",
    )

    redirect_urls: list[str] = Field(
        [], title="Additional callback URLs", alias="callback_urls"
    )

    scopes: list[str] = Field([], title="Scopes to request")

    user_info_url: str = Field("", title="User information endpoint")

    preferred_domain: str = Field(
        "",
        title="Preferred Google domain",
        description="Sent to Google as the ``hd`` authorization parameter",
        alias="preferreddomain",
    )

    @property
    def all_redirect_urls(self) -> list[str]:
        """All configured callback URLs."""
        urls = [self.redirect_url] if self.redirect_url else []
        return urls + self.redirect_urls


class OAuthClient(BaseModel):
    """Provider-independent OAuth client built from `OAuthConfig`."""

    model_config = ConfigDict(frozen=True)

    client_id: str

    client_secret: SecretStr | None = None

    auth_url: str

    token_url: str

    redirect_url: str = ""

    scopes: list[str] = []

    auth_params: dict[str, str] = {}
    """Extra authorization parameters (``hd`` for Google, ``resource`` for
    ADFS)."""

    def get_redirect_url(self, state: str) -> str:
        """Get the login URL to which to redirect the user.

        Parameters
        ----------
        state
            A random string used for CSRF protection.

        Returns
        -------
        str
            The encoded URL to which to redirect the user.
        """
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "state": state,
        }
        if self.redirect_url:
            params["redirect_uri"] = self.redirect_url
        if self.scopes:
            params["scope"] = " ".join(self.scopes)
        params.update(self.auth_params)
        separator = "&" if "?" in self.auth_url else "?"
        return self.auth_url + separator + urlencode(params)
