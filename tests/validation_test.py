"""Tests for configuration validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import structlog
from cryptography.fernet import Fernet
from pydantic import SecretStr
from structlog.testing import capture_logs

from vouch.config import (
    Config,
    CookieConfig,
    JWTConfig,
    OAuthConfig,
    SessionConfig,
)
from vouch.exceptions import ConfigurationError
from vouch.providers import apply_provider_defaults
from vouch.resolver import ResolvedConfig, resolve_config
from vouch.validation import check_callback_url, validate_config

from .support.config import config_path, load_layered, write_config

SECRET = Fernet.generate_key().decode()
"""Secret long enough to not trigger warnings."""


def build_data(
    vouch: dict[str, Any] | None = None, oauth: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Build a valid configuration, modified by the given settings."""
    data: dict[str, Any] = {
        "vouch": {
            "domains": ["example.com"],
            "jwt": {"secret": SECRET},
            "session": {"key": SECRET},
        },
        "oauth": {
            "provider": "github",
            "client_id": "some-client-id",
            "client_secret": "some-client-secret",
            "callback_url": "https://vouch.example.com/auth",
        },
    }
    data["vouch"].update(vouch or {})
    data["oauth"].update(oauth or {})
    return {
        key: {k: v for k, v in section.items() if v is not None}
        for key, section in data.items()
    }


def resolve(tmp_path: Path, data: dict[str, Any]) -> ResolvedConfig:
    return resolve_config(config_path=write_config(tmp_path, data))


def test_valid(tmp_path: Path) -> None:
    resolved = resolve(tmp_path, build_data())

    assert resolved.oauth.provider == "github"
    assert resolved.config.cookie.max_age == 240


def test_unknown_provider() -> None:
    msg = "Unknown oauth provider: yahoo"
    with pytest.raises(ConfigurationError, match=msg):
        resolve_config(config_path=config_path("bad-provider"))


def test_unknown_provider_first(tmp_path: Path) -> None:
    data = build_data({"domains": None}, {"provider": "yahoo"})

    with pytest.raises(ConfigurationError, match="Unknown oauth provider"):
        resolve(tmp_path, data)


def test_required_option(tmp_path: Path) -> None:
    data = build_data(oauth={"client_id": None})

    with pytest.raises(ConfigurationError) as excinfo:
        resolve(tmp_path, data)
    assert str(excinfo.value) == (
        "configuration error: required configuration option oauth.client_id"
        " is not set"
    )


def test_domains_or_allow_all(tmp_path: Path) -> None:
    data = build_data({"domains": None})

    with pytest.raises(ConfigurationError) as excinfo:
        resolve(tmp_path, data)
    assert str(excinfo.value) == (
        "configuration error: either one of vouch.domains or"
        " vouch.allowAllUsers needs to be set (but not both)"
    )


def test_allow_all_users(tmp_path: Path) -> None:
    data = build_data(
        {"domains": None, "allowAllUsers": False},
        {"callback_url": "https://login.example.org/callback"},
    )
    with pytest.raises(ConfigurationError, match="must be within"):
        resolve(tmp_path, data)

    data["vouch"]["allowAllUsers"] = True
    resolved = resolve(tmp_path, data)
    assert resolved.config.allow_all_users


def test_empty_client_id(tmp_path: Path) -> None:
    data = build_data(oauth={"client_id": ""})

    with pytest.raises(ConfigurationError, match="oauth.client_id not found"):
        resolve(tmp_path, data)


def test_client_secret(tmp_path: Path) -> None:
    data = build_data(oauth={"client_secret": None})
    with pytest.raises(ConfigurationError, match="client_secret not found"):
        resolve(tmp_path, data)

    data = build_data(oauth={"client_secret": ""})
    with pytest.raises(ConfigurationError, match="client_secret not found"):
        resolve(tmp_path, data)


@pytest.mark.parametrize("provider", ["indieauth", "adfs", "homeassistant"])
def test_client_secret_optional(tmp_path: Path, provider: str) -> None:
    oauth = {
        "provider": provider,
        "client_secret": None,
        "auth_url": "https://idp.example.com/authorize",
    }
    resolved = resolve(tmp_path, build_data(oauth=oauth))

    assert resolved.oauth.client_secret is None


def test_oidc_without_secret() -> None:
    resolved = resolve_config(config_path=config_path("oidc-allow-all"))

    assert resolved.oauth.client_secret is None
    assert resolved.oauth.redirect_url == "https://vouch.example.org/callback"


def test_auth_url(tmp_path: Path) -> None:
    oauth = {
        "provider": "oidc",
        "user_info_url": "https://idp.example.com/userinfo",
    }
    with pytest.raises(ConfigurationError, match="oauth.auth_url not found"):
        resolve(tmp_path, build_data(oauth=oauth))

    resolved = resolve(tmp_path, build_data(oauth={"provider": "google"}))
    assert resolved.oauth_client.auth_url.startswith("https://accounts.google")


def test_user_info_url(tmp_path: Path) -> None:
    oauth = {"provider": "oidc", "auth_url": "https://idp.example.com/auth"}
    with pytest.raises(ConfigurationError, match="user_info_url not found"):
        resolve(tmp_path, build_data(oauth=oauth))


def test_callback_urls(tmp_path: Path) -> None:
    oauth = {"callback_url": "https://vouch.example.com/login"}
    with pytest.raises(ConfigurationError, match="must contain '/auth'"):
        resolve(tmp_path, build_data(oauth=oauth))

    oauth = {
        "callback_urls": [
            "https://vouch.example.com/auth",
            "https://vouch.example.org/auth",
        ]
    }
    with pytest.raises(ConfigurationError, match="vouch.example.org"):
        resolve(tmp_path, build_data(oauth=oauth))


def test_check_callback_url() -> None:
    url = "https://app.example.com/auth/callback"
    check_callback_url(url, ["example.com"])
    check_callback_url(
        "https://app.example.com/auth", ["example.org", "example.com"]
    )
    with pytest.raises(ConfigurationError, match="must be within"):
        check_callback_url(
            "https://app.example.com/auth/callback", ["other.com"]
        )
    with pytest.raises(ConfigurationError, match="must contain"):
        check_callback_url(
            "https://app.example.com/callback", ["example.com"]
        )
    with pytest.raises(ConfigurationError, match="must be within"):
        check_callback_url("https://app.example.com/auth", [])


def test_cookie_larger_than_jwt() -> None:
    layered = load_layered(config_path("github"))
    oauth = OAuthConfig.model_validate(layered.section("oauth"))
    oauth, _ = apply_provider_defaults(oauth)
    jwt = JWTConfig(max_age=60, secret=SecretStr(SECRET))
    session = SessionConfig(key=SecretStr(SECRET))

    config = Config(
        domains=["example.com"],
        jwt=jwt,
        session=session,
        cookie=CookieConfig(max_age=120),
    )
    with pytest.raises(ConfigurationError) as excinfo:
        validate_config(config, oauth, layered=layered)
    assert str(excinfo.value) == (
        "configuration error: Cookie maxAge (120) cannot be larger than the"
        " JWT maxAge (60)"
    )

    config = config.model_copy(update={"cookie": CookieConfig(max_age=60)})
    validate_config(config, oauth, layered=layered)


def test_cookie_max_age(tmp_path: Path) -> None:
    data = build_data({"jwt": {"secret": SECRET, "maxAge": 60}})
    data["vouch"]["cookie"] = {"maxAge": 60}
    resolved = resolve(tmp_path, data)
    assert resolved.config.cookie.max_age == 60

    data["vouch"]["cookie"] = {"maxAge": 0}
    resolved = resolve(tmp_path, data)
    assert resolved.config.cookie.max_age == 0

    data["vouch"]["cookie"] = {"maxAge": -1}
    with pytest.raises(ConfigurationError, match="lower than 0"):
        resolve(tmp_path, data)


def test_jwt_max_age(tmp_path: Path) -> None:
    data = build_data({"jwt": {"secret": SECRET, "maxAge": 0}})
    with pytest.raises(ConfigurationError, match="zero or lower"):
        resolve(tmp_path, data)

    data["vouch"]["jwt"]["maxAge"] = 1
    resolved = resolve(tmp_path, data)
    assert resolved.config.jwt.max_age == 1
    assert resolved.config.cookie.max_age == 1


def test_short_secrets() -> None:
    layered = load_layered(config_path("github"))
    config = Config(
        domains=["example.com"],
        jwt=JWTConfig(secret=SecretStr("short")),
        session=SessionConfig(key=SecretStr(SECRET)),
        cookie={"max_age": 240},
    )
    oauth = OAuthConfig.model_validate(layered.section("oauth"))
    oauth, _ = apply_provider_defaults(oauth)

    with capture_logs() as logs:
        logger = structlog.get_logger("vouch")
        validate_config(config, oauth, layered=layered, logger=logger)

    warnings = [e for e in logs if e["log_level"] == "warning"]
    assert len(warnings) == 1
    assert "secret is too short! (5 characters long)" in warnings[0]["event"]
