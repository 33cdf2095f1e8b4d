"""Resolution of the complete Vouch configuration.

This ties the configuration components together in the order they must run:
merge the sources, parse the snapshot, fall back to the legacy namespace,
fill in secrets and other derived defaults, apply the provider defaults, and
finally validate the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog
from pydantic import SecretStr
from structlog.stdlib import BoundLogger

from .config import BootstrapSettings, Config, OAuthClient, OAuthConfig
from .constants import BRANDING, CONFIG_FILE_NAME, OAUTH_ROOT, SECRET_FILE
from .migration import migrate_legacy_namespace
from .providers import apply_provider_defaults
from .secret import generate_secret, get_or_create_secret
from .sources import (
    ConfigSource,
    DefaultsSource,
    EnvironmentSource,
    FileSource,
    LayeredConfig,
)
from .validation import validate_config

__all__ = [
    "ResolvedConfig",
    "apply_config_defaults",
    "build_sources",
    "resolve_config",
]


@dataclass(frozen=True)
class ResolvedConfig:
    """Validated configuration and the OAuth client derived from it."""

    config: Config
    """Configuration snapshot."""

    oauth: OAuthConfig
    """Provider configuration with provider defaults applied."""

    oauth_client: OAuthClient
    """Client for talking to the provider."""

    root_key: str
    """Root key the snapshot was parsed from."""

    root_dir: Path
    """Directory holding ``config/config.yml`` and the JWT secret file."""


def _select_config_file(
    settings: BootstrapSettings,
    root_dir: Path,
    config_path: Path | None,
    logger: BoundLogger,
) -> Path:
    """Choose the override file: environment, then command line, then root."""
    if settings.config:
        path = settings.config.absolute()
        variable = f"{BRANDING.uc_name}_CONFIG"
        logger.info(
            f"Config file loaded from environmental variable {variable}",
            path=str(path),
        )
        return path
    if config_path:
        logger.info("Config file set on commandline", path=str(config_path))
        return config_path
    return root_dir / "config" / CONFIG_FILE_NAME


def build_sources(
    root_dir: Path,
    *,
    config_path: Path | None = None,
    settings: BootstrapSettings | None = None,
    logger: BoundLogger | None = None,
) -> list[ConfigSource]:
    """Build the configuration sources in precedence order.

    Parameters
    ----------
    root_dir
        Root directory holding the conventional ``config/config.yml``.
    config_path
        Configuration file given on the command line, if any.
    settings
        Bootstrap settings from the environment. Read from the environment
        if not given.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    list of ConfigSource
        Defaults, file, and environment sources.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)
    if not settings:
        settings = BootstrapSettings()
    path = _select_config_file(settings, root_dir, config_path, logger)
    return [DefaultsSource(), FileSource(path), EnvironmentSource()]


def apply_config_defaults(
    config: Config,
    layered: LayeredConfig,
    *,
    root_key: str,
    secret_path: Path,
    logger: BoundLogger | None = None,
) -> Config:
    """Fill in settings derived from other settings or generated.

    Parameters
    ----------
    config
        Parsed configuration snapshot.
    layered
        Merged configuration tree, used to check whether keys were set.
    root_key
        Root key the snapshot was parsed from.
    secret_path
        File holding the persisted JWT secret.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    Config
        Copy of the configuration with defaults applied.

    Raises
    ------
    SecretGenerationError
        Raised if a secret is needed and cannot be generated.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)

    jwt = config.jwt
    if not layered.is_set(f"{root_key}.jwt.secret"):
        secret = get_or_create_secret(secret_path, logger)
        jwt = jwt.model_copy(update={"secret": SecretStr(secret)})

    cookie = config.cookie
    if not layered.is_set(f"{root_key}.cookie.maxAge"):
        cookie = cookie.model_copy(update={"max_age": jwt.max_age})
    elif cookie.max_age > jwt.max_age:
        logger.warning(
            f"Setting {root_key}.cookie.maxAge to {root_key}.jwt.maxAge value"
            f" of {jwt.max_age} minutes (currently set to {cookie.max_age}"
            " minutes)"
        )
        cookie = cookie.model_copy(update={"max_age": jwt.max_age})

    # The session key is not persisted, so sessions do not survive a
    # restart unless a key is configured.
    session = config.session
    if not layered.is_set(f"{root_key}.session.key"):
        logger.warning("Generating random session.key")
        key = SecretStr(generate_secret())
        session = session.model_copy(update={"key": key})

    test_urls = config.test_urls
    if layered.is_set(f"{root_key}.test_url"):
        test_urls = [*test_urls, config.test_url]

    return config.model_copy(
        update={
            "jwt": jwt,
            "cookie": cookie,
            "session": session,
            "test_urls": test_urls,
        }
    )


def resolve_config(
    *,
    config_path: Path | None = None,
    port: int | None = None,
    root_dir: Path | None = None,
    sources: list[ConfigSource] | None = None,
    logger: BoundLogger | None = None,
) -> ResolvedConfig:
    """Resolve, default, and validate the configuration.

    Parameters
    ----------
    config_path
        Configuration file given on the command line. ``VOUCH_CONFIG`` takes
        precedence over it.
    port
        Port given on the command line, which replaces the configured port.
    root_dir
        Root directory. Defaults to ``VOUCH_ROOT`` and then the current
        working directory.
    sources
        Configuration sources to use instead of the standard ones.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    ResolvedConfig
        The validated configuration.

    Raises
    ------
    ConfigurationError
        Raised if the configuration cannot be read or is invalid.
    SecretGenerationError
        Raised if a secret is needed and cannot be generated.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)
    settings = BootstrapSettings()
    if not root_dir:
        root_dir = settings.root or Path.cwd()
    logger.debug("Using root directory", root=str(root_dir))
    if sources is None:
        sources = build_sources(
            root_dir, config_path=config_path, settings=settings, logger=logger
        )

    layered = LayeredConfig.load(sources, logger)
    config = layered.parse(BRANDING.lc_name, Config)
    config, root_key = migrate_legacy_namespace(layered, config, logger)
    config = apply_config_defaults(
        config,
        layered,
        root_key=root_key,
        secret_path=root_dir / SECRET_FILE,
        logger=logger,
    )
    if port is not None:
        config = config.model_copy(update={"port": port})

    oauth = layered.parse(OAUTH_ROOT, OAuthConfig)
    oauth, client = apply_provider_defaults(oauth, logger)

    validate_config(
        config, oauth, layered=layered, root=root_key, logger=logger
    )
    return ResolvedConfig(
        config=config,
        oauth=oauth,
        oauth_client=client,
        root_key=root_key,
        root_dir=root_dir,
    )
