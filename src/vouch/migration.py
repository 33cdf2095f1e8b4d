"""Fallback to the legacy configuration namespace."""

from __future__ import annotations

import structlog
from structlog.stdlib import BoundLogger

from .config import Config
from .constants import BRANDING
from .sources import LayeredConfig

__all__ = ["migrate_legacy_namespace"]


def migrate_legacy_namespace(
    layered: LayeredConfig,
    config: Config,
    logger: BoundLogger | None = None,
) -> tuple[Config, str]:
    """Replace the configuration with the legacy one if needed.

    Older releases used ``lasso`` as the root key of the configuration. If
    the configuration under the current root key has no domains but the
    same tree under the legacy key does, the legacy configuration is used
    instead. The two are never merged.

    Parameters
    ----------
    layered
        The merged configuration tree.
    config
        Configuration parsed from the current root key.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    tuple of Config and str
        The configuration to use and the root key it was parsed from.

    Raises
    ------
    ConfigurationError
        Raised if the legacy tree is needed but does not parse.
    """
    if config.domains:
        return config, BRANDING.lc_name
    old_config = layered.parse(BRANDING.old_lc_name, Config)
    if not old_config.domains:
        return config, BRANDING.lc_name

    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)
    logger.error(
        f"IMPORTANT! Please update your config file to change"
        f" '{BRANDING.old_lc_name}:' to '{BRANDING.lc_name}:' as per"
        f" {BRANDING.url}",
        old_key=BRANDING.old_lc_name,
        new_key=BRANDING.lc_name,
    )
    return old_config, BRANDING.old_lc_name
