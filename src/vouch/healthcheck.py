"""Client for the health check route of a running Vouch."""

from __future__ import annotations

import httpx
import structlog
from structlog.stdlib import BoundLogger

from .config import Config
from .constants import BRANDING, HTTP_TIMEOUT

__all__ = ["check_health", "health_check_url"]


def health_check_url(config: Config) -> str:
    """Return the URL of the health check route for a configuration."""
    return f"http://{config.listen}:{config.port}/healthcheck"


def check_health(
    config: Config,
    http_client: httpx.Client | None = None,
    logger: BoundLogger | None = None,
) -> bool:
    """Ask a running Vouch whether it is healthy.

    Parameters
    ----------
    config
        Configuration of the Vouch to check.
    http_client
        Client to use for the request. A new one is created if not given.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    bool
        `True` only if the route answered with a JSON object whose ``ok``
        key is `True`.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)
    url = health_check_url(config)
    logger.debug(f"Invoking healthcheck on URL {url}")
    try:
        if http_client:
            r = http_client.get(url, timeout=HTTP_TIMEOUT)
        else:
            r = httpx.get(url, timeout=HTTP_TIMEOUT)
        result = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Healthcheck against {url} failed", error=str(e))
        return False
    if isinstance(result, dict) and result.get("ok") is True:
        return True
    logger.error(f"Healthcheck against {url} failed")
    return False
