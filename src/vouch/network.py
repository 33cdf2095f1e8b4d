"""Availability check for the listen address."""

from __future__ import annotations

import socket

import structlog
from structlog.stdlib import BoundLogger

from .config import Config
from .constants import BRANDING
from .exceptions import ListenAddressUnavailableError

__all__ = [
    "ensure_listen_address_free",
    "is_listen_address_free",
]


def is_listen_address_free(
    host: str, port: int, logger: BoundLogger | None = None
) -> bool:
    """Check whether a TCP listen address can be bound.

    The address is bound and listened on, then released immediately, so no
    binding is left behind.

    Parameters
    ----------
    host
        Host name or IP address to bind.
    port
        TCP port to bind.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    bool
        `True` if the address could be bound, `False` otherwise.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)
    logger.debug(f"Checking availability of tcp port: {host}:{port}")
    try:
        family, kind, proto, _, address = socket.getaddrinfo(
            host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
        )[0]
        with socket.socket(family, kind, proto) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(address)
            sock.listen()
    except OSError as e:
        logger.error(f"Cannot bind {host}:{port}", error=str(e))
        return False
    return True


def ensure_listen_address_free(
    config: Config, logger: BoundLogger | None = None
) -> None:
    """Fail if the configured listen address is already in use.

    Parameters
    ----------
    config
        Resolved configuration.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Raises
    ------
    ListenAddressUnavailableError
        Raised if the address cannot be bound.
    """
    if not is_listen_address_free(config.listen, config.port, logger):
        address = f"{config.listen}:{config.port}"
        raise ListenAddressUnavailableError(address, BRANDING.cc_name)
