"""Generation and persistence of random secrets."""

from __future__ import annotations

import os
from pathlib import Path

import structlog
from cryptography.fernet import Fernet
from structlog.stdlib import BoundLogger

from .constants import BRANDING
from .exceptions import SecretGenerationError

__all__ = [
    "generate_secret",
    "get_or_create_secret",
]


def generate_secret() -> str:
    """Generate a new random secret.

    Returns
    -------
    str
        32 bytes of cryptographically secure random data, base64-encoded
        (URL-safe alphabet) into 44 characters.

    Raises
    ------
    SecretGenerationError
        Raised if the operating system cannot provide secure randomness.
    """
    try:
        return Fernet.generate_key().decode()
    except (NotImplementedError, OSError) as e:
        raise SecretGenerationError(f"cannot generate secret: {e}") from e


def get_or_create_secret(
    path: Path, logger: BoundLogger | None = None
) -> str:
    """Read a persisted secret, generating and storing one if needed.

    The file is the source of truth across restarts. If it cannot be read,
    a new secret is generated and written with owner-only permissions. A
    failure to write the file is logged, and the generated secret is still
    returned for use by this process.

    Two processes provisioning the same file at the same moment is not
    handled; only one instance is expected to run first-time provisioning.

    Parameters
    ----------
    path
        Path to the secret file.
    logger
        Logger to use. Defaults to the ``vouch`` logger.

    Returns
    -------
    str
        The secret.

    Raises
    ------
    SecretGenerationError
        Raised if a new secret is needed and cannot be generated.
    """
    if not logger:
        logger = structlog.get_logger(BRANDING.lc_name)
    try:
        # The file may hold arbitrary bytes.
        secret = path.read_bytes().decode("utf-8", "surrogateescape")
    except OSError as e:
        logger.debug("Cannot read secret file", path=str(path), error=str(e))
    else:
        logger.info(f"jwt.secret read from {path}")
        return secret

    logger.info(f"jwt.secret not found in {path}")
    logger.warning(f"Generating random jwt.secret and storing it in {path}")
    secret = generate_secret()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL
        fd = os.open(path, flags, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(secret)
    except OSError as e:
        logger.warning(
            "Cannot store generated secret", path=str(path), error=str(e)
        )
    return secret
