"""Command-line interface."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
import structlog
from safir.click import display_help
from safir.logging import LogLevel

from .dependencies.config import config_dependency
from .exceptions import VouchError
from .healthcheck import check_health
from .network import ensure_listen_address_free
from .resolver import ResolvedConfig
from .secret import generate_secret

__all__ = [
    "check",
    "generate_secret_command",
    "healthcheck",
    "help",
    "main",
]


def _config_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the options shared by commands that resolve the configuration."""
    func = click.option(
        "--loglevel",
        "log_level",
        type=click.Choice(
            [level.value for level in LogLevel], case_sensitive=False
        ),
        default=None,
        help="Log level, overriding the configured one.",
    )(func)
    func = click.option(
        "--port",
        type=int,
        default=None,
        help="Port to listen on, overriding the configured one.",
    )(func)
    return click.option(
        "--config",
        "config_path",
        type=click.Path(path_type=Path),
        default=None,
        help="Configuration file. VOUCH_CONFIG takes precedence.",
    )(func)


def _show_help(
    ctx: click.Context, param: click.Parameter, value: bool
) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(ctx.get_help(), color=ctx.color)
    ctx.exit(1)


_help_option = click.option(
    "-h",
    "--help",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_show_help,
    help="Show this message and exit with status 1.",
)
"""Help option that exits with status 1, as ``vouch help`` does."""


def _resolve(
    config_path: Path | None, port: int | None, log_level: LogLevel | None
) -> ResolvedConfig:
    try:
        return config_dependency.configure(
            config_path=config_path, port=port, log_level=log_level
        )
    except VouchError as e:
        raise click.ClickException(str(e)) from e


@click.group(add_help_option=False)
@_help_option
@click.version_option(message="%(version)s")
def main() -> None:
    """Command-line interface for vouch."""


@main.command(add_help_option=False)
@_help_option
@click.argument("topic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic)
    ctx.exit(1)


@main.command(add_help_option=False)
@_help_option
@_config_options
def check(
    *, config_path: Path | None, port: int | None, log_level: str | None
) -> None:
    """Resolve and validate the configuration.

    Also checks that the configured listen address is free. Prints the
    listen address on success.
    """
    level = LogLevel(log_level.upper()) if log_level else None
    resolved = _resolve(config_path, port, level)
    logger = structlog.get_logger("vouch")
    try:
        ensure_listen_address_free(resolved.config, logger)
    except VouchError as e:
        raise click.ClickException(str(e)) from e
    sys.stdout.write(f"{resolved.config.listen}:{resolved.config.port}\n")


@main.command(add_help_option=False)
@_help_option
@_config_options
def healthcheck(
    *, config_path: Path | None, port: int | None, log_level: str | None
) -> None:
    """Check the health of a running vouch.

    Exits with status 0 if it reports itself healthy, and 1 otherwise.
    """
    level = LogLevel.ERROR
    if log_level and log_level.upper() == LogLevel.DEBUG.value:
        level = LogLevel.DEBUG
    resolved = _resolve(config_path, port, level)
    if resolved.config.log_level == LogLevel.DEBUG:
        resolved.config.configure_logging()
    logger = structlog.get_logger("vouch")
    if not check_health(resolved.config, logger=logger):
        raise click.ClickException("health check failed")


@main.command("generate-secret", add_help_option=False)
@_help_option
def generate_secret_command() -> None:
    """Generate a new random secret for jwt.secret or session.key."""
    try:
        secret = generate_secret()
    except VouchError as e:
        raise click.ClickException(str(e)) from e
    sys.stdout.write(secret + "\n")
