"""Config dependency."""

from __future__ import annotations

from pathlib import Path

from safir.logging import LogLevel

from ..config import Config
from ..resolver import ResolvedConfig, resolve_config

__all__ = ["ConfigDependency", "config_dependency"]


class ConfigDependency:
    """Provides the resolved configuration as a process-wide singleton.

    A production run resolves the configuration once, from the location
    given by the environment or the default root. The test suite and the
    command line may instead point it at a different configuration file or
    port, which discards the cached configuration and resolves it again from
    scratch. The cached object is never modified in place.
    """

    def __init__(self) -> None:
        self._config_path: Path | None = None
        self._port: int | None = None
        self._log_level: LogLevel | None = None
        self._config: ResolvedConfig | None = None

    def __call__(self) -> ResolvedConfig:
        """Load the configuration if necessary and return it."""
        return self.config()

    @property
    def config_path(self) -> Path | None:
        """Path to the configuration file given on the command line."""
        return self._config_path

    def config(self) -> ResolvedConfig:
        """Load the configuration if necessary and return it.

        Raises
        ------
        VouchError
            Raised if the configuration cannot be resolved.
        """
        if not self._config:
            self._config = self._load()
        return self._config

    def set_config_path(self, path: Path | None) -> None:
        """Change the configuration path and reload the config.

        Parameters
        ----------
        path
            The new configuration path, or `None` for the default.
        """
        self._config_path = path
        self.reload()

    def configure(
        self,
        *,
        config_path: Path | None = None,
        port: int | None = None,
        log_level: LogLevel | None = None,
    ) -> ResolvedConfig:
        """Set all command-line overrides and reload the config.

        Parameters
        ----------
        config_path
            Configuration file given on the command line, if any.
        port
            Port to use instead of the configured one, if any.
        log_level
            Log level to use instead of the configured one, if any.

        Returns
        -------
        ResolvedConfig
            The newly resolved configuration.
        """
        self._config_path = config_path
        self._port = port
        self._log_level = log_level
        return self.reload()

    def reload(self) -> ResolvedConfig:
        """Discard the cached configuration and resolve it again."""
        self._config = self._load()
        return self._config

    def clear(self) -> None:
        """Discard the cached configuration and all overrides."""
        self._config_path = None
        self._port = None
        self._log_level = None
        self._config = None

    def _load(self) -> ResolvedConfig:
        # Messages logged during resolution honor the override.
        if self._log_level:
            Config().configure_logging(self._log_level)
        resolved = resolve_config(
            config_path=self._config_path, port=self._port
        )
        resolved.config.configure_logging(self._log_level)
        return resolved


config_dependency = ConfigDependency()
"""The dependency that will return the current configuration."""
