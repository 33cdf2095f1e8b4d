"""Layered configuration sources.

Configuration comes from an ordered list of sources: the packaged defaults,
an optional override file, and the process environment. Each source yields a
partial tree of nested dictionaries. The trees are merged left to right, so a
later source wins for every key it contains and leaves every key it omits
alone.

All keys are lower-cased as they are loaded, which makes key lookup
case-insensitive across every source.
"""

from __future__ import annotations

import os
import typing
from abc import ABCMeta, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from importlib.resources import files
from pathlib import Path
from typing import Any, TypeVar

import structlog
import yaml
from pydantic import BaseModel, ValidationError
from structlog.stdlib import BoundLogger

from .config import Config, OAuthConfig
from .constants import BRANDING, DEFAULTS_RESOURCE, OAUTH_ROOT
from .exceptions import ConfigFileError, ConfigurationError, DefaultsError

__all__ = [
    "ConfigSource",
    "DefaultsSource",
    "EnvBinding",
    "EnvironmentSource",
    "FileSource",
    "LayeredConfig",
    "env_bindings",
    "merge_trees",
]

_M = TypeVar("_M", bound=BaseModel)


def _normalize(data: Mapping[Any, Any]) -> dict[str, Any]:
    """Lower-case every key of a nested mapping."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            value = _normalize(value)
        result[str(key).lower()] = value
    return result


def merge_trees(
    base: Mapping[str, Any], override: Mapping[str, Any]
) -> dict[str, Any]:
    """Merge one configuration tree on top of another.

    Parameters
    ----------
    base
        Lower-precedence tree.
    override
        Higher-precedence tree. Keys whose value is `None` are treated as
        absent.

    Returns
    -------
    dict
        New merged tree. Neither input is modified.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_trees(current, value)
        else:
            merged[key] = value
    return merged


def _lookup(tree: Mapping[str, Any], key: str) -> Any:
    node: Any = tree
    for part in key.lower().split("."):
        if not isinstance(node, Mapping) or node.get(part) is None:
            return None
        node = node[part]
    return node


def _load_yaml(text: str) -> dict[str, Any]:
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError("top level of document is not a mapping")
    return _normalize(data)


class ConfigSource(metaclass=ABCMeta):
    """A single precedence tier of configuration."""

    name: str
    """Human-readable name of the source, used in log messages."""

    explicit: bool = True
    """Whether keys from this source count as explicitly set."""

    @abstractmethod
    def load(self, logger: BoundLogger) -> dict[str, Any]:
        """Load the partial configuration tree from this source.

        Parameters
        ----------
        logger
            Logger for precedence decisions and soft failures.

        Returns
        -------
        dict
            Nested tree with lower-case keys.
        """


class DefaultsSource(ConfigSource):
    """The default configuration shipped with the package.

    Parameters
    ----------
    path
        Alternate defaults document, used by the test suite. If not given,
        the packaged document is used.
    """

    name = "defaults"
    explicit = False

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    def load(self, logger: BoundLogger) -> dict[str, Any]:
        logger.debug("Loading default config")
        try:
            if self._path:
                text = self._path.read_text()
            else:
                text = files("vouch").joinpath(DEFAULTS_RESOURCE).read_text()
            return _load_yaml(text)
        except (OSError, TypeError, yaml.YAMLError) as e:
            raise DefaultsError(f"cannot read default config: {e}") from e


class FileSource(ConfigSource):
    """A user-supplied YAML configuration file.

    A missing file is not an error: the file is optional and Vouch runs on
    the defaults alone without it.
    """

    name = "file"

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self, logger: BoundLogger) -> dict[str, Any]:
        logger.debug("Merging additional config", path=str(self.path))
        try:
            text = self.path.read_text()
        except FileNotFoundError:
            msg = "No additional config file found"
            logger.warning(msg, path=str(self.path))
            return {}
        except OSError as e:
            msg = f"cannot read config file {self.path}: {e}"
            raise ConfigFileError(msg) from e
        try:
            return _load_yaml(text)
        except (TypeError, yaml.YAMLError) as e:
            msg = f"cannot parse config file {self.path}: {e}"
            raise ConfigFileError(msg) from e


@dataclass(frozen=True)
class EnvBinding:
    """Mapping of one configuration key to an environment variable."""

    key: str
    """Dotted, lower-case configuration key."""

    is_list: bool = False
    """Whether the value should be split on commas."""

    @property
    def variable(self) -> str:
        """Name of the environment variable overriding this key."""
        return self.key.replace(".", "_").upper()


def env_bindings(
    roots: Mapping[str, type[BaseModel]],
) -> list[EnvBinding]:
    """Derive environment variable bindings from configuration models.

    Parameters
    ----------
    roots
        Mapping of root key to the model parsed from that key.

    Returns
    -------
    list of EnvBinding
        One binding for every leaf field reachable from the roots.
    """
    bindings = []
    for root, model in roots.items():
        bindings.extend(_model_bindings(root, model))
    return bindings


def _model_bindings(prefix: str, model: type[BaseModel]) -> list[EnvBinding]:
    bindings = []
    for name, field in model.model_fields.items():
        key = f"{prefix}.{field.alias or name}".lower()
        annotation = field.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            bindings.extend(_model_bindings(key, annotation))
        else:
            is_list = typing.get_origin(annotation) is list
            bindings.append(EnvBinding(key=key, is_list=is_list))
    return bindings


def _default_bindings() -> list[EnvBinding]:
    return env_bindings(
        {
            BRANDING.lc_name: Config,
            BRANDING.old_lc_name: Config,
            OAUTH_ROOT: OAuthConfig,
        }
    )


class EnvironmentSource(ConfigSource):
    """Per-key overrides from environment variables.

    The variable for a key is the dotted key upper-cased with dots replaced
    by underscores, so ``vouch.jwt.maxAge`` is overridden by
    ``VOUCH_JWT_MAXAGE``. Empty variables are ignored.

    Parameters
    ----------
    bindings
        Keys to look for. Defaults to every field of the configuration
        models.
    environ
        Environment to read. Defaults to `os.environ`.
    """

    name = "environment"

    def __init__(
        self,
        bindings: Iterable[EnvBinding] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        if bindings is None:
            bindings = _default_bindings()
        self._bindings = list(bindings)
        self._environ = os.environ if environ is None else environ

    def load(self, logger: BoundLogger) -> dict[str, Any]:
        logger.debug("Reading environment variables for overrides")
        tree: dict[str, Any] = {}
        for binding in self._bindings:
            raw = self._environ.get(binding.variable)
            if not raw:
                continue
            logger.debug(
                "Config key set from environment",
                key=binding.key,
                variable=binding.variable,
            )
            value: Any = raw
            if binding.is_list:
                value = [v.strip() for v in raw.split(",") if v.strip()]
            node = tree
            *parents, leaf = binding.key.split(".")
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = value
        return tree


class LayeredConfig:
    """Merged configuration tree with knowledge of where keys came from.

    Create with `load` rather than the constructor.

    Parameters
    ----------
    tree
        Merged tree of all sources.
    explicit
        Merged tree of only the sources whose keys count as explicitly set.
    """

    def __init__(
        self, tree: dict[str, Any], explicit: dict[str, Any]
    ) -> None:
        self.tree = tree
        self._explicit = explicit

    @classmethod
    def load(
        cls,
        sources: Iterable[ConfigSource],
        logger: BoundLogger | None = None,
    ) -> LayeredConfig:
        """Load and merge configuration sources in precedence order.

        Parameters
        ----------
        sources
            Sources from lowest to highest precedence.
        logger
            Logger to use. Defaults to the ``vouch`` logger.

        Returns
        -------
        LayeredConfig
            The merged configuration.

        Raises
        ------
        DefaultsError
            Raised if the defaults cannot be read.
        ConfigFileError
            Raised if an existing configuration file cannot be read.
        """
        if not logger:
            logger = structlog.get_logger(BRANDING.lc_name)
        tree: dict[str, Any] = {}
        explicit: dict[str, Any] = {}
        for source in sources:
            data = source.load(logger)
            tree = merge_trees(tree, data)
            if source.explicit:
                explicit = merge_trees(explicit, data)
        return cls(tree, explicit)

    def get(self, key: str) -> Any:
        """Return the merged value of a dotted key, or `None` if unset."""
        return _lookup(self.tree, key)

    def is_set(self, key: str) -> bool:
        """Whether a dotted key was set by a non-default source."""
        return _lookup(self._explicit, key) is not None

    def section(self, key: str) -> dict[str, Any]:
        """Return the subtree under a key, or an empty tree."""
        value = self.get(key)
        return value if isinstance(value, dict) else {}

    def parse(self, key: str, model: type[_M]) -> _M:
        """Parse the subtree under a key into a model.

        Parameters
        ----------
        key
            Root key of the subtree.
        model
            Model to parse the subtree into.

        Returns
        -------
        BaseModel
            The parsed model. A missing subtree parses as all defaults.

        Raises
        ------
        ConfigurationError
            Raised if the subtree does not match the model.
        """
        try:
            return model.model_validate(self.section(key))
        except ValidationError as e:
            # Error messages must not echo input values, which may be secrets.
            problems = [
                ".".join([key, *(str(p) for p in error["loc"])])
                + ": "
                + error["msg"]
                for error in e.errors(include_input=False)
            ]
            raise ConfigurationError("; ".join(problems)) from e
