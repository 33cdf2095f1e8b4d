"""Tests for the fallback to the legacy configuration namespace."""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog
from structlog.testing import capture_logs

from vouch.config import Config
from vouch.exceptions import ConfigurationError
from vouch.migration import migrate_legacy_namespace

from .support.config import config_path, load_layered, write_config


def test_current_namespace() -> None:
    layered = load_layered(config_path("github"))
    config = layered.parse("vouch", Config)

    migrated, root = migrate_legacy_namespace(layered, config)

    assert root == "vouch"
    assert migrated is config


def test_legacy_namespace() -> None:
    layered = load_layered(config_path("legacy"))
    config = layered.parse("vouch", Config)
    assert config.domains == []

    with capture_logs() as logs:
        logger = structlog.get_logger("vouch")
        migrated, root = migrate_legacy_namespace(layered, config, logger)

    assert root == "lasso"
    assert migrated.domains == ["example.com"]
    assert migrated.jwt.max_age == 120
    assert logs[0]["log_level"] == "error"
    assert "'lasso:' to 'vouch:'" in logs[0]["event"]


def test_both_namespaces(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        {
            "vouch": {"domains": ["example.com"]},
            "lasso": {"domains": ["example.org"], "port": 8080},
        },
    )
    layered = load_layered(path)
    config = layered.parse("vouch", Config)

    migrated, root = migrate_legacy_namespace(layered, config)

    assert root == "vouch"
    assert migrated.domains == ["example.com"]
    assert migrated.port == 9090


def test_legacy_without_domains(tmp_path: Path) -> None:
    path = write_config(tmp_path, {"lasso": {"port": 8080}})
    layered = load_layered(path)
    config = layered.parse("vouch", Config)

    migrated, root = migrate_legacy_namespace(layered, config)

    assert root == "vouch"
    assert migrated.port == 9090


def test_legacy_invalid(tmp_path: Path) -> None:
    path = write_config(
        tmp_path, {"lasso": {"domains": ["example.com"], "port": "ninety"}}
    )
    layered = load_layered(path)
    config = layered.parse("vouch", Config)

    with pytest.raises(ConfigurationError, match="lasso.port"):
        migrate_legacy_namespace(layered, config)
