"""Test fixtures."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from vouch.dependencies.config import config_dependency


@pytest.fixture(autouse=True)
def environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[None]:
    """Isolate each test from the environment and the working directory.

    Removes any configuration overrides from the environment, points the
    root directory at a per-test temporary directory, and discards the
    cached configuration afterwards.
    """
    for name in list(os.environ):
        if name.startswith(("VOUCH_", "LASSO_", "OAUTH_")):
            monkeypatch.delenv(name)
    monkeypatch.setenv("VOUCH_ROOT", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    yield
    config_dependency.clear()
