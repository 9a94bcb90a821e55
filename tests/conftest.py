"""Shared pytest fixtures and configuration for the candlekeep-cli test suite.

Guidelines
----------
* No internet access in any test — httpx is driven by ``MockTransport``.
* Only the callback-listener tests open sockets, and only on loopback.
* Core tests must be pure — no side effects.
* Tests must not depend on the user's real ``~/.candlekeep`` directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from candlekeep.infra.config_store import API_URL_ENV, CONFIG_DIR_ENV


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at a temp dir for every test."""
    config_dir = tmp_path / "ck-config"
    monkeypatch.setenv(CONFIG_DIR_ENV, str(config_dir))
    monkeypatch.delenv(API_URL_ENV, raising=False)
    return config_dir


@pytest.fixture
def config_file(isolated_config: Path) -> Path:
    return isolated_config / "config.toml"


@pytest.fixture
def logged_in(config_file: Path) -> Path:
    """Write a config file holding a credential."""
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        '[auth]\napi_key = "ck_test"\n\n[api]\nurl = "https://ck.example"\n',
        encoding="utf-8",
    )
    return config_file
