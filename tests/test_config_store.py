"""Tests for the persisted configuration (infra/config_store.py).

All tests use the temp config directory set up in ``conftest.py``.
"""

from __future__ import annotations

import os
import stat
import sys
import tomllib
from pathlib import Path

import pytest

from candlekeep.exceptions import ConfigError
from candlekeep.infra.config_store import (
    API_URL_ENV,
    DEFAULT_API_URL,
    ConfigStore,
    default_config_path,
)


class TestPaths:
    def test_env_override(self, isolated_config: Path) -> None:
        assert default_config_path() == isolated_config / "config.toml"

    def test_home_default(self) -> None:
        assert default_config_path({}) == Path.home() / ".candlekeep" / "config.toml"


class TestReading:
    def test_missing_file_means_empty_config(self) -> None:
        store = ConfigStore()
        assert store.api_key is None
        assert not store.is_authenticated
        assert store.api_url == DEFAULT_API_URL

    def test_reads_key_and_url(self, logged_in: Path) -> None:
        store = ConfigStore()
        assert store.api_key == "ck_test"
        assert store.api_url == "https://ck.example"

    def test_env_url_takes_precedence(self, logged_in: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(API_URL_ENV, "http://localhost:3000/")
        assert ConfigStore().api_url == "http://localhost:3000"

    def test_blank_key_is_no_key(self, config_file: Path) -> None:
        config_file.parent.mkdir(parents=True)
        config_file.write_text('[auth]\napi_key = ""\n', encoding="utf-8")
        assert ConfigStore().api_key is None

    def test_invalid_toml(self, config_file: Path) -> None:
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[auth\napi_key = ", encoding="utf-8")
        with pytest.raises(ConfigError, match="Failed to parse config file") as exc_info:
            ConfigStore()
        assert exc_info.value.hint is not None

    def test_snapshot(self, logged_in: Path) -> None:
        snapshot = ConfigStore().snapshot()
        assert snapshot.api_key == "ck_test"
        assert snapshot.path == logged_in


class TestWriting:
    def test_save_creates_file(self, config_file: Path) -> None:
        ConfigStore().save_api_key("ck_new")

        data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        assert data == {"auth": {"api_key": "ck_new"}, "api": {"url": DEFAULT_API_URL}}
        assert ConfigStore().api_key == "ck_new"

    def test_save_keeps_custom_url(self, logged_in: Path) -> None:
        ConfigStore().save_api_key("ck_other")
        assert ConfigStore().api_url == "https://ck.example"

    def test_clear_keeps_other_settings(self, logged_in: Path) -> None:
        store = ConfigStore()
        store.clear_api_key()
        assert not store.is_authenticated

        reloaded = ConfigStore()
        assert reloaded.api_key is None
        assert reloaded.api_url == "https://ck.example"

    def test_no_temp_files_left(self, config_file: Path) -> None:
        ConfigStore().save_api_key("ck_new")
        assert [p.name for p in config_file.parent.iterdir()] == ["config.toml"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_owner_only(self, config_file: Path) -> None:
        ConfigStore().save_api_key("ck_new")
        assert stat.S_IMODE(os.stat(config_file).st_mode) == 0o600


class TestRoundTrip:
    """Whatever ``tomllib`` can read must survive a credential save."""

    def test_arrays_and_nested_tables_kept(self, config_file: Path) -> None:
        config_file.parent.mkdir(parents=True)
        config_file.write_text(
            '[api]\nurl = "https://ck.example"\nmirrors = ["a", "b"]\n\n'
            "[profile.display]\nwidth = 120\n",
            encoding="utf-8",
        )
        ConfigStore().save_api_key("ck_1")

        data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        assert data["auth"] == {"api_key": "ck_1"}
        assert data["api"]["mirrors"] == ["a", "b"]
        assert data["profile"] == {"display": {"width": 120}}

    def test_non_bmp_text_stays_readable(self, config_file: Path) -> None:
        config_file.parent.mkdir(parents=True)
        config_file.write_text('[profile]\nname = "\U0001F600"\n', encoding="utf-8")
        ConfigStore().save_api_key("ck_1")

        store = ConfigStore()
        assert store.api_key == "ck_1"
        data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        assert data["profile"]["name"] == "\U0001F600"

    def test_special_characters_in_key(self) -> None:
        ConfigStore().save_api_key('a"b\\c')
        assert ConfigStore().api_key == 'a"b\\c'
