"""Infrastructure: persisted configuration (``~/.candlekeep/config.toml``).

File layout::

    [auth]
    api_key = "ck_..."

    [api]
    url = "https://www.getcandlekeep.com"

Rules
-----
* The file is read once, when the store is created.
* ``CANDLEKEEP_API_URL`` overrides the file's ``api.url``.
* ``CANDLEKEEP_CONFIG_DIR`` relocates the whole directory.
* Writes go through ``tomli_w``, are atomic (temp file + ``os.replace``)
  and owner-only; unknown keys and tables are kept as read.
* Concurrent writers are not coordinated; the last write wins.
"""

from __future__ import annotations

import logging
import os
import tempfile
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w

from candlekeep.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME: str = ".candlekeep"
CONFIG_FILE_NAME: str = "config.toml"
DEFAULT_API_URL: str = "https://www.getcandlekeep.com"
API_URL_ENV: str = "CANDLEKEEP_API_URL"
CONFIG_DIR_ENV: str = "CANDLEKEEP_CONFIG_DIR"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Effective configuration for one invocation."""

    api_key: str | None
    api_url: str
    path: Path


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Return the config file path, honouring ``CANDLEKEEP_CONFIG_DIR``."""
    env = os.environ if env is None else env
    override = env.get(CONFIG_DIR_ENV)
    base = Path(override) if override else Path.home() / CONFIG_DIR_NAME
    return base / CONFIG_FILE_NAME


class ConfigStore:
    """Reads and writes the CLI configuration file.

    Satisfies :class:`~candlekeep.core.protocols.CredentialStore`.
    """

    def __init__(
        self,
        path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._env: Mapping[str, str] = os.environ if env is None else env
        self._path: Path = path if path is not None else default_config_path(self._env)
        self._data: dict[str, Any] = self._read()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    @property
    def api_key(self) -> str | None:
        value = self._data.get("auth", {}).get("api_key")
        return value if isinstance(value, str) and value else None

    @property
    def api_url(self) -> str:
        override = self._env.get(API_URL_ENV)
        if override:
            return override.rstrip("/")
        value = self._data.get("api", {}).get("url")
        if isinstance(value, str) and value:
            return value.rstrip("/")
        return DEFAULT_API_URL

    @property
    def is_authenticated(self) -> bool:
        return self.api_key is not None

    def snapshot(self) -> AppConfig:
        """Return the effective configuration as an immutable value."""
        return AppConfig(api_key=self.api_key, api_url=self.api_url, path=self._path)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save_api_key(self, api_key: str) -> None:
        """Replace the stored credential."""
        self._data.setdefault("auth", {})["api_key"] = api_key
        self._data.setdefault("api", {}).setdefault("url", DEFAULT_API_URL)
        self._write()

    def clear_api_key(self) -> None:
        """Remove the stored credential, keeping other settings."""
        self._data.get("auth", {}).pop("api_key", None)
        self._write()

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(
                f"Failed to parse config file {self._path}: {exc}",
                hint="Fix or delete the file, then run 'ck auth login'.",
            ) from exc
        except OSError as exc:
            raise ConfigError(f"Failed to read config file {self._path}: {exc}") from exc
        logger.debug("Loaded config from %s", self._path)
        return data

    def _write(self) -> None:
        text = tomli_w.dumps(self._data)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=".config-", suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(text)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise ConfigError(f"Failed to write config file {self._path}: {exc}") from exc
        logger.debug("Wrote config to %s", self._path)

