"""Infrastructure layer — external system integration.

This layer wraps all interaction with the CandleKeep API (httpx), the
storage endpoint, local sockets and the config file.  Every raw
third-party exception must be caught here and re-raised as a
:class:`~candlekeep.exceptions.CandleKeepError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from candlekeep.infra.api_client import LibraryApiClient
from candlekeep.infra.callback_listener import CallbackListener
from candlekeep.infra.config_store import AppConfig, ConfigStore
from candlekeep.infra.storage_transport import HttpStorageTransport

__all__: list[str] = [
    "AppConfig",
    "CallbackListener",
    "ConfigStore",
    "HttpStorageTransport",
    "LibraryApiClient",
]
