"""Command handlers — one module per command group.

Each handler takes the parsed ``argparse.Namespace`` plus the loaded
:class:`~candlekeep.infra.config_store.ConfigStore`, runs its work
inside a single ``asyncio.run`` and returns an exit code.  Handlers
only delegate: parsing lives in ``core``, I/O in ``infra``.
"""

from __future__ import annotations

from candlekeep.exceptions import NotAuthenticatedError
from candlekeep.infra.api_client import LibraryApiClient
from candlekeep.infra.config_store import ConfigStore


def require_api_key(store: ConfigStore) -> str:
    """Return the stored credential.

    Raises
    ------
    NotAuthenticatedError
        When no credential is stored.
    """
    api_key = store.api_key
    if api_key is None:
        raise NotAuthenticatedError()
    return api_key


def client_for(store: ConfigStore, api_key: str) -> LibraryApiClient:
    """Return an API client for *api_key* against the configured URL."""
    return LibraryApiClient(store.api_url, api_key)


def open_client(store: ConfigStore) -> LibraryApiClient:
    """Return an API client for the stored credential."""
    return client_for(store, require_api_key(store))
