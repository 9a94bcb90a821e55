"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters and the CLI
must satisfy.  Core code depends ONLY on these protocols — never on
concrete implementations — preserving the dependency inversion
principle.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from candlekeep.core.models import TransferOutcome, UploadTicket, UserInfo

ProgressCallback = Callable[[dict[str, Any]], None]
"""Receives ``{"status": "uploading" | "finished", ...}`` event dicts."""


class UploadApi(Protocol):
    """The two API calls that bracket a direct storage transfer.

    Implementations must map all backend-specific exceptions to
    :class:`~candlekeep.exceptions.CandleKeepError` subclasses.
    """

    async def create_upload(
        self, filename: str, size: int, content_type: str,
    ) -> UploadTicket:
        """Request a ticket for one upload attempt."""
        ...  # pragma: no cover

    async def confirm_upload(self, item_id: str, storage_key: str) -> TransferOutcome:
        """Register a finished transfer and start processing."""
        ...  # pragma: no cover


class StorageTransport(Protocol):
    """Contract for pushing raw bytes to a pre-authorised storage URL."""

    async def put(
        self,
        url: str,
        data: bytes,
        content_type: str,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Upload *data* to *url*.

        Raises
        ------
        TransferFailedError
            On any transport failure or non-success status.
        """
        ...  # pragma: no cover


class IdentityApi(Protocol):
    """Async context manager that can resolve the user behind its credential."""

    async def __aenter__(self) -> IdentityApi:
        ...  # pragma: no cover

    async def __aexit__(self, *exc_info: object) -> None:
        ...  # pragma: no cover

    async def whoami(self) -> UserInfo:
        ...  # pragma: no cover


class CredentialStore(Protocol):
    """Persisted credential + base URL."""

    @property
    def api_key(self) -> str | None:
        ...  # pragma: no cover

    @property
    def api_url(self) -> str:
        ...  # pragma: no cover

    def save_api_key(self, api_key: str) -> None:
        ...  # pragma: no cover


class CallbackChannel(Protocol):
    """A bound, single-use listener for the browser callback."""

    @property
    def port(self) -> int:
        ...  # pragma: no cover

    def start(self) -> Any:
        """Start the blocking accept on a worker.

        Returns a ``concurrent.futures.Future`` that resolves to exactly
        one :class:`~candlekeep.core.models.CallbackResult` or exception.
        """
        ...  # pragma: no cover

    def close(self) -> None:
        ...  # pragma: no cover


class LoginInteraction(Protocol):
    """User-facing side of the login flow, implemented by the CLI layer."""

    def show_auth_url(self, url: str) -> None:
        """Tell the user where to authenticate (and try to open it)."""
        ...  # pragma: no cover

    def browser_flow_failed(self, error: Exception) -> None:
        """Report why the browser path was abandoned."""
        ...  # pragma: no cover

    async def prompt_credential(self, base_url: str) -> str | None:
        """Ask the user to paste a credential; ``None`` when cancelled.

        Awaited from inside the running event loop, so implementations
        must not start a loop of their own.
        """
        ...  # pragma: no cover

    def validating(self) -> None:
        ...  # pragma: no cover
