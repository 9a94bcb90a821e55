"""Core upload service — drives the three-phase upload protocol.

1. **Ticket** — ask the API for a short-lived upload ticket.
2. **Transfer** — push the bytes straight to the ticket's storage URL.
3. **Commit** — tell the API the transfer finished so processing starts.

Each phase must finish before the next begins and nothing is retried.
A failure surfaces as the phase-specific subclass of
:class:`~candlekeep.exceptions.UploadPhaseError` so the caller knows
whether to re-request, re-transfer or start over.

Guarantees
----------
* Pure orchestration — the service performs no I/O of its own.
* A ticket is transferred at most once and committed at most once,
  and never committed unless its transfer succeeded.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

from candlekeep.core.models import TransferOutcome, UploadRequest, UploadTicket
from candlekeep.core.protocols import ProgressCallback, StorageTransport, UploadApi
from candlekeep.exceptions import (
    CandleKeepError,
    CommitFailedError,
    StaleTicketError,
    TicketRequestFailedError,
    TransferFailedError,
    UnsupportedFileTypeError,
    UploadInputError,
)

logger = logging.getLogger(__name__)

CONTENT_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "md": "text/markdown",
    "markdown": "text/markdown",
}


def content_type_for(filename: str) -> str:
    """Map a file name to the content type the library accepts.

    Raises
    ------
    UnsupportedFileTypeError
        For anything other than PDF or Markdown.
    """
    suffix = PurePath(filename).suffix.lower().lstrip(".")
    try:
        return CONTENT_TYPES[suffix]
    except KeyError:
        raise UnsupportedFileTypeError(
            "Unsupported file type. Only PDF and Markdown files are supported. "
            f"Got: {suffix or 'no extension'}",
        ) from None


class UploadService:
    """Runs uploads against an :class:`UploadApi` and a :class:`StorageTransport`.

    Parameters
    ----------
    api:
        Issues tickets and accepts commits.
    storage:
        Performs the direct byte transfer.
    """

    def __init__(self, api: UploadApi, storage: StorageTransport) -> None:
        self._api: UploadApi = api
        self._storage: StorageTransport = storage
        self._spent: set[str] = set()
        self._transferred: set[str] = set()
        self._committed: set[str] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def upload(
        self,
        request: UploadRequest,
        data: bytes,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> TransferOutcome:
        """Run ticket → transfer → commit for one payload.

        Raises
        ------
        UploadInputError
            When *data* does not match the declared size.
        TicketRequestFailedError, TransferFailedError, CommitFailedError
            From whichever phase failed; later phases are not attempted.
        """
        if len(data) != request.size:
            raise UploadInputError(
                f"Payload is {len(data)} bytes but {request.size} were declared.",
            )

        ticket = await self.request_ticket(request)
        await self.transfer(
            ticket, data, request.content_type, progress_callback=progress_callback,
        )
        return await self.commit(ticket)

    async def request_ticket(self, request: UploadRequest) -> UploadTicket:
        """Phase 1 — obtain a fresh :class:`UploadTicket`."""
        logger.info("Requesting upload ticket for %s (%d bytes)", request.filename, request.size)
        try:
            ticket = await self._api.create_upload(
                request.filename, request.size, request.content_type,
            )
        except CandleKeepError as exc:
            raise TicketRequestFailedError(
                f"Could not create upload: {exc}",
                hint="Nothing was uploaded. Fix the problem above and retry.",
            ) from exc
        except Exception as exc:
            raise TicketRequestFailedError(
                f"Unexpected error while creating upload: {exc}",
            ) from exc
        logger.debug("Ticket issued for item %s", ticket.item_id)
        return ticket

    async def transfer(
        self,
        ticket: UploadTicket,
        data: bytes,
        content_type: str,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Phase 2 — push *data* to the ticket's storage URL."""
        if ticket.storage_key in self._spent:
            raise StaleTicketError(
                "This upload ticket was already used.",
                hint="Request a new ticket for another attempt.",
            )
        self._spent.add(ticket.storage_key)

        logger.info("Transferring %d bytes for item %s", len(data), ticket.item_id)
        try:
            await self._storage.put(
                ticket.upload_url,
                data,
                content_type,
                progress_callback=progress_callback,
            )
        except Exception as exc:
            raise TransferFailedError(
                f"Upload to storage failed: {exc}",
                hint=_orphaned_ticket_hint(ticket),
            ) from exc
        self._transferred.add(ticket.storage_key)

    async def commit(self, ticket: UploadTicket) -> TransferOutcome:
        """Phase 3 — confirm the transfer and start processing."""
        if ticket.storage_key in self._committed:
            raise StaleTicketError("This upload ticket was already committed.")
        if ticket.storage_key not in self._transferred:
            raise StaleTicketError(
                "Cannot commit an upload whose transfer has not succeeded.",
            )
        self._transferred.discard(ticket.storage_key)
        self._committed.add(ticket.storage_key)

        logger.info("Committing upload for item %s", ticket.item_id)
        try:
            return await self._api.confirm_upload(ticket.item_id, ticket.storage_key)
        except Exception as exc:
            raise CommitFailedError(
                f"Upload was transferred but could not be confirmed: {exc}",
                hint="Run the upload again from the start; the unconfirmed copy will expire.",
            ) from exc


def _orphaned_ticket_hint(ticket: UploadTicket) -> str:
    when = ticket.expires_at.isoformat() if ticket.expires_at else "shortly"
    return (
        "Run the upload again. The unconfirmed upload ticket is discarded "
        f"by the server on its own (expires {when})."
    )
