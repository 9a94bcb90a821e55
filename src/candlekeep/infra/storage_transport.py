"""httpx-backed implementation of :class:`~candlekeep.core.protocols.StorageTransport`.

Uploads go straight to the pre-signed storage URL from an upload
ticket — no API credentials are sent there.  The body is streamed in
fixed-size chunks with an explicit ``Content-Length`` (pre-signed PUTs
reject chunked transfer encoding), and each chunk emits a progress
event.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from candlekeep.core.protocols import ProgressCallback
from candlekeep.exceptions import TransferFailedError

logger = logging.getLogger(__name__)

CHUNK_SIZE: int = 256 * 1024
DEFAULT_TIMEOUT: float = 300.0


class HttpStorageTransport:
    """PUTs payloads to pre-signed storage URLs.

    Parameters
    ----------
    filename:
        Display name included in progress events.
    transport:
        Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        *,
        filename: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        chunk_size: int = CHUNK_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._filename = filename
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._transport = transport

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
            On a connection problem or a non-2xx response.
        """
        total = len(data)
        headers = {"Content-Type": content_type, "Content-Length": str(total)}

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout), transport=self._transport,
        ) as client:
            try:
                response = await client.put(
                    url,
                    content=self._iter_chunks(data, progress_callback),
                    headers=headers,
                )
            except httpx.HTTPError as exc:
                raise TransferFailedError(f"Failed to upload file: {exc}") from exc

        if not response.is_success:
            raise TransferFailedError(
                f"Upload failed ({response.status_code}): {response.text.strip()}",
            )

        logger.debug("Storage accepted %d bytes", total)
        if progress_callback is not None:
            progress_callback({"status": "finished", "total_bytes": total})

    async def _iter_chunks(
        self,
        data: bytes,
        progress_callback: ProgressCallback | None,
    ) -> AsyncIterator[bytes]:
        total = len(data)
        sent = 0
        self._report(progress_callback, sent, total)
        view = memoryview(data)
        while sent < total:
            chunk = bytes(view[sent:sent + self._chunk_size])
            yield chunk
            sent += len(chunk)
            self._report(progress_callback, sent, total)

    def _report(self, progress_callback: ProgressCallback | None, sent: int, total: int) -> None:
        if progress_callback is None:
            return
        progress_callback({
            "status": "uploading",
            "uploaded_bytes": sent,
            "total_bytes": total,
            "filename": self._filename,
        })
