"""httpx-backed client for the CandleKeep REST API (``/api/v1``).

This module is the **only** place that talks to the API.  Every httpx
exception and every non-success response is mapped to a typed
:class:`~candlekeep.exceptions.ApiError` subclass — nothing raw
escapes the infrastructure boundary.

Each call is a single request: there is no retry or backoff.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from candlekeep.core.models import RangeRequest, TocEntry, TransferOutcome, UploadTicket, UserInfo
from candlekeep.exceptions import (
    AccessDeniedError,
    ApiConnectionError,
    ApiError,
    ApiResponseError,
    AuthenticationError,
    BadRequestError,
    NotFoundError,
)
from candlekeep.version import __version__

logger = logging.getLogger(__name__)

API_PREFIX: str = "/api/v1"
DEFAULT_TIMEOUT: float = 30.0
USER_AGENT: str = f"ck-cli/{__version__}"

_STATUS_ERRORS: dict[int, tuple[type[ApiError], str]] = {
    401: (AuthenticationError, "Authentication failed"),
    403: (AccessDeniedError, "Access denied"),
    404: (NotFoundError, "Not found"),
    400: (BadRequestError, "Bad request"),
}


def build_async_client(
    base_url: str,
    api_key: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the ``httpx.AsyncClient`` used for API calls.

    *transport* exists so tests can plug in ``httpx.MockTransport``.
    """
    return httpx.AsyncClient(
        base_url=f"{base_url.rstrip('/')}{API_PREFIX}",
        headers={
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        },
        timeout=httpx.Timeout(timeout),
        transport=transport,
    )


def error_from_response(response: httpx.Response) -> ApiError:
    """Translate a non-success response into the matching :class:`ApiError`."""
    status = response.status_code
    message = f"HTTP {status}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        message = body["error"]

    if status in _STATUS_ERRORS:
        error_cls, label = _STATUS_ERRORS[status]
        hint = "Run 'ck auth login' to sign in again." if status == 401 else None
        return error_cls(f"{label}: {message}", status_code=status, hint=hint)
    return ApiError(f"API error ({status}): {message}", status_code=status)


class LibraryApiClient:
    """Typed wrapper over the CandleKeep API.

    Usage::

        async with LibraryApiClient(base_url, api_key) as api:
            user = await api.whoami()

    Satisfies :class:`~candlekeep.core.protocols.UploadApi` and
    :class:`~candlekeep.core.protocols.IdentityApi` structurally.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url: str = base_url.rstrip("/")
        self._client: httpx.AsyncClient = build_async_client(
            base_url, api_key, timeout=timeout, transport=transport,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LibraryApiClient:
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        logger.debug("%s %s%s", method, API_PREFIX, path)
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as exc:
            raise ApiConnectionError(f"Request to {self.base_url} timed out.") from exc
        except httpx.HTTPError as exc:
            raise ApiConnectionError(
                f"Failed to connect to API at {self.base_url}: {exc}",
                hint="Check your network connection or CANDLEKEEP_API_URL.",
            ) from exc

        logger.debug("%s %s%s -> %d", method, API_PREFIX, path, response.status_code)
        if not response.is_success:
            raise error_from_response(response)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiResponseError(
                "Failed to parse response.", status_code=response.status_code,
            ) from exc

    async def _request_object(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        body = await self._request(method, path, **kwargs)
        if not isinstance(body, dict):
            raise ApiResponseError("Unexpected response shape: expected an object.")
        return body

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    async def whoami(self) -> UserInfo:
        body = await self._request_object("GET", "/auth/whoami")
        return _parse(UserInfo.from_api, body)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def list_items(self) -> dict[str, Any]:
        return await self._request_object("GET", "/items")

    async def batch_read(self, requests: Sequence[RangeRequest]) -> dict[str, Any]:
        payload = {"items": [request.to_payload() for request in requests]}
        return await self._request_object("POST", "/items/batch", json=payload)

    async def batch_toc(self, ids: Sequence[str]) -> dict[str, Any]:
        return await self._request_object("POST", "/items/batch/toc", json={"ids": list(ids)})

    async def delete_items(self, ids: Sequence[str]) -> dict[str, Any]:
        return await self._request_object("DELETE", "/items", json={"ids": list(ids)})

    async def enrich_item(
        self,
        item_id: str,
        *,
        title: str | None = None,
        author: str | None = None,
        description: str | None = None,
        confidence: float | None = None,
        toc: Sequence[TocEntry] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"itemId": item_id}
        optional = {
            "title": title,
            "author": author,
            "description": description,
            "confidence": confidence,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        if toc is not None:
            payload["toc"] = [entry.to_payload() for entry in toc]
        return await self._request_object("PATCH", "/items/enrich", json=payload)

    async def flag_item(self, item_id: str) -> dict[str, Any]:
        return await self._request_object("POST", "/items/flag", json={"itemId": item_id})

    # ------------------------------------------------------------------
    # Markdown documents
    # ------------------------------------------------------------------

    async def create_markdown(
        self,
        title: str,
        *,
        description: str | None = None,
        content: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": title}
        if description is not None:
            payload["description"] = description
        if content is not None:
            payload["content"] = content
        return await self._request_object("POST", "/items/markdown", json=payload)

    async def get_content(self, item_id: str) -> dict[str, Any]:
        return await self._request_object("GET", f"/items/{item_id}/content")

    async def put_content(self, item_id: str, content: str) -> dict[str, Any]:
        return await self._request_object(
            "PUT", f"/items/{item_id}/content", json={"content": content},
        )

    # ------------------------------------------------------------------
    # Upload protocol (ticket + commit)
    # ------------------------------------------------------------------

    async def create_upload(self, filename: str, size: int, content_type: str) -> UploadTicket:
        body = await self._request_object(
            "POST",
            "/upload",
            json={"filename": filename, "size": size, "contentType": content_type},
        )
        return _parse(UploadTicket.from_api, body)

    async def confirm_upload(self, item_id: str, storage_key: str) -> TransferOutcome:
        body = await self._request_object(
            "POST",
            "/upload/confirm",
            json={"itemId": item_id, "storageKey": storage_key},
        )
        return _parse(TransferOutcome.from_api, body)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def list_sources(self, limit: int = 50) -> dict[str, Any]:
        return await self._request_object("GET", "/sources", params={"limit": limit})

    async def delete_sources(self, ids: Sequence[str]) -> dict[str, Any]:
        return await self._request_object("DELETE", "/sources", json={"ids": list(ids)})


def _parse(factory: Any, body: dict[str, Any]) -> Any:
    """Run a ``from_api`` factory, mapping shape errors to ApiResponseError."""
    try:
        return factory(body)
    except (KeyError, TypeError, ValueError) as exc:
        raise ApiResponseError(f"Unexpected response shape: missing {exc}") from exc
