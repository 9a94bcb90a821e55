"""Domain models for candlekeep-cli.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access and parsing of the API's JSON shapes.
They carry zero I/O and no dependencies on external packages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal


# ---------------------------------------------------------------------------
# Batch read
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RangeRequest:
    """One item of a batch-read call, with an optional page selector."""

    item_id: str
    """Library item identifier."""

    page_selector: str | None
    """Selector such as ``1-5`` or ``1,3,5``; ``None`` means all pages."""

    def to_payload(self) -> dict[str, str]:
        """Return the JSON object sent to ``POST /items/batch``."""
        payload = {"id": self.item_id}
        if self.page_selector is not None:
            payload["pages"] = self.page_selector
        return payload


# ---------------------------------------------------------------------------
# Upload protocol
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UploadRequest:
    """Descriptor of a local payload sent when requesting a ticket."""

    filename: str
    size: int
    content_type: str


@dataclass(frozen=True, slots=True)
class UploadTicket:
    """Short-lived authorisation for exactly one upload attempt.

    ``upload_url`` and ``storage_key`` belong together: the bytes go to
    the former, the latter is echoed back on commit.
    """

    item_id: str
    upload_url: str
    storage_key: str
    expires_at: datetime | None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> UploadTicket:
        """Build a ticket from the ``POST /upload`` response body.

        Raises
        ------
        KeyError
            When a mandatory key is missing.
        """
        return cls(
            item_id=str(data["itemId"]),
            upload_url=str(data["uploadUrl"]),
            storage_key=str(data["storageKey"]),
            expires_at=_parse_timestamp(data.get("expiresAt")),
        )


@dataclass(frozen=True, slots=True)
class TransferOutcome:
    """Result of a successful commit."""

    item_id: str
    title: str
    job_id: str
    job_status: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TransferOutcome:
        item = data["item"]
        job = data["job"]
        return cls(
            item_id=str(item["id"]),
            title=str(item.get("title", "")),
            job_id=str(job["id"]),
            job_status=str(job.get("status", "")),
        )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CallbackResult:
    """The single credential delivered by the browser callback."""

    credential: str


@dataclass(frozen=True, slots=True)
class UserInfo:
    """The authenticated user, as reported by ``GET /auth/whoami``."""

    id: str
    email: str
    name: str | None
    tier: str
    item_limit: int
    item_count: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> UserInfo:
        return cls(
            id=str(data["id"]),
            email=str(data["email"]),
            name=data.get("name"),
            tier=str(data.get("tier", "")),
            item_limit=int(data.get("itemLimit", 0)),
            item_count=int(data.get("itemCount", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the API-shaped dict used for ``--json`` output."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "tier": self.tier,
            "itemLimit": self.item_limit,
            "itemCount": self.item_count,
        }


LoginSource = Literal["browser", "manual", "existing"]


@dataclass(frozen=True, slots=True)
class LoginOutcome:
    """How a login attempt concluded."""

    source: LoginSource
    user: UserInfo | None = None

    @property
    def already_authenticated(self) -> bool:
        return self.source == "existing"


# ---------------------------------------------------------------------------
# Metadata enrichment
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TocEntry:
    """One table-of-contents entry supplied to ``items enrich``."""

    title: str
    page: int
    level: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": self.title, "page": self.page}
        if self.level is not None:
            payload["level"] = self.level
        return payload


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) or return ``None``."""
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
