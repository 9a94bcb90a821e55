"""Core / service layer — business logic and data transformations.

Rules
-----
* No ``print()`` calls.
* No direct network or filesystem I/O — adapters are injected.
* No imports from ``cli`` or ``infra``.
* Parsing and validation functions are pure and deterministic.
"""

from candlekeep.core.login_service import LoginService
from candlekeep.core.models import (
    CallbackResult,
    LoginOutcome,
    RangeRequest,
    TocEntry,
    TransferOutcome,
    UploadRequest,
    UploadTicket,
    UserInfo,
)
from candlekeep.core.range_selector import parse_ids, parse_range_selectors
from candlekeep.core.upload_service import UploadService, content_type_for

__all__: list[str] = [
    "CallbackResult",
    "LoginOutcome",
    "LoginService",
    "RangeRequest",
    "TocEntry",
    "TransferOutcome",
    "UploadRequest",
    "UploadService",
    "UploadTicket",
    "UserInfo",
    "content_type_for",
    "parse_ids",
    "parse_range_selectors",
]
