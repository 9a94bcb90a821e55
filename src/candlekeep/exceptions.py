"""Custom exception hierarchy for candlekeep-cli.

All exceptions that cross layer boundaries must inherit from
:class:`CandleKeepError`.  Raw third-party exceptions (httpx, socket,
TOML parsing) must NEVER propagate beyond the infrastructure layer —
they must be caught and re-raised as a typed subclass defined here.

Hierarchy
---------
CandleKeepError
├── ConfigError
├── NotAuthenticatedError
├── InvalidInputError
├── SelectorError
│   ├── EmptyInputError
│   ├── EmptyIdentifierError
│   └── MissingSelectorError
├── AuthFlowError
│   ├── ListenerBindFailedError
│   ├── CallbackMalformedError
│   ├── CallbackTimedOutError
│   └── CredentialInvalidError
├── UploadError
│   ├── UploadInputError
│   │   └── UnsupportedFileTypeError
│   ├── StaleTicketError
│   └── UploadPhaseError
│       ├── TicketRequestFailedError
│       ├── TransferFailedError
│       └── CommitFailedError
├── ApiError
│   ├── AuthenticationError
│   ├── AccessDeniedError
│   ├── NotFoundError
│   ├── BadRequestError
│   ├── ApiConnectionError
│   └── ApiResponseError
└── EnvironmentError
"""

from __future__ import annotations


class CandleKeepError(Exception):
    """Base exception for all candlekeep-cli errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Configuration / session -----------------------------------------------

class ConfigError(CandleKeepError):
    """Raised when the persisted configuration cannot be read or written."""


class NotAuthenticatedError(CandleKeepError):
    """Raised when a command needs a stored credential and none exists."""

    def __init__(self, message: str = "Not authenticated.") -> None:
        super().__init__(message, hint="Run 'ck auth login' first.")


class InvalidInputError(CandleKeepError):
    """Raised when command arguments fail local validation."""


# --- Page-range selectors --------------------------------------------------

class SelectorError(CandleKeepError):
    """Base class for selector-list parsing failures."""

    def __init__(
        self,
        message: str,
        *,
        tokens: tuple[str, ...] = (),
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.tokens: tuple[str, ...] = tokens
        """The offending input tokens, in input order."""


class EmptyInputError(SelectorError):
    """Raised when an ID list contains no non-empty tokens."""


class EmptyIdentifierError(SelectorError):
    """Raised when a token has nothing on one side of its ``:``."""


class MissingSelectorError(SelectorError):
    """Raised when one or more tokens carry no ``:selector`` part."""


# --- Browser login ---------------------------------------------------------

class AuthFlowError(CandleKeepError):
    """Base class for the interactive login flow."""


class ListenerBindFailedError(AuthFlowError):
    """Raised when the local callback listener cannot be bound."""


class CallbackMalformedError(AuthFlowError):
    """Raised when the inbound callback does not carry a credential."""


class CallbackTimedOutError(AuthFlowError):
    """Raised when a caller-imposed callback deadline expires."""


class CredentialInvalidError(AuthFlowError):
    """Raised when a candidate credential is rejected by the service."""


# --- Upload ----------------------------------------------------------------

class UploadError(CandleKeepError):
    """Base class for upload failures."""


class UploadInputError(UploadError):
    """Raised when the local file cannot be uploaded at all."""


class UnsupportedFileTypeError(UploadInputError):
    """Raised when the file extension maps to no supported content type."""


class StaleTicketError(UploadError):
    """Raised when an upload ticket is used out of order or more than once."""


class UploadPhaseError(UploadError):
    """Failure of one phase of the three-phase upload protocol."""

    phase: str = "upload"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)


class TicketRequestFailedError(UploadPhaseError):
    """Raised when the service refuses to issue an upload ticket."""

    phase = "ticket"


class TransferFailedError(UploadPhaseError):
    """Raised when the direct transfer to storage fails."""

    phase = "transfer"


class CommitFailedError(UploadPhaseError):
    """Raised when the service rejects the commit of a finished transfer."""

    phase = "commit"


# --- Remote API ------------------------------------------------------------

class ApiError(CandleKeepError):
    """Raised for a non-success response from the CandleKeep API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code: int | None = status_code


class AuthenticationError(ApiError):
    """HTTP 401 — the credential is missing, malformed or revoked."""


class AccessDeniedError(ApiError):
    """HTTP 403 — the credential is valid but lacks permission."""


class NotFoundError(ApiError):
    """HTTP 404."""


class BadRequestError(ApiError):
    """HTTP 400."""


class ApiConnectionError(ApiError):
    """Raised when the API cannot be reached at all."""


class ApiResponseError(ApiError):
    """Raised when a success response carries an unusable body."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(CandleKeepError):
    """Raised when a required runtime dependency is not available."""
