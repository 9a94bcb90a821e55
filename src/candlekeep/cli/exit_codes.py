"""Exit-code constants used by the CLI layer.

Centralised here so scripts driving ``ck`` can tell a bad invocation
from a sign-in problem from a remote failure without parsing text.
"""

from __future__ import annotations

from candlekeep.exceptions import (
    AuthenticationError,
    CandleKeepError,
    CredentialInvalidError,
    InvalidInputError,
    NotAuthenticatedError,
    SelectorError,
    UploadInputError,
)

SUCCESS: int = 0
"""Clean exit — command completed without error."""

GENERAL_ERROR: int = 1
"""A CandleKeepError was caught and its message displayed."""

UNEXPECTED_ERROR: int = 2
"""An unhandled exception escaped all known error boundaries."""

AUTH_ERROR: int = 3
"""No credential, or the service rejected it."""

USAGE_ERROR: int = 64
"""Arguments failed local validation before any request (``EX_USAGE``)."""

KEYBOARD_INTERRUPT: int = 130
"""User pressed Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""


def for_error(exc: CandleKeepError) -> int:
    """Pick the exit code for a known error."""
    if isinstance(exc, (NotAuthenticatedError, AuthenticationError, CredentialInvalidError)):
        return AUTH_ERROR
    if isinstance(exc, (SelectorError, InvalidInputError, UploadInputError)):
        return USAGE_ERROR
    return GENERAL_ERROR
