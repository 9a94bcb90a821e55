"""Pure helpers for the browser-callback login.

The service redirects the browser to
``http://127.0.0.1:<port>/callback?key=<credential>``; this module
builds the URL the user opens and extracts the credential from the
request line the local listener receives.  No sockets live here.
"""

from __future__ import annotations

from urllib.parse import urlencode, urlsplit

from candlekeep.core.models import CallbackResult
from candlekeep.exceptions import CallbackMalformedError

CALLBACK_PATH: str = "/callback"
CREDENTIAL_PARAM: str = "key"

SUCCESS_RESPONSE: bytes = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/html; charset=utf-8\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"<!DOCTYPE html>\n"
    b"<html>\n"
    b"<head><title>CandleKeep CLI</title>\n"
    b"<style>body{font-family:sans-serif;display:flex;justify-content:center;"
    b"align-items:center;height:100vh;margin:0;background:#1a1a1a;color:#fff}"
    b"p{color:#888}</style>\n"
    b"</head>\n"
    b"<body><div>\n"
    b"<h1>Authentication Successful</h1>\n"
    b"<p>You can close this window and return to the terminal.</p>\n"
    b"</div></body>\n"
    b"</html>\n"
)


def build_auth_url(base_url: str, port: int) -> str:
    """Return ``<base-url>/cli-auth?port=<port>``."""
    return f"{base_url.rstrip('/')}/cli-auth?{urlencode({'port': port})}"


def parse_callback_request_line(line: str) -> CallbackResult:
    """Extract the credential from an HTTP request line.

    Only ``GET /callback?key=<credential> HTTP/1.x`` is accepted.  The
    credential is taken verbatim: keys are never percent-decoded, so a
    ``+`` stays a ``+``.

    Raises
    ------
    CallbackMalformedError
        For any other method, path, or a missing/empty ``key``.
    """
    parts = line.strip().split()
    if len(parts) < 2 or parts[0] != "GET":
        raise CallbackMalformedError("Invalid callback request.")

    target = urlsplit(parts[1])
    if target.path != CALLBACK_PATH:
        raise CallbackMalformedError("Invalid callback URL.")

    credential = _raw_param(target.query, CREDENTIAL_PARAM).strip()
    if not credential:
        raise CallbackMalformedError("Callback did not include an API key.")
    return CallbackResult(credential=credential)


def _raw_param(query: str, name: str) -> str:
    for pair in query.split("&"):
        key, sep, value = pair.partition("=")
        if sep and key == name:
            return value
    return ""
