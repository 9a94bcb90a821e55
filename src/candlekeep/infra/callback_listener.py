"""Infrastructure: single-use loopback listener for the login callback.

The listener binds ``127.0.0.1`` on an ephemeral port, accepts exactly
one connection on a dedicated worker thread and hands the outcome back
through a :class:`concurrent.futures.Future`.  The listening socket is
closed immediately after that first accept, whatever its outcome, so
no local port stays open for another process to hit.

Rules
-----
* No user-facing output.
* Bind failures raise :class:`~candlekeep.exceptions.ListenerBindFailedError`;
  accept and read failures reach the future as ``OSError``.
"""

from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import Future

from candlekeep.core.callback import SUCCESS_RESPONSE, parse_callback_request_line
from candlekeep.core.models import CallbackResult
from candlekeep.exceptions import CallbackMalformedError, ListenerBindFailedError

logger = logging.getLogger(__name__)

LOOPBACK_HOST: str = "127.0.0.1"
MAX_REQUEST_LINE: int = 8192
READ_TIMEOUT: float = 10.0


class CallbackListener:
    """Bound loopback socket that serves one callback.

    Usage::

        listener = CallbackListener.bind()
        future = listener.start()
        result = future.result()
        listener.close()
    """

    def __init__(self, sock: socket.socket) -> None:
        self._sock: socket.socket | None = sock
        self._port: int = sock.getsockname()[1]
        self._lock = threading.Lock()
        self._started = False

    @classmethod
    def bind(cls, host: str = LOOPBACK_HOST, port: int = 0) -> CallbackListener:
        """Bind and listen; ``port=0`` lets the OS pick a free port.

        Raises
        ------
        ListenerBindFailedError
            When the socket cannot be created or bound.
        """
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as exc:
            raise ListenerBindFailedError(f"Failed to start local server: {exc}") from exc
        try:
            sock.bind((host, port))
            sock.listen(1)
        except OSError as exc:
            sock.close()
            raise ListenerBindFailedError(f"Failed to start local server: {exc}") from exc
        logger.debug("Callback listener bound on %s:%d", host, sock.getsockname()[1])
        return cls(sock)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def port(self) -> int:
        return self._port

    @property
    def closed(self) -> bool:
        return self._sock is None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> Future[CallbackResult]:
        """Run :meth:`serve_once` on a daemon worker thread.

        Returns a future that resolves exactly once.  May only be
        called once per listener.
        """
        with self._lock:
            if self._started:
                raise RuntimeError("Callback listener already started.")
            self._started = True

        future: Future[CallbackResult] = Future()

        def _worker() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = self.serve_once()
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

        threading.Thread(target=_worker, name="ck-login-callback", daemon=True).start()
        return future

    def serve_once(self) -> CallbackResult:
        """Block for one connection and return its credential.

        The listening socket is closed as soon as ``accept()`` returns.

        Raises
        ------
        CallbackMalformedError
            When the request line carries no credential (no response
            is written; the connection is dropped).
        OSError
            When the listener was closed, or ``accept()`` or the read fails.
        """
        sock = self._sock
        if sock is None:
            raise OSError("Callback listener is closed.")
        try:
            conn, peer = sock.accept()
        finally:
            self.close()

        with conn:
            logger.debug("Callback connection from %s:%d", *peer[:2])
            conn.settimeout(READ_TIMEOUT)
            request_line = self._read_request_line(conn)
            result = parse_callback_request_line(request_line)
            conn.sendall(SUCCESS_RESPONSE)
        return result

    def close(self) -> None:
        """Close the listening socket (idempotent).

        ``shutdown`` first so a thread blocked in ``accept()`` wakes up.
        """
        with self._lock:
            sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # not connected; nothing to shut down
        sock.close()
        logger.debug("Callback listener on port %d closed", self._port)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_request_line(conn: socket.socket) -> str:
        with conn.makefile("rb") as stream:
            raw = stream.readline(MAX_REQUEST_LINE)
        try:
            return raw.decode("ascii")
        except UnicodeDecodeError as exc:
            raise CallbackMalformedError("Invalid callback request.") from exc
