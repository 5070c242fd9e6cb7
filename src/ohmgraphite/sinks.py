from __future__ import annotations

import socket
import threading
from datetime import datetime
from typing import Any, Callable, Final, Iterable, Optional, Tuple

from .errors import LockUnavailableError
from .format import format_graphite_line
from .log import get_logger
from .models import Reading

"""
Graphite sink: one persistent TCP connection to a carbon receiver.

report_metrics(report_time, readings):
  - waits at most lock_timeout (1 s) for exclusive use of the connection
  - reconnects when the previous attempt failed or the socket is gone
  - writes one line per reading, UTF-8, newline-terminated, then flushes
  - transport errors mark the connection failed and propagate; no retry here,
    the next poll tick is the retry
"""

_LOG = get_logger(__name__)

# This is the newline character.
_NEWLINE: Final[str] = "\n"
_LOCK_TIMEOUT_SEC: Final[float] = 1.0

Connector = Callable[..., socket.socket]


class GraphiteWriter:
    def __init__(
        self,
        remote_host: str,
        remote_port: int,
        local_host: str,
        tags: bool,
        *,
        lock_timeout: float = _LOCK_TIMEOUT_SEC,
        connect_timeout: Optional[float] = None,
        connect: Connector = socket.create_connection,
    ) -> None:
        self._remote_host = remote_host
        self._remote_port = remote_port
        self._local_host = local_host
        self._tags = tags
        self._lock_timeout = lock_timeout
        self._connect_timeout = connect_timeout
        self._connect = connect

        self._lock = threading.Lock()
        self._sock: Optional[socket.socket] = None
        # Start as failed so the first report opens the connection.
        self._failure = True

    @property
    def address(self) -> Tuple[str, int]:
        return (self._remote_host, self._remote_port)

    def report_metrics(self, report_time: datetime, readings: Iterable[Reading]) -> None:
        """Send one batch. Raises LockUnavailableError or OSError; the batch is then dropped."""
        # The connection is kept open across reports, so only one thread may
        # use it at a time. Reports overlap when polling and writing take
        # longer than the interval; don't let an unbounded number of threads
        # wait, give up after lock_timeout.
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise LockUnavailableError("unable to acquire lock on graphite connection")
        try:
            self._send(report_time, readings)
        finally:
            self._lock.release()

    def _is_connected(self) -> bool:
        return self._sock is not None and self._sock.fileno() != -1

    def _open(self) -> socket.socket:
        kwargs: dict[str, Any] = {}
        if self._connect_timeout is not None:
            kwargs["timeout"] = self._connect_timeout
        return self._connect(self.address, **kwargs)

    def _send(self, report_time: datetime, readings: Iterable[Reading]) -> None:
        try:
            if self._failure or not self._is_connected():
                self._close_socket()
                _LOG.debug("New connection to %s:%s", self._remote_host, self._remote_port)
                self._sock = self._open()
            sock = self._sock

            # All lines of a report carry the same timestamp, however long the
            # readings take to render.
            epoch = int(report_time.timestamp())

            # Closing the file object leaves the socket itself open. If rendering
            # raises partway, leaving the block still flushes the lines already
            # written; the error propagates and the connection is kept.
            with sock.makefile("w", encoding="utf-8", newline=_NEWLINE) as stream:
                for reading in readings:
                    line = format_graphite_line(
                        epoch, reading, tags=self._tags, host=self._local_host
                    )
                    stream.write(line + _NEWLINE)
                stream.flush()

            self._failure = False
        except OSError:
            self._failure = True
            raise

    def _close_socket(self) -> None:
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as e:
            _LOG.debug("error closing graphite socket: %s", e)

    def close(self) -> None:
        """Release the connection. Safe to call repeatedly or before any report."""
        # Wait (bounded) for an in-flight report; close regardless, its write
        # then fails as a network error.
        locked = self._lock.acquire(timeout=self._lock_timeout)
        try:
            self._close_socket()
            self._failure = True
        finally:
            if locked:
                self._lock.release()

    def __enter__(self) -> "GraphiteWriter":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = ["GraphiteWriter"]
