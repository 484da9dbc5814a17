# ==============================================
# ConnectionManager
# ==============================================
#
# PURPOSE:
#   Owns the single live connection to the streaming endpoint.
#   The stream can stay silent for minutes, so the only reliable way
#   to make the reader notice new poll options or a shutdown is to
#   sever the socket underneath it. That surfaces as a read error and
#   ends the current decode loop.
#
# CLASS: ConnectionHandle
# -----------------------
#   The socket returned by dial() plus the response body reading from
#   it. A duplicate of the socket's descriptor is kept so the
#   connection can be shut down even after urllib3 has wrapped the
#   original socket in TLS (wrapping detaches it).
#
# CLASS: ConnectionManager
# ------------------------
#   - dial(address, timeout=None) -> ConnectionHandle
#       Retire the tracked handle, connect, track and return the new one.
#
#   - attach_reader(reader) / detach_reader(reader)
#       Associate the response body with the tracked handle; detaching
#       it retires the connection.
#
#   - force_close() -> None
#       Shut down the tracked socket and close its reader.
#       Idempotent and safe to call from any thread.
#
# ==============================================

import logging
import socket
import threading
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)


class ConnectionHandle:
    """A dialed socket and the response body reading from it."""

    def __init__(self, sock: socket.socket, address: Tuple[str, int]):
        self.sock = sock
        self.address = address
        self.reader: Optional[Any] = None
        self._control: Optional[socket.socket] = sock.dup()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Sever the connection and close the reader. Never raises."""
        if self._closed:
            return
        self._closed = True

        control, self._control = self._control, None
        if control is not None:
            try:
                control.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                # Already disconnected by the peer or by urllib3
                logger.debug("shutdown of %s:%s skipped: %s", *self.address, e)
            finally:
                control.close()

        reader, self.reader = self.reader, None
        if reader is not None:
            try:
                reader.close()
            except Exception as e:
                logger.debug("closing response body failed: %s", e)


class ConnectionManager:
    """Tracks at most one live ConnectionHandle for the whole process."""

    def __init__(self, dial_timeout: float = 5.0):
        self.dial_timeout = dial_timeout
        self._lock = threading.Lock()
        self._handle: Optional[ConnectionHandle] = None
        # Bumped by every force_close(); lets dial() detect a close that
        # raced with the connect it was doing outside the lock.
        self._generation = 0
        self.dial_count = 0
        self.force_close_count = 0

    @property
    def handle(self) -> Optional[ConnectionHandle]:
        with self._lock:
            return self._handle

    def dial(self, address: Tuple[str, int], timeout: Optional[float] = None) -> ConnectionHandle:
        """
        Open a new connection, retiring the tracked one first.

        Args:
            address: (host, port) to connect to.
            timeout: Connect timeout in seconds, defaults to dial_timeout.

        Returns:
            The newly tracked ConnectionHandle.

        Raises:
            OSError: if the connect fails or times out.
            ConnectionAbortedError: if force_close() ran while connecting.
        """
        self.force_close()
        with self._lock:
            generation = self._generation

        logger.debug("dialing %s:%s", *address)
        sock = socket.create_connection(
            address,
            timeout=self.dial_timeout if timeout is None else timeout
        )
        handle = ConnectionHandle(sock, address)

        with self._lock:
            if self._generation == generation:
                self._handle = handle
                self.dial_count += 1
                return handle

        handle.close()
        sock.close()
        raise ConnectionAbortedError(f"connection to {address[0]}:{address[1]} closed while dialing")

    def attach_reader(self, reader: Any) -> bool:
        """
        Track `reader` as the body of the current connection.

        Returns False, and closes the reader, when there is no live
        connection to attach to (it was force-closed in the meantime).
        """
        with self._lock:
            handle = self._handle
            if handle is not None and not handle.closed:
                handle.reader = reader
                return True
        reader.close()
        return False

    def detach_reader(self, reader: Any) -> None:
        """
        Release `reader` and the connection it was reading from.

        The reader's own close() does not reach the duplicated control
        descriptor, so the connection is retired here instead of staying
        open until the next dial() or force_close().
        """
        with self._lock:
            handle = self._handle
            if handle is None or handle.reader is not reader:
                return
            handle.reader = None
            self._handle = None
        handle.close()

    def force_close(self) -> None:
        """Close the tracked connection and its reader, if any."""
        with self._lock:
            self._generation += 1
            self.force_close_count += 1
            handle, self._handle = self._handle, None
        if handle is not None:
            logger.debug("force-closing connection to %s:%s", *handle.address)
            handle.close()
