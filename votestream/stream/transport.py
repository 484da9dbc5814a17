"""
requests transport whose sockets come from a ConnectionManager.

urllib3 normally opens sockets itself. The adapter below swaps in
connection classes whose _new_conn() goes through ConnectionManager.dial,
so every request the reader makes runs on the one tracked connection
that the refresher and the shutdown path can force-close.
"""

import socket

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.exceptions import ConnectTimeoutError, NewConnectionError

from votestream.stream.connection import ConnectionManager


class _ManagedConnectionMixin:
    connection_manager: ConnectionManager = None

    def _new_conn(self):
        address = (self._dns_host, self.port)
        try:
            handle = self.connection_manager.dial(address)
        except socket.timeout as e:
            raise ConnectTimeoutError(
                self,
                f"Connection to {self.host} timed out. "
                f"(connect timeout={self.connection_manager.dial_timeout})"
            ) from e
        except OSError as e:
            raise NewConnectionError(
                self, f"Failed to establish a new connection: {e}"
            ) from e
        return handle.sock


class ManagedTransportAdapter(HTTPAdapter):
    """HTTPAdapter that dials through a ConnectionManager."""

    def __init__(self, connection_manager: ConnectionManager, **kwargs):
        # HTTPAdapter.__init__ calls init_poolmanager, which needs this
        self.connection_manager = connection_manager
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        attrs = {"connection_manager": self.connection_manager}
        http_conn = type("ManagedHTTPConnection", (_ManagedConnectionMixin, HTTPConnection), attrs)
        https_conn = type("ManagedHTTPSConnection", (_ManagedConnectionMixin, HTTPSConnection), attrs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": type("ManagedHTTPConnectionPool", (HTTPConnectionPool,), {"ConnectionCls": http_conn}),
            "https": type("ManagedHTTPSConnectionPool", (HTTPSConnectionPool,), {"ConnectionCls": https_conn}),
        }


def build_session(connection_manager: ConnectionManager) -> requests.Session:
    """
    Create the HTTP client used for the streaming request.

    Built once at startup. Retries are disabled; the reader's own loop
    is the retry mechanism.
    """
    session = requests.Session()
    adapter = ManagedTransportAdapter(
        connection_manager,
        pool_connections=1,
        pool_maxsize=1,
        max_retries=0
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def iter_available(response, chunk_size: int = 64 * 1024):
    """
    Yield the body of a streamed response as soon as bytes arrive.

    iter_content(chunk_size=None) only returns early for chunked bodies;
    a body delimited by the connection closing (no Content-Length, no
    chunking) is read until EOF. read1() returns whatever one read from
    the socket produced, whatever the framing.
    """
    raw = response.raw
    while True:
        data = raw.read1(chunk_size, decode_content=True)
        if not data:
            return
        yield data
