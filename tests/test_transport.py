# ==============================================
# Tests for the managed requests transport
# ==============================================

import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer, ThreadingHTTPServer

import pytest
import requests

from conftest import FakeProvider, FakeSigner, wait_for
from votestream.publishing.vote_queue import VoteQueue
from votestream.state import ReaderState, StopState
from votestream.stream.connection import ConnectionManager
from votestream.stream.reader import StreamReader
from votestream.stream.transport import ManagedTransportAdapter, build_session


class _Handler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        payload = b'{"text":"' + body + b'"}'
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def http_server():
    server = HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


class TestManagedTransport:
    def test_adapters_mounted(self):
        session = build_session(ConnectionManager())
        assert isinstance(session.get_adapter("https://stream.example.com/"), ManagedTransportAdapter)
        assert isinstance(session.get_adapter("http://localhost/"), ManagedTransportAdapter)

    def test_request_dials_through_manager(self, http_server):
        manager = ConnectionManager(dial_timeout=2.0)
        session = build_session(manager)
        host, port = http_server.server_address

        response = session.post(f"http://{host}:{port}/stream", data="track=cats", stream=True)
        assert response.status_code == 200
        assert response.json() == {"text": "track=cats"}
        assert manager.dial_count == 1
        response.close()
        manager.force_close()

    def test_dial_failure_is_requests_error(self):
        spare = socket.create_server(("127.0.0.1", 0))
        host, port = spare.getsockname()
        spare.close()
        session = build_session(ConnectionManager(dial_timeout=1.0))
        with pytest.raises(requests.ConnectionError):
            session.post(f"http://{host}:{port}/", data="x")


class _StreamingHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Transfer-Encoding", "chunked")
        self.end_headers()
        chunk = b'{"text":"I love cats"}\r\n'
        self.wfile.write(b"%x\r\n%s\r\n" % (len(chunk), chunk))
        self.wfile.flush()
        # Then go silent, like a stream with no matching statuses
        self.server.release.wait(5.0)

    def log_message(self, format, *args):
        pass


class _CloseDelimitedHandler(BaseHTTPRequestHandler):
    """No chunking and no Content-Length: the body ends when the connection does."""

    protocol_version = "HTTP/1.1"

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Connection", "close")
        self.end_headers()
        for _ in range(3):
            self.wfile.write(b'{"text":"I love cats"}\r\n')
            self.wfile.flush()
            time.sleep(0.2)
        self.server.release.wait(5.0)

    def log_message(self, format, *args):
        pass


def _serve(handler):
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    server.daemon_threads = True
    server.release = threading.Event()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def _stop(server):
    server.release.set()
    server.shutdown()
    server.server_close()


@pytest.fixture
def streaming_server():
    server = _serve(_StreamingHandler)
    yield server
    _stop(server)


@pytest.fixture
def close_delimited_server():
    server = _serve(_CloseDelimitedHandler)
    yield server
    _stop(server)


def make_reader(server, manager, stop_state):
    host, port = server.server_address
    return StreamReader(
        provider=FakeProvider(["cats"]),
        signer=FakeSigner(),
        session=build_session(manager),
        connection_manager=manager,
        votes=VoteQueue(),
        stop_state=stop_state,
        stream_url=f"http://{host}:{port}/1.1/statuses/filter.json",
        retry_delay=0.01,
    )


class TestForceCloseDuringDecode:
    def test_silent_stream_interrupted(self, streaming_server):
        """force_close() ends a decode that is waiting on a silent stream."""
        manager = ConnectionManager(dial_timeout=2.0)
        stop_state = StopState()
        reader = make_reader(streaming_server, manager, stop_state)

        reader.start()
        assert wait_for(lambda: reader.get_status()["votes_emitted"] == 1)
        assert reader.state is ReaderState.DECODING

        manager.force_close()
        assert wait_for(lambda: reader.get_status()["iterations"] >= 2)
        assert reader.get_status()["last_error"].startswith("Stream ended")

        stop_state.set()
        manager.force_close()
        assert reader.stopped.wait(2.0)
        assert manager.dial_count >= 2


class TestCloseDelimitedStream:
    def test_records_decoded_while_connection_open(self, close_delimited_server):
        """Records on a body framed only by connection close are matched as they arrive."""
        manager = ConnectionManager(dial_timeout=2.0)
        stop_state = StopState()
        reader = make_reader(close_delimited_server, manager, stop_state)

        reader.start()
        assert wait_for(lambda: reader.get_status()["votes_emitted"] >= 2)
        assert reader.get_status()["iterations"] == 1
        assert wait_for(lambda: reader.get_status()["votes_emitted"] == 3)
        assert reader.state is ReaderState.DECODING

        stop_state.set()
        manager.force_close()
        assert reader.stopped.wait(2.0)
