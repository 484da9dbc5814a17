# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fakes for the pipeline's collaborators:
#   - FakeProvider            poll options per attempt (or an exception)
#   - FakeSigner              fixed Authorization header, records calls
#   - FakeResponse            streaming body, optionally blocking until closed
#   - FakeSession             records POST bodies, hands out FakeResponses
#   - FakeConnectionManager   counts force-closes, closes the attached reader
#   - FakeSink                collects published votes, optional gate
#
# ==============================================

import json
import threading
import time

import pytest
import requests

from votestream.config import AppConfig, StreamConfig, TwitterConfig


def wait_for(predicate, timeout=2.0, interval=0.01):
    """Poll `predicate` until true or `timeout` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeProvider:
    def __init__(self, *results):
        self._results = list(results)
        self.calls = 0

    def load_options(self):
        self.calls += 1
        result = self._results[min(self.calls, len(self._results)) - 1]
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeSigner:
    def __init__(self):
        self.calls = []

    def authorization_header(self, method, url, params):
        self.calls.append((method, url, dict(params)))
        return "OAuth test"


class FakeResponse:
    def __init__(self, chunks=(), status_code=200, block=False):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.block = block
        self.closed = threading.Event()
        self._position = 0

    @property
    def raw(self):
        return self

    def read1(self, amt=None, decode_content=None):
        if self.closed.is_set():
            raise requests.ConnectionError("connection closed")
        if self._position < len(self.chunks):
            self._position += 1
            return self.chunks[self._position - 1]
        if self.block:
            self.closed.wait(5.0)
            raise requests.ConnectionError("connection closed")
        return b""

    def close(self):
        self.closed.set()


class FakeSession:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.requests = []

    def post(self, url, data=None, headers=None, stream=False):
        self.requests.append({"url": url, "data": data, "headers": headers, "stream": stream})
        index = min(len(self.requests), len(self._responses)) - 1
        return self._responses[index]

    @property
    def bodies(self):
        return [r["data"] for r in self.requests]


class FakeConnectionManager:
    def __init__(self):
        self.lock = threading.Lock()
        self.reader = None
        self.force_close_count = 0

    def attach_reader(self, reader):
        with self.lock:
            self.reader = reader
        return True

    def detach_reader(self, reader):
        with self.lock:
            if self.reader is reader:
                self.reader = None

    def force_close(self):
        with self.lock:
            self.force_close_count += 1
            reader, self.reader = self.reader, None
        if reader is not None:
            reader.close()


class FakeSink:
    def __init__(self, fail_on=(), gate=None):
        self.published = []
        self.fail_on = set(fail_on)
        self.gate = gate
        self.stopped = False

    def publish(self, message):
        if self.gate is not None:
            self.gate.wait(5.0)
        if message in self.fail_on:
            raise RuntimeError(f"cannot publish {message}")
        self.published.append(message)

    def stop(self):
        self.stopped = True


def record(text):
    """One stream unit as bytes."""
    return json.dumps({"text": text}).encode("utf-8")


@pytest.fixture
def fast_config():
    """Configuration with credentials and short timings."""
    return AppConfig(
        twitter=TwitterConfig(
            consumer_key="ck",
            consumer_secret="cs",
            access_token="at",
            access_secret="as",
            stream_url="https://stream.example.com/1.1/statuses/filter.json",
        ),
        stream=StreamConfig(
            dial_timeout_seconds=1.0,
            retry_delay_seconds=0.01,
            refresh_interval_seconds=60.0,
            shutdown_timeout_seconds=2.0,
        ),
    )
