# ==============================================
# StreamReader — retrying read / decode / match loop
# ==============================================
#
# PURPOSE:
#   Keeps one filtered streaming request open at a time and turns
#   every matching status into VoteEvents on the VoteQueue.
#
# LOOP (one iteration = one connection):
#
#   fetching-terms ──► requesting ──► decoding ──┐
#        │ (error / no terms)  │ (error)          │ (any error / EOF /
#        ▼                     ▼                  ▼  forced close)
#   ┌──────────────── backing-off ◄──────────────┘
#   │       │ stop requested
#   │       ▼
#   │    stopped
#   └─► fetching-terms ...
#
#   Every failure inside an iteration ends it the same way; none of
#   them escape the thread. The only exit is a stop request, checked
#   once between iterations (and while backing off).
#
# CLASS: StreamReader
# -------------------
#   - start() -> threading.Event     ("stopped" signal)
#   - request_stop() -> None         stop-notification channel
#   - run_iteration() -> None        one connect/decode cycle
#   - get_status() -> dict
#
# ==============================================

import logging
import threading
import time
from typing import List, Optional, Protocol
from urllib.parse import urlencode

from votestream.errors import QueueClosedError
from votestream.models import VoteEvent, match_terms
from votestream.publishing.vote_queue import VoteQueue
from votestream.state import ReaderState, StopState
from votestream.stream.connection import ConnectionManager
from votestream.stream.decoder import iter_records
from votestream.stream.signer import FORM_CONTENT_TYPE
from votestream.stream.transport import iter_available

logger = logging.getLogger(__name__)

TRACK_PARAM = "track"


class TermProvider(Protocol):
    def load_options(self) -> List[str]: ...


class RequestSigner(Protocol):
    def authorization_header(self, method: str, url: str, params) -> str: ...


class StreamReader:
    """Producer side of the pipeline."""

    def __init__(
        self,
        provider: TermProvider,
        signer: RequestSigner,
        session,
        connection_manager: ConnectionManager,
        votes: VoteQueue,
        stop_state: StopState,
        stream_url: str,
        retry_delay: float = 10.0,
    ):
        self._provider = provider
        self._signer = signer
        self._session = session
        self._connections = connection_manager
        self._votes = votes
        self._stop_state = stop_state
        self._stream_url = stream_url
        self._retry_delay = retry_delay

        self._stop_requested = threading.Event()
        self.stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.state = ReaderState.IDLE
        self._iterations = 0
        self._records_decoded = 0
        self._votes_emitted = 0
        self._last_error: Optional[str] = None

    def start(self) -> threading.Event:
        """Run the loop on a daemon thread; returns the `stopped` event."""
        self._thread = threading.Thread(target=self.run, name="stream-reader", daemon=True)
        self._thread.start()
        return self.stopped

    def request_stop(self) -> None:
        """Ask the loop to exit at its next check point."""
        self._stop_requested.set()

    def _should_stop(self) -> bool:
        return self._stop_requested.is_set() or self._stop_state.is_set()

    def run(self) -> None:
        try:
            while not self._should_stop():
                logger.info("Querying stream...")
                self.run_iteration()
                if self._should_stop():
                    break
                self.state = ReaderState.BACKING_OFF
                logger.info("  (waiting %.1fs before reconnecting)", self._retry_delay)
                self._stop_state.wait(self._retry_delay)
        finally:
            self.state = ReaderState.STOPPED
            logger.info("Stream reader stopped")
            self.stopped.set()

    def run_iteration(self) -> None:
        """One fetch-terms / request / decode cycle. Never raises."""
        self._iterations += 1

        self.state = ReaderState.FETCHING_TERMS
        try:
            terms = list(self._provider.load_options())
        except Exception as e:
            self._record_error("Failed to load options", e)
            return

        if not terms:
            logger.warning("⚠ No poll options loaded, not opening the stream")
            return

        self.state = ReaderState.REQUESTING
        params = {TRACK_PARAM: ",".join(terms)}
        try:
            response = self._open_stream(params)
        except Exception as e:
            self._record_error("Making request failed", e)
            return

        if not self._connections.attach_reader(response):
            logger.info("Connection closed before decoding started")
            return

        self.state = ReaderState.DECODING
        try:
            for record in iter_records(iter_available(response)):
                self._records_decoded += 1
                for term in match_terms(record.text, terms):
                    self._emit(VoteEvent(term))
        except Exception as e:
            # EOF, malformed data, network error and forced close all end
            # up here and are treated the same way.
            self._record_error("Stream ended", e, level=logging.INFO)
        finally:
            self._connections.detach_reader(response)
            response.close()

    def _open_stream(self, params):
        body = urlencode(params)
        headers = {
            "Content-Type": FORM_CONTENT_TYPE,
            "Authorization": self._signer.authorization_header("POST", self._stream_url, params),
        }
        response = self._session.post(self._stream_url, data=body, headers=headers, stream=True)
        if response.status_code >= 300:
            response.close()
            raise RuntimeError(f"stream endpoint returned HTTP {response.status_code}")
        return response

    def _emit(self, vote: VoteEvent) -> None:
        logger.info("vote: %s", vote.term)
        try:
            self._votes.put(vote)
        except QueueClosedError:
            logger.error("✗ Vote queue closed, dropping vote for %r", vote.term)
            return
        self._votes_emitted += 1

    def _record_error(self, message: str, error: Exception, level: int = logging.WARNING) -> None:
        self._last_error = f"{message}: {error}"
        logger.log(level, "%s: %s", message, error)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def get_status(self) -> dict:
        return {
            "state": self.state.value,
            "iterations": self._iterations,
            "records_decoded": self._records_decoded,
            "votes_emitted": self._votes_emitted,
            "last_error": self._last_error,
            "timestamp": time.time(),
        }
