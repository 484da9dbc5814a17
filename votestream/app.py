# ==============================================
# VoteStreamApp — Orchestrator
# ==============================================
#
# PURPOSE:
#   Wires the threads together and runs the two-phase drain.
#
#   ┌────────────┐   VoteEvent   ┌───────────┐   publish   ┌──────┐
#   │StreamReader│ ────────────► │ VoteQueue │ ──────────► │ sink │
#   └─────▲──────┘               └───────────┘ VotePublisher└──────┘
#         │ force_close / stop
#   ┌─────┴──────────────┐   ┌───────────────────┐
#   │ PeriodicRefresher  │   │ShutdownCoordinator│ ◄── SIGINT/SIGTERM
#   └────────────────────┘   └───────────────────┘
#
# RUN ORDER:
#   1. start publisher, then reader
#   2. start shutdown listener and refresher
#   3. wait for the reader to report stopped
#   4. close the vote queue (no producer writes after this)
#   5. wait for the publisher to report stopped (queue drained)
#
#   Steps 3 and 5 are bounded by shutdown_timeout once a stop has been
#   requested. If the reader misses its deadline the queue is left open
#   and run() returns 1; all threads are daemons so the process still
#   exits.
#
# ==============================================

import logging
import threading
from typing import Optional

from votestream.config import AppConfig
from votestream.publishing.publisher import VotePublisher, VoteSink
from votestream.publishing.vote_queue import VoteQueue
from votestream.shutdown import ShutdownCoordinator
from votestream.state import StopState
from votestream.stream.connection import ConnectionManager
from votestream.stream.reader import RequestSigner, StreamReader, TermProvider
from votestream.stream.refresher import PeriodicRefresher
from votestream.stream.signer import OAuth1Signer
from votestream.stream.transport import build_session

logger = logging.getLogger(__name__)


class VoteStreamApp:
    """Owns every pipeline component for one process lifetime."""

    def __init__(
        self,
        config: AppConfig,
        provider: TermProvider,
        sink: VoteSink,
        signer: Optional[RequestSigner] = None,
        session=None,
        connection_manager: Optional[ConnectionManager] = None,
    ):
        """
        Build the pipeline. Credentials and the HTTP client are set up
        here, before any thread starts.

        Args:
            config: Validated application configuration.
            provider: Filter-term provider (load_options()).
            sink: Vote sink (publish(), stop()).
            signer: Request signer; defaults to OAuth1 from config.twitter.
            session: HTTP client; defaults to one dialing via the manager.
            connection_manager: Defaults to a new ConnectionManager.
        """
        self.config = config
        self.stop_state = StopState()
        self.connections = connection_manager or ConnectionManager(
            dial_timeout=config.stream.dial_timeout_seconds
        )
        self.votes = VoteQueue()

        self.reader = StreamReader(
            provider=provider,
            signer=signer or OAuth1Signer.from_config(config.twitter),
            session=session if session is not None else build_session(self.connections),
            connection_manager=self.connections,
            votes=self.votes,
            stop_state=self.stop_state,
            stream_url=config.twitter.stream_url,
            retry_delay=config.stream.retry_delay_seconds,
        )
        self.publisher = VotePublisher(self.votes, sink)
        self.refresher = PeriodicRefresher(
            self.connections,
            self.stop_state,
            interval=config.stream.refresh_interval_seconds,
        )
        self.coordinator = ShutdownCoordinator(
            self.stop_state,
            self.connections,
            notify_stop=self.reader.request_stop,
        )

    def stop(self) -> None:
        """Request shutdown, same as receiving SIGTERM."""
        self.coordinator.trigger()

    def run(self, install_signals: bool = True) -> int:
        """
        Run until stopped and drained.

        Returns:
            0 after a complete drain, 1 if a drain phase timed out.
        """
        timeout = self.config.stream.shutdown_timeout

        publisher_stopped = self.publisher.start()
        reader_stopped = self.reader.start()
        if install_signals:
            self.coordinator.install()
        else:
            self.coordinator.start()
        self.refresher.start()
        logger.info("✓ Pipeline running, press Ctrl+C to stop")

        try:
            self._wait_for_stop_request(reader_stopped)

            if not reader_stopped.wait(timeout):
                logger.error("✗ Stream reader did not stop within %.1fs, leaving vote queue open", timeout)
                return 1
            logger.info("Stream reader status: %s", self.reader.get_status())

            self.votes.close()

            if not publisher_stopped.wait(timeout):
                logger.error("✗ Publisher did not drain within %.1fs (%d votes pending)",
                             timeout, self.votes.qsize())
                return 1
        finally:
            if install_signals:
                self.coordinator.uninstall()

        self.refresher.join(timeout=1.0)
        logger.info("✓ Shutdown complete")
        return 0

    def _wait_for_stop_request(self, reader_stopped: threading.Event) -> None:
        while not self.coordinator.handled.wait(1.0):
            if reader_stopped.is_set():
                logger.error("✗ Stream reader exited without a stop request")
                self.stop_state.set()
                return
