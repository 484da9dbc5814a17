import logging
import threading
from typing import Optional, Protocol

from votestream.publishing.vote_queue import VoteQueue

logger = logging.getLogger(__name__)


class VoteSink(Protocol):
    def publish(self, message: str) -> None: ...

    def stop(self) -> None: ...


class VotePublisher:
    """
    Consumer side of the pipeline.

    Forwards every queued vote to the sink until the queue is closed and
    drained, then stops the sink and sets `stopped`. Sink failures are
    logged per vote and never retried.
    """

    def __init__(self, votes: VoteQueue, sink: VoteSink):
        self._votes = votes
        self._sink = sink
        self.stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.published = 0
        self.failed = 0

    def start(self) -> threading.Event:
        self._thread = threading.Thread(target=self.run, name="publisher", daemon=True)
        self._thread.start()
        return self.stopped

    def run(self) -> None:
        try:
            for vote in self._votes:
                try:
                    self._sink.publish(vote.term)
                    self.published += 1
                except Exception as e:
                    self.failed += 1
                    logger.error("✗ Failed to publish vote for %r: %s", vote.term, e)
            logger.info("Publisher: Stopping")
            try:
                self._sink.stop()
            except Exception as e:
                logger.error("✗ Error stopping sink: %s", e)
            logger.info("Publisher: Stopped (%d published, %d failed)", self.published, self.failed)
        finally:
            self.stopped.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
