# ==============================================
# ShutdownCoordinator
# ==============================================
#
# PURPOSE:
#   Turns SIGINT / SIGTERM into an orderly stop:
#     1. set the StopState flag (under its lock)
#     2. force-close the stream connection, so the reader does not
#        wait out a silent stream or its back-off
#     3. notify the reader's stop channel
#
#   Signal handlers only set an event; the work above happens on a
#   listener thread. A second signal has no further effect.
#
#   The two-phase drain that follows (reader -> queue close ->
#   publisher) is driven by VoteStreamApp.
#
# ==============================================

import logging
import signal
import threading
from typing import Callable, Iterable, Optional

from votestream.state import StopState
from votestream.stream.connection import ConnectionManager

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    def __init__(
        self,
        stop_state: StopState,
        connection_manager: ConnectionManager,
        notify_stop: Callable[[], None],
    ):
        self._stop_state = stop_state
        self._connections = connection_manager
        self._notify_stop = notify_stop
        self._received = threading.Event()
        self._signum: Optional[int] = None
        self._handled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._previous_handlers = {}

    @property
    def handled(self) -> threading.Event:
        """Set once the stop sequence has completed."""
        return self._handled

    def install(self, signals: Iterable[int] = DEFAULT_SIGNALS) -> None:
        """Register signal handlers and start the listener thread."""
        for sig in signals:
            self._previous_handlers[sig] = signal.signal(sig, self._on_signal)
        self.start()

    def uninstall(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._listen, name="shutdown", daemon=True)
        self._thread.start()

    def _on_signal(self, signum, frame) -> None:
        # Runs between bytecodes of the main thread; no logging here
        if self._received.is_set():
            return
        self._signum = signum
        self._received.set()

    def trigger(self) -> None:
        """Request shutdown without a signal."""
        self._received.set()

    def _listen(self) -> None:
        self._received.wait()
        if self._signum is not None:
            logger.info("Signal %s received", signal.Signals(self._signum).name)
        self.shutdown()

    def shutdown(self) -> bool:
        """
        Run the stop sequence. Returns False if it already ran.
        """
        if not self._stop_state.set():
            return False
        logger.info("Stopping...")
        self._connections.force_close()
        self._notify_stop()
        self._handled.set()
        return True
