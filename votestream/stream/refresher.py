import logging
import threading
from typing import Optional

from votestream.state import StopState
from votestream.stream.connection import ConnectionManager

logger = logging.getLogger(__name__)


class PeriodicRefresher:
    """
    Forces a reconnect every `interval` seconds.

    Each reconnect makes the StreamReader re-fetch the poll options, which
    is how option changes reach a stream that is otherwise left open for
    hours. Once the stop flag is set no further closes are issued.
    """

    def __init__(self, connection_manager: ConnectionManager, stop_state: StopState, interval: float = 60.0):
        self._connections = connection_manager
        self._stop_state = stop_state
        self._interval = interval
        self._thread: Optional[threading.Thread] = None
        self.refresh_count = 0

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name="refresher", daemon=True)
        self._thread.start()

    def run(self) -> None:
        while True:
            if self._stop_state.wait(self._interval):
                break
            logger.debug("Refreshing stream connection to reload options")
            self._connections.force_close()
            self.refresh_count += 1
            if self._stop_state.is_set():
                break
        logger.debug("Refresher stopped")

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
