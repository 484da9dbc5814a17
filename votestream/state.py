import enum
import threading
from typing import Optional


class ReaderState(str, enum.Enum):
    """Where the StreamReader currently is in its retry loop."""
    IDLE = "idle"
    FETCHING_TERMS = "fetching-terms"
    REQUESTING = "requesting"
    DECODING = "decoding"
    BACKING_OFF = "backing-off"
    STOPPED = "stopped"


class StopState:
    """
    Process-wide stop flag guarded by a lock.

    Set at most once; once true it stays true. Threads that sleep between
    units of work use wait() so a stop request cuts the sleep short.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._stopped = False

    def set(self) -> bool:
        """Flip the flag. Returns True only for the call that flipped it."""
        with self._lock:
            if self._stopped:
                return False
            self._stopped = True
            self._changed.notify_all()
            return True

    def is_set(self) -> bool:
        with self._lock:
            return self._stopped

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to `timeout` seconds for the flag. Returns its value."""
        with self._lock:
            self._changed.wait_for(lambda: self._stopped, timeout=timeout)
            return self._stopped
