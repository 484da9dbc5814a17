import queue
import threading
from typing import Iterator

from votestream.errors import QueueClosedError
from votestream.models import VoteEvent

_CLOSED = object()


class VoteQueue:
    """
    FIFO of VoteEvents with an explicit end.

    close() marks that no producer will write again. Iterating yields
    every event put before close() and then stops.
    """

    def __init__(self):
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def put(self, event: VoteEvent) -> None:
        with self._lock:
            if self._closed:
                raise QueueClosedError("vote queue is closed")
            self._queue.put(event)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def qsize(self) -> int:
        return self._queue.qsize()

    def __iter__(self) -> Iterator[VoteEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item
