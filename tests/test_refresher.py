# ==============================================
# Tests for PeriodicRefresher
# ==============================================

import time

from conftest import FakeConnectionManager, wait_for
from votestream.state import StopState
from votestream.stream.refresher import PeriodicRefresher


class _TickingStopState(StopState):
    """Each wait() is one elapsed interval; the flag is set after `ticks` of them."""

    def __init__(self, ticks):
        super().__init__()
        self.ticks = ticks
        self.waits = 0

    def wait(self, timeout=None):
        self.waits += 1
        if self.waits > self.ticks:
            self.set()
        return self.is_set()


class _StoppingConnectionManager(FakeConnectionManager):
    """Sets the stop flag from inside the n-th force-close."""

    def __init__(self, stop_state, stop_on):
        super().__init__()
        self.stop_state = stop_state
        self.stop_on = stop_on

    def force_close(self):
        super().force_close()
        if self.force_close_count == self.stop_on:
            self.stop_state.set()


class TestPeriodicRefresher:
    def test_force_closes_each_interval(self):
        connections = FakeConnectionManager()
        stop_state = StopState()
        refresher = PeriodicRefresher(connections, stop_state, interval=0.02)

        refresher.start()
        assert wait_for(lambda: connections.force_close_count >= 3)

        stop_state.set()
        refresher.join(1.0)

    def test_no_closes_after_stop(self):
        connections = FakeConnectionManager()
        stop_state = StopState()
        refresher = PeriodicRefresher(connections, stop_state, interval=0.02)

        refresher.start()
        assert wait_for(lambda: connections.force_close_count >= 1)
        stop_state.set()
        refresher.join(1.0)
        closes_at_stop = connections.force_close_count

        time.sleep(0.1)
        assert connections.force_close_count == closes_at_stop
        assert refresher.refresh_count == closes_at_stop

    def test_stop_before_first_interval(self):
        """Stopping during the first wait exits without any close."""
        connections = FakeConnectionManager()
        stop_state = StopState()
        refresher = PeriodicRefresher(connections, stop_state, interval=30.0)

        refresher.start()
        stop_state.set()
        refresher.join(1.0)

        assert connections.force_close_count == 0
        assert not refresher._thread.is_alive()

    def test_one_close_per_elapsed_interval(self):
        connections = FakeConnectionManager()
        stop_state = _TickingStopState(ticks=5)
        refresher = PeriodicRefresher(connections, stop_state, interval=60.0)

        refresher.run()

        assert connections.force_close_count == 5
        assert refresher.refresh_count == 5
        assert stop_state.waits == 6

    def test_stop_during_close_ends_loop(self):
        """A stop that lands while a close is in progress gets no further closes."""
        stop_state = _TickingStopState(ticks=10)
        connections = _StoppingConnectionManager(stop_state, stop_on=2)
        refresher = PeriodicRefresher(connections, stop_state, interval=60.0)

        refresher.run()

        assert connections.force_close_count == 2
        assert stop_state.waits == 2

    def test_close_count_tracks_wall_clock(self):
        connections = FakeConnectionManager()
        stop_state = StopState()
        refresher = PeriodicRefresher(connections, stop_state, interval=0.1)

        started = time.monotonic()
        refresher.start()
        time.sleep(0.55)
        stop_state.set()
        refresher.join(1.0)
        elapsed_intervals = int((time.monotonic() - started) / 0.1)

        assert abs(refresher.refresh_count - elapsed_intervals) <= 1
        assert connections.force_close_count == refresher.refresh_count
