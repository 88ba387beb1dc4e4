"""Tests for the SkyGuard snapshot history.

pytest tests/test_history.py -v
"""

import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from skyguard.skyguard_entities import Aircraft, AircraftCategory, Position, SystemStatus
from skyguard.skyguard_history import SnapshotHistory, WorldSnapshot


def _snapshot(t):
    ac = Aircraft("AC%06d" % int(t), Position(50.0, 10.0, 9000.0), 800.0, 0.0,
                  AircraftCategory.COMMERCIAL, "DLH100")
    return WorldSnapshot(sim_time=float(t), aircraft=[ac], missiles=[], alerts=[],
                         explosions=[], interceptors_ready=30,
                         status=SystemStatus(aircraft_count=1))


class TestSnapshotHistory:

    def test_bounded_fifo(self):
        h = SnapshotHistory(capacity=100)
        for t in range(150):
            h.push(_snapshot(t))
        assert len(h) == 100
        assert h.sim_times()[0] == 50.0
        assert h.sim_times()[-1] == 149.0
        assert h.at_head

    def test_rewind_clamps_at_oldest(self):
        h = SnapshotHistory(capacity=10)
        for t in range(5):
            h.push(_snapshot(t))
        assert h.rewind(2).sim_time == 2.0
        assert h.rewind(100).sim_time == 0.0
        assert h.cursor == 0

    def test_rewind_empty(self):
        h = SnapshotHistory()
        assert h.rewind(1) is None
        assert h.current() is None

    def test_rewind_zero_steps(self):
        h = SnapshotHistory()
        h.push(_snapshot(1))
        h.push(_snapshot(2))
        assert h.rewind(0).sim_time == 2.0

    def test_truncate_after_cursor(self):
        h = SnapshotHistory()
        for t in range(6):
            h.push(_snapshot(t))
        h.rewind(3)
        assert h.truncate_after_cursor() == 3
        assert h.sim_times() == [0.0, 1.0, 2.0]
        assert h.at_head

    def test_push_after_rewind_moves_to_head(self):
        h = SnapshotHistory()
        for t in range(3):
            h.push(_snapshot(t))
        h.rewind(2)
        h.truncate_after_cursor()
        h.push(_snapshot(10))
        assert h.sim_times() == [0.0, 10.0]
        assert h.cursor == 1

    def test_snapshots_are_isolated(self):
        h = SnapshotHistory()
        snap = _snapshot(1)
        h.push(snap)
        snap.aircraft[0].speed = 1.0
        restored = h.current()
        assert restored.aircraft[0].speed == 800.0
        restored.aircraft[0].speed = 2.0
        assert h.current().aircraft[0].speed == 800.0

    def test_clear(self):
        h = SnapshotHistory()
        h.push(_snapshot(1))
        h.clear()
        assert len(h) == 0 and h.cursor == -1
