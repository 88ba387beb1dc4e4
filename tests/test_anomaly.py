"""Tests for the SkyGuard anomaly detector.

pytest tests/test_anomaly.py -v
"""

import pytest
import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from skyguard.skyguard_anomaly import AnomalyDetector
from skyguard.skyguard_entities import (
    Aircraft, AircraftCategory, Position, PredictedPosition,
)
from skyguard.skyguard_classifier import predict_path
from skyguard.skyguard_geo import KM_PER_DEG_LAT, dead_reckon


def _aircraft(ac_id="AC1", lat=50.0, lng=10.0, heading=0.0):
    return Aircraft(ac_id, Position(lat, lng, 3000.0), 400.0, heading,
                    AircraftCategory.UNKNOWN, "UNK101")


def _path(lat=50.0, lng=10.0):
    return (PredictedPosition(lat, lng, 3000.0, 2.0, 0.14),
            PredictedPosition(lat + 0.01, lng, 3000.0, 4.0, 0.18))


class TestAnomalyScore:

    def test_no_prediction_scores_zero(self):
        det = AnomalyDetector()
        ac = _aircraft()
        assert det.score(ac) == 0.0
        assert det.deviation_km(ac) is None
        assert det.heading_delta(ac) == 0.0

    def test_on_track_scores_zero(self):
        det = AnomalyDetector()
        det.record(_aircraft(), _path())
        assert det.score(_aircraft()) == pytest.approx(0.0)

    def test_threshold_scales_with_tick_travel(self):
        det = AnomalyDetector(threshold_fraction=0.5)
        det.record(_aircraft(), _path())
        # 400 km/h over the 2 s to the first sample
        assert det.threshold_km(_aircraft()) == pytest.approx(0.5 * 400.0 / 3600.0 * 2.0)

    def test_threshold_floor(self):
        det = AnomalyDetector(min_threshold_km=0.05)
        det.record(_aircraft(), _path())
        slow = _aircraft()
        slow.speed = 10.0
        assert det.threshold_km(slow) == pytest.approx(0.05)
        assert det.threshold_km(_aircraft("NEW")) == pytest.approx(0.05)

    def test_quadratic_below_threshold(self):
        det = AnomalyDetector(threshold_fraction=0.5)
        det.record(_aircraft(), _path())
        half = det.threshold_km(_aircraft()) / 2.0
        moved = _aircraft(lat=50.0 + half / KM_PER_DEG_LAT)
        assert det.deviation_km(moved) == pytest.approx(half)
        assert det.score(moved) == pytest.approx(25.0)

    def test_saturates_above_threshold(self):
        det = AnomalyDetector()
        det.record(_aircraft(), _path())
        assert det.score(_aircraft(lat=50.0 + 0.3 / KM_PER_DEG_LAT)) == pytest.approx(100.0)

    def test_hard_turn_saturates_jitter_does_not(self):
        start = Position(50.0, 10.0, 3000.0)
        path = predict_path(start, 0.0, 400.0, 10.0, 2.0)
        det = AnomalyDetector()
        det.record(_aircraft(), path)

        jitter = _aircraft()
        jitter.position = dead_reckon(start, 3.0, 400.0, 2.0)
        assert det.score(jitter) < 5.0

        turned = _aircraft(heading=30.0)
        turned.position = dead_reckon(start, 30.0, 400.0, 2.0)
        assert det.score(turned) == pytest.approx(100.0)

    def test_uses_first_sample_only(self):
        det = AnomalyDetector()
        det.record(_aircraft(), _path())
        at_second = _aircraft(lat=50.01)
        assert det.deviation_km(at_second) == pytest.approx(0.01 * KM_PER_DEG_LAT)


class TestHeadingTracking:

    def test_heading_delta_wraps(self):
        det = AnomalyDetector()
        det.record(_aircraft(heading=350.0), _path())
        assert det.heading_delta(_aircraft(heading=10.0)) == pytest.approx(20.0)

    def test_heading_delta_reverse(self):
        det = AnomalyDetector()
        det.record(_aircraft(heading=90.0), _path())
        assert det.heading_delta(_aircraft(heading=270.0)) == pytest.approx(180.0)


class TestLifecycle:

    def test_prune_evicts_stale(self):
        det = AnomalyDetector()
        for ac_id in ("A", "B", "C"):
            det.record(_aircraft(ac_id), _path())
        assert det.prune(["B"]) == 2
        assert det.tracked_ids == {"B"}
        assert det.score(_aircraft("A", lat=51.0)) == 0.0

    def test_prune_noop(self):
        det = AnomalyDetector()
        det.record(_aircraft("A"), _path())
        assert det.prune(["A", "Z"]) == 0

    def test_export_restore(self):
        det = AnomalyDetector()
        det.record(_aircraft("A", heading=45.0), _path())
        state = det.export_state()
        det.clear()
        assert det.tracked_ids == set()
        det.restore_state(state)
        assert det.heading_delta(_aircraft("A", heading=50.0)) == pytest.approx(5.0)
        assert det.score(_aircraft("A")) == pytest.approx(0.0)

    def test_export_is_detached(self):
        det = AnomalyDetector()
        det.record(_aircraft("A"), _path())
        state = det.export_state()
        det.forget("A")
        assert "A" in state["predictions"]
