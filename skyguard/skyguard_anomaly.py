"""SkyGuard Anomaly Detector — predicted-vs-actual trajectory deviation.

Keeps, per aircraft, the path predicted on the previous classification pass
and the heading observed then. On the next pass the first predicted sample
(the expected position one world tick later) is compared to where the
aircraft actually is.

    score = 100 · min(1, (d / threshold)²)
    threshold = max(fraction · speed · Δt, min_threshold_km)

The threshold scales with the distance the aircraft covers in one tick, so
the score measures deviation relative to its own motion: heading jitter
stays near zero, a 30° turn or a large speed change saturates.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Sequence, Set, Tuple

from .skyguard_entities import Aircraft, Position, PredictedPosition
from .skyguard_geo import heading_delta, planar_distance_km

logger = logging.getLogger(__name__)


class AnomalyDetector:
    """Per-aircraft comparison of last tick's prediction to this tick's fix.

    Args:
        threshold_fraction: Saturation deviation as a share of the distance
            flown between prediction and fix.
        min_threshold_km: Lower bound on the saturation deviation, for slow
            or hovering contacts.
    """

    def __init__(self, threshold_fraction: float = 0.5, min_threshold_km: float = 0.05):
        self.threshold_fraction = threshold_fraction
        self.min_threshold_km = min_threshold_km
        self._predictions: Dict[str, Tuple[PredictedPosition, ...]] = {}
        self._headings: Dict[str, float] = {}

    def threshold_km(self, aircraft: Aircraft) -> float:
        """Deviation at which ``aircraft`` scores 100."""
        path = self._predictions.get(aircraft.id)
        ahead = path[0].seconds_ahead if path else 0.0
        travel = aircraft.speed / 3600.0 * ahead
        return max(self.threshold_fraction * travel, self.min_threshold_km)

    def deviation_km(self, aircraft: Aircraft) -> Optional[float]:
        """Distance from the expected next-tick position, or None if unknown."""
        path = self._predictions.get(aircraft.id)
        if not path:
            return None
        expected = path[0]
        return planar_distance_km(Position(expected.lat, expected.lng), aircraft.position)

    def score(self, aircraft: Aircraft) -> float:
        """Anomaly score in [0, 100]; 0 when there is no prior prediction."""
        d = self.deviation_km(aircraft)
        if d is None:
            return 0.0
        return 100.0 * min(1.0, (d / self.threshold_km(aircraft)) ** 2)

    def heading_delta(self, aircraft: Aircraft) -> float:
        """Heading change since the last recorded pass; 0 on first sight."""
        previous = self._headings.get(aircraft.id)
        if previous is None:
            return 0.0
        return heading_delta(previous, aircraft.heading)

    def record(self, aircraft: Aircraft,
               predicted_path: Sequence[PredictedPosition]) -> None:
        self._predictions[aircraft.id] = tuple(predicted_path)
        self._headings[aircraft.id] = aircraft.heading

    def forget(self, aircraft_id: str) -> None:
        self._predictions.pop(aircraft_id, None)
        self._headings.pop(aircraft_id, None)

    def prune(self, live_ids: Iterable[str]) -> int:
        """Drop state for aircraft no longer present. Returns evicted count."""
        live = set(live_ids)
        stale = [k for k in self.tracked_ids if k not in live]
        for k in stale:
            self.forget(k)
        if stale:
            logger.debug("anomaly detector pruned %d stale track(s)", len(stale))
        return len(stale)

    def clear(self) -> None:
        self._predictions.clear()
        self._headings.clear()

    @property
    def tracked_ids(self) -> Set[str]:
        return set(self._predictions) | set(self._headings)

    # ----- snapshot support -----

    def export_state(self) -> Dict[str, Dict]:
        # Values are immutable tuples/floats, shallow dict copies are enough
        return {"predictions": dict(self._predictions), "headings": dict(self._headings)}

    def restore_state(self, state: Dict[str, Dict]) -> None:
        self._predictions = dict(state.get("predictions", {}))
        self._headings = dict(state.get("headings", {}))
