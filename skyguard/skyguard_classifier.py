"""SkyGuard Threat Classification — weighted multi-factor scoring.

Seven independent risk factors, each normalized to [0, 100], are combined by
fixed weights into a confidence score. The score is bucketed into a
ThreatLevel and then clamped into the category's allowed band, so that a
numerically plausible but categorically nonsensical result (a HOSTILE
airliner, a FRIENDLY unknown) cannot occur.

Factors:
    - category base risk
    - IFF response (simulated per tick, probability gated by category)
    - proximity to the defended center
    - heading change since last tick
    - speed outside the category envelope
    - altitude outside the category envelope
    - anomaly score from the previous tick's prediction

The predicted path is plain dead reckoning. Its only consumer is the anomaly
detector's comparison one tick later.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from .skyguard_entities import (
    Aircraft, AircraftCategory, Position, PredictedPosition, RiskFactor,
    ScoreTrend, ThreatAssessment, ThreatLevel,
)
from .skyguard_geo import dead_reckon, distance_km


# ===== EMBEDDED CATEGORY PROFILES =====

@dataclass(frozen=True)
class CategoryProfile:
    base_risk: float                       # 0–100
    iff_probability: float                 # chance the transponder answers
    speed_envelope: Tuple[float, float]    # km/h
    altitude_envelope: Tuple[float, float] # m
    floor: ThreatLevel                     # lowest level this category may hold
    ceiling: ThreatLevel                   # highest level this category may hold


CATEGORY_PROFILES: Dict[AircraftCategory, CategoryProfile] = {
    AircraftCategory.COMMERCIAL: CategoryProfile(
        10.0, 0.97, (700.0, 950.0), (8000.0, 13000.0),
        ThreatLevel.FRIENDLY, ThreatLevel.SUSPECT),
    AircraftCategory.PRIVATE: CategoryProfile(
        25.0, 0.90, (200.0, 700.0), (500.0, 8000.0),
        ThreatLevel.FRIENDLY, ThreatLevel.HOSTILE),
    AircraftCategory.MILITARY: CategoryProfile(
        45.0, 0.85, (400.0, 1800.0), (500.0, 15000.0),
        ThreatLevel.FRIENDLY, ThreatLevel.HOSTILE),
    AircraftCategory.DRONE: CategoryProfile(
        65.0, 0.40, (50.0, 250.0), (100.0, 3500.0),
        ThreatLevel.NEUTRAL, ThreatLevel.HOSTILE),
    AircraftCategory.UNKNOWN: CategoryProfile(
        80.0, 0.25, (150.0, 1000.0), (100.0, 13000.0),
        ThreatLevel.NEUTRAL, ThreatLevel.HOSTILE),
}

# Order here is the tie-break order when two factors weigh the same
FACTOR_WEIGHTS: Dict[str, float] = {
    "Category Risk": 0.20,
    "IFF Response": 0.20,
    "Proximity": 0.15,
    "Flight Pattern": 0.10,
    "Speed Anomaly": 0.10,
    "Altitude Profile": 0.10,
    "Trajectory Anomaly": 0.15,
}

# Lower score bound of each level, most severe first
LEVEL_THRESHOLDS: Tuple[Tuple[float, ThreatLevel], ...] = (
    (55.0, ThreatLevel.HOSTILE),
    (35.0, ThreatLevel.SUSPECT),
    (15.0, ThreatLevel.NEUTRAL),
)

PROXIMITY_RANGE_KM = 500.0
ERRATIC_TURN_DEG = 30.0
TREND_SLOPE = 0.5


# ===== PURE HELPERS =====

def bucket_threat_level(score: float, category: AircraftCategory) -> ThreatLevel:
    """Map a confidence score to a ThreatLevel, honoring category floor/ceiling."""
    level = ThreatLevel.FRIENDLY
    for lower, candidate in LEVEL_THRESHOLDS:
        if score >= lower:
            level = candidate
            break
    profile = CATEGORY_PROFILES[category]
    rank = min(max(level.rank, profile.floor.rank), profile.ceiling.rank)
    return ThreatLevel.from_rank(rank)


def envelope_deviation(value: float, envelope: Tuple[float, float]) -> float:
    """Distance outside ``envelope`` scaled so half its width scores 100."""
    lo, hi = envelope
    if lo <= value <= hi:
        return 0.0
    outside = lo - value if value < lo else value - hi
    half_width = max((hi - lo) / 2.0, 1.0)
    return float(min(outside / half_width * 100.0, 100.0))


def score_trend(scores: Sequence[float]) -> ScoreTrend:
    """Least-squares slope over the score history, bucketed for display."""
    if len(scores) < 3:
        return ScoreTrend.FLAT
    slope = stats.linregress(np.arange(len(scores)), np.asarray(scores, dtype=float)).slope
    if slope > TREND_SLOPE:
        return ScoreTrend.RISING
    if slope < -TREND_SLOPE:
        return ScoreTrend.FALLING
    return ScoreTrend.FLAT


def predict_path(position: Position, heading: float, speed: float,
                 horizon_s: float, interval_s: float) -> Tuple[PredictedPosition, ...]:
    """Dead-reckon ``horizon_s`` ahead, one sample every ``interval_s``."""
    n = max(int(horizon_s // interval_s), 1)
    path = []
    for k in range(1, n + 1):
        ahead = k * interval_s
        p = dead_reckon(position, heading, speed, ahead)
        path.append(PredictedPosition(
            lat=p.lat, lng=p.lng, altitude=p.altitude,
            seconds_ahead=ahead, uncertainty_km=round(0.1 + 0.02 * ahead, 3),
        ))
    return tuple(path)


# ===== CLASSIFIER =====

class ThreatClassifier:
    """Per-tick threat classification for every aircraft in the airspace.

    Stateless apart from the random source used for IFF interrogation; the
    score history travels inside each aircraft's previous assessment so that
    snapshots and rewinds carry it for free.

    Args:
        defended_center: Position being protected (radar / battery site).
        rng: numpy RandomState used for IFF draws.
        score_history_len: Capacity of the previous-score ring buffer.
        prediction_horizon_s: How far ahead the predicted path reaches.
        prediction_interval_s: Spacing of predicted samples; set this to the
            world tick period so the first sample is the next-tick estimate.
    """

    def __init__(self, defended_center: Position,
                 rng: Optional[np.random.RandomState] = None,
                 score_history_len: int = 10,
                 prediction_horizon_s: float = 50.0,
                 prediction_interval_s: float = 2.0):
        self.defended_center = defended_center
        self.rng = rng if rng is not None else np.random.RandomState()
        self.score_history_len = score_history_len
        self.prediction_horizon_s = prediction_horizon_s
        self.prediction_interval_s = prediction_interval_s

    def interrogate_iff(self, category: AircraftCategory) -> bool:
        return bool(self.rng.random_sample() < CATEGORY_PROFILES[category].iff_probability)

    def risk_factors(self, aircraft: Aircraft, heading_delta_deg: float,
                     anomaly_score: float, iff_responding: bool) -> List[RiskFactor]:
        """Evaluate the seven factors, highest weighted score first."""
        profile = CATEGORY_PROFILES[aircraft.category]
        d = distance_km(aircraft.position, self.defended_center)
        raw = {
            "Category Risk": profile.base_risk,
            "IFF Response": 0.0 if iff_responding else 100.0,
            "Proximity": 100.0 * max(0.0, 1.0 - d / PROXIMITY_RANGE_KM),
            "Flight Pattern": min(100.0, abs(heading_delta_deg) / ERRATIC_TURN_DEG * 100.0),
            "Speed Anomaly": envelope_deviation(aircraft.speed, profile.speed_envelope),
            "Altitude Profile": envelope_deviation(aircraft.position.altitude,
                                                   profile.altitude_envelope),
            "Trajectory Anomaly": float(np.clip(anomaly_score, 0.0, 100.0)),
        }
        factors = [
            RiskFactor(name, round(raw[name], 2), weight, round(raw[name] * weight, 3))
            for name, weight in FACTOR_WEIGHTS.items()
        ]
        # sorted() is stable, so equal scores keep FACTOR_WEIGHTS order
        return sorted(factors, key=lambda f: f.weighted_score, reverse=True)

    def classify(self, aircraft: Aircraft, heading_delta_deg: float = 0.0,
                 anomaly_score: float = 0.0,
                 iff_responding: Optional[bool] = None) -> ThreatAssessment:
        """Full assessment for one aircraft on one tick.

        Args:
            aircraft: Aircraft with its current kinematics.
            heading_delta_deg: Heading change since the previous tick; 0 on
                the first tick.
            anomaly_score: Deviation score from the anomaly detector; 0 on
                the first tick.
            iff_responding: Force the IFF outcome instead of drawing it.

        Returns:
            A new ThreatAssessment; the aircraft itself is not modified.
        """
        if iff_responding is None:
            iff_responding = self.interrogate_iff(aircraft.category)

        factors = self.risk_factors(aircraft, heading_delta_deg, anomaly_score, iff_responding)
        total = sum(f.weighted_score for f in factors)
        confidence = round(float(np.clip(total, 0.0, 100.0)), 1)

        history: deque = deque(
            aircraft.classification.previous_scores if aircraft.classification else (),
            maxlen=self.score_history_len)
        history.append(confidence)
        previous = tuple(history)

        return ThreatAssessment(
            confidence_score=confidence,
            threat_level=bucket_threat_level(confidence, aircraft.category),
            risk_factors=tuple(factors),
            anomaly_score=round(float(np.clip(anomaly_score, 0.0, 100.0)), 1),
            iff_responding=iff_responding,
            predicted_path=predict_path(aircraft.position, aircraft.heading, aircraft.speed,
                                        self.prediction_horizon_s,
                                        self.prediction_interval_s),
            previous_scores=previous,
            trend=score_trend(previous),
        )

    def classify_all(self, aircraft: Iterable[Aircraft]) -> List[ThreatAssessment]:
        """Convenience for first-tick classification (zero deltas, zero anomaly)."""
        return [self.classify(ac) for ac in aircraft]
