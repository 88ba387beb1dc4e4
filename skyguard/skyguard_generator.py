"""SkyGuard synthetic traffic — aircraft spawns and contextual alerts.

All randomness goes through the numpy RandomState handed in, so a seeded
engine produces the same airspace on every run.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from .skyguard_entities import (
    Aircraft, AircraftCategory, Alert, AlertCategory, AlertPriority, Position,
    ThreatLevel,
)
from .skyguard_theaters import Bounds, Theater

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

CATEGORIES: Tuple[AircraftCategory, ...] = tuple(AircraftCategory)

# Fallback messages when no live aircraft gives an alert context
ALERT_TEMPLATES: Tuple[Tuple[AlertCategory, AlertPriority, Tuple[str, ...]], ...] = (
    (AlertCategory.DETECTION, AlertPriority.LOW, (
        "New aircraft detected in sector Alpha-7",
        "Contact established with commercial flight",
        "Civilian aircraft entering monitored airspace",
    )),
    (AlertCategory.THREAT, AlertPriority.MEDIUM, (
        "Unidentified aircraft detected - altitude 8500m",
        "Aircraft deviating from assigned flight path",
        "Unknown contact - IFF not responding",
    )),
    (AlertCategory.SYSTEM, AlertPriority.LOW, (
        "Radar system performing scheduled calibration",
        "Communication link restored to sector control",
        "System diagnostics completed successfully",
    )),
    (AlertCategory.INFO, AlertPriority.LOW, (
        "Weather update: Clear skies, visibility 15km",
        "Airspace restriction lifted for sector Bravo-3",
        "Training exercise scheduled for 14:00-16:00",
    )),
)


def random_token(rng: np.random.RandomState, length: int) -> str:
    return "".join(_BASE36[i] for i in rng.randint(0, len(_BASE36), size=length))


def aircraft_id(rng: np.random.RandomState) -> str:
    return "AC" + random_token(rng, 6)


def missile_id(rng: np.random.RandomState) -> str:
    return "MSL" + random_token(rng, 6)


def alert_id(rng: np.random.RandomState) -> str:
    return "ALT" + random_token(rng, 8)


def explosion_id(sim_time: float, missile: str) -> str:
    return f"EXP{int(sim_time * 1000)}_{missile}"


def make_callsign(category: AircraftCategory, prefix: str,
                  rng: np.random.RandomState) -> str:
    """Category-specific callsign format (flight number, tail, unit-serial)."""
    if category is AircraftCategory.COMMERCIAL:
        return f"{prefix}{rng.randint(100, 9100)}"
    if category is AircraftCategory.MILITARY:
        return f"{prefix}-{rng.randint(1, 31):02d}"
    if category is AircraftCategory.PRIVATE:
        suffix = random_token(rng, 3)
        if prefix == "N":
            return f"N{rng.randint(100, 1000)}{suffix[:2]}"
        return f"{prefix}{suffix}"
    if category is AircraftCategory.DRONE:
        return f"{prefix}-{rng.randint(1, 21):02d}"
    return f"UNK{rng.randint(100, 1099)}"


class TrafficGenerator:
    """Spawns aircraft and alerts for one theater.

    Args:
        theater: Theater supplying bounds and model pools.
        rng: Shared numpy RandomState.
        threat_model_fraction: Share of Drone/Unknown spawns that use the
            theater's threat models instead of the regular pool.
    """

    def __init__(self, theater: Theater, rng: np.random.RandomState,
                 threat_model_fraction: float = 0.3):
        self.theater = theater
        self.rng = rng
        self.threat_model_fraction = threat_model_fraction

    def _pick(self, seq: Sequence):
        return seq[self.rng.randint(len(seq))]

    def _random_position(self, bounds: Bounds, altitude: float) -> Position:
        return Position(
            float(self.rng.uniform(bounds.lat_min, bounds.lat_max)),
            float(self.rng.uniform(bounds.lng_min, bounds.lng_max)),
            float(altitude),
        )

    def spawn_aircraft(self, sim_time: float = 0.0,
                       category: Optional[AircraftCategory] = None) -> Aircraft:
        """One new, unclassified aircraft inside the spawn bounds."""
        if category is None:
            category = self._pick(CATEGORIES)
        pool = self.theater.model_pools[category]
        if (category in (AircraftCategory.DRONE, AircraftCategory.UNKNOWN)
                and self.theater.threat_models
                and self.rng.random_sample() < self.threat_model_fraction):
            pool = self.theater.threat_models
        model, prefix = self._pick(pool)

        if category is AircraftCategory.DRONE:
            altitude = self.rng.randint(100, 3100)
            speed = self.rng.randint(50, 200)
        else:
            altitude = self.rng.randint(1000, 13000)
            speed = self.rng.randint(200, 800)

        return Aircraft(
            id=aircraft_id(self.rng),
            position=self._random_position(self.theater.spawn_bounds, altitude),
            speed=float(speed),
            heading=float(self.rng.randint(0, 360)),
            category=category,
            callsign=make_callsign(category, prefix, self.rng),
            model=model,
            last_update=sim_time,
        )

    def spawn_population(self, count: int, sim_time: float = 0.0) -> List[Aircraft]:
        return [self.spawn_aircraft(sim_time) for _ in range(count)]

    # ----- alerts -----

    def template_alert(self, sim_time: float) -> Alert:
        category, priority, messages = self._pick(ALERT_TEMPLATES)
        position = None
        if category in (AlertCategory.DETECTION, AlertCategory.THREAT):
            position = self._random_position(self.theater.map_bounds, 0.0)
        return Alert(alert_id(self.rng), sim_time, category, priority,
                     self._pick(messages), position)

    def smart_alert(self, aircraft: Sequence[Aircraft], sim_time: float) -> Alert:
        """Alert referencing a live aircraft and its assessment.

        Hostile and suspect contacts are preferred as subjects; with an empty
        airspace a generic template alert is produced instead.
        """
        if not aircraft:
            return self.template_alert(sim_time)
        threats = [ac for ac in aircraft
                   if ac.threat_level in (ThreatLevel.HOSTILE, ThreatLevel.SUSPECT)]
        subject = self._pick(threats if threats and self.rng.random_sample() < 0.7
                             else list(aircraft))
        assessment = subject.classification
        level = subject.threat_level
        alt = int(subject.position.altitude)

        if assessment is None:
            return Alert(alert_id(self.rng), sim_time, AlertCategory.DETECTION,
                         AlertPriority.LOW,
                         f"New contact {subject.callsign} ({subject.model}) "
                         f"at {alt}m, awaiting classification",
                         subject.position)

        top = assessment.top_risk
        reason = top.name.lower() if top is not None else "kinematics"
        score = assessment.confidence_score

        if level is ThreatLevel.HOSTILE:
            category, priority = AlertCategory.THREAT, AlertPriority.HIGH
            message = (f"HOSTILE {subject.callsign} ({subject.model}) "
                       f"threat score {score:.0f}, driven by {reason}")
        elif level is ThreatLevel.SUSPECT:
            category, priority = AlertCategory.THREAT, AlertPriority.MEDIUM
            message = (f"Suspect contact {subject.callsign} at {alt}m, "
                       f"score {score:.0f}, {reason} elevated")
        elif assessment.anomaly_score > 40.0:
            category, priority = AlertCategory.THREAT, AlertPriority.MEDIUM
            message = (f"{subject.callsign} deviating from predicted track "
                       f"(anomaly {assessment.anomaly_score:.0f})")
        elif not assessment.iff_responding:
            category, priority = AlertCategory.DETECTION, AlertPriority.LOW
            message = f"{subject.callsign} - IFF not responding, monitoring"
        else:
            category, priority = AlertCategory.DETECTION, AlertPriority.LOW
            message = (f"{subject.category.value} {subject.callsign} tracking "
                       f"normally at {alt}m, {subject.speed:.0f} km/h")

        return Alert(alert_id(self.rng), sim_time, category, priority, message,
                     subject.position)
