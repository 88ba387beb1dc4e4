"""SkyGuard Engagement Scheduler — ranked queue of interception candidates.

Pure function of (aircraft, defended center): the queue is rebuilt from
scratch every world tick and never mutated in place.

    engagement_score = level_weight · confidence · 1 / (1 + d / 250 km)

Sorted by score descending, ties broken by aircraft id so equal inputs
always produce an identical ordering.
"""

from typing import Dict, Iterable, List, Optional

from .skyguard_entities import (
    Aircraft, EngagementCandidate, Position, Recommendation, ThreatLevel,
)
from .skyguard_geo import distance_km

LEVEL_WEIGHTS: Dict[ThreatLevel, float] = {
    ThreatLevel.SUSPECT: 0.6,
    ThreatLevel.HOSTILE: 1.0,
}

DISTANCE_SCALE_KM = 250.0
ENGAGE_THRESHOLD = 40.0
TRACK_THRESHOLD = 20.0


def recommend(score: float) -> Recommendation:
    if score >= ENGAGE_THRESHOLD:
        return Recommendation.ENGAGE
    if score >= TRACK_THRESHOLD:
        return Recommendation.TRACK
    return Recommendation.CLEAR


def engagement_score(aircraft: Aircraft, defended_center: Position) -> float:
    weight = LEVEL_WEIGHTS.get(aircraft.threat_level, 0.0)
    if weight == 0.0 or aircraft.classification is None:
        return 0.0
    d = distance_km(aircraft.position, defended_center)
    return weight * aircraft.classification.confidence_score / (1.0 + d / DISTANCE_SCALE_KM)


def time_to_impact_s(aircraft: Aircraft, defended_center: Position,
                     interceptor_speed_kmh: float) -> Optional[float]:
    """Seconds for a reference interceptor to cover the range; None unless HOSTILE."""
    if aircraft.threat_level is not ThreatLevel.HOSTILE or interceptor_speed_kmh <= 0:
        return None
    d = distance_km(aircraft.position, defended_center)
    return round(d / interceptor_speed_kmh * 3600.0, 1)


def build_engagement_queue(aircraft: Iterable[Aircraft], defended_center: Position,
                           interceptor_speed_kmh: float = 3600.0) -> List[EngagementCandidate]:
    """Rank SUSPECT/HOSTILE aircraft for interception.

    Args:
        aircraft: Current airspace population.
        defended_center: Battery location used for range.
        interceptor_speed_kmh: Reference interceptor speed for the ETA.

    Returns:
        Candidates, highest score first, ties by ascending aircraft id.
    """
    queue = []
    for ac in aircraft:
        if ac.threat_level not in LEVEL_WEIGHTS:
            continue
        score = round(engagement_score(ac, defended_center), 2)
        queue.append(EngagementCandidate(
            aircraft=ac,
            engagement_score=score,
            recommendation=recommend(score),
            time_to_impact_s=time_to_impact_s(ac, defended_center, interceptor_speed_kmh),
        ))
    queue.sort(key=lambda c: (-c.engagement_score, c.aircraft.id))
    return queue
