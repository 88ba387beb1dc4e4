"""SkyGuard entity model — aircraft, missiles, alerts, explosions.

Plain records only. Behaviour lives in the classifier, scheduler, guidance
and orchestrator modules; these dataclasses just fix shape and invariants.

Every record exposes ``to_dict()`` returning JSON-ready primitives with the
camelCase keys the visualization front end consumes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ===== ENUMS =====

class AircraftCategory(Enum):
    """Airframe category as reported by the generator or a live feed."""
    COMMERCIAL = "Commercial"
    MILITARY = "Military"
    PRIVATE = "Private"
    DRONE = "Drone"
    UNKNOWN = "Unknown"


class ThreatLevel(Enum):
    """Threat bucket, ordered by severity via ``rank``."""
    FRIENDLY = "FRIENDLY"
    NEUTRAL = "NEUTRAL"
    SUSPECT = "SUSPECT"
    HOSTILE = "HOSTILE"

    @property
    def rank(self) -> int:
        return _THREAT_RANK[self]

    @classmethod
    def from_rank(cls, rank: int) -> "ThreatLevel":
        return _THREAT_ORDER[max(0, min(rank, len(_THREAT_ORDER) - 1))]


_THREAT_ORDER = (ThreatLevel.FRIENDLY, ThreatLevel.NEUTRAL,
                 ThreatLevel.SUSPECT, ThreatLevel.HOSTILE)
_THREAT_RANK = {lvl: i for i, lvl in enumerate(_THREAT_ORDER)}


class ScoreTrend(Enum):
    RISING = "rising"
    FALLING = "falling"
    FLAT = "flat"


class AlertCategory(Enum):
    DETECTION = "DETECTION"
    THREAT = "THREAT"
    SYSTEM = "SYSTEM"
    INFO = "INFO"


class AlertPriority(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MissileState(Enum):
    """Interceptor lifecycle: LAUNCHED -> PURSUING -> {IMPACTED | LOST}."""
    LAUNCHED = "launched"
    PURSUING = "pursuing"
    IMPACTED = "impacted"
    LOST = "lost"


class Recommendation(Enum):
    ENGAGE = "ENGAGE"
    TRACK = "TRACK"
    CLEAR = "CLEAR"


# ===== GEOMETRY RECORDS =====

@dataclass(frozen=True)
class Position:
    """Geodetic position. Degrees for lat/lng, meters for altitude."""
    lat: float
    lng: float
    altitude: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng, "altitude": self.altitude}


@dataclass(frozen=True)
class PredictedPosition:
    """One dead-reckoned sample of an aircraft's future track."""
    lat: float
    lng: float
    altitude: float
    seconds_ahead: float
    uncertainty_km: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "altitude": self.altitude,
            "secondsAhead": self.seconds_ahead,
            "uncertainty": self.uncertainty_km,
        }


# ===== CLASSIFICATION RECORDS =====

@dataclass(frozen=True)
class RiskFactor:
    """One named, weighted input to the threat score."""
    name: str
    raw_score: float        # 0–100
    weight: float           # fixed per factor, all weights sum to 1
    weighted_score: float   # raw_score * weight

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "rawScore": self.raw_score,
            "weight": self.weight,
            "weightedScore": self.weighted_score,
        }


@dataclass(frozen=True)
class ThreatAssessment:
    """Output of one classification pass for one aircraft.

    Frozen: an assessment is replaced wholesale every tick, never patched.
    ``previous_scores`` is a tuple view of the classifier's ring buffer,
    oldest first, newest (this tick's score) last.
    """
    confidence_score: float
    threat_level: ThreatLevel
    risk_factors: Tuple[RiskFactor, ...]
    anomaly_score: float
    iff_responding: bool
    predicted_path: Tuple[PredictedPosition, ...]
    previous_scores: Tuple[float, ...]
    trend: ScoreTrend = ScoreTrend.FLAT

    @property
    def top_risk(self) -> Optional[RiskFactor]:
        return self.risk_factors[0] if self.risk_factors else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidenceScore": self.confidence_score,
            "threatLevel": self.threat_level.value,
            "riskFactors": [f.to_dict() for f in self.risk_factors],
            "anomalyScore": self.anomaly_score,
            "iffResponding": self.iff_responding,
            "predictedPath": [p.to_dict() for p in self.predicted_path],
            "previousScores": list(self.previous_scores),
            "trend": self.trend.value,
        }


# ===== WORLD ENTITIES =====

@dataclass
class Aircraft:
    """A tracked aircraft.

    ``threat_level`` is derived from ``classification`` and has no setter:
    an aircraft that has not been classified yet (freshly spawned or mapped
    from a live feed) reads as NEUTRAL until the next classification pass.
    """
    id: str
    position: Position
    speed: float                      # km/h
    heading: float                    # degrees, [0, 360)
    category: AircraftCategory
    callsign: str
    model: str = "Unknown"
    classification: Optional[ThreatAssessment] = None
    last_update: float = 0.0          # simulation seconds
    source: str = "generator"

    @property
    def threat_level(self) -> ThreatLevel:
        if self.classification is None:
            return ThreatLevel.NEUTRAL
        return self.classification.threat_level

    def apply_assessment(self, assessment: ThreatAssessment) -> None:
        self.classification = assessment

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": self.position.to_dict(),
            "speed": self.speed,
            "heading": self.heading,
            "type": self.category.value,
            "callsign": self.callsign,
            "model": self.model,
            "threatLevel": self.threat_level.value,
            "aiClassification": (self.classification.to_dict()
                                 if self.classification else None),
            "lastUpdate": self.last_update,
            "source": self.source,
        }


@dataclass
class Missile:
    """An interceptor. ``target_id`` is a weak reference resolved each tick."""
    id: str
    designation: str
    start_position: Position
    current_position: Position
    target_position: Position
    target_id: str
    launch_time: float                # simulation seconds
    speed: float                      # km/h
    active: bool = True
    state: MissileState = MissileState.LAUNCHED
    deactivated_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "designation": self.designation,
            "startPosition": self.start_position.to_dict(),
            "currentPosition": self.current_position.to_dict(),
            "targetPosition": self.target_position.to_dict(),
            "targetId": self.target_id,
            "launchTime": self.launch_time,
            "speed": self.speed,
            "active": self.active,
            "state": self.state.value,
        }


@dataclass
class Alert:
    id: str
    timestamp: float
    category: AlertCategory
    priority: AlertPriority
    message: str
    position: Optional[Position] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.category.value,
            "priority": self.priority.value,
            "message": self.message,
        }
        if self.position is not None:
            d["position"] = {"lat": self.position.lat, "lng": self.position.lng}
        return d


@dataclass
class Explosion:
    """Transient impact marker handed to the view; expires after a fixed TTL."""
    id: str
    position: Position
    timestamp: float
    callsign: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": self.position.to_dict(),
            "timestamp": self.timestamp,
            "callsign": self.callsign,
        }


# ===== DERIVED RECORDS =====

@dataclass(frozen=True)
class EngagementCandidate:
    """An aircraft eligible for interception. Rebuilt every tick."""
    aircraft: Aircraft
    engagement_score: float
    recommendation: Recommendation
    time_to_impact_s: Optional[float]   # None when not HOSTILE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aircraftId": self.aircraft.id,
            "callsign": self.aircraft.callsign,
            "threatLevel": self.aircraft.threat_level.value,
            "engagementScore": self.engagement_score,
            "recommendation": self.recommendation.value,
            "estimatedTimeToImpact": self.time_to_impact_s,
        }


@dataclass
class SystemStatus:
    """Aggregate readiness summary published after every world tick."""
    aircraft_count: int = 0
    threat_level: str = "LOW"          # LOW / MEDIUM / HIGH
    active_threats: int = 0
    radar_uptime: float = 98.7
    system_readiness: float = 95.2
    interceptors_ready: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aircraftCount": self.aircraft_count,
            "threatLevel": self.threat_level,
            "activeThreats": self.active_threats,
            "radarUptime": self.radar_uptime,
            "systemReadiness": self.system_readiness,
            "missileReady": self.interceptors_ready,
        }


@dataclass
class AiMetrics:
    """Per-pass classifier statistics for the analytics panel."""
    classifications_per_second: float = 0.0
    average_confidence: float = 0.0
    anomalies_detected: int = 0
    threat_distribution: Dict[str, int] = field(
        default_factory=lambda: {lvl.value: 0 for lvl in ThreatLevel})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "classificationsPerSecond": self.classifications_per_second,
            "averageConfidence": self.average_confidence,
            "anomaliesDetected": self.anomalies_detected,
            "threatDistribution": dict(self.threat_distribution),
        }


def summarize_threat_level(aircraft: List[Aircraft]) -> Tuple[str, int]:
    """Collapse hostile/suspect counts into LOW / MEDIUM / HIGH.

    Returns:
        (level, active_threats) where active_threats = hostile + suspect.
    """
    hostile = sum(1 for ac in aircraft if ac.threat_level is ThreatLevel.HOSTILE)
    suspect = sum(1 for ac in aircraft if ac.threat_level is ThreatLevel.SUSPECT)
    if hostile > 2 or suspect > 4:
        level = "HIGH"
    elif hostile > 0 or suspect > 2:
        level = "MEDIUM"
    else:
        level = "LOW"
    return level, hostile + suspect
