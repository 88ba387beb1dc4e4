"""SkyGuard: airspace threat simulation and autonomous engagement engine.

Weighted multi-factor threat classification, trajectory anomaly detection,
engagement queueing and pure-pursuit interceptor guidance, driven by a
cooperative tick orchestrator with bounded pause/rewind history.

Quick Start::

    from skyguard import TickOrchestrator, EngineConfig
    engine = TickOrchestrator(EngineConfig.client_local(seed=7))
    engine.start()
    engine.advance(60.0)
    state = engine.get_current_state()
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Entity model
# ---------------------------------------------------------------------------
from .skyguard_entities import (
    AiMetrics,
    Aircraft,
    AircraftCategory,
    Alert,
    AlertCategory,
    AlertPriority,
    EngagementCandidate,
    Explosion,
    Missile,
    MissileState,
    Position,
    PredictedPosition,
    Recommendation,
    RiskFactor,
    ScoreTrend,
    SystemStatus,
    ThreatAssessment,
    ThreatLevel,
    summarize_threat_level,
)

# ---------------------------------------------------------------------------
# Configuration & theaters
# ---------------------------------------------------------------------------
from .skyguard_config import (
    CadenceConfig,
    ConfigError,
    EngagementConfig,
    EngineConfig,
    PopulationConfig,
    PROFILES,
    SkyguardError,
    config_from_dict,
    load_config,
)
from .skyguard_theaters import THEATERS, Theater, get_theater

# ---------------------------------------------------------------------------
# Decision components
# ---------------------------------------------------------------------------
from .skyguard_classifier import ThreatClassifier, bucket_threat_level, score_trend
from .skyguard_anomaly import AnomalyDetector
from .skyguard_engagement import build_engagement_queue
from .skyguard_guidance import LaunchRejection, LaunchResult, MissileGuidance

# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------
from .skyguard_history import SnapshotHistory, WorldSnapshot
from .skyguard_engine import EngineState, RealtimeDriver, TickOrchestrator
from .skyguard_feeds import (
    aircraft_from_airplanes_live,
    aircraft_from_opensky,
    aircraft_from_payload,
)
