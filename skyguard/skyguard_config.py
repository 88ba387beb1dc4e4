"""SkyGuard engine configuration — tunables, profiles, YAML loading.

Two profiles ship out of the box and intentionally diverge:

- ``client_local``: busy airspace, restocks an interceptor on every kill,
  launches often.
- ``authoritative``: smaller constant population, finite magazine, launches
  on every opportunity but less frequently.

Usage::

    cfg = EngineConfig.client_local()
    cfg = load_config("config/skyguard_authoritative.yaml")
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


class SkyguardError(Exception):
    """Base class for errors raised by the engine package."""


class ConfigError(SkyguardError):
    """Invalid or unreadable engine configuration."""


# ===== SECTIONS =====

@dataclass
class PopulationConfig:
    """Aircraft population control."""
    initial_count: int = 15
    max_count: int = 20
    min_count: int = 6
    # Independent spawn draws per world tick, each gated by max_count
    spawn_probabilities: Tuple[float, ...] = (0.35, 0.15)
    retire_probability: float = 0.08
    respawn_on_exit: bool = False
    # Share of Drone/Unknown spawns drawn from the theater's threat models
    threat_model_fraction: float = 0.3
    # Per-tick chance a Drone/Unknown aircraft makes a hard maneuver
    maneuver_probability: float = 0.1


@dataclass
class CadenceConfig:
    """Periods of the four orchestrated activities, in simulation seconds."""
    world_period_s: float = 2.0
    missile_ticks_per_world: int = 20
    alert_period_range_s: Tuple[float, float] = (3.0, 8.0)
    alert_probability: float = 0.85
    engagement_period_range_s: Tuple[float, float] = (3.0, 6.0)

    @property
    def missile_period_s(self) -> float:
        return self.world_period_s / self.missile_ticks_per_world


@dataclass
class EngagementConfig:
    """Interceptor inventory, launch policy and guidance limits."""
    initial_interceptors: int = 30
    max_interceptors: int = 30
    restock_on_kill: bool = True
    auto_launch_probability: float = 0.8
    # None -> pick a random SAM system of the theater per launch
    interceptor_designation: Optional[str] = None
    interceptor_speed_kmh: Optional[float] = None
    reference_interceptor_speed_kmh: float = 3600.0
    impact_epsilon_km: float = 0.5
    max_flight_time_s: float = 900.0
    missile_retention_s: float = 10.0
    explosion_ttl_s: float = 2.0


@dataclass
class EngineConfig:
    profile: str = "client_local"
    theater: str = "germany"
    seed: Optional[int] = None
    history_capacity: int = 100
    alert_log_capacity: int = 100
    score_history_len: int = 10
    prediction_horizon_s: float = 50.0
    # Anomaly saturation at this share of the distance flown per world tick
    anomaly_threshold_fraction: float = 0.5
    anomaly_min_threshold_km: float = 0.05
    population: PopulationConfig = field(default_factory=PopulationConfig)
    cadence: CadenceConfig = field(default_factory=CadenceConfig)
    engagement: EngagementConfig = field(default_factory=EngagementConfig)

    # ----- profiles -----

    @classmethod
    def client_local(cls, **overrides: Any) -> "EngineConfig":
        cfg = cls(profile="client_local")
        return dataclasses.replace(cfg, **overrides) if overrides else cfg

    @classmethod
    def authoritative(cls, **overrides: Any) -> "EngineConfig":
        cfg = cls(
            profile="authoritative",
            population=PopulationConfig(
                initial_count=8, max_count=8, min_count=8,
                spawn_probabilities=(), retire_probability=0.0,
                respawn_on_exit=True,
            ),
            cadence=CadenceConfig(
                alert_period_range_s=(5.0, 15.0),
                alert_probability=1.0,
                engagement_period_range_s=(8.0, 15.0),
            ),
            engagement=EngagementConfig(
                initial_interceptors=12, max_interceptors=12,
                restock_on_kill=False, auto_launch_probability=1.0,
                interceptor_designation="Interceptor",
                interceptor_speed_kmh=3600.0,
            ),
        )
        return dataclasses.replace(cfg, **overrides) if overrides else cfg

    # ----- validation -----

    def validate(self) -> "EngineConfig":
        """Raise ConfigError on values the engine cannot run with."""
        pop, cad, eng = self.population, self.cadence, self.engagement
        if self.history_capacity < 1 or self.alert_log_capacity < 1:
            raise ConfigError("history and alert log capacities must be >= 1")
        if self.score_history_len < 1:
            raise ConfigError("score_history_len must be >= 1")
        if (self.anomaly_threshold_fraction <= 0 or self.anomaly_min_threshold_km <= 0
                or self.prediction_horizon_s <= 0):
            raise ConfigError("anomaly threshold and prediction horizon must be > 0")
        if not 0 <= pop.min_count <= pop.max_count:
            raise ConfigError(
                f"population bounds invalid: min={pop.min_count} max={pop.max_count}")
        if pop.initial_count < 0:
            raise ConfigError("initial_count must be >= 0")
        for p in (*pop.spawn_probabilities, pop.retire_probability,
                  pop.threat_model_fraction, pop.maneuver_probability,
                  cad.alert_probability, eng.auto_launch_probability):
            if not 0.0 <= p <= 1.0:
                raise ConfigError(f"probability out of range: {p}")
        if cad.world_period_s <= 0 or cad.missile_ticks_per_world < 1:
            raise ConfigError("world period must be > 0 and missile ticks >= 1")
        for name, (lo, hi) in (("alert_period_range_s", cad.alert_period_range_s),
                               ("engagement_period_range_s", cad.engagement_period_range_s)):
            if not 0 < lo <= hi:
                raise ConfigError(f"{name} must satisfy 0 < low <= high, got ({lo}, {hi})")
        if not 0 <= eng.initial_interceptors <= eng.max_interceptors:
            raise ConfigError("initial_interceptors must be within [0, max_interceptors]")
        if eng.interceptor_speed_kmh is not None and eng.interceptor_speed_kmh <= 0:
            raise ConfigError("interceptor_speed_kmh must be > 0")
        if eng.reference_interceptor_speed_kmh <= 0 or eng.impact_epsilon_km <= 0:
            raise ConfigError("reference speed and impact epsilon must be > 0")
        return self


PROFILES: Dict[str, Callable[[], EngineConfig]] = {
    "client_local": EngineConfig.client_local,
    "authoritative": EngineConfig.authoritative,
}

_SECTIONS = {
    "population": PopulationConfig,
    "cadence": CadenceConfig,
    "engagement": EngagementConfig,
}


# ===== YAML =====

def _coerce(value: Any) -> Any:
    # YAML has no tuples
    return tuple(value) if isinstance(value, list) else value


def _replace_checked(obj: Any, values: Dict[str, Any], where: str) -> Any:
    known = {f.name for f in dataclasses.fields(obj)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"unknown key(s) in {where}: {', '.join(sorted(unknown))}")
    return dataclasses.replace(obj, **{k: _coerce(v) for k, v in values.items()})


def config_from_dict(data: Dict[str, Any]) -> EngineConfig:
    """Build a validated EngineConfig from a plain mapping.

    ``profile`` picks the base profile; every other key overrides a field,
    nested sections (population / cadence / engagement) are merged field by
    field rather than replaced.
    """
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping")
    data = dict(data)
    profile = data.pop("profile", "client_local")
    if profile not in PROFILES:
        raise ConfigError(f"unknown profile {profile!r}; expected one of {sorted(PROFILES)}")
    cfg = PROFILES[profile]()

    sections: Dict[str, Any] = {}
    for name in _SECTIONS:
        section = data.pop(name, None)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"section {name!r} must be a mapping")
        sections[name] = _replace_checked(getattr(cfg, name), section, name)

    cfg = _replace_checked(cfg, data, "engine")
    if sections:
        cfg = dataclasses.replace(cfg, **sections)
    return cfg.validate()


def load_config(path: str) -> EngineConfig:
    """Load YAML engine configuration from ``path``."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
    cfg = config_from_dict(data)
    logger.info("loaded %s profile from %s (theater=%s)", cfg.profile, path, cfg.theater)
    return cfg
