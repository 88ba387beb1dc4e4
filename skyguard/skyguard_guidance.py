"""SkyGuard Missile Guidance — interceptor launch, pure pursuit, kill effects.

State machine per missile::

    LAUNCHED -> PURSUING -> IMPACTED
                         -> LOST      (target gone or flight time exceeded)

Each step re-reads the live target, syncs the aim point to it and advances
the missile along the line of sight in a local km (east, north, up) frame.
The step is clamped to the remaining distance, so against a stationary
target the distance strictly decreases until the impact radius is reached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

import numpy as np

from .skyguard_config import EngagementConfig
from .skyguard_entities import (
    Aircraft, Alert, AlertCategory, AlertPriority, EngagementCandidate,
    Explosion, Missile, MissileState, Position,
)
from .skyguard_generator import alert_id, explosion_id, missile_id
from .skyguard_geo import offset_position, planar_offset_km
from .skyguard_theaters import Theater

logger = logging.getLogger(__name__)


class LaunchRejection(Enum):
    UNKNOWN_TARGET = "unknown_target"
    NO_INTERCEPTORS = "no_interceptors"
    REWINDING = "rewinding"
    NOT_RUNNING = "not_running"


@dataclass(frozen=True)
class LaunchResult:
    """Outcome of a launch command. Rejections leave all state untouched."""
    accepted: bool
    reason: Optional[LaunchRejection] = None
    missile: Optional[Missile] = None


@dataclass
class StepReport:
    """What one guidance step changed, for the orchestrator to publish."""
    moved: int = 0
    impacted: List[Missile] = field(default_factory=list)
    lost: List[Missile] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.moved or self.impacted or self.lost)


class MissileGuidance:
    """Interceptor inventory, in-flight missiles and impact markers.

    Args:
        theater: Supplies the battery location and the SAM inventory.
        config: Engagement section of the engine configuration.
        rng: Shared numpy RandomState.
    """

    def __init__(self, theater: Theater, config: EngagementConfig,
                 rng: np.random.RandomState):
        self.theater = theater
        self.config = config
        self.rng = rng
        self.missiles: Dict[str, Missile] = {}
        self.explosions: List[Explosion] = []
        self.interceptors_ready: int = config.initial_interceptors

    def reset(self) -> None:
        self.missiles.clear()
        self.explosions.clear()
        self.interceptors_ready = self.config.initial_interceptors

    @property
    def active_missiles(self) -> List[Missile]:
        return [m for m in self.missiles.values() if m.active]

    @property
    def targeted_ids(self) -> Set[str]:
        return {m.target_id for m in self.missiles.values() if m.active}

    # ===== LAUNCH =====

    def _interceptor(self):
        """(designation, speed km/h) for the next launch."""
        cfg = self.config
        systems = self.theater.missile_systems
        if cfg.interceptor_designation is not None:
            speed = cfg.interceptor_speed_kmh
            if speed is None:
                speed = next((s.speed for s in systems
                              if s.designation == cfg.interceptor_designation),
                             cfg.reference_interceptor_speed_kmh)
            return cfg.interceptor_designation, float(speed)
        if not systems:
            return "Interceptor", float(cfg.interceptor_speed_kmh
                                        or cfg.reference_interceptor_speed_kmh)
        system = systems[self.rng.randint(len(systems))]
        return system.designation, float(cfg.interceptor_speed_kmh or system.speed)

    def launch(self, target: Optional[Aircraft], sim_time: float,
               rewinding: bool = False) -> LaunchResult:
        """Fire one interceptor at ``target`` from the battery site."""
        if rewinding:
            return LaunchResult(False, LaunchRejection.REWINDING)
        if target is None:
            return LaunchResult(False, LaunchRejection.UNKNOWN_TARGET)
        if self.interceptors_ready <= 0:
            return LaunchResult(False, LaunchRejection.NO_INTERCEPTORS)

        designation, speed = self._interceptor()
        site = self.theater.radar_center
        start = Position(site.lat, site.lng, 0.0)
        missile = Missile(
            id=missile_id(self.rng),
            designation=designation,
            start_position=start,
            current_position=start,
            target_position=target.position,
            target_id=target.id,
            launch_time=sim_time,
            speed=speed,
        )
        missile.state = MissileState.PURSUING
        self.missiles[missile.id] = missile
        self.interceptors_ready -= 1
        logger.info("launched %s (%s) at %s, %d interceptor(s) left",
                    missile.id, designation, target.callsign, self.interceptors_ready)
        return LaunchResult(True, None, missile)

    def pick_autonomous_target(self, queue: Iterable[EngagementCandidate],
                               aircraft: Dict[str, Aircraft]) -> Optional[EngagementCandidate]:
        """Queue head not already under pursuit and still in the airspace."""
        targeted = self.targeted_ids
        for candidate in queue:
            ac_id = candidate.aircraft.id
            if ac_id not in targeted and ac_id in aircraft:
                return candidate
        return None

    # ===== PURSUIT =====

    def _deactivate(self, missile: Missile, state: MissileState, sim_time: float) -> None:
        missile.active = False
        missile.state = state
        missile.deactivated_at = sim_time

    def _impact(self, missile: Missile, target: Aircraft,
                aircraft: Dict[str, Aircraft], sim_time: float) -> Alert:
        self._deactivate(missile, MissileState.IMPACTED, sim_time)
        aircraft.pop(target.id, None)
        self.explosions.append(Explosion(
            explosion_id(sim_time, missile.id), target.position, sim_time, target.callsign))
        if self.config.restock_on_kill:
            self.interceptors_ready = min(self.interceptors_ready + 1,
                                          self.config.max_interceptors)
        logger.info("%s intercepted %s (%s)", missile.id, target.callsign, target.model)
        return Alert(alert_id(self.rng), sim_time, AlertCategory.THREAT, AlertPriority.HIGH,
                     f"Missile {missile.id} ({missile.designation}) intercepted "
                     f"{target.callsign}", target.position)

    def step(self, dt: float, sim_time: float,
             aircraft: Dict[str, Aircraft]) -> StepReport:
        """Advance every active missile by ``dt`` seconds.

        ``aircraft`` is the live id -> Aircraft map; impacted targets are
        removed from it in place.
        """
        report = StepReport()
        eps = self.config.impact_epsilon_km
        for missile in list(self.missiles.values()):
            if not missile.active:
                continue
            target = aircraft.get(missile.target_id)
            if target is None or sim_time - missile.launch_time > self.config.max_flight_time_s:
                self._deactivate(missile, MissileState.LOST, sim_time)
                report.lost.append(missile)
                logger.info("%s lost track of %s", missile.id, missile.target_id)
                continue

            missile.target_position = target.position
            los = planar_offset_km(missile.current_position, target.position)
            distance = float(np.linalg.norm(los))
            if distance < eps:
                report.alerts.append(self._impact(missile, target, aircraft, sim_time))
                report.impacted.append(missile)
                continue

            advance = min(missile.speed / 3600.0 * dt, distance)
            missile.current_position = offset_position(
                missile.current_position, los / distance * advance)
            report.moved += 1
        return report

    # ===== HOUSEKEEPING =====

    def purge(self, sim_time: float) -> int:
        """Drop expired explosions and missiles past their retention window."""
        retention = self.config.missile_retention_s
        expired = [mid for mid, m in self.missiles.items()
                   if not m.active and m.deactivated_at is not None
                   and sim_time - m.deactivated_at >= retention]
        for mid in expired:
            del self.missiles[mid]
        before = len(self.explosions)
        ttl = self.config.explosion_ttl_s
        self.explosions = [e for e in self.explosions if sim_time - e.timestamp < ttl]
        return len(expired) + before - len(self.explosions)
