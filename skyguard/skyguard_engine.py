"""SkyGuard Tick Orchestrator — world, alerts, missiles, engagement.

Four periodic activities share one cooperative scheduler keyed by logical
simulation seconds:

    world       every world_period_s (2 s): kinematics, population,
                classification, engagement queue, status; snapshot once
                every activity due at the same instant has run
    alerts      jittered period: contextual alert with alert_probability
    missiles    world_period_s / missile_ticks_per_world: guidance step
    engagement  jittered period: autonomous launch policy

``advance(seconds)`` runs every activity that falls due, in time order;
activities due at the same instant run world -> alerts -> missiles ->
engagement. Tests drive ``advance`` directly; ``RealtimeDriver`` feeds it
wall-clock deltas from a background thread.

All state lives behind one ``threading.RLock``. The orchestrator is the
only writer; commands (launch, pause, rewind, ...) take the same lock, so
they serialize with the activities.

Usage::

    engine = TickOrchestrator(EngineConfig.client_local(seed=7))
    engine.start()
    engine.advance(30.0)
    state = engine.get_current_state()
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional

import numpy as np

from .skyguard_anomaly import AnomalyDetector
from .skyguard_classifier import ThreatClassifier
from .skyguard_config import EngineConfig
from .skyguard_engagement import build_engagement_queue
from .skyguard_entities import (
    AiMetrics, Aircraft, AircraftCategory, Alert, AlertCategory, AlertPriority,
    EngagementCandidate, Explosion, Missile, SystemStatus, ThreatLevel,
    summarize_threat_level,
)
from .skyguard_generator import TrafficGenerator, alert_id
from .skyguard_geo import dead_reckon, within_bounds
from .skyguard_guidance import LaunchRejection, LaunchResult, MissileGuidance
from .skyguard_history import SnapshotHistory, WorldSnapshot
from .skyguard_theaters import get_theater

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Any], None]

ACTIVITY_ORDER = ("world", "alerts", "missiles", "engagement")

FACTOR_COUNT = 7
ANOMALY_REPORT_THRESHOLD = 40.0
HEADING_JITTER_DEG = 3.0


@dataclass
class EngineState:
    """Immutable-by-convention view of the engine at one instant.

    Everything is a deep copy, so callers may hold on to it across ticks.
    """
    aircraft: List[Aircraft]
    missiles: List[Missile]
    alerts: List[Alert]                 # newest first
    explosions: List[Explosion]
    status: SystemStatus
    engagement_queue: List[EngagementCandidate]
    metrics: AiMetrics
    running: bool
    paused: bool
    rewinding: bool
    sim_time: float
    version: int
    history_length: int = 0
    history_cursor: int = -1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aircraft": [a.to_dict() for a in self.aircraft],
            "missiles": [m.to_dict() for m in self.missiles],
            "alerts": [a.to_dict() for a in self.alerts],
            "explosions": [e.to_dict() for e in self.explosions],
            "systemStatus": self.status.to_dict(),
            "engagementQueue": [c.to_dict() for c in self.engagement_queue],
            "aiMetrics": self.metrics.to_dict(),
            "isRunning": self.running,
            "isPaused": self.paused,
            "isRewinding": self.rewinding,
            "simTime": self.sim_time,
            "version": self.version,
            "historyLength": self.history_length,
            "historyCursor": self.history_cursor,
        }


@dataclass
class _Activity:
    name: str
    period: float
    next_due: float
    run: Callable[[], None] = field(repr=False)


class TickOrchestrator:
    """Owns the simulated airspace and drives every component on schedule.

    Args:
        config: Engine configuration; validated on construction.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = (config or EngineConfig.client_local()).validate()
        self.theater = get_theater(self.config.theater)
        self.rng = np.random.RandomState(self.config.seed)

        cad = self.config.cadence
        self.classifier = ThreatClassifier(
            self.theater.radar_center, self.rng,
            score_history_len=self.config.score_history_len,
            prediction_horizon_s=self.config.prediction_horizon_s,
            prediction_interval_s=cad.world_period_s,
        )
        self.detector = AnomalyDetector(self.config.anomaly_threshold_fraction,
                                        self.config.anomaly_min_threshold_km)
        self.guidance = MissileGuidance(self.theater, self.config.engagement, self.rng)
        self.generator = TrafficGenerator(self.theater, self.rng,
                                          self.config.population.threat_model_fraction)
        self.history = SnapshotHistory(self.config.history_capacity)

        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []

        self.aircraft: Dict[str, Aircraft] = {}
        self.alerts: Deque[Alert] = deque(maxlen=self.config.alert_log_capacity)
        self._new_alerts: Deque[Alert] = deque(maxlen=self.config.alert_log_capacity)
        self.queue: List[EngagementCandidate] = []
        self.metrics = AiMetrics()
        self.status = SystemStatus(interceptors_ready=self.guidance.interceptors_ready)

        self.sim_time = 0.0
        self.version = 0
        self.running = False
        self.paused = False
        self.rewinding = False
        self._activities: List[_Activity] = []
        self._deferred: Optional[List] = None

    # ===== EVENTS =====

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _publish(self, event: str, payload: Any = None) -> None:
        # Inside advance(), events wait until every activity of the instant ran
        if self._deferred is not None:
            self._deferred.append((event, payload))
            return
        self._emit(event, payload)

    def _emit(self, event: str, payload: Any) -> None:
        self.version += 1
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("subscriber %r failed on %s", callback, event)

    def _post_alert(self, alert: Alert) -> None:
        self.alerts.append(alert)
        self._new_alerts.append(alert)
        self._publish("new_alert", alert)

    def drain_new_alerts(self) -> List[Alert]:
        """Alerts posted since the previous drain, oldest first."""
        with self._lock:
            drained = list(self._new_alerts)
            self._new_alerts.clear()
            return drained

    # ===== LIFECYCLE =====

    def _draw_period(self, bounds) -> float:
        lo, hi = bounds
        return round(float(self.rng.uniform(lo, hi)), 3)

    def start(self) -> None:
        """Seed a fresh airspace and begin scheduling. Restarts if running."""
        with self._lock:
            cfg = self.config
            self.aircraft = {ac.id: ac for ac in
                             self.generator.spawn_population(cfg.population.initial_count,
                                                             self.sim_time)}
            self.alerts.clear()
            self._new_alerts.clear()
            self.guidance.reset()
            self.detector.clear()
            self.history.clear()
            self.status = SystemStatus()
            self.running, self.paused, self.rewinding = True, False, False

            cad = cfg.cadence
            world = cad.world_period_s
            periods = {
                "world": world,
                "alerts": self._draw_period(cad.alert_period_range_s),
                "missiles": cad.missile_period_s,
                "engagement": self._draw_period(cad.engagement_period_range_s),
            }
            runners = {
                "world": self._world_tick,
                "alerts": self._alert_tick,
                "missiles": self._missile_tick,
                "engagement": self._engagement_tick,
            }
            self._activities = [
                _Activity(name, periods[name], round(self.sim_time + periods[name], 6),
                          runners[name])
                for name in ACTIVITY_ORDER
            ]

            self._classify_all()
            self._refresh_derived()
            self._snapshot()
            logger.info("simulation started: theater=%s profile=%s aircraft=%d "
                        "alert period %.2fs engagement period %.2fs",
                        self.theater.id, cfg.profile, len(self.aircraft),
                        periods["alerts"], periods["engagement"])
            self._publish("simulation_started", {"simTime": self.sim_time})
            self._publish("aircraft_update", list(self.aircraft.values()))

    def stop(self) -> None:
        """Halt all activities; the last state remains queryable."""
        with self._lock:
            if not self.running:
                return
            self.running, self.paused, self.rewinding = False, False, False
            self._activities = []
            self.guidance.explosions.clear()
            self.detector.clear()
            logger.info("simulation stopped at t=%.1fs", self.sim_time)
            self._publish("simulation_stopped", {"simTime": self.sim_time})

    def pause(self) -> None:
        with self._lock:
            if self.paused:
                return
            self.paused = True
            logger.info("simulation paused at t=%.1fs", self.sim_time)
            self._publish("system_status", self.status)

    def resume(self) -> None:
        """Leave pause. After a rewind, history newer than the cursor is discarded."""
        with self._lock:
            if not self.paused and not self.rewinding:
                return
            if self.rewinding:
                dropped = self.history.truncate_after_cursor()
                logger.info("resuming from rewind, discarded %d newer snapshot(s)", dropped)
            self.paused = False
            self.rewinding = False
            self._publish("system_status", self.status)

    def rewind(self, steps: int = 1) -> bool:
        """Restore the snapshot ``steps`` ticks behind the cursor. Forces pause."""
        with self._lock:
            snapshot = self.history.rewind(steps)
            if snapshot is None:
                logger.warning("rewind requested with empty history")
                return False
            self.paused = True
            self.rewinding = True
            self._restore(snapshot)
            logger.info("rewound %d step(s) to t=%.1fs (cursor %d/%d)",
                        steps, snapshot.sim_time, self.history.cursor, len(self.history))
            self._publish("state_restored", {"simTime": snapshot.sim_time,
                                             "cursor": self.history.cursor})
            return True

    # ===== COMMANDS =====

    def launch_at(self, target_id: str) -> LaunchResult:
        """Operator-commanded launch. Rejections are returned, not raised.

        A stopped engine never advances missiles, so launches are refused
        until the next start().
        """
        with self._lock:
            target = self.aircraft.get(target_id)
            if not self.running:
                result = LaunchResult(False, LaunchRejection.NOT_RUNNING)
            else:
                result = self.guidance.launch(target, self.sim_time, rewinding=self.rewinding)
            if not result.accepted:
                logger.warning("launch at %s rejected: %s", target_id, result.reason.value)
                return result
            self._refresh_status()
            self._publish("missile_launch", result.missile)
            self._post_alert(Alert(alert_id(self.rng), self.sim_time, AlertCategory.THREAT,
                                   AlertPriority.HIGH,
                                   f"Missile launched at {target.callsign}",
                                   target.position))
            return result

    def ingest_aircraft(self, records: Iterable[Aircraft]) -> int:
        """Merge live-feed aircraft into the airspace.

        Known ids keep their assessment history; new ones stay unclassified
        until the next world tick. Ignored while a rewind is displayed.
        """
        with self._lock:
            if self.rewinding:
                logger.warning("ignoring live ingest while rewinding")
                return 0
            count = 0
            for record in records:
                existing = self.aircraft.get(record.id)
                if existing is not None:
                    record = dataclasses.replace(record, classification=existing.classification)
                self.aircraft[record.id] = record
                count += 1
            if count:
                self._refresh_status()
                self._publish("aircraft_update", list(self.aircraft.values()))
            return count

    def clear_alerts(self) -> None:
        with self._lock:
            self.alerts.clear()
            self._new_alerts.clear()
            self._publish("alerts_cleared", None)

    def get_current_state(self) -> EngineState:
        with self._lock:
            return EngineState(
                aircraft=copy.deepcopy(list(self.aircraft.values())),
                missiles=copy.deepcopy(list(self.guidance.missiles.values())),
                alerts=copy.deepcopy(list(reversed(self.alerts))),
                explosions=copy.deepcopy(self.guidance.explosions),
                status=copy.deepcopy(self.status),
                engagement_queue=copy.deepcopy(self.queue),
                metrics=copy.deepcopy(self.metrics),
                running=self.running,
                paused=self.paused,
                rewinding=self.rewinding,
                sim_time=self.sim_time,
                version=self.version,
                history_length=len(self.history),
                history_cursor=self.history.cursor,
            )

    # ===== SCHEDULER =====

    def advance(self, seconds: float) -> None:
        """Move the logical clock forward, running every activity that falls due.

        While paused the clock still moves and activities are rescheduled,
        but none of them mutate state. Snapshots and broadcasts happen once
        per instant, after every activity due at that instant has run.
        """
        if seconds <= 0:
            return
        with self._lock:
            if not self.running:
                return
            target = round(self.sim_time + seconds, 6)
            while self.running:
                due = min(a.next_due for a in self._activities)
                if due > target:
                    break
                self.sim_time = due
                self._run_instant(due)
            self.sim_time = target

    def _run_instant(self, due: float) -> None:
        self._deferred = []
        try:
            world_ran = False
            for activity in self._activities:
                if activity.next_due != due:
                    continue
                activity.next_due = round(activity.next_due + activity.period, 6)
                if not self.paused:
                    activity.run()
                    world_ran = world_ran or activity.name == "world"
            if world_ran:
                self._settle_world()
        finally:
            pending, self._deferred = self._deferred, None
        for event, payload in pending:
            self._emit(event, payload)

    # ===== ACTIVITIES =====

    def _maneuver(self, ac: Aircraft) -> None:
        ac.heading = (ac.heading + self.rng.uniform(-HEADING_JITTER_DEG, HEADING_JITTER_DEG)) % 360.0
        if ac.category not in (AircraftCategory.DRONE, AircraftCategory.UNKNOWN):
            return
        if self.rng.random_sample() >= self.config.population.maneuver_probability:
            return
        if self.rng.random_sample() < 0.5:
            turn = self.rng.uniform(30.0, 90.0) * (1 if self.rng.random_sample() < 0.5 else -1)
            ac.heading = (ac.heading + turn) % 360.0
        else:
            ac.speed = max(50.0, ac.speed * self.rng.uniform(0.7, 1.3))

    def _world_tick(self) -> None:
        cfg = self.config
        pop = cfg.population
        dt = cfg.cadence.world_period_s
        bounds = self.theater.spawn_bounds

        exited = []
        for ac in self.aircraft.values():
            self._maneuver(ac)
            ac.position = dead_reckon(ac.position, ac.heading, ac.speed, dt)
            ac.last_update = self.sim_time
            if not within_bounds(ac.position, bounds.lat_range, bounds.lng_range):
                exited.append(ac.id)
        for ac_id in exited:
            del self.aircraft[ac_id]
            if pop.respawn_on_exit:
                self._add_aircraft(self.generator.spawn_aircraft(self.sim_time))

        for p in pop.spawn_probabilities:
            if len(self.aircraft) < pop.max_count and self.rng.random_sample() < p:
                self._add_aircraft(self.generator.spawn_aircraft(self.sim_time))
        if len(self.aircraft) > pop.min_count and self.rng.random_sample() < pop.retire_probability:
            oldest = next(iter(self.aircraft))
            del self.aircraft[oldest]
        while len(self.aircraft) < pop.min_count:
            self._add_aircraft(self.generator.spawn_aircraft(self.sim_time))

        self._classify_all()
        self.detector.prune(self.aircraft.keys())
        self._refresh_derived()
        self._jitter_status()

    def _settle_world(self) -> None:
        """Snapshot and broadcast once the whole instant has been applied."""
        # Missile impacts at this instant may have removed queued aircraft
        self._refresh_derived()
        self._snapshot()
        logger.debug("world tick t=%.1fs aircraft=%d queue=%d threat=%s",
                     self.sim_time, len(self.aircraft), len(self.queue),
                     self.status.threat_level)
        self._publish("aircraft_update", list(self.aircraft.values()))
        self._publish("system_status", self.status)

    def _alert_tick(self) -> None:
        if self.rng.random_sample() >= self.config.cadence.alert_probability:
            return
        self._post_alert(self.generator.smart_alert(list(self.aircraft.values()),
                                                    self.sim_time))

    def _missile_tick(self) -> None:
        report = self.guidance.step(self.config.cadence.missile_period_s,
                                    self.sim_time, self.aircraft)
        purged = self.guidance.purge(self.sim_time)
        for missile in report.impacted:
            self._publish("missile_impact", {"missileId": missile.id,
                                             "targetId": missile.target_id})
        for alert in report.alerts:
            self._post_alert(alert)
        if report.impacted or report.lost:
            self._refresh_status()
        if report.changed or purged:
            self._publish("missiles_update", list(self.guidance.missiles.values()))

    def _engagement_tick(self) -> None:
        if self.guidance.interceptors_ready <= 0:
            return
        candidate = self.guidance.pick_autonomous_target(self.queue, self.aircraft)
        if candidate is None:
            return
        if self.rng.random_sample() >= self.config.engagement.auto_launch_probability:
            return
        target = self.aircraft[candidate.aircraft.id]
        result = self.guidance.launch(target, self.sim_time)
        if not result.accepted:
            return
        eta = ("n/a" if candidate.time_to_impact_s is None
               else f"{candidate.time_to_impact_s:.0f}s")
        self._refresh_status()
        self._publish("missile_launch", result.missile)
        self._post_alert(Alert(
            alert_id(self.rng), self.sim_time, AlertCategory.SYSTEM, AlertPriority.HIGH,
            f"Autonomous engagement: {result.missile.designation} launched at "
            f"{target.callsign} ({target.threat_level.value}, score "
            f"{candidate.engagement_score:.0f}, ETA {eta})",
            target.position))

    # ===== INTERNALS =====

    def _add_aircraft(self, ac: Aircraft) -> None:
        self.aircraft[ac.id] = ac

    def _classify_all(self) -> None:
        for ac in self.aircraft.values():
            assessment = self.classifier.classify(
                ac, self.detector.heading_delta(ac), self.detector.score(ac))
            ac.apply_assessment(assessment)
            self.detector.record(ac, assessment.predicted_path)

    def _refresh_status(self) -> None:
        level, active = summarize_threat_level(list(self.aircraft.values()))
        self.status.aircraft_count = len(self.aircraft)
        self.status.threat_level = level
        self.status.active_threats = active
        self.status.interceptors_ready = self.guidance.interceptors_ready

    def _refresh_derived(self) -> None:
        """Engagement queue, classifier metrics and status counts."""
        aircraft = list(self.aircraft.values())
        self.queue = build_engagement_queue(
            aircraft, self.theater.radar_center,
            self.config.engagement.reference_interceptor_speed_kmh)

        classified = [ac.classification for ac in aircraft if ac.classification is not None]
        distribution = {lvl.value: 0 for lvl in ThreatLevel}
        for ac in aircraft:
            distribution[ac.threat_level.value] += 1
        self.metrics = AiMetrics(
            classifications_per_second=round(
                FACTOR_COUNT * len(classified) / self.config.cadence.world_period_s, 1),
            average_confidence=(round(float(np.mean([c.confidence_score for c in classified])), 1)
                                if classified else 0.0),
            anomalies_detected=sum(1 for c in classified
                                   if c.anomaly_score > ANOMALY_REPORT_THRESHOLD),
            threat_distribution=distribution,
        )
        self._refresh_status()

    def _jitter_status(self) -> None:
        st = self.status
        st.radar_uptime = round(float(np.clip(
            st.radar_uptime + self.rng.uniform(-0.05, 0.05), 95.0, 100.0)), 2)
        st.system_readiness = round(float(np.clip(
            st.system_readiness + self.rng.uniform(-1.0, 1.0), 90.0, 100.0)), 2)

    def _snapshot(self) -> None:
        self.history.push(WorldSnapshot(
            sim_time=self.sim_time,
            aircraft=list(self.aircraft.values()),
            missiles=list(self.guidance.missiles.values()),
            alerts=list(self.alerts),
            explosions=list(self.guidance.explosions),
            interceptors_ready=self.guidance.interceptors_ready,
            status=self.status,
            detector_state=self.detector.export_state(),
        ))

    def _restore(self, snapshot: WorldSnapshot) -> None:
        self.aircraft = {ac.id: ac for ac in snapshot.aircraft}
        self.guidance.missiles = {m.id: m for m in snapshot.missiles}
        self.guidance.explosions = list(snapshot.explosions)
        self.guidance.interceptors_ready = snapshot.interceptors_ready
        self.alerts.clear()
        self.alerts.extend(snapshot.alerts)
        self.detector.restore_state(snapshot.detector_state)
        self._refresh_derived()
        self.status = snapshot.status


class RealtimeDriver:
    """Feeds wall-clock time into ``engine.advance`` from a daemon thread.

    Args:
        engine: Orchestrator to drive.
        interval_s: Wake-up period; defaults to the missile cadence.
        time_scale: Simulation seconds per wall-clock second.
    """

    def __init__(self, engine: TickOrchestrator, interval_s: Optional[float] = None,
                 time_scale: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        self.engine = engine
        self.interval_s = interval_s or engine.config.cadence.missile_period_s
        self.time_scale = time_scale
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.alive:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="skyguard-driver", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        last = self._clock()
        while not self._stop.wait(self.interval_s):
            now = self._clock()
            self.engine.advance((now - last) * self.time_scale)
            last = now

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
