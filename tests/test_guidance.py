"""Tests for SkyGuard missile guidance.

Launch rejections, pure pursuit convergence, kill effects, LOST handling.
pytest tests/test_guidance.py -v
"""

import numpy as np
import pytest
import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from skyguard.skyguard_config import EngagementConfig
from skyguard.skyguard_engagement import build_engagement_queue
from skyguard.skyguard_entities import (
    Aircraft, AircraftCategory, AlertCategory, AlertPriority, MissileState, Position,
    ThreatAssessment, ThreatLevel,
)
from skyguard.skyguard_geo import planar_offset_km
from skyguard.skyguard_guidance import LaunchRejection, MissileGuidance
from skyguard.skyguard_theaters import get_theater

THEATER = get_theater("germany")
DT = 0.1


def _guidance(**overrides):
    params = dict(initial_interceptors=5, max_interceptors=5, restock_on_kill=True,
                  interceptor_designation="Test SAM", interceptor_speed_kmh=3600.0)
    params.update(overrides)
    return MissileGuidance(THEATER, EngagementConfig(**params), np.random.RandomState(1))


def _target(ac_id="ACTGT001", north_km=30.0, altitude=5000.0, level=ThreatLevel.HOSTILE):
    center = THEATER.radar_center
    ac = Aircraft(ac_id, Position(center.lat + north_km / 111.0, center.lng, altitude),
                  0.0, 0.0, AircraftCategory.UNKNOWN, "UNK123")
    ac.apply_assessment(ThreatAssessment(80.0, level, (), 0.0, False, (), (80.0,)))
    return ac


def _distance(missile, target):
    return float(np.linalg.norm(planar_offset_km(missile.current_position, target.position)))


def _fly(guidance, aircraft, max_steps=2000, t0=0.0):
    """Step until no missile is active; returns (sim_time, reports)."""
    t = t0
    reports = []
    for _ in range(max_steps):
        t += DT
        reports.append(guidance.step(DT, t, aircraft))
        if not guidance.active_missiles:
            break
    return t, reports


# ============================================================
# LAUNCH
# ============================================================

class TestLaunch:

    def test_accepted_launch(self):
        g = _guidance()
        tgt = _target()
        result = g.launch(tgt, 10.0)
        assert result.accepted and result.reason is None
        m = result.missile
        assert m.state is MissileState.PURSUING
        assert m.active
        assert m.start_position == Position(THEATER.radar_center.lat,
                                            THEATER.radar_center.lng, 0.0)
        assert m.target_id == tgt.id
        assert m.designation == "Test SAM"
        assert m.speed == 3600.0
        assert m.id.startswith("MSL") and len(m.id) == 9
        assert g.interceptors_ready == 4

    def test_random_theater_system(self):
        g = _guidance(interceptor_designation=None, interceptor_speed_kmh=None)
        m = g.launch(_target(), 0.0).missile
        systems = {s.designation: s.speed for s in THEATER.missile_systems}
        assert m.designation in systems
        assert m.speed == systems[m.designation] > 0

    def test_reject_unknown_target(self):
        g = _guidance()
        result = g.launch(None, 0.0)
        assert not result.accepted
        assert result.reason is LaunchRejection.UNKNOWN_TARGET
        assert g.missiles == {} and g.interceptors_ready == 5

    def test_reject_no_interceptors(self):
        g = _guidance(initial_interceptors=0)
        result = g.launch(_target(), 0.0)
        assert result.reason is LaunchRejection.NO_INTERCEPTORS
        assert g.missiles == {} and g.interceptors_ready == 0

    def test_reject_while_rewinding(self):
        g = _guidance()
        result = g.launch(_target(), 0.0, rewinding=True)
        assert result.reason is LaunchRejection.REWINDING
        assert g.missiles == {} and g.interceptors_ready == 5


# ============================================================
# PURSUIT
# ============================================================

class TestPursuit:

    def test_distance_strictly_decreasing_then_impact(self):
        g = _guidance()
        tgt = _target(north_km=30.0)
        aircraft = {tgt.id: tgt}
        m = g.launch(tgt, 0.0).missile
        distances = [_distance(m, tgt)]
        t = 0.0
        while m.active:
            t += DT
            g.step(DT, t, aircraft)
            if m.active:
                distances.append(_distance(m, tgt))
            assert t < 100.0
        assert all(b < a for a, b in zip(distances, distances[1:]))
        assert m.state is MissileState.IMPACTED

    def test_impact_effects(self):
        g = _guidance()
        tgt = _target(north_km=10.0)
        aircraft = {tgt.id: tgt}
        g.launch(tgt, 0.0)
        _, reports = _fly(g, aircraft)
        impacted = [m for r in reports for m in r.impacted]
        alerts = [a for r in reports for a in r.alerts]
        assert len(impacted) == 1
        assert tgt.id not in aircraft
        assert len(g.explosions) == 1
        assert g.explosions[0].callsign == "UNK123"
        assert g.explosions[0].id.endswith("_" + impacted[0].id)
        assert len(alerts) == 1
        assert alerts[0].category is AlertCategory.THREAT
        assert alerts[0].priority is AlertPriority.HIGH
        assert g.interceptors_ready == 5    # 5 - 1 + restock

    def test_restock_returns_inventory(self):
        g = _guidance(initial_interceptors=5, max_interceptors=5)
        a, b = _target("ACA", 8.0), _target("ACB", 9.0)
        aircraft = {a.id: a, b.id: b}
        g.launch(a, 0.0)
        g.launch(b, 0.0)
        assert g.interceptors_ready == 3
        _fly(g, aircraft)
        assert g.interceptors_ready == 5

    def test_no_restock_when_disabled(self):
        g = _guidance(restock_on_kill=False)
        tgt = _target(north_km=5.0)
        aircraft = {tgt.id: tgt}
        g.launch(tgt, 0.0)
        _fly(g, aircraft)
        assert tgt.id not in aircraft
        assert g.interceptors_ready == 4

    def test_tracks_moving_target(self):
        g = _guidance()
        tgt = _target(north_km=20.0)
        aircraft = {tgt.id: tgt}
        m = g.launch(tgt, 0.0).missile
        g.step(DT, DT, aircraft)
        tgt.position = Position(tgt.position.lat, tgt.position.lng + 0.05, tgt.position.altitude)
        g.step(DT, 2 * DT, aircraft)
        assert m.target_position == tgt.position


# ============================================================
# LOST
# ============================================================

class TestLost:

    def test_target_vanishes(self):
        g = _guidance()
        tgt = _target()
        aircraft = {tgt.id: tgt}
        m = g.launch(tgt, 0.0).missile
        g.step(DT, DT, aircraft)
        del aircraft[tgt.id]
        report = g.step(DT, 2 * DT, aircraft)
        assert report.lost == [m]
        assert m.state is MissileState.LOST and not m.active
        assert g.explosions == []
        assert report.alerts == []
        assert g.interceptors_ready == 4

    def test_flight_time_exceeded(self):
        g = _guidance(max_flight_time_s=1.0)
        tgt = _target(north_km=200.0)
        aircraft = {tgt.id: tgt}
        m = g.launch(tgt, 0.0).missile
        g.step(DT, 0.5, aircraft)
        assert m.active
        g.step(DT, 1.5, aircraft)
        assert m.state is MissileState.LOST
        assert tgt.id in aircraft


# ============================================================
# HOUSEKEEPING & TARGET SELECTION
# ============================================================

class TestHousekeeping:

    def test_purge_after_retention(self):
        g = _guidance(missile_retention_s=10.0, explosion_ttl_s=2.0)
        tgt = _target(north_km=3.0)
        aircraft = {tgt.id: tgt}
        g.launch(tgt, 0.0)
        t, _ = _fly(g, aircraft)
        assert len(g.missiles) == 1 and len(g.explosions) == 1
        g.purge(t + 1.0)
        assert len(g.missiles) == 1 and len(g.explosions) == 1
        g.purge(t + 2.5)
        assert len(g.missiles) == 1 and g.explosions == []
        g.purge(t + 10.5)
        assert g.missiles == {}

    def test_autonomous_target_skips_pursued(self):
        g = _guidance()
        a, b = _target("ACA", 10.0), _target("ACB", 40.0)
        aircraft = {a.id: a, b.id: b}
        queue = build_engagement_queue(aircraft.values(), THEATER.radar_center)
        assert queue[0].aircraft.id == "ACA"
        g.launch(a, 0.0)
        assert g.pick_autonomous_target(queue, aircraft).aircraft.id == "ACB"

    def test_autonomous_target_skips_departed(self):
        g = _guidance()
        a = _target("ACA", 10.0)
        queue = build_engagement_queue([a], THEATER.radar_center)
        assert g.pick_autonomous_target(queue, {}) is None

    def test_reset(self):
        g = _guidance()
        g.launch(_target(), 0.0)
        g.reset()
        assert g.missiles == {} and g.interceptors_ready == 5
