"""SkyGuard theater registry — defended center, bounds, SAM batteries, model pools.

A theater bundles everything geography-specific the engine needs: where the
radar/battery sits, where aircraft may spawn, which interceptors are in the
inventory, and which airframes populate each category.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .skyguard_entities import AircraftCategory, Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bounds:
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float

    @property
    def lat_range(self) -> Tuple[float, float]:
        return (self.lat_min, self.lat_max)

    @property
    def lng_range(self) -> Tuple[float, float]:
        return (self.lng_min, self.lng_max)


@dataclass(frozen=True)
class DefenseSystem:
    designation: str
    speed: float        # km/h, 0 for gun systems
    range_km: float
    kind: str           # long / medium / short / gun / cram / manpads


@dataclass(frozen=True)
class Theater:
    id: str
    name: str
    radar_center: Position
    map_bounds: Bounds
    spawn_bounds: Bounds
    defense_systems: Tuple[DefenseSystem, ...]
    # category -> ((model, callsign prefix), ...)
    model_pools: Dict[AircraftCategory, Tuple[Tuple[str, str], ...]]
    threat_models: Tuple[Tuple[str, str], ...]

    @property
    def missile_systems(self) -> List[DefenseSystem]:
        """SAM-capable systems, i.e. those that fly an interceptor."""
        return [s for s in self.defense_systems if s.speed > 0]


# ===== GERMANY =====

_GERMANY = Theater(
    id="germany",
    name="Germany",
    radar_center=Position(50.0, 10.0, 0.0),
    map_bounds=Bounds(47.0, 55.5, 5.5, 15.5),
    spawn_bounds=Bounds(47.5, 55.0, 6.0, 15.0),
    defense_systems=(
        DefenseSystem("IRIS-T SLM", 3600, 40, "medium"),
        DefenseSystem("IRIS-T SLS", 3200, 12, "short"),
        DefenseSystem("MIM-104 Patriot PAC-3", 5000, 160, "long"),
        DefenseSystem("Gepard SPAAG (35mm)", 0, 5.5, "gun"),
        DefenseSystem("Ozelot LeFlaSys (Stinger)", 2400, 6, "manpads"),
        DefenseSystem("MANTIS NBS C-RAM (35mm)", 0, 3, "cram"),
        DefenseSystem("Skyranger 30", 0, 4, "gun"),
    ),
    model_pools={
        AircraftCategory.COMMERCIAL: (
            ("Airbus A320neo", "DLH"), ("Airbus A321neo", "DLH"),
            ("Boeing 737-800", "EWG"), ("Airbus A330-300", "DLH"),
            ("Boeing 747-8", "DLH"), ("Airbus A350-900", "DLH"),
            ("Embraer E195-E2", "CFG"), ("Airbus A220-300", "EWG"),
            ("Boeing 777-300ER", "BAW"), ("Airbus A380-800", "UAE"),
            ("Boeing 787-9 Dreamliner", "KLM"),
        ),
        AircraftCategory.MILITARY: (
            ("Eurofighter Typhoon", "GAF"), ("Tornado IDS", "GAF"),
            ("Tornado ECR", "GAF"), ("A400M Atlas", "GAF"),
            ("C-130J Hercules", "GAF"), ("CH-53G", "GAF"), ("NH90", "GAF"),
        ),
        AircraftCategory.PRIVATE: (
            ("Cessna Citation X", "D-C"), ("Beechcraft King Air 350", "D-I"),
            ("Pilatus PC-12", "D-F"), ("Gulfstream G650", "D-A"),
            ("Cessna 172 Skyhawk", "D-E"),
        ),
        AircraftCategory.DRONE: (
            ("Heron TP", "HERON"), ("RQ-4 Euro Hawk", "EHAWK"),
            ("DJI Mavic (civilian)", "UNK"),
        ),
        AircraftCategory.UNKNOWN: (
            ("Unidentified Fixed-Wing", "UNK"),
            ("Unidentified Rotorcraft", "UNK"),
            ("Unidentified Low-RCS", "UNK"),
        ),
    },
    threat_models=(
        ("Shahed-136 Loitering Munition", "SHAHED"),
        ("Orlan-10", "ORLAN"),
        ("Kalibr 3M14 Cruise Missile", "CRUISE"),
        ("Kh-101 Cruise Missile", "CRUISE"),
        ("Iskander-M (9M723)", "BALLISTIC"),
    ),
)


# ===== UZBEKISTAN =====

_UZBEKISTAN = Theater(
    id="uzbekistan",
    name="Uzbekistan",
    radar_center=Position(41.3, 69.3, 0.0),
    map_bounds=Bounds(37.0, 46.0, 56.0, 74.0),
    spawn_bounds=Bounds(37.5, 45.5, 57.0, 73.0),
    defense_systems=(
        DefenseSystem("HQ-9B", 4800, 200, "long"),
        DefenseSystem("S-125-2M Pechora-2M", 2400, 35, "medium"),
        DefenseSystem("S-125M1 Neva-M1", 2400, 25, "medium"),
        DefenseSystem("S-75 Dvina", 3600, 45, "long"),
        DefenseSystem("HQ-7 (FM-90)", 2800, 15, "short"),
        DefenseSystem("HQ-12", 3600, 50, "medium"),
        DefenseSystem("ZSU-23-4 Shilka (23mm)", 0, 2.5, "gun"),
    ),
    model_pools={
        AircraftCategory.COMMERCIAL: (
            ("Boeing 787-8 Dreamliner", "UZB"), ("Airbus A320neo", "UZB"),
            ("Boeing 767-300ER", "UZB"), ("Airbus A321neo", "HYA"),
            ("Embraer E190", "HYA"), ("Boeing 737-800", "THY"),
            ("Airbus A330-300", "AFL"), ("Boeing 777-200", "CCA"),
        ),
        AircraftCategory.MILITARY: (
            ("MiG-29 Fulcrum", "FULCRUM"), ("MiG-29UB Fulcrum", "FULCRUM"),
            ("Su-27 Flanker", "FLANKER"), ("Su-27UB Flanker", "FLANKER"),
            ("Su-25 Frogfoot", "FROGFOOT"), ("Su-24 Fencer", "FENCER"),
            ("Mi-24 Hind", "HIND"), ("Mi-8/17 Hip", "HIP"),
            ("Il-76 Candid", "CANDID"), ("An-26 Curl", "CURL"),
        ),
        AircraftCategory.PRIVATE: (
            ("Cessna 208 Caravan", "UK-"),
            ("Beechcraft King Air 200", "UK-"),
            ("Cessna 172 Skyhawk", "UK-"),
        ),
        AircraftCategory.DRONE: (
            ("WJ-700", "DRONE"), ("Orlan-10E", "ORLAN"),
            ("DJI Matrice (civilian)", "UNK"),
        ),
        AircraftCategory.UNKNOWN: (
            ("Unidentified Fixed-Wing", "UNK"),
            ("Unidentified Rotorcraft", "UNK"),
            ("Unidentified Low-RCS", "UNK"),
        ),
    },
    threat_models=(
        ("Militant Drone (Afghanistan)", "DRONE"),
        ("Unidentified UAV", "UAV"),
        ("Cross-border Intrusion", "INTRUDER"),
        ("Modified Commercial Drone", "UNK"),
    ),
)


THEATERS: Dict[str, Theater] = {
    _GERMANY.id: _GERMANY,
    _UZBEKISTAN.id: _UZBEKISTAN,
}

DEFAULT_THEATER = "germany"


def get_theater(theater_id: str) -> Theater:
    """Look up a theater, falling back to the default for unknown ids."""
    theater = THEATERS.get(theater_id)
    if theater is None:
        logger.warning("unknown theater %r, falling back to %s",
                       theater_id, DEFAULT_THEATER)
        theater = THEATERS[DEFAULT_THEATER]
    return theater
