"""SkyGuard live-feed mapping — airplanes.live and OpenSky records to Aircraft.

Only the record mapping lives here; fetching is the host's job. Mapped
aircraft carry no assessment, so they read NEUTRAL until the engine's next
classification pass. Hand them to ``TickOrchestrator.ingest_aircraft``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .skyguard_entities import Aircraft, AircraftCategory, Position

logger = logging.getLogger(__name__)

FT_TO_M = 0.3048
KN_TO_KMH = 1.852
MS_TO_KMH = 3.6

MIN_ALTITUDE_M = 100.0
MIN_SPEED_KMH = 50.0
OPENSKY_DEFAULT_ALTITUDE_M = 10000.0

LIVE_PREFIX = "LIVE_"


def emitter_category(code: Optional[str], military: bool = False) -> AircraftCategory:
    """ADS-B emitter category (A0..C7) to an airframe category."""
    if military:
        return AircraftCategory.MILITARY
    if not code:
        return AircraftCategory.UNKNOWN
    code = code.upper()
    if code.startswith("A") and code >= "A3":
        return AircraftCategory.COMMERCIAL
    if code.startswith(("A", "B")):
        return AircraftCategory.PRIVATE
    if code == "C0":
        return AircraftCategory.DRONE
    return AircraftCategory.UNKNOWN


def opensky_category(code: Optional[int]) -> AircraftCategory:
    if code is None:
        return AircraftCategory.UNKNOWN
    if code >= 3:
        return AircraftCategory.COMMERCIAL
    if code >= 1:
        return AircraftCategory.PRIVATE
    return AircraftCategory.UNKNOWN


def aircraft_from_airplanes_live(record: Dict[str, Any],
                                 sim_time: float = 0.0) -> Optional[Aircraft]:
    """Map one airplanes.live ``ac`` entry. Returns None without a position."""
    lat, lon = record.get("lat"), record.get("lon")
    hex_id = record.get("hex")
    if lat is None or lon is None or not hex_id:
        return None
    alt_baro = record.get("alt_baro")
    alt_ft = alt_baro if isinstance(alt_baro, (int, float)) else 0.0  # "ground"
    callsign = (record.get("flight") or record.get("r") or hex_id).strip()
    return Aircraft(
        id=LIVE_PREFIX + hex_id,
        position=Position(float(lat), float(lon), max(MIN_ALTITUDE_M, alt_ft * FT_TO_M)),
        speed=max(MIN_SPEED_KMH, float(record.get("gs") or 0.0) * KN_TO_KMH),
        heading=float(record.get("track") or 0.0) % 360.0,
        category=emitter_category(record.get("category"), bool(record.get("mil"))),
        callsign=callsign or hex_id,
        model=record.get("t") or "Unknown",
        last_update=sim_time,
        source="airplanes-live",
    )


def aircraft_from_opensky(state: Sequence[Any], sim_time: float = 0.0) -> Optional[Aircraft]:
    """Map one OpenSky state vector. Returns None without a position.

    Layout: icao24, callsign, origin_country, time_position, last_contact,
    longitude, latitude, baro_altitude, on_ground, velocity, true_track,
    vertical_rate, sensors, geo_altitude, squawk, spi, position_source
    [, category].
    """
    if len(state) < 11:
        return None
    icao24, callsign = state[0], state[1]
    lon, lat, baro, velocity, track = state[5], state[6], state[7], state[9], state[10]
    if lat is None or lon is None or not icao24:
        return None
    category = state[17] if len(state) > 17 else None
    altitude = OPENSKY_DEFAULT_ALTITUDE_M if baro is None else float(baro)
    return Aircraft(
        id=LIVE_PREFIX + icao24,
        position=Position(float(lat), float(lon), max(MIN_ALTITUDE_M, altitude)),
        speed=max(MIN_SPEED_KMH, float(velocity or 0.0) * MS_TO_KMH),
        heading=float(track or 0.0) % 360.0,
        category=opensky_category(category),
        callsign=(callsign or "").strip() or icao24,
        model="Unknown",
        last_update=sim_time,
        source="opensky",
    )


def aircraft_from_payload(payload: Dict[str, Any], provider: str,
                          sim_time: float = 0.0) -> List[Aircraft]:
    """Map a whole provider response (``{"ac": [...]}`` or ``{"states": [...]}``)."""
    if provider == "airplanes-live":
        raw, mapper = payload.get("ac") or [], aircraft_from_airplanes_live
    elif provider == "opensky":
        raw, mapper = payload.get("states") or [], aircraft_from_opensky
    else:
        raise ValueError(f"unknown feed provider {provider!r}")
    mapped = [mapper(r, sim_time) for r in raw]
    result = [ac for ac in mapped if ac is not None]
    if len(result) < len(raw):
        logger.debug("%s: skipped %d record(s) without position",
                     provider, len(raw) - len(result))
    return result
