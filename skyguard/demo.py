#!/usr/bin/env python3
"""
SkyGuard Demo — Headless Airspace Defense Run
=============================================

Run with:
    python -m skyguard.demo                          # 120 s, client-local profile
    python -m skyguard.demo --profile authoritative  # server-side profile
    python -m skyguard.demo --config config/skyguard_client.yaml --seconds 300
    python -m skyguard.demo --realtime --seconds 20  # wall-clock driven

Prints a per-world-tick summary line, the final engagement queue and the
most recent alerts. ``--rewind N`` pauses at the end, steps N snapshots
back and prints the restored picture.
"""

import argparse
import dataclasses
import logging
import time

from .skyguard_config import PROFILES, load_config
from .skyguard_engine import RealtimeDriver, TickOrchestrator


def _print_state(state, n_alerts: int = 8) -> None:
    st = state.status
    print(f"  t={state.sim_time:7.1f}s | aircraft {st.aircraft_count:2d} | "
          f"threat {st.threat_level:6s} ({st.active_threats} active) | "
          f"interceptors {st.interceptors_ready:2d} | "
          f"missiles {sum(1 for m in state.missiles if m.active)} in flight")
    if state.engagement_queue:
        print("  Engagement queue:")
        for c in state.engagement_queue[:5]:
            eta = "   -" if c.time_to_impact_s is None else f"{c.time_to_impact_s:4.0f}s"
            print(f"    {c.aircraft.callsign:12s} {c.aircraft.threat_level.value:8s} "
                  f"score {c.engagement_score:6.2f}  {c.recommendation.value:6s} ETA {eta}")
    if n_alerts and state.alerts:
        print("  Recent alerts:")
        for a in state.alerts[:n_alerts]:
            print(f"    [{a.priority.value:6s}] {a.category.value:9s} {a.message}")


def run_demo(config, seconds: float = 120.0, realtime: bool = False,
             rewind: int = 0, quiet: bool = False) -> TickOrchestrator:
    engine = TickOrchestrator(config)

    if not quiet:
        def on_event(event, payload):
            if event == "missile_impact":
                print(f"  ** impact: {payload['missileId']} -> {payload['targetId']}")
        engine.subscribe(on_event)

    print(f"━━━ SkyGuard: {engine.theater.name} / {config.profile} ━━━")
    engine.start()

    world = config.cadence.world_period_s
    if realtime:
        driver = RealtimeDriver(engine)
        driver.start()
        try:
            time.sleep(seconds)
        finally:
            driver.stop()
    else:
        elapsed = 0.0
        while elapsed < seconds:
            engine.advance(world)
            elapsed += world
            if not quiet and int(elapsed) % 10 == 0:
                _print_state(engine.get_current_state(), n_alerts=0)

    print("\n━━━ Final picture ━━━")
    _print_state(engine.get_current_state())

    if rewind:
        engine.rewind(rewind)
        print(f"\n━━━ Rewound {rewind} step(s) ━━━")
        _print_state(engine.get_current_state(), n_alerts=3)
        engine.resume()

    engine.stop()
    return engine


def main():
    parser = argparse.ArgumentParser(
        description='SkyGuard Demo — Headless Airspace Defense Run',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Profiles:
  client_local   busy airspace, restock on kill, frequent launches
  authoritative  8 aircraft held constant, 12 interceptors, no restock

Examples:
  python -m skyguard.demo --seed 7
  python -m skyguard.demo --theater uzbekistan --seconds 300
""")
    parser.add_argument('--profile', '-p', choices=sorted(PROFILES), default='client_local',
                        help='Engine profile (default: client_local)')
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='YAML configuration file (overrides --profile)')
    parser.add_argument('--theater', '-t', type=str, default=None,
                        help='Theater id (germany, uzbekistan)')
    parser.add_argument('--seed', type=int, default=None, help='Random seed')
    parser.add_argument('--seconds', '-n', type=float, default=120.0,
                        help='Simulation seconds to run (default: 120)')
    parser.add_argument('--realtime', action='store_true',
                        help='Drive the engine from wall-clock time')
    parser.add_argument('--rewind', type=int, default=0,
                        help='Rewind N snapshots at the end')
    parser.add_argument('--quiet', '-q', action='store_true')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    config = load_config(args.config) if args.config else PROFILES[args.profile]()
    overrides = {}
    if args.theater:
        overrides['theater'] = args.theater
    if args.seed is not None:
        overrides['seed'] = args.seed
    if overrides:
        config = dataclasses.replace(config, **overrides).validate()

    run_demo(config, seconds=args.seconds, realtime=args.realtime,
             rewind=args.rewind, quiet=args.quiet)
    print("\n━━━ Demo complete. ━━━")


if __name__ == '__main__':
    main()
