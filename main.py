#!/usr/bin/env python3
"""
Drone Relay Chain Simulator - Main Entry Point

A ground user walks away from an access point while drones are deployed into
the user <-> AP chain on demand and keep balancing their hop lengths.

Features:
- Discrete-event clock with balance and monitor ticks
- Deployment on window loss / RTT / RSSI / hop length thresholds
- Self-balancing drones with minimum separation
- UDP echo traffic over a lossy multi-hop channel
- Per-tick telemetry with a 1-D ASCII map, optional live Matplotlib view

Run:
    python main.py --numDrones=2 --droneInitMode=deploy --userSpeed=2.5
"""

import argparse
import sys

from config import INIT_MODES, SIM_CONFIG, ConfigError
from simulation import Simulation


def get_args(argv=None):
    parser = argparse.ArgumentParser(description="Adaptive drone relay chain experiment")
    parser.add_argument("--numDrones", type=int, default=SIM_CONFIG["num_relays"],
                        help="Number of drone relays (0 = none)")
    parser.add_argument("--droneInitMode", choices=INIT_MODES, default=SIM_CONFIG["init_mode"],
                        help="Placement: even | cluster | deploy")
    parser.add_argument("--totalDistance", type=float, default=SIM_CONFIG["total_distance"],
                        help="Meters between user and AP at start")
    parser.add_argument("--userSpeed", type=float, default=SIM_CONFIG["user_speed"],
                        help="User movement speed (m/s)")
    parser.add_argument("--simTime", type=float, default=SIM_CONFIG["sim_time_s"],
                        help="Simulated seconds")
    parser.add_argument("--seed", type=int, default=SIM_CONFIG["seed"])
    parser.add_argument("--live", action="store_true", help="Show the live Matplotlib view")
    parser.add_argument("--quiet", action="store_true", help="Do not print [Move] lines")
    return parser.parse_args(argv)


def build_config(args) -> dict:
    cfg = dict(SIM_CONFIG)
    cfg.update({
        "num_relays": args.numDrones,
        "init_mode": args.droneInitMode,
        "total_distance": args.totalDistance,
        "user_speed": args.userSpeed,
        "sim_time_s": args.simTime,
        "seed": args.seed,
        "log_moves": not args.quiet,
    })
    return cfg


def main(argv=None) -> int:
    """Main entry point for the drone relay chain experiment"""
    args = get_args(argv)
    try:
        sim = Simulation(build_config(args))
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    sim.build()

    if args.live:
        from visualization import run_live_viz
        print("Starting simulation with live visualization...")
        run_live_viz(sim)
    else:
        sim.run_blocking()
        sim.report()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass
