#!/usr/bin/env python3
"""
===============================================================================
ASCENT GNC - COMMAND LINE ENTRY POINT
===============================================================================
Evaluates one guidance tick for a vehicle/physics snapshot and reports the
command, the burn countdowns and the next mission event.

USAGE:
    python -m ascent_gnc.main --state snapshot.yaml
    python -m ascent_gnc.main --config config/guidance_config.yaml --state snapshot.yaml
    python -m ascent_gnc.main --state snapshot.yaml --dt 0.1 --verbose

STATE FILE:
    vehicle:
      position_m: [x, y]
      velocity_m_s: [vx, vy]
      time_s: 120.0
      stage_index: 0
      propellant_remaining_kg: [150000, 92670]
      engine_on: true
      burn_mode: null
      fairing_jettisoned: false
    physics:
      air_density_kg_m3: 0.01
      airspeed_m_s: 1500
      gravity_m_s2: 9.6
      thrust_N: 7600000
      drag_N: 20000
      mass_flow_rate_kg_s: 2500
      total_mass_kg: 300000
    guidance:                     # optional prior state
      last_commanded_pitch_deg: 60.0
      last_flight_path_angle_deg: 60.5
      last_periapsis_m: null
===============================================================================
"""

import argparse
import logging
import math
import sys
from typing import Optional, Tuple

import yaml

from ascent_gnc.core.config import load_config
from ascent_gnc.core.state import PhysicsSample, VehicleState
from ascent_gnc.guidance.ascent_guidance import GuidanceState
from ascent_gnc.guidance.flight_computer import FlightComputer

logger = logging.getLogger('ASCENT_GNC')


def load_snapshot(state_path: str) -> Tuple[VehicleState, PhysicsSample, Optional[GuidanceState]]:
    """
    Load a vehicle/physics snapshot from a YAML file.

    Args:
        state_path: Path to the snapshot YAML

    Returns:
        (VehicleState, PhysicsSample, prior GuidanceState or None)
    """
    with open(state_path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    v_cfg = raw.get('vehicle', {}) or {}
    p_cfg = raw.get('physics', {}) or {}
    g_cfg = raw.get('guidance')

    if 'position_m' not in v_cfg or 'velocity_m_s' not in v_cfg:
        raise ValueError(f"{state_path}: vehicle.position_m and vehicle.velocity_m_s are required")

    vehicle = VehicleState(
        position=v_cfg['position_m'],
        velocity=v_cfg['velocity_m_s'],
        time=v_cfg.get('time_s', 0.0),
        stage_index=v_cfg.get('stage_index', 0),
        propellant_remaining=list(v_cfg.get('propellant_remaining_kg', [])),
        engine_on=v_cfg.get('engine_on', True),
        burn_mode=v_cfg.get('burn_mode'),
        fairing_jettisoned=v_cfg.get('fairing_jettisoned', False),
    )
    physics = PhysicsSample(
        air_density=p_cfg.get('air_density_kg_m3', 0.0),
        airspeed=p_cfg.get('airspeed_m_s', 0.0),
        gravity=p_cfg.get('gravity_m_s2', 9.80665),
        thrust=p_cfg.get('thrust_N', 0.0),
        drag=p_cfg.get('drag_N', 0.0),
        mass_flow_rate=p_cfg.get('mass_flow_rate_kg_s', 0.0),
        total_mass=p_cfg.get('total_mass_kg', 1.0),
    )

    prior = None
    if g_cfg:
        prior = GuidanceState(
            last_commanded_pitch=g_cfg.get('last_commanded_pitch_deg', 90.0),
            last_flight_path_angle=g_cfg.get('last_flight_path_angle_deg', 90.0),
            last_periapsis=g_cfg.get('last_periapsis_m'),
        )
    return vehicle, physics, prior


def _km(value: float) -> str:
    return f"{value / 1000.0:.1f} km" if math.isfinite(value) else "inf"


def main(argv=None):
    """
    Main entry point. Parses command line arguments and evaluates one tick.
    """
    parser = argparse.ArgumentParser(
        description='Ascent guidance: evaluate one tick for a state snapshot',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ascent_gnc.main --state snapshot.yaml
  python -m ascent_gnc.main --config config/guidance_config.yaml --state snapshot.yaml --dt 0.1
        """
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to guidance config YAML (default: built-in values)')
    parser.add_argument('--state', type=str, required=True,
                        help='Path to vehicle/physics snapshot YAML')
    parser.add_argument('--dt', type=float, default=0.0,
                        help='Time since the previous tick in seconds (default: 0, no rate limit)')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        config = load_config(args.config)
        vehicle, physics, prior = load_snapshot(args.state)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Cannot start: %s", exc)
        return 1

    fc = FlightComputer(config)
    if prior is not None:
        fc.guidance.state = prior

    result = fc.step(vehicle, physics, args.dt)
    logger.info("Phase:     %s (%s)", result.phase, result.diagnostics.reason)
    logger.info("Pitch:     %.2f deg%s", result.pitch,
                " (rate limited)" if result.diagnostics.rate_limited else "")
    logger.info("Throttle:  %.2f", result.throttle)
    logger.info("Orbit:     Ap %s, Pe %s, e=%.4f",
                _km(result.orbit.apoapsis), _km(result.orbit.periapsis), result.orbit.eccentricity)
    logger.info("Delta-V:   %.0f m/s remaining, %.0f m/s horizontal deficit",
                result.remaining_delta_v, result.velocity_deficit)

    for burn in fc.burn_events(vehicle, physics):
        logger.info("Burn:      %s in %.1f s (dv=%.1f m/s, %.1f s)",
                    burn.name, burn.time, burn.delta_v, burn.burn_time)

    event = fc.next_event(vehicle, physics)
    if event is None:
        logger.info("Next event: none within horizon")
    else:
        logger.info("Next event: %s in %.1f s", event.name, event.time)
    return 0


if __name__ == '__main__':
    sys.exit(main())
