"""
===============================================================================
ASCENT GNC - Burn Scheduler
===============================================================================
Forecasts the start of the discrete orbit-insertion burns:

    Circularization  prograde, centred on apoapsis (traditional strategy)
    Retrograde       retrograde, centred on periapsis (apoapsis overshoot)

The start of each burn is latched as an ABSOLUTE mission time the first
time its trigger conditions are met. Later ticks only subtract the current
time, so a displayed countdown falls monotonically even though the orbit
estimate behind it is re-derived on every tick. A latch is cleared when
its countdown elapses, when its trigger condition no longer holds, when the
vehicle drops below the atmosphere limit, or on reset().

Strategy selection:
    DIRECT_ASCENT  low target, or an already long circularization burn with
                   the apoapsis near target: periapsis is raised by a
                   sustained prograde burn and no discrete event is
                   scheduled
    TRADITIONAL    coast to apoapsis and circularize there
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ascent_gnc.core.config import GuidanceConfig
from ascent_gnc.core.state import PhysicsSample, VehicleState
from ascent_gnc.dynamics.anomaly import AnomalySolver
from ascent_gnc.dynamics.kinematics import (
    LocalFrame, local_frame, time_to_altitude, vertical_acceleration,
)
from ascent_gnc.dynamics.orbital_mechanics import OrbitElements, OrbitPredictor
from ascent_gnc.guidance.maneuver_planner import ManeuverPlanner

logger = logging.getLogger(__name__)


class BurnStrategy(str, Enum):
    """How the periapsis is raised to the target."""
    DIRECT_ASCENT = 'direct-ascent'
    TRADITIONAL = 'traditional'


class BurnType(str, Enum):
    CIRCULARIZATION = 'circularization'
    RETROGRADE = 'retrograde'


@dataclass
class BurnEvent:
    """
    Upcoming propulsive maneuver.

    Attributes:
        time: Time until burn start (s)
        name: Display name
        type: Burn type
        delta_v: Estimated delta-V (m/s)
        burn_time: Estimated burn duration (s)
    """
    time: float
    name: str
    type: BurnType
    delta_v: float = 0.0
    burn_time: float = 0.0


@dataclass
class LatchedBurn:
    """Absolute burn start time plus the estimate made when it was latched."""
    start_time: float
    delta_v: float
    burn_time: float


class BurnScheduler:
    """
    Owner of the two latched burn start times.

    Args:
        config: Static guidance configuration
    """

    def __init__(self, config: GuidanceConfig):
        self.config = config
        self.predictor = OrbitPredictor(config.mu, config.planet_radius)
        self.solver = AnomalySolver(config.mu)
        self.planner = ManeuverPlanner(config.mu, config.planet_radius)
        self.circularization_latch: Optional[LatchedBurn] = None
        self.retrograde_latch: Optional[LatchedBurn] = None

    def reset(self) -> None:
        """Clear both latches (mission reset or replay)."""
        self.circularization_latch = None
        self.retrograde_latch = None
        logger.debug("Burn latches cleared")

    # -------------------------------------------------------------------------
    # Strategy
    # -------------------------------------------------------------------------

    def select_strategy(self, orbit: OrbitElements, circularization_burn_time: float) -> BurnStrategy:
        """
        Pick the periapsis-raising strategy.

        Args:
            orbit: Current predicted orbit
            circularization_burn_time: Estimated circularization burn (s)

        Returns:
            BurnStrategy
        """
        sched = self.config.scheduler
        if self.config.target_altitude < sched.direct_ascent_max_target:
            return BurnStrategy.DIRECT_ASCENT
        apoapsis_error = orbit.apoapsis - self.config.target_altitude
        if (circularization_burn_time > sched.direct_ascent_min_burn
                and apoapsis_error < sched.tolerance):
            return BurnStrategy.DIRECT_ASCENT
        return BurnStrategy.TRADITIONAL

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def calculate_burn_events(self, vehicle: VehicleState, physics: PhysicsSample,
                              pitch: float = 90.0) -> List[BurnEvent]:
        """
        Upcoming burn events for the current tick.

        Args:
            vehicle: Current vehicle snapshot
            physics: Physics sample for this tick
            pitch: Current guidance pitch (deg), used by the kinematic
                fallback while thrusting

        Returns:
            Zero, one or two BurnEvents
        """
        cfg = self.config
        frame = local_frame(vehicle, cfg.planet_radius)
        if frame.altitude < cfg.atmosphere_limit:
            if self.circularization_latch or self.retrograde_latch:
                self.reset()
            return []

        orbit = self.predictor.predict(vehicle.position, vehicle.velocity)
        tol = cfg.scheduler.tolerance
        apoapsis_error = orbit.apoapsis - cfg.target_altitude
        periapsis_error = orbit.periapsis - cfg.target_altitude

        circ_dv = self.planner.circularization_delta_v(orbit, frame.speed)
        circ_burn = self.planner.burn_duration(circ_dv, vehicle.stage_index, cfg.stages,
                                               physics.total_mass)
        strategy = self.select_strategy(orbit, circ_burn)

        events = []

        # Traditional: circularization at apoapsis
        if (strategy == BurnStrategy.TRADITIONAL
                and vehicle.time >= cfg.scheduler.circularization_min_elapsed
                and periapsis_error < -tol
                and apoapsis_error >= -tol):
            event = self._circularization_event(vehicle, physics, frame, orbit,
                                                circ_dv, circ_burn, pitch)
            if event is not None:
                events.append(event)
        elif self.circularization_latch is not None:
            self._clear('circularization')

        # Retrograde at periapsis
        if periapsis_error >= -tol and apoapsis_error > tol:
            event = self._retrograde_event(vehicle, physics, frame, orbit)
            if event is not None:
                events.append(event)
        elif self.retrograde_latch is not None:
            self._clear('retrograde')

        return events

    def _circularization_event(self, vehicle: VehicleState, physics: PhysicsSample,
                               frame: LocalFrame, orbit: OrbitElements,
                               delta_v: float, burn_time: float,
                               pitch: float) -> Optional[BurnEvent]:
        altitude_to_apoapsis = orbit.apoapsis - frame.altitude
        if not (frame.is_ascending and altitude_to_apoapsis > 0.0):
            # apoapsis passed: a latched countdown no longer applies
            if self.circularization_latch is not None:
                self._clear('circularization')
            return None

        half_burn = 0.5 * burn_time
        if self.circularization_latch is None:
            t_apo = self.solver.time_to_apoapsis(orbit, vehicle.position, vehicle.velocity)
            if vehicle.engine_on and (not math.isfinite(t_apo) or t_apo <= 0.0):
                a_vert = vertical_acceleration(vehicle, physics, frame, pitch,
                                               len(self.config.stages))
                t_apo = time_to_altitude(frame.altitude, orbit.apoapsis, frame.v_vertical, a_vert)
                if not math.isfinite(t_apo) or t_apo <= 0.0:
                    t_apo = altitude_to_apoapsis / max(1.0, frame.v_vertical)
            if math.isfinite(t_apo) and t_apo > half_burn:
                self.circularization_latch = LatchedBurn(
                    vehicle.time + t_apo - half_burn, delta_v, burn_time)
                logger.debug("Circularization burn latched at T+%.1f s (dv=%.1f m/s, %.1f s)",
                             self.circularization_latch.start_time, delta_v, burn_time)

        return self._countdown('circularization', vehicle.time)

    def _retrograde_event(self, vehicle: VehicleState, physics: PhysicsSample,
                          frame: LocalFrame, orbit: OrbitElements) -> Optional[BurnEvent]:
        if self.retrograde_latch is None:
            t_peri = self.solver.time_to_periapsis(orbit, vehicle.position, vehicle.velocity)
            if not math.isfinite(t_peri) or t_peri <= 0.0:
                altitude_to_periapsis = frame.altitude - orbit.periapsis
                if not frame.is_ascending and altitude_to_periapsis > 0.0:
                    t_peri = altitude_to_periapsis / max(1.0, -frame.v_vertical)

            delta_v = self.planner.retrograde_delta_v(orbit, self.config.target_altitude,
                                                      frame.speed)
            burn_time = self.planner.burn_duration(delta_v, vehicle.stage_index,
                                                   self.config.stages, physics.total_mass)
            if math.isfinite(t_peri) and t_peri > 0.5 * burn_time:
                self.retrograde_latch = LatchedBurn(
                    vehicle.time + t_peri - 0.5 * burn_time, delta_v, burn_time)
                logger.debug("Retrograde burn latched at T+%.1f s (dv=%.1f m/s, %.1f s)",
                             self.retrograde_latch.start_time, delta_v, burn_time)

        return self._countdown('retrograde', vehicle.time)

    def _countdown(self, kind: str, now: float) -> Optional[BurnEvent]:
        """Turn a latch into an event, clearing it once the countdown elapses."""
        latch = getattr(self, f'{kind}_latch')
        if latch is None:
            return None
        remaining = latch.start_time - now
        if remaining <= 0.0:
            self._clear(kind)
            return None
        if remaining >= self.config.scheduler.horizon:
            return None
        burn_type = BurnType(kind)
        return BurnEvent(
            time=remaining,
            name=f'{kind.capitalize()} burn start',
            type=burn_type,
            delta_v=latch.delta_v,
            burn_time=latch.burn_time,
        )

    def _clear(self, kind: str) -> None:
        setattr(self, f'{kind}_latch', None)
        logger.debug("%s burn latch cleared", kind.capitalize())
