"""
===============================================================================
ASCENT GNC - Event Forecaster
===============================================================================
Surfaces the single next mission event for display.

Candidate sources:
    - Timeline: pitch program start
    - Altitude thresholds, crossed under constant net vertical acceleration
      (atmosphere boundary line, fairing jettison, orbit altitude)
    - Propellant exhaustion, remaining propellant / mass-flow rate
      (stage separation, engine cutoff)
    - Burn countdowns from the BurnScheduler

Candidates are pushed onto a min-heap keyed on time-until, so the next
event is the heap root. Anything beyond the forecast horizon, negative or
non-finite is never scheduled.
===============================================================================
"""

import heapq
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from ascent_gnc.core.config import GuidanceConfig
from ascent_gnc.core.state import PhysicsSample, VehicleState
from ascent_gnc.dynamics.kinematics import (
    LocalFrame, local_frame, time_to_altitude, vertical_acceleration,
)
from ascent_gnc.guidance.burn_scheduler import BurnEvent, BurnScheduler

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ForecastEvent:
    """
    A forecast mission event.

    Ordering is by ``time`` only, so events can be pushed straight onto a
    heap.

    Attributes
    ----------
    time : float
        Time until the event (s).
    name : str
        Display name.
    """
    time: float
    name: str = field(compare=False)


class EventForecaster:
    """
    Merges threshold-crossing, propellant and burn forecasts.

    Parameters
    ----------
    config : GuidanceConfig
        Static configuration.
    scheduler : BurnScheduler
        Source of burn countdowns; its latches are advanced by every
        forecast.
    """

    def __init__(self, config: GuidanceConfig, scheduler: BurnScheduler) -> None:
        self.config = config
        self.scheduler = scheduler

    def _in_horizon(self, t: float) -> bool:
        return math.isfinite(t) and 0.0 <= t < self.config.events.horizon

    def _time_to(self, target_altitude: float, vehicle: VehicleState,
                 physics: PhysicsSample, frame: LocalFrame, pitch: float) -> float:
        if not frame.is_ascending:
            return math.inf
        a_vert = vertical_acceleration(vehicle, physics, frame, pitch, len(self.config.stages))
        return time_to_altitude(frame.altitude, target_altitude, frame.v_vertical, a_vert)

    def forecast_events(self, vehicle: VehicleState, physics: PhysicsSample,
                        pitch: float = 90.0) -> List[ForecastEvent]:
        """
        All events forecast within the horizon, earliest first.

        Parameters
        ----------
        vehicle : VehicleState
            Current vehicle snapshot.
        physics : PhysicsSample
            Physics sample for this tick (thrust, drag, mass-flow rate).
        pitch : float
            Current guidance pitch (deg).

        Returns
        -------
        list of ForecastEvent
        """
        cfg = self.config
        frame = local_frame(vehicle, cfg.planet_radius)
        altitude = frame.altitude
        last_stage = len(cfg.stages) - 1
        heap: List[ForecastEvent] = []

        def schedule(t: float, name: str) -> None:
            if self._in_horizon(t):
                heapq.heappush(heap, ForecastEvent(t, name))

        if vehicle.time < cfg.pitch_kick_start:
            schedule(cfg.pitch_kick_start - vehicle.time, 'Pitch program start')

        if altitude < cfg.events.atmosphere_line:
            schedule(self._time_to(cfg.events.atmosphere_line, vehicle, physics, frame, pitch),
                     'Karman line')

        if not vehicle.fairing_jettisoned and altitude < cfg.fairing_jettison_altitude:
            schedule(self._time_to(cfg.fairing_jettison_altitude, vehicle, physics, frame, pitch),
                     'Fairing jettison')

        burnout = math.inf
        thrusting = vehicle.engine_on and 0 <= vehicle.stage_index <= last_stage
        if thrusting and physics.mass_flow_rate > 0.0:
            propellant = vehicle.propellant_in_stage(vehicle.stage_index)
            if propellant > 0.0:
                burnout = propellant / physics.mass_flow_rate
                if vehicle.stage_index < last_stage:
                    schedule(burnout, 'Stage separation')
                else:
                    schedule(burnout, 'SECO')

        orbit_altitude = cfg.events.orbit_altitude
        if altitude < orbit_altitude:
            t_orbit = self._time_to(orbit_altitude, vehicle, physics, frame, pitch)
            if self._in_horizon(t_orbit):
                if math.isfinite(burnout):
                    t_orbit = max(t_orbit, burnout)
                schedule(t_orbit, 'Orbit')

        for burn in self.scheduler.calculate_burn_events(vehicle, physics, pitch):
            schedule(burn.time, burn.name)

        return [heapq.heappop(heap) for _ in range(len(heap))]

    def next_event(self, vehicle: VehicleState, physics: PhysicsSample,
                   pitch: float = 90.0) -> Optional[ForecastEvent]:
        """The single soonest event within the horizon, or None."""
        events = self.forecast_events(vehicle, physics, pitch)
        if not events:
            return None
        logger.debug("Next event: %s in %.1f s", events[0].name, events[0].time)
        return events[0]

    def burn_events(self, vehicle: VehicleState, physics: PhysicsSample,
                    pitch: float = 90.0) -> List[BurnEvent]:
        return self.scheduler.calculate_burn_events(vehicle, physics, pitch)
