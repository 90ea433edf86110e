"""
===============================================================================
ASCENT GNC - Flight Computer
===============================================================================
Mission-level facade over the three per-tick services:

    GuidanceController  -- pitch/throttle command, owns GuidanceState
    BurnScheduler       -- burn countdowns, owns the two burn latches
    EventForecaster     -- next mission event

All three are built from one GuidanceConfig. reset() clears every piece of
mutable state so a replayed mission starts clean.
===============================================================================
"""

import logging
from typing import List, Optional

from ascent_gnc.core.config import GuidanceConfig
from ascent_gnc.core.state import PhysicsSample, VehicleState
from ascent_gnc.guidance.ascent_guidance import GuidanceController, GuidanceResult
from ascent_gnc.guidance.burn_scheduler import BurnEvent, BurnScheduler
from ascent_gnc.guidance.event_forecaster import EventForecaster, ForecastEvent

logger = logging.getLogger(__name__)


class FlightComputer:
    """
    Single entry point for an external simulation driver.

    Typical usage:
        fc = FlightComputer(load_config('config/guidance_config.yaml'))
        for vehicle, physics in driver:
            cmd = fc.step(vehicle, physics, dt)
            event = fc.next_event(vehicle, physics)

    Args:
        config: Static guidance configuration
    """

    def __init__(self, config: Optional[GuidanceConfig] = None):
        self.config = (config or GuidanceConfig()).validate()
        self.guidance = GuidanceController(self.config)
        self.scheduler = BurnScheduler(self.config)
        self.forecaster = EventForecaster(self.config, self.scheduler)
        logger.info("Flight computer ready: target %.0f km, %d stages",
                    self.config.target_altitude / 1000.0, len(self.config.stages))

    @property
    def commanded_pitch(self) -> float:
        """Pitch commanded on the most recent tick (deg)."""
        return self.guidance.state.last_commanded_pitch

    def step(self, vehicle: VehicleState, physics: PhysicsSample, dt: float) -> GuidanceResult:
        """Run one guidance tick."""
        return self.guidance.update(vehicle, physics, dt)

    def burn_events(self, vehicle: VehicleState, physics: PhysicsSample) -> List[BurnEvent]:
        """Upcoming burn events, advancing the scheduler latches."""
        return self.scheduler.calculate_burn_events(vehicle, physics, self.commanded_pitch)

    def next_event(self, vehicle: VehicleState, physics: PhysicsSample) -> Optional[ForecastEvent]:
        """Soonest forecast mission event, or None."""
        return self.forecaster.next_event(vehicle, physics, self.commanded_pitch)

    def reset(self) -> None:
        """Clear the guidance state and both burn latches."""
        self.guidance.reset()
        self.scheduler.reset()
        logger.info("Flight computer reset")
