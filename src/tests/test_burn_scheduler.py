"""
===============================================================================
ASCENT GNC - Burn Scheduler Test Suite
===============================================================================
Tests for strategy selection and the latched circularization and retrograde
burn countdowns: latch once, count down monotonically, clear on condition
exit, on elapse, below the atmosphere and on reset.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ascent_gnc.core.config import GuidanceConfig
from ascent_gnc.core.constants import EARTH_MU, EARTH_RADIUS
from ascent_gnc.core.state import PhysicsSample, VehicleState
from ascent_gnc.dynamics.anomaly import AnomalySolver
from ascent_gnc.dynamics.orbital_mechanics import OrbitElements, OrbitPredictor
from ascent_gnc.guidance.burn_scheduler import BurnScheduler, BurnStrategy, BurnType
from ascent_gnc.guidance.maneuver_planner import ManeuverPlanner


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def config():
    return GuidanceConfig()


@pytest.fixture
def scheduler(config):
    return BurnScheduler(config)


@pytest.fixture
def physics():
    """Second stage, 60 t, vacuum."""
    return PhysicsSample(gravity=9.0, thrust=0.0, total_mass=60000.0)


# =============================================================================
# Helper functions
# =============================================================================

def ellipse_state(peri_alt, apo_alt, theta, time=2000.0, engine_on=False):
    """State at true anomaly *theta* on a peri_alt x apo_alt ellipse."""
    r_p, r_a = EARTH_RADIUS + peri_alt, EARTH_RADIUS + apo_alt
    a = 0.5 * (r_p + r_a)
    e = (r_a - r_p) / (r_a + r_p)
    p = a * (1.0 - e ** 2)
    r = p / (1.0 + e * np.cos(theta))
    position = r * np.array([np.cos(theta), np.sin(theta)])
    velocity = np.sqrt(EARTH_MU / p) * np.array([-np.sin(theta), e + np.cos(theta)])
    return VehicleState(position=position, velocity=velocity, time=time, stage_index=1,
                        propellant_remaining=[0.0, 40000.0], engine_on=engine_on)


def moved_to(vehicle, time):
    """Same position and velocity at another mission time."""
    return VehicleState(position=vehicle.position, velocity=vehicle.velocity, time=time,
                        stage_index=vehicle.stage_index,
                        propellant_remaining=vehicle.propellant_remaining,
                        engine_on=vehicle.engine_on)


# =============================================================================
# Test: strategy selection
# =============================================================================

class TestStrategy:

    def _orbit(self, apoapsis):
        return OrbitElements(semi_major_axis=EARTH_RADIUS + apoapsis, eccentricity=0.01,
                             apoapsis=apoapsis, periapsis=apoapsis - 100e3, is_escape=False)

    def test_low_target_is_direct_ascent(self):
        scheduler = BurnScheduler(GuidanceConfig(target_altitude=200e3))
        assert scheduler.select_strategy(self._orbit(200e3), 10.0) == BurnStrategy.DIRECT_ASCENT

    def test_long_burn_near_target_is_direct_ascent(self, scheduler):
        assert scheduler.select_strategy(self._orbit(695e3), 90.0) == BurnStrategy.DIRECT_ASCENT

    @pytest.mark.parametrize("apoapsis,burn", [(695e3, 30.0), (800e3, 90.0)])
    def test_traditional(self, scheduler, apoapsis, burn):
        assert scheduler.select_strategy(self._orbit(apoapsis), burn) == BurnStrategy.TRADITIONAL


# =============================================================================
# Test: circularization latch
# =============================================================================

class TestCircularizationLatch:

    def test_event_matches_apoapsis_timing(self, config, scheduler, physics):
        vehicle = ellipse_state(300e3, 700e3, 1.0)
        events = scheduler.calculate_burn_events(vehicle, physics)
        assert len(events) == 1
        event = events[0]
        assert event.type == BurnType.CIRCULARIZATION
        assert event.name == 'Circularization burn start'

        orbit = OrbitPredictor(EARTH_MU, EARTH_RADIUS).predict(vehicle.position, vehicle.velocity)
        planner = ManeuverPlanner(EARTH_MU, EARTH_RADIUS)
        dv = planner.circularization_delta_v(orbit)
        burn = dv * 60000.0 / config.stages[1].thrust_vac
        t_apo = AnomalySolver(EARTH_MU).time_to_apoapsis(orbit, vehicle.position, vehicle.velocity)

        assert_allclose(event.delta_v, dv, rtol=1e-9)
        assert_allclose(event.burn_time, burn, rtol=1e-9)
        assert_allclose(event.time, t_apo - 0.5 * burn, rtol=1e-9)
        assert scheduler.circularization_latch is not None

    def test_countdown_is_monotonic(self, scheduler, physics):
        """The latched start is not re-estimated: the countdown falls with time."""
        vehicle = ellipse_state(300e3, 700e3, 1.0)
        first = scheduler.calculate_burn_events(vehicle, physics)[0]
        latched = scheduler.circularization_latch.start_time

        # a different point on the same ellipse would give a different estimate
        later = ellipse_state(300e3, 700e3, 1.3, time=2010.0)
        second = scheduler.calculate_burn_events(later, physics)[0]
        assert scheduler.circularization_latch.start_time == latched
        assert_allclose(first.time - second.time, 10.0, rtol=1e-12)

    def test_not_before_minimum_elapsed_time(self, scheduler, physics):
        vehicle = ellipse_state(300e3, 700e3, 1.0, time=1000.0)
        assert scheduler.calculate_burn_events(vehicle, physics) == []
        assert scheduler.circularization_latch is None

    def test_descending_shows_nothing(self, scheduler, physics):
        vehicle = ellipse_state(300e3, 700e3, 4.0)
        assert scheduler.calculate_burn_events(vehicle, physics) == []

    def test_cleared_once_past_apoapsis(self, scheduler, physics):
        scheduler.calculate_burn_events(ellipse_state(300e3, 700e3, 1.0), physics)
        assert scheduler.circularization_latch is not None
        descending = ellipse_state(300e3, 700e3, 4.0, time=2100.0)
        assert scheduler.calculate_burn_events(descending, physics) == []
        assert scheduler.circularization_latch is None

    def test_cleared_when_elapsed(self, scheduler, physics):
        vehicle = ellipse_state(300e3, 700e3, 1.0)
        scheduler.calculate_burn_events(vehicle, physics)
        start = scheduler.circularization_latch.start_time
        assert scheduler.calculate_burn_events(moved_to(vehicle, start + 1.0), physics) == []
        assert scheduler.circularization_latch is None

    def test_cleared_when_condition_exits(self, scheduler, physics):
        scheduler.calculate_burn_events(ellipse_state(300e3, 700e3, 1.0), physics)
        assert scheduler.circularization_latch is not None
        circular = ellipse_state(700e3, 700e3 + 1e-6, 2.0, time=2100.0)
        assert scheduler.calculate_burn_events(circular, physics) == []
        assert scheduler.circularization_latch is None

    def test_cleared_below_atmosphere(self, scheduler, physics):
        scheduler.calculate_burn_events(ellipse_state(300e3, 700e3, 1.0), physics)
        low = VehicleState(position=[0.0, EARTH_RADIUS + 30e3], velocity=[800.0, 600.0],
                           time=2100.0)
        assert scheduler.calculate_burn_events(low, physics) == []
        assert scheduler.circularization_latch is None

    def test_direct_ascent_schedules_nothing(self, physics):
        scheduler = BurnScheduler(GuidanceConfig(target_altitude=200e3))
        vehicle = ellipse_state(120e3, 200e3, 1.0)
        assert scheduler.calculate_burn_events(vehicle, physics) == []


# =============================================================================
# Test: retrograde latch
# =============================================================================

class TestRetrogradeLatch:

    def test_apoapsis_overshoot_schedules_retrograde(self, config, scheduler, physics):
        vehicle = ellipse_state(700e3, 900e3, 1.0)
        events = scheduler.calculate_burn_events(vehicle, physics)
        assert [e.type for e in events] == [BurnType.RETROGRADE]
        event = events[0]
        assert event.name == 'Retrograde burn start'

        orbit = OrbitPredictor(EARTH_MU, EARTH_RADIUS).predict(vehicle.position, vehicle.velocity)
        dv = ManeuverPlanner(EARTH_MU, EARTH_RADIUS).retrograde_delta_v(orbit, 700e3)
        burn = dv * 60000.0 / config.stages[1].thrust_vac
        t_peri = AnomalySolver(EARTH_MU).time_to_periapsis(orbit, vehicle.position,
                                                            vehicle.velocity)
        assert dv > 0.0
        assert_allclose(event.delta_v, dv, rtol=1e-9)
        assert_allclose(event.time, t_peri - 0.5 * burn, rtol=1e-9)
        assert scheduler.circularization_latch is None

    def test_reset_clears_both_latches(self, scheduler, physics):
        scheduler.calculate_burn_events(ellipse_state(700e3, 900e3, 1.0), physics)
        assert scheduler.retrograde_latch is not None
        scheduler.circularization_latch = scheduler.retrograde_latch
        scheduler.reset()
        assert scheduler.circularization_latch is None
        assert scheduler.retrograde_latch is None
