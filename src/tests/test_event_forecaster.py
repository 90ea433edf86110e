"""
===============================================================================
ASCENT GNC - Event Forecaster and Flight Computer Test Suite
===============================================================================
Tests for the next-event forecast (timeline, altitude thresholds under
constant acceleration, propellant exhaustion, burn countdowns, horizon) and
for the FlightComputer facade and its mission reset.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ascent_gnc.core.config import GuidanceConfig
from ascent_gnc.core.constants import EARTH_MU, EARTH_RADIUS
from ascent_gnc.core.state import PhysicsSample, VehicleState
from ascent_gnc.dynamics.kinematics import time_to_altitude
from ascent_gnc.guidance.ascent_guidance import GuidanceState
from ascent_gnc.guidance.burn_scheduler import BurnScheduler
from ascent_gnc.guidance.diagnostics import GuidancePhase
from ascent_gnc.guidance.event_forecaster import EventForecaster, ForecastEvent
from ascent_gnc.guidance.flight_computer import FlightComputer


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def config():
    return GuidanceConfig()


@pytest.fixture
def forecaster(config):
    return EventForecaster(config, BurnScheduler(config))


# =============================================================================
# Helper functions
# =============================================================================

def vertical_state(altitude, v_vertical, time=200.0, stage_index=1,
                   propellant=(0.0, 40000.0), **kwargs):
    return VehicleState(position=[0.0, EARTH_RADIUS + altitude], velocity=[0.0, v_vertical],
                        time=time, stage_index=stage_index,
                        propellant_remaining=list(propellant), **kwargs)


def ellipse_state(peri_alt, apo_alt, theta, time=2000.0):
    r_p, r_a = EARTH_RADIUS + peri_alt, EARTH_RADIUS + apo_alt
    a = 0.5 * (r_p + r_a)
    e = (r_a - r_p) / (r_a + r_p)
    p = a * (1.0 - e ** 2)
    r = p / (1.0 + e * np.cos(theta))
    position = r * np.array([np.cos(theta), np.sin(theta)])
    velocity = np.sqrt(EARTH_MU / p) * np.array([-np.sin(theta), e + np.cos(theta)])
    return VehicleState(position=position, velocity=velocity, time=time, stage_index=1,
                        propellant_remaining=[0.0, 40000.0], engine_on=False,
                        fairing_jettisoned=True)


# =============================================================================
# Test: threshold crossing
# =============================================================================

class TestTimeToAltitude:

    def test_decelerating_climb(self):
        # 1000 m/s up, -9.5 m/s^2, 10 km to go
        assert_allclose(time_to_altitude(90e3, 100e3, 1000.0, -9.5), 100.0 / 9.5)

    def test_constant_velocity(self):
        assert_allclose(time_to_altitude(0.0, 1000.0, 100.0, 0.001), 10.0)

    @pytest.mark.parametrize("current,target,v,a", [
        (100e3, 90e3, 1000.0, 0.0),      # target below
        (90e3, 100e3, -10.0, 50.0),      # not climbing
        (90e3, 150e3, 1000.0, -9.5),     # stops short
    ])
    def test_unreachable(self, current, target, v, a):
        assert math.isinf(time_to_altitude(current, target, v, a))


# =============================================================================
# Test: forecast
# =============================================================================

class TestEventForecaster:

    def test_pitch_program_on_the_pad(self, forecaster):
        vehicle = vertical_state(0.0, 0.0, time=0.0, stage_index=0,
                                 propellant=(395700.0, 92670.0))
        physics = PhysicsSample(thrust=7.6e6, mass_flow_rate=2500.0, total_mass=550000.0)
        event = forecaster.next_event(vehicle, physics)
        assert event.name == 'Pitch program start'
        assert_allclose(event.time, 3.0)
        names = [e.name for e in forecaster.forecast_events(vehicle, physics)]
        assert names == ['Pitch program start', 'Stage separation']

    def test_altitude_thresholds(self, forecaster):
        vehicle = vertical_state(90e3, 1000.0, engine_on=False)
        physics = PhysicsSample(gravity=9.5, total_mass=60000.0)
        events = forecaster.forecast_events(vehicle, physics)
        assert [e.name for e in events] == ['Karman line', 'Fairing jettison']
        assert_allclose(events[0].time, 100.0 / 9.5)
        assert_allclose(events[1].time, (1000.0 - math.sqrt(1e6 - 2 * 9.5 * 20e3)) / 9.5)
        assert forecaster.next_event(vehicle, physics).name == 'Karman line'

    def test_stage_separation_and_seco(self, forecaster):
        physics = PhysicsSample(gravity=9.5, thrust=7.6e6, mass_flow_rate=2500.0,
                                total_mass=300000.0)
        booster = vertical_state(160e3, 500.0, stage_index=0, propellant=(50000.0, 92670.0),
                                 fairing_jettisoned=True)
        event = forecaster.next_event(booster, physics)
        assert event.name == 'Stage separation'
        assert_allclose(event.time, 20.0)

        physics = PhysicsSample(gravity=9.5, thrust=981000.0, mass_flow_rate=300.0,
                                total_mass=80000.0)
        upper = vertical_state(160e3, 500.0, stage_index=1, propellant=(0.0, 92670.0),
                               fairing_jettisoned=True)
        event = forecaster.next_event(upper, physics)
        assert event.name == 'SECO'
        assert_allclose(event.time, 92670.0 / 300.0)

    def test_orbit_not_before_burnout(self, forecaster):
        physics = PhysicsSample(gravity=9.5, thrust=981000.0, mass_flow_rate=287.0,
                                total_mass=60000.0)
        vehicle = vertical_state(140e3, 500.0, fairing_jettisoned=True)
        events = {e.name: e.time for e in forecaster.forecast_events(vehicle, physics)}
        burnout = 40000.0 / 287.0
        assert_allclose(events['Orbit'], burnout)
        assert_allclose(events['SECO'], burnout)

    def test_heap_orders_by_time_only(self):
        assert ForecastEvent(1.0, 'Z') < ForecastEvent(2.0, 'A')
        assert ForecastEvent(1.0, 'Z') == ForecastEvent(1.0, 'A')

    def test_beyond_horizon_is_dropped(self, forecaster):
        physics = PhysicsSample(gravity=9.5, thrust=981000.0, mass_flow_rate=1.0,
                                total_mass=60000.0)
        vehicle = vertical_state(160e3, 0.0, fairing_jettisoned=True)
        assert forecaster.next_event(vehicle, physics) is None

    def test_nothing_in_circular_orbit(self, forecaster):
        v_circ = math.sqrt(EARTH_MU / (EARTH_RADIUS + 700e3))
        vehicle = VehicleState(position=[0.0, EARTH_RADIUS + 700e3], velocity=[v_circ, 0.0],
                               time=5000.0, stage_index=1, propellant_remaining=[0.0, 1000.0],
                               engine_on=False, fairing_jettisoned=True)
        assert forecaster.next_event(vehicle, PhysicsSample(total_mass=20000.0)) is None

    def test_burn_countdown_is_forecast(self, forecaster):
        vehicle = ellipse_state(300e3, 700e3, 1.0)
        physics = PhysicsSample(gravity=9.0, total_mass=60000.0)
        event = forecaster.next_event(vehicle, physics)
        assert event.name == 'Circularization burn start'
        assert 0.0 < event.time < 10000.0


# =============================================================================
# Test: flight computer
# =============================================================================

class TestFlightComputer:

    def test_step_and_reset(self, config):
        fc = FlightComputer(config)
        vehicle = ellipse_state(300e3, 700e3, 1.0)
        physics = PhysicsSample(gravity=9.0, total_mass=60000.0)

        result = fc.step(vehicle, physics, 0.0)
        assert result.phase == GuidancePhase.COASTING_TO_CIRC
        assert fc.burn_events(vehicle, physics)
        assert fc.scheduler.circularization_latch is not None
        assert fc.guidance.state.phase == GuidancePhase.COASTING_TO_CIRC

        fc.reset()
        assert fc.guidance.state == GuidanceState()
        assert fc.scheduler.circularization_latch is None
        assert fc.scheduler.retrograde_latch is None

    def test_shares_one_scheduler(self, config):
        fc = FlightComputer(config)
        assert fc.forecaster.scheduler is fc.scheduler

    def test_invalid_configuration_rejected(self):
        with pytest.raises(ValueError):
            FlightComputer(GuidanceConfig(pitch_kick_start=20.0, pitch_kick_end=10.0))
