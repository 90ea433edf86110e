"""
===============================================================================
ASCENT GNC - Orbital Mechanics Test Suite
===============================================================================
Tests for the instantaneous orbit predictor and the anomaly solver: energy
and eccentricity invariants, escape and radial degenerate cases, the
true/eccentric/mean anomaly chain, and time to apoapsis/periapsis.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import logging
import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ascent_gnc.core.constants import EARTH_MU, EARTH_RADIUS, PI, TWO_PI
from ascent_gnc.dynamics.anomaly import (
    AnomalySolver,
    eccentric_from_true,
    mean_from_eccentric,
    orbital_period,
    radius_at_true_anomaly,
    true_anomaly,
)
from ascent_gnc.dynamics.orbital_mechanics import OrbitElements, OrbitPredictor


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def predictor():
    """Return an Earth OrbitPredictor."""
    return OrbitPredictor(EARTH_MU, EARTH_RADIUS)


@pytest.fixture
def solver():
    """Return an Earth AnomalySolver."""
    return AnomalySolver(EARTH_MU)


# =============================================================================
# Helper functions
# =============================================================================

def perifocal_state(a, e, theta, mu=EARTH_MU):
    """
    Planar position and velocity at true anomaly *theta* on an ellipse
    with periapsis on the +x axis, counter-clockwise motion.
    """
    p = a * (1.0 - e ** 2)
    r = p / (1.0 + e * np.cos(theta))
    position = r * np.array([np.cos(theta), np.sin(theta)])
    velocity = np.sqrt(mu / p) * np.array([-np.sin(theta), e + np.cos(theta)])
    return position, velocity


def circular_state(altitude, angle=0.0, mu=EARTH_MU):
    r = EARTH_RADIUS + altitude
    v = np.sqrt(mu / r)
    position = r * np.array([np.cos(angle), np.sin(angle)])
    velocity = v * np.array([-np.sin(angle), np.cos(angle)])
    return position, velocity


# =============================================================================
# Test: OrbitPredictor
# =============================================================================

class TestOrbitPredictor:
    """Osculating elements from a planar state."""

    def test_circular_orbit(self, predictor):
        """A circular state has e ~ 0 and both apsides at the state altitude."""
        position, velocity = circular_state(700e3)
        orbit = predictor.predict(position, velocity)
        assert not orbit.is_escape
        assert orbit.eccentricity < 1e-6
        assert_allclose(orbit.apoapsis, 700e3, atol=1.0)
        assert_allclose(orbit.periapsis, 700e3, atol=1.0)
        assert_allclose(orbit.semi_major_axis, EARTH_RADIUS + 700e3, rtol=1e-9)

    def test_elliptic_apsides(self, predictor):
        """Apsides of a known ellipse are recovered from an arbitrary point."""
        r_p = EARTH_RADIUS + 200e3
        r_a = EARTH_RADIUS + 1200e3
        a = 0.5 * (r_p + r_a)
        e = (r_a - r_p) / (r_a + r_p)
        position, velocity = perifocal_state(a, e, 1.1)
        orbit = predictor.predict(position, velocity)
        assert_allclose(orbit.periapsis, 200e3, atol=1e-3)
        assert_allclose(orbit.apoapsis, 1200e3, atol=1e-3)
        assert_allclose(orbit.eccentricity, e, rtol=1e-9)
        assert orbit.periapsis <= orbit.apoapsis

    @pytest.mark.parametrize("speed", [0.0, 500.0, 3000.0, 7500.0, 11000.0, 15000.0])
    @pytest.mark.parametrize("gamma_deg", [-30.0, 0.0, 25.0, 60.0, 90.0])
    def test_eccentricity_and_escape_invariants(self, predictor, speed, gamma_deg):
        """e >= 0 always, escape iff specific energy >= 0, escape => e >= 1."""
        r = EARTH_RADIUS + 300e3
        g = np.radians(gamma_deg)
        position = np.array([0.0, r])
        velocity = speed * np.array([np.cos(g), np.sin(g)])
        orbit = predictor.predict(position, velocity)

        energy = 0.5 * speed ** 2 - EARTH_MU / r
        assert orbit.eccentricity >= 0.0
        assert orbit.is_escape == (energy >= 0.0)
        if orbit.is_escape:
            assert orbit.eccentricity >= 1.0
            assert math.isinf(orbit.apoapsis)
        else:
            assert orbit.periapsis <= orbit.apoapsis

    def test_radial_trajectory_stays_periodic(self, predictor):
        """Straight-up flight saturates e just below 1 instead of escaping."""
        position = np.array([0.0, EARTH_RADIUS + 100e3])
        velocity = np.array([0.0, 2000.0])
        orbit = predictor.predict(position, velocity)
        assert not orbit.is_escape
        assert orbit.eccentricity < 1.0
        assert_allclose(orbit.eccentricity, 1.0, atol=1e-6)
        assert np.isfinite(orbit.apoapsis)
        assert orbit.periapsis < 0.0

    def test_suborbital_periapsis_negative(self, predictor):
        """A slow, shallow state has a periapsis below the surface."""
        position = np.array([0.0, EARTH_RADIUS + 71e3])
        g = np.radians(25.0)
        velocity = 1500.0 * np.array([np.cos(g), np.sin(g)])
        orbit = predictor.predict(position, velocity)
        assert orbit.periapsis < 0.0
        assert orbit.apoapsis > 71e3

    def test_circular_velocity_and_vis_viva(self, predictor):
        """vis-viva reduces to the circular speed when a = r."""
        r = EARTH_RADIUS + 700e3
        assert_allclose(predictor.vis_viva(r, r), predictor.circular_velocity(700e3), rtol=1e-12)

    def test_period_of_escape_orbit_is_infinite(self, predictor):
        position = np.array([0.0, EARTH_RADIUS + 300e3])
        velocity = np.array([12000.0, 0.0])
        orbit = predictor.predict(position, velocity)
        assert orbit.is_escape
        assert math.isinf(orbital_period(orbit.semi_major_axis, EARTH_MU))


# =============================================================================
# Test: anomaly relations
# =============================================================================

class TestAnomalyRelations:
    """True/eccentric/mean anomaly conversions."""

    @pytest.mark.parametrize("e", [0.01, 0.1, 0.5, 0.9])
    @pytest.mark.parametrize("theta", [0.0, 0.4, 1.5, PI, 4.0, 6.0])
    def test_radius_round_trip(self, e, theta):
        """Radius -> true anomaly -> radius reproduces the original radius."""
        a = 8.0e6
        r = radius_at_true_anomaly(a, e, theta)
        r_dot_v = 1.0 if theta <= PI else -1.0
        recovered, _ = true_anomaly(a, e, r, r_dot_v)
        assert_allclose(radius_at_true_anomaly(a, e, recovered), r, rtol=1e-9)

    def test_branch_from_radial_velocity(self):
        """Outbound flight picks theta in [0, pi], inbound in (pi, 2*pi)."""
        a, e = 8.0e6, 0.2
        r = radius_at_true_anomaly(a, e, 1.0)
        outbound, _ = true_anomaly(a, e, r, +10.0)
        inbound, _ = true_anomaly(a, e, r, -10.0)
        assert_allclose(outbound, 1.0, rtol=1e-9)
        assert_allclose(inbound, TWO_PI - 1.0, rtol=1e-9)

    @pytest.mark.parametrize("theta", [0.0, 1.0, PI, 5.0])
    def test_eccentric_anomaly_in_range(self, theta):
        E = eccentric_from_true(theta, 0.3)
        assert 0.0 <= E < TWO_PI

    def test_apoapsis_maps_to_pi(self):
        assert_allclose(eccentric_from_true(PI, 0.4), PI, rtol=1e-12)
        assert_allclose(mean_from_eccentric(PI, 0.4), PI, rtol=1e-12)

    def test_period(self):
        a = EARTH_RADIUS + 700e3
        assert_allclose(orbital_period(a, EARTH_MU), TWO_PI * np.sqrt(a ** 3 / EARTH_MU))
        assert math.isinf(orbital_period(-1.0, EARTH_MU))
        assert math.isinf(orbital_period(math.inf, EARTH_MU))


# =============================================================================
# Test: time to apsis
# =============================================================================

class TestTimeToApsis:
    """AnomalySolver time-of-flight queries."""

    @pytest.mark.parametrize("angle", [0.0, 0.7, 2.0, 3.5, 5.9])
    def test_circular_orbit_half_period(self, solver, angle):
        """For e ~ 0 both times equal half a period, wherever the vehicle is."""
        a = EARTH_RADIUS + 700e3
        orbit = OrbitElements(semi_major_axis=a, eccentricity=0.0,
                              apoapsis=700e3, periapsis=700e3, is_escape=False)
        position, velocity = circular_state(700e3, angle)
        half = 0.5 * orbital_period(a, EARTH_MU)
        assert_allclose(solver.time_to_apoapsis(orbit, position, velocity), half, rtol=1e-12)
        assert_allclose(solver.time_to_periapsis(orbit, position, velocity), half, rtol=1e-12)

    def test_at_periapsis(self, solver, predictor):
        """At periapsis, apoapsis is half a period away and periapsis a full one."""
        a, e = EARTH_RADIUS + 900e3, 0.05
        position, velocity = perifocal_state(a, e, 0.0)
        orbit = predictor.predict(position, velocity)
        T = orbital_period(orbit.semi_major_axis, EARTH_MU)
        timing = solver.timing(orbit, position, velocity)
        assert_allclose(timing.time_to_apoapsis, 0.5 * T, rtol=1e-6)
        assert_allclose(timing.time_to_periapsis, T, rtol=1e-6)
        assert not timing.inconsistent

    @pytest.mark.parametrize("theta", [0.5, 1.5, 2.5, 3.8, 5.5])
    def test_matches_kepler_equation(self, solver, predictor, theta):
        """Times agree with a direct Kepler's-equation evaluation."""
        a, e = EARTH_RADIUS + 1500e3, 0.15
        position, velocity = perifocal_state(a, e, theta)
        orbit = predictor.predict(position, velocity)
        T = orbital_period(a, EARTH_MU)

        E = 2.0 * np.arctan(np.sqrt((1 - e) / (1 + e)) * np.tan(theta / 2.0)) % TWO_PI
        M = E - e * np.sin(E)
        expected_apo = ((PI - M) if M <= PI else (3 * PI - M)) / TWO_PI * T
        expected_peri = (TWO_PI - M) / TWO_PI * T

        assert_allclose(solver.time_to_apoapsis(orbit, position, velocity), expected_apo, rtol=1e-6)
        assert_allclose(solver.time_to_periapsis(orbit, position, velocity), expected_peri, rtol=1e-6)

    def test_outbound_periapsis_follows_apoapsis(self, solver, predictor):
        """Before apoapsis, periapsis comes exactly half a period after apoapsis."""
        a, e = EARTH_RADIUS + 1500e3, 0.15
        position, velocity = perifocal_state(a, e, 1.2)
        orbit = predictor.predict(position, velocity)
        T = orbital_period(orbit.semi_major_axis, EARTH_MU)
        timing = solver.timing(orbit, position, velocity)
        assert_allclose(timing.time_to_periapsis - timing.time_to_apoapsis, 0.5 * T, rtol=1e-6)

    def test_escape_is_never_reached(self, solver, predictor):
        position = np.array([0.0, EARTH_RADIUS + 300e3])
        velocity = np.array([12000.0, 0.0])
        orbit = predictor.predict(position, velocity)
        assert math.isinf(solver.time_to_apoapsis(orbit, position, velocity))
        assert math.isinf(solver.time_to_periapsis(orbit, position, velocity))

    def test_inconsistent_orbit_is_reported_not_raised(self, solver, caplog):
        """A position far off the supplied orbit is clamped and flagged."""
        a = EARTH_RADIUS + 700e3
        orbit = OrbitElements(semi_major_axis=a, eccentricity=0.01,
                              apoapsis=a * 1.01 - EARTH_RADIUS,
                              periapsis=a * 0.99 - EARTH_RADIUS, is_escape=False)
        position = np.array([0.0, 2.0 * a])
        velocity = np.array([100.0, 0.0])
        with caplog.at_level(logging.WARNING, logger='ascent_gnc.dynamics.anomaly'):
            timing = solver.timing(orbit, position, velocity)
        assert timing.inconsistent
        assert np.isfinite(timing.time_to_apoapsis)
        assert any('inconsistent' in rec.message for rec in caplog.records)
