"""
===============================================================================
ASCENT GNC - Orbit Predictor
===============================================================================
Osculating two-body orbit from an instantaneous planar state.

The predictor answers one question for the guidance law: "if the engines
cut right now, what orbit would the vehicle be on?" It deliberately ignores
drag and thrust and uses only:

    specific energy          eps = v^2/2 - mu/r
    angular momentum         h   = x*vy - y*vx
    eccentricity             e   = sqrt(1 + 2*eps*h^2/mu^2)
    semi-major axis          a   = -mu / (2*eps)
    apsides                  r_a = a*(1 + e),  r_p = a*(1 - e)

Altitudes are measured from the mean planet radius and are signed: a
suborbital trajectory has a negative periapsis altitude.

References
----------
    [1] Bate, Mueller & White, "Fundamentals of Astrodynamics", Dover.
    [2] Curtis, "Orbital Mechanics for Engineering Students", 4th ed.
===============================================================================
"""

import math
from dataclasses import dataclass

import numpy as np

from ascent_gnc.core.constants import EARTH_MU, EARTH_RADIUS

# Eccentricity ceiling for bound orbits whose angular momentum vanishes
RADIAL_ECCENTRICITY = 1.0 - 1e-9


@dataclass
class OrbitElements:
    """
    Osculating in-plane orbital elements.

    Attributes
    ----------
    semi_major_axis : float
        a (m). Negative for hyperbolic, +inf for parabolic trajectories.
    eccentricity : float
        e >= 0.
    apoapsis : float
        Apoapsis altitude (m); +inf for escape trajectories.
    periapsis : float
        Periapsis altitude (m); negative when the orbit intersects the
        planet.
    is_escape : bool
        True when the specific energy is non-negative.
    specific_energy : float
        eps (J/kg).
    angular_momentum : float
        Signed specific angular momentum h (m^2/s).
    """
    semi_major_axis: float
    eccentricity: float
    apoapsis: float
    periapsis: float
    is_escape: bool
    specific_energy: float = 0.0
    angular_momentum: float = 0.0


class OrbitPredictor:
    """
    Instantaneous two-body orbit predictor.

    Parameters
    ----------
    mu : float
        Gravitational parameter of the central body (m^3/s^2).
    planet_radius : float
        Reference radius for altitudes (m).
    """

    def __init__(self, mu: float = EARTH_MU, planet_radius: float = EARTH_RADIUS) -> None:
        self.mu = mu
        self.planet_radius = planet_radius

    def predict(self, position: np.ndarray, velocity: np.ndarray) -> OrbitElements:
        """
        Derive the osculating orbit from position and velocity.

        Degenerate cases:
            - h -> 0 on a bound trajectory (straight up/down): e saturates
              just below 1 so the orbit stays periodic and the apsides stay
              finite.
            - eps >= 0: escape; e >= 1, apoapsis is +inf and the periapsis
              comes from the semi-latus rectum h^2/mu.

        Parameters
        ----------
        position : np.ndarray
            2-element position (m) from the planet centre.
        velocity : np.ndarray
            2-element inertial velocity (m/s).

        Returns
        -------
        OrbitElements
        """
        mu = self.mu
        R = self.planet_radius
        x, y = float(position[0]), float(position[1])
        vx, vy = float(velocity[0]), float(velocity[1])

        r = math.hypot(x, y)
        v2 = vx * vx + vy * vy
        energy = 0.5 * v2 - mu / r
        h = x * vy - y * vx

        e_sq = 1.0 + 2.0 * energy * h * h / (mu * mu)
        e = math.sqrt(max(0.0, e_sq))

        if energy < 0.0:
            e = min(e, RADIAL_ECCENTRICITY)
            a = -mu / (2.0 * energy)
            return OrbitElements(
                semi_major_axis=a,
                eccentricity=e,
                apoapsis=a * (1.0 + e) - R,
                periapsis=a * (1.0 - e) - R,
                is_escape=False,
                specific_energy=energy,
                angular_momentum=h,
            )

        e = max(e, 1.0)
        a = -mu / (2.0 * energy) if energy > 0.0 else math.inf
        p = h * h / mu
        return OrbitElements(
            semi_major_axis=a,
            eccentricity=e,
            apoapsis=math.inf,
            periapsis=p / (1.0 + e) - R,
            is_escape=True,
            specific_energy=energy,
            angular_momentum=h,
        )

    def circular_velocity(self, altitude: float) -> float:
        """Circular orbit speed at *altitude* (m/s)."""
        return math.sqrt(self.mu / (self.planet_radius + altitude))

    def vis_viva(self, radius: float, a: float) -> float:
        """Speed on an orbit of semi-major axis *a* at *radius*: v^2 = mu*(2/r - 1/a)."""
        return math.sqrt(max(0.0, self.mu * (2.0 / radius - 1.0 / a)))
