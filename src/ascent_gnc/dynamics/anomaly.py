"""
===============================================================================
ASCENT GNC - Anomaly Solver
===============================================================================
Conversions between true, eccentric and mean anomaly on a Keplerian ellipse
and the time-of-flight questions the guidance asks of them:

    - How long until the vehicle reaches apoapsis?
    - How long until it reaches periapsis?

The solver works from the instantaneous radius and the sign of the radial
velocity rather than from a propagated state, so it can be re-evaluated on
every tick against a freshly predicted orbit.

Conventions:
    - Angles in radians, normalised to [0, 2*pi)
    - Apoapsis sits at mean anomaly pi, periapsis at 0 (== 2*pi)
    - Non-periodic trajectories return +inf ("never reachable")

References
----------
    [1] Curtis, "Orbital Mechanics for Engineering Students", 4th ed., ch. 3.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ascent_gnc.core.constants import PI, TWO_PI

logger = logging.getLogger(__name__)

# Below this eccentricity the orbit is treated as circular
CIRCULAR_ECCENTRICITY = 1e-6

# |cos(theta)| beyond 1 + this means position and orbit disagree
COS_THETA_TOLERANCE = 1e-3


# =============================================================================
# ELEMENTARY RELATIONS
# =============================================================================

def orbital_period(a: float, mu: float) -> float:
    """
    Keplerian period T = 2*pi * sqrt(a^3 / mu).

    Returns +inf for non-elliptic (a <= 0 or infinite) semi-major axes.
    """
    if not math.isfinite(a) or a <= 0.0:
        return math.inf
    return TWO_PI * math.sqrt(a ** 3 / mu)


def radius_at_true_anomaly(a: float, e: float, theta: float) -> float:
    """Orbit equation r = p / (1 + e*cos(theta)), with p = a*(1 - e^2)."""
    p = a * (1.0 - e * e)
    return p / (1.0 + e * math.cos(theta))


def true_anomaly(a: float, e: float, r: float, r_dot_v: float) -> Tuple[float, float]:
    """
    Recover the true anomaly from the orbital radius.

    Inverts the orbit equation for cos(theta) and picks the branch from the
    sign of the radial velocity:

        cos(theta) = (p/r - 1) / e
        r.v >= 0  ->  theta in [0, pi]      (moving away from periapsis)
        r.v <  0  ->  theta in (pi, 2*pi)   (falling toward periapsis)

    Parameters
    ----------
    a : float
        Semi-major axis (m).
    e : float
        Eccentricity, 0 < e < 1.
    r : float
        Current distance from the focus (m).
    r_dot_v : float
        Position . velocity (m^2/s).

    Returns
    -------
    theta : float
        True anomaly (rad) in [0, 2*pi).
    cos_theta_raw : float
        Unclamped cosine argument; ``|cos_theta_raw| > 1`` means the radius
        does not lie on the supplied orbit.
    """
    p = a * (1.0 - e * e)
    cos_theta_raw = (p / r - 1.0) / e
    cos_theta = min(1.0, max(-1.0, cos_theta_raw))

    theta = math.acos(cos_theta)
    if r_dot_v < 0.0:
        theta = TWO_PI - theta
    return theta % TWO_PI, cos_theta_raw


def eccentric_from_true(theta: float, e: float) -> float:
    """
    Convert true anomaly to eccentric anomaly.

        tan(E/2) = sqrt((1 - e) / (1 + e)) * tan(theta/2)

    The half-angle form is evaluated with atan2 so that theta = pi maps
    cleanly onto E = pi. The result is normalised to [0, 2*pi).
    """
    half = 0.5 * theta
    E = 2.0 * math.atan2(math.sqrt(1.0 - e) * math.sin(half),
                         math.sqrt(1.0 + e) * math.cos(half))
    return E % TWO_PI


def mean_from_eccentric(E: float, e: float) -> float:
    """Kepler's equation M = E - e*sin(E)."""
    return E - e * math.sin(E)


# =============================================================================
# SOLVER
# =============================================================================

@dataclass
class AnomalySolution:
    """
    Full anomaly chain for one position on one orbit.

    Attributes
    ----------
    true_anomaly : float
        theta (rad).
    eccentric_anomaly : float
        E (rad).
    mean_anomaly : float
        M (rad).
    period : float
        Orbital period (s).
    cos_theta_raw : float
        Unclamped cosine argument of the radius inversion.
    inconsistent : bool
        True when the cosine had to be clamped beyond tolerance, i.e. the
        orbit prediction is stale relative to the position.
    """
    true_anomaly: float
    eccentric_anomaly: float
    mean_anomaly: float
    period: float
    cos_theta_raw: float
    inconsistent: bool


@dataclass
class ApsisTiming:
    """Time until the next apsis passages (s); +inf means never reached."""
    time_to_apoapsis: float
    time_to_periapsis: float
    inconsistent: bool = False


class AnomalySolver:
    """
    Time-to-apsis solver on a two-body ellipse.

    The solver is stateless; ``mu`` is cached so callers do not have to
    thread it through every call. Orbit arguments only need
    ``semi_major_axis``, ``eccentricity`` and ``is_escape`` attributes.
    """

    def __init__(self, mu: float) -> None:
        self.mu = mu

    @staticmethod
    def is_periodic(orbit) -> bool:
        """True for closed, elliptic orbits."""
        return (not orbit.is_escape
                and orbit.eccentricity < 1.0
                and orbit.semi_major_axis > 0.0
                and math.isfinite(orbit.semi_major_axis))

    def period(self, orbit) -> float:
        """Period of *orbit* (s), +inf when it is not periodic."""
        if not self.is_periodic(orbit):
            return math.inf
        return orbital_period(orbit.semi_major_axis, self.mu)

    def solve(self, orbit, position: np.ndarray, velocity: np.ndarray) -> AnomalySolution:
        """
        Run the true -> eccentric -> mean anomaly chain for a position.

        Must only be called for periodic orbits.
        """
        a = orbit.semi_major_axis
        e = orbit.eccentricity
        r = float(np.linalg.norm(position))
        r_dot_v = float(np.dot(position, velocity))

        theta, cos_raw = true_anomaly(a, e, r, r_dot_v)
        inconsistent = abs(cos_raw) > 1.0 + COS_THETA_TOLERANCE
        if inconsistent:
            logger.warning(
                "Position inconsistent with orbit (cos(theta) = %.5f), clamping", cos_raw)

        E = eccentric_from_true(theta, e)
        M = mean_from_eccentric(E, e)
        return AnomalySolution(
            true_anomaly=theta,
            eccentric_anomaly=E,
            mean_anomaly=M,
            period=orbital_period(a, self.mu),
            cos_theta_raw=cos_raw,
            inconsistent=inconsistent,
        )

    def timing(self, orbit, position: np.ndarray, velocity: np.ndarray) -> ApsisTiming:
        """
        Time until the next apoapsis and periapsis passages.

        Conventions:
            - Escape or degenerate orbits: both times are +inf.
            - Near-circular orbits (e < 1e-6): both are exactly half a
              period; the apsides are undefined and the guidance only needs
              a stable, position-independent answer.
            - Otherwise apoapsis is reached when M = pi and periapsis when
              M = 2*pi; a target already passed wraps to the next orbit.

        Parameters
        ----------
        orbit : OrbitElements
            Orbit predicted for the current tick.
        position, velocity : np.ndarray
            Current state; only |r| and the sign of r.v are used.

        Returns
        -------
        ApsisTiming
        """
        if not self.is_periodic(orbit):
            return ApsisTiming(math.inf, math.inf)
        if orbit.eccentricity < CIRCULAR_ECCENTRICITY:
            half = 0.5 * orbital_period(orbit.semi_major_axis, self.mu)
            return ApsisTiming(half, half)

        sol = self.solve(orbit, position, velocity)
        M = sol.mean_anomaly
        if M <= PI:
            to_apo = PI - M
        else:
            to_apo = TWO_PI + PI - M
        to_peri = TWO_PI - M
        return ApsisTiming(
            time_to_apoapsis=to_apo / TWO_PI * sol.period,
            time_to_periapsis=to_peri / TWO_PI * sol.period,
            inconsistent=sol.inconsistent,
        )

    def time_to_apoapsis(self, orbit, position: np.ndarray, velocity: np.ndarray) -> float:
        """Time until the next apoapsis passage (s); see :meth:`timing`."""
        return self.timing(orbit, position, velocity).time_to_apoapsis

    def time_to_periapsis(self, orbit, position: np.ndarray, velocity: np.ndarray) -> float:
        """Time until the next periapsis passage (s); see :meth:`timing`."""
        return self.timing(orbit, position, velocity).time_to_periapsis
