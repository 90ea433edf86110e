"""
===============================================================================
ASCENT GNC - Maneuver Planner
===============================================================================
Delta-V and burn-duration arithmetic for the orbit-insertion burns the
ascent guidance schedules.

All burns are treated as impulsive for the delta-V estimate and as a
constant-thrust arc at the current mass for the duration estimate:

    t_burn = dv * m / F

which slightly over-estimates the burn (mass falls during the arc) and so
errs toward starting early.

Sign conventions and units:
    - All distances in meters, velocities in m/s, masses in kg
    - Gravitational parameters (mu) in m^3/s^2
    - Specific impulse (Isp) in seconds
    - g0 = 9.80665 m/s^2 (standard gravity)
===============================================================================
"""

import logging
import math
from typing import Sequence

import numpy as np

from ascent_gnc.core.config import GuidanceConfig, StageConfig
from ascent_gnc.core.constants import G0

logger = logging.getLogger(__name__)


class ManeuverPlanner:
    """
    Computes delta-V and burn durations for insertion maneuvers.

    The planner is stateless apart from the cached body constants: all
    vehicle quantities are passed as arguments and results are returned
    directly.

    Typical usage:
        planner = ManeuverPlanner(config.mu, config.planet_radius)
        dv = planner.circularization_delta_v(orbit)
        t = planner.burn_duration(dv, stage, mass)
    """

    def __init__(self, mu: float, planet_radius: float) -> None:
        self.mu = mu
        self.planet_radius = planet_radius

    # -------------------------------------------------------------------------
    # Insertion burns
    # -------------------------------------------------------------------------

    def circularization_delta_v(self, orbit, fallback_speed: float = 0.0) -> float:
        """
        Prograde delta-V at apoapsis to circularize there.

            v_circ = sqrt(mu / r_a)
            v_a    = sqrt(mu * (2/r_a - 1/a))
            dv     = max(0, v_circ - v_a)

        Args:
            orbit: Current OrbitElements.
            fallback_speed: Speed used for v_a when the orbit has no
                positive semi-major axis.

        Returns:
            Delta-V in m/s; zero for escape trajectories.
        """
        if not math.isfinite(orbit.apoapsis):
            return 0.0
        r_apo = self.planet_radius + orbit.apoapsis
        v_circular = math.sqrt(self.mu / r_apo)
        if orbit.semi_major_axis > 0.0:
            v_at_apo = math.sqrt(max(0.0, self.mu * (2.0 / r_apo - 1.0 / orbit.semi_major_axis)))
        else:
            v_at_apo = fallback_speed
        return max(0.0, v_circular - v_at_apo)

    def retrograde_delta_v(self, orbit, target_altitude: float,
                           fallback_speed: float = 0.0) -> float:
        """
        Retrograde delta-V at periapsis that lowers the apoapsis to the target.

        The post-burn orbit keeps the current periapsis and places the
        apoapsis at the target altitude:

            a_target = (r_p + r_target) / 2
            dv = max(0, v_p(current) - v_p(a_target))

        Args:
            orbit: Current OrbitElements.
            target_altitude: Desired apoapsis altitude (m).
            fallback_speed: Speed used when the orbit has no positive
                semi-major axis.

        Returns:
            Delta-V in m/s.
        """
        r_peri = self.planet_radius + orbit.periapsis
        if r_peri <= 0.0:
            return 0.0
        r_target = self.planet_radius + target_altitude
        a_target = 0.5 * (r_peri + r_target)
        v_peri_target = math.sqrt(max(0.0, self.mu * (2.0 / r_peri - 1.0 / a_target)))
        if orbit.semi_major_axis > 0.0:
            v_at_peri = math.sqrt(max(0.0, self.mu * (2.0 / r_peri - 1.0 / orbit.semi_major_axis)))
        else:
            v_at_peri = fallback_speed
        return max(0.0, v_at_peri - v_peri_target)

    def burn_duration(self, dv: float, stage_index: int,
                      stages: Sequence[StageConfig], mass: float) -> float:
        """
        Constant-thrust burn duration for *dv* on the given stage (s).

        Returns zero when all stages are spent or nothing has to be burned.
        """
        if dv <= 0.0 or not 0 <= stage_index < len(stages):
            return 0.0
        thrust = stages[stage_index].thrust_vac
        if thrust <= 0.0:
            return 0.0
        return dv * mass / thrust

    # -------------------------------------------------------------------------
    # Tsiolkovsky Rocket Equation
    # -------------------------------------------------------------------------

    def tsiolkovsky_delta_v(self, isp: float, m0: float, mf: float) -> float:
        """
        Compute the delta-V from the Tsiolkovsky rocket equation.

            dv = v_e * ln(m0 / mf),   v_e = Isp * g0

        Args:
            isp: Specific impulse (seconds).
            m0: Initial (wet) mass (kg). Must be >= mf.
            mf: Final (dry) mass (kg). Must be > 0.

        Returns:
            Delta-V in m/s.

        Raises:
            ValueError: If m0 < mf or mf <= 0.
        """
        if mf <= 0.0:
            raise ValueError(f"Final mass must be positive, got {mf}")
        if m0 < mf:
            raise ValueError(
                f"Initial mass ({m0} kg) must not be below final mass ({mf} kg)"
            )
        return isp * G0 * np.log(m0 / mf)

    def remaining_delta_v(self, config: GuidanceConfig, stage_index: int,
                          propellant_remaining: Sequence[float],
                          total_mass: float) -> float:
        """
        Delta-V left in the remaining stages, burned in sequence.

        The current stage starts from the current total mass; each later
        stage starts from the mass left after the previous stage has burned
        out and dropped its dry mass.

        Args:
            config: Guidance configuration with the stage figures.
            stage_index: Active stage.
            propellant_remaining: Propellant per stage (kg). Stages past the
                end of the list are assumed fully loaded.
            total_mass: Current vehicle mass (kg).

        Returns:
            Vacuum delta-V in m/s.
        """
        m0 = total_mass
        dv_total = 0.0
        for i in range(stage_index, len(config.stages)):
            stage = config.stages[i]
            if i < len(propellant_remaining):
                prop = propellant_remaining[i]
            else:
                # not reported yet: full load
                prop = stage.propellant_mass
            prop = min(max(0.0, prop), max(0.0, m0 - 1e-6))
            mf = m0 - prop
            if mf <= 0.0:
                break
            dv_total += self.tsiolkovsky_delta_v(stage.isp_vac, m0, mf)
            m0 = mf - stage.dry_mass
            if m0 <= 0.0:
                break

        logger.debug("Remaining delta-V from stage %d: %.1f m/s", stage_index, dv_total)
        return float(dv_total)
