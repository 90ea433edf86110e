"""
===============================================================================
ASCENT GNC - Physical Constants and Default Vehicle Figures
===============================================================================
Central repository for the physical constants used throughout the ascent
guidance package. SI units throughout (meters, seconds, kilograms); angles
that face the guidance law are in degrees, everything else in radians.

Earth values come from IAU 2012 / IERS standards where applicable. The
vehicle figures describe a two-stage, Falcon 9 class launcher and are only
defaults: every one of them can be overridden from the YAML configuration.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# FUNDAMENTAL PHYSICAL CONSTANTS
# =============================================================================
G0 = 9.80665                           # Standard gravity for Isp (m/s^2)

# =============================================================================
# EARTH PARAMETERS
# =============================================================================
EARTH_MU = 3.986004418e14              # Gravitational parameter (m^3/s^2)
EARTH_RADIUS = 6371000.0               # Mean radius (m)
KARMAN_LINE = 100000.0                 # m

# =============================================================================
# ASCENT PROFILE DEFAULTS
# =============================================================================
DEFAULT_TARGET_ALTITUDE = 700000.0     # Target circular orbit (m)
DEFAULT_ATMOSPHERE_LIMIT = 70000.0     # Above this the guidance treats flight as vacuum (m)
DEFAULT_MAX_Q = 35000.0                # Structural dynamic pressure limit (Pa)
ORBIT_ALTITUDE_THRESHOLD = 150000.0    # Altitude at which the forecaster calls "orbit" (m)
FAIRING_JETTISON_ALTITUDE = 110000.0   # m

# =============================================================================
# DEFAULT LAUNCH VEHICLE (two-stage, kerosene/LOX)
# =============================================================================
DEFAULT_STAGES = (
    {
        'name': 'Stage 1',
        'dry_mass_kg': 22200.0,
        'propellant_mass_kg': 395700.0,
        'thrust_vac_N': 8227000.0,
        'isp_vac_s': 311.0,
    },
    {
        'name': 'Stage 2',
        'dry_mass_kg': 4000.0,
        'propellant_mass_kg': 92670.0,
        'thrust_vac_N': 981000.0,
        'isp_vac_s': 348.0,
    },
)
