"""
===============================================================================
ASCENT GNC - Dynamics Package
===============================================================================
Two-body orbit geometry and ascent kinematics used by the guidance law.

Submodules:
    anomaly           -- True/eccentric/mean anomaly, time to apoapsis/periapsis
    orbital_mechanics -- Instantaneous orbit prediction (vis-viva, momentum)
    kinematics        -- Local horizon frame, thrust direction, threshold crossing
===============================================================================
"""
