"""
===============================================================================
ASCENT GNC
===============================================================================
Closed-loop ascent guidance from the pad to a target circular orbit, with the
two-body orbit predictor and anomaly solver it relies on, a latched burn
scheduler and a next-event forecaster.

Packages:
    core      -- Constants, configuration, per-tick input records
    dynamics  -- Orbit prediction, anomaly solver, ascent kinematics
    guidance  -- Guidance law, burn scheduling, event forecasting
===============================================================================
"""

__version__ = "1.0.0"
