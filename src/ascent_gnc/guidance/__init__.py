"""
===============================================================================
ASCENT GNC - Guidance Package
===============================================================================
Closed-loop ascent guidance and mission-event forecasting.

Submodules:
    ascent_guidance  -- Per-tick pitch/throttle law (atmosphere and vacuum ladders)
    diagnostics      -- Versioned, phase-keyed diagnostic records
    maneuver_planner -- Circularization/retrograde delta-V, rocket equation
    burn_scheduler   -- Latched circularization and retrograde burn countdowns
    event_forecaster -- Next mission event
    flight_computer  -- Facade tying the above to one configuration
===============================================================================
"""
