"""
===============================================================================
ASCENT GNC - Core Package
===============================================================================
Constants, configuration and the per-tick input records shared by every
other package.

Modules:
    constants : Physical constants and default vehicle figures
    config    : GuidanceConfig dataclasses and YAML loading
    state     : VehicleState and PhysicsSample snapshots
===============================================================================
"""
