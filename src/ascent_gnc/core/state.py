"""
===============================================================================
ASCENT GNC - Per-Tick Inputs
===============================================================================
Read-only snapshots handed to the guidance core once per simulation tick by
the outer driver:

    VehicleState   -- kinematic and propulsion bookkeeping of the vehicle
    PhysicsSample  -- scalar outputs of the external vehicle/physics model

The core never mutates either record.
===============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np


@dataclass
class VehicleState:
    """
    Snapshot of the vehicle at a single instant, planet-centred 2-D frame.

    Attributes
    ----------
    position : np.ndarray
        2-element position vector (m) from the planet centre.
    velocity : np.ndarray
        2-element inertial velocity vector (m/s).
    time : float
        Mission elapsed time (s).
    stage_index : int
        Index of the active stage; equal to the stage count once all
        stages are spent.
    propellant_remaining : list of float
        Propellant left in each stage (kg).
    engine_on : bool
        True while the active stage is firing.
    burn_mode : str or None
        Designated burn mode (``'prograde'``, ``'retrograde'``) or None
        while the guidance law steers.
    fairing_jettisoned : bool
        True once the payload fairing has been released.
    """
    position: np.ndarray
    velocity: np.ndarray
    time: float = 0.0
    stage_index: int = 0
    propellant_remaining: List[float] = field(default_factory=list)
    engine_on: bool = True
    burn_mode: Optional[str] = None
    fairing_jettisoned: bool = False

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=np.float64)
        self.velocity = np.asarray(self.velocity, dtype=np.float64)

    @property
    def r_mag(self) -> float:
        """Distance from the planet centre (m)."""
        return float(np.linalg.norm(self.position))

    @property
    def v_mag(self) -> float:
        """Inertial speed (m/s)."""
        return float(np.linalg.norm(self.velocity))

    def propellant_in_stage(self, index: int) -> float:
        """Propellant left in stage *index* (kg), zero for unknown stages."""
        if 0 <= index < len(self.propellant_remaining):
            return float(self.propellant_remaining[index])
        return 0.0


@dataclass
class PhysicsSample:
    """
    Scalar physics quantities supplied by the vehicle model for this tick.

    Attributes
    ----------
    air_density : float
        Local atmospheric density (kg/m^3).
    airspeed : float
        Speed relative to the atmosphere (m/s).
    gravity : float
        Local gravitational acceleration magnitude (m/s^2).
    thrust : float
        Instantaneous thrust magnitude at the current throttle (N).
    drag : float
        Aerodynamic drag magnitude (N).
    mass_flow_rate : float
        Propellant mass flow rate at the current throttle (kg/s).
    total_mass : float
        Current total vehicle mass (kg).
    """
    air_density: float = 0.0
    airspeed: float = 0.0
    gravity: float = 9.80665
    thrust: float = 0.0
    drag: float = 0.0
    mass_flow_rate: float = 0.0
    total_mass: float = 1.0

    @property
    def dynamic_pressure(self) -> float:
        """Dynamic pressure q = 0.5 * rho * V^2 (Pa)."""
        return 0.5 * self.air_density * self.airspeed ** 2
