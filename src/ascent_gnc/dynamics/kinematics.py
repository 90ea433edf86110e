"""
===============================================================================
ASCENT GNC - Ascent Kinematics
===============================================================================
Local-horizon geometry and constant-acceleration threshold crossing.

Local frame (changes as the vehicle moves around the planet):
    up    = r / |r|                 radially outward
    east  = (up_y, -up_x)           perpendicular to up, in the flight plane

Pitch is measured from the local horizontal toward "up"; the flight-path
angle is the pitch of the velocity vector:

    gamma = atan2(v . up, v . east)     90 deg = straight up, 0 = horizontal

Threshold crossing solves  s = v0*t + 0.5*a*t^2  for the first positive t,
with a the current net vertical acceleration (gravity + thrust + drag).
===============================================================================
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ascent_gnc.core.constants import DEG2RAD, RAD2DEG
from ascent_gnc.core.state import PhysicsSample, VehicleState

# Below this net vertical acceleration (m/s^2) use constant velocity
NEGLIGIBLE_ACCELERATION = 0.01


@dataclass
class LocalFrame:
    """
    Local-horizon decomposition of the vehicle state.

    Attributes
    ----------
    up : np.ndarray
        Radially outward unit vector.
    east : np.ndarray
        Horizontal unit vector in the flight plane.
    altitude : float
        Height above the reference radius (m).
    speed : float
        Inertial speed (m/s).
    v_vertical : float
        Velocity component along ``up`` (m/s).
    v_horizontal : float
        Velocity component along ``east`` (m/s).
    flight_path_angle : float
        gamma (deg).
    """
    up: np.ndarray
    east: np.ndarray
    altitude: float
    speed: float
    v_vertical: float
    v_horizontal: float
    flight_path_angle: float

    @property
    def is_ascending(self) -> bool:
        return self.v_vertical > 0.0

    def pitch_direction(self, pitch_deg: float) -> np.ndarray:
        """Unit vector pitched *pitch_deg* above the local horizontal."""
        p = pitch_deg * DEG2RAD
        direction = math.cos(p) * self.east + math.sin(p) * self.up
        return direction / np.linalg.norm(direction)


def local_frame(state: VehicleState, planet_radius: float) -> LocalFrame:
    """Decompose *state* into the local horizon frame."""
    r = state.r_mag
    up = state.position / r
    east = np.array([up[1], -up[0]])
    v_vert = float(np.dot(state.velocity, up))
    v_horiz = float(np.dot(state.velocity, east))
    return LocalFrame(
        up=up,
        east=east,
        altitude=r - planet_radius,
        speed=state.v_mag,
        v_vertical=v_vert,
        v_horizontal=v_horiz,
        flight_path_angle=math.atan2(v_vert, v_horiz) * RAD2DEG,
    )


def thrust_direction(state: VehicleState, frame: LocalFrame, pitch_deg: float) -> np.ndarray:
    """
    Direction the engine pushes along this tick.

    Designated burn modes steer along (prograde) or against (retrograde) the
    velocity vector; otherwise the guidance pitch is used.
    """
    if state.burn_mode is not None:
        if frame.speed <= 0.0:
            return frame.up
        prograde = state.velocity / frame.speed
        return -prograde if state.burn_mode == 'retrograde' else prograde
    return frame.pitch_direction(pitch_deg)


def vertical_acceleration(
    state: VehicleState,
    physics: PhysicsSample,
    frame: LocalFrame,
    pitch_deg: float = 90.0,
    stage_count: Optional[int] = None,
) -> float:
    """
    Net vertical acceleration from gravity, thrust and drag (m/s^2).

    Parameters
    ----------
    state : VehicleState
        Current vehicle snapshot.
    physics : PhysicsSample
        Thrust, drag, gravity and mass for this tick.
    frame : LocalFrame
        Local frame of *state*.
    pitch_deg : float
        Guidance pitch used when no burn mode is designated.
    stage_count : int, optional
        Number of stages; thrust is ignored once all are spent.
    """
    a_vert = -physics.gravity
    mass = max(physics.total_mass, 1e-6)

    has_stage = stage_count is None or state.stage_index < stage_count
    if state.engine_on and has_stage and physics.thrust > 0.0:
        direction = thrust_direction(state, frame, pitch_deg)
        a_vert += physics.thrust / mass * float(np.dot(direction, frame.up))

    if physics.airspeed > 0.0 and physics.drag > 0.0 and frame.speed > 0.0:
        v_hat = state.velocity / frame.speed
        a_vert += physics.drag / mass * -float(np.dot(v_hat, frame.up))

    return a_vert


def time_to_altitude(
    current_altitude: float,
    target_altitude: float,
    v_vertical: float,
    a_vertical: float,
) -> float:
    """
    First positive time at which a constant-acceleration climb reaches
    *target_altitude* (s).

    Solves  s = v0*t + 0.5*a*t^2  for t:

        t = (-v0 + sqrt(v0^2 + 2*a*s)) / a

    Returns +inf when the target is below, the vehicle is not climbing, or
    the current deceleration stops the climb short of the target.
    """
    altitude_diff = target_altitude - current_altitude
    if altitude_diff <= 0.0 or v_vertical <= 0.0:
        return math.inf

    if abs(a_vertical) < NEGLIGIBLE_ACCELERATION:
        return altitude_diff / v_vertical

    discriminant = v_vertical * v_vertical + 2.0 * a_vertical * altitude_diff
    if discriminant < 0.0:
        return math.inf

    t = (-v_vertical + math.sqrt(discriminant)) / a_vertical
    return t if t > 0.0 else math.inf
