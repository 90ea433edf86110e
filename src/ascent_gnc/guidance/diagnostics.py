"""
===============================================================================
ASCENT GNC - Guidance Diagnostics
===============================================================================
Structured, versioned record of the intermediate values behind each guidance
command.

Every phase has its own detail dataclass; the ``phase`` class attribute is
the tag of the union, so consumers can dispatch on ``diagnostics.phase`` or
on ``isinstance(diagnostics.detail, ...)`` and assert on individual fields.
Vacuum phases additionally carry the shared flight-path-angle profile in
``VacuumProfile``.

Bump ``DIAGNOSTICS_VERSION`` whenever a field is renamed or removed.
===============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

DIAGNOSTICS_VERSION = 2


class GuidancePhase(str, Enum):
    """Phase tags emitted by the guidance controller."""
    PRE_LAUNCH = 'pre-launch'
    VERTICAL_ASCENT = 'vertical-ascent'
    PITCH_KICK = 'pitch-kick'
    MAX_Q_PROTECTION = 'max-q-protection'
    ATMOSPHERIC_ASCENT = 'atmospheric-ascent'
    EMERGENCY_RAISE_PERIAPSIS = 'emergency-raise-periapsis'
    RAISING_APOAPSIS = 'raising-apoapsis'
    BUILDING_PERIAPSIS = 'building-periapsis'
    APOAPSIS_TOO_HIGH = 'apoapsis-too-high'
    COASTING_TO_CIRC = 'coasting-to-circ'
    CIRCULARIZING = 'circularizing'
    ORBIT_ACHIEVED = 'orbit-achieved'

    def __str__(self) -> str:
        return self.value


# =============================================================================
# ATMOSPHERE PHASES
# =============================================================================

@dataclass
class VerticalAscentDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.VERTICAL_ASCENT
    time_to_kick: float = 0.0


@dataclass
class PitchKickDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.PITCH_KICK
    progress: float = 0.0
    smooth_progress: float = 0.0


@dataclass
class MaxQDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.MAX_Q_PROTECTION
    dynamic_pressure: float = 0.0
    threshold: float = 0.0


@dataclass
class AtmosphericAscentDetail:
    """
    Breakdown of the atmospheric pitch correction.

    ``correction`` is the sum of the three capped terms; the commanded
    pitch is ``max(min_pitch_for_altitude, base_pitch + correction)``.
    """
    phase: ClassVar[GuidancePhase] = GuidancePhase.ATMOSPHERIC_ASCENT
    base_pitch: float = 0.0
    correction: float = 0.0
    turn_rate_correction: float = 0.0
    floor_correction: float = 0.0
    vertical_velocity_correction: float = 0.0
    min_pitch_for_altitude: float = 0.0
    natural_turn_rate: float = 0.0
    actual_turn_rate: float = 0.0
    min_vertical_velocity: float = 0.0
    vertical_velocity: float = 0.0


# =============================================================================
# VACUUM PHASES
# =============================================================================

@dataclass
class VacuumProfile:
    """Target flight-path-angle profile shared by every vacuum phase."""
    starting_fpa: float
    profile_exponent: float
    progress_to_target: float
    base_fpa: float
    average_fpa: float
    expected_gain_ratio: float
    apoapsis_to_gain: float
    predicted_final_periapsis: float
    periapsis_change_rate: float
    periapsis_status: str
    periapsis_safety_bias: float
    prediction_status: str
    prediction_bias: float
    target_fpa: float
    fpa_error: float
    apoapsis_error: float
    periapsis_error: float


@dataclass
class EmergencyDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.EMERGENCY_RAISE_PERIAPSIS
    periapsis: float = 0.0


@dataclass
class RaiseApoapsisDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.RAISING_APOAPSIS
    correction: float = 0.0
    correction_mode: str = 'on-profile'
    apoapsis_deficit: float = 0.0


@dataclass
class BuildPeriapsisDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.BUILDING_PERIAPSIS
    correction: float = 0.0
    correction_mode: str = 'on-profile'
    periapsis_deficit: float = 0.0


@dataclass
class ApoapsisHighDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.APOAPSIS_TOO_HIGH
    apoapsis_excess: float = 0.0


@dataclass
class CircularizationDetail:
    """
    Circularization timing. Shared by ``coasting-to-circ`` and
    ``circularizing``; ``burning`` tells them apart.
    """
    phase: ClassVar[GuidancePhase] = GuidancePhase.COASTING_TO_CIRC
    delta_v: float = 0.0
    burn_time: float = 0.0
    time_to_apoapsis: float = 0.0
    time_source: str = 'kepler'
    burn_starts_in: float = 0.0
    burning: bool = False
    orbit_inconsistent: bool = False


@dataclass
class OrbitAchievedDetail:
    phase: ClassVar[GuidancePhase] = GuidancePhase.ORBIT_ACHIEVED
    eccentricity: float = 0.0


PhaseDetail = Union[
    VerticalAscentDetail,
    PitchKickDetail,
    MaxQDetail,
    AtmosphericAscentDetail,
    EmergencyDetail,
    RaiseApoapsisDetail,
    BuildPeriapsisDetail,
    ApoapsisHighDetail,
    CircularizationDetail,
    OrbitAchievedDetail,
]


@dataclass
class GuidanceDiagnostics:
    """
    Versioned diagnostic record for one guidance tick.

    Attributes
    ----------
    phase : GuidancePhase
        Phase the command was produced in.
    detail : PhaseDetail
        Phase-specific values.
    reason : str
        Short human-readable summary.
    profile : VacuumProfile, optional
        Flight-path-angle profile (vacuum phases only).
    unconstrained_pitch : float
        Pitch requested by the phase law before the range clamp and rate
        limit (deg).
    rate_limited : bool
        True when the pitch-rate limit altered the command.
    version : int
        Record layout version.
    """
    phase: GuidancePhase
    detail: PhaseDetail
    reason: str = ''
    profile: Optional[VacuumProfile] = None
    unconstrained_pitch: float = 0.0
    rate_limited: bool = False
    version: int = DIAGNOSTICS_VERSION
