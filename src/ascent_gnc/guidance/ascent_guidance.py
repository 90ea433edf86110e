"""
===============================================================================
ASCENT GNC - Closed-Loop Ascent Guidance
===============================================================================
Per-tick control law taking the vehicle from the pad to the target circular
orbit. The law is a priority ladder:

    1. HEIGHT  -- get above the atmosphere limit; do not shape the orbit yet
    2. MAX Q   -- never exceed the structural limit; fly zero angle of attack
    3. ANGLE   -- above the atmosphere, steer the flight-path angle so that
                  apoapsis and periapsis converge on the target

Atmosphere (altitude < atmosphere limit):
    vertical-ascent     t < kick start, pitch 90 deg
    pitch-kick          cosine blend from 90 deg to the initial pitch
    max-q-protection    q > 0.8 * max Q, pitch = flight-path angle
    atmospheric-ascent  prograde plus three independently capped corrections
                        (turn-rate limiter, altitude pitch floor, minimum
                        vertical velocity at atmosphere exit)

Vacuum (altitude >= atmosphere limit):
    A target flight-path angle decays from a starting angle to 0 deg at the
    target altitude along a power law, biased by periapsis safety and by a
    burnout-periapsis prediction. An ordered list of guarded rules then
    picks the action; the first rule that matches wins.

Both ladders are expressed as tuples of rule functions. Each rule is a pure
function of its context and returns a RuleOutcome or None, so the priority
order can be read (and tested) directly from ATMOSPHERE_RULES and
VACUUM_RULES.

All angles in this module are in degrees.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from ascent_gnc.core.config import GuidanceConfig
from ascent_gnc.core.constants import DEG2RAD, RAD2DEG
from ascent_gnc.core.state import PhysicsSample, VehicleState
from ascent_gnc.dynamics.anomaly import AnomalySolver
from ascent_gnc.dynamics.kinematics import (
    LocalFrame, local_frame, time_to_altitude, vertical_acceleration,
)
from ascent_gnc.dynamics.orbital_mechanics import OrbitElements, OrbitPredictor
from ascent_gnc.guidance.diagnostics import (
    ApoapsisHighDetail,
    AtmosphericAscentDetail,
    BuildPeriapsisDetail,
    CircularizationDetail,
    EmergencyDetail,
    GuidanceDiagnostics,
    GuidancePhase,
    MaxQDetail,
    OrbitAchievedDetail,
    PhaseDetail,
    PitchKickDetail,
    RaiseApoapsisDetail,
    VacuumProfile,
    VerticalAscentDetail,
)
from ascent_gnc.guidance.maneuver_planner import ManeuverPlanner

logger = logging.getLogger(__name__)

MIN_PITCH = -5.0
MAX_PITCH = 90.0


# =============================================================================
# STATE AND RESULT RECORDS
# =============================================================================

@dataclass
class GuidanceState:
    """
    Memory the controller carries from one tick to the next.

    Attributes
    ----------
    phase : GuidancePhase
        Phase of the previous command.
    last_commanded_pitch : float
        Pitch commanded on the previous tick (deg); reference for the rate
        limiter.
    throttle : float
        Throttle commanded on the previous tick.
    last_flight_path_angle : float
        Flight-path angle seen on the previous atmospheric-ascent tick (deg).
    last_periapsis : float or None
        Periapsis seen on the previous vacuum tick (m).
    is_retrograde : bool
        True while a retrograde burn is designated.
    circularization_burn_started : bool
        True while the circularization burn is being commanded; carries the
        burn through apoapsis.
    retrograde_burn_started : bool
        Latched once a retrograde burn has fired.
    """
    phase: GuidancePhase = GuidancePhase.PRE_LAUNCH
    last_commanded_pitch: float = 90.0
    throttle: float = 1.0
    last_flight_path_angle: float = 90.0
    last_periapsis: Optional[float] = None
    is_retrograde: bool = False
    circularization_burn_started: bool = False
    retrograde_burn_started: bool = False


@dataclass
class GuidanceResult:
    """
    Command produced for one tick.

    Attributes
    ----------
    pitch : float
        Commanded pitch above the local horizontal (deg), in [-5, 90].
    throttle : float
        Commanded throttle in [0, 1].
    thrust_direction : np.ndarray
        Unit thrust vector in the planet-centred frame.
    phase : GuidancePhase
        Active guidance phase.
    orbit : OrbitElements
        Orbit predicted from the current state.
    velocity_deficit : float
        Circular speed at the target minus current horizontal speed (m/s).
    remaining_delta_v : float
        Vacuum delta-V left in the remaining stages (m/s).
    diagnostics : GuidanceDiagnostics
        Structured intermediate values.
    """
    pitch: float
    throttle: float
    thrust_direction: np.ndarray
    phase: GuidancePhase
    orbit: OrbitElements
    velocity_deficit: float
    remaining_delta_v: float
    diagnostics: GuidanceDiagnostics


@dataclass
class RuleOutcome:
    """Action chosen by a guidance rule before range clamp and rate limit."""
    phase: GuidancePhase
    pitch: float
    throttle: float
    detail: PhaseDetail
    reason: str = ''


# =============================================================================
# RULE CONTEXTS
# =============================================================================

@dataclass
class AtmosphereContext:
    """Inputs visible to the atmosphere rules."""
    vehicle: VehicleState
    physics: PhysicsSample
    config: GuidanceConfig
    frame: LocalFrame
    prior: GuidanceState
    dt: float


@dataclass
class VacuumContext:
    """Inputs visible to the vacuum rules."""
    vehicle: VehicleState
    physics: PhysicsSample
    config: GuidanceConfig
    frame: LocalFrame
    orbit: OrbitElements
    profile: VacuumProfile
    prior: GuidanceState
    solver: AnomalySolver
    planner: ManeuverPlanner


AtmosphereRule = Callable[[AtmosphereContext], Optional[RuleOutcome]]
VacuumRule = Callable[[VacuumContext], Optional[RuleOutcome]]


# =============================================================================
# ATMOSPHERE RULES
# =============================================================================

def vertical_ascent_rule(ctx: AtmosphereContext) -> Optional[RuleOutcome]:
    """Clear the pad straight up until the pitch kick starts."""
    t = ctx.vehicle.time
    if t >= ctx.config.pitch_kick_start:
        return None
    return RuleOutcome(
        phase=GuidancePhase.VERTICAL_ASCENT,
        pitch=90.0,
        throttle=1.0,
        detail=VerticalAscentDetail(time_to_kick=ctx.config.pitch_kick_start - t),
        reason='Clearing pad, vertical',
    )


def pitch_kick_rule(ctx: AtmosphereContext) -> Optional[RuleOutcome]:
    """Cosine-blend the pitch from vertical to the initial pitch."""
    cfg = ctx.config
    t = ctx.vehicle.time
    if t >= cfg.pitch_kick_end:
        return None
    progress = (t - cfg.pitch_kick_start) / (cfg.pitch_kick_end - cfg.pitch_kick_start)
    smooth = 0.5 * (1.0 - math.cos(progress * math.pi))
    return RuleOutcome(
        phase=GuidancePhase.PITCH_KICK,
        pitch=90.0 - smooth * (90.0 - cfg.initial_pitch),
        throttle=1.0,
        detail=PitchKickDetail(progress=progress, smooth_progress=smooth),
        reason='Pitch kick, initiating gravity turn',
    )


def max_q_rule(ctx: AtmosphereContext) -> Optional[RuleOutcome]:
    """Near the structural limit fly exactly prograde (zero angle of attack)."""
    q = ctx.physics.dynamic_pressure
    threshold = ctx.config.atmospheric.max_q_fraction * ctx.config.max_q
    if q <= threshold:
        return None
    return RuleOutcome(
        phase=GuidancePhase.MAX_Q_PROTECTION,
        pitch=ctx.frame.flight_path_angle,
        throttle=1.0,
        detail=MaxQDetail(dynamic_pressure=q, threshold=threshold),
        reason='Max Q, following prograde exactly',
    )


def atmospheric_ascent_rule(ctx: AtmosphereContext) -> Optional[RuleOutcome]:
    """
    Follow prograde with three independently capped pitch-up corrections.

    a. Turn-rate limiter: when the flight-path angle falls faster than the
       natural gravity-turn rate g*cos(gamma)/v, pitch up in proportion to
       the excess.
    b. Altitude floor: the pitch may not drop below 90 - f^2 * 80 with f the
       fraction of the atmosphere climbed; undershoots recover 30% of the
       deficit per tick.
    c. Vertical-velocity guard: between 50 and 70 km, demand a minimum
       climb rate at atmosphere exit that grows with the target altitude.
    """
    cfg = ctx.config
    atmo = cfg.atmospheric
    frame = ctx.frame
    fpa = frame.flight_path_angle
    altitude = frame.altitude

    altitude_fraction = min(1.0, altitude / cfg.atmosphere_limit) if cfg.atmosphere_limit > 0 else 1.0
    min_pitch_for_altitude = 90.0 - altitude_fraction ** 2 * atmo.pitch_floor_span

    base_pitch = fpa
    gamma = fpa * DEG2RAD
    if frame.speed > 0.0:
        natural_turn_rate = ctx.physics.gravity * math.cos(gamma) / frame.speed * RAD2DEG
    else:
        natural_turn_rate = 0.0
    actual_turn_rate = (ctx.prior.last_flight_path_angle - fpa) / ctx.dt if ctx.dt > 0 else 0.0

    reason = 'Following prograde'

    # a. Turn-rate limiter
    turn_rate_correction = 0.0
    turn_rate_excess = actual_turn_rate - natural_turn_rate
    if turn_rate_excess > atmo.turn_rate_excess_threshold:
        turn_rate_correction = min(atmo.turn_rate_cap, turn_rate_excess * atmo.turn_rate_gain)
        reason = 'Turn rate excess, resisting'
    correction = turn_rate_correction

    # b. Altitude-scaled pitch floor
    floor_correction = 0.0
    if base_pitch + correction < min_pitch_for_altitude:
        floor_correction = (min_pitch_for_altitude - (base_pitch + correction)) * atmo.pitch_floor_gain
        correction += floor_correction
        reason = 'Altitude minimum pitch, gentle correction'

    # c. Minimum vertical velocity at atmosphere exit
    min_v_vert_at_exit = (atmo.min_vertical_velocity_base
                          + cfg.target_above_atmosphere / 1000.0 * atmo.min_vertical_velocity_per_km)
    ramp = atmo.vertical_velocity_ramp_end - atmo.vertical_velocity_ramp_start
    proximity = max(0.0, (altitude - atmo.vertical_velocity_ramp_start) / ramp)
    proximity = min(1.0, proximity)
    min_v_vert = min_v_vert_at_exit * proximity

    v_vert_correction = 0.0
    if proximity > atmo.vertical_velocity_min_proximity and frame.v_vertical < min_v_vert:
        candidate = min(atmo.vertical_velocity_cap,
                        (min_v_vert - frame.v_vertical) / atmo.vertical_velocity_per_degree)
        if candidate > atmo.vertical_velocity_significance:
            v_vert_correction = candidate
            correction += v_vert_correction
            reason = (f'Low vertical velocity ({frame.v_vertical:.0f} m/s '
                      f'< {min_v_vert:.0f} m/s), pitching up')

    return RuleOutcome(
        phase=GuidancePhase.ATMOSPHERIC_ASCENT,
        pitch=max(min_pitch_for_altitude, base_pitch + correction),
        throttle=1.0,
        detail=AtmosphericAscentDetail(
            base_pitch=base_pitch,
            correction=correction,
            turn_rate_correction=turn_rate_correction,
            floor_correction=floor_correction,
            vertical_velocity_correction=v_vert_correction,
            min_pitch_for_altitude=min_pitch_for_altitude,
            natural_turn_rate=natural_turn_rate,
            actual_turn_rate=actual_turn_rate,
            min_vertical_velocity=min_v_vert,
            vertical_velocity=frame.v_vertical,
        ),
        reason=reason,
    )


ATMOSPHERE_RULES: Tuple[AtmosphereRule, ...] = (
    vertical_ascent_rule,
    pitch_kick_rule,
    max_q_rule,
    atmospheric_ascent_rule,
)


# =============================================================================
# VACUUM PROFILE
# =============================================================================

def vacuum_profile(config: GuidanceConfig, frame: LocalFrame, orbit: OrbitElements,
                   prior: GuidanceState, dt: float) -> VacuumProfile:
    """
    Target flight-path angle for the current vacuum tick.

    The base profile is a power-law decay

        fpa_base = fpa_start * (1 - progress)^k

    from the atmosphere limit (progress 0) to the target altitude
    (progress 1). Higher targets start steeper (more time to pitch over)
    and use a smaller exponent (stay steep longer).

    Two biases are added on top:

        periapsis safety  keyed on the measured periapsis rise rate while
                          the periapsis is below the safe threshold
        prediction        forecasts the burnout periapsis from the average
                          remaining flight-path angle; the periapsis gain
                          per unit of apoapsis gain is roughly cot(fpa_avg)
    """
    vac = config.vacuum
    target = config.target_altitude
    target_above = config.target_above_atmosphere
    safe_periapsis = config.safe_periapsis

    altitude_above = max(0.0, frame.altitude - config.atmosphere_limit)
    progress = min(1.0, altitude_above / target_above) if target_above > 0 else 1.0

    starting_fpa = max(vac.min_starting_fpa,
                       min(vac.max_starting_fpa,
                           vac.min_starting_fpa + target_above / vac.starting_fpa_step))
    exponent = max(vac.min_exponent,
                   min(vac.max_exponent, vac.max_exponent - target_above / vac.exponent_decay))

    base_fpa = max(vac.min_fpa, starting_fpa * (1.0 - progress) ** exponent)

    # Average FPA over the remaining profile, midpoint approximation
    avg_progress = 0.5 * (progress + 1.0)
    average_fpa = max(vac.min_fpa, starting_fpa * (1.0 - avg_progress) ** exponent)
    avg_rad = abs(average_fpa) * DEG2RAD
    gain_ratio = math.cos(avg_rad) / math.sin(avg_rad) if avg_rad > 0.01 else 10.0

    apoapsis_to_gain = max(0.0, target - orbit.apoapsis)
    predicted_periapsis = orbit.periapsis + apoapsis_to_gain * gain_ratio

    # Periapsis safety bias
    last_periapsis = prior.last_periapsis if prior.last_periapsis is not None else orbit.periapsis
    periapsis_rate = (orbit.periapsis - last_periapsis) / max(0.01, dt)

    safety_bias = 0.0
    periapsis_status = 'safe'
    if orbit.periapsis < safe_periapsis:
        if periapsis_rate > vac.periapsis_rate_fast:
            periapsis_status = 'rising-fast'
        elif periapsis_rate > vac.periapsis_rate_slow:
            safety_bias = vac.bias_rising_slow
            periapsis_status = 'rising-slow'
        elif periapsis_rate > vac.periapsis_rate_stable:
            safety_bias = vac.bias_stable
            periapsis_status = 'stable'
        else:
            safety_bias = min(vac.bias_falling_cap,
                              vac.bias_falling_base + -periapsis_rate / vac.bias_falling_rate_scale)
            periapsis_status = 'falling'
        if orbit.periapsis < vac.deep_periapsis:
            safety_bias += vac.deep_periapsis_bias

    # Burnout periapsis prediction bias
    prediction_bias = 0.0
    active = apoapsis_to_gain > vac.prediction_min_apoapsis_to_gain
    if active and predicted_periapsis < safe_periapsis:
        prediction_bias = -min(vac.prediction_low_cap,
                               (safe_periapsis - predicted_periapsis) / vac.prediction_low_step)
        prediction_status = 'low'
    elif active and predicted_periapsis > target * vac.prediction_overshoot_ratio:
        prediction_bias = min(vac.prediction_high_cap,
                              (predicted_periapsis - target) / vac.prediction_high_step)
        prediction_status = 'high'
    elif not active:
        prediction_status = 'near-target'
    else:
        prediction_status = 'ok'

    target_fpa = max(0.0, base_fpa + safety_bias + prediction_bias)

    return VacuumProfile(
        starting_fpa=starting_fpa,
        profile_exponent=exponent,
        progress_to_target=progress,
        base_fpa=base_fpa,
        average_fpa=average_fpa,
        expected_gain_ratio=gain_ratio,
        apoapsis_to_gain=apoapsis_to_gain,
        predicted_final_periapsis=predicted_periapsis,
        periapsis_change_rate=periapsis_rate,
        periapsis_status=periapsis_status,
        periapsis_safety_bias=safety_bias,
        prediction_status=prediction_status,
        prediction_bias=prediction_bias,
        target_fpa=target_fpa,
        fpa_error=frame.flight_path_angle - target_fpa,
        apoapsis_error=orbit.apoapsis - target,
        periapsis_error=orbit.periapsis - target,
    )


def profile_correction(profile: VacuumProfile, config: GuidanceConfig,
                       deadband: float) -> Tuple[float, str]:
    """
    Pitch correction toward the target flight-path angle.

    A large prediction bias means the periapsis is in danger, so the full
    error is removed at once. Otherwise half of a too-steep error (capped
    at 10 deg) or 30% of a too-shallow error (capped at 5 deg) is removed,
    with no action inside the deadband.
    """
    vac = config.vacuum
    err = profile.fpa_error
    if abs(profile.prediction_bias) > vac.large_bias_threshold:
        return -err, 'direct'
    if err > deadband:
        return -min(vac.steep_cap, err * vac.steep_gain), 'too-steep'
    if err < -deadband:
        return min(vac.shallow_cap, -err * vac.shallow_gain), 'too-shallow'
    return 0.0, 'on-profile'


# =============================================================================
# VACUUM RULES
# =============================================================================

def emergency_rule(ctx: VacuumContext) -> Optional[RuleOutcome]:
    """Periapsis below ground with apoapsis already high: burn horizontal now."""
    tol = ctx.config.orbit_tolerance
    if not (ctx.orbit.periapsis < 0.0 and ctx.profile.apoapsis_error >= -tol):
        return None
    return RuleOutcome(
        phase=GuidancePhase.EMERGENCY_RAISE_PERIAPSIS,
        pitch=max(0.0, ctx.frame.flight_path_angle - ctx.config.vacuum.emergency_pitch_offset),
        throttle=1.0,
        detail=EmergencyDetail(periapsis=ctx.orbit.periapsis),
        reason=f'EMERGENCY: Pe below ground ({ctx.orbit.periapsis / 1000:.0f} km), burning horizontal',
    )


def raise_apoapsis_rule(ctx: VacuumContext) -> Optional[RuleOutcome]:
    """Apoapsis short of the target: keep burning along the FPA profile."""
    cfg = ctx.config
    vac = cfg.vacuum
    if ctx.profile.apoapsis_error >= -cfg.orbit_tolerance:
        return None

    correction, mode = profile_correction(ctx.profile, cfg, vac.apoapsis_deadband)

    deficit = -ctx.profile.apoapsis_error
    if ctx.orbit.periapsis < cfg.safe_periapsis:
        throttle = 1.0
    elif deficit < vac.apoapsis_throttle_window:
        throttle = max(vac.min_apoapsis_throttle, deficit / vac.apoapsis_throttle_window)
    else:
        throttle = 1.0

    return RuleOutcome(
        phase=GuidancePhase.RAISING_APOAPSIS,
        pitch=ctx.frame.flight_path_angle + correction,
        throttle=throttle,
        detail=RaiseApoapsisDetail(correction=correction, correction_mode=mode,
                                   apoapsis_deficit=deficit),
        reason=f'Raising Apo, {mode}',
    )


def build_periapsis_rule(ctx: VacuumContext) -> Optional[RuleOutcome]:
    """Apoapsis on target but periapsis unsafe: keep burning, tighter deadband."""
    cfg = ctx.config
    if ctx.orbit.periapsis >= cfg.safe_periapsis:
        return None

    correction, mode = profile_correction(ctx.profile, cfg, cfg.vacuum.periapsis_deadband)
    return RuleOutcome(
        phase=GuidancePhase.BUILDING_PERIAPSIS,
        pitch=max(0.0, ctx.frame.flight_path_angle + correction),
        throttle=1.0,
        detail=BuildPeriapsisDetail(correction=correction, correction_mode=mode,
                                    periapsis_deficit=cfg.safe_periapsis - ctx.orbit.periapsis),
        reason=f'Building Pe, {mode}',
    )


def apoapsis_too_high_rule(ctx: VacuumContext) -> Optional[RuleOutcome]:
    """Apoapsis overshoot with a safe periapsis: coast for a retrograde burn."""
    if ctx.profile.apoapsis_error <= ctx.config.orbit_tolerance:
        return None
    return RuleOutcome(
        phase=GuidancePhase.APOAPSIS_TOO_HIGH,
        pitch=ctx.frame.flight_path_angle,
        throttle=0.0,
        detail=ApoapsisHighDetail(apoapsis_excess=ctx.profile.apoapsis_error),
        reason='Apo too high, coasting for retrograde',
    )


def coast_to_circularize_rule(ctx: VacuumContext) -> Optional[RuleOutcome]:
    """
    Apoapsis on target, periapsis low: coast, then burn symmetrically
    about apoapsis.

    The burn starts once the time to apoapsis drops to half the estimated
    burn duration, so that half of the burn happens before apoapsis and
    half after. Once started it keeps going through apoapsis until the
    periapsis is within tolerance. The throttle backs off over the last
    30 km of periapsis deficit.
    """
    cfg = ctx.config
    vac = cfg.vacuum
    if ctx.profile.periapsis_error >= -cfg.orbit_tolerance:
        return None

    orbit = ctx.orbit
    frame = ctx.frame
    vehicle = ctx.vehicle

    delta_v = ctx.planner.circularization_delta_v(orbit, frame.speed)
    burn_time = ctx.planner.burn_duration(delta_v, vehicle.stage_index, cfg.stages,
                                          ctx.physics.total_mass)

    timing = ctx.solver.timing(orbit, vehicle.position, vehicle.velocity)
    time_to_apo = timing.time_to_apoapsis
    source = 'kepler'
    if not math.isfinite(time_to_apo) or time_to_apo <= 0.0:
        time_to_apo, source = fallback_time_to_apoapsis(ctx)

    half_burn = 0.5 * burn_time
    starting = (math.isfinite(time_to_apo)
                and burn_time > 0.0
                and time_to_apo <= half_burn)
    # past apoapsis the time to apoapsis wraps to a full period
    continuing = ctx.prior.circularization_burn_started
    burning = (starting or continuing) and orbit.periapsis >= cfg.safe_periapsis

    detail = CircularizationDetail(
        delta_v=delta_v,
        burn_time=burn_time,
        time_to_apoapsis=time_to_apo,
        time_source=source,
        burn_starts_in=time_to_apo - half_burn,
        burning=burning,
        orbit_inconsistent=timing.inconsistent,
    )

    if burning:
        periapsis_deficit = -ctx.profile.periapsis_error
        if periapsis_deficit < vac.circularization_throttle_window:
            throttle = max(vac.min_circularization_throttle,
                           periapsis_deficit / vac.circularization_throttle_window)
        else:
            throttle = 1.0
        return RuleOutcome(
            phase=GuidancePhase.CIRCULARIZING,
            pitch=frame.flight_path_angle,
            throttle=throttle,
            detail=detail,
            reason=f'Circularizing ({periapsis_deficit / 1000:.0f} km Pe to go)',
        )

    return RuleOutcome(
        phase=GuidancePhase.COASTING_TO_CIRC,
        pitch=frame.flight_path_angle,
        throttle=0.0,
        detail=detail,
        reason=f'Coasting to Apo ({time_to_apo:.0f} s, burn in {time_to_apo - half_burn:.0f} s)',
    )


def orbit_achieved_rule(ctx: VacuumContext) -> Optional[RuleOutcome]:
    """Both apsides within tolerance of the target."""
    return RuleOutcome(
        phase=GuidancePhase.ORBIT_ACHIEVED,
        pitch=ctx.frame.flight_path_angle,
        throttle=0.0,
        detail=OrbitAchievedDetail(eccentricity=ctx.orbit.eccentricity),
        reason=f'Orbit achieved (e={ctx.orbit.eccentricity:.4f})',
    )


VACUUM_RULES: Tuple[VacuumRule, ...] = (
    emergency_rule,
    raise_apoapsis_rule,
    build_periapsis_rule,
    apoapsis_too_high_rule,
    coast_to_circularize_rule,
    orbit_achieved_rule,
)


def fallback_time_to_apoapsis(ctx: VacuumContext) -> Tuple[float, str]:
    """
    Time to apoapsis when the closed form has no finite answer.

    Tries a constant-acceleration climb first and then a constant
    vertical-velocity estimate; returns +inf when the vehicle is not
    climbing toward the apoapsis.
    """
    frame = ctx.frame
    apoapsis = ctx.orbit.apoapsis
    if not (frame.is_ascending and math.isfinite(apoapsis) and apoapsis > frame.altitude):
        return math.inf, 'none'

    a_vert = vertical_acceleration(ctx.vehicle, ctx.physics, frame,
                                   ctx.prior.last_commanded_pitch, len(ctx.config.stages))
    t = time_to_altitude(frame.altitude, apoapsis, frame.v_vertical, a_vert)
    if math.isfinite(t):
        return t, 'kinematic'
    return (apoapsis - frame.altitude) / max(1.0, frame.v_vertical), 'vertical-velocity'


def first_match(rules: Sequence[Callable], ctx) -> RuleOutcome:
    """Evaluate *rules* in priority order and return the first outcome."""
    for rule in rules:
        outcome = rule(ctx)
        if outcome is not None:
            return outcome
    raise RuntimeError("guidance rule ladder has no terminal rule")


# =============================================================================
# CONTROL LAW
# =============================================================================

def compute_guidance(
    vehicle: VehicleState,
    physics: PhysicsSample,
    config: GuidanceConfig,
    prior: GuidanceState,
    dt: float,
) -> Tuple[GuidanceResult, GuidanceState]:
    """
    Run one guidance tick.

    Pure function: the same inputs and prior state always produce the same
    result and next state; *prior* is not modified.

    Steps:
        1. Decompose the state into the local horizon frame.
        2. Predict the vacuum two-body orbit.
        3. Pick the phase from the atmosphere or vacuum rule ladder.
        4. Clamp the pitch to [-5, 90] deg and rate-limit it against the
           previous command.
        5. Convert to a unit thrust direction (or retrograde in a
           designated retrograde burn).

    Parameters
    ----------
    vehicle : VehicleState
        Current vehicle snapshot.
    physics : PhysicsSample
        Scalar physics quantities for this tick.
    config : GuidanceConfig
        Static configuration.
    prior : GuidanceState
        State carried from the previous tick.
    dt : float
        Time since the previous tick (s); 0 disables rate terms.

    Returns
    -------
    result : GuidanceResult
    next_state : GuidanceState
    """
    frame = local_frame(vehicle, config.planet_radius)
    predictor = OrbitPredictor(config.mu, config.planet_radius)
    planner = ManeuverPlanner(config.mu, config.planet_radius)
    orbit = predictor.predict(vehicle.position, vehicle.velocity)

    velocity_deficit = predictor.circular_velocity(config.target_altitude) - frame.v_horizontal
    remaining_dv = planner.remaining_delta_v(config, vehicle.stage_index,
                                             vehicle.propellant_remaining, physics.total_mass)

    profile: Optional[VacuumProfile] = None
    next_state = replace(prior)

    if frame.altitude < config.atmosphere_limit:
        ctx = AtmosphereContext(vehicle, physics, config, frame, prior, dt)
        outcome = first_match(ATMOSPHERE_RULES, ctx)
        if outcome.phase == GuidancePhase.ATMOSPHERIC_ASCENT:
            next_state.last_flight_path_angle = frame.flight_path_angle
    else:
        profile = vacuum_profile(config, frame, orbit, prior, dt)
        ctx = VacuumContext(vehicle, physics, config, frame, orbit, profile, prior,
                            AnomalySolver(config.mu), planner)
        outcome = first_match(VACUUM_RULES, ctx)
        next_state.last_periapsis = orbit.periapsis

    pitch = max(MIN_PITCH, min(MAX_PITCH, outcome.pitch))

    rate_limited = False
    if dt > 0:
        max_change = config.max_pitch_rate * dt
        desired_change = pitch - prior.last_commanded_pitch
        if abs(desired_change) > max_change:
            pitch = prior.last_commanded_pitch + math.copysign(max_change, desired_change)
            rate_limited = True

    throttle = max(0.0, min(1.0, outcome.throttle))
    is_retrograde = vehicle.burn_mode == 'retrograde'

    next_state.phase = outcome.phase
    next_state.last_commanded_pitch = pitch
    next_state.throttle = throttle
    next_state.is_retrograde = is_retrograde
    next_state.circularization_burn_started = outcome.phase == GuidancePhase.CIRCULARIZING
    if is_retrograde and vehicle.engine_on:
        next_state.retrograde_burn_started = True

    if is_retrograde:
        if frame.speed > 0.0:
            direction = -vehicle.velocity / frame.speed
        else:
            direction = -frame.east
    else:
        direction = frame.pitch_direction(pitch)

    diagnostics = GuidanceDiagnostics(
        phase=outcome.phase,
        detail=outcome.detail,
        reason=outcome.reason,
        profile=profile,
        unconstrained_pitch=outcome.pitch,
        rate_limited=rate_limited,
    )

    logger.debug(
        "T+%.1f %s: alt=%.0f m fpa=%.2f pitch=%.2f throttle=%.2f (%s)",
        vehicle.time, outcome.phase, frame.altitude, frame.flight_path_angle,
        pitch, throttle, outcome.reason,
    )

    result = GuidanceResult(
        pitch=pitch,
        throttle=throttle,
        thrust_direction=direction,
        phase=outcome.phase,
        orbit=orbit,
        velocity_deficit=velocity_deficit,
        remaining_delta_v=remaining_dv,
        diagnostics=diagnostics,
    )
    return result, next_state


class GuidanceController:
    """
    Stateful wrapper around :func:`compute_guidance`.

    Owns the GuidanceState; nothing else writes it. Call :meth:`reset`
    before replaying or restarting a mission.

    Args:
        config: Static guidance configuration
    """

    def __init__(self, config: GuidanceConfig):
        self.config = config
        self.state = GuidanceState()

    def reset(self) -> None:
        """Restore the pre-launch guidance state."""
        self.state = GuidanceState()
        logger.debug("Guidance state reset")

    def update(self, vehicle: VehicleState, physics: PhysicsSample, dt: float) -> GuidanceResult:
        """Run one tick and advance the stored guidance state."""
        previous_phase = self.state.phase
        result, self.state = compute_guidance(vehicle, physics, self.config, self.state, dt)
        if result.phase != previous_phase:
            logger.info("Guidance phase %s -> %s at T+%.1f s",
                        previous_phase, result.phase, vehicle.time)
        return result
