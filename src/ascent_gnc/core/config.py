"""
===============================================================================
ASCENT GNC - Guidance Configuration
===============================================================================
Static configuration consumed by the guidance controller, burn scheduler and
event forecaster. Configuration is read from a YAML file shaped like
``config/guidance_config.yaml``; every key is optional and falls back to the
defaults defined here.

The numeric tuning constants (correction caps, throttle-ramp windows, the
vertical-velocity ramp, ...) were tuned empirically against the default
vehicle. They are configuration, not physics.
===============================================================================
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Union

import yaml

from ascent_gnc.core.constants import (
    DEFAULT_ATMOSPHERE_LIMIT,
    DEFAULT_MAX_Q,
    DEFAULT_STAGES,
    DEFAULT_TARGET_ALTITUDE,
    EARTH_MU,
    EARTH_RADIUS,
    FAIRING_JETTISON_ALTITUDE,
    KARMAN_LINE,
    ORBIT_ALTITUDE_THRESHOLD,
)

logger = logging.getLogger(__name__)


# =============================================================================
# VEHICLE
# =============================================================================

@dataclass
class StageConfig:
    """
    Propulsion and structural figures for a single rocket stage.

    Attributes:
        name: Stage identifier
        dry_mass: Structure mass without propellant (kg)
        propellant_mass: Initial propellant mass (kg), used when no
            remaining propellant is reported for the stage
        thrust_vac: Vacuum thrust (N)
        isp_vac: Vacuum specific impulse (s)
    """
    name: str = "Stage"
    dry_mass: float = 5000.0
    propellant_mass: float = 50000.0
    thrust_vac: float = 1000000.0
    isp_vac: float = 320.0

    @classmethod
    def from_dict(cls, s_cfg: dict) -> 'StageConfig':
        """Build a stage from a ``launch_vehicle.stages`` YAML entry."""
        return cls(
            name=s_cfg.get('name', 'Stage'),
            dry_mass=float(s_cfg.get('dry_mass_kg', 5000.0)),
            propellant_mass=float(s_cfg.get('propellant_mass_kg', 50000.0)),
            thrust_vac=float(s_cfg.get('thrust_vac_N', 1000000.0)),
            isp_vac=float(s_cfg.get('isp_vac_s', 320.0)),
        )


# =============================================================================
# TUNING SECTIONS
# =============================================================================

@dataclass
class AtmosphericTuning:
    """Constants for the in-atmosphere (altitude < atmosphere limit) law."""
    max_q_fraction: float = 0.8
    # Turn-rate limiter (deg/s, deg)
    turn_rate_excess_threshold: float = 0.5
    turn_rate_gain: float = 2.0
    turn_rate_cap: float = 5.0
    # Altitude-scaled pitch floor: 90 - fraction^2 * span
    pitch_floor_span: float = 80.0
    pitch_floor_gain: float = 0.3
    # Minimum vertical velocity at atmosphere exit
    min_vertical_velocity_base: float = 200.0        # m/s
    min_vertical_velocity_per_km: float = 0.5        # m/s per km of target above atmosphere
    vertical_velocity_ramp_start: float = 50000.0    # m
    vertical_velocity_ramp_end: float = 70000.0      # m
    vertical_velocity_min_proximity: float = 0.3
    vertical_velocity_per_degree: float = 20.0       # m/s of deficit per degree
    vertical_velocity_cap: float = 15.0              # deg
    vertical_velocity_significance: float = 2.0      # deg


@dataclass
class VacuumTuning:
    """Constants for the vacuum flight-path-angle profile and case ladder."""
    min_fpa: float = -5.0
    # Starting FPA: min + 1 deg per starting_fpa_step of target above atmosphere
    min_starting_fpa: float = 10.0
    max_starting_fpa: float = 50.0
    starting_fpa_step: float = 15000.0               # m per degree
    # Profile exponent: max - (target above atmosphere) / exponent_decay
    max_exponent: float = 1.5
    min_exponent: float = 0.5
    exponent_decay: float = 3.0e6                    # m
    safe_periapsis_margin: float = 30000.0           # m above the atmosphere limit
    # Periapsis safety bias keyed on periapsis rise rate (m/s)
    periapsis_rate_fast: float = 500.0
    periapsis_rate_slow: float = 100.0
    periapsis_rate_stable: float = -100.0
    bias_rising_slow: float = 2.0
    bias_stable: float = 5.0
    bias_falling_base: float = 5.0
    bias_falling_rate_scale: float = 200.0
    bias_falling_cap: float = 15.0
    deep_periapsis: float = -200000.0
    deep_periapsis_bias: float = 5.0
    # Burnout periapsis prediction
    prediction_min_apoapsis_to_gain: float = 5000.0
    prediction_low_step: float = 10000.0             # m of deficit per degree
    prediction_low_cap: float = 15.0
    prediction_overshoot_ratio: float = 1.1
    prediction_high_step: float = 50000.0            # m of excess per degree
    prediction_high_cap: float = 5.0
    # Case ladder corrections
    large_bias_threshold: float = 5.0
    apoapsis_deadband: float = 5.0
    periapsis_deadband: float = 3.0
    steep_gain: float = 0.5
    steep_cap: float = 10.0
    shallow_gain: float = 0.3
    shallow_cap: float = 5.0
    emergency_pitch_offset: float = 15.0
    # Throttle ramps
    apoapsis_throttle_window: float = 50000.0
    min_apoapsis_throttle: float = 0.2
    circularization_throttle_window: float = 30000.0
    min_circularization_throttle: float = 0.1


@dataclass
class SchedulerTuning:
    """Constants for burn strategy selection and burn countdowns."""
    tolerance: float = 10000.0
    direct_ascent_max_target: float = 250000.0
    direct_ascent_min_burn: float = 60.0
    circularization_min_elapsed: float = 1500.0
    horizon: float = 10000.0


@dataclass
class EventTuning:
    """Altitude thresholds and horizon for the next-event forecast."""
    atmosphere_line: float = KARMAN_LINE
    orbit_altitude: float = ORBIT_ALTITUDE_THRESHOLD
    horizon: float = 10000.0


# Tuning values used as divisors by the guidance law
_POSITIVE_TUNING = (
    ('atmospheric', 'vertical_velocity_per_degree'),
    ('vacuum', 'starting_fpa_step'),
    ('vacuum', 'exponent_decay'),
    ('vacuum', 'bias_falling_rate_scale'),
    ('vacuum', 'prediction_low_step'),
    ('vacuum', 'prediction_high_step'),
    ('vacuum', 'apoapsis_throttle_window'),
    ('vacuum', 'circularization_throttle_window'),
)


def _section(cls, data: Optional[dict]):
    """Instantiate a tuning dataclass from a YAML mapping, ignoring unknown keys."""
    data = data or {}
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, unknown)
    return cls(**{k: float(v) for k, v in data.items() if k in known})


# =============================================================================
# TOP-LEVEL CONFIGURATION
# =============================================================================

@dataclass
class GuidanceConfig:
    """
    Complete static configuration for one ascent.

    Attributes:
        target_altitude: Target circular orbit altitude (m)
        atmosphere_limit: Altitude above which guidance runs the vacuum law (m)
        max_q: Maximum dynamic pressure (Pa)
        max_pitch_rate: Physical pitch rotation limit (deg/s)
        initial_pitch: Pitch reached at the end of the pitch kick (deg)
        pitch_kick_start: Time at which the pitch kick starts (s)
        pitch_kick_end: Time at which the pitch kick ends (s)
        orbit_tolerance: Apoapsis/periapsis tolerance of the case ladder (m)
        mu: Gravitational parameter of the central body (m^3/s^2)
        planet_radius: Mean radius of the central body (m)
        stages: Stage figures, first stage first
        fairing_jettison_altitude: Fairing jettison altitude (m)
    """
    target_altitude: float = DEFAULT_TARGET_ALTITUDE
    atmosphere_limit: float = DEFAULT_ATMOSPHERE_LIMIT
    max_q: float = DEFAULT_MAX_Q
    max_pitch_rate: float = 2.0
    initial_pitch: float = 85.0
    pitch_kick_start: float = 3.0
    pitch_kick_end: float = 15.0
    orbit_tolerance: float = 1000.0
    mu: float = EARTH_MU
    planet_radius: float = EARTH_RADIUS
    stages: List[StageConfig] = field(
        default_factory=lambda: [StageConfig.from_dict(s) for s in DEFAULT_STAGES])
    fairing_jettison_altitude: float = FAIRING_JETTISON_ALTITUDE
    atmospheric: AtmosphericTuning = field(default_factory=AtmosphericTuning)
    vacuum: VacuumTuning = field(default_factory=VacuumTuning)
    scheduler: SchedulerTuning = field(default_factory=SchedulerTuning)
    events: EventTuning = field(default_factory=EventTuning)

    @property
    def safe_periapsis(self) -> float:
        """Periapsis altitude considered safely above the atmosphere (m)."""
        return self.atmosphere_limit + self.vacuum.safe_periapsis_margin

    @property
    def target_above_atmosphere(self) -> float:
        """Height of the target orbit above the atmosphere limit (m)."""
        return self.target_altitude - self.atmosphere_limit

    def validate(self) -> 'GuidanceConfig':
        """
        Check the configuration for values the guidance law cannot work with.

        Returns:
            self, so the call can be chained

        Raises:
            ValueError: If any setting is out of range
        """
        if self.target_altitude <= 0.0:
            raise ValueError(f"Target altitude must be positive, got {self.target_altitude}")
        if self.atmosphere_limit < 0.0:
            raise ValueError(f"Atmosphere limit must be non-negative, got {self.atmosphere_limit}")
        if self.mu <= 0.0 or self.planet_radius <= 0.0:
            raise ValueError("Gravitational parameter and planet radius must be positive")
        if self.max_pitch_rate <= 0.0:
            raise ValueError(f"Max pitch rate must be positive, got {self.max_pitch_rate}")
        if self.pitch_kick_end <= self.pitch_kick_start:
            raise ValueError(
                f"Pitch kick must end after it starts "
                f"({self.pitch_kick_start} s -> {self.pitch_kick_end} s)"
            )
        if self.target_altitude <= self.atmosphere_limit:
            raise ValueError(
                f"Target altitude ({self.target_altitude} m) must lie above the "
                f"atmosphere limit ({self.atmosphere_limit} m)"
            )
        atmo = self.atmospheric
        if atmo.vertical_velocity_ramp_end <= atmo.vertical_velocity_ramp_start:
            raise ValueError(
                f"Vertical velocity ramp must end after it starts "
                f"({atmo.vertical_velocity_ramp_start} m -> {atmo.vertical_velocity_ramp_end} m)"
            )
        for section, name in _POSITIVE_TUNING:
            value = getattr(getattr(self, section), name)
            if value <= 0.0:
                raise ValueError(f"{section}.{name} must be positive, got {value}")
        if not -5.0 <= self.initial_pitch <= 90.0:
            raise ValueError(f"Initial pitch must lie in [-5, 90] deg, got {self.initial_pitch}")
        if not self.stages:
            raise ValueError("At least one stage is required")
        for stage in self.stages:
            if stage.thrust_vac <= 0.0 or stage.isp_vac <= 0.0:
                raise ValueError(f"{stage.name}: thrust and Isp must be positive")
        return self

    @classmethod
    def from_dict(cls, config: dict) -> 'GuidanceConfig':
        """
        Build a configuration from the parsed YAML document.

        Args:
            config: Dictionary with optional 'mission', 'body', 'ascent',
                'launch_vehicle', 'atmospheric_guidance', 'vacuum_guidance',
                'burn_scheduler' and 'events' sections

        Returns:
            Validated GuidanceConfig
        """
        mission = config.get('mission', {}) or {}
        body = config.get('body', {}) or {}
        ascent = config.get('ascent', {}) or {}
        vehicle = config.get('launch_vehicle', {}) or {}
        fairing = vehicle.get('fairing', {}) or {}

        defaults = cls()
        stages_cfg = vehicle.get('stages')
        stages = ([StageConfig.from_dict(s) for s in stages_cfg]
                  if stages_cfg else defaults.stages)

        return cls(
            target_altitude=float(mission.get('target_altitude_m', defaults.target_altitude)),
            atmosphere_limit=float(mission.get('atmosphere_limit_m', defaults.atmosphere_limit)),
            orbit_tolerance=float(mission.get('orbit_tolerance_m', defaults.orbit_tolerance)),
            mu=float(body.get('mu_m3_s2', defaults.mu)),
            planet_radius=float(body.get('radius_m', defaults.planet_radius)),
            max_q=float(ascent.get('max_q_Pa', defaults.max_q)),
            max_pitch_rate=float(ascent.get('max_pitch_rate_deg_s', defaults.max_pitch_rate)),
            initial_pitch=float(ascent.get('initial_pitch_deg', defaults.initial_pitch)),
            pitch_kick_start=float(ascent.get('pitch_kick_start_s', defaults.pitch_kick_start)),
            pitch_kick_end=float(ascent.get('pitch_kick_end_s', defaults.pitch_kick_end)),
            stages=stages,
            fairing_jettison_altitude=float(fairing.get(
                'jettison_altitude_m', defaults.fairing_jettison_altitude)),
            atmospheric=_section(AtmosphericTuning, config.get('atmospheric_guidance')),
            vacuum=_section(VacuumTuning, config.get('vacuum_guidance')),
            scheduler=_section(SchedulerTuning, config.get('burn_scheduler')),
            events=_section(EventTuning, config.get('events')),
        ).validate()


def load_config(config_path: Optional[Union[str, Path]] = None) -> GuidanceConfig:
    """
    Load the guidance configuration from a YAML file.

    Args:
        config_path: Path to YAML config. ``None`` returns the built-in defaults.

    Returns:
        GuidanceConfig instance
    """
    if config_path is None:
        logger.info("No configuration file given, using defaults")
        return GuidanceConfig().validate()

    logger.info("Loading configuration from: %s", config_path)
    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f) or {}
    config = GuidanceConfig.from_dict(raw)
    logger.info("Target orbit: %.0f km", config.target_altitude / 1000.0)
    return config
