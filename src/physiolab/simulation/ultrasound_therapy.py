"""
Therapeutic Ultrasound Engine - Attenuation, Heating and Thermal Dose

Heuristic model of continuous/pulsed therapeutic ultrasound in a layered
tissue stack (centimetres):

1. Energy: power = I * ERA, energy = power * t * duty, dose = I * t * duty
   (nominal output intensity; coupling losses apply to the propagated beam).
2. Attenuation: layer by layer, alpha * f_factor * thickness in dB,
   converted to a linear factor with 10^(-dB/10). The frequency factor is
   affine in MHz, so attenuation grows faster than frequency.
3. Landmarks: penetration depth (10% of surface intensity) and effective
   depth (50%, the therapeutic target).
4. Beam: near field of length r^2 f / 1.2 with near-constant width, far
   field diverging at 1.22 / (r f 1.2) rad.
5. Heating: simplified steady-state bioheat balance per layer, evolved
   toward steady state with a heat-capacity dependent time constant.
6. Thermal dose: CEM43 at the hottest point, plus a fraction of the
   surface dose for the cumulative dose.
7. Bone: reflection fraction and periosteal risk when the hotspot is near
   the bone surface.

The calibration constants live in physiolab.physics.constants and are kept
as found; temperatures are always reported within [37, 50] C.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from physiolab.physics.constants import (
    ABSORPTION_FRACTION,
    ACOUSTIC_BLOCK_DEPTH_CM,
    ATTENUATION_FREQUENCY_OFFSET,
    ATTENUATION_FREQUENCY_SLOPE,
    ATTENUATION_GAIN,
    BODY_TEMPERATURE_C,
    BONE_REACH_FRACTION,
    BONE_REFLECTION_BASE,
    BONE_REFLECTION_GAIN,
    CEM43_R_ABOVE,
    CEM43_R_BELOW,
    CEM43_REFERENCE_C,
    COUPLING_EFFICIENCY,
    CUMULATIVE_SURFACE_DOSE_FRACTION,
    DEPTH_PROFILE_STEP_CM,
    DEPTH_SCAN_LIMIT_CM,
    DEPTH_SCAN_STEP_CM,
    DIVERGENCE_FREQUENCY_GAIN,
    DIVERGENCE_NUMERATOR,
    DOSE_HIGH_CEM43,
    DOSE_MODERATE_CEM43,
    DOSE_NEGLIGIBLE_CEM43,
    DOSE_WATCH_CEM43,
    DURATION_FACTOR_BASE,
    DURATION_FACTOR_MAX,
    DURATION_FACTOR_PER_10_MIN,
    EFFECTIVE_FRACTION,
    HIGH_DOSE_J_CM2,
    HIGH_STATIONARY_INTENSITY_W_CM2,
    HOTSPOT_SCAN_LIMIT_CM,
    HOTSPOT_SCAN_START_CM,
    HOTSPOT_SCAN_STEP_CM,
    INTENSITY_FACTOR_GAIN,
    INTENSITY_FACTOR_MAX,
    LONG_SESSION_MIN,
    MIXED_LAYER_REFLECTION_MULTIPLIER,
    MODERATE_DOSE_J_CM2,
    NEAR_FIELD_DIVISOR,
    NEAR_FIELD_NARROWING_PER_MHZ,
    PENETRATION_FRACTION,
    PERFUSION_EPSILON,
    PERFUSION_RATE_SCALE,
    PERIOSTEAL_HIGH,
    PERIOSTEAL_HOT_BONUS,
    PERIOSTEAL_HOT_C,
    PERIOSTEAL_MIXED_LAYER_BONUS,
    PERIOSTEAL_MODERATE,
    PERIOSTEAL_PROXIMITY_CM,
    PERIOSTEAL_VERY_HIGH,
    POOR_COUPLING_DEPTH_FACTOR,
    POOR_COUPLING_SURFACE_FACTOR,
    PROLONGED_SESSION_MIN,
    REPORTED_TEMPERATURE_RANGE_C,
    SCANNING_AREA_FACTOR,
    SCANNING_HEATING_FACTOR,
    SURFACE_SAMPLE_DEPTH_CM,
    THERMAL_BURN_C,
    THERMAL_ELEVATED_C,
    THERMAL_HIGH_C,
    THERMAL_TAU_BASE_S,
    THERMAL_TAU_PER_HEAT_CAPACITY_S,
    THERMAL_WATCH_C,
    TIMELINE_POINTS,
    TISSUE_TEMPERATURE_RANGE_C,
    WATER_DENSITY_KG_M3,
    WATER_SPECIFIC_HEAT_J_KG_K,
)
from physiolab.physics.tissue import (
    TissueStack,
    TissueType,
    build_layer_stack,
    get_acoustic_scenario,
)
from physiolab.simulation.risk import RiskAssessment, RiskLevel, cap_messages, clamp
from physiolab.simulation.tracing import TraceHook, emit
from physiolab.visualization.adapters import (
    DepthSample,
    TemperatureSample,
    depth_profile_samples,
    temperature_samples,
)


class UltrasoundMode(str, Enum):
    CONTINUOUS = "continuous"
    PULSED = "pulsed"


class CouplingQuality(str, Enum):
    GOOD = "good"
    POOR = "poor"


class TransducerMovement(str, Enum):
    STATIONARY = "stationary"
    SCANNING = "scanning"


class DoseCategory(str, Enum):
    """Energy-density dose classes (J/cm^2)."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"

    @property
    def label(self) -> str:
        return _DOSE_LABELS[self]


_DOSE_LABELS = {
    DoseCategory.LOW: f"low dose (<{MODERATE_DOSE_J_CM2:g} J/cm²)",
    DoseCategory.MODERATE: f"moderate dose ({MODERATE_DOSE_J_CM2:g}-{HIGH_DOSE_J_CM2:g} J/cm²)",
    DoseCategory.HIGH: f"high dose (>{HIGH_DOSE_J_CM2:g} J/cm²)",
}


@dataclass(frozen=True)
class CustomThicknesses:
    """Caller-supplied layer thicknesses (cm) for the custom scenario."""

    skin: float
    fat: float
    muscle: float
    bone_thickness: float | None = None


@dataclass(frozen=True)
class MixedLayer:
    """
    Laterally split muscle/bone region.

    Attributes
    ----------
    depth_cm : float
        Depth where the mixed region starts.
    division_pct : float
        Position of the muscle/bone boundary (0 = all muscle, 100 = all bone).
    """

    depth_cm: float = 2.0
    division_pct: float = 50.0

    @property
    def boundary_x(self) -> float:
        """Boundary position in transducer coordinates (-1 to 1)."""
        return (self.division_pct / 100.0 - 0.5) * 2.0


@dataclass(frozen=True)
class ThermalParams:
    """
    Acoustic parameters for one ultrasound simulation.

    Attributes
    ----------
    frequency_mhz : float
        Transducer frequency.
    intensity_w_cm2 : float
        Nominal output intensity.
    era_cm2 : float
        Effective radiating area.
    mode : UltrasoundMode
        Continuous or pulsed output.
    duty_cycle_pct : float
        On-time percentage, only used in pulsed mode.
    duration_min : float
        Session duration.
    coupling : CouplingQuality
        Coupling gel/contact quality.
    movement : TransducerMovement
        Transducer held stationary or scanned.
    scenario : str
        Acoustic scenario name (see physics.tissue.ACOUSTIC_SCENARIOS).
    custom_thicknesses : CustomThicknesses, optional
        Layer thicknesses for the "custom" scenario.
    mixed_layer : MixedLayer, optional
        Laterally split muscle/bone region.
    transducer_x : float
        Lateral transducer position (-1 to 1).
    """

    frequency_mhz: float = 1.1
    intensity_w_cm2: float = 1.0
    era_cm2: float = 5.0
    mode: UltrasoundMode = UltrasoundMode.CONTINUOUS
    duty_cycle_pct: float = 50.0
    duration_min: float = 8.0
    coupling: CouplingQuality = CouplingQuality.GOOD
    movement: TransducerMovement = TransducerMovement.SCANNING
    scenario: str = "shoulder"
    custom_thicknesses: CustomThicknesses | None = None
    mixed_layer: MixedLayer | None = None
    transducer_x: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", UltrasoundMode(self.mode))
        object.__setattr__(self, "coupling", CouplingQuality(self.coupling))
        object.__setattr__(self, "movement", TransducerMovement(self.movement))

    @property
    def effective_duty(self) -> float:
        """On-time fraction (1.0 in continuous mode)."""
        if self.mode is UltrasoundMode.CONTINUOUS:
            return 1.0
        return self.duty_cycle_pct / 100.0

    @property
    def coupling_efficiency(self) -> float:
        return COUPLING_EFFICIENCY[self.coupling.value]

    @property
    def over_mixed_bone(self) -> bool:
        """True if the transducer sits on the bone side of the mixed layer."""
        if self.mixed_layer is None:
            return False
        return self.transducer_x > self.mixed_layer.boundary_x


@dataclass(frozen=True)
class ThermalResult:
    """Output of :func:`simulate_ultrasound_therapy`."""

    power_w: float
    energy_j: float
    dose_j_cm2: float
    dose_category: DoseCategory

    effective_depth_cm: float
    penetration_depth_cm: float

    surface_temp_c: float
    target_temp_c: float
    max_temp_c: float
    max_temp_depth_cm: float

    thermal_dose_cem43: float
    cumulative_dose_cem43: float

    risk: RiskAssessment

    beam_width_cm: float
    treated_area_cm2: float

    bone_reflection: float
    periosteal_risk: float

    intensity_profile: tuple[DepthSample, ...] = ()
    temperature_profile: tuple[TemperatureSample, ...] = ()

    @property
    def risk_level(self) -> RiskLevel:
        return self.risk.level

    @property
    def risk_messages(self) -> tuple[str, ...]:
        return self.risk.messages


# =============================================================================
# Tissue Resolution
# =============================================================================


def resolve_tissue_stack(
    params: ThermalParams,
    block_depth_cm: float = ACOUSTIC_BLOCK_DEPTH_CM,
) -> TissueStack:
    """
    Build the layer stack selected by ``params``.

    The custom scenario with explicit thicknesses goes through the stacked
    layer builder on a block of ``block_depth_cm`` (6 cm by default); every
    other name is a preset.

    Raises
    ------
    KeyError
        If the scenario name is unknown.
    """
    if params.scenario == "custom" and params.custom_thicknesses is not None:
        custom = params.custom_thicknesses
        return build_layer_stack(
            custom.skin,
            custom.fat,
            custom.muscle,
            bone_thickness=custom.bone_thickness,
            total_depth=block_depth_cm,
            name="custom",
        )
    return get_acoustic_scenario(params.scenario)


# =============================================================================
# Attenuation
# =============================================================================


def frequency_factor(frequency_mhz: float) -> float:
    """Attenuation multiplier for a frequency (0.75 at 1 MHz, 3.15 at 3 MHz, never negative)."""
    factor = (
        ATTENUATION_FREQUENCY_OFFSET + (frequency_mhz - 1.0) * ATTENUATION_FREQUENCY_SLOPE
    ) * ATTENUATION_GAIN
    return max(0.0, factor)


def intensity_at_depth(
    surface_intensity: float,
    depth_cm: float,
    frequency_mhz: float,
    tissue: TissueStack,
) -> float:
    """
    Intensity remaining at ``depth_cm`` after layered attenuation.

    Tissue below the deepest layer is treated as a continuation of it.

    Examples
    --------
    >>> from physiolab.physics.tissue import get_acoustic_scenario
    >>> stack = get_acoustic_scenario("forearm")
    >>> intensity_at_depth(1.0, 0.0, 1.0, stack)
    1.0
    """
    factor = frequency_factor(frequency_mhz)
    total_db = 0.0
    for layer in tissue.layers:
        if depth_cm <= layer.depth:
            break
        traversed = min(depth_cm - layer.depth, layer.thickness)
        total_db += layer.attenuation_coefficient * factor * traversed

    if depth_cm > tissue.bottom:
        total_db += tissue.layers[-1].attenuation_coefficient * factor * (
            depth_cm - tissue.bottom
        )

    return surface_intensity * 10.0 ** (-total_db / 10.0)


def _scan_depths() -> np.ndarray:
    count = int(round(DEPTH_SCAN_LIMIT_CM / DEPTH_SCAN_STEP_CM))
    return np.round(np.arange(count) * DEPTH_SCAN_STEP_CM, 10)


def find_depth_landmarks(
    surface_intensity: float,
    frequency_mhz: float,
    tissue: TissueStack,
) -> tuple[float, float]:
    """
    Scan from the surface for the 10% (penetration) and 50% (effective) depths.

    A threshold not reached within the scan range reports the scan limit.

    Returns
    -------
    penetration_cm, effective_cm : float
    """
    penetration = DEPTH_SCAN_LIMIT_CM
    effective = DEPTH_SCAN_LIMIT_CM
    found_effective = False
    for depth in _scan_depths():
        remaining = intensity_at_depth(surface_intensity, depth, frequency_mhz, tissue)
        if not found_effective and remaining < surface_intensity * EFFECTIVE_FRACTION:
            effective = float(depth)
            found_effective = True
        if remaining < surface_intensity * PENETRATION_FRACTION:
            penetration = float(depth)
            break
    return penetration, effective


# =============================================================================
# Beam
# =============================================================================


def beam_geometry(
    era_cm2: float,
    frequency_mhz: float,
    depth_cm: float,
    movement: TransducerMovement,
) -> tuple[float, float]:
    """
    Beam width at ``depth_cm`` and the treated area.

    Returns
    -------
    width_cm, treated_area_cm2 : float
    """
    radius = float(np.sqrt(era_cm2 / np.pi))
    near_field_length = radius**2 * frequency_mhz / NEAR_FIELD_DIVISOR

    if depth_cm < near_field_length:
        width = 2.0 * radius * (1.0 - (frequency_mhz - 1.0) * NEAR_FIELD_NARROWING_PER_MHZ)
    else:
        divergence = DIVERGENCE_NUMERATOR / (
            radius * frequency_mhz * DIVERGENCE_FREQUENCY_GAIN
        )
        width = 2.0 * radius + 2.0 * depth_cm * float(np.tan(divergence))

    area = float(np.pi * (width / 2.0) ** 2)
    if movement is TransducerMovement.SCANNING:
        area *= SCANNING_AREA_FACTOR
    return width, area


# =============================================================================
# Heating
# =============================================================================


def cem43(duration_min: float, temperature_c: float) -> float:
    """CEM43 equivalent minutes for a constant temperature."""
    r = CEM43_R_ABOVE if temperature_c > CEM43_REFERENCE_C else CEM43_R_BELOW
    return duration_min * r ** max(0.0, CEM43_REFERENCE_C - temperature_c)


def temperature_at_depth(
    params: ThermalParams,
    tissue: TissueStack,
    depth_cm: float,
    surface: bool = False,
    duration_min: float | None = None,
) -> tuple[float, float]:
    """
    Tissue temperature and CEM43 dose at one depth.

    Parameters
    ----------
    params : ThermalParams
        Acoustic parameters.
    tissue : TissueStack
        Layer stack (cm).
    depth_cm : float
        Query depth.
    surface : bool
        Evaluate as the surface point: full propagated intensity and the
        surface coupling factor.
    duration_min : float, optional
        Elapsed time; defaults to the session duration.

    Returns
    -------
    temperature_c, dose_cem43 : float
        Temperature clamped to [37, 48] C and its thermal dose.
    """
    duration = params.duration_min if duration_min is None else duration_min
    propagated = params.intensity_w_cm2 * params.coupling_efficiency
    layer = tissue.layer_at(depth_cm)

    if surface:
        local_intensity = propagated
    else:
        local_intensity = intensity_at_depth(
            propagated, depth_cm, params.frequency_mhz, tissue
        )
    effective_intensity = local_intensity * params.effective_duty

    movement_factor = (
        SCANNING_HEATING_FACTOR if params.movement is TransducerMovement.SCANNING else 1.0
    )
    if params.coupling is CouplingQuality.GOOD:
        coupling_factor = 1.0
    elif surface:
        coupling_factor = POOR_COUPLING_SURFACE_FACTOR
    else:
        coupling_factor = POOR_COUPLING_DEPTH_FACTOR

    absorption = layer.attenuation_coefficient * ABSORPTION_FRACTION
    heat_generation = absorption * effective_intensity * movement_factor * coupling_factor

    perfusion_rate = layer.perfusion_factor * PERFUSION_RATE_SCALE
    steady_state = BODY_TEMPERATURE_C + (heat_generation * 1000.0) / (
        WATER_DENSITY_KG_M3 * WATER_SPECIFIC_HEAT_J_KG_K * perfusion_rate + PERFUSION_EPSILON
    )

    tau_s = THERMAL_TAU_BASE_S + layer.heat_capacity_factor * THERMAL_TAU_PER_HEAT_CAPACITY_S
    rise = (steady_state - BODY_TEMPERATURE_C) * (1.0 - np.exp(-duration * 60.0 / tau_s))

    intensity_factor = min(INTENSITY_FACTOR_MAX, effective_intensity * INTENSITY_FACTOR_GAIN)
    duration_factor = min(
        DURATION_FACTOR_MAX,
        DURATION_FACTOR_BASE + (duration / 10.0) * DURATION_FACTOR_PER_10_MIN,
    )
    rise *= intensity_factor * duration_factor

    temperature = clamp(BODY_TEMPERATURE_C + float(rise), *TISSUE_TEMPERATURE_RANGE_C)
    return temperature, cem43(duration, temperature)


def _report_temperature(value: float) -> float:
    return clamp(value, *REPORTED_TEMPERATURE_RANGE_C)


def _hotspot_depths(penetration_cm: float) -> list[float]:
    limit = min(penetration_cm, HOTSPOT_SCAN_LIMIT_CM)
    depths = []
    i = 0
    while True:
        depth = round(HOTSPOT_SCAN_START_CM + i * HOTSPOT_SCAN_STEP_CM, 10)
        if depth >= limit:
            return depths
        depths.append(depth)
        i += 1


# =============================================================================
# Bone Interaction
# =============================================================================


def bone_interaction(
    params: ThermalParams,
    tissue: TissueStack,
    hotspot_depth_cm: float,
    hotspot_temp_c: float,
) -> tuple[float, float]:
    """
    Bone reflection fraction and periosteal risk factor, both in [0, 1].

    Applies when the stack contains bone or the transducer sits over the
    bone side of a mixed layer, and only if more than 10% of the propagated
    intensity reaches the bone surface.
    """
    bone = tissue.find(TissueType.BONE)
    over_bone = params.over_mixed_bone
    if bone is None and not over_bone:
        return 0.0, 0.0

    propagated = params.intensity_w_cm2 * params.coupling_efficiency
    if propagated <= 0:
        return 0.0, 0.0

    bone_depth = bone.depth if bone is not None else params.mixed_layer.depth_cm
    at_bone = intensity_at_depth(propagated, bone_depth, params.frequency_mhz, tissue)
    if at_bone <= propagated * BONE_REACH_FRACTION:
        return 0.0, 0.0

    multiplier = MIXED_LAYER_REFLECTION_MULTIPLIER if over_bone else 1.0
    reflection = (BONE_REFLECTION_BASE + (at_bone / propagated) * BONE_REFLECTION_GAIN) * multiplier

    periosteal = 0.0
    distance = abs(hotspot_depth_cm - bone_depth)
    if distance < PERIOSTEAL_PROXIMITY_CM:
        periosteal = min(1.0, (PERIOSTEAL_PROXIMITY_CM - distance) / PERIOSTEAL_PROXIMITY_CM)
        if hotspot_temp_c > PERIOSTEAL_HOT_C:
            periosteal = min(1.0, periosteal + PERIOSTEAL_HOT_BONUS)
        if over_bone:
            periosteal = min(1.0, periosteal + PERIOSTEAL_MIXED_LAYER_BONUS)

    return min(1.0, reflection), periosteal


# =============================================================================
# Dose and Risk
# =============================================================================


def classify_dose(dose_j_cm2: float) -> DoseCategory:
    """
    Classify an energy-density dose.

    Examples
    --------
    >>> classify_dose(300.0).label
    'high dose (>20 J/cm²)'
    """
    if dose_j_cm2 < MODERATE_DOSE_J_CM2:
        return DoseCategory.LOW
    if dose_j_cm2 <= HIGH_DOSE_J_CM2:
        return DoseCategory.MODERATE
    return DoseCategory.HIGH


def assess_thermal_risk(
    params: ThermalParams,
    max_temp_c: float,
    surface_temp_c: float,
    cumulative_dose: float,
    periosteal_risk: float,
    dose_j_cm2: float,
) -> RiskAssessment:
    """
    Combine thermal and periosteal risk; the overall level is the maximum.

    Contextual escalators (high dose over a long session, high intensity
    held stationary, poor coupling with a hot surface) apply only when the
    combined level is still low.
    """
    messages: list[str] = []

    thermal = RiskLevel.LOW
    if max_temp_c > THERMAL_BURN_C:
        thermal = RiskLevel.HIGH
        messages.append(f"Very high temperature (>{THERMAL_BURN_C:g}°C): burn risk.")
    elif max_temp_c > THERMAL_HIGH_C:
        thermal = RiskLevel.HIGH
        messages.append(f"High temperature (>{THERMAL_HIGH_C:g}°C): elevated risk.")
    elif max_temp_c > THERMAL_ELEVATED_C:
        thermal = RiskLevel.MODERATE
        messages.append(f"Elevated temperature (>{THERMAL_ELEVATED_C:g}°C): monitor.")
    elif max_temp_c > THERMAL_WATCH_C and (
        cumulative_dose > DOSE_WATCH_CEM43 or params.duration_min > LONG_SESSION_MIN
    ):
        thermal = RiskLevel.MODERATE
        messages.append(
            f"Moderate temperature (>{THERMAL_WATCH_C:g}°C) with high dose or long session."
        )

    if cumulative_dose > DOSE_HIGH_CEM43:
        thermal = RiskLevel.HIGH
        messages.append(
            f"Very high cumulative thermal dose ({cumulative_dose:.0f} min eq. 43°C): "
            "risk of tissue damage."
        )
    elif cumulative_dose > DOSE_MODERATE_CEM43:
        thermal = RiskLevel.highest(thermal, RiskLevel.MODERATE)
        messages.append(
            f"Moderate cumulative thermal dose ({cumulative_dose:.0f} min eq. 43°C)."
        )
    elif cumulative_dose < DOSE_NEGLIGIBLE_CEM43 and max_temp_c < THERMAL_ELEVATED_C:
        thermal = RiskLevel.LOW

    periosteal = RiskLevel.LOW
    pct = periosteal_risk * 100
    if periosteal_risk > PERIOSTEAL_VERY_HIGH:
        periosteal = RiskLevel.HIGH
        messages.append(
            f"Very high periosteal risk ({pct:.0f}%): hotspot very close to bone."
        )
    elif periosteal_risk > PERIOSTEAL_HIGH:
        periosteal = RiskLevel.HIGH
        messages.append(f"High periosteal risk ({pct:.0f}%): hotspot close to bone.")
    elif periosteal_risk > PERIOSTEAL_MODERATE:
        periosteal = RiskLevel.MODERATE
        messages.append(f"Moderate periosteal risk ({pct:.0f}%).")

    level = RiskLevel.highest(thermal, periosteal)

    if level is RiskLevel.LOW:
        if dose_j_cm2 > HIGH_DOSE_J_CM2 and params.duration_min > PROLONGED_SESSION_MIN:
            level = RiskLevel.MODERATE
            messages.append(
                f"High dose (>{HIGH_DOSE_J_CM2:g} J/cm²) over a prolonged session."
            )
        elif (
            params.intensity_w_cm2 > HIGH_STATIONARY_INTENSITY_W_CM2
            and params.movement is TransducerMovement.STATIONARY
        ):
            level = RiskLevel.MODERATE
            messages.append(
                f"High intensity (>{HIGH_STATIONARY_INTENSITY_W_CM2:g} W/cm²) "
                "with a stationary transducer."
            )
        elif params.coupling is CouplingQuality.POOR and surface_temp_c > THERMAL_WATCH_C:
            level = RiskLevel.MODERATE
            messages.append("Poor coupling with elevated surface heating.")

    return RiskAssessment(
        score=level.band_floor, level=level, messages=cap_messages(messages)
    )


# =============================================================================
# Profiles
# =============================================================================


def depth_profile(
    params: ThermalParams,
    tissue: TissueStack,
    step_cm: float = DEPTH_PROFILE_STEP_CM,
) -> tuple[tuple[DepthSample, ...], tuple[TemperatureSample, ...]]:
    """
    Relative intensity and temperature sampled from the surface to the block depth.
    """
    count = int(round(tissue.total_depth / step_cm)) + 1
    depths = np.round(np.arange(count) * step_cm, 10)
    relative = [
        intensity_at_depth(1.0, depth, params.frequency_mhz, tissue) for depth in depths
    ]
    temperatures = [
        _report_temperature(temperature_at_depth(params, tissue, depth)[0])
        for depth in depths
    ]
    return depth_profile_samples(depths, relative), temperature_samples(depths, temperatures)


def thermal_timeline(
    params: ThermalParams,
    tissue: TissueStack | None = None,
    points: int = TIMELINE_POINTS,
) -> tuple[TemperatureSample, ...]:
    """
    Target temperature against elapsed time over the session.

    Returns
    -------
    tuple[TemperatureSample, ...]
        ``points`` samples; ``position`` is the elapsed time in minutes.
    """
    if points < 2:
        raise ValueError(f"points must be >= 2, got {points}")
    if tissue is None:
        tissue = resolve_tissue_stack(params)

    propagated = params.intensity_w_cm2 * params.coupling_efficiency
    _, effective = find_depth_landmarks(propagated, params.frequency_mhz, tissue)

    times = np.linspace(0.0, params.duration_min, points)
    temperatures = [
        _report_temperature(
            temperature_at_depth(params, tissue, effective, duration_min=float(t))[0]
        )
        for t in times
    ]
    return temperature_samples(times, temperatures)


# =============================================================================
# Main Entry Point
# =============================================================================


def simulate_ultrasound_therapy(
    params: ThermalParams,
    tissue: TissueStack | None = None,
    trace: TraceHook | None = None,
) -> ThermalResult:
    """
    Run one therapeutic ultrasound simulation.

    Parameters
    ----------
    params : ThermalParams
        Acoustic parameters (pre-validated by the caller).
    tissue : TissueStack, optional
        Layer stack in centimetres. If None, the stack is resolved from
        ``params.scenario`` / ``params.custom_thicknesses``.
    trace : TraceHook, optional
        Receives "ultrasound.energy", "ultrasound.landmarks",
        "ultrasound.thermal", "ultrasound.bone" and "ultrasound.risk".

    Returns
    -------
    ThermalResult
        Immutable result; temperatures are within [37, 50] C.

    Raises
    ------
    KeyError
        If ``params.scenario`` is unknown and no stack is given.

    Examples
    --------
    >>> result = simulate_ultrasound_therapy(
    ...     ThermalParams(intensity_w_cm2=1.0, era_cm2=5.0, duration_min=5.0)
    ... )
    >>> result.power_w, result.dose_j_cm2
    (5.0, 300.0)
    """
    if tissue is None:
        tissue = resolve_tissue_stack(params)

    duty = params.effective_duty
    time_s = params.duration_min * 60.0
    power_w = params.intensity_w_cm2 * params.era_cm2
    energy_j = power_w * time_s * duty
    dose_j_cm2 = params.intensity_w_cm2 * time_s * duty
    emit(trace, "ultrasound.energy", power_w=power_w, energy_j=energy_j, dose_j_cm2=dose_j_cm2)

    propagated = params.intensity_w_cm2 * params.coupling_efficiency
    penetration, effective = find_depth_landmarks(propagated, params.frequency_mhz, tissue)
    emit(trace, "ultrasound.landmarks", penetration_cm=penetration, effective_cm=effective)

    beam_width, treated_area = beam_geometry(
        params.era_cm2, params.frequency_mhz, effective, params.movement
    )

    surface_temp, surface_dose = temperature_at_depth(
        params, tissue, SURFACE_SAMPLE_DEPTH_CM, surface=True
    )
    target_temp, target_dose = temperature_at_depth(params, tissue, effective)

    max_temp, max_depth, max_dose = surface_temp, SURFACE_SAMPLE_DEPTH_CM, surface_dose
    for depth in _hotspot_depths(penetration):
        temp, dose = temperature_at_depth(params, tissue, depth)
        if temp > max_temp:
            max_temp, max_depth, max_dose = temp, depth, dose
    if target_temp > max_temp:
        max_temp, max_depth, max_dose = target_temp, effective, target_dose

    cumulative = max_dose + surface_dose * CUMULATIVE_SURFACE_DOSE_FRACTION
    emit(
        trace,
        "ultrasound.thermal",
        surface_c=surface_temp,
        target_c=target_temp,
        max_c=max_temp,
        max_depth_cm=max_depth,
        cumulative_cem43=cumulative,
    )

    reflection, periosteal = bone_interaction(params, tissue, max_depth, max_temp)
    emit(trace, "ultrasound.bone", reflection=reflection, periosteal=periosteal)

    risk = assess_thermal_risk(
        params, max_temp, surface_temp, cumulative, periosteal, dose_j_cm2
    )
    emit(trace, "ultrasound.risk", level=risk.level.value, messages=len(risk.messages))

    intensity_profile, temperature_profile = depth_profile(params, tissue)

    return ThermalResult(
        power_w=power_w,
        energy_j=energy_j,
        dose_j_cm2=dose_j_cm2,
        dose_category=classify_dose(dose_j_cm2),
        effective_depth_cm=effective,
        penetration_depth_cm=penetration,
        surface_temp_c=_report_temperature(surface_temp),
        target_temp_c=_report_temperature(target_temp),
        max_temp_c=_report_temperature(max_temp),
        max_temp_depth_cm=max_depth,
        thermal_dose_cem43=max_dose,
        cumulative_dose_cem43=cumulative,
        risk=risk,
        beam_width_cm=beam_width,
        treated_area_cm2=treated_area,
        bone_reflection=reflection,
        periosteal_risk=periosteal,
        intensity_profile=intensity_profile,
        temperature_profile=temperature_profile,
    )
