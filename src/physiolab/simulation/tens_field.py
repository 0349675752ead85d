"""
TENS Field Engine - Electric Field and Neural Activation Estimates

Heuristic layered-tissue model of transcutaneous electrical nerve
stimulation, for teaching. Given the stimulator settings, the electrode
configuration and a normalized tissue stack, it estimates the field at the
skin and at target depth, the activated region, the sensory/motor split,
comfort, risk, and a 2D intensity grid for heatmap rendering.

Model Summary
-------------
Surface current density and field (Ohm's law in point form):

    J = I / A_contact
    E_skin = J / sigma_skin

The field reaching muscle is attenuated by the fat layer and scaled by the
skin/muscle conductivity ratio:

    E_target = E_skin * exp(-2 * fat_fraction) * (sigma_skin / sigma_muscle)

Wider electrode spacing spreads the field laterally and drives activation
deeper; shorter spacing biases activation toward superficial sensory fibres.

Unit Convention
---------------
- Intensity: mA, pulse width: us, frequency: Hz
- Electrode distance/size: cm
- Tissue depths: fractions of the block (0 = surface, 1 = deepest)
- Field: V/cm, activation depth: mm, activation area: cm^2

This is a pedagogical approximation, not a dosimetry tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from physiolab.physics.constants import (
    ACTIVATION_AREA_DISTANCE_GAIN,
    ACTIVATION_DEPTH_DISTANCE_GAIN,
    ACTIVATION_DEPTH_RANGE_MM,
    ACTIVATION_DEPTH_SCALE_MM,
    COMFORT_SHALLOW_BONE_FRACTION,
    COMFORT_THIN_SKIN_FRACTION,
    DISTANCE_BIAS_SPAN_CM,
    DISTANCE_BIAS_WEIGHT,
    ELECTRODE_DISTANCE_RANGE_CM,
    ELECTRODE_SIZE_RANGE_CM,
    FAT_DEPTH_PENALTY_MM,
    FAT_FIELD_ATTENUATION_RATE,
    FIELD_SPREAD_DISTANCE_WEIGHT,
    FIELD_SPREAD_SIZE_WEIGHT,
    HEATMAP_COLUMNS,
    HEATMAP_DEPTH_DECAY,
    HEATMAP_IMPLANT_BAND,
    HEATMAP_IMPLANT_BOOST,
    HEATMAP_NORMALIZATION,
    HEATMAP_ROWS,
    HIGH_CHARGE_PER_PULSE_UC,
    IMPLANT_SPREAD_REDUCTION,
    REFERENCE_ELECTRODE_DISTANCE_CM,
    SHALLOW_BONE_FRACTION,
    SHORT_DISTANCE_CM,
    SMALL_ELECTRODE_CM,
    SMALL_ELECTRODE_INTENSITY_MA,
    STIM_MAX_FREQUENCY_HZ,
    STIM_MAX_INTENSITY_MA,
    STIM_MIN_PULSE_WIDTH_US,
    STIM_PULSE_WIDTH_SPAN_US,
    THIN_SKIN_FRACTION,
)
from physiolab.physics.tissue import TissueStack, TissueType
from physiolab.simulation.risk import (
    RiskAssessment,
    RiskLevel,
    cap_messages,
    clamp,
)
from physiolab.simulation.tracing import TraceHook, emit
from physiolab.visualization.adapters import HeatmapSample, grid_to_heatmap_samples


class StimulationMode(str, Enum):
    """TENS waveform modes."""

    CONVENTIONAL = "conventional"
    ACUPUNCTURE = "acupuncture"
    BURST = "burst"
    MODULATED = "modulated"


class ElectrodeShape(str, Enum):
    CIRCULAR = "circular"
    RECTANGULAR = "rectangular"


class ElectrodePlacement(str, Enum):
    DEFAULT = "default"
    MUSCLE_TARGET = "muscle_target"
    SUPERFICIAL = "superficial"
    SPREAD = "spread"


@dataclass(frozen=True)
class ElectrodeConfig:
    """
    Electrode pair configuration.

    Distance and size are clamped to device-realistic ranges on
    construction (2-12 cm spacing, 2-5 cm contact size).

    Attributes
    ----------
    distance_cm : float
        Centre-to-centre inter-electrode distance.
    size_cm : float
        Square side or circle diameter of each contact.
    shape : ElectrodeShape
        Contact shape.
    placement : ElectrodePlacement
        Placement preset the configuration came from.
    """

    distance_cm: float = 6.0
    size_cm: float = 4.0
    shape: ElectrodeShape = ElectrodeShape.CIRCULAR
    placement: ElectrodePlacement = ElectrodePlacement.DEFAULT

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "distance_cm", clamp(float(self.distance_cm), *ELECTRODE_DISTANCE_RANGE_CM)
        )
        object.__setattr__(
            self, "size_cm", clamp(float(self.size_cm), *ELECTRODE_SIZE_RANGE_CM)
        )
        object.__setattr__(self, "shape", ElectrodeShape(self.shape))
        object.__setattr__(self, "placement", ElectrodePlacement(self.placement))

    @property
    def contact_area_cm2(self) -> float:
        """Contact area of one electrode."""
        if self.shape is ElectrodeShape.RECTANGULAR:
            return self.size_cm**2
        return float(np.pi * (self.size_cm / 2.0) ** 2)


@dataclass(frozen=True)
class FieldParams:
    """Stimulator settings for one TENS simulation."""

    frequency_hz: float = 80.0
    pulse_width_us: float = 200.0
    intensity_ma: float = 20.0
    mode: StimulationMode = StimulationMode.CONVENTIONAL
    electrodes: ElectrodeConfig = field(default_factory=ElectrodeConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", StimulationMode(self.mode))


@dataclass(frozen=True)
class FieldHotspot:
    """Localized field or heating concentration (relative depth/span)."""

    intensity: float
    depth: float
    span: float = 0.0


@dataclass(frozen=True)
class ActivationZone:
    """Ellipse describing the activated region (normalized coordinates)."""

    center_x: float
    center_y: float
    radius_x: float
    radius_y: float
    depth_mm: float


@dataclass(frozen=True)
class FieldResult:
    """
    Output of :func:`simulate_tens_field`.

    Scores (comfort, risk, sensory/motor activation) are in [0, 100].
    """

    e_peak_skin_v_cm: float
    e_peak_target_v_cm: float
    field_spread_cm: float

    activation_depth_mm: float
    activated_area_cm2: float
    sensory_activation: float
    motor_activation: float

    comfort_score: float
    comfort_message: str
    risk: RiskAssessment
    distance_explanation: str

    heatmap: np.ndarray = field(compare=False, repr=False)
    heatmap_samples: tuple[HeatmapSample, ...]
    activation_zone: ActivationZone
    metal_hotspot: FieldHotspot | None = None
    thermal_hotspot: FieldHotspot | None = None

    @property
    def risk_score(self) -> float:
        return self.risk.score

    @property
    def risk_level(self) -> RiskLevel:
        return self.risk.level

    @property
    def risk_messages(self) -> tuple[str, ...]:
        return self.risk.messages


# =============================================================================
# Normalization Helpers
# =============================================================================


def _intensity_norm(params: FieldParams) -> float:
    return params.intensity_ma / STIM_MAX_INTENSITY_MA


def _pulse_norm(params: FieldParams) -> float:
    return (params.pulse_width_us - STIM_MIN_PULSE_WIDTH_US) / STIM_PULSE_WIDTH_SPAN_US


def _frequency_norm(params: FieldParams) -> float:
    return params.frequency_hz / STIM_MAX_FREQUENCY_HZ


def _implant_depth_factor(depth: float) -> float:
    """Hotspots are strongest for implants at mid-depth."""
    return 1.0 - abs(depth - 0.5) * 0.5


# =============================================================================
# Field
# =============================================================================


def compute_electric_field(
    params: FieldParams,
    tissue: TissueStack,
) -> tuple[float, float, float, FieldHotspot | None]:
    """
    Estimate skin and target-depth field, lateral spread and implant hotspot.

    Returns
    -------
    e_skin : float
        Peak field at the skin in V/cm.
    e_target : float
        Peak field in muscle in V/cm.
    spread_cm : float
        Lateral extent of the field.
    metal_hotspot : FieldHotspot or None
        Field concentration caused by metal in the tissue.
    """
    electrodes = params.electrodes
    intensity_norm = _intensity_norm(params)

    skin = tissue.find(TissueType.SKIN) or tissue.layers[0]
    muscle = tissue.find(TissueType.MUSCLE) or tissue.layers[-1]

    current_a = params.intensity_ma / 1000.0
    current_density = current_a / electrodes.contact_area_cm2  # A/cm^2
    e_skin = current_density / skin.conductivity_s_m * 100.0

    fat_attenuation = np.exp(-tissue.fraction_of(TissueType.FAT) * FAT_FIELD_ATTENUATION_RATE)
    e_target = e_skin * fat_attenuation * (skin.conductivity_s_m / muscle.conductivity_s_m)

    metal_hotspot = None
    if tissue.implant is not None:
        implant = tissue.implant
        hotspot = intensity_norm * _implant_depth_factor(implant.depth) * implant.span * 2.5
        e_target *= 1.0 + hotspot * 0.3
        metal_hotspot = FieldHotspot(
            intensity=min(1.0, hotspot), depth=implant.depth, span=implant.span
        )

    if tissue.inclusions:
        inclusion_effect = 1.0
        for inclusion in tissue.inclusions:
            kind = inclusion.inclusion_type
            if kind is TissueType.BONE:
                inclusion_effect /= 1.0 + inclusion.span * 0.4
            elif kind is TissueType.MUSCLE:
                inclusion_effect *= 1.0 + inclusion.span * 0.2
            elif kind is TissueType.FAT:
                inclusion_effect *= 1.0 - inclusion.span * 0.3
            elif kind is TissueType.METAL_IMPLANT:
                hotspot = (
                    intensity_norm
                    * _implant_depth_factor(inclusion.depth)
                    * inclusion.span
                    * 2.5
                )
                inclusion_effect *= 1.0 + hotspot * 0.4
                if metal_hotspot is None:
                    metal_hotspot = FieldHotspot(
                        intensity=min(1.0, hotspot),
                        depth=inclusion.depth,
                        span=inclusion.span,
                    )
                else:
                    metal_hotspot = FieldHotspot(
                        intensity=min(1.0, metal_hotspot.intensity + hotspot * 0.5),
                        depth=metal_hotspot.depth,
                        span=metal_hotspot.span,
                    )
        e_target *= inclusion_effect

    spread = (
        electrodes.distance_cm * FIELD_SPREAD_DISTANCE_WEIGHT
        + electrodes.size_cm * FIELD_SPREAD_SIZE_WEIGHT
    )
    if tissue.implant is not None:
        spread *= 1.0 - tissue.implant.span * IMPLANT_SPREAD_REDUCTION

    return float(e_skin), float(e_target), float(spread), metal_hotspot


# =============================================================================
# Activation
# =============================================================================


def _mode_weights(
    mode: StimulationMode,
    intensity_norm: float,
    pulse_norm: float,
    freq_norm: float,
    distance_cm: float,
) -> tuple[float, float]:
    """Base (sensory, motor) activation for each waveform mode."""
    if mode is StimulationMode.CONVENTIONAL:
        sensory = 60 + freq_norm * 30 - (distance_cm / 12) * 20
        motor = 20 + intensity_norm * 30
    elif mode is StimulationMode.ACUPUNCTURE:
        sensory = 40 + (1 - freq_norm) * 20
        motor = 50 + intensity_norm * 40 + pulse_norm * 20
    elif mode is StimulationMode.BURST:
        sensory = 50 + freq_norm * 20
        motor = 60 + intensity_norm * 30
    else:
        sensory = 55 + freq_norm * 25
        motor = 35 + intensity_norm * 25
    return sensory, motor


def compute_activation(
    params: FieldParams,
    tissue: TissueStack,
) -> tuple[float, float, float, float]:
    """
    Estimate activation depth (mm), area (cm^2) and sensory/motor scores.

    Greater inter-electrode distance produces deeper, wider activation and
    shifts the split from sensory toward motor.
    """
    distance = params.electrodes.distance_cm
    intensity_norm = _intensity_norm(params)
    pulse_norm = _pulse_norm(params)
    freq_norm = _frequency_norm(params)

    distance_offset = distance - REFERENCE_ELECTRODE_DISTANCE_CM

    depth_effect = 1.0 + distance_offset * ACTIVATION_DEPTH_DISTANCE_GAIN
    base_depth = (intensity_norm * 0.6 + pulse_norm * 0.4) * depth_effect
    fat_penalty_mm = tissue.fraction_of(TissueType.FAT) * FAT_DEPTH_PENALTY_MM
    depth_mm = clamp(
        base_depth * ACTIVATION_DEPTH_SCALE_MM - fat_penalty_mm, *ACTIVATION_DEPTH_RANGE_MM
    )

    spread_factor = 1.0 + distance_offset * ACTIVATION_AREA_DISTANCE_GAIN
    area_cm2 = params.electrodes.size_cm**2 * spread_factor * (0.3 + intensity_norm * 0.7)

    sensory, motor = _mode_weights(
        params.mode, intensity_norm, pulse_norm, freq_norm, distance
    )
    distance_bias = distance_offset / DISTANCE_BIAS_SPAN_CM
    sensory = clamp(sensory - distance_bias * DISTANCE_BIAS_WEIGHT, 0.0, 100.0)
    motor = clamp(motor + distance_bias * DISTANCE_BIAS_WEIGHT, 0.0, 100.0)

    return (
        float(depth_mm),
        float(area_cm2),
        float(round(clamp(sensory * intensity_norm, 0.0, 100.0))),
        float(round(clamp(motor * intensity_norm, 0.0, 100.0))),
    )


# =============================================================================
# Comfort and Risk
# =============================================================================


def compute_comfort(params: FieldParams, tissue: TissueStack) -> tuple[float, str]:
    """Comfort score (100 = very comfortable) and a short message."""
    electrodes = params.electrodes
    intensity_norm = _intensity_norm(params)

    discomfort = intensity_norm * 0.5 + _pulse_norm(params) * 0.3
    if electrodes.distance_cm < REFERENCE_ELECTRODE_DISTANCE_CM:
        discomfort += (REFERENCE_ELECTRODE_DISTANCE_CM - electrodes.distance_cm) * 0.1
    if electrodes.size_cm < SMALL_ELECTRODE_CM:
        discomfort += (SMALL_ELECTRODE_CM - electrodes.size_cm) * 0.1
    if tissue.fraction_of(TissueType.SKIN) < COMFORT_THIN_SKIN_FRACTION:
        discomfort += 0.1
    if tissue.bone_depth_fraction < COMFORT_SHALLOW_BONE_FRACTION and intensity_norm > 0.5:
        discomfort += 0.15

    score = float(round(clamp((1.0 - discomfort) * 100.0, 0.0, 100.0)))

    if score >= 70:
        message = "Comfortable stimulation for most patients."
    elif score >= 50:
        message = "Strong sensation. Monitor patient comfort."
    elif score >= 30:
        message = (
            "Potentially uncomfortable. Consider a larger electrode or wider spacing."
        )
    else:
        message = (
            "Parameters too intense. Reduce intensity or increase electrode distance."
        )
    return score, message


def compute_risk(
    params: FieldParams,
    tissue: TissueStack,
) -> tuple[RiskAssessment, FieldHotspot | None]:
    """
    Accumulate a 0-100 risk score with messages in priority order.

    Contributions, in message priority order: metal implant (scaled by
    intensity), short distance at high intensity, small contact at high
    intensity, high charge per pulse, shallow bone, thin skin.
    """
    electrodes = params.electrodes
    intensity_norm = _intensity_norm(params)
    pulse_norm = _pulse_norm(params)

    score = 0.0
    messages: list[str] = []
    thermal_hotspot: FieldHotspot | None = None

    if tissue.implant is not None:
        implant = tissue.implant
        implant_risk = 30 * intensity_norm
        depth_pct = round(implant.depth * 100)
        if implant.depth < 0.4:
            implant_risk += 20 * intensity_norm
            messages.append(
                f"Superficial metal implant ({depth_pct}% depth): "
                "high risk of skin heating."
            )
        elif implant.depth > 0.6:
            implant_risk += 15 * intensity_norm
            messages.append(
                f"Deep metal implant ({depth_pct}% depth): possible deep tissue heating."
            )
        else:
            messages.append("Metal implant at intermediate depth: monitor local heating.")
        implant_risk *= 1.0 + implant.span * 0.5
        score += implant_risk

        heating = intensity_norm * pulse_norm * implant.span * (1 + (1 - implant.depth) * 0.5)
        if heating > 0.3:
            thermal_hotspot = FieldHotspot(intensity=min(1.0, heating), depth=implant.depth)

    for inclusion in tissue.metal_inclusions():
        score += 25 * intensity_norm * inclusion.span
        heating = (
            intensity_norm * pulse_norm * inclusion.span * (1 + (1 - inclusion.depth) * 0.5)
        )
        if heating > 0.3 and (thermal_hotspot is None or heating > thermal_hotspot.intensity):
            thermal_hotspot = FieldHotspot(intensity=min(1.0, heating), depth=inclusion.depth)

    if electrodes.distance_cm < SHORT_DISTANCE_CM and intensity_norm > 0.6:
        score += 20
        messages.append(
            "Electrodes too close: excessive current concentration at the skin."
        )

    if electrodes.size_cm < SMALL_ELECTRODE_CM and params.intensity_ma > SMALL_ELECTRODE_INTENSITY_MA:
        score += 15
        messages.append(
            "Small electrode at high intensity: use a larger electrode."
        )

    charge_per_pulse_uc = params.intensity_ma * params.pulse_width_us / 1000.0
    if charge_per_pulse_uc > HIGH_CHARGE_PER_PULSE_UC:
        score += 20
        messages.append("High charge per pulse. Monitor skin irritation.")

    if tissue.bone_depth_fraction < SHALLOW_BONE_FRACTION and intensity_norm > 0.6:
        score += 15
        messages.append("Superficial bone: risk of periosteal discomfort.")

    if tissue.fraction_of(TissueType.SKIN) < THIN_SKIN_FRACTION and intensity_norm > 0.5:
        score += 10
        messages.append(
            "Thin skin: higher risk of irritation. Use adequate conductive gel."
        )

    score = clamp(score, 0.0, 100.0)
    level = RiskLevel.from_score(score)
    if level is RiskLevel.LOW and not messages:
        messages.append("Safe configuration within recommended parameters.")

    assessment = RiskAssessment(
        score=float(round(score)), level=level, messages=cap_messages(messages)
    )
    return assessment, thermal_hotspot


def explain_distance(electrodes: ElectrodeConfig, depth_mm: float, area_cm2: float) -> str:
    """Teaching note on how the electrode spacing shapes the field."""
    d = electrodes.distance_cm
    if d < REFERENCE_ELECTRODE_DISTANCE_CM:
        return (
            f"Short distance ({d:g} cm): concentrated, superficial field. "
            f"Mostly cutaneous sensory activation over a small region "
            f"({area_cm2:.1f} cm^2). Suited to localized analgesia."
        )
    if d < 8:
        return (
            f"Medium distance ({d:g} cm): field balanced between surface and depth. "
            f"Mixed sensory/motor activation, depth ~{depth_mm:.0f} mm."
        )
    return (
        f"Long distance ({d:g} cm): wider, deeper field. Larger activated area "
        f"({area_cm2:.1f} cm^2), may reach deeper motor fibres."
    )


# =============================================================================
# Heatmap
# =============================================================================


def compute_heatmap(
    params: FieldParams,
    tissue: TissueStack,
    e_skin: float,
    rows: int = HEATMAP_ROWS,
    columns: int = HEATMAP_COLUMNS,
) -> np.ndarray:
    """
    Evaluate the depth/lateral decay of the field on a fixed grid.

    Returns
    -------
    np.ndarray
        Grid of shape (rows, columns) in [0, 1]; row 0 is the surface,
        column coordinates span the lateral extent with the centre at 0.5.
    """
    intensity_norm = _intensity_norm(params)
    distance = params.electrodes.distance_cm

    py = np.linspace(0.0, 1.0, rows)[:, np.newaxis]
    px = np.linspace(0.0, 1.0, columns)[np.newaxis, :]
    dx = np.abs(px - 0.5)

    depth_decay = np.exp(-py * HEATMAP_DEPTH_DECAY)
    lateral_decay = np.exp(-dx * (10.0 / distance))
    grid = e_skin * depth_decay * lateral_decay * intensity_norm / HEATMAP_NORMALIZATION
    grid = np.clip(grid, 0.0, 1.0)

    if tissue.implant is not None and tissue.implant.depth:
        band = np.abs(py - tissue.implant.depth) < HEATMAP_IMPLANT_BAND
        grid = np.where(band, np.clip(grid * HEATMAP_IMPLANT_BOOST, 0.0, 1.0), grid)

    grid.flags.writeable = False
    return grid


# =============================================================================
# Main Entry Point
# =============================================================================


def simulate_tens_field(
    params: FieldParams,
    tissue: TissueStack,
    trace: TraceHook | None = None,
) -> FieldResult:
    """
    Run one electrical stimulation simulation.

    Inputs are expected to be pre-validated by the caller; out-of-range
    values do not raise, bounded outputs are clamped instead.

    Parameters
    ----------
    params : FieldParams
        Stimulator and electrode settings.
    tissue : TissueStack
        Normalized tissue stack (see physics.tissue.stimulation_stack).
    trace : TraceHook, optional
        Receives "tens.field", "tens.activation" and "tens.risk" events.

    Returns
    -------
    FieldResult
        Immutable result.

    Examples
    --------
    >>> from physiolab.physics.tissue import get_anatomical_preset
    >>> result = simulate_tens_field(FieldParams(), get_anatomical_preset("forearm_slim"))
    >>> 0 <= result.comfort_score <= 100
    True
    """
    e_skin, e_target, spread, metal_hotspot = compute_electric_field(params, tissue)
    emit(trace, "tens.field", e_skin=e_skin, e_target=e_target, spread_cm=spread)

    depth_mm, area_cm2, sensory, motor = compute_activation(params, tissue)
    emit(
        trace,
        "tens.activation",
        depth_mm=depth_mm,
        area_cm2=area_cm2,
        sensory=sensory,
        motor=motor,
    )

    comfort_score, comfort_message = compute_comfort(params, tissue)
    risk, thermal_hotspot = compute_risk(params, tissue)
    emit(trace, "tens.risk", score=risk.score, level=risk.level.value)

    heatmap = compute_heatmap(params, tissue, e_skin)

    zone = ActivationZone(
        center_x=0.5,
        center_y=depth_mm / 100.0,
        radius_x=float(np.sqrt(area_cm2)) / 20.0,
        radius_y=depth_mm / 200.0,
        depth_mm=depth_mm,
    )

    return FieldResult(
        e_peak_skin_v_cm=e_skin,
        e_peak_target_v_cm=e_target,
        field_spread_cm=spread,
        activation_depth_mm=depth_mm,
        activated_area_cm2=area_cm2,
        sensory_activation=sensory,
        motor_activation=motor,
        comfort_score=comfort_score,
        comfort_message=comfort_message,
        risk=risk,
        distance_explanation=explain_distance(params.electrodes, depth_mm, area_cm2),
        heatmap=heatmap,
        heatmap_samples=grid_to_heatmap_samples(heatmap),
        activation_zone=zone,
        metal_hotspot=metal_hotspot,
        thermal_hotspot=thermal_hotspot,
    )
