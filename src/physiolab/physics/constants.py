"""
Physical Constants and Calibration Tunables for PhysioLab Simulations

All constants include units in their names. Values tagged as "calibration"
are heuristic choices of the teaching models, not derived quantities: they
are declared here once so that every engine reads the same number.
"""

from __future__ import annotations

# =============================================================================
# Tissue Properties
# =============================================================================

# Relative electrical conductivity (S/m, simplified low-frequency values)
SKIN_CONDUCTIVITY_S_M: float = 0.1
FAT_CONDUCTIVITY_S_M: float = 0.04
MUSCLE_CONDUCTIVITY_S_M: float = 0.4
BONE_CONDUCTIVITY_S_M: float = 0.02
METAL_CONDUCTIVITY_S_M: float = 40.0  # ~100x muscle

# Acoustic attenuation (dB/cm/MHz)
SKIN_ATTENUATION_DB_CM_MHZ: float = 0.5
FAT_ATTENUATION_DB_CM_MHZ: float = 0.3
MUSCLE_ATTENUATION_DB_CM_MHZ: float = 0.7
BONE_ATTENUATION_DB_CM_MHZ: float = 2.0

# Relative heat capacity factors (dimensionless, muscle = 1.0)
SKIN_HEAT_CAPACITY_FACTOR: float = 0.8
FAT_HEAT_CAPACITY_FACTOR: float = 0.6
MUSCLE_HEAT_CAPACITY_FACTOR: float = 1.0
BONE_HEAT_CAPACITY_FACTOR: float = 0.5

# Relative perfusion (heat dissipation) factors
SKIN_PERFUSION_FACTOR: float = 1.0
FAT_PERFUSION_FACTOR: float = 0.3  # Retains heat
MUSCLE_PERFUSION_FACTOR: float = 1.5  # Dissipates heat
BONE_PERFUSION_FACTOR: float = 0.2

# Thinnest layer kept by the stack builder (same unit as the stack)
MIN_LAYER_THICKNESS: float = 0.01

# Block depths used by the stacked-layer builder
STIMULATION_BLOCK_DEPTH: float = 1.0  # Normalized (0 = surface, 1 = deepest)
ACOUSTIC_BLOCK_DEPTH_CM: float = 6.0

# =============================================================================
# Electrical Stimulation (TENS) Device Ranges
# =============================================================================

ELECTRODE_DISTANCE_RANGE_CM: tuple[float, float] = (2.0, 12.0)
ELECTRODE_SIZE_RANGE_CM: tuple[float, float] = (2.0, 5.0)
STIM_FREQUENCY_RANGE_HZ: tuple[float, float] = (1.0, 200.0)
STIM_PULSE_WIDTH_RANGE_US: tuple[float, float] = (50.0, 400.0)
STIM_INTENSITY_RANGE_MA: tuple[float, float] = (0.0, 80.0)

# Calibration: reference values the field model is normalized against
STIM_MAX_INTENSITY_MA: float = 80.0
STIM_MIN_PULSE_WIDTH_US: float = 50.0
STIM_PULSE_WIDTH_SPAN_US: float = 350.0
STIM_MAX_FREQUENCY_HZ: float = 200.0
REFERENCE_ELECTRODE_DISTANCE_CM: float = 4.0

# Calibration: field attenuation and spread
FAT_FIELD_ATTENUATION_RATE: float = 2.0  # exp(-rate * fat_fraction)
FIELD_SPREAD_DISTANCE_WEIGHT: float = 0.7
FIELD_SPREAD_SIZE_WEIGHT: float = 0.3
IMPLANT_SPREAD_REDUCTION: float = 0.2

# Calibration: activation estimate
ACTIVATION_DEPTH_DISTANCE_GAIN: float = 0.15
ACTIVATION_AREA_DISTANCE_GAIN: float = 0.2
ACTIVATION_DEPTH_SCALE_MM: float = 30.0
ACTIVATION_DEPTH_RANGE_MM: tuple[float, float] = (2.0, 50.0)
FAT_DEPTH_PENALTY_MM: float = 5.0  # Per unit fat fraction
DISTANCE_BIAS_SPAN_CM: float = 8.0
DISTANCE_BIAS_WEIGHT: float = 15.0

# Risk thresholds (stimulation)
SHORT_DISTANCE_CM: float = 3.0
SMALL_ELECTRODE_CM: float = 3.0
SMALL_ELECTRODE_INTENSITY_MA: float = 40.0
HIGH_CHARGE_PER_PULSE_UC: float = 25.0
SHALLOW_BONE_FRACTION: float = 0.35
THIN_SKIN_FRACTION: float = 0.12

# Comfort thresholds (stimulation)
COMFORT_THIN_SKIN_FRACTION: float = 0.15
COMFORT_SHALLOW_BONE_FRACTION: float = 0.4

# Heatmap grid (lateral columns x depth rows)
HEATMAP_COLUMNS: int = 20
HEATMAP_ROWS: int = 15
HEATMAP_DEPTH_DECAY: float = 3.0
HEATMAP_NORMALIZATION: float = 10.0
HEATMAP_IMPLANT_BAND: float = 0.1
HEATMAP_IMPLANT_BOOST: float = 1.5

# Risk score bands shared by the engines
RISK_MODERATE_SCORE: float = 25.0
RISK_HIGH_SCORE: float = 60.0
MAX_RISK_MESSAGES: int = 3

# =============================================================================
# Therapeutic Ultrasound
# =============================================================================

BODY_TEMPERATURE_C: float = 37.0
WATER_DENSITY_KG_M3: float = 1000.0
WATER_SPECIFIC_HEAT_J_KG_K: float = 4180.0

COUPLING_EFFICIENCY: dict[str, float] = {"good": 0.95, "poor": 0.7}

# Device ranges
ULTRASOUND_FREQUENCY_RANGE_MHZ: tuple[float, float] = (1.0, 3.0)
ULTRASOUND_ERA_RANGE_CM2: tuple[float, float] = (3.0, 10.0)
ULTRASOUND_INTENSITY_RANGE_W_CM2: tuple[float, float] = (0.1, 3.0)
ULTRASOUND_DURATION_RANGE_MIN: tuple[float, float] = (1.0, 30.0)
ULTRASOUND_DUTY_CYCLE_RANGE_PCT: tuple[float, float] = (10.0, 100.0)

# Custom stack thickness ranges (cm)
CUSTOM_SKIN_RANGE_CM: tuple[float, float] = (0.1, 0.5)
CUSTOM_FAT_RANGE_CM: tuple[float, float] = (0.1, 2.0)
CUSTOM_MUSCLE_RANGE_CM: tuple[float, float] = (0.5, 5.0)
CUSTOM_BONE_RANGE_CM: tuple[float, float] = (0.0, 3.0)

# Sampling of the depth profiles and the thermal timeline
DEPTH_PROFILE_STEP_CM: float = 0.1
TIMELINE_POINTS: int = 21

# Calibration: frequency factor of attenuation, 0.75 at 1 MHz, 3.15 at 3 MHz
ATTENUATION_FREQUENCY_OFFSET: float = 0.5
ATTENUATION_FREQUENCY_SLOPE: float = 0.8
ATTENUATION_GAIN: float = 1.5

# Depth landmarks
DEPTH_SCAN_STEP_CM: float = 0.1
DEPTH_SCAN_LIMIT_CM: float = 10.0
PENETRATION_FRACTION: float = 0.1
EFFECTIVE_FRACTION: float = 0.5
HOTSPOT_SCAN_START_CM: float = 0.1
HOTSPOT_SCAN_STEP_CM: float = 0.2
HOTSPOT_SCAN_LIMIT_CM: float = 5.0
SURFACE_SAMPLE_DEPTH_CM: float = 0.05

# Calibration: beam geometry
NEAR_FIELD_DIVISOR: float = 1.2
NEAR_FIELD_NARROWING_PER_MHZ: float = 0.1
DIVERGENCE_NUMERATOR: float = 1.22
DIVERGENCE_FREQUENCY_GAIN: float = 1.2
SCANNING_AREA_FACTOR: float = 2.5

# Calibration: thermal model (successive tuning passes, kept as found)
ABSORPTION_FRACTION: float = 0.15
PERFUSION_RATE_SCALE: float = 0.0008
PERFUSION_EPSILON: float = 0.001
SCANNING_HEATING_FACTOR: float = 0.4
POOR_COUPLING_SURFACE_FACTOR: float = 1.4
POOR_COUPLING_DEPTH_FACTOR: float = 0.85
THERMAL_TAU_BASE_S: float = 180.0
THERMAL_TAU_PER_HEAT_CAPACITY_S: float = 40.0
INTENSITY_FACTOR_GAIN: float = 0.8
INTENSITY_FACTOR_MAX: float = 2.0
DURATION_FACTOR_BASE: float = 0.3
DURATION_FACTOR_PER_10_MIN: float = 0.4
DURATION_FACTOR_MAX: float = 1.5

# Temperature clamps
TISSUE_TEMPERATURE_RANGE_C: tuple[float, float] = (37.0, 48.0)
REPORTED_TEMPERATURE_RANGE_C: tuple[float, float] = (37.0, 50.0)

# CEM43 thermal dose
CEM43_REFERENCE_C: float = 43.0
CEM43_R_ABOVE: float = 0.5
CEM43_R_BELOW: float = 0.25
CUMULATIVE_SURFACE_DOSE_FRACTION: float = 0.3

# Bone interaction
BONE_REACH_FRACTION: float = 0.1
BONE_REFLECTION_BASE: float = 0.3
BONE_REFLECTION_GAIN: float = 0.2
MIXED_LAYER_REFLECTION_MULTIPLIER: float = 1.3
PERIOSTEAL_PROXIMITY_CM: float = 0.5
PERIOSTEAL_HOT_C: float = 42.0
PERIOSTEAL_HOT_BONUS: float = 0.3
PERIOSTEAL_MIXED_LAYER_BONUS: float = 0.2

# Thermal risk thresholds
THERMAL_WATCH_C: float = 42.0
THERMAL_ELEVATED_C: float = 43.0
THERMAL_HIGH_C: float = 45.0
THERMAL_BURN_C: float = 48.0
DOSE_MODERATE_CEM43: float = 60.0
DOSE_HIGH_CEM43: float = 120.0
DOSE_WATCH_CEM43: float = 30.0
DOSE_NEGLIGIBLE_CEM43: float = 5.0
LONG_SESSION_MIN: float = 15.0
PERIOSTEAL_MODERATE: float = 0.3
PERIOSTEAL_HIGH: float = 0.5
PERIOSTEAL_VERY_HIGH: float = 0.7

# Contextual escalators
HIGH_DOSE_J_CM2: float = 20.0
MODERATE_DOSE_J_CM2: float = 5.0
PROLONGED_SESSION_MIN: float = 10.0
HIGH_STATIONARY_INTENSITY_W_CM2: float = 2.0

# =============================================================================
# MRI
# =============================================================================

# Phantom resolution (voxels)
PHANTOM_WIDTH: int = 128
PHANTOM_HEIGHT: int = 128
PHANTOM_DEPTH: int = 64

# Brain phantom geometry, as fractions of the maximum radius
BRAIN_RADIUS_FRACTION: float = 0.45
BRAIN_CSF_RADIUS: float = 0.18
BRAIN_DEEP_RADIUS: float = 0.55
BRAIN_CORTEX_RADIUS: float = 0.42
BRAIN_FOLD_AMPLITUDE: float = 0.08
BRAIN_FOLD_LOBES: int = 4
BRAIN_SKULL_RADIUS: float = 0.95

# Knee phantom bands, as fractions of the height
KNEE_BONE_BAND: float = 0.35
KNEE_FLUID_BAND: float = 0.15

# Abdomen phantom subcutaneous fat band, as a fraction of the height
ABDOMEN_FAT_BAND: float = 0.2

# Advisory thresholds
MIN_T1_CONTRAST_TR_MS: float = 300.0
MAX_SIGNAL_TE_MS: float = 150.0
MAX_FLIP_ANGLE_DEG: float = 90.0

SIGNAL_EPSILON: float = 1e-6

# Acquisition ranges
MRI_TR_RANGE_MS: tuple[float, float] = (100.0, 5000.0)
MRI_TE_RANGE_MS: tuple[float, float] = (10.0, 200.0)
MRI_FLIP_ANGLE_RANGE_DEG: tuple[float, float] = (10.0, 180.0)
