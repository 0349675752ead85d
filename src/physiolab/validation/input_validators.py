"""
Input Validators for PhysioLab

Provides caller-side validation for:
- Electrical stimulation, ultrasound and MRI parameters (clamping to
  device-realistic ranges)
- YAML configuration file parsing

The engines assume validated input. These validators clamp out-of-range
values instead of failing, so students receive helpful feedback rather than
cryptic errors; only inconsistent parameters are reported as errors.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml

from physiolab.physics.constants import (
    CUSTOM_BONE_RANGE_CM,
    CUSTOM_FAT_RANGE_CM,
    CUSTOM_MUSCLE_RANGE_CM,
    CUSTOM_SKIN_RANGE_CM,
    ELECTRODE_DISTANCE_RANGE_CM,
    ELECTRODE_SIZE_RANGE_CM,
    MRI_FLIP_ANGLE_RANGE_DEG,
    MRI_TE_RANGE_MS,
    MRI_TR_RANGE_MS,
    STIM_FREQUENCY_RANGE_HZ,
    STIM_INTENSITY_RANGE_MA,
    STIM_PULSE_WIDTH_RANGE_US,
    ULTRASOUND_DURATION_RANGE_MIN,
    ULTRASOUND_DUTY_CYCLE_RANGE_PCT,
    ULTRASOUND_ERA_RANGE_CM2,
    ULTRASOUND_FREQUENCY_RANGE_MHZ,
    ULTRASOUND_INTENSITY_RANGE_W_CM2,
)
from physiolab.physics.tissue import ACOUSTIC_SCENARIOS
from physiolab.simulation.mri import MRIParams
from physiolab.simulation.tens_field import FieldParams
from physiolab.simulation.ultrasound_therapy import ThermalParams

LabParams = Union[FieldParams, ThermalParams, MRIParams]
Ranges = dict[str, Any]


# =============================================================================
# Validation Result Types
# =============================================================================


@dataclass
class ParameterValidationResult:
    """Result of laboratory parameter validation.

    Attributes
    ----------
    is_valid : bool
        True if the parameters can be simulated.
    params : FieldParams, ThermalParams or MRIParams
        Parameters with every out-of-range value clamped.
    adjustments : list[str]
        One entry per clamped value ("field: old -> new").
    warnings : list[str]
        Non-fatal warnings (e.g., clamped values, ignored settings).
    errors : list[str]
        Fatal errors (e.g., unknown scenario, non-finite values).
    recovery_suggestions : list[str]
        Actionable suggestions for fixing issues.
    """

    is_valid: bool
    params: Any
    adjustments: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    recovery_suggestions: list[str] = field(default_factory=list)


@dataclass
class ConfigValidationResult:
    """Result of YAML configuration file validation.

    Attributes
    ----------
    is_valid : bool
        True if config loaded and validated successfully.
    config : dict | None
        Loaded configuration (None if load failed).
    file_path : Path | None
        Path to the config file (None if using defaults).
    warnings : list[str]
        Non-fatal warnings (e.g., missing optional fields).
    errors : list[str]
        Fatal errors (e.g., parse failures).
    recovery_suggestions : list[str]
        Actionable suggestions for fixing issues.
    """

    is_valid: bool
    config: dict[str, Any] | None
    file_path: Path | None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    recovery_suggestions: list[str] = field(default_factory=list)


# =============================================================================
# Clamping Helpers
# =============================================================================


class _Checker:
    """Accumulates adjustments, warnings and errors for one validation."""

    def __init__(self, ranges: Ranges | None) -> None:
        self.ranges = ranges or {}
        self.adjustments: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.suggestions: list[str] = []

    def bounds(self, name: str, default: tuple[float, float]) -> tuple[float, float]:
        override = self.ranges.get(name)
        if override is None:
            return default
        return float(override[0]), float(override[1])

    def clamp(self, name: str, value: float, default: tuple[float, float]) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = math.nan
        if not math.isfinite(number):
            self.errors.append(f"INVALID VALUE: {name}={value!r} is not a finite number.")
            self.suggestions.append(f"Set {name} to a number.")
            return math.nan
        lower, upper = self.bounds(name, default)
        clamped = min(max(number, lower), upper)
        if clamped != number:
            self.adjustments.append(f"{name}: {value} -> {clamped}")
            self.warnings.append(
                f"RANGE WARNING: {name}={value} is outside [{lower}, {upper}]. "
                f"Clamped to {clamped}."
            )
        return clamped

    def result(self, params: Any) -> ParameterValidationResult:
        return ParameterValidationResult(
            is_valid=len(self.errors) == 0,
            params=params,
            adjustments=self.adjustments,
            warnings=self.warnings,
            errors=self.errors,
            recovery_suggestions=self.suggestions,
        )


# =============================================================================
# Parameter Validation
# =============================================================================


def validate_field_params(
    params: FieldParams,
    ranges: Ranges | None = None,
) -> ParameterValidationResult:
    """
    Clamp electrical stimulation settings to the stimulator's ranges.

    Parameters
    ----------
    params : FieldParams
        Stimulator settings.
    ranges : dict, optional
        Overrides of the default ranges, keyed by field name
        (e.g. ``config["tens"]["ranges"]``).

    Returns
    -------
    ParameterValidationResult

    Examples
    --------
    >>> result = validate_field_params(FieldParams(intensity_ma=120))
    >>> result.params.intensity_ma
    80.0
    """
    check = _Checker(ranges)

    frequency = check.clamp("frequency_hz", params.frequency_hz, STIM_FREQUENCY_RANGE_HZ)
    pulse_width = check.clamp("pulse_width_us", params.pulse_width_us, STIM_PULSE_WIDTH_RANGE_US)
    intensity = check.clamp("intensity_ma", params.intensity_ma, STIM_INTENSITY_RANGE_MA)

    # ElectrodeConfig clamps to the device ranges itself
    electrodes = params.electrodes
    distance = check.clamp(
        "distance_cm", electrodes.distance_cm, ELECTRODE_DISTANCE_RANGE_CM
    )
    size = check.clamp("size_cm", electrodes.size_cm, ELECTRODE_SIZE_RANGE_CM)

    if intensity == 0:
        check.warnings.append("ZERO INTENSITY: the stimulator delivers no current.")
        check.suggestions.append("Raise intensity_ma to see a field.")

    if check.errors:
        return check.result(params)

    validated = dataclasses.replace(
        params,
        frequency_hz=frequency,
        pulse_width_us=pulse_width,
        intensity_ma=intensity,
        electrodes=dataclasses.replace(electrodes, distance_cm=distance, size_cm=size),
    )
    return check.result(validated)


def validate_thermal_params(
    params: ThermalParams,
    ranges: Ranges | None = None,
    thickness_ranges: Ranges | None = None,
) -> ParameterValidationResult:
    """
    Clamp therapeutic ultrasound settings and check the scenario.

    Parameters
    ----------
    params : ThermalParams
        Acoustic settings.
    ranges : dict, optional
        Overrides of the device ranges (``config["ultrasound"]["ranges"]``).
    thickness_ranges : dict, optional
        Overrides of the custom layer ranges
        (``config["ultrasound"]["custom_thickness_ranges"]``).

    Returns
    -------
    ParameterValidationResult
        Unknown scenarios are reported as errors.
    """
    check = _Checker(ranges)

    scenario = params.scenario.lower().replace(" ", "_").replace("-", "_")
    if scenario not in ACOUSTIC_SCENARIOS:
        check.errors.append(f"UNKNOWN SCENARIO: '{params.scenario}' is not an acoustic scenario.")
        check.suggestions.append(
            f"Use one of: {', '.join(ACOUSTIC_SCENARIOS)}."
        )

    frequency = check.clamp("frequency_mhz", params.frequency_mhz, ULTRASOUND_FREQUENCY_RANGE_MHZ)
    intensity = check.clamp(
        "intensity_w_cm2", params.intensity_w_cm2, ULTRASOUND_INTENSITY_RANGE_W_CM2
    )
    era = check.clamp("era_cm2", params.era_cm2, ULTRASOUND_ERA_RANGE_CM2)
    duration = check.clamp("duration_min", params.duration_min, ULTRASOUND_DURATION_RANGE_MIN)
    duty = check.clamp("duty_cycle_pct", params.duty_cycle_pct, ULTRASOUND_DUTY_CYCLE_RANGE_PCT)
    transducer_x = check.clamp("transducer_x", params.transducer_x, (-1.0, 1.0))

    custom = params.custom_thicknesses
    if custom is not None:
        layers = _Checker(thickness_ranges)
        skin = layers.clamp("skin", custom.skin, CUSTOM_SKIN_RANGE_CM)
        fat = layers.clamp("fat", custom.fat, CUSTOM_FAT_RANGE_CM)
        muscle = layers.clamp("muscle", custom.muscle, CUSTOM_MUSCLE_RANGE_CM)
        bone = custom.bone_thickness
        if bone is not None:
            bone = layers.clamp("bone_thickness", bone, CUSTOM_BONE_RANGE_CM)
        check.adjustments.extend(layers.adjustments)
        check.warnings.extend(layers.warnings)
        check.errors.extend(layers.errors)
        check.suggestions.extend(layers.suggestions)
        custom = dataclasses.replace(
            custom, skin=skin, fat=fat, muscle=muscle, bone_thickness=bone
        )
        if scenario != "custom":
            check.warnings.append(
                f"IGNORED: custom_thicknesses only apply to the 'custom' scenario, "
                f"not '{params.scenario}'."
            )
    elif scenario == "custom":
        check.warnings.append(
            "NO CUSTOM THICKNESSES: the 'custom' scenario uses its default layers."
        )

    mixed = params.mixed_layer
    if mixed is not None:
        division = check.clamp("mixed_layer.division_pct", mixed.division_pct, (0.0, 100.0))
        depth = check.clamp("mixed_layer.depth_cm", mixed.depth_cm, (0.0, 6.0))
        mixed = dataclasses.replace(mixed, division_pct=division, depth_cm=depth)

    if params.movement.value == "stationary" and intensity > 1.5:
        check.warnings.append(
            "STATIONARY TRANSDUCER at high intensity concentrates energy in one spot."
        )
        check.suggestions.append("Keep the transducer moving or lower the intensity.")

    if check.errors:
        return check.result(params)

    validated = dataclasses.replace(
        params,
        frequency_mhz=frequency,
        intensity_w_cm2=intensity,
        era_cm2=era,
        duration_min=duration,
        duty_cycle_pct=duty,
        transducer_x=transducer_x,
        scenario=scenario,
        custom_thicknesses=custom,
        mixed_layer=mixed,
    )
    return check.result(validated)


def validate_mri_params(
    params: MRIParams,
    ranges: Ranges | None = None,
) -> ParameterValidationResult:
    """
    Clamp MRI acquisition settings and check their consistency.

    An echo time that is not shorter than the repetition time, or a
    non-positive display window, is an error.
    """
    check = _Checker(ranges)

    tr = check.clamp("tr_ms", params.tr_ms, MRI_TR_RANGE_MS)
    te = check.clamp("te_ms", params.te_ms, MRI_TE_RANGE_MS)
    flip = check.clamp("flip_angle_deg", params.flip_angle_deg, MRI_FLIP_ANGLE_RANGE_DEG)

    if not check.errors and te >= tr:
        check.errors.append(f"INCONSISTENT TIMING: TE={te} ms must be shorter than TR={tr} ms.")
        check.suggestions.append("Lower te_ms or raise tr_ms.")

    if params.window is not None and params.window <= 0:
        check.errors.append(f"INVALID WINDOW: window={params.window} must be positive.")
        check.suggestions.append("Use a positive window width or leave it unset for auto.")

    if params.slice_index is not None and params.slice_index < 0:
        check.warnings.append(
            f"SLICE INDEX {params.slice_index} is negative; the first slice is shown."
        )

    if check.errors:
        return check.result(params)

    return check.result(
        dataclasses.replace(params, tr_ms=tr, te_ms=te, flip_angle_deg=flip)
    )


def validate_params(
    params: LabParams,
    config: dict[str, Any] | None = None,
) -> ParameterValidationResult:
    """
    Validate parameters of any laboratory, with ranges taken from a config.

    Parameters
    ----------
    params : FieldParams, ThermalParams or MRIParams
        Parameters to validate.
    config : dict, optional
        Loaded configuration (see physiolab.config.load_config). Missing
        sections fall back to the built-in ranges.

    Raises
    ------
    TypeError
        If ``params`` is not a laboratory parameter object.
    """
    config = config or {}

    if isinstance(params, FieldParams):
        return validate_field_params(params, config.get("tens", {}).get("ranges"))
    if isinstance(params, ThermalParams):
        section = config.get("ultrasound", {})
        return validate_thermal_params(
            params, section.get("ranges"), section.get("custom_thickness_ranges")
        )
    if isinstance(params, MRIParams):
        return validate_mri_params(params, config.get("mri", {}).get("ranges"))
    raise TypeError(f"Cannot validate {type(params).__name__}")


# =============================================================================
# Configuration File Validation
# =============================================================================

# Required sections in config
REQUIRED_CONFIG_SECTIONS = ["tens", "ultrasound", "mri", "logging"]

# Type specifications for validation, keyed by dotted section path
CONFIG_TYPE_SPECS = {
    "tens.electrodes": {
        "distance_cm": (float, 2.0, 12.0),
        "size_cm": (float, 2.0, 5.0),
    },
    "ultrasound": {
        "block_depth_cm": (float, 1.0, 20.0),
    },
    "mri.phantom": {
        "width": (int, 1, 1024),
        "height": (int, 1, 1024),
        "depth": (int, 1, 1024),
    },
}

# Sections holding [min, max] range pairs
RANGE_SECTIONS = [
    "tens.ranges",
    "ultrasound.ranges",
    "ultrasound.custom_thickness_ranges",
    "mri.ranges",
]

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _section(config: dict[str, Any], path: str) -> dict[str, Any] | None:
    node: Any = config
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node if isinstance(node, dict) else None


def validate_config_file(
    config_path: Path | str | None = None,
    strict: bool = False,
) -> ConfigValidationResult:
    """
    Load and validate YAML configuration file.

    Provides graceful error handling with helpful messages for:
    - Missing files (falls back to defaults)
    - Malformed YAML (syntax errors)
    - Invalid parameter values (type/range checks, malformed ranges)

    Parameters
    ----------
    config_path : Path or str, optional
        Path to YAML config file. If None, uses default_labs.yaml.
    strict : bool
        If True, treat warnings as errors. Default False.

    Returns
    -------
    ConfigValidationResult
        Validation result with loaded config and any issues found.

    Examples
    --------
    >>> result = validate_config_file("configs/default_labs.yaml")
    >>> result.is_valid
    True
    >>> result.config["mri"]["phantom"]["width"]
    128

    >>> result = validate_config_file("nonexistent.yaml")
    >>> result.is_valid
    True  # Falls back to defaults
    >>> len(result.warnings) > 0
    True
    """
    from physiolab.config import DEFAULT_CONFIG_PATH, get_default_config

    warnings = []
    errors = []
    suggestions = []

    # Determine file path
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    else:
        config_path = Path(config_path)

    # Attempt to load file
    config = None
    file_exists = config_path.exists()

    if not file_exists:
        warnings.append(
            f"CONFIG FILE NOT FOUND: '{config_path}' does not exist. "
            "Using built-in defaults."
        )
        suggestions.append(
            f"Create config file at '{config_path}' or use load_config() without path."
        )
        config = get_default_config()
    else:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
            # Handle empty YAML file (returns None)
            if config is None:
                warnings.append(
                    f"CONFIG FILE EMPTY: '{config_path}' contains no data. "
                    "Using built-in defaults."
                )
                config = get_default_config()
            elif not isinstance(config, dict):
                errors.append(
                    f"CONFIG NOT A MAPPING: '{config_path}' must contain sections "
                    "at the top level."
                )
                suggestions.append("Start the file with 'tens:', 'ultrasound:', 'mri:'.")
                config = get_default_config()
        except yaml.YAMLError as e:
            errors.append(
                f"YAML PARSE ERROR in '{config_path}': {str(e)}"
            )
            suggestions.append(
                "Check YAML syntax: proper indentation (2 spaces), "
                "colons after keys, no tabs."
            )
            config = get_default_config()
        except IOError as e:
            errors.append(
                f"FILE READ ERROR for '{config_path}': {str(e)}"
            )
            suggestions.append("Check file permissions and path.")
            config = get_default_config()

    # Check required sections
    defaults = get_default_config()
    for section in REQUIRED_CONFIG_SECTIONS:
        if section not in config:
            if strict:
                errors.append(
                    f"MISSING REQUIRED SECTION: '{section}' not found in config."
                )
            else:
                warnings.append(
                    f"MISSING SECTION: '{section}' not found. Using defaults."
                )
            # Merge in defaults for missing section
            config[section] = defaults[section]

    # Type and range validation
    for path, specs in CONFIG_TYPE_SPECS.items():
        section = _section(config, path)
        if section is None:
            continue
        for param, (expected_type, min_val, max_val) in specs.items():
            if param not in section:
                continue
            value = section[param]

            # Type check
            accepted = (float, int) if expected_type is float else (int,)
            if isinstance(value, bool) or not isinstance(value, accepted):
                if strict:
                    errors.append(
                        f"TYPE ERROR: {path}.{param} should be {expected_type.__name__}, "
                        f"got {type(value).__name__}."
                    )
                else:
                    warnings.append(
                        f"TYPE WARNING: {path}.{param} should be {expected_type.__name__}, "
                        f"got {type(value).__name__}. Attempting conversion."
                    )
                    try:
                        value = expected_type(value)
                        section[param] = value
                    except (ValueError, TypeError):
                        errors.append(
                            f"CONVERSION FAILED: Cannot convert {path}.{param} "
                            f"value '{value}' to {expected_type.__name__}."
                        )
                        continue

            # Range check
            if value < min_val or value > max_val:
                warnings.append(
                    f"RANGE WARNING: {path}.{param}={value} is outside "
                    f"expected range [{min_val}, {max_val}]."
                )

    # [min, max] pairs
    for path in RANGE_SECTIONS:
        section = _section(config, path)
        if section is None:
            continue
        for param, bounds in section.items():
            if (
                not isinstance(bounds, (list, tuple))
                or len(bounds) != 2
                or not all(isinstance(b, (int, float)) for b in bounds)
            ):
                errors.append(
                    f"MALFORMED RANGE: {path}.{param} must be [min, max], got {bounds!r}."
                )
                suggestions.append(f"Write {path}.{param} as a two-number list, e.g. [1.0, 10.0].")
            elif bounds[0] > bounds[1]:
                errors.append(
                    f"INVERTED RANGE: {path}.{param}={list(bounds)} has min greater than max."
                )
                suggestions.append(f"Swap the bounds of {path}.{param}.")

    # Logging level
    logging_section = config.get("logging")
    if isinstance(logging_section, dict):
        level = logging_section.get("level", "INFO")
        if str(level).upper() not in VALID_LOG_LEVELS:
            warnings.append(
                f"UNKNOWN LOG LEVEL: logging.level='{level}'. Using INFO."
            )
            suggestions.append(f"Use one of: {', '.join(VALID_LOG_LEVELS)}.")
            logging_section["level"] = "INFO"

    # Determine overall validity
    is_valid = len(errors) == 0
    if strict:
        is_valid = is_valid and len(warnings) == 0

    return ConfigValidationResult(
        is_valid=is_valid,
        config=config,
        file_path=config_path if file_exists else None,
        warnings=warnings,
        errors=errors,
        recovery_suggestions=suggestions,
    )


# =============================================================================
# Convenience Functions
# =============================================================================


def validate_all(
    field_params: FieldParams | None = None,
    thermal_params: ThermalParams | None = None,
    mri_params: MRIParams | None = None,
    config_path: Path | str | None = None,
) -> dict[str, Any]:
    """
    Run all validators and return combined results.

    Parameters are validated against the ranges of the loaded config.

    Returns
    -------
    dict
        Dictionary with "config", "tens", "ultrasound" and "mri" results
        (None for parameters not given) and an "all_valid" boolean.
    """
    config_result = validate_config_file(config_path)
    config = config_result.config or {}

    results: dict[str, Any] = {"config": config_result}
    for key, params in (
        ("tens", field_params),
        ("ultrasound", thermal_params),
        ("mri", mri_params),
    ):
        results[key] = validate_params(params, config) if params is not None else None

    results["all_valid"] = config_result.is_valid and all(
        results[key].is_valid for key in ("tens", "ultrasound", "mri") if results[key] is not None
    )
    return results
