"""
Tests for the PhysioLab Validation Module

Tests parameter clamping with warnings and recovery suggestions, and YAML
configuration validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from physiolab.config import get_default_config
from physiolab.simulation.mri import MRIParams
from physiolab.simulation.tens_field import ElectrodeConfig, FieldParams
from physiolab.simulation.ultrasound_therapy import CustomThicknesses, ThermalParams
from physiolab.validation import (
    ConfigValidationResult,
    ParameterValidationResult,
    validate_all,
    validate_config_file,
    validate_field_params,
    validate_mri_params,
    validate_params,
    validate_thermal_params,
)


def _write_yaml(path: Path, data) -> Path:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f)
    return path


# =============================================================================
# Stimulation Parameters
# =============================================================================


class TestFieldParamsValidation:
    """Tests for electrical stimulation parameter clamping."""

    def test_in_range_params_unchanged(self) -> None:
        params = FieldParams()
        result = validate_field_params(params)
        assert isinstance(result, ParameterValidationResult)
        assert result.is_valid is True
        assert result.params == params
        assert result.adjustments == []
        assert result.warnings == []

    def test_intensity_clamped(self) -> None:
        result = validate_field_params(FieldParams(intensity_ma=120.0))
        assert result.is_valid is True
        assert result.params.intensity_ma == 80.0
        assert result.adjustments == ["intensity_ma: 120.0 -> 80.0"]
        assert "RANGE WARNING" in result.warnings[0]

    def test_pulse_width_and_frequency_clamped(self) -> None:
        result = validate_field_params(FieldParams(frequency_hz=500.0, pulse_width_us=10.0))
        assert result.params.frequency_hz == 200.0
        assert result.params.pulse_width_us == 50.0
        assert len(result.adjustments) == 2

    def test_non_finite_value_is_error(self) -> None:
        params = FieldParams(frequency_hz=float("nan"))
        result = validate_field_params(params)
        assert result.is_valid is False
        assert "INVALID VALUE" in result.errors[0]
        assert result.params is params
        assert len(result.recovery_suggestions) > 0

    @pytest.mark.parametrize("value", ["lots", None, [30.0]])
    def test_non_numeric_value_is_error(self, value) -> None:
        params = FieldParams(intensity_ma=value)
        result = validate_field_params(params)
        assert result.is_valid is False
        assert result.errors == [f"INVALID VALUE: intensity_ma={value!r} is not a finite number."]
        assert result.params is params

    def test_numeric_string_accepted(self) -> None:
        result = validate_field_params(FieldParams(intensity_ma="30"))
        assert result.is_valid is True
        assert result.params.intensity_ma == 30.0
        assert result.adjustments == []

    def test_config_ranges_override_defaults(self) -> None:
        params = FieldParams(intensity_ma=60.0, electrodes=ElectrodeConfig(distance_cm=2.0))
        result = validate_field_params(
            params, ranges={"intensity_ma": [0.0, 40.0], "distance_cm": [4.0, 8.0]}
        )
        assert result.params.intensity_ma == 40.0
        assert result.params.electrodes.distance_cm == 4.0

    def test_zero_intensity_warns(self) -> None:
        result = validate_field_params(FieldParams(intensity_ma=0.0))
        assert result.is_valid is True
        assert any("ZERO INTENSITY" in w for w in result.warnings)


# =============================================================================
# Ultrasound Parameters
# =============================================================================


class TestThermalParamsValidation:
    """Tests for therapeutic ultrasound parameter validation."""

    def test_intensity_clamped_to_device_range(self) -> None:
        result = validate_thermal_params(ThermalParams(intensity_w_cm2=5.0))
        assert result.is_valid is True
        assert result.params.intensity_w_cm2 == 3.0

    def test_frequency_and_era_clamped(self) -> None:
        result = validate_thermal_params(ThermalParams(frequency_mhz=5.0, era_cm2=1.0))
        assert result.params.frequency_mhz == 3.0
        assert result.params.era_cm2 == 3.0

    def test_unknown_scenario_is_error(self) -> None:
        result = validate_thermal_params(ThermalParams(scenario="hip"))
        assert result.is_valid is False
        assert "UNKNOWN SCENARIO" in result.errors[0]
        assert "shoulder" in result.recovery_suggestions[0]

    def test_scenario_name_normalized(self) -> None:
        result = validate_thermal_params(ThermalParams(scenario="Knee"))
        assert result.is_valid is True
        assert result.params.scenario == "knee"

    def test_custom_thicknesses_clamped(self) -> None:
        params = ThermalParams(
            scenario="custom",
            custom_thicknesses=CustomThicknesses(skin=0.2, fat=3.0, muscle=2.0),
        )
        result = validate_thermal_params(params)
        assert result.params.custom_thicknesses.fat == 2.0
        assert "fat: 3.0 -> 2.0" in result.adjustments

    def test_custom_thicknesses_ignored_outside_custom_scenario(self) -> None:
        params = ThermalParams(
            scenario="shoulder",
            custom_thicknesses=CustomThicknesses(skin=0.2, fat=0.5, muscle=2.0),
        )
        result = validate_thermal_params(params)
        assert any("IGNORED" in w for w in result.warnings)

    def test_stationary_high_intensity_warns(self) -> None:
        result = validate_thermal_params(
            ThermalParams(intensity_w_cm2=2.5, movement="stationary")
        )
        assert any("STATIONARY" in w for w in result.warnings)

    def test_non_numeric_intensity_is_error(self) -> None:
        result = validate_thermal_params(
            ThermalParams(intensity_w_cm2="high", movement="stationary")
        )
        assert result.is_valid is False
        assert "intensity_w_cm2='high'" in result.errors[0]
        assert not any("STATIONARY" in w for w in result.warnings)


# =============================================================================
# MRI Parameters
# =============================================================================


class TestMRIParamsValidation:
    """Tests for MRI acquisition validation."""

    def test_default_params_valid(self) -> None:
        result = validate_mri_params(MRIParams())
        assert result.is_valid is True
        assert result.warnings == []

    def test_flip_angle_clamped(self) -> None:
        result = validate_mri_params(MRIParams(flip_angle_deg=200.0))
        assert result.params.flip_angle_deg == 180.0

    def test_echo_after_repetition_is_error(self) -> None:
        result = validate_mri_params(MRIParams(tr_ms=100.0, te_ms=150.0))
        assert result.is_valid is False
        assert "INCONSISTENT TIMING" in result.errors[0]

    def test_non_positive_window_is_error(self) -> None:
        result = validate_mri_params(MRIParams(window=0.0, level=0.5))
        assert result.is_valid is False
        assert "INVALID WINDOW" in result.errors[0]

    def test_non_numeric_timing_is_error(self) -> None:
        result = validate_mri_params(MRIParams(tr_ms="long"))
        assert result.is_valid is False
        assert len(result.errors) == 1
        assert "INVALID VALUE: tr_ms" in result.errors[0]


class TestValidateParams:
    """Tests for dispatch by parameter type."""

    def test_dispatch_uses_config_ranges(self) -> None:
        config = get_default_config()
        config["mri"]["ranges"]["tr_ms"] = [100.0, 1000.0]
        result = validate_params(MRIParams(tr_ms=3000.0, te_ms=100.0), config)
        assert result.params.tr_ms == 1000.0

    def test_dispatch_without_config(self) -> None:
        result = validate_params(ThermalParams(duration_min=60.0))
        assert result.params.duration_min == 30.0

    def test_unknown_params_type(self) -> None:
        with pytest.raises(TypeError):
            validate_params(object())


# =============================================================================
# Configuration File Validation Tests
# =============================================================================


class TestConfigFileValidation:
    """Tests for YAML configuration validation."""

    def test_valid_default_config(self) -> None:
        """The shipped default config validates cleanly."""
        result = validate_config_file()
        assert isinstance(result, ConfigValidationResult)
        assert result.is_valid is True
        assert result.errors == []
        assert result.config["mri"]["phantom"]["width"] == 128

    def test_nonexistent_file_fallback(self) -> None:
        result = validate_config_file("nonexistent_config_12345.yaml")
        assert result.is_valid is True
        assert result.file_path is None
        assert "CONFIG FILE NOT FOUND" in result.warnings[0]
        assert result.config == get_default_config()

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("tens:\n  ranges: [1, 2\n  bad: : :\n", encoding="utf-8")
        result = validate_config_file(path)
        assert result.is_valid is False
        assert "YAML PARSE ERROR" in result.errors[0]
        assert result.config is not None

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        result = validate_config_file(path)
        assert result.is_valid is True
        assert "CONFIG FILE EMPTY" in result.warnings[0]

    def test_missing_section_merged(self, tmp_path: Path) -> None:
        config = get_default_config()
        del config["mri"]
        path = _write_yaml(tmp_path / "partial.yaml", config)

        result = validate_config_file(path)
        assert result.is_valid is True
        assert any("MISSING SECTION: 'mri'" in w for w in result.warnings)
        assert result.config["mri"]["phantom"]["depth"] == 64

    def test_missing_section_strict(self, tmp_path: Path) -> None:
        config = get_default_config()
        del config["logging"]
        path = _write_yaml(tmp_path / "partial.yaml", config)

        result = validate_config_file(path, strict=True)
        assert result.is_valid is False
        assert "MISSING REQUIRED SECTION" in result.errors[0]

    def test_inverted_range_is_error(self, tmp_path: Path) -> None:
        config = get_default_config()
        config["tens"]["ranges"]["intensity_ma"] = [80.0, 0.0]
        result = validate_config_file(_write_yaml(tmp_path / "inverted.yaml", config))
        assert result.is_valid is False
        assert any("INVERTED RANGE" in e for e in result.errors)

    def test_malformed_range_is_error(self, tmp_path: Path) -> None:
        config = get_default_config()
        config["ultrasound"]["ranges"]["era_cm2"] = 5.0
        result = validate_config_file(_write_yaml(tmp_path / "malformed.yaml", config))
        assert any("MALFORMED RANGE" in e for e in result.errors)

    def test_string_resolution_converted(self, tmp_path: Path) -> None:
        config = get_default_config()
        config["mri"]["phantom"]["width"] = "64"
        result = validate_config_file(_write_yaml(tmp_path / "typed.yaml", config))
        assert result.is_valid is True
        assert any("TYPE WARNING" in w for w in result.warnings)
        assert result.config["mri"]["phantom"]["width"] == 64

    def test_unconvertible_value(self, tmp_path: Path) -> None:
        config = get_default_config()
        config["mri"]["phantom"]["width"] = "wide"
        result = validate_config_file(_write_yaml(tmp_path / "typed.yaml", config))
        assert result.is_valid is False
        assert any("CONVERSION FAILED" in e for e in result.errors)

    def test_out_of_range_value_warns(self, tmp_path: Path) -> None:
        config = get_default_config()
        config["tens"]["electrodes"]["distance_cm"] = 30.0
        result = validate_config_file(_write_yaml(tmp_path / "range.yaml", config))
        assert result.is_valid is True
        assert any("RANGE WARNING" in w for w in result.warnings)

    def test_unknown_log_level(self, tmp_path: Path) -> None:
        config = get_default_config()
        config["logging"]["level"] = "LOUD"
        result = validate_config_file(_write_yaml(tmp_path / "log.yaml", config))
        assert any("UNKNOWN LOG LEVEL" in w for w in result.warnings)
        assert result.config["logging"]["level"] == "INFO"


class TestValidateAll:
    """Tests for the combined validator."""

    def test_all_valid(self) -> None:
        results = validate_all(
            field_params=FieldParams(),
            thermal_params=ThermalParams(),
            mri_params=MRIParams(),
        )
        assert results["all_valid"] is True
        assert results["tens"].is_valid
        assert results["config"].is_valid

    def test_invalid_params_propagate(self) -> None:
        results = validate_all(mri_params=MRIParams(tr_ms=100.0, te_ms=150.0))
        assert results["all_valid"] is False
        assert results["tens"] is None
