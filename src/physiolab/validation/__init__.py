"""
Validation Module for PhysioLab

Provides caller-side parameter clamping with warnings and recovery
suggestions, and YAML configuration validation.
"""

from __future__ import annotations

from physiolab.validation.input_validators import (
    ConfigValidationResult,
    ParameterValidationResult,
    validate_all,
    validate_config_file,
    validate_field_params,
    validate_mri_params,
    validate_params,
    validate_thermal_params,
)

__all__ = [
    "ParameterValidationResult",
    "ConfigValidationResult",
    "validate_field_params",
    "validate_thermal_params",
    "validate_mri_params",
    "validate_params",
    "validate_config_file",
    "validate_all",
]
