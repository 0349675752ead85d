"""
Configuration Management for PhysioLab

Loads laboratory ranges, phantom resolution and logging settings from YAML
config files with fallback to the defaults in physics.constants.

Usage:
    from physiolab.config import load_config

    cfg = load_config()  # Load default config
    cfg = load_config("configs/classroom.yaml")  # Load custom config

    # Access parameters
    width = cfg["mri"]["phantom"]["width"]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# File is at: src/physiolab/config.py
# Project root: src/physiolab -> src -> project_root
_THIS_FILE = Path(__file__)
PROJECT_ROOT = _THIS_FILE.parent.parent.parent

DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "default_labs.yaml"


def get_config_path(config_name: str = "default_labs.yaml") -> Path:
    """
    Get the full path to a config file.

    Parameters
    ----------
    config_name : str
        Name of the config file (with or without .yaml extension).

    Returns
    -------
    Path
        Full path to the config file.
    """
    if not config_name.endswith(".yaml"):
        config_name = f"{config_name}.yaml"
    return PROJECT_ROOT / "configs" / config_name


def get_default_config() -> dict[str, Any]:
    """
    Return hardcoded default configuration.

    Used as fallback when config file is missing.
    """
    # Import here to avoid circular imports
    from physiolab.physics.constants import (
        ACOUSTIC_BLOCK_DEPTH_CM,
        CUSTOM_BONE_RANGE_CM,
        CUSTOM_FAT_RANGE_CM,
        CUSTOM_MUSCLE_RANGE_CM,
        CUSTOM_SKIN_RANGE_CM,
        ELECTRODE_DISTANCE_RANGE_CM,
        ELECTRODE_SIZE_RANGE_CM,
        MRI_FLIP_ANGLE_RANGE_DEG,
        MRI_TE_RANGE_MS,
        MRI_TR_RANGE_MS,
        PHANTOM_DEPTH,
        PHANTOM_HEIGHT,
        PHANTOM_WIDTH,
        STIM_FREQUENCY_RANGE_HZ,
        STIM_INTENSITY_RANGE_MA,
        STIM_PULSE_WIDTH_RANGE_US,
        ULTRASOUND_DURATION_RANGE_MIN,
        ULTRASOUND_DUTY_CYCLE_RANGE_PCT,
        ULTRASOUND_ERA_RANGE_CM2,
        ULTRASOUND_FREQUENCY_RANGE_MHZ,
        ULTRASOUND_INTENSITY_RANGE_W_CM2,
    )

    return {
        "tens": {
            "tissue_preset": "forearm_slim",
            "electrodes": {
                "distance_cm": 6.0,
                "size_cm": 4.0,
                "shape": "circular",
            },
            "ranges": {
                "frequency_hz": list(STIM_FREQUENCY_RANGE_HZ),
                "pulse_width_us": list(STIM_PULSE_WIDTH_RANGE_US),
                "intensity_ma": list(STIM_INTENSITY_RANGE_MA),
                "distance_cm": list(ELECTRODE_DISTANCE_RANGE_CM),
                "size_cm": list(ELECTRODE_SIZE_RANGE_CM),
            },
        },
        "ultrasound": {
            "block_depth_cm": ACOUSTIC_BLOCK_DEPTH_CM,
            "ranges": {
                "frequency_mhz": list(ULTRASOUND_FREQUENCY_RANGE_MHZ),
                "era_cm2": list(ULTRASOUND_ERA_RANGE_CM2),
                "intensity_w_cm2": list(ULTRASOUND_INTENSITY_RANGE_W_CM2),
                "duration_min": list(ULTRASOUND_DURATION_RANGE_MIN),
                "duty_cycle_pct": list(ULTRASOUND_DUTY_CYCLE_RANGE_PCT),
            },
            "custom_thickness_ranges": {
                "skin": list(CUSTOM_SKIN_RANGE_CM),
                "fat": list(CUSTOM_FAT_RANGE_CM),
                "muscle": list(CUSTOM_MUSCLE_RANGE_CM),
                "bone_thickness": list(CUSTOM_BONE_RANGE_CM),
            },
        },
        "mri": {
            "phantom": {
                "width": PHANTOM_WIDTH,
                "height": PHANTOM_HEIGHT,
                "depth": PHANTOM_DEPTH,
            },
            "window": None,
            "level": None,
            "ranges": {
                "tr_ms": list(MRI_TR_RANGE_MS),
                "te_ms": list(MRI_TE_RANGE_MS),
                "flip_angle_deg": list(MRI_FLIP_ANGLE_RANGE_DEG),
            },
        },
        "logging": {
            "level": "INFO",
            "file": None,
        },
    }


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file with fallback to defaults.

    Parameters
    ----------
    config_path : str or Path, optional
        Path to YAML config file. If None, uses default_labs.yaml.
        If file doesn't exist, falls back to hardcoded defaults.

    Returns
    -------
    dict
        Configuration dictionary.

    Raises
    ------
    None
        This function never raises; it gracefully falls back to defaults.

    Examples
    --------
    >>> cfg = load_config()
    >>> cfg["mri"]["phantom"]["depth"]
    64
    """
    config, errors = load_config_safe(config_path)
    for message in errors:
        logger.debug(message)
    return config


def load_config_safe(
    config_path: str | Path | None = None,
) -> tuple[dict[str, Any], list[str]]:
    """
    Load configuration with detailed error reporting.

    Unlike load_config(), this function returns error messages
    for debugging and user feedback.

    Parameters
    ----------
    config_path : str or Path, optional
        Path to YAML config file.

    Returns
    -------
    tuple[dict, list[str]]
        (config_dict, error_messages). Config is always valid (defaults used on error).
        error_messages is empty if load succeeded.

    Examples
    --------
    >>> cfg, errors = load_config_safe("bad_config.yaml")
    >>> if errors:
    ...     print("Warnings:", errors)
    """
    errors = []

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        errors.append(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config(), errors

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
        if config is None:
            errors.append(f"Config file is empty: {config_path}. Using defaults.")
            return get_default_config(), errors
        if not isinstance(config, dict):
            errors.append(
                f"Config file {config_path} does not contain a mapping. Using defaults."
            )
            return get_default_config(), errors
        return config, errors
    except yaml.YAMLError as e:
        errors.append(
            f"YAML parse error in {config_path}: {e}. "
            "Check indentation and syntax. Using defaults."
        )
        return get_default_config(), errors
    except IOError as e:
        errors.append(f"Cannot read {config_path}: {e}. Using defaults.")
        return get_default_config(), errors


def merge_with_defaults(config: dict[str, Any]) -> dict[str, Any]:
    """
    Fill sections and keys missing from ``config`` with the defaults.

    Nested mappings are merged key by key; values present in ``config``
    win.
    """

    def merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
        merged = dict(defaults)
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    return merge(get_default_config(), config)


def save_config(config: dict[str, Any], config_path: str | Path) -> None:
    """
    Save configuration to a YAML file.

    Parameters
    ----------
    config : dict
        Configuration dictionary.
    config_path : str or Path
        Output path for the YAML file.
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
    logger.info("Saved configuration to %s", config_path)
