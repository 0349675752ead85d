"""
Laboratory Presets for PhysioLab

Pre-configured parameter sets for the three virtual laboratories:

- Electrode placements for the electrical stimulation lab.
- Clinical presets for the therapeutic ultrasound lab, each with an
  explanation of why it works (or why it is dangerous).
- Acquisition presets for the MRI lab.

Usage:
    from physiolab.presets import DEEP_HEATING, get_ultrasound_preset

    # Use preset directly
    config = DEEP_HEATING["params"]

    # Or build the parameter object by name
    params = ultrasound_params_from_preset("deep_heating")
"""

from __future__ import annotations

from typing import Any

from physiolab.simulation.mri import MRIParams
from physiolab.simulation.tens_field import (
    ElectrodeConfig,
    ElectrodePlacement,
    FieldParams,
)
from physiolab.simulation.ultrasound_therapy import ThermalParams

# =============================================================================
# Electrode Placements (electrical stimulation)
# =============================================================================


PLACEMENT_PRESETS: dict[str, dict[str, Any]] = {
    "default": {
        "name": "Default",
        "description": "Standard placement over the target region.",
        "distance_cm": 6.0,
    },
    "muscle_target": {
        "name": "Over the target muscle",
        "description": "Electrodes placed directly over the muscle belly.",
        "distance_cm": 5.0,
    },
    "superficial": {
        "name": "Superficial",
        "description": "Electrodes close together for cutaneous/sensory activation.",
        "distance_cm": 3.0,
    },
    "spread": {
        "name": "Spread",
        "description": "Wider spacing for broad coverage and deeper activation.",
        "distance_cm": 10.0,
    },
}


# =============================================================================
# Clinical Presets (therapeutic ultrasound)
# =============================================================================


SUPERFICIAL_ANALGESIA: dict[str, Any] = {
    "name": "Superficial analgesia",
    "description": "For tendinopathies and superficial lesions.",
    "explanation": (
        "High frequency (3 MHz) and a small ERA concentrate energy near the "
        "surface, suited to superficial structures such as tendons. Pulsed "
        "mode limits excessive heating."
    ),
    "params": {
        "scenario": "shoulder",
        "frequency_mhz": 3.0,
        "era_cm2": 3.0,
        "mode": "pulsed",
        "duty_cycle_pct": 50.0,
        "intensity_w_cm2": 1.0,
        "duration_min": 5.0,
        "coupling": "good",
        "movement": "scanning",
    },
}


DEEP_HEATING: dict[str, Any] = {
    "name": "Deep heating",
    "description": "For muscles and deep tissue.",
    "explanation": (
        "Low frequency (1.1 MHz) and a larger ERA give deeper penetration. "
        "Continuous mode maximizes heating; scanning spreads the energy and "
        "reduces the hotspot risk."
    ),
    "params": {
        "scenario": "lumbar",
        "frequency_mhz": 1.1,
        "era_cm2": 8.0,
        "mode": "continuous",
        "duty_cycle_pct": 100.0,
        "intensity_w_cm2": 1.5,
        "duration_min": 10.0,
        "coupling": "good",
        "movement": "scanning",
    },
}


NEAR_BONE: dict[str, Any] = {
    "name": "Region near bone",
    "description": "Beware of periosteal risk.",
    "explanation": (
        "Moderate frequency and controlled intensity. Scanning is mandatory "
        "to avoid concentrating energy on the bone. Monitor surface and "
        "periosteal temperature."
    ),
    "params": {
        "scenario": "knee",
        "frequency_mhz": 1.5,
        "era_cm2": 5.0,
        "mode": "pulsed",
        "duty_cycle_pct": 50.0,
        "intensity_w_cm2": 0.8,
        "duration_min": 8.0,
        "coupling": "good",
        "movement": "scanning",
    },
}


UNSAFE_EXAMPLE: dict[str, Any] = {
    "name": "Unsafe example",
    "description": "Dangerous parameters, never use clinically.",
    "explanation": (
        "Very high intensity, continuous mode, a stationary transducer and a "
        "long session create a burn risk. Shows why safe protocols matter."
    ),
    "params": {
        "scenario": "forearm",
        "frequency_mhz": 3.0,
        "era_cm2": 3.0,
        "mode": "continuous",
        "duty_cycle_pct": 100.0,
        "intensity_w_cm2": 2.5,
        "duration_min": 20.0,
        "coupling": "poor",
        "movement": "stationary",
    },
}


ULTRASOUND_PRESETS: dict[str, dict[str, Any]] = {
    "superficial_analgesia": SUPERFICIAL_ANALGESIA,
    "deep_heating": DEEP_HEATING,
    "near_bone": NEAR_BONE,
    "unsafe_example": UNSAFE_EXAMPLE,
}


# =============================================================================
# Acquisition Presets (MRI)
# =============================================================================


MRI_PRESETS: dict[str, dict[str, Any]] = {
    "t1_weighted": {
        "name": "T1-weighted",
        "description": "Short TR and TE: fat bright, fluid dark.",
        "params": {
            "tr_ms": 500.0,
            "te_ms": 20.0,
            "flip_angle_deg": 90.0,
            "sequence_type": "spin_echo",
        },
    },
    "t2_weighted": {
        "name": "T2-weighted",
        "description": "Long TR and TE: fluid bright.",
        "params": {
            "tr_ms": 3000.0,
            "te_ms": 100.0,
            "flip_angle_deg": 90.0,
            "sequence_type": "spin_echo",
        },
    },
    "proton_density": {
        "name": "Proton density",
        "description": "Long TR, short TE: contrast follows proton density.",
        "params": {
            "tr_ms": 3000.0,
            "te_ms": 20.0,
            "flip_angle_deg": 90.0,
            "sequence_type": "spin_echo",
        },
    },
}


# =============================================================================
# Registry Access
# =============================================================================


PRESET_REGISTRIES: dict[str, dict[str, dict[str, Any]]] = {
    "tens": PLACEMENT_PRESETS,
    "ultrasound": ULTRASOUND_PRESETS,
    "mri": MRI_PRESETS,
}


def _normalize(name: str) -> str:
    return name.lower().replace(" ", "_").replace("-", "_")


def _lookup(registry: dict[str, dict[str, Any]], name: str, kind: str) -> dict[str, Any]:
    normalized = _normalize(name)
    if normalized not in registry:
        available = ", ".join(registry)
        raise KeyError(f"{kind} preset '{name}' not found. Available presets: {available}")
    preset = dict(registry[normalized])
    if "params" in preset:
        preset["params"] = dict(preset["params"])
    return preset


def list_presets(lab_type: str) -> list[str]:
    """
    List preset names of a laboratory.

    Examples
    --------
    >>> list_presets("mri")
    ['t1_weighted', 't2_weighted', 'proton_density']
    """
    if lab_type not in PRESET_REGISTRIES:
        raise KeyError(
            f"Unknown lab type '{lab_type}'. Available: {', '.join(PRESET_REGISTRIES)}"
        )
    return list(PRESET_REGISTRIES[lab_type].keys())


def get_preset_names_and_descriptions(lab_type: str) -> list[tuple[str, str, str]]:
    """
    Get (key, display_name, description) for every preset of a laboratory.
    """
    registry = PRESET_REGISTRIES[lab_type]
    return [(key, preset["name"], preset["description"]) for key, preset in registry.items()]


def get_placement_preset(name: str) -> dict[str, Any]:
    """
    Get an electrode placement preset by name.

    Raises
    ------
    KeyError
        If the preset name is not found.
    """
    return _lookup(PLACEMENT_PRESETS, name, "Placement")


def get_ultrasound_preset(name: str) -> dict[str, Any]:
    """
    Get a clinical ultrasound preset by name (case-insensitive).

    Returns
    -------
    dict
        Copy of the preset, with its parameter dict under "params".

    Raises
    ------
    KeyError
        If the preset name is not found.

    Examples
    --------
    >>> get_ultrasound_preset("Deep Heating")["params"]["scenario"]
    'lumbar'
    """
    return _lookup(ULTRASOUND_PRESETS, name, "Ultrasound")


def get_mri_preset(name: str) -> dict[str, Any]:
    """
    Get an MRI acquisition preset by name.

    Raises
    ------
    KeyError
        If the preset name is not found.
    """
    return _lookup(MRI_PRESETS, name, "MRI")


# =============================================================================
# Parameter Builders
# =============================================================================


def electrode_config_from_placement(
    name: str,
    size_cm: float = 4.0,
    shape: str = "circular",
) -> ElectrodeConfig:
    """Electrode configuration at a placement preset's distance."""
    preset = get_placement_preset(name)
    return ElectrodeConfig(
        distance_cm=preset["distance_cm"],
        size_cm=size_cm,
        shape=shape,
        placement=ElectrodePlacement(_normalize(name)),
    )


def field_params_from_placement(name: str, **overrides: Any) -> FieldParams:
    """Default stimulator settings with a placement preset's electrodes."""
    return FieldParams(electrodes=electrode_config_from_placement(name), **overrides)


def ultrasound_params_from_preset(name: str) -> ThermalParams:
    """
    Build the ThermalParams of a clinical preset.

    Examples
    --------
    >>> ultrasound_params_from_preset("unsafe_example").movement.value
    'stationary'
    """
    return ThermalParams(**get_ultrasound_preset(name)["params"])


def mri_params_from_preset(name: str, phantom_type: str = "brain") -> MRIParams:
    """Build the MRIParams of an acquisition preset."""
    return MRIParams(
        **get_mri_preset(name)["params"],
        phantom_type=phantom_type,
        preset=_normalize(name),
    )
