"""
Laboratory Presets and Lab Documents

Pre-configured parameter sets for the three laboratories and the
JSON-shaped document codec used to save and load them.
"""

from __future__ import annotations

from physiolab.presets.documents import (
    from_document,
    load_lab_document,
    save_lab_document,
    tissue_from_document,
    tissue_from_mapping,
    tissue_to_mapping,
    to_document,
)
from physiolab.presets.lab_presets import (
    DEEP_HEATING,
    MRI_PRESETS,
    NEAR_BONE,
    PLACEMENT_PRESETS,
    SUPERFICIAL_ANALGESIA,
    ULTRASOUND_PRESETS,
    UNSAFE_EXAMPLE,
    electrode_config_from_placement,
    field_params_from_placement,
    get_mri_preset,
    get_placement_preset,
    get_preset_names_and_descriptions,
    get_ultrasound_preset,
    list_presets,
    mri_params_from_preset,
    ultrasound_params_from_preset,
)

__all__ = [
    "DEEP_HEATING",
    "MRI_PRESETS",
    "NEAR_BONE",
    "PLACEMENT_PRESETS",
    "SUPERFICIAL_ANALGESIA",
    "ULTRASOUND_PRESETS",
    "UNSAFE_EXAMPLE",
    "electrode_config_from_placement",
    "field_params_from_placement",
    "from_document",
    "get_mri_preset",
    "get_placement_preset",
    "get_preset_names_and_descriptions",
    "get_ultrasound_preset",
    "list_presets",
    "load_lab_document",
    "mri_params_from_preset",
    "save_lab_document",
    "tissue_from_document",
    "tissue_from_mapping",
    "tissue_to_mapping",
    "to_document",
    "ultrasound_params_from_preset",
]
