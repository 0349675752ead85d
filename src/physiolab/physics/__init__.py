"""
Physics Module

Contains calibration constants and the shared layered tissue model
consumed by the electrical stimulation and ultrasound engines.
"""

from .constants import *
from .tissue import (
    ACOUSTIC_SCENARIOS,
    ANATOMICAL_PRESETS,
    TISSUE_PROPERTIES,
    Implant,
    TissueInclusion,
    TissueLayer,
    TissueProperties,
    TissueStack,
    TissueType,
    build_layer_stack,
    get_acoustic_scenario,
    get_anatomical_preset,
    stimulation_stack,
)
