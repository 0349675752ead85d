"""
PhysioLab - Virtual Physiotherapy Laboratories

This package contains the simulation engines and their support code for:
- Physics: Calibration constants and the layered tissue model
- Simulation: TENS field, therapeutic ultrasound heating and MRI relaxation
  engines, plus the sessions that serialize their invocations
- Presets: Electrode placements, clinical and acquisition presets, lab documents
- Validation: Parameter clamping and config validation
- Visualization: Heatmap, depth-profile and RGBA slice adapters

Usage:
    # After installing with: pip install -e .
    from physiolab.physics.tissue import get_anatomical_preset
    from physiolab.simulation.tens_field import FieldParams, simulate_tens_field
    from physiolab.simulation.ultrasound_therapy import ThermalParams, simulate_ultrasound_therapy
    from physiolab.simulation.mri import MRIParams, simulate_mri
    from physiolab.config import load_config
"""

__version__ = "0.1.0"
__all__ = ["physics", "simulation", "presets", "validation", "visualization", "config"]
