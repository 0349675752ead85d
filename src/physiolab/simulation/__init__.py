"""
Simulation Module

Contains the three laboratory engines (electrical stimulation field,
therapeutic ultrasound heating, MRI relaxation), the shared risk
vocabulary, trace hooks and the sessions that serialize engine calls.
"""

from .mri import (
    MRIParams,
    MRIResult,
    PhantomType,
    SequenceType,
    SignalResult,
    Volume,
    VolumeGeometryError,
    compute_signal,
    generate_phantom_volume,
    simulate_mri,
    slice_image,
    window_level,
)
from .risk import RiskAssessment, RiskLevel
from .session import (
    BusyPolicy,
    MRISession,
    SessionState,
    SimulationBusyError,
    SimulationSession,
)
from .tens_field import (
    ElectrodeConfig,
    ElectrodePlacement,
    ElectrodeShape,
    FieldParams,
    FieldResult,
    StimulationMode,
    simulate_tens_field,
)
from .tracing import LoggingTrace, RecordingTrace, TraceHook
from .ultrasound_therapy import (
    CouplingQuality,
    CustomThicknesses,
    DoseCategory,
    MixedLayer,
    ThermalParams,
    ThermalResult,
    TransducerMovement,
    UltrasoundMode,
    classify_dose,
    resolve_tissue_stack,
    simulate_ultrasound_therapy,
    thermal_timeline,
)

__all__ = [
    "MRIParams",
    "MRIResult",
    "PhantomType",
    "SequenceType",
    "SignalResult",
    "Volume",
    "VolumeGeometryError",
    "compute_signal",
    "generate_phantom_volume",
    "simulate_mri",
    "slice_image",
    "window_level",
    "RiskAssessment",
    "RiskLevel",
    "BusyPolicy",
    "MRISession",
    "SessionState",
    "SimulationBusyError",
    "SimulationSession",
    "ElectrodeConfig",
    "ElectrodePlacement",
    "ElectrodeShape",
    "FieldParams",
    "FieldResult",
    "StimulationMode",
    "simulate_tens_field",
    "LoggingTrace",
    "RecordingTrace",
    "TraceHook",
    "CouplingQuality",
    "CustomThicknesses",
    "DoseCategory",
    "MixedLayer",
    "ThermalParams",
    "ThermalResult",
    "TransducerMovement",
    "UltrasoundMode",
    "classify_dose",
    "resolve_tissue_stack",
    "simulate_ultrasound_therapy",
    "thermal_timeline",
]
