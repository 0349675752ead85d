"""
MRI Relaxation Engine - Procedural Phantoms and Signal Evaluation

Generates a labeled voxel phantom, evaluates the simplified relaxation
signal equation per voxel and renders window/leveled slices.

Signal Model
------------
    S = PD * (1 - exp(-TR / T1)) * exp(-TE / T2) * sin(flip)

clamped to non-negative. TR and TE are in milliseconds, flip in degrees.

Geometry generation depends only on the phantom type and resolution; the
signal step depends only on the acquisition parameters. The two are kept
separate so callers can reuse a generated :class:`Volume` across parameter
changes (see simulation.session.MRISession).

Array Convention
----------------
Volumes are indexed ``labels[z, y, x]`` with shape (depth, height, width).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from physiolab.physics.constants import (
    ABDOMEN_FAT_BAND,
    BRAIN_CORTEX_RADIUS,
    BRAIN_CSF_RADIUS,
    BRAIN_DEEP_RADIUS,
    BRAIN_FOLD_AMPLITUDE,
    BRAIN_FOLD_LOBES,
    BRAIN_RADIUS_FRACTION,
    BRAIN_SKULL_RADIUS,
    KNEE_BONE_BAND,
    KNEE_FLUID_BAND,
    MAX_FLIP_ANGLE_DEG,
    MAX_SIGNAL_TE_MS,
    MIN_T1_CONTRAST_TR_MS,
    PHANTOM_DEPTH,
    PHANTOM_HEIGHT,
    PHANTOM_WIDTH,
    SIGNAL_EPSILON,
)
from physiolab.simulation.tracing import TraceHook, emit
from physiolab.visualization.adapters import grayscale_to_rgba


class VolumeGeometryError(ValueError):
    """Raised when a volume's geometry is empty or inconsistent."""


class PhantomType(str, Enum):
    BRAIN = "brain"
    KNEE = "knee"
    ABDOMEN = "abdomen"


class SequenceType(str, Enum):
    SPIN_ECHO = "spin_echo"
    GRADIENT_ECHO = "gradient_echo"
    INVERSION_RECOVERY = "inversion_recovery"


# =============================================================================
# Tissue Relaxation Table
# =============================================================================


@dataclass(frozen=True)
class TissueRelaxation:
    """Relaxation properties of one tissue (T1/T2 in ms, PD relative)."""

    name: str
    label: str
    t1_ms: float
    t2_ms: float
    proton_density: float


MRI_TISSUES: dict[str, TissueRelaxation] = {
    "csf": TissueRelaxation("csf", "Cerebrospinal fluid", 4000.0, 2000.0, 1.0),
    "white_matter": TissueRelaxation("white_matter", "White matter", 800.0, 80.0, 0.7),
    "gray_matter": TissueRelaxation("gray_matter", "Gray matter", 1200.0, 100.0, 0.85),
    "muscle": TissueRelaxation("muscle", "Muscle", 900.0, 50.0, 0.8),
    "fat": TissueRelaxation("fat", "Adipose tissue", 250.0, 60.0, 0.9),
    "bone": TissueRelaxation("bone", "Bone", 500.0, 0.5, 0.1),
}

# Label codes stored in Volume.labels index into this tuple
TISSUE_CODES: tuple[str, ...] = tuple(MRI_TISSUES)
_CODE = {name: code for code, name in enumerate(TISSUE_CODES)}


# =============================================================================
# Volume
# =============================================================================


@dataclass(frozen=True)
class Voxel:
    """A single labeled voxel."""

    x: int
    y: int
    z: int
    tissue_type: str
    properties: TissueRelaxation


@dataclass(frozen=True, eq=False)
class Volume:
    """
    Fixed-size labeled voxel grid.

    Parameters
    ----------
    width, height, depth : int
        Grid dimensions; all must be positive.
    labels : np.ndarray
        Tissue codes (indices into TISSUE_CODES). Must contain exactly
        ``width * height * depth`` entries; a flat array is reshaped to
        (depth, height, width).
    phantom_type : PhantomType
        Archetype the labels were generated from.

    Raises
    ------
    VolumeGeometryError
        On non-positive dimensions, zero voxels, a voxel count different
        from ``width * height * depth``, or unknown tissue codes.
    """

    width: int
    height: int
    depth: int
    labels: np.ndarray = field(repr=False)
    phantom_type: PhantomType = PhantomType.BRAIN

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0 or self.depth <= 0:
            raise VolumeGeometryError(
                f"Invalid volume dimensions: {self.width}x{self.height}x{self.depth}"
            )

        labels = np.asarray(self.labels)
        if labels.size == 0:
            raise VolumeGeometryError("Volume has no voxels")

        expected = self.width * self.height * self.depth
        if labels.size != expected:
            raise VolumeGeometryError(
                f"Voxel count mismatch: expected {expected}, got {labels.size}"
            )
        if labels.ndim != 1 and labels.shape != (self.depth, self.height, self.width):
            raise VolumeGeometryError(
                f"Label array shape {labels.shape} does not match "
                f"(depth, height, width) = ({self.depth}, {self.height}, {self.width})"
            )
        if labels.min() < 0 or labels.max() >= len(TISSUE_CODES):
            raise VolumeGeometryError("Volume contains unknown tissue codes")

        labels = labels.astype(np.int8).reshape(self.depth, self.height, self.width)
        labels.flags.writeable = False
        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "phantom_type", PhantomType(self.phantom_type))

    @property
    def voxel_count(self) -> int:
        return int(self.labels.size)

    def __len__(self) -> int:
        return self.voxel_count

    def voxel(self, x: int, y: int, z: int) -> Voxel:
        """Return the voxel at (x, y, z)."""
        name = TISSUE_CODES[int(self.labels[z, y, x])]
        return Voxel(x=x, y=y, z=z, tissue_type=name, properties=MRI_TISSUES[name])

    def tissue_counts(self) -> dict[str, int]:
        """Number of voxels per tissue type present in the volume."""
        codes, counts = np.unique(self.labels, return_counts=True)
        return {TISSUE_CODES[int(c)]: int(n) for c, n in zip(codes, counts)}

    @property
    def tissue_types(self) -> frozenset[str]:
        return frozenset(self.tissue_counts())


def _brain_labels(z: np.ndarray, y: np.ndarray, x: np.ndarray, shape: tuple[int, int, int]) -> np.ndarray:
    depth, height, width = shape
    dx = x - width / 2.0
    dy = y - height / 2.0
    dz = z - depth / 2.0
    dist = np.sqrt(dx**2 + dy**2 + dz**2)
    max_radius = min(width, height, depth) * BRAIN_RADIUS_FRACTION

    folds = np.sin(np.arctan2(dy, dx) * BRAIN_FOLD_LOBES) * BRAIN_FOLD_AMPLITUDE
    cortex = dist < max_radius * (BRAIN_CORTEX_RADIUS + folds)

    return np.select(
        [
            dist < max_radius * BRAIN_CSF_RADIUS,
            (dist < max_radius * BRAIN_DEEP_RADIUS) & cortex,
            dist < max_radius * BRAIN_SKULL_RADIUS,
        ],
        [_CODE["csf"], _CODE["gray_matter"], _CODE["white_matter"]],
        default=_CODE["bone"],
    )


def _knee_labels(z: np.ndarray, y: np.ndarray, x: np.ndarray, shape: tuple[int, int, int]) -> np.ndarray:
    _, height, _ = shape
    from_center = np.abs(y - height / 2.0) + np.zeros_like(z + x, dtype=float)
    return np.select(
        [from_center > height * KNEE_BONE_BAND, from_center < height * KNEE_FLUID_BAND],
        [_CODE["bone"], _CODE["csf"]],
        default=_CODE["muscle"],
    )


def _abdomen_labels(z: np.ndarray, y: np.ndarray, x: np.ndarray, shape: tuple[int, int, int]) -> np.ndarray:
    _, height, _ = shape
    subcutaneous = (y < height * ABDOMEN_FAT_BAND) + np.zeros_like(z + x, dtype=bool)
    # Organ and body wall share the muscle relaxation properties
    return np.where(subcutaneous, _CODE["fat"], _CODE["muscle"])


_PHANTOM_BUILDERS = {
    PhantomType.BRAIN: _brain_labels,
    PhantomType.KNEE: _knee_labels,
    PhantomType.ABDOMEN: _abdomen_labels,
}


def generate_phantom_volume(
    phantom_type: PhantomType | str = PhantomType.BRAIN,
    width: int = PHANTOM_WIDTH,
    height: int = PHANTOM_HEIGHT,
    depth: int = PHANTOM_DEPTH,
) -> Volume:
    """
    Label every voxel of a grid according to a phantom archetype.

    Parameters
    ----------
    phantom_type : PhantomType or str
        "brain" (concentric CSF / gray / white matter with cortical folds,
        bone outside), "knee" (horizontal bone / fluid / muscle bands) or
        "abdomen" (subcutaneous fat over muscle).
    width, height, depth : int
        Grid resolution.

    Returns
    -------
    Volume
        Fully labeled volume.

    Raises
    ------
    VolumeGeometryError
        If the phantom type is unknown or the geometry is invalid.

    Examples
    --------
    >>> volume = generate_phantom_volume("brain", 32, 32, 16)
    >>> len(volume) == 32 * 32 * 16
    True
    """
    try:
        phantom = PhantomType(phantom_type)
    except ValueError as exc:
        available = ", ".join(p.value for p in PhantomType)
        raise VolumeGeometryError(
            f"Unknown phantom type '{phantom_type}'. Available: {available}"
        ) from exc

    if width <= 0 or height <= 0 or depth <= 0:
        raise VolumeGeometryError(f"Invalid volume dimensions: {width}x{height}x{depth}")

    shape = (depth, height, width)
    z, y, x = np.ogrid[:depth, :height, :width]
    labels = _PHANTOM_BUILDERS[phantom](z, y, x, shape)

    return Volume(
        width=width, height=height, depth=depth, labels=labels, phantom_type=phantom
    )


# =============================================================================
# Signal
# =============================================================================


@dataclass(frozen=True)
class MRIParams:
    """
    Acquisition parameters.

    Attributes
    ----------
    tr_ms, te_ms : float
        Repetition and echo time.
    flip_angle_deg : float
        RF flip angle.
    sequence_type : SequenceType
        Pulse sequence family.
    phantom_type : PhantomType
        Phantom archetype.
    preset : str, optional
        Acquisition preset the parameters came from.
    window, level : float, optional
        Display window width and centre in signal units. When omitted the
        slice's own signal range is used.
    slice_index : int, optional
        Displayed slice; defaults to the middle slice. Clamped to the volume.
    """

    tr_ms: float = 500.0
    te_ms: float = 20.0
    flip_angle_deg: float = 90.0
    sequence_type: SequenceType = SequenceType.SPIN_ECHO
    phantom_type: PhantomType = PhantomType.BRAIN
    preset: str | None = "t1_weighted"
    window: float | None = None
    level: float | None = None
    slice_index: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "sequence_type", SequenceType(self.sequence_type))
        object.__setattr__(self, "phantom_type", PhantomType(self.phantom_type))


@dataclass(frozen=True)
class RelaxationSignal:
    """Signal of one tissue with its intermediate factors."""

    signal: float
    magnetization: float
    t1_recovery: float
    t2_decay: float


def relaxation_signal(
    tissue: TissueRelaxation,
    tr_ms: float,
    te_ms: float,
    flip_angle_deg: float,
) -> RelaxationSignal:
    """
    Evaluate the signal equation for one tissue.

    Examples
    --------
    >>> wm = relaxation_signal(MRI_TISSUES["white_matter"], 500, 20, 90)
    >>> round(wm.signal, 3)
    0.253
    """
    flip = np.sin(np.deg2rad(flip_angle_deg))
    t1_recovery = 1.0 - np.exp(-tr_ms / tissue.t1_ms)
    t2_decay = np.exp(-te_ms / tissue.t2_ms)
    magnetization = tissue.proton_density * t1_recovery * flip
    return RelaxationSignal(
        signal=float(max(0.0, magnetization * t2_decay)),
        magnetization=float(magnetization),
        t1_recovery=float(t1_recovery),
        t2_decay=float(t2_decay),
    )


@dataclass(frozen=True, eq=False)
class SignalResult:
    """
    Per-voxel signal of a volume and its summary.

    Arrays have the volume's (depth, height, width) shape and are read-only.
    """

    signal: np.ndarray = field(repr=False)
    t1_recovery: np.ndarray = field(repr=False)
    t2_decay: np.ndarray = field(repr=False)
    mean_signal: float
    min_signal: float
    max_signal: float
    tissue_signals: dict[str, float]
    risk_factors: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


def acquisition_advisories(params: MRIParams) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Risk factors and matching recommendations for the acquisition."""
    risks: list[str] = []
    recommendations: list[str] = []

    if params.tr_ms < MIN_T1_CONTRAST_TR_MS:
        risks.append("Very short TR can reduce T1 contrast.")
        recommendations.append("Increase TR for better T1 contrast.")
    if params.te_ms > MAX_SIGNAL_TE_MS:
        risks.append("Very long TE can reduce signal significantly.")
        recommendations.append("Reduce TE for a better signal-to-noise ratio.")
    if params.flip_angle_deg > MAX_FLIP_ANGLE_DEG:
        risks.append(f"Flip angle > {MAX_FLIP_ANGLE_DEG:g}° can reduce signal.")
        if params.sequence_type is SequenceType.SPIN_ECHO:
            recommendations.append(f"Use a flip angle <= {MAX_FLIP_ANGLE_DEG:g}° for spin echo.")
        else:
            recommendations.append(f"Use a flip angle <= {MAX_FLIP_ANGLE_DEG:g}°.")

    return tuple(risks), tuple(recommendations)


def compute_signal(volume: Volume, params: MRIParams) -> SignalResult:
    """
    Evaluate the relaxation signal for every voxel of ``volume``.

    The equation is evaluated once per tissue and broadcast to the voxels
    through the label array.
    """
    per_tissue = [
        relaxation_signal(MRI_TISSUES[name], params.tr_ms, params.te_ms, params.flip_angle_deg)
        for name in TISSUE_CODES
    ]
    signal_lut = np.array([s.signal for s in per_tissue])
    t1_lut = np.array([s.t1_recovery for s in per_tissue])
    t2_lut = np.array([s.t2_decay for s in per_tissue])

    signal = signal_lut[volume.labels]
    t1_recovery = t1_lut[volume.labels]
    t2_decay = t2_lut[volume.labels]
    for array in (signal, t1_recovery, t2_decay):
        array.flags.writeable = False

    counts = volume.tissue_counts()
    tissue_signals = {name: float(signal_lut[_CODE[name]]) for name in counts}

    risks, recommendations = acquisition_advisories(params)
    return SignalResult(
        signal=signal,
        t1_recovery=t1_recovery,
        t2_decay=t2_decay,
        mean_signal=float(signal.mean()),
        min_signal=float(signal.min()),
        max_signal=float(signal.max()),
        tissue_signals=tissue_signals,
        risk_factors=risks,
        recommendations=recommendations,
    )


# =============================================================================
# Slices
# =============================================================================


def window_level(
    values: np.ndarray,
    window: float | None = None,
    level: float | None = None,
) -> np.ndarray:
    """
    Map signal values to 8-bit intensities.

    ``clamp(v, level - window/2, level + window/2)`` normalized to 0..255.
    Without an explicit window/level the value range of ``values`` is used;
    degenerate ranges are floored at SIGNAL_EPSILON.

    Examples
    --------
    >>> window_level(np.array([0.0, 0.5, 1.0]), window=1.0, level=0.5).tolist()
    [0, 128, 255]
    """
    values = np.asarray(values, dtype=np.float64)
    if window is None or level is None:
        low = float(values.min())
        high = float(values.max())
        window = max(high - low, SIGNAL_EPSILON) if window is None else window
        level = (low + high) / 2.0 if level is None else level

    window_min = level - window / 2.0
    window_max = level + window / 2.0
    span = max(window_max - window_min, SIGNAL_EPSILON)

    normalized = (np.clip(values, window_min, window_max) - window_min) / span
    return np.clip(np.round(normalized * 255.0), 0, 255).astype(np.uint8)


@dataclass(frozen=True, eq=False)
class SliceImage:
    """Rendered axial slice."""

    index: int
    gray: np.ndarray = field(repr=False)
    rgba: np.ndarray = field(repr=False)

    @property
    def width(self) -> int:
        return int(self.gray.shape[1])

    @property
    def height(self) -> int:
        return int(self.gray.shape[0])


def clamp_slice_index(volume: Volume, index: int | None) -> int:
    """Clamp a slice index into the volume; None selects the middle slice."""
    if index is None:
        return volume.depth // 2
    return max(0, min(volume.depth - 1, int(index)))


def slice_image(
    volume: Volume,
    signal: SignalResult,
    index: int | None = None,
    window: float | None = None,
    level: float | None = None,
) -> SliceImage:
    """Extract slice ``index`` and render it as gray and RGBA buffers."""
    z = clamp_slice_index(volume, index)
    gray = window_level(signal.signal[z], window, level)
    return SliceImage(index=z, gray=gray, rgba=grayscale_to_rgba(gray))


# =============================================================================
# Main Entry Point
# =============================================================================


@dataclass(frozen=True, eq=False)
class MRIResult:
    """Output of :func:`simulate_mri`."""

    volume: Volume
    signal: SignalResult
    slice: SliceImage

    @property
    def tissue_signals(self) -> dict[str, float]:
        return self.signal.tissue_signals


def simulate_mri(
    params: MRIParams,
    volume: Volume | None = None,
    resolution: tuple[int, int, int] | None = None,
    trace: TraceHook | None = None,
) -> MRIResult:
    """
    Run one MRI acquisition on a phantom.

    Parameters
    ----------
    params : MRIParams
        Acquisition parameters.
    volume : Volume, optional
        Previously generated volume to reuse. Generated from
        ``params.phantom_type`` when omitted.
    resolution : tuple of int, optional
        (width, height, depth) for a generated volume; defaults to
        128 x 128 x 64.
    trace : TraceHook, optional
        Receives "mri.volume", "mri.signal" and "mri.slice" events.

    Returns
    -------
    MRIResult

    Raises
    ------
    VolumeGeometryError
        If the volume cannot be generated consistently.
    """
    if volume is None:
        width, height, depth = resolution or (PHANTOM_WIDTH, PHANTOM_HEIGHT, PHANTOM_DEPTH)
        volume = generate_phantom_volume(params.phantom_type, width, height, depth)
        emit(
            trace,
            "mri.volume",
            phantom=volume.phantom_type.value,
            dims=(volume.width, volume.height, volume.depth),
            voxels=volume.voxel_count,
        )

    signal = compute_signal(volume, params)
    emit(
        trace,
        "mri.signal",
        mean=signal.mean_signal,
        min=signal.min_signal,
        max=signal.max_signal,
        tissues=len(signal.tissue_signals),
    )

    image = slice_image(volume, signal, params.slice_index, params.window, params.level)
    emit(trace, "mri.slice", index=image.index)

    return MRIResult(volume=volume, signal=signal, slice=image)
