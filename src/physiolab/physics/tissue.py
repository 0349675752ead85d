"""
Tissue/Layer Model - Depth-Ordered Tissue Stacks

Shared description of a stack of biological layers (skin, fat, muscle,
bone) used by the electrical stimulation and therapeutic ultrasound engines.

Stack Convention
----------------
Layers are ordered from the surface downwards. Each layer starts where the
previous one ends, so the stack is contiguous and non-overlapping along the
depth axis:

    layer[0].depth == 0
    layer[i].depth == layer[i-1].depth + layer[i-1].thickness

Depth units are those of the stack's block: stimulation presets use a
normalized block (0 = surface, 1 = deepest modeled point), acoustic
scenarios use centimetres.

Stacked Composition Rule
------------------------
Thicknesses are summed from the surface down. When the requested total
exceeds the block depth, muscle is clamped so that bone always terminates
the stack. No layer ends up with negative thickness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .constants import (
    ACOUSTIC_BLOCK_DEPTH_CM,
    BONE_ATTENUATION_DB_CM_MHZ,
    BONE_CONDUCTIVITY_S_M,
    BONE_HEAT_CAPACITY_FACTOR,
    BONE_PERFUSION_FACTOR,
    FAT_ATTENUATION_DB_CM_MHZ,
    FAT_CONDUCTIVITY_S_M,
    FAT_HEAT_CAPACITY_FACTOR,
    FAT_PERFUSION_FACTOR,
    METAL_CONDUCTIVITY_S_M,
    MIN_LAYER_THICKNESS,
    MUSCLE_ATTENUATION_DB_CM_MHZ,
    MUSCLE_CONDUCTIVITY_S_M,
    MUSCLE_HEAT_CAPACITY_FACTOR,
    MUSCLE_PERFUSION_FACTOR,
    SKIN_ATTENUATION_DB_CM_MHZ,
    SKIN_CONDUCTIVITY_S_M,
    SKIN_HEAT_CAPACITY_FACTOR,
    SKIN_PERFUSION_FACTOR,
    STIMULATION_BLOCK_DEPTH,
)

_DEPTH_TOLERANCE = 1e-9


class TissueType(str, Enum):
    """Tissue labels used by the layered models."""

    SKIN = "skin"
    FAT = "fat"
    MUSCLE = "muscle"
    BONE = "bone"
    METAL_IMPLANT = "metal_implant"


@dataclass(frozen=True)
class TissueProperties:
    """Per-tissue physical coefficients."""

    conductivity_s_m: float
    attenuation_db_cm_mhz: float
    heat_capacity_factor: float
    perfusion_factor: float


TISSUE_PROPERTIES: dict[TissueType, TissueProperties] = {
    TissueType.SKIN: TissueProperties(
        SKIN_CONDUCTIVITY_S_M,
        SKIN_ATTENUATION_DB_CM_MHZ,
        SKIN_HEAT_CAPACITY_FACTOR,
        SKIN_PERFUSION_FACTOR,
    ),
    TissueType.FAT: TissueProperties(
        FAT_CONDUCTIVITY_S_M,
        FAT_ATTENUATION_DB_CM_MHZ,
        FAT_HEAT_CAPACITY_FACTOR,
        FAT_PERFUSION_FACTOR,
    ),
    TissueType.MUSCLE: TissueProperties(
        MUSCLE_CONDUCTIVITY_S_M,
        MUSCLE_ATTENUATION_DB_CM_MHZ,
        MUSCLE_HEAT_CAPACITY_FACTOR,
        MUSCLE_PERFUSION_FACTOR,
    ),
    TissueType.BONE: TissueProperties(
        BONE_CONDUCTIVITY_S_M,
        BONE_ATTENUATION_DB_CM_MHZ,
        BONE_HEAT_CAPACITY_FACTOR,
        BONE_PERFUSION_FACTOR,
    ),
    # Metal reflects nearly all acoustic energy; only its conductivity is used
    TissueType.METAL_IMPLANT: TissueProperties(
        METAL_CONDUCTIVITY_S_M,
        BONE_ATTENUATION_DB_CM_MHZ,
        BONE_HEAT_CAPACITY_FACTOR,
        BONE_PERFUSION_FACTOR,
    ),
}


@dataclass(frozen=True)
class TissueLayer:
    """
    A single tissue layer in a depth-ordered stack.

    Attributes
    ----------
    tissue_type : TissueType
        Tissue label.
    depth : float
        Depth of the layer's upper boundary from the surface.
    thickness : float
        Layer thickness (same unit as depth).
    attenuation_coefficient : float
        Acoustic attenuation in dB/cm/MHz.
    heat_capacity_factor : float
        Relative heat capacity (muscle = 1.0).
    perfusion_factor : float
        Relative perfusion-driven heat dissipation.
    conductivity_s_m : float
        Low-frequency electrical conductivity in S/m.
    """

    tissue_type: TissueType
    depth: float
    thickness: float
    attenuation_coefficient: float
    heat_capacity_factor: float
    perfusion_factor: float
    conductivity_s_m: float

    @classmethod
    def from_tissue(
        cls,
        tissue_type: TissueType | str,
        depth: float,
        thickness: float,
    ) -> TissueLayer:
        """Create a layer with the standard coefficients of a tissue type."""
        tissue_type = TissueType(tissue_type)
        props = TISSUE_PROPERTIES[tissue_type]
        return cls(
            tissue_type=tissue_type,
            depth=depth,
            thickness=thickness,
            attenuation_coefficient=props.attenuation_db_cm_mhz,
            heat_capacity_factor=props.heat_capacity_factor,
            perfusion_factor=props.perfusion_factor,
            conductivity_s_m=props.conductivity_s_m,
        )

    @property
    def bottom(self) -> float:
        """Depth of the layer's lower boundary."""
        return self.depth + self.thickness

    def contains(self, depth: float) -> bool:
        """True if ``depth`` lies within [depth, bottom)."""
        return self.depth <= depth < self.bottom


@dataclass(frozen=True)
class Implant:
    """
    Embedded metal implant (relative coordinates).

    Attributes
    ----------
    depth : float
        Relative depth of the implant, 0 (surface) to 1 (deepest).
    span : float
        Relative lateral extent between the electrodes, 0 to 1.
    """

    depth: float
    span: float


@dataclass(frozen=True)
class TissueInclusion:
    """Localized anatomical inclusion (bone, fat, muscle or metal)."""

    inclusion_type: TissueType
    depth: float
    span: float
    position: float = 0.5

    def __post_init__(self) -> None:
        object.__setattr__(self, "inclusion_type", TissueType(self.inclusion_type))


@dataclass(frozen=True)
class TissueStack:
    """
    Contiguous, depth-ordered stack of tissue layers.

    Parameters
    ----------
    layers : tuple[TissueLayer, ...]
        Layers from the surface downwards.
    total_depth : float
        Depth of the modeled block (1.0 for normalized stacks).
    implant : Implant, optional
        Embedded metal implant overriding local conductivity.
    inclusions : tuple[TissueInclusion, ...]
        Localized inclusions.
    name : str
        Preset or scenario name.
    tissue_class : str
        Coarse tissue classification ("soft", "muscular", "mixed").

    Raises
    ------
    ValueError
        If the stack is empty, a layer has negative thickness, or layers
        are not contiguous.
    """

    layers: tuple[TissueLayer, ...]
    total_depth: float
    implant: Implant | None = None
    inclusions: tuple[TissueInclusion, ...] = field(default_factory=tuple)
    name: str = "custom"
    tissue_class: str = "mixed"

    def __post_init__(self) -> None:
        object.__setattr__(self, "layers", tuple(self.layers))
        object.__setattr__(self, "inclusions", tuple(self.inclusions))

        if not self.layers:
            raise ValueError("TissueStack requires at least one layer")
        if self.total_depth <= 0:
            raise ValueError(f"total_depth must be positive, got {self.total_depth}")

        expected_depth = 0.0
        for layer in self.layers:
            if layer.thickness < 0:
                raise ValueError(
                    f"Layer '{layer.tissue_type.value}' has negative thickness "
                    f"({layer.thickness})"
                )
            if abs(layer.depth - expected_depth) > _DEPTH_TOLERANCE:
                raise ValueError(
                    f"Layer '{layer.tissue_type.value}' starts at {layer.depth}, "
                    f"expected {expected_depth} (layers must be contiguous)"
                )
            expected_depth = layer.bottom

    @property
    def bottom(self) -> float:
        """Depth where the deepest layer ends."""
        return self.layers[-1].bottom

    @property
    def has_metal_implant(self) -> bool:
        return self.implant is not None

    def layer_at(self, depth: float) -> TissueLayer:
        """
        Return the layer active at ``depth``.

        Depths beyond the stack resolve to the deepest layer.
        """
        for layer in self.layers:
            if layer.contains(depth):
                return layer
        return self.layers[-1]

    def find(self, tissue_type: TissueType | str) -> TissueLayer | None:
        """Return the first layer of a given type, or None."""
        tissue_type = TissueType(tissue_type)
        for layer in self.layers:
            if layer.tissue_type is tissue_type:
                return layer
        return None

    def thickness_of(self, tissue_type: TissueType | str) -> float:
        """Total thickness of all layers of a given type."""
        tissue_type = TissueType(tissue_type)
        return sum(
            layer.thickness for layer in self.layers if layer.tissue_type is tissue_type
        )

    def fraction_of(self, tissue_type: TissueType | str) -> float:
        """Thickness of a tissue relative to the block depth."""
        return self.thickness_of(tissue_type) / self.total_depth

    @property
    def bone_depth(self) -> float:
        """Depth where bone starts (block depth if the stack has no bone)."""
        bone = self.find(TissueType.BONE)
        return bone.depth if bone is not None else self.total_depth

    @property
    def bone_depth_fraction(self) -> float:
        return self.bone_depth / self.total_depth

    def metal_inclusions(self) -> tuple[TissueInclusion, ...]:
        return tuple(
            inc for inc in self.inclusions
            if inc.inclusion_type is TissueType.METAL_IMPLANT
        )


# =============================================================================
# Layer Builder
# =============================================================================


def build_layer_stack(
    skin: float,
    fat: float,
    muscle: float,
    bone_thickness: float | None = None,
    total_depth: float = ACOUSTIC_BLOCK_DEPTH_CM,
    implant: Implant | None = None,
    inclusions: tuple[TissueInclusion, ...] | list[TissueInclusion] = (),
    name: str = "custom",
    tissue_class: str = "mixed",
) -> TissueStack:
    """
    Build a skin/fat/muscle/bone stack using the stacked composition rule.

    Parameters
    ----------
    skin, fat, muscle : float
        Requested thicknesses. Negative values are treated as zero.
    bone_thickness : float, optional
        Bone thickness. If None, bone fills the block below muscle.
        Bone thinner than MIN_LAYER_THICKNESS is omitted.
    total_depth : float
        Block depth. Muscle is clamped so it ends no deeper than
        ``total_depth - bone_thickness``.

    Returns
    -------
    TissueStack
        Contiguous stack with clamped muscle.

    Examples
    --------
    >>> stack = build_layer_stack(0.2, 0.55, 0.5, bone_thickness=0.15, total_depth=1.0)
    >>> round(stack.bone_depth, 2)
    0.85
    >>> round(stack.thickness_of("muscle"), 2)
    0.1
    """
    skin = max(0.0, skin)
    fat = max(0.0, fat)
    muscle = max(0.0, muscle)

    skin_start = 0.0
    fat_start = skin_start + skin
    muscle_start = fat_start + fat

    bone_reserve = bone_thickness if bone_thickness is not None else 1.0
    bone_reserve = min(max(0.0, bone_reserve), total_depth)
    max_muscle_end = total_depth - bone_reserve
    muscle_end = min(muscle_start + muscle, max_muscle_end)
    actual_muscle = max(0.0, muscle_end - muscle_start)

    bone_start = muscle_start + actual_muscle
    if bone_thickness is not None:
        actual_bone = max(0.0, bone_thickness)
    else:
        actual_bone = max(0.0, total_depth - bone_start)

    layers = [
        TissueLayer.from_tissue(TissueType.SKIN, skin_start, skin),
        TissueLayer.from_tissue(TissueType.FAT, fat_start, fat),
        TissueLayer.from_tissue(TissueType.MUSCLE, muscle_start, actual_muscle),
    ]
    if actual_bone > MIN_LAYER_THICKNESS:
        layers.append(TissueLayer.from_tissue(TissueType.BONE, bone_start, actual_bone))

    return TissueStack(
        layers=tuple(layers),
        total_depth=total_depth,
        implant=implant,
        inclusions=tuple(inclusions),
        name=name,
        tissue_class=tissue_class,
    )


# =============================================================================
# Anatomical Presets (electrical stimulation, normalized depth)
# =============================================================================


ANATOMICAL_PRESETS: dict[str, dict[str, Any]] = {
    "forearm_slim": {
        "label": "Slim forearm",
        "description": "Little subcutaneous fat, moderate muscle, no implants.",
        "skin": 0.15,
        "fat": 0.10,
        "muscle": 0.55,
        "bone_depth": 0.80,
        "tissue_class": "soft",
    },
    "forearm_muscular": {
        "label": "Muscular forearm",
        "description": "Thick muscle layer, little fat, deeper bone.",
        "skin": 0.15,
        "fat": 0.05,
        "muscle": 0.70,
        "bone_depth": 0.90,
        "tissue_class": "muscular",
    },
    "thigh_obese_implant": {
        "label": "Obese thigh with prosthesis",
        "description": (
            "Thick fat and muscle with a metal implant at intermediate depth."
        ),
        "skin": 0.20,
        "fat": 0.55,
        "muscle": 0.50,
        "bone_depth": 0.85,
        "implant": {"depth": 0.55, "span": 0.80},
        "tissue_class": "mixed",
    },
    "ankle_bony": {
        "label": "Bony malleolar region",
        "description": (
            "Little fat and muscle, very superficial bone, higher risk of discomfort."
        ),
        "skin": 0.10,
        "fat": 0.05,
        "muscle": 0.20,
        "bone_depth": 0.30,
        "tissue_class": "soft",
    },
    "custom": {
        "label": "Custom",
        "description": "Manually adjusted skin, fat, muscle, bone and inclusions.",
        "skin": 0.15,
        "fat": 0.25,
        "muscle": 0.45,
        "bone_depth": 0.75,
        "tissue_class": "mixed",
    },
}


def _normalize_name(name: str) -> str:
    return name.lower().replace(" ", "_").replace("-", "_")


def stimulation_stack(
    skin: float,
    fat: float,
    muscle: float,
    bone_depth: float,
    implant: Implant | None = None,
    inclusions: tuple[TissueInclusion, ...] | list[TissueInclusion] = (),
    name: str = "custom",
    tissue_class: str = "mixed",
) -> TissueStack:
    """
    Build a normalized stack from relative thicknesses and bone depth.

    Bone occupies the block from ``bone_depth`` to 1.0; muscle is clamped
    so bone always starts no deeper than ``bone_depth``.
    """
    bone_depth = min(max(0.0, bone_depth), STIMULATION_BLOCK_DEPTH)
    return build_layer_stack(
        skin,
        fat,
        muscle,
        bone_thickness=STIMULATION_BLOCK_DEPTH - bone_depth,
        total_depth=STIMULATION_BLOCK_DEPTH,
        implant=implant,
        inclusions=inclusions,
        name=name,
        tissue_class=tissue_class,
    )


def get_anatomical_preset(name: str) -> TissueStack:
    """
    Build the normalized tissue stack of a named stimulation preset.

    Raises
    ------
    KeyError
        If the preset name is unknown.
    """
    key = _normalize_name(name)
    if key not in ANATOMICAL_PRESETS:
        available = ", ".join(ANATOMICAL_PRESETS)
        raise KeyError(f"Anatomical preset '{name}' not found. Available presets: {available}")

    preset = ANATOMICAL_PRESETS[key]
    implant = Implant(**preset["implant"]) if "implant" in preset else None
    return stimulation_stack(
        preset["skin"],
        preset["fat"],
        preset["muscle"],
        preset["bone_depth"],
        implant=implant,
        name=key,
        tissue_class=preset["tissue_class"],
    )


# =============================================================================
# Acoustic Scenarios (therapeutic ultrasound, centimetres)
# =============================================================================


ACOUSTIC_SCENARIOS: dict[str, dict[str, float]] = {
    "shoulder": {"skin": 0.2, "fat": 0.5, "muscle": 2.0, "bone_thickness": 1.0},
    "knee": {"skin": 0.2, "fat": 0.3, "muscle": 1.5, "bone_thickness": 1.0},
    "lumbar": {"skin": 0.2, "fat": 1.0, "muscle": 3.0, "bone_thickness": 0.0},
    "forearm": {"skin": 0.2, "fat": 0.2, "muscle": 1.0, "bone_thickness": 0.0},
    "custom": {"skin": 0.2, "fat": 0.5, "muscle": 2.0, "bone_thickness": 0.0},
}


def get_acoustic_scenario(name: str) -> TissueStack:
    """
    Build the centimetre tissue stack of a named ultrasound scenario.

    Raises
    ------
    KeyError
        If the scenario name is unknown.
    """
    key = _normalize_name(name)
    if key not in ACOUSTIC_SCENARIOS:
        available = ", ".join(ACOUSTIC_SCENARIOS)
        raise KeyError(f"Acoustic scenario '{name}' not found. Available scenarios: {available}")

    spec = ACOUSTIC_SCENARIOS[key]
    return build_layer_stack(
        spec["skin"],
        spec["fat"],
        spec["muscle"],
        bone_thickness=spec["bone_thickness"],
        total_depth=ACOUSTIC_BLOCK_DEPTH_CM,
        name=key,
    )
