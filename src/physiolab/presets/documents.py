"""
Lab Documents - JSON-shaped Persistence of Laboratory Parameters

A lab document is a plain dict keyed by laboratory type:

    {"lab_type": "ultrasound", "params": {"frequency_mhz": 1.1, ...}}

Electrical stimulation documents may also name the tissue preset the
parameters were tuned for (``"tissue_preset"``) or carry a hand-built
normalized stack (``"tissue"``). The engines never see documents; they
only see the parameter objects built from them.

Usage:
    from physiolab.presets.documents import to_document, from_document

    doc = to_document(ThermalParams(intensity_w_cm2=1.5))
    params = from_document(doc)
"""

from __future__ import annotations

import dataclasses
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Union

import yaml

from physiolab.physics.tissue import (
    Implant,
    TissueInclusion,
    TissueStack,
    TissueType,
    get_anatomical_preset,
    stimulation_stack,
)
from physiolab.simulation.mri import MRIParams
from physiolab.simulation.tens_field import ElectrodeConfig, FieldParams
from physiolab.simulation.ultrasound_therapy import (
    CustomThicknesses,
    MixedLayer,
    ThermalParams,
)

logger = logging.getLogger(__name__)

LabParams = Union[FieldParams, ThermalParams, MRIParams]

LAB_TYPES: dict[type, str] = {
    FieldParams: "tens",
    ThermalParams: "ultrasound",
    MRIParams: "mri",
}

DEFAULT_TISSUE_PRESET = "forearm_slim"


def _plain(value: Any) -> Any:
    """Convert enums and containers to JSON/YAML-safe values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def tissue_to_mapping(tissue: TissueStack) -> dict[str, Any]:
    """
    Plain mapping of a normalized stimulation stack.

    ``bone_depth`` is where the bone reserve starts, so rebuilding with
    :func:`stimulation_stack` gives back the same layers.
    """
    return {
        "skin": tissue.thickness_of(TissueType.SKIN),
        "fat": tissue.thickness_of(TissueType.FAT),
        "muscle": tissue.thickness_of(TissueType.MUSCLE),
        "bone_depth": tissue.total_depth - tissue.thickness_of(TissueType.BONE),
        "implant": _plain(dataclasses.asdict(tissue.implant)) if tissue.implant else None,
        "inclusions": [_plain(dataclasses.asdict(inc)) for inc in tissue.inclusions],
        "name": tissue.name,
        "tissue_class": tissue.tissue_class,
    }


def tissue_from_mapping(values: dict[str, Any]) -> TissueStack:
    """
    Rebuild a stack written by :func:`tissue_to_mapping`.

    Raises
    ------
    ValueError
        If a layer value is missing or an entry has unknown fields.
    """
    missing = [key for key in ("skin", "fat", "muscle", "bone_depth") if key not in values]
    if missing:
        raise ValueError(f"Tissue mapping is missing: {', '.join(missing)}")

    implant = values.get("implant")
    return stimulation_stack(
        float(values["skin"]),
        float(values["fat"]),
        float(values["muscle"]),
        float(values["bone_depth"]),
        implant=_build(Implant, dict(implant)) if implant else None,
        inclusions=[_build(TissueInclusion, dict(inc)) for inc in values.get("inclusions") or ()],
        name=values.get("name", "custom"),
        tissue_class=values.get("tissue_class", "mixed"),
    )


def to_document(
    params: LabParams,
    tissue_preset: str | None = None,
    tissue: TissueStack | None = None,
) -> dict[str, Any]:
    """
    Convert a parameter object to a lab document.

    Parameters
    ----------
    params : FieldParams, ThermalParams or MRIParams
        Parameters to serialize.
    tissue_preset : str, optional
        Anatomical preset name, stored for electrical stimulation only.
    tissue : TissueStack, optional
        Hand-built normalized stack, stored for electrical stimulation only.
        Takes precedence over ``tissue_preset`` when the document is read.

    Raises
    ------
    TypeError
        If ``params`` is not a laboratory parameter object.

    Examples
    --------
    >>> to_document(MRIParams())["lab_type"]
    'mri'
    """
    lab_type = LAB_TYPES.get(type(params))
    if lab_type is None:
        raise TypeError(f"Cannot build a lab document from {type(params).__name__}")

    document: dict[str, Any] = {
        "lab_type": lab_type,
        "params": _plain(dataclasses.asdict(params)),
    }
    if lab_type == "tens" and tissue_preset is not None:
        document["tissue_preset"] = tissue_preset
    if lab_type == "tens" and tissue is not None:
        document["tissue"] = tissue_to_mapping(tissue)
    return document


def _build(cls: type, values: dict[str, Any]) -> Any:
    try:
        return cls(**values)
    except TypeError as exc:
        raise ValueError(f"Invalid parameters for {cls.__name__}: {exc}") from exc


def from_document(document: dict[str, Any]) -> LabParams:
    """
    Build the parameter object described by a lab document.

    Raises
    ------
    ValueError
        If the lab type is unknown, ``params`` is missing or not a mapping,
        or contains unknown fields or invalid enum values.
    """
    lab_type = document.get("lab_type")
    params = document.get("params")
    if lab_type not in LAB_TYPES.values():
        raise ValueError(
            f"Unknown lab_type {lab_type!r}. Expected one of: "
            f"{', '.join(LAB_TYPES.values())}"
        )
    if not isinstance(params, dict):
        raise ValueError(f"Lab document for '{lab_type}' has no 'params' mapping")

    values = dict(params)
    if lab_type == "tens":
        electrodes = values.pop("electrodes", None) or {}
        values["electrodes"] = _build(ElectrodeConfig, dict(electrodes))
        return _build(FieldParams, values)

    if lab_type == "ultrasound":
        if values.get("custom_thicknesses") is not None:
            values["custom_thicknesses"] = _build(
                CustomThicknesses, dict(values["custom_thicknesses"])
            )
        if values.get("mixed_layer") is not None:
            values["mixed_layer"] = _build(MixedLayer, dict(values["mixed_layer"]))
        return _build(ThermalParams, values)

    return _build(MRIParams, values)


def tissue_from_document(document: dict[str, Any]) -> TissueStack:
    """
    Tissue stack of an electrical stimulation document.

    A stored ``tissue`` mapping wins over ``tissue_preset``; with neither,
    the default anatomical preset is used.
    """
    if document.get("tissue"):
        return tissue_from_mapping(document["tissue"])
    return get_anatomical_preset(document.get("tissue_preset") or DEFAULT_TISSUE_PRESET)


def save_lab_document(document: dict[str, Any], path: str | Path) -> None:
    """
    Write a lab document as JSON (``.json``) or YAML (any other suffix).

    Parent directories are created as needed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            json.dump(document, f, indent=2)
        else:
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
    logger.info("Saved %s lab document to %s", document.get("lab_type"), path)


def load_lab_document(path: str | Path) -> dict[str, Any]:
    """
    Read a lab document written by :func:`save_lab_document`.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file does not hold a mapping.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            document = json.load(f)
        else:
            document = yaml.safe_load(f)

    if not isinstance(document, dict):
        raise ValueError(f"Lab document {path} does not contain a mapping")
    return document
