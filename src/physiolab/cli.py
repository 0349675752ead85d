"""
PhysioLab Command Line

Runs one laboratory simulation from a preset or a saved lab document and
prints a summary.

Usage:
    physiolab tens --preset spread --tissue ankle_bony --intensity 60
    physiolab ultrasound --preset near_bone
    physiolab mri --preset t2_weighted --phantom knee
    physiolab ultrasound --document labs/session1.yaml --verbose
    physiolab mri --list-presets
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Any, Sequence

from physiolab import __version__
from physiolab.config import load_config, merge_with_defaults
from physiolab.logging_config import setup_logging
from physiolab.physics.tissue import ANATOMICAL_PRESETS, get_anatomical_preset
from physiolab.presets import (
    electrode_config_from_placement,
    from_document,
    get_preset_names_and_descriptions,
    load_lab_document,
    mri_params_from_preset,
    save_lab_document,
    tissue_from_document,
    to_document,
    ultrasound_params_from_preset,
)
from physiolab.simulation import (
    ElectrodePlacement,
    FieldParams,
    FieldResult,
    LoggingTrace,
    MRIParams,
    MRIResult,
    ThermalParams,
    ThermalResult,
    simulate_mri,
    simulate_tens_field,
    resolve_tissue_stack,
    simulate_ultrasound_therapy,
)
from physiolab.validation import validate_params

logger = logging.getLogger(__name__)

DEFAULT_PRESETS = {
    "tens": "default",
    "ultrasound": "deep_heating",
    "mri": "t1_weighted",
}


# =============================================================================
# Argument Parsing
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="physiolab",
        description="Virtual physiotherapy laboratories: TENS, therapeutic ultrasound, MRI.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--preset", default=None, help="Preset to load")
    common.add_argument("--document", default=None, help="Lab document (.yaml or .json) to load")
    common.add_argument("--config", default=None, help="YAML config file")
    common.add_argument("--save", default=None, help="Write the validated parameters to a lab document")
    common.add_argument("--list-presets", action="store_true", help="List presets and exit")
    common.add_argument("--verbose", "-v", action="store_true", help="Log engine trace events")

    subparsers = parser.add_subparsers(dest="lab", required=True)

    tens = subparsers.add_parser("tens", parents=[common], help="Electrical stimulation lab")
    tens.add_argument("--tissue", default=None, help="Anatomical preset")
    tens.add_argument("--frequency", type=float, default=None, help="Frequency (Hz)")
    tens.add_argument("--pulse-width", type=float, default=None, help="Pulse width (us)")
    tens.add_argument("--intensity", type=float, default=None, help="Intensity (mA)")

    ultrasound = subparsers.add_parser("ultrasound", parents=[common], help="Therapeutic ultrasound lab")
    ultrasound.add_argument("--scenario", default=None, help="Acoustic scenario")
    ultrasound.add_argument("--intensity", type=float, default=None, help="Intensity (W/cm2)")
    ultrasound.add_argument("--duration", type=float, default=None, help="Duration (min)")

    mri = subparsers.add_parser("mri", parents=[common], help="MRI lab")
    mri.add_argument("--phantom", default="brain", help="Phantom type (brain, knee, abdomen)")
    mri.add_argument("--slice", type=int, default=None, help="Slice index")

    return parser


# =============================================================================
# Parameter Assembly
# =============================================================================


def _overrides(args: argparse.Namespace, mapping: dict[str, str]) -> dict[str, Any]:
    values = {}
    for arg_name, field_name in mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            values[field_name] = value
    return values


def _field_params_from_config(preset: str, config: dict[str, Any]) -> FieldParams:
    defaults = config["tens"]["electrodes"]
    electrodes = electrode_config_from_placement(
        preset, size_cm=defaults["size_cm"], shape=defaults["shape"]
    )
    if electrodes.placement is ElectrodePlacement.DEFAULT:
        electrodes = dataclasses.replace(electrodes, distance_cm=defaults["distance_cm"])
    return FieldParams(electrodes=electrodes)


def _params_from_args(args: argparse.Namespace, config: dict[str, Any]) -> Any:
    if args.document:
        document = load_lab_document(args.document)
        if document.get("lab_type") != args.lab:
            raise ValueError(
                f"Document {args.document} is a '{document.get('lab_type')}' lab, "
                f"not '{args.lab}'"
            )
        params = from_document(document)
    else:
        preset = args.preset or DEFAULT_PRESETS[args.lab]
        if args.lab == "tens":
            params = _field_params_from_config(preset, config)
        elif args.lab == "ultrasound":
            params = ultrasound_params_from_preset(preset)
        else:
            params = mri_params_from_preset(preset, phantom_type=args.phantom)

    if args.lab == "tens":
        changes = _overrides(
            args,
            {"frequency": "frequency_hz", "pulse_width": "pulse_width_us", "intensity": "intensity_ma"},
        )
    elif args.lab == "ultrasound":
        changes = _overrides(
            args,
            {"scenario": "scenario", "intensity": "intensity_w_cm2", "duration": "duration_min"},
        )
    else:
        changes = _overrides(args, {"slice": "slice_index"})
    return dataclasses.replace(params, **changes) if changes else params


def _tissue_from_args(args: argparse.Namespace, config: dict[str, Any]):
    if args.tissue:
        return args.tissue, get_anatomical_preset(args.tissue)
    if args.document:
        document = load_lab_document(args.document)
        name = None if document.get("tissue") else document.get("tissue_preset")
        return name, tissue_from_document(document)
    name = config["tens"].get("tissue_preset", "forearm_slim")
    return name, get_anatomical_preset(name)


# =============================================================================
# Summaries
# =============================================================================


def _print_risk(level: str, messages: Sequence[str]) -> None:
    print(f"  Risk level:            {level}")
    for message in messages:
        print(f"    - {message}")


def print_field_summary(result: FieldResult, tissue_name: str | None) -> None:
    print(f"TENS field ({tissue_name or 'custom tissue'})")
    print(f"  Field at skin:         {result.e_peak_skin_v_cm:.2f} V/cm")
    print(f"  Field at target:       {result.e_peak_target_v_cm:.2f} V/cm")
    print(f"  Field spread:          {result.field_spread_cm:.1f} cm")
    print(f"  Activation depth:      {result.activation_depth_mm:.1f} mm")
    print(f"  Activated area:        {result.activated_area_cm2:.1f} cm2")
    print(f"  Sensory / motor:       {result.sensory_activation:.0f} / {result.motor_activation:.0f}")
    print(f"  Comfort:               {result.comfort_score:.0f} ({result.comfort_message})")
    print(f"  Risk score:            {result.risk_score:.0f}")
    _print_risk(result.risk_level.value, result.risk_messages)
    print(f"  {result.distance_explanation}")


def print_thermal_summary(result: ThermalResult, params: ThermalParams) -> None:
    print(f"Therapeutic ultrasound ({params.scenario})")
    print(f"  Power / energy:        {result.power_w:.2f} W / {result.energy_j:.0f} J")
    print(f"  Dose:                  {result.dose_j_cm2:.1f} J/cm2, {result.dose_category.label}")
    print(f"  Effective depth:       {result.effective_depth_cm:.1f} cm")
    print(f"  Penetration depth:     {result.penetration_depth_cm:.1f} cm")
    print(f"  Surface / target temp: {result.surface_temp_c:.1f} / {result.target_temp_c:.1f} C")
    print(f"  Max temp:              {result.max_temp_c:.1f} C at {result.max_temp_depth_cm:.1f} cm")
    print(f"  CEM43 (target/cum.):   {result.thermal_dose_cem43:.3f} / {result.cumulative_dose_cem43:.3f}")
    print(f"  Beam width / area:     {result.beam_width_cm:.2f} cm / {result.treated_area_cm2:.1f} cm2")
    print(f"  Periosteal risk:       {result.periosteal_risk:.2f}")
    _print_risk(result.risk_level.value, result.risk_messages)


def print_mri_summary(result: MRIResult, params: MRIParams) -> None:
    volume = result.volume
    signal = result.signal
    print(f"MRI {params.sequence_type.value} (TR={params.tr_ms:.0f} ms, TE={params.te_ms:.0f} ms)")
    print(f"  Phantom:               {volume.phantom_type.value} {volume.width}x{volume.height}x{volume.depth}")
    print(f"  Signal mean/min/max:   {signal.mean_signal:.3f} / {signal.min_signal:.3f} / {signal.max_signal:.3f}")
    for tissue, value in sorted(signal.tissue_signals.items(), key=lambda item: -item[1]):
        print(f"    {tissue:<14} {value:.3f}")
    print(f"  Slice shown:           {result.slice.index}")
    for factor in signal.risk_factors:
        print(f"  ! {factor}")
    for recommendation in signal.recommendations:
        print(f"  > {recommendation}")


# =============================================================================
# Entry Point
# =============================================================================


def _list_presets(lab: str) -> None:
    for key, name, description in get_preset_names_and_descriptions(lab):
        print(f"{key:<24} {name}: {description}")
    if lab == "tens":
        print()
        print("Tissue presets:")
        for key, preset in ANATOMICAL_PRESETS.items():
            print(f"{key:<24} {preset['label']}: {preset['description']}")


def run(args: argparse.Namespace) -> int:
    config = merge_with_defaults(load_config(args.config))
    setup_logging(
        logging.DEBUG if args.verbose else config["logging"].get("level", "INFO"),
        config["logging"].get("file"),
    )

    if args.list_presets:
        _list_presets(args.lab)
        return 0

    params = _params_from_args(args, config)
    validation = validate_params(params, config)
    for warning in validation.warnings:
        logger.warning(warning)
    if not validation.is_valid:
        for error in validation.errors:
            logger.error(error)
        for suggestion in validation.recovery_suggestions:
            logger.info("Suggestion: %s", suggestion)
        return 2
    params = validation.params

    trace = LoggingTrace(logging.getLogger("physiolab.trace")) if args.verbose else None

    tissue_name, tissue = None, None
    if args.lab == "tens":
        tissue_name, tissue = _tissue_from_args(args, config)
        print_field_summary(simulate_tens_field(params, tissue, trace=trace), tissue_name)
    elif args.lab == "ultrasound":
        tissue = resolve_tissue_stack(
            params, block_depth_cm=float(config["ultrasound"]["block_depth_cm"])
        )
        result = simulate_ultrasound_therapy(params, tissue, trace=trace)
        print_thermal_summary(result, params)
    else:
        mri_config = config["mri"]
        if params.window is None and mri_config.get("window") is not None:
            params = dataclasses.replace(
                params, window=mri_config["window"], level=mri_config.get("level")
            )
        phantom = mri_config["phantom"]
        resolution = (int(phantom["width"]), int(phantom["height"]), int(phantom["depth"]))
        print_mri_summary(simulate_mri(params, resolution=resolution, trace=trace), params)

    if args.save:
        custom_tissue = tissue if args.lab == "tens" and tissue_name is None else None
        document = to_document(params, tissue_preset=tissue_name, tissue=custom_tissue)
        save_lab_document(document, args.save)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Console entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return run(args)
    except (KeyError, ValueError, OSError) as exc:
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
        print(f"physiolab: error: {message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
