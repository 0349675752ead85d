"""
Preset Registry and Lab Document Tests

Validates preset lookup, the parameter builders and the JSON/YAML lab
document codec.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from physiolab.physics.tissue import Implant, TissueInclusion, TissueType, stimulation_stack
from physiolab.simulation.mri import MRIParams, PhantomType
from physiolab.simulation.tens_field import (
    ElectrodeConfig,
    ElectrodePlacement,
    FieldParams,
    StimulationMode,
)
from physiolab.simulation.ultrasound_therapy import (
    CustomThicknesses,
    MixedLayer,
    ThermalParams,
    UltrasoundMode,
)
from physiolab.presets import (
    MRI_PRESETS,
    ULTRASOUND_PRESETS,
    electrode_config_from_placement,
    field_params_from_placement,
    from_document,
    get_preset_names_and_descriptions,
    get_ultrasound_preset,
    list_presets,
    load_lab_document,
    mri_params_from_preset,
    save_lab_document,
    tissue_from_document,
    to_document,
    ultrasound_params_from_preset,
)


# =============================================================================
# Preset Registries
# =============================================================================


class TestPresetRegistry:
    """Tests for preset lookup."""

    def test_list_presets(self) -> None:
        assert list_presets("mri") == ["t1_weighted", "t2_weighted", "proton_density"]
        assert "unsafe_example" in list_presets("ultrasound")
        assert "spread" in list_presets("tens")

    def test_list_presets_unknown_lab(self) -> None:
        with pytest.raises(KeyError, match="Available"):
            list_presets("xray")

    def test_lookup_normalizes_name(self) -> None:
        preset = get_ultrasound_preset("Deep Heating")
        assert preset["params"]["scenario"] == "lumbar"

    def test_lookup_returns_copy(self) -> None:
        preset = get_ultrasound_preset("near_bone")
        preset["params"]["intensity_w_cm2"] = 3.0
        assert ULTRASOUND_PRESETS["near_bone"]["params"]["intensity_w_cm2"] == 0.8

    def test_unknown_preset_lists_available(self) -> None:
        with pytest.raises(KeyError, match="deep_heating"):
            get_ultrasound_preset("cryotherapy")

    def test_every_preset_has_description(self) -> None:
        for lab_type in ("tens", "ultrasound", "mri"):
            for key, name, description in get_preset_names_and_descriptions(lab_type):
                assert key and name and description


class TestParameterBuilders:
    """Tests for building parameter objects from presets."""

    @pytest.mark.parametrize("name", list(ULTRASOUND_PRESETS))
    def test_every_ultrasound_preset_builds(self, name: str) -> None:
        params = ultrasound_params_from_preset(name)
        assert isinstance(params, ThermalParams)
        assert params.scenario == ULTRASOUND_PRESETS[name]["params"]["scenario"]

    def test_enum_fields_coerced(self) -> None:
        params = ultrasound_params_from_preset("unsafe_example")
        assert params.movement.value == "stationary"
        assert params.mode is UltrasoundMode.CONTINUOUS

    @pytest.mark.parametrize("name", list(MRI_PRESETS))
    def test_every_mri_preset_builds(self, name: str) -> None:
        params = mri_params_from_preset(name, phantom_type="knee")
        assert params.preset == name
        assert params.phantom_type is PhantomType.KNEE
        assert params.te_ms < params.tr_ms

    @pytest.mark.parametrize(
        "name,distance",
        [("default", 6.0), ("muscle_target", 5.0), ("superficial", 3.0), ("spread", 10.0)],
    )
    def test_placement_distances(self, name: str, distance: float) -> None:
        electrodes = electrode_config_from_placement(name)
        assert electrodes.distance_cm == distance
        assert electrodes.placement is ElectrodePlacement(name)

    def test_field_params_from_placement_overrides(self) -> None:
        params = field_params_from_placement("spread", intensity_ma=35.0)
        assert params.intensity_ma == 35.0
        assert params.electrodes.distance_cm == 10.0


# =============================================================================
# Lab Documents
# =============================================================================


class TestLabDocuments:
    """Tests for the document codec."""

    def test_field_document_round_trip(self) -> None:
        params = FieldParams(
            intensity_ma=30.0,
            mode=StimulationMode.BURST,
            electrodes=ElectrodeConfig(distance_cm=8.0, shape="rectangular"),
        )
        document = to_document(params, tissue_preset="ankle_bony")
        assert document["lab_type"] == "tens"
        assert document["tissue_preset"] == "ankle_bony"
        assert document["params"]["mode"] == "burst"
        assert document["params"]["electrodes"]["shape"] == "rectangular"
        assert from_document(document) == params

    def test_thermal_document_round_trip(self) -> None:
        params = ThermalParams(
            scenario="custom",
            custom_thicknesses=CustomThicknesses(skin=0.2, fat=1.0, muscle=2.0),
            mixed_layer=MixedLayer(depth_cm=1.5, division_pct=30.0),
            transducer_x=0.4,
        )
        document = to_document(params)
        assert "tissue_preset" not in document
        assert from_document(document) == params

    def test_mri_document_round_trip(self) -> None:
        params = MRIParams(tr_ms=3000.0, te_ms=100.0, phantom_type="abdomen", slice_index=4)
        document = to_document(params)
        assert document["params"]["phantom_type"] == "abdomen"
        assert from_document(document) == params

    def test_to_document_rejects_other_objects(self) -> None:
        with pytest.raises(TypeError):
            to_document({"tr_ms": 500})

    def test_unknown_lab_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown lab_type"):
            from_document({"lab_type": "xray", "params": {}})

    def test_missing_params(self) -> None:
        with pytest.raises(ValueError, match="params"):
            from_document({"lab_type": "mri"})

    def test_unknown_field(self) -> None:
        with pytest.raises(ValueError, match="MRIParams"):
            from_document({"lab_type": "mri", "params": {"magnet_t": 3.0}})

    def test_invalid_enum_value(self) -> None:
        with pytest.raises(ValueError):
            from_document({"lab_type": "ultrasound", "params": {"mode": "burst"}})

    def test_partial_params_use_defaults(self) -> None:
        params = from_document({"lab_type": "tens", "params": {"intensity_ma": 45.0}})
        assert params == FieldParams(intensity_ma=45.0)

    def test_tissue_from_document(self) -> None:
        assert tissue_from_document({"lab_type": "tens", "params": {}}).name == "forearm_slim"
        document = {"lab_type": "tens", "params": {}, "tissue_preset": "thigh_obese_implant"}
        assert tissue_from_document(document).implant is not None

    def test_custom_tissue_round_trip(self, tmp_path: Path) -> None:
        stack = stimulation_stack(
            0.12,
            0.30,
            0.40,
            0.85,
            implant=Implant(depth=0.6, span=0.4),
            inclusions=(TissueInclusion("metal_implant", depth=0.5, span=0.2, position=0.3),),
            tissue_class="mixed",
        )
        path = tmp_path / "custom.yaml"
        save_lab_document(to_document(FieldParams(), tissue=stack), path)

        rebuilt = tissue_from_document(load_lab_document(path))
        assert rebuilt.implant == stack.implant
        assert rebuilt.inclusions == stack.inclusions
        assert rebuilt.metal_inclusions()[0].inclusion_type is TissueType.METAL_IMPLANT
        assert [layer.tissue_type for layer in rebuilt.layers] == [
            layer.tissue_type for layer in stack.layers
        ]
        for original, copy in zip(stack.layers, rebuilt.layers):
            assert copy.depth == pytest.approx(original.depth)
            assert copy.thickness == pytest.approx(original.thickness)

    def test_custom_tissue_without_bone(self) -> None:
        stack = stimulation_stack(0.2, 0.3, 0.5, 1.0)
        document = to_document(FieldParams(), tissue=stack)
        assert document["tissue"]["bone_depth"] == pytest.approx(1.0)
        assert document["tissue"]["implant"] is None
        assert tissue_from_document(document).find(TissueType.BONE) is None

    def test_custom_tissue_wins_over_preset(self) -> None:
        stack = stimulation_stack(0.1, 0.6, 0.2, 0.9)
        document = to_document(FieldParams(), tissue_preset="ankle_bony", tissue=stack)
        assert tissue_from_document(document).fraction_of(TissueType.FAT) == pytest.approx(0.6)

    def test_custom_tissue_missing_layers(self) -> None:
        document = {"lab_type": "tens", "params": {}, "tissue": {"skin": 0.1, "fat": 0.2}}
        with pytest.raises(ValueError, match="muscle, bone_depth"):
            tissue_from_document(document)

    def test_ultrasound_documents_ignore_tissue(self) -> None:
        document = to_document(ThermalParams(), tissue=stimulation_stack(0.1, 0.2, 0.3, 0.8))
        assert "tissue" not in document


class TestDocumentFiles:
    """Tests for saving and loading documents."""

    @pytest.mark.parametrize("suffix", [".json", ".yaml"])
    def test_save_and_load(self, tmp_path: Path, suffix: str) -> None:
        params = ultrasound_params_from_preset("near_bone")
        path = tmp_path / "labs" / f"session{suffix}"
        save_lab_document(to_document(params), path)

        assert path.exists()
        assert from_document(load_lab_document(path)) == params

    def test_json_file_is_plain_json(self, tmp_path: Path) -> None:
        path = tmp_path / "mri.json"
        save_lab_document(to_document(MRIParams()), path)
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        assert raw["lab_type"] == "mri"
        assert raw["params"]["sequence_type"] == "spin_echo"

    def test_load_rejects_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_lab_document(path)

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_lab_document(tmp_path / "missing.json")
