"""
Command Line Tests

Runs the console entry point end to end for each laboratory.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from physiolab import cli
from physiolab.cli import build_parser, main
from physiolab.config import get_default_config, save_config
from physiolab.presets import load_lab_document


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("physiolab")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def small_config(tmp_path: Path) -> Path:
    config = get_default_config()
    config["mri"]["phantom"] = {"width": 16, "height": 16, "depth": 8}
    path = tmp_path / "small.yaml"
    save_config(config, path)
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_lab_is_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_common_options_on_every_lab(self) -> None:
        parser = build_parser()
        for lab in ("tens", "ultrasound", "mri"):
            args = parser.parse_args([lab, "--preset", "x", "--verbose"])
            assert args.lab == lab
            assert args.preset == "x"
            assert args.verbose is True

    def test_mri_defaults(self) -> None:
        args = build_parser().parse_args(["mri"])
        assert args.phantom == "brain"
        assert args.slice is None


class TestLabs:
    """End-to-end runs of each laboratory."""

    def test_tens(self, capsys) -> None:
        code = main(["tens", "--tissue", "ankle_bony", "--intensity", "30"])
        out = capsys.readouterr().out
        assert code == 0
        assert "TENS field (ankle_bony)" in out
        assert "Risk level:" in out

    def test_tens_default_tissue_from_config(self, capsys) -> None:
        assert main(["tens", "--preset", "spread"]) == 0
        assert "TENS field (forearm_slim)" in capsys.readouterr().out

    def test_ultrasound(self, capsys) -> None:
        assert main(["ultrasound", "--preset", "near_bone"]) == 0
        out = capsys.readouterr().out
        assert "Therapeutic ultrasound (knee)" in out
        assert "Dose:" in out

    def test_ultrasound_overrides_are_clamped(self, capsys) -> None:
        assert main(["ultrasound", "--intensity", "9", "--duration", "5"]) == 0
        out = capsys.readouterr().out
        assert "RANGE WARNING" in out
        assert "24.00 W" in out

    def test_mri(self, capsys, small_config: Path) -> None:
        code = main(["mri", "--preset", "t2_weighted", "--phantom", "knee", "--config", str(small_config)])
        out = capsys.readouterr().out
        assert code == 0
        assert "knee 16x16x8" in out
        slice_line = next(line for line in out.splitlines() if "Slice shown:" in line)
        assert slice_line.split()[-1] == "4"

    def test_verbose_logs_trace_events(self, capsys, small_config: Path) -> None:
        assert main(["mri", "--config", str(small_config), "--verbose"]) == 0
        out = capsys.readouterr().out
        assert "physiolab.trace" in out
        assert "mri.signal" in out


class TestConfigSettings:
    """Config sections that shape the simulated setup."""

    @pytest.fixture
    def electrode_config(self, tmp_path: Path) -> Path:
        config = get_default_config()
        config["tens"]["electrodes"] = {"distance_cm": 9.0, "size_cm": 3.0, "shape": "rectangular"}
        path = tmp_path / "electrodes.yaml"
        save_config(config, path)
        return path

    def test_electrode_defaults_from_config(self, tmp_path: Path, electrode_config: Path) -> None:
        path = tmp_path / "tens.json"
        assert main(["tens", "--config", str(electrode_config), "--save", str(path)]) == 0

        electrodes = load_lab_document(path)["params"]["electrodes"]
        assert electrodes["distance_cm"] == 9.0
        assert electrodes["size_cm"] == 3.0
        assert electrodes["shape"] == "rectangular"

    def test_placement_preset_keeps_its_distance(self, tmp_path: Path, electrode_config: Path) -> None:
        path = tmp_path / "tens.json"
        args = ["tens", "--preset", "spread", "--config", str(electrode_config), "--save", str(path)]
        assert main(args) == 0

        electrodes = load_lab_document(path)["params"]["electrodes"]
        assert electrodes["distance_cm"] == 10.0
        assert electrodes["size_cm"] == 3.0

    def test_block_depth_from_config(self, monkeypatch, tmp_path: Path) -> None:
        config = get_default_config()
        config["ultrasound"]["block_depth_cm"] = 10.0
        config_path = tmp_path / "deep.yaml"
        save_config(config, config_path)

        document = tmp_path / "custom.json"
        document.write_text(
            json.dumps(
                {
                    "lab_type": "ultrasound",
                    "params": {
                        "scenario": "custom",
                        "custom_thicknesses": {"skin": 0.2, "fat": 1.0, "muscle": 2.0},
                    },
                }
            ),
            encoding="utf-8",
        )

        stacks = []
        simulate = cli.simulate_ultrasound_therapy

        def recording_simulate(params, tissue=None, trace=None):
            stacks.append(tissue)
            return simulate(params, tissue, trace=trace)

        monkeypatch.setattr(cli, "simulate_ultrasound_therapy", recording_simulate)
        args = ["ultrasound", "--document", str(document), "--config", str(config_path)]
        assert main(args) == 0
        assert stacks[0].total_depth == pytest.approx(10.0)


class TestPresetListing:
    """Tests for --list-presets."""

    def test_list_ultrasound_presets(self, capsys) -> None:
        assert main(["ultrasound", "--list-presets"]) == 0
        out = capsys.readouterr().out
        assert "deep_heating" in out
        assert "unsafe_example" in out

    def test_list_tens_presets_includes_tissues(self, capsys) -> None:
        assert main(["tens", "--list-presets"]) == 0
        out = capsys.readouterr().out
        assert "Tissue presets:" in out
        assert "thigh_obese_implant" in out


class TestDocuments:
    """Saving and reloading lab documents from the command line."""

    def test_save_then_load(self, capsys, tmp_path: Path) -> None:
        path = tmp_path / "session.yaml"
        assert main(["tens", "--tissue", "ankle_bony", "--intensity", "45", "--save", str(path)]) == 0

        document = load_lab_document(path)
        assert document["lab_type"] == "tens"
        assert document["tissue_preset"] == "ankle_bony"
        assert document["params"]["intensity_ma"] == 45.0

        capsys.readouterr()
        assert main(["tens", "--document", str(path)]) == 0
        assert "TENS field (ankle_bony)" in capsys.readouterr().out

    def test_custom_tissue_survives_resave(self, capsys, tmp_path: Path) -> None:
        source = tmp_path / "custom.json"
        tissue = {"skin": 0.1, "fat": 0.5, "muscle": 0.3, "bone_depth": 0.9,
                  "implant": {"depth": 0.7, "span": 0.5}}
        source.write_text(
            json.dumps({"lab_type": "tens", "params": {}, "tissue": tissue}), encoding="utf-8"
        )
        copy = tmp_path / "copy.json"
        assert main(["tens", "--document", str(source), "--save", str(copy)]) == 0
        assert "TENS field (custom tissue)" in capsys.readouterr().out

        saved = load_lab_document(copy)
        assert "tissue_preset" not in saved
        assert saved["tissue"]["fat"] == pytest.approx(0.5)
        assert saved["tissue"]["implant"] == {"depth": 0.7, "span": 0.5}

    def test_lab_mismatch(self, capsys, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        assert main(["ultrasound", "--save", str(path)]) == 0

        assert main(["mri", "--document", str(path)]) == 2
        assert "not 'mri'" in capsys.readouterr().err


class TestErrors:
    """Failures reported through the exit code."""

    def test_unknown_preset(self, capsys) -> None:
        assert main(["ultrasound", "--preset", "cryotherapy"]) == 2
        err = capsys.readouterr().err
        assert err.startswith("physiolab: error:")
        assert "Available presets" in err

    def test_missing_document(self, capsys, tmp_path: Path) -> None:
        assert main(["mri", "--document", str(tmp_path / "missing.json")]) == 2

    def test_invalid_parameters(self, capsys, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(
            json.dumps({"lab_type": "mri", "params": {"tr_ms": 100.0, "te_ms": 150.0}}),
            encoding="utf-8",
        )
        assert main(["mri", "--document", str(path)]) == 2
        assert "INCONSISTENT TIMING" in capsys.readouterr().out
