"""
Therapeutic Ultrasound Engine Tests

Validates dose arithmetic, layered attenuation, depth landmarks, bone
interaction, risk escalation and the thermal timeline.
"""

from __future__ import annotations

import numpy as np
import pytest

from physiolab.physics.constants import REPORTED_TEMPERATURE_RANGE_C
from physiolab.physics.tissue import get_acoustic_scenario
from physiolab.presets import ULTRASOUND_PRESETS, ultrasound_params_from_preset
from physiolab.simulation.risk import RiskLevel
from physiolab.simulation.tracing import RecordingTrace
from physiolab.simulation.ultrasound_therapy import (
    CustomThicknesses,
    DoseCategory,
    MixedLayer,
    ThermalParams,
    UltrasoundMode,
    assess_thermal_risk,
    bone_interaction,
    cem43,
    classify_dose,
    find_depth_landmarks,
    frequency_factor,
    intensity_at_depth,
    resolve_tissue_stack,
    simulate_ultrasound_therapy,
    thermal_timeline,
)


class TestDose:
    """Tests for power, energy and dose arithmetic."""

    def test_reference_session(self) -> None:
        """1 W/cm2 over 5 cm2 for 5 minutes, continuous."""
        params = ThermalParams(intensity_w_cm2=1.0, era_cm2=5.0, duration_min=5.0)
        result = simulate_ultrasound_therapy(params)

        assert result.power_w == pytest.approx(5.0)
        assert result.energy_j == pytest.approx(1500.0)
        assert result.dose_j_cm2 == pytest.approx(300.0)
        assert result.dose_category is DoseCategory.HIGH

    def test_dose_linear_in_intensity_and_duration(self) -> None:
        base = simulate_ultrasound_therapy(ThermalParams(intensity_w_cm2=0.5, duration_min=4.0))
        double_i = simulate_ultrasound_therapy(ThermalParams(intensity_w_cm2=1.0, duration_min=4.0))
        double_t = simulate_ultrasound_therapy(ThermalParams(intensity_w_cm2=0.5, duration_min=8.0))
        assert double_i.dose_j_cm2 == pytest.approx(2 * base.dose_j_cm2)
        assert double_t.dose_j_cm2 == pytest.approx(2 * base.dose_j_cm2)

    def test_pulsed_mode_scales_by_duty_cycle(self) -> None:
        continuous = simulate_ultrasound_therapy(ThermalParams())
        pulsed = simulate_ultrasound_therapy(
            ThermalParams(mode=UltrasoundMode.PULSED, duty_cycle_pct=50.0)
        )
        assert pulsed.energy_j == pytest.approx(continuous.energy_j / 2)
        assert pulsed.dose_j_cm2 == pytest.approx(continuous.dose_j_cm2 / 2)
        assert pulsed.power_w == pytest.approx(continuous.power_w)

    def test_duty_cycle_ignored_in_continuous_mode(self) -> None:
        assert ThermalParams(duty_cycle_pct=20.0).effective_duty == 1.0

    @pytest.mark.parametrize(
        "dose,category",
        [
            (0.0, DoseCategory.LOW),
            (4.9, DoseCategory.LOW),
            (5.0, DoseCategory.MODERATE),
            (20.0, DoseCategory.MODERATE),
            (20.1, DoseCategory.HIGH),
        ],
    )
    def test_dose_classification(self, dose: float, category: DoseCategory) -> None:
        assert classify_dose(dose) is category

    def test_dose_labels(self) -> None:
        assert DoseCategory.LOW.label == "low dose (<5 J/cm²)"
        assert DoseCategory.HIGH.label == "high dose (>20 J/cm²)"


class TestAttenuation:
    """Tests for layered attenuation and depth landmarks."""

    def test_frequency_factor_endpoints(self) -> None:
        assert frequency_factor(1.0) == pytest.approx(0.75)
        assert frequency_factor(3.0) == pytest.approx(3.15)

    @pytest.mark.parametrize("frequency", [0.0, 0.2, 0.375])
    def test_frequency_factor_floors_at_zero(self, frequency: float) -> None:
        assert frequency_factor(frequency) == pytest.approx(0.0)

    @pytest.mark.parametrize("frequency", [0.2, 0.5, 1.0, 3.0])
    def test_intensity_never_grows_with_depth(self, frequency: float) -> None:
        stack = get_acoustic_scenario("knee")
        values = [intensity_at_depth(1.0, d, frequency, stack) for d in np.arange(0.0, 10.0, 0.1)]
        assert all(a >= b for a, b in zip(values, values[1:]))
        assert max(values) <= 1.0

    def test_full_intensity_at_surface(self) -> None:
        stack = get_acoustic_scenario("forearm")
        assert intensity_at_depth(1.0, 0.0, 1.0, stack) == 1.0

    def test_intensity_decreases_with_depth(self) -> None:
        stack = get_acoustic_scenario("shoulder")
        values = [intensity_at_depth(1.0, d, 1.1, stack) for d in np.arange(0.0, 8.0, 0.25)]
        assert all(a >= b for a, b in zip(values, values[1:]))
        assert values[-1] > 0.0

    def test_higher_frequency_penetrates_less(self) -> None:
        stack = get_acoustic_scenario("forearm")
        pen_low, eff_low = find_depth_landmarks(1.0, 1.0, stack)
        pen_high, eff_high = find_depth_landmarks(1.0, 3.0, stack)
        assert pen_high < pen_low
        assert eff_high < eff_low
        assert eff_high <= pen_high

    def test_unreached_threshold_reports_scan_limit(self) -> None:
        """At 1 MHz the forearm never drops to 10% within the scan range."""
        penetration, _ = find_depth_landmarks(1.0, 1.0, get_acoustic_scenario("forearm"))
        assert penetration == pytest.approx(10.0)

    def test_depth_profile_starts_at_full_intensity(self) -> None:
        result = simulate_ultrasound_therapy(ThermalParams(scenario="lumbar"))
        profile = result.intensity_profile
        assert profile[0].depth == 0.0
        assert profile[0].relative_intensity == pytest.approx(1.0)
        assert len(profile) == 61
        assert len(result.temperature_profile) == len(profile)


class TestTissueResolution:
    """Tests for scenario and custom stack resolution."""

    def test_custom_thicknesses(self) -> None:
        params = ThermalParams(
            scenario="custom",
            custom_thicknesses=CustomThicknesses(skin=0.2, fat=1.0, muscle=2.0, bone_thickness=1.0),
        )
        stack = resolve_tissue_stack(params)
        assert stack.thickness_of("fat") == pytest.approx(1.0)
        assert stack.bone_depth == pytest.approx(3.2)

    def test_custom_block_depth(self) -> None:
        """Without a bone thickness, bone fills the block down to its depth."""
        params = ThermalParams(
            scenario="custom",
            custom_thicknesses=CustomThicknesses(skin=0.2, fat=1.0, muscle=2.0),
        )
        assert resolve_tissue_stack(params).total_depth == pytest.approx(6.0)
        assert resolve_tissue_stack(params, block_depth_cm=10.0).total_depth == pytest.approx(10.0)

    def test_block_depth_ignored_for_presets(self) -> None:
        params = ThermalParams(scenario="knee")
        assert resolve_tissue_stack(params, block_depth_cm=10.0) == get_acoustic_scenario("knee")

    def test_unknown_scenario_raises(self) -> None:
        with pytest.raises(KeyError):
            simulate_ultrasound_therapy(ThermalParams(scenario="hip"))


class TestBoneInteraction:
    """Tests for bone reflection and periosteal risk."""

    def test_hotspot_near_bone_is_periosteal_risk(self) -> None:
        knee = get_acoustic_scenario("knee")
        params = ThermalParams(frequency_mhz=1.0, scenario="knee")
        reflection, periosteal = bone_interaction(params, knee, 1.9, 37.0)
        assert reflection > 0.3
        assert periosteal == pytest.approx(0.8)

    def test_no_bone_no_interaction(self) -> None:
        lumbar = get_acoustic_scenario("lumbar")
        params = ThermalParams(scenario="lumbar")
        assert bone_interaction(params, lumbar, 1.0, 40.0) == (0.0, 0.0)

    def test_mixed_layer_depends_on_transducer_side(self) -> None:
        forearm = get_acoustic_scenario("forearm")
        mixed = MixedLayer(depth_cm=1.0, division_pct=50.0)
        over_bone = ThermalParams(scenario="forearm", mixed_layer=mixed, transducer_x=0.5)
        over_muscle = ThermalParams(scenario="forearm", mixed_layer=mixed, transducer_x=-0.5)
        assert bone_interaction(over_bone, forearm, 0.3, 37.0)[0] > 0.0
        assert bone_interaction(over_muscle, forearm, 0.3, 37.0) == (0.0, 0.0)


class TestRisk:
    """Tests for thermal risk assessment."""

    def test_periosteal_risk_escalates_level(self) -> None:
        risk = assess_thermal_risk(ThermalParams(), 37.5, 37.1, 0.0, 0.8, 2.0)
        assert risk.level is RiskLevel.HIGH
        assert risk.messages[0].startswith("Very high periosteal risk (80%)")
        assert risk.score == RiskLevel.HIGH.band_floor

    def test_hot_tissue_is_high_risk(self) -> None:
        risk = assess_thermal_risk(ThermalParams(), 46.0, 40.0, 10.0, 0.0, 2.0)
        assert risk.level is RiskLevel.HIGH

    def test_cool_short_session_is_low_risk(self) -> None:
        risk = assess_thermal_risk(ThermalParams(duration_min=5.0), 37.5, 37.2, 0.0, 0.0, 2.0)
        assert risk.level is RiskLevel.LOW
        assert risk.score == 0.0

    def test_high_dose_long_session_escalates(self) -> None:
        risk = assess_thermal_risk(ThermalParams(duration_min=20.0), 37.5, 37.2, 0.0, 0.0, 300.0)
        assert risk.level is RiskLevel.MODERATE
        assert risk.messages[-1].startswith("High dose")

    def test_unsafe_preset_is_not_low(self) -> None:
        result = simulate_ultrasound_therapy(ultrasound_params_from_preset("unsafe_example"))
        assert result.risk_level is not RiskLevel.LOW
        assert len(result.risk_messages) >= 1

    def test_cem43_reference(self) -> None:
        assert cem43(10.0, 43.0) == pytest.approx(10.0)
        assert cem43(10.0, 40.0) < 1.0


class TestEngineContract:
    """Bounds, determinism and tracing."""

    @pytest.mark.parametrize("preset", list(ULTRASOUND_PRESETS))
    def test_reported_temperatures_bounded(self, preset: str) -> None:
        result = simulate_ultrasound_therapy(ultrasound_params_from_preset(preset))
        low, high = REPORTED_TEMPERATURE_RANGE_C
        for value in (result.surface_temp_c, result.target_temp_c, result.max_temp_c):
            assert low <= value <= high
        assert result.max_temp_c >= result.target_temp_c
        assert 0.0 <= result.periosteal_risk <= 1.0
        assert 0.0 <= result.bone_reflection <= 1.0
        assert len(result.risk_messages) <= 3

    @pytest.mark.parametrize(
        "params",
        [
            ThermalParams(
                intensity_w_cm2=10.0,
                duration_min=120.0,
                movement="stationary",
                coupling="poor",
                frequency_mhz=3.0,
            ),
            ThermalParams(intensity_w_cm2=10.0, duration_min=120.0, movement="stationary"),
            ThermalParams(intensity_w_cm2=0.0),
            ThermalParams(duration_min=0.0),
            ThermalParams(frequency_mhz=0.2, intensity_w_cm2=3.0, movement="stationary"),
        ],
        ids=["hot_poor_coupling", "hot_good_coupling", "no_intensity", "no_time", "low_frequency"],
    )
    def test_extreme_inputs_stay_bounded(self, params: ThermalParams) -> None:
        result = simulate_ultrasound_therapy(params)
        low, high = REPORTED_TEMPERATURE_RANGE_C
        for value in (result.surface_temp_c, result.target_temp_c, result.max_temp_c):
            assert low <= value <= high
        for sample in result.temperature_profile:
            assert low <= sample.temperature_c <= high
        assert 0.0 <= result.periosteal_risk <= 1.0
        assert result.penetration_depth_cm >= result.effective_depth_cm >= 0.0

    def test_no_heating_without_intensity_or_time(self) -> None:
        for params in (ThermalParams(intensity_w_cm2=0.0), ThermalParams(duration_min=0.0)):
            result = simulate_ultrasound_therapy(params)
            assert result.max_temp_c == pytest.approx(37.0)
            assert result.risk_level is RiskLevel.LOW

    def test_scanning_widens_treated_area(self) -> None:
        scanning = simulate_ultrasound_therapy(ThermalParams(movement="scanning"))
        stationary = simulate_ultrasound_therapy(ThermalParams(movement="stationary"))
        assert scanning.treated_area_cm2 > stationary.treated_area_cm2
        assert scanning.beam_width_cm == pytest.approx(stationary.beam_width_cm)

    def test_deterministic(self) -> None:
        params = ultrasound_params_from_preset("near_bone")
        assert simulate_ultrasound_therapy(params) == simulate_ultrasound_therapy(params)

    def test_trace_events(self) -> None:
        trace = RecordingTrace()
        simulate_ultrasound_therapy(ThermalParams(), trace=trace)
        assert trace.names == [
            "ultrasound.energy",
            "ultrasound.landmarks",
            "ultrasound.thermal",
            "ultrasound.bone",
            "ultrasound.risk",
        ]


class TestThermalTimeline:
    """Tests for the target temperature timeline."""

    def test_timeline_spans_session(self) -> None:
        params = ThermalParams(duration_min=10.0)
        timeline = thermal_timeline(params)
        assert len(timeline) == 21
        assert timeline[0].position == 0.0
        assert timeline[-1].position == pytest.approx(10.0)
        assert timeline[0].temperature_c == pytest.approx(37.0)

    def test_timeline_never_cools(self) -> None:
        params = ultrasound_params_from_preset("deep_heating")
        temperatures = [s.temperature_c for s in thermal_timeline(params, points=11)]
        assert all(a <= b + 1e-12 for a, b in zip(temperatures, temperatures[1:]))

    def test_rejects_single_point(self) -> None:
        with pytest.raises(ValueError):
            thermal_timeline(ThermalParams(), points=1)
