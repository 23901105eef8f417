"""Tests for the transition model."""

import math

import pytest

from imstracker.association import (
    DataAssociationParameters,
    DiffusionProfileDescriptor,
    DiffusionProfileDifference,
    IonTransition,
    TransitionModel,
)
from imstracker.domain import ObservedPeak


class TestRealToReal:

    def test_identical_peaks_have_probability_one(self, voltage_groups, make_observation):
        a = make_observation(voltage_groups[0], 20.0)
        b = make_observation(voltage_groups[1], 25.0)  # drift time does not enter
        transition = TransitionModel()(a, b)

        assert transition.probability == pytest.approx(1.0)
        assert transition.weight == pytest.approx(0.0, abs=1e-12)
        assert transition.mz_difference_in_ppm == 0.0
        assert transition.intensity_difference == 0.0

    def test_intensity_mismatch(self, voltage_groups, make_observation):
        a = make_observation(voltage_groups[0], 20.0, intensity=1.0e5)
        b = make_observation(voltage_groups[1], 25.0, intensity=1.0e6)
        transition = TransitionModel()(a, b)

        assert transition.intensity_difference == pytest.approx(0.9)
        # intensity weight 2 of 6: 0.1 ** (1/3)
        assert transition.probability == pytest.approx(0.1 ** (1 / 3))

    def test_mz_mismatch(self, voltage_groups, make_observation):
        a = make_observation(voltage_groups[0], 20.0, mz=622.0)
        b = make_observation(voltage_groups[1], 25.0, mz=622.0 * (1 + 30e-6))
        transition = TransitionModel()(a, b)

        assert transition.mz_difference_in_ppm == pytest.approx(30.0, rel=1e-3)
        # mz weight 3 of 6
        assert transition.probability == pytest.approx(0.9 ** 0.5, rel=1e-3)

    def test_probability_shortcut(self, voltage_groups, make_observation):
        a = make_observation(voltage_groups[0], 20.0, intensity=1.0e5)
        b = make_observation(voltage_groups[1], 25.0, intensity=2.0e5)
        model = TransitionModel()
        assert model.probability(a, b) == model(a, b).probability

    def test_weights_are_configurable(self, voltage_groups, make_observation):
        a = make_observation(voltage_groups[0], 20.0, intensity=1.0e5)
        b = make_observation(voltage_groups[1], 25.0, intensity=1.0e6)
        params = DataAssociationParameters(intensity_weight=0.0)
        assert TransitionModel(params).probability(a, b) == pytest.approx(1.0)


class TestVirtualTransitions:

    def test_entering(self, voltage_groups, make_observation):
        source = ObservedPeak.virtual()
        first = make_observation(voltage_groups[0], 20.0, intensity_score=0.5)
        later = make_observation(voltage_groups[1], 25.0)
        model = TransitionModel()

        # first group starts at frame 0 of 30
        assert model.probability(source, first) == pytest.approx(0.5)
        assert model.probability(source, later) == pytest.approx(1.0 - 10 / 30)

    def test_exiting(self, voltage_groups, make_observation):
        sink = ObservedPeak.virtual()
        last = make_observation(voltage_groups[2], 30.0)
        first = make_observation(voltage_groups[0], 20.0)
        model = TransitionModel()

        assert model.probability(last, sink) == pytest.approx(29 / 30)
        assert model.probability(first, sink) == pytest.approx(9 / 30)

    def test_custom_likelihood(self, voltage_groups, make_observation):
        source = ObservedPeak.virtual()
        peak = make_observation(voltage_groups[0], 20.0)
        model = TransitionModel(likelihood_function=lambda statistics: 0.25)
        assert model.probability(source, peak) == pytest.approx(0.25)

    def test_virtual_to_virtual_raises(self):
        with pytest.raises(ValueError):
            TransitionModel()(ObservedPeak.virtual(), ObservedPeak.virtual())

    def test_missing_frame_total_raises(self, make_voltage_group, make_observation):
        group = make_voltage_group(0, 1500.0, total_frames=None)
        peak = make_observation(group, 20.0)
        with pytest.raises(ValueError):
            TransitionModel()(peak, ObservedPeak.virtual())


class TestDiffusionProfile:

    def test_descriptor(self, voltage_groups, make_observation):
        peak = make_observation(voltage_groups[0], 20.0, mz=500.0)
        descriptor = DiffusionProfileDescriptor.from_observation(peak)

        assert descriptor.arrival_time_center_location == pytest.approx(0.5)
        assert descriptor.arrival_time_diffusion_width_ms == pytest.approx(0.2)
        assert descriptor.mz_center_location == pytest.approx(0.5)
        # 0.01 Da at 500 Da
        assert descriptor.mz_diffusion_width_ppm == pytest.approx(20.0)

    def test_matching_probability(self):
        a = DiffusionProfileDescriptor(0.5, 0.2, 0.5, 20.0)
        b = DiffusionProfileDescriptor(0.5, 0.4, 0.6, 40.0)
        difference = DiffusionProfileDifference.between(a, b)

        assert difference.arrival_time_diffusion_width_difference_ms == pytest.approx(0.2)
        assert difference.mz_center_location_difference == pytest.approx(0.1)
        assert difference.mz_diffusion_width_difference_ppm == pytest.approx(20.0)
        assert difference.matching_probability(DataAssociationParameters()) == pytest.approx(0.81)


class TestIonTransition:

    def test_zero_probability_has_infinite_weight(self):
        transition = IonTransition(ObservedPeak.virtual(), ObservedPeak.virtual(), 0.0)
        assert math.isinf(transition.weight)

    def test_weight(self):
        transition = IonTransition(ObservedPeak.virtual(), ObservedPeak.virtual(), 0.5)
        assert transition.weight == pytest.approx(math.log(2))
