"""Pytest configuration for imstracker tests.

Provides factories for synthetic voltage groups and observations. Drift
times are generated exactly on the drift-time line

    t_d = L² / K0 · P / (V · T) + t0

so tracks built from them fit with R² = 1.
"""

import numpy as np
import pytest

from imstracker.constants import DEFAULT_DRIFT_TUBE_LENGTH_IN_CM
from imstracker.domain import FeatureStatistics, ImsPeak, ObservedPeak, VoltageGroup
from imstracker.physics import celsius_to_nondimensionalized, torr_to_nondimensionalized

# Three voltage groups of 10 frames, highest voltage first
GROUP_VOLTAGES = (1500.0, 1250.0, 1000.0)
FRAMES_PER_GROUP = 10
TOTAL_FRAMES = FRAMES_PER_GROUP * len(GROUP_VOLTAGES)


def build_voltage_group(first_frame, voltage, frames=FRAMES_PER_GROUP, total_frames=TOTAL_FRAMES,
                        pressure_torr=4.0, temperature_c=25.0):
    group = VoltageGroup(first_frame, total_frames)
    for _ in range(frames):
        group.add_voltage(
            voltage,
            torr_to_nondimensionalized(pressure_torr),
            celsius_to_nondimensionalized(temperature_c),
            1.0e-4,
        )
    return group


def build_observation(group, drift_time_ms, mz=622.0, intensity=1.0e5, intensity_score=1.0):
    peak = ImsPeak(
        drift_time_center_ms=drift_time_ms,
        drift_time_fwhm_lower_ms=drift_time_ms - 0.1,
        drift_time_fwhm_upper_ms=drift_time_ms + 0.1,
        mz_center_da=mz,
        mz_fwhm_lower_da=mz - 0.005,
        mz_fwhm_upper_da=mz + 0.005,
        summed_intensities=intensity,
    )
    return ObservedPeak(group, peak, FeatureStatistics(intensity_score))


def drift_time_on_line(group, mobility, t0_ms=0.5, drift_tube_length_cm=DEFAULT_DRIFT_TUBE_LENGTH_IN_CM):
    """Drift time (ms) of an ion with reduced mobility K0 in the given group."""
    x = (group.mean_pressure_nondimensionalized
         / group.mean_voltage_in_volts
         / group.mean_temperature_nondimensionalized)
    return (drift_tube_length_cm ** 2 / mobility * x) * 1000 + t0_ms


@pytest.fixture
def make_voltage_group():
    """Factory for voltage groups with constant readbacks."""
    return build_voltage_group


@pytest.fixture
def make_observation():
    """Factory for real observations with symmetric FWHM bounds."""
    return build_observation


@pytest.fixture
def line_drift_time():
    """Drift time on the ideal drift-time line."""
    return drift_time_on_line


@pytest.fixture
def voltage_groups():
    """Three groups in decreasing voltage, the first starting at frame 0."""
    return [
        build_voltage_group(i * FRAMES_PER_GROUP, voltage)
        for i, voltage in enumerate(GROUP_VOLTAGES)
    ]


@pytest.fixture
def single_track_observations(voltage_groups):
    """One observation per group, exactly on the line of K0 = 1.2."""
    return [
        build_observation(group, drift_time_on_line(group, 1.2))
        for group in voltage_groups
    ]


@pytest.fixture
def two_track_observations(voltage_groups):
    """Two isomers (K0 = 1.2 and 0.9) with very different intensities.

    Returns:
        (all observations, observations of isomer A, observations of isomer B)
    """
    track_a = [
        build_observation(group, drift_time_on_line(group, 1.2), intensity=1.0e5)
        for group in voltage_groups
    ]
    track_b = [
        build_observation(group, drift_time_on_line(group, 0.9), intensity=1.0e6)
        for group in voltage_groups
    ]
    return track_a + track_b, track_a, track_b


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
