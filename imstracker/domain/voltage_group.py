"""Voltage groups: runs of consecutive frames acquired at one drift voltage.

A direct-injection IMS acquisition steps the drift-tube voltage; frames
recorded at the same setpoint are accumulated into a ``VoltageGroup`` that
keeps running statistics of voltage, pressure, temperature and TOF width.
Groups are built upstream while frames are read, then treated as immutable.
"""

import math
from typing import Optional

from ..physics import nondimensionalized_to_kelvin, nondimensionalized_to_torr

# Voltages closer than this to the group mean always join the group
MIN_DIFFERENTIAL_VOLTAGE = 5.0


def _accumulate(mean: float, variance: float, count: int, value: float):
    """Welford-style running update; ``count`` already includes ``value``."""
    new_mean = (mean * (count - 1) + value) / count
    new_variance = ((count - 1) * variance + (value - new_mean) * (value - mean)) / count
    return new_mean, new_variance


class VoltageGroup:
    """Frames accumulated at one drift voltage.

    Identity is ``(first_frame_index, last_frame_index)``; two groups covering
    the same frames compare equal and hash alike regardless of statistics.

    Args:
        first_frame_index: Index of the first frame in the group
        total_frames_in_data: Number of frames in the whole acquisition, used
            for the entering/exiting probabilities of tracks
    """

    def __init__(self, first_frame_index: int, total_frames_in_data: Optional[int] = None):
        if first_frame_index < 0:
            raise ValueError(f"first_frame_index must be >= 0, got {first_frame_index}")

        self.first_frame_index = first_frame_index
        self.total_frames_in_data = total_frames_in_data
        self.frame_accumulation_count = 0

        self.mean_voltage_in_volts = 0.0
        self.variance_voltage = 0.0
        self.mean_pressure_nondimensionalized = 0.0
        self.variance_pressure = 0.0
        self.mean_temperature_nondimensionalized = 0.0
        self.variance_temperature = 0.0
        self.average_tof_width_in_seconds = 0.0

    @property
    def last_frame_index(self) -> int:
        return self.first_frame_index + self.frame_accumulation_count - 1

    @property
    def mean_pressure_torr(self) -> float:
        return nondimensionalized_to_torr(self.mean_pressure_nondimensionalized)

    @property
    def mean_temperature_kelvin(self) -> float:
        return nondimensionalized_to_kelvin(self.mean_temperature_nondimensionalized)

    def add_voltage(self, voltage: float, pressure_nd: float,
                    temperature_nd: float, tof_width_s: float) -> None:
        """Accumulate one frame's readbacks (pressure and temperature nondimensionalized)."""
        self.frame_accumulation_count += 1
        n = self.frame_accumulation_count

        self.mean_voltage_in_volts, self.variance_voltage = _accumulate(
            self.mean_voltage_in_volts, self.variance_voltage, n, voltage)
        self.mean_temperature_nondimensionalized, self.variance_temperature = _accumulate(
            self.mean_temperature_nondimensionalized, self.variance_temperature, n, temperature_nd)
        self.mean_pressure_nondimensionalized, self.variance_pressure = _accumulate(
            self.mean_pressure_nondimensionalized, self.variance_pressure, n, pressure_nd)
        self.average_tof_width_in_seconds = (
            self.average_tof_width_in_seconds * (n - 1) + tof_width_s) / n

    def add_similar_voltage(self, voltage: float, pressure_nd: float,
                            temperature_nd: float, tof_width_s: float) -> bool:
        """Accumulate the frame only if its voltage belongs to this group.

        Returns:
            True if the frame was accumulated
        """
        if not self.is_similar_voltage(voltage):
            return False
        self.add_voltage(voltage, pressure_nd, temperature_nd, tof_width_s)
        return True

    def is_similar_voltage(self, voltage: float) -> bool:
        """Whether a voltage belongs with the frames accumulated so far.

        Similar if the group is empty, the voltage is within 3 standard
        deviations or MIN_DIFFERENTIAL_VOLTAGE of the mean, or adding it would
        not double the variance.
        """
        if self.frame_accumulation_count == 0:
            return True

        distance = abs(voltage - self.mean_voltage_in_volts)
        if distance < 3 * math.sqrt(self.variance_voltage):
            return True
        if distance < MIN_DIFFERENTIAL_VOLTAGE:
            return True

        _, dry_run_variance = _accumulate(
            self.mean_voltage_in_volts, self.variance_voltage,
            self.frame_accumulation_count + 1, voltage)
        return dry_run_variance < self.variance_voltage * 2

    def __eq__(self, other):
        if not isinstance(other, VoltageGroup):
            return NotImplemented
        return (self.first_frame_index == other.first_frame_index
                and self.last_frame_index == other.last_frame_index)

    def __hash__(self):
        return hash((self.first_frame_index, self.last_frame_index))

    def __repr__(self):
        return (f"VoltageGroup(frames={self.first_frame_index}-{self.last_frame_index}, "
                f"V={self.mean_voltage_in_volts:.2f})")
