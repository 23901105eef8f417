"""Observed peaks: the vertices of the observation transition graph.

A real observation is one detected IMS peak inside one voltage group, with
its apex and full-width-half-max bounds in drift time and m/z plus
precomputed quality scores. Virtual observations carry nothing and only mark
the entry and exit of the graph.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .voltage_group import VoltageGroup


class ObservationType(Enum):
    """Kind of graph vertex."""
    VIRTUAL = "virtual"
    REAL = "real"


@dataclass(frozen=True)
class ImsPeak:
    """Apex location and FWHM bounds of the highest apex of a detected peak.

    Attributes:
        drift_time_center_ms: Drift time of the apex (ms)
        drift_time_fwhm_lower_ms: Lower half-max bound in drift time (ms)
        drift_time_fwhm_upper_ms: Upper half-max bound in drift time (ms)
        mz_center_da: m/z of the apex (Da)
        mz_fwhm_lower_da: Lower half-max bound in m/z (Da)
        mz_fwhm_upper_da: Upper half-max bound in m/z (Da)
        summed_intensities: Total intensity of the peak
    """

    drift_time_center_ms: float
    drift_time_fwhm_lower_ms: float
    drift_time_fwhm_upper_ms: float
    mz_center_da: float
    mz_fwhm_lower_da: float
    mz_fwhm_upper_da: float
    summed_intensities: float

    def peak_center_location_on_arrival_time(self) -> float:
        """Apex position inside the drift-time FWHM window, 0 (lower) to 1 (upper)."""
        return _relative_location(self.drift_time_center_ms,
                                  self.drift_time_fwhm_lower_ms,
                                  self.drift_time_fwhm_upper_ms)

    def peak_center_location_on_mz(self) -> float:
        """Apex position inside the m/z FWHM window, 0 (lower) to 1 (upper)."""
        return _relative_location(self.mz_center_da, self.mz_fwhm_lower_da, self.mz_fwhm_upper_da)


def _relative_location(center: float, lower: float, upper: float) -> float:
    width = upper - lower
    if width <= 0:
        return 0.5
    return (center - lower) / width


@dataclass(frozen=True)
class FeatureStatistics:
    """Quality scores computed upstream for a detected feature, each in [0, 1]."""

    intensity_score: float
    isotopic_score: float = 1.0
    peak_shape_score: float = 1.0


@dataclass(eq=False)
class ObservedPeak:
    """A real peak observation, or a virtual source/sink marker.

    Compared and hashed by identity: two observations with equal payloads
    are still different graph vertices.

    Attributes:
        voltage_group: Voltage group the peak was detected in
        peak: Apex and FWHM description of the peak
        statistics: Precomputed quality scores
        observation_type: REAL for detected peaks, VIRTUAL for markers
    """

    voltage_group: Optional[VoltageGroup] = None
    peak: Optional[ImsPeak] = None
    statistics: Optional[FeatureStatistics] = None
    observation_type: ObservationType = ObservationType.REAL

    def __post_init__(self):
        if self.observation_type is ObservationType.REAL:
            if self.voltage_group is None or self.peak is None or self.statistics is None:
                raise ValueError("A real observation needs a voltage group, a peak and statistics")

    @classmethod
    def virtual(cls) -> 'ObservedPeak':
        """Create a payload-free source/sink marker."""
        return cls(observation_type=ObservationType.VIRTUAL)

    @property
    def is_virtual(self) -> bool:
        return self.observation_type is ObservationType.VIRTUAL

    @property
    def description(self) -> str:
        """Short label: [voltage, drift time, intensity]."""
        if self.is_virtual:
            return "[virtual]"
        return (f"[{self.voltage_group.mean_voltage_in_volts:.2f} V, "
                f"{self.peak.drift_time_center_ms:.2f}, "
                f"{self.peak.summed_intensities:.0f}]")

    def __repr__(self):
        return f"ObservedPeak{self.description}"
